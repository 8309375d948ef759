"""
Shared fixtures for the annotation test suite.
"""

from datetime import datetime, timezone

import pytest

from pipeline_annotations.models import Annotation, PipelinePatternType
from pipeline_annotations.store import AnnotationStore


@pytest.fixture
def store():
    """Empty store with default preferences."""
    return AnnotationStore()


@pytest.fixture
def created_at():
    return datetime(2025, 12, 29, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_annotation(created_at):
    """A valid annotation built directly (not through the store)."""
    return Annotation(
        id="annotation_1735473600000_abc123xyz",
        node_ids=("n1", "n2"),
        pattern_type=PipelinePatternType.CICD,
        pattern_subtype="testing",
        color="#3b82f6",
        label="Unit tests",
        created_at=created_at,
        modified_at=created_at,
    )


@pytest.fixture
def sample_record():
    """A valid persisted (camelCase) annotation record."""
    return {
        "id": "a1",
        "nodeIds": ["n1", "n2"],
        "patternType": "ai-agent",
        "patternSubtype": "routing",
        "color": "#7c3aed",
        "label": None,
        "createdAt": "2025-12-29T12:00:00.000Z",
        "modifiedAt": "2025-12-29T12:30:00.000Z",
    }
