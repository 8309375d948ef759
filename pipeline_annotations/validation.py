"""
Structural validation of annotation records.

One validation path for every origin: records built in-process and
records recovered from persisted data go through the same checks.

A record is admissible iff id, a non-empty node-id list, pattern type,
pattern subtype, color and both timestamps are present and parse into
an Annotation. Unknown extra keys are ignored so newer documents still
load.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from .models import Annotation

# (persisted key, attribute name)
_REQUIRED_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("id", "id"),
    ("nodeIds", "node_ids"),
    ("patternType", "pattern_type"),
    ("patternSubtype", "pattern_subtype"),
    ("color", "color"),
    ("createdAt", "created_at"),
    ("modifiedAt", "modified_at"),
)
_OPTIONAL_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("label", "label"),
)


def _as_record(candidate: Any) -> Optional[Dict[str, Any]]:
    if isinstance(candidate, Annotation):
        return candidate.model_dump(by_alias=True)
    if isinstance(candidate, dict):
        return candidate
    return None


def _lookup(record: Dict[str, Any], key: str, name: str) -> Any:
    # Persisted records use camelCase; snake_case is accepted as well
    if key in record:
        return record[key]
    return record.get(name)


def missing_annotation_fields(candidate: Any) -> List[str]:
    """
    List required fields that are absent or empty.

    Args:
        candidate: Annotation or dict record

    Returns:
        Persisted key names of missing fields (empty list if none)
    """
    record = _as_record(candidate)
    if record is None:
        return [key for key, _ in _REQUIRED_FIELDS]

    return [
        key
        for key, name in _REQUIRED_FIELDS
        if not _lookup(record, key, name)
    ]


def coerce_annotation(candidate: Any) -> Optional[Annotation]:
    """
    Turn a candidate record into an Annotation, if it is admissible.

    Returns:
        The parsed Annotation, or None when the candidate is not valid
    """
    record = _as_record(candidate)
    if record is None or missing_annotation_fields(record):
        return None

    fields = {
        key: _lookup(record, key, name)
        for key, name in _REQUIRED_FIELDS + _OPTIONAL_FIELDS
    }
    try:
        return Annotation.model_validate(fields)
    except ValidationError:
        return None


def is_valid_annotation(candidate: Any) -> bool:
    """Check whether a candidate is an admissible annotation record."""
    return coerce_annotation(candidate) is not None
