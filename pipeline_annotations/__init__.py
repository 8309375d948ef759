"""
Pipeline Annotations - semantic pattern labels over pipeline diagram nodes.

Users group diagram nodes under a pattern classification (e.g. "this
cluster is a CI/CD testing step"). The AnnotationStore owns the
annotations, the transient selection/UI state and the preferences, and
persists annotations alongside the diagram.

Constraints:
- Node and edge ids are opaque strings, never checked against a graph
- An annotation always covers at least one node
- Selection and UI state are never persisted
- Single-threaded, synchronous notification
"""

__version__ = "1.0.0"

from .errors import (
    AnnotationError,
    InvalidSelectionError,
    EmptySelectionError,
    ImmutableFieldError,
    UnknownAnnotationError,
    MalformedPersistedDataError,
)
from .models import (
    PipelinePatternType,
    Annotation,
    PendingAnnotation,
    SelectionState,
    UIState,
    Preferences,
    AnnotationState,
    AnnotationUpdate,
    PreferencesUpdate,
)
from .colors import (
    DEFAULT_COLOR_SCHEME,
    FALLBACK_COLOR,
    resolve_color,
)
from .factory import new_identifier, build_annotation
from .validation import is_valid_annotation
from .graph import connected_node_ids
from .persistence import (
    FORMAT_VERSION,
    AnnotationDocument,
    RecoveryReport,
    recover_state,
    serialize_state,
    deserialize_state,
)
from .settings import AnnotationSettings
from .store import AnnotationStore

__all__ = [
    # Errors
    "AnnotationError",
    "InvalidSelectionError",
    "EmptySelectionError",
    "ImmutableFieldError",
    "UnknownAnnotationError",
    "MalformedPersistedDataError",
    # Models
    "PipelinePatternType",
    "Annotation",
    "PendingAnnotation",
    "SelectionState",
    "UIState",
    "Preferences",
    "AnnotationState",
    "AnnotationUpdate",
    "PreferencesUpdate",
    # Colors
    "DEFAULT_COLOR_SCHEME",
    "FALLBACK_COLOR",
    "resolve_color",
    # Construction and validation
    "new_identifier",
    "build_annotation",
    "is_valid_annotation",
    "connected_node_ids",
    # Persistence
    "FORMAT_VERSION",
    "AnnotationDocument",
    "RecoveryReport",
    "recover_state",
    "serialize_state",
    "deserialize_state",
    # Store
    "AnnotationSettings",
    "AnnotationStore",
]
