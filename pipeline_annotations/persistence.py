"""
Annotation persistence - versioned JSON documents.

Document layout:
    {
        "annotations": [[id, record], ...],
        "preferences": {...},
        "version": "1.0.0"
    }

Rules:
------
- Only annotations and preferences are persisted
- Selection and UI state are transient and never written or recovered
- Annotation order in the list is not meaningful
- Individually invalid records are discarded on load (tolerance policy,
  keeps older/newer documents loadable)
- Only an unusable top-level structure is an error
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from .errors import MalformedPersistedDataError
from .models import Annotation, AnnotationState, Preferences
from .validation import coerce_annotation, missing_annotation_fields

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.0.0"

# (persisted key, attribute name)
_PREFERENCE_FIELDS = (
    ("colorScheme", "color_scheme"),
    ("showLabels", "show_labels"),
    ("animationEnabled", "animation_enabled"),
)


def _major(version: Any) -> Optional[int]:
    try:
        return int(str(version).split(".")[0])
    except ValueError:
        return None


def state_to_document(state: AnnotationState) -> Dict[str, Any]:
    """Build the JSON-compatible document for a state."""
    return {
        "annotations": [
            [annotation_id, annotation.model_dump(mode="json", by_alias=True)]
            for annotation_id, annotation in state.annotations.items()
        ],
        "preferences": state.preferences.model_dump(mode="json", by_alias=True),
        "version": FORMAT_VERSION,
    }


def serialize_state(state: AnnotationState) -> str:
    """
    Serialize annotations and preferences to a JSON string.

    Selection and UI state are excluded.
    """
    return json.dumps(state_to_document(state))


def merge_preferences(defaults: Preferences, recovered: Any) -> Preferences:
    """
    Merge recovered preference values over defaults.

    Recovered keys win. Unknown keys are ignored; a recovered value that
    does not validate keeps the default for that key.
    """
    if not isinstance(recovered, dict):
        return defaults

    merged = defaults
    for key, name in _PREFERENCE_FIELDS:
        if key in recovered:
            value = recovered[key]
        elif name in recovered:
            value = recovered[name]
        else:
            continue

        try:
            merged = Preferences.model_validate({**merged.model_dump(), name: value})
        except ValidationError:
            logger.warning("Ignoring invalid persisted preference '%s'", key)

    return merged


def _recover_entry(entry: Any) -> Optional[Annotation]:
    if not isinstance(entry, (list, tuple)) or len(entry) != 2:
        logger.warning("Discarding malformed annotation entry: expected [id, record] pair")
        return None

    annotation_id, record = entry
    annotation = coerce_annotation(record)

    if annotation is None:
        logger.warning(
            "Discarding invalid annotation %r (missing or invalid: %s)",
            annotation_id,
            ", ".join(missing_annotation_fields(record)) or "field values",
        )
        return None

    if annotation.id != annotation_id:
        logger.warning(
            "Discarding annotation %r: record id %r does not match",
            annotation_id,
            annotation.id,
        )
        return None

    return annotation


@dataclass(frozen=True)
class RecoveryReport:
    """Outcome of recovering a document: the state plus entry counts."""

    state: AnnotationState
    total: int
    discarded: int


def recover_state(
    data: Union[str, bytes],
    defaults: Optional[Preferences] = None,
) -> RecoveryReport:
    """
    Rebuild state from a serialized document and report what was dropped.

    Args:
        data: JSON document as str or UTF-8 bytes
        defaults: Preferences to merge recovered values over

    Returns:
        RecoveryReport with the recovered state, the number of raw
        entries and the number of entries rejected as invalid.
        A repeated id is not a rejection: the later record wins.

    Raises:
        MalformedPersistedDataError: If the document is not JSON, is not an
            object, or has no usable annotation list
    """
    if isinstance(data, (bytes, bytearray)):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedPersistedDataError(f"not UTF-8 text: {e}") from e

    try:
        payload = json.loads(data)
    except (ValueError, TypeError, RecursionError) as e:
        # ValueError covers JSONDecodeError; RecursionError covers deep nesting
        raise MalformedPersistedDataError(f"invalid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise MalformedPersistedDataError("top-level value is not an object")

    entries = payload.get("annotations")
    if not isinstance(entries, list):
        raise MalformedPersistedDataError("missing 'annotations' list")

    version = payload.get("version")
    if version is not None and (_major(version) or 0) > (_major(FORMAT_VERSION) or 0):
        logger.warning(
            "Annotation document version %s is newer than %s; loading best-effort",
            version,
            FORMAT_VERSION,
        )

    annotations: Dict[str, Annotation] = {}
    discarded = 0
    for entry in entries:
        annotation = _recover_entry(entry)
        if annotation is None:
            discarded += 1
            continue
        if annotation.id in annotations:
            logger.warning("Duplicate annotation id %r; keeping the later record", annotation.id)
        annotations[annotation.id] = annotation

    if discarded:
        logger.warning("Discarded %d of %d persisted annotations", discarded, len(entries))

    state = AnnotationState(
        annotations=annotations,
        preferences=merge_preferences(defaults or Preferences(), payload.get("preferences")),
    )
    return RecoveryReport(state=state, total=len(entries), discarded=discarded)


def deserialize_state(
    data: Union[str, bytes],
    defaults: Optional[Preferences] = None,
) -> AnnotationState:
    """
    Rebuild state from a serialized document.

    Selection and UI state are fresh. Invalid records are dropped
    (see recover_state()).

    Raises:
        MalformedPersistedDataError: If the document itself is unusable
    """
    return recover_state(data, defaults).state


class AnnotationDocument:
    """
    File-backed annotation document stored alongside a diagram.

    Explicit read/write only. No auto-persistence.
    """

    def __init__(self, path: Union[str, Path]):
        """
        Args:
            path: Location of the JSON document
        """
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def write(self, state: AnnotationState) -> None:
        """Write annotations and preferences, creating parent directories."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(state_to_document(state), f, indent=2)
        logger.info("Saved %d annotations to %s", len(state.annotations), self.path)

    def read_report(self, defaults: Optional[Preferences] = None) -> RecoveryReport:
        """
        Read the document once and recover it, with entry counts.

        Raises:
            MalformedPersistedDataError: If the file is missing, unreadable,
                or structurally invalid
        """
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise MalformedPersistedDataError(f"cannot read {self.path}: {e}") from e

        report = recover_state(data, defaults)
        logger.info("Loaded %d annotations from %s", len(report.state.annotations), self.path)
        return report

    def read(self, defaults: Optional[Preferences] = None) -> AnnotationState:
        """Read and deserialize the document. Raises as read_report()."""
        return self.read_report(defaults).state
