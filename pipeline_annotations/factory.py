"""
Annotation construction.

Builds well-formed Annotation records and fresh identifiers.

Identifiers combine a millisecond timestamp with a short random suffix.
Uniqueness is probabilistic within one process and there is no
collision check: identifiers are labels, never security tokens.
"""

import random
import string
import time
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from .colors import resolve_color
from .errors import InvalidSelectionError
from .models import Annotation, PipelinePatternType

_SUFFIX_ALPHABET = string.digits + string.ascii_lowercase
_SUFFIX_LENGTH = 9

_last_timestamp_ms = 0


def _observed_timestamp_ms() -> int:
    # Never goes backwards within the process, even if the wall clock does
    global _last_timestamp_ms
    _last_timestamp_ms = max(_last_timestamp_ms, time.time_ns() // 1_000_000)
    return _last_timestamp_ms


def new_identifier() -> str:
    """
    Generate an annotation identifier.

    Returns:
        "annotation_<ms timestamp>_<9 base-36 chars>"
    """
    suffix = "".join(random.choices(_SUFFIX_ALPHABET, k=_SUFFIX_LENGTH))
    return f"annotation_{_observed_timestamp_ms()}_{suffix}"


def build_annotation(
    node_ids: Iterable[str],
    pattern_type: PipelinePatternType,
    pattern_subtype: str,
    color_scheme: Any,
    label: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Annotation:
    """
    Build a new annotation record.

    Args:
        node_ids: Nodes covered by the annotation (copied, de-duplicated)
        pattern_type: Pattern classification
        pattern_subtype: Subtype within the pattern type
        color_scheme: Scheme used to derive the display color
        label: Optional human label
        now: Creation time (defaults to current UTC time)

    Returns:
        Annotation with a fresh id and created_at == modified_at

    Raises:
        InvalidSelectionError: If node_ids is empty
    """
    nodes = tuple(node_ids)
    if not nodes:
        raise InvalidSelectionError()

    timestamp = now or datetime.now(timezone.utc)

    return Annotation(
        id=new_identifier(),
        node_ids=nodes,
        pattern_type=pattern_type,
        pattern_subtype=pattern_subtype,
        color=resolve_color(pattern_type, pattern_subtype, color_scheme),
        label=label,
        created_at=timestamp,
        modified_at=timestamp,
    )
