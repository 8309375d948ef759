"""
Annotation data models.

Represents annotations over pipeline diagram nodes plus the transient
selection/UI state and the persisted preferences that surround them.

All models use Pydantic for validation.
All models are frozen: a change always produces a new value, so values
already handed to subscribers can never be mutated behind their back.
Python attributes are snake_case; the persisted/wire form is camelCase.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .colors import default_color_scheme


class PipelinePatternType(str, Enum):
    """
    Top-level pattern classification.

    The subtype is a free-form string scoped within one of these.
    """

    CICD = "cicd"
    DATA_PROCESSING = "data-processing"
    AI_AGENT = "ai-agent"
    RPA = "rpa"


# pattern type value -> subtype -> color
ColorScheme = Dict[str, Dict[str, str]]


class FrozenModel(BaseModel):
    """
    Base model for all annotation state values.

    Unknown fields are rejected.
    Instances are immutable.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are taken as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _unique(node_ids) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(node_ids))


class Annotation(FrozenModel):
    """
    One labeled grouping of diagram nodes.

    Identity and creation time are fixed for the lifetime of the record.
    node_ids is never empty: a change that would empty it deletes the
    annotation instead (enforced by the store).
    """

    # Identity
    id: str

    # Grouping
    node_ids: Tuple[str, ...]

    # Classification
    pattern_type: PipelinePatternType
    pattern_subtype: str
    color: str  # Derived from the color scheme at creation, may be overridden
    label: Optional[str] = None

    # Timestamps (UTC)
    created_at: datetime
    modified_at: datetime

    @field_validator("id", "pattern_subtype", "color")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Identity and classification strings must be non-empty."""
        if not v or not v.strip():
            raise ValueError("Value cannot be empty")
        return v

    @field_validator("node_ids")
    @classmethod
    def validate_node_ids(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        """Node ids form a non-empty set; first occurrence wins."""
        if not v:
            raise ValueError("node_ids cannot be empty")
        return _unique(v)

    @field_validator("created_at", "modified_at")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        return _as_utc(v)


class PendingAnnotation(FrozenModel):
    """A not-yet-committed annotation draft held in selection state."""

    node_ids: Optional[Tuple[str, ...]] = None
    pattern_type: Optional[PipelinePatternType] = None
    pattern_subtype: Optional[str] = None
    color: Optional[str] = None
    label: Optional[str] = None


class SelectionState(FrozenModel):
    """
    Transient node selection. Never persisted.

    Annotation creation is permitted only while selection mode is
    active AND at least one node is selected.
    """

    selected_node_ids: Tuple[str, ...] = ()
    is_selection_mode: bool = False
    pending_annotation: Optional[PendingAnnotation] = None

    @field_validator("selected_node_ids")
    @classmethod
    def validate_selected(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        """Selection order is preserved, duplicates are dropped."""
        return _unique(v)


class UIState(FrozenModel):
    """Transient UI state. Never persisted."""

    is_annotation_mode: bool = False
    active_annotation_id: Optional[str] = None
    hovered_annotation_id: Optional[str] = None


class Preferences(FrozenModel):
    """Display preferences, persisted alongside annotations."""

    color_scheme: ColorScheme = Field(default_factory=default_color_scheme)
    show_labels: bool = True
    animation_enabled: bool = True


class AnnotationState(FrozenModel):
    """
    Aggregate state owned by the AnnotationStore.

    annotations maps annotation id -> Annotation.
    """

    annotations: Dict[str, Annotation] = Field(default_factory=dict)
    selection_state: SelectionState = Field(default_factory=SelectionState)
    ui_state: UIState = Field(default_factory=UIState)
    preferences: Preferences = Field(default_factory=Preferences)


class AnnotationUpdate(FrozenModel):
    """
    Update descriptor for an existing annotation.

    Enumerates exactly the mutable fields. id, created_at and
    modified_at cannot be expressed here (extra fields are rejected),
    so identity and creation time stay fixed.

    Only fields that were explicitly set are applied, which lets
    label=None clear a label.
    """

    node_ids: Optional[Tuple[str, ...]] = None
    pattern_type: Optional[PipelinePatternType] = None
    pattern_subtype: Optional[str] = None
    color: Optional[str] = None
    label: Optional[str] = None

    @model_validator(mode="after")
    def validate_required_values(self) -> "AnnotationUpdate":
        """Only label may be explicitly cleared."""
        for name in self.model_fields_set - {"label"}:
            if getattr(self, name) is None:
                raise ValueError(f"'{name}' cannot be cleared")
        return self

    def changes(self) -> Dict[str, object]:
        """Explicitly set fields, keyed by attribute name."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class PreferencesUpdate(FrozenModel):
    """Update descriptor for preferences (shallow merge)."""

    color_scheme: Optional[ColorScheme] = None
    show_labels: Optional[bool] = None
    animation_enabled: Optional[bool] = None

    def changes(self) -> Dict[str, object]:
        """Explicitly set, non-null fields, keyed by attribute name."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if getattr(self, name) is not None
        }
