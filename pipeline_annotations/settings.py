"""
AnnotationSettings - store configuration.

Settings decide where the annotation document lives and which
preferences a fresh (or freshly loaded) store starts from.

Resolution order:
1. Explicit values (from_dict / constructor)
2. Environment variable overrides (from_env)
3. Built-in defaults
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .colors import DEFAULT_COLOR_SCHEME, merge_color_schemes
from .models import Preferences

# Environment variable overrides (optional)
ENV_DOCUMENT_PATH = "PIPELINE_ANNOTATIONS_FILE"
ENV_SHOW_LABELS = "PIPELINE_ANNOTATIONS_SHOW_LABELS"
ENV_ANIMATION = "PIPELINE_ANNOTATIONS_ANIMATION"


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class AnnotationSettings:
    """
    Immutable store configuration.

    color_overrides is merged per pattern type over DEFAULT_COLOR_SCHEME,
    so overriding one subtype keeps the rest of the defaults.
    """

    # Annotation document path. None disables save()/load().
    document_path: Optional[str] = None

    show_labels: bool = True
    animation_enabled: bool = True

    # pattern type -> subtype -> color
    color_overrides: Dict[str, Dict[str, str]] = field(default_factory=dict)

    def default_preferences(self) -> Preferences:
        """Preferences a fresh store starts from."""
        return Preferences(
            color_scheme=merge_color_schemes(DEFAULT_COLOR_SCHEME, self.color_overrides),
            show_labels=self.show_labels,
            animation_enabled=self.animation_enabled,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "document_path": self.document_path,
            "show_labels": self.show_labels,
            "animation_enabled": self.animation_enabled,
            "color_overrides": {k: dict(v) for k, v in self.color_overrides.items()},
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "AnnotationSettings":
        """Deserialize from dictionary. Missing keys take defaults."""
        if not data:
            return DEFAULT_ANNOTATION_SETTINGS

        return cls(
            document_path=data.get("document_path"),
            show_labels=bool(data.get("show_labels", True)),
            animation_enabled=bool(data.get("animation_enabled", True)),
            color_overrides={
                k: dict(v) for k, v in (data.get("color_overrides") or {}).items()
            },
        )

    @classmethod
    def from_env(cls, base: Optional["AnnotationSettings"] = None) -> "AnnotationSettings":
        """
        Apply environment variable overrides on top of base settings.

        Variables:
            PIPELINE_ANNOTATIONS_FILE: document path
            PIPELINE_ANNOTATIONS_SHOW_LABELS: "true"/"false"
            PIPELINE_ANNOTATIONS_ANIMATION: "true"/"false"
        """
        base = base or DEFAULT_ANNOTATION_SETTINGS
        return cls(
            document_path=os.environ.get(ENV_DOCUMENT_PATH) or base.document_path,
            show_labels=_env_flag(ENV_SHOW_LABELS, base.show_labels),
            animation_enabled=_env_flag(ENV_ANIMATION, base.animation_enabled),
            color_overrides=base.color_overrides,
        )


DEFAULT_ANNOTATION_SETTINGS = AnnotationSettings()
