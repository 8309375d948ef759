"""
Pattern colors and the pattern subtype catalog.

Color schemes are plain data: pattern type value -> subtype -> color.
resolve_color() is pure and total; anything it cannot resolve maps
to FALLBACK_COLOR.
"""

import copy
from typing import Any, Dict, List, Mapping

# Neutral gray used when a type/subtype pair has no scheme entry
FALLBACK_COLOR = "#6B7280"

DEFAULT_COLOR_SCHEME: Dict[str, Dict[str, str]] = {
    "cicd": {
        "testing": "#3b82f6",
        "build": "#1d4ed8",
    },
    "data-processing": {
        "modelInference": "#10b981",
        "modelTraining": "#059669",
        "etl": "#047857",
        "webscraping": "#065f46",
    },
    "ai-agent": {
        "promptChaining": "#8b5cf6",
        "routing": "#7c3aed",
        "parallelization": "#6d28d9",
        "orchestratorWorkers": "#5b21b6",
        "evaluatorOptimizer": "#4c1d95",
    },
    "rpa": {
        "browseAutomation": "#f59e0b",
    },
}

PATTERN_SUBTYPES: Dict[str, List[Dict[str, str]]] = {
    "cicd": [
        {"key": "testing", "label": "Testing", "description": "Test execution and validation steps"},
        {"key": "build", "label": "Build", "description": "Compilation and artifact creation steps"},
    ],
    "data-processing": [
        {"key": "modelInference", "label": "Model Inference", "description": "Machine learning model prediction steps"},
        {"key": "modelTraining", "label": "Model Training", "description": "Machine learning model training steps"},
        {"key": "etl", "label": "ETL/ELT", "description": "Extract, Transform, Load data processing steps"},
        {"key": "webscraping", "label": "Web Scraping", "description": "Web data extraction and scraping steps"},
    ],
    "ai-agent": [
        {"key": "promptChaining", "label": "Prompt Chaining", "description": "Sequential prompt execution steps"},
        {"key": "routing", "label": "Routing", "description": "Decision-based flow routing steps"},
        {"key": "parallelization", "label": "Parallelization", "description": "Parallel execution coordination steps"},
        {"key": "orchestratorWorkers", "label": "Orchestrator Workers", "description": "Worker coordination and management steps"},
        {"key": "evaluatorOptimizer", "label": "Evaluator Optimizer", "description": "Performance evaluation and optimization steps"},
    ],
    "rpa": [
        {"key": "browseAutomation", "label": "Browse Automation", "description": "Web browser automation steps"},
    ],
}


def _type_key(pattern_type: Any) -> Any:
    # Enum members are looked up by their value
    return getattr(pattern_type, "value", pattern_type)


def default_color_scheme() -> Dict[str, Dict[str, str]]:
    """Fresh deep copy of DEFAULT_COLOR_SCHEME."""
    return copy.deepcopy(DEFAULT_COLOR_SCHEME)


def resolve_color(
    pattern_type: Any,
    pattern_subtype: Any,
    color_scheme: Any,
) -> str:
    """
    Resolve the display color for a pattern type/subtype pair.

    Args:
        pattern_type: PipelinePatternType member or its string value
        pattern_subtype: Subtype key within the pattern type
        color_scheme: Mapping of pattern type -> subtype -> color

    Returns:
        The scheme color, or FALLBACK_COLOR when either key is missing.
        Never raises.
    """
    if not isinstance(color_scheme, Mapping):
        return FALLBACK_COLOR

    try:
        subtypes = color_scheme.get(_type_key(pattern_type))
    except TypeError:  # unhashable key
        return FALLBACK_COLOR

    if not isinstance(subtypes, Mapping):
        return FALLBACK_COLOR

    try:
        color = subtypes.get(pattern_subtype)
    except TypeError:
        return FALLBACK_COLOR

    if not isinstance(color, str) or not color:
        return FALLBACK_COLOR
    return color


def list_pattern_subtypes(pattern_type: Any) -> List[Dict[str, str]]:
    """
    List catalog entries (key, label, description) for a pattern type.

    Unknown pattern types yield an empty list.
    """
    return [dict(entry) for entry in PATTERN_SUBTYPES.get(_type_key(pattern_type), [])]


def merge_color_schemes(
    base: Mapping[str, Mapping[str, str]],
    overrides: Mapping[str, Mapping[str, str]],
) -> Dict[str, Dict[str, str]]:
    """
    Merge override colors into a base scheme, per pattern type.

    Subtypes present in overrides replace or extend those in base;
    pattern types absent from overrides are kept unchanged.
    """
    merged = {key: dict(subtypes) for key, subtypes in base.items()}
    for key, subtypes in overrides.items():
        merged.setdefault(_type_key(key), {}).update(subtypes)
    return merged
