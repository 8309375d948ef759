"""
Tests for pattern color resolution and the subtype catalog.
"""

import pytest

from pipeline_annotations.colors import (
    DEFAULT_COLOR_SCHEME,
    FALLBACK_COLOR,
    PATTERN_SUBTYPES,
    default_color_scheme,
    list_pattern_subtypes,
    merge_color_schemes,
    resolve_color,
)
from pipeline_annotations.models import PipelinePatternType


class TestResolveColor:
    """Test resolve_color()."""

    @pytest.mark.parametrize("pattern_type,subtype,expected", [
        (PipelinePatternType.CICD, "testing", "#3b82f6"),
        (PipelinePatternType.CICD, "build", "#1d4ed8"),
        (PipelinePatternType.DATA_PROCESSING, "etl", "#047857"),
        (PipelinePatternType.AI_AGENT, "routing", "#7c3aed"),
        (PipelinePatternType.RPA, "browseAutomation", "#f59e0b"),
    ])
    def test_default_scheme_colors(self, pattern_type, subtype, expected):
        """Test known pairs resolve to the default scheme color."""
        assert resolve_color(pattern_type, subtype, DEFAULT_COLOR_SCHEME) == expected

    def test_accepts_string_pattern_type(self):
        """Test the pattern type may be given as its string value."""
        assert resolve_color("ai-agent", "promptChaining", DEFAULT_COLOR_SCHEME) == "#8b5cf6"

    def test_unknown_subtype_falls_back(self):
        """Test an unknown subtype yields the fallback color."""
        assert resolve_color(PipelinePatternType.CICD, "deploy", DEFAULT_COLOR_SCHEME) == FALLBACK_COLOR

    def test_unknown_type_falls_back(self):
        """Test an unknown pattern type yields the fallback color."""
        assert resolve_color("observability", "testing", DEFAULT_COLOR_SCHEME) == FALLBACK_COLOR

    @pytest.mark.parametrize("scheme", [None, {}, "not a scheme", {"cicd": None}, {"cicd": {"testing": 42}}])
    def test_never_raises_on_bad_schemes(self, scheme):
        """Test resolution is total over malformed schemes."""
        assert resolve_color(PipelinePatternType.CICD, "testing", scheme) == FALLBACK_COLOR

    def test_unhashable_inputs_fall_back(self):
        """Test unhashable keys do not raise."""
        assert resolve_color(["cicd"], "testing", DEFAULT_COLOR_SCHEME) == FALLBACK_COLOR
        assert resolve_color("cicd", ["testing"], DEFAULT_COLOR_SCHEME) == FALLBACK_COLOR

    def test_fallback_color_value(self):
        assert FALLBACK_COLOR == "#6B7280"


class TestColorSchemes:
    """Test scheme helpers."""

    def test_default_color_scheme_is_a_copy(self):
        """Test mutating the returned scheme leaves the defaults intact."""
        scheme = default_color_scheme()
        scheme["cicd"]["testing"] = "#000000"

        assert DEFAULT_COLOR_SCHEME["cicd"]["testing"] == "#3b82f6"

    def test_merge_overrides_single_subtype(self):
        """Test overriding one subtype keeps the others."""
        merged = merge_color_schemes(DEFAULT_COLOR_SCHEME, {"cicd": {"testing": "#ffffff"}})

        assert merged["cicd"]["testing"] == "#ffffff"
        assert merged["cicd"]["build"] == "#1d4ed8"
        assert merged["rpa"] == DEFAULT_COLOR_SCHEME["rpa"]

    def test_merge_adds_new_subtype(self):
        merged = merge_color_schemes(DEFAULT_COLOR_SCHEME, {PipelinePatternType.CICD: {"deploy": "#123456"}})

        assert merged["cicd"]["deploy"] == "#123456"


class TestPatternCatalog:
    """Test the subtype catalog."""

    def test_every_pattern_type_has_subtypes(self):
        for pattern_type in PipelinePatternType:
            assert list_pattern_subtypes(pattern_type)

    def test_catalog_keys_have_default_colors(self):
        """Test every catalog subtype resolves to a real color."""
        for type_key, entries in PATTERN_SUBTYPES.items():
            for entry in entries:
                assert resolve_color(type_key, entry["key"], DEFAULT_COLOR_SCHEME) != FALLBACK_COLOR

    def test_unknown_type_lists_nothing(self):
        assert list_pattern_subtypes("observability") == []

    def test_listing_returns_copies(self):
        entries = list_pattern_subtypes("cicd")
        entries[0]["label"] = "Changed"

        assert PATTERN_SUBTYPES["cicd"][0]["label"] == "Testing"
