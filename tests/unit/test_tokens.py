"""Unit tests for token canonicalization, keyword extraction and seasons."""

import pytest

from personalizer.core.normalization.colors import intensity_preference, temperature_preference
from personalizer.core.normalization.tokens import (
    canonical_color,
    color_hex,
    colors_match,
    combination_key,
    extract_item_colors,
    occasion_bucket,
    outfit_colors,
    outfit_styles,
    season_for,
    styles_match,
)


class TestColorCanonicalization:
    """Test the synonym table and the substring fallback."""

    @pytest.mark.parametrize("token", ["navy", "Navy Blue", "dark navy", "dark navy blue", "midnight blue", "#000080"])
    def test_navy_variants_share_a_key(self, token):
        """Test every navy variant maps to one key."""
        assert canonical_color(token) == "navy"

    @pytest.mark.parametrize(
        "left,right",
        [("navy", "navy blue"), ("navy blue", "dark navy blue"), ("#000080", "dark navy"), ("grey", "gray")],
    )
    def test_known_variants_match_in_both_directions(self, left, right):
        """Test known variants match regardless of argument order."""
        assert colors_match(left, right)
        assert colors_match(right, left)

    def test_distinct_known_colors_do_not_match(self):
        """Known keys compare exactly, so substring overlap is irrelevant."""
        assert not colors_match("navy blue", "blue")
        assert not colors_match("blue", "navy")

    def test_unknown_tokens_fall_back_to_substring(self):
        """Test unknown tokens compare by containment."""
        assert colors_match("dusty rose", "rose")
        assert colors_match("rose", "dusty rose")
        assert not colors_match("dusty rose", "teal")

    @pytest.mark.parametrize("left,right", [("", "navy"), ("navy", ""), (None, "navy"), ("  ", "  ")])
    def test_empty_tokens_never_match(self, left, right):
        assert not colors_match(left, right)

    def test_hex_lookup(self):
        """Test known hex codes map to named colors."""
        assert color_hex("navy blue") == "#000080"
        assert color_hex("#abc") == "#AABBCC"
        assert color_hex("dusty rose") is None


class TestStyleCanonicalization:
    def test_synonyms(self):
        assert styles_match("boho", "Bohemian")
        assert styles_match("retro", "vintage")

    def test_substring_fallback_for_unknown(self):
        assert styles_match("smart casual", "casual")

    def test_empty_never_matches(self):
        assert not styles_match("", "casual")


class TestExtraction:
    """Test color and style extraction from outfit data."""

    def test_longest_phrase_consumed_first(self):
        """Test multi-word color names win over their parts."""
        assert extract_item_colors(["navy blue shirt"]) == ["navy"]

    def test_multiple_items(self):
        assert extract_item_colors(["white linen shirt", "dark navy blue chinos"]) == ["white", "navy"]

    def test_explicit_palette_wins(self):
        """Test an explicit palette is preferred over item names."""
        assert outfit_colors(["red"], ["navy blue shirt"]) == ["red"]

    def test_items_used_without_palette(self):
        """Test item names supply colors when the palette is empty."""
        assert outfit_colors([], ["olive green jacket"]) == ["olive"]

    def test_styles_from_label_and_text(self):
        """Test styles come from the label and description keywords."""
        assert outfit_styles("Boho", "a vintage floral dress") == ["bohemian", "vintage"]

    def test_combination_key_is_order_independent(self):
        """Test palette order does not change the key."""
        assert combination_key(["#FFA500", "#000080"]) == combination_key(["navy blue", "orange"]) == "navy|orange"

    def test_combination_key_of_nothing(self):
        assert combination_key([]) == ""


class TestSeasonsAndOccasions:
    """Test calendar and occasion bucketing."""

    @pytest.mark.parametrize(
        "month,season",
        [(1, "winter"), (3, "winter"), (4, "summer"), (5, "summer"), (6, "monsoon"),
         (9, "monsoon"), (10, "winter"), (12, "winter")],
    )
    def test_season_for_month(self, month, season):
        """Monsoon wins June to September; summer is April and May only."""
        assert season_for(month) == season

    @pytest.mark.parametrize(
        "occasion,bucket",
        [("Office meeting", "office"), ("work", "office"), ("wedding party", "party"),
         ("festive dinner", "ethnic"), ("brunch", "casual"), ("", "casual"), (None, "casual")],
    )
    def test_occasion_bucket(self, occasion, bucket):
        assert occasion_bucket(occasion) == bucket


class TestPaletteCharacter:
    def test_vibrant_warm(self):
        """Test saturated warm palettes classify as vibrant and warm."""
        assert intensity_preference(["#FF0000", "#FFA500"]) == "vibrant"
        assert temperature_preference(["#FF0000", "#FFA500"]) == "warm"

    def test_muted_cool(self):
        """Test desaturated cool palettes classify as muted and cool."""
        assert intensity_preference(["#808080", "#C0C0C0"]) == "muted"
        assert temperature_preference(["#000080", "#0000FF"]) == "cool"

    def test_empty_palette(self):
        assert intensity_preference([]) == "balanced"
        assert temperature_preference([]) == "neutral"
