"""Token canonicalization, keyword extraction and color math."""

from .colors import intensity_preference, saturation, temperature, temperature_preference
from .tokens import (
    candidate_colors,
    candidate_styles,
    canonical_color,
    canonical_style,
    color_hex,
    color_key,
    colors_match,
    combination_key,
    extract_item_colors,
    occasion_bucket,
    season_for,
    styles_match,
)

__all__ = [
    "candidate_colors",
    "candidate_styles",
    "canonical_color",
    "canonical_style",
    "color_hex",
    "color_key",
    "colors_match",
    "combination_key",
    "extract_item_colors",
    "intensity_preference",
    "occasion_bucket",
    "saturation",
    "season_for",
    "styles_match",
    "temperature",
    "temperature_preference",
]
