"""
Color math used to characterize a user's favorite palette.
"""

import re
from typing import Optional, Sequence, Tuple

import numpy as np

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})$")


def hex_to_rgb(hex_value: str) -> Optional[Tuple[int, int, int]]:
    """Parse #RRGGBB into an (r, g, b) tuple; None when malformed."""
    match = _HEX_RE.match(hex_value or "")
    if not match:
        return None
    return tuple(int(part, 16) for part in match.groups())


def saturation(hex_value: str) -> float:
    """HSV saturation in [0, 1]; 0.5 for unparseable input."""
    rgb = hex_to_rgb(hex_value)
    if rgb is None:
        return 0.5
    high, low = max(rgb), min(rgb)
    if high == 0:
        return 0.0
    return (high - low) / high


def temperature(hex_value: str) -> float:
    """(R - B) / 255: positive for warm tones, negative for cool ones."""
    rgb = hex_to_rgb(hex_value)
    if rgb is None:
        return 0.0
    return (rgb[0] - rgb[2]) / 255


def intensity_preference(hex_values: Sequence[str]) -> str:
    """Classify a palette as vibrant, muted or balanced by mean saturation."""
    if not hex_values:
        return "balanced"
    mean = float(np.mean([saturation(h) for h in hex_values]))
    if mean > 0.7:
        return "vibrant"
    if mean < 0.4:
        return "muted"
    return "balanced"


def temperature_preference(hex_values: Sequence[str]) -> str:
    """Classify a palette as warm, cool or neutral by mean temperature."""
    if not hex_values:
        return "neutral"
    mean = float(np.mean([temperature(h) for h in hex_values]))
    if mean > 0.3:
        return "warm"
    if mean < -0.3:
        return "cool"
    return "neutral"
