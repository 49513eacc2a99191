"""
Small numeric helpers shared by scoring components.
"""

import math


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer with halves rounded up.

    Unlike the built-in round(), round_half_up(2.5) == 3.
    """
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))
