"""Diversification, anti-repetition and exploration control."""

from .anti_repetition import AntiRepetitionManager, color_overlap, is_repetitive
from .diversifier import Diversifier
from .exploration import ExplorationController

__all__ = [
    "AntiRepetitionManager",
    "Diversifier",
    "ExplorationController",
    "color_overlap",
    "is_repetitive",
]
