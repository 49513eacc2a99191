"""
Scored candidate value objects produced during one ranking cycle.
"""

from dataclasses import dataclass
from enum import Enum

from .outfit import OutfitCandidate


class MatchCategory(Enum):
    """Display category of a scored outfit."""

    PERFECT = "perfect"
    GREAT = "great"
    EXPLORING = "exploring"


@dataclass(frozen=True)
class MatchBreakdown:
    """Sub-scores in [0, 100] that feed the weighted match score."""

    color: int
    style: int
    occasion: int
    seasonal: int

    def dominant(self) -> str:
        """Name of the highest sub-score, first wins on ties."""
        scores = {
            "color": self.color,
            "style": self.style,
            "occasion": self.occasion,
            "seasonal": self.seasonal,
        }
        return max(scores, key=scores.get)


@dataclass
class OutfitMatch:
    """
    A candidate with its 0-100 match score.

    Never persisted; exists only while one recommendation cycle runs.
    """

    outfit: OutfitCandidate
    match_score: int
    breakdown: MatchBreakdown
    category: MatchCategory
    explanation: str = ""

    @property
    def outfit_id(self) -> str:
        return self.outfit.id
