"""
Feedback events accepted by the unified feedback entry point.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

from .outfit import OutfitCandidate


@dataclass
class LikeFeedback:
    outfit: OutfitCandidate
    occasion: Optional[str] = None
    exploratory: bool = False


@dataclass
class WearFeedback:
    outfit: OutfitCandidate
    occasion: Optional[str] = None
    exploratory: bool = False


@dataclass
class IgnoreSessionFeedback:
    """Every outfit of one presented set was ignored."""

    outfits: List[OutfitCandidate] = field(default_factory=list)


@dataclass
class ShoppingClickFeedback:
    platform: str
    item: str = ""
    estimated_price: Optional[float] = None


FeedbackEvent = Union[LikeFeedback, WearFeedback, IgnoreSessionFeedback, ShoppingClickFeedback]
