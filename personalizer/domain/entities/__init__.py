# Domain Entities Package
"""
Core business entities as dataclasses and validated records.
"""

from .blocklist import Blocklists, BlocklistItem, FilterResult, TemporaryBlockItem
from .exploration import AntiRepetitionCache, CacheEntry, ExplorationMetrics, PatternLockStatus
from .feedback import (
    FeedbackEvent,
    IgnoreSessionFeedback,
    LikeFeedback,
    ShoppingClickFeedback,
    WearFeedback,
)
from .interaction import (
    IgnoredSessionInteraction,
    Interaction,
    InteractionKind,
    LikedInteraction,
    OutfitSnapshot,
    ShoppingClickInteraction,
    SIGNAL_WEIGHTS,
    WornInteraction,
    parse_interaction,
)
from .match import MatchBreakdown, MatchCategory, OutfitMatch
from .outfit import OutfitCandidate
from .preferences import (
    ColorPreference,
    ColorPreferences,
    ComprehensivePreferences,
    FeedbackProfile,
    OccasionFeedback,
    OccasionStyleMap,
    PlatformAffinity,
    PriceRange,
    SeasonalPreference,
    SeasonalPreferences,
    ShoppingBehavior,
    StylePreference,
    StylePreferences,
)

__all__ = [
    "AntiRepetitionCache",
    "BlocklistItem",
    "Blocklists",
    "CacheEntry",
    "ColorPreference",
    "ColorPreferences",
    "ComprehensivePreferences",
    "FeedbackProfile",
    "OccasionFeedback",
    "ExplorationMetrics",
    "FeedbackEvent",
    "FilterResult",
    "IgnoreSessionFeedback",
    "IgnoredSessionInteraction",
    "Interaction",
    "InteractionKind",
    "LikeFeedback",
    "LikedInteraction",
    "MatchBreakdown",
    "MatchCategory",
    "OccasionStyleMap",
    "OutfitCandidate",
    "OutfitMatch",
    "OutfitSnapshot",
    "PatternLockStatus",
    "PlatformAffinity",
    "PriceRange",
    "SIGNAL_WEIGHTS",
    "SeasonalPreference",
    "SeasonalPreferences",
    "ShoppingBehavior",
    "ShoppingClickFeedback",
    "ShoppingClickInteraction",
    "StylePreference",
    "StylePreferences",
    "TemporaryBlockItem",
    "WearFeedback",
    "WornInteraction",
    "parse_interaction",
]
