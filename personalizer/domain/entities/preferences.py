"""
Aggregated preference profiles.

All profiles are recomputed from the interaction log on each aggregation
call, except ``FeedbackProfile``, which mirrors the preference document that
feedback updates in place. ``ComprehensivePreferences.empty()`` is the zero
value returned when there is no history or the store cannot be read.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


OCCASION_BUCKETS = ("office", "casual", "party", "ethnic")
SEASONS = ("summer", "winter", "monsoon")

# Accumulated feedback weight at which a color or style counts as a strong preference.
STRONG_PREFERENCE_WEIGHT = 2.0


@dataclass
class ColorPreference:
    """A color with its signed weight and how often it was seen."""

    name: str
    weight: float
    frequency: int = 0
    recency_weight: float = 0.0
    hex: Optional[str] = None


@dataclass
class ColorPreferences:
    favorite_colors: List[ColorPreference] = field(default_factory=list)
    disliked_colors: List[ColorPreference] = field(default_factory=list)
    proven_combinations: List[List[str]] = field(default_factory=list)
    intensity_preference: str = "balanced"
    temperature_preference: str = "neutral"
    confidence: int = 0

    def total_favorite_weight(self) -> float:
        return sum(c.weight for c in self.favorite_colors)


@dataclass
class StylePreference:
    """A style token with its weight and share of the total style weight."""

    name: str
    weight: float
    frequency: int = 0
    consistency: int = 0


@dataclass
class OccasionStyleMap:
    office: List[StylePreference] = field(default_factory=list)
    casual: List[StylePreference] = field(default_factory=list)
    party: List[StylePreference] = field(default_factory=list)
    ethnic: List[StylePreference] = field(default_factory=list)

    def for_bucket(self, bucket: str) -> List[StylePreference]:
        """Return the style preferences of an occasion bucket."""
        if bucket not in OCCASION_BUCKETS:
            return []
        return getattr(self, bucket)


@dataclass
class StylePreferences:
    top_styles: List[StylePreference] = field(default_factory=list)
    fit_preferences: List[str] = field(default_factory=list)
    pattern_preferences: List[str] = field(default_factory=list)
    occasion_styles: OccasionStyleMap = field(default_factory=OccasionStyleMap)
    style_consistency: int = 0
    confidence: int = 0


@dataclass
class SeasonalPreference:
    colors: List[str] = field(default_factory=list)
    fabrics: List[str] = field(default_factory=list)
    styles: List[str] = field(default_factory=list)


@dataclass
class SeasonalPreferences:
    summer: SeasonalPreference = field(default_factory=SeasonalPreference)
    winter: SeasonalPreference = field(default_factory=SeasonalPreference)
    monsoon: SeasonalPreference = field(default_factory=SeasonalPreference)
    seasonal_shifts: List[str] = field(default_factory=list)
    confidence: int = 0

    def for_season(self, season: str) -> SeasonalPreference:
        if season not in SEASONS:
            return SeasonalPreference()
        return getattr(self, season)


@dataclass
class PriceRange:
    min: float
    max: float


@dataclass
class PlatformAffinity:
    name: str
    percentage: int


@dataclass
class ShoppingBehavior:
    price_range_comfort: PriceRange = field(default_factory=lambda: PriceRange(500.0, 2500.0))
    average_price: float = 1500.0
    preferred_platforms: List[PlatformAffinity] = field(default_factory=list)
    confidence: int = 0


@dataclass
class OccasionFeedback:
    preferred_colors: List[str] = field(default_factory=list)
    preferred_items: List[str] = field(default_factory=list)


@dataclass
class FeedbackProfile:
    """
    Incremental preference document maintained by feedback.

    Likes, wears, ignores and shopping clicks update this document as they
    happen, so it reflects the latest action before the interaction log is
    aggregated again.
    """

    color_weights: Dict[str, float] = field(default_factory=dict)
    style_weights: Dict[str, float] = field(default_factory=dict)
    proven_combinations: List[List[str]] = field(default_factory=list)
    occasion_preferences: Dict[str, OccasionFeedback] = field(default_factory=dict)
    seasonal_colors: Dict[str, List[str]] = field(default_factory=dict)
    shopping_clicks: Dict[str, int] = field(default_factory=dict)
    price_range: Optional[PriceRange] = None
    total_likes: int = 0
    total_selections: int = 0

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "FeedbackProfile":
        price_range = document.get("price_range")
        return cls(
            color_weights=dict(document.get("color_weights") or {}),
            style_weights=dict(document.get("style_weights") or {}),
            proven_combinations=[list(c) for c in document.get("proven_combinations") or []],
            occasion_preferences={
                occasion: OccasionFeedback(
                    preferred_colors=list(prefs.get("preferred_colors") or []),
                    preferred_items=list(prefs.get("preferred_items") or []),
                )
                for occasion, prefs in (document.get("occasion_preferences") or {}).items()
            },
            seasonal_colors={
                season: list(colors) for season, colors in (document.get("seasonal_preferences") or {}).items()
            },
            shopping_clicks={
                platform: int(clicks.get("count") or 0)
                for platform, clicks in (document.get("shopping_clicks") or {}).items()
            },
            price_range=PriceRange(float(price_range["min"]), float(price_range["max"])) if price_range else None,
            total_likes=int(document.get("total_likes") or 0),
            total_selections=int(document.get("total_selections") or 0),
        )

    def strong_colors(self, threshold: float = STRONG_PREFERENCE_WEIGHT) -> List[str]:
        """Colors whose accumulated weight reaches the threshold, strongest first."""
        return _strong(self.color_weights, threshold)

    def strong_styles(self, threshold: float = STRONG_PREFERENCE_WEIGHT) -> List[str]:
        return _strong(self.style_weights, threshold)

    def avoided_colors(self) -> List[str]:
        """Colors pushed below zero by ignored sessions, most negative first."""
        negative = sorted((w, c) for c, w in self.color_weights.items() if w < 0)
        return [c for _, c in negative]

    def occasion_colors(self, occasion: Optional[str]) -> List[str]:
        if not occasion:
            return []
        current = self.occasion_preferences.get(occasion.strip().lower())
        return list(current.preferred_colors) if current else []


def _strong(weights: Dict[str, float], threshold: float) -> List[str]:
    ranked = sorted(weights.items(), key=lambda item: item[1], reverse=True)
    return [name for name, weight in ranked if weight >= threshold]


@dataclass
class ComprehensivePreferences:
    """
    The aggregate root of a user's learned preferences.

    ``overall_confidence`` is one of the discrete bands {20, 50, 75, 95}
    for users with history, or 0 for the empty structure.
    """

    colors: ColorPreferences = field(default_factory=ColorPreferences)
    styles: StylePreferences = field(default_factory=StylePreferences)
    seasonal: SeasonalPreferences = field(default_factory=SeasonalPreferences)
    shopping: ShoppingBehavior = field(default_factory=ShoppingBehavior)
    overall_confidence: int = 0
    total_interactions: int = 0
    last_updated: Optional[datetime] = None
    feedback: FeedbackProfile = field(default_factory=FeedbackProfile)

    @classmethod
    def empty(
        cls,
        price_min: float = 500.0,
        price_max: float = 2500.0,
        average_price: float = 1500.0,
    ) -> "ComprehensivePreferences":
        """Zero-value profile used for new users and degraded reads."""
        return cls(
            shopping=ShoppingBehavior(
                price_range_comfort=PriceRange(price_min, price_max),
                average_price=average_price,
            ),
        )

    def is_empty(self) -> bool:
        return self.total_interactions == 0 and self.overall_confidence == 0

    def favorite_names(self) -> List[str]:
        return [c.name for c in self.colors.favorite_colors]

    def top_style_names(self) -> List[str]:
        return [s.name for s in self.styles.top_styles]

    def summary(self) -> Dict[str, object]:
        """Compact view for logging."""
        return {
            "favorites": self.favorite_names(),
            "dislikes": [c.name for c in self.colors.disliked_colors],
            "top_styles": self.top_style_names(),
            "confidence": self.overall_confidence,
            "interactions": self.total_interactions,
            "strong_colors": self.feedback.strong_colors(),
        }
