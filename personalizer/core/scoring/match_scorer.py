"""
Match scorer for outfit candidates.

Scores one candidate against a user's aggregated preferences and
blocklists. The score is a weighted sum of four sub-scores followed by
additive blocklist penalties:

    score = 0.35 x color + 0.30 x style + 0.20 x occasion + 0.15 x seasonal
            - 40 per hard-blocked feature - 20 per soft-blocked feature
            - 10 per overlapping recent combination

Example:
    >>> scorer = MatchScorer()
    >>> match = scorer.score(candidate, preferences, blocklists)
    >>> match.match_score, match.category
    (87, <MatchCategory.GREAT: 'great'>)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

import numpy as np

from personalizer.core.blocklist.manager import is_hard_blocked, soft_block_weight
from personalizer.core.normalization.tokens import (
    candidate_colors,
    candidate_styles,
    colors_match,
    combination_key,
    occasion_bucket,
    season_at,
    styles_match,
)
from personalizer.domain.entities.blocklist import Blocklists
from personalizer.domain.entities.match import MatchBreakdown, MatchCategory, OutfitMatch
from personalizer.domain.entities.outfit import OutfitCandidate
from personalizer.domain.entities.preferences import ComprehensivePreferences
from personalizer.utils.clock import Clock, utc_now
from personalizer.utils.config import ScoringConfig, get_config
from personalizer.utils.logger import get_logger
from personalizer.utils.numeric import clamp, round_half_up

logger = get_logger(__name__)


@dataclass
class MatchWeights:
    """
    Weights for combining the four sub-scores.

    Attributes:
        color: Weight of the color sub-score.
        style: Weight of the style sub-score.
        occasion: Weight of the occasion sub-score.
        seasonal: Weight of the seasonal sub-score.

    Example:
        >>> weights = MatchWeights(color=0.4, style=0.3, occasion=0.2, seasonal=0.1)
    """

    color: float = 0.35
    style: float = 0.30
    occasion: float = 0.20
    seasonal: float = 0.15

    def __post_init__(self) -> None:
        """Validate that weights are valid."""
        for name, value in self.to_dict().items():
            if not (0 <= value <= 1):
                raise ValueError(f"{name} weight must be in [0, 1], got {value}")
        total = self.color + self.style + self.occasion + self.seasonal
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Weights must sum to 1.0, got {total:.4f}")

    @classmethod
    def from_config(cls, config: Optional[ScoringConfig] = None) -> "MatchWeights":
        weights = (config or get_config().scoring).weights
        return cls(
            color=weights.color,
            style=weights.style,
            occasion=weights.occasion,
            seasonal=weights.seasonal,
        )

    def to_dict(self) -> dict:
        return {
            "color": self.color,
            "style": self.style,
            "occasion": self.occasion,
            "seasonal": self.seasonal,
        }


class MatchScorer:
    """
    Deterministic scorer of one candidate.

    The only input besides the candidate, preferences and blocklists is the
    current season, taken from the injected clock or an explicit ``now``.

    Attributes:
        config: Scoring thresholds, neutral values and penalties.
        weights: Sub-score weights.
    """

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        clock: Optional[Clock] = None,
        weights: Optional[MatchWeights] = None,
    ):
        self.config = config or get_config().scoring
        self.clock = clock or utc_now
        self.weights = weights or MatchWeights.from_config(self.config)
        logger.debug(f"MatchScorer initialized with weights {self.weights.to_dict()}")

    # ============================================
    # Sub-scores
    # ============================================

    def color_score(self, colors: List[str], preferences: ComprehensivePreferences) -> int:
        if not colors:
            return self.config.neutral_score

        favorites = preferences.colors.favorite_colors
        dislikes = preferences.colors.disliked_colors
        scores = []
        for color in colors:
            favorite = next((f for f in favorites if colors_match(color, f.name)), None)
            if favorite is not None:
                scores.append(min(favorite.weight * 10, 100))
            elif any(colors_match(color, d.name) for d in dislikes):
                scores.append(self.config.disliked_color_score)
            else:
                scores.append(self.config.neutral_score)
        return round_half_up(float(np.mean(scores)))

    def style_score(self, style: str, preferences: ComprehensivePreferences) -> int:
        if not style:
            return self.config.neutral_score

        for preferred in preferences.styles.top_styles:
            if styles_match(style, preferred.name):
                return min(100, round_half_up(preferred.weight * 10))
        lowered = style.lower()
        if any(keyword in lowered for keyword in self.config.common_styles):
            return self.config.common_style_score
        return self.config.neutral_score

    def occasion_score(self, occasion: str, preferences: ComprehensivePreferences) -> int:
        bucket_styles = preferences.styles.occasion_styles.for_bucket(occasion_bucket(occasion))
        if not bucket_styles:
            return self.config.occasion_default_score
        return round_half_up(float(np.mean([min(s.weight * 10, 100) for s in bucket_styles])))

    def seasonal_score(
        self,
        colors: List[str],
        style: str,
        preferences: ComprehensivePreferences,
        now: datetime,
    ) -> int:
        seasonal = preferences.seasonal.for_season(season_at(now))

        if colors:
            hits = sum(1 for c in colors if any(colors_match(c, s) for s in seasonal.colors))
            color_part = hits / len(colors) * 100
        else:
            color_part = self.config.neutral_score

        if style:
            matched = any(styles_match(style, s) for s in seasonal.styles)
            style_part = self.config.seasonal_style_hit if matched else self.config.seasonal_style_miss
        else:
            style_part = self.config.neutral_score

        return round_half_up((color_part + style_part) / 2)

    # ============================================
    # Penalties
    # ============================================

    def penalty(
        self,
        colors: List[str],
        styles: List[str],
        blocklists: Blocklists,
        now: datetime,
    ) -> Tuple[int, int, int]:
        """
        Count blocklist hits for a candidate.

        Returns:
            (hard hits, soft hits, temporary combination overlaps).
        """
        hard = soft = 0
        for dimension, values in (("colors", colors), ("styles", styles)):
            for value in values:
                if is_hard_blocked(blocklists, dimension, value):
                    hard += 1
                elif soft_block_weight(blocklists, dimension, value) < 1.0:
                    soft += 1

        key = combination_key(colors)
        temporary = 0
        if key:
            for item in blocklists.active_temporary(now):
                combo = item.color_combination
                if combo and (combo in key or key in combo):
                    temporary += 1
        return hard, soft, temporary

    # ============================================
    # Scoring
    # ============================================

    def categorize(self, score: int) -> MatchCategory:
        if score >= self.config.perfect_threshold:
            return MatchCategory.PERFECT
        if score >= self.config.great_threshold:
            return MatchCategory.GREAT
        return MatchCategory.EXPLORING

    def score(
        self,
        candidate: OutfitCandidate,
        preferences: ComprehensivePreferences,
        blocklists: Blocklists,
        now: Optional[datetime] = None,
    ) -> OutfitMatch:
        """
        Score a candidate against a user's preferences and blocklists.

        Args:
            candidate: Outfit to score. Missing colors or style score neutral.
            preferences: Aggregated preferences, possibly empty.
            blocklists: Current blocklists.
            now: Moment used for the current season and temporary expiry.

        Returns:
            OutfitMatch with the clamped 0-100 score.
        """
        now = now or self.clock()
        colors = candidate_colors(candidate)

        breakdown = MatchBreakdown(
            color=self.color_score(colors, preferences),
            style=self.style_score(candidate.style, preferences),
            occasion=self.occasion_score(candidate.occasion, preferences),
            seasonal=self.seasonal_score(colors, candidate.style, preferences, now),
        )
        weighted = round_half_up(
            self.weights.color * breakdown.color
            + self.weights.style * breakdown.style
            + self.weights.occasion * breakdown.occasion
            + self.weights.seasonal * breakdown.seasonal
        )

        hard, soft, temporary = self.penalty(colors, candidate_styles(candidate), blocklists, now)
        total = clamp(
            weighted
            - hard * self.config.hard_block_penalty
            - soft * self.config.soft_block_penalty
            - temporary * self.config.temporary_block_penalty
        )
        if hard or soft or temporary:
            logger.debug(
                f"Penalized {candidate.id}: {weighted} -> {total} "
                f"(hard={hard}, soft={soft}, temporary={temporary})"
            )

        category = self.categorize(total)
        return OutfitMatch(
            outfit=candidate,
            match_score=total,
            breakdown=breakdown,
            category=category,
            explanation=self.explain(category, breakdown, preferences),
        )

    def score_batch(
        self,
        candidates: List[OutfitCandidate],
        preferences: ComprehensivePreferences,
        blocklists: Blocklists,
        now: Optional[datetime] = None,
    ) -> List[OutfitMatch]:
        now = now or self.clock()
        return [self.score(c, preferences, blocklists, now) for c in candidates]

    @staticmethod
    def explain(
        category: MatchCategory,
        breakdown: MatchBreakdown,
        preferences: ComprehensivePreferences,
    ) -> str:
        """Short rationale for display; has no effect on the score."""
        if category is MatchCategory.EXPLORING:
            return "Something new to explore beyond your usual picks"

        favorites = preferences.favorite_names()
        top_styles = preferences.top_style_names()
        dominant = breakdown.dominant()

        if dominant == "color" and favorites:
            detail = f"features {favorites[0]}, one of your favorite colors"
        elif dominant == "style" and top_styles:
            detail = f"matches your {top_styles[0]} style"
        elif dominant == "occasion":
            detail = "fits how you usually dress for this occasion"
        elif dominant == "seasonal":
            detail = "suits the current season"
        else:
            detail = "lines up with your recent choices"

        prefix = "Perfect match" if category is MatchCategory.PERFECT else "Great match"
        return f"{prefix}: {detail}"
