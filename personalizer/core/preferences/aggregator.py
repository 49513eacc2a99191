"""
Preference aggregation from raw interaction history.

Builds a ComprehensivePreferences profile from four independent
sub-analyses (colors, styles, seasonal, shopping) that run concurrently,
alongside a read of the incrementally updated preference document.
Each signal is weighted by its kind (worn > liked > ignored) and by a
step-function recency decay.

Example:
    >>> aggregator = PreferenceAggregator(StoreAdapter(store))
    >>> preferences = await aggregator.aggregate("user-1")
    >>> preferences.overall_confidence
    95
"""

from __future__ import annotations

import asyncio
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from personalizer.core.normalization.colors import intensity_preference, temperature_preference
from personalizer.core.normalization.tokens import (
    color_hex,
    color_key,
    extract_fabric_keywords,
    extract_fit_keywords,
    extract_pattern_keywords,
    occasion_bucket,
    outfit_colors,
    outfit_styles,
    season_at,
)
from personalizer.domain.entities.interaction import (
    SIGNAL_WEIGHTS,
    InteractionKind,
    OutfitSnapshot,
)
from personalizer.domain.entities.preferences import (
    OCCASION_BUCKETS,
    SEASONS,
    ColorPreference,
    ColorPreferences,
    ComprehensivePreferences,
    FeedbackProfile,
    OccasionStyleMap,
    PlatformAffinity,
    PriceRange,
    SeasonalPreference,
    SeasonalPreferences,
    ShoppingBehavior,
    StylePreference,
    StylePreferences,
)
from personalizer.domain.interfaces.store_interface import NotFound, Ok, StoreFailure, StoreResult
from personalizer.infrastructure.database.store_adapter import StoreAdapter
from personalizer.utils.clock import Clock, utc_now
from personalizer.utils.config import AggregationConfig, get_config
from personalizer.utils.logger import get_logger, log_execution_time
from personalizer.utils.numeric import round_half_up

logger = get_logger(__name__)


def recency_weight(timestamp: datetime, now: datetime) -> float:
    """
    Decay factor for a signal of the given age.

    Returns:
        1.0 up to 30 days, 0.75 up to 90, 0.5 up to 180, else 0.25.
    """
    age_days = (now - timestamp).total_seconds() / 86400
    if age_days <= 30:
        return 1.0
    if age_days <= 90:
        return 0.75
    if age_days <= 180:
        return 0.5
    return 0.25


def calculate_confidence(interaction_count: int) -> int:
    """Discrete confidence band for a number of interactions."""
    if interaction_count < 10:
        return 20
    if interaction_count < 25:
        return 50
    if interaction_count < 50:
        return 75
    return 95


def snapshot_color_keys(snapshot: OutfitSnapshot) -> List[str]:
    """Canonical color keys of an outfit, deduplicated in palette order."""
    colors = outfit_colors(snapshot.colors, snapshot.items)
    return list(dict.fromkeys(color_key(c) for c in colors))


def _top(weights: Dict[str, float], n: int) -> List[str]:
    return [name for name, _ in sorted(weights.items(), key=lambda kv: kv[1], reverse=True)[:n]]


@dataclass
class _ColorTally:
    name: str
    hex: Optional[str]
    weight: float = 0.0
    frequency: int = 0
    recency_sum: float = 0.0
    ignored: int = 0
    ignored_recency_sum: float = 0.0

    def mean_recency(self) -> float:
        # Colors seen only in ignored sessions take their recency from those sessions.
        if self.frequency:
            return self.recency_sum / self.frequency
        if self.ignored:
            return self.ignored_recency_sum / self.ignored
        return 0.0


class PreferenceAggregator:
    """
    Computes ComprehensivePreferences for a user.

    Any read failure degrades the whole profile to the empty structure
    (confidence 0) instead of raising, so recommendation can proceed
    without personalization.

    Attributes:
        adapter: Store adapter used for all reads.
        config: Aggregation limits and defaults.
    """

    def __init__(
        self,
        adapter: StoreAdapter,
        config: Optional[AggregationConfig] = None,
        clock: Optional[Clock] = None,
    ):
        self.adapter = adapter
        self.config = config or get_config().aggregation
        self.clock = clock or utc_now

    def empty(self) -> ComprehensivePreferences:
        return ComprehensivePreferences.empty(
            price_min=self.config.default_price_min,
            price_max=self.config.default_price_max,
            average_price=self.config.default_average_price,
        )

    async def aggregate(self, user_id: str) -> ComprehensivePreferences:
        """
        Build the user's preference profile from recent history.

        Args:
            user_id: User whose interactions are analyzed.

        Returns:
            The aggregated profile, or the empty structure when there is
            no history or any read failed.
        """
        now = self.clock()
        with log_execution_time(logger, f"preference aggregation for {user_id}"):
            results = await asyncio.gather(
                self._analyze_colors(user_id, now),
                self._analyze_styles(user_id, now),
                self._analyze_seasonal(user_id),
                self._analyze_shopping(user_id),
                self._read_feedback_profile(user_id),
            )

        failures = [r for r in results if isinstance(r, StoreFailure)]
        if failures:
            logger.warning(
                f"Preference aggregation degraded for {user_id}: {failures[0].error}"
            )
            return self.empty()

        (colors, total), styles, seasonal, shopping, feedback = (r.value for r in results)

        if total == 0:
            logger.info(f"No interaction history for {user_id}, using empty preferences")
            return self.empty()

        preferences = ComprehensivePreferences(
            colors=colors,
            styles=styles,
            seasonal=seasonal,
            shopping=shopping,
            overall_confidence=calculate_confidence(total),
            total_interactions=total,
            last_updated=now,
            feedback=feedback,
        )
        logger.debug(f"Aggregated preferences for {user_id}: {preferences.summary()}")
        return preferences

    async def _read(self, user_id: str, kind: InteractionKind, limit: int) -> StoreResult:
        result = await self.adapter.read_interactions(user_id, kind, limit)
        if isinstance(result, NotFound):
            return Ok([])
        return result

    async def _read_feedback_profile(self, user_id: str) -> StoreResult:
        result = await self.adapter.read_preferences(user_id)
        if isinstance(result, NotFound):
            return Ok(FeedbackProfile())
        if isinstance(result, StoreFailure):
            return result
        return Ok(FeedbackProfile.from_document(result.value))

    async def _read_many(
        self, user_id: str, requests: Sequence[Tuple[InteractionKind, int]]
    ) -> StoreResult:
        records = []
        for kind, limit in requests:
            result = await self._read(user_id, kind, limit)
            if isinstance(result, StoreFailure):
                return result
            records.append(result.value)
        return Ok(records)

    # ============================================
    # Colors
    # ============================================

    async def _analyze_colors(self, user_id: str, now: datetime) -> StoreResult:
        result = await self._read_many(
            user_id,
            [
                (InteractionKind.LIKED, self.config.liked_limit),
                (InteractionKind.WORN, self.config.worn_limit),
                (InteractionKind.IGNORED, self.config.ignored_limit),
            ],
        )
        if isinstance(result, StoreFailure):
            return result
        liked, worn, ignored = result.value

        tallies: Dict[str, _ColorTally] = {}

        def tally(raw: str) -> _ColorTally:
            key = color_key(raw)
            if key not in tallies:
                tallies[key] = _ColorTally(name=key, hex=color_hex(raw))
            return tallies[key]

        for kind, records in ((InteractionKind.LIKED, liked), (InteractionKind.WORN, worn)):
            for record in records:
                weight = recency_weight(record.timestamp, now)
                colors = outfit_colors(record.outfit.colors, record.outfit.items)
                for raw in dict.fromkeys(colors):
                    entry = tally(raw)
                    entry.weight += SIGNAL_WEIGHTS[kind] * weight
                    entry.frequency += 1
                    entry.recency_sum += weight

        for session in ignored:
            weight = recency_weight(session.timestamp, now)
            for outfit in session.outfits:
                for raw in dict.fromkeys(outfit_colors(outfit.colors, outfit.items)):
                    entry = tally(raw)
                    entry.weight += SIGNAL_WEIGHTS[InteractionKind.IGNORED] * weight
                    entry.ignored += 1
                    entry.ignored_recency_sum += weight

        ranked = sorted(
            (
                ColorPreference(
                    name=t.name,
                    hex=t.hex,
                    weight=t.weight,
                    frequency=t.frequency,
                    recency_weight=t.mean_recency(),
                )
                for t in tallies.values()
            ),
            key=lambda c: c.weight,
            reverse=True,
        )
        favorites = [c for c in ranked if c.weight > 0][: self.config.favorite_count]
        dislikes = [c for c in ranked if c.weight < 0][-self.config.disliked_count:][::-1]
        palette = [c.hex for c in favorites if c.hex]

        total = len(liked) + len(worn) + len(ignored)
        colors = ColorPreferences(
            favorite_colors=favorites,
            disliked_colors=dislikes,
            proven_combinations=self._proven_combinations(liked, worn),
            intensity_preference=intensity_preference(palette),
            temperature_preference=temperature_preference(palette),
            confidence=calculate_confidence(total),
        )
        return Ok((colors, total))

    def _proven_combinations(self, liked, worn) -> List[List[str]]:
        """Top-3 color combinations seen repeatedly; worn outfits count twice."""
        counts: Counter = Counter()
        for records, repeat in ((liked, 1), (worn, 2)):
            for record in records:
                keys = snapshot_color_keys(record.outfit)[:3]
                if len(keys) >= 2:
                    counts["|".join(sorted(keys))] += repeat

        proven = [
            (combo, count)
            for combo, count in counts.most_common()
            if count >= self.config.combination_min_count
        ]
        return [combo.split("|") for combo, _ in proven[: self.config.combination_limit]]

    # ============================================
    # Styles
    # ============================================

    async def _analyze_styles(self, user_id: str, now: datetime) -> StoreResult:
        result = await self._read_many(
            user_id,
            [
                (InteractionKind.LIKED, self.config.liked_limit),
                (InteractionKind.WORN, self.config.worn_limit),
            ],
        )
        if isinstance(result, StoreFailure):
            return result
        liked, worn = result.value

        style_weights: Dict[str, float] = defaultdict(float)
        style_counts: Counter = Counter()
        fit_weights: Dict[str, float] = defaultdict(float)
        pattern_weights: Dict[str, float] = defaultdict(float)
        occasion_weights: Dict[str, Dict[str, float]] = {b: defaultdict(float) for b in OCCASION_BUCKETS}
        occasion_counts: Dict[str, Counter] = {b: Counter() for b in OCCASION_BUCKETS}

        for kind, records in ((InteractionKind.LIKED, liked), (InteractionKind.WORN, worn)):
            for record in records:
                weight = SIGNAL_WEIGHTS[kind] * recency_weight(record.timestamp, now)
                text = record.outfit.description.lower()
                styles = outfit_styles(record.outfit.style, text)
                bucket = occasion_bucket(record.outfit.occasion or "casual")

                for style in styles:
                    style_weights[style] += weight
                    style_counts[style] += 1
                    occasion_weights[bucket][style] += weight
                    occasion_counts[bucket][style] += 1
                for fit in extract_fit_keywords(text):
                    fit_weights[fit] += weight
                for pattern in extract_pattern_keywords(text):
                    pattern_weights[pattern] += weight

        total_weight = sum(style_weights.values())
        top_styles = [
            StylePreference(
                name=name,
                weight=style_weights[name],
                frequency=style_counts[name],
                consistency=round_half_up(style_weights[name] / max(total_weight, 1) * 100),
            )
            for name in _top(style_weights, self.config.top_style_count)
        ]

        occasion_styles = OccasionStyleMap(
            **{
                bucket: [
                    StylePreference(name=name, weight=occasion_weights[bucket][name],
                                    frequency=occasion_counts[bucket][name])
                    for name in _top(occasion_weights[bucket], 3)
                ]
                for bucket in OCCASION_BUCKETS
            }
        )

        ranked_weights = sorted(style_weights.values(), reverse=True)
        consistency = (
            round_half_up(sum(ranked_weights[:3]) / total_weight * 100) if total_weight > 0 else 0
        )

        return Ok(
            StylePreferences(
                top_styles=top_styles,
                fit_preferences=_top(fit_weights, 3),
                pattern_preferences=_top(pattern_weights, 3),
                occasion_styles=occasion_styles,
                style_consistency=consistency,
                confidence=calculate_confidence(len(liked) + len(worn)),
            )
        )

    # ============================================
    # Seasons
    # ============================================

    async def _analyze_seasonal(self, user_id: str) -> StoreResult:
        result = await self._read_many(
            user_id,
            [
                (InteractionKind.LIKED, self.config.seasonal_limit),
                (InteractionKind.WORN, self.config.seasonal_limit),
            ],
        )
        if isinstance(result, StoreFailure):
            return result
        liked, worn = result.value

        buckets = {
            season: {"colors": defaultdict(float), "fabrics": defaultdict(float), "styles": defaultdict(float)}
            for season in SEASONS
        }

        for kind, records in ((InteractionKind.LIKED, liked), (InteractionKind.WORN, worn)):
            weight = SIGNAL_WEIGHTS[kind]
            for record in records:
                # Bucketed by when the user acted, not by when we aggregate.
                data = buckets[season_at(record.timestamp)]
                text = record.outfit.description.lower()
                for key in snapshot_color_keys(record.outfit):
                    data["colors"][key] += weight
                for fabric in extract_fabric_keywords(text):
                    data["fabrics"][fabric] += weight
                for style in outfit_styles(record.outfit.style, text):
                    data["styles"][style] += weight

        built = {
            season: SeasonalPreference(
                colors=_top(data["colors"], 5),
                fabrics=_top(data["fabrics"], 3),
                styles=_top(data["styles"], 3),
            )
            for season, data in buckets.items()
        }

        return Ok(
            SeasonalPreferences(
                summer=built["summer"],
                winter=built["winter"],
                monsoon=built["monsoon"],
                seasonal_shifts=self._seasonal_shifts(built["summer"], built["winter"]),
                confidence=calculate_confidence(len(liked) + len(worn)),
            )
        )

    @staticmethod
    def _seasonal_shifts(summer: SeasonalPreference, winter: SeasonalPreference) -> List[str]:
        shifts = []
        only_summer = [c for c in summer.colors if c not in winter.colors]
        only_winter = [c for c in winter.colors if c not in summer.colors]
        if only_summer and only_winter:
            shifts.append("Color preferences shift between summer and winter seasons")
        return shifts

    # ============================================
    # Shopping
    # ============================================

    async def _analyze_shopping(self, user_id: str) -> StoreResult:
        result = await self._read(user_id, InteractionKind.SHOPPING_CLICK, self.config.shopping_limit)
        if isinstance(result, StoreFailure):
            return result
        clicks = result.value

        platforms = Counter(click.platform for click in clicks)
        total = sum(platforms.values())
        preferred = sorted(
            (
                PlatformAffinity(name=name, percentage=round_half_up(count / max(total, 1) * 100))
                for name, count in platforms.items()
            ),
            key=lambda p: p.percentage,
            reverse=True,
        )

        prices = [click.estimated_price for click in clicks if click.estimated_price]
        if prices:
            price_range = PriceRange(min(prices) * 0.7, max(prices) * 1.3)
            average_price = float(np.mean(prices))
        else:
            price_range = PriceRange(self.config.default_price_min, self.config.default_price_max)
            average_price = self.config.default_average_price

        return Ok(
            ShoppingBehavior(
                price_range_comfort=price_range,
                average_price=average_price,
                preferred_platforms=preferred,
                confidence=calculate_confidence(len(clicks)),
            )
        )
