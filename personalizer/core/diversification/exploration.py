"""
Adaptive exploration controller.

Tracks how exploratory picks perform and nudges the exploration level up
or down in fixed steps. Also detects pattern lock, where a user's
preferences have collapsed onto a few colors and styles.
"""

from __future__ import annotations

from typing import Optional

from personalizer.domain.entities.exploration import ExplorationMetrics, PatternLockStatus
from personalizer.domain.entities.preferences import ComprehensivePreferences
from personalizer.domain.interfaces.store_interface import NotFound, StoreFailure
from personalizer.infrastructure.database.store_adapter import StoreAdapter
from personalizer.utils.clock import Clock, utc_now
from personalizer.utils.config import ExplorationConfig, get_config
from personalizer.utils.exceptions import PreferenceValidationError, StoreError, StoreWriteError
from personalizer.utils.logger import get_logger

logger = get_logger(__name__)

OUTCOMES = ("shown", "liked", "worn")
LOCK_REASON = "Extreme preference concentration detected"


class ExplorationController:
    """
    Bang-bang controller over the adaptive exploration level.

    Attributes:
        adapter: Store adapter for the metrics document.
        config: Level bounds, step and thresholds.
    """

    def __init__(
        self,
        adapter: StoreAdapter,
        config: Optional[ExplorationConfig] = None,
        clock: Optional[Clock] = None,
    ):
        self.adapter = adapter
        self.config = config or get_config().exploration
        self.clock = clock or utc_now

    def _default_metrics(self, user_id: str) -> ExplorationMetrics:
        return ExplorationMetrics(
            user_id=user_id,
            adaptive_level=self.config.default_level,
            last_adjusted=self.clock(),
        )

    async def get_metrics(self, user_id: str) -> ExplorationMetrics:
        """Current metrics, created with the default level on first access."""
        result = await self.adapter.read_exploration_metrics(user_id)
        if isinstance(result, StoreFailure):
            logger.warning(f"Using default exploration metrics for {user_id}: {result.error}")
            return self._default_metrics(user_id)
        if isinstance(result, NotFound):
            metrics = self._default_metrics(user_id)
            try:
                await self.adapter.write_exploration_metrics(user_id, metrics.to_document())
            except StoreError as e:
                logger.warning(f"Could not create exploration metrics for {user_id}: {e}")
            return metrics
        return ExplorationMetrics.from_document(user_id, result.value, self.config.default_level)

    def adapt(self, metrics: ExplorationMetrics) -> int:
        """
        Next exploration level for the given metrics.

        Holds until ``min_shown`` exploratory picks were shown; then steps
        up at or above ``increase_at`` and down below ``decrease_below``.
        """
        level = metrics.adaptive_level
        if metrics.shown < self.config.min_shown:
            return level
        if metrics.success_rate >= self.config.increase_at:
            return min(level + self.config.step, self.config.max_level)
        if metrics.success_rate < self.config.decrease_below:
            return max(level - self.config.step, self.config.min_level)
        return level

    async def record_outcome(self, user_id: str, action: str) -> ExplorationMetrics:
        """
        Count an outcome of an exploratory pick and re-adapt the level.

        Args:
            user_id: User the pick was shown to.
            action: One of "shown", "liked" or "worn".

        Raises:
            PreferenceValidationError: For an unknown action.
            StoreWriteError: If the metrics cannot be read or written.
        """
        if action not in OUTCOMES:
            raise PreferenceValidationError(
                f"Unknown exploration outcome '{action}'. Choose from: {list(OUTCOMES)}",
                field="action",
                value=action,
            )

        result = await self.adapter.read_exploration_metrics(user_id)
        if isinstance(result, StoreFailure):
            raise StoreWriteError(
                f"Cannot update exploration metrics: {result.error.message}",
                collection="exploration_metrics",
                user_id=user_id,
            ) from result.error
        if isinstance(result, NotFound):
            metrics = self._default_metrics(user_id)
        else:
            metrics = ExplorationMetrics.from_document(user_id, result.value, self.config.default_level)

        setattr(metrics, action, getattr(metrics, action) + 1)
        metrics.success_rate = (
            round((metrics.liked + metrics.worn) / metrics.shown * 100, 2) if metrics.shown else 0.0
        )

        level = self.adapt(metrics)
        if level != metrics.adaptive_level:
            logger.info(
                f"Exploration level for {user_id}: {metrics.adaptive_level} -> {level} "
                f"(success rate {metrics.success_rate}%)"
            )
            metrics.adaptive_level = level
            metrics.last_adjusted = self.clock()

        await self.adapter.write_exploration_metrics(user_id, metrics.to_document())
        return metrics

    def detect_pattern_lock(self, user_id: str, preferences: ComprehensivePreferences) -> PatternLockStatus:
        """
        Recompute pattern-lock status from current preference weights.

        Locked when the top three favorite colors hold more than
        ``color_lock_threshold`` percent of the favorite weight and the top
        two styles more than ``style_lock_threshold`` percent of the style
        weight.
        """
        favorites = preferences.colors.favorite_colors
        styles = preferences.styles.top_styles

        color_total = sum(c.weight for c in favorites)
        style_total = sum(s.weight for s in styles)
        color_concentration = (
            sum(c.weight for c in favorites[:3]) / color_total * 100 if color_total > 0 else 0.0
        )
        style_concentration = (
            sum(s.weight for s in styles[:2]) / style_total * 100 if style_total > 0 else 0.0
        )

        locked = (
            color_concentration > self.config.color_lock_threshold
            and style_concentration > self.config.style_lock_threshold
        )
        if not locked:
            return PatternLockStatus(
                user_id=user_id,
                is_locked=False,
                force_exploration_percentage=self.config.default_forced_percentage,
                color_concentration=color_concentration,
                style_concentration=style_concentration,
            )

        logger.info(
            f"Pattern lock for {user_id}: colors {color_concentration:.0f}%, styles {style_concentration:.0f}%"
        )
        return PatternLockStatus(
            user_id=user_id,
            is_locked=True,
            force_exploration_percentage=self.config.locked_forced_percentage,
            color_concentration=color_concentration,
            style_concentration=style_concentration,
            lock_reason=LOCK_REASON,
            dominant_color=favorites[0].name,
            dominant_style=styles[0].name,
        )
