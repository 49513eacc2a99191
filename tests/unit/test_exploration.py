"""Unit tests for the exploration controller."""

import asyncio

import pytest

from personalizer.core.diversification.exploration import LOCK_REASON, ExplorationController
from personalizer.domain.entities.exploration import ExplorationMetrics
from personalizer.domain.entities.preferences import (
    ColorPreference,
    ComprehensivePreferences,
    StylePreference,
)
from personalizer.utils.exceptions import PreferenceValidationError, StoreUnavailableError, StoreWriteError


@pytest.fixture
def controller(adapter, app_config, clock):
    return ExplorationController(adapter, app_config.exploration, clock)


def preferences(color_weights, style_weights):
    prefs = ComprehensivePreferences()
    prefs.colors.favorite_colors = [ColorPreference(f"c{i}", w) for i, w in enumerate(color_weights)]
    prefs.styles.top_styles = [StylePreference(f"s{i}", w) for i, w in enumerate(style_weights)]
    return prefs


class TestAdapt:
    """Test the bang-bang level adjustment."""

    @pytest.mark.parametrize(
        "shown,rate,level,expected",
        [
            (4, 90.0, 10, 10),
            (5, 30.0, 10, 12),
            (5, 29.99, 10, 10),
            (5, 15.0, 10, 10),
            (5, 14.99, 10, 8),
            (10, 50.0, 25, 25),
            (10, 0.0, 5, 5),
            (10, 0.0, 6, 5),
        ],
    )
    def test_rules(self, controller, shown, rate, level, expected):
        metrics = ExplorationMetrics(user_id="u1", shown=shown, success_rate=rate, adaptive_level=level)
        assert controller.adapt(metrics) == expected


class TestRecordOutcome:
    """Test outcome counting against the store."""

    def test_first_access_uses_default_level(self, controller, store):
        """Test metrics start at the default level and are written once."""
        metrics = asyncio.run(controller.get_metrics("u1"))

        assert metrics.adaptive_level == 10
        assert metrics.shown == 0
        assert store.writes == 1

    def test_success_rate_rounded(self, controller):
        """Test the success rate keeps two decimals."""
        for _ in range(3):
            asyncio.run(controller.record_outcome("u1", "shown"))
        metrics = asyncio.run(controller.record_outcome("u1", "liked"))

        assert (metrics.shown, metrics.liked) == (3, 1)
        assert metrics.success_rate == 33.33

    def test_level_rises_with_success(self, controller, clock):
        """Test a high success rate raises the level by one step."""
        for _ in range(4):
            asyncio.run(controller.record_outcome("u1", "shown"))
        asyncio.run(controller.record_outcome("u1", "liked"))
        held = asyncio.run(controller.record_outcome("u1", "worn"))
        assert held.adaptive_level == 10

        clock.advance(hours=1)
        metrics = asyncio.run(controller.record_outcome("u1", "shown"))

        # 2 of 5 successful
        assert metrics.success_rate == 40.0
        assert metrics.adaptive_level == 12
        assert metrics.last_adjusted == clock.now

    def test_level_falls_without_success(self, controller):
        """Test a low success rate lowers the level."""
        metrics = None
        for _ in range(6):
            metrics = asyncio.run(controller.record_outcome("u1", "shown"))

        # adapts at 5 and again at 6 shown
        assert metrics.adaptive_level == 6
        assert metrics.success_rate == 0.0

    def test_level_stays_in_bounds(self, controller):
        """Test the level never drops below the floor."""
        metrics = None
        for _ in range(20):
            metrics = asyncio.run(controller.record_outcome("u1", "shown"))
        assert metrics.adaptive_level == 5

    def test_unknown_action(self, controller):
        """Test outcomes other than shown, liked and worn are rejected."""
        with pytest.raises(PreferenceValidationError):
            asyncio.run(controller.record_outcome("u1", "clicked"))

    def test_read_failure_raises(self, controller, store):
        """Test outcomes are not recorded over unreadable metrics."""
        store.fail_reads(StoreUnavailableError("down"))
        with pytest.raises(StoreWriteError):
            asyncio.run(controller.record_outcome("u1", "shown"))

    def test_read_failure_on_get_uses_defaults(self, controller, store):
        """Test reads degrade to default metrics."""
        store.fail_reads(StoreUnavailableError("down"))
        assert asyncio.run(controller.get_metrics("u1")).adaptive_level == 10


class TestPatternLock:
    """Test lock detection at and around its thresholds."""

    def test_concentrated_user_is_locked(self, controller):
        """Test one dominant color and style lock the pattern."""
        status = controller.detect_pattern_lock("u1", preferences([60, 20, 10, 5], [40, 40, 10]))

        assert status.is_locked
        assert status.force_exploration_percentage == 40
        assert status.lock_reason == LOCK_REASON
        assert (status.dominant_color, status.dominant_style) == ("c0", "s0")

    def test_spread_colors_not_locked(self, controller):
        """Test spread colors keep the default exploration."""
        status = controller.detect_pattern_lock("u1", preferences([30, 20, 20, 15, 15], [40, 40, 10]))

        assert not status.is_locked
        assert status.force_exploration_percentage == 10
        assert status.color_concentration == pytest.approx(70.0)

    def test_thresholds_are_strict(self, controller):
        """Test concentrations exactly at the thresholds do not lock."""
        # exactly 85% colors and 80% styles
        status = controller.detect_pattern_lock("u1", preferences([50, 20, 15, 15], [50, 30, 20]))

        assert status.color_concentration == pytest.approx(85.0)
        assert status.style_concentration == pytest.approx(80.0)
        assert not status.is_locked

    def test_empty_preferences(self, controller):
        """Test users without history are never locked."""
        status = controller.detect_pattern_lock("u1", ComprehensivePreferences.empty())
        assert not status.is_locked
        assert status.color_concentration == 0.0
