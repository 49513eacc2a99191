"""Unit tests for the three-tier blocklist."""

import asyncio
from datetime import timedelta

import pytest

from personalizer.core.blocklist.manager import (
    PROMOTION_REASON,
    BlocklistManager,
    is_hard_blocked,
    passes_filters,
    score_with_soft_penalties,
    soft_block_weight,
    soft_weight_for_count,
    was_recently_recommended,
)
from personalizer.domain.entities.blocklist import BlocklistItem, Blocklists
from personalizer.utils.exceptions import (
    InvalidTokenError,
    PreferenceValidationError,
    StoreUnavailableError,
    StoreWriteError,
)


@pytest.fixture
def manager(adapter, app_config, clock):
    return BlocklistManager(adapter, app_config.blocklist, clock)


def soft(value, count):
    return BlocklistItem(value=value, reason="Ignored in session", count=count)


class TestPredicates:
    """Test pure blocklist predicates."""

    @pytest.mark.parametrize(
        "count,weight",
        [(0, 1.0), (1, 0.5), (4, 0.5), (5, 0.3), (9, 0.3), (10, 0.1), (25, 0.1)],
    )
    def test_soft_weight_steps(self, count, weight):
        """Test the soft weight table at each count."""
        assert soft_weight_for_count(count) == weight

    def test_soft_weight_non_increasing(self):
        """Test more ignores never weigh more."""
        weights = [soft_weight_for_count(n) for n in range(0, 15)]
        assert all(a >= b for a, b in zip(weights, weights[1:]))

    def test_soft_block_weight_lookup(self):
        blocklists = Blocklists()
        blocklists.soft["colors"].append(soft("mustard", 6))

        assert soft_block_weight(blocklists, "colors", "Mustard") == 0.3
        assert soft_block_weight(blocklists, "colors", "navy") == 1.0

    def test_hard_block_uses_canonical_keys(self):
        """Test hard blocks match color variants of the blocked value."""
        blocklists = Blocklists()
        blocklists.hard["colors"].append(BlocklistItem(value="navy"))

        assert is_hard_blocked(blocklists, "colors", "dark navy blue")
        assert is_hard_blocked(blocklists, "colors", "#000080")
        assert not is_hard_blocked(blocklists, "colors", "blue")

    def test_hard_gate_is_absolute(self, make_outfit, clock):
        """A hard-blocked color fails the gate however good the rest is."""
        blocklists = Blocklists()
        blocklists.hard["colors"].append(BlocklistItem(value="mustard"))
        outfit = make_outfit(colors=["navy", "white", "mustard yellow"], style="classic")

        result = passes_filters(blocklists, outfit, clock.now)

        assert not result.passes
        assert result.hard_blocked
        assert "mustard" in result.reason

    def test_hard_blocked_style(self, make_outfit, clock):
        """Test a hard-blocked style fails the filter."""
        blocklists = Blocklists()
        blocklists.hard["styles"].append(BlocklistItem(value="boho"))

        result = passes_filters(blocklists, make_outfit(style="Bohemian"), clock.now)

        assert result.hard_blocked

    def test_recent_combination_fails_without_hard_flag(self, make_outfit, manager, clock):
        """Test a recent combination fails the filter but is not a hard block."""
        asyncio.run(manager.add_temporary("u1", ["white", "blue"]))
        blocklists = asyncio.run(manager.get("u1"))

        result = passes_filters(blocklists, make_outfit(colors=["blue", "white"]), clock.now)

        assert not result.passes
        assert not result.hard_blocked

    def test_soft_penalties_compound(self):
        """Test soft weights multiply across matched features."""
        blocklists = Blocklists()
        blocklists.soft["colors"].append(soft("mustard", 2))
        blocklists.soft["styles"].append(soft("edgy", 12))

        assert score_with_soft_penalties(blocklists, ["mustard", "white"], ["edgy"], 80) == pytest.approx(4.0)
        assert score_with_soft_penalties(blocklists, ["white"], ["casual"]) == 100.0


class TestHardTier:
    """Test hard blocklist mutations."""

    def test_add_and_get(self, manager):
        """Test a hard block is stored and read back."""
        asyncio.run(manager.add_hard("u1", "colors", "Mustard", reason="Never"))
        blocklists = asyncio.run(manager.get("u1"))

        assert [i.value for i in blocklists.hard["colors"]] == ["mustard"]
        assert blocklists.hard["colors"][0].reason == "Never"

    def test_add_is_deduplicated(self, manager):
        """Test re-adding a value keeps one entry."""
        asyncio.run(manager.add_hard("u1", "colors", "navy"))
        asyncio.run(manager.add_hard("u1", "colors", "navy blue"))

        blocklists = asyncio.run(manager.get("u1"))
        assert len(blocklists.hard["colors"]) == 1

    def test_add_removes_soft_entry(self, manager):
        """Test a hard block takes the value out of the soft tier."""
        asyncio.run(manager.add_or_increment_soft("u1", "colors", "mustard", n=3))
        asyncio.run(manager.add_hard("u1", "colors", "mustard"))

        blocklists = asyncio.run(manager.get("u1"))
        assert blocklists.soft["colors"] == []
        assert is_hard_blocked(blocklists, "colors", "mustard")

    def test_remove(self, manager):
        """Test removal from the hard tier."""
        asyncio.run(manager.add_hard("u1", "patterns", "floral"))

        assert asyncio.run(manager.remove_hard("u1", "patterns", "floral"))
        assert not asyncio.run(manager.remove_hard("u1", "patterns", "floral"))
        assert asyncio.run(manager.get("u1")).hard["patterns"] == []

    def test_unknown_dimension(self, manager):
        """Test dimensions outside the block table are rejected."""
        with pytest.raises(PreferenceValidationError):
            asyncio.run(manager.add_hard("u1", "shoes", "red"))

    def test_malformed_token(self, manager):
        """Test malformed hex values are rejected before writing."""
        with pytest.raises(InvalidTokenError):
            asyncio.run(manager.add_hard("u1", "colors", "#12345"))

    def test_write_path_read_failure_raises(self, manager, store):
        """Test writes refuse to run on an unreadable document."""
        store.fail_reads(StoreUnavailableError("down"))

        with pytest.raises(StoreWriteError):
            asyncio.run(manager.add_hard("u1", "colors", "red"))

    def test_read_failure_degrades(self, manager, store):
        """Test reads degrade to empty blocklists."""
        asyncio.run(manager.add_hard("u1", "colors", "red"))
        store.fail_reads(StoreUnavailableError("down"))

        blocklists = asyncio.run(manager.get("u1"))

        assert blocklists.hard["colors"] == []


class TestSoftTierAndPromotion:
    """Test soft accumulation and promotion to the hard tier."""

    def test_increment(self, manager):
        """Test soft counts grow by the given amount."""
        asyncio.run(manager.add_or_increment_soft("u1", "colors", "mustard"))
        asyncio.run(manager.add_or_increment_soft("u1", "colors", "Mustard", n=4))

        blocklists = asyncio.run(manager.get("u1"))
        assert [(i.value, i.count) for i in blocklists.soft["colors"]] == [("mustard", 5)]

    def test_soft_dimension_restricted(self, manager):
        """Test the soft tier only tracks colors and styles."""
        with pytest.raises(PreferenceValidationError):
            asyncio.run(manager.add_or_increment_soft("u1", "fits", "slim"))

    def test_hard_blocked_value_not_soft_blocked(self, manager):
        """Test hard-blocked values are not counted again in the soft tier."""
        asyncio.run(manager.add_hard("u1", "colors", "red"))
        asyncio.run(manager.add_or_increment_soft("u1", "colors", "red"))

        assert asyncio.run(manager.get("u1")).soft["colors"] == []

    def test_promotion(self, manager):
        """Test soft entries at the threshold move to the hard tier."""
        asyncio.run(manager.add_or_increment_soft("u1", "colors", "mustard", n=10))
        asyncio.run(manager.add_or_increment_soft("u1", "colors", "brown", n=9))

        promoted = asyncio.run(manager.promote_soft_to_hard("u1"))
        blocklists = asyncio.run(manager.get("u1"))

        assert promoted == ["mustard"]
        assert [(i.value, i.reason) for i in blocklists.hard["colors"]] == [("mustard", PROMOTION_REASON)]
        assert [i.value for i in blocklists.soft["colors"]] == ["brown"]

    def test_promotion_is_idempotent(self, manager):
        """Test a second promotion pass changes nothing."""
        asyncio.run(manager.add_or_increment_soft("u1", "styles", "edgy", n=12))

        asyncio.run(manager.promote_soft_to_hard("u1"))
        once = asyncio.run(manager.get("u1")).hard
        assert asyncio.run(manager.promote_soft_to_hard("u1")) == []
        twice = asyncio.run(manager.get("u1")).hard

        assert [i.value for i in once["styles"]] == [i.value for i in twice["styles"]] == ["edgy"]


class TestIgnoredSessionAnalysis:
    """Test pattern detection over ignored sessions."""

    def test_shared_features_are_soft_blocked(self, manager, make_outfit):
        """Test colors shared by most of an ignored batch are soft-blocked."""
        outfits = [
            make_outfit(colors=["mustard", "brown"], style="edgy"),
            make_outfit(colors=["mustard", "white"], style="edgy"),
            make_outfit(colors=["mustard yellow", "black"], style="classic"),
        ]

        applied = asyncio.run(manager.analyze_ignored_session("u1", outfits))
        blocklists = asyncio.run(manager.get("u1"))

        assert applied == {"colors": ["mustard"]}
        assert [(i.value, i.count) for i in blocklists.soft["colors"]] == [("mustard", 1)]
        assert blocklists.soft["styles"] == []

    def test_single_outfit_batch_is_ignored(self, manager, make_outfit):
        """Test batches below the minimum size are not analyzed."""
        assert asyncio.run(manager.analyze_ignored_session("u1", [make_outfit()])) == {}


class TestTemporaryTier:
    """Test the time-boxed recent-combination tier."""

    def test_window(self, manager, clock):
        """Test a combination is flagged inside its window and not after it."""
        asyncio.run(manager.add_temporary("u1", ["#000080", "#FFA500"]))

        clock.advance(days=10)
        blocklists = asyncio.run(manager.get("u1"))
        assert was_recently_recommended(blocklists, ["navy", "orange"], clock.now)

        clock.advance(days=21)
        blocklists = asyncio.run(manager.get("u1"))
        assert not was_recently_recommended(blocklists, ["navy", "orange"], clock.now)
        assert blocklists.temporary == []

    def test_readd_refreshes(self, manager, store, clock):
        """Test re-adding a combination restarts its window."""
        asyncio.run(manager.add_temporary("u1", ["white", "blue"]))
        clock.advance(days=20)
        asyncio.run(manager.add_temporary("u1", ["blue", "white"], ttl_days=30))

        blocklists = asyncio.run(manager.get("u1"))
        assert len(blocklists.temporary) == 1
        assert blocklists.temporary[0].expires_at == clock.now + timedelta(days=30)

    def test_cleanup_persists_pruned_list(self, manager, clock):
        """Test cleanup drops expired entries and reports the count."""
        asyncio.run(manager.add_temporary("u1", ["white", "blue"], ttl_days=1))
        asyncio.run(manager.add_temporary("u1", ["red", "black"], ttl_days=5))
        clock.advance(days=2)

        assert asyncio.run(manager.clean_expired_temporary("u1")) == 1
        assert asyncio.run(manager.clean_expired_temporary("u1")) == 0

    def test_empty_combination_is_skipped(self, manager, store):
        """Test an outfit without colors adds nothing."""
        assert asyncio.run(manager.add_temporary("u1", [])) is None
        assert store.writes == 0
