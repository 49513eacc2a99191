"""Unit tests for the store adapter, retry policy and JSON file store."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from personalizer.domain.entities.interaction import (
    InteractionKind,
    LikedInteraction,
    OutfitSnapshot,
    ShoppingClickInteraction,
)
from personalizer.domain.interfaces.store_interface import NotFound, Ok, StoreFailure
from personalizer.infrastructure.database.json_store import JsonFileStore
from personalizer.infrastructure.database.memory_store import InMemoryPreferenceStore
from personalizer.infrastructure.database.retry import RetryPolicy
from personalizer.infrastructure.database.store_adapter import StoreAdapter
from personalizer.utils.config import StoreConfig
from personalizer.utils.exceptions import (
    PreferenceValidationError,
    StoreContentionError,
    StorePermissionError,
    StoreTimeoutError,
    StoreUnavailableError,
    StoreWriteError,
)

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class SlowStore(InMemoryPreferenceStore):
    """Store whose preference reads never finish in time."""

    async def read_preferences(self, user_id):
        await asyncio.sleep(1.0)
        return {}


class TestReads:
    """Test read results and degradation."""

    def test_missing_document(self, adapter):
        """Test a missing document reads as NotFound."""
        result = asyncio.run(adapter.read_preferences("u1"))
        assert isinstance(result, NotFound)
        assert result.collection == "preferences"

    def test_existing_document(self, adapter):
        """Test a stored document reads as Ok."""
        asyncio.run(adapter.write_preferences("u1", {"total_likes": 3}))
        result = asyncio.run(adapter.read_preferences("u1"))
        assert isinstance(result, Ok)
        assert result.value == {"total_likes": 3}

    def test_unavailable_store_becomes_failure(self, adapter, store):
        """Test store errors become StoreFailure values."""
        store.fail_reads(StoreUnavailableError("down"))
        result = asyncio.run(adapter.read_blocklists("u1"))
        assert isinstance(result, StoreFailure)
        assert isinstance(result.error, StoreUnavailableError)

    def test_timeout_becomes_failure(self):
        """Test slow reads become timeout failures."""
        adapter = StoreAdapter(SlowStore(), StoreConfig(timeout_seconds=0.05, max_retries=0))
        result = asyncio.run(adapter.read_preferences("u1"))
        assert isinstance(result, StoreFailure)
        assert isinstance(result.error, StoreTimeoutError)

    def test_interactions_newest_first_with_limit(self, adapter, store, outfit_record):
        """Test interaction reads are newest first and limited."""
        store.seed_interactions("u1", "liked", [
            outfit_record(NOW - timedelta(days=d), [f"c{d}"]) for d in (5, 1, 3)
        ])

        result = asyncio.run(adapter.read_interactions("u1", InteractionKind.LIKED, limit=2))

        assert isinstance(result, Ok)
        assert [i.outfit.colors for i in result.value] == [["c1"], ["c3"]]

    def test_interactions_skip_malformed(self, adapter, store, click_record):
        """Test malformed interaction records are skipped."""
        store.seed_interactions("u1", "shopping_click", [
            click_record(NOW, "myntra", 999.0),
            {"timestamp": NOW.isoformat(), "platform": "ajio", "estimated_price": -5},
        ])

        result = asyncio.run(adapter.read_interactions("u1", InteractionKind.SHOPPING_CLICK, limit=10))

        assert [i.platform for i in result.value] == ["myntra"]

    def test_no_interactions(self, adapter):
        """Test an empty log reads as an empty list."""
        result = asyncio.run(adapter.read_interactions("u1", InteractionKind.WORN, limit=10))
        assert isinstance(result, Ok) and result.value == []


class TestWrites:
    """Test validation and retry on the write path."""

    def test_transient_failures_are_retried(self, adapter, store):
        """Test contention and timeouts are retried until the write lands."""
        store.fail_next_writes(StoreContentionError(), StoreTimeoutError())

        asyncio.run(adapter.write_preferences("u1", {"total_selections": 1}))

        assert store.writes == 1

    def test_retries_exhausted(self, adapter, store):
        """Test StoreWriteError after the last retry."""
        store.fail_next_writes(*[StoreContentionError() for _ in range(3)])

        with pytest.raises(StoreWriteError) as exc_info:
            asyncio.run(adapter.write_preferences("u1", {"total_selections": 1}))

        assert exc_info.value.context["attempts"] == 3
        assert store.writes == 0

    def test_permanent_failure_not_retried(self, adapter, store):
        """Test permission errors fail on the first attempt."""
        store.fail_next_writes(StorePermissionError(), StoreContentionError())

        with pytest.raises(StoreWriteError) as exc_info:
            asyncio.run(adapter.write_blocklists("u1", {"temporary": []}))

        assert exc_info.value.context["attempts"] == 1
        assert len(store.write_errors) == 1

    @pytest.mark.parametrize(
        "update",
        [
            {"color_weights": {"#12": 1.0}},
            {"favourite": "navy"},
            {"overall_confidence": 42},
            {"price_range": {"min": 3000, "max": 1000}},
            {"seasonal_preferences": {"autumn": ["red"]}},
            {"total_likes": -1},
            {"occasion_preferences": {"date night!": {"preferred_colors": ["navy"]}}},
        ],
    )
    def test_invalid_preference_updates_rejected(self, adapter, store, update):
        with pytest.raises(PreferenceValidationError):
            asyncio.run(adapter.write_preferences("u1", update))
        assert store.writes == 0

    def test_validate_without_writing(self, adapter, store):
        """Test an update can be checked without touching the store."""
        assert adapter.validate_preference_update("u1", {"total_likes": 2}) == {"total_likes": 2}
        with pytest.raises(PreferenceValidationError):
            adapter.validate_preference_update("u1", {"color_weights": {"navy (dark)": 1.0}})
        assert store.writes == 0

    def test_invalid_blocklist_dimension(self, adapter):
        """Test unknown soft dimensions are rejected."""
        with pytest.raises(PreferenceValidationError):
            asyncio.run(adapter.write_blocklists("u1", {"soft": {"patterns": []}}))

    def test_partial_update_merges(self, adapter):
        """Test partial updates deep-merge into the document."""
        asyncio.run(adapter.write_preferences("u1", {"color_weights": {"navy": 5.0}}))
        asyncio.run(adapter.write_preferences("u1", {"color_weights": {"white": 2.0}, "total_likes": 1}))

        document = asyncio.run(adapter.read_preferences("u1")).value

        assert document["color_weights"] == {"navy": 5.0, "white": 2.0}
        assert document["total_likes"] == 1

    def test_append_interaction(self, adapter, store):
        """Test appended interactions read back."""
        interaction = LikedInteraction(timestamp=NOW, outfit=OutfitSnapshot(colors=["navy"], style="classic"))

        asyncio.run(adapter.append_interaction("u1", interaction))
        result = asyncio.run(adapter.read_interactions("u1", InteractionKind.LIKED, limit=5))

        assert store.interaction_count("u1", "liked") == 1
        assert result.value == [interaction]


class TestRetryPolicy:
    def test_delays_are_capped(self):
        """Test backoff delays grow and then cap."""
        policy = RetryPolicy(max_retries=4, backoff_base=0.1, backoff_factor=2.0, max_backoff=0.3)
        assert list(policy.delays()) == pytest.approx([0.1, 0.2, 0.3, 0.3])

    def test_sleeps_between_attempts(self):
        """Test the policy sleeps between attempts only."""
        slept = []
        calls = {"n": 0}

        async def record_sleep(delay):
            slept.append(delay)

        async def flaky():
            calls["n"] += 1
            if calls["n"] < 3:
                raise StoreContentionError()
            return "ok"

        policy = RetryPolicy(max_retries=3, backoff_base=0.05, sleep=record_sleep)

        assert asyncio.run(policy.run(flaky, collection="preferences")) == "ok"
        assert slept == pytest.approx([0.05, 0.1])


class TestJsonFileStore:
    """Test the file-backed store through the adapter."""

    @pytest.fixture
    def file_adapter(self, tmp_path, app_config):
        return StoreAdapter(JsonFileStore(tmp_path / "store"), app_config.store)

    def test_document_round_trip(self, file_adapter):
        """Test a merged document survives a reread from disk."""
        asyncio.run(file_adapter.write_preferences("u1", {"style_weights": {"classic": 4.0}}))
        asyncio.run(file_adapter.write_preferences("u1", {"style_weights": {"boho": 2.0}}))

        document = asyncio.run(file_adapter.read_preferences("u1")).value

        assert document["style_weights"] == {"classic": 4.0, "boho": 2.0}

    def test_replace_semantics_for_metrics(self, file_adapter):
        """Test metrics documents are replaced, not merged."""
        first = {"shown": 1, "liked": 0, "worn": 0, "success_rate": 0.0,
                 "adaptive_level": 10, "last_adjusted": NOW.isoformat()}
        second = dict(first, shown=2)

        asyncio.run(file_adapter.write_exploration_metrics("u1", first))
        asyncio.run(file_adapter.write_exploration_metrics("u1", second))

        assert asyncio.run(file_adapter.read_exploration_metrics("u1")).value["shown"] == 2

    def test_interaction_log(self, file_adapter):
        """Test the file log keeps append order and reads newest first."""
        clicks = [
            ShoppingClickInteraction(timestamp=NOW - timedelta(days=1), platform="ajio", estimated_price=800.0),
            ShoppingClickInteraction(timestamp=NOW, platform="myntra"),
        ]
        for click in clicks:
            asyncio.run(file_adapter.append_interaction("u1", click))

        result = asyncio.run(file_adapter.read_interactions("u1", InteractionKind.SHOPPING_CLICK, limit=10))

        assert [c.platform for c in result.value] == ["myntra", "ajio"]

    def test_corrupt_document_degrades(self, tmp_path, app_config):
        """Test an unreadable file reads as a failure."""
        root = tmp_path / "store"
        adapter = StoreAdapter(JsonFileStore(root), app_config.store)
        (root / "blocklists").mkdir(parents=True)
        (root / "blocklists" / "u1.json").write_text("{not json", encoding="utf-8")

        result = asyncio.run(adapter.read_blocklists("u1"))

        assert isinstance(result, StoreFailure)

    def test_user_ids_are_sanitized(self, tmp_path, file_adapter):
        """Test user ids cannot escape the store directory."""
        asyncio.run(file_adapter.write_preferences("../escape", {"total_likes": 1}))

        assert not (tmp_path / "escape.json").exists()
        assert asyncio.run(file_adapter.read_preferences("../escape")).value == {"total_likes": 1}
