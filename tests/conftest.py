"""Pytest fixtures and configuration for personalizer tests."""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

import pytest

from personalizer.domain.entities.outfit import OutfitCandidate
from personalizer.infrastructure.database.memory_store import InMemoryPreferenceStore
from personalizer.infrastructure.database.store_adapter import StoreAdapter
from personalizer.utils.config import AppConfig, StoreConfig, reset_config

# A winter date, away from month boundaries.
FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def _isolated_config():
    """Never leak a cached configuration between tests."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def app_config() -> AppConfig:
    """Default configuration with instant retry backoff."""
    return AppConfig(
        store=StoreConfig(timeout_seconds=1.0, max_retries=2, backoff_base=0.0, max_backoff=0.0),
        log_level="DEBUG",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryPreferenceStore:
    return InMemoryPreferenceStore()


@pytest.fixture
def adapter(store: InMemoryPreferenceStore, app_config: AppConfig) -> StoreAdapter:
    return StoreAdapter(store, app_config.store)


@pytest.fixture
def make_outfit() -> Callable[..., OutfitCandidate]:
    """Factory for candidate outfits."""
    counter = {"n": 0}

    def _make(
        colors: Optional[List[str]] = None,
        style: str = "casual",
        occasion: str = "casual",
        items: Optional[List[str]] = None,
        description: str = "",
        outfit_id: Optional[str] = None,
    ) -> OutfitCandidate:
        counter["n"] += 1
        return OutfitCandidate(
            id=outfit_id or f"outfit-{counter['n']}",
            colors=list(colors) if colors is not None else ["white", "blue"],
            style=style,
            occasion=occasion,
            items=items or [],
            description=description,
        )

    return _make


def _outfit_record(
    timestamp: datetime,
    colors: List[str],
    style: str = "casual",
    occasion: str = "casual",
    description: str = "",
    items: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Raw liked/worn log record as a store would hold it."""
    return {
        "timestamp": timestamp.isoformat(),
        "outfit": {
            "colors": colors,
            "style": style,
            "occasion": occasion,
            "items": items or [],
            "description": description,
        },
    }


def _ignored_record(timestamp: datetime, outfits: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"timestamp": timestamp.isoformat(), "outfits": outfits}


def _click_record(timestamp: datetime, platform: str, price: Optional[float] = None) -> Dict[str, Any]:
    record: Dict[str, Any] = {"timestamp": timestamp.isoformat(), "platform": platform, "item": "shirt"}
    if price is not None:
        record["estimated_price"] = price
    return record


@pytest.fixture
def outfit_record() -> Callable[..., Dict[str, Any]]:
    return _outfit_record


@pytest.fixture
def ignored_record() -> Callable[..., Dict[str, Any]]:
    return _ignored_record


@pytest.fixture
def click_record() -> Callable[..., Dict[str, Any]]:
    return _click_record
