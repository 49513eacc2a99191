"""
In-memory document store.

Implements merge-on-write for the preference and blocklist documents and
an append-only interaction log. Used by tests and single-process setups;
supports fault injection so degraded paths can be exercised.
"""

from __future__ import annotations

import copy
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from personalizer.domain.interfaces.store_interface import PreferenceStoreInterface
from personalizer.utils.exceptions import StoreError
from personalizer.utils.logger import get_logger

logger = get_logger(__name__)


def deep_merge(target: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``update`` into ``target`` in place; nested dicts merge recursively."""
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)
    return target


def record_timestamp(record: Dict[str, Any]) -> datetime:
    """Timestamp of a log record, for ordering."""
    value = record.get("timestamp")
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return datetime.min.replace(tzinfo=timezone.utc)
    else:
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class InMemoryPreferenceStore(PreferenceStoreInterface):
    """
    Dictionary-backed implementation of PreferenceStoreInterface.

    Attributes:
        read_error: When set, every read raises this error.
        write_errors: Errors raised by the next writes, one per write.
        writes: Number of successful writes, for assertions in tests.
    """

    def __init__(self):
        self._preferences: Dict[str, Dict[str, Any]] = {}
        self._blocklists: Dict[str, Dict[str, Any]] = {}
        self._anti_repetition: Dict[str, Dict[str, Any]] = {}
        self._exploration: Dict[str, Dict[str, Any]] = {}
        self._interactions: Dict[str, Dict[str, List[Dict[str, Any]]]] = defaultdict(lambda: defaultdict(list))

        self.read_error: Optional[StoreError] = None
        self.write_errors: List[StoreError] = []
        self.writes = 0

    # ---------------- fault injection ----------------

    def fail_reads(self, error: Optional[StoreError]) -> None:
        self.read_error = error

    def fail_next_writes(self, *errors: StoreError) -> None:
        self.write_errors.extend(errors)

    def _check_read(self) -> None:
        if self.read_error is not None:
            raise self.read_error

    def _check_write(self) -> None:
        if self.write_errors:
            raise self.write_errors.pop(0)
        self.writes += 1

    # ---------------- documents ----------------

    async def read_preferences(self, user_id: str) -> Optional[Dict[str, Any]]:
        self._check_read()
        document = self._preferences.get(user_id)
        return copy.deepcopy(document) if document is not None else None

    async def write_preferences(self, user_id: str, update: Dict[str, Any]) -> None:
        self._check_write()
        deep_merge(self._preferences.setdefault(user_id, {}), update)

    async def read_blocklists(self, user_id: str) -> Optional[Dict[str, Any]]:
        self._check_read()
        document = self._blocklists.get(user_id)
        return copy.deepcopy(document) if document is not None else None

    async def write_blocklists(self, user_id: str, update: Dict[str, Any]) -> None:
        self._check_write()
        deep_merge(self._blocklists.setdefault(user_id, {}), update)

    async def read_anti_repetition_cache(self, user_id: str) -> Optional[Dict[str, Any]]:
        self._check_read()
        document = self._anti_repetition.get(user_id)
        return copy.deepcopy(document) if document is not None else None

    async def write_anti_repetition_cache(self, user_id: str, cache: Dict[str, Any]) -> None:
        self._check_write()
        self._anti_repetition[user_id] = copy.deepcopy(cache)

    async def read_exploration_metrics(self, user_id: str) -> Optional[Dict[str, Any]]:
        self._check_read()
        document = self._exploration.get(user_id)
        return copy.deepcopy(document) if document is not None else None

    async def write_exploration_metrics(self, user_id: str, metrics: Dict[str, Any]) -> None:
        self._check_write()
        self._exploration[user_id] = copy.deepcopy(metrics)

    # ---------------- interaction log ----------------

    async def read_interaction_log(
        self,
        user_id: str,
        kind: str,
        limit: int,
        newest_first: bool = True,
    ) -> List[Dict[str, Any]]:
        self._check_read()
        records = sorted(
            self._interactions[user_id][kind],
            key=record_timestamp,
            reverse=newest_first,
        )
        return copy.deepcopy(records[:limit])

    async def append_interaction(self, user_id: str, kind: str, record: Dict[str, Any]) -> None:
        self._check_write()
        self._interactions[user_id][kind].append(copy.deepcopy(record))

    def seed_interactions(self, user_id: str, kind: str, records: List[Dict[str, Any]]) -> None:
        """Load historical records directly, bypassing fault injection."""
        self._interactions[user_id][kind].extend(copy.deepcopy(records))
        logger.debug(f"Seeded {len(records)} {kind} records for {user_id}")

    def interaction_count(self, user_id: str, kind: str) -> int:
        return len(self._interactions[user_id][kind])
