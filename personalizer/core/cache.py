"""
Explicit preference cache with TTL expiry and LRU eviction.

Owned by the personalization service; feedback handlers invalidate a user's
entry before writing so a concurrent read cannot repopulate stale data.
"""

from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Generic, Optional, Tuple, TypeVar

from personalizer.utils.clock import Clock, utc_now
from personalizer.utils.config import CacheConfig, get_config
from personalizer.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class PreferenceCache(Generic[T]):
    """
    Bounded per-user cache.

    Entries expire ``preference_ttl_seconds`` after they were stored; when
    ``max_entries`` is exceeded the least recently used entry is evicted.
    """

    def __init__(self, config: Optional[CacheConfig] = None, clock: Optional[Clock] = None):
        self.config = config or get_config().cache
        self.clock = clock or utc_now
        self.ttl = timedelta(seconds=self.config.preference_ttl_seconds)
        self._entries: "OrderedDict[str, Tuple[datetime, T]]" = OrderedDict()

    def get(self, user_id: str) -> Optional[T]:
        entry = self._entries.get(user_id)
        if entry is None:
            return None
        stored_at, value = entry
        if self.clock() - stored_at >= self.ttl:
            del self._entries[user_id]
            return None
        self._entries.move_to_end(user_id)
        return value

    def set(self, user_id: str, value: T) -> None:
        self._entries[user_id] = (self.clock(), value)
        self._entries.move_to_end(user_id)
        while len(self._entries) > self.config.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted cached preferences for {evicted}")

    def invalidate(self, user_id: str) -> None:
        self._entries.pop(user_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, user_id: str) -> bool:
        return self.get(user_id) is not None
