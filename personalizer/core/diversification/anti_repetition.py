"""
Rolling anti-repetition cache.

Remembers the color combinations, styles and occasions shown to a user,
each for its own window (30, 15 and 7 days by default). An outfit is
repetitive only when it repeats on all three dimensions at once.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from personalizer.core.normalization.tokens import candidate_colors, color_key, colors_match, styles_match
from personalizer.domain.entities.exploration import AntiRepetitionCache, CacheEntry
from personalizer.domain.entities.outfit import OutfitCandidate
from personalizer.domain.interfaces.store_interface import NotFound, StoreFailure
from personalizer.infrastructure.database.store_adapter import StoreAdapter
from personalizer.utils.clock import Clock, utc_now
from personalizer.utils.config import DiversificationConfig, get_config
from personalizer.utils.exceptions import StoreError, StoreWriteError
from personalizer.utils.logger import get_logger

logger = get_logger(__name__)


def combo_colors(outfit: OutfitCandidate) -> List[str]:
    """Top three canonical colors of an outfit."""
    return list(dict.fromkeys(color_key(c) for c in candidate_colors(outfit)))[:3]


def color_overlap(entry: Sequence[str], colors: Sequence[str]) -> float:
    """Shared colors over the size of the larger set."""
    if not entry or not colors:
        return 0.0
    shared = sum(1 for e in entry if any(colors_match(e, c) for c in colors))
    return shared / max(len(entry), len(colors))


def is_repetitive(outfit: OutfitCandidate, cache: AntiRepetitionCache, overlap_threshold: float = 0.7) -> bool:
    """
    Whether an outfit repeats a recent one on color, style and occasion.

    Color repeats when a cached combination overlaps by at least
    ``overlap_threshold``; style by token match; occasion by exact
    case-insensitive equality.
    """
    colors = combo_colors(outfit)
    color_hit = any(
        isinstance(entry.value, list) and color_overlap(entry.value, colors) >= overlap_threshold
        for entry in cache.color_combos
    )
    if not color_hit:
        return False

    style_hit = any(styles_match(outfit.style, str(entry.value)) for entry in cache.styles)
    if not style_hit:
        return False

    occasion = outfit.occasion.lower()
    return bool(occasion) and any(str(entry.value).lower() == occasion for entry in cache.occasions)


class AntiRepetitionManager:
    """Reads, prunes and appends to a user's anti-repetition cache."""

    def __init__(
        self,
        adapter: StoreAdapter,
        config: Optional[DiversificationConfig] = None,
        clock: Optional[Clock] = None,
    ):
        self.adapter = adapter
        self.config = config or get_config().diversification
        self.clock = clock or utc_now

    def prune(self, cache: AntiRepetitionCache, now: datetime) -> AntiRepetitionCache:
        """Drop entries older than their dimension's window."""

        def recent(entries: List[CacheEntry], days: int) -> List[CacheEntry]:
            cutoff = now - timedelta(days=days)
            return [e for e in entries if e.timestamp > cutoff]

        cache.color_combos = recent(cache.color_combos, self.config.color_window_days)
        cache.styles = recent(cache.styles, self.config.style_window_days)
        cache.occasions = recent(cache.occasions, self.config.occasion_window_days)
        return cache

    async def get(self, user_id: str) -> AntiRepetitionCache:
        """
        Current cache, created empty on first access.

        A failed read yields an empty, unsaved cache.
        """
        now = self.clock()
        result = await self.adapter.read_anti_repetition_cache(user_id)
        if isinstance(result, StoreFailure):
            logger.warning(f"Using empty anti-repetition cache for {user_id}: {result.error}")
            return AntiRepetitionCache(user_id=user_id, last_updated=now)
        if isinstance(result, NotFound):
            cache = AntiRepetitionCache(user_id=user_id, last_updated=now)
            try:
                await self.adapter.write_anti_repetition_cache(user_id, cache.to_document())
            except StoreError as e:
                logger.warning(f"Could not create anti-repetition cache for {user_id}: {e}")
            return cache
        return self.prune(AntiRepetitionCache.from_document(user_id, result.value), now)

    def is_repetitive(self, outfit: OutfitCandidate, cache: AntiRepetitionCache) -> bool:
        return is_repetitive(outfit, cache, self.config.color_overlap_threshold)

    async def record(self, user_id: str, outfit: OutfitCandidate) -> AntiRepetitionCache:
        return await self.record_many(user_id, [outfit])

    async def record_many(self, user_id: str, outfits: Iterable[OutfitCandidate]) -> AntiRepetitionCache:
        """
        Append what was shown and persist the pruned cache.

        Raises:
            StoreWriteError: If the current cache cannot be read or written.
        """
        result = await self.adapter.read_anti_repetition_cache(user_id)
        if isinstance(result, StoreFailure):
            raise StoreWriteError(
                f"Cannot update anti-repetition cache: {result.error.message}",
                collection="anti_repetition",
                user_id=user_id,
            ) from result.error

        now = self.clock()
        if isinstance(result, NotFound):
            cache = AntiRepetitionCache(user_id=user_id, last_updated=now)
        else:
            cache = AntiRepetitionCache.from_document(user_id, result.value)

        for outfit in outfits:
            colors = combo_colors(outfit)
            if len(colors) >= 2:
                cache.color_combos.append(CacheEntry(value=colors, timestamp=now))
            if outfit.style:
                cache.styles.append(CacheEntry(value=outfit.style.lower(), timestamp=now))
            if outfit.occasion:
                cache.occasions.append(CacheEntry(value=outfit.occasion.lower(), timestamp=now))

        cache = self.prune(cache, now)
        cache.last_updated = now
        await self.adapter.write_anti_repetition_cache(user_id, cache.to_document())
        return cache
