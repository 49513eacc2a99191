"""
Three-tier blocklist management.

The pure helpers at module level answer questions about an already loaded
``Blocklists`` value; ``BlocklistManager`` owns the read-modify-write cycle
against the store.

Example:
    >>> manager = BlocklistManager(StoreAdapter(store))
    >>> await manager.add_hard("user-1", "colors", "mustard", reason="Never again")
    >>> blocklists = await manager.get("user-1")
    >>> is_hard_blocked(blocklists, "colors", "Mustard")
    True
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from personalizer.core.normalization.tokens import (
    candidate_colors,
    candidate_styles,
    color_key,
    combination_key,
    feature_key,
    features_match,
    style_key,
)
from personalizer.domain.entities.blocklist import (
    BlocklistItem,
    Blocklists,
    FilterResult,
    TemporaryBlockItem,
)
from personalizer.domain.entities.outfit import OutfitCandidate
from personalizer.domain.interfaces.store_interface import NotFound, StoreFailure
from personalizer.infrastructure.database.store_adapter import StoreAdapter
from personalizer.utils.clock import Clock, utc_now
from personalizer.utils.config import BlocklistConfig, get_config
from personalizer.utils.exceptions import StoreWriteError
from personalizer.utils.logger import get_logger
from personalizer.utils.validators import validate_dimension, validate_token

logger = get_logger(__name__)

PROMOTION_REASON = "Consistently ignored (10+ times)"
IGNORED_REASON = "Ignored in session"


# ============================================
# Predicates
# ============================================


def _find(items: List[BlocklistItem], dimension: str, value: str) -> Optional[BlocklistItem]:
    for item in items:
        if features_match(dimension, item.value, value):
            return item
    return None


def is_hard_blocked(blocklists: Blocklists, dimension: str, value: str) -> bool:
    """Whether a feature value is vetoed by the hard tier."""
    return _find(blocklists.hard.get(dimension, []), dimension, value) is not None


def soft_weight_for_count(count: Optional[int]) -> float:
    """
    Multiplier for a soft-blocked value with the given ignore count.

    Returns:
        0.1 from 10 ignores, 0.3 from 5, 0.5 below that, 1.0 for no count.
    """
    if count is None or count <= 0:
        return 1.0
    if count >= 10:
        return 0.1
    if count >= 5:
        return 0.3
    return 0.5


def soft_block_weight(blocklists: Blocklists, dimension: str, value: str) -> float:
    item = _find(blocklists.soft.get(dimension, []), dimension, value)
    if item is None:
        return 1.0
    return soft_weight_for_count(item.count if item.count is not None else 1)


def was_recently_recommended(blocklists: Blocklists, colors: Sequence[str], now: datetime) -> bool:
    """Whether this exact color combination is on the active temporary tier."""
    key = combination_key(colors)
    if not key:
        return False
    return any(item.color_combination == key for item in blocklists.active_temporary(now))


def passes_filters(blocklists: Blocklists, candidate: OutfitCandidate, now: datetime) -> FilterResult:
    """
    Hard gate for one candidate.

    Fails when any color or style is hard-blocked (``hard_blocked`` set), or
    when the color combination was recently recommended.
    """
    for color in candidate_colors(candidate):
        if is_hard_blocked(blocklists, "colors", color):
            return FilterResult(False, f"Color '{color}' is blocked", hard_blocked=True)
    for style in candidate_styles(candidate):
        if is_hard_blocked(blocklists, "styles", style):
            return FilterResult(False, f"Style '{style}' is blocked", hard_blocked=True)
    if was_recently_recommended(blocklists, candidate_colors(candidate), now):
        return FilterResult(False, "Color combination was recently recommended")
    return FilterResult(True)


def score_with_soft_penalties(
    blocklists: Blocklists,
    colors: Sequence[str],
    styles: Sequence[str],
    base_score: float = 100.0,
) -> float:
    """Multiply a base score by the soft weight of every color, then every style."""
    score = base_score
    for color in colors:
        score *= soft_block_weight(blocklists, "colors", color)
    for style in styles:
        score *= soft_block_weight(blocklists, "styles", style)
    return score


# ============================================
# Manager
# ============================================


class BlocklistManager:
    """
    Reads and mutates a user's blocklist document.

    Reads degrade to empty blocklists on store failure. Mutations need the
    current document, so a failed read on the write path raises
    StoreWriteError instead of overwriting with an empty state.
    """

    def __init__(
        self,
        adapter: StoreAdapter,
        config: Optional[BlocklistConfig] = None,
        clock: Optional[Clock] = None,
    ):
        self.adapter = adapter
        self.config = config or get_config().blocklist
        self.clock = clock or utc_now

    async def get(self, user_id: str) -> Blocklists:
        """Current blocklists with expired temporary entries skipped."""
        result = await self.adapter.read_blocklists(user_id)
        if isinstance(result, StoreFailure):
            logger.warning(f"Using empty blocklists for {user_id}: {result.error}")
            return Blocklists()
        if isinstance(result, NotFound):
            return Blocklists()
        return Blocklists.from_document(result.value, now=self.clock())

    async def _load(self, user_id: str) -> Blocklists:
        result = await self.adapter.read_blocklists(user_id)
        if isinstance(result, StoreFailure):
            raise StoreWriteError(
                f"Cannot update blocklists without current state: {result.error.message}",
                collection="blocklists",
                user_id=user_id,
            ) from result.error
        if isinstance(result, NotFound):
            return Blocklists()
        return Blocklists.from_document(result.value)

    async def _save(self, user_id: str, blocklists: Blocklists) -> None:
        await self.adapter.write_blocklists(user_id, blocklists.to_document())

    # ---------------- hard tier ----------------

    async def add_hard(
        self,
        user_id: str,
        dimension: str,
        value: str,
        reason: str = "User preference",
    ) -> Blocklists:
        """
        Veto a feature permanently.

        Any soft entry for the same value is removed so the value lives in
        one tier only.
        """
        validate_dimension(dimension)
        value = validate_token(value, kind=dimension)
        blocklists = await self._load(user_id)

        if not is_hard_blocked(blocklists, dimension, value):
            blocklists.hard[dimension].append(
                BlocklistItem(value=value, reason=reason, added_at=self.clock())
            )
        if dimension in blocklists.soft:
            blocklists.soft[dimension] = [
                item for item in blocklists.soft[dimension]
                if not features_match(dimension, item.value, value)
            ]

        await self._save(user_id, blocklists)
        logger.info(f"Hard-blocked {dimension} '{value}' for {user_id}")
        return blocklists

    async def remove_hard(self, user_id: str, dimension: str, value: str) -> bool:
        validate_dimension(dimension)
        blocklists = await self._load(user_id)
        before = len(blocklists.hard[dimension])
        blocklists.hard[dimension] = [
            item for item in blocklists.hard[dimension]
            if not features_match(dimension, item.value, value)
        ]
        removed = len(blocklists.hard[dimension]) < before
        if removed:
            await self._save(user_id, blocklists)
            logger.info(f"Removed hard block on {dimension} '{value}' for {user_id}")
        return removed

    # ---------------- soft tier ----------------

    def _increment(self, blocklists: Blocklists, dimension: str, value: str, n: int) -> Optional[BlocklistItem]:
        if is_hard_blocked(blocklists, dimension, value):
            return None
        item = _find(blocklists.soft[dimension], dimension, value)
        if item is None:
            item = BlocklistItem(value=value, reason=IGNORED_REASON, added_at=self.clock(), count=0)
            blocklists.soft[dimension].append(item)
        item.count = (item.count or 0) + n
        return item

    async def add_or_increment_soft(self, user_id: str, dimension: str, value: str, n: int = 1) -> Blocklists:
        """Add a soft entry with count ``n`` or bump an existing entry's count."""
        validate_dimension(dimension, soft=True)
        value = validate_token(value, kind=dimension)
        blocklists = await self._load(user_id)
        item = self._increment(blocklists, dimension, value, n)
        if item is None:
            logger.debug(f"{dimension} '{value}' already hard-blocked for {user_id}")
            return blocklists
        await self._save(user_id, blocklists)
        return blocklists

    async def promote_soft_to_hard(self, user_id: str) -> List[str]:
        """
        Move soft entries that reached the promotion threshold to the hard tier.

        Idempotent: values already in the hard tier are not duplicated.

        Returns:
            The values promoted by this call.
        """
        blocklists = await self._load(user_id)
        promoted: List[str] = []

        for dimension, items in blocklists.soft.items():
            keep = []
            for item in items:
                if (item.count or 0) < self.config.promotion_threshold:
                    keep.append(item)
                    continue
                if not is_hard_blocked(blocklists, dimension, item.value):
                    blocklists.hard[dimension].append(
                        BlocklistItem(value=item.value, reason=PROMOTION_REASON, added_at=self.clock())
                    )
                    promoted.append(item.value)
            blocklists.soft[dimension] = keep

        if promoted:
            await self._save(user_id, blocklists)
            logger.info(f"Promoted {promoted} to hard blocklist for {user_id}")
        return promoted

    async def analyze_ignored_session(
        self, user_id: str, outfits: Sequence[OutfitCandidate]
    ) -> Dict[str, List[str]]:
        """
        Soft-block features shared by most outfits of an ignored session.

        A color or style present in at least ``ignored_pattern_threshold``
        of the batch gets its soft count incremented by one.

        Returns:
            The soft-blocked values per dimension.
        """
        if len(outfits) < self.config.min_ignored_batch:
            return {}

        color_counts: Counter = Counter()
        style_counts: Counter = Counter()
        for outfit in outfits:
            color_counts.update({color_key(c) for c in candidate_colors(outfit)})
            if outfit.has_style():
                style_counts[style_key(outfit.style)] += 1

        needed = self.config.ignored_pattern_threshold * len(outfits)
        patterns = {
            "colors": [c for c, n in color_counts.items() if n >= needed],
            "styles": [s for s, n in style_counts.items() if n >= needed],
        }
        if not any(patterns.values()):
            return {}

        blocklists = await self._load(user_id)
        applied: Dict[str, List[str]] = {}
        for dimension, values in patterns.items():
            for value in values:
                if self._increment(blocklists, dimension, feature_key(dimension, value), 1) is not None:
                    applied.setdefault(dimension, []).append(value)

        if applied:
            await self._save(user_id, blocklists)
            logger.info(f"Soft-blocked ignored patterns for {user_id}: {applied}")
        return applied

    # ---------------- temporary tier ----------------

    async def add_temporary(
        self,
        user_id: str,
        colors: Sequence[str],
        style_keywords: Sequence[str] = (),
        ttl_days: Optional[int] = None,
    ) -> Optional[TemporaryBlockItem]:
        """
        Record a recommended color combination until it expires.

        Re-adding the same combination refreshes its window.
        """
        key = combination_key(colors)
        if not key:
            return None

        now = self.clock()
        ttl = ttl_days if ttl_days is not None else self.config.temporary_ttl_days
        entry = TemporaryBlockItem(
            color_combination=key,
            style_keywords=list(style_keywords),
            recommended_at=now,
            expires_at=now + timedelta(days=ttl),
        )

        blocklists = await self._load(user_id)
        blocklists.temporary = [
            item for item in blocklists.temporary if item.color_combination != key
        ] + [entry]
        await self._save(user_id, blocklists)
        return entry

    async def clean_expired_temporary(self, user_id: str) -> int:
        """Persist the temporary tier without its expired entries."""
        blocklists = await self._load(user_id)
        active = blocklists.active_temporary(self.clock())
        removed = len(blocklists.temporary) - len(active)
        if removed:
            blocklists.temporary = active
            await self._save(user_id, blocklists)
            logger.info(f"Removed {removed} expired temporary blocks for {user_id}")
        return removed
