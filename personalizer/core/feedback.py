"""
Unified feedback entry point.

Every user action goes through ``FeedbackProcessor.apply_feedback``. The
preference increment is built and validated first; only then is the
interaction appended to the log and the increment merged into the
persisted preference document so the next recommendation reflects it before
the next full aggregation. Signal weights come from ``SIGNAL_WEIGHTS``.

Example:
    >>> processor = FeedbackProcessor(adapter, blocklists, exploration)
    >>> await processor.apply_feedback("user-1", WearFeedback(outfit, occasion="office"))
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from personalizer.core.blocklist.manager import BlocklistManager
from personalizer.core.cache import PreferenceCache
from personalizer.core.diversification.exploration import ExplorationController
from personalizer.core.normalization.tokens import candidate_colors, candidate_styles, color_key, season_at
from personalizer.domain.entities.feedback import (
    FeedbackEvent,
    IgnoreSessionFeedback,
    LikeFeedback,
    ShoppingClickFeedback,
    WearFeedback,
)
from personalizer.domain.entities.interaction import (
    SIGNAL_WEIGHTS,
    IgnoredSessionInteraction,
    Interaction,
    InteractionKind,
    LikedInteraction,
    OutfitSnapshot,
    ShoppingClickInteraction,
    WornInteraction,
)
from personalizer.domain.entities.outfit import OutfitCandidate
from personalizer.domain.interfaces.store_interface import NotFound, StoreFailure
from personalizer.infrastructure.database.store_adapter import StoreAdapter
from personalizer.utils.clock import Clock, utc_now
from personalizer.utils.exceptions import InvalidTokenError, PreferenceValidationError, StoreWriteError
from personalizer.utils.logger import get_logger
from personalizer.utils.validators import validate_token, validate_user_id

logger = get_logger(__name__)

# Longest list kept per occasion, season and shopping platform.
MAX_LIST_LENGTH = 20


def _colors(outfit: OutfitCandidate) -> List[str]:
    return list(dict.fromkeys(color_key(c) for c in candidate_colors(outfit)))


def _snapshot(outfit: OutfitCandidate, occasion: Optional[str] = None) -> OutfitSnapshot:
    data = outfit.to_snapshot()
    if occasion:
        data["occasion"] = occasion
    return OutfitSnapshot.model_validate(data)


def _check_outfit_tokens(outfits: Sequence[OutfitCandidate]) -> None:
    """Reject outfits whose colors or styles could not be stored as tokens."""
    try:
        for outfit in outfits:
            for color in _colors(outfit):
                validate_token(color, kind="color")
            for style in candidate_styles(outfit):
                validate_token(style, kind="style")
    except InvalidTokenError as e:
        raise PreferenceValidationError(
            e.message, field=e.context.get("kind"), value=e.context.get("token")
        ) from e


def _append_new(existing: List[str], values: List[str]) -> List[str]:
    merged = list(existing) + [v for v in values if v not in existing]
    return merged[:MAX_LIST_LENGTH]


def _move_to_front(existing: List[str], values: List[str]) -> List[str]:
    merged = list(values) + [v for v in existing if v not in values]
    return merged[:MAX_LIST_LENGTH]


class FeedbackProcessor:
    """
    Applies feedback events to the interaction log and preference document.

    Attributes:
        adapter: Store adapter for reads and writes.
        blocklists: Blocklist manager fed by ignored sessions.
        exploration: Exploration controller fed by exploratory outcomes.
        cache: Preference cache invalidated before every write.
    """

    def __init__(
        self,
        adapter: StoreAdapter,
        blocklists: BlocklistManager,
        exploration: ExplorationController,
        cache: Optional[PreferenceCache] = None,
        clock: Optional[Clock] = None,
    ):
        self.adapter = adapter
        self.blocklists = blocklists
        self.exploration = exploration
        self.cache = cache
        self.clock = clock or utc_now

    async def apply_feedback(self, user_id: str, event: FeedbackEvent) -> None:
        """
        Apply one feedback event.

        Raises:
            PreferenceValidationError: For unknown events or updates that
                violate the document schema.
            StoreWriteError: If the update cannot be persisted.
        """
        user_id = validate_user_id(user_id)
        if self.cache is not None:
            self.cache.invalidate(user_id)

        if isinstance(event, LikeFeedback):
            await self._apply_outfit(user_id, event.outfit, event.occasion, InteractionKind.LIKED)
            if event.exploratory:
                await self.exploration.record_outcome(user_id, "liked")
        elif isinstance(event, WearFeedback):
            await self._apply_outfit(user_id, event.outfit, event.occasion, InteractionKind.WORN)
            if event.exploratory:
                await self.exploration.record_outcome(user_id, "worn")
        elif isinstance(event, IgnoreSessionFeedback):
            await self._apply_ignore(user_id, event)
        elif isinstance(event, ShoppingClickFeedback):
            await self._apply_shopping_click(user_id, event)
        else:
            raise PreferenceValidationError(
                f"Unsupported feedback event: {type(event).__name__}",
                field="event",
                value=event,
            )

    async def _load(self, user_id: str) -> Dict[str, Any]:
        result = await self.adapter.read_preferences(user_id)
        if isinstance(result, StoreFailure):
            raise StoreWriteError(
                f"Cannot update preferences without current state: {result.error.message}",
                collection="preferences",
                user_id=user_id,
            ) from result.error
        if isinstance(result, NotFound):
            return {}
        return result.value

    def _prepare(self, user_id: str, update: Dict[str, Any], now: datetime) -> Dict[str, Any]:
        update["updated_at"] = now.isoformat()
        self.adapter.validate_preference_update(user_id, update)
        return update

    async def _commit(self, user_id: str, interaction: Interaction, update: Dict[str, Any]) -> None:
        # Only validated updates reach this point, so the log never holds a rejected action.
        await self.adapter.append_interaction(user_id, interaction)
        await self.adapter.write_preferences(user_id, update)

    # ============================================
    # Like / wear
    # ============================================

    def outfit_update(
        self,
        document: Dict[str, Any],
        outfit: OutfitCandidate,
        occasion: Optional[str],
        kind: InteractionKind,
        now: datetime,
    ) -> Dict[str, Any]:
        """
        Build the preference increment for a liked or worn outfit.

        Wearing is the stronger signal: its combination, occasion colors and
        seasonal colors move to the front instead of being appended.
        """
        weight = SIGNAL_WEIGHTS[kind]
        worn = kind is InteractionKind.WORN
        merge = _move_to_front if worn else _append_new
        colors = _colors(outfit)

        color_weights = dict(document.get("color_weights") or {})
        for color in colors:
            color_weights[color] = color_weights.get(color, 0.0) + weight
        style_weights = dict(document.get("style_weights") or {})
        for style in candidate_styles(outfit):
            style_weights[style] = style_weights.get(style, 0.0) + weight

        update: Dict[str, Any] = {"color_weights": color_weights, "style_weights": style_weights}

        combo = sorted(colors[:3])
        if len(combo) >= 2:
            combos = [list(c) for c in document.get("proven_combinations") or []]
            if worn:
                combos = [combo] + [c for c in combos if sorted(c) != combo]
            elif all(sorted(c) != combo for c in combos):
                combos.append(combo)
            update["proven_combinations"] = combos

        occasion = (occasion or outfit.occasion).strip().lower()
        if occasion:
            current = (document.get("occasion_preferences") or {}).get(occasion) or {}
            update["occasion_preferences"] = {
                occasion: {
                    "preferred_colors": merge(current.get("preferred_colors") or [], colors),
                    "preferred_items": merge(current.get("preferred_items") or [], outfit.items),
                }
            }

        season = season_at(now)
        if colors:
            current_colors = (document.get("seasonal_preferences") or {}).get(season) or []
            update["seasonal_preferences"] = {season: merge(current_colors, colors)}

        counter = "total_selections" if worn else "total_likes"
        update[counter] = int(document.get(counter) or 0) + 1
        return update

    async def _apply_outfit(
        self,
        user_id: str,
        outfit: OutfitCandidate,
        occasion: Optional[str],
        kind: InteractionKind,
    ) -> None:
        now = self.clock()
        document = await self._load(user_id)

        _check_outfit_tokens([outfit])
        update = self._prepare(user_id, self.outfit_update(document, outfit, occasion, kind, now), now)
        record_type = WornInteraction if kind is InteractionKind.WORN else LikedInteraction

        await self._commit(user_id, record_type(timestamp=now, outfit=_snapshot(outfit, occasion)), update)
        logger.info(f"Applied {kind.value} feedback for {user_id} on outfit {outfit.id}")

    # ============================================
    # Ignored session
    # ============================================

    async def _apply_ignore(self, user_id: str, event: IgnoreSessionFeedback) -> None:
        if not event.outfits:
            logger.debug(f"Empty ignored session for {user_id}, nothing to record")
            return

        now = self.clock()
        document = await self._load(user_id)

        _check_outfit_tokens(event.outfits)

        color_weights = dict(document.get("color_weights") or {})
        for outfit in event.outfits:
            for color in _colors(outfit):
                color_weights[color] = color_weights.get(color, 0.0) + SIGNAL_WEIGHTS[InteractionKind.IGNORED]
        update = self._prepare(user_id, {"color_weights": color_weights}, now)

        await self._commit(
            user_id,
            IgnoredSessionInteraction(timestamp=now, outfits=[_snapshot(o) for o in event.outfits]),
            update,
        )

        await self.blocklists.analyze_ignored_session(user_id, event.outfits)
        await self.blocklists.promote_soft_to_hard(user_id)
        logger.info(f"Applied ignored session of {len(event.outfits)} outfits for {user_id}")

    # ============================================
    # Shopping click
    # ============================================

    async def _apply_shopping_click(self, user_id: str, event: ShoppingClickFeedback) -> None:
        now = self.clock()
        document = await self._load(user_id)
        platform = (event.platform or "unknown").strip().lower() or "unknown"

        current = (document.get("shopping_clicks") or {}).get(platform) or {}
        items = current.get("items") or []
        if event.item:
            items = _append_new(items, [event.item])
        update: Dict[str, Any] = {
            "shopping_clicks": {platform: {"count": int(current.get("count") or 0) + 1, "items": items}}
        }

        if event.estimated_price:
            low, high = event.estimated_price * 0.7, event.estimated_price * 1.3
            price_range = document.get("price_range")
            if price_range:
                low = min(float(price_range["min"]), low)
                high = max(float(price_range["max"]), high)
            update["price_range"] = {"min": low, "max": high}

        update = self._prepare(user_id, update, now)

        await self._commit(
            user_id,
            ShoppingClickInteraction(
                timestamp=now,
                platform=platform,
                item=event.item,
                estimated_price=event.estimated_price,
            ),
            update,
        )
        logger.info(f"Recorded shopping click on {platform} for {user_id}")
