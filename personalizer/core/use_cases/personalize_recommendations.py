# Personalize Recommendations Use Case
"""
Orchestrator-facing personalization service.

Wires the aggregator, blocklists, scorer, diversifier, anti-repetition cache
and exploration controller behind the operations a recommendation
orchestrator calls:

- get_personalization_context: preferences, blocklists and season for a user
- score_and_diversify: rank generated candidates and pick three to present
- on_like / on_wear / on_ignore_session / on_shopping_click: feedback hooks

Read failures never reach the caller; the service degrades to
non-personalized ranking instead.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from personalizer.core.blocklist.manager import BlocklistManager, passes_filters
from personalizer.core.cache import PreferenceCache
from personalizer.core.diversification.anti_repetition import AntiRepetitionManager
from personalizer.core.diversification.diversifier import Diversifier
from personalizer.core.diversification.exploration import ExplorationController
from personalizer.core.feedback import FeedbackProcessor
from personalizer.core.normalization.tokens import candidate_colors, candidate_styles, occasion_bucket, season_at
from personalizer.core.preferences.aggregator import PreferenceAggregator
from personalizer.core.scoring.match_scorer import MatchScorer
from personalizer.domain.entities.blocklist import Blocklists, FilterResult
from personalizer.domain.entities.exploration import PatternLockStatus
from personalizer.domain.entities.feedback import (
    IgnoreSessionFeedback,
    LikeFeedback,
    ShoppingClickFeedback,
    WearFeedback,
)
from personalizer.domain.entities.match import MatchCategory, OutfitMatch
from personalizer.domain.entities.outfit import OutfitCandidate
from personalizer.domain.entities.preferences import ComprehensivePreferences
from personalizer.domain.interfaces.store_interface import PreferenceStoreInterface
from personalizer.infrastructure.database.store_adapter import StoreAdapter
from personalizer.utils.clock import Clock, utc_now
from personalizer.utils.config import AppConfig, get_config
from personalizer.utils.exceptions import StoreError
from personalizer.utils.logger import get_logger
from personalizer.utils.numeric import clamp
from personalizer.utils.validators import validate_user_id

logger = get_logger(__name__)

CandidateInput = Union[OutfitCandidate, Dict[str, Any]]


@dataclass
class PersonalizationContext:
    """Everything the orchestrator needs to personalize one request."""

    user_id: str
    preferences: ComprehensivePreferences
    blocklists: Blocklists
    season: str
    occasion: Optional[str]
    occasion_bucket: str
    exploration_level: int
    pattern_lock: PatternLockStatus


def _as_candidate(candidate: CandidateInput) -> OutfitCandidate:
    if isinstance(candidate, OutfitCandidate):
        return candidate
    return OutfitCandidate.from_dict(candidate)


class PersonalizationService:
    """
    Personalization engine facade.

    This service:
    1. Builds (or reuses cached) preferences and reads blocklists
    2. Scores every candidate and removes hard-blocked ones
    3. Holds back repeats while enough fresh candidates remain
    4. Diversifies into exploit / adjacent / explore picks
    5. Records what was presented for anti-repetition and exploration
    """

    def __init__(
        self,
        store: PreferenceStoreInterface,
        config: Optional[AppConfig] = None,
        clock: Optional[Clock] = None,
        cache: Optional[PreferenceCache] = None,
    ):
        """
        Initialize the service.

        Args:
            store: Document store holding all per-user state.
            config: Application configuration. Defaults to get_config().
            clock: Source of "now". Defaults to UTC wall clock.
            cache: Preference cache. A private one is created if omitted.
        """
        self.config = config or get_config()
        self.clock = clock or utc_now
        self.adapter = StoreAdapter(store, self.config.store)
        self.cache = cache if cache is not None else PreferenceCache(self.config.cache, self.clock)

        self.aggregator = PreferenceAggregator(self.adapter, self.config.aggregation, self.clock)
        self.blocklists = BlocklistManager(self.adapter, self.config.blocklist, self.clock)
        self.scorer = MatchScorer(self.config.scoring, self.clock)
        self.diversifier = Diversifier(self.config.diversification, self.config.scoring)
        self.anti_repetition = AntiRepetitionManager(self.adapter, self.config.diversification, self.clock)
        self.exploration = ExplorationController(self.adapter, self.config.exploration, self.clock)
        self.feedback = FeedbackProcessor(
            self.adapter, self.blocklists, self.exploration, self.cache, self.clock
        )

    # ============================================
    # Context
    # ============================================

    async def get_preferences(self, user_id: str) -> ComprehensivePreferences:
        """Cached preferences, aggregated on a miss."""
        cached = self.cache.get(user_id)
        if cached is not None:
            return cached
        preferences = await self.aggregator.aggregate(user_id)
        # Empty profiles are not cached so a recovered store is used on the next call.
        if not preferences.is_empty():
            self.cache.set(user_id, preferences)
        return preferences

    async def get_personalization_context(
        self, user_id: str, occasion: Optional[str] = None
    ) -> PersonalizationContext:
        user_id = validate_user_id(user_id)
        preferences, blocklists, metrics = await asyncio.gather(
            self.get_preferences(user_id),
            self.blocklists.get(user_id),
            self.exploration.get_metrics(user_id),
        )
        return PersonalizationContext(
            user_id=user_id,
            preferences=preferences,
            blocklists=blocklists,
            season=season_at(self.clock()),
            occasion=occasion,
            occasion_bucket=occasion_bucket(occasion),
            exploration_level=metrics.adaptive_level,
            pattern_lock=self.exploration.detect_pattern_lock(user_id, preferences),
        )

    # ============================================
    # Ranking
    # ============================================

    def _score(
        self,
        outfit: OutfitCandidate,
        context: PersonalizationContext,
        now: datetime,
    ) -> Tuple[OutfitMatch, FilterResult]:
        match = self.scorer.score(outfit, context.preferences, context.blocklists, now)
        verdict = passes_filters(context.blocklists, outfit, now)
        if verdict.hard_blocked:
            logger.debug(f"Candidate {outfit.id} hard-blocked: {verdict.reason}")
            match = replace(match, match_score=0, category=MatchCategory.EXPLORING)
        return match, verdict

    async def score_candidates(
        self, candidates: Sequence[CandidateInput], user_id: str
    ) -> List[OutfitMatch]:
        """Score candidates without diversifying; hard-blocked ones score 0."""
        context = await self.get_personalization_context(user_id)
        now = self.clock()
        return [self._score(_as_candidate(c), context, now)[0] for c in candidates]

    async def score_and_diversify(
        self,
        candidates: Sequence[CandidateInput],
        user_id: str,
        occasion: Optional[str] = None,
    ) -> List[OutfitMatch]:
        """
        Rank candidates and select the presented set.

        Args:
            candidates: Generated outfits, as entities or generator payloads.
            user_id: User the set is presented to.
            occasion: Occasion of the request, if known.

        Returns:
            Up to three matches ordered exploit, adjacent, explore.
        """
        outfits = [_as_candidate(c) for c in candidates]
        context = await self.get_personalization_context(user_id, occasion)
        recent = await self.anti_repetition.get(context.user_id)
        now = self.clock()

        admissible: List[OutfitMatch] = []
        held_back: List[OutfitMatch] = []
        for outfit in outfits:
            match, verdict = self._score(outfit, context, now)
            if verdict.hard_blocked:
                continue
            if not verdict.passes or self.anti_repetition.is_repetitive(outfit, recent):
                held_back.append(match)
            else:
                admissible.append(match)

        if held_back and len(admissible) < self.config.diversification.min_candidates:
            penalty = self.config.scoring.repetition_penalty
            logger.info(
                f"Keeping {len(held_back)} repeated candidates for {context.user_id} "
                f"with a {penalty}-point penalty"
            )
            for match in held_back:
                score = clamp(match.match_score - penalty)
                admissible.append(replace(match, match_score=score, category=self.scorer.categorize(score)))
        elif held_back:
            logger.debug(f"Held back {len(held_back)} repeated candidates for {context.user_id}")

        presented = self.diversifier.diversify(admissible)
        if context.pattern_lock.is_locked:
            presented = self._force_discovery(presented, admissible, context)

        await self._record_presented(context.user_id, presented)
        return presented

    def _force_discovery(
        self,
        presented: List[OutfitMatch],
        admissible: List[OutfitMatch],
        context: PersonalizationContext,
    ) -> List[OutfitMatch]:
        """Swap the explore pick for the lowest-scored unselected candidate."""
        if len(presented) < 3:
            return presented
        remaining = [m for m in admissible if not any(m is p for p in presented)]
        if not remaining:
            return presented

        pick = min(remaining, key=lambda m: m.match_score)
        logger.info(
            f"Pattern lock for {context.user_id} ({context.pattern_lock.lock_reason}), "
            f"forcing discovery pick {pick.outfit_id}"
        )
        explanation = MatchScorer.explain(MatchCategory.EXPLORING, pick.breakdown, context.preferences)
        return presented[:2] + [replace(pick, category=MatchCategory.EXPLORING, explanation=explanation)]

    async def _record_presented(self, user_id: str, presented: List[OutfitMatch]) -> None:
        if not presented:
            return
        try:
            await self.anti_repetition.record_many(user_id, [m.outfit for m in presented])
            for match in presented:
                await self.blocklists.add_temporary(
                    user_id, candidate_colors(match.outfit), candidate_styles(match.outfit)
                )
            if len(presented) >= 3:
                await self.exploration.record_outcome(user_id, "shown")
        except StoreError as e:
            logger.warning(f"Could not record presented set for {user_id}: {e}")

    # ============================================
    # Feedback hooks
    # ============================================

    async def on_like(
        self,
        user_id: str,
        outfit: CandidateInput,
        occasion: Optional[str] = None,
        exploratory: bool = False,
    ) -> None:
        await self.feedback.apply_feedback(
            user_id, LikeFeedback(_as_candidate(outfit), occasion=occasion, exploratory=exploratory)
        )

    async def on_wear(
        self,
        user_id: str,
        outfit: CandidateInput,
        occasion: Optional[str] = None,
        exploratory: bool = False,
    ) -> None:
        await self.feedback.apply_feedback(
            user_id, WearFeedback(_as_candidate(outfit), occasion=occasion, exploratory=exploratory)
        )

    async def on_ignore_session(self, user_id: str, outfits: Sequence[CandidateInput]) -> None:
        await self.feedback.apply_feedback(
            user_id, IgnoreSessionFeedback([_as_candidate(o) for o in outfits])
        )

    async def on_shopping_click(
        self,
        user_id: str,
        platform: str,
        item: str = "",
        estimated_price: Optional[float] = None,
    ) -> None:
        await self.feedback.apply_feedback(
            user_id, ShoppingClickFeedback(platform=platform, item=item, estimated_price=estimated_price)
        )
