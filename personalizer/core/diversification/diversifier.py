"""
Three-slot diversification of scored candidates.

Picks an exploit, an adjacent and an explore candidate from a scored set,
approximating a 70/20/10 split whenever the score distribution allows.
Each slot has a fallback ladder so three distinct candidates are returned
whenever at least three are given.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from personalizer.domain.entities.match import MatchCategory, OutfitMatch
from personalizer.utils.config import DiversificationConfig, ScoringConfig, get_config
from personalizer.utils.logger import get_logger

logger = get_logger(__name__)

SLOT_CATEGORIES = (MatchCategory.PERFECT, MatchCategory.GREAT, MatchCategory.EXPLORING)


class Diversifier:
    """
    Selects three distinct matches from a scored list.

    Attributes:
        config: Minimum candidates and the flat-score range.
        scoring: Bucket thresholds.
    """

    def __init__(
        self,
        config: Optional[DiversificationConfig] = None,
        scoring: Optional[ScoringConfig] = None,
    ):
        self.config = config or get_config().diversification
        self.scoring = scoring or get_config().scoring

    def bucket(self, score: int) -> str:
        if score >= self.scoring.perfect_threshold:
            return "perfect"
        if score >= self.scoring.great_threshold:
            return "great"
        if score >= self.scoring.exploring_threshold:
            return "exploring"
        return "poor"

    def diversify(self, matches: Sequence[OutfitMatch]) -> List[OutfitMatch]:
        """
        Select the presented set.

        Args:
            matches: Scored candidates in any order.

        Returns:
            Three matches ordered exploit, adjacent, explore. Fewer than
            three inputs are returned unchanged.
        """
        if len(matches) < self.config.min_candidates:
            logger.warning(
                f"Only {len(matches)} candidates, need {self.config.min_candidates} to diversify"
            )
            return list(matches)

        ranked = sorted(matches, key=lambda m: m.match_score, reverse=True)
        score_range = ranked[0].match_score - ranked[-1].match_score

        if score_range <= self.config.flat_score_range:
            logger.debug(f"Flat score range ({score_range}), labelling top three sequentially")
            return [
                replace(match, category=category)
                for match, category in zip(ranked[:3], SLOT_CATEGORIES)
            ]

        buckets: Dict[str, List[OutfitMatch]] = {"perfect": [], "great": [], "exploring": [], "poor": []}
        for match in ranked:
            buckets[self.bucket(match.match_score)].append(match)

        selected: List[OutfitMatch] = []

        def take(*names: str) -> OutfitMatch:
            for name in names:
                for match in buckets[name]:
                    if not any(match is s for s in selected):
                        return match
            return next(m for m in ranked if not any(m is s for s in selected))

        # Exploit, adjacent, explore
        for names in (("perfect", "great"), ("great", "perfect", "exploring"), ("exploring", "great", "poor")):
            selected.append(take(*names))

        logger.debug(
            f"Diversified {len(ranked)} candidates into "
            f"{[(m.outfit_id, m.match_score) for m in selected]}"
        )
        return selected

