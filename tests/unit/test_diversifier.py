"""Unit tests for three-slot diversification."""

import pytest

from personalizer.core.diversification.diversifier import Diversifier
from personalizer.domain.entities.match import MatchBreakdown, MatchCategory, OutfitMatch


@pytest.fixture
def diversifier(app_config):
    return Diversifier(app_config.diversification, app_config.scoring)


@pytest.fixture
def scored(make_outfit):
    """Build matches with the given scores; ids are s<score>-<index>."""

    def _scored(*scores):
        return [
            OutfitMatch(
                outfit=make_outfit(outfit_id=f"s{score}-{i}"),
                match_score=score,
                breakdown=MatchBreakdown(score, score, score, score),
                category=MatchCategory.EXPLORING,
            )
            for i, score in enumerate(scores)
        ]

    return _scored


def scores_of(matches):
    return [m.match_score for m in matches]


class TestDiversify:
    """Test slot selection across score distributions."""

    def test_spread_distribution(self, diversifier, scored):
        """Test a spread of scores yields one pick per bucket."""
        result = diversifier.diversify(scored(30, 92, 60, 95, 80))
        assert scores_of(result) == [95, 80, 60]

    def test_all_high_scores(self, diversifier, scored):
        """No exploring bucket: the explore slot falls back to the best leftover."""
        result = diversifier.diversify(scored(98, 95, 93, 91, 70))
        assert scores_of(result) == [98, 70, 95]

    def test_all_low_scores(self, diversifier, scored):
        """Test low-only candidates still fill three slots."""
        result = diversifier.diversify(scored(60, 40, 30, 20))
        assert scores_of(result) == [60, 40, 30]

    def test_flat_range_labels_top_three(self, diversifier, scored):
        """Test near-equal scores fall back to the top three in order."""
        result = diversifier.diversify(scored(77, 80, 78, 79))

        assert scores_of(result) == [80, 79, 78]
        assert [m.category for m in result] == [
            MatchCategory.PERFECT,
            MatchCategory.GREAT,
            MatchCategory.EXPLORING,
        ]

    def test_flat_range_does_not_mutate_inputs(self, diversifier, scored):
        """Test relabelling returns copies."""
        matches = scored(50, 51, 52)
        diversifier.diversify(matches)
        assert all(m.category is MatchCategory.EXPLORING for m in matches)

    @pytest.mark.parametrize("count", [0, 1, 2])
    def test_too_few_candidates_returned_unchanged(self, diversifier, scored, count):
        """Test fewer than three candidates pass through."""
        matches = scored(*[90, 40][:count])
        assert diversifier.diversify(matches) == matches

    @pytest.mark.parametrize(
        "scores",
        [
            (95, 95, 95, 10),
            (91, 90, 12, 11, 10),
            (100, 0, 0),
            (72, 71, 70, 40, 40, 40),
            (55, 54, 53, 52, 51, 20),
        ],
    )
    def test_three_distinct_results(self, diversifier, scored, scores):
        """Test no candidate fills two slots."""
        result = diversifier.diversify(scored(*scores))
        assert len(result) == 3
        assert len({m.outfit_id for m in result}) == 3


class TestBucket:
    @pytest.mark.parametrize(
        "score,bucket",
        [(90, "perfect"), (89, "great"), (70, "great"), (69, "exploring"), (50, "exploring"), (49, "poor")],
    )
    def test_thresholds(self, diversifier, score, bucket):
        assert diversifier.bucket(score) == bucket
