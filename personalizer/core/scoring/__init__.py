# Scoring Module
"""
Candidate scoring against aggregated preferences.
"""

from .match_scorer import MatchScorer, MatchWeights

__all__ = ["MatchScorer", "MatchWeights"]
