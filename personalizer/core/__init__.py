# Core Business Logic
"""
Core personalization logic: aggregation, blocklists, scoring,
diversification and feedback.
"""

from .blocklist import BlocklistManager
from .cache import PreferenceCache
from .diversification import AntiRepetitionManager, Diversifier, ExplorationController
from .feedback import FeedbackProcessor
from .preferences import PreferenceAggregator
from .scoring import MatchScorer, MatchWeights
from .use_cases import PersonalizationContext, PersonalizationService

__all__ = [
    "AntiRepetitionManager",
    "BlocklistManager",
    "Diversifier",
    "ExplorationController",
    "FeedbackProcessor",
    "MatchScorer",
    "MatchWeights",
    "PersonalizationContext",
    "PersonalizationService",
    "PreferenceAggregator",
    "PreferenceCache",
]
