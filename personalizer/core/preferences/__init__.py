"""Preference aggregation from interaction history."""

from .aggregator import PreferenceAggregator, calculate_confidence, recency_weight

__all__ = ["PreferenceAggregator", "calculate_confidence", "recency_weight"]
