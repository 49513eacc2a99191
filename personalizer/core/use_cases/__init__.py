# Use Cases
"""
Application use cases exposed to the recommendation orchestrator.
"""

from .personalize_recommendations import PersonalizationContext, PersonalizationService

__all__ = ["PersonalizationContext", "PersonalizationService"]
