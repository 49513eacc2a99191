# Database Infrastructure
"""
Document store implementations and the policy adapter in front of them.
"""

from .json_store import JsonFileStore
from .memory_store import InMemoryPreferenceStore
from .retry import RetryPolicy
from .store_adapter import StoreAdapter

__all__ = ["InMemoryPreferenceStore", "JsonFileStore", "RetryPolicy", "StoreAdapter"]
