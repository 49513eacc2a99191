# Domain Interfaces Package
"""
Abstract interfaces for external collaborators.
"""

from .store_interface import NotFound, Ok, PreferenceStoreInterface, StoreFailure, StoreResult

__all__ = ["NotFound", "Ok", "PreferenceStoreInterface", "StoreFailure", "StoreResult"]
