"""
Abstract interface for the persistent preference store, plus the
result values read operations are converted into.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from personalizer.utils.exceptions import StoreError

T = TypeVar("T")


class PreferenceStoreInterface(ABC):
    """
    Abstract base class for document stores holding per-user state.

    One preference, blocklist, anti-repetition and exploration-metrics
    document per user, plus an append-only interaction log partitioned
    by kind. Implementations raise ``StoreError`` subclasses on failure
    and return ``None`` for documents that do not exist.
    """

    @abstractmethod
    async def read_preferences(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Return the user's preference document, or None if absent."""
        pass

    @abstractmethod
    async def write_preferences(self, user_id: str, update: Dict[str, Any]) -> None:
        """
        Merge a partial update into the preference document.

        Nested mappings are merged key by key; other values replace the
        stored value. The document is created if it does not exist.
        """
        pass

    @abstractmethod
    async def read_interaction_log(
        self,
        user_id: str,
        kind: str,
        limit: int,
        newest_first: bool = True,
    ) -> List[Dict[str, Any]]:
        """
        Read at most ``limit`` records of one interaction kind.

        Args:
            user_id: Owner of the log.
            kind: Log partition ("liked", "worn", "ignored", "shopping_click").
            limit: Maximum number of records returned.
            newest_first: Order by timestamp, most recent first.
        """
        pass

    @abstractmethod
    async def append_interaction(self, user_id: str, kind: str, record: Dict[str, Any]) -> None:
        """Append one record to an interaction log partition."""
        pass

    @abstractmethod
    async def read_blocklists(self, user_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def write_blocklists(self, user_id: str, update: Dict[str, Any]) -> None:
        """Merge a partial update into the blocklist document."""
        pass

    @abstractmethod
    async def read_anti_repetition_cache(self, user_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def write_anti_repetition_cache(self, user_id: str, cache: Dict[str, Any]) -> None:
        """Replace the anti-repetition cache document."""
        pass

    @abstractmethod
    async def read_exploration_metrics(self, user_id: str) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def write_exploration_metrics(self, user_id: str, metrics: Dict[str, Any]) -> None:
        """Replace the exploration metrics document."""
        pass


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A successful read."""

    value: T


@dataclass(frozen=True)
class NotFound:
    """The requested document does not exist yet (a new user)."""

    collection: str = ""


@dataclass(frozen=True)
class StoreFailure:
    """The read failed; callers degrade to default structures."""

    error: StoreError


StoreResult = Union[Ok[T], NotFound, StoreFailure]
