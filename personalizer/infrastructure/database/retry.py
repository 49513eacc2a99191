"""
Exponential backoff for transient store write failures.

Example:
    >>> policy = RetryPolicy(max_retries=3, backoff_base=0.05)
    >>> await policy.run(lambda: store.write_preferences(user_id, update),
    ...                  collection="preferences", user_id=user_id)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterator, Optional, TypeVar

from personalizer.utils.config import StoreConfig
from personalizer.utils.exceptions import StoreError, StoreWriteError
from personalizer.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """
    Bounded retry with exponential backoff.

    Attributes:
        max_retries: Retries after the first attempt.
        backoff_base: Delay before the first retry, in seconds.
        backoff_factor: Multiplier applied to the delay after each retry.
        max_backoff: Upper bound on a single delay.
    """

    max_retries: int = 3
    backoff_base: float = 0.05
    backoff_factor: float = 2.0
    max_backoff: float = 1.0
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    @classmethod
    def from_config(cls, config: StoreConfig) -> "RetryPolicy":
        return cls(
            max_retries=config.max_retries,
            backoff_base=config.backoff_base,
            backoff_factor=config.backoff_factor,
            max_backoff=config.max_backoff,
        )

    def delays(self) -> Iterator[float]:
        """Yield the delay before each retry."""
        delay = self.backoff_base
        for _ in range(self.max_retries):
            yield min(delay, self.max_backoff)
            delay *= self.backoff_factor

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        collection: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> T:
        """
        Run a write, retrying transient store errors.

        Args:
            operation: Zero-argument factory returning a fresh awaitable.
            collection: Collection name for error context.
            user_id: User id for error context.

        Raises:
            StoreWriteError: When retries are exhausted or the failure is
                not transient.
        """
        attempt = 0
        delays = self.delays()
        while True:
            attempt += 1
            try:
                return await operation()
            except StoreError as e:
                if not e.transient:
                    raise StoreWriteError(
                        f"Write to {collection} failed: {e.message}",
                        attempts=attempt,
                        collection=collection,
                        user_id=user_id,
                    ) from e

                delay = next(delays, None)
                if delay is None:
                    raise StoreWriteError(
                        f"Write to {collection} failed after {attempt} attempts: {e.message}",
                        attempts=attempt,
                        collection=collection,
                        user_id=user_id,
                    ) from e

                logger.warning(
                    f"Transient failure writing {collection} (attempt {attempt}), "
                    f"retrying in {delay:.2f}s: {e}"
                )
                await self.sleep(delay)
