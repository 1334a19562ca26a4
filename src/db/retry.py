"""Bounded exponential-backoff retry for persistence calls.

One policy object, built from settings, wraps reads at the persistence
boundary instead of ad hoc sleep loops at each call site. Only transient
driver failures are retried; domain errors and missing rows surface
immediately.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy.exc import OperationalError

from src.config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry transient persistence errors with exponential backoff."""

    max_attempts: int = 3
    base_delay: float = 0.1
    retry_on: tuple[type[BaseException], ...] = (OperationalError,)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.PERSISTENCE_RETRY_ATTEMPTS,
            base_delay=settings.PERSISTENCE_RETRY_BASE_DELAY,
        )

    def compute_backoff_delays(self) -> list[float]:
        """Delays slept between attempts (one fewer than max_attempts)."""
        return [self.base_delay * (2**i) for i in range(self.max_attempts - 1)]

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Await ``operation()``, retrying on ``retry_on`` errors.

        The last error is re-raised once attempts are exhausted.
        """
        delays = self.compute_backoff_delays()
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except self.retry_on as exc:
                if attempt >= self.max_attempts:
                    raise
                delay = delays[attempt - 1]
                logger.warning(
                    "Transient persistence error (attempt %d/%d), retrying in %.2fs: %s",
                    attempt, self.max_attempts, delay, exc,
                )
                await asyncio.sleep(delay)
        raise RuntimeError("unreachable")  # pragma: no cover
