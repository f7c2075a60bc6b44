"""Bounded retry with linear backoff, run inside the caller's own task."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from ..errors import TransientFetchError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry transient failures ``max_attempts`` times, sleeping ``base_delay * attempt``.

    Only the exception types in ``retry_on`` are retried. Anything else,
    and the last transient failure, propagates to the awaiting caller.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    retry_on: tuple[type[BaseException], ...] = (TransientFetchError,)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay must be non-negative, got {self.base_delay}")

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * attempt

    async def run(self, operation: Callable[[], Awaitable[T]], description: str = "operation") -> T:
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except self.retry_on as e:
                if attempt == self.max_attempts:
                    logger.error(f"{description} failed after {attempt} attempt(s): {e}")
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    f"{description} failed (attempt {attempt}/{self.max_attempts}): {e}, "
                    f"retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)
        raise AssertionError("unreachable")
