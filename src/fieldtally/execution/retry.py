"""Retry strategies and an async retry loop for remote fetches.

The default policy for the row store is a fixed delay schedule: two retries,
waiting 0.4s and then 1.2s. Only errors flagged retryable are retried; any
other error is re-raised on the attempt that produced it.

Example:
    >>> from fieldtally.execution.retry import FixedScheduleBackoff
    >>>
    >>> strategy = FixedScheduleBackoff(delays=(0.4, 1.2))
    >>> [strategy.next_delay(attempt) for attempt in range(2)]
    [0.4, 1.2]
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from fieldtally.core.errors import is_retryable

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


class RetryStrategy(ABC):
    """Abstract base for retry strategies."""

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Calculate delay before next retry attempt.

        Args:
            attempt: Zero-based retry number (0 = first retry)

        Returns:
            Delay in seconds before next attempt
        """
        ...

    @abstractmethod
    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        """Determine if another attempt should be made.

        Args:
            attempt: Number of attempts made so far
            error: The exception that caused the failure
        """
        ...


@dataclass
class FixedScheduleBackoff(RetryStrategy):
    """Retry on a fixed, increasing delay schedule.

    The number of retries is ``len(delays)``, so ``delays=(0.4, 1.2)`` means
    at most three attempts in total. Only errors for which
    :func:`~fieldtally.core.errors.is_retryable` is true are retried.
    """

    delays: tuple[float, ...] = (0.4, 1.2)

    @property
    def max_retries(self) -> int:
        return len(self.delays)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def next_delay(self, attempt: int) -> float:
        if not self.delays:
            return 0.0
        return self.delays[min(attempt, len(self.delays) - 1)]

    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        if attempt >= self.max_attempts:
            return False
        return error is None or is_retryable(error)


@dataclass
class NoRetry(RetryStrategy):
    """No retry - fail immediately."""

    def next_delay(self, attempt: int) -> float:
        return 0.0

    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        return False


@dataclass
class RetryContext:
    """Tracks retry state and runs an async callable under a strategy.

    Example:
        ctx = RetryContext(FixedScheduleBackoff())
        payload = await ctx.run_async(send_once, request)
    """

    strategy: RetryStrategy
    on_retry: Callable[[int, Exception, float], None] | None = None
    sleep: Sleep = asyncio.sleep
    attempt: int = field(default=0, init=False)

    @property
    def attempts(self) -> int:
        """Number of attempts made."""
        return self.attempt

    async def run_async(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Execute async function with retry logic.

        Raises:
            The last exception once the strategy declines another attempt.
        """
        while True:
            self.attempt += 1
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                if not self.strategy.should_retry(self.attempt, e):
                    raise

                delay = self.strategy.next_delay(self.attempt - 1)

                if self.on_retry:
                    self.on_retry(self.attempt, e, delay)

                await self.sleep(delay)


__all__ = ["FixedScheduleBackoff", "NoRetry", "RetryContext", "RetryStrategy", "Sleep"]
