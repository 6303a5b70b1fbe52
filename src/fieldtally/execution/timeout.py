"""Per-attempt wall-clock deadlines for async operations.

Example:
    async with with_deadline_async(15.0, operation="getFullLog"):
        response = await client.get(url)
    # Raises TimeoutExpired if the block ran longer than 15 seconds
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field


class TimeoutExpired(TimeoutError):
    """Raised when an operation exceeds its deadline.

    Attributes:
        timeout: The timeout value that was exceeded
        elapsed: How long the operation ran before being interrupted
        operation: Name/description of the operation
    """

    def __init__(
        self,
        timeout: float,
        elapsed: float | None = None,
        operation: str = "operation",
    ):
        self.timeout = timeout
        self.elapsed = elapsed
        self.operation = operation

        msg = f"Operation '{operation}' timed out after {timeout}s"
        if elapsed is not None:
            msg += f" (ran for {elapsed:.2f}s)"

        super().__init__(msg)


@dataclass
class DeadlineContext:
    """Deadline state yielded to the guarded block."""

    timeout_seconds: float
    operation: str = "operation"
    start_time: float = field(default_factory=time.monotonic)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start_time


@asynccontextmanager
async def with_deadline_async(seconds: float, operation: str | None = None) -> AsyncIterator[DeadlineContext]:
    """Cancel the enclosed block after ``seconds`` and raise :class:`TimeoutExpired`.

    Raises:
        TimeoutExpired: If the deadline is exceeded
        ValueError: If seconds < 0
    """
    if seconds < 0:
        raise ValueError(f"Timeout must be non-negative, got {seconds}")

    ctx = DeadlineContext(timeout_seconds=seconds, operation=operation or "operation")
    try:
        async with asyncio.timeout(seconds):
            yield ctx
    except TimeoutError as e:
        if isinstance(e, TimeoutExpired):
            raise
        raise TimeoutExpired(timeout=seconds, elapsed=ctx.elapsed, operation=ctx.operation) from e


__all__ = ["DeadlineContext", "TimeoutExpired", "with_deadline_async"]
