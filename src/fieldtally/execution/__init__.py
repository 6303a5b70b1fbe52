"""Retry and timeout primitives used by the fetcher."""

from fieldtally.execution.retry import FixedScheduleBackoff, NoRetry, RetryContext, RetryStrategy
from fieldtally.execution.timeout import TimeoutExpired, with_deadline_async

__all__ = [
    "FixedScheduleBackoff",
    "NoRetry",
    "RetryContext",
    "RetryStrategy",
    "TimeoutExpired",
    "with_deadline_async",
]
