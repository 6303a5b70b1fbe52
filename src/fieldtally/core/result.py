"""
Result envelope for consistent success/failure handling.

``ResilientFetcher.fetch`` returns ``Ok(payload)`` or ``Err(error)`` instead
of raising, so callers that want to branch on failure (the CLI, the
background refresher) can do so without try/except, and callers that want
exceptions can ``unwrap()``.

Examples:
    >>> from fieldtally.core.result import Ok, Err
    >>> Ok(10).unwrap()
    10
    >>> Err(ValueError("oops")).is_err()
    True
    >>> match Ok({"rows": []}):
    ...     case Ok(value):
    ...         print(value)
    ...     case Err(error):
    ...         print(error)
    {'rows': []}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """Failed result containing an error."""

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the error. Use only when you're sure it's Ok."""
        raise self.error

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]


__all__ = ["Ok", "Err", "Result"]
