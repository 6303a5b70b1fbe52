"""
Structured error types for fieldtally.

Every failure that can leave the data-access layer is one of a small set of
typed errors. Each carries enough metadata for the retry loop to decide
whether to try again and for the logger to emit a useful structured event.

Manifesto:
    - **Typed taxonomy:** Transport, HTTP status, API semantic, malformed payload
    - **Explicit retry semantics:** Each error knows if it's retryable
    - **Rich context:** Errors carry the remote action, URL and status
    - **Error chaining:** Preserve the underlying httpx/json exception as cause

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                     FieldTallyError                          │
        │  (category, retryable, context, cause)                      │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  TransientError        HttpStatusError     SourceError       │
        │  (retryable=True)      (status-driven)     (never retried)   │
        │       │                                         │            │
        │  TransportTimeout                        ApiSemanticError    │
        │  TransportNetworkError                   MalformedPayload    │
        │                                                              │
        │  ConfigError (CONFIG)                                        │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> error = TransportTimeout("getLeaderboard timed out after 15s")
    >>> error.retryable
    True
    >>> HttpStatusError(503).retryable
    True
    >>> HttpStatusError(404).retryable
    False
    >>> ApiSemanticError("Sheet not found").with_context(action="getFullLog").context.action
    'getFullLog'

Tags:
    error-handling, exception-hierarchy, retry-logic, error-context, fieldtally
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

RETRYABLE_STATUSES: frozenset[int] = frozenset({408, 429, 500, 502, 503, 504})


class ErrorCategory(str, Enum):
    """Error categories used for classification and log routing."""

    NETWORK = "NETWORK"  # Timeout, connection, DNS
    HTTP = "HTTP"  # Non-2xx status from the remote store
    SOURCE = "SOURCE"  # Remote store answered with success=false
    PARSE = "PARSE"  # Payload could not be decoded
    CONFIG = "CONFIG"  # Missing or invalid settings
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        action: Remote action name (e.g. ``getFullLog``)
        url: URL that was being accessed (query string excluded)
        http_status: HTTP status code if applicable
        attempt: 1-based attempt number on which the error was raised
        metadata: Additional key-value pairs
    """

    action: str | None = None
    url: str | None = None
    http_status: int | None = None
    attempt: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["action", "url", "http_status", "attempt"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class FieldTallyError(Exception):
    """
    Base exception for all fieldtally errors.

    Subclasses set ``default_category`` and ``default_retryable`` so callers
    rarely need to pass them explicitly.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> FieldTallyError:
        """
        Add context to this error (fluent API).

        Usage:
            raise MalformedPayload("bad json").with_context(action="getTasks")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# TRANSIENT ERRORS (Retryable)
# =============================================================================


class TransientError(FieldTallyError):
    """Temporary transport-level failure that may succeed on retry."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class TransportTimeout(TransientError):
    """A single attempt exceeded its wall-clock timeout."""


class TransportNetworkError(TransientError):
    """Connection refused, DNS failure, reset or any other transport error."""


# =============================================================================
# HTTP STATUS ERRORS
# =============================================================================


class HttpStatusError(FieldTallyError):
    """
    Non-2xx response from the remote store.

    Retryable only for statuses in :data:`RETRYABLE_STATUSES`; any other
    status is terminal.
    """

    default_category = ErrorCategory.HTTP

    def __init__(self, status: int, body: str = "", **kwargs: Any):
        kwargs.setdefault("retryable", status in RETRYABLE_STATUSES)
        super().__init__(f"HTTP {status}: {body or 'Request failed'}", **kwargs)
        self.status = status
        self.body = body
        self.context.http_status = status


# =============================================================================
# SOURCE ERRORS (Never retried)
# =============================================================================


class SourceError(FieldTallyError):
    """The remote store answered, but the answer is unusable."""

    default_category = ErrorCategory.SOURCE
    default_retryable = False


class ApiSemanticError(SourceError):
    """Envelope reported ``success: false``."""


class MalformedPayload(SourceError):
    """Response body could not be decoded into an envelope."""

    default_category = ErrorCategory.PARSE


# =============================================================================
# CONFIG ERRORS
# =============================================================================


class ConfigError(FieldTallyError):
    """Missing or invalid configuration."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


def is_retryable(error: BaseException) -> bool:
    """Return True if ``error`` is a fieldtally error flagged retryable."""
    return isinstance(error, FieldTallyError) and error.retryable


__all__ = [
    "RETRYABLE_STATUSES",
    "ErrorCategory",
    "ErrorContext",
    "FieldTallyError",
    "TransientError",
    "TransportTimeout",
    "TransportNetworkError",
    "HttpStatusError",
    "SourceError",
    "ApiSemanticError",
    "MalformedPayload",
    "ConfigError",
    "is_retryable",
]
