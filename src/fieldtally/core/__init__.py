"""fieldtally core -- errors, results, logging, settings and caching.

Architecture::

    Layer 1 -- Type System & Errors
        errors.py          Structured error hierarchy (FieldTallyError, TransientError)
        result.py          Result[T] envelope (Ok / Err)

    Layer 2 -- Ambient
        logging.py         structlog configuration and get_logger
        settings.py        pydantic-settings (FIELDTALLY_* env vars)

    Layer 3 -- Caching
        ttl.py             Per-resource-class TTL pairs
        cache.py           Memory and durable tiers, key-value stores
        orchestrator.py    get_or_fetch with stale-while-revalidate
"""

from fieldtally.core.errors import (
    ApiSemanticError,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    FieldTallyError,
    HttpStatusError,
    MalformedPayload,
    SourceError,
    TransientError,
    TransportNetworkError,
    TransportTimeout,
    is_retryable,
)
from fieldtally.core.result import Err, Ok, Result

__all__ = [
    "ApiSemanticError",
    "ConfigError",
    "Err",
    "ErrorCategory",
    "ErrorContext",
    "FieldTallyError",
    "HttpStatusError",
    "MalformedPayload",
    "Ok",
    "Result",
    "SourceError",
    "TransientError",
    "TransportNetworkError",
    "TransportTimeout",
    "is_retryable",
]
