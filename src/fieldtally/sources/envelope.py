"""Decoding of the row store's ``{success, data, error, message}`` envelope."""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from fieldtally.core.errors import ApiSemanticError, MalformedPayload

# Anti JSON-hijacking prefix some proxies prepend to JSON bodies.
_HIJACK_PREFIX = re.compile(r"^\)\]\}'\n?")


class ApiEnvelope(BaseModel):
    """Response wrapper returned by every remote action."""

    model_config = ConfigDict(extra="allow")

    success: bool
    data: Any = None
    error: str | None = None
    message: str | None = None

    @field_validator("error", "message", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> str | None:
        """Error codes and objects arrive as numbers or dicts; keep them readable."""
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, dict | list):
            return json.dumps(value, default=str)
        return str(value)

    def failure_message(self, default: str = "Unknown API error") -> str:
        return self.error or self.message or default


def strip_hijack_prefix(text: str) -> str:
    return _HIJACK_PREFIX.sub("", text.strip(), count=1)


def decode_body(text: str, content_type: str = "") -> Any:
    """Parse a response body into JSON.

    JSON content types are parsed as-is; anything else is trimmed and has the
    hijacking prefix stripped first, since the row store often answers with
    ``text/html`` or ``text/plain`` wrappers around valid JSON.

    Raises:
        MalformedPayload: If the text is not valid JSON.
    """
    if "application/json" in content_type.lower():
        candidate = text
    else:
        candidate = strip_hijack_prefix(text)
    try:
        return json.loads(candidate)
    except ValueError as e:
        snippet = candidate.strip()[:200]
        raise MalformedPayload(snippet or "Invalid API response format", cause=e) from e


def parse_envelope(text: str, content_type: str = "") -> ApiEnvelope:
    """Decode ``text`` and validate it as an :class:`ApiEnvelope`.

    Raises:
        MalformedPayload: Not JSON, or JSON that is not an envelope object.
    """
    decoded = decode_body(text, content_type)
    if not isinstance(decoded, dict):
        raise MalformedPayload(f"Expected a JSON object envelope, got {type(decoded).__name__}")
    try:
        return ApiEnvelope.model_validate(decoded)
    except ValidationError as e:
        raise MalformedPayload("Response is not a valid API envelope", cause=e) from e


def unwrap_envelope(envelope: ApiEnvelope, default_message: str = "Unknown API error") -> Any:
    """Return ``envelope.data`` or raise :class:`ApiSemanticError` on ``success: false``."""
    if not envelope.success:
        raise ApiSemanticError(envelope.failure_message(default_message))
    return envelope.data


__all__ = [
    "ApiEnvelope",
    "decode_body",
    "parse_envelope",
    "strip_hijack_prefix",
    "unwrap_envelope",
]
