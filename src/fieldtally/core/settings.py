"""Settings for fieldtally.

All fields can be set via ``FIELDTALLY_*`` environment variables (e.g.
``FIELDTALLY_SCRIPT_URL``) or a ``.env`` file in the working directory.

Examples:
    >>> from fieldtally.core.settings import FieldTallySettings
    >>> settings = FieldTallySettings(script_url="https://example.test/exec")
    >>> settings.request_timeout_seconds
    15.0
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SCRIPT_URL = (
    "https://script.google.com/macros/s/"
    "AKfycbzvhVIEe-P-aqiy1UwOWXPSXan0nwLMD5tkDJhrLX7gXsRn3-nCkB4f3Ov7K12dpH_Z6g/exec"
)


class FieldTallySettings(BaseSettings):
    """fieldtally configuration.

    Fields
    ──────
    script_url              : Remote row-store endpoint (falls back to the built-in default)
    request_timeout_seconds : Wall-clock timeout per fetch attempt
    retry_delays            : Sleep before each retry; its length is the retry count
    cache_namespace         : Key prefix owned by the durable cache tier
    cache_db_path           : SQLite file backing the durable cache tier
    log_level               : Structlog log level
    log_format              : ``console`` or ``json``
    """

    model_config = SettingsConfigDict(
        env_prefix="FIELDTALLY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Remote store ─────────────────────────────────────────────
    script_url: str = ""
    request_timeout_seconds: float = Field(default=15.0, gt=0)
    retry_delays: list[float] = Field(default_factory=lambda: [0.4, 1.2])

    # ── Cache ────────────────────────────────────────────────────
    cache_namespace: str = "fieldtally:cache:"
    cache_db_path: Path = Field(
        default_factory=lambda: Path.home() / ".fieldtally" / "cache.db",
        description="SQLite file backing the durable cache tier",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    @field_validator("retry_delays")
    @classmethod
    def _non_negative_delays(cls, value: list[float]) -> list[float]:
        if any(delay < 0 for delay in value):
            raise ValueError("retry_delays must be non-negative")
        return value

    @field_validator("cache_namespace")
    @classmethod
    def _namespace_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("cache_namespace must not be blank")
        return value

    def resolved_script_url(self) -> str:
        """Normalised endpoint URL, or ``""`` when nothing usable is configured."""
        from fieldtally.sources.url import normalize_script_url

        return normalize_script_url(self.script_url) or normalize_script_url(DEFAULT_SCRIPT_URL)


@lru_cache(maxsize=1)
def get_settings() -> FieldTallySettings:
    """Process-wide settings, read once from the environment."""
    return FieldTallySettings()


__all__ = ["DEFAULT_SCRIPT_URL", "FieldTallySettings", "get_settings"]
