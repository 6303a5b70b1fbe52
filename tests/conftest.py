"""
Shared pytest fixtures for fieldtally tests.

This module provides:
- A controllable clock for cache freshness
- An in-memory key-value store for the durable tier
- A MockTransport router that answers row-store actions with envelopes
- A fully wired AnalyticsService on top of the above
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from fieldtally.core.cache import InMemoryKeyValueStore
from fieldtally.core.logging import configure_logging
from fieldtally.core.settings import FieldTallySettings
from fieldtally.service import AnalyticsService
from tests._support.row_store import SCRIPT_URL, FakeClock, RowStoreRouter, no_sleep


@pytest.fixture(scope="session", autouse=True)
def _quiet_logging():
    """Route structlog through stdlib logging at WARNING so stdout stays clean."""
    configure_logging(level="WARNING", json_format=True)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def settings(tmp_path) -> FieldTallySettings:
    return FieldTallySettings(
        script_url=SCRIPT_URL,
        cache_db_path=tmp_path / "cache.db",
        retry_delays=[0.4, 1.2],
    )


@pytest.fixture
def router() -> RowStoreRouter:
    return RowStoreRouter()


@pytest.fixture
def make_service(settings, kv_store, clock, router) -> Callable[..., AnalyticsService]:
    def _make(**kwargs: Any) -> AnalyticsService:
        return AnalyticsService.from_settings(
            kwargs.pop("settings", settings),
            store=kwargs.pop("store", kv_store),
            http_client=httpx.AsyncClient(transport=router.transport()),
            clock=clock,
            sleep=no_sleep,
            **kwargs,
        )

    return _make
