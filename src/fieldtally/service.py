"""
Analytics service: the UI-facing facade over the row store.

Every read goes through the :class:`~fieldtally.core.orchestrator.CacheOrchestrator`
under a resource-class key, so screens are answered from memory or disk and
refreshed in the background. The leaderboard is computed locally from the
roster, the activity log and the task-actuals sheet.

Manifesto:
    - **One facade:** Screens and the CLI talk to this class, nothing lower
    - **Cache plain data:** Values are cached in wire shape (JSON-safe) and
      rehydrated into models on the way out
    - **Writes invalidate:** A submit drops the caches it made stale

Architecture:
    ::

        AnalyticsService
        ├── RowStoreClient ── ResilientFetcher ── httpx
        ├── CacheOrchestrator
        │     ├── MemoryCacheTier
        │     └── DurableCacheTier ── SqliteKeyValueStore
        └── get_leaderboard
              roster + full log + task actuals
                → build_rig_map → rows → reconcile → build_leaderboard

    Cache keys::

        roster  tasks  leaderboard  dashboard  task_requirements
        recollections  admin_collectors
        collector_detail:<name>  today_log:<name>  full_log:<name>

Examples:
    service = AnalyticsService.from_settings(get_settings())
    board = await service.get_leaderboard()
    await service.aclose()

Tags:
    service, facade, leaderboard, cache, fieldtally
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

import httpx

from fieldtally.core.cache import (
    Clock,
    DurableCacheTier,
    KeyValueStore,
    MemoryCacheTier,
    SqliteKeyValueStore,
)
from fieldtally.core.logging import LogContext, get_logger
from fieldtally.core.orchestrator import CacheOrchestrator
from fieldtally.core.settings import FieldTallySettings, get_settings
from fieldtally.core.ttl import DEFAULT_TTL_POLICY, ResourceClass, TTLPolicy
from fieldtally.domain.identity import build_rig_map
from fieldtally.domain.leaderboard import build_leaderboard
from fieldtally.domain.models import LeaderboardEntry
from fieldtally.domain.reconcile import reconcile
from fieldtally.domain.rows import primary_rows_from_records, secondary_rows_from_records
from fieldtally.sources.client import RowStoreClient
from fieldtally.sources.fetcher import ResilientFetcher
from fieldtally.sources.models import (
    AdminCollectorDetail,
    Collector,
    CollectorStats,
    DashboardSummary,
    SubmitPayload,
    SubmitResponse,
    Task,
    TaskRequirement,
)

logger = get_logger(__name__)


def collector_key(resource: str, collector: str) -> str:
    """``collector_key("today_log", "Ana")`` → ``"today_log:Ana"``."""
    return f"{resource}:{collector.strip()}"


class AnalyticsService:
    """Cached, typed access to collector analytics."""

    def __init__(
        self,
        client: RowStoreClient,
        orchestrator: CacheOrchestrator,
        *,
        store: KeyValueStore | None = None,
    ):
        self._client = client
        self._cache = orchestrator
        self._store = store

    @classmethod
    def from_settings(
        cls,
        settings: FieldTallySettings | None = None,
        *,
        store: KeyValueStore | None = None,
        http_client: httpx.AsyncClient | None = None,
        policy: TTLPolicy = DEFAULT_TTL_POLICY,
        clock: Clock = time.time,
        **fetcher_kwargs: Any,
    ) -> AnalyticsService:
        """Wire fetcher, client and both cache tiers from settings.

        Without an explicit ``store`` the durable tier is backed by SQLite
        at ``settings.cache_db_path``.
        """
        settings = settings or get_settings()
        fetcher = ResilientFetcher.from_settings(settings, client=http_client, **fetcher_kwargs)
        owned_store = None
        if store is None:
            store = owned_store = SqliteKeyValueStore(settings.cache_db_path)
        orchestrator = CacheOrchestrator(
            MemoryCacheTier(policy=policy, clock=clock),
            DurableCacheTier(store, namespace=settings.cache_namespace, policy=policy, clock=clock),
            policy=policy,
            clock=clock,
        )
        return cls(RowStoreClient(fetcher), orchestrator, store=owned_store)

    @property
    def client(self) -> RowStoreClient:
        return self._client

    @property
    def cache(self) -> CacheOrchestrator:
        return self._cache

    def is_configured(self) -> bool:
        return self._client.is_configured()

    # ── Reference data ───────────────────────────────────────────

    async def get_collectors(self) -> list[Collector]:
        async def fetch() -> list[dict[str, Any]]:
            return [c.to_wire() for c in await self._client.fetch_collectors()]

        data = await self._cache.get_or_fetch(ResourceClass.ROSTER.value, fetch)
        return [Collector.model_validate(item) for item in data]

    async def get_tasks(self) -> list[Task]:
        async def fetch() -> list[dict[str, Any]]:
            return [t.to_wire() for t in await self._client.fetch_tasks()]

        data = await self._cache.get_or_fetch(ResourceClass.TASKS.value, fetch)
        return [Task.model_validate(item) for item in data]

    async def get_task_requirements(self) -> list[TaskRequirement]:
        async def fetch() -> list[dict[str, Any]]:
            return [r.to_wire() for r in await self._client.fetch_task_requirements()]

        data = await self._cache.get_or_fetch(ResourceClass.TASK_REQUIREMENTS.value, fetch)
        return [TaskRequirement.model_validate(item) for item in data]

    # ── Aggregates ───────────────────────────────────────────────

    async def get_leaderboard(self) -> list[LeaderboardEntry]:
        """Ranked collectors, reconciled from the log and task-actuals sheet."""
        data = await self._cache.get_or_fetch(ResourceClass.LEADERBOARD.value, self._compute_leaderboard)
        return [LeaderboardEntry.from_dict(item) for item in data]

    async def _compute_leaderboard(self) -> list[dict[str, Any]]:
        async with LogContext(resource="leaderboard"):
            roster, primary, secondary = await asyncio.gather(
                self.get_collectors(),
                self._client.fetch_full_log(),
                self._client.fetch_task_actuals(),
            )
            aggregates = reconcile(
                primary_rows_from_records(primary),
                secondary_rows_from_records(secondary),
                build_rig_map(roster),
            )
            entries = build_leaderboard(aggregates)
            logger.info(
                "leaderboard_built",
                collectors=len(entries),
                primary_rows=len(primary),
                secondary_rows=len(secondary),
            )
        return [entry.to_dict() for entry in entries]

    async def get_dashboard(self) -> DashboardSummary:
        async def fetch() -> dict[str, Any]:
            return (await self._client.fetch_admin_dashboard()).to_wire()

        data = await self._cache.get_or_fetch(ResourceClass.DASHBOARD.value, fetch)
        return DashboardSummary.model_validate(data)

    async def get_admin_collectors(self) -> list[AdminCollectorDetail]:
        async def fetch() -> list[dict[str, Any]]:
            return [d.to_wire() for d in await self._client.fetch_admin_collectors()]

        data = await self._cache.get_or_fetch("admin_collectors", fetch)
        return [AdminCollectorDetail.model_validate(item) for item in data]

    async def get_recollections(self) -> list[str]:
        return list(await self._cache.get_or_fetch("recollections", self._client.fetch_recollections))

    # ── Per-collector reads ──────────────────────────────────────

    async def get_collector_stats(self, collector: str) -> CollectorStats:
        async def fetch() -> dict[str, Any]:
            return (await self._client.fetch_collector_stats(collector)).to_wire()

        key = collector_key(ResourceClass.COLLECTOR_DETAIL.value, collector)
        return CollectorStats.model_validate(await self._cache.get_or_fetch(key, fetch))

    async def get_today_log(self, collector: str) -> list[dict[str, Any]]:
        key = collector_key("today_log", collector)
        rows = await self._cache.get_or_fetch(key, lambda: self._client.fetch_today_log(collector))
        return [dict(row) for row in rows]

    async def get_full_log(self, collector: str) -> list[dict[str, Any]]:
        key = collector_key("full_log", collector)
        rows = await self._cache.get_or_fetch(key, lambda: self._client.fetch_full_log(collector))
        return [dict(row) for row in rows]

    # ── Writes and cache control ─────────────────────────────────

    async def submit_action(self, payload: SubmitPayload) -> SubmitResponse:
        """Write one row, then drop the cached views of that collector."""
        response = await self._client.submit(payload)
        for resource in (ResourceClass.COLLECTOR_DETAIL.value, "today_log", "full_log"):
            self._cache.invalidate(collector_key(resource, payload.collector))
        return response

    def clear_all_caches(self) -> None:
        self._cache.clear_all()

    async def wait_for_refreshes(self) -> None:
        await self._cache.wait_for_refreshes()

    async def aclose(self) -> None:
        await self._cache.wait_for_refreshes()
        await self._client.fetcher.aclose()
        if isinstance(self._store, SqliteKeyValueStore):
            self._store.close()

    async def __aenter__(self) -> AnalyticsService:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()


__all__ = ["AnalyticsService", "collector_key"]
