"""
Typed client for the remote row store.

One method per remote action. Reads return pydantic models where the
payload has a stable shape and plain ``list[dict]`` where it does not (the
activity log and task-actuals sheet are loosely keyed; see
:mod:`fieldtally.domain.rows`).

Examples:
    async with ResilientFetcher.from_settings(get_settings()) as fetcher:
        client = RowStoreClient(fetcher)
        roster = await client.fetch_collectors()

Tags:
    row-store, client, pydantic, fieldtally
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from fieldtally.core.errors import MalformedPayload
from fieldtally.core.logging import get_logger
from fieldtally.sources.fetcher import FetchRequest, ResilientFetcher
from fieldtally.sources.models import (
    AdminCollectorDetail,
    Collector,
    CollectorStats,
    DashboardSummary,
    SubmitPayload,
    SubmitResponse,
    Task,
    TaskRequirement,
    slug_id,
)

logger = get_logger(__name__)

M = TypeVar("M")


class Action:
    """Remote action names understood by the row store."""

    COLLECTORS = "getCollectors"
    TASKS = "getTasks"
    TODAY_LOG = "getTodayLog"
    COLLECTOR_STATS = "getCollectorStats"
    RECOLLECTIONS = "getRecollections"
    FULL_LOG = "getFullLog"
    TASK_ACTUALS = "getTaskActualsSheet"
    ADMIN_DASHBOARD = "getAdminDashboardData"
    ADMIN_COLLECTORS = "getAdminCollectors"
    TASK_REQUIREMENTS = "getTaskRequirements"
    SUBMIT = "submit"


def _validate(adapter: TypeAdapter[M], data: Any, action: str) -> M:
    try:
        return adapter.validate_python(data)
    except ValidationError as e:
        raise MalformedPayload(
            f"Unexpected payload shape for {action}: {e.error_count()} validation error(s)",
            cause=e,
        ).with_context(action=action) from e


_RECORDS = TypeAdapter(list[dict[str, Any]])
_NAMES = TypeAdapter(list[str])
_COLLECTOR = TypeAdapter(Collector)
_STATS = TypeAdapter(CollectorStats)
_DASHBOARD = TypeAdapter(DashboardSummary)
_ADMIN_COLLECTORS = TypeAdapter(list[AdminCollectorDetail])
_REQUIREMENTS = TypeAdapter(list[TaskRequirement])


class RowStoreClient:
    """Thin typed layer over :class:`ResilientFetcher`. Holds no state."""

    def __init__(self, fetcher: ResilientFetcher):
        self._fetcher = fetcher

    @property
    def fetcher(self) -> ResilientFetcher:
        return self._fetcher

    def is_configured(self) -> bool:
        return self._fetcher.is_configured()

    async def _get(self, action: str, **params: str | None) -> Any:
        query = {k: v for k, v in params.items() if v is not None}
        return await self._fetcher.fetch_data(FetchRequest(action, query))

    # ── Reference data ───────────────────────────────────────────

    async def fetch_collectors(self) -> list[Collector]:
        raw = _validate(_RECORDS, await self._get(Action.COLLECTORS) or [], Action.COLLECTORS)
        collectors = []
        for index, item in enumerate(raw):
            name = str(item.get("name") or "")
            collectors.append(
                _validate(
                    _COLLECTOR,
                    {"id": slug_id("c", index, name), "name": name, "rigs": item.get("rigs")},
                    Action.COLLECTORS,
                )
            )
        return collectors

    async def fetch_tasks(self) -> list[Task]:
        raw = _validate(_RECORDS, await self._get(Action.TASKS) or [], Action.TASKS)
        tasks = []
        for index, item in enumerate(raw):
            name = str(item.get("name") or "")
            tasks.append(Task(id=slug_id("t", index, name), name=name, label=name))
        return tasks

    async def fetch_task_requirements(self) -> list[TaskRequirement]:
        data = await self._get(Action.TASK_REQUIREMENTS)
        return _validate(_REQUIREMENTS, data or [], Action.TASK_REQUIREMENTS)

    # ── Per-collector reads ──────────────────────────────────────

    async def fetch_today_log(self, collector: str) -> list[dict[str, Any]]:
        data = await self._get(Action.TODAY_LOG, collector=collector)
        return _validate(_RECORDS, data or [], Action.TODAY_LOG)

    async def fetch_collector_stats(self, collector: str) -> CollectorStats:
        data = await self._get(Action.COLLECTOR_STATS, collector=collector)
        return _validate(_STATS, data or {}, Action.COLLECTOR_STATS)

    async def fetch_full_log(self, collector: str | None = None) -> list[dict[str, Any]]:
        """Activity log rows; all collectors when ``collector`` is empty."""
        data = await self._get(Action.FULL_LOG, collector=collector or None)
        return _validate(_RECORDS, data or [], Action.FULL_LOG)

    # ── Sheet-wide reads ─────────────────────────────────────────

    async def fetch_task_actuals(self) -> list[dict[str, Any]]:
        data = await self._get(Action.TASK_ACTUALS)
        return _validate(_RECORDS, data or [], Action.TASK_ACTUALS)

    async def fetch_recollections(self) -> list[str]:
        data = await self._get(Action.RECOLLECTIONS)
        return _validate(_NAMES, data or [], Action.RECOLLECTIONS)

    async def fetch_admin_dashboard(self) -> DashboardSummary:
        data = await self._get(Action.ADMIN_DASHBOARD)
        return _validate(_DASHBOARD, data or {}, Action.ADMIN_DASHBOARD)

    async def fetch_admin_collectors(self) -> list[AdminCollectorDetail]:
        data = await self._get(Action.ADMIN_COLLECTORS)
        return _validate(_ADMIN_COLLECTORS, data or [], Action.ADMIN_COLLECTORS)

    # ── Writes ───────────────────────────────────────────────────

    async def submit(self, payload: SubmitPayload) -> SubmitResponse:
        """POST one row mutation; never retried past the fetcher's schedule."""
        body = payload.to_body()
        logger.info("submit", collector=payload.collector, task=payload.task, action_type=payload.action_type)
        envelope = await self._fetcher.fetch_or_raise(FetchRequest(Action.SUBMIT, body=body))
        merged: dict[str, Any] = {"success": True, "message": envelope.message or "Success"}
        if isinstance(envelope.data, dict):
            merged.update(envelope.data)
        return SubmitResponse.model_validate(merged)


__all__ = ["Action", "RowStoreClient"]
