"""Tests for fieldtally.sources.client and fieldtally.sources.models."""

import json

import httpx
import pytest

from fieldtally.core.errors import ApiSemanticError, MalformedPayload, TransportTimeout
from fieldtally.sources.client import RowStoreClient
from fieldtally.sources.fetcher import ResilientFetcher
from fieldtally.sources.models import SubmitPayload, slug_id
from tests._support.row_store import SCRIPT_URL, RowStoreRouter, envelope, no_sleep


def make_client(router: RowStoreRouter) -> RowStoreClient:
    client = httpx.AsyncClient(transport=router.transport())
    return RowStoreClient(ResilientFetcher(SCRIPT_URL, client=client, sleep=no_sleep))


def test_slug_id():
    assert slug_id("c", 0, "Ana Lopez") == "c_0_Ana_Lopez"
    assert slug_id("t", 3, "Walk\tthe  lot") == "t_3_Walk_the__lot"


class TestReferenceData:
    @pytest.mark.asyncio
    async def test_collectors_get_derived_ids_and_rig_lists(self):
        router = RowStoreRouter({
            "getCollectors": [
                {"name": "Ana Lopez", "rigs": ["R7", "R8"]},
                {"name": "Bruno", "rigs": "SF-2, SF-3"},
                {"name": "Carla"},
            ]
        })
        collectors = await make_client(router).fetch_collectors()

        assert [c.id for c in collectors] == ["c_0_Ana_Lopez", "c_1_Bruno", "c_2_Carla"]
        assert collectors[0].rigs == ["R7", "R8"]
        assert collectors[1].rigs == ["SF-2", "SF-3"]
        assert collectors[2].rigs == []

    @pytest.mark.asyncio
    async def test_tasks_use_name_as_label(self):
        router = RowStoreRouter({"getTasks": [{"name": "Walk lot"}, {"name": "Drive"}]})
        tasks = await make_client(router).fetch_tasks()
        assert tasks[0].model_dump() == {"id": "t_0_Walk_lot", "name": "Walk lot", "label": "Walk lot"}
        assert tasks[1].id == "t_1_Drive"

    @pytest.mark.asyncio
    async def test_task_requirements_accept_camel_case(self):
        router = RowStoreRouter({
            "getTaskRequirements": [{"taskName": "Walk", "requiredHours": "4", "loggedHours": 1.5, "extra": 1}]
        })
        [requirement] = await make_client(router).fetch_task_requirements()
        assert requirement.task_name == "Walk"
        assert requirement.required_hours == 4.0
        assert requirement.logged_hours == 1.5

    @pytest.mark.asyncio
    async def test_null_data_reads_as_empty(self):
        router = RowStoreRouter({"getCollectors": None})
        assert await make_client(router).fetch_collectors() == []


class TestPerCollector:
    @pytest.mark.asyncio
    async def test_stats_sends_collector_param(self):
        router = RowStoreRouter({
            "getCollectorStats": {"totalAssigned": 4, "totalCompleted": 3, "weeklyLoggedHours": 2.5}
        })
        stats = await make_client(router).fetch_collector_stats("Ana Lopez")

        assert stats.total_assigned == 4
        assert stats.weekly_logged_hours == 2.5
        assert stats.completion_rate == 0
        assert router.requests[0].url.params["collector"] == "Ana Lopez"

    @pytest.mark.asyncio
    async def test_full_log_without_collector_omits_param(self):
        router = RowStoreRouter({"getFullLog": [{"Collector": "Ana", "Hours": "1,5"}]})
        rows = await make_client(router).fetch_full_log()
        assert rows == [{"Collector": "Ana", "Hours": "1,5"}]
        assert "collector" not in router.requests[0].url.params

    @pytest.mark.asyncio
    async def test_today_log_shape_is_validated(self):
        router = RowStoreRouter({"getTodayLog": "not a list"})
        with pytest.raises(MalformedPayload, match="getTodayLog"):
            await make_client(router).fetch_today_log("Ana")


class TestSheetWide:
    @pytest.mark.asyncio
    async def test_dashboard(self):
        router = RowStoreRouter({
            "getAdminDashboardData": {"totalTasks": 10, "completedTasks": 6, "recollections": 2, "completionRate": 60}
        })
        summary = await make_client(router).fetch_admin_dashboard()
        assert summary.total_tasks == 10
        assert summary.completed_tasks == 6
        assert summary.in_progress_tasks == 0
        assert summary.completion_rate == 60

    @pytest.mark.asyncio
    async def test_recollections_and_actuals(self):
        router = RowStoreRouter({
            "getRecollections": ["Walk lot"],
            "getTaskActualsSheet": [{"collector": "Ana", "hours": 4}],
        })
        client = make_client(router)
        assert await client.fetch_recollections() == ["Walk lot"]
        assert await client.fetch_task_actuals() == [{"collector": "Ana", "hours": 4}]

    @pytest.mark.asyncio
    async def test_admin_collectors(self):
        router = RowStoreRouter({"getAdminCollectors": [{"name": "Ana", "rigs": "R7", "totalLoggedHours": 12}]})
        [detail] = await make_client(router).fetch_admin_collectors()
        assert detail.rigs == ["R7"]
        assert detail.total_logged_hours == 12.0


class TestSubmit:
    @pytest.mark.asyncio
    async def test_submit_posts_camel_case_body_and_merges_data(self):
        router = RowStoreRouter({"submit": lambda request: envelope({"row": 12}, message="Logged")})
        payload = SubmitPayload(collector=" Ana ", task="Walk", action_type="complete", hours=1.5)

        response = await make_client(router).submit(payload)

        body = json.loads(router.requests[0].content)
        assert body == {"collector": "Ana", "task": "Walk", "actionType": "complete", "hours": 1.5}
        assert response.success is True
        assert response.message == "Logged"
        assert response.model_extra == {"row": 12}

    @pytest.mark.asyncio
    async def test_submit_message_defaults_to_success(self):
        router = RowStoreRouter({"submit": lambda request: envelope(None)})
        payload = SubmitPayload(collector="Ana", task="Walk", action_type="start")
        response = await make_client(router).submit(payload)
        assert response.message == "Success"

    @pytest.mark.asyncio
    async def test_submit_failure_raises(self):
        router = RowStoreRouter({"submit": lambda request: envelope(success=False, error="Row locked")})
        payload = SubmitPayload(collector="Ana", task="Walk", action_type="start")
        with pytest.raises(ApiSemanticError, match="Row locked"):
            await make_client(router).submit(payload)
        assert router.calls("submit") == 1

    @pytest.mark.asyncio
    async def test_timed_out_submit_is_sent_once(self):
        outcomes = [httpx.ReadTimeout("write stalled"), envelope({"row": 13})]

        def flaky(request):
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        router = RowStoreRouter({"submit": flaky})
        payload = SubmitPayload(collector="Ana", task="Walk", action_type="complete", hours=1.0)

        with pytest.raises(TransportTimeout):
            await make_client(router).submit(payload)
        assert router.calls("submit") == 1

    def test_blank_payload_fields_rejected(self):
        with pytest.raises(ValueError):
            SubmitPayload(collector="  ", task="Walk", action_type="start")

    def test_extra_payload_fields_forwarded(self):
        payload = SubmitPayload(collector="Ana", task="Walk", action_type="start", rig="R7")
        assert payload.to_body()["rig"] == "R7"
