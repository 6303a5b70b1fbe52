"""
Tests for fieldtally.service module.

Covers:
- End-to-end leaderboard: roster + activity log + task actuals
- Caching of every read under its resource-class key
- Offline reads served from the durable tier
- submit_action invalidation and clear_all_caches
"""

import httpx
import pytest

from fieldtally.core.cache import DurableCacheTier, InMemoryKeyValueStore
from fieldtally.core.errors import TransportNetworkError
from fieldtally.core.settings import FieldTallySettings
from fieldtally.domain.models import LeaderboardEntry
from fieldtally.service import AnalyticsService, collector_key
from fieldtally.sources.models import SubmitPayload

ROSTER = [
    {"name": "Ana", "rigs": ["R7"]},
    {"name": "Bruno", "rigs": ["R9"]},
]

FULL_LOG = [
    {"Collector": "Ana", "Rig": "R7", "Site": "SF-Lab", "Hours": 2},
    {"Rig": "R7", "Site": "MX-1", "Hours": "1.5"},
    {"Rig": "R9", "Site": "Site C-12", "Hours": 1},
]

TASK_ACTUALS = [
    {"Collector": "Bruno", "Date": "2024-05-01", "Hours": 2.5},
    {"Collector": "Dora", "Date": "2024-05-01", "Hours": 0.5},
]


def offline(request):
    raise httpx.ConnectError("offline")


@pytest.fixture
def routes(router):
    router.routes.update({
        "getCollectors": ROSTER,
        "getFullLog": FULL_LOG,
        "getTaskActualsSheet": TASK_ACTUALS,
    })
    return router


@pytest.mark.slow
class TestLeaderboardEndToEnd:
    @pytest.mark.asyncio
    async def test_reconciled_leaderboard(self, routes, make_service):
        async with make_service() as service:
            board = await service.get_leaderboard()

        assert board[0] == LeaderboardEntry(
            rank=1,
            collector_name="Ana",
            hours_logged=3.5,
            tasks_completed=2,
            tasks_assigned=2,
            completion_rate=100,
            region="SF",
        )
        bruno = board[1]
        assert (bruno.rank, bruno.collector_name, bruno.hours_logged, bruno.region) == (2, "Bruno", 2.5, "MX")
        assert bruno.tasks_completed == 1
        dora = board[2]
        assert (dora.collector_name, dora.hours_logged, dora.tasks_assigned, dora.region) == ("Dora", 0.5, 1, "MX")

    @pytest.mark.asyncio
    async def test_leaderboard_is_cached(self, routes, make_service, clock):
        async with make_service() as service:
            await service.get_leaderboard()
            clock.advance(60)
            await service.get_leaderboard()

        assert routes.calls("getFullLog") == 1
        assert routes.calls("getTaskActualsSheet") == 1
        assert routes.calls("getCollectors") == 1

    @pytest.mark.asyncio
    async def test_offline_session_serves_durable_leaderboard(self, routes, make_service, clock, kv_store):
        async with make_service() as service:
            first = await service.get_leaderboard()

        routes.routes["getFullLog"] = offline
        clock.advance(10_000)

        async with make_service() as service:
            assert await service.get_leaderboard() == first
            await service.wait_for_refreshes()
            assert service.cache.stats.refreshes_failed == 1

    @pytest.mark.asyncio
    async def test_cold_miss_while_offline_raises(self, routes, make_service):
        routes.routes["getFullLog"] = offline
        async with make_service() as service:
            with pytest.raises(TransportNetworkError):
                await service.get_leaderboard()


class TestReads:
    @pytest.mark.asyncio
    async def test_collectors_and_tasks_round_trip_through_cache(self, router, make_service, kv_store):
        router.routes.update({"getCollectors": ROSTER, "getTasks": [{"name": "Walk lot"}]})
        async with make_service() as service:
            collectors = await service.get_collectors()
            tasks = await service.get_tasks()

        assert [c.id for c in collectors] == ["c_0_Ana", "c_1_Bruno"]
        assert tasks[0].id == "t_0_Walk_lot"
        durable = DurableCacheTier(kv_store, namespace="fieldtally:cache:")
        assert durable.get("roster").value[0] == {"id": "c_0_Ana", "name": "Ana", "rigs": ["R7"]}

    @pytest.mark.asyncio
    async def test_per_collector_keys(self, router, make_service):
        router.routes.update({
            "getCollectorStats": {"totalAssigned": 4, "totalCompleted": 3},
            "getTodayLog": [{"task": "Walk"}],
            "getFullLog": [{"collector": "Ana"}],
        })
        async with make_service() as service:
            stats = await service.get_collector_stats("Ana")
            await service.get_today_log("Ana")
            await service.get_full_log("Ana")
            await service.get_collector_stats("Ana")

            assert stats.total_completed == 3
            assert service.cache.memory.get("collector_detail:Ana") is not None
            assert service.cache.memory.get("today_log:Ana") is not None
            assert service.cache.memory.get("full_log:Ana") is not None
        assert router.calls("getCollectorStats") == 1

    @pytest.mark.asyncio
    async def test_log_reads_hand_out_copies(self, router, make_service):
        router.routes.update({
            "getTodayLog": [{"task": "Walk", "hours": 1}],
            "getFullLog": [{"collector": "Ana", "hours": 2}],
        })
        async with make_service() as service:
            today = await service.get_today_log("Ana")
            today[0]["hours"] = 99
            today.append({"task": "Injected"})
            full = await service.get_full_log("Ana")
            full.clear()

            assert await service.get_today_log("Ana") == [{"task": "Walk", "hours": 1}]
            assert await service.get_full_log("Ana") == [{"collector": "Ana", "hours": 2}]
        assert router.calls("getTodayLog") == 1
        assert router.calls("getFullLog") == 1

    @pytest.mark.asyncio
    async def test_dashboard_and_admin_views(self, router, make_service):
        router.routes.update({
            "getAdminDashboardData": {"totalTasks": 5, "completedTasks": 2},
            "getAdminCollectors": [{"name": "Ana", "rigs": ["R7"]}],
            "getRecollections": ["Walk lot"],
            "getTaskRequirements": [{"taskName": "Walk lot", "requiredHours": 3}],
        })
        async with make_service() as service:
            assert (await service.get_dashboard()).total_tasks == 5
            assert (await service.get_admin_collectors())[0].name == "Ana"
            assert await service.get_recollections() == ["Walk lot"]
            assert (await service.get_task_requirements())[0].required_hours == 3.0


class TestWritesAndCacheControl:
    @pytest.mark.asyncio
    async def test_submit_invalidates_that_collectors_views(self, router, make_service):
        router.routes.update({
            "getCollectorStats": {"totalCompleted": 1},
            "getTodayLog": [],
            "submit": {"row": 4},
        })
        async with make_service() as service:
            await service.get_collector_stats("Ana")
            await service.get_today_log("Ana")
            await service.get_collector_stats("Bruno")

            response = await service.submit_action(
                SubmitPayload(collector="Ana", task="Walk", action_type="complete")
            )

            assert response.message == "Success"
            assert service.cache.memory.get(collector_key("collector_detail", "Ana")) is None
            assert service.cache.memory.get(collector_key("today_log", "Ana")) is None
            assert service.cache.memory.get(collector_key("collector_detail", "Bruno")) is not None

            await service.get_collector_stats("Ana")
        assert router.calls("getCollectorStats") == 3

    @pytest.mark.asyncio
    async def test_clear_all_caches(self, router, make_service, kv_store):
        router.routes.update({"getTasks": [{"name": "Walk"}]})
        kv_store.set_item("someone-else:key", "keep")
        async with make_service() as service:
            await service.get_tasks()
            service.clear_all_caches()
            await service.get_tasks()

        assert router.calls("getTasks") == 2
        assert kv_store.get_item("someone-else:key") == "keep"


class TestConfiguration:
    def test_is_configured_with_default_url(self, tmp_path, monkeypatch):
        monkeypatch.delenv("FIELDTALLY_SCRIPT_URL", raising=False)
        service = AnalyticsService.from_settings(
            FieldTallySettings(cache_db_path=tmp_path / "c.db"),
            store=InMemoryKeyValueStore(),
        )
        assert service.is_configured()

    @pytest.mark.asyncio
    async def test_sqlite_store_by_default(self, tmp_path):
        settings = FieldTallySettings(script_url="https://rows.example.test/exec", cache_db_path=tmp_path / "c.db")
        async with AnalyticsService.from_settings(settings):
            pass
        assert (tmp_path / "c.db").exists()


def test_collector_key():
    assert collector_key("today_log", " Ana Lopez ") == "today_log:Ana Lopez"
