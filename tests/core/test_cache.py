"""
Tests for fieldtally.core.cache module.

Covers:
- MemoryCacheTier: get/set/delete/clear, freshness per resource class
- DurableCacheTier: JSON round trip, corrupt entries, failing store, namespacing
- SqliteKeyValueStore: persistence across instances
"""

import json

import pytest

from fieldtally.core.cache import (
    CacheEntry,
    DurableCacheTier,
    InMemoryKeyValueStore,
    MemoryCacheTier,
    SqliteKeyValueStore,
)
from tests._support.row_store import FakeClock


class TestCacheEntry:
    def test_fresh_boundary_is_inclusive(self):
        entry = CacheEntry("v", stored_at=100.0)
        assert entry.is_fresh(now=160.0, ttl=60)
        assert not entry.is_fresh(now=160.5, ttl=60)

    def test_age(self):
        assert CacheEntry("v", stored_at=100.0).age(130.0) == 30.0


class TestMemoryCacheTier:
    def test_basic_get_set(self):
        clock = FakeClock(1000.0)
        tier = MemoryCacheTier(clock=clock)
        tier.set("roster", [{"name": "Ana"}])
        entry = tier.get("roster")
        assert entry.value == [{"name": "Ana"}]
        assert entry.stored_at == 1000.0

    def test_explicit_stored_at(self):
        tier = MemoryCacheTier(clock=FakeClock(1000.0))
        tier.set("roster", [], stored_at=10.0)
        assert tier.get("roster").stored_at == 10.0

    def test_get_fresh_respects_resource_class(self):
        clock = FakeClock()
        tier = MemoryCacheTier(clock=clock)
        tier.set("dashboard", {"totalTasks": 1})
        tier.set("roster", [])
        clock.advance(61)
        assert tier.get_fresh("dashboard", "dashboard") is None
        assert tier.get_fresh("roster", "roster") is not None

    def test_stale_entry_is_not_deleted(self):
        clock = FakeClock()
        tier = MemoryCacheTier(clock=clock)
        tier.set("dashboard", {})
        clock.advance(10_000)
        assert tier.get_fresh("dashboard", "dashboard") is None
        assert tier.get("dashboard") is not None

    def test_delete_and_clear(self):
        tier = MemoryCacheTier()
        tier.set("a", 1)
        tier.set("b", 2)
        tier.delete("a")
        tier.delete("missing")
        assert tier.size() == 1
        tier.clear()
        assert tier.size() == 0


class TestDurableCacheTier:
    def test_round_trip_format(self):
        store = InMemoryKeyValueStore()
        tier = DurableCacheTier(store, namespace="ft:", clock=FakeClock(500.0))
        tier.set("leaderboard", [{"rank": 1}])
        assert json.loads(store.data["ft:leaderboard"]) == {"value": [{"rank": 1}], "storedAt": 500.0}
        entry = tier.get("leaderboard")
        assert entry == CacheEntry([{"rank": 1}], 500.0)

    def test_reads_entries_written_by_another_instance(self):
        store = InMemoryKeyValueStore({"ft:tasks": json.dumps({"value": ["Walk"], "storedAt": 42})})
        tier = DurableCacheTier(store, namespace="ft:")
        assert tier.get("tasks") == CacheEntry(["Walk"], 42.0)

    @pytest.mark.parametrize("raw", ["not json", "[]", '{"value": 1}', '{"storedAt": "x", "value": 1}'])
    def test_corrupt_entry_reads_as_absent(self, raw):
        store = InMemoryKeyValueStore({"ft:roster": raw})
        tier = DurableCacheTier(store, namespace="ft:")
        assert tier.get("roster") is None

    def test_failing_store_never_raises(self):
        class BrokenStore:
            def _fail(self, *args):
                raise OSError("disk gone")

            get_item = set_item = remove_item = keys = _fail

        tier = DurableCacheTier(BrokenStore())
        assert tier.get("roster") is None
        tier.set("roster", [])
        tier.delete("roster")
        tier.clear()

    def test_clear_only_touches_namespace(self):
        store = InMemoryKeyValueStore({"other:key": "keep", "ft:old": "x"})
        tier = DurableCacheTier(store, namespace="ft:")
        tier.set("roster", [])
        tier.clear()
        assert store.data == {"other:key": "keep"}

    def test_get_fresh_uses_durable_column(self):
        clock = FakeClock()
        tier = DurableCacheTier(InMemoryKeyValueStore(), clock=clock)
        tier.set("leaderboard", [])
        clock.advance(300)
        assert tier.get_fresh("leaderboard", "leaderboard") is not None
        clock.advance(301)
        assert tier.get_fresh("leaderboard", "leaderboard") is None


class TestSqliteKeyValueStore:
    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "nested" / "cache.db"
        store = SqliteKeyValueStore(path)
        store.set_item("ft:roster", "[]")
        store.set_item("ft:roster", '["Ana"]')
        store.close()

        reopened = SqliteKeyValueStore(path)
        assert reopened.get_item("ft:roster") == '["Ana"]'
        assert reopened.keys() == ["ft:roster"]
        reopened.remove_item("ft:roster")
        assert reopened.get_item("ft:roster") is None
        reopened.close()

    def test_backs_durable_tier(self, tmp_path):
        store = SqliteKeyValueStore(tmp_path / "cache.db")
        tier = DurableCacheTier(store, clock=FakeClock(7.0))
        tier.set("tasks", [{"id": "t_0_Walk"}])
        assert tier.get("tasks").value == [{"id": "t_0_Walk"}]
        store.close()
