"""
Cache tiers: a fast in-process tier and a durable cross-session tier.

Both tiers expose the same shape and store :class:`CacheEntry` records
(value plus the timestamp it was stored at). Freshness is tier-local: each
tier asks the :class:`~fieldtally.core.ttl.TTLPolicy` for its own TTL column.
A stale entry is never deleted; it is simply not a "fresh hit", and its raw
value stays retrievable for stale-while-revalidate.

Manifesto:
    - **Protocol-based:** ``CacheTier`` and ``KeyValueStore`` define the contracts
    - **Injectable clock:** Freshness is deterministic under test
    - **Fail-open durable tier:** Corrupt entries read as absent, never raise
    - **Namespaced:** The durable tier only ever touches its own key prefix

Architecture:
    ::

        CacheTier (Protocol)
        ├── MemoryCacheTier   — Tier 1 (dict, process lifetime)
        └── DurableCacheTier  — Tier 2 (JSON in a KeyValueStore)
                                  ├── InMemoryKeyValueStore (tests)
                                  └── SqliteKeyValueStore   (file-backed)

        API: get(key)                      → CacheEntry | None
             get_fresh(key, resource_class) → CacheEntry | None
             set(key, value)
             delete(key)
             clear()

Examples:
    >>> tier = MemoryCacheTier(clock=lambda: 1000.0)
    >>> tier.set("leaderboard", [{"rank": 1}])
    >>> tier.get("leaderboard").stored_at
    1000.0

Guardrails:
    ❌ DON'T: Store values that aren't JSON-serializable in the durable tier
    ✅ DO: Convert dataclasses / models to plain dicts before caching

Tags:
    cache, caching, sqlite, in-memory, ttl, stale-while-revalidate, fieldtally
"""

from __future__ import annotations

import json
import sqlite3
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generic, Protocol, TypeVar

from fieldtally.core.logging import get_logger
from fieldtally.core.ttl import DEFAULT_TTL_POLICY, Tier, TTLPolicy

logger = get_logger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]

DEFAULT_NAMESPACE = "fieldtally:cache:"


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached value and the epoch-seconds timestamp it was stored at."""

    value: T
    stored_at: float

    def age(self, now: float) -> float:
        return now - self.stored_at

    def is_fresh(self, now: float, ttl: float) -> bool:
        return self.age(now) <= ttl


class CacheTier(Protocol):
    """Contract shared by both cache tiers."""

    tier: Tier

    def get(self, key: str) -> CacheEntry[Any] | None:
        """Return the raw entry regardless of age, or ``None``."""
        ...

    def get_fresh(self, key: str, resource_class: str) -> CacheEntry[Any] | None:
        """Return the entry only if it is within this tier's TTL."""
        ...

    def set(self, key: str, value: Any, *, stored_at: float | None = None) -> None:
        """Store ``value`` stamped with ``stored_at`` (default: now)."""
        ...

    def delete(self, key: str) -> None:
        ...

    def clear(self) -> None:
        ...


class _TierBase:
    tier: Tier

    def __init__(self, *, policy: TTLPolicy = DEFAULT_TTL_POLICY, clock: Clock = time.time):
        self._policy = policy
        self._clock = clock

    def get(self, key: str) -> CacheEntry[Any] | None:  # pragma: no cover - abstract
        raise NotImplementedError

    def get_fresh(self, key: str, resource_class: str) -> CacheEntry[Any] | None:
        entry = self.get(key)
        if entry is None:
            return None
        if not entry.is_fresh(self._clock(), self._policy.ttl(resource_class, self.tier)):
            return None
        return entry


# ------------------------------------------------------------------ #
# Memory tier (Tier 1)
# ------------------------------------------------------------------ #


class MemoryCacheTier(_TierBase):
    """Volatile, unbounded dict of cache entries.

    Entry count is bounded in practice by distinct resource keys times
    distinct parameterizations, so there is no eviction.
    """

    tier = Tier.MEMORY

    def __init__(self, *, policy: TTLPolicy = DEFAULT_TTL_POLICY, clock: Clock = time.time):
        super().__init__(policy=policy, clock=clock)
        self._store: dict[str, CacheEntry[Any]] = {}

    def get(self, key: str) -> CacheEntry[Any] | None:
        return self._store.get(key)

    def set(self, key: str, value: Any, *, stored_at: float | None = None) -> None:
        self._store[key] = CacheEntry(value, self._clock() if stored_at is None else stored_at)

    def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def size(self) -> int:
        return len(self._store)


# ------------------------------------------------------------------ #
# Key-value stores backing the durable tier
# ------------------------------------------------------------------ #


class KeyValueStore(Protocol):
    """Minimal string key-value persistence used by :class:`DurableCacheTier`."""

    def get_item(self, key: str) -> str | None:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...

    def keys(self) -> Iterable[str]:
        ...


class InMemoryKeyValueStore:
    """Dict-backed store. Survives nothing; used for tests and ephemeral runs."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self.data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove_item(self, key: str) -> None:
        self.data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self.data)


class SqliteKeyValueStore:
    """SQLite-backed store that survives process restarts.

    One table, ``kv(key TEXT PRIMARY KEY, value TEXT)``. The file may be
    shared with unrelated state; :class:`DurableCacheTier` only touches keys
    under its namespace.
    """

    def __init__(self, path: str | Path):
        self._path = str(path)
        if self._path != ":memory:":
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self._path, check_same_thread=False)
        self._conn.execute("CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)")
        self._conn.commit()

    def get_item(self, key: str) -> str | None:
        with self._lock:
            row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )
            self._conn.commit()

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            self._conn.commit()

    def keys(self) -> list[str]:
        with self._lock:
            return [row[0] for row in self._conn.execute("SELECT key FROM kv")]

    def close(self) -> None:
        with self._lock:
            self._conn.close()


# ------------------------------------------------------------------ #
# Durable tier (Tier 2)
# ------------------------------------------------------------------ #


class DurableCacheTier(_TierBase):
    """Cross-session tier storing ``{"value", "storedAt"}`` JSON per key.

    Every store failure is logged and swallowed: a broken durable tier
    degrades to cache misses, it never breaks a read.
    """

    tier = Tier.DURABLE

    def __init__(
        self,
        store: KeyValueStore,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        policy: TTLPolicy = DEFAULT_TTL_POLICY,
        clock: Clock = time.time,
    ):
        super().__init__(policy=policy, clock=clock)
        self._store = store
        self._namespace = namespace

    @property
    def namespace(self) -> str:
        return self._namespace

    def _storage_key(self, key: str) -> str:
        return f"{self._namespace}{key}"

    def get(self, key: str) -> CacheEntry[Any] | None:
        try:
            raw = self._store.get_item(self._storage_key(key))
        except Exception as e:
            logger.warning("durable_cache_read_failed", key=key, error=str(e))
            return None
        if raw is None:
            return None
        try:
            payload = json.loads(raw)
            return CacheEntry(payload["value"], float(payload["storedAt"]))
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("durable_cache_entry_corrupt", key=key, error=str(e))
            return None

    def set(self, key: str, value: Any, *, stored_at: float | None = None) -> None:
        payload = {"value": value, "storedAt": self._clock() if stored_at is None else stored_at}
        try:
            self._store.set_item(self._storage_key(key), json.dumps(payload))
        except Exception as e:
            logger.warning("durable_cache_write_failed", key=key, error=str(e))

    def delete(self, key: str) -> None:
        try:
            self._store.remove_item(self._storage_key(key))
        except Exception as e:
            logger.warning("durable_cache_delete_failed", key=key, error=str(e))

    def clear(self) -> None:
        """Remove every key under this tier's namespace, and nothing else."""
        try:
            owned = [k for k in self._store.keys() if k.startswith(self._namespace)]
            for storage_key in owned:
                self._store.remove_item(storage_key)
        except Exception as e:
            logger.warning("durable_cache_clear_failed", namespace=self._namespace, error=str(e))
            return
        logger.debug("durable_cache_cleared", namespace=self._namespace, removed=len(owned))


__all__ = [
    "CacheEntry",
    "CacheTier",
    "Clock",
    "DEFAULT_NAMESPACE",
    "DurableCacheTier",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "MemoryCacheTier",
    "SqliteKeyValueStore",
]
