"""
Cache orchestrator: one ``get_or_fetch`` over memory, durable and remote tiers.

Manifesto:
    Reads against the remote row store are slow (seconds), so the UI must
    almost always be answered from a local tier. The orchestrator answers
    from the freshest tier available and repairs staleness in the
    background, never making a caller wait for a refresh it did not need.

    - **Memory first:** A fresh memory entry never touches durable or network
    - **Stale-while-revalidate:** A durable entry of any age is served at once
    - **Owned background work:** Refresh tasks are tracked and awaitable
    - **Cold misses propagate:** Only a foreground fetch can fail a caller

Architecture:
    ::

        get_or_fetch(key, fetcher)
            │
            ├─ 1. memory.get_fresh(key) ──────────────► return value
            │
            ├─ 2. durable.get(key) (any age)
            │       ├─ backfill memory (original stored_at)
            │       ├─ older than memory TTL? schedule refresh ──┐
            │       └─ return value                               │
            │                                                     ▼
            │                                    background: fetcher()
            │                                      ok   → write both tiers
            │                                      fail → log, swallow
            │
            └─ 3. await fetcher() → write both tiers → return value
                    (failure propagates, nothing cached)

Examples:
    orchestrator = CacheOrchestrator(MemoryCacheTier(), DurableCacheTier(InMemoryKeyValueStore()))
    rows = await orchestrator.get_or_fetch("roster", client.fetch_collectors_raw)
    await orchestrator.wait_for_refreshes()

Guardrails:
    - Two concurrent cold misses for one key both call their fetcher; the
      remote store is idempotent for reads so this is accepted.
    - ``clear_all`` bumps a generation counter. Fetches that started before
      the clear finish normally for their caller but do not write.
    - ``invalidate`` bumps a per-key counter the same way, so a read that
      started before a submit cannot cache pre-submit data.
    - Durable-tier reads and writes run in a worker thread
      (``asyncio.to_thread``); each write re-checks the counters under a lock
      that ``clear_all`` and ``invalidate`` also hold.

Tags:
    cache, stale-while-revalidate, asyncio, background-refresh, fieldtally
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from fieldtally.core.cache import CacheTier, Clock
from fieldtally.core.logging import get_logger
from fieldtally.core.ttl import DEFAULT_TTL_POLICY, TTLPolicy, resource_class_of

logger = get_logger(__name__)

T = TypeVar("T")

Fetcher = Callable[[], Awaitable[Any]]


@dataclass
class CacheStats:
    """Counters for where reads were answered from."""

    memory_hits: int = 0
    durable_hits: int = 0
    misses: int = 0
    refreshes_started: int = 0
    refreshes_failed: int = 0
    writes_dropped: int = 0


class CacheOrchestrator:
    """Compose the memory tier, durable tier and a fetcher with stale-while-revalidate."""

    def __init__(
        self,
        memory: CacheTier,
        durable: CacheTier,
        *,
        policy: TTLPolicy = DEFAULT_TTL_POLICY,
        clock: Clock = time.time,
    ):
        self._memory = memory
        self._durable = durable
        self._policy = policy
        self._clock = clock
        self._generation = 0
        self._key_generations: dict[str, int] = {}
        self._write_lock = threading.Lock()
        self._refreshes: dict[str, asyncio.Task[None]] = {}
        self.stats = CacheStats()

    @property
    def memory(self) -> CacheTier:
        return self._memory

    @property
    def durable(self) -> CacheTier:
        return self._durable

    async def get_or_fetch(
        self,
        key: str,
        fetcher: Fetcher,
        *,
        resource_class: str | None = None,
    ) -> Any:
        """Return the value for ``key`` from the freshest available tier.

        Args:
            key: Cache key, conventionally ``<resource_class>[:<params>]``
            fetcher: Zero-arg coroutine function producing a fresh value
            resource_class: TTL class; defaults to the key prefix

        Raises:
            Whatever ``fetcher`` raises, on a cold miss only.
        """
        rc = resource_class or resource_class_of(key)

        entry = self._memory.get_fresh(key, rc)
        if entry is not None:
            self.stats.memory_hits += 1
            logger.debug("cache_hit", key=key, tier="memory")
            return entry.value

        token = self._token(key)
        entry = await asyncio.to_thread(self._durable.get, key)
        if entry is not None and token != self._token(key):
            # Cleared or invalidated while the read was in flight
            entry = None
        if entry is not None:
            self.stats.durable_hits += 1
            self._memory.set(key, entry.value, stored_at=entry.stored_at)
            age = entry.age(self._clock())
            expired = age > self._policy.durable_ttl(rc)
            logger.debug("cache_hit", key=key, tier="durable", age=round(age, 3), expired=expired)
            if age > self._policy.memory_ttl(rc):
                self._schedule_refresh(key, fetcher, token)
            return entry.value

        self.stats.misses += 1
        logger.debug("cache_miss", key=key, resource_class=rc)
        value = await fetcher()
        await self._write(key, value, token)
        return value

    def invalidate(self, key: str) -> None:
        """Drop ``key`` from both tiers so the next read fetches.

        A background refresh in flight for ``key`` is cancelled, and a
        foreground fetch already in flight for it returns to its caller
        without writing.
        """
        task = self._refreshes.get(key)
        if task is not None:
            task.cancel()
        with self._write_lock:
            self._key_generations[key] = self._key_generations.get(key, 0) + 1
            self._durable.delete(key)
        self._memory.delete(key)
        logger.debug("cache_invalidated", key=key)

    def clear_all(self) -> None:
        """Empty the memory tier and this cache's durable namespace.

        Idempotent and never raises; durable failures are logged by the tier.
        """
        with self._write_lock:
            self._generation += 1
            self._durable.clear()
        self._memory.clear()
        logger.info("cache_cleared", generation=self._generation)

    async def wait_for_refreshes(self) -> None:
        """Wait until every background refresh scheduled so far has settled."""
        while self._refreshes:
            await asyncio.gather(*list(self._refreshes.values()), return_exceptions=True)

    def refresh_pending(self, key: str) -> bool:
        return key in self._refreshes

    # ── Internals ────────────────────────────────────────────────────

    def _token(self, key: str) -> tuple[int, int]:
        return self._generation, self._key_generations.get(key, 0)

    def _schedule_refresh(self, key: str, fetcher: Fetcher, token: tuple[int, int]) -> None:
        if key in self._refreshes:
            return
        self.stats.refreshes_started += 1
        task = asyncio.create_task(self._refresh(key, fetcher, token))
        self._refreshes[key] = task
        task.add_done_callback(lambda _t, k=key: self._refreshes.pop(k, None))
        logger.debug("background_refresh_scheduled", key=key)

    async def _refresh(self, key: str, fetcher: Fetcher, token: tuple[int, int]) -> None:
        try:
            value = await fetcher()
        except Exception as e:
            self.stats.refreshes_failed += 1
            logger.warning("background_refresh_failed", key=key, error=str(e))
            return
        await self._write(key, value, token)
        logger.debug("background_refresh_completed", key=key)

    async def _write(self, key: str, value: Any, token: tuple[int, int]) -> None:
        if token != self._token(key):
            self._drop_write(key)
            return
        stored_at = self._clock()
        self._memory.set(key, value, stored_at=stored_at)
        if not await asyncio.to_thread(self._persist, key, value, stored_at, token):
            self._drop_write(key)

    def _persist(self, key: str, value: Any, stored_at: float, token: tuple[int, int]) -> bool:
        # Worker thread; the lock orders this against clear_all and invalidate
        with self._write_lock:
            if token != self._token(key):
                return False
            self._durable.set(key, value, stored_at=stored_at)
            return True

    def _drop_write(self, key: str) -> None:
        self.stats.writes_dropped += 1
        logger.info("cache_write_dropped", key=key, reason="generation_changed")


__all__ = ["CacheOrchestrator", "CacheStats", "Fetcher"]
