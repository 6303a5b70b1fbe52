"""Per-resource-class freshness policy for the cache tiers.

Volatile aggregates (leaderboard, dashboard) get short TTLs; near-static
reference data (roster, task catalog) gets long ones. Any resource class not
listed falls back to the default pair.

Examples:
    >>> DEFAULT_TTL_POLICY.memory_ttl("leaderboard")
    120.0
    >>> DEFAULT_TTL_POLICY.durable_ttl("something_else")
    120.0
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType


class ResourceClass(str, Enum):
    """Named categories of cached data."""

    ROSTER = "roster"
    TASKS = "tasks"
    LEADERBOARD = "leaderboard"
    DASHBOARD = "dashboard"
    COLLECTOR_DETAIL = "collector_detail"
    TASK_REQUIREMENTS = "task_requirements"


class Tier(str, Enum):
    MEMORY = "memory"
    DURABLE = "durable"


@dataclass(frozen=True)
class TTLPair:
    """Memory and durable TTL in seconds for one resource class."""

    memory: float
    durable: float

    def __post_init__(self) -> None:
        if self.memory < 0 or self.durable < 0:
            raise ValueError(f"TTLs must be non-negative, got {self}")
        if self.memory > self.durable:
            raise ValueError(
                f"memory TTL ({self.memory}s) must not exceed durable TTL ({self.durable}s)"
            )

    def for_tier(self, tier: Tier) -> float:
        return self.memory if tier is Tier.MEMORY else self.durable


@dataclass(frozen=True)
class TTLPolicy:
    """Static table mapping resource class to a :class:`TTLPair`."""

    entries: Mapping[str, TTLPair] = field(default_factory=dict)
    default: TTLPair = TTLPair(memory=30, durable=120)

    def __post_init__(self) -> None:
        normalized = {_class_name(k): v for k, v in self.entries.items()}
        object.__setattr__(self, "entries", MappingProxyType(normalized))

    def pair(self, resource_class: str | ResourceClass) -> TTLPair:
        return self.entries.get(_class_name(resource_class), self.default)

    def ttl(self, resource_class: str | ResourceClass, tier: Tier) -> float:
        return float(self.pair(resource_class).for_tier(tier))

    def memory_ttl(self, resource_class: str | ResourceClass) -> float:
        return self.ttl(resource_class, Tier.MEMORY)

    def durable_ttl(self, resource_class: str | ResourceClass) -> float:
        return self.ttl(resource_class, Tier.DURABLE)


def _class_name(resource_class: str | ResourceClass) -> str:
    if isinstance(resource_class, ResourceClass):
        return resource_class.value
    return resource_class


def resource_class_of(key: str) -> str:
    """Resource class encoded in a cache key (the part before the first ``:``)."""
    return key.split(":", 1)[0]


DEFAULT_TTL_POLICY = TTLPolicy(
    entries={
        ResourceClass.ROSTER: TTLPair(memory=5 * 60, durable=30 * 60),
        ResourceClass.TASKS: TTLPair(memory=5 * 60, durable=30 * 60),
        ResourceClass.LEADERBOARD: TTLPair(memory=2 * 60, durable=10 * 60),
        ResourceClass.DASHBOARD: TTLPair(memory=60, durable=5 * 60),
        ResourceClass.COLLECTOR_DETAIL: TTLPair(memory=2 * 60, durable=10 * 60),
        ResourceClass.TASK_REQUIREMENTS: TTLPair(memory=2 * 60, durable=10 * 60),
    },
)


__all__ = [
    "DEFAULT_TTL_POLICY",
    "ResourceClass",
    "TTLPair",
    "TTLPolicy",
    "Tier",
    "resource_class_of",
]
