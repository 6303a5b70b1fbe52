"""Dataclass models for the reconciliation pass.

These are plain containers. ``SourceRow`` and ``LeaderboardEntry`` are
immutable; ``Aggregate`` is mutated while rows are folded into it and is
discarded once the leaderboard has been built.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Literal

Region = Literal["MX", "SF"]

REGION_SF: Region = "SF"
REGION_MX: Region = "MX"


@dataclass(frozen=True, slots=True)
class SourceRow:
    """A single record from either source table.

    Attributes:
        identifier_raw: Rig / equipment id, or the collector name when no rig is recorded
        site_or_date: Free-text site (primary source) or date (secondary source)
        hours_value: Hours measured for this row
        explicit_name: Collector name written on the row, if any
        task_unit: Tasks represented by the row (always 1)
    """

    identifier_raw: str
    site_or_date: str = ""
    hours_value: float = 0.0
    explicit_name: str | None = None
    task_unit: int = 1


@dataclass(slots=True)
class Aggregate:
    """Running totals for one canonical collector."""

    name: str
    region: Region = REGION_MX
    hours_logged: float = 0.0
    tasks_completed: int = 0
    tasks_assigned: int = 0

    def add_hours(self, hours: float) -> None:
        self.hours_logged += max(hours, 0.0)

    def add_task(self, units: int = 1) -> None:
        self.tasks_completed += units
        self.tasks_assigned += units

    def promote_region(self, region: Region) -> None:
        """MX may become SF; SF never becomes MX."""
        if region == REGION_SF:
            self.region = REGION_SF


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    rank: int
    collector_name: str
    hours_logged: float
    tasks_completed: int
    tasks_assigned: int
    completion_rate: int
    region: Region

    def to_dict(self) -> dict[str, Any]:
        """Wire shape (camelCase), as cached and as served to clients."""
        return {
            "rank": self.rank,
            "collectorName": self.collector_name,
            "hoursLogged": self.hours_logged,
            "tasksCompleted": self.tasks_completed,
            "tasksAssigned": self.tasks_assigned,
            "completionRate": self.completion_rate,
            "region": self.region,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LeaderboardEntry:
        return cls(
            rank=int(data["rank"]),
            collector_name=str(data["collectorName"]),
            hours_logged=float(data["hoursLogged"]),
            tasks_completed=int(data["tasksCompleted"]),
            tasks_assigned=int(data["tasksAssigned"]),
            completion_rate=int(data["completionRate"]),
            region=REGION_SF if data.get("region") == REGION_SF else REGION_MX,
        )

    def as_record(self) -> dict[str, Any]:
        return asdict(self)


__all__ = [
    "Aggregate",
    "LeaderboardEntry",
    "REGION_MX",
    "REGION_SF",
    "Region",
    "SourceRow",
]
