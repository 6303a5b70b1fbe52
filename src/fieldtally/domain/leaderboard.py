"""Ranking of reconciled aggregates."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from fieldtally.domain.models import Aggregate, LeaderboardEntry


def completion_rate(completed: int, assigned: int) -> int:
    """Whole-number percentage, rounded half up; 0 when nothing was assigned.

    >>> completion_rate(3, 4)
    75
    >>> completion_rate(1, 8)
    13
    >>> completion_rate(5, 0)
    0
    """
    if assigned <= 0:
        return 0
    # Integer arithmetic so .5 always rounds up
    return (completed * 200 + assigned) // (2 * assigned)


def build_leaderboard(aggregates: Mapping[str, Aggregate] | Iterable[Aggregate]) -> list[LeaderboardEntry]:
    """Sort by hours descending (stable on ties) and number ranks from 1."""
    items = list(aggregates.values()) if isinstance(aggregates, Mapping) else list(aggregates)
    ordered = sorted(items, key=lambda agg: agg.hours_logged, reverse=True)
    return [
        LeaderboardEntry(
            rank=index + 1,
            collector_name=agg.name,
            hours_logged=agg.hours_logged,
            tasks_completed=agg.tasks_completed,
            tasks_assigned=agg.tasks_assigned,
            completion_rate=completion_rate(agg.tasks_completed, agg.tasks_assigned),
            region=agg.region,
        )
        for index, agg in enumerate(ordered)
    ]


__all__ = ["build_leaderboard", "completion_rate"]
