"""
Two-source reconciliation into one aggregate per canonical collector.

Manifesto:
    The activity log (primary) and the task-actuals sheet (secondary) are
    independent measurements of the same work. Adding them double-counts
    every hour that both recorded, so the secondary figure is treated as an
    alternative measurement of a collector's total and the larger one wins.

    - **Pass 1 folds:** primary rows add hours and one task each
    - **Pass 2 measures:** per-collector secondary totals replace primary
      hours only when larger (max, never sum)
    - **Sticky SF:** a region can be promoted MX→SF, never demoted
    - **Fail-closed:** a row with no resolvable identity is skipped

Architecture:
    ::

        primary rows ──► resolve_identity ─► classify_region ─► fold
                                                             │
                                                   dict[name, Aggregate]
                                                             │
        secondary rows ─► resolve_identity ─► sum per name ─► max-merge / seed MX

Examples:
    >>> from fieldtally.domain.models import SourceRow
    >>> primary = [SourceRow("Ana", "SF-Lab", 2.0), SourceRow("R7", "MX-1", 1.5)]
    >>> aggregates = reconcile(primary, [], {"R7": "Ana"})
    >>> agg = aggregates["Ana"]
    >>> (agg.hours_logged, agg.tasks_completed, agg.region)
    (3.5, 2, 'SF')

Tags:
    reconciliation, identity-resolution, aggregation, fieldtally
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from fieldtally.core.logging import get_logger
from fieldtally.domain.identity import resolve_identity
from fieldtally.domain.models import REGION_MX, Aggregate, SourceRow
from fieldtally.domain.region import classify_region

logger = get_logger(__name__)


class StatsReconciler:
    """Folds primary then secondary rows into an insertion-ordered aggregate map."""

    def __init__(self, rig_map: Mapping[str, str]):
        self._rig_map = rig_map
        self._aggregates: dict[str, Aggregate] = {}
        self.skipped_rows = 0

    @property
    def aggregates(self) -> dict[str, Aggregate]:
        return self._aggregates

    def fold_primary(self, rows: Iterable[SourceRow]) -> None:
        for row in rows:
            name = self._identify(row, "primary")
            if name is None:
                continue
            region = classify_region(row.site_or_date)
            aggregate = self._aggregates.get(name)
            if aggregate is None:
                aggregate = Aggregate(name=name, region=region)
                self._aggregates[name] = aggregate
            else:
                aggregate.promote_region(region)
            aggregate.add_hours(row.hours_value)
            aggregate.add_task(row.task_unit)

    def merge_secondary(self, rows: Iterable[SourceRow]) -> None:
        totals: dict[str, float] = {}
        counts: dict[str, int] = {}
        for row in rows:
            name = self._identify(row, "secondary")
            if name is None:
                continue
            totals[name] = totals.get(name, 0.0) + max(row.hours_value, 0.0)
            counts[name] = counts.get(name, 0) + row.task_unit

        for name, secondary_hours in totals.items():
            aggregate = self._aggregates.get(name)
            if aggregate is None:
                aggregate = Aggregate(name=name, region=REGION_MX, hours_logged=secondary_hours)
                aggregate.add_task(counts[name])
                self._aggregates[name] = aggregate
                continue
            if secondary_hours > aggregate.hours_logged:
                logger.debug(
                    "secondary_hours_preferred",
                    collector=name,
                    primary=aggregate.hours_logged,
                    secondary=secondary_hours,
                )
                aggregate.hours_logged = secondary_hours

    def _identify(self, row: SourceRow, source: str) -> str | None:
        name = resolve_identity(row, self._rig_map)
        if name is None:
            self.skipped_rows += 1
            logger.debug("row_without_identity", source=source, row=row)
        return name


def reconcile(
    primary_rows: Iterable[SourceRow],
    secondary_rows: Iterable[SourceRow],
    rig_map: Mapping[str, str],
) -> dict[str, Aggregate]:
    """Merge both sources into one :class:`Aggregate` per canonical collector."""
    reconciler = StatsReconciler(rig_map)
    reconciler.fold_primary(primary_rows)
    reconciler.merge_secondary(secondary_rows)
    logger.debug(
        "reconciled",
        collectors=len(reconciler.aggregates),
        skipped=reconciler.skipped_rows,
    )
    return reconciler.aggregates


__all__ = ["StatsReconciler", "reconcile"]
