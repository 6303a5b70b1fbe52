"""Pure reconciliation logic: no I/O, no cache, no clock."""

from fieldtally.domain.identity import build_rig_map, resolve_identity
from fieldtally.domain.leaderboard import build_leaderboard, completion_rate
from fieldtally.domain.models import Aggregate, LeaderboardEntry, SourceRow
from fieldtally.domain.reconcile import reconcile
from fieldtally.domain.region import classify_region

__all__ = [
    "Aggregate",
    "LeaderboardEntry",
    "SourceRow",
    "build_leaderboard",
    "build_rig_map",
    "classify_region",
    "completion_rate",
    "reconcile",
    "resolve_identity",
]
