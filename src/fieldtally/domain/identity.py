"""Canonical collector identity resolution.

Rows name their collector inconsistently: some carry an explicit name, some
only the rig (equipment) id they were recorded on. The roster maps rigs to
collectors, and resolution applies a fixed precedence:

    1. explicit name on the row, trimmed, if non-empty
    2. ``rig_map[identifier]`` when the identifier is a known rig
    3. the identifier itself, trimmed

Names are compared exactly (case-sensitive) after trimming.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from fieldtally.core.logging import get_logger
from fieldtally.domain.models import SourceRow

logger = get_logger(__name__)

RigMap = dict[str, str]


def build_rig_map(roster: Iterable[Any]) -> RigMap:
    """Build a rig id → canonical name map from roster entries.

    Each roster entry is a mapping (or object) with ``name`` and ``rigs``.
    Duplicate rig ids are resolved last-seen-wins; every overwrite of a
    different owner is logged as a warning so the roster can be fixed.
    """
    rig_map: RigMap = {}
    for entry in roster:
        name, rigs = _name_and_rigs(entry)
        name = name.strip()
        if not name:
            continue
        for rig in rigs:
            rig_id = str(rig).strip()
            if not rig_id:
                continue
            previous = rig_map.get(rig_id)
            if previous is not None and previous != name:
                logger.warning("duplicate_rig_mapping", rig=rig_id, previous=previous, current=name)
            rig_map[rig_id] = name
    return rig_map


def _name_and_rigs(entry: Any) -> tuple[str, list[Any]]:
    if isinstance(entry, Mapping):
        name = entry.get("name") or ""
        rigs = entry.get("rigs") or []
    else:
        name = getattr(entry, "name", "") or ""
        rigs = getattr(entry, "rigs", None) or []
    if isinstance(rigs, str):
        rigs = rigs.split(",")
    return str(name), list(rigs)


def resolve_identity(row: SourceRow, rig_map: Mapping[str, str]) -> str | None:
    """Canonical collector name for ``row``, or ``None`` if nothing identifies it."""
    if row.explicit_name:
        explicit = row.explicit_name.strip()
        if explicit:
            return explicit

    raw = row.identifier_raw or ""
    trimmed = raw.strip()
    mapped = rig_map.get(raw) or rig_map.get(trimmed)
    if mapped:
        return mapped

    return trimmed or None


__all__ = ["RigMap", "build_rig_map", "resolve_identity"]
