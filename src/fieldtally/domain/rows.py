"""Extraction of :class:`SourceRow` records from loosely keyed sheet rows.

The two source tables are maintained by hand, so the same column shows up as
``Collector``, ``collectorName`` or ``collector name`` depending on the sheet
and the week. Keys are normalised (lowercase, alphanumerics only) and matched
against a list of aliases per field.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from typing import Any

from fieldtally.core.logging import get_logger
from fieldtally.domain.models import SourceRow

logger = get_logger(__name__)

NAME_KEYS = ("collector", "collectorname", "name")
IDENTIFIER_KEYS = ("rig", "rigid", "rigname", "device", "id")
SITE_KEYS = ("site", "location", "sitename")
DATE_KEYS = ("date", "timestamp", "day")
HOURS_KEYS = ("hours", "loggedhours", "hourslogged", "actualhours", "duration")

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_key(key: str) -> str:
    """``"Hours Logged"`` → ``"hourslogged"``."""
    return _NON_ALNUM.sub("", str(key).lower())


def _normalized(record: Mapping[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in record.items():
        # First spelling of a column wins when a sheet has near-duplicate headers
        normalized.setdefault(normalize_key(key), value)
    return normalized


def _first_text(record: Mapping[str, Any], keys: Iterable[str]) -> str:
    for key in keys:
        value = record.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def parse_hours(value: Any) -> float:
    """Lenient numeric parse: ``"1,5"`` → 1.5, blanks and junk → 0, negatives → 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", ".")
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    if math.isnan(number) or math.isinf(number) or number < 0:
        return 0.0
    return number


def _row_from_record(record: Mapping[str, Any], context_keys: Iterable[str]) -> SourceRow | None:
    fields = _normalized(record)
    name = _first_text(fields, NAME_KEYS)
    identifier = _first_text(fields, IDENTIFIER_KEYS) or name
    if not identifier:
        return None
    return SourceRow(
        identifier_raw=identifier,
        site_or_date=_first_text(fields, context_keys),
        hours_value=parse_hours(next((fields[k] for k in HOURS_KEYS if k in fields), None)),
        explicit_name=name or None,
    )


def _rows(records: Iterable[Any], context_keys: tuple[str, ...], source: str) -> list[SourceRow]:
    rows: list[SourceRow] = []
    skipped = 0
    for record in records or []:
        if not isinstance(record, Mapping):
            skipped += 1
            continue
        row = _row_from_record(record, context_keys)
        if row is None:
            skipped += 1
            continue
        rows.append(row)
    if skipped:
        logger.debug("source_rows_skipped", source=source, skipped=skipped, kept=len(rows))
    return rows


def primary_rows_from_records(records: Iterable[Any]) -> list[SourceRow]:
    """Rows from the full activity log (site carried in ``site_or_date``)."""
    return _rows(records, SITE_KEYS, "primary")


def secondary_rows_from_records(records: Iterable[Any]) -> list[SourceRow]:
    """Rows from the task-actuals sheet (date carried in ``site_or_date``)."""
    return _rows(records, DATE_KEYS, "secondary")


__all__ = [
    "normalize_key",
    "parse_hours",
    "primary_rows_from_records",
    "secondary_rows_from_records",
]
