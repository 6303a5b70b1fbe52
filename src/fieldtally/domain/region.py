"""Coarse region tag derived from a free-text site field."""

from __future__ import annotations

from fieldtally.domain.models import REGION_MX, REGION_SF, Region


def classify_region(site_text: str | None) -> Region:
    """``"SF"`` if the site text contains "sf" in any case, otherwise ``"MX"``.

    MX is the default, not a positive match on any token.

    >>> classify_region("SF-Lab")
    'SF'
    >>> classify_region("Site C-12")
    'MX'
    """
    if site_text and "SF" in site_text.upper():
        return REGION_SF
    return REGION_MX


__all__ = ["classify_region"]
