"""Endpoint URL normalisation for Apps-Script style deployments."""

from __future__ import annotations

import re

_MACRO_PATH = re.compile(r"/macros/s/")


def normalize_script_url(raw: str | None) -> str:
    """Clean up a configured endpoint URL.

    Trims whitespace, strips one pair of surrounding quotes and appends
    ``/exec`` to ``/macros/s/<id>`` URLs that are missing it. Returns ``""``
    for blank input.

    >>> normalize_script_url(' "https://script.google.com/macros/s/abc/" ')
    'https://script.google.com/macros/s/abc/exec'
    """
    if not raw:
        return ""
    trimmed = raw.strip()
    trimmed = re.sub(r"^['\"]|['\"]$", "", trimmed)
    if not trimmed:
        return ""
    if trimmed.endswith("/exec"):
        return trimmed
    if _MACRO_PATH.search(trimmed):
        return f"{trimmed.rstrip('/')}/exec"
    return trimmed


__all__ = ["normalize_script_url"]
