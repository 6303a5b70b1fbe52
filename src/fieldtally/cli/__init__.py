"""
CLI layer for fieldtally.

Provides a Typer application whose commands delegate to
:class:`fieldtally.service.AnalyticsService`. This package handles only
terminal transport: argument parsing, coloured output and table formatting.

Entry point::

    fieldtally --help
"""

from fieldtally.cli.app import app

__all__ = ["app"]
