"""
Root Typer application for the fieldtally CLI.

Every command builds one :class:`~fieldtally.service.AnalyticsService`, runs
a single call through it and renders the result with rich.
"""

from __future__ import annotations

import typer
from typer import Typer

from fieldtally.cli.utils import console, make_service, output_data, run_async
from fieldtally.service import AnalyticsService

app = Typer(
    name="fieldtally",
    help="fieldtally — cached collector analytics over a spreadsheet row store.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from fieldtally import __version__

        typer.echo(f"fieldtally {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """fieldtally CLI — leaderboard, roster and dashboard views."""


# ── Commands ─────────────────────────────────────────────────────────────


async def _leaderboard(service: AnalyticsService) -> list[dict]:
    async with service:
        return [entry.to_dict() for entry in await service.get_leaderboard()]


@app.command("leaderboard")
def leaderboard(json_out: bool = typer.Option(False, "--json")) -> None:
    """Ranked collectors by hours logged."""
    entries = run_async(_leaderboard(make_service()))
    output_data(entries, as_json=json_out, title="Leaderboard")


async def _collectors(service: AnalyticsService) -> list:
    async with service:
        return await service.get_collectors()


@app.command("collectors")
def collectors(json_out: bool = typer.Option(False, "--json")) -> None:
    """Collector roster with their rigs."""
    roster = run_async(_collectors(make_service()))
    output_data(roster, as_json=json_out, title="Collectors")


async def _dashboard(service: AnalyticsService):
    async with service:
        return await service.get_dashboard()


@app.command("dashboard")
def dashboard(json_out: bool = typer.Option(False, "--json")) -> None:
    """Admin dashboard summary."""
    summary = run_async(_dashboard(make_service()))
    output_data(summary, as_json=json_out, title="Dashboard")


async def _stats(service: AnalyticsService, collector: str):
    async with service:
        return await service.get_collector_stats(collector)


@app.command("stats")
def stats(
    collector: str = typer.Argument(..., help="Collector name"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Stats for one collector."""
    result = run_async(_stats(make_service(), collector))
    output_data(result, as_json=json_out, title=collector)


async def _clear(service: AnalyticsService) -> None:
    async with service:
        service.clear_all_caches()


@app.command("clear-cache")
def clear_cache() -> None:
    """Drop every cached value, in memory and on disk."""
    run_async(_clear(make_service()))
    console.print("[green]Cache cleared.[/green]")
