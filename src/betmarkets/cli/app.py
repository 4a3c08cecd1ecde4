"""Root CLI app - entry point and commands. Commands print JSON unless noted."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Coroutine, TypeVar

import typer
from pydantic import BaseModel, ValidationError

from betmarkets.aggregation import MarketAggregator
from betmarkets.config import configure_logging, get_settings
from betmarkets.errors import MarketClientError
from betmarkets.models import BETFAIR_EVENT_TYPES, PLATFORMS, SearchOptions

T = TypeVar("T")

app = typer.Typer(
    name="betmarkets",
    help="Search and aggregate prediction/betting markets across platforms.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Path | None = typer.Option(
        None, "--config-dir", "-C", help="Config directory (default: ./config or package config)"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Config profile (e.g. dev) to overlay on default.toml"
    ),
) -> None:
    """Load settings, configure logging and build the aggregator."""
    settings = get_settings(profile, config_dir)
    configure_logging(settings)
    ctx.obj = {"settings": settings, "aggregator": MarketAggregator.from_settings(settings)}


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a client coroutine; client failures end the command with their message."""
    try:
        return asyncio.run(coro)
    except MarketClientError as e:
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(1)


def _echo_json(data: Any) -> None:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", by_alias=True, exclude_none=True)
    typer.echo(json.dumps(data, indent=2))


def _options(**kwargs: Any) -> SearchOptions:
    try:
        return SearchOptions(**{k: v for k, v in kwargs.items() if v is not None})
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first["loc"])
        raise typer.BadParameter(f"{field}: {first['msg']}")


@app.command("list-tools")
def list_tools(ctx: typer.Context) -> None:
    """List available commands."""
    _echo_json(ctx.obj["aggregator"].list_tools())


@app.command("search")
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Search query"),
    platform: str | None = typer.Option(None, "--platform", help="polymarket | betfair"),
    min_volume: int | None = typer.Option(None, "--min-volume", help="Minimum volume in USD"),
    max_results: int | None = typer.Option(None, "--max-results", "-n", help="Maximum results (1-1000)"),
    sort_by: str | None = typer.Option(None, "--sort-by", help="volume | odds | platform"),
    status: str | None = typer.Option(None, "--status", help="open | closed | settled | unknown"),
    event_type: list[str] | None = typer.Option(
        None,
        "--event-type",
        "-e",
        help=f"Betfair event type id or name: {', '.join(BETFAIR_EVENT_TYPES)} (repeatable)",
    ),
) -> None:
    """Search markets across platforms."""
    options = _options(
        platform=platform,
        min_volume=min_volume,
        max_results=max_results,
        sort_by=sort_by,
        status=status,
        event_type_ids=event_type or None,
    )
    result = _run(ctx.obj["aggregator"].search_all(query, options))
    _echo_json(result)


@app.command("format-table")
def format_table(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Search query"),
    platform: str | None = typer.Option(None, "--platform", help="polymarket | betfair"),
    min_volume: int | None = typer.Option(None, "--min-volume", help="Minimum volume in USD"),
    max_results: int | None = typer.Option(None, "--max-results", "-n", help="Maximum results (1-1000)"),
    sort_by: str | None = typer.Option(None, "--sort-by", help="volume | odds | platform"),
) -> None:
    """Search and print a markdown table instead of JSON."""
    options = _options(
        platform=platform, min_volume=min_volume, max_results=max_results, sort_by=sort_by
    )
    typer.echo(_run(ctx.obj["aggregator"].format_table(query, options)))


@app.command("market")
def market(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market id (Polymarket event slug or Betfair market id)"),
    platform: str = typer.Option(..., "--platform", help="polymarket | betfair"),
) -> None:
    """Get single market details."""
    if platform not in PLATFORMS:
        raise typer.BadParameter(
            f"must be one of: {' | '.join(PLATFORMS)}", param_hint="'--platform'"
        )
    found = _run(ctx.obj["aggregator"].get_market(market_id, platform))
    if found is None:
        _echo_json({"found": False, "message": "Market not found"})
    else:
        _echo_json(found)


@app.command("event-types")
def event_types(ctx: typer.Context) -> None:
    """List Betfair event types usable with --event-type."""
    _echo_json(_run(ctx.obj["aggregator"].list_event_types()))


@app.command("auth-test")
def auth_test(ctx: typer.Context) -> None:
    """Test authentication for all platforms."""
    results = _run(ctx.obj["aggregator"].test_auth())
    typer.echo("\nAuthentication Test Results:")
    typer.echo("─" * 40)
    for name, status in results.items():
        enabled = "✓ enabled" if status.enabled else "✗ disabled"
        authed = "✓ authenticated" if status.authenticated else "✗ not authenticated"
        typer.echo(f"{name:<12} {enabled:<14} {authed}")
        if status.error:
            typer.echo(f"             └─ {status.error}")
    typer.echo("─" * 40)
    typer.echo("\nJSON:")
    _echo_json({name: s.model_dump(mode="json", exclude_none=True) for name, s in results.items()})


def run() -> None:
    app()


if __name__ == "__main__":
    run()
