"""CLI for the Investment Clock positioning engine."""
from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager

import typer

from app.analysis.estimator import PositionEstimator
from app.analysis.gemini import GeminiClient
from app.analysis.reconcile import build_country_snapshot, list_positions
from app.config import get_settings
from app.db.repository import SqlHistoryStore, SqlIndicatorSource
from app.db.session import create_session_factory
from app.errors import NoIndicatorsError
from app.score.position import calculate_position

app_cli = typer.Typer(name="investclock", help="Investment Clock positioning CLI")


@asynccontextmanager
async def _collaborators():
    settings = get_settings()
    engine, session_factory = create_session_factory(settings.database_url)
    source = SqlIndicatorSource(session_factory)
    history = SqlHistoryStore(session_factory)
    try:
        yield settings, source, history
    finally:
        await engine.dispose()


def _no_data(country: str) -> None:
    typer.echo(f"No economic indicators found for {country.upper()}", err=True)
    raise typer.Exit(1)


@app_cli.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v")):
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app_cli.command()
def position(country: str):
    """Print the rule-based position for COUNTRY."""
    async def _run():
        async with _collaborators() as (_, source, _history):
            readings = await source.get_indicators(country)
        return calculate_position(readings)

    try:
        result = asyncio.run(_run())
    except NoIndicatorsError:
        _no_data(country)
    typer.echo(result.model_dump_json(indent=2))


@app_cli.command()
def analyze(
    country: str,
    name: str | None = typer.Option(None, help="Country display name"),
    enhanced: bool = typer.Option(False, help="Include historical trends and a future position"),
):
    """Run the AI analysis for COUNTRY (falls back to rule-based) and log it to history."""
    async def _run():
        async with _collaborators() as (settings, source, history):
            estimator = PositionEstimator(
                model=GeminiClient.from_settings(settings),
                history_store=history,
                indicator_source=source,
                history_limit=settings.history_limit,
            )
            return await estimator.analyze_country(country, name, enhanced=enhanced)

    try:
        result = asyncio.run(_run())
    except NoIndicatorsError:
        _no_data(country)
    typer.echo(result.model_dump_json(indent=2))


@app_cli.command()
def positions():
    """List positions for all countries, preferring the latest AI analysis."""
    async def _run():
        async with _collaborators() as (_, source, history):
            return await list_positions(source, history)

    rows = asyncio.run(_run())
    typer.echo(json.dumps([r.model_dump(mode="json") for r in rows], indent=2))


@app_cli.command()
def country(code: str):
    """Print position, indicators, history and outlook for one country."""
    async def _run():
        async with _collaborators() as (settings, source, history):
            return await build_country_snapshot(source, history, code, settings.history_limit)

    snapshot = asyncio.run(_run())
    if snapshot is None:
        _no_data(code)
    typer.echo(snapshot.model_dump_json(indent=2))
