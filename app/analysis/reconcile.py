"""Per-country position listing: latest AI history entry, else rule-based."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable

from app.analysis.interfaces import HistoryStore, IndicatorSource
from app.schemas import CountryPosition, CountrySnapshot, IndicatorReading
from app.score.position import calculate_position
from app.score.quadrants import determine_quadrant, quadrant_profile

logger = logging.getLogger(__name__)


async def position_for_country(
    indicator_source: IndicatorSource,
    history_store: HistoryStore,
    country_code: str,
    country_name: str,
) -> CountryPosition | None:
    """Most recent AI entry wins regardless of age; otherwise compute fresh.

    Returns None when the country has neither history nor readings.
    """
    entry = await history_store.latest_analysis(country_code)
    if entry is not None:
        return CountryPosition(
            country_code=entry.country_code,
            country_name=entry.country_name,
            growth_trend=entry.growth_trend,
            inflation_trend=entry.inflation_trend,
            quadrant=determine_quadrant(entry.growth_trend, entry.inflation_trend),
            confidence=entry.confidence,
            method="ai-enhanced",
            as_of=entry.analysis_date,
        )

    readings = await indicator_source.get_indicators(country_code)
    if not readings:
        return None
    position = calculate_position(readings)
    return CountryPosition(
        country_code=country_code.upper(),
        country_name=readings[0].country_name or country_name,
        growth_trend=position.growth_trend,
        inflation_trend=position.inflation_trend,
        quadrant=position.quadrant,
        confidence=position.confidence,
        method=position.method,
        as_of=datetime.now(tz=timezone.utc).date(),
    )


async def list_positions(
    indicator_source: IndicatorSource,
    history_store: HistoryStore,
    log_fn: Callable[[str], None] | None = None,
) -> list[CountryPosition]:
    """Positions for every country; a failing country is logged and skipped."""
    log = log_fn or logger.info
    countries = await indicator_source.list_countries()
    log(f"Resolving positions for {len(countries)} countries...")

    positions: list[CountryPosition] = []
    for code, name in countries:
        try:
            position = await position_for_country(indicator_source, history_store, code, name)
        except Exception as e:
            logger.warning("Failed to get position for %s", code, exc_info=True)
            log(f"  WARN: {code}: {e}")
            continue
        if position is None:
            log(f"  {code}: no data")
            continue
        positions.append(position)
        log(f"  {code}: {position.quadrant.value} ({position.method})")

    return positions


async def build_country_snapshot(
    indicator_source: IndicatorSource,
    history_store: HistoryStore,
    country_code: str,
    history_limit: int = 12,
) -> CountrySnapshot | None:
    """Rule-based position, readings, history and latest future outlook for one country."""
    readings, entry = await asyncio.gather(
        indicator_source.get_indicators(country_code),
        history_store.latest_analysis(country_code),
    )
    if not readings:
        return None

    position = calculate_position(readings)
    kinds = list(dict.fromkeys(r.indicator_kind for r in readings))

    async def _history(kind) -> list[IndicatorReading]:
        try:
            return await indicator_source.get_historical_indicators(country_code, kind, history_limit)
        except Exception:
            logger.warning("Historical fetch failed for %s/%s", country_code, kind.value, exc_info=True)
            return []

    series = await asyncio.gather(*(_history(k) for k in kinds))

    return CountrySnapshot(
        country_code=country_code.upper(),
        country_name=readings[0].country_name or country_code,
        position=position,
        future_position=entry.future_position() if entry is not None else None,
        indicators=readings,
        historical_data={k.value: s for k, s in zip(kinds, series)},
        profile=quadrant_profile(position.quadrant),
    )
