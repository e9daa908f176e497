"""AI-backed Investment Clock estimator with rule-based fallback.

Every terminal outcome (model success or fallback) is appended to the
analysis history once; a history write failure never fails the analysis.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Iterable

from pydantic import BaseModel

from app.analysis.interfaces import GenerativeModel, HistoryStore, IndicatorSource
from app.analysis.parsing import (
    AIEnhancedResponse,
    AIPositionResponse,
    ParseResult,
    parse_model_output,
)
from app.analysis.prompts import SeriesSummary, build_basic_prompt, build_enhanced_prompt, summarize_series
from app.errors import NoIndicatorsError
from app.schemas import (
    AIAnalysisHistoryEntry,
    AIPosition,
    CalculatedPosition,
    FuturePosition,
    IndicatorKind,
    IndicatorReading,
)
from app.score.position import calculate_position
from app.score.versions import (
    FALLBACK_FUTURE_CONFIDENCE,
    FALLBACK_FUTURE_HORIZON,
    FALLBACK_FUTURE_REASONING,
    FALLBACK_REASONING,
    POSITION_CALC_VERSION,
    PROMPT_VERSION,
)

logger = logging.getLogger(__name__)


def _fallback_position(rule_based: CalculatedPosition) -> AIPosition:
    return AIPosition(
        growth_trend=rule_based.growth_trend,
        inflation_trend=rule_based.inflation_trend,
        confidence=rule_based.confidence,
        growth_components=rule_based.growth_components,
        inflation_components=rule_based.inflation_components,
        reasoning=FALLBACK_REASONING,
        fallback=True,
    )


def _from_response(resp: AIPositionResponse, rule_based: CalculatedPosition) -> AIPosition:
    position = AIPosition(
        growth_trend=resp.growth_trend,
        inflation_trend=resp.inflation_trend,
        confidence=resp.confidence,
        growth_components=rule_based.growth_components,
        inflation_components=rule_based.inflation_components,
        reasoning=resp.reasoning,
    )
    if position.quadrant != resp.quadrant:
        logger.warning(
            "Model labelled quadrant %s but trends (%s, %s) give %s; using %s",
            resp.quadrant.value, resp.growth_trend, resp.inflation_trend,
            position.quadrant.value, position.quadrant.value,
        )
    return position


class PositionEstimator:
    def __init__(
        self,
        model: GenerativeModel,
        history_store: HistoryStore,
        indicator_source: IndicatorSource | None = None,
        history_limit: int = 12,
    ) -> None:
        self.model = model
        self.history_store = history_store
        self.indicator_source = indicator_source
        self.history_limit = history_limit

    async def analyze(
        self,
        country_code: str,
        country_name: str,
        readings: Iterable[IndicatorReading],
    ) -> AIPosition:
        """Basic mode: current snapshot only, no future position."""
        readings = _require(readings)
        position = await self._basic(country_name, readings)
        await self._record(country_code, country_name, position, readings)
        return position

    async def analyze_enhanced(
        self,
        country_code: str,
        country_name: str,
        readings: Iterable[IndicatorReading],
    ) -> AIPosition:
        """Enhanced mode: adds historical trends and asks for a future position."""
        readings = _require(readings)
        rule_based = calculate_position(readings)

        summaries = await self._load_summaries(country_code, readings)
        prompt = build_enhanced_prompt(country_name, readings, summaries)
        result = await self._ask(prompt, AIEnhancedResponse)

        if result.ok:
            current = _from_response(result.value.current_position, rule_based)
            future_resp = result.value.future_position
            position = current.model_copy(update={
                "future_position": FuturePosition(
                    growth_trend=future_resp.growth_trend,
                    inflation_trend=future_resp.inflation_trend,
                    confidence=future_resp.confidence,
                    time_horizon=future_resp.time_horizon,
                    reasoning=future_resp.reasoning,
                ),
            })
        else:
            logger.warning("Enhanced analysis for %s failed (%s); using basic mode", country_name, result.error)
            basic = await self._basic(country_name, readings, rule_based)
            position = basic.model_copy(update={
                "future_position": FuturePosition(
                    growth_trend=basic.growth_trend,
                    inflation_trend=basic.inflation_trend,
                    confidence=FALLBACK_FUTURE_CONFIDENCE,
                    time_horizon=FALLBACK_FUTURE_HORIZON,
                    reasoning=FALLBACK_FUTURE_REASONING,
                ),
            })

        await self._record(country_code, country_name, position, readings)
        return position

    async def analyze_country(
        self,
        country_code: str,
        country_name: str | None = None,
        enhanced: bool = False,
    ) -> AIPosition:
        """Load current readings from the indicator source, then analyze."""
        if self.indicator_source is None:
            raise ValueError("analyze_country requires an indicator_source")
        readings = await self.indicator_source.get_indicators(country_code)
        if not readings:
            raise NoIndicatorsError(f"No economic indicators found for {country_code}")
        name = country_name or readings[0].country_name or country_code
        if enhanced:
            return await self.analyze_enhanced(country_code, name, readings)
        return await self.analyze(country_code, name, readings)

    async def _basic(
        self,
        country_name: str,
        readings: list[IndicatorReading],
        rule_based: CalculatedPosition | None = None,
    ) -> AIPosition:
        rule_based = rule_based or calculate_position(readings)
        result = await self._ask(build_basic_prompt(country_name, readings), AIPositionResponse)
        if not result.ok:
            logger.warning("AI analysis for %s failed (%s); using rule-based position", country_name, result.error)
            return _fallback_position(rule_based)
        return _from_response(result.value, rule_based)

    async def _ask(self, prompt: str, schema: type[BaseModel]) -> ParseResult:
        try:
            text = await self.model.generate(prompt)
        except Exception as e:
            return ParseResult.failure(f"model call failed: {e}")
        return parse_model_output(text, schema)

    async def _load_summaries(
        self,
        country_code: str,
        readings: list[IndicatorReading],
    ) -> list[SeriesSummary]:
        if self.indicator_source is None:
            return []
        kinds = list(dict.fromkeys(r.indicator_kind for r in readings))
        series = await asyncio.gather(*(self._fetch_history(country_code, k) for k in kinds))
        return [summarize_series(k.value, s) for k, s in zip(kinds, series)]

    async def _fetch_history(self, country_code: str, kind: IndicatorKind) -> list[IndicatorReading]:
        try:
            series = await self.indicator_source.get_historical_indicators(country_code, kind, self.history_limit)
        except Exception:
            logger.warning("Historical fetch failed for %s/%s", country_code, kind.value, exc_info=True)
            return []
        return sorted(series, key=lambda r: r.observed_date)[-self.history_limit:]

    async def _record(
        self,
        country_code: str,
        country_name: str,
        position: AIPosition,
        readings: list[IndicatorReading],
    ) -> None:
        try:
            entry = AIAnalysisHistoryEntry.from_position(
                country_code,
                country_name,
                position,
                readings,
                analysis_date=datetime.now(tz=timezone.utc).date(),
            )
            await self.history_store.append_analysis(entry)
        except Exception:
            logger.warning("Error logging AI analysis history for %s", country_code, exc_info=True)

        logger.info(
            "Analyzed %s position: %s (growth=%s, inflation=%s, confidence=%s%%%s) [%s/%s]",
            country_name, position.quadrant.value, position.growth_trend,
            position.inflation_trend, position.confidence,
            ", fallback" if position.fallback else "",
            POSITION_CALC_VERSION, PROMPT_VERSION,
        )


def _require(readings: Iterable[IndicatorReading]) -> list[IndicatorReading]:
    readings = list(readings)
    if not readings:
        raise NoIndicatorsError("No economic indicators available for calculation")
    return readings
