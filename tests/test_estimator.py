"""Tests for the AI position estimator: model, history and indicator source are mocked."""
from __future__ import annotations

import asyncio
import json
import logging
from datetime import date
from unittest.mock import AsyncMock

import httpx
import pytest

from app.analysis.estimator import PositionEstimator
from app.analysis.gemini import GeminiClient
from app.errors import ModelNotConfiguredError, NoIndicatorsError
from app.schemas import AIAnalysisHistoryEntry, IndicatorKind, IndicatorReading
from app.score.position import calculate_position
from app.score.quadrants import Quadrant
from app.score.versions import (
    FALLBACK_FUTURE_CONFIDENCE,
    FALLBACK_FUTURE_HORIZON,
    FALLBACK_REASONING,
)

_CURRENT = {
    "growth_trend": 30,
    "inflation_trend": -25,
    "quadrant": "recovery",
    "confidence": 80,
    "reasoning": "Expanding PMIs and cooling inflation.",
}

_FUTURE = {
    "growth_trend": 20,
    "inflation_trend": 10,
    "quadrant": "overheat",
    "confidence": 60,
    "time_horizon": "6-12 months",
    "reasoning": "Inflation likely to pick up as growth persists.",
}


def _readings() -> list[IndicatorReading]:
    return [
        IndicatorReading(indicator_kind=IndicatorKind.PMI_COMPOSITE, value=55.0, previous_value=52.0,
                         observed_date=date(2025, 5, 1), country_code="USA", country_name="United States"),
        IndicatorReading(indicator_kind=IndicatorKind.CPI_YOY, value=2.5, previous_value=2.3,
                         observed_date=date(2025, 5, 1), country_code="USA", country_name="United States"),
    ]


def _history(values: list[float], kind: IndicatorKind) -> list[IndicatorReading]:
    return [
        IndicatorReading(indicator_kind=kind, value=v, observed_date=date(2024, i + 1, 1))
        for i, v in enumerate(values)
    ]


def _model(response: str | None = None, error: Exception | None = None) -> AsyncMock:
    model = AsyncMock()
    if error is not None:
        model.generate.side_effect = error
    else:
        model.generate.return_value = response
    return model


def _store() -> AsyncMock:
    store = AsyncMock()
    store.append_analysis.side_effect = lambda entry: entry
    return store


def _recorded(store: AsyncMock) -> AIAnalysisHistoryEntry:
    store.append_analysis.assert_awaited_once()
    return store.append_analysis.await_args.args[0]


# ---------------------------------------------------------------------------
# Basic mode
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_basic_success_uses_model_output():
    model = _model(f"```json\n{json.dumps(_CURRENT)}\n```")
    store = _store()
    estimator = PositionEstimator(model, store)

    pos = await estimator.analyze("USA", "United States", _readings())

    assert pos.growth_trend == 30
    assert pos.inflation_trend == -25
    assert pos.quadrant == Quadrant.RECOVERY
    assert pos.confidence == 80
    assert pos.reasoning == _CURRENT["reasoning"]
    assert pos.method == "ai-enhanced"
    assert pos.fallback is False
    assert pos.future_position is None
    # Explainability breakdown comes from the rule-based components
    assert "PMI Composite" in pos.growth_components

    prompt = model.generate.await_args.args[0]
    assert "United States" in prompt

    entry = _recorded(store)
    assert entry.country_code == "USA"
    assert entry.quadrant == Quadrant.RECOVERY
    assert entry.future_growth_trend is None
    assert len(entry.economic_indicators) == 2


@pytest.mark.asyncio
async def test_quadrant_is_rederived_from_model_trends():
    mislabelled = dict(_CURRENT, quadrant="stagflation")
    estimator = PositionEstimator(_model(json.dumps(mislabelled)), _store())

    pos = await estimator.analyze("USA", "United States", _readings())
    assert pos.quadrant == Quadrant.RECOVERY


@pytest.mark.parametrize(
    "model",
    [
        _model(error=httpx.ConnectError("boom")),
        _model(error=ModelNotConfiguredError("no key")),
        _model("The economy looks fine."),
        _model(json.dumps(dict(_CURRENT, growth_trend=500))),
        _model(json.dumps(dict(_CURRENT, quadrant="boom"))),
    ],
    ids=["network", "not-configured", "no-json", "out-of-range", "bad-quadrant"],
)
@pytest.mark.asyncio
async def test_basic_failure_falls_back_to_rule_based(model):
    store = _store()
    estimator = PositionEstimator(model, store)

    pos = await estimator.analyze("USA", "United States", _readings())
    expected = calculate_position(_readings())

    assert pos.fallback is True
    assert pos.reasoning == FALLBACK_REASONING
    assert pos.future_position is None
    assert pos.growth_trend == expected.growth_trend
    assert pos.inflation_trend == expected.inflation_trend
    assert pos.confidence == expected.confidence
    assert pos.quadrant == expected.quadrant
    assert pos.growth_components == expected.growth_components
    assert pos.inflation_components == expected.inflation_components

    entry = _recorded(store)
    assert entry.reasoning == FALLBACK_REASONING


@pytest.mark.asyncio
async def test_history_failure_is_swallowed():
    store = AsyncMock()
    store.append_analysis.side_effect = RuntimeError("db down")
    estimator = PositionEstimator(_model(json.dumps(_CURRENT)), store)

    pos = await estimator.analyze("USA", "United States", _readings())

    assert pos.growth_trend == 30
    store.append_analysis.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_model_call_never_logs_api_key(caplog):
    caplog.set_level(logging.DEBUG)

    def unavailable(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": {"code": 503}})

    async with httpx.AsyncClient(transport=httpx.MockTransport(unavailable)) as http:
        model = GeminiClient(api_key="SECRET-KEY-123", attempts=2, delay=0, client=http)
        estimator = PositionEstimator(model, _store())
        pos = await estimator.analyze("USA", "United States", _readings())

    assert pos.fallback is True
    assert "503" in caplog.text
    assert "SECRET-KEY-123" not in caplog.text


@pytest.mark.asyncio
async def test_history_entry_build_failure_is_swallowed():
    store = _store()
    estimator = PositionEstimator(_model(json.dumps(_CURRENT)), store)

    # A missing country name cannot be stored but must not fail the analysis
    pos = await estimator.analyze("USA", None, _readings())

    assert pos.growth_trend == 30
    store.append_analysis.assert_not_awaited()


@pytest.mark.asyncio
async def test_no_readings_raises_before_model_call():
    model = _model(json.dumps(_CURRENT))
    store = _store()
    estimator = PositionEstimator(model, store)

    with pytest.raises(NoIndicatorsError):
        await estimator.analyze("USA", "United States", [])
    with pytest.raises(NoIndicatorsError):
        await estimator.analyze_enhanced("USA", "United States", [])

    model.generate.assert_not_awaited()
    store.append_analysis.assert_not_awaited()


# ---------------------------------------------------------------------------
# Enhanced mode
# ---------------------------------------------------------------------------

def _source(history: dict[IndicatorKind, list[IndicatorReading] | Exception]) -> AsyncMock:
    source = AsyncMock()

    async def get_historical(country_code, kind, limit):
        value = history.get(kind, [])
        if isinstance(value, Exception):
            raise value
        return value

    source.get_historical_indicators.side_effect = get_historical
    return source


@pytest.mark.asyncio
async def test_enhanced_success_includes_future_and_history():
    payload = {"current_position": _CURRENT, "future_position": _FUTURE}
    model = _model(f"Analysis follows.\n{json.dumps(payload)}")
    store = _store()
    source = _source({
        IndicatorKind.PMI_COMPOSITE: _history([50, 51, 52, 53, 54, 55], IndicatorKind.PMI_COMPOSITE),
        IndicatorKind.CPI_YOY: _history([3.0, 2.8, 2.6, 2.5], IndicatorKind.CPI_YOY),
    })
    estimator = PositionEstimator(model, store, indicator_source=source, history_limit=12)

    pos = await estimator.analyze_enhanced("USA", "United States", _readings())

    assert pos.fallback is False
    assert pos.quadrant == Quadrant.RECOVERY
    assert pos.future_position is not None
    assert pos.future_position.quadrant == Quadrant.OVERHEAT
    assert pos.future_position.time_horizon == "6-12 months"

    assert source.get_historical_indicators.await_count == 2
    for call in source.get_historical_indicators.await_args_list:
        assert call.args[0] == "USA"
        assert call.args[2] == 12

    prompt = model.generate.await_args.args[0]
    assert "↗ rising" in prompt
    assert "↘ falling" in prompt

    entry = _recorded(store)
    assert entry.future_quadrant == Quadrant.OVERHEAT
    assert entry.future_time_horizon == "6-12 months"


@pytest.mark.asyncio
async def test_enhanced_history_fetch_failure_is_soft():
    payload = {"current_position": _CURRENT, "future_position": _FUTURE}
    model = _model(json.dumps(payload))
    source = _source({
        IndicatorKind.PMI_COMPOSITE: httpx.ReadTimeout("slow"),
        IndicatorKind.CPI_YOY: _history([2.0, 2.1], IndicatorKind.CPI_YOY),
    })
    estimator = PositionEstimator(model, _store(), indicator_source=source)

    pos = await estimator.analyze_enhanced("USA", "United States", _readings())

    assert pos.fallback is False
    prompt = model.generate.await_args.args[0]
    assert "PMI Composite: no history" in prompt


@pytest.mark.asyncio
async def test_enhanced_history_fetches_run_concurrently():
    payload = {"current_position": _CURRENT, "future_position": _FUTURE}
    model = _model(json.dumps(payload))
    series = {
        IndicatorKind.PMI_COMPOSITE: _history([50, 51, 52, 53], IndicatorKind.PMI_COMPOSITE),
        IndicatorKind.CPI_YOY: _history([3.0, 2.8, 2.6, 2.5], IndicatorKind.CPI_YOY),
    }
    started: list[IndicatorKind] = []
    all_started = asyncio.Event()

    async def get_historical(country_code, kind, limit):
        started.append(kind)
        if len(started) == len(series):
            all_started.set()
        # Only completes once every fetch is in flight at the same time
        await asyncio.wait_for(all_started.wait(), timeout=1.0)
        return series[kind]

    source = AsyncMock()
    source.get_historical_indicators.side_effect = get_historical
    estimator = PositionEstimator(model, _store(), indicator_source=source)

    await estimator.analyze_enhanced("USA", "United States", _readings())

    prompt = model.generate.await_args.args[0]
    assert "no history" not in prompt
    assert "↗ rising" in prompt
    assert "↘ falling" in prompt


@pytest.mark.asyncio
async def test_enhanced_failure_uses_basic_result_with_synthesized_future():
    # Enhanced response lacks future_position; basic retry succeeds
    model = AsyncMock()
    model.generate.side_effect = [
        json.dumps({"current_position": _CURRENT}),
        json.dumps(_CURRENT),
    ]
    store = _store()
    estimator = PositionEstimator(model, store, indicator_source=_source({}))

    pos = await estimator.analyze_enhanced("USA", "United States", _readings())

    assert model.generate.await_count == 2
    assert pos.fallback is False
    assert pos.growth_trend == 30
    future = pos.future_position
    assert future.growth_trend == pos.growth_trend
    assert future.inflation_trend == pos.inflation_trend
    assert future.quadrant == pos.quadrant
    assert future.confidence == FALLBACK_FUTURE_CONFIDENCE
    assert future.time_horizon == FALLBACK_FUTURE_HORIZON

    # One history entry per analysis, even with two model calls
    entry = _recorded(store)
    assert entry.future_confidence == FALLBACK_FUTURE_CONFIDENCE


@pytest.mark.asyncio
async def test_enhanced_total_failure_falls_back_to_rule_based():
    store = _store()
    estimator = PositionEstimator(_model(error=httpx.ConnectError("down")), store, indicator_source=_source({}))

    pos = await estimator.analyze_enhanced("USA", "United States", _readings())
    expected = calculate_position(_readings())

    assert pos.fallback is True
    assert (pos.growth_trend, pos.inflation_trend, pos.confidence) == (
        expected.growth_trend, expected.inflation_trend, expected.confidence,
    )
    assert pos.future_position.quadrant == expected.quadrant
    assert pos.future_position.confidence == FALLBACK_FUTURE_CONFIDENCE
    _recorded(store)


@pytest.mark.asyncio
async def test_enhanced_without_indicator_source():
    payload = {"current_position": _CURRENT, "future_position": _FUTURE}
    model = _model(json.dumps(payload))
    estimator = PositionEstimator(model, _store())

    pos = await estimator.analyze_enhanced("USA", "United States", _readings())

    assert pos.future_position is not None
    assert "No historical data available" in model.generate.await_args.args[0]


# ---------------------------------------------------------------------------
# analyze_country
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_analyze_country_loads_readings():
    source = _source({})
    source.get_indicators.return_value = _readings()
    model = _model(json.dumps(_CURRENT))
    store = _store()
    estimator = PositionEstimator(model, store, indicator_source=source)

    pos = await estimator.analyze_country("usa")

    source.get_indicators.assert_awaited_once_with("usa")
    assert pos.growth_trend == 30
    assert _recorded(store).country_name == "United States"


@pytest.mark.asyncio
async def test_analyze_country_no_data():
    source = _source({})
    source.get_indicators.return_value = []
    estimator = PositionEstimator(_model(json.dumps(_CURRENT)), _store(), indicator_source=source)

    with pytest.raises(NoIndicatorsError):
        await estimator.analyze_country("XXX")
