"""Deterministic Investment Clock position engine."""
from __future__ import annotations

import math
from statistics import pstdev
from typing import Iterable

from app.errors import NoIndicatorsError
from app.schemas import CalculatedPosition, IndicatorReading
from app.score.versions import (
    CONFIDENCE_BASE,
    CONFIDENCE_CONSISTENCY_BONUS,
    CONFIDENCE_INDICATOR_CAP,
    CONFIDENCE_MOMENTUM_CAP,
    CONFIDENCE_PER_INDICATOR,
    CONFIDENCE_PER_MOMENTUM,
    CONSISTENCY_STDDEV_SCALE,
    GROWTH_WEIGHTS,
    INDICATOR_LABELS,
    INFLATION_WEIGHTS,
    LEVEL_WEIGHT,
    MOMENTUM_WEIGHT,
    SCALING_RULES,
    TREND_BOUND,
)


def _round_half_up(x: float) -> int:
    return math.floor(x + 0.5)


def normalize_indicator(reading: IndicatorReading) -> tuple[float, float]:
    """Return the unclamped (level, momentum) scores for one reading.

    Momentum is 0 when the reading carries no previous value.
    """
    offset, level_scale, momentum_scale = SCALING_RULES[reading.indicator_kind.value]
    level = (reading.value - offset) * level_scale
    momentum = 0.0
    if reading.previous_value is not None:
        momentum = (reading.value - reading.previous_value) * momentum_scale
    return level, momentum


def indicator_trend(reading: IndicatorReading) -> float:
    level, momentum = normalize_indicator(reading)
    return level * LEVEL_WEIGHT + momentum * MOMENTUM_WEIGHT


def _first_by_kind(readings: Iterable[IndicatorReading]) -> dict[str, IndicatorReading]:
    by_kind: dict[str, IndicatorReading] = {}
    for r in readings:
        by_kind.setdefault(r.indicator_kind.value, r)
    return by_kind


def _aggregate(
    readings: Iterable[IndicatorReading],
    weights: dict[str, float],
) -> tuple[int, dict[str, float]]:
    """Weighted average of the trends of the kinds in *weights* that are present.

    Missing kinds drop out of both the weighted sum and the weight sum.
    Returns (clamped rounded trend, {label: per-indicator trend}).
    """
    by_kind = _first_by_kind(readings)

    total_trend = 0.0
    total_weight = 0.0
    components: dict[str, float] = {}

    for kind, weight in weights.items():
        reading = by_kind.get(kind)
        if reading is None:
            continue
        trend = indicator_trend(reading)
        components[INDICATOR_LABELS[kind]] = trend
        total_trend += trend * weight
        total_weight += weight

    final = total_trend / total_weight if total_weight > 0 else 0.0
    bound = int(TREND_BOUND)
    return max(-bound, min(bound, _round_half_up(final))), components


def calculate_growth_trend(readings: Iterable[IndicatorReading]) -> tuple[int, dict[str, float]]:
    """Growth trend on a -100 (severe contraction) to +100 (strong expansion) scale."""
    return _aggregate(readings, GROWTH_WEIGHTS)


def calculate_inflation_trend(readings: Iterable[IndicatorReading]) -> tuple[int, dict[str, float]]:
    """Inflation trend on a -100 (deflation) to +100 (high inflation) scale."""
    return _aggregate(readings, INFLATION_WEIGHTS)


def calculate_consistency(values: list[float]) -> float:
    """Return 0-1 agreement score; a population stddev of 40 or more gives 0."""
    if len(values) < 2:
        return 1.0
    return max(0.0, 1.0 - pstdev(values) / CONSISTENCY_STDDEV_SCALE)


def calculate_confidence(
    readings: list[IndicatorReading],
    growth_components: dict[str, float],
    inflation_components: dict[str, float],
) -> int:
    """Heuristic 0-100 confidence from data availability and component agreement.

    Only the first reading of each kind counts, as in the aggregators.
    Consistency bonuses only apply when a side has at least two components.
    """
    if not readings:
        raise NoIndicatorsError("Cannot estimate confidence without indicators")

    by_kind = _first_by_kind(readings)
    confidence = CONFIDENCE_BASE
    confidence += min(CONFIDENCE_INDICATOR_CAP, CONFIDENCE_PER_INDICATOR * len(by_kind))

    with_momentum = sum(1 for r in by_kind.values() if r.previous_value is not None)
    confidence += min(CONFIDENCE_MOMENTUM_CAP, CONFIDENCE_PER_MOMENTUM * with_momentum)

    growth_values = list(growth_components.values())
    if len(growth_values) >= 2:
        confidence += CONFIDENCE_CONSISTENCY_BONUS * calculate_consistency(growth_values)

    inflation_values = list(inflation_components.values())
    if len(inflation_values) >= 2:
        confidence += CONFIDENCE_CONSISTENCY_BONUS * calculate_consistency(inflation_values)

    return max(0, min(100, _round_half_up(confidence)))


def calculate_position(readings: Iterable[IndicatorReading]) -> CalculatedPosition:
    """Compute the rule-based position for one country's current readings."""
    readings = list(readings)
    if not readings:
        raise NoIndicatorsError("No economic indicators available for calculation")

    growth, growth_components = calculate_growth_trend(readings)
    inflation, inflation_components = calculate_inflation_trend(readings)
    confidence = calculate_confidence(readings, growth_components, inflation_components)

    return CalculatedPosition(
        growth_trend=growth,
        inflation_trend=inflation,
        confidence=confidence,
        growth_components=growth_components,
        inflation_components=inflation_components,
    )
