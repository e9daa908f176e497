"""Prompt construction for the Investment Clock analysis."""
from __future__ import annotations

from dataclasses import dataclass

from app.schemas import IndicatorReading
from app.score.quadrants import QUADRANT_PROFILES, Quadrant
from app.score.versions import INDICATOR_LABELS, INDICATOR_UNITS, TREND_WINDOW

_ARROWS = {"rising": "↗", "falling": "↘", "stable": "→"}

_FRAMEWORK = """MERRILL LYNCH INVESTMENT CLOCK FRAMEWORK:
{quadrants}

CLASSIFICATION RULES (zero counts as non-negative):
- Growth Trend >= 0 and Inflation Trend < 0 -> recovery
- Growth Trend >= 0 and Inflation Trend >= 0 -> overheat
- Growth Trend < 0 and Inflation Trend >= 0 -> stagflation
- Growth Trend < 0 and Inflation Trend < 0 -> recession

ANALYSIS GUIDELINES:
1. PMI Composite/Manufacturing > 50 = expansion, < 50 = contraction
2. PMI trends indicate growth momentum direction
3. CPI YoY and Core PCE indicate inflation level relative to the 2% target and its direction
4. GDP Now indicates the real-time growth assessment
5. Consider period-over-period changes and momentum
6. Growth Trend scale: -100 (severe contraction) to +100 (strong expansion)
7. Inflation Trend scale: -100 (deflation) to +100 (high inflation)"""

_POSITION_FIELDS = """{{
  "growth_trend": [number between -100 and 100],
  "inflation_trend": [number between -100 and 100],
  "quadrant": "[recovery|overheat|stagflation|recession]",
  "confidence": [number between 0 and 100],
  "reasoning": "Brief explanation of the analysis (2-3 sentences)"
}}"""

_ENHANCED_FIELDS = """{{
  "current_position": {{
    "growth_trend": [number between -100 and 100],
    "inflation_trend": [number between -100 and 100],
    "quadrant": "[recovery|overheat|stagflation|recession]",
    "confidence": [number between 0 and 100],
    "reasoning": "Brief explanation of the current position (2-3 sentences)"
  }},
  "future_position": {{
    "growth_trend": [number between -100 and 100],
    "inflation_trend": [number between -100 and 100],
    "quadrant": "[recovery|overheat|stagflation|recession]",
    "confidence": [number between 0 and 100],
    "time_horizon": "e.g. 3-6 months",
    "reasoning": "Brief explanation of the expected move (2-3 sentences)"
  }}
}}"""


@dataclass(frozen=True)
class SeriesSummary:
    kind: str
    direction: str
    arrow: str
    first_value: float | None
    last_value: float | None
    points: int


def percent_change(value: float, previous: float | None) -> str:
    """Percent change as a 2-decimal string, or "N/A" without a usable previous value."""
    if previous is None or previous == 0:
        return "N/A"
    return f"{(value - previous) / previous * 100:.2f}"


def trend_direction(values: list[float], window: int = TREND_WINDOW) -> str:
    """Classify the trailing *window* points by majority of step increases vs decreases."""
    tail = values[-window:]
    ups = downs = 0
    for prev, cur in zip(tail, tail[1:]):
        if cur > prev:
            ups += 1
        elif cur < prev:
            downs += 1
    if ups > downs:
        return "rising"
    if downs > ups:
        return "falling"
    return "stable"


def trend_arrow(direction: str) -> str:
    return _ARROWS.get(direction, _ARROWS["stable"])


def summarize_series(kind: str, series: list[IndicatorReading]) -> SeriesSummary:
    ordered = sorted(series, key=lambda r: r.observed_date)
    values = [r.value for r in ordered]
    direction = trend_direction(values)
    return SeriesSummary(
        kind=kind,
        direction=direction,
        arrow=trend_arrow(direction),
        first_value=values[0] if values else None,
        last_value=values[-1] if values else None,
        points=len(values),
    )


def _format_value(kind: str, value: float | None) -> str:
    if value is None:
        return "N/A"
    return f"{value}{INDICATOR_UNITS.get(kind, '')}"


def _snapshot_lines(readings: list[IndicatorReading]) -> str:
    lines = []
    for r in readings:
        kind = r.indicator_kind.value
        lines.append(
            f"• {INDICATOR_LABELS[kind]} ({kind.upper()}): {_format_value(kind, r.value)} "
            f"(Previous: {_format_value(kind, r.previous_value)}, "
            f"Change: {percent_change(r.value, r.previous_value)}%, "
            f"Date: {r.observed_date.isoformat()})"
        )
    return "\n".join(lines)


def _framework_text() -> str:
    quadrants = "\n".join(
        f"- {QUADRANT_PROFILES[q]['label']}: {QUADRANT_PROFILES[q]['description']}"
        for q in Quadrant
    )
    return _FRAMEWORK.format(quadrants=quadrants)


def build_basic_prompt(country_name: str, readings: list[IndicatorReading]) -> str:
    return f"""You are an expert macroeconomic analyst specializing in the Merrill Lynch Investment Clock framework.

Analyze the following economic indicators for {country_name} and determine the country's position on the Investment Clock.

ECONOMIC DATA:
{_snapshot_lines(readings)}

{_framework_text()}

Please respond ONLY with a valid JSON object in this exact format:
{_POSITION_FIELDS.format()}
"""


def _history_lines(summaries: list[SeriesSummary]) -> str:
    if not summaries:
        return "• No historical data available"
    lines = []
    for s in summaries:
        if s.points == 0:
            lines.append(f"• {INDICATOR_LABELS[s.kind]}: no history")
            continue
        lines.append(
            f"• {INDICATOR_LABELS[s.kind]}: {s.arrow} {s.direction} over the last "
            f"{min(s.points, TREND_WINDOW)} readings "
            f"({_format_value(s.kind, s.first_value)} -> {_format_value(s.kind, s.last_value)}, "
            f"{s.points} points)"
        )
    return "\n".join(lines)


def build_enhanced_prompt(
    country_name: str,
    readings: list[IndicatorReading],
    summaries: list[SeriesSummary],
) -> str:
    return f"""You are an expert macroeconomic analyst specializing in the Merrill Lynch Investment Clock framework.

Analyze the following economic indicators for {country_name}. Determine the country's current position on the Investment Clock and predict where it is heading.

CURRENT ECONOMIC DATA:
{_snapshot_lines(readings)}

HISTORICAL TRENDS:
{_history_lines(summaries)}

{_framework_text()}

For the future position, project the growth and inflation trends over a stated time horizon using the historical direction of each indicator.

Please respond ONLY with a valid JSON object in this exact format:
{_ENHANCED_FIELDS.format()}
"""
