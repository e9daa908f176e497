"""Records exchanged between the positioning core and its collaborators.

These models are the wire contract: ``model_dump(mode="json")`` gives the
plain structured shape consumed by other layers, and ``model_validate`` of
that shape gives back an equal record.
"""
from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, computed_field, field_validator

from app.score.quadrants import Quadrant, determine_quadrant


class IndicatorKind(str, Enum):
    PMI_COMPOSITE = "pmi_composite"
    PMI_MANUFACTURING = "pmi_manufacturing"
    CPI_YOY = "cpi_yoy"
    CORE_PCE = "core_pce"
    GDP_NOW = "gdp_now"


def _clamp(value, low: float, high: float):
    # keeps int trends int
    return type(value)(max(low, min(high, value)))


class IndicatorReading(BaseModel):
    model_config = ConfigDict(frozen=True)

    indicator_kind: IndicatorKind
    value: float
    previous_value: float | None = None
    observed_date: date
    country_code: str | None = None
    country_name: str | None = None


class _TrendFields(BaseModel):
    """Trend pair + confidence, with the quadrant always derived from the trends."""

    model_config = ConfigDict(frozen=True)

    growth_trend: float
    inflation_trend: float
    confidence: float

    @field_validator("growth_trend", "inflation_trend")
    @classmethod
    def _clamp_trend(cls, v: float) -> float:
        return _clamp(v, -100.0, 100.0)

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        return _clamp(v, 0.0, 100.0)

    @computed_field
    @property
    def quadrant(self) -> Quadrant:
        return determine_quadrant(self.growth_trend, self.inflation_trend)


class CalculatedPosition(_TrendFields):
    growth_trend: int
    inflation_trend: int
    confidence: int
    growth_components: dict[str, float] = {}
    inflation_components: dict[str, float] = {}
    method: Literal["rule-based"] = "rule-based"


class FuturePosition(_TrendFields):
    time_horizon: str
    reasoning: str


class AIPosition(_TrendFields):
    growth_components: dict[str, float] = {}
    inflation_components: dict[str, float] = {}
    reasoning: str
    future_position: FuturePosition | None = None
    fallback: bool = False
    method: Literal["ai-enhanced"] = "ai-enhanced"


class AIAnalysisHistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int | None = None
    country_code: str
    country_name: str
    analysis_date: date
    growth_trend: float
    inflation_trend: float
    quadrant: Quadrant
    confidence: float
    reasoning: str
    future_growth_trend: float | None = None
    future_inflation_trend: float | None = None
    future_quadrant: Quadrant | None = None
    future_confidence: float | None = None
    future_time_horizon: str | None = None
    future_reasoning: str | None = None
    economic_indicators: list[IndicatorReading] = []
    created_at: datetime | None = None

    @classmethod
    def from_position(
        cls,
        country_code: str,
        country_name: str,
        position: AIPosition,
        indicators: list[IndicatorReading],
        analysis_date: date,
    ) -> AIAnalysisHistoryEntry:
        future = position.future_position
        return cls(
            country_code=country_code.upper(),
            country_name=country_name,
            analysis_date=analysis_date,
            growth_trend=position.growth_trend,
            inflation_trend=position.inflation_trend,
            quadrant=position.quadrant,
            confidence=position.confidence,
            reasoning=position.reasoning,
            future_growth_trend=future.growth_trend if future else None,
            future_inflation_trend=future.inflation_trend if future else None,
            future_quadrant=future.quadrant if future else None,
            future_confidence=future.confidence if future else None,
            future_time_horizon=future.time_horizon if future else None,
            future_reasoning=future.reasoning if future else None,
            economic_indicators=list(indicators),
        )

    def future_position(self) -> FuturePosition | None:
        """Rebuild the future position, or None unless every future field is set."""
        if (
            self.future_growth_trend is None
            or self.future_inflation_trend is None
            or self.future_quadrant is None
            or self.future_confidence is None
            or not self.future_time_horizon
            or not self.future_reasoning
        ):
            return None
        return FuturePosition(
            growth_trend=self.future_growth_trend,
            inflation_trend=self.future_inflation_trend,
            confidence=self.future_confidence,
            time_horizon=self.future_time_horizon,
            reasoning=self.future_reasoning,
        )


class CountryPosition(BaseModel):
    model_config = ConfigDict(frozen=True)

    country_code: str
    country_name: str
    growth_trend: float
    inflation_trend: float
    quadrant: Quadrant
    confidence: float
    method: Literal["rule-based", "ai-enhanced"]
    as_of: date


class CountrySnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    country_code: str
    country_name: str
    position: CalculatedPosition
    future_position: FuturePosition | None = None
    indicators: list[IndicatorReading]
    historical_data: dict[str, list[IndicatorReading]]
    profile: dict
