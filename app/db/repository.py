"""SQLAlchemy implementations of the indicator source and history store."""
from __future__ import annotations

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models import AIAnalysisHistory, EconomicIndicator, HistoricalIndicator
from app.retry import with_retry
from app.schemas import AIAnalysisHistoryEntry, IndicatorKind, IndicatorReading

_RETRY_ON = (SQLAlchemyError, OSError)


def _float(v) -> float | None:
    return float(v) if v is not None else None


def _reading_from_row(row: EconomicIndicator) -> IndicatorReading:
    return IndicatorReading(
        indicator_kind=IndicatorKind(row.indicator_type),
        value=float(row.value),
        previous_value=_float(row.previous_value),
        observed_date=row.date,
        country_code=row.country_code,
        country_name=row.country_name,
    )


def _entry_from_row(row: AIAnalysisHistory) -> AIAnalysisHistoryEntry:
    return AIAnalysisHistoryEntry(
        id=row.id,
        country_code=row.country_code,
        country_name=row.country_name,
        analysis_date=row.analysis_date,
        growth_trend=float(row.growth_trend),
        inflation_trend=float(row.inflation_trend),
        quadrant=row.quadrant,
        confidence=float(row.confidence),
        reasoning=row.reasoning,
        future_growth_trend=_float(row.future_growth_trend),
        future_inflation_trend=_float(row.future_inflation_trend),
        future_quadrant=row.future_quadrant,
        future_confidence=_float(row.future_confidence),
        future_time_horizon=row.future_time_horizon,
        future_reasoning=row.future_reasoning,
        economic_indicators=row.economic_indicators or [],
        created_at=row.created_at,
    )


class SqlIndicatorSource:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        attempts: int = 3,
        delay: float = 1.0,
    ) -> None:
        self.session_factory = session_factory
        self.attempts = attempts
        self.delay = delay

    async def _retry(self, fn):
        return await with_retry(fn, attempts=self.attempts, delay=self.delay, retry_on=_RETRY_ON)

    async def get_indicators(self, country_code: str) -> list[IndicatorReading]:
        """Latest reading of each indicator kind for the country."""
        async def _load() -> list[IndicatorReading]:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(EconomicIndicator)
                    .where(EconomicIndicator.country_code == country_code.upper())
                    .order_by(desc(EconomicIndicator.date))
                )
                rows = result.scalars().all()

            latest: dict[str, IndicatorReading] = {}
            for row in rows:
                if row.indicator_type not in latest:
                    latest[row.indicator_type] = _reading_from_row(row)
            return list(latest.values())

        return await self._retry(_load)

    async def get_historical_indicators(
        self,
        country_code: str,
        kind: IndicatorKind,
        limit: int,
    ) -> list[IndicatorReading]:
        """Most recent *limit* points of one kind, returned ascending by date."""
        async def _load() -> list[IndicatorReading]:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(HistoricalIndicator)
                    .where(
                        HistoricalIndicator.country_code == country_code.upper(),
                        HistoricalIndicator.indicator_type == kind.value,
                    )
                    .order_by(desc(HistoricalIndicator.date))
                    .limit(limit)
                )
                rows = result.scalars().all()
            return [
                IndicatorReading(
                    indicator_kind=kind,
                    value=float(r.value),
                    observed_date=r.date,
                    country_code=r.country_code,
                )
                for r in reversed(rows)
            ]

        return await self._retry(_load)

    async def list_countries(self) -> list[tuple[str, str]]:
        async def _load() -> list[tuple[str, str]]:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(EconomicIndicator.country_code, EconomicIndicator.country_name)
                    .distinct()
                    .order_by(EconomicIndicator.country_code)
                )
                rows = result.all()
            countries: dict[str, str] = {}
            for code, name in rows:
                countries.setdefault(code, name)
            return list(countries.items())

        return await self._retry(_load)


class SqlHistoryStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        attempts: int = 3,
        delay: float = 1.0,
    ) -> None:
        self.session_factory = session_factory
        self.attempts = attempts
        self.delay = delay

    async def append_analysis(self, entry: AIAnalysisHistoryEntry) -> AIAnalysisHistoryEntry:
        async def _insert() -> AIAnalysisHistoryEntry:
            async with self.session_factory() as db:
                row = AIAnalysisHistory(
                    country_code=entry.country_code.upper(),
                    country_name=entry.country_name,
                    analysis_date=entry.analysis_date,
                    growth_trend=entry.growth_trend,
                    inflation_trend=entry.inflation_trend,
                    quadrant=entry.quadrant.value,
                    confidence=entry.confidence,
                    reasoning=entry.reasoning,
                    future_growth_trend=entry.future_growth_trend,
                    future_inflation_trend=entry.future_inflation_trend,
                    future_quadrant=entry.future_quadrant.value if entry.future_quadrant else None,
                    future_confidence=entry.future_confidence,
                    future_time_horizon=entry.future_time_horizon,
                    future_reasoning=entry.future_reasoning,
                    economic_indicators=[
                        r.model_dump(mode="json") for r in entry.economic_indicators
                    ],
                )
                db.add(row)
                await db.commit()
                return entry.model_copy(update={"id": row.id, "created_at": row.created_at})

        return await with_retry(_insert, attempts=self.attempts, delay=self.delay, retry_on=_RETRY_ON)

    async def latest_analysis(self, country_code: str) -> AIAnalysisHistoryEntry | None:
        async def _load() -> AIAnalysisHistoryEntry | None:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(AIAnalysisHistory)
                    .where(AIAnalysisHistory.country_code == country_code.upper())
                    .order_by(desc(AIAnalysisHistory.created_at))
                    .limit(1)
                )
                row = result.scalar_one_or_none()
            return _entry_from_row(row) if row is not None else None

        return await with_retry(_load, attempts=self.attempts, delay=self.delay, retry_on=_RETRY_ON)
