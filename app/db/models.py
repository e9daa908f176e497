from __future__ import annotations

from datetime import date as date_type
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Date,
    DateTime,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class Base(DeclarativeBase):
    pass


class EconomicIndicator(Base):
    __tablename__ = "economic_indicators"
    __table_args__ = (
        UniqueConstraint("country_code", "indicator_type", "date", name="uq_indicator_country_type_date"),
        Index("ix_indicators_country", "country_code"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    country_code: Mapped[str] = mapped_column(String(3), nullable=False)
    country_name: Mapped[str] = mapped_column(String(255), nullable=False)
    indicator_type: Mapped[str] = mapped_column(String(50), nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric, nullable=False)
    previous_value: Mapped[Decimal | None] = mapped_column(Numeric)
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


class HistoricalIndicator(Base):
    __tablename__ = "historical_indicators"
    __table_args__ = (
        UniqueConstraint("country_code", "indicator_type", "date", name="uq_historical_country_type_date"),
        Index("ix_historical_country_type_date", "country_code", "indicator_type", "date"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    country_code: Mapped[str] = mapped_column(String(3), nullable=False)
    indicator_type: Mapped[str] = mapped_column(String(50), nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric, nullable=False)
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class AIAnalysisHistory(Base):
    """Append-only log of AI analyses; rows are never updated by the core."""

    __tablename__ = "ai_analysis_history"
    __table_args__ = (
        Index("ix_ai_history_country_created", "country_code", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    country_code: Mapped[str] = mapped_column(String(3), nullable=False)
    country_name: Mapped[str] = mapped_column(String(255), nullable=False)
    analysis_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    growth_trend: Mapped[Decimal] = mapped_column(Numeric, nullable=False)
    inflation_trend: Mapped[Decimal] = mapped_column(Numeric, nullable=False)
    quadrant: Mapped[str] = mapped_column(String(20), nullable=False)
    confidence: Mapped[Decimal] = mapped_column(Numeric, nullable=False)
    reasoning: Mapped[str] = mapped_column(Text, nullable=False, default="")
    future_growth_trend: Mapped[Decimal | None] = mapped_column(Numeric)
    future_inflation_trend: Mapped[Decimal | None] = mapped_column(Numeric)
    future_quadrant: Mapped[str | None] = mapped_column(String(20))
    future_confidence: Mapped[Decimal | None] = mapped_column(Numeric)
    future_time_horizon: Mapped[str | None] = mapped_column(String(50))
    future_reasoning: Mapped[str | None] = mapped_column(Text)
    economic_indicators: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
