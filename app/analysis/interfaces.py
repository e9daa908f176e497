"""Collaborator interfaces the positioning core calls through."""
from __future__ import annotations

from typing import Protocol

from app.schemas import AIAnalysisHistoryEntry, IndicatorKind, IndicatorReading


class IndicatorSource(Protocol):
    async def get_indicators(self, country_code: str) -> list[IndicatorReading]:
        """Current readings for a country; empty list when there are none."""
        ...

    async def get_historical_indicators(
        self,
        country_code: str,
        kind: IndicatorKind,
        limit: int,
    ) -> list[IndicatorReading]:
        """Up to *limit* most recent readings of one kind, ascending by date."""
        ...

    async def list_countries(self) -> list[tuple[str, str]]:
        """(country_code, country_name) for every country with readings."""
        ...


class GenerativeModel(Protocol):
    async def generate(self, prompt: str) -> str:
        ...


class HistoryStore(Protocol):
    async def append_analysis(self, entry: AIAnalysisHistoryEntry) -> AIAnalysisHistoryEntry:
        ...

    async def latest_analysis(self, country_code: str) -> AIAnalysisHistoryEntry | None:
        ...
