"""Exception hierarchy for position calculation and AI analysis."""
from __future__ import annotations


class PositionError(Exception):
    """Base exception for the positioning core."""


class NoIndicatorsError(PositionError, ValueError):
    """Raised when a country has no indicator readings at all."""


class AIAnalysisError(PositionError):
    """Raised when the generative model path cannot produce a valid position."""


class ModelNotConfiguredError(AIAnalysisError):
    """Raised when no API key is configured for the generative model."""
