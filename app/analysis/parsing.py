"""Extraction and validation of generative model output."""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.score.quadrants import Quadrant

T = TypeVar("T")


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """Tagged outcome: ``value`` is set only when ``ok`` is True."""

    ok: bool
    value: T | None = None
    error: str | None = None

    @classmethod
    def success(cls, value: T) -> ParseResult[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> ParseResult[T]:
        return cls(ok=False, error=error)


class AIPositionResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    growth_trend: float = Field(ge=-100, le=100)
    inflation_trend: float = Field(ge=-100, le=100)
    quadrant: Quadrant
    confidence: float = Field(ge=0, le=100)
    reasoning: str

    @field_validator("reasoning")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("reasoning must not be empty")
        return v


class AIFutureResponse(AIPositionResponse):
    time_horizon: str

    @field_validator("time_horizon")
    @classmethod
    def _horizon_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("time_horizon must not be empty")
        return v


class AIEnhancedResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    current_position: AIPositionResponse
    future_position: AIFutureResponse


def extract_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` block in *text*, or None.

    Braces inside JSON string literals are not counted, so prose or code
    fences around the object are skipped.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # Unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


_M = TypeVar("_M", bound=BaseModel)


def parse_model_output(text: str, schema: type[_M]) -> ParseResult[_M]:
    """Locate, decode and validate a JSON object against *schema*."""
    raw = extract_json_object(text or "")
    if raw is None:
        return ParseResult.failure("AI response does not contain a JSON object")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        return ParseResult.failure(f"AI response JSON could not be decoded: {e}")

    try:
        return ParseResult.success(schema.model_validate(data))
    except ValidationError as e:
        return ParseResult.failure(f"AI response failed validation: {e.error_count()} error(s): {e}")
