"""Google Gemini adapter for the generative model interface (REST via httpx)."""
from __future__ import annotations

import logging

import httpx

from app.config import Settings
from app.errors import AIAnalysisError, ModelNotConfiguredError
from app.retry import with_retry

logger = logging.getLogger(__name__)


def is_transient(exc: BaseException) -> bool:
    """Transport failures, 429 and 5xx are worth retrying; other HTTP errors are not."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return isinstance(exc, httpx.TransportError)


class GeminiClient:
    """Calls ``models/{model}:generateContent`` and returns the response text."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 30.0,
        attempts: int = 3,
        delay: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.attempts = attempts
        self.delay = delay
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> GeminiClient:
        if not settings.gemini_api_key:
            logger.warning("GEMINI_API_KEY not set; AI analysis will fall back to rule-based positions")
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.ai_timeout_seconds,
            attempts=settings.ai_max_attempts,
            delay=settings.ai_retry_delay_seconds,
        )

    async def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise ModelNotConfiguredError("Gemini is not configured. Please set GEMINI_API_KEY.")

        if self._client is not None:
            data = await with_retry(
                lambda: self._post(self._client, prompt),
                attempts=self.attempts,
                delay=self.delay,
                retry_if=is_transient,
            )
        else:
            async with httpx.AsyncClient() as client:
                data = await with_retry(
                    lambda: self._post(client, prompt),
                    attempts=self.attempts,
                    delay=self.delay,
                    retry_if=is_transient,
                )
        return extract_text(data)

    async def _post(self, client: httpx.AsyncClient, prompt: str) -> dict:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        body = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        # the key must never appear in the URL
        headers = {"x-goog-api-key": self.api_key}
        resp = await client.post(url, headers=headers, json=body, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()


def extract_text(data: dict) -> str:
    """Join the text parts of the first candidate."""
    candidates = data.get("candidates") or []
    if not candidates:
        reason = (data.get("promptFeedback") or {}).get("blockReason", "no candidates")
        raise AIAnalysisError(f"Gemini returned no candidates ({reason})")

    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(p.get("text", "") for p in parts)
    if not text:
        raise AIAnalysisError("Gemini candidate contained no text")
    return text
