"""Bounded retry with increasing delay for network-facing calls."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    logger.warning("Attempt %d failed (%s), retrying", state.attempt_number, exc)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    attempts: int = 3,
    delay: float = 1.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    retry_if: Callable[[BaseException], bool] | None = None,
) -> T:
    """Await ``fn()`` up to *attempts* times, sleeping delay, 2*delay, ... between tries.

    Only exceptions of *retry_on* are retried, or those *retry_if* accepts
    when given. The last exception is re-raised once attempts are exhausted.
    """
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_incrementing(start=delay, increment=delay),
        retry=retry_if_exception(retry_if) if retry_if else retry_if_exception_type(retry_on),
        before_sleep=_log_retry,
        reraise=True,
    ):
        with attempt:
            return await fn()
    raise RuntimeError("unreachable")  # pragma: no cover
