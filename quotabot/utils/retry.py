"""Async retry helper for transport calls."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")
AsyncFactory = Callable[[], Awaitable[T]]
Backoff = Callable[[BaseException, int], float]


def linear_backoff(base_delay: float) -> Backoff:
    def _delay(_exc: BaseException, attempt: int) -> float:
        return base_delay * attempt

    return _delay


async def retry_async(
    operation: AsyncFactory[T],
    *,
    max_attempts: int = 3,
    base_delay: float = 0.5,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    backoff: Backoff | None = None,
    logger=None,
    operation_name: str = "operation",
) -> T:
    """Await ``operation`` until it succeeds or attempts run out.

    Only exceptions matching ``retry_on`` are retried; anything else, and the
    last failure, propagates to the caller. ``backoff(exc, attempt)`` picks
    the pause before the next attempt and defaults to ``base_delay * attempt``.
    """

    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    delay_for = backoff or linear_backoff(base_delay)

    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except retry_on as exc:
            if attempt >= max_attempts:
                if logger is not None:
                    logger.error("operation_gave_up", operation=operation_name, attempts=attempt, error=str(exc))
                raise
            delay = delay_for(exc, attempt)
            if logger is not None:
                logger.warning(
                    "retrying_operation",
                    operation=operation_name,
                    attempt=attempt,
                    delay=delay,
                    error=str(exc),
                )
            await asyncio.sleep(delay)


__all__ = ["Backoff", "linear_backoff", "retry_async"]
