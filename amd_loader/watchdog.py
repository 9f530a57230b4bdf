"""Stall diagnostics for long-running awaits."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_INTERVAL = 5.0


async def watch(awaitable: Awaitable[T], operation: str, interval: float = DEFAULT_INTERVAL) -> T:
    """Await ``awaitable`` while periodically reporting that it is still pending.

    The watchdog is purely observational: it never cancels, retries or fails
    the wrapped operation. Cancelling the caller does not cancel the wrapped
    future either, since shared dependency futures have other awaiters.

    Args:
        awaitable: Future, task or coroutine to await
        operation: Human readable description used in the diagnostics
        interval: Seconds between diagnostics

    Returns:
        The awaited result
    """
    future = asyncio.ensure_future(awaitable)
    if future.done():
        return future.result()

    async def report() -> None:
        waited = 0.0
        while True:
            await asyncio.sleep(interval)
            waited += interval
            logger.warning(
                f"{operation} still not resolved after {waited:g} seconds!",
                extra={"event": "loader:stall", "operation": operation, "waited": waited},
            )

    reporter = asyncio.ensure_future(report())
    try:
        return await asyncio.shield(future)
    finally:
        reporter.cancel()
