"""Process shutdown coordination.

The browser session is torn down exactly once when uvicorn receives SIGINT
or SIGTERM. From that point on ``/scrape`` stops handing out contexts from a
browser that is going away.
"""

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

CLEANUP_TIMEOUT_SECONDS = 30.0

CleanupCallback = Callable[[], Coroutine[Any, Any, None]]


class ShutdownManager:
    """Runs registered async cleanups once, each bounded by a timeout.

    Args:
        timeout: Seconds each cleanup may take before it is abandoned.
    """

    def __init__(self, timeout: float = CLEANUP_TIMEOUT_SECONDS):
        self._timeout = timeout
        self._shutting_down = False
        self._cleanups: list[CleanupCallback] = []

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    def register_cleanup(self, callback: CleanupCallback) -> None:
        """Register ``callback``; registering the same callback again is a no-op."""
        if callback in self._cleanups:
            return
        self._cleanups.append(callback)

    async def initiate_shutdown(self) -> None:
        if self._shutting_down:
            return
        self._shutting_down = True
        logger.info("shutdown_initiated", cleanups=len(self._cleanups))

        for callback in self._cleanups:
            name = getattr(callback, "__qualname__", repr(callback))
            try:
                await asyncio.wait_for(callback(), timeout=self._timeout)
            except TimeoutError:
                logger.warning("cleanup_timeout", cleanup=name, timeout=self._timeout)
            except Exception as e:
                logger.error("cleanup_failed", cleanup=name, error=str(e))

        logger.info("shutdown_complete")


shutdown_manager = ShutdownManager()


def get_shutdown_manager() -> ShutdownManager:
    return shutdown_manager
