"""Periodic cache sweep and rate window pruning."""

import asyncio
import logging
from typing import Optional

from crossswap.utils.cache import QuoteCache
from crossswap.utils.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


class MaintenanceLoop:
    """Background task that bounds cache and rate limiter memory.

    Runs on its own asyncio task; each pass only takes the short internal
    locks of the cache and limiter, so in-flight requests are not blocked.
    """

    def __init__(
        self,
        cache: QuoteCache,
        rate_limiter: Optional[RateLimiter] = None,
        interval_seconds: float = 300.0,
    ):
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> dict:
        """Run a single maintenance pass."""
        expired = self.cache.sweep()
        pruned = self.rate_limiter.prune() if self.rate_limiter else 0
        if expired or pruned:
            logger.info(
                f"Maintenance: removed {expired} expired cache entries, "
                f"{pruned} idle rate limit clients"
            )
        return {"expired_entries": expired, "pruned_clients": pruned}

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Maintenance pass failed: {type(e).__name__}: {e}")

    def start(self) -> None:
        """Start the background task (no-op if already running)."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.debug(f"Maintenance loop started (every {self.interval_seconds:.0f}s)")

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.debug("Maintenance loop stopped")
