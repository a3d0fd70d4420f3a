"""Periodic eviction of expired permission cache entries.

Expired entries are already treated as misses on read; this job keeps the
cache from holding memory for principals that stopped making requests.
"""

import asyncio

import structlog

from rolekit.core.cache import PermissionCache


logger = structlog.get_logger()


class CacheEvictor:
    """Runs ``PermissionCache.evict_expired`` on a fixed interval.

    Usage:
        evictor = CacheEvictor(cache, interval_seconds=300)
        evictor.start()
        ...
        await evictor.stop()
    """

    def __init__(self, cache: PermissionCache, interval_seconds: float) -> None:
        self.cache = cache
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> int:
        """Evict expired entries now.

        Returns:
            Number of entries evicted
        """
        evicted = self.cache.evict_expired()
        logger.info(
            "cache_eviction_completed",
            evicted=evicted,
            remaining=len(self.cache),
        )
        return evicted

    def start(self) -> None:
        """Start the background loop on the running event loop. No-op if running."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="rolekit-cache-evictor")
        logger.info("cache_evictor_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish. No-op if not running."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            # Propagate a cancellation aimed at the caller
            current = asyncio.current_task()
            if not task.cancelled() or (current is not None and current.cancelling()):
                raise
        logger.info("cache_evictor_stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.run_once()
            except Exception:
                logger.exception("cache_eviction_failed")
