"""Unit tests for the background cache evictor."""

import asyncio

import pytest

from rolekit.authorizer import Authorizer
from rolekit.core.cache import PermissionCache
from rolekit.core.jobs import CacheEvictor


pytestmark = pytest.mark.unit


@pytest.fixture
def cache(clock) -> PermissionCache:
    cache = PermissionCache(ttl_seconds=10, clock=clock)
    cache.store("u1", frozenset({1}), 0)
    return cache


class TestRunOnce:
    """Tests for a single eviction pass."""

    def test_nothing_expired(self, cache: PermissionCache):
        evictor = CacheEvictor(cache, interval_seconds=1)

        assert evictor.run_once() == 0
        assert len(cache) == 1

    def test_evicts_expired(self, cache: PermissionCache, clock):
        """Expired entries are dropped."""
        clock.advance(11)
        evictor = CacheEvictor(cache, interval_seconds=1)

        assert evictor.run_once() == 1
        assert len(cache) == 0


class TestLifecycle:
    """Tests for start/stop of the asyncio task."""

    async def test_background_loop_evicts(self, cache: PermissionCache, clock):
        """The loop sweeps on its interval."""
        clock.advance(11)
        evictor = CacheEvictor(cache, interval_seconds=0.01)

        evictor.start()
        try:
            for _ in range(100):
                if len(cache) == 0:
                    break
                await asyncio.sleep(0.01)
        finally:
            await evictor.stop()

        assert len(cache) == 0

    async def test_start_is_idempotent(self, cache: PermissionCache):
        """Starting twice keeps one task."""
        evictor = CacheEvictor(cache, interval_seconds=60)

        evictor.start()
        task = evictor._task
        evictor.start()

        assert evictor._task is task
        assert evictor.running

        await evictor.stop()
        assert not evictor.running
        assert task.cancelled()

    async def test_stop_propagates_caller_cancellation(self, cache: PermissionCache):
        """Cancelling the task that is waiting in stop is not swallowed."""
        evictor = CacheEvictor(cache, interval_seconds=60)
        evictor.start()

        stopper = asyncio.create_task(evictor.stop())
        await asyncio.sleep(0)
        stopper.cancel()

        with pytest.raises(asyncio.CancelledError):
            await stopper
        assert not evictor.running

    async def test_stop_without_start(self, cache: PermissionCache):
        """Stopping an idle evictor is a no-op."""
        evictor = CacheEvictor(cache, interval_seconds=60)

        await evictor.stop()

        assert not evictor.running

    def test_start_requires_running_loop(self, cache: PermissionCache):
        """start must be called from within an event loop."""
        evictor = CacheEvictor(cache, interval_seconds=60)

        with pytest.raises(RuntimeError):
            evictor.start()

    def test_authorizer_evictor_uses_settings(self, authorizer: Authorizer):
        """The facade builds an evictor from configuration."""
        evictor = authorizer.evictor()

        assert evictor.cache is authorizer.cache
        assert evictor.interval_seconds == authorizer.settings.cache_eviction_interval_seconds
        assert not evictor.running
