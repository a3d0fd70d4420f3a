"""Per-principal cache of resolved permission sets.

Entries carry the principal's version at the time the set was computed.
Invalidation evicts the entry and bumps the version, so a reader that
started computing before the invalidation cannot store its now-stale
result afterwards:

    version = cache.version(user)      # read before the edges
    permissions = compute(user)
    cache.store(user, permissions, version)  # rejected if bumped

Writers must publish the new edge sets before calling ``invalidate``.
"""

import threading
import time
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass

import structlog

from rolekit.core.constants import DEFAULT_CACHE_TTL_SECONDS


logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A memoized effective permission set."""

    permissions: frozenset[int]
    version: int
    expires_at: float


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Counters exposed for diagnostics."""

    hits: int
    misses: int
    evictions: int
    rejected_stores: int
    size: int


class PermissionCache:
    """Thread-safe TTL cache keyed by principal id.

    Args:
        ttl_seconds: Lifetime of an entry
        enabled: When false every lookup misses and nothing is stored
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.enabled = enabled
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[Hashable, CacheEntry] = {}
        self._versions: dict[Hashable, int] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._rejected = 0

    def version(self, user: Hashable) -> int:
        """Current invalidation version of a principal."""
        with self._lock:
            return self._versions.get(user, 0)

    def get(self, user: Hashable) -> frozenset[int] | None:
        """Return the cached set, or None on a miss or expired entry."""
        if not self.enabled:
            return None

        with self._lock:
            entry = self._entries.get(user)
            if entry is None:
                self._misses += 1
                return None
            if entry.expires_at <= self._clock():
                del self._entries[user]
                self._evictions += 1
                self._misses += 1
                return None
            self._hits += 1
            return entry.permissions

    def store(self, user: Hashable, permissions: frozenset[int], version: int) -> bool:
        """Memoize a computed set if no invalidation happened since ``version``.

        Returns:
            True if the entry was stored
        """
        if not self.enabled:
            return False

        with self._lock:
            if self._versions.get(user, 0) != version:
                self._rejected += 1
                logger.debug("cache_store_rejected", user_id=str(user), version=version)
                return False
            self._entries[user] = CacheEntry(
                permissions=permissions,
                version=version,
                expires_at=self._clock() + self.ttl_seconds,
            )
            return True

    def invalidate(self, user: Hashable) -> None:
        """Evict one principal's entry and bump its version."""
        self.invalidate_many((user,))

    def invalidate_many(self, users: Iterable[Hashable]) -> int:
        """Evict several principals at once.

        Returns:
            Number of cached entries that were actually evicted
        """
        evicted = 0
        with self._lock:
            for user in users:
                self._versions[user] = self._versions.get(user, 0) + 1
                if self._entries.pop(user, None) is not None:
                    evicted += 1
            self._evictions += evicted

        if evicted:
            logger.debug("cache_invalidated", evicted=evicted)
        return evicted

    def evict_expired(self) -> int:
        """Drop every entry whose TTL has elapsed.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [u for u, e in self._entries.items() if e.expires_at <= now]
            for user in expired:
                del self._entries[user]
            self._evictions += len(expired)
        return len(expired)

    def clear(self) -> None:
        """Evict everything, bumping every known version."""
        with self._lock:
            for user in set(self._entries) | set(self._versions):
                self._versions[user] = self._versions.get(user, 0) + 1
            self._evictions += len(self._entries)
            self._entries.clear()

    def __contains__(self, user: Hashable) -> bool:
        with self._lock:
            entry = self._entries.get(user)
            return entry is not None and entry.expires_at > self._clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> CacheStats:
        """Snapshot of the hit/miss counters."""
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                rejected_stores=self._rejected,
                size=len(self._entries),
            )
