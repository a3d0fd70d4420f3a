"""Background jobs for the authorization core."""

from rolekit.core.jobs.eviction import CacheEvictor


__all__ = [
    "CacheEvictor",
]
