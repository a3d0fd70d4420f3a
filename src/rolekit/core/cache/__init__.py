"""Cache module for resolved permission sets.

Provides:
- Per-principal TTL cache with versioned invalidation
- Hit/miss statistics
"""

from rolekit.core.cache.permission_cache import CacheEntry, CacheStats, PermissionCache


__all__ = [
    "CacheEntry",
    "CacheStats",
    "PermissionCache",
]
