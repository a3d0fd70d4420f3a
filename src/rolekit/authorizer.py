"""Wiring of the authorization core.

``Authorizer`` builds the store, cache, membership graph, resolver and gate
from settings, sharing one writer lock and one persistence backend.
"""

import time
from collections.abc import Callable, Hashable

import structlog

from rolekit.config import Settings, get_settings
from rolekit.core.cache import PermissionCache
from rolekit.core.jobs import CacheEvictor
from rolekit.core.permissions import (
    AuthorizationGate,
    MembershipGraph,
    PersistenceBackend,
    Resolver,
    RouteGuard,
    Subject,
)
from rolekit.core.permissions.store import EntityStore


logger = structlog.get_logger()


class Authorizer:
    """Entry point holding one in-process authorization core.

    Usage:
        authorizer = Authorizer()
        editor = authorizer.store.create(EntityKind.ROLE, "Editor")
        edit = authorizer.store.create(EntityKind.PERMISSION, "Edit Posts")
        authorizer.graph.assign_role_permissions(editor, [edit])
        authorizer.subject(42).assign_role("editor")
        authorizer.resolver.has_permission(42, "edit-posts")  # True

    Args:
        settings: Configuration; defaults to ``get_settings()``
        backend: Persistence collaborator; defaults to no persistence
        clock: Monotonic clock for the cache TTL
    """

    def __init__(
        self,
        settings: Settings | None = None,
        backend: PersistenceBackend | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings or get_settings()
        self.cache = PermissionCache(
            ttl_seconds=self.settings.cache_ttl_seconds,
            enabled=self.settings.cache_enabled,
            clock=clock,
        )
        self.store = EntityStore(backend=backend)
        self.graph = MembershipGraph(
            self.store,
            self.cache,
            backend=backend,
            strict_references=self.settings.strict_references,
        )
        self.resolver = Resolver(
            self.store,
            self.graph,
            self.cache,
            strict_references=self.settings.strict_references,
        )
        self.gate = AuthorizationGate(self.resolver)

        logger.debug(
            "authorizer_initialized",
            cache_enabled=self.settings.cache_enabled,
            cache_ttl_seconds=self.settings.cache_ttl_seconds,
            strict_references=self.settings.strict_references,
        )

    def subject(self, principal_id: Hashable) -> Subject:
        """Capability view of one principal."""
        return self.resolver.subject(principal_id)

    def guard(self) -> RouteGuard:
        """Route decorators bound to this authorizer's gate."""
        return RouteGuard(self.gate)

    def evictor(self) -> CacheEvictor:
        """Background evictor configured from settings (not started)."""
        return CacheEvictor(self.cache, self.settings.cache_eviction_interval_seconds)
