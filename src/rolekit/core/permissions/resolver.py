"""Effective permission resolution.

A principal's effective permission set is the union of its direct grants
and the permissions of every role it holds. The first query for a
principal computes that union from the membership graph and memoizes it;
later queries are a set lookup until a mutation evicts the entry or the
TTL expires.
"""

from collections.abc import Hashable, Iterable

import structlog

from rolekit.core.cache import PermissionCache
from rolekit.core.errors import InvalidReferenceError, NotFoundError
from rolekit.core.permissions.graph import MembershipGraph
from rolekit.core.permissions.models import Entity, EntityKind
from rolekit.core.permissions.principal import Subject
from rolekit.core.permissions.refs import RefLike, parse_ref, parse_refs
from rolekit.core.permissions.store import EntityStore


logger = structlog.get_logger()


class Resolver:
    """Answers role and permission questions about principals.

    Unknown role or permission references raise ``InvalidReferenceError``
    so that "no such permission" is never confused with "permission not
    held".
    """

    def __init__(
        self,
        store: EntityStore,
        graph: MembershipGraph,
        cache: PermissionCache,
        strict_references: bool = False,
    ) -> None:
        self.store = store
        self.graph = graph
        self.cache = cache
        self.strict_references = strict_references

    def permissions_of(self, user: Hashable) -> frozenset[int]:
        """Effective permission ids of a principal.

        Args:
            user: Principal id

        Returns:
            Direct permissions united with the permissions of all held roles
        """
        cached = self.cache.get(user)
        if cached is not None:
            return cached

        # Read the version before the graph so a concurrent mutation
        # makes the store below a no-op instead of caching stale data.
        version = self.cache.version(user)
        permissions = self._compute(user)
        self.cache.store(user, permissions, version)

        logger.debug(
            "permissions_resolved",
            user_id=str(user),
            count=len(permissions),
            version=version,
        )
        return permissions

    def has_permission(self, user: Hashable, permission: RefLike) -> bool:
        """Check a permission held directly or through any role.

        Raises:
            InvalidReferenceError: If the permission reference is malformed or unknown
        """
        permission_id = self._resolve(EntityKind.PERMISSION, permission)
        return permission_id in self.permissions_of(user)

    def has_direct_permission(self, user: Hashable, permission: RefLike) -> bool:
        """Check a permission granted straight to the principal."""
        permission_id = self._resolve(EntityKind.PERMISSION, permission)
        return permission_id in self.graph.direct_permissions_of(user)

    def has_permission_via_role(self, user: Hashable, permission: RefLike) -> bool:
        """Check a permission reachable through one of the principal's roles."""
        permission_id = self._resolve(EntityKind.PERMISSION, permission)
        return any(
            permission_id in self.graph.role_permission_ids(role_id)
            for role_id in self.graph.roles_of(user)
        )

    def has_any_permission(self, user: Hashable, permissions: Iterable[RefLike]) -> bool:
        """True if the principal holds at least one of the permissions.

        Every reference is resolved before any is tested, so an unknown
        reference fails regardless of its position.
        """
        ids = self._resolve_all(EntityKind.PERMISSION, permissions)
        if not ids:
            return False
        effective = self.permissions_of(user)
        return any(permission_id in effective for permission_id in ids)

    def has_all_permissions(self, user: Hashable, permissions: Iterable[RefLike]) -> bool:
        """True if the principal holds every listed permission."""
        ids = self._resolve_all(EntityKind.PERMISSION, permissions)
        if not ids:
            return True
        effective = self.permissions_of(user)
        return all(permission_id in effective for permission_id in ids)

    def has_role(self, user: Hashable, role: RefLike) -> bool:
        """Check direct role membership."""
        return self._resolve(EntityKind.ROLE, role) in self.graph.roles_of(user)

    def has_any_role(self, user: Hashable, roles: Iterable[RefLike]) -> bool:
        ids = self._resolve_all(EntityKind.ROLE, roles)
        held = self.graph.roles_of(user)
        return any(role_id in held for role_id in ids)

    def has_all_roles(self, user: Hashable, roles: Iterable[RefLike]) -> bool:
        ids = self._resolve_all(EntityKind.ROLE, roles)
        held = self.graph.roles_of(user)
        return all(role_id in held for role_id in ids)

    def roles(self, user: Hashable) -> list[Entity]:
        """Role records held by the principal, ordered by id."""
        return self._entities(EntityKind.ROLE, self.graph.roles_of(user))

    def direct_permissions(self, user: Hashable) -> list[Entity]:
        """Permission records granted directly, ordered by id."""
        return self._entities(EntityKind.PERMISSION, self.graph.direct_permissions_of(user))

    def permissions(self, user: Hashable) -> list[Entity]:
        """Effective permission records, ordered by id."""
        return self._entities(EntityKind.PERMISSION, self.permissions_of(user))

    def permission_slugs_of(self, user: Hashable) -> set[str]:
        """Slugs of the principal's effective permissions."""
        return {p.slug for p in self.permissions(user)}

    def subject(self, user: Hashable) -> Subject:
        """Capability view of one principal."""
        return Subject(user, self)

    def _compute(self, user: Hashable) -> frozenset[int]:
        permissions = set(self.graph.direct_permissions_of(user))
        for role_id in self.graph.roles_of(user):
            permissions |= self.graph.role_permission_ids(role_id)
        return frozenset(permissions)

    def _resolve(self, kind: EntityKind, value: RefLike) -> int:
        ref = parse_ref(value, strict=self.strict_references, kind=kind)
        try:
            return self.store.resolve(kind, ref).id
        except NotFoundError as exc:
            raise InvalidReferenceError(
                f"Unknown {kind.value}: {ref}",
                details={"kind": kind.value, "reference": str(ref)},
            ) from exc

    def _resolve_all(self, kind: EntityKind, values: Iterable[RefLike]) -> list[int]:
        refs = parse_refs(values, strict=self.strict_references, kind=kind)
        return [self._resolve(kind, ref) for ref in refs]

    def _entities(self, kind: EntityKind, ids: Iterable[int]) -> list[Entity]:
        # An id may vanish between reading the edges and the lookup when a
        # delete races this read; such ids are skipped.
        found = (self.store.find(kind, entity_id) for entity_id in sorted(ids))
        return [entity for entity in found if entity is not None]
