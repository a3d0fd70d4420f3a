"""Grant edges between users, roles and permissions.

Three relations are kept, each as a mapping from the left endpoint to a
frozenset of right endpoint ids:

- user -> roles            (UserRole)
- user -> permissions      (UserPermission, direct grants)
- role -> permissions      (RolePermission)

plus reverse indexes (role -> users, permission -> users, permission ->
roles) so that invalidation and cascading deletes only visit affected
principals.

Edge sets are never mutated in place. A writer computes the replacement
set, persists the difference, then swaps the mapping entry. Readers take no
lock and always see a whole set, old or new. Writers are serialized by the
lock shared with the entity store, and evict affected cache entries before
releasing it.
"""

from collections.abc import Hashable, Iterable

import structlog

from rolekit.core.cache import PermissionCache
from rolekit.core.permissions.models import EntityKind
from rolekit.core.permissions.persistence import (
    EdgeChanges,
    NullBackend,
    PersistenceBackend,
    Relation,
    backend_write,
)
from rolekit.core.permissions.refs import RefLike, parse_ref, parse_refs
from rolekit.core.permissions.store import EntityStore


logger = structlog.get_logger()

EMPTY: frozenset = frozenset()


class MembershipGraph:
    """Many-to-many grant edges with precise cache invalidation.

    Args:
        store: Entity store whose ids the edges reference; its lock is shared
        cache: Cache to invalidate on every committed mutation
        backend: Persistence collaborator for edge writes
        strict_references: Treat every string reference as a slug
    """

    def __init__(
        self,
        store: EntityStore,
        cache: PermissionCache,
        backend: PersistenceBackend | None = None,
        strict_references: bool = False,
    ) -> None:
        self.store = store
        self.cache = cache
        self.lock = store.lock
        self.strict_references = strict_references
        self._backend = backend or NullBackend()

        self._user_roles: dict[Hashable, frozenset[int]] = {}
        self._user_permissions: dict[Hashable, frozenset[int]] = {}
        self._role_permissions: dict[int, frozenset[int]] = {}

        self._role_users: dict[int, frozenset[Hashable]] = {}
        self._permission_users: dict[int, frozenset[Hashable]] = {}
        self._permission_roles: dict[int, frozenset[int]] = {}

        store.attach_cascade(self._cascade_delete)

    # ------------------------------------------------------------------
    # User edges
    # ------------------------------------------------------------------

    def assign(self, user: Hashable, kind: EntityKind, refs: Iterable[RefLike]) -> frozenset[int]:
        """Add edges from ``user``; edges already present are left alone.

        Returns:
            The user's edge set of that kind after the change

        Raises:
            NotFoundError: If any reference does not resolve; nothing is applied
        """
        with self.lock:
            ids = self._resolve_ids(kind, refs)
            current = self._user_edges(kind).get(user, EMPTY)
            return self._replace_user_edges(user, kind, current | ids, "grants_assigned")

    def remove(self, user: Hashable, kind: EntityKind, refs: Iterable[RefLike]) -> frozenset[int]:
        """Remove the listed edges; edges the user does not have are ignored."""
        with self.lock:
            ids = self._resolve_ids(kind, refs)
            current = self._user_edges(kind).get(user, EMPTY)
            return self._replace_user_edges(user, kind, current - ids, "grants_removed")

    def sync(self, user: Hashable, kind: EntityKind, refs: Iterable[RefLike]) -> frozenset[int]:
        """Replace the user's edges of ``kind`` with exactly ``refs``.

        The replacement is published as a single set swap, so no reader can
        observe a partially synced state.
        """
        with self.lock:
            ids = self._resolve_ids(kind, refs)
            return self._replace_user_edges(user, kind, ids, "grants_synced")

    def roles_of(self, user: Hashable) -> frozenset[int]:
        """Ids of the roles a user holds."""
        return self._user_roles.get(user, EMPTY)

    def direct_permissions_of(self, user: Hashable) -> frozenset[int]:
        """Ids of permissions granted to a user directly."""
        return self._user_permissions.get(user, EMPTY)

    def edges(self, user: Hashable, kind: EntityKind) -> frozenset[int]:
        """A user's edge set of the given kind."""
        return self._user_edges(kind).get(user, EMPTY)

    # ------------------------------------------------------------------
    # Role edges
    # ------------------------------------------------------------------

    def assign_role_permissions(self, role: RefLike, refs: Iterable[RefLike]) -> frozenset[int]:
        """Grant permissions to a role, keeping the ones it already has."""
        with self.lock:
            role_id = self._resolve_id(EntityKind.ROLE, role)
            ids = self._resolve_ids(EntityKind.PERMISSION, refs)
            current = self._role_permissions.get(role_id, EMPTY)
            return self._replace_role_edges(role_id, current | ids, "role_grants_assigned")

    def revoke_role_permissions(self, role: RefLike, refs: Iterable[RefLike]) -> frozenset[int]:
        """Revoke permissions from a role; missing grants are ignored."""
        with self.lock:
            role_id = self._resolve_id(EntityKind.ROLE, role)
            ids = self._resolve_ids(EntityKind.PERMISSION, refs)
            current = self._role_permissions.get(role_id, EMPTY)
            return self._replace_role_edges(role_id, current - ids, "role_grants_revoked")

    def sync_role_permissions(self, role: RefLike, refs: Iterable[RefLike]) -> frozenset[int]:
        """Replace a role's permissions with exactly ``refs``."""
        with self.lock:
            role_id = self._resolve_id(EntityKind.ROLE, role)
            ids = self._resolve_ids(EntityKind.PERMISSION, refs)
            return self._replace_role_edges(role_id, ids, "role_grants_synced")

    def permissions_of_role(self, role: RefLike) -> frozenset[int]:
        """Ids of the permissions granted to a role."""
        return self.role_permission_ids(self._resolve_id(EntityKind.ROLE, role))

    def role_permission_ids(self, role_id: int) -> frozenset[int]:
        """Role permissions by role id, without reference resolution."""
        return self._role_permissions.get(role_id, EMPTY)

    def users_with_role(self, role: RefLike) -> frozenset[Hashable]:
        """Principals currently holding a role."""
        return self._role_users.get(self._resolve_id(EntityKind.ROLE, role), EMPTY)

    def users_with_permission(self, permission: RefLike) -> frozenset[Hashable]:
        """Principals holding a permission directly (not through roles)."""
        return self._permission_users.get(
            self._resolve_id(EntityKind.PERMISSION, permission), EMPTY
        )

    def roles_with_permission(self, permission: RefLike) -> frozenset[int]:
        """Ids of roles that grant a permission."""
        return self._permission_roles.get(
            self._resolve_id(EntityKind.PERMISSION, permission), EMPTY
        )

    def users(self) -> set[Hashable]:
        """Every principal with at least one edge."""
        with self.lock:
            return set(self._user_roles) | set(self._user_permissions)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _user_edges(self, kind: EntityKind) -> dict[Hashable, frozenset[int]]:
        return self._user_roles if kind is EntityKind.ROLE else self._user_permissions

    def _reverse_user_index(self, kind: EntityKind) -> dict[int, frozenset[Hashable]]:
        return self._role_users if kind is EntityKind.ROLE else self._permission_users

    def _resolve_id(self, kind: EntityKind, value: RefLike) -> int:
        ref = parse_ref(value, strict=self.strict_references, kind=kind)
        return self.store.resolve(kind, ref).id

    def _resolve_ids(self, kind: EntityKind, values: Iterable[RefLike]) -> frozenset[int]:
        refs = parse_refs(values, strict=self.strict_references, kind=kind)
        return frozenset(self.store.resolve(kind, ref).id for ref in refs)

    def _replace_user_edges(
        self,
        user: Hashable,
        kind: EntityKind,
        new: frozenset[int],
        event: str,
    ) -> frozenset[int]:
        forward = self._user_edges(kind)
        reverse = self._reverse_user_index(kind)
        current = forward.get(user, EMPTY)
        added, removed = new - current, current - new
        if not added and not removed:
            return current

        relation = Relation.USER_ROLE if kind is EntityKind.ROLE else Relation.USER_PERMISSION
        changes = EdgeChanges()
        for entity_id in added:
            changes.add(relation, user, entity_id)
        for entity_id in removed:
            changes.remove(relation, user, entity_id)
        with backend_write("replace_edges"):
            self._backend.replace_edges(changes)

        _set_or_drop(forward, user, new)
        for entity_id in added:
            reverse[entity_id] = reverse.get(entity_id, EMPTY) | {user}
        for entity_id in removed:
            _set_or_drop(reverse, entity_id, reverse.get(entity_id, EMPTY) - {user})
        self.cache.invalidate(user)

        logger.info(
            event,
            user_id=str(user),
            kind=kind.value,
            added=sorted(added),
            removed=sorted(removed),
        )
        return new

    def _replace_role_edges(self, role_id: int, new: frozenset[int], event: str) -> frozenset[int]:
        current = self._role_permissions.get(role_id, EMPTY)
        added, removed = new - current, current - new
        if not added and not removed:
            return current

        changes = EdgeChanges()
        for permission_id in added:
            changes.add(Relation.ROLE_PERMISSION, role_id, permission_id)
        for permission_id in removed:
            changes.remove(Relation.ROLE_PERMISSION, role_id, permission_id)
        with backend_write("replace_edges"):
            self._backend.replace_edges(changes)

        _set_or_drop(self._role_permissions, role_id, new)
        for permission_id in added:
            self._permission_roles[permission_id] = (
                self._permission_roles.get(permission_id, EMPTY) | {role_id}
            )
        for permission_id in removed:
            _set_or_drop(
                self._permission_roles,
                permission_id,
                self._permission_roles.get(permission_id, EMPTY) - {role_id},
            )

        holders = self._role_users.get(role_id, EMPTY)
        self.cache.invalidate_many(holders)

        logger.info(
            event,
            role_id=role_id,
            added=sorted(added),
            removed=sorted(removed),
            affected_users=len(holders),
        )
        return new

    def _cascade_delete(self, kind: EntityKind, entity_id: int) -> None:
        """Drop every edge touching an entity that is being deleted.

        Called by the store under the shared lock. Persists the delete and
        the edge removals as one backend call, then publishes and
        invalidates.
        """
        changes = EdgeChanges()
        affected: set[Hashable] = set()

        if kind is EntityKind.ROLE:
            holders = self._role_users.get(entity_id, EMPTY)
            granted = self._role_permissions.get(entity_id, EMPTY)
            for user in holders:
                changes.remove(Relation.USER_ROLE, user, entity_id)
            for permission_id in granted:
                changes.remove(Relation.ROLE_PERMISSION, entity_id, permission_id)
            affected |= holders
        else:
            holders = self._permission_users.get(entity_id, EMPTY)
            granting_roles = self._permission_roles.get(entity_id, EMPTY)
            for user in holders:
                changes.remove(Relation.USER_PERMISSION, user, entity_id)
            for role_id in granting_roles:
                changes.remove(Relation.ROLE_PERMISSION, role_id, entity_id)
                affected |= self._role_users.get(role_id, EMPTY)
            affected |= holders

        with backend_write("delete_entity"):
            self._backend.delete_entity(kind, entity_id, changes)

        if kind is EntityKind.ROLE:
            for user in self._role_users.pop(entity_id, EMPTY):
                _set_or_drop(self._user_roles, user, self._user_roles.get(user, EMPTY) - {entity_id})
            for permission_id in self._role_permissions.pop(entity_id, EMPTY):
                _set_or_drop(
                    self._permission_roles,
                    permission_id,
                    self._permission_roles.get(permission_id, EMPTY) - {entity_id},
                )
        else:
            for user in self._permission_users.pop(entity_id, EMPTY):
                _set_or_drop(
                    self._user_permissions,
                    user,
                    self._user_permissions.get(user, EMPTY) - {entity_id},
                )
            for role_id in self._permission_roles.pop(entity_id, EMPTY):
                _set_or_drop(
                    self._role_permissions,
                    role_id,
                    self._role_permissions.get(role_id, EMPTY) - {entity_id},
                )

        self.cache.invalidate_many(affected)

        logger.info(
            "entity_edges_cascaded",
            kind=kind.value,
            id=entity_id,
            edges_removed=changes.count,
            affected_users=len(affected),
        )


def _set_or_drop(mapping: dict, key: Hashable, value: frozenset) -> None:
    """Store a non-empty set, or remove the key when the set is empty."""
    if value:
        mapping[key] = value
    else:
        mapping.pop(key, None)
