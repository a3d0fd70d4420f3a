"""Principal-side view of roles and permissions.

``Authorizable`` is the capability interface any principal type can
implement. ``Subject`` implements it for a bare principal id on top of the
resolver, and also carries the assignment helpers users typically call on
themselves (``assign_role``, ``give_permission_to`` and friends).
"""

from collections.abc import Hashable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from rolekit.core.permissions.models import Entity, EntityKind
from rolekit.core.permissions.refs import RefLike


if TYPE_CHECKING:
    from rolekit.core.permissions.resolver import Resolver


@runtime_checkable
class Authorizable(Protocol):
    """Anything that can answer role and permission questions about itself."""

    def has_role(self, role: RefLike) -> bool: ...

    def has_permission(self, permission: RefLike) -> bool: ...

    def roles(self) -> list[Entity]: ...

    def permissions(self) -> list[Entity]: ...


@dataclass(frozen=True)
class PrincipalContext:
    """The authenticated principal for one request, passed explicitly to the gate.

    Attributes:
        principal_id: Id supplied by the principal provider, or None when
            the request is anonymous
        attributes: Extra request-scoped data for logging
    """

    principal_id: Hashable | None = None
    attributes: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def is_authenticated(self) -> bool:
        return self.principal_id is not None

    @classmethod
    def anonymous(cls) -> "PrincipalContext":
        return cls(principal_id=None)


class Subject:
    """Capability view bound to one principal id.

    Usage:
        subject = authorizer.subject(42)
        subject.assign_role("editor", "viewer")
        subject.has_permission("edit-posts")
    """

    def __init__(self, principal_id: Hashable, resolver: "Resolver") -> None:
        self.principal_id = principal_id
        self._resolver = resolver
        self._graph = resolver.graph

    def __repr__(self) -> str:
        return f"Subject(principal_id={self.principal_id!r})"

    # Queries

    def has_role(self, role: RefLike) -> bool:
        return self._resolver.has_role(self.principal_id, role)

    def has_any_role(self, *roles: RefLike) -> bool:
        return self._resolver.has_any_role(self.principal_id, roles)

    def has_all_roles(self, *roles: RefLike) -> bool:
        return self._resolver.has_all_roles(self.principal_id, roles)

    def has_permission(self, permission: RefLike) -> bool:
        return self._resolver.has_permission(self.principal_id, permission)

    def has_direct_permission(self, permission: RefLike) -> bool:
        return self._resolver.has_direct_permission(self.principal_id, permission)

    def has_permission_via_role(self, permission: RefLike) -> bool:
        return self._resolver.has_permission_via_role(self.principal_id, permission)

    def has_any_permission(self, *permissions: RefLike) -> bool:
        return self._resolver.has_any_permission(self.principal_id, permissions)

    def has_all_permissions(self, *permissions: RefLike) -> bool:
        return self._resolver.has_all_permissions(self.principal_id, permissions)

    def roles(self) -> list[Entity]:
        return self._resolver.roles(self.principal_id)

    def permissions(self) -> list[Entity]:
        """Permissions granted directly to the principal."""
        return self._resolver.direct_permissions(self.principal_id)

    def all_permissions(self) -> list[Entity]:
        """Direct and role-derived permissions, without duplicates."""
        return self._resolver.permissions(self.principal_id)

    # Mutations; each returns self for chaining

    def assign_role(self, *roles: RefLike) -> "Subject":
        self._graph.assign(self.principal_id, EntityKind.ROLE, roles)
        return self

    def remove_role(self, *roles: RefLike) -> "Subject":
        self._graph.remove(self.principal_id, EntityKind.ROLE, roles)
        return self

    def sync_roles(self, *roles: RefLike) -> "Subject":
        self._graph.sync(self.principal_id, EntityKind.ROLE, roles)
        return self

    def give_permission_to(self, *permissions: RefLike) -> "Subject":
        self._graph.assign(self.principal_id, EntityKind.PERMISSION, permissions)
        return self

    def revoke_permission_to(self, *permissions: RefLike) -> "Subject":
        self._graph.remove(self.principal_id, EntityKind.PERMISSION, permissions)
        return self

    def sync_permissions(self, *permissions: RefLike) -> "Subject":
        self._graph.sync(self.principal_id, EntityKind.PERMISSION, permissions)
        return self
