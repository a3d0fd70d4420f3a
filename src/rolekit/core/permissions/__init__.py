"""Roles, permissions, grant edges and authorization decisions."""

from rolekit.core.permissions.models import Entity, EntityKind, Permission, Role
from rolekit.core.permissions.refs import ById, BySlug, Ref, parse_ref, parse_refs, parse_token
from rolekit.core.permissions.persistence import (
    EdgeChanges,
    NullBackend,
    PersistenceBackend,
    Relation,
)
from rolekit.core.permissions.store import EntityStore
from rolekit.core.permissions.graph import MembershipGraph
from rolekit.core.permissions.principal import Authorizable, PrincipalContext, Subject
from rolekit.core.permissions.resolver import Resolver
from rolekit.core.permissions.gate import Allow, AuthorizationGate, Decision, Deny, DenyReason, Mode
from rolekit.core.permissions.decorators import RouteGuard


__all__ = [
    "Allow",
    "Authorizable",
    "AuthorizationGate",
    "ById",
    "BySlug",
    "Decision",
    "Deny",
    "DenyReason",
    "EdgeChanges",
    "Entity",
    "EntityKind",
    "EntityStore",
    "MembershipGraph",
    "Mode",
    "NullBackend",
    "Permission",
    "PersistenceBackend",
    "PrincipalContext",
    "Ref",
    "Relation",
    "Resolver",
    "Role",
    "RouteGuard",
    "Subject",
    "parse_ref",
    "parse_refs",
    "parse_token",
]
