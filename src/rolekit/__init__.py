"""rolekit - in-memory role and permission authorization core."""

from rolekit.authorizer import Authorizer
from rolekit.config import Settings, get_settings
from rolekit.core.permissions import (
    Allow,
    AuthorizationGate,
    ById,
    BySlug,
    Deny,
    DenyReason,
    EntityKind,
    Mode,
    Permission,
    PrincipalContext,
    Role,
    RouteGuard,
)


__version__ = "0.1.0"

__all__ = [
    "Allow",
    "AuthorizationGate",
    "Authorizer",
    "ById",
    "BySlug",
    "Deny",
    "DenyReason",
    "EntityKind",
    "Mode",
    "Permission",
    "PrincipalContext",
    "Role",
    "RouteGuard",
    "Settings",
    "__version__",
    "get_settings",
]
