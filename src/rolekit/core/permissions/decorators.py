"""Role and permission decorators for route protection.

The guard wraps async route handlers and consults the authorization gate
before calling them. The handler must accept a ``principal`` keyword
argument; the application fills it from its own principal provider, for
example with a FastAPI dependency:

    guard = RouteGuard(authorizer.gate)

    @router.put("/posts/{post_id}")
    @guard.require_permission("edit-posts|publish-posts")
    async def update_post(post_id: int, principal: CurrentPrincipal):
        ...

Denials are raised as ``AppException`` subclasses and rendered by the
handlers installed with ``register_exception_handlers``.
"""

from collections.abc import Awaitable, Callable, Sequence
from functools import wraps
from typing import Any, ParamSpec, TypeVar, cast

from rolekit.core.errors import UnauthorizedError
from rolekit.core.permissions.gate import AuthorizationGate, Deny, Mode
from rolekit.core.permissions.models import EntityKind
from rolekit.core.permissions.principal import PrincipalContext
from rolekit.core.permissions.refs import RefLike


P = ParamSpec("P")
R = TypeVar("R")

Decorator = Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]


def _get_principal(kwargs: dict[str, Any]) -> PrincipalContext | None:
    """Extract the principal context from handler keyword arguments."""
    principal = kwargs.get("principal")
    if principal is None or isinstance(principal, PrincipalContext):
        return cast("PrincipalContext | None", principal)
    # Accept a bare id from simple principal providers
    return PrincipalContext(principal_id=principal)


class RouteGuard:
    """Factory for route decorators bound to one authorization gate."""

    def __init__(self, gate: AuthorizationGate) -> None:
        self.gate = gate

    def require_permission(self, token: str) -> Decorator:
        """Require any one of the pipe-delimited permissions in ``token``.

        Usage:
            @guard.require_permission("manage-users")
            async def delete_user(user_id: int, principal: CurrentPrincipal):
                ...
        """
        return self._token_decorator(EntityKind.PERMISSION, token)

    def require_any_permission(self, permissions: Sequence[RefLike]) -> Decorator:
        return self._decorator(EntityKind.PERMISSION, permissions, Mode.ANY)

    def require_all_permissions(self, permissions: Sequence[RefLike]) -> Decorator:
        """Require every listed permission.

        Usage:
            @guard.require_all_permissions(["edit-posts", "publish-posts"])
            async def publish(post_id: int, principal: CurrentPrincipal):
                ...
        """
        return self._decorator(EntityKind.PERMISSION, permissions, Mode.ALL)

    def require_role(self, token: str) -> Decorator:
        """Require any one of the pipe-delimited roles in ``token``."""
        return self._token_decorator(EntityKind.ROLE, token)

    def require_all_roles(self, roles: Sequence[RefLike]) -> Decorator:
        return self._decorator(EntityKind.ROLE, roles, Mode.ALL)

    def _token_decorator(self, kind: EntityKind, token: str) -> Decorator:
        def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
            @wraps(func)
            async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
                principal = self._require_principal(kwargs)
                decision = self.gate.authorize_token(principal, kind, token)
                if isinstance(decision, Deny):
                    raise decision.to_exception()
                return await func(*args, **kwargs)

            return wrapper

        return decorator

    def _decorator(self, kind: EntityKind, refs: Sequence[RefLike], mode: Mode) -> Decorator:
        def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
            @wraps(func)
            async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
                principal = self._require_principal(kwargs)
                self.gate.enforce(principal, kind, refs, mode)
                return await func(*args, **kwargs)

            return wrapper

        return decorator

    @staticmethod
    def _require_principal(kwargs: dict[str, Any]) -> PrincipalContext:
        principal = _get_principal(kwargs)
        if principal is None or not principal.is_authenticated:
            raise UnauthorizedError(
                "Authentication required",
                error_code="auth_required",
            )
        return principal
