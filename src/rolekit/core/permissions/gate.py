"""Authorization gate: the boundary used by request-handling middleware.

The gate turns a resolver query into an ``Allow`` or a ``Deny`` carrying a
reason. Transport layers map the reasons to distinct responses:

    UNAUTHENTICATED   -> 401
    FORBIDDEN         -> 403
    UNKNOWN_REFERENCE -> 400
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeAlias

import structlog

from rolekit.core.errors import (
    AppException,
    ForbiddenError,
    InvalidReferenceError,
    UnauthorizedError,
)
from rolekit.core.permissions.models import Entity, EntityKind
from rolekit.core.permissions.principal import PrincipalContext
from rolekit.core.permissions.refs import RefLike, parse_token
from rolekit.core.permissions.resolver import Resolver


logger = structlog.get_logger()


class Mode(StrEnum):
    """How several required references combine."""

    ANY = "any"
    ALL = "all"


class DenyReason(StrEnum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    UNKNOWN_REFERENCE = "unknown_reference"


@dataclass(frozen=True)
class Allow:
    """The principal satisfies the requirement."""

    allowed = True


@dataclass(frozen=True)
class Deny:
    """The requirement is not satisfied.

    Attributes:
        reason: Why access was denied
        message: Human-readable explanation
        details: Structured context (required references, kind, mode)
    """

    reason: DenyReason
    message: str
    details: dict[str, Any] = field(default_factory=dict, hash=False)

    allowed = False

    def to_exception(self) -> AppException:
        """The exception a transport layer should raise for this denial."""
        if self.reason is DenyReason.UNAUTHENTICATED:
            return UnauthorizedError(self.message, details=self.details)
        if self.reason is DenyReason.UNKNOWN_REFERENCE:
            return InvalidReferenceError(self.message, details=self.details)
        return ForbiddenError(
            self.message,
            error_code="permission_denied",
            details=self.details,
        )


Decision: TypeAlias = Allow | Deny


class AuthorizationGate:
    """Composes resolver queries into allow/deny decisions."""

    def __init__(self, resolver: Resolver) -> None:
        self.resolver = resolver

    def authorize(
        self,
        context: PrincipalContext | None,
        kind: EntityKind,
        refs: Sequence[RefLike],
        mode: Mode = Mode.ANY,
    ) -> Decision:
        """Decide whether the principal holds the required roles or permissions.

        Args:
            context: The request's principal; None or anonymous is unauthenticated
            kind: Whether ``refs`` name roles or permissions
            refs: Required references
            mode: ANY needs one of ``refs``; ALL needs every one

        Returns:
            Allow, or Deny with the reason
        """
        required = [_describe(ref) for ref in refs]
        details: dict[str, Any] = {
            "kind": kind.value,
            "mode": mode.value,
            f"required_{kind.value}s": required,
        }

        if context is None or not context.is_authenticated:
            return _unauthenticated(details)

        user = context.principal_id
        try:
            granted = self._check(user, kind, refs, mode)
        except InvalidReferenceError as exc:
            logger.warning(
                "authorization_denied",
                reason=DenyReason.UNKNOWN_REFERENCE.value,
                user_id=str(user),
                error=exc.message,
                **details,
            )
            return Deny(
                DenyReason.UNKNOWN_REFERENCE,
                exc.message,
                {**details, **exc.details},
            )

        if not granted:
            logger.warning(
                "authorization_denied",
                reason=DenyReason.FORBIDDEN.value,
                user_id=str(user),
                **details,
            )
            return Deny(DenyReason.FORBIDDEN, _forbidden_message(kind, required, mode), details)

        logger.debug("authorization_allowed", user_id=str(user), **details)
        return Allow()

    def authorize_token(
        self,
        context: PrincipalContext | None,
        kind: EntityKind,
        token: str,
    ) -> Decision:
        """Authorize against a pipe-delimited route annotation (``"a|b"`` means any).

        An anonymous principal is denied as unauthenticated before the token
        is parsed.
        """
        if context is None or not context.is_authenticated:
            return _unauthenticated({"kind": kind.value, "mode": Mode.ANY.value, "token": token})

        try:
            refs = parse_token(token, strict=self.resolver.strict_references)
        except InvalidReferenceError as exc:
            logger.warning(
                "authorization_denied",
                reason=DenyReason.UNKNOWN_REFERENCE.value,
                user_id=str(context.principal_id),
                kind=kind.value,
                error=exc.message,
                token=token,
            )
            return Deny(DenyReason.UNKNOWN_REFERENCE, exc.message, exc.details)
        return self.authorize(context, kind, refs, Mode.ANY)

    def enforce(
        self,
        context: PrincipalContext | None,
        kind: EntityKind,
        refs: Sequence[RefLike],
        mode: Mode = Mode.ANY,
    ) -> None:
        """Like ``authorize`` but raise the mapped exception on denial."""
        decision = self.authorize(context, kind, refs, mode)
        if isinstance(decision, Deny):
            raise decision.to_exception()

    def _check(self, user: Any, kind: EntityKind, refs: Iterable[RefLike], mode: Mode) -> bool:
        if kind is EntityKind.ROLE:
            if mode is Mode.ALL:
                return self.resolver.has_all_roles(user, refs)
            return self.resolver.has_any_role(user, refs)
        if mode is Mode.ALL:
            return self.resolver.has_all_permissions(user, refs)
        return self.resolver.has_any_permission(user, refs)


def _unauthenticated(details: dict[str, Any]) -> Deny:
    logger.warning("authorization_denied", reason=DenyReason.UNAUTHENTICATED.value, **details)
    return Deny(DenyReason.UNAUTHENTICATED, "Authentication required", details)


def _describe(ref: RefLike) -> str:
    return ref.slug if isinstance(ref, Entity) else str(ref)


def _forbidden_message(kind: EntityKind, required: list[str], mode: Mode) -> str:
    noun = kind.value
    if len(required) == 1:
        return f"You do not have the required {noun}: {required[0]}"
    if mode is Mode.ALL:
        return f"Missing required {noun}s: {', '.join(required)}"
    return f"Missing required {noun}. Need one of: {', '.join(required)}"
