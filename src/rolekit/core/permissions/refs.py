"""Typed references to roles and permissions.

Callers may name a role or permission by id, by slug, or by passing the
entity itself. ``parse_ref`` turns any of those into a ``ById`` or
``BySlug`` exactly once, at the boundary; everything below it works on the
typed reference only.

Rule for bare strings: a string made only of ASCII digits is an id, every
other non-empty string is a slug. This makes a slug such as ``"123"``
unreachable by slug. Pass ``strict=True`` to treat every string as a slug
and accept ids only as ``int`` or ``ById``.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TypeAlias

from rolekit.core.constants import REFERENCE_TOKEN_SEPARATOR
from rolekit.core.errors import InvalidReferenceError
from rolekit.core.permissions.models import Entity, EntityKind
from rolekit.core.utils.text import is_numeric_reference


@dataclass(frozen=True, slots=True)
class ById:
    """Reference by stable identifier."""

    id: int

    def __str__(self) -> str:
        return str(self.id)


@dataclass(frozen=True, slots=True)
class BySlug:
    """Reference by unique slug."""

    slug: str

    def __str__(self) -> str:
        return self.slug


Ref: TypeAlias = ById | BySlug
RefLike: TypeAlias = Ref | Entity | int | str


def parse_ref(
    value: RefLike,
    *,
    strict: bool = False,
    kind: EntityKind | None = None,
) -> Ref:
    """Resolve a loosely typed reference into ``ById`` or ``BySlug``.

    Args:
        value: An id, slug, entity, or already-typed reference
        strict: Treat all strings as slugs
        kind: When given, reject entities of the other kind

    Returns:
        The typed reference

    Raises:
        InvalidReferenceError: If the value is empty, of an unsupported type,
            or an entity of the wrong kind
    """
    if isinstance(value, ById | BySlug):
        return value
    if isinstance(value, Entity):
        if kind is not None and value.kind is not kind:
            raise InvalidReferenceError(
                f"Expected a {kind.value}, got {value.kind.value} {value.slug!r}",
                details={"kind": kind.value, "reference": value.slug},
            )
        return ById(value.id)
    # bool is an int subclass
    if isinstance(value, bool):
        raise _malformed(value)
    if isinstance(value, int):
        if value < 0:
            raise _malformed(value)
        return ById(value)
    if isinstance(value, str):
        token = value.strip()
        if not token:
            raise _malformed(value)
        if not strict and is_numeric_reference(token):
            return ById(int(token))
        return BySlug(token)
    raise _malformed(value)


def parse_refs(
    values: Iterable[RefLike],
    *,
    strict: bool = False,
    kind: EntityKind | None = None,
) -> list[Ref]:
    """Parse several references, preserving order and dropping duplicates."""
    if isinstance(values, str | bytes):
        raise InvalidReferenceError(
            "Expected a collection of references, got a single string",
            details={"reference": str(values)},
        )
    seen: dict[Ref, None] = {}
    for value in values:
        seen.setdefault(parse_ref(value, strict=strict, kind=kind), None)
    return list(seen)


def parse_token(token: str, *, strict: bool = False) -> list[Ref]:
    """Split a pipe-delimited route annotation such as ``"admin|editor"``."""
    parts = token.split(REFERENCE_TOKEN_SEPARATOR)
    if any(not part.strip() for part in parts):
        raise InvalidReferenceError(
            f"Malformed reference token: {token!r}",
            details={"reference": token},
        )
    return parse_refs(parts, strict=strict)


def _malformed(value: object) -> InvalidReferenceError:
    return InvalidReferenceError(
        f"Malformed role or permission reference: {value!r}",
        details={"reference": repr(value)},
    )
