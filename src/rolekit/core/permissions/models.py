"""Role and permission records.

Entities are frozen pydantic models. The store replaces a record with an
updated copy rather than mutating it, so a reader holding a ``Role`` never
sees a half-applied rename.
"""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(UTC)


class EntityKind(StrEnum):
    """The two entity kinds the store manages."""

    ROLE = "role"
    PERMISSION = "permission"


class Entity(BaseModel):
    """Fields shared by roles and permissions."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    slug: str
    description: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    kind: EntityKind


class Role(Entity):
    """A named bundle of permissions that users can hold."""

    kind: EntityKind = EntityKind.ROLE


class Permission(Entity):
    """A single capability, granted directly or through roles."""

    kind: EntityKind = EntityKind.PERMISSION


ENTITY_TYPES: dict[EntityKind, type[Entity]] = {
    EntityKind.ROLE: Role,
    EntityKind.PERMISSION: Permission,
}
