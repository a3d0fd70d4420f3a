"""Canonical role and permission records.

The store owns identity and slug uniqueness. Grant edges live in the
membership graph; the graph registers itself as the store's cascade so that
deleting an entity removes its edges and evicts affected cache entries in
the same critical section.
"""

import itertools
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import structlog

from rolekit.core.constants import MAX_NAME_LENGTH, MAX_SLUG_LENGTH, REFERENCE_TOKEN_SEPARATOR
from rolekit.core.errors import DuplicateSlugError, NotFoundError, ValidationError
from rolekit.core.permissions.models import ENTITY_TYPES, Entity, EntityKind
from rolekit.core.permissions.persistence import (
    EdgeChanges,
    NullBackend,
    PersistenceBackend,
    backend_write,
)
from rolekit.core.permissions.refs import ById, Ref
from rolekit.core.utils.text import generate_slug, is_numeric_reference


logger = structlog.get_logger()

UPDATABLE_FIELDS = frozenset({"name", "slug", "description"})

CascadeHook = Callable[[EntityKind, int], None]


class EntityStore:
    """In-memory registry of roles and permissions.

    Mutations are serialized by ``lock``, which the membership graph
    shares. Reads go straight to the dictionaries; each mutation replaces
    whole records, so a reader sees either the old or the new entity.
    """

    def __init__(
        self,
        backend: PersistenceBackend | None = None,
        lock: "threading.RLock | None" = None,
    ) -> None:
        self.lock = lock or threading.RLock()
        self._backend = backend or NullBackend()
        self._records: dict[EntityKind, dict[int, Entity]] = {k: {} for k in EntityKind}
        self._slugs: dict[EntityKind, dict[str, int]] = {k: {} for k in EntityKind}
        self._ids = {k: itertools.count(1) for k in EntityKind}
        self._cascade: CascadeHook | None = None

    def attach_cascade(self, hook: CascadeHook) -> None:
        """Register the callback that removes an entity's grant edges.

        The hook runs under ``lock`` before the record is removed and is
        responsible for persisting the delete. If it raises, the entity
        stays.
        """
        self._cascade = hook

    def create(
        self,
        kind: EntityKind,
        name: str,
        slug: str | None = None,
        description: str | None = None,
    ) -> Entity:
        """Register a new role or permission.

        Args:
            kind: Role or permission
            name: Display name
            slug: Unique key; generated from the name when omitted
            description: Optional free text

        Returns:
            The created entity

        Raises:
            DuplicateSlugError: If the slug is already taken for this kind
            ValidationError: If name or slug is empty or too long
        """
        name = _validate_name(name)
        slug = _validate_slug(slug if slug is not None else generate_slug(name))

        with self.lock:
            self._ensure_slug_free(kind, slug)
            entity = ENTITY_TYPES[kind](
                id=next(self._ids[kind]),
                name=name,
                slug=slug,
                description=description,
            )
            with backend_write("save_entity"):
                self._backend.save_entity(entity)
            self._records[kind][entity.id] = entity
            self._slugs[kind][slug] = entity.id

        if is_numeric_reference(slug):
            _warn_numeric_slug(kind, slug)
        logger.info(f"{kind.value}_created", id=entity.id, slug=slug)
        return entity

    def update(self, kind: EntityKind, entity_id: int, **fields: Any) -> Entity:
        """Change the name, slug or description of an entity.

        Raises:
            NotFoundError: If the entity does not exist
            DuplicateSlugError: If the new slug belongs to another entity
            ValidationError: If an unknown field is given or a value is invalid
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                f"Cannot update fields: {', '.join(sorted(unknown))}",
                errors=[{"field": f, "message": "Field is not updatable"} for f in sorted(unknown)],
            )
        if "name" in fields:
            fields["name"] = _validate_name(fields["name"])
        if "slug" in fields:
            fields["slug"] = _validate_slug(fields["slug"])

        with self.lock:
            current = self.get(kind, entity_id)
            new_slug = fields.get("slug", current.slug)
            if new_slug != current.slug:
                self._ensure_slug_free(kind, new_slug)

            updated = current.model_copy(update={**fields, "updated_at": datetime.now(UTC)})
            with backend_write("save_entity"):
                self._backend.save_entity(updated)

            self._records[kind][entity_id] = updated
            if new_slug != current.slug:
                del self._slugs[kind][current.slug]
                self._slugs[kind][new_slug] = entity_id

        if new_slug != current.slug and is_numeric_reference(new_slug):
            _warn_numeric_slug(kind, new_slug)
        logger.info(f"{kind.value}_updated", id=entity_id, fields=sorted(fields))
        return updated

    def delete(self, kind: EntityKind, entity_id: int) -> None:
        """Delete an entity together with every grant edge referencing it.

        Raises:
            NotFoundError: If the entity does not exist
            PersistenceError: If the backend rejects the delete; nothing changes
        """
        with self.lock:
            entity = self.get(kind, entity_id)
            if self._cascade is not None:
                self._cascade(kind, entity_id)
            else:
                with backend_write("delete_entity"):
                    self._backend.delete_entity(kind, entity_id, EdgeChanges())

            del self._records[kind][entity_id]
            del self._slugs[kind][entity.slug]

        logger.info(f"{kind.value}_deleted", id=entity_id, slug=entity.slug)

    def get(self, kind: EntityKind, entity_id: int) -> Entity:
        """Fetch an entity by id.

        Raises:
            NotFoundError: If the entity does not exist
        """
        entity = self._records[kind].get(entity_id)
        if entity is None:
            raise NotFoundError(
                f"{kind.value.title()} not found",
                resource=kind.value,
                resource_id=str(entity_id),
            )
        return entity

    def find(self, kind: EntityKind, entity_id: int) -> Entity | None:
        """Fetch an entity by id, or None if it does not exist."""
        return self._records[kind].get(entity_id)

    def find_by_slug(self, kind: EntityKind, slug: str) -> Entity:
        """Fetch an entity by its exact slug.

        Raises:
            NotFoundError: If no entity has that slug
        """
        entity_id = self._slugs[kind].get(slug)
        if entity_id is None:
            raise NotFoundError(
                f"{kind.value.title()} not found",
                resource=kind.value,
                resource_id=slug,
            )
        return self.get(kind, entity_id)

    def resolve(self, kind: EntityKind, ref: Ref) -> Entity:
        """Look up the entity a typed reference points to."""
        if isinstance(ref, ById):
            return self.get(kind, ref.id)
        return self.find_by_slug(kind, ref.slug)

    def exists(self, kind: EntityKind, entity_id: int) -> bool:
        return entity_id in self._records[kind]

    def all(self, kind: EntityKind) -> list[Entity]:
        """All entities of a kind, ordered by id."""
        return sorted(self._records[kind].values(), key=lambda e: e.id)

    def first_or_create(
        self,
        kind: EntityKind,
        slug: str,
        name: str,
        description: str | None = None,
    ) -> Entity:
        """Return the entity with ``slug``, creating it if it does not exist."""
        with self.lock:
            entity_id = self._slugs[kind].get(slug)
            if entity_id is not None:
                return self._records[kind][entity_id]
            return self.create(kind, name=name, slug=slug, description=description)

    def _ensure_slug_free(self, kind: EntityKind, slug: str) -> None:
        if slug in self._slugs[kind]:
            raise DuplicateSlugError(
                f"{kind.value.title()} slug already exists: {slug}",
                details={"kind": kind.value, "slug": slug},
            )


def _validate_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError(errors=[{"field": "name", "message": "Name must not be empty"}])
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(
            errors=[{"field": "name", "message": f"Name exceeds {MAX_NAME_LENGTH} characters"}]
        )
    return name


def _validate_slug(slug: str) -> str:
    slug = (slug or "").strip()
    if not slug:
        raise ValidationError(errors=[{"field": "slug", "message": "Slug must not be empty"}])
    if len(slug) > MAX_SLUG_LENGTH:
        raise ValidationError(
            errors=[{"field": "slug", "message": f"Slug exceeds {MAX_SLUG_LENGTH} characters"}]
        )
    if REFERENCE_TOKEN_SEPARATOR in slug:
        raise ValidationError(
            errors=[
                {"field": "slug", "message": f"Slug must not contain '{REFERENCE_TOKEN_SEPARATOR}'"}
            ]
        )
    return slug


def _warn_numeric_slug(kind: EntityKind, slug: str) -> None:
    logger.warning(
        "numeric_slug_registered",
        kind=kind.value,
        slug=slug,
        hint="numeric strings resolve as ids unless strict references are enabled",
    )
