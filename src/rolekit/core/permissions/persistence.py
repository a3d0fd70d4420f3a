"""Persistence collaborator interface.

The core keeps the authoritative working set in memory and writes through
to a backend inside the same critical section as the in-memory change. A
backend that raises aborts the mutation: nothing is published and no cache
entry is touched. Backends must apply each call atomically (for example in
a single database transaction).
"""

from collections.abc import Generator, Hashable
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

import structlog

from rolekit.core.errors import AppException, PersistenceError
from rolekit.core.permissions.models import Entity, EntityKind


logger = structlog.get_logger()


class Relation(StrEnum):
    """The three grant relations."""

    USER_ROLE = "user_role"
    USER_PERMISSION = "user_permission"
    ROLE_PERMISSION = "role_permission"


@dataclass
class EdgeChanges:
    """Edges added and removed by one mutation, grouped by relation."""

    added: dict[Relation, set[tuple[Hashable, int]]] = field(default_factory=dict)
    removed: dict[Relation, set[tuple[Hashable, int]]] = field(default_factory=dict)

    def add(self, relation: Relation, left: Hashable, right: int) -> None:
        self.added.setdefault(relation, set()).add((left, right))

    def remove(self, relation: Relation, left: Hashable, right: int) -> None:
        self.removed.setdefault(relation, set()).add((left, right))

    def __bool__(self) -> bool:
        return any(self.added.values()) or any(self.removed.values())

    @property
    def count(self) -> int:
        """Total number of edges touched."""
        return sum(len(v) for v in self.added.values()) + sum(
            len(v) for v in self.removed.values()
        )


class PersistenceBackend(Protocol):
    """Durable storage for entities and grant edges."""

    def save_entity(self, entity: Entity) -> None:
        """Insert or update a role or permission record."""
        ...

    def delete_entity(self, kind: EntityKind, entity_id: int, edges: EdgeChanges) -> None:
        """Delete a record together with the edges that referenced it."""
        ...

    def replace_edges(self, changes: EdgeChanges) -> None:
        """Apply a batch of edge insertions and deletions."""
        ...


class NullBackend:
    """Backend that stores nothing; the in-memory state is the only copy."""

    def save_entity(self, entity: Entity) -> None:
        return None

    def delete_entity(self, kind: EntityKind, entity_id: int, edges: EdgeChanges) -> None:
        return None

    def replace_edges(self, changes: EdgeChanges) -> None:
        return None


@contextmanager
def backend_write(operation: str) -> Generator[None, None, None]:
    """Wrap a backend call, converting unexpected failures to PersistenceError.

    Usage:
        with backend_write("save_entity"):
            backend.save_entity(role)
    """
    try:
        yield
    except AppException:
        raise
    except Exception as exc:
        logger.error(
            "persistence_write_failed",
            operation=operation,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        raise PersistenceError(details={"operation": operation}) from exc
