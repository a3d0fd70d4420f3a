"""Baseline roles and permissions, and YAML policy files.

A policy file declares permissions, roles with their permissions, and
optional user assignments:

    permissions:
      - slug: edit-posts
        name: Edit Posts
    roles:
      - slug: editor
        name: Editor
        permissions: [edit-posts]
    users:
      42:
        roles: [editor]
        permissions: []

Applying a policy is idempotent: entities are matched by slug and grants
are unioned, never removed.
"""

from dataclasses import dataclass
from pathlib import Path

import structlog
import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from rolekit.authorizer import Authorizer
from rolekit.core.permissions import BySlug, EntityKind


logger = structlog.get_logger()


DEFAULT_PERMISSIONS = [
    ("manage-users", "Manage Users"),
    ("manage-roles", "Manage Roles"),
    ("manage-permissions", "Manage Permissions"),
    ("view-posts", "View Posts"),
    ("create-posts", "Create Posts"),
    ("edit-posts", "Edit Posts"),
    ("delete-posts", "Delete Posts"),
    ("publish-posts", "Publish Posts"),
]

DEFAULT_ROLES = [
    ("super-admin", "Super Admin"),
    ("admin", "Admin"),
    ("editor", "Editor"),
    ("moderator", "Moderator"),
    ("author", "Author"),
    ("viewer", "Viewer"),
]

DEFAULT_ROLE_PERMISSIONS = {
    "super-admin": [slug for slug, _ in DEFAULT_PERMISSIONS],
    "admin": ["manage-users", "manage-roles", "manage-permissions"],
    "editor": ["view-posts", "create-posts", "edit-posts", "publish-posts"],
    "moderator": ["view-posts", "edit-posts", "delete-posts"],
    "author": ["view-posts", "create-posts", "edit-posts"],
    "viewer": ["view-posts"],
}


class EntitySpec(BaseModel):
    """A permission declared in a policy file."""

    slug: str = Field(..., description="Unique key (e.g., 'edit-posts')")
    name: str = Field(..., description="Display name")
    description: str | None = Field(None, description="Optional free text")


class RoleSpec(EntitySpec):
    """A role declared in a policy file."""

    permissions: list[str] = Field(
        default_factory=list,
        description="Slugs of permissions granted to the role",
    )


class UserGrantSpec(BaseModel):
    """Assignments for one principal."""

    roles: list[str] = Field(default_factory=list, description="Role slugs")
    permissions: list[str] = Field(default_factory=list, description="Direct permission slugs")


class PolicyFile(BaseModel):
    """Contents of a YAML policy file."""

    permissions: list[EntitySpec] = Field(default_factory=list)
    roles: list[RoleSpec] = Field(default_factory=list)
    users: dict[int | str, UserGrantSpec] = Field(default_factory=dict)


@dataclass
class SeedSummary:
    """Counts of what applying a policy touched."""

    permissions: int = 0
    roles: int = 0
    users: int = 0


def default_policy() -> PolicyFile:
    """The baseline roles and permissions as a policy."""
    return PolicyFile(
        permissions=[
            EntitySpec(slug=slug, name=name, description=f"{name} permission")
            for slug, name in DEFAULT_PERMISSIONS
        ],
        roles=[
            RoleSpec(
                slug=slug,
                name=name,
                description=f"{name} role",
                permissions=DEFAULT_ROLE_PERMISSIONS[slug],
            )
            for slug, name in DEFAULT_ROLES
        ],
    )


def load_policy(path: Path) -> PolicyFile:
    """Read and validate a YAML policy file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a valid policy
    """
    if not path.exists():
        raise FileNotFoundError(f"Policy file '{path}' not found")

    with path.open() as f:
        data = yaml.safe_load(f) or {}

    try:
        return PolicyFile.model_validate(data)
    except PydanticValidationError as e:
        raise ValueError(f"Invalid policy file: {e}") from e


def apply_policy(authorizer: Authorizer, policy: PolicyFile) -> SeedSummary:
    """Create missing entities and add the declared grants.

    Role and user references are always treated as slugs, so a numeric
    slug in a policy file is never mistaken for an id.
    """
    store, graph = authorizer.store, authorizer.graph
    summary = SeedSummary()

    for spec in policy.permissions:
        store.first_or_create(EntityKind.PERMISSION, spec.slug, spec.name, spec.description)
        summary.permissions += 1

    for role_spec in policy.roles:
        role = store.first_or_create(
            EntityKind.ROLE, role_spec.slug, role_spec.name, role_spec.description
        )
        graph.assign_role_permissions(role, [BySlug(s) for s in role_spec.permissions])
        summary.roles += 1

    for user, grants in policy.users.items():
        graph.assign(user, EntityKind.ROLE, [BySlug(s) for s in grants.roles])
        graph.assign(user, EntityKind.PERMISSION, [BySlug(s) for s in grants.permissions])
        summary.users += 1

    logger.info(
        "policy_applied",
        permissions=summary.permissions,
        roles=summary.roles,
        users=summary.users,
    )
    return summary


def seed_defaults(authorizer: Authorizer) -> SeedSummary:
    """Create the baseline roles and permissions if they are missing."""
    return apply_policy(authorizer, default_policy())
