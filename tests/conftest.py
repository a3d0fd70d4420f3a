"""Pytest configuration and shared fixtures for authorization core tests."""

from dataclasses import dataclass

import pytest

from rolekit.authorizer import Authorizer
from rolekit.config import Settings
from rolekit.core.permissions import EntityKind, Permission, Role


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class Blog:
    """A small role/permission setup used across tests."""

    editor: Role
    viewer: Role
    view_posts: Permission
    edit_posts: Permission
    publish_posts: Permission


@pytest.fixture
def clock() -> FakeClock:
    """Clock driving the permission cache TTL."""
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """Settings independent of the environment."""
    return Settings(
        environment="test",
        cache_enabled=True,
        cache_ttl_seconds=60,
        cache_eviction_interval_seconds=1,
        strict_references=False,
    )


@pytest.fixture
def authorizer(settings: Settings, clock: FakeClock) -> Authorizer:
    """Fresh in-memory authorizer per test."""
    return Authorizer(settings=settings, clock=clock)


@pytest.fixture
def blog(authorizer: Authorizer) -> Blog:
    """Create editor and viewer roles with post permissions.

    editor: view-posts, edit-posts
    viewer: view-posts
    publish-posts is registered but granted to no role.
    """
    store, graph = authorizer.store, authorizer.graph

    view_posts = store.create(EntityKind.PERMISSION, "View Posts", "view-posts")
    edit_posts = store.create(EntityKind.PERMISSION, "Edit Posts", "edit-posts")
    publish_posts = store.create(EntityKind.PERMISSION, "Publish Posts", "publish-posts")
    editor = store.create(EntityKind.ROLE, "Editor", "editor")
    viewer = store.create(EntityKind.ROLE, "Viewer", "viewer")

    graph.assign_role_permissions(editor, [view_posts, edit_posts])
    graph.assign_role_permissions(viewer, [view_posts])

    return Blog(
        editor=editor,
        viewer=viewer,
        view_posts=view_posts,
        edit_posts=edit_posts,
        publish_posts=publish_posts,
    )
