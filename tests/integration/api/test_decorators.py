"""Integration tests for route guards on a FastAPI application.

These tests verify the guard decorators on real routes including:
- require_permission with pipe-delimited alternatives
- require_any_permission / require_all_permissions
- require_role / require_all_roles
- 401 / 403 / 400 Problem Details responses
"""

from typing import Annotated

import pytest
from fastapi import Depends, FastAPI, Header
from httpx import ASGITransport, AsyncClient

from rolekit.authorizer import Authorizer
from rolekit.core.errors import register_exception_handlers
from rolekit.core.permissions import EntityKind, PrincipalContext


pytestmark = pytest.mark.integration


async def current_principal(
    x_user_id: Annotated[str | None, Header()] = None,
) -> PrincipalContext:
    """Principal provider reading the user id from a header."""
    return PrincipalContext(principal_id=x_user_id)


async def current_user_id(x_user_id: Annotated[str | None, Header()] = None) -> str | None:
    """Principal provider returning a bare id."""
    return x_user_id


CurrentPrincipal = Annotated[PrincipalContext, Depends(current_principal)]
CurrentUserId = Annotated[str | None, Depends(current_user_id)]


def create_test_app(authorizer: Authorizer) -> FastAPI:
    """Build an app with guarded routes bound to ``authorizer``."""
    app = FastAPI()
    register_exception_handlers(app)
    guard = authorizer.guard()

    @app.get("/posts")
    @guard.require_permission("view-posts")
    async def list_posts(principal: CurrentPrincipal):
        return {"status": "ok", "user_id": principal.principal_id}

    @app.put("/posts/{post_id}")
    @guard.require_permission("edit-posts|publish-posts")
    async def update_post(post_id: int, principal: CurrentPrincipal):
        return {"status": "ok", "post_id": post_id}

    @app.post("/posts/{post_id}/publish")
    @guard.require_all_permissions(["edit-posts", "publish-posts"])
    async def publish_post(post_id: int, principal: CurrentPrincipal):
        return {"status": "ok", "post_id": post_id}

    @app.get("/drafts")
    @guard.require_any_permission(["edit-posts", "publish-posts"])
    async def list_drafts(principal: CurrentUserId):
        return {"status": "ok"}

    @app.get("/admin")
    @guard.require_role("admin|editor")
    async def admin_panel(principal: CurrentPrincipal):
        return {"status": "ok"}

    @app.get("/staff")
    @guard.require_all_roles(["editor", "viewer"])
    async def staff_only(principal: CurrentPrincipal):
        return {"status": "ok"}

    @app.delete("/posts/{post_id}")
    @guard.require_permission("delete-posts")
    async def delete_post(post_id: int, principal: CurrentPrincipal):
        return {"status": "ok"}

    return app


class TestRouteGuards:
    """Tests for guard decorators on routes."""

    @pytest.fixture
    def guarded(self, authorizer: Authorizer, blog) -> Authorizer:
        """Authorizer with an admin role, an editor and a viewer."""
        authorizer.store.create(EntityKind.ROLE, "Admin", "admin")
        authorizer.subject("editor-user").assign_role("editor")
        authorizer.subject("viewer-user").assign_role("viewer")
        return authorizer

    @pytest.fixture
    async def client(self, guarded: Authorizer) -> AsyncClient:
        """Create test client for the app."""
        async with AsyncClient(
            transport=ASGITransport(app=create_test_app(guarded)),
            base_url="http://test",
        ) as client:
            yield client

    async def test_allowed(self, client: AsyncClient):
        response = await client.get("/posts", headers={"X-User-Id": "viewer-user"})

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "user_id": "viewer-user"}

    async def test_missing_principal_is_401(self, client: AsyncClient):
        response = await client.get("/posts")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.headers["content-type"].startswith("application/problem+json")
        body = response.json()
        assert body["type"] == "urn:rolekit:error:auth_required"
        assert body["status"] == 401
        assert body["instance"] == "/posts"

    async def test_forbidden_is_403(self, client: AsyncClient):
        response = await client.put("/posts/1", headers={"X-User-Id": "viewer-user"})

        assert response.status_code == 403
        body = response.json()
        assert body["type"] == "urn:rolekit:error:permission_denied"
        assert body["required_permissions"] == ["edit-posts", "publish-posts"]
        assert body["mode"] == "any"

    async def test_any_alternative_suffices(self, client: AsyncClient):
        """edit-posts alone satisfies 'edit-posts|publish-posts'."""
        response = await client.put("/posts/7", headers={"X-User-Id": "editor-user"})

        assert response.status_code == 200
        assert response.json()["post_id"] == 7

    async def test_all_permissions(self, client: AsyncClient, guarded: Authorizer):
        """Every listed permission is required."""
        headers = {"X-User-Id": "editor-user"}

        denied = await client.post("/posts/1/publish", headers=headers)
        guarded.subject("editor-user").give_permission_to("publish-posts")
        allowed = await client.post("/posts/1/publish", headers=headers)

        assert denied.status_code == 403
        assert denied.json()["detail"] == "Missing required permissions: edit-posts, publish-posts"
        assert allowed.status_code == 200

    async def test_bare_id_principal(self, client: AsyncClient):
        """Handlers may receive a bare principal id."""
        allowed = await client.get("/drafts", headers={"X-User-Id": "editor-user"})
        denied = await client.get("/drafts", headers={"X-User-Id": "viewer-user"})
        anonymous = await client.get("/drafts")

        assert allowed.status_code == 200
        assert denied.status_code == 403
        assert anonymous.status_code == 401

    async def test_require_role(self, client: AsyncClient):
        allowed = await client.get("/admin", headers={"X-User-Id": "editor-user"})
        denied = await client.get("/admin", headers={"X-User-Id": "viewer-user"})

        assert allowed.status_code == 200
        assert denied.status_code == 403
        assert denied.json()["required_roles"] == ["admin", "editor"]

    async def test_require_all_roles(self, client: AsyncClient, guarded: Authorizer):
        headers = {"X-User-Id": "editor-user"}

        denied = await client.get("/staff", headers=headers)
        guarded.subject("editor-user").assign_role("viewer")
        allowed = await client.get("/staff", headers=headers)

        assert denied.status_code == 403
        assert allowed.status_code == 200

    async def test_unknown_permission_is_400(self, client: AsyncClient):
        """A route guarded by an unregistered permission is a bad reference."""
        response = await client.delete("/posts/1", headers={"X-User-Id": "editor-user"})

        assert response.status_code == 400
        body = response.json()
        assert body["type"] == "urn:rolekit:error:invalid_reference"
        assert body["reference"] == "delete-posts"

    async def test_revocation_takes_effect_on_next_request(
        self, client: AsyncClient, guarded: Authorizer
    ):
        """A role-side revoke is visible on the following request."""
        headers = {"X-User-Id": "viewer-user"}
        assert (await client.get("/posts", headers=headers)).status_code == 200

        guarded.graph.revoke_role_permissions("viewer", ["view-posts"])

        assert (await client.get("/posts", headers=headers)).status_code == 403
