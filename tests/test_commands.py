"""Tests for rolekit CLI commands."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from rolekit import __version__
from rolekit.cli import app


runner = CliRunner()


POLICY_YAML = """\
permissions:
  - slug: view-posts
    name: View Posts
  - slug: edit-posts
    name: Edit Posts
    description: Change any post
roles:
  - slug: editor
    name: Editor
    permissions: [view-posts, edit-posts]
  - slug: viewer
    name: Viewer
    permissions: [view-posts]
users:
  42:
    roles: [editor]
  bob:
    roles: [viewer]
"""


@pytest.fixture
def policy(tmp_path: Path) -> str:
    path = tmp_path / "policy.yaml"
    path.write_text(POLICY_YAML)
    return str(path)


class TestVersion:
    """Tests for rolekit --version."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestListCommands:
    """Tests for rolekit roles / permissions."""

    def test_roles(self, policy: str) -> None:
        """Roles are listed with their permissions."""
        result = runner.invoke(app, ["roles", policy])

        assert result.exit_code == 0
        assert "editor" in result.stdout
        assert "viewer" in result.stdout

    def test_permissions(self, policy: str) -> None:
        result = runner.invoke(app, ["permissions", policy])

        assert result.exit_code == 0
        assert "edit-posts" in result.stdout

    def test_defaults(self) -> None:
        """--defaults lists the built-in roles without a file."""
        result = runner.invoke(app, ["roles", "--defaults"])

        assert result.exit_code == 0
        assert "super-admin" in result.stdout

    def test_empty(self) -> None:
        result = runner.invoke(app, ["permissions"])

        assert result.exit_code == 0
        assert "No permissions defined" in result.stdout

    def test_missing_file(self, tmp_path: Path) -> None:
        """An unreadable policy exits with code 2."""
        result = runner.invoke(app, ["roles", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 2

    def test_undeclared_grant(self, tmp_path: Path) -> None:
        """A role granting an undeclared permission exits with code 2."""
        path = tmp_path / "broken.yaml"
        path.write_text("roles:\n  - slug: r\n    name: R\n    permissions: [ghost]\n")

        result = runner.invoke(app, ["roles", str(path)])

        assert result.exit_code == 2
        assert "Error" in result.stdout


class TestEffectiveCommand:
    """Tests for rolekit effective."""

    def test_effective(self, policy: str) -> None:
        """Numeric user ids match integer keys in the policy file."""
        result = runner.invoke(app, ["effective", policy, "--user", "42"])

        assert result.exit_code == 0
        assert "editor" in result.stdout
        assert "edit-posts" in result.stdout

    def test_no_permissions(self, policy: str) -> None:
        result = runner.invoke(app, ["effective", policy, "--user", "nobody"])

        assert result.exit_code == 0
        assert "No effective permissions" in result.stdout


class TestCheckCommand:
    """Tests for rolekit check."""

    def test_allowed(self, policy: str) -> None:
        result = runner.invoke(app, ["check", policy, "--user", "42", "--permission", "edit-posts"])

        assert result.exit_code == 0
        assert "Allowed" in result.stdout

    def test_denied(self, policy: str) -> None:
        result = runner.invoke(app, ["check", policy, "-u", "bob", "-p", "edit-posts"])

        assert result.exit_code == 1
        assert "Denied" in result.stdout

    def test_any_token(self, policy: str) -> None:
        """Pipe-delimited alternatives need only one match."""
        result = runner.invoke(app, ["check", policy, "-u", "bob", "-p", "edit-posts|view-posts"])

        assert result.exit_code == 0

    def test_all_flag(self, policy: str) -> None:
        """--all requires every alternative."""
        result = runner.invoke(
            app, ["check", policy, "-u", "bob", "-p", "edit-posts|view-posts", "--all"]
        )

        assert result.exit_code == 1

    def test_role(self, policy: str) -> None:
        result = runner.invoke(app, ["check", policy, "-u", "bob", "--role", "viewer"])

        assert result.exit_code == 0

    def test_unknown_reference(self, policy: str) -> None:
        """Unknown permissions exit with code 2, not 1."""
        result = runner.invoke(app, ["check", policy, "-u", "42", "-p", "delete-posts"])

        assert result.exit_code == 2
        assert "Invalid" in result.stdout

    def test_malformed_token(self, policy: str) -> None:
        result = runner.invoke(app, ["check", policy, "-u", "42", "-p", "edit-posts|"])

        assert result.exit_code == 2

    def test_requires_exactly_one_kind(self, policy: str) -> None:
        result = runner.invoke(app, ["check", policy, "-u", "42"])

        assert result.exit_code == 2

    def test_defaults(self) -> None:
        """Built-in permissions can be checked; an unassigned user is denied."""
        result = runner.invoke(app, ["check", "--defaults", "-u", "1", "-p", "manage-users"])

        assert result.exit_code == 1

    def test_non_ascii_digit_user(self, policy: str) -> None:
        """A user id of Unicode digits is an opaque string id."""
        result = runner.invoke(app, ["check", policy, "-u", "\u00b2", "-p", "view-posts"])

        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert result.exit_code == 1
        assert "Denied" in result.stdout
