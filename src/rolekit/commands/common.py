"""Helpers shared by the rolekit commands."""

from collections.abc import Hashable
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from rolekit.authorizer import Authorizer
from rolekit.config import Settings
from rolekit.core.errors import AppException
from rolekit.core.utils.text import is_numeric_reference
from rolekit.seed import PolicyFile, apply_policy, load_policy, seed_defaults


console = Console()

EXIT_DENIED = 1
EXIT_INVALID = 2


def build_authorizer(policy_path: Path | None, defaults: bool) -> tuple[Authorizer, PolicyFile]:
    """Load a policy file into a fresh authorizer.

    Exits with code 2 when the file is missing or invalid, or references
    roles or permissions it does not declare.
    """
    authorizer = Authorizer(settings=Settings())
    if defaults:
        seed_defaults(authorizer)

    policy = PolicyFile()
    if policy_path is not None:
        try:
            policy = load_policy(policy_path)
        except (FileNotFoundError, ValueError) as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            raise typer.Exit(EXIT_INVALID) from e
        try:
            apply_policy(authorizer, policy)
        except AppException as e:
            console.print(f"[red]Error:[/red] {escape(e.message)}")
            raise typer.Exit(EXIT_INVALID) from e

    return authorizer, policy


def principal_id(policy: PolicyFile, raw: str) -> Hashable:
    """Map a command-line user id onto the key type used in the policy file."""
    if is_numeric_reference(raw) and int(raw) in policy.users:
        return int(raw)
    return raw
