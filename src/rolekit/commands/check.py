"""Command: rolekit check - Ask the gate whether a principal is allowed."""

from pathlib import Path

import typer
from rich.markup import escape

from rolekit.commands.common import (
    EXIT_DENIED,
    EXIT_INVALID,
    build_authorizer,
    console,
    principal_id,
)
from rolekit.core.errors import InvalidReferenceError
from rolekit.core.permissions import (
    Deny,
    DenyReason,
    EntityKind,
    Mode,
    PrincipalContext,
    parse_token,
)


def check(
    policy_path: Path | None = typer.Argument(None, help="YAML policy file"),
    user: str = typer.Option(..., "--user", "-u", help="Principal id"),
    permission: str | None = typer.Option(
        None, "--permission", "-p", help="Permission token, e.g. 'edit-posts|publish-posts'"
    ),
    role: str | None = typer.Option(None, "--role", "-r", help="Role token, e.g. 'admin|editor'"),
    require_all: bool = typer.Option(
        False, "--all", "-a", help="Require every alternative instead of any one"
    ),
    defaults: bool = typer.Option(False, "--defaults", "-d", help="Seed the built-in roles first"),
) -> None:
    """Check a permission or role for a principal.

    Exits 0 when allowed, 1 when denied and 2 for unknown references.
    """
    if (permission is None) == (role is None):
        console.print("[red]Error:[/red] Pass exactly one of --permission or --role.")
        raise typer.Exit(EXIT_INVALID)

    authorizer, policy = build_authorizer(policy_path, defaults)
    if permission is not None:
        kind, token = EntityKind.PERMISSION, permission
    else:
        kind, token = EntityKind.ROLE, role or ""

    try:
        refs = parse_token(token, strict=authorizer.settings.strict_references)
    except InvalidReferenceError as e:
        console.print(f"[red]Invalid:[/red] {escape(e.message)}")
        raise typer.Exit(EXIT_INVALID) from e

    context = PrincipalContext(principal_id=principal_id(policy, user))
    decision = authorizer.gate.authorize(
        context, kind, refs, Mode.ALL if require_all else Mode.ANY
    )

    if isinstance(decision, Deny):
        if decision.reason is DenyReason.UNKNOWN_REFERENCE:
            console.print(f"[red]Invalid:[/red] {escape(decision.message)}")
            raise typer.Exit(EXIT_INVALID)
        console.print(f"[yellow]Denied:[/yellow] {escape(decision.message)}")
        raise typer.Exit(EXIT_DENIED)

    console.print(f"[green]Allowed:[/green] {escape(user)} has {kind.value} {escape(token)}")
