"""Commands: rolekit roles / permissions / effective - inspect a policy."""

from pathlib import Path

import typer
from rich.table import Table

from rolekit.commands.common import build_authorizer, console, principal_id
from rolekit.core.permissions import EntityKind


def list_roles(
    policy_path: Path | None = typer.Argument(None, help="YAML policy file"),
    defaults: bool = typer.Option(False, "--defaults", "-d", help="Seed the built-in roles first"),
) -> None:
    """List roles with the permissions each one grants."""
    authorizer, _ = build_authorizer(policy_path, defaults)
    roles = authorizer.store.all(EntityKind.ROLE)

    if not roles:
        console.print("[yellow]No roles defined.[/yellow]")
        return

    table = Table(title="Roles", show_header=True)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Slug", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Permissions", style="green")

    for role in roles:
        granted = sorted(
            authorizer.store.get(EntityKind.PERMISSION, pid).slug
            for pid in authorizer.graph.role_permission_ids(role.id)
        )
        table.add_row(str(role.id), role.slug, role.name, ", ".join(granted))

    console.print()
    console.print(table)
    console.print()


def list_permissions(
    policy_path: Path | None = typer.Argument(None, help="YAML policy file"),
    defaults: bool = typer.Option(False, "--defaults", "-d", help="Seed the built-in roles first"),
) -> None:
    """List permissions."""
    authorizer, _ = build_authorizer(policy_path, defaults)
    permissions = authorizer.store.all(EntityKind.PERMISSION)

    if not permissions:
        console.print("[yellow]No permissions defined.[/yellow]")
        return

    table = Table(title="Permissions", show_header=True)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Slug", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Description")

    for permission in permissions:
        table.add_row(
            str(permission.id),
            permission.slug,
            permission.name,
            permission.description or "",
        )

    console.print()
    console.print(table)
    console.print()


def effective(
    policy_path: Path | None = typer.Argument(None, help="YAML policy file"),
    user: str = typer.Option(..., "--user", "-u", help="Principal id"),
    defaults: bool = typer.Option(False, "--defaults", "-d", help="Seed the built-in roles first"),
) -> None:
    """Show a principal's roles and effective permissions."""
    authorizer, policy = build_authorizer(policy_path, defaults)
    uid = principal_id(policy, user)

    roles = [r.slug for r in authorizer.resolver.roles(uid)]
    direct = {p.slug for p in authorizer.resolver.direct_permissions(uid)}
    permissions = authorizer.resolver.permissions(uid)

    console.print(f"[bold]User:[/bold] {user}")
    console.print(f"[bold]Roles:[/bold] {', '.join(roles) if roles else '(none)'}")

    if not permissions:
        console.print("[yellow]No effective permissions.[/yellow]")
        return

    table = Table(title="Effective Permissions", show_header=True)
    table.add_column("Slug", style="cyan", no_wrap=True)
    table.add_column("Source")
    for permission in permissions:
        table.add_row(permission.slug, "direct" if permission.slug in direct else "role")

    console.print()
    console.print(table)
    console.print()
