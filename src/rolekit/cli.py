"""Main rolekit CLI application."""

import typer
from rich.console import Console

from rolekit import __version__
from rolekit.commands import check, inspect_cmd
from rolekit.config import Settings
from rolekit.core.logging import configure_logging


console = Console()

app = typer.Typer(
    name="rolekit",
    help="Inspect role/permission policies and check authorization decisions.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register commands
app.command(name="roles")(inspect_cmd.list_roles)
app.command(name="permissions")(inspect_cmd.list_permissions)
app.command(name="effective")(inspect_cmd.effective)
app.command(name="check")(check.check)


@app.callback(invoke_without_command=True)
def version_callback(
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version and exit."
    ),
) -> None:
    """rolekit CLI - Inspect policies and check authorization."""
    if version:
        console.print(f"[bold cyan]rolekit[/bold cyan] version {__version__}")
        raise typer.Exit()


def main() -> None:
    """Entry point for the CLI."""
    configure_logging(Settings(log_level="WARNING"))
    app()


if __name__ == "__main__":
    main()
