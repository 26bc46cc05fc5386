"""Command line tools for inspecting the permission catalog and decisions."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from warehouse_authz import __version__
from warehouse_authz.config import settings
from warehouse_authz.core.auth.schemas import AuthenticatedUser
from warehouse_authz.core.database import build_engine, build_session_factory
from warehouse_authz.core.permissions import (
    PERMISSION_CATALOG,
    AllGranted,
    AuthorizationEngine,
    Restricted,
    SQLPermissionStore,
)


console = Console()

app = typer.Typer(
    name="warehouse-authz",
    help="Inspect permissions and warehouse scopes.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.callback(invoke_without_command=True)
def version_callback(
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version and exit."
    ),
) -> None:
    """warehouse-authz - permission and warehouse scope tooling."""
    if version:
        console.print(f"[bold cyan]warehouse-authz[/bold cyan] version {__version__}")
        raise typer.Exit()


@app.command(name="catalog")
def catalog(
    page: str | None = typer.Option(None, "--page", "-p", help="Only this page"),
) -> None:
    """List the permission catalog."""
    entries = [e for e in PERMISSION_CATALOG if page is None or e.page == page]
    if not entries:
        console.print(f"[yellow]No permissions for page '{page}'.[/yellow]")
        raise typer.Exit(code=1)

    table = Table(title="Permission Catalog", show_header=True)
    table.add_column("Code", style="cyan", no_wrap=True)
    table.add_column("Category", no_wrap=True)
    table.add_column("Page", style="green", no_wrap=True)
    table.add_column("Name")

    for entry in entries:
        table.add_row(entry.code, entry.category, entry.page, entry.display_name)

    console.print()
    console.print(table)
    console.print()


async def _explain(user: AuthenticatedUser) -> None:
    db_engine = build_engine()
    try:
        store = SQLPermissionStore(build_session_factory(db_engine))
        engine = AuthorizationEngine.from_settings(store, settings)
        resolution = await engine.resolve_permissions(user)
        scope = await engine.resolve_warehouse_scope(user)
    finally:
        await db_engine.dispose()

    if isinstance(resolution, AllGranted):
        console.print(
            f"[bold green]All permissions granted[/bold green] ({resolution.reason})"
        )
    else:
        table = Table(title=f"Effective permissions for user {user.user_id}")
        table.add_column("Code", style="cyan", no_wrap=True)
        table.add_column("Access", no_wrap=True)
        table.add_column("Visible", no_wrap=True)
        table.add_column("Source", no_wrap=True)
        for perm in resolution.effective_permissions():
            table.add_row(
                perm.code,
                "[green]yes[/green]" if perm.can_access else "[red]no[/red]",
                "yes" if perm.is_visible else "no",
                perm.source,
            )
        console.print(table)

    if isinstance(scope, Restricted):
        ids = ", ".join(str(i) for i in scope.warehouse_ids)
        console.print(
            f"Warehouses: {ids} (default {scope.default_warehouse_id})"
        )
    else:
        console.print("Warehouses: [bold]unrestricted[/bold]")


@app.command(name="explain")
def explain(
    user_id: int = typer.Argument(..., help="User ID"),
    role: str = typer.Argument(..., help="Role name"),
    warehouse_id: int | None = typer.Option(
        None, "--warehouse-id", "-w", help="Session warehouse"
    ),
) -> None:
    """Resolve a user's permissions and warehouses against the database."""
    user = AuthenticatedUser(user_id=user_id, role=role, warehouse_id=warehouse_id)
    asyncio.run(_explain(user))


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
