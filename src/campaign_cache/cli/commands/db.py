"""Database management commands."""

import asyncio

import typer
from loguru import logger
from rich.console import Console

from campaign_cache.cli.app import app
from campaign_cache.config import CacheConfig
from campaign_cache.db import Database
from campaign_cache.exceptions import StorageFatalError

console = Console()


async def _migrate(config: CacheConfig) -> None:
    database = await Database.open(config)
    await database.dispose()


def run_migrations(config: CacheConfig) -> None:
    try:
        asyncio.run(_migrate(config))
    except StorageFatalError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def migrate(ctx: typer.Context) -> None:
    """Create the database or bring its schema up to date."""
    config: CacheConfig = ctx.obj
    run_migrations(config)
    console.print(f"[green]Database ready:[/green] {config.database_path}")


@app.command()
def reset(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete the cache database and recreate it empty."""
    config: CacheConfig = ctx.obj
    console.print(
        "[yellow]Note:[/yellow] This deletes every cached event and campaign. "
        "They are fetched again on the next refresh."
    )
    if not yes and not typer.confirm("Reset the cache database?"):
        raise typer.Exit(0)

    db_path = config.database_path
    # Delete the database file and WAL files if they exist
    for suffix in ["", "-shm", "-wal"]:
        path = db_path.parent / f"{db_path.name}{suffix}"
        if path.exists():
            try:
                path.unlink()
                logger.info(f"Deleted: {path}")
            except OSError as e:
                console.print(
                    f"[red]Error:[/red] Cannot delete {path.name}: {e}\n"
                    "The database may be in use by another process (e.g., the widget)."
                )
                raise typer.Exit(1)

    run_migrations(config)
    console.print("[green]Database reset complete[/green]")
