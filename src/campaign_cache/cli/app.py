from typing import Optional

import typer

from campaign_cache.config import CacheConfig
from campaign_cache.utils import init_logging


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:  # pragma: no cover
        import campaign_cache

        typer.echo(f"campaign-cache version: {campaign_cache.__version__}")
        raise typer.Exit()


app = typer.Typer(name="campaign-cache")


@app.callback()
def app_callback(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """campaign-cache - offline cache for fundraising campaign progress."""
    config = CacheConfig()
    init_logging(config)
    ctx.obj = config
