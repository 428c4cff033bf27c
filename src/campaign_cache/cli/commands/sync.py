"""Commands for refreshing and showing cached fundraising data."""

import asyncio
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from campaign_cache.cache import CampaignCache
from campaign_cache.cli.app import app
from campaign_cache.config import CacheConfig
from campaign_cache.entities import Campaign, FundraisingEvent, Money
from campaign_cache.exceptions import StorageFatalError
from campaign_cache.sync import RefreshResult

console = Console()


def format_money(money: Money) -> str:
    return f"{money.value or '0'} {money.currency}"


def print_event(event: Optional[FundraisingEvent], campaigns: List[Campaign]) -> None:
    if event is None:
        console.print("[yellow]No fundraiser cached yet.[/yellow] Run [green]refresh[/green].")
        return

    console.print(f"[bold]{event.name}[/bold] ({event.cause_name})")
    line = f"Raised {format_money(event.amount_raised)} of {format_money(event.goal)}"
    if event.percentage_reached is not None:
        line += f" ({event.percentage_reached:.2%})"
    console.print(line)

    table = Table(title="Fundraisers")
    table.add_column("Campaign")
    table.add_column("Owner")
    table.add_column("Raised", justify="right")
    for campaign in sorted(campaigns, key=lambda c: c.total_raised.decimal or 0, reverse=True):
        table.add_row(campaign.name, campaign.username, format_money(campaign.total_raised))
    console.print(table)


async def _refresh(config: CacheConfig) -> RefreshResult:
    async with await CampaignCache.open(config) as cache:
        return await cache.refresh()


async def _show(config: CacheConfig) -> tuple[Optional[FundraisingEvent], List[Campaign]]:
    async with await CampaignCache.open(config) as cache:
        event = await cache.get_event()
        campaigns = await cache.get_campaigns(event.id) if event else []
        return event, campaigns


@app.command()
def refresh(ctx: typer.Context) -> None:
    """Fetch the latest totals and update the cache."""
    config: CacheConfig = ctx.obj
    try:
        result = asyncio.run(_refresh(config))
    except StorageFatalError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if result.from_cache:
        console.print(
            f"[yellow]Remote unavailable, showing cached data:[/yellow] {result.remote_error}"
        )
    for failure in result.failures:
        console.print(
            f"[yellow]Could not store campaign {failure.campaign_id}:[/yellow] {failure.error}"
        )

    print_event(result.event, result.campaigns)


@app.command()
def show(ctx: typer.Context) -> None:
    """Show cached data without contacting the remote API."""
    config: CacheConfig = ctx.obj
    try:
        event, campaigns = asyncio.run(_show(config))
    except StorageFatalError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    print_event(event, campaigns)
