"""bcx balances / orders / cancel-all -- authenticated account commands.

The API secret is read from BCX_API_SECRET.
"""

from __future__ import annotations

import asyncio

import typer
from rich.table import Table

from bcx.cli.display import console, create_order_table, format_number
from bcx.client import BcxClient
from bcx.config import get_config
from bcx.exceptions import BcxError


def _client() -> BcxClient:
    config = get_config()
    if not config.exchange.api_secret:
        console.print("[red]BCX_API_SECRET is not set.[/red]")
        raise typer.Exit(code=2)
    return BcxClient(config.exchange.api_secret, config=config)


async def _balances_async() -> None:
    async with _client() as client:
        try:
            balances = await client.get_balances()
        except BcxError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(code=1)

    table = Table(title="Balances", header_style="header")
    table.add_column("Currency")
    table.add_column("Balance", justify="right")
    table.add_column("Available", justify="right")
    table.add_column("Local value", justify="right", style="muted")
    for balance in balances.balances:
        table.add_row(
            balance.currency,
            format_number(balance.balance, 8),
            format_number(balance.available, 8),
            format_number(balance.balance_local),
        )
    console.print(table)
    console.print(f"[muted]total (local):[/muted] {format_number(balances.total_balance_local)}")


async def _orders_async() -> None:
    async with _client() as client:
        try:
            orders = await client.get_open_orders()
        except BcxError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(code=1)

    if not orders:
        console.print("[dim]No open orders.[/dim]")
        return
    console.print(create_order_table(orders, title="Open orders"))


async def _cancel_all_async() -> None:
    async with _client() as client:
        try:
            cancelled = await client.cancel_all_orders()
        except BcxError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(code=1)

    if not cancelled:
        console.print("[dim]No open orders to cancel.[/dim]")
        return
    console.print(create_order_table(cancelled, title="Cancelled orders"))


def balances() -> None:
    """Show account balances."""
    asyncio.run(_balances_async())


def orders() -> None:
    """List open orders."""
    asyncio.run(_orders_async())


def cancel_all(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Cancel every open order."""
    if not yes and not typer.confirm("Cancel ALL open orders?"):
        raise typer.Abort()
    asyncio.run(_cancel_all_async())
