"""bcx ticker / bcx market -- one-shot public market data."""

from __future__ import annotations

import asyncio

import typer
from rich.table import Table

from bcx.cli.display import console, create_book_table, format_number
from bcx.client import BcxClient
from bcx.exceptions import BcxError


async def _ticker_async(symbol: str) -> None:
    async with BcxClient() as client:
        try:
            ticker = await client.get_ticker(symbol)
        except BcxError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(code=1)

    table = Table(title=f"{ticker.symbol} ticker", header_style="header", show_header=False)
    table.add_column("Field", style="muted")
    table.add_column("Value", justify="right")
    table.add_row("Last trade", format_number(ticker.last_trade_price))
    table.add_row("24h open", format_number(ticker.price_24h))
    table.add_row("24h volume", format_number(ticker.volume_24h, 8))
    console.print(table)


async def _market_async(symbol: str, level: str, depth: int) -> None:
    async with BcxClient() as client:
        try:
            market = await client.get_market(symbol, level)
        except BcxError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(code=1)

    console.print(create_book_table(market, depth))
    console.print(f"[muted]spread:[/muted] {format_number(market.spread)}")


def ticker(
    symbol: str = typer.Argument(..., help="Market symbol (e.g. BTC-USD)"),
) -> None:
    """Show the current ticker for a symbol."""
    asyncio.run(_ticker_async(symbol.upper()))


def market(
    symbol: str = typer.Argument(..., help="Market symbol (e.g. BTC-USD)"),
    level: str = typer.Option("l2", "--level", "-l", help="Book level: l2 or l3"),
    depth: int = typer.Option(10, "--depth", "-d", help="Levels to show per side"),
) -> None:
    """Show an orderbook snapshot."""
    if level not in ("l2", "l3"):
        console.print("[red]--level must be l2 or l3[/red]")
        raise typer.Exit(code=2)
    asyncio.run(_market_async(symbol.upper(), level, depth))
