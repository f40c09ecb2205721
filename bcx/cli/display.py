"""Rich console formatting helpers for the bcx CLI."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from bcx.models import MarketResponse, Order, OrderStatus

BCX_THEME = Theme(
    {
        "bid": "bold green",
        "ask": "bold red",
        "header": "bold cyan",
        "muted": "dim",
        "status.open": "green",
        "status.partial": "yellow",
        "status.pending": "cyan",
        "status.cancelled": "dim white",
        "status.expired": "dim white",
        "status.rejected": "bold red",
    }
)

console = Console(theme=BCX_THEME)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def format_number(value: float | None, decimals: int = 2) -> str:
    if value is None:
        return "--"
    return f"{value:,.{decimals}f}"


def format_side(side: str | None) -> Text:
    if side is None:
        return Text("--", style="muted")
    return Text(side.upper(), style="bid" if side == "buy" else "ask")


def format_order_status(status: OrderStatus | None) -> Text:
    if status is None:
        return Text("--", style="muted")
    return Text(status.value.upper(), style=f"status.{status.value}")


# ---------------------------------------------------------------------------
# Table builders
# ---------------------------------------------------------------------------

def create_book_table(market: MarketResponse, depth: int = 10) -> Table:
    """Bids and asks side by side, best levels first."""
    table = Table(title=f"{market.symbol} orderbook", header_style="header")
    table.add_column("Bid qty", justify="right")
    table.add_column("Bid", justify="right", style="bid")
    table.add_column("Ask", justify="right", style="ask")
    table.add_column("Ask qty", justify="right")

    bids = sorted(market.bids, key=lambda level: level.px, reverse=True)[:depth]
    asks = sorted(market.asks, key=lambda level: level.px)[:depth]
    for i in range(max(len(bids), len(asks))):
        bid = bids[i] if i < len(bids) else None
        ask = asks[i] if i < len(asks) else None
        table.add_row(
            format_number(bid.qty, 8) if bid else "",
            format_number(bid.px) if bid else "",
            format_number(ask.px) if ask else "",
            format_number(ask.qty, 8) if ask else "",
        )
    return table


def create_order_table(orders: list[Order], title: str = "Orders") -> Table:
    table = Table(title=f"{title} ({len(orders)})", header_style="header")
    table.add_column("Order ID")
    table.add_column("Client ID", style="muted")
    table.add_column("Symbol")
    table.add_column("Side")
    table.add_column("Type")
    table.add_column("Qty", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Status")

    for order in orders:
        table.add_row(
            order.orderID,
            order.clOrdID or "--",
            order.symbol or "--",
            format_side(order.side),
            order.ordType.value if order.ordType else "--",
            format_number(order.orderQty, 8),
            format_number(order.price),
            format_order_status(order.ordStatus),
        )
    return table
