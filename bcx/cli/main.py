"""bcx CLI entry point.

Usage:
    python -m bcx.cli.main [COMMAND] [OPTIONS]

Or via the installed console script:
    bcx [COMMAND] [OPTIONS]
"""

from __future__ import annotations

import typer

from bcx.cli.commands import account, market_data
from bcx.config import get_config
from bcx.log import configure_logging

app = typer.Typer(
    name="bcx",
    help="bcx -- Blockchain.com Exchange WebSocket client",
    no_args_is_help=True,
    add_completion=False,
    pretty_exceptions_enable=True,
)


@app.callback()
def _setup() -> None:
    configure_logging(get_config().logging)


app.command(name="ticker", help="Current ticker for a symbol")(market_data.ticker)
app.command(name="market", help="Orderbook snapshot for a symbol")(market_data.market)
app.command(name="balances", help="Account balances")(account.balances)
app.command(name="orders", help="Open orders")(account.orders)
app.command(name="cancel-all", help="Cancel every open order")(account.cancel_all)


if __name__ == "__main__":
    app()
