"""High-level client for the Blockchain.com Exchange WebSocket API.

Anonymous market data methods work without credentials. Balances and trading
need the API secret generated on https://exchange.blockchain.com, passed to
the constructor or set later with ``set_authentication_token``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog
from pydantic import BaseModel

from bcx.config import AppConfig, get_config
from bcx.exceptions import MissingCredentialsError, OrderNotFoundError
from bcx.models import (
    PRICE_GRANULARITIES,
    BalancesResponse,
    Channel,
    ChannelEvent,
    ChannelMessage,
    MarketResponse,
    Order,
    OrderRequest,
    OrderSnapshot,
    OrderUpdated,
    PriceResponse,
    SymbolsResponse,
    TickerResponse,
    TradeResponse,
)
from bcx.trading import TradingCorrelator
from bcx.ws.multiplexer import ChannelMultiplexer
from bcx.ws.session import WSSession
from bcx.ws.transport import WebsocketConnector
from bcx.ws.waiter import Frame

logger = structlog.get_logger(__name__)

MARKET_LEVELS = (Channel.MARKET_L2, Channel.MARKET_L3)


def _typed(callback: Callable[[Any], Any], model: type[BaseModel]) -> Callable[[Frame], Any]:
    """Wrap ``callback`` so data events arrive as ``model`` and the rest as ChannelMessage."""

    def on_event(frame: Frame) -> Any:
        if frame.get("event") in (ChannelEvent.SNAPSHOT, ChannelEvent.UPDATED):
            return callback(model.model_validate(frame))
        return callback(ChannelMessage.model_validate(frame))

    return on_event


def _trading_event(callback: Callable[[Any], Any]) -> Callable[[Frame], Any]:
    def on_event(frame: Frame) -> Any:
        event = frame.get("event")
        if event == ChannelEvent.SNAPSHOT:
            return callback(OrderSnapshot.model_validate(frame))
        if event == ChannelEvent.UPDATED:
            return callback(OrderUpdated.model_validate(frame))
        return callback(ChannelMessage.model_validate(frame))

    return on_event


def _market_channel(level: str) -> Channel:
    channel = Channel(level)
    if channel not in MARKET_LEVELS:
        raise ValueError(f"market level must be 'l2' or 'l3', got {level!r}")
    return channel


def _price_params(symbol: str, granularity: int) -> dict[str, Any]:
    if granularity not in PRICE_GRANULARITIES:
        raise ValueError(f"granularity must be one of {PRICE_GRANULARITIES}, got {granularity}")
    return {"symbol": symbol, "granularity": granularity}


class BcxClient:
    """
    Client wrapper over a WebSocket session.

    Each client creates its own session unless one is passed in; clients that
    are given the same session share its connection and authentication.
    """

    def __init__(
        self,
        api_secret: str | None = None,
        session: WSSession | None = None,
        config: AppConfig | None = None,
    ) -> None:
        config = config or get_config()
        if session is None:
            session = WSSession(
                WebsocketConnector(config.exchange, config.tuning),
                ack_timeout=config.tuning.ack_timeout,
            )
        self.session = session
        self._mux = ChannelMultiplexer(session)
        self._api_secret = api_secret or None
        self._snapshot_timeout = config.tuning.ack_timeout
        self._trading = TradingCorrelator(
            self._mux, self._api_secret, order_timeout=config.tuning.order_timeout
        )

    async def __aenter__(self) -> BcxClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def is_subscribed_trading(self) -> bool:
        return self._trading.subscribed

    def _require_secret(self, method: str) -> str:
        if not self._api_secret:
            raise MissingCredentialsError(
                f"{method} requires an api secret to be supplied to the client "
                "or set with set_authentication_token()"
            )
        return self._api_secret

    async def _fetch(
        self,
        channel: Channel,
        params: dict[str, Any] | None,
        model: type[BaseModel],
        auth_token: str | None = None,
    ) -> Any:
        frame = await self._mux.snapshot(channel, params, auth_token, self._snapshot_timeout)
        return model.model_validate(frame)

    # ── Ticker ────────────────────────────────────────────────────────

    async def get_ticker(self, symbol: str) -> TickerResponse:
        """Fetch the current ticker for a symbol (e.g. BTC-USD)."""
        return await self._fetch(Channel.TICKER, {"symbol": symbol}, TickerResponse)

    async def subscribe_ticker(self, symbol: str, callback: Callable[[Any], Any]) -> None:
        """Stream ticker events for ``symbol``. Returns once the server confirms."""
        await self._mux.subscribe(Channel.TICKER, {"symbol": symbol}, _typed(callback, TickerResponse))

    async def unsubscribe_ticker(self, symbol: str) -> None:
        await self._mux.unsubscribe(Channel.TICKER, {"symbol": symbol})

    # ── Orderbook ─────────────────────────────────────────────────────

    async def get_market(self, symbol: str, level: str = "l2") -> MarketResponse:
        """Fetch a level 2 or level 3 orderbook snapshot."""
        return await self._fetch(_market_channel(level), {"symbol": symbol}, MarketResponse)

    async def subscribe_market(
        self, symbol: str, callback: Callable[[Any], Any], level: str = "l2"
    ) -> None:
        await self._mux.subscribe(
            _market_channel(level), {"symbol": symbol}, _typed(callback, MarketResponse)
        )

    async def unsubscribe_market(self, symbol: str, level: str = "l2") -> None:
        await self._mux.unsubscribe(_market_channel(level), {"symbol": symbol})

    # ── Trades, prices, symbols, heartbeat ────────────────────────────

    async def subscribe_trades(self, symbol: str, callback: Callable[[Any], Any]) -> None:
        await self._mux.subscribe(Channel.TRADES, {"symbol": symbol}, _typed(callback, TradeResponse))

    async def unsubscribe_trades(self, symbol: str) -> None:
        await self._mux.unsubscribe(Channel.TRADES, {"symbol": symbol})

    async def subscribe_prices(
        self, symbol: str, granularity: int, callback: Callable[[Any], Any]
    ) -> None:
        """Stream candles; granularity is in seconds."""
        await self._mux.subscribe(
            Channel.PRICES, _price_params(symbol, granularity), _typed(callback, PriceResponse)
        )

    async def unsubscribe_prices(self, symbol: str, granularity: int) -> None:
        await self._mux.unsubscribe(Channel.PRICES, _price_params(symbol, granularity))

    async def get_symbols(self) -> SymbolsResponse:
        return await self._fetch(Channel.SYMBOLS, None, SymbolsResponse)

    async def subscribe_symbols(self, callback: Callable[[Any], Any]) -> None:
        await self._mux.subscribe(Channel.SYMBOLS, None, _typed(callback, SymbolsResponse))

    async def unsubscribe_symbols(self) -> None:
        await self._mux.unsubscribe(Channel.SYMBOLS)

    async def subscribe_heartbeat(self, callback: Callable[[Any], Any]) -> None:
        await self._mux.subscribe(Channel.HEARTBEAT, None, _typed(callback, ChannelMessage))

    async def unsubscribe_heartbeat(self) -> None:
        await self._mux.unsubscribe(Channel.HEARTBEAT)

    # ── Balances ──────────────────────────────────────────────────────

    async def get_balances(self) -> BalancesResponse:
        token = self._require_secret("get_balances()")
        return await self._fetch(Channel.BALANCES, None, BalancesResponse, token)

    async def subscribe_balances(self, callback: Callable[[Any], Any]) -> None:
        token = self._require_secret("subscribe_balances()")
        await self._mux.subscribe(Channel.BALANCES, None, _typed(callback, BalancesResponse), token)

    async def unsubscribe_balances(self) -> None:
        self._require_secret("unsubscribe_balances()")
        await self._mux.unsubscribe(Channel.BALANCES)

    # ── Trading ───────────────────────────────────────────────────────

    async def subscribe_trading(self, callback: Callable[[Any], Any]) -> None:
        """Stream order snapshots and updates; enables trading mode."""
        self._require_secret("subscribe_trading()")
        await self._trading.subscribe_trading(_trading_event(callback))

    async def unsubscribe_trading(self) -> None:
        self._require_secret("unsubscribe_trading()")
        await self._trading.unsubscribe_trading()

    async def create_order(self, order: OrderRequest | dict[str, Any]) -> OrderUpdated | None:
        """Create an order.

        In trading mode this returns None once the command is sent and the
        update arrives on the standing subscription. Otherwise it waits for
        and returns the order's first update.
        """
        self._require_secret("create_order()")
        if not isinstance(order, OrderRequest):
            order = OrderRequest.model_validate(order)
        return await self._trading.create_order(order)

    async def cancel_order(self, order_id: str) -> OrderUpdated | None:
        self._require_secret("cancel_order()")
        return await self._trading.cancel_order(order_id)

    async def cancel_all_orders(self) -> list[Order]:
        self._require_secret("cancel_all_orders()")
        return await self._trading.cancel_all_orders()

    async def get_open_orders(self) -> list[Order]:
        self._require_secret("get_open_orders()")
        return await self._trading.get_open_orders()

    async def get_order(self, order_id: str) -> Order:
        """Find an open order by exchange order id."""
        orders = await self.get_open_orders()
        order = next((o for o in orders if o.orderID == order_id), None)
        if order is None:
            raise OrderNotFoundError(f"Order with orderID {order_id} not found")
        return order

    async def get_order_by_client_order_id(self, cl_ord_id: str) -> Order:
        """Find an open order by client order id."""
        orders = await self.get_open_orders()
        order = next((o for o in orders if o.clOrdID == cl_ord_id), None)
        if order is None:
            raise OrderNotFoundError(f"Order with clOrdID {cl_ord_id} not found")
        return order

    # ── Utility ───────────────────────────────────────────────────────

    def set_authentication_token(self, token: str) -> None:
        self._api_secret = token
        self._trading.auth_token = token

    def flush(self) -> None:
        """Reset the secret, trading mode and the whole session."""
        self._api_secret = None
        self._trading.auth_token = None
        self._trading.reset()
        self.session.flush()

    async def close(self) -> None:
        self._trading.reset()
        await self.session.close()
