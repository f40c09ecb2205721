"""Unit tests for the high-level client wrapper."""

from __future__ import annotations

import pytest

from bcx.client import BcxClient
from bcx.config import AppConfig
from bcx.exceptions import MissingCredentialsError, OrderNotFoundError
from bcx.models import ChannelMessage, MarketResponse, OrderUpdated, TickerResponse
from bcx.ws.session import WSSession

from conftest import FakeConnector, FakeExchange, settle


class TestCredentials:
    async def test_authenticated_methods_need_secret(
        self, session: WSSession, app_config: AppConfig, connector: FakeConnector
    ) -> None:
        client = BcxClient(session=session, config=app_config)
        with pytest.raises(MissingCredentialsError):
            await client.get_balances()
        with pytest.raises(MissingCredentialsError):
            await client.subscribe_trading(lambda event: None)
        with pytest.raises(MissingCredentialsError):
            await client.create_order({})
        assert connector.transports == []

    async def test_set_authentication_token(
        self, session: WSSession, app_config: AppConfig, exchange: FakeExchange, connector: FakeConnector
    ) -> None:
        exchange.snapshots["balances"] = {"balances": []}
        client = BcxClient(session=session, config=app_config)
        client.set_authentication_token("late-token")
        await client.get_balances()
        assert connector.transport.frames(channel="auth")[0]["token"] == "late-token"


class TestMarketData:
    async def test_get_ticker(self, client: BcxClient, exchange: FakeExchange) -> None:
        exchange.snapshots["ticker"] = {"last_trade_price": 5000.0, "volume_24h": 0.3}
        ticker = await client.get_ticker("BTC-USD")
        assert isinstance(ticker, TickerResponse)
        assert ticker.symbol == "BTC-USD"
        assert ticker.last_trade_price == 5000.0

    async def test_get_market_level(
        self, client: BcxClient, exchange: FakeExchange, connector: FakeConnector
    ) -> None:
        exchange.snapshots["l3"] = {"bids": [{"px": 1.0, "qty": 2.0, "num": "abc"}], "asks": []}
        market = await client.get_market("BTC-USD", level="l3")
        assert isinstance(market, MarketResponse)
        assert market.best_bid == 1.0
        assert connector.transport.frames(action="subscribe")[0]["channel"] == "l3"

    async def test_invalid_market_level(self, client: BcxClient) -> None:
        with pytest.raises(ValueError):
            await client.get_market("BTC-USD", level="ticker")

    async def test_invalid_granularity(self, client: BcxClient, connector: FakeConnector) -> None:
        with pytest.raises(ValueError):
            await client.subscribe_prices("BTC-USD", 61, lambda event: None)
        assert connector.transports == []

    async def test_subscribe_ticker_delivers_models(
        self, client: BcxClient, exchange: FakeExchange, connector: FakeConnector
    ) -> None:
        exchange.snapshots["ticker"] = {"last_trade_price": 1.0}
        events: list = []
        await client.subscribe_ticker("BTC-USD", events.append)
        connector.transport.push({"channel": "ticker", "event": "rejected", "text": "late"})
        await settle()

        assert isinstance(events[0], TickerResponse)
        assert isinstance(events[1], ChannelMessage)
        assert events[1].text == "late"

        await client.unsubscribe_ticker("BTC-USD")
        assert not client._mux.is_subscribed("ticker", {"symbol": "BTC-USD"})


class TestTrading:
    async def test_subscribe_trading_typed_events(
        self, client: BcxClient, exchange: FakeExchange, connector: FakeConnector
    ) -> None:
        events: list = []
        await client.subscribe_trading(events.append)
        assert client.is_subscribed_trading

        connector.transport.push(
            {"channel": "trading", "event": "updated", "orderID": "1", "ordStatus": "open"}
        )
        await settle()
        assert isinstance(events[0], OrderUpdated)

    async def test_create_order_from_dict(
        self, client: BcxClient, exchange: FakeExchange
    ) -> None:
        exchange.on_command = lambda frame: [
            {"channel": "trading", "event": "updated", "clOrdID": frame["clOrdID"], "orderID": "9"}
        ]
        update = await client.create_order(
            {"clOrdID": "c-9", "symbol": "BTC-USD", "side": "sell", "ordType": "market", "orderQty": 1}
        )
        assert update.orderID == "9"

    async def test_get_order(
        self, client: BcxClient, exchange: FakeExchange, open_orders: list[dict]
    ) -> None:
        exchange.snapshots["trading"] = {"orders": open_orders}
        assert (await client.get_order("222")).clOrdID == "c-2"
        assert (await client.get_order_by_client_order_id("c-1")).orderID == "111"

    async def test_get_order_not_found(
        self, client: BcxClient, exchange: FakeExchange, open_orders: list[dict]
    ) -> None:
        exchange.snapshots["trading"] = {"orders": open_orders}
        with pytest.raises(OrderNotFoundError):
            await client.get_order("333")
        with pytest.raises(OrderNotFoundError):
            await client.get_order_by_client_order_id("c-3")


class TestFlush:
    async def test_flush_resets_trading_mode_and_secret(
        self, client: BcxClient, connector: FakeConnector
    ) -> None:
        await client.subscribe_trading(lambda event: None)
        client.flush()

        assert not client.is_subscribed_trading
        assert not client.session.connected
        with pytest.raises(MissingCredentialsError):
            await client.get_open_orders()

    async def test_clients_sharing_a_session_share_listeners(
        self, client: BcxClient, session: WSSession, app_config: AppConfig
    ) -> None:
        other = BcxClient("secret-token", session=session, config=app_config)
        await client.subscribe_heartbeat(lambda event: None)
        assert other._mux.is_subscribed("heartbeat")
