"""Shared test fixtures: an in-memory transport and a scripted exchange."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import orjson
import pytest

from bcx.client import BcxClient
from bcx.config import AppConfig
from bcx.trading import TradingCorrelator
from bcx.ws.multiplexer import ChannelMultiplexer
from bcx.ws.session import WSSession

_CLOSE = object()


class FakeExchange:
    """Answers frames the way the Mercury gateway does.

    Subscribes are acknowledged with ``subscribed`` (tagged with the request
    parameters) followed by a snapshot when one is configured for the channel.
    Trading commands are answered by ``on_command``.
    """

    def __init__(self) -> None:
        self.reject_auth: str | None = None
        self.reject_subscribe: dict[str, str] = {}
        self.reject_unsubscribe: dict[str, str] = {}
        self.snapshots: dict[str, dict | Callable[[dict], dict]] = {}
        self.on_command: Callable[[dict], list[dict]] | None = None
        self.silent: set[str] = set()

    def __call__(self, frame: dict) -> list[dict]:
        action = frame.get("action")
        channel = frame.get("channel")
        params = {k: v for k, v in frame.items() if k not in ("action", "channel", "token")}

        if channel in self.silent:
            return []

        if channel == "auth":
            if self.reject_auth:
                return [{"seqnum": 0, "channel": "auth", "event": "rejected", "text": self.reject_auth}]
            return [{"seqnum": 0, "channel": "auth", "event": "subscribed"}]

        if action == "subscribe":
            if channel in self.reject_subscribe:
                return [{"channel": channel, "event": "rejected", "text": self.reject_subscribe[channel], **params}]
            replies = [{"channel": channel, "event": "subscribed", **params}]
            snapshot = self.snapshots.get(channel)
            if snapshot is not None:
                body = snapshot(params) if callable(snapshot) else snapshot
                replies.append({"channel": channel, "event": "snapshot", **params, **body})
            return replies

        if action == "unsubscribe":
            if channel in self.reject_unsubscribe:
                return [{"channel": channel, "event": "rejected", "text": self.reject_unsubscribe[channel], **params}]
            return [{"channel": channel, "event": "unsubscribed", **params}]

        if self.on_command is not None:
            return self.on_command(frame)
        return []


class FakeTransport:
    """In-memory transport. Sent frames are recorded and answered by the exchange."""

    def __init__(self, exchange: FakeExchange) -> None:
        self.exchange = exchange
        self.sent: list[dict] = []
        self.closed = False
        self.aborted = False
        self.fail_sends = False
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def send(self, message: str) -> None:
        if self.fail_sends:
            raise OSError("broken pipe")
        frame = orjson.loads(message)
        self.sent.append(frame)
        for reply in self.exchange(frame):
            self.push(reply)

    def push(self, frame: dict | str) -> None:
        raw = frame if isinstance(frame, str) else orjson.dumps(frame).decode()
        self._inbox.put_nowait(raw)

    def drop(self) -> None:
        """Simulate the server closing the connection."""
        self._inbox.put_nowait(_CLOSE)

    def frames(self, action: str | None = None, channel: str | None = None) -> list[dict]:
        return [
            f
            for f in self.sent
            if (action is None or f.get("action") == action)
            and (channel is None or f.get("channel") == channel)
        ]

    def __aiter__(self) -> FakeTransport:
        return self

    async def __anext__(self) -> str:
        raw = await self._inbox.get()
        if raw is _CLOSE:
            raise StopAsyncIteration
        return raw

    async def close(self) -> None:
        self.closed = True
        self.drop()

    def abort(self) -> None:
        self.aborted = True
        self.drop()


class FakeConnector:
    def __init__(self, exchange: FakeExchange) -> None:
        self.exchange = exchange
        self.transports: list[FakeTransport] = []
        self.fail_with: Exception | None = None

    async def __call__(self) -> FakeTransport:
        await asyncio.sleep(0)
        if self.fail_with is not None:
            raise self.fail_with
        transport = FakeTransport(self.exchange)
        self.transports.append(transport)
        return transport

    @property
    def transport(self) -> FakeTransport:
        return self.transports[-1]


async def settle(rounds: int = 10) -> None:
    """Let the reader task drain queued frames."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def exchange() -> FakeExchange:
    return FakeExchange()


@pytest.fixture
def connector(exchange: FakeExchange) -> FakeConnector:
    return FakeConnector(exchange)


@pytest.fixture
async def session(connector: FakeConnector):
    sess = WSSession(connector, ack_timeout=1.0)
    yield sess
    await sess.close()


@pytest.fixture
def mux(session: WSSession) -> ChannelMultiplexer:
    return ChannelMultiplexer(session)


@pytest.fixture
def trading(mux: ChannelMultiplexer) -> TradingCorrelator:
    return TradingCorrelator(mux, auth_token="secret-token", order_timeout=1.0)


@pytest.fixture
def app_config() -> AppConfig:
    config = AppConfig()
    config.tuning.ack_timeout = 1.0
    config.tuning.order_timeout = 1.0
    return config


@pytest.fixture
def client(session: WSSession, app_config: AppConfig) -> BcxClient:
    return BcxClient("secret-token", session=session, config=app_config)


@pytest.fixture
def open_orders() -> list[dict[str, Any]]:
    return [
        {
            "orderID": "111",
            "clOrdID": "c-1",
            "symbol": "BTC-USD",
            "side": "buy",
            "ordType": "limit",
            "orderQty": 0.5,
            "price": 20000.0,
            "ordStatus": "open",
            "timeInForce": "GTC",
        },
        {
            "orderID": "222",
            "clOrdID": "c-2",
            "symbol": "ETH-USD",
            "side": "sell",
            "ordType": "limit",
            "orderQty": 2.0,
            "price": 1500.0,
            "ordStatus": "open",
            "timeInForce": "GTC",
        },
    ]
