"""Channel, action and event enumerations plus the common inbound envelope."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class Channel(str, Enum):
    AUTH = "auth"
    BALANCES = "balances"
    HEARTBEAT = "heartbeat"
    MARKET_L2 = "l2"
    MARKET_L3 = "l3"
    PRICES = "prices"
    SYMBOLS = "symbols"
    TICKER = "ticker"
    TRADES = "trades"
    TRADING = "trading"


class Action(str, Enum):
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"
    NEW_ORDER_SINGLE = "NewOrderSingle"
    CANCEL_ORDER_REQUEST = "CancelOrderRequest"


class ChannelEvent(str, Enum):
    SUBSCRIBED = "subscribed"
    UNSUBSCRIBED = "unsubscribed"
    REJECTED = "rejected"
    SNAPSHOT = "snapshot"
    UPDATED = "updated"


class ChannelMessage(BaseModel):
    """Envelope carried by every frame the server sends."""

    channel: Channel
    event: ChannelEvent
    seqnum: int | None = None
    text: str | None = None

    model_config = {"frozen": True, "extra": "allow"}
