"""Pydantic models for the public market data channels and balances."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from .channels import ChannelMessage

PRICE_GRANULARITIES = (60, 300, 900, 3600, 21600, 86400)


class TickerResponse(ChannelMessage):
    """A message from the 'ticker' channel."""

    symbol: str
    price_24h: float | None = None
    volume_24h: float | None = None
    last_trade_price: float | None = None


class RestingOrder(BaseModel):
    """One book level. On l2 ``num`` is the order count, on l3 it is the order id."""

    px: float
    qty: float
    num: int | str | None = None

    model_config = {"frozen": True}


class MarketResponse(ChannelMessage):
    """Orderbook message from the 'l2' or 'l3' channel.

    Updates only carry the levels that changed, so both sides default to [].
    """

    symbol: str
    bids: list[RestingOrder] = Field(default_factory=list)
    asks: list[RestingOrder] = Field(default_factory=list)

    @property
    def best_bid(self) -> float | None:
        return max((level.px for level in self.bids), default=None)

    @property
    def best_ask(self) -> float | None:
        return min((level.px for level in self.asks), default=None)

    @property
    def spread(self) -> float | None:
        if self.best_bid is None or self.best_ask is None:
            return None
        return self.best_ask - self.best_bid


class TradeResponse(ChannelMessage):
    """A public trade from the 'trades' channel."""

    symbol: str
    timestamp: datetime | None = None
    side: Literal["buy", "sell"] | None = None
    qty: float | None = None
    price: float | None = None
    trade_id: str | None = None


class PriceResponse(ChannelMessage):
    """Candle from the 'prices' channel.

    The server sends ``price`` as [timestamp, open, high, low, close, volume];
    the array is split into named fields on validation.
    """

    symbol: str
    price: list[float] = Field(default_factory=list)
    timestamp: float | None = None
    open: float | None = None
    high: float | None = None
    low: float | None = None
    close: float | None = None
    volume: float | None = None

    @model_validator(mode="before")
    @classmethod
    def _split_candle(cls, data: object) -> object:
        if not isinstance(data, dict):
            return data
        candle = data.get("price")
        if isinstance(candle, list) and len(candle) == 6:
            names = ("timestamp", "open", "high", "low", "close", "volume")
            data = {**dict(zip(names, candle)), **data}
        return data


class SymbolStatus(BaseModel):
    base_currency: str
    counter_currency: str
    status: str
    min_order_size: float | None = None
    min_order_size_scale: int | None = None
    min_price_increment: float | None = None
    min_price_increment_scale: int | None = None
    lot_size: float | None = None
    lot_size_scale: int | None = None
    id: int | None = None

    model_config = {"frozen": True, "extra": "allow"}


class SymbolsResponse(ChannelMessage):
    """Reference data from the 'symbols' channel, keyed by symbol."""

    symbols: dict[str, SymbolStatus] = Field(default_factory=dict)


class Balance(BaseModel):
    currency: str
    balance: float
    available: float
    balance_local: float | None = None
    available_local: float | None = None
    rate: float | None = None

    model_config = {"frozen": True, "extra": "allow"}


class BalancesResponse(ChannelMessage):
    """Account balances from the authenticated 'balances' channel."""

    balances: list[Balance] = Field(default_factory=list)
    total_available_local: float | None = None
    total_balance_local: float | None = None

    def for_currency(self, currency: str) -> Balance | None:
        return next((b for b in self.balances if b.currency == currency), None)
