"""Pydantic models for the authenticated 'trading' channel."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from .channels import Action, Channel, ChannelMessage


class OrderType(str, Enum):
    LIMIT = "limit"
    MARKET = "market"
    STOP = "stop"
    STOP_LIMIT = "stopLimit"


class OrderStatus(str, Enum):
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    OPEN = "open"
    PARTIAL = "partial"
    PENDING = "pending"
    REJECTED = "rejected"


TERMINAL_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.EXPIRED, OrderStatus.REJECTED})


class ExecType(str, Enum):
    NEW = "0"
    CANCELLED = "4"
    EXPIRED = "C"
    REJECTED = "8"
    PARTIAL_FILL = "F"
    PENDING = "A"
    TRADE_BREAK = "H"
    ORDER_STATUS = "I"


class TimeInForce(str, Enum):
    GOOD_TILL_CANCEL = "GTC"
    GOOD_TILL_DATE = "GTD"
    FILL_OR_KILL = "FOK"
    IMMEDIATE_OR_CANCEL = "IOC"


OrderSide = Literal["buy", "sell"]


class Order(BaseModel):
    """An order as it appears in a trading snapshot."""

    orderID: str
    clOrdID: str | None = None
    symbol: str | None = None
    side: OrderSide | None = None
    ordType: OrderType | None = None
    orderQty: float | None = None
    leavesQty: float | None = None
    cumQty: float | None = None
    avgPx: float | None = None
    price: float | None = None
    ordStatus: OrderStatus | None = None
    timeInForce: TimeInForce | None = None
    execType: str | None = None
    execID: str | None = None
    transactTime: datetime | str | None = None
    text: str | None = None

    model_config = {"frozen": True, "extra": "allow"}

    @property
    def is_terminal(self) -> bool:
        return self.ordStatus in TERMINAL_STATUSES


class OrderSnapshot(ChannelMessage):
    """Open orders sent right after a trading subscription is confirmed."""

    orders: list[Order] = Field(default_factory=list)


class OrderUpdated(ChannelMessage):
    """Incremental order event on the trading channel."""

    orderID: str | None = None
    clOrdID: str | None = None
    execType: ExecType | str | None = None
    ordStatus: OrderStatus | None = None
    orderQty: float | None = None
    ordType: OrderType | None = None
    side: OrderSide | None = None
    symbol: str | None = None
    price: float | None = None
    transactTime: datetime | str | None = None


class OrderRequest(BaseModel):
    """A NewOrderSingle command.

    Limit and stop-limit orders need ``price``; stop and stop-limit orders
    need ``stopPx``; every type except market needs ``timeInForce``.
    """

    clOrdID: str = Field(min_length=1)
    symbol: str
    side: OrderSide
    ordType: OrderType
    orderQty: float = Field(gt=0)
    price: float | None = Field(default=None, gt=0)
    stopPx: float | None = Field(default=None, gt=0)
    timeInForce: TimeInForce | None = None
    expireDate: str | None = None
    minQty: float | None = None
    execInst: Literal["ALO"] | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_type_fields(self) -> OrderRequest:
        if self.ordType in (OrderType.LIMIT, OrderType.STOP_LIMIT) and self.price is None:
            raise ValueError(f"{self.ordType.value} orders require a price")
        if self.ordType in (OrderType.STOP, OrderType.STOP_LIMIT) and self.stopPx is None:
            raise ValueError(f"{self.ordType.value} orders require a stopPx")
        if self.ordType is not OrderType.MARKET and self.timeInForce is None:
            raise ValueError(f"{self.ordType.value} orders require a timeInForce")
        return self

    def to_command(self) -> dict[str, Any]:
        """Return the frame sent over the trading channel."""
        return {
            "action": Action.NEW_ORDER_SINGLE,
            "channel": Channel.TRADING,
            **self.model_dump(mode="json", exclude_none=True),
        }


def cancel_command(order_id: str) -> dict[str, Any]:
    """Return the CancelOrderRequest frame for ``order_id``."""
    return {
        "action": Action.CANCEL_ORDER_REQUEST,
        "channel": Channel.TRADING,
        "orderID": order_id,
    }
