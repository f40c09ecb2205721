from .channels import Action, Channel, ChannelEvent, ChannelMessage
from .market import (
    PRICE_GRANULARITIES,
    Balance,
    BalancesResponse,
    MarketResponse,
    PriceResponse,
    RestingOrder,
    SymbolsResponse,
    TickerResponse,
    TradeResponse,
)
from .orders import (
    TERMINAL_STATUSES,
    ExecType,
    Order,
    OrderRequest,
    OrderSnapshot,
    OrderStatus,
    OrderType,
    OrderUpdated,
    TimeInForce,
    cancel_command,
)

__all__ = [
    "Action",
    "Channel",
    "ChannelEvent",
    "ChannelMessage",
    "PRICE_GRANULARITIES",
    "Balance",
    "BalancesResponse",
    "MarketResponse",
    "PriceResponse",
    "RestingOrder",
    "SymbolsResponse",
    "TickerResponse",
    "TradeResponse",
    "TERMINAL_STATUSES",
    "ExecType",
    "Order",
    "OrderRequest",
    "OrderSnapshot",
    "OrderStatus",
    "OrderType",
    "OrderUpdated",
    "TimeInForce",
    "cancel_command",
]
