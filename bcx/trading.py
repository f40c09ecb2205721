"""Request/response semantics on top of the streaming 'trading' channel.

With a standing trading subscription, order commands are fired on the
existing stream and the caller watches their own callback. Without one, each
command opens a temporary subscription, waits for the matching order event
and tears the subscription down again.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from typing import Any

import structlog
from pydantic import ValidationError

from bcx.exceptions import (
    AlreadySubscribedError,
    NotSubscribedError,
    OrderRejected,
    RequestTimeout,
    TradingModeConflict,
)
from bcx.models import (
    Channel,
    ChannelEvent,
    Order,
    OrderRequest,
    OrderSnapshot,
    OrderStatus,
    OrderUpdated,
    cancel_command,
)
from bcx.ws.listeners import EventCallback
from bcx.ws.multiplexer import ChannelMultiplexer
from bcx.ws.waiter import Frame

logger = structlog.get_logger(__name__)

FrameHandler = Callable[[Frame, asyncio.Future], None]


class TradingCorrelator:
    """Tracks trading mode and correlates order commands with order events."""

    def __init__(
        self,
        mux: ChannelMultiplexer,
        auth_token: str | None = None,
        order_timeout: float | None = None,
    ) -> None:
        self._mux = mux
        self.auth_token = auth_token
        self.order_timeout = order_timeout
        self.subscribed = False

    def reset(self) -> None:
        self.subscribed = False

    # ── Standing subscription ─────────────────────────────────────────

    async def subscribe_trading(self, on_event: EventCallback) -> None:
        if self.subscribed:
            raise AlreadySubscribedError("You are already subscribed to trading")
        await self._mux.subscribe(Channel.TRADING, None, on_event, self.auth_token)
        self.subscribed = True
        logger.info("trading_mode_changed", subscribed=True)

    async def unsubscribe_trading(self) -> None:
        if not self.subscribed:
            raise NotSubscribedError("You are not subscribed to trading")
        await self._mux.unsubscribe(Channel.TRADING)
        self.subscribed = False
        logger.info("trading_mode_changed", subscribed=False)

    # ── Order commands ────────────────────────────────────────────────

    async def create_order(self, order: OrderRequest) -> OrderUpdated | None:
        """Submit an order.

        Returns None in trading mode; otherwise the first update carrying the
        order's clOrdID.
        """
        command = order.to_command()
        if self.subscribed:
            await self._mux.session.send(command, self.auth_token)
            logger.info("order_submitted", clOrdID=order.clOrdID)
            return None

        def on_frame(frame: Frame, outcome: asyncio.Future) -> None:
            if frame.get("event") == ChannelEvent.UPDATED and frame.get("clOrdID") == order.clOrdID:
                outcome.set_result(OrderUpdated.model_validate(frame))

        return await self._correlate(f"Order {order.clOrdID}", [command], on_frame)

    async def cancel_order(self, order_id: str) -> OrderUpdated | None:
        """Cancel an order.

        Returns None in trading mode; otherwise the update reporting the order
        as cancelled. Other terminal states for the same order do not count.
        """
        command = cancel_command(order_id)
        if self.subscribed:
            await self._mux.session.send(command, self.auth_token)
            logger.info("order_cancel_submitted", orderID=order_id)
            return None

        def on_frame(frame: Frame, outcome: asyncio.Future) -> None:
            if (
                frame.get("event") == ChannelEvent.UPDATED
                and frame.get("orderID") == order_id
                and frame.get("ordStatus") == OrderStatus.CANCELLED
            ):
                outcome.set_result(OrderUpdated.model_validate(frame))

        return await self._correlate(f"Cancelling order {order_id}", [command], on_frame)

    async def get_open_orders(self) -> list[Order]:
        """Open orders from the snapshot sent on a fresh trading subscription."""
        if self.subscribed:
            raise TradingModeConflict(
                "You can't fetch open orders while subscribed to trading. Either end your "
                "subscription or read the snapshot event delivered to your callback"
            )

        def on_frame(frame: Frame, outcome: asyncio.Future) -> None:
            if frame.get("event") == ChannelEvent.SNAPSHOT:
                outcome.set_result(OrderSnapshot.model_validate(frame).orders)

        return await self._correlate("Fetching open orders", [], on_frame)

    async def cancel_all_orders(self) -> list[Order]:
        """Cancel every open order and return them once all are cancelled."""
        if self.subscribed:
            raise TradingModeConflict(
                "You can't cancel all open orders while subscribed to trading. End your "
                "subscription first or cancel the orders individually"
            )

        orders = await self.get_open_orders()
        if not orders:
            logger.info("no_open_orders")
            return []

        tracked: dict[str, Order] = {order.orderID: order for order in orders}

        def on_frame(frame: Frame, outcome: asyncio.Future) -> None:
            if frame.get("event") != ChannelEvent.UPDATED:
                return
            if frame.get("ordStatus") != OrderStatus.CANCELLED:
                return
            order = tracked.get(frame.get("orderID"))
            if order is None:
                return
            tracked[order.orderID] = order.model_copy(update={"ordStatus": OrderStatus.CANCELLED})
            remaining = sum(1 for o in tracked.values() if o.ordStatus != OrderStatus.CANCELLED)
            logger.debug("order_cancel_confirmed", orderID=order.orderID, remaining=remaining)
            if remaining == 0:
                outcome.set_result(list(tracked.values()))

        commands = [cancel_command(order.orderID) for order in orders]
        return await self._correlate("Cancelling all orders", commands, on_frame)

    # ── Correlation ───────────────────────────────────────────────────

    async def _correlate(
        self,
        description: str,
        commands: Iterable[dict[str, Any]],
        on_frame: FrameHandler,
    ) -> Any:
        """Open a temporary trading subscription, send ``commands`` and wait.

        ``on_frame`` resolves the outcome future; a rejected event fails it.
        The temporary subscription is torn down whatever the outcome.
        """
        outcome: asyncio.Future = asyncio.get_running_loop().create_future()

        def on_event(frame: Frame) -> None:
            if outcome.done():
                return
            if frame.get("event") == ChannelEvent.REJECTED:
                text = frame.get("text")
                logger.error("order_rejected", request=description, reason=text)
                outcome.set_exception(
                    OrderRejected(f"{description} rejected because {text}", reason=text)
                )
                return
            try:
                on_frame(frame, outcome)
            except ValidationError as e:
                outcome.set_exception(e)

        await self._mux.subscribe(Channel.TRADING, None, on_event, self.auth_token)
        try:
            for command in commands:
                await self._mux.session.send(command, self.auth_token)
            result = await asyncio.wait_for(asyncio.shield(outcome), self.order_timeout)
        except BaseException as e:
            if outcome.done() and not outcome.cancelled():
                outcome.exception()
            else:
                outcome.cancel()
            await self._mux.release(Channel.TRADING)
            if isinstance(e, asyncio.TimeoutError):
                raise RequestTimeout(
                    f"timed out after {self.order_timeout}s: {description}"
                ) from e
            raise

        await self._mux.unsubscribe(Channel.TRADING)
        return result
