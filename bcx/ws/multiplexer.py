"""Channel multiplexer: many logical subscriptions over one session.

Subscribe and unsubscribe are request/acknowledgement exchanges. The
acknowledgement is awaited through a one-shot waiter; data frames reach the
caller through the listener's routing callback.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import structlog

from bcx.exceptions import (
    BcxError,
    NotSubscribedError,
    RequestTimeout,
    SubscriptionRejected,
    UnsubscriptionRejected,
)
from bcx.models import Action, Channel, ChannelEvent
from bcx.ws.keys import SubscriptionKey
from bcx.ws.listeners import EventCallback, Listener, ListenerRegistry
from bcx.ws.session import WSSession
from bcx.ws.waiter import Frame

logger = structlog.get_logger(__name__)


class ChannelMultiplexer:
    """Subscribes callers to channels on a shared session."""

    def __init__(self, session: WSSession) -> None:
        self.session = session

    @property
    def listeners(self) -> ListenerRegistry:
        return self.session.listeners

    def is_subscribed(self, channel: Channel | str, params: Mapping[str, Any] | None = None) -> bool:
        return SubscriptionKey.of(channel, params) in self.listeners

    # ── Subscription management ───────────────────────────────────────

    async def subscribe(
        self,
        channel: Channel | str,
        params: Mapping[str, Any] | None,
        on_event: EventCallback,
        auth_token: str | None = None,
    ) -> None:
        """Subscribe and wait for the server to confirm.

        Raises DuplicateSubscriptionError before any I/O if the key is taken,
        SubscriptionRejected if the server refuses.
        """
        if not callable(on_event):
            raise TypeError("You must pass a valid listener to the subscription event")

        key = SubscriptionKey.of(channel, params)
        listener = Listener(key, on_event)
        self.listeners.add(listener)

        waiter = None
        try:
            await self.session.ensure_connection()
            if auth_token:
                await self.session.authenticate(auth_token)
            waiter = self.session.expect(
                key.acknowledges((ChannelEvent.SUBSCRIBED, ChannelEvent.REJECTED)),
                f"{key} subscription",
            )
            self.session.add_observer(listener.route)
            await self.session.send(key.request(Action.SUBSCRIBE))
            frame = await waiter.wait(self.session.ack_timeout)
        except BaseException:
            if waiter is not None:
                waiter.detach()
            self._detach(listener)
            raise

        if frame.get("event") == ChannelEvent.REJECTED:
            self._detach(listener)
            text = frame.get("text")
            logger.error("subscription_rejected", key=str(key), reason=text)
            raise SubscriptionRejected(
                f"Joining the channel {key} failed due to {text}", reason=text
            )

        logger.info("subscription_confirmed", key=str(key))

    async def unsubscribe(
        self,
        channel: Channel | str,
        params: Mapping[str, Any] | None = None,
    ) -> None:
        """Unsubscribe and wait for the server to confirm.

        The listener stops receiving frames before the request is sent. If the
        server rejects the request, or it cannot be completed, the listener is
        put back.
        """
        key = SubscriptionKey.of(channel, params)
        listener = self.listeners.get(key)
        if listener is None:
            raise NotSubscribedError(f"You are not subscribed to the channel {key}")

        if not self.session.connected:
            # Nothing to tell the server; the connection carrying it is gone.
            self._detach(listener)
            logger.info("unsubscribed_locally", key=str(key))
            return

        generation = self.session.generation
        self._detach(listener)
        waiter = self.session.expect(
            key.acknowledges((ChannelEvent.UNSUBSCRIBED, ChannelEvent.REJECTED)),
            f"{key} unsubscription",
        )
        try:
            await self.session.send(key.request(Action.UNSUBSCRIBE))
            frame = await waiter.wait(self.session.ack_timeout)
        except BaseException:
            waiter.detach()
            self._restore(listener, generation)
            raise

        if frame.get("event") == ChannelEvent.REJECTED:
            self._restore(listener, generation)
            text = frame.get("text")
            logger.error("unsubscription_rejected", key=str(key), reason=text)
            raise UnsubscriptionRejected(
                f"Unsubscribing from channel {key} failed: {text}", reason=text
            )

        logger.info("unsubscription_confirmed", key=str(key))

    async def snapshot(
        self,
        channel: Channel | str,
        params: Mapping[str, Any] | None = None,
        auth_token: str | None = None,
        timeout: float | None = None,
    ) -> Frame:
        """Subscribe, return the first snapshot, then unsubscribe."""
        loop = asyncio.get_running_loop()
        result: asyncio.Future[Frame] = loop.create_future()

        def on_event(frame: Frame) -> None:
            if frame.get("event") == ChannelEvent.SNAPSHOT and not result.done():
                result.set_result(frame)

        await self.subscribe(channel, params, on_event, auth_token)
        try:
            frame = await asyncio.wait_for(result, timeout)
        except BaseException as e:
            await self.release(channel, params)
            if isinstance(e, asyncio.TimeoutError):
                raise RequestTimeout(
                    f"timed out after {timeout}s waiting for a "
                    f"{SubscriptionKey.of(channel, params)} snapshot"
                ) from e
            raise

        await self.unsubscribe(channel, params)
        return frame

    async def release(self, channel: Channel | str, params: Mapping[str, Any] | None = None) -> None:
        """Best-effort unsubscribe used while another error is already propagating."""
        try:
            await self.unsubscribe(channel, params)
        except BcxError as e:
            logger.warning(
                "temporary_subscription_release_failed",
                key=str(SubscriptionKey.of(channel, params)),
                error=str(e),
            )

    # ── Registry helpers ──────────────────────────────────────────────

    def _detach(self, listener: Listener) -> None:
        self.listeners.discard(listener)
        self.session.remove_observer(listener.route)

    def _restore(self, listener: Listener, generation: int) -> None:
        if generation != self.session.generation or listener.key in self.listeners:
            return
        self.listeners.add(listener)
        self.session.add_observer(listener.route)
        logger.debug("listener_restored", key=str(listener.key))
