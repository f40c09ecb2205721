"""WebSocket session: the one physical connection and everything scoped to it.

A session lazily opens its transport, runs a single reader task that
dispatches inbound frames, performs the authentication handshake at most once
per connection, and holds the listener registry used by the multiplexer.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from typing import Any

import orjson
import structlog
import websockets

from bcx.exceptions import AuthenticationRejected, BcxConnectionError, TransportError
from bcx.models import Action, Channel, ChannelEvent
from bcx.ws.listeners import ListenerRegistry
from bcx.ws.transport import Connector, Transport
from bcx.ws.waiter import Frame, Predicate, Waiter

logger = structlog.get_logger(__name__)

Observer = Callable[[Frame], Any]


class WSSession:
    """
    Owns one connection, its authentication state and its listener registry.

    Every client wrapper that should share a connection must be handed the
    same session explicitly.
    """

    def __init__(
        self,
        connector: Connector,
        *,
        open_timeout: float | None = None,
        ack_timeout: float | None = 30.0,
    ) -> None:
        self._connector = connector
        self._open_timeout = open_timeout
        self.ack_timeout = ack_timeout

        self._ws: Transport | None = None
        self._reader: asyncio.Task | None = None
        self._connecting: asyncio.Task | None = None
        self._auth_inflight: asyncio.Task | None = None
        self._generation = 0

        self.authenticated = False
        self.listeners = ListenerRegistry()
        self._waiters: list[Waiter] = []
        self._observers: list[Observer] = []
        self._tasks: set[asyncio.Future] = set()

    @property
    def connected(self) -> bool:
        return self._ws is not None

    @property
    def generation(self) -> int:
        """Incremented by every flush; lets callers detect a reset across an await."""
        return self._generation

    # ── Connection lifecycle ──────────────────────────────────────────

    async def ensure_connection(self) -> Transport:
        """Return the live connection, opening it if needed.

        Concurrent callers share a single in-flight open.
        """
        if self._ws is not None:
            return self._ws
        if self._connecting is None:
            self._connecting = asyncio.create_task(self._open(self._generation))
        return await asyncio.shield(self._connecting)

    async def _open(self, generation: int) -> Transport:
        try:
            ws = await asyncio.wait_for(self._connector(), self._open_timeout)
        except asyncio.TimeoutError as e:
            raise BcxConnectionError("timed out opening the websocket") from e
        finally:
            if generation == self._generation:
                self._connecting = None

        if generation != self._generation:
            await ws.close()
            raise BcxConnectionError("session was flushed while connecting")

        self._ws = ws
        self._reader = asyncio.create_task(self._read_loop(ws))
        logger.info("session_connected", generation=generation)
        return ws

    def flush(self) -> None:
        """Drop the connection, listeners and authentication without telling the server.

        The dropped transport is aborted: no unsubscribe frames and no close
        handshake are sent, but its socket and keepalive do not outlive the
        session state.
        """
        ws = self._reset()
        if ws is not None:
            ws.abort()

    async def close(self) -> None:
        """Reset the session, then close the transport with a close handshake."""
        ws = self._reset()
        if ws is not None:
            await ws.close()
            logger.info("session_closed")

    def _reset(self) -> Transport | None:
        self._generation += 1
        ws = self._ws
        self._ws = None
        if self._reader is not None:
            self._reader.cancel()
            self._reader = None
        self._connecting = None
        self._auth_inflight = None
        self.authenticated = False
        self.listeners.clear()
        self._observers.clear()
        self._fail_waiters(BcxConnectionError("session was flushed"))
        logger.info("session_flushed", dropped_connection=ws is not None)
        return ws

    # ── Authentication ────────────────────────────────────────────────

    async def authenticate(self, token: str) -> None:
        """Authenticate the connection once. Concurrent callers share the handshake."""
        if self.authenticated:
            return
        if self._auth_inflight is None:
            self._auth_inflight = asyncio.create_task(self._authenticate(token))
        await asyncio.shield(self._auth_inflight)

    async def _authenticate(self, token: str) -> None:
        try:
            ws = await self.ensure_connection()
            waiter = self.expect(_is_auth_ack, "auth acknowledgement")
            try:
                await self._write(ws, {"action": Action.SUBSCRIBE, "channel": Channel.AUTH, "token": token})
                frame = await waiter.wait(self.ack_timeout)
            finally:
                waiter.detach()
        finally:
            if self._auth_inflight is asyncio.current_task():
                self._auth_inflight = None

        if frame.get("event") == ChannelEvent.REJECTED:
            text = frame.get("text")
            logger.error("authentication_rejected", reason=text)
            raise AuthenticationRejected(
                f"Authentication failed. Have you activated your API key? Server said: {text}",
                reason=text,
            )

        if self._ws is ws:
            self.authenticated = True
        logger.info("authenticated")

    # ── Sending ───────────────────────────────────────────────────────

    async def send(self, frame: dict[str, Any], auth_token: str | None = None) -> None:
        """Send a frame, authenticating first when a token is given."""
        ws = await self.ensure_connection()
        if auth_token:
            await self.authenticate(auth_token)
        await self._write(ws, frame)

    async def _write(self, ws: Transport, frame: dict[str, Any]) -> None:
        try:
            await ws.send(orjson.dumps(frame).decode())
        except (websockets.ConnectionClosed, OSError) as e:
            logger.error("send_failed", channel=frame.get("channel"), error=str(e))
            raise TransportError(f"Error when sending to channel {frame.get('channel')}: {e}") from e
        logger.debug("frame_sent", action=frame.get("action"), channel=frame.get("channel"))

    # ── Waiters and observers ─────────────────────────────────────────

    def expect(self, predicate: Predicate, description: str) -> Waiter:
        """Register a one-shot waiter for the first frame ``predicate`` accepts."""
        waiter = Waiter(predicate, description, self._detach_waiter)
        self._waiters.append(waiter)
        return waiter

    def _detach_waiter(self, waiter: Waiter) -> None:
        if waiter in self._waiters:
            self._waiters.remove(waiter)

    def _fail_waiters(self, exc: BaseException) -> None:
        for waiter in list(self._waiters):
            waiter.fail(exc)

    def add_observer(self, observer: Observer) -> None:
        self._observers.append(observer)

    def remove_observer(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    # ── Message processing ────────────────────────────────────────────

    async def _read_loop(self, ws: Transport) -> None:
        try:
            async for raw in ws:
                try:
                    frame = orjson.loads(raw)
                except orjson.JSONDecodeError:
                    logger.error("invalid_json", raw=raw[:200])
                    continue
                if not isinstance(frame, dict):
                    logger.debug("unexpected_frame", frame=frame)
                    continue
                self._dispatch(frame)
        except websockets.ConnectionClosed as e:
            logger.warning("websocket_disconnected", error=str(e))
        except OSError as e:
            logger.error("websocket_connection_error", error=str(e))
        except Exception:
            logger.exception("websocket_unexpected_error")
            ws.abort()
        finally:
            if self._ws is ws:
                self._ws = None
                self._reader = None
                self.authenticated = False
                self._fail_waiters(BcxConnectionError("connection closed"))
                logger.warning("session_connection_lost", listeners=len(self.listeners))

    def _dispatch(self, frame: Frame) -> None:
        """Offer ``frame`` to the waiters, then to every observer if no waiter took it."""
        for waiter in list(self._waiters):
            if waiter.offer(frame):
                return

        for observer in list(self._observers):
            if observer not in self._observers:
                continue
            try:
                result = observer(frame)
            except Exception:
                logger.exception(
                    "listener_error",
                    channel=frame.get("channel"),
                    channel_event=frame.get("event"),
                )
                continue
            if inspect.isawaitable(result):
                self._spawn(result, frame)

    def _spawn(self, awaitable: Any, frame: Frame) -> None:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)

        def _done(t: asyncio.Future) -> None:
            self._tasks.discard(t)
            if not t.cancelled() and t.exception() is not None:
                logger.error(
                    "listener_error",
                    channel=frame.get("channel"),
                    channel_event=frame.get("event"),
                    exc_info=t.exception(),
                )

        task.add_done_callback(_done)


def _is_auth_ack(frame: Frame) -> bool:
    return frame.get("channel") == Channel.AUTH and frame.get("event") in (
        ChannelEvent.SUBSCRIBED,
        ChannelEvent.REJECTED,
    )
