"""Transport seam between the session and the physical WebSocket.

The session only needs ``send``, async iteration over inbound text frames and
``close``, plus ``abort`` to drop the socket without a close handshake. The
default connector wraps a ``websockets.asyncio.client.ClientConnection``.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Protocol

import websockets
import websockets.asyncio.client
import structlog

from bcx.config import ExchangeConfig, TuningConfig
from bcx.exceptions import BcxConnectionError

logger = structlog.get_logger(__name__)


class Transport(Protocol):
    async def send(self, message: str) -> None: ...

    def __aiter__(self) -> AsyncIterator[str | bytes]: ...

    async def close(self) -> None: ...

    def abort(self) -> None: ...


Connector = Callable[[], Awaitable[Transport]]


class WebsocketTransport:
    """Adapts a websockets client connection to the Transport protocol."""

    def __init__(self, connection: websockets.asyncio.client.ClientConnection) -> None:
        self._connection = connection

    async def send(self, message: str) -> None:
        await self._connection.send(message)

    def __aiter__(self) -> AsyncIterator[str | bytes]:
        return self._connection.__aiter__()

    async def close(self) -> None:
        await self._connection.close()

    def abort(self) -> None:
        if self._connection.transport is not None:
            self._connection.transport.abort()


class WebsocketConnector:
    """Opens a Mercury gateway connection with the ``websockets`` asyncio client."""

    def __init__(self, exchange: ExchangeConfig, tuning: TuningConfig) -> None:
        self._exchange = exchange
        self._tuning = tuning

    async def __call__(self) -> Transport:
        try:
            ws = await websockets.asyncio.client.connect(
                self._exchange.ws_url,
                origin=self._exchange.origin,
                open_timeout=self._tuning.open_timeout,
                ping_interval=self._tuning.ws_ping_interval,
                ping_timeout=self._tuning.ws_pong_timeout,
                max_size=self._tuning.ws_max_size,
            )
        except websockets.InvalidURI as e:
            raise BcxConnectionError(f"invalid websocket url {e.uri}") from e
        except websockets.InvalidHandshake as e:
            logger.error("websocket_handshake_failed", error=str(e))
            raise BcxConnectionError(f"websocket handshake failed: {e}") from e
        except (OSError, asyncio.TimeoutError) as e:
            logger.error("websocket_connection_error", error=str(e))
            raise BcxConnectionError(f"could not connect to {self._exchange.ws_url}: {e}") from e

        logger.info("websocket_connected", url=self._exchange.ws_url)
        return WebsocketTransport(ws)
