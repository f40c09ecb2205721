"""One-shot waiters: a future resolved by the first frame a predicate accepts."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from typing import Any

from bcx.exceptions import RequestTimeout

Frame = dict[str, Any]
Predicate = Callable[[Mapping[str, Any]], bool]


class Waiter:
    """Waits for a single frame.

    The session offers every inbound frame to its waiters in registration
    order; the first waiter whose predicate accepts the frame consumes it.
    ``on_detach`` is called exactly once, when the waiter resolves, fails or
    is cancelled.
    """

    def __init__(
        self,
        predicate: Predicate,
        description: str,
        on_detach: Callable[[Waiter], None],
    ) -> None:
        self.predicate = predicate
        self.description = description
        self._on_detach = on_detach
        self._future: asyncio.Future[Frame] = asyncio.get_running_loop().create_future()
        self._detached = False

    @property
    def done(self) -> bool:
        return self._future.done()

    def offer(self, frame: Frame) -> bool:
        """Resolve with ``frame`` if it matches. Returns True when consumed."""
        if self._future.done() or not self.predicate(frame):
            return False
        self._future.set_result(frame)
        self.detach()
        return True

    def fail(self, exc: BaseException) -> None:
        if not self._future.done():
            self._future.set_exception(exc)
        self.detach()

    def detach(self) -> None:
        if self._detached:
            return
        self._detached = True
        self._on_detach(self)

    async def wait(self, timeout: float | None = None) -> Frame:
        """Wait for the frame. The waiter is always detached on return."""
        try:
            return await asyncio.wait_for(self._future, timeout)
        except asyncio.TimeoutError as e:
            raise RequestTimeout(
                f"timed out after {timeout}s waiting for {self.description}"
            ) from e
        finally:
            self.detach()
            if not self._future.done():
                self._future.cancel()
