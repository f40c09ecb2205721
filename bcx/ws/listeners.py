"""Listener records and the per-session registry that holds them."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from bcx.exceptions import DuplicateSubscriptionError
from bcx.ws.keys import SubscriptionKey

EventCallback = Callable[[dict[str, Any]], Any]


@dataclass(eq=False)
class Listener:
    """Binds a subscription key to the caller's event callback."""

    key: SubscriptionKey
    on_event: EventCallback

    def route(self, frame: dict[str, Any]) -> Any:
        """Frame-routing callback attached to the session while subscribed."""
        if self.key.matches(frame):
            return self.on_event(frame)
        return None


class ListenerRegistry:
    """Insertion-ordered listeners, at most one per key."""

    def __init__(self) -> None:
        self._listeners: dict[SubscriptionKey, Listener] = {}

    def add(self, listener: Listener) -> None:
        if listener.key in self._listeners:
            raise DuplicateSubscriptionError(
                f"You already have a listener set for channel {listener.key}"
            )
        self._listeners[listener.key] = listener

    def get(self, key: SubscriptionKey) -> Listener | None:
        return self._listeners.get(key)

    def discard(self, listener: Listener) -> bool:
        """Remove ``listener`` if it is still the one registered for its key."""
        if self._listeners.get(listener.key) is not listener:
            return False
        del self._listeners[listener.key]
        return True

    def clear(self) -> None:
        self._listeners.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._listeners

    def __iter__(self) -> Iterator[Listener]:
        return iter(list(self._listeners.values()))

    def __len__(self) -> int:
        return len(self._listeners)
