"""Subscription keys and the frame-matching rule built on them."""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from bcx.models import Action, Channel, ChannelEvent


@dataclass(frozen=True)
class SubscriptionKey:
    """A channel plus its parameters as a sorted tuple of (name, value) pairs.

    Two keys built from the same parameters compare equal regardless of the
    order the parameters were given in.
    """

    channel: Channel
    params: tuple[tuple[str, Hashable], ...] = ()

    @classmethod
    def of(cls, channel: Channel | str, params: Mapping[str, Any] | None = None) -> SubscriptionKey:
        items = sorted((params or {}).items())
        for name, value in items:
            if not isinstance(value, Hashable):
                raise TypeError(f"subscription parameter {name!r} must be hashable")
        return cls(Channel(channel), tuple(items))

    def request(self, action: Action) -> dict[str, Any]:
        """The subscribe/unsubscribe frame for this key."""
        return {"action": action, "channel": self.channel, **dict(self.params)}

    def matches(self, frame: Mapping[str, Any]) -> bool:
        """True when ``frame`` belongs to this key.

        The channel must be equal. A parameter is only compared when the frame
        carries a field of the same name; untagged frames match every key on
        the channel.
        """
        if frame.get("channel") != self.channel.value:
            return False
        return all(frame[name] == value for name, value in self.params if name in frame)

    def acknowledges(self, events: Iterable[ChannelEvent]):
        """Predicate for the first frame of this key carrying one of ``events``."""
        wanted = {event.value for event in events}

        def predicate(frame: Mapping[str, Any]) -> bool:
            return frame.get("event") in wanted and self.matches(frame)

        return predicate

    def __str__(self) -> str:
        if not self.params:
            return self.channel.value
        args = ",".join(f"{name}={value}" for name, value in self.params)
        return f"{self.channel.value}[{args}]"
