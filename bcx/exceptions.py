"""Error hierarchy raised by the session, multiplexer and trading layers."""

from __future__ import annotations


class BcxError(Exception):
    """Base class for every error raised by this package."""


class BcxConnectionError(BcxError):
    """The transport failed to open, dropped, or the session was flushed."""


class TransportError(BcxConnectionError):
    """Writing a frame to the transport failed."""


class RequestTimeout(BcxError):
    """No matching server event arrived before the configured timeout."""


class MissingCredentialsError(BcxError):
    """An authenticated operation was called without an API secret."""


class DuplicateSubscriptionError(BcxError):
    """A listener already exists for the channel and parameter set."""


class NotSubscribedError(BcxError):
    """No listener exists for the channel and parameter set."""


class AlreadySubscribedError(BcxError):
    """The trading channel already has a standing subscription."""


class TradingModeConflict(BcxError):
    """The operation needs the trading channel to be free of a standing subscription."""


class OrderNotFoundError(BcxError):
    """No open order matched the requested identifier."""


class ServerRejection(BcxError):
    """The server answered a request with a ``rejected`` event."""

    def __init__(self, message: str, reason: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason


class AuthenticationRejected(ServerRejection):
    pass


class SubscriptionRejected(ServerRejection):
    pass


class UnsubscriptionRejected(ServerRejection):
    pass


class OrderRejected(ServerRejection):
    pass
