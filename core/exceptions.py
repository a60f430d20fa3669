"""
Stream Exceptions

Typed errors raised by the streaming client. Everything derives from
StreamError so callers can catch the whole family at once.

Taxonomy:
    - ConnectError: dialing a pair failed (aborts the whole receive call)
    - DecodeError: a message on an open connection could not be decoded
    - TransportError: the connection dropped or was closed
    - AlreadyStartedError: receive() called while the manager is not idle
    - SubscriptionLockedError: add_subscription() called after reception began
    - ChannelClosedError: send or close on an already closed delivery channel
"""

from typing import Optional


class StreamError(Exception):
    """Base class for all stream client errors."""


class ConnectError(StreamError):
    """
    Raised when the WebSocket handshake for a pair fails.

    Attributes:
        pair: Trading pair that failed to connect
        cause: Underlying transport exception
    """

    def __init__(self, pair: str, cause: Optional[BaseException] = None):
        self.pair = pair
        self.cause = cause
        super().__init__(f"Failed to connect stream for {pair}: {cause}")


class DecodeError(StreamError):
    """
    Raised when a stream message is not a valid event payload.

    Attributes:
        pair: Trading pair of the connection that produced the message
        payload: Raw payload (truncated in the message, kept whole here)
    """

    def __init__(self, pair: str, payload: str, reason: str = ""):
        self.pair = pair
        self.payload = payload
        preview = payload[:100]
        suffix = f": {reason}" if reason else ""
        super().__init__(f"Malformed stream message for {pair} ({preview!r}){suffix}")


class TransportError(StreamError):
    """
    Raised when a stream connection is closed or errors while receiving.

    Attributes:
        pair: Trading pair of the failed connection
    """

    def __init__(self, pair: str, reason: str = "connection closed"):
        self.pair = pair
        super().__init__(f"Stream transport for {pair} failed: {reason}")


class AlreadyStartedError(StreamError):
    """Raised when receive() is called on a manager that is not idle."""

    def __init__(self, state: str):
        self.state = state
        super().__init__(f"Stream manager already started (state: {state})")


class SubscriptionLockedError(StreamError):
    """Raised when a subscription is registered after reception started."""

    def __init__(self, pair: str, state: str):
        self.pair = pair
        self.state = state
        super().__init__(
            f"Cannot subscribe to {pair}: subscriptions are fixed once reception starts (state: {state})"
        )


class ChannelClosedError(StreamError):
    """Raised on send to, or second close of, a closed delivery channel."""
