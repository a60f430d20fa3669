"""
Stream Connection Interface

Abstract contract for one live stream connection bound to a single trading
pair. The stream manager only talks to connections through this interface,
so the Zaif WebSocket client and in-memory test doubles are interchangeable.

A dialer is any async callable that takes a pair and returns a connected
StreamConnection, raising ConnectError on failure:

    async def dial(pair: str) -> StreamConnection: ...
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from core.schemas import StreamEvent


class StreamConnection(ABC):
    """
    Abstract Base Class for per-pair stream connections.

    Attributes:
        pair: Trading pair this connection is bound to

    Abstract Methods:
        - receive_one: Wait for and decode exactly one message
        - close: Release the transport (idempotent)
        - closed: Whether close() has been called or the transport ended
    """

    pair: str

    @abstractmethod
    async def receive_one(self) -> StreamEvent:
        """
        Block until one message arrives and decode it.

        Returns:
            StreamEvent: The decoded message

        Raises:
            DecodeError: If the payload is malformed
            TransportError: If the connection closed or errored
        """

    @abstractmethod
    async def close(self) -> None:
        """
        Close the transport.

        Must be idempotent and safe to call from another task while
        receive_one() is waiting; the waiting call then raises TransportError.
        """

    @property
    @abstractmethod
    def closed(self) -> bool:
        """True once the connection can no longer deliver messages."""


Dialer = Callable[[str], Awaitable[StreamConnection]]
