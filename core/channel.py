"""
Delivery Channel

A per-subscription, single-producer/single-consumer queue of StreamEvents
with an explicit closed state. The caller creates the channel and hands it
to the stream manager; the manager's receive loop for that pair is the only
writer, and the manager closes it exactly once at teardown.

Consumers read until the channel reports end-of-stream, so everything sent
before close is still drained after close.

Usage:
    channel = DeliveryChannel()
    manager.add_subscription("btc_jpy", channel)

    async for event in channel:
        print(event.last_price.price)
    # loop ends once the manager has closed the channel
"""

import asyncio
from typing import AsyncIterator, Optional

from core.exceptions import ChannelClosedError
from core.schemas import StreamEvent


# End-of-stream marker queued on close
_CLOSED = object()


class DeliveryChannel:
    """
    Unbounded async queue of StreamEvents with close signalling.

    Attributes:
        name: Optional label used in repr and logs

    Notes:
        - send() never blocks, so the manager can deliver while holding its lock
        - send() and close() on a closed channel raise ChannelClosedError
    """

    def __init__(self, name: Optional[str] = None) -> None:
        self.name = name
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._drained = False

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"DeliveryChannel(name={self.name!r}, {state}, pending={self.pending})"

    @property
    def _label(self) -> str:
        return self.name or "<unnamed>"

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of events sent but not yet received."""
        size = self._queue.qsize()
        return size - 1 if self._closed and not self._drained else size

    def send(self, event: StreamEvent) -> None:
        """
        Enqueue one event.

        Raises:
            ChannelClosedError: If the channel is already closed
        """
        if self._closed:
            raise ChannelClosedError(f"send on closed channel {self._label}")
        self._queue.put_nowait(event)

    def close(self) -> None:
        """
        Close the channel. Events already queued remain readable.

        Raises:
            ChannelClosedError: If the channel was already closed
        """
        if self._closed:
            raise ChannelClosedError(f"close of closed channel {self._label}")
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def get(self) -> StreamEvent:
        """
        Wait for the next event.

        Raises:
            ChannelClosedError: Once the channel is closed and fully drained
        """
        if self._drained:
            raise ChannelClosedError(f"channel {self._label} is closed")

        item = await self._queue.get()
        if item is _CLOSED:
            self._drained = True
            raise ChannelClosedError(f"channel {self._label} is closed")
        return item

    def get_nowait(self) -> Optional[StreamEvent]:
        """Return the next queued event, or None if nothing is queued."""
        if self._drained or self._queue.empty():
            return None
        item = self._queue.get_nowait()
        if item is _CLOSED:
            self._drained = True
            return None
        return item

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[StreamEvent]:
        while True:
            try:
                yield await self.get()
            except ChannelClosedError:
                return
