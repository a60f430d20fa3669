"""
Stream Manager: Per-Pair Subscription Fan-Out

This module owns the streaming session: one WebSocket connection per
subscribed trading pair, one receive loop per connection, and coordinated
teardown of every connection and delivery channel.

Lifecycle:
    idle ──receive()──▶ connecting ──▶ receiving ──stop/close/error──▶ closed
      └──────────────────────close()─────────────────────────────────▶ closed

    reset() returns a closed manager to idle with an empty registry.

Session Rules:
    - Subscriptions are registered while idle and are fixed once receive()
      starts; registering later raises SubscriptionLockedError
    - Dialing is fail-fast: one pair failing to connect closes every
      connection opened so far and every registered channel, then raises
    - The first runtime error on any connection stops the whole session and
      is what receive() raises
    - Errors caused by teardown itself (closing a socket mid-read after a stop
      was requested) are expected and never reported
    - Every delivery channel is closed exactly once, and never while a
      receive loop could still write to it

Concurrency:
    All tasks run on one event loop. A single asyncio.Lock guards the
    registry, the connection set and the state; deliveries happen under the
    same lock so close() can never interleave with a send.

Example Usage:
    manager = StreamManager()
    btc = DeliveryChannel("btc_jpy")
    await manager.add_subscription("btc_jpy", btc)

    stop = asyncio.Event()
    receiving = asyncio.create_task(manager.receive(stop))

    async for event in btc:
        print(event.last_price.price)
        if done:
            stop.set()

    await receiving  # raises the session error, if any
"""

import asyncio
from enum import Enum
from typing import Callable, Dict, List, Optional

from core.channel import DeliveryChannel
from core.exceptions import (
    AlreadyStartedError,
    ChannelClosedError,
    ConnectError,
    SubscriptionLockedError,
)
from core.logging import get_logger
from core.stream_interface import Dialer, StreamConnection


class ManagerState(str, Enum):
    """Lifecycle state of a StreamManager."""

    IDLE = "idle"
    CONNECTING = "connecting"
    RECEIVING = "receiving"
    CLOSED = "closed"


class StreamManager:
    """
    Orchestrates per-pair stream connections and fans events into channels.

    Attributes:
        state: Current ManagerState

    Args:
        dialer: Async callable opening a StreamConnection for a pair.
                Defaults to the Zaif WebSocket dialer.

    Example:
        >>> manager = StreamManager()
        >>> await manager.add_subscription("btc_jpy", DeliveryChannel())
        >>> await manager.receive(stop_event)
    """

    def __init__(self, dialer: Optional[Dialer] = None):
        if dialer is None:
            # exchanges imports from core, so resolve the default lazily
            from exchanges.zaif.ws_client import dial
            dialer = dial

        self._dialer = dialer
        self._subscriptions: Dict[str, DeliveryChannel] = {}
        self._connections: Dict[str, StreamConnection] = {}
        self._state = ManagerState.IDLE
        self._lock = asyncio.Lock()

        # Per-session
        self._stop: Optional[asyncio.Event] = None
        self._error: Optional[BaseException] = None
        self._in_receive = False

        self.logger = get_logger(__name__)

    # ============================================
    # Introspection
    # ============================================

    @property
    def state(self) -> ManagerState:
        return self._state

    @property
    def is_receiving(self) -> bool:
        return self._state is ManagerState.RECEIVING

    @property
    def subscriptions(self) -> List[str]:
        """Registered pairs, in registration order."""
        return list(self._subscriptions)

    @property
    def connected_pairs(self) -> List[str]:
        """Pairs with a live connection in the current session."""
        return list(self._connections)

    # ============================================
    # Subscription Registry
    # ============================================

    async def add_subscription(self, pair: str, channel: DeliveryChannel) -> None:
        """
        Register (or replace) the delivery channel for a pair.

        The pair is not dialed or validated here; that happens in receive().
        Pair ids are lowercased, so "BTC_JPY" and "btc_jpy" share one entry.

        Args:
            pair: Trading pair id (e.g., "btc_jpy")
            channel: Caller-owned channel; the manager closes it at teardown

        Raises:
            SubscriptionLockedError: If the manager is not idle
        """
        pair = pair.lower()

        async with self._lock:
            if self._state is not ManagerState.IDLE:
                raise SubscriptionLockedError(pair, self._state.value)

            if pair in self._subscriptions:
                self.logger.debug(f"Replacing delivery channel for {pair}")
            self._subscriptions[pair] = channel

        self.logger.debug(f"Subscribed to {pair} (total={len(self._subscriptions)})")

    # ============================================
    # Reception
    # ============================================

    async def receive(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """
        Connect every subscription and stream until stopped.

        Blocks until the session ends. The session ends when stop_event is
        set, when close() is called, when the task running receive() is
        cancelled, or when any connection fails.

        Args:
            stop_event: Optional external cancellation signal

        Raises:
            AlreadyStartedError: If the manager is not idle
            ConnectError: If any pair fails to connect (nothing is left open)
            DecodeError: If a connection received a malformed message
            TransportError: If a connection dropped while no stop was pending
            ChannelClosedError: If a subscribed channel was closed by its owner
                while the session was still delivering to it

        Notes:
            - With no subscriptions the call simply waits for a stop
            - All channels are closed by the time this returns or raises
        """
        async with self._lock:
            if self._state is not ManagerState.IDLE:
                raise AlreadyStartedError(self._state.value)

            self._state = ManagerState.CONNECTING
            self._stop = stop = asyncio.Event()
            self._error = None
            self._in_receive = True

            try:
                await self._dial_all()
            except BaseException:
                await self._close_connections()
                self._close_channels()
                self._state = ManagerState.CLOSED
                self._in_receive = False
                raise

            self._state = ManagerState.RECEIVING
            routes = [
                (pair, connection, self._subscriptions[pair])
                for pair, connection in self._connections.items()
            ]

        self.logger.info(f"Receiving {len(routes)} stream(s): {', '.join(p for p, _, _ in routes)}")

        def stopping() -> bool:
            return stop.is_set() or (stop_event is not None and stop_event.is_set())

        tasks = [
            asyncio.create_task(
                self._receive_loop(pair, connection, channel, stop, stopping),
                name=f"stream-receive-{pair}"
            )
            for pair, connection, channel in routes
        ]
        tasks.append(
            asyncio.create_task(self._teardown(stop, stop_event), name="stream-teardown")
        )

        try:
            await asyncio.wait(tasks)
        finally:
            # Only reached with tasks pending if receive() itself was cancelled
            stop.set()
            results = await asyncio.gather(*tasks, return_exceptions=True)
            await self._finish_session(stop)

        for result in results:
            if isinstance(result, Exception) and self._error is None:
                self._error = result

        if self._error is not None:
            raise self._error

        self.logger.info("Stream session stopped")

    async def _dial_all(self) -> None:
        for pair in self._subscriptions:
            try:
                connection = await self._dialer(pair)
            except ConnectError as e:
                self.logger.error(f"Dial failed for {pair}, aborting session: {e}")
                raise
            except Exception as e:
                self.logger.error(f"Dial failed for {pair}, aborting session: {e!r}")
                raise ConnectError(pair, e) from e

            self._connections[pair] = connection
            self.logger.debug(f"Dialed {pair}")

    async def _receive_loop(
        self,
        pair: str,
        connection: StreamConnection,
        channel: DeliveryChannel,
        stop: asyncio.Event,
        stopping: Callable[[], bool]
    ) -> None:
        while not stopping():
            try:
                event = await connection.receive_one()
            except Exception as e:
                if stopping():
                    self.logger.debug(f"Receive loop for {pair} ended by teardown: {e}")
                    return
                self.logger.error(f"Receive loop for {pair} failed: {e}")
                if self._error is None:
                    self._error = e
                stop.set()
                return

            async with self._lock:
                if stopping() or self._state is not ManagerState.RECEIVING:
                    self.logger.debug(f"Dropping event for {pair}: session stopping")
                    continue
                try:
                    channel.send(event)
                except ChannelClosedError as e:
                    self.logger.error(f"Delivery for {pair} failed: {e}")
                    if self._error is None:
                        self._error = e
                    stop.set()
                    return

        self.logger.debug(f"Receive loop for {pair} stopped")

    async def _teardown(self, stop: asyncio.Event, stop_event: Optional[asyncio.Event]) -> None:
        if stop_event is None:
            await stop.wait()
        else:
            waiters = [
                asyncio.ensure_future(stop.wait()),
                asyncio.ensure_future(stop_event.wait())
            ]
            _, pending = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
            for waiter in pending:
                waiter.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            stop.set()

        async with self._lock:
            await self._close_connections()

    async def _finish_session(self, stop: asyncio.Event) -> None:
        async with self._lock:
            if self._stop is not stop:
                return
            await self._close_connections()
            self._close_channels()
            self._state = ManagerState.CLOSED
            self._in_receive = False

    # ============================================
    # Shutdown
    # ============================================

    async def close(self) -> None:
        """
        Stop the session and release every connection and channel.

        Idempotent. Safe to call while receive() is running; receive() then
        returns without error unless a real failure happened first.
        """
        async with self._lock:
            if self._stop is not None:
                self._stop.set()

            await self._close_connections()
            self._close_channels()

            if self._state is not ManagerState.CLOSED:
                self.logger.info(f"Stream manager closed (was {self._state.value})")
            self._state = ManagerState.CLOSED

    async def reset(self) -> None:
        """
        Return a closed manager to idle with an empty registry.

        Subscriptions must be registered again before the next receive().

        Raises:
            AlreadyStartedError: If a session is still connecting or receiving
        """
        async with self._lock:
            if self._in_receive or self._state in (ManagerState.CONNECTING, ManagerState.RECEIVING):
                raise AlreadyStartedError(self._state.value)

            self._subscriptions = {}
            self._connections = {}
            self._stop = None
            self._error = None
            self._state = ManagerState.IDLE

    # ============================================
    # Helpers (lock must be held)
    # ============================================

    async def _close_connections(self) -> None:
        connections = list(self._connections.items())
        self._connections.clear()

        # Closed concurrently; each close may wait for the peer's close frame
        results = await asyncio.gather(
            *(connection.close() for _, connection in connections),
            return_exceptions=True
        )
        for (pair, _), result in zip(connections, results):
            if isinstance(result, Exception):
                self.logger.warning(f"Error closing stream for {pair}: {result!r}")

    def _close_channels(self) -> None:
        for pair, channel in self._subscriptions.items():
            if not channel.closed:
                channel.close()
                self.logger.debug(f"Closed delivery channel for {pair}")
