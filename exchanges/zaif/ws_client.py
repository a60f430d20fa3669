"""
Zaif WebSocket Client

This module provides the per-pair connection to the Zaif streaming API.
It handles:
- Opening one WebSocket per trading pair
- Receiving and decoding one message at a time into StreamEvent
- Closing the transport, including from another task mid-receive

There is deliberately no reconnection here: a dropped connection surfaces as
TransportError and the stream manager decides what happens next.

Endpoint:
    wss://ws.zaif.jp:8888/stream?currency_pair={pair}

Usage:
    async with ZaifStreamConnection("btc_jpy") as conn:
        event = await conn.receive_one()
        print(event.last_price.price)
"""

import asyncio
import json
from typing import Optional

import aiohttp
from pydantic import ValidationError

from core.config import settings
from core.exceptions import ConnectError, DecodeError, TransportError
from core.logging import get_logger, log_websocket_event
from core.schemas import StreamEvent
from core.stream_interface import StreamConnection


class ZaifStreamConnection(StreamConnection):
    """
    Async WebSocket connection to one Zaif stream.

    Attributes:
        pair: Trading pair (lowercase, e.g., "btc_jpy")
        url: Full stream URL for the pair
        origin: Origin header sent with the handshake
        connect_timeout: Handshake timeout in seconds
        heartbeat: Ping interval in seconds (None disables)
        session: aiohttp ClientSession owned by this connection
        ws: Active WebSocket response

    Example:
        >>> conn = ZaifStreamConnection("btc_jpy")
        >>> await conn.connect()
        >>> event = await conn.receive_one()
        >>> await conn.close()

    Notes:
        - Pair is lowercased (Zaif pair ids are lowercase)
        - Each connection owns its own session so closing one pair never
          affects another
    """

    def __init__(
        self,
        pair: str,
        base_url: Optional[str] = None,
        origin: Optional[str] = None,
        connect_timeout: Optional[float] = None,
        heartbeat: Optional[float] = None
    ):
        self.pair = pair.lower()
        base = base_url or settings.zaif_stream_url
        self.url = f"{base}?currency_pair={self.pair}"
        self.origin = origin or settings.zaif_stream_origin
        self.connect_timeout = connect_timeout or settings.ws_connect_timeout

        if heartbeat is None:
            heartbeat = settings.ws_heartbeat
        self.heartbeat = heartbeat or None

        self.session: Optional[aiohttp.ClientSession] = None
        self.ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._closed = False

        self.logger = get_logger(__name__)

    def __repr__(self) -> str:
        return f"ZaifStreamConnection(pair={self.pair!r}, closed={self.closed})"

    # ============================================
    # Context Manager
    # ============================================

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ============================================
    # Connection Management
    # ============================================

    @property
    def closed(self) -> bool:
        return self._closed or self.ws is None or self.ws.closed

    async def connect(self) -> None:
        """
        Open the WebSocket for this pair.

        Raises:
            ConnectError: If the handshake fails or times out, or the
                connection was already closed

        Notes:
            - On failure or cancellation the session is released before
              raising
        """
        if self._closed:
            raise ConnectError(self.pair, RuntimeError("connection already closed"))

        if self.ws is not None and not self.ws.closed:
            return

        self.logger.info(f"Connecting to {self.url}")
        self.session = aiohttp.ClientSession()

        try:
            self.ws = await asyncio.wait_for(
                self.session.ws_connect(
                    self.url,
                    origin=self.origin,
                    heartbeat=self.heartbeat
                ),
                timeout=self.connect_timeout
            )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            await self._release_session()
            log_websocket_event(self.pair, "error", f"connect failed: {e!r}")
            raise ConnectError(self.pair, e) from e
        except BaseException:
            # Cancelled or unexpected failure mid-handshake
            await self._release_session()
            raise

        log_websocket_event(self.pair, "connected")

    async def _release_session(self) -> None:
        session, self.session = self.session, None
        if session is not None and not session.closed:
            await session.close()

    async def close(self) -> None:
        """
        Close WebSocket and session.

        Notes:
            - Safe to call multiple times
            - A concurrent receive_one() observes the close as TransportError
        """
        already_closed = self._closed
        self._closed = True

        if self.ws is not None and not self.ws.closed:
            await self.ws.close()

        if self.session is not None and not self.session.closed:
            await self.session.close()

        if not already_closed:
            log_websocket_event(self.pair, "closed")

    # ============================================
    # Receiving
    # ============================================

    async def receive_one(self) -> StreamEvent:
        """
        Wait for the next data message and decode it.

        Returns:
            StreamEvent: Decoded message

        Raises:
            DecodeError: Payload is not a valid stream event
            TransportError: Connection closed, closing, or errored

        Message Types:
            - TEXT/BINARY: decoded and returned
            - CLOSE/CLOSING/CLOSED: TransportError
            - ERROR: TransportError carrying the socket exception
            - PING/PONG: skipped (aiohttp answers pings itself)
        """
        if self.ws is None:
            raise TransportError(self.pair, "not connected")

        while True:
            try:
                msg = await self.ws.receive()
            except (aiohttp.ClientError, RuntimeError, OSError) as e:
                raise TransportError(self.pair, repr(e)) from e

            if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                return self._decode(msg.data)

            if msg.type in (
                aiohttp.WSMsgType.CLOSE,
                aiohttp.WSMsgType.CLOSING,
                aiohttp.WSMsgType.CLOSED
            ):
                raise TransportError(self.pair, f"closed ({msg.type.name.lower()})")

            if msg.type == aiohttp.WSMsgType.ERROR:
                raise TransportError(self.pair, repr(self.ws.exception() or msg.data))

            self.logger.debug(f"Skipping {msg.type.name} frame for {self.pair}")

    def _decode(self, data) -> StreamEvent:
        try:
            event = StreamEvent.from_message(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(self.pair, _as_text(data), f"invalid JSON: {e}") from e
        except ValidationError as e:
            raise DecodeError(self.pair, _as_text(data), f"{e.error_count()} validation error(s)") from e

        self.logger.debug(f"Received event for {self.pair} (ts={event.timestamp})")
        return event


def _as_text(data) -> str:
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return str(data)


async def dial(pair: str) -> ZaifStreamConnection:
    """
    Open a connected stream for a pair using the configured endpoint.

    This is the stream manager's default dialer.

    Raises:
        ConnectError: If the handshake fails
    """
    connection = ZaifStreamConnection(pair)
    await connection.connect()
    return connection
