#!/usr/bin/env python3
"""
Command-line streamer for Zaif market events.

Subscribes to one or more trading pairs and prints each event as it arrives
until interrupted, until --duration elapses, or until a connection fails.

Usage examples:
  zaif-stream
  zaif-stream btc_jpy eth_jpy --duration 60
  zaif-stream btc_jpy --json
"""

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

from core.channel import DeliveryChannel
from core.config import settings, validate_configuration
from core.exceptions import StreamError
from core.logging import get_logger, set_log_level
from core.schemas import StreamEvent
from core.stream_manager import StreamManager

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Stream Zaif market events for the given pairs.")
    p.add_argument("pairs", nargs="*", help="Trading pairs (default: SUPPORTED_PAIRS from settings)")
    p.add_argument("--duration", type=float, default=0, help="Seconds to run (0 = run until interrupted)")
    p.add_argument("--json", action="store_true", help="Print raw event JSON instead of a summary line")
    p.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    return p.parse_args(argv)


def format_event(event: StreamEvent) -> str:
    """One-line summary: pair, last price, top of book, trade count."""
    ask = f"{event.best_ask[0]:g}x{event.best_ask[1]:g}" if event.best_ask else "-"
    bid = f"{event.best_bid[0]:g}x{event.best_bid[1]:g}" if event.best_bid else "-"
    last = f"{event.last_price.price:g} ({event.last_price.action or '?'})"
    return (
        f"[{event.currency_pair}] {event.timestamp} last={last} "
        f"ask={ask} bid={bid} trades={len(event.trades)}"
    )


async def print_events(channel: DeliveryChannel, as_json: bool) -> int:
    count = 0
    async for event in channel:
        count += 1
        print(event.model_dump_json() if as_json else format_event(event))
    return count


async def run(pairs: List[str], duration: float = 0, as_json: bool = False) -> int:
    """
    Stream the given pairs until stopped.

    Returns:
        Process exit code (0 on a clean stop, 1 if the session failed)
    """
    manager = StreamManager()
    # one channel per distinct pair; a repeated pair would replace its channel
    pairs = list(dict.fromkeys(pair.lower() for pair in pairs))
    channels = [DeliveryChannel(pair) for pair in pairs]
    for channel in channels:
        await manager.add_subscription(channel.name, channel)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    handled = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
            handled.append(sig)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Signal handler for {sig.name} unavailable on this event loop")

    if duration > 0:
        loop.call_later(duration, stop.set)

    printers = [asyncio.create_task(print_events(ch, as_json)) for ch in channels]
    exit_code = 0

    try:
        await manager.receive(stop)
    except StreamError as e:
        logger.error(f"Stream session failed: {e}")
        exit_code = 1
    finally:
        for sig in handled:
            loop.remove_signal_handler(sig)
        counts = await asyncio.gather(*printers)
        for channel, count in zip(channels, counts):
            logger.info(f"{channel.name}: {count} event(s)")

    return exit_code


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    if args.log_level:
        set_log_level(args.log_level)

    validate_configuration()
    pairs = [p.lower() for p in args.pairs] or settings.pairs_list

    try:
        code = asyncio.run(run(pairs, args.duration, args.json))
    except KeyboardInterrupt:
        print("\n[Info] Interrupted. Bye.")
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
