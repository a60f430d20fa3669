"""
Unified Logging Configuration

This module sets up a centralized logging system for the stream client.
All modules should import and use the logger from this module instead of
using print() statements.

Usage:
    from core.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Connected to btc_jpy")

Log Levels used by the stream client:
    DEBUG    - Per-message detail (e.g., "Delivered event for btc_jpy")
    INFO     - Connection lifecycle (e.g., "Connected to btc_jpy")
    WARNING  - Expected-but-notable conditions (e.g., transport closed mid-read)
    ERROR    - Failures that end a session (dial or decode errors)

Configuration:
    Log level is controlled by the LOG_LEVEL setting in .env file.
"""

import logging
import sys
from typing import Optional


def setup_logging(
    log_level: str = "INFO",
    log_format: Optional[str] = None,
    include_timestamp: bool = True,
    include_module: bool = True
) -> logging.Logger:
    """
    Configure and return the application logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom log format string (uses default if None)
        include_timestamp: Include timestamp in log messages
        include_module: Include module name in log messages

    Returns:
        logging.Logger: Configured logger instance

    Example:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Stream started")
        2024-01-01 12:00:00 [INFO] zaifstream: Stream started
    """
    if log_format is None:
        format_parts = []

        if include_timestamp:
            format_parts.append("%(asctime)s")

        format_parts.append("[%(levelname)s]")

        if include_module:
            format_parts.append("%(name)s:")

        format_parts.append("%(message)s")

        log_format = " ".join(format_parts)

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True
    )

    logger = logging.getLogger("zaifstream")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    return logger


# ============================================
# Initialize Logger with Settings
# ============================================

try:
    from core.config import settings
    log_level = settings.log_level
except ImportError:
    log_level = "INFO"

logger = setup_logging(log_level=log_level)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module or component.

    Args:
        name: Name for the logger (typically __name__)

    Returns:
        logging.Logger: Child of the "zaifstream" logger

    Example:
        >>> get_logger("core.stream_manager").name
        'zaifstream.core.stream_manager'
    """
    return logging.getLogger(f"zaifstream.{name}")


def set_log_level(level: str) -> None:
    """
    Change the log level at runtime.

    Args:
        level: New log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))


def log_websocket_event(pair: str, event: str, details: Optional[str] = None) -> None:
    """
    Log a WebSocket lifecycle event with consistent formatting.

    Args:
        pair: Trading pair the connection is bound to
        event: Event type (e.g., "connected", "closed", "error")
        details: Additional details (optional)

    Example:
        >>> log_websocket_event("btc_jpy", "connected")
        [INFO] WebSocket: zaif connected | Pair: btc_jpy

        >>> log_websocket_event("btc_jpy", "error", "Connection reset")
        [ERROR] WebSocket: zaif error | Pair: btc_jpy | Connection reset
    """
    details_str = f" | {details}" if details else ""
    level = logging.ERROR if event == "error" else logging.INFO
    logger.log(level, f"WebSocket: zaif {event} | Pair: {pair}{details_str}")


logger.debug("Logging system initialized")
