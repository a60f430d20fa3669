"""
Configuration Management Module

This module handles loading, validating, and providing access to the stream
client configuration from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Validates stream endpoint and timing settings
- Converts the comma-separated pair string to a list
- Handles optional settings with sensible defaults

Usage:
    from core.config import settings

    print(settings.zaif_stream_url)
    print(settings.pairs_list)  # ["btc_jpy", "eth_jpy", ...]
"""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """
    Application Settings

    Values are automatically loaded from environment variables or .env file.

    Attributes:
        zaif_stream_url: Base URL of the Zaif streaming endpoint (pair is appended as a query)
        zaif_stream_origin: Origin header sent with the WebSocket handshake
        supported_pairs: Comma-separated trading pairs streamed by default
        ws_connect_timeout: Seconds allowed for the WebSocket handshake
        ws_heartbeat: Seconds between client pings (0 disables heartbeat)
        environment: Current environment (development, production)
        debug: Enable debug mode with verbose logging
        log_level: Logging level name
    """

    # ============================================
    # Zaif Stream Configuration
    # ============================================

    zaif_stream_url: str = Field(
        default="wss://ws.zaif.jp:8888/stream",
        description="Zaif streaming API endpoint"
    )

    zaif_stream_origin: str = Field(
        default="http://localhost",
        description="Origin header for the WebSocket handshake"
    )

    supported_pairs: str = Field(
        default="btc_jpy,eth_jpy,xem_jpy",
        description="Comma-separated list of trading pairs"
    )

    # ============================================
    # WebSocket Timing
    # ============================================

    ws_connect_timeout: float = Field(
        default=10.0,
        description="WebSocket handshake timeout in seconds"
    )

    ws_heartbeat: float = Field(
        default=30.0,
        description="Seconds between WebSocket pings (0 disables)"
    )

    # ============================================
    # Application Configuration
    # ============================================

    environment: str = Field(
        default="development",
        description="Application environment (development, production)"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )

    @property
    def pairs_list(self) -> List[str]:
        """
        Convert comma-separated pairs string to a list.

        Returns:
            List of lowercase pair identifiers (e.g., ["btc_jpy", "eth_jpy"])
        """
        return [p.strip().lower() for p in self.supported_pairs.split(",") if p.strip()]

    def stream_url_for(self, pair: str) -> str:
        """
        Build the per-pair stream URL.

        Example:
            >>> settings.stream_url_for("btc_jpy")
            'wss://ws.zaif.jp:8888/stream?currency_pair=btc_jpy'
        """
        return f"{self.zaif_stream_url}?currency_pair={pair}"


# ============================================
# Global Settings Instance
# ============================================

settings = Settings()


def validate_configuration() -> None:
    """
    Validate critical configuration settings on startup.

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    # logging.py imports config.py, so import lazily
    from core.logging import logger

    if not settings.pairs_list:
        raise ValueError("SUPPORTED_PAIRS must contain at least one pair")

    if not settings.zaif_stream_url.startswith(("ws://", "wss://")):
        raise ValueError(
            f"Invalid ZAIF_STREAM_URL: '{settings.zaif_stream_url}'. "
            f"Must start with ws:// or wss://"
        )

    if settings.ws_connect_timeout <= 0:
        raise ValueError(f"WS_CONNECT_TIMEOUT must be positive, got {settings.ws_connect_timeout}")

    if settings.ws_heartbeat < 0:
        raise ValueError(f"WS_HEARTBEAT cannot be negative, got {settings.ws_heartbeat}")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if settings.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{settings.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    logger.info("Configuration validated successfully")
    logger.info(f"Stream endpoint: {settings.zaif_stream_url}")
    logger.info(f"Default pairs: {', '.join(settings.pairs_list)}")
    logger.info(f"Log level: {settings.log_level.upper()}")
