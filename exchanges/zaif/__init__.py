"""
Zaif Exchange Connector

Streaming connectivity for Zaif:
- ws_client.py: per-pair WebSocket connection and the default dialer
"""

from exchanges.zaif.ws_client import ZaifStreamConnection, dial

__all__ = ["ZaifStreamConnection", "dial"]
