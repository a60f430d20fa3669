"""
Exchange Connectors Package

Each exchange has its own subfolder providing a per-pair StreamConnection
implementation and a dialer the StreamManager can use:
- zaif/ws_client.py: Zaif streaming WebSocket connection
"""
