"""Transport layer for the FunnyShell client.

This package contains all IO and network handling.

Components:
- adapter: TransportAdapter abstraction and the WebSocket implementation
- ws: endpoint URL building and connection helpers
- ws_client: WebSocket message iteration
"""

from .adapter import NORMAL_CLOSURE, ReadyState, TransportAdapter, WebSocketTransport
from .ws import build_ws_url, connect_aiohttp_websocket, connect_websocket
from .ws_client import FunnyShellWsClient, FunnyShellWsMessage, FunnyShellWsMessageType

__all__ = [
    "NORMAL_CLOSURE",
    "FunnyShellWsClient",
    "FunnyShellWsMessage",
    "FunnyShellWsMessageType",
    "ReadyState",
    "TransportAdapter",
    "WebSocketTransport",
    "build_ws_url",
    "connect_aiohttp_websocket",
    "connect_websocket",
]
