"""WebSocket helpers for the FunnyShell endpoint."""

from __future__ import annotations

import asyncio
from urllib.parse import quote

import aiohttp
import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from ..errors import (
    FunnyShellConnectionError,
    FunnyShellHandshakeError,
    FunnyShellTimeout,
)

DEFAULT_PATH = "/ws"


def build_ws_url(
    host: str,
    display_name: str,
    *,
    secure: bool = False,
    path: str = DEFAULT_PATH,
) -> str:
    """Build the upgrade URL carrying the display name as a query parameter.

    Args:
        host: Server host, optionally with ``:port``
        display_name: Participant name, percent-encoded into ``username``
        secure: Use ``wss`` instead of ``ws``
        path: WebSocket path (default: /ws)
    """
    scheme = "wss" if secure else "ws"
    return f"{scheme}://{host}{path}?username={quote(display_name, safe='')}"


async def connect_websocket(
    url: str,
    *,
    ping_interval: float | None = None,
    timeout: float = 15.0,
) -> ClientConnection:
    """Connect to a WebSocket endpoint with the websockets library.

    Protocol-level pings are off by default; the session sends its own
    application heartbeat.

    Args:
        url: Full ``ws://`` or ``wss://`` URL
        ping_interval: Interval for protocol ping frames, None to disable
        timeout: Connection timeout
    """
    try:
        return await asyncio.wait_for(
            websockets.connect(
                url,
                ping_interval=ping_interval,
                close_timeout=5,
                max_size=None,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise FunnyShellTimeout("WebSocket connection timed out") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise FunnyShellHandshakeError("WebSocket handshake failed") from err
    except (OSError, WebSocketException) as err:
        raise FunnyShellConnectionError("WebSocket connection failed") from err


async def connect_aiohttp_websocket(
    session: aiohttp.ClientSession,
    url: str,
    *,
    heartbeat: float | None = None,
    timeout: float = 15.0,
) -> aiohttp.ClientWebSocketResponse:
    """Connect through an existing aiohttp session.

    Hosts that already own an ``aiohttp.ClientSession`` (proxies, cookies,
    TLS settings) can reuse it instead of opening a second stack.
    """
    try:
        return await asyncio.wait_for(
            session.ws_connect(url, heartbeat=heartbeat, max_msg_size=0),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise FunnyShellTimeout("WebSocket connection timed out") from err
    except aiohttp.WSServerHandshakeError as err:
        raise FunnyShellHandshakeError("WebSocket handshake failed") from err
    except (OSError, aiohttp.ClientError) as err:
        raise FunnyShellConnectionError("WebSocket connection failed") from err
