"""WebSocket client wrapper for FunnyShell."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import aiohttp
from aiohttp import WSMsgType
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.protocol import State

from ..errors import FunnyShellConnectionError
from .ws import connect_aiohttp_websocket, connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class FunnyShellWsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class FunnyShellWsMessage:
    """Normalized WebSocket message payload."""

    type: FunnyShellWsMessageType
    data: str | None = None


class FunnyShellWsClient:
    """Wrapper around a websockets (or aiohttp) connection.

    Both backends are normalized to text frames plus a terminal CLOSED or
    ERROR marker, so callers never see library-specific frame objects.
    """

    def __init__(self) -> None:
        self._ws: ClientConnection | aiohttp.ClientWebSocketResponse | None = None

    @property
    def is_open(self) -> bool:
        """Return True while frames can be sent."""
        if self._ws is None:
            return False
        if isinstance(self._ws, aiohttp.ClientWebSocketResponse):
            return not self._ws.closed
        return self._ws.state is State.OPEN

    async def connect(
        self,
        url: str,
        *,
        session: aiohttp.ClientSession | None = None,
        timeout: float = 15.0,
    ) -> None:
        """Connect to the server websocket.

        Args:
            url: Full endpoint URL including the ``username`` query
            session: Optional aiohttp session to connect through
            timeout: Connection timeout
        """
        if session is not None:
            self._ws = await connect_aiohttp_websocket(session, url, timeout=timeout)
        else:
            self._ws = await connect_websocket(url, timeout=timeout)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the websocket connection."""
        if self._ws is None:
            return
        if isinstance(self._ws, aiohttp.ClientWebSocketResponse):
            await self._ws.close(code=code, message=reason.encode())
        else:
            await self._ws.close(code=code, reason=reason)

    async def send_text(self, text: str) -> None:
        """Send a text frame.

        Raises:
            FunnyShellConnectionError: If not connected or the send fails
        """
        if self._ws is None:
            raise FunnyShellConnectionError("WebSocket is not connected")
        try:
            if isinstance(self._ws, aiohttp.ClientWebSocketResponse):
                await self._ws.send_str(text)
            else:
                await self._ws.send(text)
        except (ConnectionClosed, WebSocketException, ConnectionError) as err:
            raise FunnyShellConnectionError("WebSocket send failed") from err

    def __aiter__(self) -> AsyncIterator[FunnyShellWsMessage]:
        if self._ws is None:
            raise FunnyShellConnectionError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[FunnyShellWsMessage]:
        if self._ws is None:
            raise FunnyShellConnectionError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                normalized = self._normalize_message(msg)
                if normalized is None:
                    continue
                yield normalized
                if normalized.type is not FunnyShellWsMessageType.TEXT:
                    return
        except ConnectionClosed:
            yield FunnyShellWsMessage(type=FunnyShellWsMessageType.CLOSED)
        except Exception:
            yield FunnyShellWsMessage(type=FunnyShellWsMessageType.ERROR)
        else:
            # Normal iteration completion means the peer closed gracefully.
            yield FunnyShellWsMessage(type=FunnyShellWsMessageType.CLOSED)

    @staticmethod
    def _normalize_message(msg: Any) -> FunnyShellWsMessage | None:
        """Normalize backend-specific frames into FunnyShellWsMessage."""
        if isinstance(msg, bytes):
            return None
        if isinstance(msg, str):
            return FunnyShellWsMessage(FunnyShellWsMessageType.TEXT, msg)

        msg_type = getattr(msg, "type", None)
        if msg_type is None:
            return FunnyShellWsMessage(FunnyShellWsMessageType.TEXT, str(msg))

        normalized_type = FunnyShellWsClient._map_aiohttp_type(msg_type)
        if normalized_type is None:
            return None
        data = getattr(msg, "data", None)
        if normalized_type is FunnyShellWsMessageType.TEXT:
            return FunnyShellWsMessage(normalized_type, data)
        return FunnyShellWsMessage(normalized_type)

    @staticmethod
    def _map_aiohttp_type(msg_type: Any) -> FunnyShellWsMessageType | None:
        """Map aiohttp WSMsgType enums to internal message types."""
        if msg_type is WSMsgType.TEXT:
            return FunnyShellWsMessageType.TEXT

        if msg_type in {WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED}:
            return FunnyShellWsMessageType.CLOSED

        if msg_type is WSMsgType.ERROR:
            return FunnyShellWsMessageType.ERROR

        return None

