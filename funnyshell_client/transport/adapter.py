"""Duplex text-channel abstraction the session is written against.

A transport exposes fire-and-forget ``connect``/``send``/``close`` plus three
events (opened, message, closed). Results are only ever observed through
those events, never through return values.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Coroutine
from enum import Enum
from typing import Any

import aiohttp

from ..errors import FunnyShellClientError, FunnyShellConnectionError
from .ws_client import FunnyShellWsClient, FunnyShellWsMessageType

_LOGGER = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000


class ReadyState(Enum):
    """Transport readiness, mirroring the WebSocket API."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class TransportAdapter(ABC):
    """Abstract duplex text-message channel."""

    def __init__(self) -> None:
        self._opened_callback: Callable[[], None] | None = None
        self._message_callback: Callable[[str], None] | None = None
        self._closed_callback: Callable[[], None] | None = None

    def on_opened(self, callback: Callable[[], None]) -> None:
        """Register callback for a successfully opened channel."""
        self._opened_callback = callback

    def on_message(self, callback: Callable[[str], None]) -> None:
        """Register callback for inbound text frames."""
        self._message_callback = callback

    def on_closed(self, callback: Callable[[], None]) -> None:
        """Register callback for close or failure, before or after opening."""
        self._closed_callback = callback

    @property
    @abstractmethod
    def ready_state(self) -> ReadyState:
        """Current readiness."""

    @abstractmethod
    def connect(self, url: str) -> None:
        """Start connecting; completion is reported through the events."""

    @abstractmethod
    def send(self, text: str) -> None:
        """Queue a text frame.

        Raises:
            FunnyShellClientError: If the frame cannot be handed off.
        """

    @abstractmethod
    def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        """Request closure."""

    async def wait_closed(self) -> None:
        """Wait until background work for this transport has finished."""

    def _emit_opened(self) -> None:
        if self._opened_callback:
            self._opened_callback()

    def _emit_message(self, text: str) -> None:
        if self._message_callback:
            self._message_callback(text)

    def _emit_closed(self) -> None:
        if self._closed_callback:
            self._closed_callback()


class WebSocketTransport(TransportAdapter):
    """TransportAdapter backed by FunnyShellWsClient on the running loop."""

    def __init__(
        self,
        *,
        connect_timeout: float = 15.0,
        http_session: aiohttp.ClientSession | None = None,
    ) -> None:
        super().__init__()
        self._connect_timeout = connect_timeout
        self._http_session = http_session
        self._client = FunnyShellWsClient()
        self._state = ReadyState.CLOSED
        self._reader_task: asyncio.Task[None] | None = None
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def ready_state(self) -> ReadyState:
        if self._state is ReadyState.OPEN and not self._client.is_open:
            return ReadyState.CLOSED
        return self._state

    def connect(self, url: str) -> None:
        if self._reader_task is not None:
            raise FunnyShellConnectionError("Transport has already been used")
        self._state = ReadyState.CONNECTING
        self._reader_task = asyncio.create_task(self._run(url))
        self._reader_task.add_done_callback(self._on_reader_done)

    def send(self, text: str) -> None:
        if self.ready_state is not ReadyState.OPEN:
            raise FunnyShellConnectionError("WebSocket is not open")
        self._spawn(self._client.send_text(text))

    def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        if self._state in (ReadyState.CLOSING, ReadyState.CLOSED):
            return
        if self._state is ReadyState.CONNECTING:
            self._state = ReadyState.CLOSING
            if self._reader_task:
                self._reader_task.cancel()
            return
        self._state = ReadyState.CLOSING
        self._spawn(self._client.close(code=code, reason=reason))

    async def wait_closed(self) -> None:
        tasks = [*self._pending]
        if self._reader_task:
            tasks.append(self._reader_task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_reader_done(self, task: asyncio.Task[None]) -> None:
        # Covers a reader cancelled before _run got to reset the state.
        self._state = ReadyState.CLOSED

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            _LOGGER.warning("WebSocket operation failed: %s", err)

    async def _run(self, url: str) -> None:
        try:
            await self._client.connect(
                url,
                session=self._http_session,
                timeout=self._connect_timeout,
            )
        except FunnyShellClientError as err:
            _LOGGER.warning("Connection to %s failed: %s", url, err)
            self._state = ReadyState.CLOSED
            self._emit_closed()
            return
        except asyncio.CancelledError:
            self._state = ReadyState.CLOSED
            if self._client.is_open:
                self._spawn(self._client.close())
            raise

        if self._state is ReadyState.CLOSING:
            # close() raced the handshake
            await self._client.close()
            self._state = ReadyState.CLOSED
            return

        self._state = ReadyState.OPEN
        self._emit_opened()

        try:
            async for msg in self._client:
                if msg.type is FunnyShellWsMessageType.TEXT and msg.data is not None:
                    self._emit_message(msg.data)
                elif msg.type is FunnyShellWsMessageType.ERROR:
                    _LOGGER.warning("WebSocket error on %s", url)
        finally:
            self._state = ReadyState.CLOSED
            self._emit_closed()
