"""View layer interface and the bounded chat log.

The session calls into a SessionView to display results. Implementations can
draw to:
- A console (see ``funnyshell_client.cli``)
- An in-memory buffer (tests, embedding hosts)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from . import notices

if TYPE_CHECKING:
    from .renderer import DisplayLine, TerminalRenderer

DEFAULT_CHAT_LOG_LIMIT = 100


class ChatKind(Enum):
    """Origin of a chat log entry."""

    CHAT = "chat"
    SYSTEM = "system"
    INPUT = "input"


@dataclass(frozen=True)
class ChatEntry:
    """One chat log row."""

    sender: str
    text: str
    kind: ChatKind = ChatKind.CHAT
    timestamp: datetime = field(default_factory=lambda: datetime.now().astimezone())

    @classmethod
    def system(cls, text: str) -> ChatEntry:
        """Entry for a server or client status line."""
        return cls(notices.SYSTEM_SENDER, text, ChatKind.SYSTEM)

    @classmethod
    def command(cls, text: str) -> ChatEntry:
        """Entry announcing a participant's command."""
        return cls(notices.COMMAND_SENDER, text, ChatKind.INPUT)


class ChatLog:
    """Chat entries in a bounded buffer (FIFO eviction)."""

    def __init__(self, max_size: int = DEFAULT_CHAT_LOG_LIMIT) -> None:
        if max_size < 1:
            raise ValueError("max_size must be positive")
        self._entries: list[ChatEntry] = []
        self._max_size = max_size

    def append(self, entry: ChatEntry) -> None:
        """Add entry, evicting the oldest if full."""
        if len(self._entries) >= self._max_size:
            self._entries.pop(0)
        self._entries.append(entry)

    @property
    def entries(self) -> list[ChatEntry]:
        """Get all entries, oldest first."""
        return list(self._entries)

    def last(self, n: int = 1) -> list[ChatEntry]:
        """Get the last N entries."""
        return self._entries[-n:]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class SessionView(ABC):
    """Abstract presentation surface driven by the session.

    Methods must not block; they are called from the event loop.
    """

    @abstractmethod
    def render_terminal(self, renderer: TerminalRenderer) -> None:
        """Redraw the terminal after the scrollback changed."""

    @abstractmethod
    def add_chat_entry(self, entry: ChatEntry) -> None:
        """Show a chat, system or command entry."""

    @abstractmethod
    def show_connection_status(self, connected: bool) -> None:
        """Reflect connected/disconnected in the status indicator."""

    @abstractmethod
    def update_user_count(self, count: int) -> None:
        """Show the number of connected participants."""


class BufferView(SessionView):
    """In-memory view for tests and embedding hosts."""

    def __init__(self, chat_log_limit: int = DEFAULT_CHAT_LOG_LIMIT) -> None:
        self.chat_log = ChatLog(chat_log_limit)
        self.connected = False
        self.user_count: int | None = None
        self.terminal_lines: Sequence[DisplayLine] = ()
        self.status_text = notices.STATUS_DISCONNECTED

    def render_terminal(self, renderer: TerminalRenderer) -> None:
        self.terminal_lines = renderer.lines

    def add_chat_entry(self, entry: ChatEntry) -> None:
        self.chat_log.append(entry)

    def show_connection_status(self, connected: bool) -> None:
        self.connected = connected
        self.status_text = (
            notices.STATUS_CONNECTED if connected else notices.STATUS_DISCONNECTED
        )

    def update_user_count(self, count: int) -> None:
        self.user_count = count
