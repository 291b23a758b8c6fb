"""Tests for the chat log and the in-memory view."""

from __future__ import annotations

import pytest

from funnyshell_client import notices
from funnyshell_client.renderer import TerminalRenderer
from funnyshell_client.view import BufferView, ChatEntry, ChatKind, ChatLog


class TestChatEntry:
    def test_system_entry(self):
        entry = ChatEntry.system("hi")
        assert entry.sender == notices.SYSTEM_SENDER
        assert entry.kind is ChatKind.SYSTEM

    def test_command_entry(self):
        entry = ChatEntry.command("💻 bob: ls")
        assert entry.sender == notices.COMMAND_SENDER
        assert entry.kind is ChatKind.INPUT

    def test_timestamp_is_aware(self):
        assert ChatEntry("bob", "hi").timestamp.tzinfo is not None


class TestChatLog:
    """Tests for ChatLog."""

    def test_evicts_oldest(self):
        """Test the oldest entry goes first once the log is full."""
        log = ChatLog(max_size=3)
        for i in range(5):
            log.append(ChatEntry("bob", str(i)))

        assert len(log) == 3
        assert [e.text for e in log.entries] == ["2", "3", "4"]
        assert [e.text for e in log.last(2)] == ["3", "4"]

    def test_clear(self):
        log = ChatLog()
        log.append(ChatEntry("bob", "x"))
        log.clear()
        assert len(log) == 0

    def test_rejects_empty_capacity(self):
        """Test a log that could hold nothing is refused up front."""
        with pytest.raises(ValueError):
            ChatLog(max_size=0)


class TestBufferView:
    """Tests for BufferView."""

    def test_status(self):
        view = BufferView()
        assert view.status_text == notices.STATUS_DISCONNECTED

        view.show_connection_status(True)
        assert view.connected is True
        assert view.status_text == notices.STATUS_CONNECTED

    def test_render_terminal_snapshots_rows(self):
        renderer = TerminalRenderer()
        renderer.feed("a\nb")
        view = BufferView()

        view.render_terminal(renderer)
        renderer.feed("\nc")

        assert [line.text for line in view.terminal_lines] == ["a", "b"]

    def test_chat_log_limit(self):
        view = BufferView(chat_log_limit=2)
        for text in ("1", "2", "3"):
            view.add_chat_entry(ChatEntry.system(text))
        assert [e.text for e in view.chat_log.entries] == ["2", "3"]

    def test_user_count(self):
        view = BufferView()
        view.update_user_count(4)
        assert view.user_count == 4
