"""Terminal output renderer.

Turns raw shell output into a bounded scrollback of display rows. Only the
redraws a plain shell produces are honoured: line feeds start rows, and a
carriage return rewrites the current row (progress bars, spinners). Cursor
addressing, colors and scroll regions are stripped, not emulated.

The renderer is transport-agnostic and must be fed chunks in arrival order;
its only state is the row buffer and the open flag of the last row.
"""

from __future__ import annotations

import html
import re
from collections.abc import Sequence
from dataclasses import dataclass

DEFAULT_MAX_LINES = 1000
DEFAULT_EVICT_BLOCK = 100

EMPTY_ROW_HTML = "&nbsp;"

# Bracketed-paste toggles may arrive with their ESC already removed upstream.
_BRACKETED_PASTE_RE = re.compile(r"(?:\x1b)?\[?\?2004[hl]")
_CSI_RE = re.compile(r"\x1b\[[0-9;?]*[a-zA-Z]")
_OSC_RE = re.compile(r"\x1b\][0-9;]*[a-zA-Z]*")
_C0_RE = re.compile(r"[\x00-\x09\x0b\x0c\x0e-\x1f\x7f]")


def strip_control_sequences(text: str) -> str:
    """Remove escape sequences and C0 controls, keeping LF and CR."""
    text = _BRACKETED_PASTE_RE.sub("", text)
    text = _CSI_RE.sub("", text)
    text = _OSC_RE.sub("", text)
    return _C0_RE.sub("", text)


def _escape(text: str) -> str:
    return html.escape(text, quote=False)


@dataclass(slots=True)
class DisplayLine:
    """One scrollback row.

    Attributes:
        text: Markup-safe row content (may be empty).
        is_open: True while later output may still extend this row.
    """

    text: str = ""
    is_open: bool = True

    @property
    def html(self) -> str:
        """Row content as rendered; empty rows keep their height."""
        return self.text or EMPTY_ROW_HTML


class TerminalRenderer:
    """Stateful decoder from output chunks to display rows."""

    def __init__(
        self,
        *,
        max_lines: int = DEFAULT_MAX_LINES,
        evict_block: int = DEFAULT_EVICT_BLOCK,
    ) -> None:
        if evict_block < 1 or max_lines < evict_block:
            raise ValueError("max_lines must be at least evict_block, which must be positive")
        self._max_lines = max_lines
        self._evict_block = evict_block
        self._lines: list[DisplayLine] = []
        self._evicted = 0

    @property
    def lines(self) -> Sequence[DisplayLine]:
        """Current rows, oldest first."""
        return tuple(self._lines)

    @property
    def first_index(self) -> int:
        """Absolute index of the oldest retained row (rows evicted so far)."""
        return self._evicted

    def __len__(self) -> int:
        return len(self._lines)

    def clear(self) -> None:
        """Drop every row."""
        self._lines.clear()
        self._evicted = 0

    def feed(self, chunk: str) -> None:
        """Render one output chunk."""
        if not chunk:
            return

        text = strip_control_sequences(chunk).replace("\r\n", "\n")
        if not text:
            return

        segments = text.split("\r")
        if segments[0]:
            self._append(segments[0])

        last = len(segments) - 1
        for index in range(1, len(segments)):
            segment = segments[index]
            # An empty redraw only counts when nothing follows it.
            if segment or index == last:
                self._overwrite(segment)

        self._trim()

    def _append(self, segment: str) -> None:
        first, *rest = segment.split("\n")
        if self._lines and self._lines[-1].is_open:
            self._lines[-1].text += _escape(first)
        else:
            self._lines.append(DisplayLine(_escape(first)))
        self._new_rows(rest)

    def _overwrite(self, segment: str) -> None:
        first, *rest = segment.split("\n")
        if self._lines:
            row = self._lines[-1]
            row.text = _escape(first)
            row.is_open = True
        else:
            self._lines.append(DisplayLine(_escape(first)))
        self._new_rows(rest)

    def _new_rows(self, rows: list[str]) -> None:
        for row in rows:
            self._lines[-1].is_open = False
            self._lines.append(DisplayLine(_escape(row)))

    def _trim(self) -> None:
        while len(self._lines) > self._max_lines:
            del self._lines[: self._evict_block]
            self._evicted += self._evict_block
