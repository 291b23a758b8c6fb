"""Timer scheduling for heartbeats and reconnect delays."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Protocol


class TimerHandle(Protocol):
    """Cancellable handle returned by a scheduler."""

    def cancel(self) -> None: ...


class Scheduler(ABC):
    """Abstract one-shot timer source.

    Recurring work re-arms itself from its callback, so at most one handle
    per concern is ever outstanding.
    """

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` after ``delay`` seconds."""


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)
