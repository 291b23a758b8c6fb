"""Pytest configuration and fixtures for funnyshell_client tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pytest

from funnyshell_client import BufferView, ClientConfig, ShellSession
from funnyshell_client.errors import FunnyShellConnectionError
from funnyshell_client.scheduler import Scheduler
from funnyshell_client.transport import ReadyState, TransportAdapter


@dataclass
class FakeTimer:
    """Timer created by FakeScheduler."""

    due: float
    delay: float
    callback: Callable[[], None]
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler(Scheduler):
    """Simulated clock; timers only fire when advance() passes their due time."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(due=self.now + delay, delay=delay, callback=callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[FakeTimer]:
        """Timers neither fired nor cancelled."""
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def active_with_delay(self, delay: float) -> list[FakeTimer]:
        return [t for t in self.active if t.delay == delay]

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in order."""
        target = self.now + seconds
        while True:
            due = [t for t in self.active if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.now = timer.due
            timer.fired = True
            timer.callback()
        self.now = target


class FakeTransport(TransportAdapter):
    """Transport driven by the test instead of a network."""

    def __init__(self) -> None:
        super().__init__()
        self.state = ReadyState.CLOSED
        self.url: str | None = None
        self.sent: list[str] = []
        self.closed_with: tuple[int, str] | None = None
        self.fail_send = False
        self.fail_connect = False

    @property
    def ready_state(self) -> ReadyState:
        return self.state

    def connect(self, url: str) -> None:
        if self.fail_connect:
            raise FunnyShellConnectionError("connect refused")
        self.url = url
        self.state = ReadyState.CONNECTING

    def send(self, text: str) -> None:
        if self.fail_send or self.state is not ReadyState.OPEN:
            raise FunnyShellConnectionError("WebSocket is not open")
        self.sent.append(text)

    def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed_with = (code, reason)
        self.state = ReadyState.CLOSED

    # Test drivers

    def open(self) -> None:
        self.state = ReadyState.OPEN
        self._emit_opened()

    def receive(self, payload: dict[str, Any] | str) -> None:
        text = payload if isinstance(payload, str) else json.dumps(payload)
        self._emit_message(text)

    def drop(self) -> None:
        self.state = ReadyState.CLOSED
        self._emit_closed()

    @property
    def sent_payloads(self) -> list[dict[str, Any]]:
        return [json.loads(frame) for frame in self.sent]


class TransportPool:
    """Transport factory that remembers every transport it created."""

    def __init__(self) -> None:
        self.created: list[FakeTransport] = []
        self.fail_connect = False

    def __call__(self) -> FakeTransport:
        transport = FakeTransport()
        transport.fail_connect = self.fail_connect
        self.created.append(transport)
        return transport

    @property
    def latest(self) -> FakeTransport:
        return self.created[-1]


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def transports() -> TransportPool:
    return TransportPool()


@pytest.fixture
def view() -> BufferView:
    return BufferView()


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(host="shell.test:8080", welcome_banner=False)


@pytest.fixture
def session(
    config: ClientConfig,
    view: BufferView,
    transports: TransportPool,
    scheduler: FakeScheduler,
) -> ShellSession:
    """Session wired to fake transports and the simulated clock."""
    return ShellSession(
        config,
        view=view,
        transport_factory=transports,
        scheduler=scheduler,
    )


@pytest.fixture
def connected_session(
    session: ShellSession, transports: TransportPool
) -> ShellSession:
    """Session that joined as alice and has an open transport."""
    assert session.join("alice")
    transports.latest.open()
    return session
