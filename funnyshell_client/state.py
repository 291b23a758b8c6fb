"""Connection state machine.

``transition`` is a pure function over (state, attempts, event). It never
touches a transport or a timer; it only names the effects the session must
carry out, in the order they must happen.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

MAX_RECONNECT_ATTEMPTS = 5


class ConnectionState(Enum):
    """Lifecycle of one session's connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


class ConnectionEvent(Enum):
    """Inputs to the state machine."""

    JOIN = "join"
    OPENED = "opened"
    CLOSED = "closed"
    HEARTBEAT_FAILED = "heartbeat_failed"
    TRANSPORT_STALE = "transport_stale"
    RECONNECT_DUE = "reconnect_due"
    RETRY = "retry"
    SHUTDOWN = "shutdown"


class Effect(Enum):
    """Side effects requested by a transition."""

    OPEN_TRANSPORT = "open_transport"
    CLOSE_TRANSPORT = "close_transport"
    START_HEARTBEAT = "start_heartbeat"
    STOP_HEARTBEAT = "stop_heartbeat"
    SCHEDULE_RECONNECT = "schedule_reconnect"
    CANCEL_RECONNECT = "cancel_reconnect"
    NOTIFY_CONNECTED = "notify_connected"
    NOTIFY_DISCONNECTED = "notify_disconnected"
    NOTIFY_RECONNECTING = "notify_reconnecting"
    NOTIFY_FAILED = "notify_failed"


@dataclass(frozen=True, slots=True)
class Transition:
    """Result of feeding one event to the state machine."""

    state: ConnectionState
    attempts: int
    effects: tuple[Effect, ...] = ()


_LOSS_EVENTS = frozenset(
    {
        ConnectionEvent.CLOSED,
        ConnectionEvent.HEARTBEAT_FAILED,
        ConnectionEvent.TRANSPORT_STALE,
    }
)


def _after_loss(
    attempts: int, max_attempts: int, effects: tuple[Effect, ...]
) -> Transition:
    if attempts < max_attempts:
        return Transition(
            ConnectionState.RECONNECTING,
            attempts + 1,
            (*effects, Effect.NOTIFY_RECONNECTING, Effect.SCHEDULE_RECONNECT),
        )
    return Transition(ConnectionState.FAILED, attempts, (*effects, Effect.NOTIFY_FAILED))


def transition(
    state: ConnectionState,
    attempts: int,
    event: ConnectionEvent,
    *,
    max_attempts: int = MAX_RECONNECT_ATTEMPTS,
) -> Transition:
    """Compute the next state, attempt counter and effects.

    Pairs not listed below leave the state untouched and request nothing.

    Args:
        state: Current connection state.
        attempts: Reconnect attempts since the last successful connection.
        event: Event to apply.
        max_attempts: Automatic reconnect attempts allowed before FAILED.
    """
    if event is ConnectionEvent.SHUTDOWN:
        # Heartbeat must stop before the close is requested.
        return Transition(
            ConnectionState.DISCONNECTED,
            attempts,
            (Effect.STOP_HEARTBEAT, Effect.CANCEL_RECONNECT, Effect.CLOSE_TRANSPORT),
        )

    if state is ConnectionState.DISCONNECTED and event is ConnectionEvent.JOIN:
        return Transition(ConnectionState.CONNECTING, 0, (Effect.OPEN_TRANSPORT,))

    if state is ConnectionState.FAILED and event is ConnectionEvent.RETRY:
        return Transition(ConnectionState.CONNECTING, 0, (Effect.OPEN_TRANSPORT,))

    if state is ConnectionState.CONNECTING:
        if event is ConnectionEvent.OPENED:
            return Transition(
                ConnectionState.CONNECTED,
                0,
                (Effect.START_HEARTBEAT, Effect.NOTIFY_CONNECTED),
            )
        if event is ConnectionEvent.CLOSED:
            return _after_loss(attempts, max_attempts, ())

    if state is ConnectionState.CONNECTED and event in _LOSS_EVENTS:
        if event is ConnectionEvent.CLOSED:
            effects: tuple[Effect, ...] = (
                Effect.STOP_HEARTBEAT,
                Effect.NOTIFY_DISCONNECTED,
            )
        else:
            effects = (
                Effect.STOP_HEARTBEAT,
                Effect.CLOSE_TRANSPORT,
                Effect.NOTIFY_DISCONNECTED,
            )
        return _after_loss(attempts, max_attempts, effects)

    if state is ConnectionState.RECONNECTING and event is ConnectionEvent.RECONNECT_DUE:
        return Transition(ConnectionState.CONNECTING, attempts, (Effect.OPEN_TRANSPORT,))

    return Transition(state, attempts)
