"""Session manager for a shared FunnyShell terminal.

This module provides the API a front end uses to take part in a shared
shell. It handles:
- Display name validation
- Connection lifecycle and the reconnect policy
- Application heartbeat
- Routing inbound frames to the renderer and the view
- Outbound commands and chat

The transitions themselves live in ``state.transition``; this class only
carries out the effects it returns.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from . import notices
from .config import MAX_DISPLAY_NAME_LENGTH, ClientConfig
from .errors import (
    FunnyShellClientError,
    FunnyShellProtocolError,
    InvalidDisplayNameError,
)
from .protocol import (
    ChatMessage,
    ChatNotice,
    InputEchoMessage,
    InputMessage,
    OutputMessage,
    PingMessage,
    SystemNotice,
    decode_message,
    encode_frame,
    parse_user_count,
)
from .renderer import TerminalRenderer
from .scheduler import AsyncioScheduler, Scheduler, TimerHandle
from .state import ConnectionEvent, ConnectionState, Effect, transition
from .transport.adapter import (
    NORMAL_CLOSURE,
    ReadyState,
    TransportAdapter,
    WebSocketTransport,
)
from .view import BufferView, ChatEntry, SessionView

_LOGGER = logging.getLogger(__name__)

TransportFactory = Callable[[], TransportAdapter]


def validate_display_name(display_name: str) -> str:
    """Return the trimmed display name.

    Raises:
        InvalidDisplayNameError: If the name is empty after trimming or
            longer than MAX_DISPLAY_NAME_LENGTH characters.
    """
    name = display_name.strip()
    if not name:
        raise InvalidDisplayNameError(notices.NAME_REQUIRED)
    if len(name) > MAX_DISPLAY_NAME_LENGTH:
        raise InvalidDisplayNameError(
            notices.NAME_TOO_LONG.format(limit=MAX_DISPLAY_NAME_LENGTH)
        )
    return name


class ShellSession:
    """One participant's connection to a shared terminal.

    Usage:
        session = ShellSession(ClientConfig(host="localhost:8080"), view=my_view)
        session.join("alice")
        session.send_command("ls -al")
        session.send_chat("hi!")
        await session.close()
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        view: SessionView | None = None,
        renderer: TerminalRenderer | None = None,
        transport_factory: TransportFactory | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        """Initialize session.

        Args:
            config: Client configuration (defaults apply when omitted)
            view: Presentation surface for terminal rows and chat; an
                in-memory BufferView when omitted
            renderer: Terminal renderer; built from config when omitted
            transport_factory: Creates one fresh transport per attempt
            scheduler: Timer source for heartbeat and reconnect delay
        """
        self.config = config or ClientConfig()
        self.view = view or BufferView(self.config.chat_log_limit)
        self.renderer = renderer or TerminalRenderer(
            max_lines=self.config.scrollback_limit,
            evict_block=self.config.scrollback_evict_block,
        )
        self._transport_factory = transport_factory or self._default_transport
        self._scheduler = scheduler or AsyncioScheduler()

        self._display_name: str | None = None
        self._connection_state = ConnectionState.DISCONNECTED
        self._reconnect_attempts = 0
        self._transport: TransportAdapter | None = None

        self._heartbeat_timer: TimerHandle | None = None
        self._reconnect_timer: TimerHandle | None = None

        self._connection_state_callback: Callable[[ConnectionState], None] | None = None

    # -------------------------------------------------------------------------
    # Public API: Connection Management
    # -------------------------------------------------------------------------

    def join(self, display_name: str) -> bool:
        """Validate the display name and start connecting.

        Returns:
            True if a connection attempt was started, False otherwise
        """
        try:
            name = validate_display_name(display_name)
        except InvalidDisplayNameError as err:
            _LOGGER.debug("Display name rejected: %s", err)
            self._notice(str(err))
            return False

        if self._connection_state is not ConnectionState.DISCONNECTED:
            _LOGGER.warning(
                "[%s] Join ignored in state %s",
                self._display_name,
                self._connection_state.value,
            )
            return False

        self._display_name = name
        self._dispatch(ConnectionEvent.JOIN)
        return True

    def retry(self) -> bool:
        """Start over after reconnect attempts were exhausted.

        Returns:
            True if a connection attempt was started, False otherwise
        """
        if self._connection_state is not ConnectionState.FAILED:
            return False
        self._dispatch(ConnectionEvent.RETRY)
        return True

    def notify_visibility(self, visible: bool) -> None:
        """Report that the host surface was hidden or shown again.

        A connection that died while hidden is recovered immediately instead
        of waiting for the next heartbeat.
        """
        if not visible:
            _LOGGER.debug("[%s] View hidden", self._display_name)
            return

        if self._connection_state is not ConnectionState.CONNECTED:
            return
        if self._transport and self._transport.ready_state is ReadyState.OPEN:
            return

        _LOGGER.info("[%s] Transport found dead after resume", self._display_name)
        self._dispatch(ConnectionEvent.TRANSPORT_STALE)

    async def close(self) -> None:
        """Tear down the session; no reconnect happens afterwards."""
        _LOGGER.info("[%s] Closing session", self._display_name)
        transport = self._transport
        self._dispatch(ConnectionEvent.SHUTDOWN)

        if transport is not None:
            try:
                await asyncio.wait_for(transport.wait_closed(), timeout=2.0)
            except TimeoutError:
                _LOGGER.warning("[%s] Transport close timed out", self._display_name)

    @property
    def display_name(self) -> str | None:
        """Display name chosen at join time."""
        return self._display_name

    @property
    def connection_state(self) -> ConnectionState:
        """Get current connection state."""
        return self._connection_state

    @property
    def reconnect_attempts(self) -> int:
        """Reconnect attempts since the last successful connection."""
        return self._reconnect_attempts

    @property
    def is_connected(self) -> bool:
        return self._connection_state is ConnectionState.CONNECTED

    def on_connection_state_changed(
        self, callback: Callable[[ConnectionState], None]
    ) -> None:
        """Register callback for connection state changes."""
        self._connection_state_callback = callback

    # -------------------------------------------------------------------------
    # Public API: Outbound
    # -------------------------------------------------------------------------

    def send_command(self, command: str) -> bool:
        """Run a command in the shared shell.

        Returns:
            True if the frame was handed to the transport, False otherwise
        """
        transport = self._transport
        if not self.is_connected or transport is None:
            self._notice(notices.NOT_CONNECTED)
            return False

        if self.config.echo_commands:
            self.renderer.feed(f"$ {command}\n")
            self._refresh_terminal()

        if not self._send(transport, encode_frame(InputMessage(command)), "command"):
            self._notice(notices.COMMAND_SEND_FAILED)
            return False
        return True

    def send_chat(self, text: str) -> bool:
        """Post a chat line.

        Returns:
            True if the frame was handed to the transport, False otherwise
        """
        text = text.strip()
        if not text:
            return False

        transport = self._transport
        if not self.is_connected or transport is None or self._display_name is None:
            self._notice(notices.NOT_CONNECTED)
            return False

        frame = encode_frame(ChatMessage(text, self._display_name))
        if not self._send(transport, frame, "chat"):
            self._notice(notices.CHAT_SEND_FAILED)
            return False
        return True

    # -------------------------------------------------------------------------
    # Internal: Connection State Machine
    # -------------------------------------------------------------------------

    def _dispatch(self, event: ConnectionEvent) -> None:
        """Apply an event and carry out the resulting effects in order."""
        result = transition(
            self._connection_state,
            self._reconnect_attempts,
            event,
            max_attempts=self.config.max_reconnect_attempts,
        )
        if not result.effects and result.state is self._connection_state:
            _LOGGER.debug(
                "[%s] Event %s ignored in state %s",
                self._display_name,
                event.value,
                self._connection_state.value,
            )
            return

        self._reconnect_attempts = result.attempts
        self._set_state(result.state)
        for effect in result.effects:
            self._apply(effect)

    def _set_state(self, state: ConnectionState) -> None:
        """Update connection state and notify callback."""
        if self._connection_state is state:
            return
        _LOGGER.debug(
            "[%s] State: %s → %s",
            self._display_name,
            self._connection_state.value,
            state.value,
        )
        self._connection_state = state
        if self._connection_state_callback:
            try:
                self._connection_state_callback(state)
            except Exception as err:
                _LOGGER.exception(
                    "[%s] Connection state callback error: %s", self._display_name, err
                )

    def _apply(self, effect: Effect) -> None:
        if effect is Effect.OPEN_TRANSPORT:
            self._open_transport()
        elif effect is Effect.CLOSE_TRANSPORT:
            self._close_transport()
        elif effect is Effect.START_HEARTBEAT:
            self._start_heartbeat()
        elif effect is Effect.STOP_HEARTBEAT:
            self._stop_heartbeat()
        elif effect is Effect.SCHEDULE_RECONNECT:
            self._schedule_reconnect()
        elif effect is Effect.CANCEL_RECONNECT:
            self._cancel_reconnect()
        elif effect is Effect.NOTIFY_CONNECTED:
            _LOGGER.info("[%s] Connected", self._display_name)
            self._call_view(self.view.show_connection_status, True)
            self._notice(notices.WELCOME.format(name=self._display_name))
            if self.config.welcome_banner:
                for line in notices.TERMINAL_BANNER:
                    self.renderer.feed(line)
                self._refresh_terminal()
        elif effect is Effect.NOTIFY_DISCONNECTED:
            _LOGGER.info("[%s] Connection lost", self._display_name)
            self._call_view(self.view.show_connection_status, False)
            self._notice(notices.CONNECTION_LOST)
        elif effect is Effect.NOTIFY_RECONNECTING:
            self._notice(
                notices.RECONNECTING.format(
                    attempt=self._reconnect_attempts,
                    maximum=self.config.max_reconnect_attempts,
                )
            )
        elif effect is Effect.NOTIFY_FAILED:
            _LOGGER.error(
                "[%s] Giving up after %d reconnect attempts",
                self._display_name,
                self._reconnect_attempts,
            )
            self._call_view(self.view.show_connection_status, False)
            self._notice(notices.RECONNECT_FAILED)

    # -------------------------------------------------------------------------
    # Internal: Transport
    # -------------------------------------------------------------------------

    def _default_transport(self) -> TransportAdapter:
        return WebSocketTransport(connect_timeout=self.config.connect_timeout)

    def _open_transport(self) -> None:
        if self._display_name is None:
            raise RuntimeError("join() must set a display name before connecting")

        transport = self._transport_factory()
        self._transport = transport
        transport.on_opened(lambda: self._handle_opened(transport))
        transport.on_message(lambda text: self._handle_message(transport, text))
        transport.on_closed(lambda: self._handle_closed(transport))

        url = self.config.ws_url(self._display_name)
        _LOGGER.info(
            "[%s] Connecting to %s (attempt #%d)",
            self._display_name,
            url,
            self._reconnect_attempts + 1,
        )
        try:
            transport.connect(url)
        except FunnyShellClientError as err:
            _LOGGER.warning("[%s] Connection failed: %s", self._display_name, err)
            self._handle_closed(transport)
        except Exception as err:
            _LOGGER.exception("[%s] Transport connect error: %s", self._display_name, err)
            self._handle_closed(transport)

    def _close_transport(self) -> None:
        transport = self._transport
        self._transport = None
        if transport is not None:
            self._release(transport, "Client shutdown")

    def _send(self, transport: TransportAdapter, frame: str, what: str) -> bool:
        """Hand a frame to the transport; any failure is reported, not raised."""
        try:
            transport.send(frame)
        except FunnyShellClientError as err:
            _LOGGER.warning("[%s] Failed to send %s: %s", self._display_name, what, err)
            return False
        except Exception as err:
            _LOGGER.exception(
                "[%s] Transport error sending %s: %s", self._display_name, what, err
            )
            return False
        return True

    def _release(self, transport: TransportAdapter, reason: str) -> None:
        try:
            transport.close(NORMAL_CLOSURE, reason)
        except FunnyShellClientError as err:
            _LOGGER.warning("[%s] Transport close failed: %s", self._display_name, err)
        except Exception as err:
            _LOGGER.exception("[%s] Transport close error: %s", self._display_name, err)

    def _handle_opened(self, transport: TransportAdapter) -> None:
        if transport is not self._transport:
            _LOGGER.debug("[%s] Stale transport opened", self._display_name)
            self._release(transport, "Superseded")
            return
        self._dispatch(ConnectionEvent.OPENED)

    def _handle_closed(self, transport: TransportAdapter) -> None:
        if transport is not self._transport:
            _LOGGER.debug("[%s] Stale transport closed", self._display_name)
            return
        self._transport = None
        self._dispatch(ConnectionEvent.CLOSED)

    # -------------------------------------------------------------------------
    # Internal: Message Routing
    # -------------------------------------------------------------------------

    def _handle_message(self, transport: TransportAdapter, text: str) -> None:
        if transport is not self._transport:
            _LOGGER.debug("[%s] Frame from stale transport dropped", self._display_name)
            return

        try:
            message = decode_message(text)
        except FunnyShellProtocolError as err:
            _LOGGER.warning("[%s] Invalid message: %s", self._display_name, err)
            return

        if message is None:
            return

        if isinstance(message, OutputMessage):
            self.renderer.feed(message.text)
            self._refresh_terminal()
        elif isinstance(message, InputEchoMessage):
            self._call_view(self.view.add_chat_entry, ChatEntry.command(message.text))
        elif isinstance(message, SystemNotice):
            self._notice(message.text)
            count = parse_user_count(message.text)
            if count is not None:
                self._call_view(self.view.update_user_count, count)
        elif isinstance(message, ChatNotice):
            self._call_view(
                self.view.add_chat_entry, ChatEntry(message.user, message.text)
            )

    # -------------------------------------------------------------------------
    # Internal: Keepalive and Reconnect
    # -------------------------------------------------------------------------

    def _start_heartbeat(self) -> None:
        self._stop_heartbeat()
        self._heartbeat_timer = self._scheduler.call_later(
            self.config.heartbeat_interval, self._heartbeat
        )

    def _stop_heartbeat(self) -> None:
        if self._heartbeat_timer is not None:
            self._heartbeat_timer.cancel()
            self._heartbeat_timer = None

    def _heartbeat(self) -> None:
        """Send a ping, or report the connection lost."""
        self._heartbeat_timer = None
        if self._connection_state is not ConnectionState.CONNECTED:
            return

        transport = self._transport
        ready_state = transport.ready_state if transport else ReadyState.CLOSED

        if transport is not None and ready_state is ReadyState.OPEN:
            if not self._send(transport, encode_frame(PingMessage()), "heartbeat"):
                self._dispatch(ConnectionEvent.HEARTBEAT_FAILED)
                return
            _LOGGER.debug("[%s] Heartbeat sent", self._display_name)
        elif ready_state is not ReadyState.CONNECTING:
            _LOGGER.info(
                "[%s] Heartbeat found transport %s",
                self._display_name,
                ready_state.value,
            )
            self._dispatch(ConnectionEvent.HEARTBEAT_FAILED)
            return

        self._start_heartbeat()

    def _schedule_reconnect(self) -> None:
        self._cancel_reconnect()
        _LOGGER.info(
            "[%s] Reconnecting in %.1fs (attempt %d/%d)",
            self._display_name,
            self.config.reconnect_delay,
            self._reconnect_attempts,
            self.config.max_reconnect_attempts,
        )
        self._reconnect_timer = self._scheduler.call_later(
            self.config.reconnect_delay, self._reconnect_due
        )

    def _cancel_reconnect(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    def _reconnect_due(self) -> None:
        self._reconnect_timer = None
        self._dispatch(ConnectionEvent.RECONNECT_DUE)

    # -------------------------------------------------------------------------
    # Internal: View
    # -------------------------------------------------------------------------

    def _refresh_terminal(self) -> None:
        self._call_view(self.view.render_terminal, self.renderer)

    def _notice(self, text: str) -> None:
        self._call_view(self.view.add_chat_entry, ChatEntry.system(text))

    def _call_view(self, method: Callable[..., None], *args: object) -> None:
        try:
            method(*args)
        except Exception as err:
            _LOGGER.exception("[%s] View callback error: %s", self._display_name, err)
