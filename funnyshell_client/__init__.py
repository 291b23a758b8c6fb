"""Client for shared FunnyShell terminal sessions."""

__version__ = "0.1.0"

from .config import ClientConfig, load_config
from .errors import (
    ConfigLoadError,
    FunnyShellClientError,
    FunnyShellConnectionError,
    FunnyShellHandshakeError,
    FunnyShellProtocolError,
    FunnyShellTimeout,
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
    encode_message,
    parse_user_count,
)
from .renderer import DisplayLine, TerminalRenderer, strip_control_sequences
from .session import ShellSession, validate_display_name
from .state import ConnectionEvent, ConnectionState, Effect, Transition, transition
from .transport import ReadyState, TransportAdapter, WebSocketTransport
from .view import BufferView, ChatEntry, ChatKind, ChatLog, SessionView

__all__ = [
    "BufferView",
    "ChatEntry",
    "ChatKind",
    "ChatLog",
    "ChatMessage",
    "ChatNotice",
    "ClientConfig",
    "ConfigLoadError",
    "ConnectionEvent",
    "ConnectionState",
    "DisplayLine",
    "Effect",
    "FunnyShellClientError",
    "FunnyShellConnectionError",
    "FunnyShellHandshakeError",
    "FunnyShellProtocolError",
    "FunnyShellTimeout",
    "InputEchoMessage",
    "InputMessage",
    "InvalidDisplayNameError",
    "OutputMessage",
    "PingMessage",
    "ReadyState",
    "SessionView",
    "ShellSession",
    "SystemNotice",
    "TerminalRenderer",
    "Transition",
    "TransportAdapter",
    "WebSocketTransport",
    "__version__",
    "decode_message",
    "encode_frame",
    "encode_message",
    "load_config",
    "parse_user_count",
    "strip_control_sequences",
    "transition",
    "validate_display_name",
]
