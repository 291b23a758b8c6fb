"""Wire codec for FunnyShell frames.

Every frame is a single JSON object with a ``type`` tag and a ``data``
string; chat frames also carry the sender in ``user``.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .errors import FunnyShellProtocolError

_LOGGER = logging.getLogger(__name__)

HEARTBEAT_PAYLOAD = "heartbeat"

_USER_COUNT_RE = re.compile(r"총\s*(\d+)명\s*접속중")


class MessageType(Enum):
    """Wire ``type`` tags."""

    INPUT = "input"
    CHAT = "chat"
    PING = "ping"
    OUTPUT = "output"
    INPUT_INFO = "input_info"
    SYSTEM = "system"


# Outbound


@dataclass(frozen=True, slots=True)
class InputMessage:
    """Command line to run in the shared shell (without trailing newline)."""

    text: str


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """Chat line posted by the local user."""

    text: str
    user: str


@dataclass(frozen=True, slots=True)
class PingMessage:
    """Heartbeat probe."""


# Inbound


@dataclass(frozen=True, slots=True)
class OutputMessage:
    """Raw terminal output chunk."""

    text: str


@dataclass(frozen=True, slots=True)
class InputEchoMessage:
    """Another participant's command, as announced by the server."""

    text: str
    user: str = ""


@dataclass(frozen=True, slots=True)
class SystemNotice:
    """Server notice (joins, leaves, user counts)."""

    text: str


@dataclass(frozen=True, slots=True)
class ChatNotice:
    """Chat line from a participant."""

    user: str
    text: str


OutboundMessage = InputMessage | ChatMessage | PingMessage
InboundMessage = OutputMessage | InputEchoMessage | SystemNotice | ChatNotice


def encode_message(message: OutboundMessage) -> dict[str, Any]:
    """Build the JSON envelope for an outbound message."""
    if isinstance(message, InputMessage):
        return {"type": MessageType.INPUT.value, "data": f"{message.text}\n"}
    if isinstance(message, ChatMessage):
        return {
            "type": MessageType.CHAT.value,
            "data": message.text,
            "user": message.user,
        }
    if isinstance(message, PingMessage):
        return {"type": MessageType.PING.value, "data": HEARTBEAT_PAYLOAD}
    raise FunnyShellProtocolError(f"Cannot encode {type(message).__name__}")


def encode_frame(message: OutboundMessage) -> str:
    """Serialize an outbound message into a text frame."""
    return json.dumps(encode_message(message), ensure_ascii=False)


def _string_field(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise FunnyShellProtocolError(f"Field '{key}' is not a string")
    return value


def decode_message(frame: str | bytes | dict[str, Any]) -> InboundMessage | None:
    """Decode an inbound frame.

    Args:
        frame: Raw text frame, or an already parsed JSON object.

    Returns:
        The decoded message, or None when the ``type`` tag is not one the
        client renders.

    Raises:
        FunnyShellProtocolError: If the frame is not a JSON object or a field
            has the wrong shape.
    """
    if isinstance(frame, dict):
        payload: Any = frame
    else:
        try:
            payload = json.loads(frame)
        except (TypeError, ValueError) as err:
            raise FunnyShellProtocolError("Frame is not valid JSON") from err

    if not isinstance(payload, dict):
        raise FunnyShellProtocolError("Frame is not a JSON object")

    msg_type = payload.get("type")
    data = _string_field(payload, "data")

    if msg_type == MessageType.OUTPUT.value:
        return OutputMessage(data)
    if msg_type == MessageType.INPUT_INFO.value:
        return InputEchoMessage(data, _string_field(payload, "user"))
    if msg_type == MessageType.SYSTEM.value:
        return SystemNotice(data)
    if msg_type == MessageType.CHAT.value:
        return ChatNotice(user=_string_field(payload, "user"), text=data)

    _LOGGER.debug("Ignoring unknown message type: %s", msg_type)
    return None


def parse_user_count(text: str) -> int | None:
    """Extract the participant count from a system notice, if present."""
    match = _USER_COUNT_RE.search(text)
    if match is None:
        return None
    return int(match.group(1))
