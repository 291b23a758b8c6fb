"""Client configuration.

Defaults reproduce the behavior the shared-terminal server expects. A YAML
file can override any field:

    host: shell.example.org:8080
    secure: true
    heartbeat_interval: 30
    max_reconnect_attempts: 5
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigLoadError
from .renderer import DEFAULT_EVICT_BLOCK, DEFAULT_MAX_LINES
from .state import MAX_RECONNECT_ATTEMPTS
from .transport.ws import DEFAULT_PATH, build_ws_url
from .view import DEFAULT_CHAT_LOG_LIMIT

MAX_DISPLAY_NAME_LENGTH = 20


@dataclass(frozen=True)
class ClientConfig:
    """Tunables for one client session.

    Attributes:
        host: Server host with optional port.
        secure: Connect with wss instead of ws.
        path: WebSocket endpoint path.
        heartbeat_interval: Seconds between heartbeat pings while connected.
        reconnect_delay: Seconds to wait before each reconnect attempt.
        max_reconnect_attempts: Automatic attempts before giving up.
        connect_timeout: Seconds allowed for the WebSocket handshake.
        scrollback_limit: Maximum retained terminal rows.
        scrollback_evict_block: Rows dropped at once when the limit is hit.
        chat_log_limit: Maximum retained chat entries.
        echo_commands: Echo ``$ <command>`` into the terminal before sending.
        welcome_banner: Write the connection banner into the terminal on connect.
    """

    host: str = "localhost:8080"
    secure: bool = False
    path: str = DEFAULT_PATH
    heartbeat_interval: float = 30.0
    reconnect_delay: float = 2.0
    max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS
    connect_timeout: float = 15.0
    scrollback_limit: int = DEFAULT_MAX_LINES
    scrollback_evict_block: int = DEFAULT_EVICT_BLOCK
    chat_log_limit: int = DEFAULT_CHAT_LOG_LIMIT
    echo_commands: bool = True
    welcome_banner: bool = True

    def __post_init__(self) -> None:
        if not self.host:
            raise ValueError("host must not be empty")
        if not self.path.startswith("/"):
            raise ValueError("path must start with '/'")
        for name in ("heartbeat_interval", "reconnect_delay", "connect_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.max_reconnect_attempts < 0:
            raise ValueError("max_reconnect_attempts must not be negative")
        if self.scrollback_evict_block < 1:
            raise ValueError("scrollback_evict_block must be positive")
        if self.scrollback_limit < self.scrollback_evict_block:
            raise ValueError("scrollback_limit must be at least scrollback_evict_block")
        if self.chat_log_limit < 1:
            raise ValueError("chat_log_limit must be positive")

    def ws_url(self, display_name: str) -> str:
        """Endpoint URL for the given participant."""
        return build_ws_url(
            self.host, display_name, secure=self.secure, path=self.path
        )


def _load_yaml(path: Path) -> Any:
    if not path.exists():
        raise ConfigLoadError(f"File not found: {path}")
    try:
        with path.open(encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as err:
        raise ConfigLoadError(f"Invalid YAML in {path}: {err}") from err


def load_config(path: Path) -> ClientConfig:
    """Load client configuration from a YAML file.

    Args:
        path: Path to the YAML file; missing keys keep their defaults.

    Returns:
        Validated ClientConfig.

    Raises:
        ConfigLoadError: If the file is missing, malformed, has unknown keys
            or holds invalid values.
    """
    data = _load_yaml(path)
    if not isinstance(data, dict):
        raise ConfigLoadError(f"Expected a mapping in {path}")

    known = {f.name for f in fields(ClientConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigLoadError(f"Unknown config keys in {path}: {', '.join(unknown)}")

    try:
        return ClientConfig(**data)
    except (TypeError, ValueError) as err:
        raise ConfigLoadError(f"Invalid config in {path}: {err}") from err
