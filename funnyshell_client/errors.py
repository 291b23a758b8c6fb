"""Client error types for FunnyShell shared-terminal sessions."""

from __future__ import annotations


class FunnyShellClientError(Exception):
    """Base error for FunnyShell client failures."""


class FunnyShellTimeout(FunnyShellClientError):
    """Timeout while communicating with the server."""


class FunnyShellConnectionError(FunnyShellClientError):
    """Network connection to the server failed or is not open."""


class FunnyShellHandshakeError(FunnyShellClientError):
    """WebSocket handshake failed."""


class FunnyShellProtocolError(FunnyShellClientError):
    """A frame could not be encoded or decoded."""


class InvalidDisplayNameError(FunnyShellClientError):
    """Display name was rejected before any connection attempt."""


class ConfigLoadError(FunnyShellClientError):
    """Client configuration could not be loaded."""
