"""Console front end for a shared FunnyShell terminal.

Lines typed on stdin run as shell commands. Two prefixes are special:
``/chat <text>`` posts a chat line and ``/retry`` reconnects after the
session gave up. ``/quit`` (or end of input) leaves.
"""

from __future__ import annotations

import asyncio
import dataclasses
import html
import logging
import sys
from pathlib import Path

import click

from . import notices
from .config import ClientConfig, load_config
from .errors import ConfigLoadError, InvalidDisplayNameError
from .renderer import TerminalRenderer
from .session import ShellSession, validate_display_name
from .view import ChatEntry, ChatKind, SessionView

CHAT_PREFIX = "/chat "
RETRY_COMMAND = "/retry"
QUIT_COMMAND = "/quit"

_KIND_COLORS = {
    ChatKind.CHAT: "cyan",
    ChatKind.SYSTEM: "yellow",
    ChatKind.INPUT: "magenta",
}


class ConsoleView(SessionView):
    """Prints terminal rows once they are complete, chat to stderr."""

    def __init__(self) -> None:
        self._printed = 0

    def render_terminal(self, renderer: TerminalRenderer) -> None:
        # Rows still open may be redrawn; print only rows a line feed closed.
        lines = renderer.lines
        start = max(self._printed - renderer.first_index, 0)
        for offset, line in enumerate(lines[start:], start=start):
            if line.is_open:
                break
            click.echo(html.unescape(line.text))
            self._printed = renderer.first_index + offset + 1

    def add_chat_entry(self, entry: ChatEntry) -> None:
        stamp = entry.timestamp.strftime("%H:%M")
        label = click.style(entry.sender, fg=_KIND_COLORS[entry.kind], bold=True)
        click.echo(f"[{stamp}] {label}: {entry.text}", err=True)

    def show_connection_status(self, connected: bool) -> None:
        status = notices.STATUS_CONNECTED if connected else notices.STATUS_DISCONNECTED
        click.echo(
            click.style(f"● {status}", fg="green" if connected else "red"), err=True
        )

    def update_user_count(self, count: int) -> None:
        click.echo(click.style(f"👥 {count}명 접속중", dim=True), err=True)


def _prompt_display_name(display_name: str | None) -> str:
    while True:
        if display_name is None:
            display_name = click.prompt("닉네임", type=str)
        try:
            return validate_display_name(display_name)
        except InvalidDisplayNameError as err:
            click.echo(str(err), err=True)
            display_name = None


async def _run(config: ClientConfig, display_name: str) -> None:
    session = ShellSession(config, view=ConsoleView())
    if not session.join(display_name):
        return

    loop = asyncio.get_running_loop()
    try:
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            line = line.rstrip("\n")
            if line == QUIT_COMMAND:
                break
            if line == RETRY_COMMAND:
                session.retry()
            elif line.startswith(CHAT_PREFIX):
                session.send_chat(line[len(CHAT_PREFIX) :])
            elif line.strip():
                session.send_command(line)
    finally:
        await session.close()


@click.command()
@click.option("--host", default=None, help="Server host[:port] (default: localhost:8080).")
@click.option("--secure/--no-secure", default=None, help="Use wss:// instead of ws://.")
@click.option("--name", "display_name", default=None, help="Display name (1-20 characters).")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML configuration file.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
)
def main(
    host: str | None,
    secure: bool | None,
    display_name: str | None,
    config_path: Path | None,
    log_level: str,
) -> None:
    """Join a shared FunnyShell terminal."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(config_path) if config_path else ClientConfig()
    except ConfigLoadError as err:
        raise click.ClickException(str(err)) from err

    overrides: dict[str, object] = {}
    if host:
        overrides["host"] = host
    if secure is not None:
        overrides["secure"] = secure
    if overrides:
        config = dataclasses.replace(config, **overrides)

    name = _prompt_display_name(display_name)
    try:
        asyncio.run(_run(config, name))
    except KeyboardInterrupt:
        click.echo("", err=True)


if __name__ == "__main__":
    main()
