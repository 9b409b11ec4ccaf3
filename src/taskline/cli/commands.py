# src/taskline/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from ..core.state import AppState

logger = logging.getLogger(__name__)


@dataclass
class ConsoleSession:
    """Who the console is currently speaking as. `/as` switches it."""

    state: AppState
    user_id: str = "console"
    history: list[str] = field(default_factory=list)


CommandHandler = Callable[[ConsoleSession, list[str]], str]


class CommandRegistry:
    """Slash commands for the console connector (/help, /as, ...). Chat text is not handled here."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases or []:
            self._handlers[alias.lower()] = handler

    def handle(self, session: ConsoleSession, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."
        return handler(session, parts[1:])

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("  /exit - quit")
        return "\n".join(lines)


registry = CommandRegistry()


def cmd_help(session: ConsoleSession, args: list[str]) -> str:
    return registry.build_help()


def cmd_as(session: ConsoleSession, args: list[str]) -> str:
    """
    /as            -> show the current user id
    /as <user_id>  -> speak as another user from now on
    """
    if not args:
        return f"Speaking as {session.user_id}. Use /as <user_id> to switch."
    new_id = args[0].strip()
    if new_id == session.user_id:
        return f"Already speaking as {new_id}."
    session.history.append(session.user_id)
    session.user_id = new_id
    logger.info("Console user switched to %s", new_id)
    return f"Now speaking as {new_id}."


def cmd_back(session: ConsoleSession, args: list[str]) -> str:
    if not session.history:
        return "No previous user."
    session.user_id = session.history.pop()
    return f"Now speaking as {session.user_id}."


def cmd_status(session: ConsoleSession, args: list[str]) -> str:
    settings = session.state.settings
    sessions = session.state.sessions
    return (
        "Status:\n"
        f"  User: {session.user_id}\n"
        f"  Store: {settings.store_backend}\n"
        f"  Matrix: {'ON' if settings.matrix_enabled else 'OFF'}\n"
        f"  Digests: {'ON' if settings.digests_enabled else 'OFF'} "
        f"({settings.morning_digest_at} / {settings.evening_digest_at} / {settings.admin_digest_at})\n"
        f"  Open drafts: {len(sessions.drafts)}"
    )


registry.register("help", cmd_help, "show this help", aliases=["h", "?"])
registry.register("as", cmd_as, "show or switch the user id the console speaks as", aliases=["whoami"])
registry.register("back", cmd_back, "switch back to the previous user id")
registry.register("status", cmd_status, "show store/connector status")
