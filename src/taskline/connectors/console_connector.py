# src/taskline/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from datetime import datetime

from ..cli.commands import ConsoleSession
from ..cli.commands import registry as command_registry
from ..core.dispatcher import CommandDispatcher
from ..core.ports import OutboundMessage
from ..core.render import to_plain_text

logger = logging.getLogger(__name__)

CONSOLE_TOKEN = "console"


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleMessenger:
    """Messenger that prints to stdout. Pushes to other users are shown inline, addressed."""

    def __init__(self, printer: Callable[[str], None] = _print_ts) -> None:
        self._print = printer

    async def reply(self, token: str, message: OutboundMessage) -> None:
        self._print(f"<<< {to_plain_text(message)}")

    async def push(self, user_id: str, message: OutboundMessage) -> None:
        self._print(f"[→ {user_id}] {to_plain_text(message)}")


def _start_reader(
    loop: asyncio.AbstractEventLoop,
    queue: asyncio.Queue[str | None],
    ready: threading.Event,
    session: ConsoleSession,
    input_fn: Callable[[str], str],
) -> threading.Thread:
    """
    Blocking stdin reader on a daemon thread, feeding `queue`. None means EOF.

    `ready` is set by the loop once the previous line is handled, so the prompt
    shows the right user id and never interleaves with replies.
    """

    def reader() -> None:
        while True:
            ready.wait()
            ready.clear()
            try:
                line: str | None = input_fn(f"{session.user_id} >>> ")
            except (EOFError, KeyboardInterrupt):
                line = None
            try:
                loop.call_soon_threadsafe(queue.put_nowait, line)
            except RuntimeError:
                # Loop already closed.
                return
            if line is None:
                return

    t = threading.Thread(target=reader, name="console-input", daemon=True)
    t.start()
    return t


async def run_console_loop(
    dispatcher: CommandDispatcher,
    session: ConsoleSession,
    *,
    input_fn: Callable[[str], str] = input,
) -> None:
    """Read lines from stdin and feed them to the dispatcher as `session.user_id`."""
    logger.info("Console connector started (user=%s).", session.user_id)
    _print_ts("[CONSOLE] Type chat messages. Use /help for console commands. Use /exit to quit.\n")

    queue: asyncio.Queue[str | None] = asyncio.Queue()
    ready = threading.Event()
    _start_reader(asyncio.get_running_loop(), queue, ready, session, input_fn)

    while True:
        ready.set()
        raw = await queue.get()
        if raw is None:
            logger.info("Console EOF received, exiting.")
            break

        line = raw.strip()
        if not line:
            continue

        if line.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        # Console commands (/help, /as, ...)
        try:
            cmd_response = command_registry.handle(session, line)
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is not None:
            _print_ts(cmd_response)
            continue

        await dispatcher.handle_text(session.user_id, line, CONSOLE_TOKEN)

    logger.info("Console connector finished.")
