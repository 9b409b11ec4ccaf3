# src/taskline/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the record store backend (SQLite or the remote Apps Script service),
- wires messengers and the CommandDispatcher.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import Settings, get_settings
from ..connectors.console_connector import ConsoleMessenger
from ..connectors.matrix_connector import MatrixMessenger, is_matrix_id
from ..core.dispatcher import CommandDispatcher
from ..core.ports import OutboundMessage
from ..core.state import AppState, SessionState, local_clock
from ..tasks.remote_store import AppsScriptStore
from ..tasks.task_store import SqliteTaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)
    if settings.matrix_enabled:
        settings.matrix_store_path.mkdir(parents=True, exist_ok=True)


class MessengerRouter:
    """
    One Messenger for the dispatcher, fanning out to connectors.

    Matrix rooms ("!room:server") and Matrix users ("@user:server") go to Matrix;
    everything else goes to the console.
    """

    def __init__(self, console: ConsoleMessenger, matrix: MatrixMessenger | None = None) -> None:
        self.console = console
        self.matrix = matrix

    async def reply(self, token: str, message: OutboundMessage) -> None:
        if self.matrix is not None and token.startswith("!"):
            await self.matrix.reply(token, message)
        else:
            await self.console.reply(token, message)

    async def push(self, user_id: str, message: OutboundMessage) -> None:
        if self.matrix is not None and is_matrix_id(user_id):
            await self.matrix.push(user_id, message)
        else:
            await self.console.push(user_id, message)


def create_store(settings: Settings) -> SqliteTaskStore | AppsScriptStore:
    if settings.store_backend == "apps_script":
        logger.info("Record store: Apps Script (%s)", settings.apps_script_url or "<unset>")
        return AppsScriptStore(
            settings.apps_script_url,
            settings.apps_script_key,
            timeout_seconds=settings.store_timeout_seconds,
        )
    logger.info("Record store: SQLite (%s)", settings.tasks_db_path)
    return SqliteTaskStore(settings.tasks_db_path)


@dataclass
class Runtime:
    state: AppState
    dispatcher: CommandDispatcher
    messenger: MessengerRouter


def create_initial_state(*, settings: Settings | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = create_store(settings)
    return AppState(
        settings=settings,
        task_store=store,
        directory=store,
        sessions=SessionState(),
        clock=local_clock(settings.timezone),
    )


def create_runtime(state: AppState) -> Runtime:
    settings = state.settings
    matrix = MatrixMessenger(fallback_rooms=settings.matrix_rooms) if settings.matrix_enabled else None
    messenger = MessengerRouter(ConsoleMessenger(), matrix)
    dispatcher = CommandDispatcher(
        store=state.task_store,
        directory=state.directory,
        messenger=messenger,
        sessions=state.sessions,
        clock=state.clock,
    )
    return Runtime(state=state, dispatcher=dispatcher, messenger=messenger)
