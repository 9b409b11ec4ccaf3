# tests/conftest.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskline.core.dispatcher import CommandDispatcher
from taskline.core.state import AppState, SessionState
from taskline.tasks.task_models import UserIdentity
from taskline.tasks.task_store import SqliteTaskStore

from .fakes import FakeMessenger

# Wednesday 10:00 local.
NOW = datetime(2025, 3, 12, 10, 0)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI helpers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment / .env file.
    """
    return SimpleNamespace(
        app_name="taskline-test",
        timezone="Asia/Bangkok",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        store_backend="sqlite",
        matrix_enabled=False,
        matrix_rooms=[],
        matrix_store_path=tmp_path / "matrix_store",
        digests_enabled=True,
        morning_digest_at="08:30",
        evening_digest_at="17:30",
        admin_digest_at="17:35",
        console_user_id="console",
    )


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def store(settings: SimpleNamespace) -> SqliteTaskStore:
    """Real SQLite store: its queries are part of what we test."""
    return SqliteTaskStore(settings.tasks_db_path)


@pytest.fixture()
def sessions() -> SessionState:
    return SessionState()


@pytest.fixture()
def messenger() -> FakeMessenger:
    return FakeMessenger()


@pytest.fixture()
def state(settings: SimpleNamespace, store: SqliteTaskStore, sessions: SessionState, now: datetime) -> AppState:
    return AppState(settings=settings, task_store=store, directory=store, sessions=sessions, clock=lambda: now)


@pytest.fixture()
def dispatcher(
    store: SqliteTaskStore, messenger: FakeMessenger, sessions: SessionState, now: datetime
) -> CommandDispatcher:
    return CommandDispatcher(
        store=store,
        directory=store,
        messenger=messenger,
        sessions=sessions,
        clock=lambda: now,
    )


@pytest.fixture()
def users(store: SqliteTaskStore) -> dict[str, UserIdentity]:
    """A small team: boss (supervisor) assigns to po / test."""
    team = {
        "boss": UserIdentity("U_boss", "boss", "สมชาย", role="supervisor"),
        "po": UserIdentity("U_po", "po", "ปอ อนุชา"),
        "test": UserIdentity("U_test", "test", "เทสต์ ทดสอบ"),
        "pom": UserIdentity("U_pom", "pom", "ป้อม"),
    }
    for u in team.values():
        store.upsert_user_sync(u)
    return team
