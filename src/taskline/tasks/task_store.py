# src/taskline/tasks/task_store.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from ..core.errors import StoreError
from .task_models import TaskFilter, TaskRecord, UserIdentity, matching_users

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TASK_COLUMNS = (
    "task_id",
    "assigner_id",
    "assigner_name",
    "assignee_id",
    "assignee_name",
    "task_detail",
    "status",
    "created_date",
    "updated_date",
    "deadline",
    "note",
)
_USER_COLUMNS = ("user_id", "username", "real_name", "role", "status", "updated_at")


class SqliteTaskStore:
    """
    SQLite record store: implements both the TaskStore and UserDirectory ports.

    The schema is migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each call opens its own SQLite connection
    - async methods run the blocking work via asyncio.to_thread
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("SqliteTaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    task_id TEXT PRIMARY KEY,
                    assigner_id TEXT NOT NULL DEFAULT '',
                    assigner_name TEXT NOT NULL DEFAULT '',
                    assignee_id TEXT NOT NULL DEFAULT '',
                    assignee_name TEXT NOT NULL DEFAULT '',
                    task_detail TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'pending',
                    created_date TEXT NOT NULL DEFAULT '',
                    updated_date TEXT NOT NULL DEFAULT '',
                    deadline TEXT NOT NULL DEFAULT '',
                    note TEXT NOT NULL DEFAULT ''
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    user_id TEXT PRIMARY KEY,
                    username TEXT NOT NULL DEFAULT '',
                    real_name TEXT NOT NULL DEFAULT '',
                    role TEXT NOT NULL DEFAULT 'user',
                    status TEXT NOT NULL DEFAULT 'Active',
                    updated_at TEXT NOT NULL DEFAULT ''
                )
                """
            )

            def add_cols(table: str, columns: tuple[str, ...]) -> None:
                cur.execute(f"PRAGMA table_info({table})")
                have = {row["name"] for row in cur.fetchall()}
                for name in columns:
                    if name in have:
                        continue
                    cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} TEXT NOT NULL DEFAULT ''")
                    logger.info("SqliteTaskStore migration: added column %s.%s", table, name)

            # Older DBs may predate some columns.
            add_cols("tasks", _TASK_COLUMNS)
            add_cols("users", _USER_COLUMNS)

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_assignee ON tasks(assignee_id, status)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_assigner ON tasks(assigner_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_created ON tasks(created_date)")
            conn.commit()
        finally:
            conn.close()

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except sqlite3.Error as e:
            raise StoreError(f"sqlite: {e}") from e

    # ---- sync API ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def get_task_sync(self, task_id: str) -> TaskRecord | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE task_id = ?", (task_id,)).fetchone()
            return TaskRecord.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    def upsert_task_sync(self, record: TaskRecord) -> None:
        data = record.to_dict()
        cols = ", ".join(_TASK_COLUMNS)
        marks = ", ".join("?" for _ in _TASK_COLUMNS)
        updates = ", ".join(f"{c} = excluded.{c}" for c in _TASK_COLUMNS if c != "task_id")
        conn = self._get_conn()
        try:
            conn.execute(
                f"INSERT INTO tasks ({cols}) VALUES ({marks}) ON CONFLICT(task_id) DO UPDATE SET {updates}",
                [data[c] for c in _TASK_COLUMNS],
            )
            conn.commit()
            logger.debug("Task upserted task=%s status=%s", record.task_id, record.status)
        finally:
            conn.close()

    def list_tasks_sync(self, flt: TaskFilter) -> list[TaskRecord]:
        where: list[str] = []
        params: list[Any] = []

        if flt.assignee_id or flt.assignee_name:
            where.append("((? <> '' AND assignee_id = ?) OR (? <> '' AND lower(assignee_name) = lower(?)))")
            params += [flt.assignee_id, flt.assignee_id, flt.assignee_name, flt.assignee_name]
        if flt.assigner_id:
            where.append("assigner_id = ?")
            params.append(flt.assigner_id)
        if flt.date_from:
            where.append("created_date <> '' AND substr(created_date, 1, 10) >= ?")
            params.append(flt.date_from)
        if flt.date_to:
            where.append("created_date <> '' AND substr(created_date, 1, 10) <= ?")
            params.append(flt.date_to)

        sql = "SELECT * FROM tasks"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY created_date DESC"

        conn = self._get_conn()
        try:
            return [TaskRecord.from_dict(dict(r)) for r in conn.execute(sql, params).fetchall()]
        finally:
            conn.close()

    def get_user_sync(self, user_id: str) -> UserIdentity | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM users WHERE user_id = ?", (user_id,)).fetchone()
            return UserIdentity.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    def list_users_sync(self) -> list[UserIdentity]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM users ORDER BY username").fetchall()
            return [UserIdentity.from_dict(dict(r)) for r in rows]
        finally:
            conn.close()

    def upsert_user_sync(self, user: UserIdentity) -> None:
        data = user.to_dict()
        cols = ", ".join(_USER_COLUMNS)
        marks = ", ".join("?" for _ in _USER_COLUMNS)
        updates = ", ".join(f"{c} = excluded.{c}" for c in _USER_COLUMNS if c != "user_id")
        conn = self._get_conn()
        try:
            conn.execute(
                f"INSERT INTO users ({cols}) VALUES ({marks}) ON CONFLICT(user_id) DO UPDATE SET {updates}",
                [data[c] for c in _USER_COLUMNS],
            )
            conn.commit()
        finally:
            conn.close()

    # ---- UserDirectory port ----

    async def resolve(self, reference: str) -> list[UserIdentity]:
        users = await self._run(self.list_users_sync)
        return matching_users(users, reference)

    async def get_user(self, user_id: str) -> UserIdentity | None:
        return await self._run(self.get_user_sync, user_id)

    async def list_users(self) -> list[UserIdentity]:
        return await self._run(self.list_users_sync)

    async def upsert_user(self, user: UserIdentity) -> None:
        await self._run(self.upsert_user_sync, user)

    # ---- TaskStore port ----

    async def get(self, task_id: str) -> TaskRecord | None:
        return await self._run(self.get_task_sync, task_id)

    async def upsert(self, record: TaskRecord) -> None:
        await self._run(self.upsert_task_sync, record)

    async def list(self, flt: TaskFilter) -> list[TaskRecord]:
        return await self._run(self.list_tasks_sync, flt)
