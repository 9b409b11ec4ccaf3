# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from dataclasses import replace

import pytest

from taskline.core.errors import StoreError
from taskline.tasks.task_models import TaskFilter, TaskRecord, UserIdentity
from taskline.tasks.task_store import SqliteTaskStore


def _task(task_id: str, **kw: str) -> TaskRecord:
    base = TaskRecord(
        task_id=task_id,
        assigner_id="U_boss",
        assignee_id="U_po",
        assignee_name="po",
        created_date="2025-03-10T09:00:00",
    )
    return replace(base, **kw)


@pytest.mark.asyncio
async def test_upsert_is_whole_record_replace(store: SqliteTaskStore) -> None:
    await store.upsert(_task("TASK_1", note="a"))
    await store.upsert(_task("TASK_1", status="done"))

    got = await store.get("TASK_1")
    assert got is not None
    assert (got.status, got.note) == ("done", "")
    assert store.count_tasks() == 1
    assert await store.get("TASK_missing") is None


@pytest.mark.asyncio
async def test_list_filters(store: SqliteTaskStore) -> None:
    await store.upsert(_task("TASK_a", created_date="2025-03-01T08:00:00"))
    await store.upsert(_task("TASK_b", created_date="2025-03-15T08:00:00", assigner_id="U_other"))
    # Written by another tool: no id, only the name.
    await store.upsert(_task("TASK_c", assignee_id="", assignee_name="PO", created_date="2025-03-20T08:00:00"))
    await store.upsert(_task("TASK_d", assignee_id="", assignee_name="", created_date=""))

    by_id = await store.list(TaskFilter(assignee_id="U_po"))
    assert [t.task_id for t in by_id] == ["TASK_b", "TASK_a"]

    by_either = await store.list(TaskFilter(assignee_id="U_po", assignee_name="po"))
    assert [t.task_id for t in by_either] == ["TASK_c", "TASK_b", "TASK_a"]

    mine = await store.list(TaskFilter(assigner_id="U_boss", date_from="2025-03-10", date_to="2025-03-20"))
    assert [t.task_id for t in mine] == ["TASK_c"]

    assert len(await store.list(TaskFilter())) == 4


@pytest.mark.asyncio
async def test_users_roundtrip_and_resolve(store: SqliteTaskStore) -> None:
    await store.upsert_user(UserIdentity("U_po", "po", "ปอ อนุชา"))
    await store.upsert_user(UserIdentity("U_pom", "pom", "ป้อม", status="Inactive"))
    await store.upsert_user(replace(UserIdentity("U_po", "po", "ปอ"), role="admin"))

    po = await store.get_user("U_po")
    assert (po.real_name, po.role) == ("ปอ", "admin")
    assert len(await store.list_users()) == 2

    # Inactive users are never offered as assignees.
    assert [u.user_id for u in await store.resolve("@po")] == ["U_po"]
    assert await store.get_user("U_nobody") is None


def test_schema_migration_adds_missing_columns(tmp_path) -> None:
    db = tmp_path / "old.sqlite3"
    conn = sqlite3.connect(db)
    conn.execute("CREATE TABLE tasks (task_id TEXT PRIMARY KEY, task_detail TEXT)")
    conn.execute("INSERT INTO tasks (task_id, task_detail) VALUES ('TASK_old', 'legacy')")
    conn.commit()
    conn.close()

    store = SqliteTaskStore(db)
    old = store.get_task_sync("TASK_old")
    assert old is not None
    assert (old.task_detail, old.status, old.note) == ("legacy", "pending", "")


@pytest.mark.asyncio
async def test_sqlite_errors_become_store_errors(store: SqliteTaskStore) -> None:
    def boom() -> None:
        raise sqlite3.OperationalError("database is locked")

    with pytest.raises(StoreError):
        await store._run(boom)
