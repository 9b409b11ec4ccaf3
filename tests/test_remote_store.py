# tests/test_remote_store.py

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest
import pytest_asyncio

from taskline.core.errors import StoreError
from taskline.tasks.remote_store import AppsScriptStore
from taskline.tasks.task_models import TaskFilter, TaskRecord, UserIdentity

URL = "https://script.example.test/exec"

TASKS = [
    {
        "task_id": "TASK_1",
        "assignee_id": "U_po",
        "assignee_name": "po",
        "status": "Pending",
        "created_date": "2025-03-05T09:00:00",
    },
    {
        "task_id": "TASK_2",
        "assignee_id": "U_test",
        "assignee_name": "test",
        "status": "done",
        "created_date": "2025-03-06T09:00:00",
    },
]


class FakeService:
    """Records every JSON payload and answers like the Apps Script web app."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.users: dict[str, dict[str, str]] = {}
        self.get_task_broken = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.calls.append(body)
        action = body["action"]

        if body.get("app_key") != "secret":
            return httpx.Response(200, json={"ok": False, "error": "unauthorized"})
        if action == "get_task":
            if self.get_task_broken:
                return httpx.Response(500, text="boom")
            found = [t for t in TASKS if t["task_id"] == body["task_id"]]
            return httpx.Response(200, json={"ok": True, "task": found[0] if found else None})
        if action == "list_tasks":
            # The service only understands assignee_id.
            rows = [t for t in TASKS if not body.get("assignee_id") or t["assignee_id"] == body["assignee_id"]]
            return httpx.Response(200, json={"ok": True, "tasks": rows})
        if action == "upsert_task":
            return httpx.Response(200, json={"ok": True})
        if action == "get_user":
            user = self.users.get(body["user_id"])
            return httpx.Response(200, json={"ok": True, "found": user is not None, "user": user})
        if action == "list_users":
            return httpx.Response(200, json={"ok": True, "users": list(self.users.values())})
        if action == "upsert_user":
            fields = {k: v for k, v in body.items() if k not in ("action", "app_key")}
            self.users[body["user_id"]] = fields
            return httpx.Response(200, json={"ok": True})
        return httpx.Response(200, text="not json")


@pytest.fixture()
def service() -> FakeService:
    return FakeService()


@pytest_asyncio.fixture()
async def remote(service: FakeService):
    client = httpx.AsyncClient(transport=httpx.MockTransport(service))
    store = AppsScriptStore(URL, "secret", client=client)
    yield store
    await client.aclose()


@pytest.mark.asyncio
async def test_get_and_upsert(remote: AppsScriptStore, service: FakeService) -> None:
    task = await remote.get("TASK_1")
    assert task is not None
    assert task.status == "pending"

    await remote.upsert(TaskRecord(task_id="TASK_9", task_detail="ใหม่"))
    sent = service.calls[-1]
    assert sent["action"] == "upsert_task"
    assert sent["app_key"] == "secret"
    assert sent["task_detail"] == "ใหม่"


@pytest.mark.asyncio
async def test_get_falls_back_to_list(remote: AppsScriptStore, service: FakeService) -> None:
    service.get_task_broken = True
    task = await remote.get("TASK_2")
    assert task is not None and task.is_done
    assert [c["action"] for c in service.calls] == ["get_task", "list_tasks"]
    assert await remote.get("TASK_none") is None


@pytest.mark.asyncio
async def test_list_sends_filters_and_reapplies_them(remote: AppsScriptStore, service: FakeService) -> None:
    tasks = await remote.list(TaskFilter(assignee_id="U_po", date_from="2025-03-01", date_to="2025-03-31"))
    assert [t.task_id for t in tasks] == ["TASK_1"]
    sent = service.calls[-1]
    assert (sent["assignee_id"], sent["from_date"], sent["to_date"]) == (
        "U_po",
        "2025-03-01T00:00:00",
        "2025-03-31T23:59:59",
    )

    # With a name the service is not narrowed by id; matching happens locally.
    by_name = await remote.list(TaskFilter(assignee_id="U_other", assignee_name="test"))
    assert "assignee_id" not in service.calls[-1]
    assert [t.task_id for t in by_name] == ["TASK_2"]


@pytest.mark.asyncio
async def test_users(remote: AppsScriptStore) -> None:
    assert await remote.get_user("U_po") is None
    await remote.upsert_user(UserIdentity("U_po", "po", "ปอ"))
    po = await remote.get_user("U_po")
    assert po == UserIdentity("U_po", "po", "ปอ")
    assert [u.user_id for u in await remote.resolve("ปอ")] == ["U_po"]


@pytest.mark.asyncio
async def test_errors_become_store_errors(service: FakeService) -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(service))
    try:
        wrong_key = AppsScriptStore(URL, "nope", client=client)
        with pytest.raises(StoreError, match="unauthorized"):
            await wrong_key.list_users()

        store = AppsScriptStore(URL, "secret", client=client)
        with pytest.raises(StoreError, match="invalid JSON"):
            await store.call("mystery")

        service.get_task_broken = True
        with pytest.raises(StoreError):
            await store.call("get_task", task_id="TASK_1")
    finally:
        await client.aclose()


def test_url_is_required() -> None:
    with pytest.raises(ValueError):
        AppsScriptStore("")
