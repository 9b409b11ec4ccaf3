# src/taskline/tasks/remote_store.py

"""
HTTP client for the remote "Apps Script" record service.

Every call is a JSON POST {action, app_key, ...fields} to one URL; the service
answers {ok, error?, task?, tasks?, user?, users?, found?}. Implements both the
TaskStore and UserDirectory ports.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.errors import StoreError
from .task_models import TaskFilter, TaskRecord, UserIdentity, matching_users

logger = logging.getLogger(__name__)


class AppsScriptStore:
    def __init__(
        self,
        url: str,
        app_key: str = "",
        *,
        timeout_seconds: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not url:
            raise ValueError("Apps Script URL is required")
        self._url = url
        self._app_key = app_key
        self._own_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            # Apps Script web apps answer through a redirect.
            follow_redirects=True,
        )

    async def aclose(self) -> None:
        if self._own_client:
            await self._client.aclose()

    async def call(self, action: str, **fields: Any) -> dict[str, Any]:
        payload = {"action": action, "app_key": self._app_key, **fields}
        try:
            resp = await self._client.post(self._url, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as e:
            raise StoreError(f"{action}: {e}") from e
        except ValueError as e:
            raise StoreError(f"{action}: invalid JSON response") from e

        if not isinstance(data, dict):
            raise StoreError(f"{action}: unexpected response")
        if not data.get("ok"):
            raise StoreError(f"{action}: {data.get('error') or 'unknown error'}")
        return data

    # ---- TaskStore port ----

    async def get(self, task_id: str) -> TaskRecord | None:
        try:
            data = await self.call("get_task", task_id=task_id)
            if data.get("task"):
                return TaskRecord.from_dict(data["task"])
        except StoreError:
            logger.warning("get_task failed for %s; falling back to list_tasks", task_id)

        data = await self.call("list_tasks")
        for raw in data.get("tasks") or []:
            if str(raw.get("task_id")) == task_id:
                return TaskRecord.from_dict(raw)
        return None

    async def upsert(self, record: TaskRecord) -> None:
        await self.call("upsert_task", **record.to_dict())
        logger.debug("Task upserted remotely task=%s status=%s", record.task_id, record.status)

    # ---- UserDirectory port ----

    async def resolve(self, reference: str) -> list[UserIdentity]:
        return matching_users(await self.list_users(), reference)

    async def get_user(self, user_id: str) -> UserIdentity | None:
        data = await self.call("get_user", user_id=user_id)
        if data.get("found") is False or not data.get("user"):
            return None
        return UserIdentity.from_dict(data["user"])

    async def list_users(self) -> list[UserIdentity]:
        data = await self.call("list_users")
        return [UserIdentity.from_dict(u) for u in data.get("users") or []]

    async def upsert_user(self, user: UserIdentity) -> None:
        await self.call("upsert_user", **user.to_dict())

    async def list(self, flt: TaskFilter) -> list[TaskRecord]:
        fields: dict[str, Any] = {}
        if flt.assignee_id and not flt.assignee_name:
            # Name matches are resolved locally, so the service must not narrow by id.
            fields["assignee_id"] = flt.assignee_id
        if flt.assigner_id:
            fields["assigner_id"] = flt.assigner_id
        if flt.date_from:
            fields["from_date"] = f"{flt.date_from}T00:00:00"
        if flt.date_to:
            fields["to_date"] = f"{flt.date_to}T23:59:59"

        data = await self.call("list_tasks", **fields)
        records = [TaskRecord.from_dict(raw) for raw in data.get("tasks") or []]
        # The service may ignore some filters; apply them again locally.
        return [r for r in records if flt.matches(r)]
