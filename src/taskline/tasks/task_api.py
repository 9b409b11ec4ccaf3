# src/taskline/tasks/task_api.py

"""
Read-merge-write helpers over the TaskStore port.

Store implementations raise StoreError; everything here converts that into
StoreFailure so the dispatcher can answer the user.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any

from ..core.errors import StoreError, StoreFailure, TaskNotFound
from ..core.ports import TaskStore
from .task_models import TaskFilter, TaskRecord

logger = logging.getLogger(__name__)

NOTE_SEPARATOR = " | "


def timestamp(now: datetime) -> str:
    return now.strftime("%Y-%m-%dT%H:%M:%S")


def append_note(existing: str, addition: str) -> str:
    existing, addition = (existing or "").strip(), (addition or "").strip()
    if not existing:
        return addition
    if not addition:
        return existing
    return f"{existing}{NOTE_SEPARATOR}{addition}"


async def get_task(store: TaskStore, task_id: str) -> TaskRecord:
    try:
        task = await store.get(task_id)
    except StoreError as e:
        logger.exception("get_task failed task=%s", task_id)
        raise StoreFailure() from e
    if task is None:
        raise TaskNotFound(task_id)
    return task


async def list_tasks(store: TaskStore, flt: TaskFilter) -> list[TaskRecord]:
    try:
        return await store.list(flt)
    except StoreError as e:
        logger.exception("list_tasks failed filter=%s", flt)
        raise StoreFailure() from e


async def create_task(store: TaskStore, record: TaskRecord) -> TaskRecord:
    try:
        await store.upsert(record)
    except StoreError as e:
        logger.exception("create_task failed task=%s", record.task_id)
        raise StoreFailure() from e
    return record


async def update_task(store: TaskStore, task: TaskRecord, now: datetime, **patch: Any) -> TaskRecord:
    """Merge `patch` into an already-fetched record and write it back."""
    updated = replace(task, **patch, updated_date=timestamp(now))
    try:
        await store.upsert(updated)
    except StoreError as e:
        logger.exception("update_task failed task=%s fields=%s", task.task_id, sorted(patch))
        raise StoreFailure() from e
    logger.info("Task updated task=%s fields=%s", task.task_id, sorted(patch))
    return updated
