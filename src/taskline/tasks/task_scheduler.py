# src/taskline/tasks/task_scheduler.py

from __future__ import annotations

"""
Digest scheduler.

Digest content (what each user is told) is built by pure functions below. The
polling loop only decides when to fire:
- weekdays only,
- each job at most once per day,
- only within a short window after its time of day (a late start does not
  replay the morning digest in the evening).

Transport (how a push reaches the user) belongs to the connector's Messenger.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from ..core.ports import Messenger, OutboundMessage, TaskStore, UserDirectory
from ..core.render import clip, short_id
from ..parsing.deadline import display_deadline
from . import task_api
from .ordering import is_overdue, remaining_today, sort_by_status_due
from .task_models import Role, TaskFilter, TaskRecord, UserIdentity, role_label

logger = logging.getLogger(__name__)

MORNING_MAX_LINES = 25
ADMIN_MAX_LINES = 50
FIRE_WINDOW = timedelta(minutes=10)


# ---- digest content ----


def morning_digest(tasks: list[TaskRecord], now: datetime) -> str:
    todo = sort_by_status_due(remaining_today(tasks, now))
    if not todo:
        return "สวัสดีตอนเช้า 🌤️ วันนี้ไม่มีงานคงค้าง 🎉"
    lines = []
    for t in todo[:MORNING_MAX_LINES]:
        due = f" (กำหนด {display_deadline(t.deadline)})" if t.deadline else ""
        lines.append(f"• #{short_id(t.task_id)} {clip(t.task_detail, 70)}{due}")
    return "สวัสดีตอนเช้า 🌤️\nงานวันนี้/คงค้างของคุณ:\n" + "\n".join(lines)


def evening_digest(tasks: list[TaskRecord]) -> str:
    done = sum(1 for t in tasks if t.is_done)
    return f"สรุปวันนี้ ⏱️\nเสร็จแล้ว: {done}\nคงค้าง: {len(tasks) - done}"


@dataclass(frozen=True, slots=True)
class UserDaySummary:
    name: str
    role: str
    new_today: int
    done_today: int
    overdue: int


def _on_day(stamp: str, day: date) -> bool:
    return bool(stamp) and stamp[:10] == day.isoformat()


def summarize_user(user: UserIdentity, tasks: list[TaskRecord], now: datetime) -> UserDaySummary:
    today = now.date()
    return UserDaySummary(
        name=user.real_name or user.username or "-",
        role=user.role,
        new_today=sum(1 for t in tasks if _on_day(t.created_date, today)),
        done_today=sum(1 for t in tasks if t.is_done and _on_day(t.updated_date, today)),
        overdue=sum(1 for t in tasks if is_overdue(t, now)),
    )


def admin_digest(rows: list[UserDaySummary]) -> str:
    ordered = sorted(rows, key=lambda r: (-r.overdue, -r.new_today, -r.done_today))
    lines = ["สรุปวันนี้สำหรับหัวหน้า/แอดมิน", "— งานใหม่วันนี้ | เสร็จวันนี้ | เลยเดดไลน์ —"]
    for r in ordered[:ADMIN_MAX_LINES]:
        lines.append(f"• {r.name} ({role_label(r.role)}): {r.new_today} | {r.done_today} | {r.overdue}")
    return "\n".join(lines)


# ---- digest runs ----


async def _active_users(directory: UserDirectory) -> list[UserIdentity]:
    return [u for u in await directory.list_users() if u.is_active and u.user_id]


async def _tasks_of(store: TaskStore, user: UserIdentity) -> list[TaskRecord]:
    return await task_api.list_tasks(store, TaskFilter(assignee_id=user.user_id))


async def send_morning_digests(
    store: TaskStore, directory: UserDirectory, messenger: Messenger, now: datetime
) -> int:
    sent = 0
    for user in await _active_users(directory):
        try:
            text = morning_digest(await _tasks_of(store, user), now)
            await messenger.push(user.user_id, OutboundMessage(text=text))
            sent += 1
        except Exception:
            logger.exception("Morning digest failed user=%s", user.user_id)
    return sent


async def send_evening_digests(
    store: TaskStore, directory: UserDirectory, messenger: Messenger, now: datetime
) -> int:
    sent = 0
    for user in await _active_users(directory):
        try:
            text = evening_digest(await _tasks_of(store, user))
            await messenger.push(user.user_id, OutboundMessage(text=text))
            sent += 1
        except Exception:
            logger.exception("Evening digest failed user=%s", user.user_id)
    return sent


async def send_admin_digest(
    store: TaskStore, directory: UserDirectory, messenger: Messenger, now: datetime
) -> int:
    users = await _active_users(directory)
    rows = [summarize_user(u, await _tasks_of(store, u), now) for u in users]
    text = admin_digest(rows)

    sent = 0
    for admin in users:
        if admin.role not in (Role.ADMIN, Role.SUPERVISOR):
            continue
        try:
            await messenger.push(admin.user_id, OutboundMessage(text=text))
            sent += 1
        except Exception:
            logger.exception("Admin digest push failed user=%s", admin.user_id)
    return sent


# ---- scheduling ----

DigestRun = Callable[[TaskStore, UserDirectory, Messenger, datetime], Awaitable[int]]


@dataclass(frozen=True, slots=True)
class DigestJob:
    name: str
    at: time
    run: DigestRun


def parse_hhmm(value: str) -> time:
    hh, _, mm = (value or "").strip().partition(":")
    return time(int(hh), int(mm or 0))


def default_jobs(morning: str = "08:30", evening: str = "17:30", admin: str = "17:35") -> list[DigestJob]:
    return [
        DigestJob("morning", parse_hhmm(morning), send_morning_digests),
        DigestJob("evening", parse_hhmm(evening), send_evening_digests),
        DigestJob("admin", parse_hhmm(admin), send_admin_digest),
    ]


def due_jobs(jobs: list[DigestJob], now: datetime, last_run: dict[str, date]) -> list[DigestJob]:
    """Jobs that should fire at `now`. Weekends never fire."""
    if now.weekday() >= 5:
        return []
    out = []
    for job in jobs:
        start = datetime.combine(now.date(), job.at)
        if start <= now < start + FIRE_WINDOW and last_run.get(job.name) != now.date():
            out.append(job)
    return out


async def run_digest_scheduler(
        store: TaskStore,
        directory: UserDirectory,
        messenger: Messenger,
        *,
        jobs: list[DigestJob],
        clock: Callable[[], datetime] = datetime.now,
        interval_seconds: float = 30.0,
) -> None:
    """
    Simple polling scheduler. To stop it, cancel the coroutine/task.
    """
    sleep_s = max(0.5, float(interval_seconds))
    last_run: dict[str, date] = {}

    while True:
        now = clock()
        for job in due_jobs(jobs, now, last_run):
            last_run[job.name] = now.date()
            try:
                sent = await job.run(store, directory, messenger, now)
                logger.info("Digest %s sent to %d user(s)", job.name, sent)
            except Exception:
                logger.exception("Digest %s failed", job.name)

        await asyncio.sleep(sleep_s)
