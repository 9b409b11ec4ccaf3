# src/taskline/tasks/ordering.py

"""
Task ordering.

Several list views order tasks with slightly different tuples. They are kept as
separate named functions; do not fold them into one.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from ..parsing.deadline import parse_deadline
from .task_models import TaskRecord, TaskStatus

# datetime.max keeps "no deadline" after every real deadline.
_NO_DEADLINE = datetime.max

_STATUS_RANK: dict[str, int] = {TaskStatus.DOING: 0, TaskStatus.PENDING: 1, TaskStatus.DONE: 2}


def status_rank(status: str | None) -> int:
    """doing 0, pending 1, done 2, anything else 9."""
    return _STATUS_RANK.get((status or "").strip().lower(), 9)


def _due_key(task: TaskRecord) -> datetime:
    return parse_deadline(task.deadline) or _NO_DEADLINE


def is_urgent(task: TaskRecord) -> bool:
    """[URGENT] tag or ด่วน anywhere in the note or the detail, any case."""
    text = f"{task.note or ''} {task.task_detail or ''}".lower()
    return "[urgent]" in text or "ด่วน" in text


def is_overdue(task: TaskRecord, now: datetime) -> bool:
    if task.is_done:
        return False
    due = parse_deadline(task.deadline)
    return due is not None and due < now


def is_due_today(task: TaskRecord, now: datetime) -> bool:
    due = parse_deadline(task.deadline)
    return due is not None and due.date() == now.date()


def sort_by_status_due(tasks: Iterable[TaskRecord]) -> list[TaskRecord]:
    """Status rank, then earliest deadline (none last), then most recently updated."""
    # Two stable passes: descending updated_date first, then the ascending keys.
    out = sorted(tasks, key=lambda t: t.updated_date or "", reverse=True)
    out.sort(key=lambda t: (status_rank(t.status), _due_key(t)))
    return out


def sort_by_urgency(tasks: Iterable[TaskRecord], now: datetime) -> list[TaskRecord]:
    """
    Assigner's view: urgent first, then overdue, then earliest deadline, then doing
    before pending before anything else.

    Done tasks always go to the bottom, urgent or not.
    """

    def key(t: TaskRecord) -> tuple[int, int, int, datetime, int]:
        st = t.status.lower()
        st_order = 0 if st == TaskStatus.DOING else 1 if st == TaskStatus.PENDING else 2
        return (
            1 if t.is_done else 0,
            0 if is_urgent(t) else 1,
            0 if is_overdue(t, now) else 1,
            _due_key(t),
            st_order,
        )

    return sorted(tasks, key=key)


def sort_for_today(tasks: Iterable[TaskRecord]) -> list[TaskRecord]:
    """'Remaining today' view: earliest deadline first, status rank breaks ties."""
    return sorted(tasks, key=lambda t: (_due_key(t), status_rank(t.status)))


def remaining_today(tasks: Iterable[TaskRecord], now: datetime) -> list[TaskRecord]:
    """Open tasks that are due today or carry no usable deadline."""
    return [
        t
        for t in tasks
        if not t.is_done and (parse_deadline(t.deadline) is None or is_due_today(t, now))
    ]
