# src/taskline/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Records keep the raw status string (stores may hold values written by other
    tools); use these constants for comparisons.
    """

    PENDING = "pending"
    DOING = "doing"
    DONE = "done"


STATUS_LABELS: dict[str, str] = {
    TaskStatus.PENDING: "รอดำเนินการ",
    TaskStatus.DOING: "กำลังดำเนินการ",
    TaskStatus.DONE: "เสร็จแล้ว",
}


@dataclass(frozen=True, slots=True)
class TaskRecord:
    """One task as owned by the record store. Field names follow the wire keys."""

    task_id: str
    assigner_id: str = ""
    assigner_name: str = ""
    assignee_id: str = ""
    assignee_name: str = ""
    task_detail: str = ""
    status: str = TaskStatus.PENDING.value
    created_date: str = ""
    updated_date: str = ""
    deadline: str = ""
    note: str = ""

    @property
    def is_done(self) -> bool:
        return self.status.lower() == TaskStatus.DONE

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskRecord:
        def s(key: str) -> str:
            val = data.get(key)
            return "" if val is None else str(val)

        return cls(
            task_id=s("task_id"),
            assigner_id=s("assigner_id"),
            assigner_name=s("assigner_name"),
            assignee_id=s("assignee_id"),
            assignee_name=s("assignee_name"),
            task_detail=s("task_detail"),
            status=(s("status") or TaskStatus.PENDING.value).lower(),
            created_date=s("created_date"),
            updated_date=s("updated_date"),
            deadline=s("deadline"),
            note=s("note"),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "task_id": self.task_id,
            "assigner_id": self.assigner_id,
            "assigner_name": self.assigner_name,
            "assignee_id": self.assignee_id,
            "assignee_name": self.assignee_name,
            "task_detail": self.task_detail,
            "status": self.status,
            "created_date": self.created_date,
            "updated_date": self.updated_date,
            "deadline": self.deadline,
            "note": self.note,
        }


# ---- users & roles ----


class Role(StrEnum):
    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    DEVELOPER = "developer"
    USER = "user"


ROLE_ALIASES: dict[str, Role] = {
    "admin": Role.ADMIN,
    "แอดมิน": Role.ADMIN,
    "supervisor": Role.SUPERVISOR,
    "หัวหน้า": Role.SUPERVISOR,
    "developer": Role.DEVELOPER,
    "dev": Role.DEVELOPER,
    "นักพัฒนา": Role.DEVELOPER,
    "user": Role.USER,
    "ผู้ใช้": Role.USER,
}

ROLE_LABELS: dict[str, str] = {
    Role.ADMIN: "แอดมิน",
    Role.SUPERVISOR: "หัวหน้า",
    Role.DEVELOPER: "นักพัฒนา",
    Role.USER: "ผู้ใช้",
}

_ROLE_RANK: dict[str, int] = {Role.ADMIN: 0, Role.SUPERVISOR: 1, Role.DEVELOPER: 2, Role.USER: 3}


def is_role_word(word: str) -> bool:
    return (word or "").strip().lower() in ROLE_ALIASES


def normalize_role(raw: str | None) -> Role:
    """Map any role alias to its canonical Role. Unknown/empty -> USER."""
    return ROLE_ALIASES.get((raw or "").strip().lower(), Role.USER)


def role_label(role: str | None) -> str:
    key = (role or "").strip().lower()
    return ROLE_LABELS.get(key, key or "-")


def role_rank(role: str | None) -> int:
    return _ROLE_RANK.get((role or "").strip().lower(), 9)


@dataclass(frozen=True, slots=True)
class UserIdentity:
    user_id: str
    username: str = ""
    real_name: str = ""
    role: str = Role.USER.value
    status: str = "Active"
    updated_at: str = ""

    @property
    def display_name(self) -> str:
        return self.username or self.real_name or self.user_id

    @property
    def is_active(self) -> bool:
        return self.status.strip().lower() != "inactive"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserIdentity:
        def s(key: str) -> str:
            val = data.get(key)
            return "" if val is None else str(val)

        return cls(
            user_id=s("user_id"),
            username=s("username"),
            real_name=s("real_name"),
            role=(s("role") or Role.USER.value).lower(),
            status=s("status") or "Active",
            updated_at=s("updated_at"),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "real_name": self.real_name,
            "role": self.role,
            "status": self.status,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True, slots=True)
class TaskFilter:
    """
    Query for TaskStore.list().

    Empty fields do not constrain. assignee_id and assignee_name identify the same
    person, so a record matches when either one does. date_from/date_to are
    YYYY-MM-DD and bound created_date inclusively.
    """

    assignee_id: str = ""
    assignee_name: str = ""
    assigner_id: str = ""
    date_from: str = ""
    date_to: str = ""

    def matches(self, record: TaskRecord) -> bool:
        if self.assignee_id or self.assignee_name:
            by_id = bool(self.assignee_id) and record.assignee_id == self.assignee_id
            by_name = bool(self.assignee_name) and record.assignee_name.lower() == self.assignee_name.lower()
            if not (by_id or by_name):
                return False
        if self.assigner_id and record.assigner_id != self.assigner_id:
            return False
        created = record.created_date[:10]
        if self.date_from and (not created or created < self.date_from):
            return False
        if self.date_to and (not created or created > self.date_to):
            return False
        return True


def matching_users(users: list[UserIdentity], reference: str) -> list[UserIdentity]:
    """Active users whose id equals, or whose username/real name contains, the reference."""
    ref = (reference or "").strip().lstrip("@").lower()
    if not ref:
        return []
    return [
        u
        for u in users
        if u.is_active
        and (ref == u.user_id.lower() or ref in u.username.lower() or ref in u.real_name.lower())
    ]
