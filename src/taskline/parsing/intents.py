# src/taskline/parsing/intents.py

"""Typed results of classifying one chat message. Produced only by parser.parse()."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ListView(StrEnum):
    MINE_PENDING = "mine_pending"
    MINE_ASSIGNED = "mine_assigned"
    TODAY = "today"
    MINE_RANGE = "mine_range"


class HelpTopic(StrEnum):
    GENERAL = "general"
    ASSIGN = "assign"
    REGISTER = "register"


class Preset(StrEnum):
    URGENT = "urgent"
    DUE_TODAY_1730 = "due_today_1730"
    DUE_TMRW_0900 = "due_tmrw_0900"


@dataclass(frozen=True, slots=True)
class Intent:
    """Base of all intents."""


@dataclass(frozen=True, slots=True)
class Register(Intent):
    username: str
    real_name: str
    role: str = ""


@dataclass(frozen=True, slots=True)
class Assign(Intent):
    assignee_ref: str
    detail: str
    deadline_phrase: str = ""
    note: str = ""


@dataclass(frozen=True, slots=True)
class Reassign(Intent):
    task_id: str
    assignee_ref: str


@dataclass(frozen=True, slots=True)
class SetDeadline(Intent):
    task_id: str
    deadline_phrase: str


@dataclass(frozen=True, slots=True)
class EditDetail(Intent):
    task_id: str
    detail: str


@dataclass(frozen=True, slots=True)
class AddNote(Intent):
    task_id: str
    note: str


@dataclass(frozen=True, slots=True)
class SetStatus(Intent):
    task_id: str
    status: str


@dataclass(frozen=True, slots=True)
class Remind(Intent):
    task_id: str


@dataclass(frozen=True, slots=True)
class ConfirmDraft(Intent):
    draft_id: str | None = None


@dataclass(frozen=True, slots=True)
class CancelDraft(Intent):
    draft_id: str | None = None


@dataclass(frozen=True, slots=True)
class PageNext(Intent):
    pass


@dataclass(frozen=True, slots=True)
class PagePrev(Intent):
    pass


@dataclass(frozen=True, slots=True)
class ShowHelp(Intent):
    topic: HelpTopic = HelpTopic.GENERAL


@dataclass(frozen=True, slots=True)
class ListTasks(Intent):
    view: ListView
    date_from: str = ""  # DD/MM/YYYY, only for MINE_RANGE
    date_to: str = ""


@dataclass(frozen=True, slots=True)
class ListUsers(Intent):
    pass


@dataclass(frozen=True, slots=True)
class SetPreset(Intent):
    preset: Preset


@dataclass(frozen=True, slots=True)
class Unrecognized(Intent):
    text: str = ""
