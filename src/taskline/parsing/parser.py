# src/taskline/parsing/parser.py

"""
Chat text -> Intent.

The grammar is a closed set of Thai/English phrasings. Rules are tried in table
order; the first rule whose pattern matches and whose extractor returns an intent
wins. Rules never look at stores or clocks: deadline phrases are carried as text
and resolved later by the caller (see deadline.resolve / finalize_deadline).

Adding a phrasing means adding a Rule to RULES; dispatch code does not change.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from ..tasks.task_models import TaskStatus, is_role_word
from .intents import (
    AddNote,
    Assign,
    CancelDraft,
    ConfirmDraft,
    EditDetail,
    HelpTopic,
    Intent,
    ListTasks,
    ListUsers,
    ListView,
    PageNext,
    PagePrev,
    Preset,
    Reassign,
    Register,
    Remind,
    SetDeadline,
    SetPreset,
    SetStatus,
    ShowHelp,
    Unrecognized,
)

TASK_ID = r"(TASK_[A-Za-z0-9]+)"
DRAFT_ID = r"(TMP_[A-Za-z0-9]+)"
COLON = r"\s*[:：]\s*"

EMPTY_DETAIL = "-"
URGENT_TAG = "[URGENT]"
CALM_NOTE = "ไม่รีบ"

_I = re.IGNORECASE
_IS = re.IGNORECASE | re.DOTALL

# Calm words are stripped before urgency detection so "ไม่รีบ" never reads as "รีบ".
_RE_CALM = re.compile(r"ไม่รีบ(?:นะ)?|normal|ค่อยทำ", _I)
_RE_URGENT = re.compile(r"\[urgent\]|ด่วน(?:ที่สุด|สุด)?|urgent|รีบ", _I)

_RE_FILLER_SHORT = re.compile(r"(?:^|\s)(?:นะ|ด้วย)(?=\s|$)")
_RE_FILLER_LOOSE = re.compile(r"(?:^|\s)(?:ของาน|ก่อน|ภายใน|นะ|ด้วย)(?=\s|$)")
_RE_TRAILING_PIPES = re.compile(r"\s*\|+\s*$")
_RE_SPACES = re.compile(r"\s+")

_RE_FIELD_DEADLINE = re.compile(r"\|\s*(?:กำหนดส่ง|due|deadline)\s*[:：]\s*([^|]+)", _I)
_RE_FIELD_NOTE = re.compile(r"\|\s*(?:note|โน้ต|หมายเหตุ)\s*[:：]\s*([^|]+)", _I)

# Date/time sub-phrases inside loose assignments, in extraction priority order.
_RE_LOOSE_DAY = re.compile(r"(วันนี้|พรุ่งนี้|today|tomorrow)(?:\s*(\d{1,2})(?::(\d{2}))?)?", _I)
_RE_LOOSE_WEEKDAY = re.compile(
    r"(?:วัน)?(อาทิตย์|จันทร์|อังคาร|พุธ|พฤหัสบดี|พฤหัส|ศุกร์|เสาร์)(นี้|หน้า)"
    r"(?:\s*(\d{1,2})(?::(\d{2}))?)?"
)
_RE_LOOSE_AFTERNOON = re.compile(r"(?:ก่อน)?\s*บ่าย\s*(\d{1,2})(?::(\d{2}))?")
_RE_LOOSE_DATE = re.compile(r"(?<![\d/])(\d{1,2}/\d{1,2}(?:/\d{4})?)(?:\s+(\d{1,2}):(\d{2}))?(?![\d/])")


def _squash(s: str) -> str:
    return _RE_SPACES.sub(" ", s).strip()


def _tag_urgency(detail: str, note: str) -> tuple[str, str]:
    """Strip urgency/calm words from detail and note; record them in the note."""
    calm = bool(_RE_CALM.search(detail) or _RE_CALM.search(note))
    detail, note = _RE_CALM.sub(" ", detail), _RE_CALM.sub(" ", note)

    urgent = bool(_RE_URGENT.search(detail) or _RE_URGENT.search(note))
    detail, note = _RE_URGENT.sub(" ", detail), _RE_URGENT.sub(" ", note)

    detail, note = _squash(detail), _squash(note)
    if urgent:
        note = f"{URGENT_TAG} {note}".strip()
    elif calm:
        note = f"{note} {CALM_NOTE}".strip()
    return detail, note


def _clock_suffix(hh: str | None, mm: str | None) -> str | None:
    """' HH:MM' for a valid time, '' when absent, None when the digits are not a time."""
    if hh is None:
        return ""
    h, m = int(hh), int(mm or 0)
    if h > 23 or m > 59:
        return None
    return f" {h:02d}:{m:02d}"


def _extract_loose_deadline(body: str) -> tuple[str, str]:
    """Pull one date/time sub-phrase out of free text. Returns (phrase, remaining body)."""
    m = _RE_LOOSE_DAY.search(body)
    if m:
        suffix = _clock_suffix(m.group(2), m.group(3))
        if suffix is None:
            return m.group(1).lower(), body.replace(m.group(1), " ", 1)
        return m.group(1).lower() + suffix, body.replace(m.group(0), " ", 1)

    m = _RE_LOOSE_WEEKDAY.search(body)
    if m:
        word = m.group(1) + m.group(2)
        suffix = _clock_suffix(m.group(3), m.group(4))
        if suffix is None:
            return word, body.replace(m.group(0)[: m.group(0).index(word) + len(word)], " ", 1)
        return word + suffix, body.replace(m.group(0), " ", 1)

    m = _RE_LOOSE_AFTERNOON.search(body)
    if m:
        phrase = f"บ่าย {int(m.group(1))}" + (f":{m.group(2)}" if m.group(2) else "")
        return phrase, body.replace(m.group(0), " ", 1)

    m = _RE_LOOSE_DATE.search(body)
    if m:
        suffix = _clock_suffix(m.group(2), m.group(3))
        if suffix is None:
            return m.group(1), body.replace(m.group(1), " ", 1)
        return m.group(1) + suffix, body.replace(m.group(0), " ", 1)

    return "", body


# ---- extractors ----


def _assign_structured(m: re.Match[str]) -> Intent | None:
    ref = m.group(1).strip()
    body = m.group(2).strip().replace(";", "|")

    deadline = ""
    fm = _RE_FIELD_DEADLINE.search(body)
    if fm:
        deadline = fm.group(1).strip()
        body = body[: fm.start()] + body[fm.end() :]

    note = ""
    fm = _RE_FIELD_NOTE.search(body)
    if fm:
        note = fm.group(1).strip()
        body = body[: fm.start()] + body[fm.end() :]

    detail, note = _tag_urgency(body, note)
    detail = _RE_FILLER_SHORT.sub(" ", detail)
    detail = _RE_TRAILING_PIPES.sub("", _squash(detail))
    return Assign(
        assignee_ref=ref,
        detail=detail or EMPTY_DETAIL,
        deadline_phrase=deadline,
        note=note,
    )


def _assign_loose(m: re.Match[str]) -> Intent | None:
    ref = m.group(1).strip()
    body, note = _tag_urgency(m.group(2), "")
    body = _squash(_RE_FILLER_LOOSE.sub(" ", body))

    deadline, body = _extract_loose_deadline(body)

    detail = _squash(_RE_FILLER_LOOSE.sub(" ", body))
    return Assign(
        assignee_ref=ref,
        detail=detail or EMPTY_DETAIL,
        deadline_phrase=deadline,
        note=note,
    )


def _register(m: re.Match[str]) -> Intent | None:
    payload = m.group(1).strip()

    if "," in payload or "|" in payload:
        parts = [p.strip() for p in re.split(r"\s*[,|]\s*", payload) if p.strip()]
        username, real_name, role = (parts + ["", "", ""])[:3]
        return Register(username=username, real_name=real_name, role=role.lower())

    parts = payload.split()
    if len(parts) < 2:
        return Register(username=parts[0] if parts else "", real_name="", role="")

    username, last = parts[0], parts[-1]
    if is_role_word(last):
        return Register(username=username, real_name=" ".join(parts[1:-1]), role=last.lower())
    return Register(username=username, real_name=" ".join(parts[1:]), role="")


def _date_range(m: re.Match[str]) -> Intent | None:
    return ListTasks(view=ListView.MINE_RANGE, date_from=m.group(1), date_to=m.group(2))


def _const(intent: Intent) -> Callable[[re.Match[str]], Intent | None]:
    return lambda _m: intent


@dataclass(frozen=True, slots=True)
class Rule:
    name: str
    pattern: re.Pattern[str]
    extract: Callable[[re.Match[str]], Intent | None]


RULES: tuple[Rule, ...] = (
    # 1-2: assignments
    Rule("assign", re.compile(r"^@([^\s:：]+)\s*[:：]\s*(.+)$", re.DOTALL), _assign_structured),
    Rule("assign_loose", re.compile(r"^@([^\s:：]+)\s+(.+)$", re.DOTALL), _assign_loose),
    # 3: registration
    Rule(
        "register",
        re.compile(r"^(?:ลงทะเบียน|สมัคร|ลงชื่อ|register|signup)(?:\s*[:：]\s*|\s+)(.+)$", _IS),
        _register,
    ),
    # 4: status transitions
    Rule("done", re.compile(rf"^done\s+{TASK_ID}$", _I), lambda m: SetStatus(m.group(1), TaskStatus.DONE.value)),
    Rule(
        "doing",
        re.compile(rf"^กำลังดำเนินการ\s+{TASK_ID}$", _I),
        lambda m: SetStatus(m.group(1), TaskStatus.DOING.value),
    ),
    # 5: field edits
    Rule(
        "set_deadline",
        re.compile(rf"^(?:ตั้งกำหนดส่ง|แก้เดดไลน์)\s+{TASK_ID}{COLON}(.+)$", _IS),
        lambda m: SetDeadline(m.group(1), m.group(2).strip()),
    ),
    Rule(
        "add_note",
        re.compile(rf"^เพิ่มโน้ต\s+{TASK_ID}{COLON}(.+)$", _IS),
        lambda m: AddNote(m.group(1), m.group(2).strip()),
    ),
    Rule(
        "edit_detail",
        re.compile(rf"^แก้รายละเอียด\s+{TASK_ID}{COLON}(.+)$", _IS),
        lambda m: EditDetail(m.group(1), m.group(2).strip()),
    ),
    # 6: reassignment
    Rule(
        "reassign",
        re.compile(rf"^เปลี่ยนผู้รับ\s+{TASK_ID}{COLON}@?(\S+)$", _I),
        lambda m: Reassign(m.group(1), m.group(2).strip()),
    ),
    # 7: reminder
    Rule("remind", re.compile(rf"^(?:เตือน|remind)\s+{TASK_ID}$", _I), lambda m: Remind(m.group(1))),
    # 8: drafts
    Rule("confirm_draft", re.compile(rf"^ยืนยันมอบหมาย(?:\s+{DRAFT_ID})?$"), lambda m: ConfirmDraft(m.group(1))),
    Rule("cancel_draft", re.compile(rf"^ยกเลิกมอบหมาย(?:\s+{DRAFT_ID})?$"), lambda m: CancelDraft(m.group(1))),
    # 9: pagination
    Rule("page_next", re.compile(r"^(?:ถัดไป(?:\s*→)?|next)$", _I), _const(PageNext())),
    Rule("page_prev", re.compile(r"^(?:(?:←\s*)?ก่อนหน้า|prev|previous)$", _I), _const(PagePrev())),
    # menu literals
    Rule("help", re.compile(r"^(?:ช่วยเหลือ|help)$", _I), _const(ShowHelp(HelpTopic.GENERAL))),
    Rule("help_assign", re.compile(r"^สั่งงาน$"), _const(ShowHelp(HelpTopic.ASSIGN))),
    Rule(
        "help_register",
        re.compile(r"^(?:ลงทะเบียน|สมัคร|register|signup)$", _I),
        _const(ShowHelp(HelpTopic.REGISTER)),
    ),
    Rule("list_pending", re.compile(r"^ดูงานค้างทั้งหมด$"), _const(ListTasks(ListView.MINE_PENDING))),
    Rule("list_assigned", re.compile(r"^(?:ดู)?งานที่ฉันสั่ง$"), _const(ListTasks(ListView.MINE_ASSIGNED))),
    Rule("list_today", re.compile(r"^(?:งานคงเหลือวันนี้|งานของฉันวันนี้)$"), _const(ListTasks(ListView.TODAY))),
    Rule(
        "list_range",
        re.compile(r"^ดูงานของฉันทั้งหมด\s*[:：]\s*(\d{2}/\d{2}/\d{4})\s*-\s*(\d{2}/\d{2}/\d{4})$"),
        _date_range,
    ),
    Rule("list_users", re.compile(r"^ดูผู้ใช้งานทั้งหมด$"), _const(ListUsers())),
    Rule(
        "preset",
        re.compile(r"^preset=(urgent|due_today_1730|due_tmrw_0900)$"),
        lambda m: SetPreset(Preset(m.group(1))),
    ),
)


def parse(text: str, rules: tuple[Rule, ...] = RULES) -> Intent:
    """Classify one message. Never raises; unknown text -> Unrecognized."""
    s = (text or "").strip()
    if not s:
        return Unrecognized(s)
    for rule in rules:
        m = rule.pattern.match(s)
        if m is None:
            continue
        intent = rule.extract(m)
        if intent is not None:
            return intent
    return Unrecognized(s)
