# src/taskline/core/render.py

"""Outbound content builders (cards, tables, choices) and a plain-text renderer for text-only connectors."""

from __future__ import annotations

from ..parsing.deadline import display_deadline, parse_deadline
from ..tasks.task_models import STATUS_LABELS, TaskRecord, UserIdentity, role_label
from .pager import PageView
from .ports import Card, OutboundMessage, QuickChoice

NEXT_LABEL = "ถัดไป →"
PREV_LABEL = "← ก่อนหน้า"


def clip(text: str | None, limit: int) -> str:
    s = " ".join((text or "").split())
    if len(s) <= limit:
        return s
    return s[: max(0, limit - 1)] + "…"


def short_id(task_id: str) -> str:
    return task_id[-6:] if len(task_id) > 6 else task_id


def status_label(status: str | None) -> str:
    key = (status or "").strip().lower()
    return STATUS_LABELS.get(key, key or "-")


def short_date(value: str | None) -> str:
    """Stored timestamp -> DD/MM for table cells."""
    dt = parse_deadline(value)
    return dt.strftime("%d/%m") if dt else "-"


# ---- task content ----


def task_card(task: TaskRecord, title: str = "งาน", *, for_assignee: bool = False) -> Card:
    actions: tuple[QuickChoice, ...] = ()
    if for_assignee and not task.is_done:
        actions = (
            QuickChoice("กำลังดำเนินการ", f"กำลังดำเนินการ {task.task_id}"),
            QuickChoice("เสร็จแล้ว", f"done {task.task_id}"),
        )
    return Card(
        kind="task",
        title=f"{title} #{task.task_id}",
        fields=(
            ("รายละเอียด", task.task_detail or "-"),
            ("ผู้สั่ง", task.assigner_name or task.assigner_id or "-"),
            ("ผู้รับ", task.assignee_name or task.assignee_id or "-"),
            ("กำหนดส่ง", display_deadline(task.deadline)),
            ("สถานะ", status_label(task.status)),
            ("โน้ต", task.note or "-"),
        ),
        actions=actions,
    )


def preview_card(draft_id: str, assignee: UserIdentity, detail: str, deadline: str, note: str) -> Card:
    return Card(
        kind="preview",
        title="ตรวจสอบก่อนมอบหมาย",
        fields=(
            ("ผู้รับ", assignee.display_name),
            ("รายละเอียด", detail or "-"),
            ("กำหนดส่ง", display_deadline(deadline)),
            ("โน้ต", note or "-"),
        ),
        actions=(
            QuickChoice("ยืนยัน", f"ยืนยันมอบหมาย {draft_id}"),
            QuickChoice("ยกเลิก", f"ยกเลิกมอบหมาย {draft_id}"),
        ),
    )


def assignment_choice(user: UserIdentity, detail: str, deadline_phrase: str, note: str) -> QuickChoice:
    """Re-issues a structured assignment for one specific candidate."""
    parts = [f"@{user.username or user.user_id}: {detail}"]
    if deadline_phrase:
        parts.append(f"กำหนดส่ง: {deadline_phrase}")
    if note:
        parts.append(f"note: {note}")
    label = clip(f"{user.display_name} ({user.real_name})" if user.real_name else user.display_name, 20)
    return QuickChoice(label=label, text=" | ".join(parts))


# ---- table rows ----


def task_row(task: TaskRecord, *, show_assignee: bool = False) -> tuple[str, str, str, str]:
    third = (task.assignee_name or task.assignee_id or "-") if show_assignee else display_deadline(task.deadline)
    return (
        short_date(task.created_date),
        f"{clip(task.task_detail, 40)} (#{short_id(task.task_id)})",
        third,
        status_label(task.status),
    )


def user_row(user: UserIdentity) -> tuple[str, str, str, str]:
    name = user.display_name
    if user.real_name and user.real_name != name:
        name = f"{name} / {user.real_name}"
    return (short_date(user.updated_at), f"{name} ({role_label(user.role)})", user.status or "-", "")


def page_message(view: PageView, text: str = "") -> OutboundMessage:
    choices: list[QuickChoice] = []
    if view.has_prev:
        choices.append(QuickChoice(PREV_LABEL, PREV_LABEL))
    if view.has_next:
        choices.append(QuickChoice(NEXT_LABEL, NEXT_LABEL))
    card = Card(kind="table", title=view.title, headers=view.headers, rows=view.rows)
    return OutboundMessage(text=text, choices=tuple(choices), cards=(card,))


# ---- text-only connectors ----


def to_plain_text(message: OutboundMessage) -> str:
    lines: list[str] = []
    if message.text:
        lines.append(message.text)

    for card in message.cards:
        if lines:
            lines.append("")
        lines.append(f"[{card.title}]")
        if card.kind == "table":
            if card.headers:
                lines.append(" | ".join(card.headers))
            if not card.rows:
                lines.append("(ไม่มีรายการ)")
            for row in card.rows:
                lines.append(" | ".join(c for c in row if c))
        else:
            for label, value in card.fields:
                lines.append(f"{label}: {value}")
        for action in card.actions:
            lines.append(f"  > {action.label}: {action.text}")

    if message.choices:
        lines.append("")
        for i, ch in enumerate(message.choices, 1):
            lines.append(f"  {i}) {ch.label}" + ("" if ch.text == ch.label else f"  ->  {ch.text}"))
    return "\n".join(lines)
