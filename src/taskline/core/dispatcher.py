# src/taskline/core/dispatcher.py

"""
CommandDispatcher: one incoming chat message -> parse -> handler -> reply.

This is the error boundary for the whole core:
- CommandError subclasses become their Thai user message,
- anything else is logged and answered with a generic failure,
- failing to deliver the reply is logged, never raised.

One event's failure never affects the next one.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, TypeVar

from ..parsing.deadline import display_deadline, finalize_deadline
from ..parsing.intents import (
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
    Reassign,
    Register,
    Remind,
    SetDeadline,
    SetPreset,
    SetStatus,
    ShowHelp,
    Unrecognized,
)
from ..parsing.parser import parse
from ..tasks import task_api
from ..tasks.ordering import remaining_today, sort_by_status_due, sort_by_urgency, sort_for_today
from ..tasks.task_models import (
    TaskFilter,
    TaskRecord,
    TaskStatus,
    UserIdentity,
    normalize_role,
    role_label,
    role_rank,
)
from .drafts import DraftWorkflow, pick_assignee
from .errors import (
    AmbiguousReference,
    AuthorizationDenied,
    CommandError,
    ParseFailure,
    StoreError,
    StoreFailure,
)
from .pager import Pager
from .ports import Messenger, OutboundMessage, QuickChoice, TaskStore, UserDirectory
from .render import (
    assignment_choice,
    page_message,
    preview_card,
    status_label,
    task_card,
    task_row,
    user_row,
)
from .state import SessionState

logger = logging.getLogger(__name__)

T = TypeVar("T")
Handler = Callable[[str, Any], Awaitable[OutboundMessage]]

HELP_GENERAL = "\n".join(
    [
        "วิธีใช้งาน (สั้นๆ)",
        "",
        "ลงทะเบียน",
        "• ลงทะเบียน po ปอ อนุชา user",
        "",
        "สั่งงาน",
        "• @po ปรับรายงาน พรุ่งนี้ 09:00",
        "• @test ทำป้าย ก่อนบ่าย 3",
        "• @po: งาน",
        "  | กำหนดส่ง: 12/03 14:00",
        "  | note: ไม่รีบ",
        "",
        "เปลี่ยนสถานะ",
        "• done TASK_xxxxxxxx",
        "• กำลังดำเนินการ TASK_xxxxxxxx",
        "",
        "เดดไลน์ / โน้ต / ผู้รับ",
        "• ตั้งกำหนดส่ง TASK_xxxxxxxx: พรุ่งนี้ 17:30",
        "• เพิ่มโน้ต TASK_xxxxxxxx: ขอไฟล์ ai",
        "• แก้รายละเอียด TASK_xxxxxxxx: ข้อความใหม่",
        "• เปลี่ยนผู้รับ TASK_xxxxxxxx: @test",
        "• เตือน TASK_xxxxxxxx",
        "",
        "ดูรายการ",
        "• ดูงานค้างทั้งหมด",
        "• งานที่ฉันสั่ง",
        "• งานของฉันวันนี้",
        "• ดูงานของฉันทั้งหมด: 01/03/2025 - 31/03/2025",
        "• ดูผู้ใช้งานทั้งหมด",
    ]
)

HELP_ASSIGN = [
    "📝 สั่งงาน — พิมพ์แบบนี้",
    "",
    "ตัวอย่าง:",
    "• @po ปรับรายงาน พรุ่งนี้ 09:00",
    "• @test ขอทำป้ายหน้าร้าน ก่อนบ่าย 3 นะ",
    "• @po ทำ rich menu วันนี้ ด่วน",
    "",
    "เกร็ดสั้น ๆ:",
    "• ไม่ใส่เวลา → ใช้ 17:30 อัตโนมัติ",
    '• "ก่อนบ่าย 3" = วันนี้ 15:00',
    "• ใส่คำว่า ด่วน/urgent → ติดแท็ก [URGENT]",
]

REGISTER_USAGE = "ลงทะเบียนแบบนี้: ลงทะเบียน username ชื่อจริง [บทบาท]\nเช่น ลงทะเบียน po ปอ อนุชา user"
ASSIGN_SAMPLE_SIZE = 15


def _dmy_to_iso(value: str) -> str:
    """DD/MM/YYYY -> YYYY-MM-DD, validating the date."""
    try:
        return datetime.strptime(value, "%d/%m/%Y").date().isoformat()
    except ValueError as e:
        raise ParseFailure(f"วันที่ไม่ถูกต้อง: {value} (ใช้รูปแบบ DD/MM/YYYY)") from e


class CommandDispatcher:
    def __init__(
        self,
        *,
        store: TaskStore,
        directory: UserDirectory,
        messenger: Messenger,
        sessions: SessionState,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._directory = directory
        self._messenger = messenger
        self._clock = clock
        self.drafts = DraftWorkflow(
            store=store,
            directory=directory,
            drafts=sessions.drafts,
            presets=sessions.presets,
        )
        self.pager = Pager(sessions.cursors)

        self._handlers: dict[type[Intent], Handler] = {
            Register: self._on_register,
            Assign: self._on_assign,
            ConfirmDraft: self._on_confirm,
            CancelDraft: self._on_cancel,
            SetStatus: self._on_set_status,
            SetDeadline: self._on_set_deadline,
            EditDetail: self._on_edit_detail,
            AddNote: self._on_add_note,
            Reassign: self._on_reassign,
            Remind: self._on_remind,
            PageNext: self._on_page_next,
            PagePrev: self._on_page_prev,
            ShowHelp: self._on_help,
            ListTasks: self._on_list_tasks,
            ListUsers: self._on_list_users,
            SetPreset: self._on_preset,
            Unrecognized: self._on_unrecognized,
        }

    # ---- entry point ----

    async def handle_text(self, user_id: str, text: str, reply_token: str) -> None:
        intent = parse(text)
        logger.debug("Intent user=%s kind=%s", user_id, type(intent).__name__)

        try:
            message = await self.dispatch(user_id, intent)
        except CommandError as e:
            logger.info("Command rejected user=%s kind=%s error=%s", user_id, type(intent).__name__, type(e).__name__)
            message = OutboundMessage(text=e.user_message)
        except Exception:
            logger.exception("Unexpected failure user=%s kind=%s", user_id, type(intent).__name__)
            message = OutboundMessage(text=CommandError.user_message)

        try:
            await self._messenger.reply(reply_token, message)
        except Exception:
            logger.exception("Reply failed user=%s token=%s", user_id, reply_token)

    async def dispatch(self, user_id: str, intent: Intent) -> OutboundMessage:
        handler = self._handlers.get(type(intent))
        if handler is None:
            raise ParseFailure()
        return await handler(user_id, intent)

    # ---- collaborator helpers ----

    async def _dir(self, call: Awaitable[T]) -> T:
        try:
            return await call
        except StoreError as e:
            logger.exception("User directory call failed")
            raise StoreFailure() from e

    async def _whoami(self, user_id: str) -> UserIdentity | None:
        return await self._dir(self._directory.get_user(user_id))

    async def _display_name(self, user_id: str) -> str:
        me = await self._whoami(user_id)
        return me.display_name if me else user_id

    async def _notify(self, user_id: str, message: OutboundMessage) -> bool:
        """Push to another user. The command already succeeded, so a push failure is only logged."""
        if not user_id:
            return False
        try:
            await self._messenger.push(user_id, message)
            return True
        except Exception:
            logger.exception("Push failed to=%s", user_id)
            return False

    @staticmethod
    def _require_assigner(task: TaskRecord, user_id: str) -> None:
        if task.assigner_id != user_id:
            raise AuthorizationDenied()

    @staticmethod
    def _require_participant(task: TaskRecord, user_id: str, message: str) -> None:
        if user_id not in (task.assigner_id, task.assignee_id):
            raise AuthorizationDenied(message)

    # ---- registration ----

    async def _on_register(self, user_id: str, intent: Register) -> OutboundMessage:
        if not intent.username or not intent.real_name:
            raise ParseFailure(REGISTER_USAGE)

        now = self._clock()
        existing = await self._whoami(user_id)
        if intent.role:
            role = normalize_role(intent.role).value
        else:
            role = existing.role if existing else normalize_role(None).value

        user = UserIdentity(
            user_id=user_id,
            username=intent.username.lstrip("@"),
            real_name=intent.real_name,
            role=role,
            status="Active",
            updated_at=task_api.timestamp(now),
        )
        await self._dir(self._directory.upsert_user(user))
        logger.info("User registered user=%s username=%s role=%s new=%s", user_id, user.username, role, existing is None)

        head = "อัปเดตข้อมูลเรียบร้อย ✅" if existing else "ลงทะเบียนสำเร็จ ✅"
        return OutboundMessage(text=f"{head}\n@{user.username} – {user.real_name} ({role_label(role)})")

    # ---- drafts ----

    async def _on_assign(self, user_id: str, intent: Assign) -> OutboundMessage:
        try:
            draft = await self.drafts.propose(user_id, intent, self._clock())
        except AmbiguousReference as e:
            choices = tuple(
                assignment_choice(u, intent.detail, intent.deadline_phrase, intent.note) for u in e.candidates
            )
            return OutboundMessage(text=e.user_message, choices=choices)

        card = preview_card(draft.draft_id, draft.assignee, intent.detail, draft.deadline, draft.note)
        return OutboundMessage(
            text=f"ร่างงาน {draft.draft_id} กดยืนยันเพื่อมอบหมาย",
            cards=(card,),
            choices=card.actions,
        )

    async def _on_confirm(self, user_id: str, intent: ConfirmDraft) -> OutboundMessage:
        assigner_name = await self._display_name(user_id)
        record, assignee = await self.drafts.confirm(
            user_id,
            intent.draft_id,
            assigner_name=assigner_name,
            now=self._clock(),
        )

        if assignee.user_id != user_id:
            await self._notify(
                assignee.user_id,
                OutboundMessage(
                    text=f"📥 งานใหม่จาก {assigner_name}",
                    cards=(task_card(record, "งานใหม่", for_assignee=True),),
                ),
            )
        return OutboundMessage(
            text=f"มอบหมายงานให้ {assignee.display_name} แล้ว ✅",
            cards=(task_card(record, "มอบหมายแล้ว"),),
        )

    async def _on_cancel(self, user_id: str, intent: CancelDraft) -> OutboundMessage:
        draft = self.drafts.cancel(user_id, intent.draft_id)
        return OutboundMessage(text=f"ยกเลิกรายการร่าง {draft.draft_id} แล้ว")

    async def _on_preset(self, user_id: str, intent: SetPreset) -> OutboundMessage:
        preset = self.drafts.set_preset(user_id, intent.preset)
        parts = []
        if preset.urgent:
            parts.append("ด่วน [URGENT]")
        if preset.deadline:
            parts.append(f"กำหนดส่ง {preset.deadline}")
        return OutboundMessage(text="ตั้งค่าสำหรับงานถัดไปแล้ว: " + ", ".join(parts))

    # ---- task mutations ----

    async def _on_set_status(self, user_id: str, intent: SetStatus) -> OutboundMessage:
        task = await task_api.get_task(self._store, intent.task_id)
        self._require_participant(task, user_id, "อัปเดตสถานะได้เฉพาะผู้รับงานหรือผู้สั่งงานครับ")

        updated = await task_api.update_task(self._store, task, self._clock(), status=intent.status)
        label = status_label(updated.status)

        other = task.assigner_id if user_id == task.assignee_id else task.assignee_id
        if other and other != user_id:
            who = await self._display_name(user_id)
            await self._notify(
                other,
                OutboundMessage(
                    text=f"🔔 {who} อัปเดตสถานะงานเป็น {label}",
                    cards=(task_card(updated, "อัปเดตสถานะ", for_assignee=other == task.assignee_id),),
                ),
            )
        done = " 🎉" if intent.status == TaskStatus.DONE else ""
        return OutboundMessage(text=f"อัปเดตสถานะ {task.task_id} เป็น {label} แล้ว{done}")

    async def _on_set_deadline(self, user_id: str, intent: SetDeadline) -> OutboundMessage:
        task = await task_api.get_task(self._store, intent.task_id)
        self._require_assigner(task, user_id)

        deadline = finalize_deadline(intent.deadline_phrase, self._clock())
        updated = await task_api.update_task(self._store, task, self._clock(), deadline=deadline)

        if task.assignee_id and task.assignee_id != user_id:
            await self._notify(
                task.assignee_id,
                OutboundMessage(
                    text=f"📅 กำหนดส่งใหม่: {display_deadline(deadline)}",
                    cards=(task_card(updated, "เปลี่ยนกำหนดส่ง", for_assignee=True),),
                ),
            )
        return OutboundMessage(text=f"ตั้งกำหนดส่ง {task.task_id} เป็น {display_deadline(deadline)} แล้ว")

    async def _on_edit_detail(self, user_id: str, intent: EditDetail) -> OutboundMessage:
        task = await task_api.get_task(self._store, intent.task_id)
        self._require_assigner(task, user_id)

        updated = await task_api.update_task(self._store, task, self._clock(), task_detail=intent.detail)
        if task.assignee_id and task.assignee_id != user_id:
            await self._notify(
                task.assignee_id,
                OutboundMessage(
                    text="✏️ รายละเอียดงานถูกแก้ไข",
                    cards=(task_card(updated, "แก้รายละเอียด", for_assignee=True),),
                ),
            )
        return OutboundMessage(text=f"แก้รายละเอียด {task.task_id} แล้ว")

    async def _on_add_note(self, user_id: str, intent: AddNote) -> OutboundMessage:
        task = await task_api.get_task(self._store, intent.task_id)
        self._require_participant(task, user_id, "เพิ่มโน้ตได้เฉพาะผู้สั่งงานหรือผู้รับงานครับ")

        note = task_api.append_note(task.note, intent.note)
        updated = await task_api.update_task(self._store, task, self._clock(), note=note)

        other = task.assigner_id if user_id == task.assignee_id else task.assignee_id
        if other and other != user_id:
            who = await self._display_name(user_id)
            await self._notify(
                other,
                OutboundMessage(
                    text=f"📝 {who} เพิ่มโน้ต: {intent.note}",
                    cards=(task_card(updated, "โน้ตใหม่", for_assignee=other == task.assignee_id),),
                ),
            )
        return OutboundMessage(text=f"เพิ่มโน้ตใน {task.task_id} แล้ว")

    async def _on_reassign(self, user_id: str, intent: Reassign) -> OutboundMessage:
        task = await task_api.get_task(self._store, intent.task_id)
        self._require_assigner(task, user_id)

        candidates = await self._dir(self._directory.resolve(intent.assignee_ref))
        try:
            assignee = pick_assignee(intent.assignee_ref, candidates)
        except AmbiguousReference as e:
            choices = tuple(
                QuickChoice(u.display_name, f"เปลี่ยนผู้รับ {task.task_id}: @{u.username or u.user_id}")
                for u in e.candidates
            )
            return OutboundMessage(text=e.user_message, choices=choices)

        if assignee.user_id == task.assignee_id:
            return OutboundMessage(text=f"{assignee.display_name} เป็นผู้รับงานนี้อยู่แล้ว")

        updated = await task_api.update_task(
            self._store,
            task,
            self._clock(),
            assignee_id=assignee.user_id,
            assignee_name=assignee.display_name,
        )

        if assignee.user_id != user_id:
            await self._notify(
                assignee.user_id,
                OutboundMessage(
                    text=f"📥 คุณได้รับงานต่อจาก {task.assignee_name or '-'}",
                    cards=(task_card(updated, "งานใหม่", for_assignee=True),),
                ),
            )
        if task.assignee_id and task.assignee_id != user_id:
            await self._notify(
                task.assignee_id,
                OutboundMessage(text=f"งาน {task.task_id} ถูกโอนให้ {assignee.display_name} แล้ว"),
            )
        return OutboundMessage(text=f"เปลี่ยนผู้รับ {task.task_id} เป็น {assignee.display_name} แล้ว")

    async def _on_remind(self, user_id: str, intent: Remind) -> OutboundMessage:
        task = await task_api.get_task(self._store, intent.task_id)
        self._require_assigner(task, user_id)

        if task.is_done:
            return OutboundMessage(text=f"งาน {task.task_id} เสร็จแล้ว ไม่ต้องเตือนครับ")

        sent = await self._notify(
            task.assignee_id,
            OutboundMessage(
                text=f"⏰ เตือนงานจาก {task.assigner_name or '-'}",
                cards=(task_card(task, "เตือนงาน", for_assignee=True),),
            ),
        )
        if not sent:
            raise StoreFailure("ส่งการเตือนไม่สำเร็จ กรุณาลองใหม่อีกครั้ง")
        return OutboundMessage(text=f"ส่งการเตือน {task.task_id} ให้ {task.assignee_name or '-'} แล้ว")

    # ---- lists & pagination ----

    async def _on_page_next(self, user_id: str, intent: PageNext) -> OutboundMessage:
        return self._page(user_id, +1)

    async def _on_page_prev(self, user_id: str, intent: PagePrev) -> OutboundMessage:
        return self._page(user_id, -1)

    def _page(self, user_id: str, step: int) -> OutboundMessage:
        view = self.pager.advance(user_id, step)
        if view is None:
            return OutboundMessage(text="ยังไม่มีรายการให้เลื่อนหน้า ลองเปิดรายการก่อนครับ")
        return page_message(view)

    async def _mine(self, user_id: str, *, date_from: str = "", date_to: str = "") -> list[TaskRecord]:
        me = await self._whoami(user_id)
        flt = TaskFilter(
            assignee_id=user_id,
            assignee_name=me.username if me else "",
            date_from=date_from,
            date_to=date_to,
        )
        return await task_api.list_tasks(self._store, flt)

    async def _on_list_tasks(self, user_id: str, intent: ListTasks) -> OutboundMessage:
        now = self._clock()

        if intent.view is ListView.MINE_ASSIGNED:
            tasks = sort_by_urgency(await task_api.list_tasks(self._store, TaskFilter(assigner_id=user_id)), now)
            rows = [task_row(t, show_assignee=True) for t in tasks]
            title, empty = "งานที่ฉันสั่ง", "ยังไม่มีงานที่คุณสั่ง"
        elif intent.view is ListView.TODAY:
            tasks = sort_for_today(remaining_today(await self._mine(user_id), now))
            rows = [task_row(t) for t in tasks]
            title, empty = "งานคงเหลือวันนี้", "วันนี้ไม่มีงานค้าง 🎉"
        elif intent.view is ListView.MINE_RANGE:
            d1, d2 = _dmy_to_iso(intent.date_from), _dmy_to_iso(intent.date_to)
            if d1 > d2:
                d1, d2 = d2, d1
            tasks = sort_by_status_due(await self._mine(user_id, date_from=d1, date_to=d2))
            rows = [task_row(t) for t in tasks]
            title, empty = f"งานของฉัน ({intent.date_from} - {intent.date_to})", "ไม่พบงานในช่วงที่ระบุ"
        else:
            tasks = sort_by_status_due(t for t in await self._mine(user_id) if not t.is_done)
            rows = [task_row(t) for t in tasks]
            title, empty = "งานค้างของฉัน", "ไม่มีงานค้าง 🎉"

        if not rows:
            return OutboundMessage(text=empty)
        view = self.pager.start(user_id, intent.view.value, rows, title)
        return page_message(view)

    async def _on_list_users(self, user_id: str, intent: ListUsers) -> OutboundMessage:
        users = await self._dir(self._directory.list_users())
        if not users:
            return OutboundMessage(text="ยังไม่มีผู้ใช้ในระบบ")
        users = sorted(users, key=lambda u: (role_rank(u.role), (u.real_name or u.username).lower()))
        view = self.pager.start(user_id, "users", [user_row(u) for u in users], "ผู้ใช้งานทั้งหมด")
        return page_message(view)

    # ---- help ----

    async def _on_help(self, user_id: str, intent: ShowHelp) -> OutboundMessage:
        if intent.topic is HelpTopic.ASSIGN:
            users = [u for u in await self._dir(self._directory.list_users()) if u.is_active]
            lines = list(HELP_ASSIGN)
            if users:
                lines += ["", "ผู้รับงานในระบบ (บางส่วน):"]
                for u in users[:ASSIGN_SAMPLE_SIZE]:
                    real = f" – {u.real_name}" if u.real_name else ""
                    lines.append(f"• @{u.username or u.user_id} ({role_label(u.role)}){real}")
                if len(users) > ASSIGN_SAMPLE_SIZE:
                    lines.append(f"… และอีก {len(users) - ASSIGN_SAMPLE_SIZE} คน")
            return OutboundMessage(text="\n".join(lines))

        if intent.topic is HelpTopic.REGISTER:
            me = await self._whoami(user_id)
            if me is None:
                return OutboundMessage(text=REGISTER_USAGE)
            return OutboundMessage(
                text=f"คุณลงทะเบียนแล้ว: @{me.username} – {me.real_name or '-'} ({role_label(me.role)})\n"
                "ต้องการแก้ไข พิมพ์ลงทะเบียนใหม่ได้เลย"
            )

        return OutboundMessage(text=HELP_GENERAL)

    async def _on_unrecognized(self, user_id: str, intent: Unrecognized) -> OutboundMessage:
        raise ParseFailure()
