# src/taskline/core/errors.py

"""
Error taxonomy for command handling.

Every CommandError carries the short Thai message shown to the issuing user.
The dispatcher is the only place that turns these into replies; anything that is
not a CommandError is treated as unexpected (logged, generic reply).
"""

from __future__ import annotations

from typing import Any


class CommandError(Exception):
    """Base class for failures that are reported back to the user."""

    user_message = "ทำรายการไม่สำเร็จ"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)
        if message:
            self.user_message = message


class ParseFailure(CommandError):
    user_message = (
        "ไม่เข้าใจคำสั่ง ลองพิมพ์แบบนี้:\n"
        "• @po ปรับรายงาน พรุ่งนี้ 09:00\n"
        "• done TASK_xxxxxxxx\n"
        "พิมพ์ ช่วยเหลือ เพื่อดูคำสั่งทั้งหมด"
    )


class AmbiguousReference(CommandError):
    """Several users match a reference; the caller offers `candidates` as choices."""

    user_message = "ไม่ชัดเจนว่าหมายถึงใคร เลือกจากด้านล่างได้เลย:"

    def __init__(self, reference: str, candidates: list[Any]) -> None:
        super().__init__()
        self.reference = reference
        self.candidates = candidates


class AssigneeNotFound(CommandError):
    user_message = "ไม่พบผู้รับ กรุณาใช้ @username"

    def __init__(self, reference: str = "") -> None:
        super().__init__()
        self.reference = reference


class AuthorizationDenied(CommandError):
    user_message = "คำสั่งนี้ใช้ได้เฉพาะผู้สั่งงานครับ"


class NotFound(CommandError):
    user_message = "ไม่พบรายการนั้นครับ"


class TaskNotFound(NotFound):
    user_message = "ไม่พบงานนั้นครับ"

    def __init__(self, task_id: str) -> None:
        super().__init__()
        self.task_id = task_id


class DraftNotFound(NotFound):
    user_message = "ไม่พบรายการร่าง"


class InvalidDeadline(CommandError):
    user_message = "รูปแบบกำหนดส่งไม่ถูกต้อง เช่น พรุ่งนี้ 09:00, +2d, 12/03 14:00"

    def __init__(self, phrase: str) -> None:
        super().__init__()
        self.phrase = phrase


class StoreFailure(CommandError):
    """A collaborator call (record store / directory) failed."""

    user_message = "ทำรายการไม่สำเร็จ กรุณาลองใหม่อีกครั้ง"


class StoreError(RuntimeError):
    """Raised by store implementations; wrapped into StoreFailure by callers."""
