# tests/test_parser.py

from __future__ import annotations

import re
from datetime import datetime

import pytest

from taskline.parsing.deadline import resolve
from taskline.parsing.intents import (
    AddNote,
    Assign,
    CancelDraft,
    ConfirmDraft,
    EditDetail,
    HelpTopic,
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
from taskline.parsing.parser import RULES, Rule, parse

from .conftest import NOW


def test_loose_assignment_with_relative_deadline() -> None:
    intent = parse("@po ส่งรายงาน พรุ่งนี้ 09:00")
    assert isinstance(intent, Assign)
    assert intent.assignee_ref == "po"
    assert intent.detail == "ส่งรายงาน"
    assert resolve(intent.deadline_phrase, NOW) == datetime(2025, 3, 13, 9, 0)


def test_structured_assignment_with_fields() -> None:
    intent = parse("@po: งาน | กำหนดส่ง: 12/03 14:00 | note: ด่วน")
    assert intent == Assign(assignee_ref="po", detail="งาน", deadline_phrase="12/03 14:00", note="[URGENT]")


def test_loose_assignment_strips_fillers_and_afternoon_phrase() -> None:
    intent = parse("@test ขอทำป้ายหน้าร้าน ก่อนบ่าย 3 นะ")
    assert isinstance(intent, Assign)
    assert intent.detail == "ขอทำป้ายหน้าร้าน"
    assert intent.deadline_phrase == "บ่าย 3"


def test_calm_words_are_not_urgent() -> None:
    intent = parse("@po: ทำสไลด์ | note: ไม่รีบ")
    assert isinstance(intent, Assign)
    assert "[URGENT]" not in intent.note
    assert intent.note == "ไม่รีบ"


def test_urgent_word_in_detail_moves_to_note() -> None:
    intent = parse("@po ทำ rich menu วันนี้ ด่วน")
    assert isinstance(intent, Assign)
    assert intent.detail == "ทำ rich menu"
    assert intent.deadline_phrase == "วันนี้"
    assert intent.note.startswith("[URGENT]")


def test_assignment_without_detail_gets_placeholder() -> None:
    intent = parse("@po: | กำหนดส่ง: พรุ่งนี้")
    assert isinstance(intent, Assign)
    assert intent.detail == "-"
    assert intent.deadline_phrase == "พรุ่งนี้"


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("ลงทะเบียน po ปอ อนุชา user", Register("po", "ปอ อนุชา", "user")),
        ("register: po, ปอ, admin", Register("po", "ปอ", "admin")),
        ("สมัคร test เทสต์", Register("test", "เทสต์", "")),
        ("done TASK_ab12cd34", SetStatus("TASK_ab12cd34", "done")),
        ("กำลังดำเนินการ TASK_ab12cd34", SetStatus("TASK_ab12cd34", "doing")),
        ("ตั้งกำหนดส่ง TASK_ab12cd34: พรุ่งนี้ 17:30", SetDeadline("TASK_ab12cd34", "พรุ่งนี้ 17:30")),
        ("เพิ่มโน้ต TASK_ab12cd34: ขอไฟล์ ai", AddNote("TASK_ab12cd34", "ขอไฟล์ ai")),
        ("แก้รายละเอียด TASK_ab12cd34: ข้อความใหม่", EditDetail("TASK_ab12cd34", "ข้อความใหม่")),
        ("เปลี่ยนผู้รับ TASK_ab12cd34: @test", Reassign("TASK_ab12cd34", "test")),
        ("เตือน TASK_ab12cd34", Remind("TASK_ab12cd34")),
        ("ยืนยันมอบหมาย TMP_a1b2c3", ConfirmDraft("TMP_a1b2c3")),
        ("ยืนยันมอบหมาย", ConfirmDraft(None)),
        ("ยกเลิกมอบหมาย TMP_a1b2c3", CancelDraft("TMP_a1b2c3")),
        ("ถัดไป →", PageNext()),
        ("← ก่อนหน้า", PagePrev()),
        ("ช่วยเหลือ", ShowHelp(HelpTopic.GENERAL)),
        ("สั่งงาน", ShowHelp(HelpTopic.ASSIGN)),
        ("ลงทะเบียน", ShowHelp(HelpTopic.REGISTER)),
        ("ดูงานค้างทั้งหมด", ListTasks(ListView.MINE_PENDING)),
        ("งานที่ฉันสั่ง", ListTasks(ListView.MINE_ASSIGNED)),
        ("งานของฉันวันนี้", ListTasks(ListView.TODAY)),
        (
            "ดูงานของฉันทั้งหมด: 01/03/2025 - 31/03/2025",
            ListTasks(ListView.MINE_RANGE, "01/03/2025", "31/03/2025"),
        ),
        ("ดูผู้ใช้งานทั้งหมด", ListUsers()),
        ("preset=due_tmrw_0900", SetPreset(Preset.DUE_TMRW_0900)),
    ],
)
def test_command_grammar(text: str, expected: object) -> None:
    assert parse(text) == expected


@pytest.mark.parametrize("text", ["", "   ", "สวัสดี", "สมัครงาน", "done TASK_", "preset=later"])
def test_unknown_text_is_unrecognized(text: str) -> None:
    assert isinstance(parse(text), Unrecognized)


def test_rules_are_data_driven() -> None:
    extra = Rule("ping", re.compile(r"^ping$"), lambda _m: ShowHelp(HelpTopic.ASSIGN))
    assert isinstance(parse("ping"), Unrecognized)
    assert parse("ping", RULES + (extra,)) == ShowHelp(HelpTopic.ASSIGN)


def test_structured_assign_name_stops_at_whitespace() -> None:
    intent = parse("@ปอ อนุชา: งาน")
    assert isinstance(intent, Assign)
    assert intent.assignee_ref == "ปอ"
    assert intent.detail.startswith("อนุชา")
