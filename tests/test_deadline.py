# tests/test_deadline.py

from __future__ import annotations

from datetime import datetime

import pytest

from taskline.core.errors import InvalidDeadline
from taskline.parsing.deadline import (
    display_deadline,
    finalize_deadline,
    format_deadline,
    parse_deadline,
    resolve,
)

from .conftest import NOW


@pytest.mark.parametrize(
    ("phrase", "expected"),
    [
        ("พรุ่งนี้", datetime(2025, 3, 13, 9, 0)),
        ("วันนี้", datetime(2025, 3, 12, 17, 30)),
        ("+2d 08:00", datetime(2025, 3, 14, 8, 0)),
        ("+1d", datetime(2025, 3, 13, 17, 30)),
        ("TOMORROW 14:15", datetime(2025, 3, 13, 14, 15)),
        ("ก่อนบ่าย 3", datetime(2025, 3, 12, 15, 0)),
        ("บ่าย 3:30", datetime(2025, 3, 12, 15, 30)),
        ("12/03 14:00", datetime(2025, 3, 12, 14, 0)),
        ("1/4", datetime(2025, 4, 1, 17, 30)),
        ("ศุกร์นี้", datetime(2025, 3, 14, 17, 30)),
        ("วันจันทร์หน้า 10:00", datetime(2025, 3, 17, 10, 0)),
    ],
)
def test_resolve_recognized_phrases(phrase: str, expected: datetime) -> None:
    assert resolve(phrase, NOW) == expected


def test_same_weekday_rolls_to_next_week() -> None:
    # NOW is a Wednesday.
    assert resolve("พุธนี้", NOW) == datetime(2025, 3, 19, 17, 30)
    assert resolve("พุธหน้า", NOW) == datetime(2025, 3, 19, 17, 30)


@pytest.mark.parametrize("phrase", ["", "เร็วๆ นี้", "31/02", "today 25:00", "บ่าย 0", "+xd"])
def test_resolve_passes_unknown_phrases_through(phrase: str) -> None:
    assert resolve(phrase, NOW) == phrase


def test_finalize_deadline() -> None:
    assert finalize_deadline("", NOW) == ""
    assert finalize_deadline(None, NOW) == ""
    assert finalize_deadline("พรุ่งนี้", NOW) == "2025-03-13T09:00:00"
    # Already absolute values are stored as typed.
    assert finalize_deadline("20/03/2025 14:00", NOW) == "20/03/2025 14:00"
    assert finalize_deadline("2025-03-20T08:00:00", NOW) == "2025-03-20T08:00:00"

    with pytest.raises(InvalidDeadline) as exc:
        finalize_deadline("เร็วๆ นี้", NOW)
    assert exc.value.phrase == "เร็วๆ นี้"


def test_parse_deadline_formats() -> None:
    assert parse_deadline("2025-03-12T14:00:00") == datetime(2025, 3, 12, 14, 0)
    assert parse_deadline("12/03/2025 14:00") == datetime(2025, 3, 12, 14, 0)
    assert parse_deadline("12/03/2025") == datetime(2025, 3, 12, 0, 0)

    aware = parse_deadline("2025-03-12T07:00:00+00:00")
    assert aware is not None and aware.tzinfo is None

    for bad in (None, "", "  ", "soon", "32/13/2025"):
        assert parse_deadline(bad) is None


def test_display_and_format() -> None:
    assert format_deadline(datetime(2025, 3, 12, 14, 0)) == "2025-03-12T14:00:00"
    assert display_deadline("2025-03-12T14:00:00") == "2025-03-12 14:00"
    assert display_deadline("") == "-"
