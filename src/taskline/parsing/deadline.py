# src/taskline/parsing/deadline.py

"""
Deadline phrases.

Two different parsers live here and they must not be merged:

- resolve(): relative/ambiguous chat phrases ("พรุ่งนี้", "+2d 08:00", "พุธหน้า")
  -> absolute local datetime. Unknown phrases are returned unchanged.
- parse_deadline(): already-stored deadline strings (ISO or DD/MM/YYYY[ HH:MM])
  -> datetime, used by ordering and digests. Unknown strings -> None.

Neither function raises for any input.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta

from ..core.errors import InvalidDeadline

# Defaults by context: end-of-day for "today"/generic dates, start-of-day for "tomorrow".
END_OF_DAY = (17, 30)
START_OF_DAY = (9, 0)

THAI_WEEKDAYS: dict[str, int] = {
    # datetime.weekday(): Monday == 0
    "จันทร์": 0,
    "อังคาร": 1,
    "พุธ": 2,
    "พฤหัส": 3,
    "พฤหัสบดี": 3,
    "ศุกร์": 4,
    "เสาร์": 5,
    "อาทิตย์": 6,
}

TODAY_WORDS = ("วันนี้", "today")
TOMORROW_WORDS = ("พรุ่งนี้", "tomorrow")

_TIME = r"(?:\s+(\d{1,2}):(\d{2}))?"

_RE_PLUS_DAYS = re.compile(r"^\+(\d+)d" + _TIME + r"$")
_RE_TODAY_TOMORROW = re.compile(r"^(วันนี้|พรุ่งนี้|today|tomorrow)" + _TIME + r"$")
_RE_AFTERNOON = re.compile(r"^(?:ก่อน)?\s*บ่าย\s*(\d{1,2})(?::(\d{2}))?$")
_RE_WEEKDAY = re.compile(r"^(?:วัน)?([\u0e00-\u0e7f]+?)(นี้|หน้า)" + _TIME + r"$")
_RE_DAY_MONTH = re.compile(r"^(\d{1,2})/(\d{1,2})" + _TIME + r"$")

_RE_ABS_DMY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:\s+(\d{1,2}):(\d{2}))?$")


def _clock(hh: str | None, mm: str | None, default: tuple[int, int]) -> tuple[int, int] | None:
    """Explicit HH:MM if given, else the default. None if out of range."""
    if hh is None:
        return default
    h, m = int(hh), int(mm or 0)
    if not (0 <= h <= 23 and 0 <= m <= 59):
        return None
    return h, m


def _at(day: date, hm: tuple[int, int] | None) -> datetime | None:
    if hm is None:
        return None
    return datetime.combine(day, time(hm[0], hm[1]))


def _next_weekday(today: date, target: int) -> date:
    # Nearest future occurrence, never today itself.
    diff = (target - today.weekday()) % 7
    if diff == 0:
        diff = 7
    return today + timedelta(days=diff)


def _resolve(s: str, now: datetime) -> datetime | None:
    today = now.date()

    m = _RE_PLUS_DAYS.match(s)
    if m:
        return _at(today + timedelta(days=int(m.group(1))), _clock(m.group(2), m.group(3), END_OF_DAY))

    m = _RE_TODAY_TOMORROW.match(s)
    if m:
        if m.group(1) in TOMORROW_WORDS:
            return _at(today + timedelta(days=1), _clock(m.group(2), m.group(3), START_OF_DAY))
        return _at(today, _clock(m.group(2), m.group(3), END_OF_DAY))

    m = _RE_AFTERNOON.match(s)
    if m:
        hour = int(m.group(1))
        if 1 <= hour <= 11:
            hour += 12
        elif not 12 <= hour <= 23:
            return None
        return _at(today, _clock(str(hour), m.group(2) or "0", (hour, 0)))

    m = _RE_WEEKDAY.match(s)
    if m and m.group(1) in THAI_WEEKDAYS:
        day = _next_weekday(today, THAI_WEEKDAYS[m.group(1)])
        return _at(day, _clock(m.group(3), m.group(4), END_OF_DAY))

    m = _RE_DAY_MONTH.match(s)
    if m:
        try:
            day = date(today.year, int(m.group(2)), int(m.group(1)))
        except ValueError:
            return None
        return _at(day, _clock(m.group(3), m.group(4), END_OF_DAY))

    return None


def resolve(phrase: str, now: datetime) -> datetime | str:
    """
    Resolve a deadline phrase relative to `now`.

    Returns an absolute naive datetime for the recognized grammar, otherwise the
    original phrase unchanged (the caller decides whether that is an error).
    """
    s = (phrase or "").strip().lower()
    if not s:
        return phrase
    try:
        hit = _resolve(s, now)
    except (ValueError, OverflowError):
        hit = None
    return phrase if hit is None else hit


def format_deadline(dt: datetime) -> str:
    """Storage form of a resolved deadline."""
    return dt.strftime("%Y-%m-%dT%H:%M:%S")


def display_deadline(value: str | None) -> str:
    """'2025-03-12T14:00:00' -> '2025-03-12 14:00'; '' -> '-'."""
    if not value:
        return "-"
    return value[:16].replace("T", " ")


def parse_deadline(value: str | None) -> datetime | None:
    """
    Parse a stored deadline string for ordering purposes.

    Accepts ISO timestamps (offset-aware values are converted to naive local time)
    and DD/MM/YYYY[ HH:MM]. Returns None when the value is empty or unparseable.
    """
    if not value:
        return None
    s = str(value).strip()
    if not s:
        return None

    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        dt = None
    if dt is not None:
        if dt.tzinfo is not None:
            dt = dt.astimezone().replace(tzinfo=None)
        return dt

    m = _RE_ABS_DMY.match(s)
    if m:
        try:
            return datetime(
                int(m.group(3)),
                int(m.group(2)),
                int(m.group(1)),
                int(m.group(4) or 0),
                int(m.group(5) or 0),
            )
        except ValueError:
            return None
    return None


def finalize_deadline(phrase: str | None, now: datetime) -> str:
    """
    Turn a user-supplied phrase into the string that gets stored.

    - empty -> ""
    - resolvable phrase -> ISO text
    - already-absolute value (ISO, DD/MM/YYYY) -> kept verbatim
    - anything else -> InvalidDeadline
    """
    raw = (phrase or "").strip()
    if not raw:
        return ""
    hit = resolve(raw, now)
    if isinstance(hit, datetime):
        return format_deadline(hit)
    if parse_deadline(raw) is not None:
        return raw
    raise InvalidDeadline(raw)
