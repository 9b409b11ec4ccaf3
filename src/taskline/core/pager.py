# src/taskline/core/pager.py

"""
Per-user pagination over an already-fetched row snapshot.

The cursor is a frozen value stored in a KeyValueStore; every move replaces it
whole. One cursor per user: starting a new list drops the previous one.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from .ports import KeyValueStore

logger = logging.getLogger(__name__)

PAGE_SIZE = 8

Row = tuple[str, str, str, str]

_TASK_HEADERS = ("วันที่", "รายการ (#ID)", "กำหนดส่ง", "สถานะ")

HEADERS: dict[str, tuple[str, str, str, str]] = {
    "users": ("อัปเดต", "ผู้ใช้ (บทบาท)", "สถานะ", "-"),
    "mine_assigned": ("วันที่", "รายการ (#ID)", "ผู้รับ", "สถานะ"),
    "mine_pending": _TASK_HEADERS,
    "today": _TASK_HEADERS,
    "mine_range": _TASK_HEADERS,
}
DEFAULT_HEADERS = ("วันที่", "รายการ", "กำหนดส่ง", "สถานะ")


def page_count(n_rows: int, page_size: int = PAGE_SIZE) -> int:
    return max(1, math.ceil(max(0, n_rows) / page_size))


@dataclass(frozen=True, slots=True)
class PageCursor:
    list_key: str
    rows: tuple[Row, ...]
    page: int = 0
    page_size: int = PAGE_SIZE
    title: str = ""

    @property
    def pages(self) -> int:
        return page_count(len(self.rows), self.page_size)

    def clamp(self, page: int) -> int:
        return min(max(page, 0), self.pages - 1)


@dataclass(frozen=True, slots=True)
class PageView:
    list_key: str
    title: str
    headers: tuple[str, str, str, str]
    rows: tuple[Row, ...]
    page: int  # 1-based
    pages: int

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


def _view(cur: PageCursor) -> PageView:
    start = cur.page * cur.page_size
    return PageView(
        list_key=cur.list_key,
        title=f"{cur.title} — หน้า {cur.page + 1}/{cur.pages}",
        headers=HEADERS.get(cur.list_key, DEFAULT_HEADERS),
        rows=cur.rows[start : start + cur.page_size],
        page=cur.page + 1,
        pages=cur.pages,
    )


def _row(cells: Sequence[object]) -> Row:
    vals = [str(c) if c is not None else "" for c in list(cells)[:4]]
    vals += [""] * (4 - len(vals))
    return vals[0], vals[1], vals[2], vals[3]


class Pager:
    def __init__(self, cursors: KeyValueStore, *, page_size: int = PAGE_SIZE) -> None:
        self._cursors = cursors
        self._page_size = page_size

    def start(self, user_id: str, list_key: str, rows: Iterable[Sequence[object]], title: str) -> PageView:
        cur = PageCursor(
            list_key=list_key,
            rows=tuple(_row(r) for r in rows),
            page=0,
            page_size=self._page_size,
            title=title,
        )
        self._cursors.set(user_id, cur)
        logger.debug("Pager start user=%s list=%s rows=%d", user_id, list_key, len(cur.rows))
        return _view(cur)

    def render(self, user_id: str) -> PageView | None:
        cur = self._cursors.get(user_id)
        return _view(cur) if cur is not None else None

    def advance(self, user_id: str, step: int) -> PageView | None:
        """Move by `step` pages, clamped at both ends. None when the user has no list open."""
        cur: PageCursor | None = self._cursors.get(user_id)
        if cur is None:
            return None
        cur = replace(cur, page=cur.clamp(cur.page + step))
        self._cursors.set(user_id, cur)
        return _view(cur)
