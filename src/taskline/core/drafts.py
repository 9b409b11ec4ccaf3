# src/taskline/core/drafts.py

"""
Draft assignment workflow: propose -> confirm | cancel.

A draft is held per user until confirmed, cancelled or overwritten by a newer
proposal. On confirm the draft is popped before the store write; a failed write
does not bring it back (the user simply assigns again).
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime

from ..parsing.deadline import finalize_deadline
from ..parsing.intents import Assign, Preset
from ..tasks import task_api
from ..tasks.task_models import TaskRecord, TaskStatus, UserIdentity
from .errors import AmbiguousReference, AssigneeNotFound, DraftNotFound, StoreError, StoreFailure
from .ports import MAX_CHOICES, KeyValueStore, TaskStore, UserDirectory

logger = logging.getLogger(__name__)

URGENT_TAG = "[URGENT]"

PRESET_DEADLINES: dict[Preset, str] = {
    Preset.DUE_TODAY_1730: "วันนี้ 17:30",
    Preset.DUE_TMRW_0900: "พรุ่งนี้ 09:00",
}


def new_draft_id() -> str:
    return "TMP_" + secrets.token_hex(3)


def new_task_id() -> str:
    return "TASK_" + secrets.token_hex(4)


@dataclass(frozen=True, slots=True)
class PresetState:
    urgent: bool = False
    deadline: str = ""  # resolver phrase, applied only when the assignment has none


@dataclass(frozen=True, slots=True)
class Draft:
    draft_id: str
    intent: Assign
    assignee: UserIdentity
    deadline: str  # finalized (ISO / absolute) or ""
    note: str
    created_at: datetime


def pick_assignee(reference: str, candidates: Sequence[UserIdentity]) -> UserIdentity:
    """
    Disambiguation policy over directory matches.

    Exact (case-insensitive) id/username/real-name match wins, then a unique
    substring match. Several matches -> AmbiguousReference, none -> AssigneeNotFound.
    """
    ref = (reference or "").strip().lstrip("@").lower()
    if not ref or not candidates:
        raise AssigneeNotFound(reference)

    def fields(u: UserIdentity) -> tuple[str, str, str]:
        return u.user_id.lower(), u.username.lower(), u.real_name.lower()

    exact = [u for u in candidates if ref in fields(u)]
    if len(exact) == 1:
        return exact[0]

    pool = exact or [u for u in candidates if any(ref in f for f in fields(u))]
    if not pool:
        raise AssigneeNotFound(reference)
    if len(pool) == 1:
        return pool[0]
    raise AmbiguousReference(reference, pool[:MAX_CHOICES])


def with_urgent_tag(note: str) -> str:
    if URGENT_TAG.lower() in note.lower():
        return note
    return f"{URGENT_TAG} {note}".strip()


class DraftWorkflow:
    def __init__(
        self,
        *,
        store: TaskStore,
        directory: UserDirectory,
        drafts: KeyValueStore,
        presets: KeyValueStore,
    ) -> None:
        self._store = store
        self._directory = directory
        self._drafts = drafts
        self._presets = presets

    # ---- presets ----

    def set_preset(self, user_id: str, preset: Preset) -> PresetState:
        cur: PresetState = self._presets.get(user_id) or PresetState()
        if preset is Preset.URGENT:
            new = replace(cur, urgent=True)
        else:
            new = replace(cur, deadline=PRESET_DEADLINES[preset])
        self._presets.set(user_id, new)
        return new

    # ---- lifecycle ----

    def current(self, user_id: str) -> Draft | None:
        return self._drafts.get(user_id)

    async def propose(self, user_id: str, intent: Assign, now: datetime) -> Draft:
        try:
            candidates = await self._directory.resolve(intent.assignee_ref)
        except StoreError as e:
            logger.exception("Directory lookup failed ref=%s", intent.assignee_ref)
            raise StoreFailure() from e

        assignee = pick_assignee(intent.assignee_ref, candidates)

        preset: PresetState = self._presets.get(user_id) or PresetState()
        deadline = finalize_deadline(intent.deadline_phrase or preset.deadline, now)
        note = with_urgent_tag(intent.note) if preset.urgent else intent.note
        self._presets.pop(user_id)

        draft = Draft(
            draft_id=new_draft_id(),
            intent=intent,
            assignee=assignee,
            deadline=deadline,
            note=note,
            created_at=now,
        )
        previous = self._drafts.get(user_id)
        self._drafts.set(user_id, draft)
        logger.info(
            "Draft proposed user=%s draft=%s assignee=%s replaced=%s",
            user_id,
            draft.draft_id,
            assignee.user_id,
            previous.draft_id if previous else None,
        )
        return draft

    async def confirm(
        self,
        user_id: str,
        draft_id: str | None,
        *,
        assigner_name: str,
        now: datetime,
    ) -> tuple[TaskRecord, UserIdentity]:
        draft: Draft | None = self._drafts.get(user_id)
        if draft is None or (draft_id and draft.draft_id != draft_id):
            raise DraftNotFound()

        # Consumed before the first await: a concurrent confirm sees no draft.
        self._drafts.pop(user_id)

        stamp = task_api.timestamp(now)
        record = TaskRecord(
            task_id=new_task_id(),
            assigner_id=user_id,
            assigner_name=assigner_name,
            assignee_id=draft.assignee.user_id,
            assignee_name=draft.assignee.display_name,
            task_detail=draft.intent.detail,
            status=TaskStatus.PENDING.value,
            created_date=stamp,
            updated_date=stamp,
            deadline=draft.deadline,
            note=draft.note,
        )
        await task_api.create_task(self._store, record)
        logger.info("Draft committed draft=%s task=%s", draft.draft_id, record.task_id)
        return record, draft.assignee

    def cancel(self, user_id: str, draft_id: str | None) -> Draft:
        draft: Draft | None = self._drafts.get(user_id)
        if draft is None or (draft_id and draft.draft_id != draft_id):
            raise DraftNotFound()
        self._drafts.pop(user_id)
        logger.info("Draft cancelled user=%s draft=%s", user_id, draft.draft_id)
        return draft
