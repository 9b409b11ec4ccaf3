# src/taskline/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps connectors/record stores swappable and makes testing easier.
"""

from dataclasses import dataclass
from typing import Any, Protocol

from ..tasks.task_models import TaskFilter, TaskRecord, UserIdentity

MAX_CHOICES = 13


@dataclass(frozen=True, slots=True)
class QuickChoice:
    """A tappable reply suggestion. Tapping sends `text` back as a message."""

    label: str
    text: str


@dataclass(frozen=True, slots=True)
class Card:
    """
    Structured content block.

    kind: "task" | "preview" | "table"
    - task/preview: `fields` is a list of (label, value) rows
    - table: `headers` + `rows`
    `actions` are choices attached to the card itself.
    """

    kind: str
    title: str
    fields: tuple[tuple[str, str], ...] = ()
    headers: tuple[str, ...] = ()
    rows: tuple[tuple[str, ...], ...] = ()
    actions: tuple[QuickChoice, ...] = ()


@dataclass(frozen=True, slots=True)
class OutboundMessage:
    text: str = ""
    choices: tuple[QuickChoice, ...] = ()
    cards: tuple[Card, ...] = ()

    def __post_init__(self) -> None:
        if len(self.choices) > MAX_CHOICES:
            object.__setattr__(self, "choices", tuple(self.choices[:MAX_CHOICES]))


class TaskStore(Protocol):
    """Externally-owned task records. All mutations go through upsert()."""

    async def get(self, task_id: str) -> TaskRecord | None: ...
    async def upsert(self, record: TaskRecord) -> None: ...
    async def list(self, flt: TaskFilter) -> list[TaskRecord]: ...


class UserDirectory(Protocol):
    async def resolve(self, reference: str) -> list[UserIdentity]:
        """Zero, one or many users matching an id, handle or name fragment."""
        ...

    async def get_user(self, user_id: str) -> UserIdentity | None: ...
    async def list_users(self) -> list[UserIdentity]: ...
    async def upsert_user(self, user: UserIdentity) -> None: ...


class Messenger(Protocol):
    """
    Connector-side port: how the core sends content outward.

    reply() answers the event identified by `token` (connectors decide what a
    token is: a reply token, a room id, ...). push() sends unprompted to a user.
    """

    async def reply(self, token: str, message: OutboundMessage) -> None: ...
    async def push(self, user_id: str, message: OutboundMessage) -> None: ...


class KeyValueStore(Protocol):
    """Per-user ephemeral state. Values are replaced whole, never mutated in place."""

    def get(self, key: str) -> Any | None: ...
    def set(self, key: str, value: Any) -> None: ...
    def pop(self, key: str) -> Any | None: ...
    def __len__(self) -> int: ...
