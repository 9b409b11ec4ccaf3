# src/taskline/core/state.py

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from .ports import KeyValueStore, TaskStore, UserDirectory
from .sessions import InMemoryKeyValueStore


@dataclass(slots=True)
class SessionState:
    """The three per-user maps. Each is injected so tests get isolated instances."""

    drafts: KeyValueStore = field(default_factory=lambda: InMemoryKeyValueStore("drafts"))
    cursors: KeyValueStore = field(default_factory=lambda: InMemoryKeyValueStore("cursors"))
    presets: KeyValueStore = field(default_factory=lambda: InMemoryKeyValueStore("presets"))


def local_clock(tz_name: str) -> Callable[[], datetime]:
    """Naive local 'now' in the configured timezone."""
    tz = ZoneInfo(tz_name)

    def now() -> datetime:
        return datetime.now(tz).replace(tzinfo=None)

    return now


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    task_store: TaskStore
    directory: UserDirectory
    sessions: SessionState = field(default_factory=SessionState)
    clock: Callable[[], datetime] = datetime.now
