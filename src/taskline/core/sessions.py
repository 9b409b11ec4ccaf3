# src/taskline/core/sessions.py

from __future__ import annotations

from typing import Any


class InMemoryKeyValueStore:
    """Process-local KeyValueStore. One instance per map (drafts, cursors, presets)."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._data: dict[str, Any] = {}

    def get(self, key: str) -> Any | None:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def pop(self, key: str) -> Any | None:
        return self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data
