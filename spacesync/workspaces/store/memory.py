"""In-process key-value area.

Values are deep-copied through JSON on the way in and out, so callers never
share mutable state with the area (the same isolation a real storage
backend gives).
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any


class MemoryArea:
    """``KeyValueArea`` backed by a dict.  Counts writes for inspection."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, str] = {}
        self.write_count = 0
        if initial:
            self._data.update({key: json.dumps(value) for key, value in initial.items()})

    async def get(self, keys: Sequence[str]) -> dict[str, Any]:
        return {key: json.loads(self._data[key]) for key in keys if key in self._data}

    async def set(self, items: Mapping[str, Any]) -> None:
        self.write_count += 1
        for key, value in items.items():
            self._data[key] = json.dumps(value)

    async def remove(self, keys: Sequence[str]) -> None:
        self.write_count += 1
        for key in keys:
            self._data.pop(key, None)

    async def keys(self) -> list[str]:
        return list(self._data)

    def dump(self) -> dict[str, Any]:
        """Synchronous snapshot of every stored value."""
        return {key: json.loads(raw) for key, raw in self._data.items()}
