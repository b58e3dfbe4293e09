"""Key-value area interface.

An *area* is one partition of a key-value store: the replicated
(cross-device, last-write-wins, small items) partition or the local
(per-device) partition.  Values are JSON-compatible objects.  The interface
is async so file and remote (S3) backends can offload blocking I/O.

The typed adapters in ``replicated.py`` and ``device.py`` sit on top of an
area and own the key layout and the failure policy.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable


class ItemTooLargeError(ValueError):
    """Raised when a replicated item would exceed the per-item payload ceiling."""

    def __init__(self, key: str, size: int, limit: int) -> None:
        super().__init__(f"Item '{key}' is {size} bytes, limit is {limit}")
        self.key = key
        self.size = size
        self.limit = limit


@runtime_checkable
class KeyValueArea(Protocol):
    """Async protocol for one key-value partition."""

    async def get(self, keys: Sequence[str]) -> dict[str, Any]:
        """Return the stored values for ``keys``.  Missing keys are omitted."""
        ...

    async def set(self, items: Mapping[str, Any]) -> None:
        """Write every key in ``items``."""
        ...

    async def remove(self, keys: Sequence[str]) -> None:
        """Delete ``keys``.  Missing keys are ignored."""
        ...

    async def keys(self) -> list[str]:
        """List every stored key."""
        ...
