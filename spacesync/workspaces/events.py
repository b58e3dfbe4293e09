"""In-process notification bus.

The engine emits a ``WorkspaceEvent`` after each persisted change so a UI (or
a test) can refresh without polling.  Each engine owns its own bus; there is
no process-wide instance.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from loguru import logger

from spacesync.workspaces.models.enums import WorkspaceEvent

Listener = Callable[[Any], None]


class EventBus:
    """Map of event -> listeners.  Listener errors are logged, never raised."""

    def __init__(self) -> None:
        self._listeners: dict[WorkspaceEvent, list[Listener]] = {}

    def subscribe(self, event: WorkspaceEvent, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that unregisters it."""
        self._listeners.setdefault(event, []).append(listener)

        def _unsubscribe() -> None:
            self.unsubscribe(event, listener)

        return _unsubscribe

    def unsubscribe(self, event: WorkspaceEvent, listener: Listener) -> None:
        listeners = self._listeners.get(event)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def emit(self, event: WorkspaceEvent, payload: Any = None) -> None:
        # Snapshot so listeners may unsubscribe while being notified.
        for listener in list(self._listeners.get(event, ())):
            try:
                listener(payload)
            except Exception:
                logger.exception("Listener for {} failed", event)

    def listener_count(self, event: WorkspaceEvent) -> int:
        return len(self._listeners.get(event, ()))
