"""Device-local state models.

Nothing here replicates: folder ids and the active workspace only make sense
on the device that wrote them.
"""

from __future__ import annotations

from pydantic import Field

from spacesync.workspaces.models.base import WireModel


class DeviceState(WireModel):
    """The ``device_state`` item."""

    active_workspace_id: str | None = None
    root_folder_ids: dict[str, str] = Field(default_factory=dict, description="workspace_id -> folder id")

    def is_empty(self) -> bool:
        """True on a fresh install: no active workspace and no resolved folders."""
        return not self.active_workspace_id and not self.root_folder_ids


class UIState(WireModel):
    """The ``ui_state`` item."""

    expanded_folders: dict[str, bool] = Field(default_factory=dict)
    scroll_positions: dict[str, int] = Field(default_factory=dict)
