"""Runtime workspace state.

``Workspace`` joins a replicated ``WorkspaceRecord`` with the device-local
fields that never leave this device: the resolved folder id and the derived
pin-membership cache.  ``WorkspaceSet`` is everything the engine holds in
memory between calls.

Neither type is persisted directly.  ``WorkspaceSet.device_state()`` projects
the local fields back into the ``DeviceState`` item.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from spacesync.workspaces.models.device import DeviceState
from spacesync.workspaces.models.workspace import PinnedBookmark, WorkspaceRecord


@dataclass
class Workspace:
    """A workspace as seen on this device."""

    record: WorkspaceRecord
    root_folder_id: str | None = None

    # -- Derived ---------------------------------------------------------------
    pinned_ids: set[str] | None = None
    """Membership cache.  ``pinned_bookmarks`` is the source of truth; the
    cache is rebuilt from it whenever it is ``None``."""

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def name(self) -> str:
        return self.record.name

    def pinned_id_set(self) -> set[str]:
        if self.pinned_ids is None:
            self.pinned_ids = {pin.id for pin in self.record.pinned_bookmarks}
        return self.pinned_ids

    def set_pins(self, pins: list[PinnedBookmark]) -> None:
        self.record.pinned_bookmarks = pins
        self.pinned_ids = None


@dataclass
class WorkspaceSet:
    """All workspaces loaded on this device, in display order."""

    order: list[str] = field(default_factory=list)
    items: dict[str, Workspace] = field(default_factory=dict)
    active_workspace_id: str | None = None
    root_container_id: str | None = None

    def ordered(self) -> list[Workspace]:
        return [self.items[workspace_id] for workspace_id in self.order if workspace_id in self.items]

    def get(self, workspace_id: str | None) -> Workspace | None:
        if workspace_id is None:
            return None
        return self.items.get(workspace_id)

    def add(self, workspace: Workspace) -> None:
        self.items[workspace.id] = workspace
        if workspace.id not in self.order:
            self.order.append(workspace.id)

    def discard(self, workspace_id: str) -> Workspace | None:
        if workspace_id in self.order:
            self.order.remove(workspace_id)
        return self.items.pop(workspace_id, None)

    def device_state(self) -> DeviceState:
        return DeviceState(
            active_workspace_id=self.active_workspace_id,
            root_folder_ids={
                workspace.id: workspace.root_folder_id for workspace in self.ordered() if workspace.root_folder_id
            },
        )

    def attach_device_state(self, device: DeviceState) -> None:
        """Apply this device's active id and folder ids to the loaded records."""
        self.active_workspace_id = device.active_workspace_id
        for workspace_id, workspace in self.items.items():
            workspace.root_folder_id = device.root_folder_ids.get(workspace_id) or workspace.root_folder_id

    @classmethod
    def from_records(cls, order: list[str], records: dict[str, WorkspaceRecord]) -> WorkspaceSet:
        """Build a set from loaded records.

        Order entries without a record stay in ``order`` (deduplicated) so
        validation can prune them and persist the prune.
        """
        result = cls()
        for workspace_id in order:
            if workspace_id in result.order:
                continue
            result.order.append(workspace_id)
            record = records.get(workspace_id)
            if record is not None:
                result.items[workspace_id] = Workspace(record=record)
        return result
