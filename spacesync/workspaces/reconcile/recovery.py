"""Recovery from lost or partial replicated data.

Three situations are handled here:

- **Loose items**: ``ws_*`` items exist that the order item does not
  reference (one device's first run overwrote the order before another
  device's item arrived, or the order item was lost).  They are merged back
  into the order silently; nothing is destroyed by adding a reference.
- **Surviving folders**: the replicated partition is empty but a root
  container with real content survives in the folder store.  Records are
  synthesized from the folder titles and the engine pauses for confirmation.
- **Orphan folders**: after a confirmed restore, child folders of the root
  container that no workspace claimed are promoted to workspaces.
"""

from __future__ import annotations

from loguru import logger

from spacesync.workspaces.context import Workspace, WorkspaceSet
from spacesync.workspaces.folders.service import FolderService
from spacesync.workspaces.models.folder import FolderNode
from spacesync.workspaces.models.workspace import WorkspaceOrder, WorkspaceRecord
from spacesync.workspaces.reconcile.folders import FolderReconciler
from spacesync.workspaces.reconcile.merge import merge_orders, save_merged_order
from spacesync.workspaces.reconcile.shortcuts import ShortcutFolder
from spacesync.workspaces.store.device import DeviceStore
from spacesync.workspaces.store.replicated import ReplicatedStore
from spacesync.workspaces.titles import DEFAULT_WORKSPACE_ID, new_workspace_id, palette_at, split_emoji_prefix


class RecoveryModule:
    def __init__(
        self,
        replicated: ReplicatedStore,
        device: DeviceStore,
        folders: FolderService,
        folder_reconciler: FolderReconciler,
        shortcuts: ShortcutFolder,
    ) -> None:
        self._replicated = replicated
        self._device = device
        self._folders = folders
        self._folder_reconciler = folder_reconciler
        self._shortcuts = shortcuts

    # -- Loose replicated items ------------------------------------------------

    async def recover_orphan_items(self, workspaces: WorkspaceSet) -> list[str]:
        """Adopt ``ws_*`` items missing from ``workspaces.order`` and persist the order."""
        keys = await self._replicated.discover_item_keys()
        orphaned = [key for key in keys if key not in workspaces.order]
        if not orphaned:
            return []
        records = await self._replicated.get_all_items(orphaned)
        if not records:
            return []
        for workspace_id in orphaned:
            record = records.get(workspace_id)
            if record is not None:
                workspaces.add(Workspace(record=record))
        workspaces.order = await save_merged_order(self._replicated, workspaces.order)
        logger.info("Recovered {} unreferenced workspace item(s): {}", len(records), list(records))
        return list(records)

    async def recover_loose_items(self) -> WorkspaceOrder | None:
        """Rebuild a lost order item from the ``ws_*`` items that survived.

        The default workspace goes first when present.
        """
        keys = await self._replicated.discover_item_keys()
        if not keys:
            return None
        order = [DEFAULT_WORKSPACE_ID] if DEFAULT_WORKSPACE_ID in keys else []
        order = merge_orders(order, keys)
        await self._replicated.save_order(order)
        logger.info("Rebuilt order item from {} loose workspace item(s)", len(order))
        return WorkspaceOrder(order=order)

    # -- Surviving folders -----------------------------------------------------

    async def find_surviving_folders(self) -> tuple[str, list[FolderNode]] | None:
        """Root container and its subfolders, when they hold something worth restoring.

        That means more than one subfolder, or a single non-empty one.  A lone
        empty subfolder looks like an ordinary first run.
        """
        root_id = await self._folder_reconciler.find_best_root_container()
        if root_id is None:
            return None
        subfolders = await self._folders.folders_only(root_id)
        if not subfolders:
            return None
        if len(subfolders) == 1 and not await self._folders.get_children(subfolders[0].id):
            return None
        return root_id, subfolders

    async def synthesize_record(self, folder: FolderNode, palette_index: int, *, workspace_id: str) -> WorkspaceRecord:
        """Build a record from a folder title and its shortcuts mirror."""
        emoji, name = split_emoji_prefix(folder.title)
        color = palette_at(palette_index)
        return WorkspaceRecord(
            id=workspace_id,
            name=name,
            emoji=emoji,
            icon="home" if workspace_id == DEFAULT_WORKSPACE_ID else "folder",
            color=color.color,
            color_scheme=color.scheme,
            shortcuts=await self._shortcuts.load(folder.id),
        )

    async def rebuild_from_folders(self, root_id: str, subfolders: list[FolderNode]) -> WorkspaceSet:
        """Create one workspace per surviving folder and persist everything.

        The first folder becomes the default workspace; colors cycle through
        the palette in folder order.
        """
        workspaces = WorkspaceSet(root_container_id=root_id)
        for index, folder in enumerate(subfolders):
            workspace_id = DEFAULT_WORKSPACE_ID if index == 0 else new_workspace_id()
            record = await self.synthesize_record(folder, index, workspace_id=workspace_id)
            await self._replicated.save_item(record)
            workspaces.add(Workspace(record=record, root_folder_id=folder.id))

        workspaces.active_workspace_id = workspaces.order[0]
        await self._replicated.save_order(workspaces.order)
        await self._device.save_device_state(workspaces.device_state())
        await self._device.save_root_container_id(root_id)
        logger.info("Rebuilt {} workspace(s) from surviving folders", len(workspaces.order))
        return workspaces

    # -- Orphan folders --------------------------------------------------------

    async def adopt_orphan_folders(self, workspaces: WorkspaceSet) -> list[str]:
        """Promote unclaimed child folders of the root container to workspaces.

        Colors continue the palette after the existing workspaces.
        """
        root_id = workspaces.root_container_id
        if not root_id or not await self._folders.exists(root_id):
            root_id = await self._folder_reconciler.find_best_root_container()
        if root_id is None:
            return []

        claimed = {workspace.root_folder_id for workspace in workspaces.ordered() if workspace.root_folder_id}
        unclaimed = [folder for folder in await self._folders.folders_only(root_id) if folder.id not in claimed]
        if not unclaimed:
            return []

        offset = len(workspaces.order)
        adopted: list[str] = []
        for index, folder in enumerate(unclaimed):
            record = await self.synthesize_record(folder, offset + index, workspace_id=new_workspace_id())
            await self._replicated.save_item(record)
            workspaces.add(Workspace(record=record, root_folder_id=folder.id))
            adopted.append(record.id)

        workspaces.order = await save_merged_order(self._replicated, workspaces.order)
        await self._device.save_device_state(workspaces.device_state())
        logger.info("Adopted {} orphaned folder(s): {}", len(unclaimed), [folder.title for folder in unclaimed])
        return adopted

    async def folder_names(self) -> list[str]:
        """Titles of every folder under the best root container."""
        root_id = await self._folder_reconciler.find_best_root_container()
        if root_id is None:
            return []
        return [folder.title for folder in await self._folders.folders_only(root_id)]
