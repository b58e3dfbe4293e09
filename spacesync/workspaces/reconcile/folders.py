"""Folder reconciliation.

Folder ids never replicate, but folder titles usually do.  For every
workspace in the order, the reconciler makes ``root_folder_id`` point at a
real folder under the root container:

1. **Keep**: the cached id still resolves.
2. **Name**: an unclaimed child of the root container whose title equals the
   expected title (``"<emoji> <name>"``), then one whose emoji-stripped title
   equals the name.
3. **Position**: remaining workspaces are paired, in order, with remaining
   unclaimed child folders, which are renamed to the expected title.  This
   covers a rename on another device; it is a heuristic and can mis-pair
   when several workspaces were renamed at once.
4. **Create**: only when no unclaimed folder is left.

All valid cached ids are claimed before any name matching starts, so an
earlier workspace can never take a later workspace's folder.  Running the
reconciler twice with no folder changes in between writes nothing.
"""

from __future__ import annotations

from loguru import logger

from spacesync.workspaces.context import Workspace, WorkspaceSet
from spacesync.workspaces.folders.base import FolderNotFoundError, FolderStoreError
from spacesync.workspaces.folders.service import FolderService
from spacesync.workspaces.models.folder import FolderNode
from spacesync.workspaces.models.results import FolderReconcileResult
from spacesync.workspaces.store.device import DeviceStore
from spacesync.workspaces.titles import build_folder_title, split_emoji_prefix

_FOLDER_CHILD_WEIGHT = 1000


class FolderReconciler:
    def __init__(self, folders: FolderService, device: DeviceStore, *, root_container_title: str) -> None:
        self._folders = folders
        self._device = device
        self._root_title = root_container_title

    # -- Root container --------------------------------------------------------

    async def find_best_root_container(self, workspace_names: set[str] | None = None) -> str | None:
        """Pick among folders titled like the root container.

        Duplicates can exist after a botched earlier run.  The candidate with
        the most child folders wins, with matches against known workspace
        names as tie-breaker; remaining ties go to the first found.
        """
        candidates = await self._folders.search_folders(self._root_title)
        if not candidates:
            return None
        if len(candidates) == 1:
            return candidates[0].id

        names = workspace_names or set()
        best_id = candidates[0].id
        best_score = -1
        for candidate in candidates:
            subfolders = await self._folders.folders_only(candidate.id)
            score = len(subfolders) * _FOLDER_CHILD_WEIGHT
            score += sum(1 for child in subfolders if child.title in names)
            if score > best_score:
                best_score = score
                best_id = candidate.id
        logger.debug("Chose root container {} out of {} candidates", best_id, len(candidates))
        return best_id

    async def ensure_root_container(self, workspaces: WorkspaceSet) -> tuple[str, bool]:
        """Make ``workspaces.root_container_id`` resolve.

        Returns the container id and whether a folder had to be created.
        """
        current = workspaces.root_container_id
        if current is not None and await self._folders.exists(current):
            return current, False

        names = {workspace.name for workspace in workspaces.ordered()}
        created = False
        root_id = await self.find_best_root_container(names)
        if root_id is None:
            parent_id = await self._folders.find_default_parent()
            root_id = (await self._folders.create_folder(parent_id, self._root_title)).id
            created = True
            logger.info("Created root container '{}' ({})", self._root_title, root_id)
        workspaces.root_container_id = root_id
        await self._device.save_root_container_id(root_id)
        return root_id, created

    # -- Workspace folders -----------------------------------------------------

    async def reconcile(self, workspaces: WorkspaceSet) -> FolderReconcileResult:
        result = FolderReconcileResult()
        ordered = workspaces.ordered()
        if not ordered:
            return result

        root_id, result.root_container_created = await self.ensure_root_container(workspaces)

        claimed: set[str] = set()
        unresolved: list[Workspace] = []
        for workspace in ordered:
            if workspace.root_folder_id and workspace.root_folder_id not in claimed:
                if await self._folders.exists(workspace.root_folder_id):
                    claimed.add(workspace.root_folder_id)
                    result.kept.append(workspace.id)
                    continue
            unresolved.append(workspace)

        if unresolved:
            candidates = [node for node in await self._folders.folders_only(root_id) if node.id not in claimed]
            unresolved = self._match_by_title(unresolved, candidates, claimed, result)
            unresolved = self._match_by_name(unresolved, candidates, claimed, result)
            await self._match_by_position(unresolved, candidates, claimed, root_id, result)

        if result.changed:
            await self._device.save_device_state(workspaces.device_state())
            logger.info(
                "Folder reconciliation: {} kept, {} by name, {} by position, {} created",
                len(result.kept),
                len(result.matched_by_name),
                len(result.matched_by_position),
                len(result.created),
            )
        return result

    @staticmethod
    def _claim(workspace: Workspace, folder: FolderNode, claimed: set[str]) -> None:
        workspace.root_folder_id = folder.id
        claimed.add(folder.id)

    def _match_by_title(
        self,
        workspaces: list[Workspace],
        candidates: list[FolderNode],
        claimed: set[str],
        result: FolderReconcileResult,
    ) -> list[Workspace]:
        remaining: list[Workspace] = []
        for workspace in workspaces:
            expected = build_folder_title(workspace.name, workspace.record.emoji)
            match = next((c for c in candidates if c.id not in claimed and c.title == expected), None)
            if match is None:
                remaining.append(workspace)
                continue
            self._claim(workspace, match, claimed)
            result.matched_by_name.append(workspace.id)
            logger.debug("Workspace {} matched folder {} by title", workspace.id, match.id)
        return remaining

    def _match_by_name(
        self,
        workspaces: list[Workspace],
        candidates: list[FolderNode],
        claimed: set[str],
        result: FolderReconcileResult,
    ) -> list[Workspace]:
        remaining: list[Workspace] = []
        for workspace in workspaces:
            match = next(
                (c for c in candidates if c.id not in claimed and split_emoji_prefix(c.title)[1] == workspace.name),
                None,
            )
            if match is None:
                remaining.append(workspace)
                continue
            self._claim(workspace, match, claimed)
            result.matched_by_name.append(workspace.id)
            logger.debug("Workspace {} matched folder {} by name", workspace.id, match.id)
        return remaining

    async def _match_by_position(
        self,
        workspaces: list[Workspace],
        candidates: list[FolderNode],
        claimed: set[str],
        root_id: str,
        result: FolderReconcileResult,
    ) -> None:
        leftovers = [c for c in candidates if c.id not in claimed]
        for position, workspace in enumerate(workspaces):
            expected = build_folder_title(workspace.name, workspace.record.emoji)
            if position < len(leftovers):
                folder = leftovers[position]
                self._claim(workspace, folder, claimed)
                result.matched_by_position.append(workspace.id)
                logger.debug("Workspace {} paired with folder '{}' by position", workspace.id, folder.title)
                if folder.title != expected:
                    try:
                        await self._folders.rename(folder.id, expected)
                    except (FolderNotFoundError, FolderStoreError) as exc:
                        logger.warning("Could not rename folder {} to '{}': {}", folder.id, expected, exc)
                    else:
                        result.renamed.append(workspace.id)
                continue

            folder = await self._folders.create_folder(root_id, expected)
            self._claim(workspace, folder, claimed)
            result.created.append(workspace.id)
            logger.debug("Created folder {} for workspace {}", folder.id, workspace.id)
