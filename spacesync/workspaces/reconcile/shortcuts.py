"""Shortcut persistence inside the folder store.

The folder store has no notion of shortcuts, so a workspace's shortcut list
is mirrored as plain links in a reserved child folder of the workspace
folder.  The replicated record stays the source of truth; the mirror exists
so shortcuts survive loss of the replicated partition.
"""

from __future__ import annotations

from collections.abc import Iterable

from loguru import logger

from spacesync.workspaces.context import Workspace
from spacesync.workspaces.folders.base import FolderStoreError
from spacesync.workspaces.folders.service import FolderService
from spacesync.workspaces.models.folder import FolderNode
from spacesync.workspaces.models.workspace import Shortcut


def limit_shortcuts(shortcuts: Iterable[Shortcut], limit: int) -> list[Shortcut]:
    """Drop repeated urls (first one wins) and cut the list at ``limit``."""
    kept: list[Shortcut] = []
    seen: set[str] = set()
    for shortcut in shortcuts:
        if shortcut.url in seen:
            continue
        seen.add(shortcut.url)
        kept.append(shortcut)
    return kept[: max(0, limit)]


class ShortcutFolder:
    def __init__(self, folders: FolderService, *, title: str, max_shortcuts: int = 8) -> None:
        self._folders = folders
        self._title = title
        self._max_shortcuts = max_shortcuts

    @property
    def title(self) -> str:
        return self._title

    async def _find(self, workspace_folder_id: str) -> FolderNode | None:
        for child in await self._folders.folders_only(workspace_folder_id):
            if child.title == self._title:
                return child
        return None

    async def sync(self, workspace: Workspace) -> None:
        """Mirror ``workspace``'s shortcuts.

        Creates the folder on the first shortcut and removes it with the
        last one.  Stale links are removed and missing ones added.
        """
        if not workspace.root_folder_id:
            return
        shortcuts = workspace.record.shortcuts
        folder = await self._find(workspace.root_folder_id)

        if not shortcuts:
            if folder is not None:
                await self._folders.remove_tree(folder.id)
            return

        if folder is None:
            folder = await self._folders.create_folder(workspace.root_folder_id, self._title)

        existing = {child.url: child for child in await self._folders.get_children(folder.id) if child.url}
        wanted = {shortcut.url for shortcut in shortcuts}
        for url, link in existing.items():
            if url not in wanted:
                await self._folders.remove(link.id)
        for shortcut in shortcuts:
            if shortcut.url not in existing:
                await self._folders.create_link(folder.id, shortcut.title, shortcut.url)

    async def try_sync(self, workspace: Workspace) -> None:
        """``sync`` for steady-state mutations: the replicated write already happened."""
        try:
            await self.sync(workspace)
        except (LookupError, FolderStoreError) as exc:
            logger.warning("Could not mirror shortcuts of {}: {}", workspace.id, exc)

    async def load(self, workspace_folder_id: str) -> list[Shortcut]:
        """Read shortcuts back from a surviving workspace folder.

        The mirror may have been edited by hand, so the result is held to the
        same cap and url uniqueness as ``add_shortcut``.
        """
        folder = await self._find(workspace_folder_id)
        if folder is None:
            return []
        links = [
            Shortcut(url=child.url, title=child.title or "")
            for child in await self._folders.get_children(folder.id)
            if child.url
        ]
        return limit_shortcuts(links, self._max_shortcuts)
