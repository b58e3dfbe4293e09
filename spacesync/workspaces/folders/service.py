"""Engine-facing adapter over a ``FolderStore``.

Applies the engine's failure policy in one place: lookups of possibly-stale
ids return ``None``/``[]`` instead of raising, and removals of ids that are
already gone succeed silently.  Renames and moves still raise
``FolderNotFoundError`` so the caller can react to a vanished folder.
"""

from __future__ import annotations

from loguru import logger

from spacesync.workspaces.folders.base import FolderNotFoundError, FolderStore, FolderStoreError
from spacesync.workspaces.folders.memory import OTHER_BOOKMARKS_TITLE
from spacesync.workspaces.models.folder import FolderNode


class FolderService:
    def __init__(self, store: FolderStore) -> None:
        self._store = store

    @property
    def store(self) -> FolderStore:
        return self._store

    # -- Lookups ---------------------------------------------------------------

    async def get(self, node_id: str | None) -> FolderNode | None:
        if not node_id:
            return None
        try:
            return await self._store.get(node_id)
        except FolderNotFoundError:
            return None

    async def exists(self, node_id: str | None) -> bool:
        return await self.get(node_id) is not None

    async def get_children(self, node_id: str) -> list[FolderNode]:
        try:
            return await self._store.get_children(node_id)
        except FolderNotFoundError:
            return []

    async def folders_only(self, node_id: str) -> list[FolderNode]:
        """Direct child folders of ``node_id`` (links skipped)."""
        return [child for child in await self.get_children(node_id) if child.is_folder]

    async def get_sub_tree(self, node_id: str) -> FolderNode | None:
        try:
            nodes = await self._store.get_sub_tree(node_id)
        except FolderNotFoundError:
            return None
        return nodes[0] if nodes else None

    async def search_folders(self, title: str) -> list[FolderNode]:
        """Folders whose title is exactly ``title``."""
        return [node for node in await self._store.search(title) if node.is_folder and node.title == title]

    async def find_default_parent(self) -> str:
        """Where a new root container goes: "Other Bookmarks", else the 2nd, else the 1st top-level folder."""
        tree = await self._store.get_tree()
        top = (tree[0].children or []) if tree else []
        for node in top:
            if node.title == OTHER_BOOKMARKS_TITLE:
                return node.id
        if len(top) > 1:
            return top[1].id
        if top:
            return top[0].id
        msg = "Folder store has no top-level folders"
        raise FolderStoreError(msg)

    # -- Mutations -------------------------------------------------------------

    async def create_folder(self, parent_id: str, title: str, index: int | None = None) -> FolderNode:
        return await self._store.create(parent_id, title, index=index)

    async def create_link(self, parent_id: str, title: str, url: str) -> FolderNode:
        return await self._store.create(parent_id, title, url=url)

    async def rename(self, node_id: str, title: str) -> FolderNode:
        return await self._store.update(node_id, title=title)

    async def move(self, node_id: str, *, parent_id: str | None = None, index: int | None = None) -> FolderNode:
        return await self._store.move(node_id, parent_id=parent_id, index=index)

    async def remove(self, node_id: str) -> bool:
        """Remove a link or empty folder.  ``False`` if it was already gone."""
        try:
            await self._store.remove(node_id)
        except FolderNotFoundError:
            logger.debug("Node {} already removed", node_id)
            return False
        return True

    async def remove_tree(self, node_id: str) -> bool:
        """Remove a folder recursively.  ``False`` if it was already gone."""
        try:
            await self._store.remove_tree(node_id)
        except FolderNotFoundError:
            logger.debug("Folder {} already removed", node_id)
            return False
        return True
