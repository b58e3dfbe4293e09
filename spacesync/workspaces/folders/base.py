"""Folder store interface.

The folder store is the local, hierarchical link/folder tree (the browser's
bookmark tree).  It never replicates; its ids are only meaningful on the
device that created them.  A node is a folder iff it has no url.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from spacesync.workspaces.models.folder import FolderNode


class FolderNotFoundError(LookupError):
    """Raised when a folder-store id does not resolve."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"Folder store node not found: {node_id}")
        self.node_id = node_id


class FolderStoreError(RuntimeError):
    """Raised for folder-store operations that cannot be applied."""


@runtime_checkable
class FolderStore(Protocol):
    """Async protocol for the local link/folder tree.

    Read operations return detached copies; mutating a returned node has no
    effect on the store.
    """

    async def get_tree(self) -> list[FolderNode]:
        """Return the whole tree as a single-element list holding the root."""
        ...

    async def get_sub_tree(self, node_id: str) -> list[FolderNode]:
        """Return ``[node]`` with all descendants populated."""
        ...

    async def get_children(self, node_id: str) -> list[FolderNode]:
        """Direct children of a folder, in index order, without grandchildren."""
        ...

    async def get(self, node_id: str) -> FolderNode:
        ...

    async def create(
        self,
        parent_id: str,
        title: str,
        url: str | None = None,
        index: int | None = None,
    ) -> FolderNode:
        ...

    async def update(self, node_id: str, *, title: str | None = None, url: str | None = None) -> FolderNode:
        ...

    async def move(self, node_id: str, *, parent_id: str | None = None, index: int | None = None) -> FolderNode:
        ...

    async def remove(self, node_id: str) -> None:
        """Remove a link or an empty folder."""
        ...

    async def remove_tree(self, node_id: str) -> None:
        """Remove a folder and everything under it."""
        ...

    async def search(self, query: str) -> list[FolderNode]:
        ...
