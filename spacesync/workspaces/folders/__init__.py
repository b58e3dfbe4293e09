"""Local link/folder tree: protocol, in-memory and JSON stores, engine adapter."""

from spacesync.workspaces.folders.base import FolderNotFoundError, FolderStore, FolderStoreError
from spacesync.workspaces.folders.memory import JsonFolderStore, MemoryFolderStore
from spacesync.workspaces.folders.service import FolderService

__all__ = [
    "FolderNotFoundError",
    "FolderService",
    "FolderStore",
    "FolderStoreError",
    "JsonFolderStore",
    "MemoryFolderStore",
]
