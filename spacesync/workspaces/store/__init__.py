"""Key-value areas and the typed adapters on top of them."""

from spacesync.workspaces.store.base import ItemTooLargeError, KeyValueArea
from spacesync.workspaces.store.device import DeviceStore
from spacesync.workspaces.store.local import FileArea
from spacesync.workspaces.store.memory import MemoryArea
from spacesync.workspaces.store.replicated import ReplicatedStore
from spacesync.workspaces.store.s3 import S3Area

__all__ = [
    "DeviceStore",
    "FileArea",
    "ItemTooLargeError",
    "KeyValueArea",
    "MemoryArea",
    "ReplicatedStore",
    "S3Area",
]
