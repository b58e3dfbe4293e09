"""Workspace data models.

A workspace is a named, colored grouping of bookmarks backed 1:1 by a folder
in the local folder store.  The replicated record never carries the local
folder id: folder ids are meaningless on any other device.

Two schema versions exist:

- **v2** (current): one ``ws_*`` item per ``WorkspaceRecord`` plus a
  ``WorkspaceOrder`` item (``order_meta``).
- **v1** (legacy): a single ``workspaces`` item holding every record together
  with its device-local folder id.  ``LegacyWorkspaceRecord.to_record`` is the
  only v1 -> v2 transformation.
"""

from __future__ import annotations

import time

from pydantic import Field, field_validator

from spacesync.workspaces.models.base import WireModel
from spacesync.workspaces.models.enums import ColorScheme

CURRENT_SCHEMA_VERSION = 2


def now_ms() -> int:
    return int(time.time() * 1000)


# -- Nested ------------------------------------------------------------------


class PinnedBookmark(WireModel):
    """Durable reference to a pinned link or folder.

    ``url`` is present for links and absent for folders.  ``id`` is a local
    folder-store id and may be stale on any device but the one that pinned it.
    """

    id: str
    url: str | None = None
    title: str | None = None


class Shortcut(WireModel):
    url: str
    title: str = ""


# -- Records -----------------------------------------------------------------


class WorkspaceRecord(WireModel):
    """Replicated workspace item (v2)."""

    id: str
    name: str
    emoji: str = ""
    icon: str = "folder"
    color: str = "#7C5CFC"
    color_scheme: ColorScheme = ColorScheme.PURPLE
    pinned_bookmarks: list[PinnedBookmark] = Field(default_factory=list)
    shortcuts: list[Shortcut] = Field(default_factory=list)
    created: int = Field(default_factory=now_ms, description="Creation time, epoch milliseconds")

    @field_validator("color_scheme", mode="before")
    @classmethod
    def _known_scheme(cls, value: object) -> object:
        # A scheme written by a newer client must not make the whole record unreadable.
        if isinstance(value, str) and value not in list(ColorScheme):
            return ColorScheme.PURPLE
        return value

    @field_validator("emoji", mode="before")
    @classmethod
    def _none_emoji(cls, value: object) -> object:
        return "" if value is None else value


class WorkspaceOrder(WireModel):
    """The ``order_meta`` item: authoritative workspace sequence and schema version."""

    order: list[str] = Field(default_factory=list)
    version: int = CURRENT_SCHEMA_VERSION


# -- Legacy (v1) -------------------------------------------------------------


class LegacyWorkspaceRecord(WorkspaceRecord):
    """v1 record: a v2 record plus device-local fields stored alongside it."""

    root_folder_id: str | None = None
    pinned_bookmark_ids: list[str] | None = None

    def to_record(self) -> WorkspaceRecord:
        """Strip device-local fields.

        Id-only pins (``pinnedBookmarkIds`` without metadata) become bare
        ``{id}`` entries so the pin reconciler can keep or drop them.
        """
        pins = list(self.pinned_bookmarks)
        if not pins and self.pinned_bookmark_ids:
            pins = [PinnedBookmark(id=bookmark_id) for bookmark_id in self.pinned_bookmark_ids]
        data = self.model_dump(exclude={"root_folder_id", "pinned_bookmark_ids", "pinned_bookmarks"})
        return WorkspaceRecord(**data, pinned_bookmarks=pins)


class LegacyWorkspaces(WireModel):
    """The v1 single ``workspaces`` item."""

    active_workspace_id: str | None = None
    order: list[str] = Field(default_factory=list)
    items: dict[str, LegacyWorkspaceRecord] = Field(default_factory=dict)

    @field_validator("items", mode="before")
    @classmethod
    def _ids_from_keys(cls, value: object) -> object:
        # Some v1 writers keyed items by id without repeating it inside the item.
        if isinstance(value, dict):
            return {
                key: {"id": key, **item} if isinstance(item, dict) and "id" not in item else item
                for key, item in value.items()
            }
        return value
