"""Folder-store node model.

Mirrors the browser bookmark tree node: a node is a folder iff it has no url.
"""

from __future__ import annotations

from pydantic import BaseModel


class FolderNode(BaseModel):
    id: str
    parent_id: str | None = None
    title: str = ""
    url: str | None = None
    index: int | None = None
    date_added: int | None = None
    children: list[FolderNode] | None = None

    @property
    def is_folder(self) -> bool:
        return not self.url
