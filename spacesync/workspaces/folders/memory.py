"""In-process folder store.

Models a browser bookmark tree::

    0                      (root, untitled)
    ├── 1  Bookmarks Bar
    └── 2  Other Bookmarks

Ids are sequential strings.  The root and its two permanent children cannot
be modified or removed.  ``JsonFolderStore`` persists the same tree to one
JSON file after every mutation and is what the CLI uses.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from anyio import to_thread

from spacesync.workspaces.folders.base import FolderNotFoundError, FolderStoreError
from spacesync.workspaces.models.folder import FolderNode
from spacesync.workspaces.models.workspace import now_ms

ROOT_ID = "0"
BOOKMARKS_BAR_TITLE = "Bookmarks Bar"
OTHER_BOOKMARKS_TITLE = "Other Bookmarks"


@dataclass
class _Entry:
    id: str
    parent_id: str | None
    title: str
    url: str | None = None
    date_added: int = field(default_factory=now_ms)
    children: list[str] = field(default_factory=list)


class MemoryFolderStore:
    """Dict-backed implementation of the ``FolderStore`` protocol."""

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}
        self._next_id = 0
        root = self._new_entry(None, "")
        for title in (BOOKMARKS_BAR_TITLE, OTHER_BOOKMARKS_TITLE):
            child = self._new_entry(root.id, title)
            root.children.append(child.id)
        self.mutation_count = 0

    # -- Internals -------------------------------------------------------------

    def _new_entry(self, parent_id: str | None, title: str, url: str | None = None) -> _Entry:
        entry = _Entry(id=str(self._next_id), parent_id=parent_id, title=title, url=url)
        self._next_id += 1
        self._entries[entry.id] = entry
        return entry

    def _entry(self, node_id: str) -> _Entry:
        entry = self._entries.get(node_id)
        if entry is None:
            raise FolderNotFoundError(node_id)
        return entry

    def _guard_permanent(self, node_id: str) -> None:
        entry = self._entry(node_id)
        if entry.parent_id is None or entry.parent_id == ROOT_ID:
            msg = f"Can't modify the root bookmark folders: {node_id}"
            raise FolderStoreError(msg)

    def _index_of(self, entry: _Entry) -> int | None:
        if entry.parent_id is None:
            return None
        return self._entries[entry.parent_id].children.index(entry.id)

    def _to_node(self, entry: _Entry, *, depth: int) -> FolderNode:
        children: list[FolderNode] | None = None
        if entry.url is None and depth > 0:
            children = [self._to_node(self._entries[child], depth=depth - 1) for child in entry.children]
        return FolderNode(
            id=entry.id,
            parent_id=entry.parent_id,
            title=entry.title,
            url=entry.url,
            index=self._index_of(entry),
            date_added=entry.date_added,
            children=children,
        )

    def _drop(self, entry: _Entry) -> None:
        for child in list(entry.children):
            self._drop(self._entries[child])
        del self._entries[entry.id]

    def _detach(self, entry: _Entry) -> None:
        if entry.parent_id is not None:
            self._entries[entry.parent_id].children.remove(entry.id)

    async def _changed(self) -> None:
        self.mutation_count += 1

    # -- Read ------------------------------------------------------------------

    async def get_tree(self) -> list[FolderNode]:
        return [self._to_node(self._entries[ROOT_ID], depth=len(self._entries))]

    async def get_sub_tree(self, node_id: str) -> list[FolderNode]:
        return [self._to_node(self._entry(node_id), depth=len(self._entries))]

    async def get_children(self, node_id: str) -> list[FolderNode]:
        entry = self._entry(node_id)
        return [self._to_node(self._entries[child], depth=0) for child in entry.children]

    async def get(self, node_id: str) -> FolderNode:
        return self._to_node(self._entry(node_id), depth=0)

    async def search(self, query: str) -> list[FolderNode]:
        needle = query.lower()
        return [
            self._to_node(entry, depth=0)
            for entry in self._entries.values()
            if entry.parent_id is not None and (needle in entry.title.lower() or needle in (entry.url or "").lower())
        ]

    # -- Write -----------------------------------------------------------------

    async def create(
        self,
        parent_id: str,
        title: str,
        url: str | None = None,
        index: int | None = None,
    ) -> FolderNode:
        parent = self._entry(parent_id)
        if parent.url is not None:
            msg = f"Parent is not a folder: {parent_id}"
            raise FolderStoreError(msg)
        entry = self._new_entry(parent_id, title, url or None)
        position = len(parent.children) if index is None else max(0, min(index, len(parent.children)))
        parent.children.insert(position, entry.id)
        await self._changed()
        return self._to_node(entry, depth=0)

    async def update(self, node_id: str, *, title: str | None = None, url: str | None = None) -> FolderNode:
        self._guard_permanent(node_id)
        entry = self._entry(node_id)
        if url is not None and entry.url is None:
            msg = f"Can't set a url on a folder: {node_id}"
            raise FolderStoreError(msg)
        if title is not None:
            entry.title = title
        if url is not None:
            entry.url = url
        await self._changed()
        return self._to_node(entry, depth=0)

    async def move(self, node_id: str, *, parent_id: str | None = None, index: int | None = None) -> FolderNode:
        self._guard_permanent(node_id)
        entry = self._entry(node_id)
        target = self._entry(parent_id or entry.parent_id or ROOT_ID)
        if target.url is not None:
            msg = f"Parent is not a folder: {target.id}"
            raise FolderStoreError(msg)
        # Reject moving a folder into its own subtree.
        cursor: str | None = target.id
        while cursor is not None:
            if cursor == entry.id:
                msg = f"Can't move {node_id} into its own subtree"
                raise FolderStoreError(msg)
            cursor = self._entries[cursor].parent_id
        self._detach(entry)
        position = len(target.children) if index is None else max(0, min(index, len(target.children)))
        target.children.insert(position, entry.id)
        entry.parent_id = target.id
        await self._changed()
        return self._to_node(entry, depth=0)

    async def remove(self, node_id: str) -> None:
        self._guard_permanent(node_id)
        entry = self._entry(node_id)
        if entry.children:
            msg = f"Can't remove non-empty folder: {node_id}"
            raise FolderStoreError(msg)
        self._detach(entry)
        del self._entries[node_id]
        await self._changed()

    async def remove_tree(self, node_id: str) -> None:
        self._guard_permanent(node_id)
        entry = self._entry(node_id)
        self._detach(entry)
        self._drop(entry)
        await self._changed()

    # -- Persistence -----------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready dump of the whole tree, ids included."""

        def dump(entry: _Entry) -> dict[str, Any]:
            data: dict[str, Any] = {"id": entry.id, "title": entry.title, "dateAdded": entry.date_added}
            if entry.url is not None:
                data["url"] = entry.url
            else:
                data["children"] = [dump(self._entries[child]) for child in entry.children]
            return data

        return {"nextId": self._next_id, "root": dump(self._entries[ROOT_ID])}

    def load_snapshot(self, data: dict[str, Any]) -> None:
        entries: dict[str, _Entry] = {}

        def load(raw: dict[str, Any], parent_id: str | None) -> str:
            entry = _Entry(
                id=str(raw["id"]),
                parent_id=parent_id,
                title=raw.get("title", ""),
                url=raw.get("url"),
                date_added=raw.get("dateAdded") or now_ms(),
            )
            entries[entry.id] = entry
            entry.children = [load(child, entry.id) for child in raw.get("children") or []]
            return entry.id

        load(data["root"], None)
        if ROOT_ID not in entries:
            msg = "Snapshot has no root node"
            raise FolderStoreError(msg)
        self._entries = entries
        self._next_id = max(int(data.get("nextId", 0)), max(int(key) for key in entries) + 1)

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> MemoryFolderStore:
        store = cls()
        store.load_snapshot(data)
        return store


class JsonFolderStore(MemoryFolderStore):
    """``MemoryFolderStore`` persisted to a single JSON file.

    Use ``await JsonFolderStore.open(path)``; a missing file starts a fresh
    tree that is written on the first mutation.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    @classmethod
    async def open(cls, path: str | Path) -> JsonFolderStore:
        store = cls(path)
        raw = await to_thread.run_sync(_read_text, store._path)
        if raw is not None:
            store.load_snapshot(json.loads(raw))
        return store

    async def _changed(self) -> None:
        await super()._changed()
        data = json.dumps(self.snapshot(), ensure_ascii=False, indent=2)
        await to_thread.run_sync(_write_text, self._path, data)


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None


def _write_text(path: Path, data: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(data, encoding="utf-8")
    tmp.replace(path)
