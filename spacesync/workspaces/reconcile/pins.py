"""Pinned-item reconciliation.

Pins are stored as durable metadata (``{id, url?, title?}``); the id is only
valid on the device that pinned it.  For each pin:

- the id still resolves: keep it and refresh url/title from the live node;
- otherwise match a live link in the workspace by exact url, or (for folder
  pins, which carry no url) a live folder by exact title;
- otherwise drop it.  An unreconcilable pin is assumed deleted.

Lookups never look at the workspace folder itself or at the shortcuts
folder, whose links mirror shortcuts rather than pinnable bookmarks.
"""

from __future__ import annotations

from collections.abc import Iterable

from loguru import logger

from spacesync.workspaces.context import WorkspaceSet
from spacesync.workspaces.folders.service import FolderService
from spacesync.workspaces.models.folder import FolderNode
from spacesync.workspaces.models.results import PinChange, PinReconcileResult
from spacesync.workspaces.models.workspace import PinnedBookmark
from spacesync.workspaces.store.replicated import ReplicatedStore

FOLDER_KEY_PREFIX = "folder:"


def pin_key(url: str | None, title: str | None) -> str | None:
    """Lookup key of a pin: its url for links, ``folder:<title>`` for folders."""
    if url:
        return url
    if title:
        return f"{FOLDER_KEY_PREFIX}{title}"
    return None


def build_pin_index(root: FolderNode, *, skip_folder_titles: Iterable[str] = ()) -> dict[str, FolderNode]:
    """Index a workspace subtree by ``pin_key``.

    The root itself is not indexed, and folders titled like an entry of
    ``skip_folder_titles`` are skipped together with their contents.  The
    first node found for a key wins.
    """
    skipped = set(skip_folder_titles)
    index: dict[str, FolderNode] = {}

    def walk(node: FolderNode) -> None:
        for child in node.children or []:
            if child.is_folder and child.title in skipped:
                continue
            key = pin_key(child.url, child.title)
            if key is not None:
                index.setdefault(key, child)
            if child.is_folder:
                walk(child)

    walk(root)
    return index


def remap_pins(pins: Iterable[PinnedBookmark], index: dict[str, FolderNode]) -> list[PinnedBookmark]:
    """Rewrite pins to the ids of matching indexed nodes, dropping pins with no match."""
    remapped: list[PinnedBookmark] = []
    seen: set[str] = set()
    for pin in pins:
        key = pin_key(pin.url, pin.title)
        node = index.get(key) if key is not None else None
        if node is None or node.id in seen:
            continue
        seen.add(node.id)
        remapped.append(PinnedBookmark(id=node.id, url=node.url, title=node.title))
    return remapped


class PinReconciler:
    def __init__(self, folders: FolderService, replicated: ReplicatedStore, *, shortcuts_folder_title: str) -> None:
        self._folders = folders
        self._replicated = replicated
        self._shortcuts_title = shortcuts_folder_title

    async def reconcile(self, workspaces: WorkspaceSet) -> PinReconcileResult:
        result = PinReconcileResult()
        for workspace in workspaces.ordered():
            pins = workspace.record.pinned_bookmarks
            if not pins:
                workspace.pinned_ids = set()
                continue
            subtree = await self._folders.get_sub_tree(workspace.root_folder_id) if workspace.root_folder_id else None
            if subtree is None:
                # Folder not resolved on this device yet; the pins are left for a later pass.
                workspace.pinned_id_set()
                continue

            index = build_pin_index(subtree, skip_folder_titles=[self._shortcuts_title])
            kept: list[PinnedBookmark] = []
            seen: set[str] = set()
            refreshed = False
            for pin in pins:
                live = await self._folders.get(pin.id)
                if live is not None:
                    fresh = PinnedBookmark(id=live.id, url=live.url, title=live.title)
                    refreshed = refreshed or fresh != pin
                    if fresh.id not in seen:
                        seen.add(fresh.id)
                        kept.append(fresh)
                    continue

                matched = remap_pins([pin], index)
                if matched and matched[0].id not in seen:
                    seen.add(matched[0].id)
                    kept.append(matched[0])
                    result.remapped.append(PinChange(workspace.id, pin.id, matched[0].id))
                    logger.debug("Pin {} in {} remapped to {}", pin.id, workspace.id, matched[0].id)
                else:
                    result.dropped.append(PinChange(workspace.id, pin.id))
                    logger.debug("Pin {} in {} dropped", pin.id, workspace.id)

            if kept == pins:
                workspace.pinned_id_set()
                continue
            if refreshed:
                result.refreshed.append(workspace.id)
            workspace.set_pins(kept)
            await self._replicated.save_item(workspace.record)

        if result.remapped or result.dropped:
            logger.info("Pin reconciliation: {} remapped, {} dropped", len(result.remapped), len(result.dropped))
        return result
