"""Export and import of the complete workspace state.

A backup is a one-shot full dump: replicated records, the order item,
synced settings and every workspace folder's content with local ids
stripped.  Import wipes the current state and recreates it from scratch; no
incremental reconciliation is attempted, except that pins are remapped to
the ids of the recreated nodes.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any

from anyio import to_thread
from loguru import logger
from pydantic import ValidationError

from spacesync.workspaces.engine import WorkspaceEngine
from spacesync.workspaces.models.backup import (
    BACKUP_FORMAT_VERSION,
    BackupDocument,
    BackupNode,
    BackupSummary,
    BackupValidation,
)
from spacesync.workspaces.models.device import DeviceState
from spacesync.workspaces.models.folder import FolderNode
from spacesync.workspaces.models.preferences import SyncedSettings
from spacesync.workspaces.models.results import InitResult
from spacesync.workspaces.models.workspace import WorkspaceOrder, now_ms
from spacesync.workspaces.reconcile.merge import merge_orders
from spacesync.workspaces.reconcile.pins import pin_key, remap_pins
from spacesync.workspaces.reconcile.shortcuts import limit_shortcuts
from spacesync.workspaces.titles import build_folder_title


class BackupFormatError(ValueError):
    """Raised when a backup document cannot be read or fails validation."""


def _app_version() -> str:
    try:
        return version("spacesync")
    except PackageNotFoundError:
        return "unknown"


def _count_links(nodes: list[Any]) -> int:
    count = 0
    for node in nodes:
        if not isinstance(node, dict):
            continue
        if node.get("url"):
            count += 1
        if isinstance(node.get("children"), list):
            count += _count_links(node["children"])
    return count


def _serialize(nodes: list[FolderNode]) -> list[BackupNode]:
    return [
        BackupNode(
            title=node.title,
            url=node.url or None,
            children=_serialize(node.children) if node.children else None,
        )
        for node in nodes
    ]


class BackupService:
    def __init__(self, engine: WorkspaceEngine) -> None:
        self._engine = engine

    # -- Export ----------------------------------------------------------------

    async def create_backup(self) -> BackupDocument:
        replicated = self._engine.replicated
        meta = await replicated.get_order()
        if meta is None or not meta.order:
            msg = "No workspace data found to back up"
            raise ValueError(msg)

        workspaces = await replicated.get_all_items(meta.order)

        bookmark_tree: dict[str, list[BackupNode]] = {}
        for workspace in self._engine.get_all():
            subtree = None
            if workspace.root_folder_id:
                subtree = await self._engine.folders.get_sub_tree(workspace.root_folder_id)
            bookmark_tree[workspace.id] = _serialize(subtree.children or []) if subtree else []

        settings = await replicated.get_settings()
        created = datetime.now(UTC)
        return BackupDocument(
            format_version=BACKUP_FORMAT_VERSION,
            app_version=_app_version(),
            created_at=created.isoformat().replace("+00:00", "Z"),
            created_at_ms=int(created.timestamp() * 1000),
            meta=WorkspaceOrder(order=list(meta.order), version=meta.version),
            workspaces={key: workspaces[key] for key in meta.order if key in workspaces},
            bookmark_tree=bookmark_tree,
            settings=settings.to_wire() if settings else {},
        )

    async def save_backup(self, path: str | Path) -> BackupDocument:
        document = await self.create_backup()
        data = json.dumps(document.to_wire(), ensure_ascii=False, indent=2)
        await to_thread.run_sync(Path(path).write_text, data, "utf-8")
        logger.info("Wrote backup of {} workspace(s) to {}", len(document.workspaces), path)
        return document

    # -- Validation ------------------------------------------------------------

    def validate_backup(self, data: Any) -> BackupValidation:
        """Check a parsed JSON document before it is restored."""
        if not isinstance(data, dict):
            return BackupValidation(valid=False, error="Invalid file: not a JSON object")
        if data.get("formatVersion") != BACKUP_FORMAT_VERSION:
            msg = f"Unsupported backup format version: {data.get('formatVersion')}"
            return BackupValidation(valid=False, error=msg)
        meta = data.get("meta")
        order = meta.get("order") if isinstance(meta, dict) else None
        if not isinstance(order, list) or not order:
            return BackupValidation(valid=False, error="Backup contains no workspace data")
        workspaces = data.get("workspaces")
        if not isinstance(workspaces, dict):
            return BackupValidation(valid=False, error="Backup is missing workspace configurations")

        present = [workspace_id for workspace_id in order if workspaces.get(workspace_id)]
        if not present:
            return BackupValidation(valid=False, error="No valid workspaces found in backup")

        tree = data.get("bookmarkTree")
        link_count = 0
        if isinstance(tree, dict):
            link_count = sum(_count_links(tree.get(workspace_id) or []) for workspace_id in order)
        names = [
            workspaces[workspace_id]["name"]
            for workspace_id in present
            if isinstance(workspaces[workspace_id], dict) and workspaces[workspace_id].get("name")
        ]
        return BackupValidation(
            valid=True,
            summary=BackupSummary(
                workspace_count=len(present),
                workspace_names=names,
                bookmark_count=link_count,
                created_at=data.get("createdAt"),
                app_version=data.get("appVersion"),
            ),
        )

    def parse_backup(self, data: Any) -> BackupDocument:
        validation = self.validate_backup(data)
        if not validation.valid:
            raise BackupFormatError(validation.error)
        try:
            return BackupDocument.model_validate(data)
        except ValidationError as exc:
            msg = f"Backup has unreadable content: {exc.errors()[:3]}"
            raise BackupFormatError(msg) from exc

    async def load_backup(self, path: str | Path) -> BackupDocument:
        raw = await to_thread.run_sync(Path(path).read_text, "utf-8")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            msg = "Invalid JSON file"
            raise BackupFormatError(msg) from exc
        return self.parse_backup(data)

    # -- Import ----------------------------------------------------------------

    async def restore_backup(self, document: BackupDocument) -> InitResult:
        """Replace everything with the backup, then re-init the engine."""
        engine = self._engine
        replicated, device, folders = engine.replicated, engine.device, engine.folders

        current = await replicated.get_order()
        doomed = merge_orders(current.order if current else [], await replicated.discover_item_keys())
        for workspace_id in doomed:
            await replicated.delete_item(workspace_id)
        await replicated.delete_order()

        old_root = await device.get_root_container_id()
        if old_root:
            await folders.remove_tree(old_root)

        parent_id = await folders.find_default_parent()
        root = await folders.create_folder(parent_id, engine.settings.root_container_title)
        await device.save_root_container_id(root.id)

        order: list[str] = []
        folder_ids: dict[str, str] = {}
        for workspace_id in document.meta.order:
            record = document.workspaces.get(workspace_id)
            if record is None or workspace_id in folder_ids:
                continue
            folder = await folders.create_folder(root.id, build_folder_title(record.name, record.emoji))
            index: dict[str, FolderNode] = {}
            await self._recreate(folder.id, document.bookmark_tree.get(workspace_id, []), index)

            restored = record.model_copy(
                update={
                    "id": workspace_id,
                    "pinned_bookmarks": remap_pins(record.pinned_bookmarks, index),
                    "shortcuts": limit_shortcuts(record.shortcuts, engine.settings.max_shortcuts),
                    "created": record.created or now_ms(),
                }
            )
            await replicated.save_item(restored)
            folder_ids[workspace_id] = folder.id
            order.append(workspace_id)

        await replicated.save_order(order)
        await device.save_device_state(
            DeviceState(active_workspace_id=order[0] if order else None, root_folder_ids=folder_ids)
        )
        if document.settings:
            await replicated.save_settings(SyncedSettings.model_validate(document.settings))
        logger.info("Restored {} workspace(s) from backup", len(order))

        return await engine.init()

    async def _recreate(
        self, parent_id: str, nodes: list[BackupNode], index: dict[str, FolderNode] | None
    ) -> None:
        """Recreate ``nodes`` under ``parent_id``, indexing them for pin remapping.

        With ``index=None`` nothing is indexed.  The shortcuts mirror subtree is
        recreated that way, matching ``build_pin_index``.
        """
        folders = self._engine.folders
        shortcuts_title = self._engine.settings.shortcuts_folder_title
        for node in nodes:
            if node.url:
                created = await folders.create_link(parent_id, node.title, node.url)
            else:
                created = await folders.create_folder(parent_id, node.title)
                if node.title == shortcuts_title:
                    await self._recreate(created.id, node.children or [], None)
                    continue
                await self._recreate(created.id, node.children or [], index)
            if index is None:
                continue
            key = pin_key(created.url, created.title)
            if key is not None:
                index.setdefault(key, created)
