"""Typed access to the replicated (cross-device) partition.

Key layout::

    order_meta          -> WorkspaceOrder  {order: [...], version: 2}
    ws_<id>             -> WorkspaceRecord (one item per workspace)
    settings            -> SyncedSettings
    workspaces          -> LegacyWorkspaces (v1, migrated then deleted)
    root_container_id   -> str (legacy copy, read once for migration)

Failure policy: reads never raise.  A backend error or a payload that no
longer validates (partial or corrupted replication) degrades to "absent"
with a warning.  Writes and deletes propagate, because losing a replicated
write silently is worse than surfacing it.

Each workspace is its own item because the replication service caps the
payload of a single item; the cap is enforced here before anything is sent.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from loguru import logger
from pydantic import BaseModel, ValidationError

from spacesync.workspaces.models.preferences import SyncedSettings
from spacesync.workspaces.models.workspace import (
    CURRENT_SCHEMA_VERSION,
    LegacyWorkspaces,
    WorkspaceOrder,
    WorkspaceRecord,
)
from spacesync.workspaces.store.base import ItemTooLargeError, KeyValueArea
from spacesync.workspaces.titles import WORKSPACE_KEY_PREFIX

ORDER_KEY = "order_meta"
SETTINGS_KEY = "settings"
LEGACY_WORKSPACES_KEY = "workspaces"
LEGACY_ROOT_CONTAINER_KEY = "root_container_id"

DEFAULT_ITEM_QUOTA_BYTES = 8192


class ReplicatedStore:
    def __init__(self, area: KeyValueArea, *, item_quota_bytes: int = DEFAULT_ITEM_QUOTA_BYTES) -> None:
        self._area = area
        self._quota = item_quota_bytes

    @property
    def area(self) -> KeyValueArea:
        return self._area

    # -- Raw helpers -----------------------------------------------------------

    async def _read(self, keys: list[str]) -> dict[str, Any]:
        try:
            return await self._area.get(keys)
        except Exception as exc:
            logger.warning("Replicated read failed for {}, treating as empty: {}", keys, exc)
            return {}

    async def _write(self, key: str, value: Any) -> None:
        size = len(key.encode("utf-8")) + len(json.dumps(value, ensure_ascii=False).encode("utf-8"))
        if size > self._quota:
            raise ItemTooLargeError(key, size, self._quota)
        await self._area.set({key: value})

    @staticmethod
    def _parse[M: BaseModel](model: type[M], key: str, raw: Any) -> M | None:
        if raw is None:
            return None
        try:
            return model.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Ignoring unreadable replicated item '{}': {}", key, exc.errors()[:3])
            return None

    # -- Order -----------------------------------------------------------------

    async def get_order(self) -> WorkspaceOrder | None:
        raw = (await self._read([ORDER_KEY])).get(ORDER_KEY)
        return self._parse(WorkspaceOrder, ORDER_KEY, raw)

    async def save_order(self, order: Iterable[str], version: int = CURRENT_SCHEMA_VERSION) -> None:
        await self._write(ORDER_KEY, WorkspaceOrder(order=list(order), version=version).to_wire())

    async def delete_order(self) -> None:
        await self._area.remove([ORDER_KEY])

    # -- Workspace items -------------------------------------------------------

    async def get_item(self, workspace_id: str) -> WorkspaceRecord | None:
        raw = (await self._read([workspace_id])).get(workspace_id)
        return self._parse(WorkspaceRecord, workspace_id, raw)

    async def save_item(self, record: WorkspaceRecord) -> None:
        await self._write(record.id, record.to_wire())

    async def delete_item(self, workspace_id: str) -> None:
        await self._area.remove([workspace_id])

    async def get_all_items(self, workspace_ids: Iterable[str]) -> dict[str, WorkspaceRecord]:
        """Batch-fetch items.  Missing or unreadable ids are silently omitted."""
        ids = list(workspace_ids)
        if not ids:
            return {}
        raw = await self._read(ids)
        items: dict[str, WorkspaceRecord] = {}
        for workspace_id in ids:
            record = self._parse(WorkspaceRecord, workspace_id, raw.get(workspace_id))
            if record is not None:
                items[workspace_id] = record
        return items

    async def discover_item_keys(self) -> list[str]:
        """Every workspace item key present, whether or not ``order`` references it."""
        try:
            keys = await self._area.keys()
        except Exception as exc:
            logger.warning("Replicated key listing failed, treating as empty: {}", exc)
            return []
        return [key for key in keys if key.startswith(WORKSPACE_KEY_PREFIX)]

    # -- Settings --------------------------------------------------------------

    async def get_settings(self) -> SyncedSettings | None:
        raw = (await self._read([SETTINGS_KEY])).get(SETTINGS_KEY)
        return self._parse(SyncedSettings, SETTINGS_KEY, raw)

    async def save_settings(self, settings: SyncedSettings) -> None:
        await self._write(SETTINGS_KEY, settings.to_wire())

    # -- Legacy ----------------------------------------------------------------

    async def get_legacy_workspaces(self) -> LegacyWorkspaces | None:
        raw = (await self._read([LEGACY_WORKSPACES_KEY])).get(LEGACY_WORKSPACES_KEY)
        return self._parse(LegacyWorkspaces, LEGACY_WORKSPACES_KEY, raw)

    async def delete_legacy_workspaces(self) -> None:
        await self._area.remove([LEGACY_WORKSPACES_KEY])

    async def get_legacy_root_container_id(self) -> str | None:
        raw = (await self._read([LEGACY_ROOT_CONTAINER_KEY])).get(LEGACY_ROOT_CONTAINER_KEY)
        return raw if isinstance(raw, str) and raw else None
