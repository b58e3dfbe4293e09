"""Schema detection and v1 -> v2 migration.

Shapes are checked in priority order:

1. ``CURRENT``: an ``order_meta`` item with ``version == 2``.
2. ``LEGACY``: the single v1 ``workspaces`` item.
3. ``EMPTY``: neither, so the caller takes the first-run path.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from spacesync.workspaces.models.device import DeviceState
from spacesync.workspaces.models.enums import SchemaShape
from spacesync.workspaces.models.results import MigrationResult
from spacesync.workspaces.models.workspace import CURRENT_SCHEMA_VERSION, LegacyWorkspaces, WorkspaceOrder
from spacesync.workspaces.store.device import DeviceStore
from spacesync.workspaces.store.replicated import ReplicatedStore


@dataclass
class SchemaScan:
    shape: SchemaShape
    order: WorkspaceOrder | None = None
    legacy: LegacyWorkspaces | None = None


async def detect_schema(replicated: ReplicatedStore) -> SchemaScan:
    order = await replicated.get_order()
    if order is not None and order.version == CURRENT_SCHEMA_VERSION:
        return SchemaScan(SchemaShape.CURRENT, order=order)
    legacy = await replicated.get_legacy_workspaces()
    if legacy is not None:
        return SchemaScan(SchemaShape.LEGACY, legacy=legacy)
    return SchemaScan(SchemaShape.EMPTY)


async def migrate_legacy(replicated: ReplicatedStore, device: DeviceStore, legacy: LegacyWorkspaces) -> MigrationResult:
    """Split the v1 item into per-workspace items and delete it.

    Folder ids move into the device state.  Order entries without an item
    are dropped.  The legacy item is deleted last, so a failure part-way
    leaves it in place and the next init migrates again.
    """
    order: list[str] = []
    folder_ids: dict[str, str] = {}
    for workspace_id in legacy.order:
        legacy_record = legacy.items.get(workspace_id)
        if legacy_record is None or workspace_id in order:
            continue
        if legacy_record.root_folder_id:
            folder_ids[workspace_id] = legacy_record.root_folder_id
        await replicated.save_item(legacy_record.to_record())
        order.append(workspace_id)

    await replicated.save_order(order)

    active = legacy.active_workspace_id if legacy.active_workspace_id in order else None
    if active is None and order:
        active = order[0]
    await device.save_device_state(DeviceState(active_workspace_id=active, root_folder_ids=folder_ids))

    await replicated.delete_legacy_workspaces()
    logger.info("Migrated {} workspace(s) from the v1 schema", len(order))
    return MigrationResult(order=order, migrated_ids=list(order), active_workspace_id=active)
