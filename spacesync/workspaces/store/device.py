"""Typed access to the local (per-device) partition.

Key layout::

    device_state        -> DeviceState {activeWorkspaceId, rootFolderIds}
    root_container_id   -> str
    ui_state            -> UIState {expandedFolders, scrollPositions}

Nothing here ever replicates.  Failures are non-critical: reads degrade to
defaults and writes are logged and swallowed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from loguru import logger
from pydantic import ValidationError

from spacesync.workspaces.models.device import DeviceState, UIState
from spacesync.workspaces.store.base import KeyValueArea

if TYPE_CHECKING:
    from spacesync.workspaces.store.replicated import ReplicatedStore

DEVICE_STATE_KEY = "device_state"
ROOT_CONTAINER_KEY = "root_container_id"
UI_STATE_KEY = "ui_state"


class DeviceStore:
    def __init__(self, area: KeyValueArea, *, replicated: ReplicatedStore | None = None) -> None:
        self._area = area
        self._replicated = replicated

    @property
    def area(self) -> KeyValueArea:
        return self._area

    # -- Raw helpers -----------------------------------------------------------

    async def _read(self, key: str) -> Any:
        try:
            return (await self._area.get([key])).get(key)
        except Exception as exc:
            logger.warning("Local read of '{}' failed, using default: {}", key, exc)
            return None

    async def _write(self, key: str, value: Any) -> bool:
        try:
            await self._area.set({key: value})
        except Exception as exc:
            logger.warning("Local write of '{}' failed: {}", key, exc)
            return False
        return True

    async def _remove(self, keys: list[str]) -> None:
        try:
            await self._area.remove(keys)
        except Exception as exc:
            logger.warning("Local remove of {} failed: {}", keys, exc)

    # -- Device state ----------------------------------------------------------

    async def get_device_state(self) -> DeviceState:
        raw = await self._read(DEVICE_STATE_KEY)
        if raw is None:
            return DeviceState()
        try:
            return DeviceState.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable device state: {}", exc.errors()[:3])
            return DeviceState()

    async def save_device_state(self, state: DeviceState) -> None:
        await self._write(DEVICE_STATE_KEY, state.to_wire())

    # -- Root container --------------------------------------------------------

    async def get_root_container_id(self) -> str | None:
        """Cached root container folder id.

        Older installs kept this id in the replicated partition.  That copy is
        read once, persisted locally, and never consulted again.
        """
        raw = await self._read(ROOT_CONTAINER_KEY)
        if isinstance(raw, str) and raw:
            return raw
        if self._replicated is None:
            return None
        legacy = await self._replicated.get_legacy_root_container_id()
        if legacy:
            logger.info("Moved root container id {} from the replicated to the local partition", legacy)
            await self.save_root_container_id(legacy)
        return legacy

    async def save_root_container_id(self, folder_id: str) -> None:
        await self._write(ROOT_CONTAINER_KEY, folder_id)

    async def clear_root_container_id(self) -> None:
        await self._remove([ROOT_CONTAINER_KEY])

    # -- UI state --------------------------------------------------------------

    async def get_ui_state(self) -> UIState | None:
        raw = await self._read(UI_STATE_KEY)
        if raw is None:
            return None
        try:
            return UIState.model_validate(raw)
        except ValidationError:
            return None

    async def save_ui_state(self, state: UIState) -> None:
        await self._write(UI_STATE_KEY, state.to_wire())

    # -- Wipe / legacy ---------------------------------------------------------

    async def clear(self) -> None:
        """Forget every device-local identifier (used before a fresh setup)."""
        await self._remove([DEVICE_STATE_KEY, ROOT_CONTAINER_KEY, UI_STATE_KEY])

    async def get_legacy_value(self, key: str) -> Any:
        """Read a pre-sync preference key stored on this device."""
        return await self._read(key)

    async def remove_legacy_value(self, key: str) -> None:
        await self._remove([key])
