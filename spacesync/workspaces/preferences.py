"""Synced user preferences.

Preferences live in the replicated ``settings`` item so they follow the user
across devices.  Older installs kept ``sidebarCompact`` and
``onboardingDismissed`` in the local partition; each getter reads that copy
once, moves it into the replicated item and deletes it locally.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from spacesync.workspaces.models.preferences import SyncedSettings
from spacesync.workspaces.store.device import DeviceStore
from spacesync.workspaces.store.replicated import ReplicatedStore

SIDEBAR_COMPACT = "sidebarCompact"
ONBOARDING_DISMISSED = "onboardingDismissed"


class Preferences:
    def __init__(self, replicated: ReplicatedStore, device: DeviceStore) -> None:
        self._replicated = replicated
        self._device = device

    async def get_all(self) -> SyncedSettings | None:
        """The replicated settings item, ``None`` if it was never written."""
        return await self._replicated.get_settings()

    async def update_setting(self, key: str, value: Any) -> SyncedSettings:
        """Read-modify-write one key (wire name, e.g. ``sidebarCompact``).  Other keys are kept."""
        current = await self._replicated.get_settings() or SyncedSettings()
        data = current.to_wire()
        data[key] = value
        updated = SyncedSettings.model_validate(data)
        await self._replicated.save_settings(updated)
        return updated

    # -- Sidebar ---------------------------------------------------------------

    async def get_sidebar_compact(self) -> bool:
        settings = await self._replicated.get_settings()
        if settings is not None and settings.sidebar_compact is not None:
            return settings.sidebar_compact

        legacy = await self._device.get_legacy_value(SIDEBAR_COMPACT)
        if legacy is None:
            return False
        await self._migrate(SIDEBAR_COMPACT, legacy is True)
        return legacy is True

    async def set_sidebar_compact(self, compact: bool) -> None:
        await self.update_setting(SIDEBAR_COMPACT, compact)

    # -- Onboarding ------------------------------------------------------------

    async def is_onboarding_dismissed(self) -> bool:
        settings = await self._replicated.get_settings()
        if settings is not None and settings.onboarding_dismissed is not None:
            return settings.onboarding_dismissed

        # Only a dismissed onboarding is worth carrying over.
        if await self._device.get_legacy_value(ONBOARDING_DISMISSED) is True:
            await self._migrate(ONBOARDING_DISMISSED, True)
            return True
        return False

    async def dismiss_onboarding(self) -> None:
        await self.update_setting(ONBOARDING_DISMISSED, True)

    async def _migrate(self, key: str, value: bool) -> None:
        await self.update_setting(key, value)
        await self._device.remove_legacy_value(key)
        logger.info("Moved local preference '{}' into synced settings", key)
