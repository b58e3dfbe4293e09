"""Tests for synced preferences and their one-time local migration."""

from __future__ import annotations

import pytest

from spacesync.workspaces.preferences import Preferences
from spacesync.workspaces.store import DeviceStore, MemoryArea, ReplicatedStore


@pytest.fixture
def preferences(replicated: ReplicatedStore, device: DeviceStore) -> Preferences:
    return Preferences(replicated, device)


async def test_defaults(preferences: Preferences) -> None:
    assert await preferences.get_all() is None
    assert await preferences.get_sidebar_compact() is False
    assert await preferences.is_onboarding_dismissed() is False


async def test_update_setting_keeps_other_keys(preferences: Preferences, replicated_area: MemoryArea) -> None:
    await replicated_area.set({"settings": {"theme": "dark"}})

    await preferences.set_sidebar_compact(True)
    await preferences.dismiss_onboarding()

    assert replicated_area.dump()["settings"] == {
        "theme": "dark",
        "sidebarCompact": True,
        "onboardingDismissed": True,
    }
    assert await preferences.get_sidebar_compact() is True
    assert await preferences.is_onboarding_dismissed() is True


async def test_local_sidebar_preference_moves_to_synced_settings(
    preferences: Preferences, local_area: MemoryArea, replicated_area: MemoryArea
) -> None:
    await local_area.set({"sidebarCompact": True})

    assert await preferences.get_sidebar_compact() is True

    assert replicated_area.dump()["settings"] == {"sidebarCompact": True}
    assert "sidebarCompact" not in local_area.dump()


async def test_synced_value_wins_over_local_copy(
    preferences: Preferences, local_area: MemoryArea, replicated_area: MemoryArea
) -> None:
    await replicated_area.set({"settings": {"sidebarCompact": False}})
    await local_area.set({"sidebarCompact": True})

    assert await preferences.get_sidebar_compact() is False
    assert local_area.dump() == {"sidebarCompact": True}


async def test_only_dismissed_onboarding_is_migrated(
    preferences: Preferences, local_area: MemoryArea, replicated_area: MemoryArea
) -> None:
    await local_area.set({"onboardingDismissed": False})

    assert await preferences.is_onboarding_dismissed() is False
    assert "settings" not in replicated_area.dump()

    await local_area.set({"onboardingDismissed": True})

    assert await preferences.is_onboarding_dismissed() is True
    assert replicated_area.dump()["settings"] == {"onboardingDismissed": True}
    assert "onboardingDismissed" not in local_area.dump()
