"""Synced user preferences (the replicated ``settings`` item)."""

from __future__ import annotations

from pydantic import ConfigDict

from spacesync.workspaces.models.base import WireModel


class SyncedSettings(WireModel):
    """Cross-device preferences.

    Unknown keys written by other clients are kept so a read-modify-write
    never drops them.
    """

    model_config = ConfigDict(extra="allow")

    sidebar_compact: bool | None = None
    onboarding_dismissed: bool | None = None
