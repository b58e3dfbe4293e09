"""Structured outcomes of init and reconciliation passes.

Callers (and tests) assert on these instead of parsing log output.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from spacesync.workspaces.models.enums import EngineState, ReinstallReason


@dataclass
class FolderReconcileResult:
    """What the folder reconciler did, by workspace id."""

    kept: list[str] = field(default_factory=list)
    matched_by_name: list[str] = field(default_factory=list)
    matched_by_position: list[str] = field(default_factory=list)
    created: list[str] = field(default_factory=list)
    renamed: list[str] = field(default_factory=list)
    root_container_created: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.matched_by_name or self.matched_by_position or self.created)


@dataclass
class PinChange:
    workspace_id: str
    old_id: str
    new_id: str | None = None
    """``None`` when the pin was dropped."""


@dataclass
class PinReconcileResult:
    remapped: list[PinChange] = field(default_factory=list)
    dropped: list[PinChange] = field(default_factory=list)
    refreshed: list[str] = field(default_factory=list)
    """Workspace ids whose pin metadata (url/title) was refreshed from live items."""


@dataclass
class MigrationResult:
    order: list[str]
    migrated_ids: list[str]
    active_workspace_id: str | None


@dataclass
class InitResult:
    """Outcome of one ``init`` / ``continue_init`` / ``reset_and_setup`` call."""

    state: EngineState = EngineState.UNINITIALIZED
    attempts: int = 1
    migrated: bool = False
    first_run: bool = False
    recovered_items: list[str] = field(default_factory=list)
    adopted_folders: list[str] = field(default_factory=list)
    pruned: list[str] = field(default_factory=list)
    folders: FolderReconcileResult | None = None
    pins: PinReconcileResult | None = None
    reinstall_reason: ReinstallReason | None = None
