"""Data models for the workspace engine."""

from spacesync.workspaces.models.backup import (
    BackupDocument,
    BackupNode,
    BackupSummary,
    BackupValidation,
)
from spacesync.workspaces.models.device import DeviceState, UIState
from spacesync.workspaces.models.enums import (
    ColorScheme,
    EngineState,
    ReinstallReason,
    SchemaShape,
    WorkspaceEvent,
)
from spacesync.workspaces.models.folder import FolderNode
from spacesync.workspaces.models.preferences import SyncedSettings
from spacesync.workspaces.models.results import (
    FolderReconcileResult,
    InitResult,
    MigrationResult,
    PinChange,
    PinReconcileResult,
)
from spacesync.workspaces.models.workspace import (
    CURRENT_SCHEMA_VERSION,
    LegacyWorkspaceRecord,
    LegacyWorkspaces,
    PinnedBookmark,
    Shortcut,
    WorkspaceOrder,
    WorkspaceRecord,
)

__all__ = [
    "CURRENT_SCHEMA_VERSION",
    # Backup
    "BackupDocument",
    "BackupNode",
    "BackupSummary",
    "BackupValidation",
    # Enums
    "ColorScheme",
    # Device
    "DeviceState",
    "EngineState",
    # Folder store
    "FolderNode",
    # Results
    "FolderReconcileResult",
    "InitResult",
    # Workspace
    "LegacyWorkspaceRecord",
    "LegacyWorkspaces",
    "MigrationResult",
    "PinChange",
    "PinReconcileResult",
    "PinnedBookmark",
    "ReinstallReason",
    "SchemaShape",
    "Shortcut",
    # Preferences
    "SyncedSettings",
    "UIState",
    "WorkspaceEvent",
    "WorkspaceOrder",
    "WorkspaceRecord",
]
