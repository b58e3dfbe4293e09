"""Shared enumerations used across the workspace engine."""

from __future__ import annotations

from enum import StrEnum

# -- Palette -----------------------------------------------------------------


class ColorScheme(StrEnum):
    """Named entries of the fixed workspace palette, in palette order."""

    PURPLE = "purple"
    BLUE = "blue"
    CYAN = "cyan"
    GREEN = "green"
    YELLOW = "yellow"
    ORANGE = "orange"
    RED = "red"
    PINK = "pink"
    GREY = "grey"


# -- Engine ------------------------------------------------------------------


class EngineState(StrEnum):
    """Lifecycle of a ``WorkspaceEngine`` instance."""

    UNINITIALIZED = "uninitialized"
    MIGRATING = "migrating"
    LOADING = "loading"
    RECONCILING_FOLDERS = "reconciling_folders"
    RECONCILING_PINS = "reconciling_pins"
    VALIDATING = "validating"
    READY = "ready"
    NEEDS_PROMPT = "needs_prompt"


class ReinstallReason(StrEnum):
    """Why init paused for a user decision."""

    SYNC_WITHOUT_LOCAL = "sync_without_local"
    FOLDERS_WITHOUT_SYNC = "folders_without_sync"


class SchemaShape(StrEnum):
    """Shape of the replicated partition found at startup."""

    CURRENT = "current"
    LEGACY = "legacy"
    EMPTY = "empty"


# -- Events ------------------------------------------------------------------


class WorkspaceEvent(StrEnum):
    """Notifications emitted by the engine after a change is persisted."""

    WORKSPACE_CHANGED = "workspace:changed"
    WORKSPACE_CREATED = "workspace:created"
    WORKSPACE_DELETED = "workspace:deleted"
    WORKSPACE_RENAMED = "workspace:renamed"
    WORKSPACE_REORDERED = "workspace:reordered"
    WORKSPACE_PRUNED = "workspace:pruned"
    BOOKMARK_PINNED = "bookmark:pinned"
    BOOKMARK_UNPINNED = "bookmark:unpinned"
    SHORTCUT_ADDED = "shortcut:added"
    SHORTCUT_REMOVED = "shortcut:removed"
    THEME_CHANGED = "theme:changed"
