"""Backup document models.

A backup is one self-contained JSON document.  It holds the replicated
records, the order item, the synced settings and a recursive dump of every
workspace folder with local ids stripped.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from spacesync.workspaces.models.base import WireModel
from spacesync.workspaces.models.workspace import WorkspaceOrder, WorkspaceRecord

BACKUP_FORMAT_VERSION = 1


class BackupNode(WireModel):
    """A link (``url`` set) or folder (``children`` possibly set) without its local id."""

    title: str = ""
    url: str | None = None
    children: list[BackupNode] | None = None


class BackupDocument(WireModel):
    format_version: int = BACKUP_FORMAT_VERSION
    app_version: str = "unknown"
    created_at: str | None = None
    created_at_ms: int | None = None
    meta: WorkspaceOrder
    workspaces: dict[str, WorkspaceRecord] = Field(default_factory=dict)
    bookmark_tree: dict[str, list[BackupNode]] = Field(default_factory=dict)
    settings: dict[str, Any] = Field(default_factory=dict)


class BackupSummary(BaseModel):
    workspace_count: int
    workspace_names: list[str]
    bookmark_count: int
    created_at: str | None = None
    app_version: str | None = None


class BackupValidation(BaseModel):
    valid: bool
    error: str | None = None
    summary: BackupSummary | None = None
