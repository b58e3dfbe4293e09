"""Reconciliation passes run by the engine during init."""

from spacesync.workspaces.reconcile.folders import FolderReconciler
from spacesync.workspaces.reconcile.merge import merge_orders, save_merged_order
from spacesync.workspaces.reconcile.migration import SchemaScan, detect_schema, migrate_legacy
from spacesync.workspaces.reconcile.pins import PinReconciler, build_pin_index, pin_key, remap_pins
from spacesync.workspaces.reconcile.recovery import RecoveryModule
from spacesync.workspaces.reconcile.shortcuts import ShortcutFolder, limit_shortcuts

__all__ = [
    "FolderReconciler",
    "PinReconciler",
    "RecoveryModule",
    "SchemaScan",
    "ShortcutFolder",
    "build_pin_index",
    "detect_schema",
    "limit_shortcuts",
    "merge_orders",
    "migrate_legacy",
    "pin_key",
    "remap_pins",
    "save_merged_order",
]
