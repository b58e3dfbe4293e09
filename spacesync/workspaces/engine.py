"""Workspace engine.

Holds the per-device view of the workspaces and ties the stores, the folder
tree and the reconciliation passes together.  One instance per device view;
construct it with the stores it should use.

Init state machine::

    UNINITIALIZED -> (MIGRATING) -> LOADING -> RECONCILING_FOLDERS
                  -> RECONCILING_PINS -> VALIDATING -> READY

with a branch to ``NEEDS_PROMPT`` when replicated data exists without any
local state, or when only surviving folders exist.  The prompt is answered
with ``continue_init()`` (restore) or ``reset_and_setup()`` (start fresh).

Every mutation persists immediately.  Order writes re-read and merge the
remote order first (merge-before-write), except deletions and validation
prunes, which must not resurrect the ids they remove.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import anyio
from loguru import logger

from spacesync.workspaces.context import Workspace, WorkspaceSet
from spacesync.workspaces.events import EventBus, Listener
from spacesync.workspaces.folders.base import FolderNotFoundError
from spacesync.workspaces.folders.service import FolderService
from spacesync.workspaces.models.device import UIState
from spacesync.workspaces.models.enums import ColorScheme, EngineState, ReinstallReason, SchemaShape, WorkspaceEvent
from spacesync.workspaces.models.results import InitResult
from spacesync.workspaces.models.workspace import (
    LegacyWorkspaces,
    PinnedBookmark,
    Shortcut,
    WorkspaceOrder,
    WorkspaceRecord,
)
from spacesync.workspaces.reconcile.folders import FolderReconciler
from spacesync.workspaces.reconcile.merge import merge_orders, save_merged_order
from spacesync.workspaces.reconcile.migration import detect_schema, migrate_legacy
from spacesync.workspaces.reconcile.pins import PinReconciler
from spacesync.workspaces.reconcile.recovery import RecoveryModule
from spacesync.workspaces.reconcile.shortcuts import ShortcutFolder
from spacesync.workspaces.settings import SpacesSettings, get_settings
from spacesync.workspaces.store.device import DeviceStore
from spacesync.workspaces.store.replicated import ReplicatedStore
from spacesync.workspaces.titles import (
    DEFAULT_WORKSPACE_ID,
    PALETTE,
    PaletteColor,
    build_folder_title,
    is_single_emoji,
    new_workspace_id,
    palette_color,
)


class InitFailedError(RuntimeError):
    """Raised when every init attempt failed.  Chained from the last failure."""


class ReinstallPendingError(RuntimeError):
    """Raised by mutations while init is paused for a restore or start-fresh decision."""


class WorkspaceEngine:
    def __init__(
        self,
        replicated: ReplicatedStore,
        device: DeviceStore,
        folders: FolderService,
        *,
        settings: SpacesSettings | None = None,
        events: EventBus | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._replicated = replicated
        self._device = device
        self._folders = folders
        self._events = events or EventBus()

        self._shortcut_folder = ShortcutFolder(
            folders, title=self._settings.shortcuts_folder_title, max_shortcuts=self._settings.max_shortcuts
        )
        self._folder_reconciler = FolderReconciler(
            folders, device, root_container_title=self._settings.root_container_title
        )
        self._pin_reconciler = PinReconciler(
            folders, replicated, shortcuts_folder_title=self._settings.shortcuts_folder_title
        )
        self._recovery = RecoveryModule(replicated, device, folders, self._folder_reconciler, self._shortcut_folder)

        self._ws = WorkspaceSet()
        self._init_lock = asyncio.Lock()
        self._refreshing = False
        self._refresh_pending = False

        self.state = EngineState.UNINITIALIZED
        self.needs_reinstall_prompt = False
        self.reinstall_reason: ReinstallReason | None = None

    # -- Collaborators ---------------------------------------------------------

    @property
    def settings(self) -> SpacesSettings:
        return self._settings

    @property
    def replicated(self) -> ReplicatedStore:
        return self._replicated

    @property
    def device(self) -> DeviceStore:
        return self._device

    @property
    def folders(self) -> FolderService:
        return self._folders

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def root_container_id(self) -> str | None:
        return self._ws.root_container_id

    # -- Lifecycle -------------------------------------------------------------

    async def init(self) -> InitResult:
        """Load, migrate or set up, then reconcile.  Retries with a linearly growing delay."""
        async with self._init_lock:
            return await self._init_with_retries()

    async def _init_with_retries(self) -> InitResult:
        self._clear_prompt()
        previous_state = self.state
        max_attempts = max(1, self._settings.init_max_retries)
        attempt = 0
        while True:
            attempt += 1
            result = InitResult(attempts=attempt)
            try:
                await self._run_init(result)
            except Exception as exc:
                logger.warning("Init attempt {}/{} failed: {}", attempt, max_attempts, exc)
                if attempt >= max_attempts:
                    self.state = previous_state
                    msg = f"Workspace init failed after {max_attempts} attempt(s): {exc}"
                    raise InitFailedError(msg) from exc
                await anyio.sleep(self._settings.init_retry_delay * attempt)
                continue
            result.state = self.state
            return result

    async def _run_init(self, result: InitResult) -> None:
        self.state = EngineState.LOADING
        scan = await detect_schema(self._replicated)

        if scan.shape is SchemaShape.CURRENT and scan.order is not None:
            ws = await self._load_current(scan.order, result)
            device_state = await self._device.get_device_state()
            if device_state.is_empty():
                self._ws = ws
                self._pause(ReinstallReason.SYNC_WITHOUT_LOCAL, result)
                logger.info("Replicated data without local state, waiting for a restore decision")
                return
        elif scan.shape is SchemaShape.LEGACY and scan.legacy is not None:
            ws = await self._migrate(scan.legacy, result)
        else:
            first_run = await self._first_run(result, skip_folder_recovery=False)
            if first_run is None:
                return
            ws = first_run

        await self._complete_init(ws, result)

    async def continue_init(self) -> InitResult:
        """Answer the reinstall prompt with "restore".

        Runs the reconciliation passes on the loaded records, then adopts
        every folder under the root container that no workspace claimed.
        """
        async with self._init_lock:
            result = InitResult(reinstall_reason=self.reinstall_reason)
            self._clear_prompt()
            await self._complete_init(self._ws, result)
            result.adopted_folders = await self._recovery.adopt_orphan_folders(self._ws)
            if result.adopted_folders:
                await self._ensure_active()
                self._events.emit(WorkspaceEvent.WORKSPACE_CHANGED, self.get_active())
            result.state = self.state
            return result

    async def reset_and_setup(self) -> InitResult:
        """Answer the reinstall prompt with "start fresh".

        Deletes every replicated workspace item and the order item, forgets
        local state and runs first-run setup without folder recovery.
        """
        async with self._init_lock:
            result = InitResult(first_run=True)
            self._clear_prompt()

            doomed = merge_orders(self._ws.order, await self._replicated.discover_item_keys())
            for workspace_id in doomed:
                await self._replicated.delete_item(workspace_id)
            await self._replicated.delete_order()
            await self._device.clear()
            self._ws = WorkspaceSet()
            logger.info("Cleared {} replicated workspace item(s) for a fresh setup", len(doomed))

            ws = await self._first_run(result, skip_folder_recovery=True)
            if ws is not None:
                await self._complete_init(ws, result)
            result.state = self.state
            return result

    async def refresh(self) -> InitResult | None:
        """Re-run init after a remote change.

        Calls that arrive while a refresh is running return ``None`` and
        cause exactly one more run after the current one.
        """
        if self._refreshing:
            self._refresh_pending = True
            return None
        self._refreshing = True
        try:
            while True:
                self._refresh_pending = False
                result = await self.init()
                if not self._refresh_pending:
                    break
        finally:
            self._refreshing = False
        self._events.emit(WorkspaceEvent.WORKSPACE_CHANGED, self.get_active())
        return result

    async def validate(self) -> list[str]:
        """Drop workspaces whose folder vanished.  Returns the pruned ids."""
        async with self._init_lock:
            self._ws, pruned = await self._validate_folders(self._ws, InitResult())
            return pruned

    def _pause(self, reason: ReinstallReason, result: InitResult) -> None:
        self.state = EngineState.NEEDS_PROMPT
        self.needs_reinstall_prompt = True
        self.reinstall_reason = reason
        result.reinstall_reason = reason

    def _require_decided(self) -> None:
        if self.needs_reinstall_prompt:
            msg = f"Reinstall decision pending ({self.reinstall_reason}); call continue_init() or reset_and_setup()"
            raise ReinstallPendingError(msg)

    def _clear_prompt(self) -> None:
        self.needs_reinstall_prompt = False
        self.reinstall_reason = None

    # -- Init steps ------------------------------------------------------------

    async def _load_current(self, order: WorkspaceOrder, result: InitResult) -> WorkspaceSet:
        self.state = EngineState.LOADING
        records = await self._replicated.get_all_items(order.order)
        ws = WorkspaceSet.from_records(order.order, records)
        result.recovered_items.extend(await self._recovery.recover_orphan_items(ws))
        return ws

    async def _migrate(self, legacy: LegacyWorkspaces, result: InitResult) -> WorkspaceSet:
        self.state = EngineState.MIGRATING
        migration = await migrate_legacy(self._replicated, self._device, legacy)
        result.migrated = True
        self.state = EngineState.LOADING
        records = await self._replicated.get_all_items(migration.order)
        return WorkspaceSet.from_records(migration.order, records)

    async def _recheck_schema(self, result: InitResult) -> WorkspaceSet | None:
        scan = await detect_schema(self._replicated)
        if scan.shape is SchemaShape.CURRENT and scan.order is not None:
            return await self._load_current(scan.order, result)
        if scan.shape is SchemaShape.LEGACY and scan.legacy is not None:
            return await self._migrate(scan.legacy, result)
        return None

    async def _first_run(self, result: InitResult, *, skip_folder_recovery: bool) -> WorkspaceSet | None:
        """First-run path.  ``None`` means init paused on surviving folders.

        Replicated data from another device may still be arriving, so the
        partition is checked again, then once more after a delay, before
        anything is written.
        """
        result.first_run = True
        ws = await self._recheck_schema(result)
        if ws is not None:
            return ws
        if self._settings.first_run_delay > 0:
            await anyio.sleep(self._settings.first_run_delay)
            ws = await self._recheck_schema(result)
            if ws is not None:
                return ws

        recovered = await self._recovery.recover_loose_items()
        if recovered is not None:
            result.recovered_items.extend(recovered.order)
            return await self._load_current(recovered, result)

        if not skip_folder_recovery:
            surviving = await self._recovery.find_surviving_folders()
            if surviving is not None:
                self._ws = await self._recovery.rebuild_from_folders(*surviving)
                self._pause(ReinstallReason.FOLDERS_WITHOUT_SYNC, result)
                logger.info("Surviving folders found without replicated data, waiting for a restore decision")
                return None

        return await self._create_default()

    async def _create_default(self) -> WorkspaceSet:
        """Create the root container (if needed), the default folder and the default record."""
        ws = WorkspaceSet(root_container_id=await self._device.get_root_container_id())
        root_id, _ = await self._folder_reconciler.ensure_root_container(ws)

        title = self._settings.default_workspace_title
        folder = next((f for f in await self._folders.folders_only(root_id) if f.title == title), None)
        if folder is None:
            folder = await self._folders.create_folder(root_id, title)

        color = PALETTE[0]
        record = WorkspaceRecord(
            id=DEFAULT_WORKSPACE_ID,
            name=title,
            icon="home",
            color=color.color,
            color_scheme=color.scheme,
        )
        await self._replicated.save_item(record)

        # Another device may have written its order since the last check.
        remote = await self._replicated.get_order()
        remote_ids = remote.order if remote is not None else []
        order = merge_orders(remote_ids, [DEFAULT_WORKSPACE_ID])
        for workspace_id, other in (await self._replicated.get_all_items(remote_ids)).items():
            if workspace_id != DEFAULT_WORKSPACE_ID:
                ws.items[workspace_id] = Workspace(record=other)
        ws.items[DEFAULT_WORKSPACE_ID] = Workspace(record=record, root_folder_id=folder.id)
        ws.order = order
        ws.active_workspace_id = DEFAULT_WORKSPACE_ID
        await self._replicated.save_order(order)

        await self._device.save_device_state(ws.device_state())
        if await self._device.get_ui_state() is None:
            await self._device.save_ui_state(UIState())
        logger.info("First run: created default workspace '{}' in folder {}", title, folder.id)
        return ws

    async def _complete_init(self, ws: WorkspaceSet, result: InitResult) -> None:
        loaded = await self._device.get_device_state()
        ws.attach_device_state(loaded)
        ws.root_container_id = await self._device.get_root_container_id() or ws.root_container_id
        if ws.get(ws.active_workspace_id) is None:
            ordered = ws.ordered()
            ws.active_workspace_id = ordered[0].id if ordered else None

        self.state = EngineState.RECONCILING_FOLDERS
        result.folders = await self._folder_reconciler.reconcile(ws)

        self.state = EngineState.RECONCILING_PINS
        result.pins = await self._pin_reconciler.reconcile(ws)

        self.state = EngineState.VALIDATING
        ws, result.pruned = await self._validate_folders(ws, result)

        if ws.device_state() != loaded:
            await self._device.save_device_state(ws.device_state())
        self._ws = ws
        self.state = EngineState.READY
        logger.info("Workspace init complete: {} workspace(s) {}", len(ws.ordered()), [w.id for w in ws.ordered()])

    async def _validate_folders(self, ws: WorkspaceSet, result: InitResult) -> tuple[WorkspaceSet, list[str]]:
        """Prune order ids without a record and workspaces whose folder is gone.

        Pruned workspaces lose their replicated item.  If nothing survives,
        first-run setup creates a fresh default workspace.
        """
        pruned: list[str] = []
        changed = False
        for workspace_id in list(ws.order):
            workspace = ws.items.get(workspace_id)
            if workspace is None:
                ws.order.remove(workspace_id)
                changed = True
                continue
            if workspace.root_folder_id and not await self._folders.exists(workspace.root_folder_id):
                ws.discard(workspace_id)
                pruned.append(workspace_id)
                changed = True
        if not changed:
            return ws, pruned

        for workspace_id in pruned:
            await self._replicated.delete_item(workspace_id)
        if pruned:
            logger.warning("Pruned workspace(s) whose folder is gone: {}", pruned)
            self._events.emit(WorkspaceEvent.WORKSPACE_PRUNED, pruned)

        if not ws.order:
            await self._replicated.delete_order()
            result.first_run = True
            return await self._create_default(), pruned

        if ws.get(ws.active_workspace_id) is None:
            ws.active_workspace_id = ws.order[0]
        ws.order = await save_merged_order(self._replicated, ws.order, merge=False)
        await self._device.save_device_state(ws.device_state())
        return ws, pruned

    # -- Persistence helpers ---------------------------------------------------

    async def _save_order(self, *, merge: bool = True) -> None:
        order = await save_merged_order(self._replicated, self._ws.order, merge=merge)
        missing = [workspace_id for workspace_id in order if workspace_id not in self._ws.items]
        if missing:
            for workspace_id, record in (await self._replicated.get_all_items(missing)).items():
                self._ws.items[workspace_id] = Workspace(record=record)
        self._ws.order = order

    async def _save_device(self) -> None:
        await self._device.save_device_state(self._ws.device_state())

    async def _ensure_active(self) -> None:
        if self._ws.get(self._ws.active_workspace_id) is None:
            ordered = self._ws.ordered()
            self._ws.active_workspace_id = ordered[0].id if ordered else None
            await self._save_device()

    async def _retitle_folder(self, workspace: Workspace) -> None:
        """Write the workspace title to its folder.

        A vanished folder leaves the workspace inactive on this device until
        the next init reconciles it; replicated data is untouched.
        """
        if not workspace.root_folder_id:
            return
        title = build_folder_title(workspace.name, workspace.record.emoji)
        try:
            await self._folders.rename(workspace.root_folder_id, title)
        except FolderNotFoundError:
            logger.warning("Folder of workspace {} is gone, marking it inactive on this device", workspace.id)
            workspace.root_folder_id = None
            await self._save_device()

    # -- Reads -----------------------------------------------------------------

    def get_all(self) -> list[Workspace]:
        return self._ws.ordered()

    def get_active(self) -> Workspace | None:
        return self._ws.get(self._ws.active_workspace_id)

    def get_by_id(self, workspace_id: str) -> Workspace | None:
        return self._ws.get(workspace_id)

    @property
    def colors(self) -> tuple[PaletteColor, ...]:
        return PALETTE

    async def get_bookmark_folder_names(self) -> list[str]:
        """Titles of every workspace folder on this device, for the reinstall prompt."""
        return await self._recovery.folder_names()

    # -- Workspace CRUD --------------------------------------------------------

    async def create(self, name: str, color_scheme: str = ColorScheme.BLUE) -> Workspace:
        self._require_decided()
        name = name.strip()
        if not name:
            msg = "Workspace name must not be empty"
            raise ValueError(msg)
        color = palette_color(color_scheme) or PALETTE[1]

        root_id, _ = await self._folder_reconciler.ensure_root_container(self._ws)
        folder = await self._folders.create_folder(root_id, name)

        record = WorkspaceRecord(id=new_workspace_id(), name=name, color=color.color, color_scheme=color.scheme)
        workspace = Workspace(record=record, root_folder_id=folder.id, pinned_ids=set())
        self._ws.add(workspace)
        await self._replicated.save_item(record)
        await self._save_order()
        await self._save_device()

        logger.info("Created workspace {} '{}'", record.id, name)
        self._events.emit(WorkspaceEvent.WORKSPACE_CREATED, workspace)
        return workspace

    async def rename(self, workspace_id: str, name: str) -> Workspace | None:
        self._require_decided()
        workspace = self._ws.get(workspace_id)
        if workspace is None:
            return None
        name = name.strip()
        if not name:
            msg = "Workspace name must not be empty"
            raise ValueError(msg)

        workspace.record.name = name
        await self._retitle_folder(workspace)
        await self._replicated.save_item(workspace.record)
        self._events.emit(WorkspaceEvent.WORKSPACE_RENAMED, workspace)
        return workspace

    async def change_color(self, workspace_id: str, color_scheme: str) -> Workspace | None:
        self._require_decided()
        workspace = self._ws.get(workspace_id)
        color = palette_color(color_scheme)
        if workspace is None or color is None:
            return None

        workspace.record.color = color.color
        workspace.record.color_scheme = color.scheme
        await self._replicated.save_item(workspace.record)
        if workspace_id == self._ws.active_workspace_id:
            self._events.emit(WorkspaceEvent.THEME_CHANGED, workspace)
        return workspace

    async def set_emoji(self, workspace_id: str, emoji: str | None) -> Workspace | None:
        """Set a single emoji, or clear it with ``""``/``None``."""
        self._require_decided()
        workspace = self._ws.get(workspace_id)
        if workspace is None:
            return None
        clean = (emoji or "").strip()
        if clean and not is_single_emoji(clean):
            msg = f"Not a single emoji: {clean!r}"
            raise ValueError(msg)

        workspace.record.emoji = clean
        await self._retitle_folder(workspace)
        await self._replicated.save_item(workspace.record)
        self._events.emit(WorkspaceEvent.WORKSPACE_RENAMED, workspace)
        return workspace

    async def delete(self, workspace_id: str) -> bool:
        """Delete a workspace and its folder.  The last remaining workspace is kept."""
        self._require_decided()
        if len(self._ws.ordered()) <= 1:
            return False
        workspace = self._ws.get(workspace_id)
        if workspace is None:
            return False

        if workspace.root_folder_id:
            await self._folders.remove_tree(workspace.root_folder_id)
        self._ws.discard(workspace_id)
        if self._ws.active_workspace_id == workspace_id:
            self._ws.active_workspace_id = self._ws.ordered()[0].id

        await self._replicated.delete_item(workspace_id)
        await self._save_order(merge=False)
        await self._save_device()

        logger.info("Deleted workspace {}", workspace_id)
        self._events.emit(WorkspaceEvent.WORKSPACE_DELETED, {"id": workspace_id})
        self._events.emit(WorkspaceEvent.WORKSPACE_CHANGED, self.get_active())
        return True

    async def reorder(self, order: list[str]) -> bool:
        """Apply a new sequence.  It must hold exactly the current ids."""
        self._require_decided()
        if len(order) != len(self._ws.order) or set(order) != set(self._ws.order):
            return False
        self._ws.order = list(order)
        await self._save_order()
        self._events.emit(WorkspaceEvent.WORKSPACE_REORDERED, {"order": list(self._ws.order)})
        return True

    async def switch_to(self, workspace_id: str) -> Workspace | None:
        """Make a workspace active on this device.  Never touches the replicated partition."""
        self._require_decided()
        workspace = self._ws.get(workspace_id)
        if workspace is None:
            return None
        self._ws.active_workspace_id = workspace_id
        await self._save_device()
        self._events.emit(WorkspaceEvent.WORKSPACE_CHANGED, workspace)
        return workspace

    # -- Pinned items ----------------------------------------------------------

    async def pin_bookmark(self, bookmark_id: str) -> bool:
        self._require_decided()
        workspace = self.get_active()
        if workspace is None or bookmark_id in workspace.pinned_id_set():
            return False

        node = await self._folders.get(bookmark_id)
        pin = PinnedBookmark(id=bookmark_id)
        if node is not None:
            pin = PinnedBookmark(id=bookmark_id, url=node.url, title=node.title)
        workspace.set_pins([*workspace.record.pinned_bookmarks, pin])
        await self._replicated.save_item(workspace.record)
        self._events.emit(WorkspaceEvent.BOOKMARK_PINNED, {"bookmark_id": bookmark_id, "workspace_id": workspace.id})
        return True

    async def unpin_bookmark(self, bookmark_id: str) -> bool:
        self._require_decided()
        workspace = self.get_active()
        if workspace is None or bookmark_id not in workspace.pinned_id_set():
            return False

        workspace.set_pins([pin for pin in workspace.record.pinned_bookmarks if pin.id != bookmark_id])
        await self._replicated.save_item(workspace.record)
        self._events.emit(
            WorkspaceEvent.BOOKMARK_UNPINNED, {"bookmark_id": bookmark_id, "workspace_id": workspace.id}
        )
        return True

    def is_pinned(self, bookmark_id: str) -> bool:
        workspace = self.get_active()
        return workspace is not None and bookmark_id in workspace.pinned_id_set()

    # -- Shortcuts -------------------------------------------------------------

    def get_shortcuts(self) -> list[Shortcut]:
        workspace = self.get_active()
        return list(workspace.record.shortcuts) if workspace is not None else []

    async def add_shortcut(self, url: str, title: str = "") -> bool:
        """Add a shortcut to the active workspace.  Duplicates and overflow are ignored."""
        self._require_decided()
        workspace = self.get_active()
        if workspace is None:
            return False
        shortcuts = workspace.record.shortcuts
        if any(shortcut.url == url for shortcut in shortcuts) or len(shortcuts) >= self._settings.max_shortcuts:
            return False

        workspace.record.shortcuts = [*shortcuts, Shortcut(url=url, title=title or "")]
        await self._replicated.save_item(workspace.record)
        await self._shortcut_folder.try_sync(workspace)
        self._events.emit(WorkspaceEvent.SHORTCUT_ADDED, {"url": url, "title": title, "workspace_id": workspace.id})
        return True

    async def remove_shortcut(self, url: str) -> bool:
        self._require_decided()
        workspace = self.get_active()
        if workspace is None:
            return False
        remaining = [shortcut for shortcut in workspace.record.shortcuts if shortcut.url != url]
        if len(remaining) == len(workspace.record.shortcuts):
            return False

        workspace.record.shortcuts = remaining
        await self._replicated.save_item(workspace.record)
        await self._shortcut_folder.try_sync(workspace)
        self._events.emit(WorkspaceEvent.SHORTCUT_REMOVED, {"url": url, "workspace_id": workspace.id})
        return True

    # -- Subscriptions ---------------------------------------------------------

    def on(self, event: WorkspaceEvent, listener: Listener) -> Callable[[], None]:
        """Subscribe to an engine event.  Returns the unsubscribe callable."""
        return self._events.subscribe(event, listener)

    def on_workspace_changed(self, listener: Listener) -> Callable[[], None]:
        return self._events.subscribe(WorkspaceEvent.WORKSPACE_CHANGED, listener)
