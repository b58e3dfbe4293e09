"""Recovery from lost or partial replicated data."""

from __future__ import annotations

from typing import Any

import pytest

from spacesync.workspaces.engine import ReinstallPendingError, WorkspaceEngine
from spacesync.workspaces.folders import FolderService, MemoryFolderStore
from spacesync.workspaces.models.enums import ColorScheme, EngineState, ReinstallReason, WorkspaceEvent
from spacesync.workspaces.models.workspace import Shortcut, WorkspaceRecord
from spacesync.workspaces.store import ReplicatedStore


async def test_recovery_scenario_adopts_orphan_folders(make_engine, replicated: ReplicatedStore, seed_spaces) -> None:
    await replicated.save_item(WorkspaceRecord(id="ws_personal", name="Personal"))
    await replicated.save_order(["ws_personal"])
    tree = MemoryFolderStore()
    await seed_spaces(FolderService(tree), "Personal", "Developer", "Germany")
    engine: WorkspaceEngine = make_engine(tree=tree)
    changed: list[Any] = []
    engine.on_workspace_changed(changed.append)

    paused = await engine.init()
    assert engine.needs_reinstall_prompt is True
    assert paused.reinstall_reason is ReinstallReason.SYNC_WITHOUT_LOCAL
    assert await engine.get_bookmark_folder_names() == ["Personal", "Developer", "Germany"]

    result = await engine.continue_init()

    assert result.state is EngineState.READY
    assert engine.needs_reinstall_prompt is False
    workspaces = engine.get_all()
    assert [workspace.name for workspace in workspaces] == ["Personal", "Developer", "Germany"]
    assert [workspace.record.color_scheme for workspace in workspaces[1:]] == [ColorScheme.BLUE, ColorScheme.CYAN]
    assert result.adopted_folders == [workspace.id for workspace in workspaces[1:]]
    assert len(changed) == 1

    order = await replicated.get_order()
    assert order is not None
    assert order.order == [workspace.id for workspace in workspaces]


async def test_loose_items_rebuild_lost_order(engine: WorkspaceEngine, replicated: ReplicatedStore) -> None:
    await replicated.save_item(WorkspaceRecord(id="ws_work", name="Work"))
    await replicated.save_item(WorkspaceRecord(id="ws_default", name="Personal", icon="home"))

    result = await engine.init()

    assert result.state is EngineState.READY
    assert result.first_run is True
    assert result.recovered_items == ["ws_default", "ws_work"]
    assert [workspace.id for workspace in engine.get_all()] == ["ws_default", "ws_work"]
    assert result.folders is not None
    assert result.folders.created == ["ws_default", "ws_work"]


async def test_unreferenced_items_are_merged_into_order(
    ready_engine: WorkspaceEngine, replicated: ReplicatedStore
) -> None:
    # Another device's item arrived after this device wrote its order.
    await replicated.save_item(WorkspaceRecord(id="ws_late", name="Late"))

    result = await ready_engine.init()

    assert result.recovered_items == ["ws_late"]
    assert [workspace.id for workspace in ready_engine.get_all()] == ["ws_default", "ws_late"]
    order = await replicated.get_order()
    assert order is not None
    assert order.order == ["ws_default", "ws_late"]


async def test_surviving_folders_pause_then_restore(
    engine: WorkspaceEngine, folders: FolderService, replicated: ReplicatedStore, seed_spaces
) -> None:
    _, ids = await seed_spaces(folders, "🏠 Personal", "Work")
    mirror = await folders.create_folder(ids["Work"], "__shortcuts__")
    await folders.create_link(mirror.id, "Mail", "https://mail.example")

    paused = await engine.init()

    assert paused.state is EngineState.NEEDS_PROMPT
    assert paused.reinstall_reason is ReinstallReason.FOLDERS_WITHOUT_SYNC
    order = await replicated.get_order()
    assert order is not None
    assert order.order[0] == "ws_default"
    default = await replicated.get_item("ws_default")
    assert default is not None
    assert (default.name, default.emoji, default.icon) == ("Personal", "🏠", "home")
    work = await replicated.get_item(order.order[1])
    assert work is not None
    assert work.color_scheme is ColorScheme.BLUE
    assert work.shortcuts == [Shortcut(url="https://mail.example", title="Mail")]

    result = await engine.continue_init()

    assert result.state is EngineState.READY
    assert result.adopted_folders == []
    assert [workspace.root_folder_id for workspace in engine.get_all()] == [ids["🏠 Personal"], ids["Work"]]


async def test_lone_empty_folder_is_a_plain_first_run(
    engine: WorkspaceEngine, folders: FolderService, seed_spaces
) -> None:
    root_id, ids = await seed_spaces(folders, "Personal", links=False)

    result = await engine.init()

    assert result.state is EngineState.READY
    assert result.reinstall_reason is None
    assert engine.root_container_id == root_id
    active = engine.get_active()
    assert active is not None
    assert active.root_folder_id == ids["Personal"]
    assert [child.title for child in await folders.folders_only(root_id)] == ["Personal"]


async def test_start_fresh_discards_replicated_data(
    make_engine, ready_engine: WorkspaceEngine, replicated: ReplicatedStore
) -> None:
    await ready_engine.create("Work")
    other: WorkspaceEngine = make_engine()
    await other.init()
    assert other.needs_reinstall_prompt is True

    result = await other.reset_and_setup()

    assert result.state is EngineState.READY
    assert result.first_run is True
    assert [workspace.id for workspace in other.get_all()] == ["ws_default"]
    assert await replicated.discover_item_keys() == ["ws_default"]
    order = await replicated.get_order()
    assert order is not None
    assert order.order == ["ws_default"]


async def test_adopt_continues_palette_after_existing(make_engine, replicated: ReplicatedStore, seed_spaces) -> None:
    events: list[Any] = []
    for index, name in enumerate(["One", "Two"]):
        await replicated.save_item(WorkspaceRecord(id=f"ws_{index}", name=name))
    await replicated.save_order(["ws_0", "ws_1"])
    tree = MemoryFolderStore()
    await seed_spaces(FolderService(tree), "One", "Two", "Three")
    engine: WorkspaceEngine = make_engine(tree=tree)
    engine.on(WorkspaceEvent.WORKSPACE_CHANGED, events.append)

    await engine.init()
    result = await engine.continue_init()

    [adopted] = result.adopted_folders
    workspace = engine.get_by_id(adopted)
    assert workspace is not None
    assert workspace.name == "Three"
    assert workspace.record.color_scheme is ColorScheme.CYAN
    assert events and events[-1] is engine.get_active()


async def test_rebuilt_shortcuts_are_capped_and_unique(
    engine: WorkspaceEngine, folders: FolderService, replicated: ReplicatedStore, seed_spaces
) -> None:
    _, ids = await seed_spaces(folders, "Personal", "Work")
    mirror = await folders.create_folder(ids["Work"], "__shortcuts__")
    for index in range(10):
        await folders.create_link(mirror.id, f"Site {index}", f"https://s{index % 9}.example")

    paused = await engine.init()

    assert paused.reinstall_reason is ReinstallReason.FOLDERS_WITHOUT_SYNC
    order = await replicated.get_order()
    assert order is not None
    work = await replicated.get_item(order.order[1])
    assert work is not None
    assert [shortcut.url for shortcut in work.shortcuts] == [f"https://s{index}.example" for index in range(8)]


async def test_mutations_wait_for_reinstall_decision(engine: WorkspaceEngine, replicated: ReplicatedStore) -> None:
    await replicated.save_item(WorkspaceRecord(id="ws_a", name="A"))
    await replicated.save_item(WorkspaceRecord(id="ws_b", name="B"))
    await replicated.save_order(["ws_a", "ws_b"])
    paused = await engine.init()
    assert paused.reinstall_reason is ReinstallReason.SYNC_WITHOUT_LOCAL

    with pytest.raises(ReinstallPendingError):
        await engine.delete("ws_b")
    with pytest.raises(ReinstallPendingError):
        await engine.switch_to("ws_b")
    with pytest.raises(ReinstallPendingError):
        await engine.create("Other")
    with pytest.raises(ReinstallPendingError):
        await engine.add_shortcut("https://a.example")

    assert sorted(await replicated.discover_item_keys()) == ["ws_a", "ws_b"]
    order = await replicated.get_order()
    assert order is not None
    assert order.order == ["ws_a", "ws_b"]
    assert (await engine.device.get_device_state()).is_empty()
    assert (await engine.init()).state is EngineState.NEEDS_PROMPT

    await engine.continue_init()

    assert await engine.delete("ws_b") is True
    assert [workspace.id for workspace in engine.get_all()] == ["ws_a"]
