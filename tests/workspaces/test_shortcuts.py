"""Tests for the shortcuts mirror folder and the engine's shortcut cap."""

from __future__ import annotations

from spacesync.workspaces.context import Workspace
from spacesync.workspaces.engine import WorkspaceEngine
from spacesync.workspaces.folders import FolderService
from spacesync.workspaces.models.workspace import Shortcut, WorkspaceRecord
from spacesync.workspaces.reconcile.shortcuts import ShortcutFolder


async def _mirror_urls(folders: FolderService, workspace_folder_id: str) -> list[str] | None:
    for child in await folders.folders_only(workspace_folder_id):
        if child.title == "__shortcuts__":
            return [link.url or "" for link in await folders.get_children(child.id)]
    return None


async def test_sync_creates_updates_and_removes_mirror(folders: FolderService) -> None:
    folder = await folders.create_folder("2", "Work")
    workspace = Workspace(record=WorkspaceRecord(id="ws_work", name="Work"), root_folder_id=folder.id)
    mirror = ShortcutFolder(folders, title="__shortcuts__")

    await mirror.sync(workspace)
    assert await _mirror_urls(folders, folder.id) is None

    workspace.record.shortcuts = [Shortcut(url="https://a.example", title="A"), Shortcut(url="https://b.example")]
    await mirror.sync(workspace)
    assert await _mirror_urls(folders, folder.id) == ["https://a.example", "https://b.example"]

    workspace.record.shortcuts = [Shortcut(url="https://b.example"), Shortcut(url="https://c.example")]
    await mirror.sync(workspace)
    assert await _mirror_urls(folders, folder.id) == ["https://b.example", "https://c.example"]

    workspace.record.shortcuts = []
    await mirror.sync(workspace)
    assert await _mirror_urls(folders, folder.id) is None


async def test_load_reads_mirror_back(folders: FolderService) -> None:
    folder = await folders.create_folder("2", "Work")
    workspace = Workspace(
        record=WorkspaceRecord(id="ws_work", name="Work", shortcuts=[Shortcut(url="https://a.example", title="A")]),
        root_folder_id=folder.id,
    )
    mirror = ShortcutFolder(folders, title="__shortcuts__")
    await mirror.sync(workspace)

    assert await mirror.load(folder.id) == [Shortcut(url="https://a.example", title="A")]
    assert await mirror.load("404") == []


async def test_try_sync_tolerates_vanished_folder(folders: FolderService) -> None:
    workspace = Workspace(
        record=WorkspaceRecord(id="ws_work", name="Work", shortcuts=[Shortcut(url="https://a.example")]),
        root_folder_id="404",
    )

    await ShortcutFolder(folders, title="__shortcuts__").try_sync(workspace)


async def test_shortcut_cap(ready_engine: WorkspaceEngine) -> None:
    for index in range(8):
        assert await ready_engine.add_shortcut(f"https://site{index}.example", f"Site {index}")

    assert await ready_engine.add_shortcut("https://site8.example", "Site 8") is False
    assert len(ready_engine.get_shortcuts()) == 8

    assert await ready_engine.add_shortcut("https://site3.example", "Again") is False
    assert len(ready_engine.get_shortcuts()) == 8

    active = ready_engine.get_active()
    assert active is not None and active.root_folder_id is not None
    urls = await _mirror_urls(ready_engine.folders, active.root_folder_id)
    assert urls == [f"https://site{index}.example" for index in range(8)]


async def test_remove_shortcut(ready_engine: WorkspaceEngine) -> None:
    await ready_engine.add_shortcut("https://a.example", "A")
    await ready_engine.add_shortcut("https://b.example", "B")

    assert await ready_engine.remove_shortcut("https://a.example") is True
    assert await ready_engine.remove_shortcut("https://a.example") is False
    assert [shortcut.url for shortcut in ready_engine.get_shortcuts()] == ["https://b.example"]

    record = await ready_engine.replicated.get_item("ws_default")
    assert record is not None
    assert [shortcut.url for shortcut in record.shortcuts] == ["https://b.example"]


async def test_load_drops_repeated_urls_and_caps(folders: FolderService) -> None:
    folder = await folders.create_folder("2", "Work")
    mirror = await folders.create_folder(folder.id, "__shortcuts__")
    for url in ["https://a.example", "https://b.example", "https://a.example", "https://c.example"]:
        await folders.create_link(mirror.id, url, url)

    loaded = await ShortcutFolder(folders, title="__shortcuts__", max_shortcuts=2).load(folder.id)

    assert [shortcut.url for shortcut in loaded] == ["https://a.example", "https://b.example"]
