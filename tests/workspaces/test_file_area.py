"""Unit tests for FileArea.

No network required -- uses a temporary directory.
"""

from __future__ import annotations

import json

import pytest

from spacesync.workspaces.store import FileArea, ReplicatedStore


@pytest.fixture
def area(tmp_path) -> FileArea:
    return FileArea(tmp_path, "replicated")


@pytest.fixture
def prefixed_area(tmp_path) -> FileArea:
    return FileArea(tmp_path, "replicated", prefix="alice")


async def test_set_and_get(area: FileArea) -> None:
    await area.set({"order_meta": {"order": ["ws_default"], "version": 2}, "ws_default": {"id": "ws_default"}})

    result = await area.get(["order_meta", "ws_default", "ws_missing"])

    assert result == {"order_meta": {"order": ["ws_default"], "version": 2}, "ws_default": {"id": "ws_default"}}


async def test_get_from_missing_directory(area: FileArea) -> None:
    assert await area.get(["order_meta"]) == {}
    assert await area.keys() == []


async def test_keys_and_remove(area: FileArea) -> None:
    await area.set({"ws_b": {}, "ws_a": {}})
    assert await area.keys() == ["ws_a", "ws_b"]

    await area.remove(["ws_a", "ws_never_written"])

    assert await area.keys() == ["ws_b"]


async def test_file_layout(tmp_path, area: FileArea, prefixed_area: FileArea) -> None:
    await area.set({"settings": {"sidebarCompact": True}})
    await prefixed_area.set({"settings": {"sidebarCompact": False}})

    assert json.loads((tmp_path / "replicated" / "settings.json").read_text()) == {"sidebarCompact": True}
    assert json.loads((tmp_path / "alice" / "replicated" / "settings.json").read_text()) == {"sidebarCompact": False}
    assert prefixed_area.path == tmp_path / "alice" / "replicated"


async def test_overwrite_leaves_no_temp_files(tmp_path, area: FileArea) -> None:
    await area.set({"order_meta": {"order": ["a"]}})
    await area.set({"order_meta": {"order": ["a", "b"]}})

    assert await area.get(["order_meta"]) == {"order_meta": {"order": ["a", "b"]}}
    assert sorted(p.name for p in (tmp_path / "replicated").iterdir()) == ["order_meta.json"]


@pytest.mark.parametrize("key", ["", "../escape", "nested/key", ".hidden"])
async def test_invalid_keys_are_rejected(area: FileArea, key: str) -> None:
    with pytest.raises(ValueError, match="Invalid key"):
        await area.set({key: {}})


async def test_replicated_store_on_files(area: FileArea) -> None:
    store = ReplicatedStore(area)
    await store.save_order(["ws_default"])

    reopened = ReplicatedStore(FileArea(area.path.parent, "replicated"))
    order = await reopened.get_order()

    assert order is not None
    assert order.order == ["ws_default"]
