"""End-to-end tests for the spacesync CLI on a file-backed data root."""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest
from click.testing import CliRunner

from spacesync.cli import main


@pytest.fixture
def data_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    root = tmp_path / "data"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SPACESYNC_DATA_ROOT", str(root))
    monkeypatch.setenv("SPACESYNC_REPLICATED_STORE", "local")
    monkeypatch.setenv("SPACESYNC_FIRST_RUN_DELAY", "0")
    monkeypatch.setenv("SPACESYNC_INIT_RETRY_DELAY", "0")
    monkeypatch.setenv("SPACESYNC_LOG_LEVEL", "ERROR")
    monkeypatch.delenv("SPACESYNC_DATA_PREFIX", raising=False)
    return root


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def test_status_on_fresh_data_root(runner: CliRunner, data_root: Path) -> None:
    result = runner.invoke(main, ["status"])

    assert result.exit_code == 0, result.output
    assert "State: ready" in result.output
    assert "ws_default" in result.output
    assert "Personal" in result.output
    assert (data_root / "bookmarks.json").is_file()
    assert (data_root / "replicated" / "order_meta.json").is_file()


def test_create_rename_switch_and_delete(runner: CliRunner, data_root: Path) -> None:
    created = runner.invoke(main, ["create", "Work", "--color", "green"])
    assert created.exit_code == 0, created.output
    workspace_id = created.output.strip().splitlines()[-1]
    assert workspace_id.startswith("ws_")

    renamed = runner.invoke(main, ["rename", workspace_id, "Office"])
    assert renamed.exit_code == 0, renamed.output
    assert f"Renamed {workspace_id}" in renamed.output

    switched = runner.invoke(main, ["switch", workspace_id])
    assert switched.exit_code == 0, switched.output

    status = runner.invoke(main, ["status"])
    assert "Office" in status.output
    assert f"* {workspace_id}" in status.output

    deleted = runner.invoke(main, ["delete", workspace_id])
    assert deleted.exit_code == 0, deleted.output
    assert "Office" not in runner.invoke(main, ["status"]).output


def test_unknown_workspace_is_reported(runner: CliRunner, data_root: Path) -> None:
    result = runner.invoke(main, ["rename", "ws_missing", "Nope"])

    assert result.exit_code == 1
    assert "Unknown workspace: ws_missing" in result.output


def test_last_workspace_cannot_be_deleted(runner: CliRunner, data_root: Path) -> None:
    result = runner.invoke(main, ["delete", "ws_default"])

    assert result.exit_code == 1
    assert "last remaining" in result.output


def test_export_then_import(runner: CliRunner, data_root: Path, tmp_path: Path) -> None:
    backup = tmp_path / "backup.json"
    runner.invoke(main, ["create", "Work"])

    exported = runner.invoke(main, ["export", str(backup)])
    assert exported.exit_code == 0, exported.output
    assert "Exported 2 workspace(s)" in exported.output

    runner.invoke(main, ["create", "Scratch"])
    imported = runner.invoke(main, ["import", str(backup), "--yes"])

    assert imported.exit_code == 0, imported.output
    assert "Backup: 2 workspace(s) (Personal, Work)" in imported.output
    assert "Restored. State: ready" in imported.output
    assert "Scratch" not in runner.invoke(main, ["status"]).output


def test_import_can_be_declined(runner: CliRunner, data_root: Path, tmp_path: Path) -> None:
    backup = tmp_path / "backup.json"
    runner.invoke(main, ["export", str(backup)])
    runner.invoke(main, ["create", "Scratch"])

    result = runner.invoke(main, ["import", str(backup)], input="n\n")

    assert result.exit_code == 0, result.output
    assert "Aborted." in result.output
    assert "Scratch" in runner.invoke(main, ["status"]).output


def test_import_rejects_invalid_backup(runner: CliRunner, data_root: Path, tmp_path: Path) -> None:
    backup = tmp_path / "backup.json"
    backup.write_text('{"formatVersion": 7}', encoding="utf-8")

    result = runner.invoke(main, ["import", str(backup), "--yes"])

    assert result.exit_code == 1
    assert "Unsupported backup format version: 7" in result.output


def test_init_flags_are_exclusive(runner: CliRunner, data_root: Path) -> None:
    result = runner.invoke(main, ["init", "--restore", "--start-fresh"])

    assert result.exit_code == 2


def test_reinstall_requires_a_decision(runner: CliRunner, data_root: Path) -> None:
    runner.invoke(main, ["create", "Work"])
    shutil.rmtree(data_root / "local")

    status = runner.invoke(main, ["status"])
    assert "Reinstall detected (sync_without_local)" in status.output

    blocked = runner.invoke(main, ["create", "Other"])
    assert blocked.exit_code == 1
    assert "Existing workspace data found" in blocked.output

    hint = runner.invoke(main, ["init"])
    assert hint.exit_code == 0
    assert "--restore" in hint.output

    restored = runner.invoke(main, ["init", "--restore"])
    assert restored.exit_code == 0, restored.output
    assert "State: ready" in restored.output
    assert "Work" in restored.output
