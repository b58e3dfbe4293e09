"""Unit tests for the palette, workspace ids and the folder-title encoding."""

from __future__ import annotations

from spacesync.workspaces.models.enums import ColorScheme
from spacesync.workspaces.titles import (
    PALETTE,
    build_folder_title,
    is_single_emoji,
    new_workspace_id,
    palette_at,
    palette_color,
    split_emoji_prefix,
)


def test_palette_order() -> None:
    assert [entry.scheme for entry in PALETTE] == list(ColorScheme)
    assert PALETTE[0].color == "#7C5CFC"
    assert PALETTE[1].color == "#3B82F6"


def test_palette_at_cycles() -> None:
    assert palette_at(1).scheme is ColorScheme.BLUE
    assert palette_at(2).scheme is ColorScheme.CYAN
    assert palette_at(len(PALETTE)).scheme is ColorScheme.PURPLE


def test_palette_color_lookup() -> None:
    entry = palette_color("green")
    assert entry is not None
    assert entry.color == "#22C55E"
    assert palette_color("mauve") is None


def test_new_workspace_id_is_unique_and_prefixed() -> None:
    first, second = new_workspace_id(), new_workspace_id()
    assert first.startswith("ws_")
    assert first != second


def test_split_emoji_prefix() -> None:
    assert split_emoji_prefix("🏠 Personal") == ("🏠", "Personal")
    assert split_emoji_prefix("Personal") == ("", "Personal")
    assert split_emoji_prefix("🇩🇪 Germany") == ("🇩🇪", "Germany")
    # An emoji without the separating space is part of the name.
    assert split_emoji_prefix("🏠Personal") == ("", "🏠Personal")


def test_build_folder_title_round_trip() -> None:
    assert build_folder_title("Work") == "Work"
    assert build_folder_title("Work", "💼") == "💼 Work"
    assert split_emoji_prefix(build_folder_title("Work", "💼")) == ("💼", "Work")


def test_is_single_emoji() -> None:
    assert is_single_emoji("🏠")
    assert is_single_emoji("👍🏽")
    assert is_single_emoji("🇩🇪")
    assert not is_single_emoji("🏠🏠")
    assert not is_single_emoji("ab")
    assert not is_single_emoji("")
