"""Palette, workspace ids and the folder-title encoding.

A workspace folder's title carries the workspace emoji as a leading grapheme
plus a space (``"🏠 Personal"``), so the emoji survives a total loss of the
replicated partition and can be decoded again during recovery.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass

from spacesync.workspaces.models.enums import ColorScheme

DEFAULT_WORKSPACE_ID = "ws_default"
WORKSPACE_KEY_PREFIX = "ws_"


def new_workspace_id() -> str:
    return f"{WORKSPACE_KEY_PREFIX}{uuid.uuid4().hex[:12]}"


# -- Palette -----------------------------------------------------------------


@dataclass(frozen=True)
class PaletteColor:
    scheme: ColorScheme
    color: str
    light: str


PALETTE: tuple[PaletteColor, ...] = (
    PaletteColor(ColorScheme.PURPLE, "#7C5CFC", "#EDE9FE"),
    PaletteColor(ColorScheme.BLUE, "#3B82F6", "#DBEAFE"),
    PaletteColor(ColorScheme.CYAN, "#06B6D4", "#CFFAFE"),
    PaletteColor(ColorScheme.GREEN, "#22C55E", "#DCFCE7"),
    PaletteColor(ColorScheme.YELLOW, "#EAB308", "#FEF9C3"),
    PaletteColor(ColorScheme.ORANGE, "#F97316", "#FFEDD5"),
    PaletteColor(ColorScheme.RED, "#EF4444", "#FEE2E2"),
    PaletteColor(ColorScheme.PINK, "#EC4899", "#FCE7F3"),
    PaletteColor(ColorScheme.GREY, "#6B7280", "#F3F4F6"),
)


def palette_color(scheme: str) -> PaletteColor | None:
    """Look up a palette entry by scheme name, ``None`` if unknown."""
    for entry in PALETTE:
        if entry.scheme == scheme:
            return entry
    return None


def palette_at(index: int) -> PaletteColor:
    """Palette entry at ``index``, cycling through the palette."""
    return PALETTE[index % len(PALETTE)]


# -- Emoji title prefix ------------------------------------------------------

# Pictographic code points commonly rendered as emoji.
_PICTOGRAPH = (
    "["
    "\u231a\u231b\u23e9-\u23f3\u23f8-\u23fa"
    "\u2600-\u27bf"
    "\u2b1b\u2b1c\u2b50\u2b55"
    "\U0001f300-\U0001f64f"
    "\U0001f680-\U0001f6ff"
    "\U0001f780-\U0001f7ff"
    "\U0001f900-\U0001f9ff"
    "\U0001fa70-\U0001faff"
    "]"
)
# One pictograph with optional skin tone, presentation selector and tag sequence.
_ELEMENT = "(?:" + _PICTOGRAPH + "[\U0001f3fb-\U0001f3ff]?\ufe0f?[\U000e0020-\U000e007f]*)"
_FLAG = "[\U0001f1e6-\U0001f1ff]{2}"
_KEYCAP = "[0-9#*]\ufe0f?\u20e3"
_EMOJI = "(?:" + _FLAG + "|" + _KEYCAP + "|" + _ELEMENT + "(?:\u200d" + _ELEMENT + ")*)"

_PREFIX_RE = re.compile("^(" + _EMOJI + r")\s")
_SINGLE_RE = re.compile("^" + _EMOJI + "$")


def split_emoji_prefix(title: str) -> tuple[str, str]:
    """Split a folder title into ``(emoji, name)``.

    >>> split_emoji_prefix("🏠 Personal")
    ('🏠', 'Personal')
    >>> split_emoji_prefix("Personal")
    ('', 'Personal')
    """
    match = _PREFIX_RE.match(title)
    if match is None:
        return "", title
    return match.group(1), title[match.end() :]


def build_folder_title(name: str, emoji: str = "") -> str:
    return f"{emoji} {name}" if emoji else name


def is_single_emoji(text: str) -> bool:
    """True if ``text`` is exactly one emoji grapheme (ZWJ sequences included)."""
    return bool(_SINGLE_RE.match(text))
