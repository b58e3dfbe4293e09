"""Local filesystem key-value area.

Stores one JSON file per key under a data root with optional namespace
prefix::

    {data_root}/{prefix}/{area}/{key}.json

When prefix is None, the path collapses to::

    {data_root}/{area}/{key}.json

Uses ``anyio.to_thread.run_sync`` for non-blocking file I/O.

Writes are atomic: data is written to a temporary file in the same directory,
then renamed to the target path, so a crash mid-write never leaves a corrupt
item behind.
"""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from collections.abc import Mapping, Sequence
from functools import partial
from pathlib import Path
from typing import Any

from anyio import to_thread

_SUFFIX = ".json"


class FileArea:
    """Filesystem implementation of the ``KeyValueArea`` protocol."""

    def __init__(self, data_root: str | Path, area: str, prefix: str | None = None) -> None:
        base = Path(data_root)
        if prefix:
            base = base / prefix
        self._base = base / area

    @property
    def path(self) -> Path:
        return self._base

    def _key_path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            msg = f"Invalid key: {key!r}"
            raise ValueError(msg)
        return self._base / f"{key}{_SUFFIX}"

    # -- Read ------------------------------------------------------------------

    async def get(self, keys: Sequence[str]) -> dict[str, Any]:
        paths = {key: self._key_path(key) for key in keys}
        return await to_thread.run_sync(partial(_read_many, paths))

    async def keys(self) -> list[str]:
        return await to_thread.run_sync(partial(_list_keys, self._base))

    # -- Write -----------------------------------------------------------------

    async def set(self, items: Mapping[str, Any]) -> None:
        for key, value in items.items():
            data = json.dumps(value, ensure_ascii=False, indent=2)
            await to_thread.run_sync(partial(_atomic_write, self._key_path(key), data))

    async def remove(self, keys: Sequence[str]) -> None:
        for key in keys:
            await to_thread.run_sync(partial(_unlink, self._key_path(key)))


# -- Sync helpers (run in thread pool) -----------------------------------------


def _atomic_write(path: Path, data: str) -> None:
    """Write data atomically: temp file + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


def _read_many(paths: dict[str, Path]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, path in paths.items():
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            continue
        result[key] = json.loads(raw)
    return result


def _list_keys(base: Path) -> list[str]:
    if not base.is_dir():
        return []
    return sorted(p.name[: -len(_SUFFIX)] for p in base.iterdir() if p.name.endswith(_SUFFIX))


def _unlink(path: Path) -> None:
    """Remove a file.  No-op if it doesn't exist."""
    with contextlib.suppress(FileNotFoundError):
        path.unlink()
