"""Shared test fixtures: in-memory areas, folder trees and engines.

Unit tests run entirely in memory.  A "device" is one local area plus one
folder tree; devices that share a replicated area see each other's writes,
which is how cross-device scenarios are simulated.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator

import pytest
from loguru import logger

from spacesync.workspaces.engine import WorkspaceEngine
from spacesync.workspaces.folders import FolderService, MemoryFolderStore
from spacesync.workspaces.settings import SpacesSettings
from spacesync.workspaces.store import DeviceStore, MemoryArea, ReplicatedStore

SeedSpaces = Callable[..., Awaitable[tuple[str, dict[str, str]]]]


@pytest.fixture
def settings() -> SpacesSettings:
    """Settings with every delay disabled."""
    return SpacesSettings(_env_file=None, first_run_delay=0, init_retry_delay=0)


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


@pytest.fixture
def replicated_area() -> MemoryArea:
    return MemoryArea()


@pytest.fixture
def local_area() -> MemoryArea:
    return MemoryArea()


@pytest.fixture
def replicated(replicated_area: MemoryArea) -> ReplicatedStore:
    return ReplicatedStore(replicated_area)


@pytest.fixture
def device(local_area: MemoryArea, replicated: ReplicatedStore) -> DeviceStore:
    return DeviceStore(local_area, replicated=replicated)


@pytest.fixture
def tree() -> MemoryFolderStore:
    return MemoryFolderStore()


@pytest.fixture
def folders(tree: MemoryFolderStore) -> FolderService:
    return FolderService(tree)


# ---------------------------------------------------------------------------
# Engines
# ---------------------------------------------------------------------------


@pytest.fixture
def engine(
    replicated: ReplicatedStore,
    device: DeviceStore,
    folders: FolderService,
    settings: SpacesSettings,
) -> WorkspaceEngine:
    """An engine that has not been initialized yet."""
    return WorkspaceEngine(replicated, device, folders, settings=settings)


@pytest.fixture
async def ready_engine(engine: WorkspaceEngine) -> WorkspaceEngine:
    """An engine after a first run on empty stores."""
    await engine.init()
    return engine


@pytest.fixture
def make_engine(replicated_area: MemoryArea, settings: SpacesSettings) -> Callable[..., WorkspaceEngine]:
    """Build another device sharing ``replicated_area``, with its own local area and folder tree."""

    def _make(*, local_area: MemoryArea | None = None, tree: MemoryFolderStore | None = None) -> WorkspaceEngine:
        replicated = ReplicatedStore(replicated_area)
        device = DeviceStore(local_area if local_area is not None else MemoryArea(), replicated=replicated)
        folders = FolderService(tree if tree is not None else MemoryFolderStore())
        return WorkspaceEngine(replicated, device, folders, settings=settings)

    return _make


@pytest.fixture
def seed_spaces() -> SeedSpaces:
    """Create a root container with one child folder per name.

    Each child folder gets one link (``https://<name>.example``) unless
    ``links=False``.  Returns ``(root_container_id, {name: folder_id})``.
    """

    async def _seed(
        folders: FolderService,
        *names: str,
        links: bool = True,
        title: str = "Spaces",
    ) -> tuple[str, dict[str, str]]:
        parent_id = await folders.find_default_parent()
        root = await folders.create_folder(parent_id, title)
        ids: dict[str, str] = {}
        for name in names:
            folder = await folders.create_folder(root.id, name)
            if links:
                slug = name.lower().replace(" ", "-")
                await folders.create_link(folder.id, name, f"https://{slug}.example")
            ids[name] = folder.id
        return root.id, ids

    return _seed


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Drop any sink a CLI invocation installed on a captured stream."""
    yield
    logger.remove()
