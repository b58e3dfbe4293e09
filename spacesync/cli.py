import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path

import click

from spacesync.workspaces.models.enums import ColorScheme


@click.group()
def main() -> None:
    """spacesync - Workspace sync engine for bookmark spaces."""
    from spacesync.workspaces.log import setup_logging
    from spacesync.workspaces.settings import SpacesSettings

    setup_logging(SpacesSettings().log_level)


# ---------------------------------------------------------------------------
# Engine construction
# ---------------------------------------------------------------------------


async def _open_engine():
    """Build an engine on the stores configured in SPACESYNC_* settings."""
    from spacesync.workspaces.engine import WorkspaceEngine
    from spacesync.workspaces.folders import FolderService, JsonFolderStore
    from spacesync.workspaces.settings import SpacesSettings
    from spacesync.workspaces.store import DeviceStore, FileArea, ReplicatedStore, S3Area

    settings = SpacesSettings()

    if settings.replicated_store == "s3":
        if not (settings.s3_endpoint and settings.s3_bucket and settings.s3_access_key and settings.s3_secret_key):
            msg = "replicated_store=s3 needs SPACESYNC_S3_ENDPOINT, _BUCKET, _ACCESS_KEY and _SECRET_KEY"
            raise click.UsageError(msg)
        area = S3Area(
            bucket=settings.s3_bucket,
            endpoint_url=settings.s3_endpoint,
            access_key=settings.s3_access_key,
            secret_key=settings.s3_secret_key.get_secret_value(),
            area="replicated",
            prefix=settings.data_prefix,
            region=settings.s3_region,
            path_style=settings.s3_path_style,
        )
    else:
        area = FileArea(settings.data_root, "replicated", prefix=settings.data_prefix)

    replicated = ReplicatedStore(area, item_quota_bytes=settings.item_quota_bytes)
    device = DeviceStore(FileArea(settings.data_root, "local", prefix=settings.data_prefix), replicated=replicated)

    tree_root = Path(settings.data_root)
    if settings.data_prefix:
        tree_root = tree_root / settings.data_prefix
    folders = FolderService(await JsonFolderStore.open(tree_root / "bookmarks.json"))

    return WorkspaceEngine(replicated, device, folders, settings=settings)


async def _ready_engine():
    """Open and init an engine; refuse to continue while a reinstall decision is pending."""
    engine = await _open_engine()
    await engine.init()
    if engine.needs_reinstall_prompt:
        msg = "Existing workspace data found. Run 'spacesync init --restore' or 'spacesync init --start-fresh' first."
        raise click.ClickException(msg)
    return engine


def _run[T](factory: Callable[[], Awaitable[T]]) -> T:
    from spacesync.workspaces.backup import BackupFormatError
    from spacesync.workspaces.engine import InitFailedError, ReinstallPendingError

    try:
        return asyncio.run(factory())
    except (InitFailedError, ReinstallPendingError, BackupFormatError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc


def _print_workspaces(engine) -> None:
    active = engine.get_active()
    for workspace in engine.get_all():
        record = workspace.record
        marker = "*" if active is not None and workspace.id == active.id else " "
        label = f"{record.emoji} {record.name}" if record.emoji else record.name
        click.echo(
            f"{marker} {workspace.id:<16} {label:<24} {record.color_scheme:<7} "
            f"pins={len(record.pinned_bookmarks)} shortcuts={len(record.shortcuts)}"
        )


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@main.command()
def status() -> None:
    """Show workspaces, or the pending reinstall decision."""

    async def _status() -> None:
        engine = await _open_engine()
        await engine.init()
        if engine.needs_reinstall_prompt:
            click.echo(f"Reinstall detected ({engine.reinstall_reason}). Folders found:")
            for name in await engine.get_bookmark_folder_names():
                click.echo(f"  {name}")
            click.echo("Run 'spacesync init --restore' or 'spacesync init --start-fresh'.")
            return
        click.echo(f"State: {engine.state}")
        _print_workspaces(engine)

    _run(_status)


@main.command()
@click.option("--restore", is_flag=True, default=False, help="Keep existing data and reconcile it.")
@click.option("--start-fresh", is_flag=True, default=False, help="Discard replicated data and set up from scratch.")
def init(restore: bool, start_fresh: bool) -> None:
    """Initialize this device, answering the reinstall prompt if needed."""
    if restore and start_fresh:
        msg = "--restore and --start-fresh are mutually exclusive"
        raise click.UsageError(msg)

    async def _init() -> None:
        engine = await _open_engine()
        result = await engine.init()
        if engine.needs_reinstall_prompt:
            if restore:
                result = await engine.continue_init()
            elif start_fresh:
                result = await engine.reset_and_setup()
            else:
                click.echo(f"Reinstall detected ({engine.reinstall_reason}).")
                click.echo("Re-run with --restore to keep the data or --start-fresh to discard it.")
                return
        click.echo(
            f"State: {result.state} (migrated={result.migrated}, first_run={result.first_run}, "
            f"recovered={len(result.recovered_items)}, adopted={len(result.adopted_folders)}, "
            f"pruned={len(result.pruned)})"
        )
        _print_workspaces(engine)

    _run(_init)


# ---------------------------------------------------------------------------
# Workspace CRUD
# ---------------------------------------------------------------------------


@main.command()
@click.argument("name")
@click.option(
    "--color",
    type=click.Choice([scheme.value for scheme in ColorScheme]),
    default=ColorScheme.BLUE.value,
    show_default=True,
)
def create(name: str, color: str) -> None:
    """Create a workspace."""

    async def _create() -> None:
        engine = await _ready_engine()
        workspace = await engine.create(name, color)
        click.echo(workspace.id)

    _run(_create)


@main.command()
@click.argument("workspace_id")
@click.argument("name")
def rename(workspace_id: str, name: str) -> None:
    """Rename a workspace."""

    async def _rename() -> None:
        engine = await _ready_engine()
        if await engine.rename(workspace_id, name) is None:
            msg = f"Unknown workspace: {workspace_id}"
            raise click.ClickException(msg)
        click.echo(f"Renamed {workspace_id}")

    _run(_rename)


@main.command()
@click.argument("workspace_id")
def delete(workspace_id: str) -> None:
    """Delete a workspace and its folder."""

    async def _delete() -> None:
        engine = await _ready_engine()
        if engine.get_by_id(workspace_id) is None:
            msg = f"Unknown workspace: {workspace_id}"
            raise click.ClickException(msg)
        if not await engine.delete(workspace_id):
            msg = "The last remaining workspace cannot be deleted"
            raise click.ClickException(msg)
        click.echo(f"Deleted {workspace_id}")

    _run(_delete)


@main.command()
@click.argument("workspace_id")
def switch(workspace_id: str) -> None:
    """Make a workspace active on this device."""

    async def _switch() -> None:
        engine = await _ready_engine()
        if await engine.switch_to(workspace_id) is None:
            msg = f"Unknown workspace: {workspace_id}"
            raise click.ClickException(msg)
        click.echo(f"Active: {workspace_id}")

    _run(_switch)


# ---------------------------------------------------------------------------
# Backup
# ---------------------------------------------------------------------------


@main.command("export")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
def export_backup(path: Path) -> None:
    """Write a full backup to PATH."""
    from spacesync.workspaces.backup import BackupService

    async def _export() -> None:
        engine = await _ready_engine()
        document = await BackupService(engine).save_backup(path)
        click.echo(f"Exported {len(document.workspaces)} workspace(s) to {path}")

    _run(_export)


@main.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--yes", is_flag=True, default=False, help="Do not ask for confirmation.")
def import_backup(path: Path, yes: bool) -> None:
    """Replace all workspaces with the backup at PATH."""
    from spacesync.workspaces.backup import BackupService

    async def _load():
        engine = await _open_engine()
        service = BackupService(engine)
        return service, await service.load_backup(path)

    async def _restore() -> None:
        service, document = await _load()
        summary = service.validate_backup(document.to_wire()).summary
        if summary is not None:
            click.echo(
                f"Backup: {summary.workspace_count} workspace(s) ({', '.join(summary.workspace_names)}), "
                f"{summary.bookmark_count} bookmark(s)"
            )
        if not yes and not click.confirm("Replace all current workspaces?", default=False):
            click.echo("Aborted.")
            return
        result = await service.restore_backup(document)
        click.echo(f"Restored. State: {result.state}")

    _run(_restore)
