"""Engine configuration loaded from SPACESYNC_* environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class SpacesSettings(BaseSettings):
    """spacesync settings.

    All fields are read from environment variables with the ``SPACESYNC_``
    prefix.  For example, ``SPACESYNC_LOG_LEVEL=DEBUG`` maps to ``log_level``.
    Tests construct instances directly with explicit values.
    """

    model_config = SettingsConfigDict(
        env_prefix="SPACESYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Data storage ----------------------------------------------------------
    data_root: str = "./data"
    """Root directory for the local partition, the file-backed replicated
    partition and the JSON folder tree used by the CLI."""

    data_prefix: str | None = None
    """Optional namespace inserted into all data paths (``{data_root}/{data_prefix}/...``).

    Two devices sharing one S3 bucket use the same prefix for the replicated
    partition and keep their local partitions on their own disks.
    """

    replicated_store: Literal["local", "s3"] = "local"

    # S3 (only when replicated_store = "s3")
    s3_endpoint: str | None = None
    s3_bucket: str | None = None
    s3_region: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: SecretStr | None = None
    s3_path_style: bool = False
    """Use path-style addressing (required by MinIO and some S3-compatible services)."""

    # -- Folder conventions ----------------------------------------------------
    root_container_title: str = "Spaces"
    shortcuts_folder_title: str = "__shortcuts__"
    default_workspace_title: str = "Personal"

    # -- Limits ----------------------------------------------------------------
    max_shortcuts: int = 8
    item_quota_bytes: int = 8192
    """Per-item payload ceiling of the replicated partition (key + JSON value)."""

    # -- Init ------------------------------------------------------------------
    init_max_retries: int = 3
    init_retry_delay: float = 0.5
    """Base delay in seconds; attempt ``n`` waits ``n * init_retry_delay``."""

    first_run_delay: float = 2.0
    """Seconds to wait before first-run writes so replicated data from another
    device has a chance to arrive."""


def get_settings() -> SpacesSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to
    force a re-read after overriding env vars.
    """
    return _get_settings_cached()


def _get_settings_cached() -> SpacesSettings:
    """Inner function wrapped by lru_cache (allows type-safe cache_clear)."""
    return SpacesSettings()


from functools import lru_cache  # noqa: E402

_get_settings_cached = lru_cache(maxsize=1)(_get_settings_cached)
