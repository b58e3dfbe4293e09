"""S3 key-value area.

Stores one JSON object per key with optional namespace prefix::

    s3://{bucket}/{prefix}/{area}/{key}.json

When prefix is None, the path collapses to::

    s3://{bucket}/{area}/{key}.json

Several devices pointing at the same bucket and prefix share one replicated
partition; S3's last-writer-wins semantics per object match what the engine
expects from a replicated store.

Uses ``anyio.to_thread.run_sync`` to run boto3 calls in the thread pool,
matching the same async pattern as ``FileArea``.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from functools import partial
from typing import Any

import boto3
from anyio import to_thread
from botocore.config import Config

_SUFFIX = ".json"


def _create_s3_client(
    endpoint_url: str,
    access_key: str,
    secret_key: str,
    region: str | None = None,
    path_style: bool = False,
) -> Any:
    """Create a boto3 S3 client.

    Args:
        endpoint_url: S3 endpoint URL.
        access_key: Access key ID.
        secret_key: Secret access key.
        region: Region name (optional, some endpoints require it).
        path_style: Use path-style addressing instead of virtual-hosted.
    """
    config = Config(
        request_checksum_calculation="when_required",
        response_checksum_validation="when_required",
        s3={"addressing_style": "path" if path_style else "auto"},
    )

    return boto3.client(
        "s3",
        endpoint_url=endpoint_url,
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
        region_name=region,
        config=config,
    )


class S3Area:
    """S3 implementation of the ``KeyValueArea`` protocol."""

    def __init__(
        self,
        bucket: str,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        area: str,
        prefix: str | None = None,
        region: str | None = None,
        path_style: bool = False,
    ) -> None:
        self._bucket = bucket
        self._client = _create_s3_client(endpoint_url, access_key, secret_key, region=region, path_style=path_style)
        self._key_prefix = f"{prefix}/{area}/" if prefix else f"{area}/"

    def _object_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}{_SUFFIX}"

    # -- Read ------------------------------------------------------------------

    async def get(self, keys: Sequence[str]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key in keys:
            body = await to_thread.run_sync(partial(self._get_object_body, self._object_key(key)))
            if body is not None:
                result[key] = json.loads(body)
        return result

    def _get_object_body(self, object_key: str) -> str | None:
        """Get object and read body in the same thread.

        Reading the streaming body must happen in the same thread as
        get_object to avoid issues with chunked transfer encoding.
        """
        try:
            resp = self._client.get_object(Bucket=self._bucket, Key=object_key)
        except self._client.exceptions.NoSuchKey:
            return None
        return resp["Body"].read().decode("utf-8")

    async def keys(self) -> list[str]:
        return await to_thread.run_sync(self._list_keys)

    def _list_keys(self) -> list[str]:
        paginator = self._client.get_paginator("list_objects_v2")
        found: list[str] = []
        for page in paginator.paginate(Bucket=self._bucket, Prefix=self._key_prefix):
            for obj in page.get("Contents", []):
                name = obj["Key"][len(self._key_prefix) :]
                if name.endswith(_SUFFIX) and "/" not in name:
                    found.append(name[: -len(_SUFFIX)])
        return found

    # -- Write -----------------------------------------------------------------

    async def set(self, items: Mapping[str, Any]) -> None:
        for key, value in items.items():
            await to_thread.run_sync(
                partial(
                    self._client.put_object,
                    Bucket=self._bucket,
                    Key=self._object_key(key),
                    Body=json.dumps(value, ensure_ascii=False).encode("utf-8"),
                    ContentType="application/json",
                )
            )

    async def remove(self, keys: Sequence[str]) -> None:
        # S3 delete is idempotent -- no error if key doesn't exist.
        for key in keys:
            await to_thread.run_sync(
                partial(self._client.delete_object, Bucket=self._bucket, Key=self._object_key(key))
            )
