"""Unit tests for order merging and merge-before-write."""

from __future__ import annotations

import pytest

from spacesync.workspaces.reconcile.merge import merge_orders, save_merged_order
from spacesync.workspaces.store import ReplicatedStore


@pytest.mark.parametrize(
    ("primary", "secondary"),
    [
        ([], []),
        (["a", "b"], []),
        ([], ["a", "b"]),
        (["a", "b", "c"], ["c", "d", "a", "e"]),
        (["a", "a", "b"], ["b", "b", "c"]),
    ],
)
def test_merge_is_superset_preserving_primary_order(primary: list[str], secondary: list[str]) -> None:
    merged = merge_orders(primary, secondary)

    assert set(merged) == set(primary) | set(secondary)
    assert len(merged) == len(set(merged))
    positions = [merged.index(item) for item in dict.fromkeys(primary)]
    assert positions == sorted(positions)
    assert merge_orders(merged, secondary) == merged


def test_merge_appends_secondary_only_ids_in_their_order() -> None:
    assert merge_orders(["a", "b"], ["x", "b", "y"]) == ["a", "b", "x", "y"]


async def test_save_merged_order_keeps_remote_ids(replicated: ReplicatedStore) -> None:
    await replicated.save_order(["ws_default", "ws_remote"])

    written = await save_merged_order(replicated, ["ws_default", "ws_local"])

    assert written == ["ws_default", "ws_local", "ws_remote"]
    order = await replicated.get_order()
    assert order is not None
    assert order.order == written


async def test_save_without_merge_drops_remote_ids(replicated: ReplicatedStore) -> None:
    await replicated.save_order(["ws_default", "ws_deleted"])

    written = await save_merged_order(replicated, ["ws_default"], merge=False)

    assert written == ["ws_default"]
    order = await replicated.get_order()
    assert order is not None
    assert order.order == ["ws_default"]
