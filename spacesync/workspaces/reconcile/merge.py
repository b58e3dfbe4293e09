"""Order merging for merge-before-write.

There is no lock over the replicated partition.  Before the order item is
written, the current remote order is re-read and merged so one device never
erases a workspace another device just added.
"""

from __future__ import annotations

from collections.abc import Iterable

from spacesync.workspaces.store.replicated import ReplicatedStore


def merge_orders(primary: Iterable[str], secondary: Iterable[str]) -> list[str]:
    """Union of two orders.

    Keeps ``primary``'s sequence (duplicates dropped) and appends ids that
    only ``secondary`` has, in ``secondary``'s sequence.  Idempotent:
    ``merge_orders(merge_orders(a, b), b) == merge_orders(a, b)``.
    """
    merged: list[str] = []
    seen: set[str] = set()
    for workspace_id in (*primary, *secondary):
        if workspace_id not in seen:
            seen.add(workspace_id)
            merged.append(workspace_id)
    return merged


async def save_merged_order(replicated: ReplicatedStore, order: list[str], *, merge: bool = True) -> list[str]:
    """Write the order item, unioned with the current remote order unless ``merge`` is False.

    Returns the order actually written.  Pass ``merge=False`` only when ids
    are being removed on purpose (delete, validation prune).
    """
    if merge:
        remote = await replicated.get_order()
        if remote is not None:
            order = merge_orders(order, remote.order)
    await replicated.save_order(order)
    return order
