# tm_platform/orchestrator/_planner.py
# reconciliation: create/update/delete actions between incoming and document items.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from ._types import COMPARED_FIELDS, Operation, SyncAction, SyncItem

OPERATIONS: tuple[Operation, ...] = ("create", "update", "delete")


def action_key(item: SyncItem) -> str:
    return f"{item.id}:{item.source}"


def _differs(a: SyncItem, b: SyncItem) -> bool:
    return any(getattr(a, f) != getattr(b, f) for f in COMPARED_FIELDS)


def reconcile(incoming: Sequence[SyncItem], existing: Sequence[SyncItem]) -> list[SyncAction]:
    """
    Diff freshly fetched items against the items already in the document.

    Both sides are expected to be scoped to one source, so ids are unique.
    Returns creates, then updates, then deletes.
    """
    by_id = {it.id: it for it in existing}
    incoming_ids = {it.id for it in incoming}

    creates: list[SyncAction] = []
    updates: list[SyncAction] = []
    for it in incoming:
        cur = by_id.get(it.id)
        if cur is None:
            creates.append(SyncAction(it, "create"))
        elif _differs(it, cur):
            updates.append(SyncAction(it, "update"))

    deletes = [SyncAction(it, "delete") for it in existing if it.id not in incoming_ids]
    return creates + updates + deletes


def filter_actions(actions: Iterable[SyncAction], predicate: Callable[[SyncAction], bool]) -> list[SyncAction]:
    return [a for a in actions if predicate(a)]


def filter_by_operation(actions: Iterable[SyncAction], operation: Operation) -> list[SyncAction]:
    return [a for a in actions if a.operation == operation]


def group_by_operation(actions: Iterable[SyncAction]) -> dict[Operation, list[SyncAction]]:
    out: dict[Operation, list[SyncAction]] = {op: [] for op in OPERATIONS}
    for a in actions:
        out[a.operation].append(a)
    return out


def create_items(actions: Iterable[SyncAction]) -> list[SyncItem]:
    return [a.item for a in actions if a.operation == "create"]


def update_delete_map(actions: Iterable[SyncAction]) -> dict[str, SyncAction]:
    return {action_key(a.item): a for a in actions if a.operation != "create"}


def preserve_completed_deletes(action: SyncAction) -> bool:
    # keep everything except deletes of ticked lines
    return not (action.operation == "delete" and action.item.completed)
