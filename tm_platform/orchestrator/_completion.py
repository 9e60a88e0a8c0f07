# tm_platform/orchestrator/_completion.py
# checkbox reconciliation: document ticks are pushed to the source before the main diff.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed

from ._types import CompletionChange, SourceOps, SyncItem

try:
    from _logging import log as _log
except ImportError:  # pragma: no cover
    _log = None

Notify = Callable[[str], None]


def _warn(msg: str) -> None:
    if _log is not None:
        _log(msg, level="WARN", module="COMPLETION")


def detect_changes(
    existing: Sequence[SyncItem],
    incoming: Sequence[SyncItem],
    list_index: Mapping[str, str],
) -> list[CompletionChange]:
    """
    Items present on both sides whose completion differs. The document wins:
    each change carries the document's state. Items only in the document are
    left to the delete path.
    """
    by_id = {it.id: it for it in incoming}
    out: list[CompletionChange] = []
    for doc_item in existing:
        src_item = by_id.get(doc_item.id)
        if src_item is None or src_item.completed == doc_item.completed:
            continue
        list_id = list_index.get(doc_item.id)
        if not list_id:
            continue
        out.append(CompletionChange(task_id=doc_item.id, list_id=list_id, completed=doc_item.completed))
    return out


def apply_changes(
    changes: Sequence[CompletionChange],
    ops: SourceOps,
    *,
    notify: Notify | None = None,
    max_workers: int = 4,
) -> list[CompletionChange]:
    """Push each change independently; returns the ones the source accepted."""
    if not changes:
        return []

    ok: set[CompletionChange] = set()
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(changes)))) as pool:
        futs = {pool.submit(ops.update_completion, ch.list_id, ch.task_id, ch.completed): ch for ch in changes}
        for fut in as_completed(futs):
            ch = futs[fut]
            try:
                fut.result()
                ok.add(ch)
            except Exception as e:
                _warn(f"completion push failed for {ch.task_id}: {e}")
                if notify is not None:
                    notify(f"Failed to sync completion status for task: {ch.task_id}")

    return [ch for ch in changes if ch in ok]


def merge_changes(incoming: Sequence[SyncItem], successful: Sequence[CompletionChange]) -> list[SyncItem]:
    done = {ch.task_id: ch.completed for ch in successful}
    return [it.with_completed(done[it.id]) if it.id in done else it for it in incoming]
