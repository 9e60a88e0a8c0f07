# tm_platform/orchestrator/_tombstones.py
# ids the user removed locally but chose to keep at the source.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from ._types import SyncItem

UpdateConfig = Callable[[Callable[[dict[str, Any]], Any]], dict[str, Any]]


def load_ids(cfg: Mapping[str, Any]) -> list[str]:
    raw = (cfg.get("sync") or {}).get("manually_deleted_ids") or []
    return [str(x) for x in raw if str(x).strip()]


def add_ids(ids: Iterable[str], update_config: UpdateConfig) -> int:
    """Append ids to the persisted set. Runs against the freshest config, not a cached copy."""
    new = [str(x) for x in ids if str(x).strip()]
    added = 0

    def _mut(cfg: dict[str, Any]) -> None:
        nonlocal added
        sync = cfg.setdefault("sync", {})
        cur = list(sync.get("manually_deleted_ids") or [])
        for i in new:
            if i not in cur:
                cur.append(i)
                added += 1
        sync["manually_deleted_ids"] = cur

    if new:
        update_config(_mut)
    return added


def clear(update_config: UpdateConfig) -> int:
    removed = 0

    def _mut(cfg: dict[str, Any]) -> None:
        nonlocal removed
        sync = cfg.setdefault("sync", {})
        removed = len(sync.get("manually_deleted_ids") or [])
        sync["manually_deleted_ids"] = []

    update_config(_mut)
    return removed


def filter_items(items: Sequence[SyncItem], ids: Iterable[str]) -> list[SyncItem]:
    skip = set(ids)
    if not skip:
        return list(items)
    return [it for it in items if it.id not in skip]
