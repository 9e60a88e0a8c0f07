# tm_platform/orchestrator/facade.py
# import job: fetch, reconcile completion, diff and patch the sync document.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import re
import time
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any

from ._completion import apply_changes, detect_changes, merge_changes
from ._planner import filter_actions, group_by_operation, preserve_completed_deletes, reconcile
from ._reader import read_items
from ._tombstones import UpdateConfig, filter_items, load_ids
from ._types import SOURCE_GTASKS, SourceAuthError, SourceOps, SyncAction, SyncItem
from ._writer import apply as apply_actions

try:
    from _logging import log as _log
except ImportError:  # pragma: no cover
    _log = None

__all__ = ["Orchestrator", "is_missing_document_error"]

_MISSING = re.compile(r"ENOENT|no such file or directory|not found", re.IGNORECASE)

OpsFactory = Callable[[Mapping[str, Any]], SourceOps]


def is_missing_document_error(e: BaseException) -> bool:
    return isinstance(e, OSError) and bool(_MISSING.search(str(e)))


@dataclass
class Orchestrator:
    store: Any
    ops_factory: OpsFactory
    load_config: Callable[[], dict[str, Any]]
    update_config: UpdateConfig
    notify: Callable[[str], None] | None = None
    sleep: Callable[[float], None] = time.sleep
    source: str = SOURCE_GTASKS

    last_summary: dict[str, Any] = field(init=False, default_factory=dict)

    def _emit(self, msg: str, level: str = "INFO") -> None:
        if _log is not None:
            _log(msg, level=level, module="SYNC")

    def _notify(self, msg: str) -> None:
        self._emit(msg, level="WARN")
        if self.notify is not None:
            self.notify(msg)

    def _missing(self, doc: str) -> None:
        self._notify(f'Sync document "{doc}" not found. Please check your settings.')

    # Steps
    def _document_ready(self, doc: str, rt: Mapping[str, Any]) -> bool:
        if self.store.exists(doc):
            return True
        # the vault may still be mounting; look once more
        delay_ms = int(rt.get("startup_retry_ms") or 500)
        self.sleep(delay_ms / 1000.0)
        return self.store.exists(doc)

    def _fetch_all(self, ops: SourceOps, workers: int) -> tuple[list[SyncItem], dict[str, str], bool]:
        list_ids = list(ops.list_ids())
        if not list_ids:
            return [], {}, False

        per_list: dict[str, list[SyncItem]] = {}
        partial = False
        with ThreadPoolExecutor(max_workers=max(1, min(workers, len(list_ids)))) as pool:
            futs = {pool.submit(ops.fetch_items, lid): lid for lid in list_ids}
            for fut in as_completed(futs):
                lid = futs[fut]
                try:
                    per_list[lid] = list(fut.result())
                except SourceAuthError:
                    raise
                except Exception as e:
                    partial = True
                    self._emit(f"list {lid} could not be fetched: {e}", level="ERROR")

        incoming: list[SyncItem] = []
        index: dict[str, str] = {}
        for lid in list_ids:
            for it in per_list.get(lid, []):
                if it.id in index:
                    continue
                index[it.id] = lid
                incoming.append(it)
        return incoming, index, partial

    def _plan(
        self,
        incoming: Sequence[SyncItem],
        existing: Sequence[SyncItem],
        sync: Mapping[str, Any],
        *,
        partial: bool,
    ) -> list[SyncAction]:
        actions = reconcile(incoming, existing)
        if sync.get("keep_completed"):
            actions = filter_actions(actions, preserve_completed_deletes)
        if partial:
            actions = filter_actions(actions, lambda a: a.operation != "delete")
        return actions

    # Main run
    def run(self) -> dict[str, Any]:
        t0 = time.time()
        cfg = self.load_config() or {}
        sync = dict(cfg.get("sync") or {})
        rt = dict(cfg.get("runtime") or {})
        doc = str(sync.get("document") or "")
        heading = str(sync.get("heading") or "")
        workers = int(rt.get("fetch_workers") or 4)

        summary: dict[str, Any] = {
            "ok": False,
            "document": doc,
            "fetched": 0,
            "created": 0,
            "updated": 0,
            "deleted": 0,
            "completion_pushed": 0,
            "completion_failed": 0,
            "written": False,
            "error": "",
        }
        self.last_summary = summary

        if not doc or not self._document_ready(doc, rt):
            self._missing(doc)
            summary["error"] = "document_not_found"
            return summary

        try:
            ops = self.ops_factory(cfg)
            if not list(ops.list_ids()):
                # nothing to mirror; the document stays as it is
                self._emit("No Google Tasks lists selected.")
                summary["ok"] = True
                summary["duration_ms"] = int((time.time() - t0) * 1000)
                return summary

            incoming, index, partial = self._fetch_all(ops, workers)
            summary["fetched"] = len(incoming)
            if partial:
                summary["error"] = "partial_fetch"

            text = self.store.read(doc)
            existing = read_items(text, self.source)

            if sync.get("completion_sync"):
                changes = detect_changes(existing, incoming, index)
                pushed = apply_changes(changes, ops, notify=self.notify, max_workers=workers)
                summary["completion_pushed"] = len(pushed)
                summary["completion_failed"] = len(changes) - len(pushed)
                incoming = merge_changes(incoming, pushed)

            incoming = filter_items(incoming, load_ids(cfg))
            actions = self._plan(incoming, existing, sync, partial=partial)
            groups = group_by_operation(actions)
            summary["created"] = len(groups["create"])
            summary["updated"] = len(groups["update"])
            summary["deleted"] = len(groups["delete"])

            new_text = apply_actions(text, actions, heading)
            if new_text != text:
                self.store.write(doc, new_text)
                summary["written"] = True
        except SourceAuthError as e:
            self._emit(f"authorization failed: {e}", level="ERROR")
            self._notify("Google Tasks authorization expired. Please sign in again in the settings.")
            summary["error"] = "auth"
            return summary
        except OSError as e:
            if not is_missing_document_error(e):
                raise
            self._missing(doc)
            summary["error"] = "document_not_found"
            return summary

        summary["ok"] = True
        summary["duration_ms"] = int((time.time() - t0) * 1000)
        self._emit(
            f"sync done: +{summary['created']} ~{summary['updated']} -{summary['deleted']}"
            f" (completion pushed {summary['completion_pushed']}, failed {summary['completion_failed']})"
        )
        return summary
