# tm_platform/orchestrator/_watcher.py
# deletion watcher: lines removed by hand are offered for deletion at the source.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import threading
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as WaitTimeout
from typing import Any

from ._guard import SyncGuard
from ._reader import read_items
from ._tombstones import UpdateConfig, add_ids
from ._types import SOURCE_GTASKS, SourceOps, SyncItem

try:
    from _logging import log as _log
except ImportError:  # pragma: no cover
    _log = None

Confirm = Callable[[SyncItem], "bool | Future[bool]"]
OpsFactory = Callable[[Mapping[str, Any]], SourceOps]

# how often a pending confirmation checks for shutdown
CONFIRM_POLL_SEC = 0.1


def _emit(msg: str, level: str = "INFO") -> None:
    if _log is not None:
        _log(msg, level=level, module="WATCHER")


def _always_confirm(_item: SyncItem) -> bool:
    return True


class DeletionWatcher:
    """
    Watches the sync document and diffs each new version against the last
    snapshot. Items that vanished while no sync was running are user
    deletions; they are checked against the source and then either deleted
    there or remembered as "manually deleted".

    Candidates are handled one at a time on a single worker, since each one
    may rewrite the persisted manually-deleted list.
    """

    def __init__(
        self,
        store: Any,
        guard: SyncGuard,
        ops_factory: OpsFactory,
        *,
        load_config: Callable[[], dict[str, Any]],
        update_config: UpdateConfig,
        confirm: Confirm | None = None,
        notify: Callable[[str], None] | None = None,
        source: str = SOURCE_GTASKS,
    ) -> None:
        self.store = store
        self.guard = guard
        self.ops_factory = ops_factory
        self.load_config = load_config
        self.update_config = update_config
        self.confirm = confirm or _always_confirm
        self.notify = notify
        self.source = source

        self._lock = threading.Lock()
        self._stopping = threading.Event()
        self._snapshot: list[SyncItem] | None = None
        self._worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="deletions")
        self._unsubscribe: Callable[[], None] | None = None
        self._document = ""

    # settings
    def _sync_cfg(self) -> dict[str, Any]:
        return dict((self.load_config() or {}).get("sync") or {})

    def document(self) -> str:
        return str(self._sync_cfg().get("document") or "")

    @property
    def snapshot(self) -> list[SyncItem] | None:
        with self._lock:
            return None if self._snapshot is None else list(self._snapshot)

    # lifecycle
    def start(self) -> None:
        self.stop_watching()
        doc = self.document()
        if not doc:
            return
        self._document = doc
        self.refresh_cache()
        self._unsubscribe = self.store.watch(doc, self.on_document_changed)
        _emit(f"watching {doc} for deleted lines")

    def stop_watching(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def stop(self, *, wait: bool = False) -> None:
        self._stopping.set()
        self.stop_watching()
        self._worker.shutdown(wait=wait, cancel_futures=True)

    def drain(self, timeout: float | None = None) -> None:
        self._worker.submit(lambda: None).result(timeout=timeout)

    # cache
    def _read_current(self, doc: str) -> list[SyncItem] | None:
        try:
            text = self.store.read(doc)
        except FileNotFoundError:
            return None
        return read_items(text, self.source)

    def refresh_cache(self) -> None:
        doc = self._document or self.document()
        if not doc:
            return
        with self._lock:
            self._snapshot = self._read_current(doc)

    # events
    def on_document_changed(self, path: str) -> None:
        # sampled before anything else; the scheduler may release the guard any moment
        sync_running = self.guard.is_active

        doc = self._document or self.document()
        if not doc or self.store.resolve(path) != self.store.resolve(doc):
            return

        with self._lock:
            current = self._read_current(doc)
            previous, self._snapshot = self._snapshot, current

        if sync_running or previous is None or current is None:
            return

        still_there = {it.id for it in current}
        removed = [it for it in previous if it.id not in still_there]
        if not removed:
            return

        if not self._sync_cfg().get("delete_sync"):
            _emit(f"{len(removed)} line(s) removed; delete sync is off", level="DEBUG")
            return

        _emit(f"{len(removed)} line(s) removed by hand; checking source")
        self._worker.submit(self._process, removed)

    def _process(self, candidates: Sequence[SyncItem]) -> None:
        try:
            ops = self.ops_factory(self.load_config() or {})
        except Exception as e:
            _emit(f"cannot reach source for deletion check: {e}", level="ERROR")
            if self.notify is not None:
                self.notify(f"Could not check deleted tasks: {e}")
            return

        for item in candidates:
            if self._stopping.is_set():
                return
            try:
                self._handle(ops, item)
            except Exception as e:
                _emit(f"deletion of {item.id} failed: {e}", level="ERROR")
                if self.notify is not None:
                    self.notify(f"Failed to delete task: {item.title or item.id}")

    def _decide(self, item: SyncItem) -> bool | None:
        """The user's answer, or None when the watcher stopped before one came in."""
        decision = self.confirm(item)
        if not isinstance(decision, Future):
            return bool(decision)
        while not self._stopping.is_set():
            try:
                return bool(decision.result(timeout=CONFIRM_POLL_SEC))
            except WaitTimeout:
                continue
            except Exception:
                return False
        return None

    def _handle(self, ops: SourceOps, item: SyncItem) -> None:
        list_id = ops.find_item(item.id)
        if list_id is None:
            _emit(f"{item.id} is gone at the source already; nothing to do", level="DEBUG")
            return

        if self._sync_cfg().get("confirm_delete"):
            confirmed = self._decide(item)
            if confirmed is None:
                _emit(f"stopped while waiting on {item.id}; left untouched", level="DEBUG")
                return
            if not confirmed:
                add_ids([item.id], self.update_config)
                _emit(f"kept {item.id} at the source; marked as manually deleted")
                return

        ops.delete_item(list_id, item.id)
        _emit(f"deleted {item.id} at the source", level="SUCCESS")
