# services/notifications.py
# TaskMirror - user-facing notices and pending delete confirmations
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import threading
import time
from collections import deque
from concurrent.futures import Future
from typing import Any, Callable

from tm_platform.orchestrator import SyncItem


class NotificationCenter:
    """
    Notices for the UI (ring buffer) and delete confirmations.

    `ask()` hands back a Future the deletion watcher waits on; the UI answers
    through `resolve()`. Unanswered questions resolve to False ("keep") once
    `confirm_timeout` seconds pass.
    """

    def __init__(
        self,
        *,
        maxlen: int = 100,
        confirm_timeout: float = 300.0,
        log_fn: Callable[..., Any] | None = None,
    ) -> None:
        self.confirm_timeout = float(confirm_timeout)
        self.log_fn = log_fn
        self._lock = threading.Lock()
        self._items: deque[dict[str, Any]] = deque(maxlen=maxlen)
        self._pending: dict[str, dict[str, Any]] = {}
        self._seq = 0

    def _log(self, msg: str, *, level: str = "INFO") -> None:
        if self.log_fn is not None:
            self.log_fn(msg, level=level, module="NOTIFY")

    # notices
    def push(self, message: str, level: str = "WARN") -> dict[str, Any]:
        with self._lock:
            self._seq += 1
            entry = {"id": self._seq, "ts": int(time.time()), "level": level.upper(), "message": str(message)}
            self._items.append(entry)
        self._log(message, level=level)
        return entry

    def __call__(self, message: str) -> None:
        self.push(message)

    def list(self) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._items)

    def clear(self) -> int:
        with self._lock:
            n = len(self._items)
            self._items.clear()
        return n

    # confirmations
    def ask(self, item: SyncItem) -> Future[bool]:
        fut: Future[bool] = Future()
        with self._lock:
            old = self._pending.pop(item.id, None)
            self._pending[item.id] = {"item": item, "future": fut, "asked_at": int(time.time())}
        if old is not None:
            old["future"].set_result(False)
        self.push(f'Task "{item.title or item.id}" was removed from the document. Delete it in Google Tasks too?', "INFO")

        if self.confirm_timeout > 0:
            t = threading.Timer(self.confirm_timeout, self._expire, args=(item.id, fut))
            t.daemon = True
            t.start()
        return fut

    def pending(self) -> list[dict[str, Any]]:
        with self._lock:
            rows = list(self._pending.values())
        return [
            {"id": r["item"].id, "title": r["item"].title, "link": r["item"].link, "asked_at": r["asked_at"]}
            for r in rows
        ]

    def _expire(self, item_id: str, fut: Future[bool]) -> None:
        with self._lock:
            row = self._pending.get(item_id)
            if row is None or row["future"] is not fut:
                return
            del self._pending[item_id]
        if not fut.done():
            fut.set_result(False)
        self._log(f"no answer for {item_id}; keeping it at the source", level="INFO")

    def resolve(self, item_id: str, decision: bool) -> bool:
        with self._lock:
            row = self._pending.pop(str(item_id), None)
        if row is None:
            return False
        fut: Future[bool] = row["future"]
        if not fut.done():
            fut.set_result(bool(decision))
        return True
