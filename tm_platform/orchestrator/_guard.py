# tm_platform/orchestrator/_guard.py
# counter guard: tells the deletion watcher whether a sync is writing the document.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

T = TypeVar("T")


class SyncGuard:
    """Counts running sync jobs. Several jobs may overlap, so this is a counter and not a flag."""

    def __init__(self) -> None:
        self._count = 0
        self._lock = threading.Lock()

    @property
    def depth(self) -> int:
        with self._lock:
            return self._count

    @property
    def is_active(self) -> bool:
        return self.depth > 0

    def enter(self) -> None:
        with self._lock:
            self._count += 1

    def exit(self) -> None:
        with self._lock:
            if self._count > 0:
                self._count -= 1

    @contextmanager
    def hold(self) -> Iterator[None]:
        self.enter()
        try:
            yield
        finally:
            self.exit()

    def run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        with self.hold():
            return fn(*args, **kwargs)
