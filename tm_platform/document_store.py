# tm_platform/document_store.py
# TaskMirror - document access for the vault folder plus change notifications (watchdog)
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any, Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

try:
    from _logging import log as _log
except ImportError:  # pragma: no cover
    _log = None

ChangeCallback = Callable[[str], None]

_EVENTS = ("modified", "created", "moved")


def _dbg(msg: str, level: str = "DEBUG") -> None:
    if _log is not None:
        _log(msg, level=level, module="DOCS")


class DocumentNotFoundError(FileNotFoundError):
    pass


class _DocumentEvents(FileSystemEventHandler):
    def __init__(self, store: "DocumentStore") -> None:
        super().__init__()
        self.store = store

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _EVENTS:
            return
        raw = getattr(event, "dest_path", "") if event.event_type == "moved" else event.src_path
        if raw:
            self.store._dispatch(os.fsdecode(raw))


class DocumentStore:
    """Reads and writes documents under a root folder. Paths are relative to the root."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self._lock = threading.Lock()
        self._subs: dict[str, list[tuple[str, ChangeCallback]]] = {}
        self._observer: Any = None
        self._watched_dirs: set[str] = set()
        self._handler = _DocumentEvents(self)

    def resolve(self, path: str | Path) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self.root / p

    def _key(self, path: str | Path) -> str:
        return os.path.realpath(self.resolve(path))

    def exists(self, path: str | Path) -> bool:
        return self.resolve(path).is_file()

    def read(self, path: str | Path) -> str:
        p = self.resolve(path)
        try:
            with p.open("r", encoding="utf-8", newline="") as f:
                return f.read()
        except FileNotFoundError as e:
            raise DocumentNotFoundError(f"no such file or directory: {p}") from e

    def write(self, path: str | Path, text: str) -> None:
        p = self.resolve(path)
        if not p.parent.is_dir():
            raise DocumentNotFoundError(f"no such file or directory: {p.parent}")
        # in place, so editors and watchers see a modify of the same file
        with p.open("w", encoding="utf-8", newline="") as f:
            f.write(text)

    # Change notifications
    def watch(self, path: str | Path, callback: ChangeCallback) -> Callable[[], None]:
        key = self._key(path)
        parent = os.path.dirname(key)
        entry = (str(path), callback)
        with self._lock:
            self._subs.setdefault(key, []).append(entry)
            if self._observer is None:
                self._observer = Observer()
                self._observer.daemon = True
                self._observer.start()
            if parent not in self._watched_dirs and os.path.isdir(parent):
                self._observer.schedule(self._handler, parent, recursive=False)
                self._watched_dirs.add(parent)
        _dbg(f"watching {key}")

        def _unsubscribe() -> None:
            with self._lock:
                subs = self._subs.get(key) or []
                if entry in subs:
                    subs.remove(entry)

        return _unsubscribe

    def _dispatch(self, raw_path: str) -> None:
        key = os.path.realpath(raw_path)
        with self._lock:
            subs = list(self._subs.get(key) or [])
        for name, cb in subs:
            try:
                cb(name)
            except Exception as e:
                _dbg(f"change handler failed for {name}: {e}", level="ERROR")

    def close(self) -> None:
        with self._lock:
            obs, self._observer = self._observer, None
            self._watched_dirs.clear()
            self._subs.clear()
        if obs is not None:
            obs.stop()
            obs.join(timeout=3.0)
