# services/scheduling.py
# TaskMirror - interval scheduler for sync jobs
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from tm_platform.config_base import clamp_interval
from tm_platform.orchestrator import SyncGuard

Job = Callable[[], Any]


def _now_ts() -> int:
    return int(time.time())


def _iso(ts: int) -> str:
    if not ts:
        return ""
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class SyncScheduler:
    """
    Runs every job now and then every `interval_minutes`.

    Each job runs inside the guard; the deletion watcher's snapshot is
    refreshed before the guard is released. A pass that is requested while
    another is still running is skipped.
    """

    def __init__(
        self,
        jobs: Sequence[Job],
        guard: SyncGuard,
        *,
        refresh_cache: Callable[[], None] | None = None,
        log_fn: Callable[..., Any] | None = None,
        max_workers: int = 4,
    ) -> None:
        self.jobs = list(jobs)
        self.guard = guard
        self.refresh_cache = refresh_cache
        self.log_fn = log_fn
        self.max_workers = max(1, int(max_workers))

        self._thread: threading.Thread | None = None
        self._stop = threading.Event()
        self._poke = threading.Event()
        self._lock = threading.Lock()
        self._run_lock = threading.Lock()
        self._interval_min = 0

        self._status: dict[str, Any] = {
            "running": False,
            "busy": False,
            "interval_minutes": 0,
            "last_run_at": 0,
            "last_run_ok": None,
            "last_error": "",
            "next_run_at": 0,
            "next_run_iso": "",
            "skipped": 0,
        }

    def _log(self, msg: str, *, level: str = "INFO") -> None:
        if not self.log_fn:
            return
        try:
            self.log_fn(msg, level=level, module="SCHED")
        except TypeError:
            self.log_fn(msg)

    # lifecycle
    def start(self, interval_minutes: int) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._interval_min = clamp_interval(interval_minutes)
        # fresh events per thread; a previous loop may still be finishing a job
        self._stop = threading.Event()
        self._poke = threading.Event()
        with self._lock:
            self._status["running"] = True
            self._status["interval_minutes"] = self._interval_min
        self._thread = threading.Thread(
            target=self._loop, args=(self._stop, self._poke), name="SyncScheduler", daemon=True
        )
        self._thread.start()
        self._log(f"scheduler started (every {self._interval_min} min)")

    def stop(self) -> None:
        self._stop.set()
        self._poke.set()
        t = self._thread
        if t and t.is_alive() and t is not threading.current_thread():
            t.join(timeout=3.0)
        self._thread = None
        with self._lock:
            self._status["running"] = False
            self._status["next_run_at"] = 0
            self._status["next_run_iso"] = ""
        self._log("scheduler stopped")

    def restart(self, interval_minutes: int) -> None:
        self.stop()
        self.start(interval_minutes)

    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def status(self) -> dict[str, Any]:
        with self._lock:
            st = dict(self._status)
        st["guard_depth"] = self.guard.depth
        return st

    # runs
    def run_now(self, *, wait: bool = True) -> bool:
        if self._run_lock.locked():
            self._note_skip("manual run skipped: sync already running")
            return False
        if wait:
            return self.run_once()
        threading.Thread(target=self.run_once, name="SyncManualRun", daemon=True).start()
        return True

    def run_once(self) -> bool:
        if not self._run_lock.acquire(blocking=False):
            self._note_skip("tick skipped: previous sync still running")
            return False
        try:
            with self._lock:
                self._status["busy"] = True
            if len(self.jobs) == 1:
                results = [self._guarded(self.jobs[0])]
            else:
                with ThreadPoolExecutor(max_workers=min(self.max_workers, len(self.jobs) or 1)) as pool:
                    results = list(pool.map(self._guarded, self.jobs))
            errors = [e for e in results if e]
            ok = not errors
            with self._lock:
                self._status["last_run_ok"] = ok
                self._status["last_run_at"] = _now_ts()
                self._status["last_error"] = "; ".join(errors)
            return ok
        finally:
            with self._lock:
                self._status["busy"] = False
            self._run_lock.release()

    def _guarded(self, job: Job) -> str:
        err = ""
        self.guard.enter()
        try:
            try:
                job()
            except Exception as e:
                err = f"{type(e).__name__}: {e}"
                self._log(f"sync job failed: {err}", level="ERROR")
            finally:
                # while the guard is still held, so post-sync change events diff clean
                if self.refresh_cache is not None:
                    try:
                        self.refresh_cache()
                    except Exception as e:
                        self._log(f"cache refresh failed: {e}", level="ERROR")
        finally:
            self.guard.exit()
        return err

    def _note_skip(self, msg: str) -> None:
        with self._lock:
            self._status["skipped"] += 1
        self._log(msg)

    def _loop(self, stop: threading.Event, poke: threading.Event) -> None:
        try:
            while not stop.is_set():
                self.run_once()
                if stop.is_set():
                    break
                nxt = _now_ts() + self._interval_min * 60
                with self._lock:
                    self._status["next_run_at"] = nxt
                    self._status["next_run_iso"] = _iso(nxt)
                self._sleep_or_poke(poke, self._interval_min * 60.0)
        finally:
            if stop is self._stop:
                with self._lock:
                    self._status["running"] = False

    @staticmethod
    def _sleep_or_poke(poke: threading.Event, seconds: float) -> None:
        if seconds <= 0:
            return
        poke.wait(timeout=seconds)
        poke.clear()
