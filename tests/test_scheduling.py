# TaskMirror test scripts
from __future__ import annotations

import threading

from services.scheduling import SyncScheduler
from tm_platform.orchestrator import SyncGuard


def test_job_and_cache_refresh_run_inside_guard() -> None:
    guard = SyncGuard()
    seen: list[tuple[str, int]] = []
    sched = SyncScheduler(
        [lambda: seen.append(("job", guard.depth))],
        guard,
        refresh_cache=lambda: seen.append(("refresh", guard.depth)),
    )

    assert sched.run_once() is True
    assert seen == [("job", 1), ("refresh", 1)]
    assert guard.depth == 0


def test_failing_job_releases_guard_and_others_still_run() -> None:
    guard = SyncGuard()
    ran: list[str] = []
    refreshed: list[int] = []

    def bad() -> None:
        raise RuntimeError("document_not_found")

    sched = SyncScheduler(
        [bad, lambda: ran.append("good")],
        guard,
        refresh_cache=lambda: refreshed.append(1),
        max_workers=2,
    )

    assert sched.run_once() is False
    assert ran == ["good"]
    assert len(refreshed) == 2
    assert guard.depth == 0
    st = sched.status()
    assert st["last_run_ok"] is False
    assert "document_not_found" in st["last_error"]
    assert st["guard_depth"] == 0


def test_overlapping_run_is_skipped() -> None:
    guard = SyncGuard()
    inner: list[bool] = []
    sched: SyncScheduler

    def job() -> None:
        inner.append(sched.run_now())
        inner.append(sched.run_once())

    sched = SyncScheduler([job], guard)
    assert sched.run_now() is True
    assert inner == [False, False]
    assert sched.status()["skipped"] == 2
    assert guard.depth == 0


def test_start_runs_immediately_and_stops() -> None:
    guard = SyncGuard()
    fired = threading.Event()
    sched = SyncScheduler([fired.set], guard)

    sched.start(0)
    try:
        assert fired.wait(timeout=5.0)
        assert sched.is_running()
        st = sched.status()
        assert st["running"] is True
        assert st["interval_minutes"] == 1
    finally:
        sched.stop()

    assert not sched.is_running()
    assert sched.status()["running"] is False


def test_restart_changes_interval() -> None:
    guard = SyncGuard()
    runs = threading.Semaphore(0)
    sched = SyncScheduler([runs.release], guard)

    sched.start(5)
    try:
        assert runs.acquire(timeout=5.0)
        sched.restart(10)
        assert runs.acquire(timeout=5.0)
        assert sched.status()["interval_minutes"] == 10
    finally:
        sched.stop()


def test_log_fn_receives_module() -> None:
    lines: list[tuple[str, str, str]] = []
    sched = SyncScheduler(
        [lambda: None],
        SyncGuard(),
        log_fn=lambda msg, level="INFO", module="": lines.append((msg, level, module)),
    )
    sched.run_now()
    sched.stop()
    assert ("scheduler stopped", "INFO", "SCHED") in lines
