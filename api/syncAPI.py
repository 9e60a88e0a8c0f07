# api/syncAPI.py
# TaskMirror - sync status and manual runs
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

router = APIRouter(prefix="/api/sync", tags=["sync"])


def _env() -> Any:
    import taskmirror as TM

    rt = getattr(TM, "RUNTIME", None)
    if rt is None:
        raise HTTPException(status_code=503, detail="runtime not ready")
    return rt


@router.get("/status")
def sync_status() -> dict[str, Any]:
    rt = _env()
    return {
        "scheduler": rt.scheduler.status(),
        "last_summary": dict(rt.orchestrator.last_summary or {}),
        "sync_running": rt.guard.is_active,
    }


@router.post("/run")
def sync_run() -> dict[str, Any]:
    rt = _env()
    started = rt.scheduler.run_now(wait=False)
    return {"ok": bool(started), "status": "started" if started else "busy"}
