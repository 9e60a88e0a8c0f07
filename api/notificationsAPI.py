# api/notificationsAPI.py
# TaskMirror - notices and delete confirmations
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

router = APIRouter(prefix="/api", tags=["notifications"])


class DeletionDecision(BaseModel):
    confirm: bool


def _env() -> Any:
    import taskmirror as TM

    rt = getattr(TM, "RUNTIME", None)
    if rt is None:
        raise HTTPException(status_code=503, detail="runtime not ready")
    return rt


@router.get("/notifications")
def list_notifications() -> dict[str, Any]:
    return {"items": _env().notifications.list()}


@router.delete("/notifications")
def clear_notifications() -> dict[str, Any]:
    return {"ok": True, "cleared": _env().notifications.clear()}


@router.get("/deletions/pending")
def pending_deletions() -> dict[str, Any]:
    return {"items": _env().notifications.pending()}


@router.post("/deletions/{task_id}")
def decide_deletion(task_id: str, payload: DeletionDecision) -> dict[str, Any]:
    if not _env().notifications.resolve(task_id, payload.confirm):
        raise HTTPException(status_code=404, detail=f"no pending confirmation for {task_id}")
    return {"ok": True, "id": task_id, "confirm": payload.confirm}
