# api/configAPI.py
# TaskMirror - settings API (sync options, Google Tasks lists, manually deleted ids)
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import copy
import re
from typing import Any

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from tm_platform.config_base import (
    MAX_INTERVAL_MINUTES,
    MIN_INTERVAL_MINUTES,
    load_config,
    normalize_heading,
    update_config,
    validate_sync,
)
from tm_platform.orchestrator._tombstones import clear as clear_manually_deleted

router = APIRouter(prefix="/api/config", tags=["config"])

_SECRETS = (("gtasks", "client_secret"), ("gtasks", "access_token"), ("gtasks", "refresh_token"))
_MASK = "••••••••"
_H2 = re.compile(r"^##\s.+")


def _env() -> Any:
    import taskmirror as TM

    return getattr(TM, "RUNTIME", None)


def _nostore(res: JSONResponse) -> JSONResponse:
    res.headers["Cache-Control"] = "no-store"
    return res


def redact(cfg: dict[str, Any]) -> dict[str, Any]:
    out = copy.deepcopy(cfg)
    for section, key in _SECRETS:
        blk = out.get(section)
        if isinstance(blk, dict) and str(blk.get(key) or "").strip():
            blk[key] = _MASK
    return out


class SyncSettingsIn(BaseModel):
    interval_minutes: int | None = Field(default=None, ge=MIN_INTERVAL_MINUTES, le=MAX_INTERVAL_MINUTES)
    document: str | None = None
    heading: str | None = None
    completion_sync: bool | None = None
    delete_sync: bool | None = None
    confirm_delete: bool | None = None
    keep_completed: bool | None = None
    selected_list_ids: list[str] | None = None

    @field_validator("document")
    @classmethod
    def _markdown_path(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("File path cannot be empty.")
        if not v.endswith(".md"):
            raise ValueError('File must end with ".md".')
        return v

    @field_validator("heading")
    @classmethod
    def _h2_heading(cls, v: str | None) -> str | None:
        if v is None:
            return v
        h = normalize_heading(v)
        if not _H2.match(h):
            raise ValueError("Heading must be H2 with text, e.g., '## Tasks'")
        return h


@router.get("")
def api_config() -> JSONResponse:
    return _nostore(JSONResponse(redact(load_config())))


@router.post("/sync")
def api_config_sync(payload: SyncSettingsIn) -> dict[str, Any]:
    rt = _env()
    upd = payload.model_dump(exclude_unset=True, exclude_none=True)
    lists = upd.pop("selected_list_ids", None)

    if "document" in upd and rt is not None and not rt.store.exists(upd["document"]):
        raise HTTPException(status_code=400, detail="File does not exist in the vault.")

    before = load_config()["sync"]
    errors = validate_sync({**before, **upd})
    if errors:
        raise HTTPException(status_code=400, detail=" ".join(errors))

    def _mut(cfg: dict[str, Any]) -> None:
        cfg.setdefault("sync", {}).update(upd)
        if lists is not None:
            cfg.setdefault("gtasks", {})["selected_list_ids"] = list(lists)

    after = update_config(_mut)
    sync = after["sync"]

    if rt is not None:
        if sync["interval_minutes"] != before.get("interval_minutes") and rt.scheduler.is_running():
            rt.scheduler.restart(sync["interval_minutes"])
        if sync["document"] != before.get("document"):
            rt.watcher.start()

    return {"ok": True, "sync": sync, "selected_list_ids": after["gtasks"]["selected_list_ids"]}


@router.post("/manually-deleted/clear")
def api_clear_manually_deleted() -> dict[str, Any]:
    removed = clear_manually_deleted(update_config)
    return {"ok": True, "cleared": removed}


@router.post("/gtasks/lists")
def api_refresh_lists() -> dict[str, Any]:
    rt = _env()
    if rt is None:
        raise HTTPException(status_code=503, detail="runtime not ready")
    try:
        ops = rt.ops_factory(load_config())
        lists = ops.fetch_lists()
    except Exception as e:
        raise HTTPException(status_code=502, detail=f"could not load task lists: {e}") from e

    def _mut(cfg: dict[str, Any]) -> None:
        cfg.setdefault("gtasks", {})["available_lists"] = lists

    update_config(_mut)
    return {"ok": True, "lists": lists}
