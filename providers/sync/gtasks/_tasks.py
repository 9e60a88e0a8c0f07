# /providers/sync/gtasks/_tasks.py
# TaskMirror - Google Tasks list/task calls and task -> SyncItem mapping
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping
from urllib.parse import quote

from tm_platform.orchestrator._types import SOURCE_GTASKS, SyncItem

from .._log import log as tm_log

PAGE_SIZE = 100


def _dbg(msg: str, **fields: Any) -> None:
    tm_log("GTASKS", "tasks", "debug", msg, **fields)


def _info(msg: str, **fields: Any) -> None:
    tm_log("GTASKS", "tasks", "info", msg, **fields)


def _q(s: str) -> str:
    return quote(str(s), safe="")


def iso_now() -> str:
    # same shape as JS toISOString(): 2026-01-01T10:00:00.000Z
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_item(raw: Mapping[str, Any], heading: str) -> SyncItem | None:
    tid = str(raw.get("id") or "").strip()
    if not tid:
        return None
    title = " ".join(str(raw.get("title") or "").splitlines()).strip()
    link = str(raw.get("webViewLink") or raw.get("selfLink") or "").strip()
    if not link:
        link = f"https://tasks.google.com/task/{_q(tid)}"
    return SyncItem(
        id=tid,
        source=SOURCE_GTASKS,
        title=title,
        link=link,
        heading=heading,
        completed=str(raw.get("status") or "") == "completed",
    )


def fetch_lists(adapter: Any) -> list[dict[str, str]]:
    client = adapter.client
    out: list[dict[str, str]] = []
    token = ""
    while True:
        params: dict[str, Any] = {"maxResults": PAGE_SIZE}
        if token:
            params["pageToken"] = token
        data = client.check(client.get("/users/@me/lists", params=params), "tasklists fetch")
        for raw in data.get("items") or []:
            if isinstance(raw, Mapping) and raw.get("id"):
                out.append({"id": str(raw["id"]), "title": str(raw.get("title") or "")})
        token = str(data.get("nextPageToken") or "")
        if not token:
            break
    _info("lists", count=len(out))
    return out


def fetch_items(adapter: Any, list_id: str, *, show_completed: bool = False) -> list[SyncItem]:
    client = adapter.client
    flag = "true" if show_completed else "false"
    out: list[SyncItem] = []
    token = ""
    page = 0
    while True:
        params: dict[str, Any] = {"showCompleted": flag, "showHidden": flag, "maxResults": PAGE_SIZE}
        if token:
            params["pageToken"] = token
        data = client.check(client.get(f"/lists/{_q(list_id)}/tasks", params=params), "tasks fetch")
        items = data.get("items") or []
        page += 1
        _dbg("page", list_id=list_id, page=page, batch=len(items), show_completed=show_completed)
        for raw in items:
            if not isinstance(raw, Mapping) or raw.get("deleted"):
                continue
            it = to_item(raw, adapter.heading)
            if it is not None:
                out.append(it)
        token = str(data.get("nextPageToken") or "")
        if not token:
            break
    return out


def update_completion(adapter: Any, list_id: str, task_id: str, completed: bool) -> None:
    client = adapter.client
    body: dict[str, Any] = (
        {"status": "completed", "completed": iso_now()} if completed else {"status": "needsAction", "completed": None}
    )
    client.check(client.patch(f"/lists/{_q(list_id)}/tasks/{_q(task_id)}", json=body), "task update")
    _info("completion_pushed", task_id=task_id, completed=completed)


def delete_item(adapter: Any, list_id: str, task_id: str) -> None:
    client = adapter.client
    # already gone counts as deleted
    client.check(client.delete(f"/lists/{_q(list_id)}/tasks/{_q(task_id)}"), "task delete", ok_missing=True)
    _info("deleted", task_id=task_id)
