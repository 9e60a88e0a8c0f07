# providers/sync/_mod_GTASKS.py
# TaskMirror - Google Tasks source module
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping

import requests

from tm_platform.orchestrator._types import SOURCE_GTASKS, SourceAuthError, SourceError, SyncItem

from ._log import log as tm_log
from ._mod_common import build_session, request_with_retries, safe_json

__VERSION__ = "0.1.0"
__all__ = [
    "get_manifest",
    "GTasksConfig",
    "GTasksClient",
    "GTasksOps",
    "GTasksError",
    "GTasksAuthError",
    "build_ops",
]


def _dbg(msg: str, **fields: Any) -> None:
    tm_log("GTASKS", "module", "debug", msg, **fields)


def get_manifest() -> Mapping[str, Any]:
    return {
        "name": "GTASKS",
        "label": "Google Tasks",
        "version": __VERSION__,
        "type": "sync",
        "source": SOURCE_GTASKS,
        "features": {"tasks": True, "completion": True, "delete": True},
        "requires": ["client_id", "refresh_token"],
        "auth": {
            "config_key": "gtasks",
            "fields": [
                {"key": "gtasks.client_id", "label": "Client ID", "type": "text"},
                {"key": "gtasks.client_secret", "label": "Client secret", "type": "secret"},
                {"key": "gtasks.refresh_token", "label": "Refresh token", "type": "secret"},
            ],
        },
    }


@dataclass
class GTasksConfig:
    access_token: str
    timeout: float = 10.0
    max_retries: int = 3


class GTasksError(SourceError):
    pass


class GTasksAuthError(GTasksError, SourceAuthError):
    pass


class GTasksClient:
    BASE = "https://tasks.googleapis.com/tasks/v1"

    def __init__(self, cfg: GTasksConfig, session: requests.Session | None = None) -> None:
        self.cfg = cfg
        self.session = session or build_session("GTASKS")

    def connect(self) -> GTasksClient:
        if not self.cfg.access_token:
            raise GTasksAuthError("Missing Google Tasks access token")
        self.session.headers.update(
            {
                "Authorization": f"Bearer {self.cfg.access_token}",
                "Accept": "application/json",
                "User-Agent": f"TaskMirror GTASKS/{__VERSION__}",
            }
        )
        return self

    def _abs_url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return self.BASE + (path if path.startswith("/") else "/" + path)

    def request(self, method: str, path: str, **kw: Any) -> requests.Response:
        return request_with_retries(
            self.session,
            method,
            self._abs_url(path),
            timeout=float(self.cfg.timeout),
            max_retries=int(self.cfg.max_retries),
            **kw,
        )

    def get(self, path: str, **kw: Any) -> requests.Response:
        return self.request("GET", path, **kw)

    def patch(self, path: str, **kw: Any) -> requests.Response:
        return self.request("PATCH", path, **kw)

    def delete(self, path: str, **kw: Any) -> requests.Response:
        return self.request("DELETE", path, **kw)

    @staticmethod
    def check(resp: requests.Response, what: str, *, ok_missing: bool = False) -> Any:
        if resp.status_code in (401, 403):
            raise GTasksAuthError(f"Google Tasks {what} rejected ({resp.status_code})")
        if ok_missing and resp.status_code in (404, 410):
            return {}
        if not (200 <= resp.status_code < 300):
            raise GTasksError(f"Google Tasks {what} failed ({resp.status_code})")
        return safe_json(resp)


from .gtasks import _tasks as feat_tasks  # noqa: E402


class GTasksOps:
    """Source collaborator backed by Google Tasks; one instance per sync pass."""

    def __init__(self, client: GTasksClient, *, heading: str, list_ids: list[str]) -> None:
        self.client = client
        self.heading = heading
        self._list_ids = [str(x) for x in list_ids if str(x).strip()]

    def name(self) -> str:
        return "GTASKS"

    def list_ids(self) -> list[str]:
        return list(self._list_ids)

    def fetch_lists(self) -> list[dict[str, str]]:
        return feat_tasks.fetch_lists(self)

    def fetch_items(self, list_id: str, *, show_completed: bool = False) -> list[SyncItem]:
        return feat_tasks.fetch_items(self, list_id, show_completed=show_completed)

    def update_completion(self, list_id: str, item_id: str, completed: bool) -> None:
        feat_tasks.update_completion(self, list_id, item_id, completed)

    def delete_item(self, list_id: str, item_id: str) -> None:
        feat_tasks.delete_item(self, list_id, item_id)

    def find_item(self, item_id: str) -> str | None:
        for list_id in self._list_ids:
            items = self.fetch_items(list_id, show_completed=True)
            if any(it.id == item_id for it in items):
                return list_id
        return None


def build_ops(
    cfg: Mapping[str, Any],
    *,
    update_config: Callable[..., Any] | None = None,
    session: requests.Session | None = None,
) -> GTasksOps:
    """Make sure the access token is fresh, then wire a client for this pass."""
    from providers.auth._auth_GTASKS import InvalidGrantError, ensure_access_token

    if update_config is None:
        from tm_platform.config_base import update_config as _update_config

        update_config = _update_config

    try:
        token = ensure_access_token(cfg, update_config)
    except InvalidGrantError as e:
        raise GTasksAuthError(str(e)) from e

    gt = dict(cfg.get("gtasks") or {})
    sync = dict(cfg.get("sync") or {})
    client = GTasksClient(
        GTasksConfig(
            access_token=token,
            timeout=float(gt.get("timeout") or 10.0),
            max_retries=int(gt.get("max_retries") or 3),
        ),
        session=session,
    ).connect()
    _dbg("ops_ready", lists=len(gt.get("selected_list_ids") or []))
    return GTasksOps(client, heading=str(sync.get("heading") or ""), list_ids=list(gt.get("selected_list_ids") or []))
