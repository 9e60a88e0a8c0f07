# TaskMirror test scripts
from __future__ import annotations

import json
import time
from typing import Any

import pytest
import responses
from responses import matchers

from providers.sync._mod_GTASKS import (
    GTasksAuthError,
    GTasksClient,
    GTasksConfig,
    GTasksError,
    GTasksOps,
    build_ops,
)
from providers.sync.gtasks._tasks import to_item
from tm_platform.orchestrator import SourceAuthError

BASE = GTasksClient.BASE
H = "## Inbox"


def _ops(*lists: str) -> GTasksOps:
    client = GTasksClient(GTasksConfig(access_token="tok", max_retries=1)).connect()
    return GTasksOps(client, heading=H, list_ids=list(lists))


def _params(show: str, token: str = "") -> Any:
    q = {"showCompleted": show, "showHidden": show, "maxResults": "100"}
    if token:
        q["pageToken"] = token
    return [matchers.query_param_matcher(q)]


def test_to_item_mapping() -> None:
    it = to_item({"id": "t1", "title": "Line one\nline two", "status": "completed", "webViewLink": "https://w/1"}, H)
    assert it is not None
    assert (it.id, it.title, it.link, it.heading, it.completed) == ("t1", "Line one line two", "https://w/1", H, True)

    bare = to_item({"id": "t/2", "status": "needsAction"}, H)
    assert bare is not None
    assert bare.link == "https://tasks.google.com/task/t%2F2"
    assert bare.title == ""
    assert bare.completed is False

    assert to_item({"title": "no id"}, H) is None


@responses.activate
def test_fetch_items_follows_pages_and_skips_deleted() -> None:
    url = f"{BASE}/lists/L1/tasks"
    responses.get(url, json={"items": [{"id": "a"}, {"id": "x", "deleted": True}], "nextPageToken": "p2"},
                  match=_params("false"))
    responses.get(url, json={"items": [{"id": "b", "title": "B"}]}, match=_params("false", "p2"))

    items = _ops("L1").fetch_items("L1")
    assert [it.id for it in items] == ["a", "b"]
    assert responses.calls[0].request.headers["Authorization"] == "Bearer tok"


@responses.activate
def test_find_item_looks_through_completed_tasks() -> None:
    responses.get(f"{BASE}/lists/L1/tasks", json={"items": [{"id": "a"}]}, match=_params("true"))
    responses.get(f"{BASE}/lists/L2/tasks", json={"items": [{"id": "b", "status": "completed"}]},
                  match=_params("true"))

    ops = _ops("L1", "L2")
    assert ops.find_item("b") == "L2"
    assert ops.find_item("zzz") is None


@responses.activate
def test_fetch_lists_pages() -> None:
    url = f"{BASE}/users/@me/lists"
    responses.get(url, json={"items": [{"id": "L1", "title": "My Tasks"}], "nextPageToken": "n"},
                  match=[matchers.query_param_matcher({"maxResults": "100"})])
    responses.get(url, json={"items": [{"id": "L2", "title": "Work"}, {"title": "no id"}]},
                  match=[matchers.query_param_matcher({"maxResults": "100", "pageToken": "n"})])

    assert _ops().fetch_lists() == [{"id": "L1", "title": "My Tasks"}, {"id": "L2", "title": "Work"}]


@responses.activate
def test_update_completion_bodies() -> None:
    url = f"{BASE}/lists/L1/tasks/a"
    responses.patch(url, json={"id": "a"})
    responses.patch(url, json={"id": "a"})

    ops = _ops("L1")
    ops.update_completion("L1", "a", True)
    ops.update_completion("L1", "a", False)

    done = json.loads(responses.calls[0].request.body)
    assert done["status"] == "completed"
    assert done["completed"].endswith("Z")
    assert json.loads(responses.calls[1].request.body) == {"status": "needsAction", "completed": None}


@responses.activate
def test_unauthorized_is_an_auth_error() -> None:
    responses.get(f"{BASE}/lists/L1/tasks", status=401, json={"error": {"code": 401}})
    with pytest.raises(GTasksAuthError) as ei:
        _ops("L1").fetch_items("L1")
    assert isinstance(ei.value, SourceAuthError)


@responses.activate
def test_delete_treats_missing_as_done() -> None:
    responses.delete(f"{BASE}/lists/L1/tasks/a", status=404)
    responses.delete(f"{BASE}/lists/L1/tasks/b", status=204)
    ops = _ops("L1")
    ops.delete_item("L1", "a")
    ops.delete_item("L1", "b")
    assert len(responses.calls) == 2


@responses.activate
def test_server_error_raises_after_retries(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(time, "sleep", lambda _s: None)
    url = f"{BASE}/lists/L1/tasks/a"
    responses.delete(url, status=503)

    client = GTasksClient(GTasksConfig(access_token="tok", max_retries=3)).connect()
    with pytest.raises(GTasksError):
        GTasksOps(client, heading=H, list_ids=["L1"]).delete_item("L1", "a")
    assert len(responses.calls) == 3


def test_connect_without_token() -> None:
    with pytest.raises(GTasksAuthError):
        GTasksClient(GTasksConfig(access_token="")).connect()


def test_build_ops_uses_current_token() -> None:
    cfg = {
        "sync": {"heading": H},
        "gtasks": {
            "access_token": "live",
            "expires_at": int(time.time() * 1000) + 3_600_000,
            "selected_list_ids": ["L1", "", "L2"],
        },
    }
    ops = build_ops(cfg, update_config=lambda _m: {})
    assert ops.list_ids() == ["L1", "L2"]
    assert ops.heading == H
    assert ops.client.session.headers["Authorization"] == "Bearer live"


def test_build_ops_without_refresh_token_needs_sign_in() -> None:
    with pytest.raises(GTasksAuthError):
        build_ops({"gtasks": {"access_token": "", "client_id": "cid"}}, update_config=lambda _m: {})
