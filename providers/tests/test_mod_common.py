from __future__ import annotations

import time

import pytest
import requests
import responses

URL = "https://api.example.test/things"


@pytest.fixture(autouse=True)
def _no_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    waits: list[float] = []
    monkeypatch.setattr(time, "sleep", waits.append)
    return waits


@responses.activate
def test_retries_transient_status_then_succeeds(_no_sleep):
    import providers.sync._mod_common as m

    responses.get(URL, status=502)
    responses.get(URL, json={"ok": True})

    r = m.request_with_retries(m.build_session("TEST"), "GET", URL, max_retries=3)
    assert r.status_code == 200
    assert len(responses.calls) == 2
    assert _no_sleep == [0.5]


@responses.activate
def test_retry_after_is_honored(_no_sleep):
    import providers.sync._mod_common as m

    responses.get(URL, status=429, headers={"Retry-After": "7"})
    responses.get(URL, json={})

    m.request_with_retries(m.build_session("TEST"), "GET", URL, max_retries=2)
    assert _no_sleep == [7.0]


@responses.activate
def test_last_response_returned_when_budget_runs_out():
    import providers.sync._mod_common as m

    responses.get(URL, status=503)
    r = m.request_with_retries(m.build_session("TEST"), "GET", URL, max_retries=2)
    assert r.status_code == 503
    assert len(responses.calls) == 2


@responses.activate
def test_client_errors_are_not_retried():
    import providers.sync._mod_common as m

    responses.get(URL, status=404)
    r = m.request_with_retries(m.build_session("TEST"), "GET", URL, max_retries=3)
    assert r.status_code == 404
    assert len(responses.calls) == 1


@responses.activate
def test_network_errors_raise_after_retries():
    import providers.sync._mod_common as m

    responses.get(URL, body=requests.ConnectionError("refused"))
    with pytest.raises(requests.RequestException):
        m.request_with_retries(m.build_session("TEST"), "GET", URL, max_retries=2)
    assert len(responses.calls) == 2


@responses.activate
def test_hit_session_logs_when_enabled(monkeypatch):
    import providers.sync._mod_common as m

    lines: list[tuple] = []
    monkeypatch.setattr(m, "tm_log", lambda *a, **kw: lines.append((a, kw)))
    responses.get(URL, json={})

    m.build_session("TEST", emit_hits=True).get(URL)
    m.build_session("TEST", emit_hits=False).get(URL)
    assert lines == [(("TEST", "http", "info", "api:hit"), {"method": "GET", "url": URL})]


def test_safe_json_handles_empty_and_garbage():
    import providers.sync._mod_common as m

    empty = requests.Response()
    empty._content = b""
    assert m.safe_json(empty) == {}

    junk = requests.Response()
    junk._content = b"<html>"
    assert m.safe_json(junk) == {}

    good = requests.Response()
    good._content = b'{"a": 1}'
    good.headers["Content-Type"] = "application/json"
    assert m.safe_json(good) == {"a": 1}
