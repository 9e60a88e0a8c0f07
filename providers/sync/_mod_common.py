# /providers/sync/_mod_common.py
# TaskMirror - shared HTTP plumbing for source modules
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import json
import os
import time
from typing import Any

import requests

from ._log import log as tm_log

__VERSION__ = "0.3.0"
__all__ = [
    "HitSession",
    "build_session",
    "safe_json",
    "request_with_retries",
    "RETRY_STATUS",
]

RETRY_STATUS: tuple[int, ...] = (429, 500, 502, 503, 504)


class HitSession(requests.Session):
    """requests.Session that logs one "api:hit" line per call when enabled (TM_API_HITS)."""

    def __init__(self, provider: str, emit_hits: bool | None = None):
        super().__init__()
        self._provider = provider
        self._emit_hits = bool(os.getenv("TM_API_HITS")) if emit_hits is None else bool(emit_hits)

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:  # type: ignore[override]
        try:
            return super().request(method, url, **kwargs)
        finally:
            if self._emit_hits:
                tm_log(self._provider, "http", "info", "api:hit", method=method.upper(), url=url)


def build_session(provider: str, *, emit_hits: bool | None = None) -> HitSession:
    return HitSession(provider, emit_hits)


def safe_json(resp: requests.Response) -> Any:
    try:
        if not (resp.text or "").strip():
            return {}
        ctype = (resp.headers.get("Content-Type") or "").lower()
        if "json" in ctype:
            return resp.json()
        return json.loads(resp.text)
    except Exception:
        return {}


def request_with_retries(
    session: requests.Session,
    method: str,
    url: str,
    *,
    timeout: float = 10.0,
    max_retries: int = 3,
    retry_on: tuple[int, ...] = RETRY_STATUS,
    backoff_base: float = 0.5,
    **kwargs: Any,
) -> requests.Response:
    """
    Issue a request, retrying network errors and `retry_on` statuses with
    exponential backoff. `max_retries` is the total number of attempts.
    The last response is returned as-is; callers decide what a status means.
    """
    attempts = max(1, int(max_retries))
    last: Any = None
    for i in range(attempts):
        try:
            resp = session.request(method, url, timeout=timeout, **kwargs)
        except requests.RequestException as e:
            last = e
            if i < attempts - 1:
                time.sleep(backoff_base * (2**i))
            continue
        if resp.status_code in retry_on and i < attempts - 1:
            wait = backoff_base * (2**i)
            if resp.status_code == 429:
                try:
                    wait = max(wait, float(resp.headers.get("Retry-After") or 0))
                except ValueError:
                    pass
            last = resp
            time.sleep(wait)
            continue
        return resp
    if isinstance(last, requests.Response):
        return last
    raise requests.RequestException(f"request failed after retries: {method} {url}") from last
