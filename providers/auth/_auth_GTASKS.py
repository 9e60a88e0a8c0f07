# providers/auth/_auth_GTASKS.py
# TaskMirror - Google OAuth token refresh for Google Tasks
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import time
from typing import Any, Callable, Mapping

import requests

try:
    from _logging import log as _real_log
except ImportError:  # pragma: no cover
    _real_log = None


def log(msg: str, level: str = "INFO", module: str = "AUTH") -> None:
    if _real_log is not None:
        _real_log(msg, level=level, module=module)


OAUTH_TOKEN = "https://oauth2.googleapis.com/token"
SCOPE = "https://www.googleapis.com/auth/tasks"

__VERSION__ = "1.0.0"

REFRESH_RETRIES = 2
REFRESH_DELAY_SEC = 1.0
REFRESH_TIMEOUT_SEC = 10.0
EXPIRY_SKEW_MS = 60_000


class TokenRefreshError(RuntimeError):
    pass


class InvalidGrantError(TokenRefreshError):
    """The refresh token was revoked or expired. The user has to sign in again."""


def _now_ms() -> int:
    return int(time.time() * 1000)


def token_expired(gt: Mapping[str, Any], *, skew_ms: int = EXPIRY_SKEW_MS, now_ms: int | None = None) -> bool:
    if not str(gt.get("access_token") or "").strip():
        return True
    try:
        exp = int(gt.get("expires_at") or 0)
    except (TypeError, ValueError):
        exp = 0
    if exp <= 0:
        return True
    return (now_ms if now_ms is not None else _now_ms()) + skew_ms >= exp


def _refresh_once(payload: dict[str, str]) -> dict[str, Any]:
    r = requests.post(OAUTH_TOKEN, data=payload, headers={"Accept": "application/json"}, timeout=REFRESH_TIMEOUT_SEC)
    body: dict[str, Any] = {}
    try:
        body = r.json() or {}
    except ValueError:
        body = {}
    if r.status_code == 400 and body.get("error") == "invalid_grant":
        raise InvalidGrantError(str(body.get("error_description") or "invalid_grant"))
    if r.status_code >= 400:
        err = str(body.get("error") or "") or (r.text or "")[:400]
        raise TokenRefreshError(f"token refresh failed {r.status_code}: {err}")
    if not str(body.get("access_token") or "").strip():
        raise TokenRefreshError("token refresh succeeded but no access_token in response")
    return body


def refresh_access_token(
    client_id: str,
    client_secret: str,
    refresh_token: str,
    *,
    retries: int = REFRESH_RETRIES,
    delay: float = REFRESH_DELAY_SEC,
    sleep: Callable[[float], None] = time.sleep,
) -> dict[str, Any]:
    """
    Exchange a refresh token for a new access token.

    Returns {"access_token", "expires_at" (epoch ms), "scope", "refresh_token"}.
    invalid_grant is raised straight away; anything else is retried.
    """
    if not (client_id and refresh_token):
        raise InvalidGrantError("missing client_id/refresh_token")

    payload = {
        "client_id": client_id,
        "refresh_token": refresh_token,
        "grant_type": "refresh_token",
    }
    if client_secret:
        payload["client_secret"] = client_secret

    last: Exception | None = None
    for attempt in range(retries + 1):
        try:
            tok = _refresh_once(payload)
            break
        except InvalidGrantError:
            log("GTASKS: refresh token rejected (invalid_grant)", "ERROR")
            raise
        except (TokenRefreshError, requests.RequestException) as e:
            last = e
            log(f"GTASKS: token refresh attempt {attempt + 1} failed: {e}", "WARN")
            if attempt < retries:
                sleep(delay)
    else:
        raise TokenRefreshError(str(last)) from last

    exp_in = int(tok.get("expires_in") or 0)
    return {
        "access_token": str(tok["access_token"]),
        "expires_at": _now_ms() + exp_in * 1000 if exp_in > 0 else 0,
        "scope": str(tok.get("scope") or SCOPE),
        "refresh_token": str(tok.get("refresh_token") or refresh_token),
    }


def ensure_access_token(cfg: Mapping[str, Any], update_config: Callable[..., Any]) -> str:
    """Current access token, refreshed and persisted first when it has expired."""
    gt = dict(cfg.get("gtasks") or {})
    if not token_expired(gt):
        return str(gt["access_token"])

    log("GTASKS: access token expired; refreshing", "DEBUG")
    fresh = refresh_access_token(
        str(gt.get("client_id") or "").strip(),
        str(gt.get("client_secret") or "").strip(),
        str(gt.get("refresh_token") or "").strip(),
    )

    def _mut(c: dict[str, Any]) -> None:
        c.setdefault("gtasks", {}).update(fresh)

    update_config(_mut)
    log("GTASKS: token refreshed and persisted", "DEBUG")
    return fresh["access_token"]
