# tm_platform/config_base.py
# TaskMirror - settings store (config.json) with defaults and atomic updates
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import copy
import json
import os
import re
import secrets
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List

# ------------------------------------------------------------
# Base dir resolution
# ------------------------------------------------------------
def CONFIG_BASE() -> Path:
    """
    Determine the base directory for config files.

    Priority:
      1) $CONFIG_BASE if set
      2) /config (when running in container that mounts /config)
      3) Project root (one level up from this file)
    """
    env = os.getenv("CONFIG_BASE")
    if env:
        return Path(env)

    if Path("/app").exists():
        return Path("/config")

    return Path(__file__).resolve().parents[1]


MIN_INTERVAL_MINUTES = 1
MAX_INTERVAL_MINUTES = 24 * 60

# Default config structure
DEFAULT_CFG: Dict[str, Any] = {
    # --- Sync ------------------------------------------------------------------
    "sync": {
        "interval_minutes": 5,                          # Import interval (1-1440 minutes)
        "document": "GTD.md",                           # Target document, relative to the vault. Must end with .md
        "heading": "## Inbox",                          # Heading new tasks are placed under. Always stored as H2.
        "completion_sync": True,                        # Push checkbox toggles from the document back to the source
        "delete_sync": True,                            # Watch the document for lines removed by hand
        "confirm_delete": True,                         # Ask before deleting at the source
        "keep_completed": False,                        # Keep ticked lines when the source stops returning them
        "manually_deleted_ids": [],                     # Ids removed locally but kept at the source; never re-imported
    },

    # --- Vault -----------------------------------------------------------------
    "vault": {
        "path": "",                                     # Folder holding the document. Empty = <CONFIG_BASE>/vault
    },

    # --- Google Tasks ----------------------------------------------------------
    "gtasks": {
        "client_id": "",                                # OAuth client id
        "client_secret": "",                            # OAuth client secret
        "access_token": "",                             # Set by the OAuth flow; refreshed automatically
        "refresh_token": "",
        "expires_at": 0,                                # Epoch ms. 0 = unknown, refresh on first use
        "scope": "",
        "email": "",                                    # Account shown in the UI
        "available_lists": [],                          # [{"id": "...", "title": "..."}] as last seen
        "selected_list_ids": [],                        # Lists to import from
        "timeout": 10.0,                                # HTTP timeout (seconds)
        "max_retries": 3,                               # Retry budget for transient failures
    },

    # --- Runtime ---------------------------------------------------------------
    "runtime": {
        "debug": False,                                 # Debug logging
        "startup_retry_ms": 500,                        # Wait before re-checking a missing document once
        "confirm_timeout_sec": 300,                     # Unanswered delete confirmations resolve to "keep"
        "fetch_workers": 4,                             # Parallel list fetches / completion pushes
    },

    # --- API -------------------------------------------------------------------
    "api": {
        "host": "0.0.0.0",
        "port": 8788,
    },
}


# ------------------------------------------------------------
# Helpers: paths, IO, merging, normalization
# ------------------------------------------------------------
_LOCK = threading.RLock()


def _cfg_file() -> Path:
    return CONFIG_BASE() / "config.json"


def config_path() -> Path:
    return _cfg_file()


def _read_json(p: Path) -> Dict[str, Any]:
    with p.open("r", encoding="utf-8") as f:
        return json.load(f)


def _write_json_atomic(p: Path, data: Dict[str, Any]) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    suffix = f".{time.time_ns()}.{os.getpid()}.{threading.get_ident()}.{secrets.token_hex(4)}.tmp"
    tmp = p.with_suffix(suffix)

    with tmp.open("w", encoding="utf-8", newline="\n") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    tmp.replace(p)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set)):
        return []
    out: List[str] = []
    for x in value:
        s = str(x).strip() if isinstance(x, (str, int)) else ""
        if s and s not in out:
            out.append(s)
    return out


_HEADING_MARKS = re.compile(r"^#+\s*")
_H2 = re.compile(r"^##\s.+")
_MD_EXT = re.compile(r"\.md$")


def normalize_heading(text: Any) -> str:
    """'Inbox' -> '## Inbox', '### Tasks' -> '## Tasks'. Blank input gives '## '."""
    title = _HEADING_MARKS.sub("", str(text or "").strip(), count=1)
    return f"## {title}" if title else "## "


def clamp_interval(value: Any) -> int:
    try:
        n = int(value)
    except Exception:
        n = int(DEFAULT_CFG["sync"]["interval_minutes"])
    return max(MIN_INTERVAL_MINUTES, min(MAX_INTERVAL_MINUTES, n))


def validate_sync(sync: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    doc = str(sync.get("document") or "").strip()
    if not doc:
        errors.append("Document path cannot be empty.")
    elif not _MD_EXT.search(doc):
        errors.append('Document must end with ".md".')
    if not _H2.match(str(sync.get("heading") or "")):
        errors.append("Heading must be H2 with text, e.g. '## Tasks'.")
    try:
        n = int(sync.get("interval_minutes"))
        if not MIN_INTERVAL_MINUTES <= n <= MAX_INTERVAL_MINUTES:
            errors.append(f"Interval must be between {MIN_INTERVAL_MINUTES} and {MAX_INTERVAL_MINUTES} minutes.")
    except Exception:
        errors.append("Interval must be a whole number.")
    return errors


def _normalize_sync(val: Dict[str, Any]) -> Dict[str, Any]:
    v = dict(val or {})
    v["interval_minutes"] = clamp_interval(v.get("interval_minutes"))
    v["document"] = str(v.get("document") or "").strip()
    v["heading"] = normalize_heading(v.get("heading"))
    for flag in ("completion_sync", "delete_sync", "confirm_delete", "keep_completed"):
        v[flag] = bool(v.get(flag))
    v["manually_deleted_ids"] = _as_str_list(v.get("manually_deleted_ids"))
    return v


def _normalize(cfg: Dict[str, Any]) -> Dict[str, Any]:
    cfg["sync"] = _normalize_sync(cfg.get("sync") or {})
    gt = cfg.get("gtasks")
    if isinstance(gt, dict):
        gt["selected_list_ids"] = _as_str_list(gt.get("selected_list_ids"))
        if not isinstance(gt.get("available_lists"), list):
            gt["available_lists"] = []
    return cfg


# ------------------------------------------------------------
# Public API
# ------------------------------------------------------------
def load_config() -> Dict[str, Any]:
    """Read config.json merged over the defaults."""
    p = _cfg_file()
    user_cfg: Dict[str, Any] = {}
    if p.exists():
        try:
            user_cfg = _read_json(p)
        except Exception:
            user_cfg = {}
    return _normalize(_deep_merge(DEFAULT_CFG, user_cfg))


def save_config(cfg: Dict[str, Any]) -> None:
    """Write config.json (atomic replace)."""
    data = _normalize(copy.deepcopy(dict(cfg or {})))
    with _LOCK:
        _write_json_atomic(_cfg_file(), data)


def update_config(mutate: Callable[[Dict[str, Any]], Any]) -> Dict[str, Any]:
    """
    Read the freshest config, apply `mutate` in place and persist it.
    Holds the process lock for the whole read-modify-write.
    """
    with _LOCK:
        cfg = load_config()
        mutate(cfg)
        save_config(cfg)
        return load_config()


def vault_root(cfg: Dict[str, Any] | None = None) -> Path:
    cfg = cfg if cfg is not None else load_config()
    raw = str(((cfg.get("vault") or {}).get("path")) or "").strip()
    return Path(raw) if raw else CONFIG_BASE() / "vault"
