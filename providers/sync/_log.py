# /providers/sync/_log.py
# TaskMirror - provider logging (key=value or JSON lines)
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import json
import os
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

_LEVELS: dict[str, int] = {
    "off": 99,
    "error": 40,
    "warn": 30,
    "warning": 30,
    "info": 20,
    "debug": 10,
    "trace": 5,
}

RESET = "\033[0m"
DIM = "\033[90m"
RED = "\033[91m"
GREEN = "\033[92m"
YELLOW = "\033[33m"
BLUE = "\033[94m"

_LEVEL_COLOR: dict[str, str] = {
    "ERROR": RED,
    "WARN": YELLOW,
    "WARNING": YELLOW,
    "INFO": BLUE,
    "DEBUG": YELLOW,
    "TRACE": DIM,
}


def _env_on(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in ("1", "true", "yes", "on")


def _level_num(level: str) -> int:
    return _LEVELS.get(str(level or "info").strip().lower(), 20)


def _threshold(provider: str) -> int:
    # TM_GTASKS_LOG_LEVEL > TM_LOG_LEVEL > TM_DEBUG / TM_GTASKS_DEBUG > info
    p = provider.strip().upper()
    v = os.getenv(f"TM_{p}_LOG_LEVEL") or os.getenv("TM_LOG_LEVEL") or ""
    if v.strip():
        return _level_num(v)
    if _env_on("TM_DEBUG") or _env_on(f"TM_{p}_DEBUG"):
        return _level_num("debug")
    return _level_num("info")


def _colors(fmt: str) -> bool:
    if fmt == "json" or os.getenv("NO_COLOR") is not None:
        return False
    return (os.getenv("TM_LOG_COLOR") or "auto").strip().lower() not in ("0", "false", "no", "off")


def _one_line(s: Any) -> str:
    return " ".join(str(s if s is not None else "").split())


def _kv(fields: Mapping[str, Any]) -> str:
    parts: list[str] = []
    for k in sorted(fields):
        vs = _one_line(fields[k]) if fields[k] is not None else ""
        if not vs:
            continue
        if any(ch.isspace() for ch in vs) or any(ch in vs for ch in '"=:'):
            vs = json.dumps(vs, ensure_ascii=False)
        parts.append(f"{k}={vs}")
    return " ".join(parts)


def log(provider: str, feature: str, level: str, msg: str, **fields: Any) -> None:
    provider_s = str(provider).strip().upper()
    level_s = str(level).strip().upper()
    if _level_num(level_s) < _threshold(provider_s):
        return

    fmt = (os.getenv("TM_LOG_FORMAT") or "kv").strip().lower()
    feature_s = str(feature).strip().lower()

    if fmt == "json":
        ts = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
        payload = {"ts": ts, "provider": provider_s, "feature": feature_s, "level": level_s, "msg": _one_line(msg)}
        print(json.dumps({**payload, **fields}, ensure_ascii=False, default=str), flush=True)
        return

    color = _colors(fmt)
    head = f"[{provider_s}:{feature_s}]"
    lvl = level_s
    if color:
        head = f"{DIM}{head}{RESET}"
        c = _LEVEL_COLOR.get(level_s, "")
        lvl = f"{c}{level_s}{RESET}" if c else level_s

    line = f"{head} {lvl} {_one_line(msg)}"
    tail = _kv(fields)
    print(f"{line} {tail}" if tail else line, flush=True)
