# _logging.py
# TaskMirror - console logger with module tags and a runtime debug gate
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import datetime
import json
import os
import sys
import threading
import time
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, TextIO

RESET = "\033[0m"
DIM = "\033[90m"
RED = "\033[91m"
GREEN = "\033[92m"
YELLOW = "\033[33m"
BLUE = "\033[94m"

LEVELS = {"silent": 60, "error": 40, "warn": 30, "info": 20, "debug": 10}

# debug gate follows runtime.debug in config.json (cached for a few seconds)
_CFG_CACHE: Dict[str, Any] | None = None
_CFG_TS: float = 0.0


def _config_file() -> Path:
    base = os.getenv("CONFIG_BASE")
    return (Path(base) if base else Path(".")) / "config.json"


def _debug_enabled() -> bool:
    global _CFG_CACHE, _CFG_TS
    if (os.getenv("TM_DEBUG") or "").strip().lower() in ("1", "true", "yes", "on"):
        return True
    now = time.time()
    if _CFG_CACHE is None or (now - _CFG_TS) > 5.0:
        try:
            with _config_file().open("r", encoding="utf-8") as f:
                _CFG_CACHE = json.load(f)
        except Exception:
            _CFG_CACHE = {}
        _CFG_TS = now
    rt = (_CFG_CACHE or {}).get("runtime") or {}
    return bool(rt.get("debug"))


class Logger:
    def __init__(
        self,
        stream: TextIO = sys.stdout,
        level: str = "info",
        use_color: bool = True,
        show_time: bool = True,
        time_fmt: str = "%Y-%m-%d %H:%M:%S",
        *,
        _context: Optional[Dict[str, Any]] = None,
        _lock: Optional[threading.Lock] = None,
    ):
        self.stream = stream
        self.level_no = LEVELS.get(level, 20)
        self.use_color = use_color and os.getenv("NO_COLOR") is None
        self.show_time = show_time
        self.time_fmt = time_fmt
        self.tag_color_map: Dict[str, str] = {
            "DEBUG": YELLOW,
            "INFO": BLUE,
            "WARN": YELLOW,
            "ERROR": RED,
            "SUCCESS": GREEN,
            "NOTIFY": GREEN,
        }
        self._context: Dict[str, Any] = dict(_context or {})
        self._lock = _lock or threading.Lock()

    def set_level(self, level: str) -> None:
        self.level_no = LEVELS.get(level, self.level_no)

    @property
    def level_name(self) -> str:
        for k, v in LEVELS.items():
            if v == self.level_no:
                return k
        return "info"

    def bind(self, **ctx: Any) -> "Logger":
        new_ctx = dict(self._context)
        new_ctx.update(ctx)
        child = Logger(
            stream=self.stream,
            level=self.level_name,
            use_color=self.use_color,
            show_time=self.show_time,
            time_fmt=self.time_fmt,
            _context=new_ctx,
            _lock=self._lock,
        )
        child.tag_color_map = dict(self.tag_color_map)
        return child

    def child(self, name: str) -> "Logger":
        return self.bind(module=name)

    def _line(self, label: str, msg: str, extra: Optional[Mapping[str, Any]]) -> str:
        mod = str(self._context.get("module") or "").strip()
        col = self.tag_color_map.get(label.upper()) if self.use_color else None
        lvl = f"{col}{label}{RESET}" if col else label
        head = f"[{mod}] " if mod else ""
        line = f"{head}{lvl} {msg}"
        if extra:
            kv = " ".join(f"{k}={v}" for k, v in extra.items() if v is not None)
            if kv:
                line = f"{line} {kv}"
        if self.show_time:
            ts = datetime.datetime.now().strftime(self.time_fmt)
            prefix = f"{DIM}[{ts}]{RESET}" if self.use_color else f"[{ts}]"
            return f"{prefix} {line}"
        return line

    def _emit(self, severity: str, label: str, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        if severity == "debug":
            if not _debug_enabled():
                return
        elif self.level_no > LEVELS.get(severity, 20):
            return
        text = self._line(label, " ".join(str(p) for p in parts), extra)
        with self._lock:
            self.stream.write(text + "\n")
            self.stream.flush()

    def debug(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("debug", "DEBUG", *parts, extra=extra)

    def info(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("info", "INFO", *parts, extra=extra)

    def warn(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("warn", "WARN", *parts, extra=extra)

    def error(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("error", "ERROR", *parts, extra=extra)

    def success(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("info", "SUCCESS", *parts, extra=extra)

    # log("text", level="WARN", module="SYNC")
    def __call__(
        self,
        message: str,
        *,
        level: str = "INFO",
        module: Optional[str] = None,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None:
        target = self.bind(module=module) if module else self
        lvl = (level or "INFO").lower()
        if lvl == "debug":
            target.debug(message, extra=extra)
        elif lvl in ("warn", "warning"):
            target.warn(message, extra=extra)
        elif lvl == "error":
            target.error(message, extra=extra)
        elif lvl == "success":
            target.success(message, extra=extra)
        elif lvl == "info":
            target.info(message, extra=extra)
        else:
            target._emit("info", level, message, extra=extra)


log = Logger()

__all__ = ["Logger", "log", "LEVELS"]
