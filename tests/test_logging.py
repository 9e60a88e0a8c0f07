# TaskMirror test scripts
from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from _logging import Logger


def _logger() -> tuple[Logger, io.StringIO]:
    buf = io.StringIO()
    return Logger(stream=buf, use_color=False, show_time=False), buf


def test_module_tag_and_level(config_base: Path) -> None:
    lg, buf = _logger()
    lg("sync done", level="SUCCESS", module="SYNC")
    lg("careful", level="warning", module="WATCHER", extra={"id": "A", "skip": None})
    assert buf.getvalue().splitlines() == ["[SYNC] SUCCESS sync done", "[WATCHER] WARN careful id=A"]


def test_debug_follows_runtime_setting(config_base: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import _logging

    monkeypatch.delenv("TM_DEBUG", raising=False)
    monkeypatch.setattr(_logging, "_CFG_CACHE", None)
    lg, buf = _logger()
    lg.debug("hidden")
    assert buf.getvalue() == ""

    (config_base / "config.json").write_text(json.dumps({"runtime": {"debug": True}}), encoding="utf-8")
    monkeypatch.setattr(_logging, "_CFG_CACHE", None)
    lg.child("READER").debug("shown")
    assert buf.getvalue() == "[READER] DEBUG shown\n"


def test_level_threshold() -> None:
    lg, buf = _logger()
    lg.set_level("error")
    lg.info("quiet")
    lg.error("loud")
    assert buf.getvalue() == "ERROR loud\n"
