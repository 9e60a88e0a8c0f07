# tm_platform/orchestrator/_reader.py
# extracts synced items (checkbox + embedded JSON comment) from document text.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import json
import re

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

from ._types import SyncItem

try:
    from _logging import log as _log
except ImportError:  # pragma: no cover
    _log = None

TASK_PREFIX = re.compile(r"^\s*- \[[ xX]?\]\s+")
METADATA = re.compile(r"<!--\s*(\{[\s\S]*?\})\s*-->")
CHECKED = re.compile(r"^\s*- \[([xX])\]")


class LineMetadata(BaseModel):
    """The JSON payload of one synced line. Anything that fails here is not a synced line."""

    model_config = ConfigDict(extra="ignore")

    id: StrictStr = Field(min_length=1)
    source: StrictStr = Field(min_length=1)
    title: StrictStr = ""
    link: StrictStr = Field(min_length=1)
    heading: StrictStr = Field(min_length=1)


def _dbg(msg: str) -> None:
    if _log is not None:
        _log(msg, level="DEBUG", module="READER")


def parse_line(line: str) -> SyncItem | None:
    if not TASK_PREFIX.match(line):
        return None
    m = METADATA.search(line)
    if m is None:
        return None
    try:
        raw = json.loads(m.group(1))
        meta = LineMetadata.model_validate(raw)
    except (ValueError, ValidationError):
        _dbg(f"skipping line with unreadable metadata: [{line.strip()}]")
        return None
    return SyncItem(
        id=meta.id,
        source=meta.source,
        title=meta.title,
        link=meta.link,
        heading=meta.heading,
        completed=CHECKED.match(line) is not None,
    )


def read_items(text: str, source: str) -> list[SyncItem]:
    out: list[SyncItem] = []
    for line in (text or "").split("\n"):
        item = parse_line(line)
        if item is not None and item.source == source:
            out.append(item)
    return out
