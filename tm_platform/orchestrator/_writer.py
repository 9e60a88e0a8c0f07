# tm_platform/orchestrator/_writer.py
# applies sync actions to document text without touching content it does not own.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import json
import re
from collections.abc import Sequence

from ._planner import create_items, update_delete_map
from ._reader import METADATA
from ._types import SyncAction, SyncItem

HEADING = re.compile(r"^\s*#{1,6}\s")
KANBAN_START = re.compile(r"^\s*%%\s*kanban:settings\s*$")
LIST_ITEM = re.compile(r"^(\s*)[-*+]\s+\[[ xX]\]\s")
CHECKBOX = re.compile(r"^\s*- \[[ xX]\]")
LEADING_WS = re.compile(r"^\s*")

# headings after this line win over earlier duplicates
ANCHOR_MARKER = "<!-- taskmirror:anchor -->"


def _blank(line: str) -> bool:
    return line.strip() == ""


def _metadata_json(item: SyncItem) -> str:
    return json.dumps(item.to_metadata(), ensure_ascii=False, separators=(",", ":"))


def _checkbox(item: SyncItem) -> str:
    return "[x]" if item.completed else "[ ]"


def render_line(item: SyncItem) -> str:
    return f"- {_checkbox(item)} [{item.title}]({item.link}) <!-- {_metadata_json(item)} -->"


def _rewrite_line(line: str, item: SyncItem) -> str:
    box = _checkbox(item)
    line = CHECKBOX.sub(lambda m: m.group(0)[:-3] + box, line, count=1)
    return METADATA.sub(lambda _m: f"<!-- {_metadata_json(item)} -->", line, count=1)


def _line_key(line: str) -> str | None:
    m = METADATA.search(line)
    if m is None:
        return None
    try:
        meta = json.loads(m.group(1))
    except ValueError:
        return None
    if not isinstance(meta, dict):
        return None
    return f"{meta.get('id')}:{meta.get('source')}"


def _apply_updates_and_deletes(lines: list[str], actions: dict[str, SyncAction]) -> list[str]:
    out: list[str] = []
    for line in lines:
        key = _line_key(line) if actions else None
        action = actions.get(key) if key is not None else None
        if action is None:
            out.append(line)
        elif action.operation == "update":
            out.append(_rewrite_line(line, action.item))
        # delete: drop the line
    return out


def _last_index(lines: Sequence[str], pred) -> int:
    for i in range(len(lines) - 1, -1, -1):
        if pred(lines[i]):
            return i
    return -1


def _find_heading(lines: Sequence[str], heading: str) -> int:
    start = 0
    for i, line in enumerate(lines):
        if line.strip() == ANCHOR_MARKER:
            start = i + 1
            break
    for i in range(start, len(lines)):
        if lines[i].strip() == heading:
            return i
    return -1


def _blank_run_before_kanban(lines: Sequence[str], offset: int = 0) -> int | None:
    for k, line in enumerate(lines):
        if KANBAN_START.match(line):
            return offset + _last_index(lines[:k], lambda s: not _blank(s)) + 1
    return None


def _next_heading(lines: Sequence[str], start: int) -> int:
    for i in range(start, len(lines)):
        if HEADING.match(lines[i]):
            return i
    return len(lines)


def _insert_creates(lines: list[str], items: Sequence[SyncItem], heading: str) -> list[str]:
    if not items:
        return lines

    rendered = [render_line(it) for it in items]
    h = _find_heading(lines, heading)
    if h == -1:
        at = _blank_run_before_kanban(lines)
        if at is not None:
            return lines[:at] + [heading, *rendered] + lines[at:]
        return lines + [heading, *rendered]

    start = h + 1
    end = _next_heading(lines, start)
    section = lines[start:end]

    last_meta = _last_index(section, lambda s: METADATA.search(s) is not None)
    last_item = _last_index(section, lambda s: LIST_ITEM.match(s) is not None)

    if last_meta >= 0:
        at = start + last_meta + 1
        indent = LEADING_WS.match(section[last_meta]).group(0)
    else:
        kanban_at = _blank_run_before_kanban(section, start)
        if kanban_at is not None:
            at = kanban_at
        elif last_item >= 0:
            at = start + last_item + 1
        else:
            at = end
        indent = LIST_ITEM.match(section[last_item]).group(1) if last_item >= 0 else ""

    return lines[:at] + [indent + r for r in rendered] + lines[at:]


def apply(text: str, actions: Sequence[SyncAction], heading: str) -> str:
    """Apply actions to `text`; creates land under `heading`."""
    text = text or ""
    eol = "\r\n" if "\r\n" in text else "\n"
    lines = text.split(eol)
    lines = _apply_updates_and_deletes(lines, update_delete_map(actions))
    lines = _insert_creates(lines, create_items(actions), heading)
    return eol.join(lines)


__all__ = ["apply", "render_line", "ANCHOR_MARKER"]
