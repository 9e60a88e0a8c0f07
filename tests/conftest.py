# TaskMirror test scripts
from __future__ import annotations

import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from tm_platform.orchestrator._types import SOURCE_GTASKS, SyncItem  # noqa: E402


def make_item(
    tid: str,
    title: str | None = None,
    *,
    completed: bool = False,
    heading: str = "## Inbox",
    source: str = SOURCE_GTASKS,
) -> SyncItem:
    return SyncItem(
        id=tid,
        source=source,
        title=title if title is not None else f"Task {tid}",
        link=f"https://tasks.google.com/task/{tid}",
        heading=heading,
        completed=completed,
    )


@dataclass
class FakeOps:
    lists: dict[str, list[SyncItem]]
    completed: dict[str, list[SyncItem]] = field(default_factory=dict)
    fail_updates: set[str] = field(default_factory=set)
    fail_lists: set[str] = field(default_factory=set)
    update_calls: list[tuple[str, str, bool]] = field(default_factory=list)
    delete_calls: list[tuple[str, str]] = field(default_factory=list)
    find_calls: list[str] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def name(self) -> str:
        return "FAKE"

    def list_ids(self) -> list[str]:
        return list(self.lists)

    def fetch_items(self, list_id: str, *, show_completed: bool = False) -> list[SyncItem]:
        if list_id in self.fail_lists:
            raise RuntimeError(f"list {list_id} unavailable")
        items = list(self.lists.get(list_id, []))
        if show_completed:
            items += list(self.completed.get(list_id, []))
        return items

    def update_completion(self, list_id: str, item_id: str, completed: bool) -> None:
        with self._lock:
            self.update_calls.append((list_id, item_id, completed))
        if item_id in self.fail_updates:
            raise RuntimeError(f"update of {item_id} rejected")

    def delete_item(self, list_id: str, item_id: str) -> None:
        with self._lock:
            self.delete_calls.append((list_id, item_id))
            self.lists[list_id] = [it for it in self.lists.get(list_id, []) if it.id != item_id]

    def find_item(self, item_id: str) -> str | None:
        self.find_calls.append(item_id)
        for lid in self.lists:
            if any(it.id == item_id for it in self.fetch_items(lid, show_completed=True)):
                return lid
        return None


@pytest.fixture()
def config_base(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("CONFIG_BASE", str(tmp_path))
    return tmp_path


@pytest.fixture()
def vault(config_base: Path) -> Path:
    root = config_base / "vault"
    root.mkdir()
    return root


@pytest.fixture()
def configure(config_base: Path) -> Callable[..., dict[str, Any]]:
    from tm_platform.config_base import update_config

    def _apply(**sync: Any) -> dict[str, Any]:
        def _mut(cfg: dict[str, Any]) -> None:
            cfg["sync"].update(sync)
            cfg["runtime"]["startup_retry_ms"] = 1

        return update_config(_mut)

    return _apply
