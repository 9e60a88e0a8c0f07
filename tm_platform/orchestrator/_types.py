# tm_platform/orchestrator/_types.py
# item model and source protocol for the orchestrator.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Literal, Protocol

SOURCE_GTASKS = "google-tasks"

Operation = Literal["create", "update", "delete"]

# fields compared to decide "update"
COMPARED_FIELDS: tuple[str, ...] = ("title", "link", "source", "heading", "completed")


@dataclass(frozen=True)
class SyncItem:
    id: str
    source: str
    title: str
    link: str
    heading: str
    completed: bool = False

    @property
    def key(self) -> tuple[str, str]:
        return (self.id, self.source)

    def with_completed(self, completed: bool) -> SyncItem:
        return replace(self, completed=bool(completed))

    def to_metadata(self) -> dict[str, Any]:
        # key order is part of the line format
        return {
            "id": self.id,
            "source": self.source,
            "title": self.title,
            "link": self.link,
            "heading": self.heading,
            "completed": bool(self.completed),
        }


@dataclass(frozen=True)
class SyncAction:
    item: SyncItem
    operation: Operation


@dataclass(frozen=True)
class CompletionChange:
    task_id: str
    list_id: str
    completed: bool


class SourceOps(Protocol):
    def name(self) -> str: ...
    def list_ids(self) -> list[str]: ...
    def fetch_items(self, list_id: str, *, show_completed: bool = False) -> list[SyncItem]: ...
    def update_completion(self, list_id: str, item_id: str, completed: bool) -> None: ...
    def delete_item(self, list_id: str, item_id: str) -> None: ...
    def find_item(self, item_id: str) -> str | None: ...


class SourceError(RuntimeError):
    pass


class SourceAuthError(SourceError):
    """Credentials rejected or expired beyond refresh. Never retried."""
