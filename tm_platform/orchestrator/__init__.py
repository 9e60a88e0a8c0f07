# Public surface of the orchestrator package.
from ._types import (
    SOURCE_GTASKS,
    CompletionChange,
    SourceAuthError,
    SourceError,
    SourceOps,
    SyncAction,
    SyncItem,
)
from ._guard import SyncGuard
from ._watcher import DeletionWatcher
from .facade import Orchestrator

__all__ = [
    "Orchestrator",
    "DeletionWatcher",
    "SyncGuard",
    "SyncItem",
    "SyncAction",
    "CompletionChange",
    "SourceOps",
    "SourceError",
    "SourceAuthError",
    "SOURCE_GTASKS",
]
