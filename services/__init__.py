# services/__init__.py
from __future__ import annotations

from .notifications import NotificationCenter
from .scheduling import SyncScheduler

__all__ = ["NotificationCenter", "SyncScheduler"]
