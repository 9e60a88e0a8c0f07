# api/__init__.py
from __future__ import annotations

from fastapi import FastAPI

from .configAPI import router as config_router
from .notificationsAPI import router as notifications_router
from .syncAPI import router as sync_router

__all__ = ["config_router", "notifications_router", "sync_router", "register"]


def register(app: FastAPI) -> None:
    app.include_router(config_router)
    app.include_router(sync_router)
    app.include_router(notifications_router)
