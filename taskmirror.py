# /taskmirror.py
# TaskMirror - mirrors Google Tasks into a Markdown checklist and syncs deletions back
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Callable, Mapping

import uvicorn
from fastapi import FastAPI

from _logging import log
from api import register as register_api
from providers.sync._mod_GTASKS import GTasksOps, build_ops
from services import NotificationCenter, SyncScheduler
from tm_platform.config_base import config_path, load_config, update_config, vault_root
from tm_platform.document_store import DocumentStore
from tm_platform.orchestrator import DeletionWatcher, Orchestrator, SyncGuard

__VERSION__ = "0.1.0"


@dataclass
class Runtime:
    guard: SyncGuard
    store: DocumentStore
    notifications: NotificationCenter
    ops_factory: Callable[[Mapping[str, Any]], GTasksOps]
    orchestrator: Orchestrator
    watcher: DeletionWatcher
    scheduler: SyncScheduler


RUNTIME: Runtime | None = None


def _gtasks_ops(cfg: Mapping[str, Any]) -> GTasksOps:
    return build_ops(cfg, update_config=update_config)


def _sync_job(orch: Orchestrator) -> Callable[[], None]:
    def run() -> None:
        res = orch.run()
        if not res.get("ok"):
            raise RuntimeError(res.get("error") or "sync failed")

    return run


def build_runtime(cfg: Mapping[str, Any] | None = None) -> Runtime:
    cfg = cfg if cfg is not None else load_config()
    rt_cfg = dict(cfg.get("runtime") or {})

    root = vault_root(dict(cfg))
    root.mkdir(parents=True, exist_ok=True)

    guard = SyncGuard()
    store = DocumentStore(root)
    notes = NotificationCenter(confirm_timeout=float(rt_cfg.get("confirm_timeout_sec") or 0), log_fn=log)

    orch = Orchestrator(
        store=store,
        ops_factory=_gtasks_ops,
        load_config=load_config,
        update_config=update_config,
        notify=notes,
    )
    watcher = DeletionWatcher(
        store,
        guard,
        _gtasks_ops,
        load_config=load_config,
        update_config=update_config,
        confirm=notes.ask,
        notify=notes,
    )
    scheduler = SyncScheduler(
        [_sync_job(orch)],
        guard,
        refresh_cache=watcher.refresh_cache,
        log_fn=log,
        max_workers=int(rt_cfg.get("fetch_workers") or 4),
    )
    return Runtime(guard, store, notes, _gtasks_ops, orch, watcher, scheduler)


# Startup sequence
@asynccontextmanager
async def _lifespan(app: FastAPI):
    global RUNTIME
    cfg = load_config()
    RUNTIME = build_runtime(cfg)
    app.state.runtime = RUNTIME

    try:
        RUNTIME.watcher.start()
    except Exception as e:
        log(f"deletion watcher failed to start: {e}", level="ERROR", module="MAIN")

    RUNTIME.scheduler.start(int(cfg["sync"]["interval_minutes"]))
    try:
        yield
    finally:
        RUNTIME.scheduler.stop()
        RUNTIME.watcher.stop()
        RUNTIME.store.close()
        app.state.runtime = None
        RUNTIME = None


app = FastAPI(title="TaskMirror", version=__VERSION__, lifespan=_lifespan)
register_api(app)


@app.get("/api/health")
def health() -> dict[str, Any]:
    return {"ok": True, "version": __VERSION__, "ready": RUNTIME is not None}


# Entry point
def main(host: str | None = None, port: int | None = None) -> None:
    cfg = load_config()
    api = dict(cfg.get("api") or {})
    host = host or str(api.get("host") or "0.0.0.0")
    port = int(port or api.get("port") or 8788)
    debug = bool((cfg.get("runtime") or {}).get("debug"))

    print("\nTaskMirror running:")
    print(f"  Local:   http://127.0.0.1:{port}")
    print(f"  Bind:    {host}:{port}")
    print(f"  Config:  {config_path()} (JSON)")
    print(f"  Vault:   {vault_root(cfg)}")
    print(f"  Document: {cfg['sync']['document']} under {cfg['sync']['heading']}\n")

    uvicorn.run(app, host=host, port=port, log_level=("debug" if debug else "warning"), access_log=debug)


if __name__ == "__main__":
    main()
