"""
Dockwatch Server: trigger surface for the monitor agent.

Endpoints:
  POST /.mu/delta       change notification from the delta notifier; the
                        body is ignored, receiving it is the signal
  GET  /api/health      liveness and watch-list size
  GET  /api/containers  what is currently being watched

Run: dockwatch   (or: uvicorn dockwatch.main:app)
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.responses import Response

from dockwatch.agent import MonitorAgent
from dockwatch.core.config import config
from dockwatch.core.logging import setup_logging

# --- Setup ---
setup_logging()
log = logging.getLogger("dockwatch")

app = FastAPI(title="Dockwatch", version="0.1.0")

agent = MonitorAgent.from_config(config)


# ── Lifecycle ──────────────────────────────────────────────


@app.on_event("startup")
async def startup():
    await agent.start()


@app.on_event("shutdown")
async def shutdown():
    await agent.stop()


# ── Triggers ───────────────────────────────────────────────


@app.post("/.mu/delta", status_code=204)
async def delta():
    """Refetch the containers to watch.

    Covers containers starting, stopping and changing labels. A crashing
    container that auto-restarts keeps its identity and is picked up again
    once the store reports it running.
    """
    await agent.reconciler.reconcile()
    return Response(status_code=204)


# ── Inspection ─────────────────────────────────────────────


@app.get("/api/containers")
async def list_containers():
    return {"containers": [entry.describe() for entry in agent.watchlist]}


@app.get("/api/health")
async def health():
    return {
        "status": "ok",
        "watching": len(agent.watchlist),
        "reconcile_retry_pending": agent.reconciler.retry_pending,
    }


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    run()
