"""Health endpoint for certgate.

  GET /health — 503 before ``app.state.ready`` is set by the lifespan, 200 after.

Response body (200):
    {"status": "ok" | "degraded", "store": "healthy" | "error", "db_path": "..."}

Response body (503):
    {"status": "starting", "message": "certgate is starting up."}

"degraded" means the process is up but the store connection failed its probe.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> Any:
    if not getattr(request.app.state, "ready", False):
        return JSONResponse(
            status_code=503,
            content={"status": "starting", "message": "certgate is starting up."},
        )

    store = request.app.state.store
    store_ok = await store.health_check()
    return {
        "status": "ok" if store_ok else "degraded",
        "store": "healthy" if store_ok else "error",
        "db_path": store.db_path,
    }
