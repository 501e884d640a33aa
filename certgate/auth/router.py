"""Key management endpoints.

Provides:
  POST   /keys               — create a key (admin/issuer; bootstrap for reader keys)
  GET    /keys               — list keys without secrets (admin)
  GET    /keys/{identifier}  — read one key without its secret (admin)
  PUT    /keys/{identifier}  — partial update of role / isActive / description (admin)
  DELETE /keys/{identifier}  — deactivate (soft-disable) a key (admin)

``identifier`` is a key id or, failing that, a unique key description.

Bodies are decoded by hand rather than through a pydantic model so that every
validation failure returns 400 with its own message (instead of FastAPI's 422);
the rules themselves live in KeyLifecycleManager.

The secret is returned exactly once, in the POST /keys response.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request

from certgate.auth.authenticator import AuthResult
from certgate.auth.lifecycle import KeyLifecycleManager
from certgate.auth.limiter import KEY_MANAGEMENT_RATE_LIMIT, limiter
from certgate.auth.middleware import require_key_admin, require_key_creator
from certgate.constants import MSG_INVALID_JSON
from certgate.errors import ClientInputError

router = APIRouter(tags=["keys"])


def get_key_manager(request: Request) -> KeyLifecycleManager:
    """FastAPI dependency: the KeyLifecycleManager built in the lifespan."""
    return request.app.state.key_manager


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ClientInputError(MSG_INVALID_JSON, error=str(exc)) from exc


# ─── Endpoints ────────────────────────────────────────────────────────────────


@router.post("/keys", status_code=201)
@limiter.limit(KEY_MANAGEMENT_RATE_LIMIT)
async def create_key(
    request: Request,
    acting: AuthResult = Depends(require_key_creator),
    manager: KeyLifecycleManager = Depends(get_key_manager),
) -> dict:
    """Create a key. The response carries the secret — the only time it is shown.

    Body: ``{"role": str, "isActive": bool, "description"?: str, "secret"?: str}``
    """
    payload = await _read_json(request)
    return await manager.create_key(acting, payload)


@router.get("/keys")
@limiter.limit(KEY_MANAGEMENT_RATE_LIMIT)
async def list_keys(
    request: Request,
    acting: AuthResult = Depends(require_key_admin),
    manager: KeyLifecycleManager = Depends(get_key_manager),
) -> dict:
    return await manager.list_keys(acting)


@router.get("/keys/{identifier}")
@limiter.limit(KEY_MANAGEMENT_RATE_LIMIT)
async def get_key(
    identifier: str,
    request: Request,
    acting: AuthResult = Depends(require_key_admin),
    manager: KeyLifecycleManager = Depends(get_key_manager),
) -> dict:
    return await manager.get_key(acting, identifier)


@router.put("/keys/{identifier}")
@limiter.limit(KEY_MANAGEMENT_RATE_LIMIT)
async def update_key(
    identifier: str,
    request: Request,
    acting: AuthResult = Depends(require_key_admin),
    manager: KeyLifecycleManager = Depends(get_key_manager),
) -> dict:
    """Partially update a key. Unknown body fields are ignored."""
    patch = await _read_json(request)
    return await manager.update_key(acting, identifier, patch)


@router.delete("/keys/{identifier}")
@limiter.limit(KEY_MANAGEMENT_RATE_LIMIT)
async def deactivate_key(
    identifier: str,
    request: Request,
    acting: AuthResult = Depends(require_key_admin),
    manager: KeyLifecycleManager = Depends(get_key_manager),
) -> dict:
    """Deactivate a key. The record is kept; its id and description stay reserved."""
    return await manager.deactivate_key(acting, identifier)
