"""Certificate endpoints.

Provides:
  GET    /certificates/{code}   — public lookup (no authentication)
  GET    /certificates?code=... — same, query-parameter form
  POST   /certificates          — issue a certificate (admin/issuer)
  DELETE /certificates/{code}   — hard-delete a certificate (admin)

A certificate is keyed by its public ``code``. Writes stamp ``timestamp`` and
``createdBy`` server-side; any additional body fields are stored verbatim.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from certgate.auth.authenticator import AuthResult
from certgate.auth.limiter import CERTIFICATE_WRITE_RATE_LIMIT, limiter
from certgate.auth.middleware import require_certificate_admin, require_certificate_writer
from certgate.constants import (
    MSG_CERTIFICATE_NOT_FOUND,
    MSG_DUPLICATE_CERTIFICATE,
    MSG_INVALID_JSON,
    MSG_MISSING_CERTIFICATE_DATA,
    MSG_MISSING_CODE,
)
from certgate.errors import ClientInputError, ConflictError, DuplicateRecordError, NotFoundError
from certgate.store.models import CertificateRecord
from certgate.store.protocol import CertificateStore
from certgate.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["certificates"])

# Server-stamped fields; client values for these are discarded.
_RESERVED_FIELDS: frozenset[str] = frozenset({"id", "timestamp", "createdBy"})


# ─── Request Models ───────────────────────────────────────────────────────────


class CertificateIn(BaseModel):
    """Request body for POST /certificates. Extra fields are kept."""

    model_config = ConfigDict(extra="allow")

    code: str = Field(min_length=1)
    name: str = Field(min_length=1)
    event: str = Field(min_length=1)


def get_certificate_store(request: Request) -> CertificateStore:
    """FastAPI dependency: the store built in the lifespan."""
    return request.app.state.store


async def _lookup(store: CertificateStore, code: Optional[str]) -> dict[str, Any]:
    if not code:
        raise ClientInputError(MSG_MISSING_CODE)
    record = await store.get_certificate(code)
    if record is None:
        raise NotFoundError(MSG_CERTIFICATE_NOT_FOUND)
    return record.to_dict()


# ─── Endpoints ────────────────────────────────────────────────────────────────


@router.get("/certificates")
async def get_certificate_by_query(
    code: Optional[str] = None,
    store: CertificateStore = Depends(get_certificate_store),
) -> dict:
    return await _lookup(store, code)


@router.get("/certificates/{code}")
async def get_certificate(
    code: str,
    store: CertificateStore = Depends(get_certificate_store),
) -> dict:
    """Public certificate validation by code."""
    return await _lookup(store, code)


@router.post("/certificates", status_code=201)
@limiter.limit(CERTIFICATE_WRITE_RATE_LIMIT)
async def write_certificate(
    request: Request,
    acting: AuthResult = Depends(require_certificate_writer),
    store: CertificateStore = Depends(get_certificate_store),
) -> dict:
    """Issue a certificate.

    Body: ``{"code": str, "name": str, "event": str, ...extra}``

    Raises:
        400: invalid JSON, or code/name/event missing or empty.
        409: a certificate with this code already exists.
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ClientInputError(MSG_INVALID_JSON, error=str(exc)) from exc

    try:
        body = CertificateIn.model_validate(payload)
    except ValidationError as exc:
        raise ClientInputError(MSG_MISSING_CERTIFICATE_DATA) from exc

    if await store.get_certificate(body.code) is not None:
        raise ConflictError(MSG_DUPLICATE_CERTIFICATE)

    extra = {
        name: value
        for name, value in (body.model_extra or {}).items()
        if name not in _RESERVED_FIELDS
    }
    record = CertificateRecord(
        code=body.code,
        name=body.name,
        event=body.event,
        timestamp=datetime.now(timezone.utc).isoformat(),
        created_by=acting.key_id,
        extra=extra,
    )
    try:
        await store.put_certificate(record)
    except DuplicateRecordError as exc:
        raise ConflictError(MSG_DUPLICATE_CERTIFICATE) from exc

    logger.info("Certificate created", actor=acting.key_id, code=record.code)
    return {"message": "Certificate created successfully", "id": record.code}


@router.delete("/certificates/{code}")
@limiter.limit(CERTIFICATE_WRITE_RATE_LIMIT)
async def delete_certificate(
    code: str,
    request: Request,
    acting: AuthResult = Depends(require_certificate_admin),
    store: CertificateStore = Depends(get_certificate_store),
) -> dict:
    if not await store.delete_certificate(code):
        raise NotFoundError(MSG_CERTIFICATE_NOT_FOUND)
    logger.info("Certificate deleted", actor=acting.key_id, code=code)
    return {"message": f"Certificate with ID: {code} deleted successfully"}
