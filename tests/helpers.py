"""Shared constants and builders for the certgate test suite."""

from __future__ import annotations

from typing import Optional

from certgate.auth.authenticator import AuthResult
from certgate.auth.roles import Role
from certgate.store.models import KeyRecord
from certgate.store.sqlite_backend import SQLiteStore

BOOTSTRAP_SECRET = "test-bootstrap-secret-0123456789abcdefghijkl"
ADMIN_SECRET = "admin-secret-0123456789abcdefghijklmnopqrstu"
ISSUER_SECRET = "issuer-secret-0123456789abcdefghijklmnopqrst"
READER_SECRET = "reader-secret-0123456789abcdefghijklmnopqrst"

ADMIN = AuthResult(role=Role.ADMIN, key_id="root_admin_0000000000000001")
ISSUER = AuthResult(role=Role.ISSUER, key_id="event_team_0000000000000002")
READER = AuthResult(role=Role.READER, key_id="front_end_0000000000000003")
BOOTSTRAP = AuthResult(role=Role.BOOTSTRAP, key_id="bootstrap")


def make_record(
    key_id: str = "event_team_0000000000000002",
    role: Role = Role.ISSUER,
    is_active: bool = True,
    secret: Optional[str] = ISSUER_SECRET,
    description: Optional[str] = "Event Team",
) -> KeyRecord:
    return KeyRecord(
        id=key_id,
        role=role,
        is_active=is_active,
        secret=secret,
        description=description,
        created_at="2026-01-01T00:00:00+00:00",
        created_by="seed",
    )


async def seed_key(
    store: SQLiteStore,
    key_id: str,
    role: Role,
    secret: Optional[str],
    is_active: bool = True,
    description: Optional[str] = None,
) -> KeyRecord:
    """Insert a key record directly, bypassing the lifecycle rules."""
    return await store.put(
        key_id,
        make_record(
            key_id=key_id,
            role=role,
            is_active=is_active,
            secret=secret,
            description=description,
        ),
    )
