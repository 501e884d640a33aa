"""SQLiteStore — aiosqlite-based document store for keys and certificates.

Uses aiosqlite for all I/O; the stdlib sqlite3 module is imported only for its
exception classes.

Features:
  - WAL mode: PRAGMA journal_mode=WAL
  - Schema version guard: PRAGMA user_version=1 — RuntimeError on mismatch, refuse startup
  - Long-lived connection: opened in initialize(), closed in close()
  - keys.id PRIMARY KEY + UNIQUE index on keys.description. The lifecycle manager
    still checks uniqueness before writing (for precise 409 messages); these
    constraints turn a lost check-then-write race into DuplicateRecordError
    instead of a duplicate row.
  - Rows are converted to KeyRecord / CertificateRecord here and nowhere else.
"""

from __future__ import annotations

import json
import os
import sqlite3
from datetime import datetime, timezone
from typing import Any, Optional

import aiosqlite

from certgate.auth.roles import Role
from certgate.errors import DuplicateRecordError, StoreError
from certgate.store.models import CertificateRecord, KeyRecord
from certgate.store.protocol import KEY_QUERY_FIELDS, KEY_STAMP_FIELDS, KEY_UPDATE_FIELDS
from certgate.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Schema DDL ───────────────────────────────────────────────────────────────

_CREATE_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS keys (
    id              TEXT PRIMARY KEY,
    secret          TEXT,
    role            TEXT NOT NULL,
    is_active       INTEGER NOT NULL DEFAULT 1,
    description     TEXT,
    created_at      TEXT,
    created_by      TEXT,
    updated_at      TEXT,
    updated_by      TEXT,
    deactivated_at  TEXT,
    deactivated_by  TEXT
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_keys_description
    ON keys(description);

CREATE TABLE IF NOT EXISTS certificates (
    code        TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    event       TEXT NOT NULL,
    timestamp   TEXT,
    created_by  TEXT,
    extra       TEXT
);
"""

_SCHEMA_VERSION = 1


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


# ─── Row deserialisers ────────────────────────────────────────────────────────


def _row_to_key_record(row: aiosqlite.Row) -> KeyRecord:
    """Convert a keys row to a KeyRecord.

    Raises StoreError for a row whose role is not a stored role — a corrupted
    record is surfaced, never coerced.
    """
    role = Role.parse_stored(row["role"])
    if role is None:
        raise StoreError(f"Key record {row['id']!r} has invalid role {row['role']!r}")
    return KeyRecord(
        id=row["id"],
        secret=row["secret"] or None,
        role=role,
        is_active=bool(row["is_active"]),
        description=row["description"],
        created_at=row["created_at"],
        created_by=row["created_by"],
        updated_at=row["updated_at"],
        updated_by=row["updated_by"],
        deactivated_at=row["deactivated_at"],
        deactivated_by=row["deactivated_by"],
    )


def _row_to_certificate(row: aiosqlite.Row) -> CertificateRecord:
    extra_raw: Optional[str] = row["extra"]
    return CertificateRecord(
        code=row["code"],
        name=row["name"],
        event=row["event"],
        timestamp=row["timestamp"],
        created_by=row["created_by"],
        extra=json.loads(extra_raw) if extra_raw else {},
    )


def _to_column_value(value: Any) -> Any:
    if isinstance(value, Role):
        return value.value
    if isinstance(value, bool):
        return int(value)
    return value


def _duplicate_field(exc: sqlite3.IntegrityError) -> str:
    """Name the column behind a UNIQUE/PRIMARY KEY failure ("id", "description", "code")."""
    message = str(exc)
    for column in ("description", "code", "id"):
        if message.endswith(f".{column}"):
            return column
    return "id"


# ─── SQLiteStore ──────────────────────────────────────────────────────────────


class SQLiteStore:
    """Async SQLite implementation of KeyStore and CertificateStore.

    Usage:
        store = SQLiteStore(db_path="~/.certgate/certgate.db")
        await store.initialize()   # raises RuntimeError on schema version mismatch
        record = await store.get("event_team_3f9a0c1b7d2e4a65")
        await store.close()
    """

    def __init__(self, db_path: str = "~/.certgate/certgate.db") -> None:
        self._db_path: str = os.path.expanduser(db_path)
        self._db: Optional[aiosqlite.Connection] = None

    @property
    def db_path(self) -> str:
        return self._db_path

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Open the connection, enable WAL mode, and create/verify the schema.

        Raises:
            RuntimeError: If PRAGMA user_version is neither 0 nor 1.
        """
        parent_dir = os.path.dirname(self._db_path)
        if parent_dir:
            os.makedirs(parent_dir, exist_ok=True)

        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.execute("PRAGMA journal_mode=WAL;")

        cursor = await self._db.execute("PRAGMA user_version;")
        row = await cursor.fetchone()
        current_version: int = row[0] if row else 0

        if current_version == 0:
            await self._db.executescript(_CREATE_SCHEMA_SQL)
            await self._db.execute(f"PRAGMA user_version = {_SCHEMA_VERSION};")
            await self._db.commit()
            logger.info("store_schema_created", db_path=self._db_path)
        elif current_version == _SCHEMA_VERSION:
            logger.info("store_schema_ok", db_path=self._db_path)
        else:
            await self._db.close()
            self._db = None
            raise RuntimeError(
                f"Unsupported certgate database schema version: {current_version}. "
                f"Expected {_SCHEMA_VERSION}; point store.path at a fresh file."
            )

        # Owner read/write only; the keys table holds signing secrets.
        os.chmod(self._db_path, 0o600)

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None
            logger.debug("store_closed", db_path=self._db_path)

    async def health_check(self) -> bool:
        """Returns True if the connection is alive and queryable. Must not raise."""
        try:
            if self._db is None:
                return False
            await self._db.execute("SELECT 1")
            return True
        except sqlite3.Error:
            return False

    def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StoreError("Store not initialized — call initialize() first")
        return self._db

    # ── KeyStore ──────────────────────────────────────────────────────────────

    async def get(self, key_id: str) -> Optional[KeyRecord]:
        try:
            cursor = await self._conn().execute(
                "SELECT * FROM keys WHERE id = ?", (key_id,)
            )
            row = await cursor.fetchone()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        return _row_to_key_record(row) if row is not None else None

    async def query_by_field(self, field: str, value: Any) -> list[KeyRecord]:
        if field not in KEY_QUERY_FIELDS:
            raise ValueError(f"Cannot query keys by field {field!r}")
        try:
            # field is whitelisted above; the value is always a bound parameter
            cursor = await self._conn().execute(
                f"SELECT * FROM keys WHERE {field} = ? ORDER BY created_at",
                (_to_column_value(value),),
            )
            rows = await cursor.fetchall()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        return [_row_to_key_record(row) for row in rows]

    async def list_keys(self) -> list[KeyRecord]:
        """Return every key record, newest first."""
        try:
            cursor = await self._conn().execute(
                "SELECT * FROM keys ORDER BY created_at DESC"
            )
            rows = await cursor.fetchall()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        return [_row_to_key_record(row) for row in rows]

    async def put(self, key_id: str, record: KeyRecord) -> KeyRecord:
        record.id = key_id
        record.created_at = _utcnow()
        db = self._conn()
        try:
            await db.execute(
                """INSERT INTO keys
                   (id, secret, role, is_active, description, created_at, created_by)
                   VALUES (?,?,?,?,?,?,?)""",
                (
                    record.id,
                    record.secret,
                    record.role.value,
                    int(record.is_active),
                    record.description,
                    record.created_at,
                    record.created_by,
                ),
            )
            await db.commit()
        except sqlite3.IntegrityError as exc:
            await db.rollback()
            raise DuplicateRecordError(str(exc), field=_duplicate_field(exc)) from exc
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        return record

    async def update_fields(
        self,
        key_id: str,
        fields: dict[str, Any],
        stamp: Optional[str] = None,
    ) -> Optional[str]:
        unknown = set(fields) - KEY_UPDATE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update key fields {sorted(unknown)}")
        if stamp is not None and stamp not in KEY_STAMP_FIELDS:
            raise ValueError(f"Cannot stamp key field {stamp!r}")

        columns = dict(fields)
        stamped_at: Optional[str] = None
        if stamp is not None:
            stamped_at = _utcnow()
            columns[stamp] = stamped_at
        if not columns:
            return None

        assignments = ", ".join(f"{column} = ?" for column in columns)
        params = [_to_column_value(value) for value in columns.values()]
        db = self._conn()
        try:
            await db.execute(
                f"UPDATE keys SET {assignments} WHERE id = ?",
                (*params, key_id),
            )
            await db.commit()
        except sqlite3.IntegrityError as exc:
            await db.rollback()
            raise DuplicateRecordError(str(exc), field=_duplicate_field(exc)) from exc
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        return stamped_at

    # ── CertificateStore ──────────────────────────────────────────────────────

    async def get_certificate(self, code: str) -> Optional[CertificateRecord]:
        try:
            cursor = await self._conn().execute(
                "SELECT * FROM certificates WHERE code = ?", (code,)
            )
            row = await cursor.fetchone()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        return _row_to_certificate(row) if row is not None else None

    async def put_certificate(self, record: CertificateRecord) -> CertificateRecord:
        db = self._conn()
        try:
            await db.execute(
                """INSERT INTO certificates
                   (code, name, event, timestamp, created_by, extra)
                   VALUES (?,?,?,?,?,?)""",
                (
                    record.code,
                    record.name,
                    record.event,
                    record.timestamp,
                    record.created_by,
                    json.dumps(record.extra) if record.extra else None,
                ),
            )
            await db.commit()
        except sqlite3.IntegrityError as exc:
            await db.rollback()
            raise DuplicateRecordError(str(exc), field="code") from exc
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        return record

    async def delete_certificate(self, code: str) -> bool:
        db = self._conn()
        try:
            cursor = await db.execute("DELETE FROM certificates WHERE code = ?", (code,))
            await db.commit()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        return cursor.rowcount > 0
