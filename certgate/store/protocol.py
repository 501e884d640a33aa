"""KeyStore / CertificateStore protocols.

The document-store interface consumed by the authenticator, the key lifecycle
manager and the certificate handlers. Implementations: SQLiteStore
(store/sqlite_backend.py).

The store client is constructed once per process in the FastAPI lifespan and
injected — nothing in certgate opens its own connection lazily.

All methods are async. Backend failures raise StoreError; they are never
swallowed, and nothing is retried.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from certgate.store.models import CertificateRecord, KeyRecord

#: Key fields that may be used with query_by_field() / update_fields().
KEY_QUERY_FIELDS: frozenset[str] = frozenset({"description", "role", "is_active"})
KEY_UPDATE_FIELDS: frozenset[str] = frozenset(
    {
        "role",
        "is_active",
        "description",
        "updated_by",
        "deactivated_by",
    }
)
#: Timestamp columns update_fields() may stamp with the current UTC time.
KEY_STAMP_FIELDS: frozenset[str] = frozenset({"updated_at", "deactivated_at"})


@runtime_checkable
class KeyStore(Protocol):
    """Access to the ``keys`` collection."""

    async def get(self, key_id: str) -> Optional[KeyRecord]:
        """Return the record with primary id ``key_id``, or None."""
        ...

    async def query_by_field(self, field: str, value: Any) -> list[KeyRecord]:
        """Return every record whose ``field`` equals ``value``.

        ``field`` must be in KEY_QUERY_FIELDS (ValueError otherwise).
        """
        ...

    async def list_keys(self) -> list[KeyRecord]:
        """Return every record, newest first."""
        ...

    async def put(self, key_id: str, record: KeyRecord) -> KeyRecord:
        """Insert ``record`` under ``key_id`` and stamp ``created_at``.

        Raises DuplicateRecordError if the id or description is already taken.
        """
        ...

    async def update_fields(
        self,
        key_id: str,
        fields: dict[str, Any],
        stamp: Optional[str] = None,
    ) -> Optional[str]:
        """Partially update ``key_id`` with ``fields``.

        ``stamp`` names a KEY_STAMP_FIELDS column to set to the current UTC time.
        Returns the stamped timestamp (or None when ``stamp`` is None).
        """
        ...


@runtime_checkable
class CertificateStore(Protocol):
    """Access to the ``certificates`` collection."""

    async def get_certificate(self, code: str) -> Optional[CertificateRecord]:
        ...

    async def put_certificate(self, record: CertificateRecord) -> CertificateRecord:
        ...

    async def delete_certificate(self, code: str) -> bool:
        """Hard-delete a certificate. Returns False if it did not exist."""
        ...
