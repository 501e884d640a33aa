"""certgate document store package.

    from certgate.store import SQLiteStore, KeyRecord

Layout:
    models.py         — KeyRecord, CertificateRecord
    protocol.py       — KeyStore / CertificateStore Protocols
    sqlite_backend.py — SQLiteStore (aiosqlite, WAL mode, PRAGMA version guard)
"""

from certgate.store.models import CertificateRecord, KeyRecord
from certgate.store.protocol import CertificateStore, KeyStore
from certgate.store.sqlite_backend import SQLiteStore

__all__ = [
    "CertificateRecord",
    "CertificateStore",
    "KeyRecord",
    "KeyStore",
    "SQLiteStore",
]
