"""Typed records produced by the store adapter.

The adapter is the only code that sees raw rows. It either returns one of these
dataclasses or raises StoreError — the authenticator and lifecycle manager never
inspect raw database shapes.

IMPORTANT — KeyRecord.secret safety contract:
    ``secret`` is the HMAC signing secret for the key's JWTs. It is returned to a
    client exactly once, in the create-key response. Every other read path must
    go through KeyRecord.public_view(), which omits it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from certgate.auth.roles import Role


@dataclass
class KeyRecord:
    """A stored API credential."""

    id: str
    role: Role
    is_active: bool
    secret: Optional[str] = None
    """None only for a corrupted row; the authenticator reports that as a 500."""
    description: Optional[str] = None
    created_at: Optional[str] = None
    created_by: Optional[str] = None
    updated_at: Optional[str] = None
    updated_by: Optional[str] = None
    deactivated_at: Optional[str] = None
    deactivated_by: Optional[str] = None

    def public_view(self) -> dict[str, Any]:
        """Client-facing representation WITHOUT the secret (camelCase keys)."""
        return {
            "id": self.id,
            "role": self.role.value,
            "isActive": self.is_active,
            "description": self.description,
            "createdAt": self.created_at,
            "createdBy": self.created_by,
            "updatedAt": self.updated_at,
            "updatedBy": self.updated_by,
            "deactivatedAt": self.deactivated_at,
            "deactivatedBy": self.deactivated_by,
        }


@dataclass
class CertificateRecord:
    """An issued event-participation certificate, keyed by its public code."""

    code: str
    name: str
    event: str
    timestamp: Optional[str] = None
    created_by: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)
    """Additional client-supplied fields, stored and returned verbatim."""

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = dict(self.extra)
        body.update(
            {
                "id": self.code,
                "code": self.code,
                "name": self.name,
                "event": self.event,
                "timestamp": self.timestamp,
                "createdBy": self.created_by,
            }
        )
        return body
