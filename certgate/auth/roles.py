"""Role model for certgate credentials.

Role is a closed enum. Stored keys carry ADMIN, ISSUER or READER; BOOTSTRAP is
a pseudo-role that only the configuration-sourced bootstrap credential can
hold and that is never written to the store.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class Role(str, Enum):
    ADMIN = "admin"
    ISSUER = "issuer"
    READER = "reader"
    BOOTSTRAP = "bootstrap"

    @classmethod
    def parse_stored(cls, value: object) -> Optional["Role"]:
        """Return the stored role named by ``value``, or None.

        BOOTSTRAP is rejected: it is never a valid value for a key record.
        """
        if not isinstance(value, str):
            return None
        try:
            role = cls(value)
        except ValueError:
            return None
        return role if role in STORED_ROLES else None


#: Roles a key record may hold.
STORED_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.ISSUER, Role.READER})

#: Roles allowed to manage keys (update, deactivate, list, create issuer/admin).
KEY_ADMIN_ROLES: frozenset[Role] = frozenset({Role.ADMIN})

#: Stored roles allowed to reach the create-key endpoint at all. What they may
#: create is decided per requested role by can_create().
KEY_CREATOR_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.ISSUER})

#: Roles allowed to write certificates.
CERTIFICATE_WRITER_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.ISSUER})

#: Roles allowed to delete certificates.
CERTIFICATE_ADMIN_ROLES: frozenset[Role] = frozenset({Role.ADMIN})


def can_create(acting: Role, requested: Role) -> bool:
    """Return True if a credential with role ``acting`` may create a ``requested`` key.

    reader keys: bootstrap, admin or issuer.
    issuer / admin keys: admin only.
    """
    match requested:
        case Role.READER:
            return acting in (Role.BOOTSTRAP, Role.ADMIN, Role.ISSUER)
        case Role.ISSUER | Role.ADMIN:
            return acting is Role.ADMIN
        case Role.BOOTSTRAP:
            return False
