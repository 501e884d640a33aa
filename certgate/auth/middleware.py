"""certgate authentication dependencies.

``require_roles()`` builds a FastAPI Depends()-compatible async dependency that
runs the shared Authenticator (``app.state.authenticator``) for one operation.
The module-level dependencies below are what the routers use; tests swap them
out via ``app.dependency_overrides``.

Failures surface as CertGateError subclasses and are rendered by the exception
handlers registered in main.py. A failing dependency short-circuits the
handler, so no store mutation happens for an unauthenticated request.
"""

from __future__ import annotations

from typing import AbstractSet, Awaitable, Callable

from fastapi import Request

from certgate.auth.authenticator import AuthResult, Authenticator
from certgate.auth.roles import (
    CERTIFICATE_ADMIN_ROLES,
    CERTIFICATE_WRITER_ROLES,
    KEY_ADMIN_ROLES,
    KEY_CREATOR_ROLES,
    Role,
)


def require_roles(
    roles: AbstractSet[Role],
    allow_bootstrap: bool = False,
) -> Callable[[Request], Awaitable[AuthResult]]:
    """Return a dependency that authenticates the caller for ``roles``."""

    async def dependency(request: Request) -> AuthResult:
        authenticator: Authenticator = request.app.state.authenticator
        return await authenticator.authenticate(
            request, roles, allow_bootstrap=allow_bootstrap
        )

    return dependency


# POST /keys: admin or issuer; bootstrap may onboard reader keys.
require_key_creator = require_roles(KEY_CREATOR_ROLES, allow_bootstrap=True)

# GET/PUT/DELETE /keys/...: admin only.
require_key_admin = require_roles(KEY_ADMIN_ROLES)

# POST /certificates: admin or issuer.
require_certificate_writer = require_roles(CERTIFICATE_WRITER_ROLES)

# DELETE /certificates/{code}: admin only.
require_certificate_admin = require_roles(CERTIFICATE_ADMIN_ROLES)
