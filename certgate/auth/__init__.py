"""certgate credential package.

Public API (leaf modules only, so that the store package can import roles
without pulling in the authenticator):
  - Role, can_create()               — closed role enum + creation policy
  - generate_secret(), derive_key_id() — secret / key id generation
  - issue_token(), verify()          — JWT codec

Layout:
    roles.py          — Role enum, role sets, can_create()
    tokens.py         — decode_unverified() / verify() / issue_token()
    credentials.py    — generate_secret() / derive_key_id()
    authenticator.py  — Authenticator + AuthResult
    lifecycle.py      — KeyLifecycleManager
    middleware.py     — FastAPI auth dependencies
    router.py         — /keys endpoints
    cli.py            — certgate-token command
"""

from certgate.auth.credentials import derive_key_id, generate_secret
from certgate.auth.roles import Role, can_create
from certgate.auth.tokens import issue_token, verify

__all__ = [
    "Role",
    "can_create",
    "derive_key_id",
    "generate_secret",
    "issue_token",
    "verify",
]
