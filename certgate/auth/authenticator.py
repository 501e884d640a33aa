"""Bearer-token authenticator.

Authenticator.authenticate() turns an incoming request into an AuthResult or
raises a CertGateError subclass. Checks run in a fixed order and the first
failure wins:

  1. Authorization header missing or not ``Bearer <token>``    → 401
  2. Token unparseable or payload has no keyId                  → 400
  3. keyId == "bootstrap" on a bootstrap-enabled operation      → verify against
     the configured bootstrap secret (401 on failure)
  4. keyId not in the store                                     → 403
  5. Stored record has no secret                                → 500
  6. Signature / expiry check                                   → 401
  7. Key inactive                                               → 403
  8. Role not in required_roles                                 → 403
  9. AuthResult(role, key_id)

The signature is always verified before the record's isActive flag or role is
disclosed through a distinct 403 message. Store failures map to 500
"Internal Server Error during authentication".

Secrets and raw tokens are never logged.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import AbstractSet

from fastapi import Request

from certgate.auth import tokens
from certgate.auth.roles import Role
from certgate.constants import (
    BOOTSTRAP_KEY_ID,
    MSG_AUTH_INTERNAL_ERROR,
    MSG_KEY_INACTIVE,
    MSG_KEY_MISSING_SECRET,
    MSG_KEY_NOT_FOUND,
    MSG_MISSING_AUTH_HEADER,
    MSG_MISSING_KEY_ID,
    MSG_ROLE_NOT_AUTHORIZED,
    MSG_TOKEN_EXPIRED,
    MSG_TOKEN_INVALID,
)
from certgate.errors import (
    AuthenticationError,
    AuthorizationError,
    ClientInputError,
    InternalInvariantViolation,
    StoreError,
)
from certgate.store.protocol import KeyStore
from certgate.utils.logger import get_logger

logger = get_logger(__name__)

# Case-sensitive scheme, exactly one space, then a non-empty token.
_BEARER_RE = re.compile(r"^Bearer (\S+)")


@dataclass(frozen=True)
class AuthResult:
    """Identity of an authenticated caller."""

    role: Role
    key_id: str


def _extract_bearer(authorization: str) -> str | None:
    if not authorization:
        return None
    m = _BEARER_RE.match(authorization)
    return m.group(1) if m else None


class Authenticator:
    """Validates bearer JWTs against the key store.

    Args:
        store:            KeyStore used to look up the claimed keyId.
        bootstrap_secret: HMAC secret of the bootstrap pseudo-key.
    """

    def __init__(self, store: KeyStore, bootstrap_secret: str) -> None:
        if not bootstrap_secret:
            raise ValueError("bootstrap_secret must be a non-empty string")
        self._store = store
        self._bootstrap_secret = bootstrap_secret

    async def authenticate(
        self,
        request: Request,
        required_roles: AbstractSet[Role],
        allow_bootstrap: bool = False,
    ) -> AuthResult:
        """Authenticate ``request`` for an operation open to ``required_roles``.

        Raises:
            AuthenticationError (401), ClientInputError (400),
            AuthorizationError (403), InternalInvariantViolation (500).
        """
        path = str(request.url.path)

        # ── 1. Header ─────────────────────────────────────────────────────────
        token = _extract_bearer(request.headers.get("Authorization", ""))
        if token is None:
            logger.warning("Authentication failed", reason="missing_header", path=path)
            raise AuthenticationError(MSG_MISSING_AUTH_HEADER, reason="missing")

        # ── 2. Claimed keyId ──────────────────────────────────────────────────
        try:
            key_id = tokens.decode_unverified(token)
        except tokens.MalformedTokenError as exc:
            logger.warning("Authentication failed", reason="missing_key_id", path=path)
            raise ClientInputError(MSG_MISSING_KEY_ID) from exc

        # ── 3. Bootstrap pseudo-key ───────────────────────────────────────────
        if allow_bootstrap and key_id == BOOTSTRAP_KEY_ID:
            self._verify(token, self._bootstrap_secret, key_id, path)
            logger.info("Bootstrap credential authenticated", path=path)
            return AuthResult(role=Role.BOOTSTRAP, key_id=BOOTSTRAP_KEY_ID)

        # ── 4. Lookup ─────────────────────────────────────────────────────────
        try:
            record = await self._store.get(key_id)
        except StoreError as exc:
            logger.error("Key lookup failed", key_id=key_id, path=path, error=str(exc))
            raise InternalInvariantViolation(MSG_AUTH_INTERNAL_ERROR, error=str(exc)) from exc

        if record is None:
            logger.warning("Authentication failed", reason="unknown_key", key_id=key_id, path=path)
            raise AuthorizationError(MSG_KEY_NOT_FOUND)

        # ── 5. Secret present ─────────────────────────────────────────────────
        if not record.secret:
            logger.error("Key record missing secret", key_id=key_id)
            raise InternalInvariantViolation(MSG_KEY_MISSING_SECRET)

        # ── 6. Signature + expiry ─────────────────────────────────────────────
        self._verify(token, record.secret, key_id, path)

        # ── 7. Active ─────────────────────────────────────────────────────────
        if not record.is_active:
            logger.warning("Authentication failed", reason="inactive", key_id=key_id, path=path)
            raise AuthorizationError(MSG_KEY_INACTIVE)

        # ── 8. Role ───────────────────────────────────────────────────────────
        if record.role not in required_roles:
            logger.warning(
                "Authorization failed",
                reason="role",
                key_id=key_id,
                role=record.role.value,
                path=path,
            )
            raise AuthorizationError(MSG_ROLE_NOT_AUTHORIZED.format(role=record.role.value))

        return AuthResult(role=record.role, key_id=key_id)

    @staticmethod
    def _verify(token: str, secret: str, key_id: str, path: str) -> None:
        try:
            tokens.verify(token, secret)
        except tokens.TokenExpiredError as exc:
            logger.warning("Authentication failed", reason="expired", key_id=key_id, path=path)
            raise AuthenticationError(MSG_TOKEN_EXPIRED, error=str(exc), reason="expired") from exc
        except tokens.TokenError as exc:
            logger.warning("Authentication failed", reason="invalid", key_id=key_id, path=path)
            raise AuthenticationError(MSG_TOKEN_INVALID, error=str(exc), reason="invalid") from exc
