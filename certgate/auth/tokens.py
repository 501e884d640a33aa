"""JWT codec for certgate credentials.

A client signs its own short-lived JWT with the secret it received when its
key was created, and sends it as ``Authorization: Bearer <jwt>``. The payload
shape is ``{"keyId": str, "iat": int, "exp": int}``.

Verification is two-phase because the signing secret is per key:
  1. decode_unverified() reads ``keyId`` WITHOUT checking the signature so the
     caller can look up the matching secret.
  2. verify() checks signature and expiry once that secret is known.

Nothing returned by decode_unverified() may be trusted beyond choosing which
secret to verify against.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from certgate.constants import (
    ACCEPTED_JWT_ALGORITHMS,
    DEFAULT_TOKEN_TTL_SECONDS,
    ISSUE_JWT_ALGORITHM,
)


class TokenError(Exception):
    """Base class for codec failures."""


class MalformedTokenError(TokenError):
    """Token cannot be parsed, or its payload lacks a usable ``keyId``."""


class TokenExpiredError(TokenError):
    """Signature is valid but ``exp`` has passed."""


class InvalidSignatureError(TokenError):
    """Signature does not match the secret, or the token fails validation."""


def decode_unverified(token: str) -> str:
    """Return the ``keyId`` claimed by ``token`` without verifying its signature.

    Raises:
        MalformedTokenError: token is not a JWT, or ``keyId`` is missing,
                             empty or not a string.
    """
    try:
        payload = jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": False},
        )
    except jwt.DecodeError as exc:
        raise MalformedTokenError(str(exc)) from exc

    key_id = payload.get("keyId") if isinstance(payload, dict) else None
    if not isinstance(key_id, str) or not key_id:
        raise MalformedTokenError("JWT payload missing keyId")
    return key_id


def verify(token: str, secret: str) -> dict[str, Any]:
    """Verify ``token`` against ``secret`` and return its claims.

    Raises:
        TokenExpiredError:     ``exp`` is in the past.
        InvalidSignatureError: bad signature, unsupported algorithm, or any
                               other claim validation failure.
        MalformedTokenError:   token is structurally broken.
    """
    try:
        return jwt.decode(token, secret, algorithms=list(ACCEPTED_JWT_ALGORITHMS))
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpiredError(str(exc)) from exc
    except jwt.DecodeError as exc:
        # InvalidSignatureError is a DecodeError subclass; check it first.
        if isinstance(exc, jwt.InvalidSignatureError):
            raise InvalidSignatureError(str(exc)) from exc
        raise MalformedTokenError(str(exc)) from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidSignatureError(str(exc)) from exc


def issue_token(
    key_id: str,
    secret: str,
    expires_in: int = DEFAULT_TOKEN_TTL_SECONDS,
) -> str:
    """Sign a bearer token for ``key_id`` with ``secret``.

    Negative ``expires_in`` produces an already-expired token (useful in tests).
    """
    now = datetime.now(timezone.utc)
    payload = {
        "keyId": key_id,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, secret, algorithm=ISSUE_JWT_ALGORITHM)
