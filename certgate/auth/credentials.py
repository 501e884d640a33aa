"""Secret generation and key id derivation.

generate_secret() — 256-bit URL-safe secret used as a key's HMAC signing secret.
derive_key_id()   — readable-but-unpredictable key id from a human label.

Derived id format: ``<normalised label>_<16 hex chars>``, e.g.
``"event team"`` → ``"event_team_3f9a0c1b7d2e4a65"``. The digest is a salted
SHA-256 of the raw (un-normalised) label, so labels that normalise to the same
prefix still get different ids.
"""

from __future__ import annotations

import hashlib
import re
import secrets

from certgate.constants import KEY_ID_DIGEST_LENGTH, SECRET_BYTES

_WHITESPACE_RE = re.compile(r"\s+")


def generate_secret() -> str:
    """Return SECRET_BYTES of cryptographically secure randomness, URL-safe encoded.

    Always SECRET_ENCODED_LENGTH (43) characters; no ``=`` padding.
    """
    return secrets.token_urlsafe(SECRET_BYTES)


def normalise_label(label: str) -> str:
    """Lowercase ``label`` and collapse whitespace runs into single underscores."""
    return _WHITESPACE_RE.sub("_", label.strip().lower())


def derive_key_id(label: str, salt: str = "") -> str:
    """Derive a key id from ``label``.

    Deterministic for a given (label, salt) pair. Collisions between distinct
    labels require a SHA-256 prefix collision and are not handled specially —
    the lifecycle manager surfaces any clash with an existing id as a 409.
    """
    digest = hashlib.sha256(f"{salt}:{label}".encode()).hexdigest()
    return f"{normalise_label(label)}_{digest[:KEY_ID_DIGEST_LENGTH]}"
