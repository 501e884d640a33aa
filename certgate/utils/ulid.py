"""ULID generation for certgate request ids.

Each HTTP request is tagged with a 26-character ULID (Crockford Base32,
millisecond timestamp + random component). The value is bound into the
structlog context and echoed back in the ``X-Request-ID`` response header so a
client report can be matched to server log lines.

Uses the ``python-ulid`` library — do not hand-roll ULID generation.
"""

from __future__ import annotations

from ulid import ULID


def generate_ulid() -> str:
    """Return a new ULID as a 26-character uppercase string.

    Example::

        request_id = generate_ulid()
        # "01KJ0JRVHYA7KX32VPN5ZSCTMV"
        assert len(request_id) == 26
    """
    return str(ULID())
