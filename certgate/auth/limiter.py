"""Shared rate limiter for certgate key-management and certificate-write endpoints.

Uses slowapi (Starlette-compatible rate limiting), keyed by client address.

The Limiter instance is created here and shared between:
  - certgate/auth/router.py          (key route decorators)
  - certgate/certificates/router.py  (write/delete route decorators)
  - certgate/main.py                 (app.state.limiter + SlowAPIMiddleware registration)
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)

# Key create/update/deactivate/list
KEY_MANAGEMENT_RATE_LIMIT = "20/minute"

# Certificate write/delete
CERTIFICATE_WRITE_RATE_LIMIT = "60/minute"
