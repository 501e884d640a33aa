"""Request-id middleware for certgate.

Assigns every request a ULID, binds it into the structlog context (so every
log line emitted while handling the request carries ``request_id``) and echoes
it back in the ``X-Request-ID`` response header.
"""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from certgate.utils.logger import clear_request_id, set_request_id
from certgate.utils.ulid import generate_ulid

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        request_id = generate_ulid()
        request.state.request_id = request_id
        set_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            clear_request_id()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
