"""Exception taxonomy for certgate.

Every failure the API reports to a client is a CertGateError subclass carrying
the HTTP status, the client-facing ``message`` and an optional diagnostic
``error`` string. The FastAPI exception handler in main.py renders them as
``{"message": ..., "error"?: ...}``.

HTTP mapping:
  ClientInputError            400
  AuthenticationError         401
  AuthorizationError          403
  NotFoundError               404
  ConflictError               409
  InternalInvariantViolation  500

All errors are terminal for the current request — nothing is retried.
"""

from __future__ import annotations

from typing import Any, Optional


class CertGateError(Exception):
    """Base class for all client-reportable errors."""

    status_code: int = 500

    def __init__(self, message: str, error: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.error = error

    def to_body(self) -> dict[str, Any]:
        """Render the JSON response envelope."""
        body: dict[str, Any] = {"message": self.message}
        if self.error is not None:
            body["error"] = self.error
        return body


class ClientInputError(CertGateError):
    """Malformed body, missing fields, invalid enum values, structurally bad token."""

    status_code = 400


class AuthenticationError(CertGateError):
    """Missing, expired or invalid credential.

    ``reason`` distinguishes the 401 sub-cases for callers and logs:
    ``"missing"``, ``"expired"`` or ``"invalid"``.
    """

    status_code = 401

    def __init__(
        self, message: str, error: Optional[str] = None, reason: str = "invalid"
    ) -> None:
        super().__init__(message, error)
        self.reason = reason


class AuthorizationError(CertGateError):
    """Valid credential that is unknown, inactive or lacks the required role."""

    status_code = 403


class NotFoundError(CertGateError):
    status_code = 404


class ConflictError(CertGateError):
    """Uniqueness violation (description, derived key id, certificate code)."""

    status_code = 409


class InternalInvariantViolation(CertGateError):
    """Corrupted stored data or an unexpected store failure."""

    status_code = 500


class StoreError(Exception):
    """Raised by the store adapter when the backing database fails.

    Converted into a 500 response at the handler boundary; the underlying
    message is attached as ``error`` for diagnostics.
    """


class DuplicateRecordError(StoreError):
    """A write violated a PRIMARY KEY / UNIQUE constraint in the store."""

    def __init__(self, message: str, field: str) -> None:
        super().__init__(message)
        self.field = field
