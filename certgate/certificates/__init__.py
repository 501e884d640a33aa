"""certgate certificate endpoints (public read, issuer write, admin delete)."""

from certgate.certificates.router import router

__all__ = ["router"]
