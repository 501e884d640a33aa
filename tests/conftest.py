"""Root test configuration for certgate.

Isolates every test from the developer's environment: CERTGATE_* variables are
cleared (the bootstrap secret is set to a test value), the working directory
is a fresh tmp dir and the home-directory config file is never consulted.
"""

from __future__ import annotations

from pathlib import Path
from typing import AsyncIterator

import pytest

from certgate.store.sqlite_backend import SQLiteStore
from tests.helpers import BOOTSTRAP_SECRET


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Clear CERTGATE_* overrides and hide any real config files."""
    for name in (
        "CERTGATE_CONFIG",
        "CERTGATE_PORT",
        "CERTGATE_DB_PATH",
        "CERTGATE_KEY_ID_SALT",
        "CERTGATE_TOKEN_SECRET",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CERTGATE_BOOTSTRAP_SECRET", BOOTSTRAP_SECRET)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("certgate.config.DEFAULT_CONFIG_PATHS", [".certgate/config.yaml"])


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Reset the in-memory rate limiter storage between tests.

    Prevents test-to-test rate limit bleed where multiple tests hitting the
    same endpoint within the same minute would trigger a 429.
    """
    from certgate.auth.limiter import limiter

    limiter.reset()


@pytest.fixture
async def store(tmp_path: Path) -> AsyncIterator[SQLiteStore]:
    """Initialized SQLiteStore on tmp_path, closed after the test."""
    backend = SQLiteStore(db_path=str(tmp_path / "certgate.db"))
    await backend.initialize()
    yield backend
    await backend.close()
