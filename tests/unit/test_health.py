"""Unit tests for certgate/health.py — GET /health."""

from __future__ import annotations

from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from certgate.config import Config
from certgate.main import create_app, lifespan
from tests.helpers import BOOTSTRAP_SECRET

pytestmark = pytest.mark.asyncio


def make_config(tmp_path: Path) -> Config:
    config = Config.defaults()
    config.store.path = str(tmp_path / "health.db")
    config.auth.bootstrap_secret = BOOTSTRAP_SECRET
    return config


async def test_503_before_startup(tmp_path: Path) -> None:
    app = create_app(make_config(tmp_path))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/health")
    assert response.status_code == 503
    assert response.json() == {"status": "starting", "message": "certgate is starting up."}


async def test_ok_after_startup(tmp_path: Path) -> None:
    app = create_app(make_config(tmp_path))
    async with lifespan(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "store": "healthy",
        "db_path": str(tmp_path / "health.db"),
    }


async def test_degraded_when_store_probe_fails(tmp_path: Path) -> None:
    app = create_app(make_config(tmp_path))
    async with lifespan(app):
        await app.state.store.close()
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "degraded"
    assert response.json()["store"] == "error"


async def test_503_again_after_shutdown(tmp_path: Path) -> None:
    app = create_app(make_config(tmp_path))
    async with lifespan(app):
        pass
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/health")
    assert response.status_code == 503


async def test_health_needs_no_credentials(tmp_path: Path) -> None:
    app = create_app(make_config(tmp_path))
    async with lifespan(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 200
