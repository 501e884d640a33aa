"""Unit tests for certgate/auth/router.py — the /keys endpoints.

Authentication is replaced via dependency_overrides; the lifecycle manager is
real and runs on a tmp-path SQLiteStore, so these tests cover the HTTP
contract: status codes, the JSON error envelope, body decoding and the
one-time secret.
"""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from certgate.auth.authenticator import AuthResult
from certgate.auth.lifecycle import KeyLifecycleManager
from certgate.auth.limiter import limiter
from certgate.auth.middleware import require_key_admin, require_key_creator
from certgate.auth.roles import Role
from certgate.auth.router import get_key_manager, router as keys_router
from certgate.constants import (
    MSG_INVALID_JSON,
    MSG_INVALID_ROLE,
    MSG_MISSING_AUTH_HEADER,
    MSG_MISSING_KEY_DATA,
    MSG_SELF_DEACTIVATION,
    MSG_TARGET_NOT_FOUND,
)
from certgate.errors import AuthenticationError
from certgate.main import register_exception_handlers
from certgate.store.sqlite_backend import SQLiteStore
from tests.helpers import ADMIN, ADMIN_SECRET, BOOTSTRAP, ISSUER, seed_key

pytestmark = pytest.mark.asyncio


def make_test_app(store: SQLiteStore, acting: AuthResult = ADMIN) -> FastAPI:
    """Minimal app with the keys router; every caller is ``acting``."""
    app = FastAPI()
    app.state.limiter = limiter
    manager = KeyLifecycleManager(store, key_id_salt="pepper")

    async def mock_auth() -> AuthResult:
        return acting

    app.dependency_overrides[require_key_creator] = mock_auth
    app.dependency_overrides[require_key_admin] = mock_auth
    app.dependency_overrides[get_key_manager] = lambda: manager
    app.include_router(keys_router)
    register_exception_handlers(app)
    return app


def make_unauth_app(store: SQLiteStore) -> FastAPI:
    app = make_test_app(store)

    async def raise_401() -> AuthResult:
        raise AuthenticationError(MSG_MISSING_AUTH_HEADER, reason="missing")

    app.dependency_overrides[require_key_creator] = raise_401
    app.dependency_overrides[require_key_admin] = raise_401
    return app


def client_for(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class TestCreateKey:
    async def test_returns_201_with_secret(self, store: SQLiteStore) -> None:
        async with client_for(make_test_app(store)) as client:
            response = await client.post(
                "/keys", json={"role": "issuer", "isActive": True, "description": "Event Team"}
            )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Key created successfully"
        assert body["id"].startswith("event_team_")
        assert body["keyId"] == body["id"]
        assert len(body["secret"]) == 43
        assert body["createdBy"] == ADMIN.key_id

        record = await store.get(body["id"])
        assert record is not None
        assert record.secret == body["secret"]

    async def test_invalid_json_is_400(self, store: SQLiteStore) -> None:
        async with client_for(make_test_app(store)) as client:
            response = await client.post(
                "/keys", content=b"{not json", headers={"Content-Type": "application/json"}
            )
        assert response.status_code == 400
        assert response.json()["message"] == MSG_INVALID_JSON
        assert "error" in response.json()

    async def test_missing_fields_is_400(self, store: SQLiteStore) -> None:
        async with client_for(make_test_app(store)) as client:
            response = await client.post("/keys", json={"description": "Event Team"})
        assert response.status_code == 400
        assert response.json() == {"message": MSG_MISSING_KEY_DATA}

    async def test_bootstrap_cannot_create_issuer(self, store: SQLiteStore) -> None:
        async with client_for(make_test_app(store, BOOTSTRAP)) as client:
            response = await client.post("/keys", json={"role": "issuer", "isActive": True})
        assert response.status_code == 403
        assert response.json()["message"] == (
            'Forbidden: Role "bootstrap" not authorized for this operation'
        )
        assert await store.list_keys() == []

    async def test_duplicate_description_is_409(self, store: SQLiteStore) -> None:
        await seed_key(store, "existing_1", Role.READER, ADMIN_SECRET, description="Event Team")
        async with client_for(make_test_app(store)) as client:
            response = await client.post(
                "/keys", json={"role": "reader", "isActive": True, "description": "Event Team"}
            )
        assert response.status_code == 409

    async def test_unauthenticated_is_401(self, store: SQLiteStore) -> None:
        async with client_for(make_unauth_app(store)) as client:
            response = await client.post("/keys", json={"role": "reader", "isActive": True})
        assert response.status_code == 401
        assert response.json() == {"message": MSG_MISSING_AUTH_HEADER}


class TestReadKeys:
    async def test_list_never_contains_secrets(self, store: SQLiteStore) -> None:
        await seed_key(store, "k_1", Role.READER, ADMIN_SECRET, description="Front End")
        async with client_for(make_test_app(store)) as client:
            response = await client.get("/keys")
        assert response.status_code == 200
        keys = response.json()["keys"]
        assert [key["id"] for key in keys] == ["k_1"]
        assert ADMIN_SECRET not in response.text

    async def test_get_by_description(self, store: SQLiteStore) -> None:
        await seed_key(store, "k_1", Role.READER, ADMIN_SECRET, description="Front End")
        async with client_for(make_test_app(store)) as client:
            response = await client.get("/keys/Front End")
        assert response.status_code == 200
        assert response.json()["id"] == "k_1"
        assert "secret" not in response.json()

    async def test_get_unknown_is_404(self, store: SQLiteStore) -> None:
        async with client_for(make_test_app(store)) as client:
            response = await client.get("/keys/nope")
        assert response.status_code == 404
        assert response.json() == {"message": MSG_TARGET_NOT_FOUND}


class TestUpdateKey:
    async def test_partial_update(self, store: SQLiteStore) -> None:
        await seed_key(store, "k_1", Role.READER, ADMIN_SECRET, description="Front End")
        async with client_for(make_test_app(store)) as client:
            response = await client.put("/keys/k_1", json={"role": "issuer", "secret": "ignored"})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Key updated successfully"
        assert body["updates"]["role"] == "issuer"
        assert body["updates"]["updatedBy"] == ADMIN.key_id

        record = await store.get("k_1")
        assert record is not None
        assert record.role is Role.ISSUER
        assert record.secret == ADMIN_SECRET

    async def test_invalid_json_is_400(self, store: SQLiteStore) -> None:
        await seed_key(store, "k_1", Role.READER, ADMIN_SECRET)
        async with client_for(make_test_app(store)) as client:
            response = await client.put(
                "/keys/k_1", content=b"[", headers={"Content-Type": "application/json"}
            )
        assert response.status_code == 400
        assert response.json()["message"] == MSG_INVALID_JSON

    async def test_null_role_rejected_without_write(self, store: SQLiteStore) -> None:
        await seed_key(store, "k_1", Role.READER, ADMIN_SECRET)
        async with client_for(make_test_app(store)) as client:
            response = await client.put("/keys/k_1", json={"role": None, "isActive": False})

        assert response.status_code == 400
        assert response.json() == {"message": MSG_INVALID_ROLE}
        record = await store.get("k_1")
        assert record is not None
        assert record.is_active is True
        assert record.updated_at is None

    async def test_issuer_is_403(self, store: SQLiteStore) -> None:
        await seed_key(store, "k_1", Role.READER, ADMIN_SECRET)
        async with client_for(make_test_app(store, ISSUER)) as client:
            response = await client.put("/keys/k_1", json={"isActive": False})
        assert response.status_code == 403


class TestDeactivateKey:
    async def test_deactivate(self, store: SQLiteStore) -> None:
        await seed_key(store, "k_1", Role.READER, ADMIN_SECRET, description="Front End")
        async with client_for(make_test_app(store)) as client:
            response = await client.delete("/keys/Front End")

        assert response.status_code == 200
        assert response.json()["deactivatedBy"] == ADMIN.key_id
        record = await store.get("k_1")
        assert record is not None
        assert record.is_active is False
        assert record.deactivated_at == response.json()["deactivatedAt"]

    async def test_self_deactivation_is_400(self, store: SQLiteStore) -> None:
        await seed_key(store, ADMIN.key_id, Role.ADMIN, ADMIN_SECRET)
        async with client_for(make_test_app(store)) as client:
            response = await client.delete(f"/keys/{ADMIN.key_id}")
        assert response.status_code == 400
        assert response.json() == {"message": MSG_SELF_DEACTIVATION}
