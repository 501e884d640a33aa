"""Key lifecycle manager — create, update, deactivate, read.

State machine per key record:

    (none) ──create_key──▶ ACTIVE ◀──update_key(isActive)──▶ INACTIVE
                             │                                  ▲
                             └──────────deactivate_key──────────┘

Records are never hard-deleted; a deactivated key keeps its id and
description reserved.

Rules enforced here, independent of the HTTP layer:
  - who may create which role (roles.can_create)
  - description: trimmed, at least 3 characters, unique across all keys
  - an admin cannot deactivate itself or drop its own admin role
  - every input is validated before the first store write

Payloads arrive as the raw decoded JSON body (camelCase keys) so that each
validation failure can carry its own 400 message.
"""

from __future__ import annotations

import secrets
from typing import Any, Optional

from certgate.auth.authenticator import AuthResult
from certgate.auth.credentials import derive_key_id, generate_secret
from certgate.auth.roles import KEY_ADMIN_ROLES, Role, can_create
from certgate.constants import (
    MIN_DESCRIPTION_LENGTH,
    MIN_EXPLICIT_SECRET_LENGTH,
    MSG_AMBIGUOUS_TARGET,
    MSG_DUPLICATE_DESCRIPTION,
    MSG_DUPLICATE_KEY_ID,
    MSG_INVALID_DESCRIPTION,
    MSG_INVALID_ROLE,
    MSG_INVALID_SECRET,
    MSG_IS_ACTIVE_NOT_BOOLEAN,
    MSG_MISSING_KEY_DATA,
    MSG_NO_FIELDS_TO_UPDATE,
    MSG_ROLE_NOT_AUTHORIZED,
    MSG_SECRET_WARNING,
    MSG_SELF_DEACTIVATION,
    MSG_SELF_ROLE_CHANGE,
    MSG_TARGET_NOT_FOUND,
)
from certgate.errors import (
    AuthorizationError,
    ClientInputError,
    ConflictError,
    DuplicateRecordError,
    NotFoundError,
)
from certgate.store.models import KeyRecord
from certgate.store.protocol import KeyStore
from certgate.utils.logger import get_logger

logger = get_logger(__name__)

# Client field name → store column for update_key().
_UPDATABLE_FIELDS = {
    "role": "role",
    "isActive": "is_active",
    "description": "description",
}


# ─── Field validators ─────────────────────────────────────────────────────────


def _parse_role(value: Any) -> Role:
    role = Role.parse_stored(value)
    if role is None:
        raise ClientInputError(MSG_INVALID_ROLE)
    return role


def _parse_is_active(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ClientInputError(MSG_IS_ACTIVE_NOT_BOOLEAN)
    return value


def _parse_description(value: Any) -> str:
    if not isinstance(value, str) or len(value.strip()) < MIN_DESCRIPTION_LENGTH:
        raise ClientInputError(MSG_INVALID_DESCRIPTION)
    return value.strip()


def _parse_secret(value: Any) -> str:
    if not isinstance(value, str) or len(value) < MIN_EXPLICIT_SECRET_LENGTH:
        raise ClientInputError(MSG_INVALID_SECRET)
    return value


def _forbidden(acting: AuthResult) -> AuthorizationError:
    return AuthorizationError(MSG_ROLE_NOT_AUTHORIZED.format(role=acting.role.value))


# ─── Manager ──────────────────────────────────────────────────────────────────


class KeyLifecycleManager:
    """Applies the key lifecycle rules on top of a KeyStore.

    Args:
        store:       KeyStore holding the key records.
        key_id_salt: Salt mixed into derived key ids.
    """

    def __init__(self, store: KeyStore, key_id_salt: str = "") -> None:
        self._store = store
        self._salt = key_id_salt

    # ── Create ────────────────────────────────────────────────────────────────

    async def create_key(self, acting: AuthResult, payload: Any) -> dict[str, Any]:
        """Create a key record and return it WITH its secret (the only time).

        Raises:
            ClientInputError (400), AuthorizationError (403), ConflictError (409).
        """
        if (
            not isinstance(payload, dict)
            or not payload.get("role")
            or "isActive" not in payload
        ):
            raise ClientInputError(MSG_MISSING_KEY_DATA)

        is_active = _parse_is_active(payload["isActive"])
        role = _parse_role(payload["role"])

        if not can_create(acting.role, role):
            logger.warning(
                "Key creation refused",
                actor=acting.key_id,
                actor_role=acting.role.value,
                requested_role=role.value,
            )
            raise _forbidden(acting)

        description: Optional[str] = None
        if payload.get("description") is not None:
            description = _parse_description(payload["description"])

        secret = (
            _parse_secret(payload["secret"])
            if payload.get("secret") is not None
            else generate_secret()
        )

        # ── Uniqueness (reads only) ───────────────────────────────────────────
        if description is not None:
            if await self._store.query_by_field("description", description):
                raise ConflictError(MSG_DUPLICATE_DESCRIPTION)
            key_id = derive_key_id(description, self._salt)
        else:
            # No description: label by role, with a per-key nonce so that
            # successive unlabelled keys of one role get distinct ids.
            key_id = derive_key_id(role.value, f"{self._salt}:{secrets.token_hex(8)}")

        if await self._store.get(key_id) is not None:
            raise ConflictError(MSG_DUPLICATE_KEY_ID)

        # ── Write ─────────────────────────────────────────────────────────────
        record = KeyRecord(
            id=key_id,
            role=role,
            is_active=is_active,
            secret=secret,
            description=description,
            created_by=acting.key_id,
        )
        try:
            record = await self._store.put(key_id, record)
        except DuplicateRecordError as exc:
            if exc.field == "description":
                raise ConflictError(MSG_DUPLICATE_DESCRIPTION) from exc
            raise ConflictError(MSG_DUPLICATE_KEY_ID) from exc

        logger.info(
            "Key created",
            actor=acting.key_id,
            key_id=key_id,
            role=role.value,
            is_active=is_active,
        )
        return {
            "message": "Key created successfully",
            "id": record.id,
            "keyId": record.id,
            "secret": record.secret,
            "role": record.role.value,
            "isActive": record.is_active,
            "description": record.description,
            "createdAt": record.created_at,
            "createdBy": record.created_by,
            "warning": MSG_SECRET_WARNING,
        }

    # ── Update ────────────────────────────────────────────────────────────────

    async def update_key(
        self, acting: AuthResult, identifier: str, patch: Any
    ) -> dict[str, Any]:
        """Apply a partial update of role / isActive / description.

        Raises:
            AuthorizationError (403), NotFoundError (404), ClientInputError (400),
            ConflictError (409).
        """
        self._require_admin(acting)
        target = await self._resolve_target(identifier)
        patch = patch if isinstance(patch, dict) else {}

        updates: dict[str, Any] = {}
        if "role" in patch:
            updates["role"] = _parse_role(patch["role"])
        if "isActive" in patch:
            updates["is_active"] = _parse_is_active(patch["isActive"])
        if "description" in patch:
            description = _parse_description(patch["description"])
            if description != target.description:
                if await self._store.query_by_field("description", description):
                    raise ConflictError(MSG_DUPLICATE_DESCRIPTION)
            updates["description"] = description

        if not updates:
            raise ClientInputError(MSG_NO_FIELDS_TO_UPDATE)

        is_self_admin = target.role is Role.ADMIN and target.id == acting.key_id
        if is_self_admin and updates.get("is_active") is False:
            raise ClientInputError(MSG_SELF_DEACTIVATION)
        if is_self_admin and updates.get("role", Role.ADMIN) is not Role.ADMIN:
            raise ClientInputError(MSG_SELF_ROLE_CHANGE)

        try:
            updated_at = await self._store.update_fields(
                target.id,
                {**updates, "updated_by": acting.key_id},
                stamp="updated_at",
            )
        except DuplicateRecordError as exc:
            raise ConflictError(MSG_DUPLICATE_DESCRIPTION) from exc

        logger.info(
            "Key updated",
            actor=acting.key_id,
            key_id=target.id,
            fields=sorted(updates),
        )

        client_updates: dict[str, Any] = {}
        for client_name, column in _UPDATABLE_FIELDS.items():
            if column in updates:
                value = updates[column]
                client_updates[client_name] = value.value if isinstance(value, Role) else value
        client_updates["updatedAt"] = updated_at
        client_updates["updatedBy"] = acting.key_id

        return {
            "message": "Key updated successfully",
            "id": target.id,
            "description": updates.get("description", target.description),
            "updates": client_updates,
        }

    # ── Deactivate ────────────────────────────────────────────────────────────

    async def deactivate_key(self, acting: AuthResult, identifier: str) -> dict[str, Any]:
        """Soft-disable a key. The record stays in the store."""
        self._require_admin(acting)
        target = await self._resolve_target(identifier)

        if target.role is Role.ADMIN and target.id == acting.key_id:
            raise ClientInputError(MSG_SELF_DEACTIVATION)

        deactivated_at = await self._store.update_fields(
            target.id,
            {"is_active": False, "deactivated_by": acting.key_id},
            stamp="deactivated_at",
        )
        logger.info("Key deactivated", actor=acting.key_id, key_id=target.id)
        return {
            "message": "Key deactivated successfully",
            "id": target.id,
            "description": target.description,
            "deactivatedAt": deactivated_at,
            "deactivatedBy": acting.key_id,
        }

    # ── Read ──────────────────────────────────────────────────────────────────

    async def get_key(self, acting: AuthResult, identifier: str) -> dict[str, Any]:
        self._require_admin(acting)
        target = await self._resolve_target(identifier)
        return target.public_view()

    async def list_keys(self, acting: AuthResult) -> dict[str, Any]:
        self._require_admin(acting)
        records = await self._store.list_keys()
        return {"keys": [record.public_view() for record in records]}

    # ── Helpers ───────────────────────────────────────────────────────────────

    @staticmethod
    def _require_admin(acting: AuthResult) -> None:
        if acting.role not in KEY_ADMIN_ROLES:
            raise _forbidden(acting)

    async def _resolve_target(self, identifier: str) -> KeyRecord:
        """Find a key by primary id, falling back to its unique description.

        Raises:
            NotFoundError (404):    nothing matches.
            ClientInputError (400): more than one key carries the description.
        """
        record = await self._store.get(identifier)
        if record is not None:
            return record

        matches = await self._store.query_by_field("description", identifier)
        if not matches:
            raise NotFoundError(MSG_TARGET_NOT_FOUND)
        if len(matches) > 1:
            raise ClientInputError(MSG_AMBIGUOUS_TARGET)
        return matches[0]
