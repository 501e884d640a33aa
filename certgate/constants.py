"""Shared constants for certgate.

Numeric limits, well-known identifiers and the client-facing message strings.
The message texts are part of the API contract (the front-end and existing
clients match on them) — change them only together with those clients.
"""

# ─── Credentials ──────────────────────────────────────────────────────────────

# Well-known keyId of the configuration-sourced bootstrap credential.
# Never stored in the keys table; derived ids always contain "_" so no stored
# key can collide with it.
BOOTSTRAP_KEY_ID: str = "bootstrap"

# Random bytes per generated key secret (256 bits).
SECRET_BYTES: int = 32

# URL-safe base64 of SECRET_BYTES without padding: ceil(32 * 4 / 3) = 43 chars.
SECRET_ENCODED_LENGTH: int = 43

# Minimum accepted length for an explicitly supplied secret.
MIN_EXPLICIT_SECRET_LENGTH: int = 32

# Hex characters of the salted digest appended to a derived key id.
KEY_ID_DIGEST_LENGTH: int = 16

# Minimum length of a trimmed key description.
MIN_DESCRIPTION_LENGTH: int = 3

# HMAC algorithms accepted when verifying a key's JWT.
ACCEPTED_JWT_ALGORITHMS: tuple[str, ...] = ("HS256", "HS384", "HS512")

# Algorithm used by issue_token().
ISSUE_JWT_ALGORITHM: str = "HS256"

# Default lifetime of tokens minted by the token CLI (seconds).
DEFAULT_TOKEN_TTL_SECONDS: int = 3600

# ─── Authentication messages ──────────────────────────────────────────────────

MSG_MISSING_AUTH_HEADER = "Authentication required: Missing or invalid Authorization header"
MSG_MISSING_KEY_ID = "Bad Request: JWT payload missing keyId"
MSG_KEY_NOT_FOUND = 'Forbidden: API key not found in "keys" collection'
MSG_KEY_MISSING_SECRET = "Internal Server Error: Key document missing secret"
MSG_TOKEN_EXPIRED = "Authentication failed: JWT expired"
MSG_TOKEN_INVALID = "Authentication failed: Invalid JWT signature or malformed token"
MSG_KEY_INACTIVE = "Forbidden: API key is not active"
MSG_ROLE_NOT_AUTHORIZED = 'Forbidden: Role "{role}" not authorized for this operation'
MSG_AUTH_INTERNAL_ERROR = "Internal Server Error during authentication"

# ─── Key management messages ──────────────────────────────────────────────────

MSG_INVALID_JSON = "Invalid JSON body"
MSG_MISSING_KEY_DATA = "Missing required key data: role and isActive are mandatory"
MSG_INVALID_ROLE = "Invalid role provided. Allowed roles are: admin, issuer, reader"
MSG_IS_ACTIVE_NOT_BOOLEAN = "isActive must be a boolean value"
MSG_INVALID_DESCRIPTION = "Description must be a string with at least 3 characters"
MSG_INVALID_SECRET = "Secret must be a string with at least 32 characters"
MSG_DUPLICATE_DESCRIPTION = "A key with this description already exists"
MSG_DUPLICATE_KEY_ID = (
    "A key with this identifier already exists. Please use a different description."
)
MSG_TARGET_NOT_FOUND = "Key not found. Please check the description or ID."
MSG_AMBIGUOUS_TARGET = (
    "Multiple keys found with this description. Please use the specific key ID."
)
MSG_SELF_DEACTIVATION = "Cannot deactivate your own admin key"
MSG_SELF_ROLE_CHANGE = "Cannot change your own admin role"
MSG_NO_FIELDS_TO_UPDATE = (
    "No valid fields to update. Allowed fields: role, isActive, description"
)
MSG_SECRET_WARNING = "Store this secret securely. It will not be shown again."

# ─── Certificate messages ─────────────────────────────────────────────────────

MSG_MISSING_CODE = 'Missing "code" query parameter'
MSG_CERTIFICATE_NOT_FOUND = "Certificate not found"
MSG_MISSING_CERTIFICATE_DATA = "Missing required certificate data in request body"
MSG_DUPLICATE_CERTIFICATE = "Certificate with this code already exists"

# ─── Generic ──────────────────────────────────────────────────────────────────

MSG_INTERNAL_ERROR = "Internal Server Error"
