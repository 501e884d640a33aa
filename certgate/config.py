"""Config loading for certgate.

Reads `.certgate/config.yaml` (or `~/.certgate/config.yaml`).
Raises SystemExit on parse errors, a missing `version` field, or a missing
bootstrap secret. If no config file is found, defaults are used and the
bootstrap secret must come from the environment.

Config search order:
  1. `config_path` argument (if provided — for testing or explicit override)
  2. CERTGATE_CONFIG environment variable (if set)
  3. `.certgate/config.yaml` (working directory — for development)
  4. `~/.certgate/config.yaml` (home directory — for production deployments)

Environment variable overrides:
  CERTGATE_PORT             — overrides server.port
  CERTGATE_DB_PATH          — overrides store.path
  CERTGATE_BOOTSTRAP_SECRET — overrides auth.bootstrap_secret
  CERTGATE_KEY_ID_SALT      — overrides auth.key_id_salt
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Optional

import yaml

from certgate.constants import DEFAULT_TOKEN_TTL_SECONDS, MIN_EXPLICIT_SECRET_LENGTH
from certgate.utils.logger import get_logger

logger = get_logger(__name__)

# ─── Version constants ────────────────────────────────────────────────────────

SUPPORTED_CONFIG_VERSION = 1
SUPPORTED_VERSIONS: frozenset[int] = frozenset({1})

# Default config search paths (CERTGATE_CONFIG env var prepended at runtime)
DEFAULT_CONFIG_PATHS = [
    ".certgate/config.yaml",
    os.path.expanduser("~/.certgate/config.yaml"),
]

DEFAULT_ALLOW_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
]


def _fail(msg: str) -> None:
    print(msg, file=sys.stderr)
    raise SystemExit(1)


# ─── Dataclasses ─────────────────────────────────────────────────────────────


@dataclass
class ServerConfig:
    """HTTP binding configuration."""

    host: str = "127.0.0.1"
    port: int = 8787


@dataclass
class StoreConfig:
    """Document store configuration."""

    path: str = "~/.certgate/certgate.db"


@dataclass
class AuthConfig:
    """Credential configuration.

    bootstrap_secret:  HMAC secret of the ``bootstrap`` pseudo-key. Required.
    key_id_salt:       Mixed into derived key ids so they cannot be guessed
                       from a description alone.
    token_ttl_seconds: Default lifetime of tokens minted by ``certgate-token``.
    """

    bootstrap_secret: Optional[str] = None
    key_id_salt: str = ""
    token_ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS


@dataclass
class CorsConfig:
    allow_origins: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOW_ORIGINS))


@dataclass
class Config:
    """Root configuration object populated from .certgate/config.yaml."""

    version: int = SUPPORTED_CONFIG_VERSION
    server: ServerConfig = field(default_factory=ServerConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    cors: CorsConfig = field(default_factory=CorsConfig)
    path: Optional[str] = None  # Path to the loaded config file

    @classmethod
    def defaults(cls) -> "Config":
        return cls()

    @classmethod
    def from_dict(cls, raw: dict, path: Optional[str] = None) -> "Config":
        """Construct Config from a parsed YAML dict.

        Merges user-supplied values onto defaults; unknown keys are silently ignored.

        Raises:
            SystemExit(1): On a non-integer port or TTL, or a non-list allow_origins.
        """
        # ── Server ────────────────────────────────────────────────────────────
        server_raw = raw.get("server") or {}
        port = server_raw.get("port", 8787)
        if not isinstance(port, int) or isinstance(port, bool):
            _fail(f"CONFIG ERROR: server.port must be an integer, got {port!r}.")
        server = ServerConfig(host=server_raw.get("host", "127.0.0.1"), port=port)

        # ── Store ─────────────────────────────────────────────────────────────
        store_raw = raw.get("store") or {}
        store = StoreConfig(path=store_raw.get("path", "~/.certgate/certgate.db"))

        # ── Auth ──────────────────────────────────────────────────────────────
        auth_raw = raw.get("auth") or {}
        ttl = auth_raw.get("token_ttl_seconds", DEFAULT_TOKEN_TTL_SECONDS)
        if not isinstance(ttl, int) or isinstance(ttl, bool) or ttl <= 0:
            _fail(
                f"CONFIG ERROR: auth.token_ttl_seconds must be a positive integer, got {ttl!r}."
            )
        auth = AuthConfig(
            bootstrap_secret=auth_raw.get("bootstrap_secret"),
            key_id_salt=str(auth_raw.get("key_id_salt", "")),
            token_ttl_seconds=ttl,
        )

        # ── CORS ──────────────────────────────────────────────────────────────
        cors_raw = raw.get("cors") or {}
        origins = cors_raw.get("allow_origins", list(DEFAULT_ALLOW_ORIGINS))
        if not isinstance(origins, list):
            _fail("CONFIG ERROR: cors.allow_origins must be a list of origins.")
        cors = CorsConfig(allow_origins=[str(origin) for origin in origins])

        return cls(
            version=raw.get("version", SUPPORTED_CONFIG_VERSION),
            server=server,
            store=store,
            auth=auth,
            cors=cors,
            path=path,
        )


# ─── Config loading ───────────────────────────────────────────────────────────


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and validate certgate configuration.

    If no file is found at any search path, defaults are used (not an error).
    If a file is found but invalid, writes error to stderr and raises SystemExit(1).
    Environment overrides are applied in both cases, after which the bootstrap
    secret must be set.

    Raises:
        SystemExit(1): On YAML parse error, missing or unsupported ``version``,
                       invalid section values, invalid ``CERTGATE_PORT``, or a
                       missing bootstrap secret.
    """
    search_paths: list[str] = []
    if config_path:
        search_paths.append(config_path)
    env_config = os.environ.get("CERTGATE_CONFIG")
    if env_config:
        search_paths.append(env_config)
    search_paths.extend(DEFAULT_CONFIG_PATHS)

    found_path: Optional[str] = None
    for candidate in search_paths:
        expanded = os.path.expanduser(candidate)
        if os.path.isfile(expanded):
            found_path = expanded
            break

    if found_path is None:
        logger.info("No config file found — using defaults", searched=search_paths)
        config = Config.defaults()
        _apply_env_overrides(config)
        _require_bootstrap_secret(config)
        return config

    logger.info("Loading config", path=found_path)

    try:
        with open(found_path) as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        _fail(
            f"CONFIG ERROR: Failed to parse {found_path}: {exc}\n"
            "certgate refuses to start with an invalid config. "
            "Check the YAML syntax and try again."
        )
    except OSError as exc:
        _fail(f"CONFIG ERROR: Could not read {found_path}: {exc}")

    if not isinstance(raw, dict):
        if raw is None:
            _fail(
                f"CONFIG ERROR: {found_path} is missing the required 'version' field.\n"
                "Add 'version: 1' to the top of your config file."
            )
        _fail(
            f"CONFIG ERROR: {found_path} is not a valid YAML mapping.\n"
            "The config file must be a YAML dictionary at the top level."
        )

    version = raw.get("version")
    if version is None:
        _fail(
            f"CONFIG ERROR: {found_path} is missing the required 'version' field.\n"
            "Add 'version: 1' to the top of your config file."
        )
    if version not in SUPPORTED_VERSIONS:
        _fail(
            f"CONFIG ERROR: Unsupported config version: {version}. "
            f"Supported versions: {sorted(SUPPORTED_VERSIONS)}."
        )

    config = Config.from_dict(raw, path=found_path)
    _apply_env_overrides(config)
    _require_bootstrap_secret(config)

    if config.server.host == "0.0.0.0":
        logger.warning(
            "SECURITY WARNING: certgate is configured to bind on 0.0.0.0 (all interfaces). "
            "Put it behind a TLS-terminating proxy before exposing it."
        )
    if not config.auth.key_id_salt:
        logger.warning("auth.key_id_salt is empty — derived key ids are predictable")

    logger.info("Config loaded", path=found_path, version=config.version)
    return config


def _apply_env_overrides(config: Config) -> None:
    """Apply environment variable overrides to a Config object in-place.

    Raises:
        SystemExit(1): If CERTGATE_PORT is set but not a valid integer.
    """
    env_port = os.environ.get("CERTGATE_PORT")
    if env_port is not None:
        try:
            config.server.port = int(env_port)
        except ValueError:
            _fail(
                "CONFIG ERROR: CERTGATE_PORT environment variable is not a valid "
                f"integer: '{env_port}'"
            )

    env_db_path = os.environ.get("CERTGATE_DB_PATH")
    if env_db_path:
        config.store.path = env_db_path

    env_secret = os.environ.get("CERTGATE_BOOTSTRAP_SECRET")
    if env_secret:
        config.auth.bootstrap_secret = env_secret

    env_salt = os.environ.get("CERTGATE_KEY_ID_SALT")
    if env_salt is not None:
        config.auth.key_id_salt = env_salt


def _require_bootstrap_secret(config: Config) -> None:
    secret = config.auth.bootstrap_secret
    if not isinstance(secret, str) or not secret:
        _fail(
            "CONFIG ERROR: No bootstrap secret configured.\n"
            "Set auth.bootstrap_secret in the config file or the "
            "CERTGATE_BOOTSTRAP_SECRET environment variable."
        )
    if len(secret) < MIN_EXPLICIT_SECRET_LENGTH:
        logger.warning(
            "Bootstrap secret is shorter than recommended",
            min_length=MIN_EXPLICIT_SECRET_LENGTH,
        )
