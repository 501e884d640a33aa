"""certgate FastAPI application factory + lifespan lifecycle.

This module implements:
  - create_app() — testable application factory
  - lifespan — @asynccontextmanager startup/shutdown sequence
  - exception handlers rendering every error as {"message": ..., "error"?: ...}
  - app = create_app() — module-level instance for uvicorn

Startup sequence:
  1. load_config()            → app.state.config (skipped if create_app() got one)
  2. SQLiteStore.initialize() → app.state.store
  3. Authenticator            → app.state.authenticator
  4. KeyLifecycleManager      → app.state.key_manager
  5. app.state.ready = True

Shutdown (reverse): app.state.ready = False → close store
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from certgate.auth.authenticator import Authenticator
from certgate.auth.lifecycle import KeyLifecycleManager
from certgate.auth.limiter import limiter
from certgate.auth.router import router as keys_router
from certgate.certificates.router import router as certificates_router
from certgate.config import DEFAULT_ALLOW_ORIGINS, Config, load_config
from certgate.constants import MSG_INTERNAL_ERROR
from certgate.errors import CertGateError, StoreError
from certgate.health import router as health_router
from certgate.middleware import RequestIdMiddleware
from certgate.store.sqlite_backend import SQLiteStore
from certgate.utils.logger import configure_logging, get_logger

# ─── Logging Setup ────────────────────────────────────────────────────────────
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if not DEBUG else "DEBUG")
JSON_LOGS = os.getenv("JSON_LOGS", "true").lower() == "true"

configure_logging(log_level=LOG_LEVEL, json_output=JSON_LOGS)
logger = get_logger(__name__)


# ─── Lifespan ─────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan — construct the store and the auth services once."""
    logger.info("certgate starting up...")

    # load_config() raises SystemExit on an invalid file or a missing bootstrap
    # secret, so the process exits before ready=True is ever set.
    config: Optional[Config] = getattr(app.state, "config", None)
    if config is None:
        config = load_config()
        app.state.config = config

    store = SQLiteStore(db_path=config.store.path)
    await store.initialize()
    app.state.store = store

    app.state.authenticator = Authenticator(store, config.auth.bootstrap_secret or "")
    app.state.key_manager = KeyLifecycleManager(store, key_id_salt=config.auth.key_id_salt)

    app.state.ready = True
    logger.info("certgate ready", db_path=store.db_path)

    yield

    logger.info("certgate shutting down...")
    app.state.ready = False
    await store.close()
    logger.info("certgate shutdown complete")


# ─── Application Factory ──────────────────────────────────────────────────────


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Create and configure the certgate FastAPI application.

    Args:
        config: Pre-loaded configuration. When omitted, the lifespan calls
                load_config() and CORS uses the default localhost origins.
    """
    application = FastAPI(
        title="certgate",
        description="Event certificate API with role-based API keys",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if DEBUG else None,
        redoc_url="/redoc" if DEBUG else None,
        openapi_url="/openapi.json" if DEBUG else None,
    )

    # ready is False until the lifespan finishes startup; /health reports 503.
    application.state.ready = False
    if config is not None:
        application.state.config = config

    application.state.limiter = limiter

    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors.allow_origins if config else list(DEFAULT_ALLOW_ORIGINS),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
        expose_headers=["X-Request-ID"],
    )
    application.add_middleware(SlowAPIMiddleware)
    # Added last so it runs first: every later log line carries the request id.
    application.add_middleware(RequestIdMiddleware)

    application.include_router(health_router)
    application.include_router(keys_router)
    application.include_router(certificates_router)

    register_exception_handlers(application)
    return application


# ─── Exception handlers ───────────────────────────────────────────────────────


async def certgate_error_handler(request: Request, exc: CertGateError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Request failed",
            status_code=exc.status_code,
            message=exc.message,
            path=str(request.url.path),
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("Store error", error=str(exc), path=str(request.url.path))
    return JSONResponse(
        status_code=500,
        content={"message": MSG_INTERNAL_ERROR, "error": str(exc)},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.warning(
        "HTTP exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=str(request.url.path),
    )
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=str(request.url.path),
    )
    return JSONResponse(status_code=500, content={"message": MSG_INTERNAL_ERROR})


def register_exception_handlers(application: FastAPI) -> None:
    """Render every failure as ``{"message": ..., "error"?: ...}`` (never a stack trace)."""
    application.add_exception_handler(CertGateError, certgate_error_handler)  # type: ignore[arg-type]
    application.add_exception_handler(StoreError, store_error_handler)  # type: ignore[arg-type]
    application.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    application.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
    application.add_exception_handler(Exception, unhandled_exception_handler)


# ─── Module-Level App (for uvicorn) ───────────────────────────────────────────
#   uvicorn certgate.main:app --host 127.0.0.1 --port 8787

app = create_app()
