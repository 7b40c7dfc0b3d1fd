"""
Associates Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers; the
       lifespan handler builds every process-wide resource and keeps it on
       app.state.
Who:   uvicorn (`uvicorn associates_api.main:app`) and the test suite, which
       calls create_app() with its own Settings.

Application Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │                        FastAPI App                        │
    │                                                           │
    │  Middleware:  CORS → Request ID → Logging → GZip          │
    │                                                           │
    │  Routes:                                                  │
    │   /api/auth/*   /api/<resource>[/{id}]   /api/upload      │
    │   /api/delete   /health   /                               │
    │                                                           │
    │  app.state:  settings, engine, session_factory,           │
    │              auth_gate, media_client                      │
    └───────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Configure logging
    2. Validate configuration; ConfigurationError aborts startup
    3. Create the database engine and session factory
    4. Build the auth gate and the media host client
    5. Provision the bootstrap admin if configured and none exists

    Shutdown:
    1. Close the media host client
    2. Dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from associates_api import __version__
from associates_api.config import Settings, settings as default_settings
from associates_api.database import create_engine_from_settings, dispose_engine
from associates_api.exceptions import (
    AppError,
    AuthenticationRequired,
    ConfigurationError,
    ConflictError,
    DatabaseError,
    MediaHostError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from associates_api.middleware.logging import RequestLoggingMiddleware
from associates_api.middleware.request_id import RequestIDMiddleware, request_id_var
from associates_api.routes import auth, health, media, resources
from associates_api.services.auth_gate import AuthGate
from associates_api.services.credential_service import credential_service
from associates_api.services.media_service import MediaHostClient
from associates_api.services.passwords import hash_secret

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str) -> None:
    """
    Configure the root logger once, writing to stdout (captured by Docker).

    Format: 2024-01-15T12:00:00 [INFO] associates_api.services.auth_gate: ...
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # These log every connection and query at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

async def bootstrap_admin(app: FastAPI, config: Settings) -> None:
    """Create the first admin credential when ADMIN_INITIAL_PASSWORD is set."""
    if not config.admin_initial_password:
        return

    secret_hash = await run_in_threadpool(hash_secret, config.admin_initial_password)
    async with app.state.session_factory() as session:
        try:
            created = await credential_service.bootstrap_admin(
                session, config.admin_initial_username, secret_hash
            )
            await session.commit()
        except ConflictError:
            # Another worker won the race
            created = False
        except Exception:
            await session.rollback()
            raise

    if created:
        logger.info("Bootstrap admin '%s' created", config.admin_initial_username)
    else:
        logger.info("Credentials already provisioned; bootstrap admin skipped")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(config.log_level)
    logger.info("=" * 60)
    logger.info("Associates Backend %s starting up...", __version__)

    try:
        config.validate_required_for_production()
    except ConfigurationError as e:
        logger.critical("%s", e)
        logger.critical("Fix the configuration and restart the server.")
        raise

    engine, session_factory = create_engine_from_settings(config)
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.auth_gate = AuthGate.from_settings(config)
    app.state.media_client = MediaHostClient.from_settings(config)

    if not config.media_configured:
        logger.warning("Cloudinary credentials are not set; /api/upload and /api/delete will fail")

    try:
        await bootstrap_admin(app, config)
    except Exception:
        await app.state.media_client.aclose()
        await dispose_engine(engine)
        raise

    logger.info("CORS allow-list: %s", ", ".join(config.cors_origins_list))
    logger.info("Server ready at http://%s:%d", config.backend_host, config.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Associates Backend shutting down...")
    await app.state.media_client.aclose()
    await dispose_engine(engine)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    return request_id_var.get("") or getattr(request.state, "request_id", "")


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the AppError hierarchy to HTTP responses.

        ValidationError         → 400 {error, message, details, request_id}
        AuthenticationRequired  → 401 {"message": "unauthenticated"}
        PermissionDeniedError   → 403 {"message": "forbidden"}
        NotFoundError           → 404
        ConflictError           → 409
        MediaHostError          → 502
        DatabaseError           → 500
        AppError / Exception    → 500

    Auth responses carry nothing but the message. Every other body includes
    the request ID; none includes exc.context, which is logged instead.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = _request_id(request)
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": {"field": exc.field} if exc.field else None,
                "request_id": rid,
            },
        )

    @app.exception_handler(AuthenticationRequired)
    async def handle_unauthenticated(request: Request, exc: AuthenticationRequired):
        return JSONResponse(status_code=401, content={"message": exc.message})

    @app.exception_handler(PermissionDeniedError)
    async def handle_forbidden(request: Request, exc: PermissionDeniedError):
        return JSONResponse(status_code=403, content={"message": exc.message})

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content={
                "error": "not_found",
                "message": exc.message,
                "request_id": _request_id(request),
            },
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return JSONResponse(
            status_code=409,
            content={
                "error": "conflict",
                "message": exc.message,
                "request_id": _request_id(request),
            },
        )

    @app.exception_handler(MediaHostError)
    async def handle_media_host_error(request: Request, exc: MediaHostError):
        rid = _request_id(request)
        logger.error("[%s] Media host error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=502,
            content={
                "error": "media_host_error",
                "message": "The media service is unavailable. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = _request_id(request)
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        rid = _request_id(request)
        logger.error("[%s] Unhandled %s: %s", rid, type(exc).__name__, exc.message)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Assemble the application.

    Args:
        settings: Configuration to run with; defaults to the environment-loaded
                  singleton. Tests pass their own instance.
    """
    config = settings or default_settings

    app = FastAPI(
        title="Associates API",
        description=(
            "Content and media backend for the firm's public website and admin panel: "
            "blog, jobs, team, gallery, about, news and legal services, plus image "
            "upload to the media host and cookie-based admin sessions."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = config

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: CORS → RequestID → Logging → GZip
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Credentials are allowed, so origins must be an explicit list, never "*"
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count"],
    )

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(media.router)
    for router in resources.routers:
        app.include_router(router)

    return app


app = create_app()
