"""
Murmur Backend — FastAPI Application Factory
=============================================

What:  Builds the FastAPI app: logging, middleware, error mapping, routers.
Why:   Centralizes middleware registration, route mounting, exception mapping
       and lifecycle management in one place.
How:   create_app() assembles a fresh instance; `app` below is the one uvicorn serves.
Who:   Called by uvicorn to start the server (uvicorn murmur.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                        │
    │  ┌──────────┐ ┌──────────┐ ┌──────────┐ ┌──────────┐     │
    │  │ Req ID   │→│ Logging  │→│  GZip    │→│  CORS    │     │
    │  └──────────┘ └──────────┘ └──────────┘ └──────────┘     │
    │                                                          │
    │  Routes:                                                 │
    │  ┌──────────┐ ┌──────────┐ ┌──────────┐ ┌──────────┐     │
    │  │ /api/auth│ │/api/users│ │/api/posts│ │/api/notes│     │
    │  └──────────┘ └──────────┘ └──────────┘ └──────────┘     │
    │                                  ┌──────────┐            │
    │                                  │ /health  │            │
    │                                  └──────────┘            │
    │  Exception Handlers:                                     │
    │  ┌────────────────────────────────────────────────────┐  │
    │  │ Validation→400 │ Auth→401 │ Forbidden→403 │ 404 │ 500│  │
    │  └────────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (logged, not fatal)
    3. Open the Database handle and store it on app.state

    Shutdown:
    1. Dispose the database engine (close all pooled connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from murmur import __version__
from murmur.config import settings
from murmur.database import Database
from murmur.exceptions import (
    AuthenticationError,
    DuplicateIdentityError,
    InvalidCredentialsError,
    MurmurError,
    NotAuthorizedError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)
from murmur.middleware.logging import RequestLoggingMiddleware
from murmur.middleware.request_id import RequestIDLogFilter, RequestIDMiddleware, request_id_var
from murmur.routes import auth, health, notes, posts, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    When:    Called once during app startup (before any other initialization).
    Format:  %(asctime)s [%(levelname)s] %(name)s [%(request_id)s] %(message)s

    The request id comes from RequestIDLogFilter; outside a request it is "-".
    """
    handler = logging.StreamHandler(sys.stdout)  # Docker captures stdout
    handler.addFilter(RequestIDLogFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Murmur Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Not fatal: local development runs with the default secret
        logger.error("Configuration error: %s", str(e))

    database = Database()
    app.state.database = database
    if settings.is_sqlite:
        # No migrations for the SQLite development database
        await database.create_all()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield  # Application runs here

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Murmur Backend shutting down...")
    await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(
    error: str, message: str, details: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "error": error,
        "message": message,
        "request_id": request_id_var.get(""),
    }
    if details:
        body["details"] = details
    return body


def _field_details(exc: MurmurError) -> Optional[Dict[str, Any]]:
    """Client-facing details: only the offending field. The rest of exc.context is for the log."""
    field = getattr(exc, "field", None)
    return {"field": field} if field else None


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and the standard error body.

    Handler hierarchy (subclasses resolve through their parent's handler):
        ValidationError, RequestValidationError → 400 validation_error
        DuplicateIdentityError                  → 400 duplicate_identity
        InvalidCredentialsError                 → 400 invalid_credentials
        AuthenticationError                     → 401 unauthenticated
        NotAuthorizedError                      → 403 not_authorized
        NotFoundError                           → 404 not_found
        TransientStoreError                     → 500 transient_error
        MurmurError (base)                      → 500 server_error
        Exception (fallback)                    → 500 internal_server_error

    Security: 500 responses NEVER carry internal details (driver errors, SQL,
    stack traces). Those are logged server-side with the request id.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("Validation error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, _field_details(exc)),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        """Pydantic rejected the body or query; report the first problem."""
        errors = jsonable_encoder(exc.errors())
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        if location:
            message = f"{location}: {message}"
        logger.warning("Request validation error: %s", message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", message, {"errors": errors}),
        )

    @app.exception_handler(DuplicateIdentityError)
    async def handle_duplicate_identity(request: Request, exc: DuplicateIdentityError):
        return JSONResponse(
            status_code=400,
            content=_error_body("duplicate_identity", exc.message, _field_details(exc)),
        )

    @app.exception_handler(InvalidCredentialsError)
    async def handle_invalid_credentials(request: Request, exc: InvalidCredentialsError):
        return JSONResponse(
            status_code=400,
            content=_error_body("invalid_credentials", exc.message),
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return JSONResponse(
            status_code=401,
            content=_error_body("unauthenticated", exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(NotAuthorizedError)
    async def handle_not_authorized(request: Request, exc: NotAuthorizedError):
        logger.info("Forbidden: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=403,
            content=_error_body("not_authorized", exc.message),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content=_error_body("not_found", exc.message),
        )

    @app.exception_handler(TransientStoreError)
    async def handle_transient_store_error(request: Request, exc: TransientStoreError):
        logger.error("Store error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("transient_error", exc.message),
        )

    @app.exception_handler(MurmurError)
    async def handle_murmur_error(request: Request, exc: MurmurError):
        logger.error("Unhandled application error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all: generic 500 body, full stack trace in the server log only."""
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Tests build a fresh instance per test and override `get_db_session`;
    uvicorn imports the module-level `app` below.
    """
    app = FastAPI(
        title="Murmur API",
        description=(
            "Social backend: accounts, follow graph, posts with likes and "
            "comments, and private notes."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition:
    # RequestID → Logging → GZip → CORS → route
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(posts.router)
    app.include_router(notes.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `murmur.main:app` to be importable
app = create_app()
