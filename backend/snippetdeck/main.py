"""
SnippetDeck Backend — FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers and
       attaches the lifespan that owns the database engine.
Who:   uvicorn (`uvicorn snippetdeck.main:app`) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Rate Limit → Request ID → Access Log       │
    │               → GZip → CORS                              │
    │                                                          │
    │  Routes:      /api/auth/*   /api/snippets/*  /api/health │
    │                                                          │
    │  Exception handlers:                                     │
    │     ValidationFailed→400  Unauthenticated→401            │
    │     Forbidden→403  NotFound→404  Conflict→409  DB→500    │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config checks → engine + session factory on app.state
              → wait for database (tenacity) → optional create_all
    Shutdown: dispose engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from snippetdeck import __version__
from snippetdeck.config import Settings, settings
from snippetdeck.database import (
    build_engine,
    build_session_factory,
    create_schema,
    wait_for_database,
)
from snippetdeck.exceptions import (
    ConflictError,
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    RateLimitExceededError,
    SnippetDeckError,
    UnauthenticatedError,
    ValidationFailedError,
)
from snippetdeck.middleware.logging import RequestLoggingMiddleware
from snippetdeck.middleware.rate_limit import RateLimitMiddleware
from snippetdeck.middleware.request_id import RequestIDMiddleware, request_id_var
from snippetdeck.routes import auth, health, snippets

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(config: Settings = settings) -> None:
    """Configure root logging to stdout at the configured level."""
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-query and per-request chatter from libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

def make_lifespan(config: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # ── Startup ───────────────────────────────────────────────────────
        setup_logging(config)
        logger.info("SnippetDeck Backend %s starting up...", __version__)

        try:
            config.validate_required_for_production()
        except ValueError as e:
            logger.warning("Configuration warning: %s", e)

        engine = build_engine(config)
        app.state.engine = engine
        app.state.session_factory = build_session_factory(engine)

        await wait_for_database(engine, config)
        if config.db_auto_create:
            await create_schema(engine)
            logger.info("Database schema ensured (DB_AUTO_CREATE)")

        logger.info("Server ready at http://%s:%d", config.backend_host, config.backend_port)

        yield

        # ── Shutdown ──────────────────────────────────────────────────────
        logger.info("SnippetDeck Backend shutting down...")
        await engine.dispose()
        logger.info("Shutdown complete.")

    return lifespan


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error(status_code: int, error: str, message: str, details: Optional[dict] = None,
           headers: Optional[dict] = None) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to status codes and the ErrorResponse body.

    Internal details (SQL, stack traces) are logged, never returned.
    """

    @app.exception_handler(ValidationFailedError)
    async def handle_validation_failed(request: Request, exc: ValidationFailedError):
        logger.info("[%s] Validation failed: %s", request_id_var.get(""), exc.message)
        return _error(400, "validation_failed", exc.message, {"fields": exc.fields})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Body/query type errors, reported in the same shape as ValidationFailedError."""
        fields = {}
        for err in exc.errors():
            loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
            name = ".".join(loc) or "body"
            fields.setdefault(name, []).append(f"{name}: {err.get('msg', 'invalid value')}")
        return await handle_validation_failed(request, ValidationFailedError(fields))

    @app.exception_handler(UnauthenticatedError)
    async def handle_unauthenticated(request: Request, exc: UnauthenticatedError):
        return _error(401, "unauthenticated", exc.message,
                      headers={"WWW-Authenticate": "Bearer"})

    @app.exception_handler(ForbiddenError)
    async def handle_forbidden(request: Request, exc: ForbiddenError):
        return _error(403, "forbidden", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error(404, "not_found", exc.message)

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return _error(409, "conflict", exc.message, exc.context)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error(429, "rate_limit_exceeded", exc.message, exc.context,
                      headers={"Retry-After": str(exc.retry_after)})

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s",
                     request_id_var.get(""), exc.message, exc.context)
        return _error(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(SnippetDeckError)
    async def handle_app_error(request: Request, exc: SnippetDeckError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return _error(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), exc, exc_info=True)
        return _error(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(config: Settings = settings) -> FastAPI:
    """Build a fully configured application. Each call returns a fresh app."""
    app = FastAPI(
        title="SnippetDeck API",
        description=(
            "Store, tag, filter and share code snippets. "
            "Snippets are private to their owner unless marked public."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=make_lifespan(config),
    )

    # Middleware executes in reverse order of addition (last added = outermost)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware, config=config)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(snippets.router)
    app.include_router(health.router)

    return app


app = create_app()
