"""
AffiDraft Backend: FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers and routers;
       the module-level `app` is what uvicorn serves.
Who:   uvicorn (`uvicorn affidraft.main:app`) and the API test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Request ID → Logging → GZip → CORS         │
    │                                                          │
    │  Routes:                                                 │
    │  ┌────────────────────────┐ ┌──────────────┐ ┌─────────┐ │
    │  │ /api/affidavit-        │ │ GET /api/    │ │ GET     │ │
    │  │   templates (+export,  │ │ placeholders │ │ /health │ │
    │  │   fill)                │ │              │ │         │ │
    │  └────────────────────────┘ └──────────────┘ └─────────┘ │
    │                                                          │
    │  Exception Handlers: AffiDraftError subclasses → 4xx/5xx │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:   logging, configuration check, ready banner
    Shutdown:  dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Tuple, Type

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from affidraft import __version__
from affidraft.config import settings
from affidraft.database import dispose_engine
from affidraft.exceptions import (
    AffiDraftError,
    CanvasUnavailableError,
    DatabaseError,
    FeatureNotAvailableError,
    NotFoundError,
    SaveInProgressError,
    TemplateSaveError,
    UnresolvedPlaceholderError,
    ValidationError,
)
from affidraft.middleware.logging import RequestLoggingMiddleware
from affidraft.middleware.request_id import RequestIDMiddleware, request_id_var
from affidraft.routes import health, placeholders, templates

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configures the root logger once, at startup, before anything logs.

    Format: 2024-05-01T12:00:00 [INFO] affidraft.services.template_service: ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers are chatty at INFO
    for name in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx", "PIL"):
        logging.getLogger(name).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("AffiDraft Backend %s starting up...", __version__)

    # A misconfigured deployment still starts so /health can report it
    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    logger.info(
        "Canvas %dx%d, missing placeholder policy: %s",
        settings.canvas_width, settings.canvas_height, settings.missing_placeholder_policy,
    )
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("AffiDraft Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

# Exception type → (HTTP status, machine-readable error code).
# Lookup walks the exception's MRO, so subclasses map before AffiDraftError.
ERROR_STATUS: Dict[Type[AffiDraftError], Tuple[int, str]] = {
    ValidationError: (400, "validation_error"),
    NotFoundError: (404, "not_found"),
    CanvasUnavailableError: (409, "canvas_unavailable"),
    SaveInProgressError: (409, "save_in_progress"),
    UnresolvedPlaceholderError: (422, "unresolved_placeholder"),
    DatabaseError: (500, "server_error"),
    FeatureNotAvailableError: (501, "not_implemented"),
    TemplateSaveError: (502, "template_save_failed"),
    AffiDraftError: (500, "server_error"),
}


def status_for(exc: AffiDraftError) -> Tuple[int, str]:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 500, "server_error"


def register_exception_handlers(app: FastAPI) -> None:
    """
    Maps exceptions to `{error, message, details, request_id}` bodies.

    Server-side failures (5xx from DatabaseError or the base class) never
    echo their message or context; they are logged instead.
    """

    @app.exception_handler(AffiDraftError)
    async def handle_affidraft_error(request: Request, exc: AffiDraftError):
        rid = request_id_var.get("")
        status_code, code = status_for(exc)

        if status_code >= 500 and status_code not in (501, 502):
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
            return JSONResponse(
                status_code=status_code,
                content={
                    "error": code,
                    "message": "An internal error occurred. Please try again later.",
                    "details": None,
                    "request_id": rid,
                },
            )

        logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)
        return JSONResponse(
            status_code=status_code,
            content={
                "error": code,
                "message": exc.message,
                "details": exc.context or None,
                "request_id": rid,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Schema-level problems (including malformed canvas objects) → 422."""
        rid = request_id_var.get("")
        errors = [
            {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", ""), "type": error.get("type", "")}
            for error in exc.errors()
        ]
        first = errors[0] if errors else {"loc": [], "msg": "Invalid request"}
        location = ".".join(first["loc"])
        logger.warning("[%s] Request validation failed at %s: %s", rid, location, first["msg"])
        return JSONResponse(
            status_code=422,
            content={
                "error": "request_validation_error",
                "message": f"{location}: {first['msg']}" if location else first["msg"],
                "details": {"errors": errors},
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all; the stack trace goes to the log, never to the client."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "details": None,
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="AffiDraft API",
        description=(
            "Affidavit template editor backend: versioned template storage, "
            "placeholder extraction, PNG export and template filling."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Middleware ────────────────────────────────────────────────────────
    # Executes in reverse order of addition: Request ID runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Content-Disposition"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(templates.router)
    app.include_router(placeholders.router)
    app.include_router(health.router)

    return app


app = create_app()
