"""
TrabajaTecnico Backend — FastAPI Application Factory
=====================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   uvicorn (``uvicorn trabajatecnico.main:app``) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                       FastAPI App                        │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────────┐ ┌──────────────┐ ┌──────┐ ┌──────┐         │
    │  │  Req ID  │→│  Access log  │→│ GZip │→│ CORS │         │
    │  └──────────┘ └──────────────┘ └──────┘ └──────┘         │
    │                                                          │
    │  Routes:                                                 │
    │  /api/projects  /api/applications  /api/notifications    │
    │  /api/upload  /api/users  /api/health                    │
    │                                                          │
    │  Exception Handlers:                                     │
    │  TrabajaTecnicoError → its status + code                 │
    │  RequestValidationError → 400   Exception → 500          │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config validation → upload root → Mailer on app.state
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from trabajatecnico import __version__
from trabajatecnico.config import settings
from trabajatecnico.database import dispose_engine
from trabajatecnico.exceptions import TrabajaTecnicoError
from trabajatecnico.middleware.logging import RequestLoggingMiddleware
from trabajatecnico.middleware.request_id import (
    RequestIDLogFilter,
    RequestIDMiddleware,
    request_id_var,
)
from trabajatecnico.routes import applications, health, notifications, projects, uploads, users
from trabajatecnico.services.mailer import Mailer

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configures the root logger once at startup.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s
    The request ID comes from RequestIDLogFilter ("-" outside a request).
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDLogFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "aiosmtplib", "httpcore", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("TrabajaTecnico Backend %s starting up (%s)...", __version__, settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving so the health check can report the problem
        logger.error("Configuration error: %s", e)

    uploads_dir = Path(settings.upload_root)
    uploads_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Upload directory: %s", uploads_dir.resolve())

    app.state.mailer = Mailer.from_settings(settings)
    if app.state.mailer.configured:
        logger.info("Email configured via %s:%d", settings.email_host, settings.email_port)
    else:
        logger.warning("Email not configured (EMAIL_USER/EMAIL_PASS missing); mail is disabled")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("TrabajaTecnico Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(code: str, message: str, details: Any = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": code, "message": message}
    if details:
        body["details"] = details
    body["request_id"] = request_id_var.get("")
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Maps exceptions to the standard error body.

        TrabajaTecnicoError (4xx)   → exc.status_code, exc.code, context as details
        TrabajaTecnicoError (5xx)   → generic message, context only in the log
        RequestValidationError      → 400 validation_error, per-field details
        Exception (fallback)        → 500 internal_server_error
    """

    @app.exception_handler(TrabajaTecnicoError)
    async def handle_app_error(request: Request, exc: TrabajaTecnicoError):
        if exc.status_code >= 500:
            logger.error("%s: %s | Context: %s", exc.__class__.__name__, exc.message, exc.context)
            return JSONResponse(
                status_code=exc.status_code,
                content=_error_body(exc.code, exc.message),
            )

        logger.warning("%s (%s): %s", exc.__class__.__name__, exc.code, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.code, exc.message, exc.context),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        logger.warning("Request validation failed: %s", errors)
        return JSONResponse(
            status_code=400,
            content=jsonable_encoder(
                _error_body("validation_error", "Invalid request data", {"errors": errors})
            ),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", exc, exc_info=True)
        details = None if settings.is_production else {"exception": repr(exc)}
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
                details,
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="TrabajaTecnico API",
        description=(
            "Marketplace backend connecting freelance technicians with companies "
            "posting short-term projects."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware runs in reverse order of addition: RequestID runs first
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

    register_exception_handlers(app)

    app.include_router(projects.router)
    app.include_router(applications.router)
    app.include_router(notifications.router)
    app.include_router(uploads.router)
    app.include_router(users.router)
    app.include_router(health.router)

    return app


app = create_app()
