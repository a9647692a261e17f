"""FastAPI application configuration and setup.

Main entry point for the HTTP API with CORS, correlation IDs,
error mapping and lifecycle management.
"""

import logging
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flowstudio import __version__
from flowstudio.api.deps import reset_gateway
from flowstudio.api.routes import api_router
from flowstudio.exceptions import (
    ConflictError,
    FlowNotFoundError,
    FlowStudioError,
    StepNotFoundError,
    TemplateNotFoundError,
    TransientError,
    ValidationError,
)
from flowstudio.logging_config import configure_logging
from flowstudio.settings import Settings, get_settings
from flowstudio.storage import close_db, init_db

logger = logging.getLogger(__name__)

# Context variable for correlation ID (async-safe)
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Singleton app instance
_app: FastAPI | None = None

# Most specific first
_STATUS_CODES: tuple[tuple[type[FlowStudioError], int], ...] = (
    (FlowNotFoundError, 404),
    (StepNotFoundError, 404),
    (TemplateNotFoundError, 404),
    (ValidationError, 400),
    (ConflictError, 409),
    (TransientError, 503),
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    - Startup: configure logging, initialize the database
    - Shutdown: close database connections
    """
    settings = get_settings()

    if settings.environment != "testing":
        configure_logging(settings.log_level)
        await init_db()

    yield

    reset_gateway()
    await close_db()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure a FastAPI application instance.

    Args:
        settings: Optional settings override (uses get_settings() if not provided)

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Flow Studio",
        description="Authoring, versioning and deployment of onboarding flows",
        version=__version__,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
        openapi_url="/api/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_get_allowed_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "X-Correlation-ID"],
        expose_headers=["X-Correlation-ID"],
    )

    # Add correlation ID middleware (must be before routes)
    app.middleware("http")(_correlation_middleware)

    app.include_router(api_router, prefix="/api/v1")

    _register_exception_handlers(app, settings)

    return app


def _get_allowed_origins(settings: Settings) -> list[str]:
    """Get allowed CORS origins.

    Explicit ALLOWED_ORIGINS (comma-separated) wins; otherwise any origin
    in development/testing and none elsewhere.
    """
    if settings.allowed_origins:
        return [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    if settings.environment in ("development", "testing"):
        return ["*"]
    return []


async def _correlation_middleware(request: Request, call_next):
    """Generate or propagate the request correlation ID.

    Stored in a context variable for the exception handlers and echoed
    in the X-Correlation-ID response header.
    """
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
    _correlation_id.set(correlation_id)

    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


def get_correlation_id() -> str | None:
    """Get the current request's correlation ID from context."""
    return _correlation_id.get()


def status_code_for(exc: FlowStudioError) -> int:
    """HTTP status for an application error."""
    for error_type, status_code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


def _error_response(status_code: int, message: Any, error_type: str, correlation_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": status_code,
                "message": message,
                "type": error_type,
                "correlation_id": correlation_id,
            }
        },
        headers={"X-Correlation-ID": correlation_id},
    )


def _register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Register custom exception handlers."""

    @app.exception_handler(FlowStudioError)
    async def flowstudio_error_handler(request: Request, exc: FlowStudioError) -> JSONResponse:
        """Map the exception hierarchy onto HTTP status codes."""
        correlation_id = get_correlation_id() or exc.correlation_id
        status_code = status_code_for(exc)
        error_type = exc.__class__.__name__.replace("Error", "_error").lower()

        if status_code >= 500:
            logger.error(
                "%s on %s %s (correlation_id=%s, error_id=%s): %s",
                exc.__class__.__name__,
                request.method,
                request.url.path,
                correlation_id,
                exc.correlation_id,
                exc,
            )
        else:
            logger.info("%s on %s %s: %s", exc.__class__.__name__, request.method, request.url.path, exc)

        # Server-side details stay out of 5xx bodies unless debugging
        if status_code >= 500 and not settings.debug:
            message = f"An error occurred. Correlation ID: {correlation_id}"
        else:
            message = str(exc)
        return _error_response(status_code, message, error_type, correlation_id)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        """Handle HTTP exceptions with consistent format."""
        correlation_id = get_correlation_id() or str(uuid.uuid4())
        return _error_response(exc.status_code, exc.detail, "http_error", correlation_id)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        correlation_id = get_correlation_id() or str(uuid.uuid4())
        logger.exception("Unhandled exception (correlation_id=%s)", correlation_id, exc_info=exc)
        detail = str(exc) if settings.debug else "Internal server error"
        return _error_response(500, detail, "internal_error", correlation_id)


def get_app() -> FastAPI:
    """Get or create the singleton FastAPI application."""
    global _app
    if _app is None:
        _app = create_app()
    return _app


# For uvicorn: use "flowstudio.api.main:get_app" with --factory flag,
# or "flowstudio.api.main:app" which lazily initializes on first access.
def __getattr__(name: str) -> Any:
    """Create the app only when 'app' is accessed, not at import time."""
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
