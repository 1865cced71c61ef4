"""Moral Compass Backend: FastAPI application entry point."""

import signal
import uuid
from contextlib import asynccontextmanager

# configure_structlog MUST run before all other app imports; structlog caches
# the processor chain on first use.
from app.core.logging import configure_structlog, resolve_log_level
from app.core.config import get_settings as _get_settings_early

_early_settings = _get_settings_early()
configure_structlog(
    log_level=resolve_log_level(_early_settings.log_level, _early_settings.debug),
    json_logs=not _early_settings.debug,
)

import structlog

from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import api_router
from app.core.config import get_settings
from app.core.exceptions import MoralCompassError
from app.db import init_db, close_db
from app.domain.stages import DEFAULT_STAGE_CATALOG, StageCatalog
from app.llm.gateway import build_gateway
from app.middleware.correlation import (
    setup_correlation_middleware,
    get_correlation_id,
)

logger = structlog.get_logger(__name__)


def validate_stage_config(catalog: StageCatalog = DEFAULT_STAGE_CATALOG) -> None:
    """Fail fast if MAX_STAGE and the stage catalog disagree at startup."""
    settings = get_settings()
    if settings.max_stage != catalog.max_stage:
        raise RuntimeError(
            f"MAX_STAGE={settings.max_stage} does not match the stage catalog (max {catalog.max_stage})"
        )
    missing = [n for n in range(1, settings.max_stage + 1) if n not in catalog]
    if missing:
        raise RuntimeError(f"Stage catalog is missing stages at startup: {missing}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # SIGTERM flips this so the health check returns 503 while draining
    app.state.shutting_down = False

    def handle_sigterm(signum, frame):
        app.state.shutting_down = True
        logger.info("sigterm_received", action="health_check_503_draining_connections")

    signal.signal(signal.SIGTERM, handle_sigterm)

    # Startup
    settings = get_settings()
    logger.info("startup_begin", app_name=settings.app_name, debug=settings.debug)

    validate_stage_config()
    logger.info("stage_config_validated", max_stage=settings.max_stage)

    await init_db()
    logger.info("db_initialized")

    app.state.gateway = build_gateway(settings)

    yield

    # Shutdown
    logger.info("shutdown_begin")
    aclose = getattr(app.state.gateway, "aclose", None)
    if aclose is not None:
        await aclose()
    app.state.gateway = None
    await close_db()
    logger.info("shutdown_complete")


def _error_response(request: Request, status_code: int, detail, event: str, **extra) -> JSONResponse:
    debug_id = str(uuid.uuid4())

    logger.error(
        event,
        status_code=status_code,
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        user_id=getattr(request.state, "user_id", None),
        detail=detail,
        **extra,
    )

    # Sanitized response (no stack traces, no secrets)
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "debug_id": debug_id},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Global exception handler for HTTPException with debug_id tracking."""
    return _error_response(request, exc.status_code, exc.detail, "http_exception")


async def domain_exception_handler(request: Request, exc: MoralCompassError) -> JSONResponse:
    """Map domain errors onto their HTTP status with debug_id tracking."""
    return _error_response(
        request,
        exc.status_code,
        exc.detail,
        "domain_exception",
        error_type=type(exc).__name__,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled errors with debug_id tracking.

    Logs full exception with traceback, returns generic 500 to client.
    """
    return _error_response(
        request,
        500,
        "Internal server error",
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Guided moral-reasoning questionnaire with contradiction detection",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url, "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Correlation ID middleware (runs first on incoming requests)
    setup_correlation_middleware(app)

    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(MoralCompassError)(domain_exception_handler)
    app.exception_handler(Exception)(generic_exception_handler)

    app.include_router(api_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
