"""
FastAPI application for Tax Copilot.

Domain errors raised anywhere below the routes are turned into ``ErrorResponse``
bodies here, with the status chosen by ``get_http_status_code``.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tax_copilot.api.dependencies import get_container
from tax_copilot.api.middleware import CorrelationIdMiddleware, RequestLoggingMiddleware
from tax_copilot.api.models import ErrorResponse
from tax_copilot.api.routes import API_VERSION, router as api_router
from tax_copilot.config.settings import Settings, get_settings
from tax_copilot.utils.exceptions import TaxCopilotError, get_http_status_code
from tax_copilot.utils.logging import get_correlation_id, get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the SQLite schema and blob root on startup; close the database on shutdown."""
    settings = get_settings()
    setup_logging(
        log_level=settings.logging.log_level,
        log_format=settings.logging.log_format,
    )

    container = get_container()
    container.database.initialize_schema()
    await container.blob_storage.ensure_container()

    logger.info(
        "application_started",
        version=app.version,
        environment=settings.environment,
    )

    yield

    logger.info("application_shutting_down")
    container.close()
    logger.info("application_stopped")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the app; ``settings`` defaults to the environment."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Tax Copilot API",
        description="Question answering over tax documents with cited sources",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    if settings.api.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.api.cors_origins_list,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        logger.info("cors_middleware_configured", origins=settings.api.cors_origins_list)

    # Added last so it runs first and the id is set before request logging
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(api_router, prefix="/api/v1", tags=["Tax Copilot"])

    @app.exception_handler(TaxCopilotError)
    async def tax_copilot_exception_handler(
        request: Request,
        exc: TaxCopilotError,
    ) -> JSONResponse:
        """Map domain exceptions to their HTTP status."""
        correlation_id = get_correlation_id()
        status_code = get_http_status_code(exc)

        log = logger.warning if status_code < 500 else logger.error
        log(
            "request_error",
            exception_type=exc.__class__.__name__,
            message=exc.message,
            details=exc.details,
            path=request.url.path,
            status_code=status_code,
            correlation_id=correlation_id,
        )

        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=exc.__class__.__name__,
                message=exc.message,
                detail=str(exc.details) if exc.details else None,
                correlation_id=correlation_id,
            ).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        correlation_id = get_correlation_id()

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            correlation_id=correlation_id,
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=ErrorResponse(
                error="ValidationError",
                message="Request validation failed",
                detail=str(exc.errors()),
                correlation_id=correlation_id,
            ).model_dump(),
        )

    @app.exception_handler(Exception)
    async def unexpected_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        correlation_id = get_correlation_id()

        logger.error(
            "unhandled_exception",
            error=str(exc),
            path=request.url.path,
            correlation_id=correlation_id,
            exc_info=True,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error="InternalServerError",
                message="An unexpected error occurred",
                detail=str(exc) if settings.is_debug else None,
                correlation_id=correlation_id,
            ).model_dump(),
        )

    @app.get("/", tags=["Root"], summary="Service information")
    async def root() -> dict:
        return {
            "name": "Tax Copilot API",
            "version": API_VERSION,
            "status": "running",
            "docs": "/docs",
            "health": "/api/v1/health",
        }

    logger.info("application_created")

    return app


app = create_app()


__all__ = ["app", "create_app", "lifespan"]
