import logging
import traceback
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from prometheus_fastapi_instrumentator import Instrumentator

from versionflow.core.config import settings
from versionflow.api.v1 import api_router
from versionflow.db.session import check_db_connection
from versionflow.core.logging_config import setup_logging, RequestLoggingMiddleware
from versionflow.services.versioning.exceptions import (
    ConfigNotFound,
    PromotionConflict,
    PromotionSourceNotFound,
    VersionCalculationFailure,
    VersioningError,
)

# Configure structured logging (JSON in production, colored in development)
setup_logging()
logger = logging.getLogger("versionflow")


class ErrorResponse(BaseModel):
    """Standardized error response format."""
    error: str
    detail: str | None = None
    timestamp: str
    path: str | None = None


class HealthResponse(BaseModel):
    """Health check response format."""
    status: str
    service: str
    version: str
    environment: str
    checks: dict[str, bool]


app = FastAPI(
    title="versionflow API",
    description="Semantic version calculation and promotion for tracked repositories",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,  # Disable docs in production
    redoc_url="/redoc" if settings.DEBUG else None,
)


def _error_response(request: Request, status_code: int, error: str, detail: str | None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=error,
            detail=detail,
            timestamp=datetime.utcnow().isoformat(),
            path=request.url.path,
        ).model_dump(),
    )


@app.exception_handler(ConfigNotFound)
async def config_not_found_handler(request: Request, exc: ConfigNotFound) -> JSONResponse:
    return _error_response(request, status.HTTP_404_NOT_FOUND, "Repository not found", str(exc))


@app.exception_handler(PromotionSourceNotFound)
async def promotion_source_handler(request: Request, exc: PromotionSourceNotFound) -> JSONResponse:
    logger.warning(f"Promotion refused: {exc}")
    return _error_response(request, status.HTTP_409_CONFLICT, "Nothing to promote", str(exc))


@app.exception_handler(PromotionConflict)
async def promotion_conflict_handler(request: Request, exc: PromotionConflict) -> JSONResponse:
    logger.error(f"Promotion conflict: {exc}")
    return _error_response(request, status.HTTP_409_CONFLICT, "Promotion conflict", str(exc))


@app.exception_handler(VersionCalculationFailure)
async def version_calculation_handler(request: Request, exc: VersionCalculationFailure) -> JSONResponse:
    logger.error(f"Version calculation failed on {request.url.path}: {exc}")
    return _error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Version calculation failed", str(exc)
    )


@app.exception_handler(VersioningError)
async def versioning_error_handler(request: Request, exc: VersioningError) -> JSONResponse:
    logger.warning(f"Versioning error on {request.url.path}: {exc}")
    return _error_response(request, status.HTTP_400_BAD_REQUEST, exc.__class__.__name__, str(exc))


# Global exception handler - catches all unhandled exceptions
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler that returns consistent error responses.
    In production, sensitive details are hidden to prevent information leakage.
    """
    error_id = datetime.utcnow().strftime("%Y%m%d%H%M%S%f")

    # Log the full exception for debugging
    logger.error(
        f"Unhandled exception [{error_id}]: {exc}\n"
        f"Path: {request.url.path}\n"
        f"Method: {request.method}\n"
        f"Traceback: {traceback.format_exc()}"
    )

    # In production, don't expose internal error details
    if settings.ENVIRONMENT.lower() == "production":
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            f"An unexpected error occurred. Reference ID: {error_id}",
        )

    # In development, include full error details
    return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, exc.__class__.__name__, str(exc))


# Request logging middleware with timing and request IDs
app.add_middleware(RequestLoggingMiddleware)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)

# Prometheus metrics instrumentation
# Exposes /metrics endpoint for Prometheus scraping
instrumentator = Instrumentator(
    should_group_status_codes=False,
    should_ignore_untemplated=True,
    should_respect_env_var=True,
    should_instrument_requests_inprogress=True,
    excluded_handlers=["/health", "/metrics"],
    inprogress_name="versionflow_inprogress_requests",
    inprogress_labels=True,
)
instrumentator.instrument(app).expose(app, include_in_schema=False)


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint. Returns 503 when the database is unreachable.
    The repository config cache falls back to memory, so it is not checked.
    """
    db_healthy = await check_db_connection()
    checks = {"database": db_healthy}

    response = HealthResponse(
        status="healthy" if db_healthy else "unhealthy",
        service="versionflow-backend",
        version="1.0.0",
        environment=settings.ENVIRONMENT,
        checks=checks,
    )

    if not db_healthy:
        logger.warning(f"Health check failed: {checks}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(),
        )

    return response


@app.get("/")
async def root():
    return {"message": "Welcome to the versionflow API"}


@app.on_event("shutdown")
async def shutdown_event():
    from versionflow.core.cache import close_cache

    await close_cache()
