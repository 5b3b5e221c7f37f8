"""Main FastAPI application."""

import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from homecare_metrics.api.v1 import api_router
from homecare_metrics.core.config import settings
from homecare_metrics.core.exceptions import (
    APIException,
    SourceFetchError,
    api_exception_handler,
    source_fetch_exception_handler,
)
from homecare_metrics.core.logging import configure_logging, get_logger, log_error, log_request
from homecare_metrics.db.base import engine
from homecare_metrics.observability.metrics import PrometheusMiddleware, get_metrics, get_metrics_content_type

# Configure logging
configure_logging()
logger = get_logger(__name__)

# Track application start time
app_start_time = time.time()


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to add request ID to requests."""

    async def dispatch(self, request: Request, call_next):
        """Add request ID to request and response headers."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to bind request context to logs and log each request."""

    async def dispatch(self, request: Request, call_next):
        """Bind request_id for the duration of the request."""
        request_id = getattr(request.state, "request_id", None)
        start_time = time.time()

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)
            log_request(
                logger,
                request.method,
                request.url.path,
                response.status_code,
                time.time() - start_time,
                request_id
            )

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Home-Care Metrics API", version="0.1.0", env=settings.env)
    yield
    await engine.dispose()
    logger.info("Shutting down Home-Care Metrics API")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description="Read-only reporting API for the home-care operations console",
    lifespan=lifespan,
)

# Middleware runs in reverse order of registration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

if settings.prometheus_enabled:
    app.add_middleware(PrometheusMiddleware, app_name="homecare_metrics")

# Add exception handlers
app.add_exception_handler(SourceFetchError, source_fetch_exception_handler)
app.add_exception_handler(APIException, api_exception_handler)

# Include API router
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint with uptime."""
    uptime = time.time() - app_start_time
    return {
        "status": "ok",
        "message": "Home-Care Metrics API is running",
        "uptime_seconds": round(uptime, 2),
        "version": "0.1.0",
        "environment": settings.env,
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    if not settings.prometheus_enabled:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Metrics not enabled"
        )

    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with structured logging."""
    request_id = getattr(request.state, "request_id", None)

    log_error(
        logger,
        exc,
        request_id,
        {
            "status_code": exc.status_code,
            "detail": exc.detail,
            "path": request.url.path,
            "method": request.method,
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.status_code,
                "message": exc.detail,
                "request_id": request_id,
            }
        },
        headers={"X-Request-ID": request_id} if request_id else None,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    request_id = getattr(request.state, "request_id", None)

    log_error(
        logger,
        exc,
        request_id,
        {
            "validation_errors": exc.errors(),
            "path": request.url.path,
            "method": request.method,
        }
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "code": 422,
                "message": "Validation error",
                "details": jsonable_errors(exc),
                "request_id": request_id,
            }
        },
        headers={"X-Request-ID": request_id} if request_id else None,
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors without the non-serializable ``ctx`` entries."""
    return [{key: value for key, value in error.items() if key != "ctx"} for error in exc.errors()]


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "homecare_metrics.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
