"""
Tubely Ingest FastAPI Application Entry Point

This module serves as the main entry point for the Tubely media ingestion
API. It provides:

- FastAPI application initialization with CORS middleware
- Upload routes registered under the /api prefix
- A lifespan that configures logging, connects MongoDB, builds the S3
  client and creates the assets and scratch directories
- Request logging middleware with request IDs and timing headers
- Liveness (/health) and readiness (/ready) endpoints
- Exception handlers rendering every error as ``{"error": "<message>"}``

API Structure:
    POST /api/thumbnail_upload/{video_id} - Thumbnail image upload
    POST /api/video_upload/{video_id}     - Video payload upload

Usage:
    # Run with uvicorn directly (from the backend directory)
    uvicorn app.main:app --host 0.0.0.0 --port 8091 --reload

    # Run as Python script
    python -m app.main
"""

import logging
import time
import uuid

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import uvicorn

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1 import api_router
from app.config import get_settings
from app.core.database import close_db, get_db_client, init_db
from app.core.exceptions import UploadError, upload_error_handler
from app.services.storage_service import close_storage_service, init_storage_service
from app.utils.logger import add_log_context, setup_logging


# =============================================================================
# Logging Configuration
# =============================================================================

# Configure module logger
logger = logging.getLogger(__name__)

# HTTP status code constants
HTTP_ERROR_THRESHOLD = 400  # Status codes >= 400 indicate errors

API_VERSION = "1.0.0"


# =============================================================================
# Application Lifespan Management
# =============================================================================


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Manage application lifecycle events for startup and shutdown.

    Startup:
    - Configure logging from settings
    - Create the assets root and scratch directories
    - Connect to MongoDB and ensure indexes
    - Build the S3 client

    Shutdown:
    - Drop the S3 client and close the MongoDB connection

    A MongoDB failure is logged and the app keeps starting so /ready can
    report it; upload requests fail with 500 until it recovers.
    """
    settings = get_settings()

    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)

    logger.info(f"Starting {settings.app_name} ({settings.app_env})")

    settings.assets_root.mkdir(parents=True, exist_ok=True)
    if settings.scratch_dir is not None:
        settings.scratch_dir.mkdir(parents=True, exist_ok=True)

    try:
        await init_db(settings)
    except RuntimeError:
        logger.exception("Failed to initialize database connection")

    init_storage_service(settings)

    logger.info(f"{settings.app_name} started on {settings.host}:{settings.port}")

    yield

    close_storage_service()
    await close_db()

    logger.info(f"{settings.app_name} shutdown complete")


# =============================================================================
# FastAPI Application Initialization
# =============================================================================

_settings = get_settings()

app = FastAPI(
    title="Tubely Ingest API",
    description=(
        "Media ingestion for Tubely: authenticated thumbnail and video uploads, "
        "fast-start remuxing, orientation filing and metadata updates."
    ),
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=_settings.debug,
)


# =============================================================================
# Middleware Configuration
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Process-Time"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next) -> Response:
    """
    Middleware for request logging and timing.

    Logs each request with method, path, status and latency, and adds
    ``X-Request-ID`` and ``X-Process-Time`` headers to the response. An
    incoming ``X-Request-ID`` is reused.
    """
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    ctx_logger = add_log_context(logger, request_id=request_id)

    start_time = time.perf_counter()

    ctx_logger.debug(f"Request started: {request.method} {request.url.path}")

    try:
        response = await call_next(request)
    except Exception:
        ctx_logger.exception(f"Request failed: {request.method} {request.url.path}")
        raise

    process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)

    response.headers["X-Process-Time"] = f"{process_time_ms}ms"
    response.headers["X-Request-ID"] = request_id

    log_level = logging.INFO if response.status_code < HTTP_ERROR_THRESHOLD else logging.WARNING
    ctx_logger.log(
        log_level,
        f"Request completed: {request.method} {request.url.path} "
        f"[Status: {response.status_code}] [Time: {process_time_ms}ms]",
    )

    return response


# =============================================================================
# API Router Registration
# =============================================================================

app.include_router(api_router, prefix="/api")


# =============================================================================
# Core Endpoints
# =============================================================================


@app.get(
    "/health",
    response_class=JSONResponse,
    tags=["health"],
    summary="Health Check",
    description="Returns health status and current server timestamp for monitoring",
)
async def health_check() -> dict[str, Any]:
    """
    Liveness probe; answers without touching any dependency.

    Returns:
        dict: Health status with timestamp
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": API_VERSION,
        "service": _settings.app_name,
    }


@app.get(
    "/ready",
    response_class=JSONResponse,
    tags=["health"],
    summary="Readiness Check",
    description="Returns readiness status indicating if the service is ready to handle requests",
)
async def readiness_check() -> dict[str, Any]:
    """
    Readiness probe; the service is ready when MongoDB answers a ping.

    Returns:
        dict: Readiness status with dependency checks
    """
    checks: dict[str, bool] = {}

    try:
        checks["mongodb"] = await get_db_client().ping()
    except RuntimeError:
        checks["mongodb"] = False

    return {
        "ready": all(checks.values()),
        "timestamp": datetime.now(UTC).isoformat(),
        "checks": checks,
    }


# =============================================================================
# Exception Handlers
# =============================================================================

app.add_exception_handler(UploadError, upload_error_handler)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (unknown route, wrong method) in the same shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all 500 handler.

    Logs the error and returns a generic error message to avoid exposing
    internal details to clients.
    """
    logger.error(
        f"Internal server error on {request.method} {request.url.path}: {exc!s}",
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


# =============================================================================
# Main Execution Block
# =============================================================================

if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
        log_level=_settings.log_level,
        access_log=_settings.debug,
    )
