"""
FastAPI Application Entry Point

Menu Ordering API - restaurant menu catalog with account management.
Supports both the MongoDB store (production) and an in-memory store
(development, tests).

Endpoints:
    - GET    /api/v1/menu: List, search, filter and paginate menu items
    - GET    /api/v1/menu/categories: Distinct categories in use
    - GET    /api/v1/menu/price-range: Price statistics
    - GET    /api/v1/menu/{id}: Single menu item
    - POST   /api/v1/menu: Create menu item (admin)
    - PUT    /api/v1/menu/{id}: Update menu item (admin)
    - DELETE /api/v1/menu/{id}: Delete menu item (admin)
    - POST   /api/v1/auth/register: Create account
    - POST   /api/v1/auth/login: Log in
    - GET    /api/v1/auth/profile: Current user's profile
    - POST   /api/v1/auth/admin/create: Create admin account (admin)
    - GET    /health: Liveness and database check
"""

import logging
import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from menu_api.core.config import require_settings, setup_logging
from menu_api.core.exceptions import AppError, format_validation_errors
from menu_api.core.middleware import BodyGuardMiddleware, RequestLoggingMiddleware
from menu_api.core.rate_limit import RateLimitMiddleware, get_rate_limiter
from menu_api.routes import auth_router, menu_router
from menu_api.schemas import HealthResponse
from menu_api.services.storage import get_document_store

# Initialize configuration and logging
settings = require_settings()
setup_logging()
logger = logging.getLogger(__name__)

START_TIME = time.monotonic()


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    store = get_document_store()
    await store.initialize()
    logger.info(f"✅ Document Store: {store.provider_name}")

    limiter = get_rate_limiter()
    logger.info(
        f"✅ Rate limit: {limiter.max_requests} requests / {limiter.window_seconds:g}s"
    )

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await limiter.close()
    await store.close()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant menu catalog with full-text search, filtering and "
        "pagination, plus token-based accounts with admin-only management."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Added innermost first: CORS wraps the rate limiter, which wraps the body guard
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(BodyGuardMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(menu_router)
app.include_router(auth_router)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍽️ Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Liveness Check",
)
async def health_check() -> HealthResponse:
    """Report that the process is up, for how long, and whether the store answers."""
    db_status = "healthy"
    if not await get_document_store().health_check():
        db_status = "unhealthy"
        logger.warning("Health check: document store unreachable")

    return HealthResponse(
        success=True,
        message="Server is running",
        timestamp=datetime.now(timezone.utc),
        uptime=round(time.monotonic() - START_TIME, 3),
        database=db_status,
    )


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render application errors in the standard envelope."""
    body = exc.to_dict()
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        if not settings.expose_error_details:
            body = {"success": False, "message": "Internal server error"}
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "message": "Validation failed",
            "errors": format_validation_errors(exc.errors()),
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    content: dict[str, Any] = {"success": False}
    if exc.status_code == 404:
        content["message"] = "Route not found"
        content["path"] = request.url.path
    else:
        content["message"] = str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    content: dict[str, Any] = {"success": False, "message": "Internal server error"}
    if settings.is_development:
        content["detail"] = str(exc)
        content["stack"] = traceback.format_exc()
    return JSONResponse(status_code=500, content=content)


# =============================================================================
# ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "menu_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
