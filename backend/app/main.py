"""
Main FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app.api import api_router
from app.core.config import settings
from app.core.env_validation import validate_or_exit
from app.core.logging import get_logger, setup_logging
from app.db.redis import check_redis_health, close_redis
from app.db.session import check_db_health, close_db, init_db
from app.services.unsubscribe import MissingToken, UnsubscribeError

# Setup logging
setup_logging()
logger = get_logger(__name__)

VERSION = "0.1.0"
UNSUBSCRIBE_PATH = f"{settings.API_V1_PREFIX}/unsubscribe"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan events.
    Handles startup and shutdown tasks.
    """
    # Startup
    logger.info(
        "starting_application",
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        version=VERSION,
    )

    if not (settings.is_development or settings.is_testing):
        validate_or_exit()

    await init_db()

    yield

    # Shutdown
    logger.info("shutting_down_application")

    await close_redis()
    await close_db()


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Email notification consent - unsubscribe links and preference settings",
    version=VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)


# Health check endpoint
@app.get("/health", tags=["health"])
async def health_check() -> JSONResponse:
    """
    Health check endpoint for monitoring.
    Includes database and Redis connectivity checks. Only the database
    decides the status code: rate limiting fails open without Redis.
    """
    db_healthy = await check_db_health()

    if settings.RATE_LIMIT_ENABLED:
        redis_status = "connected" if await check_redis_health() else "disconnected"
    else:
        redis_status = "disabled"

    return JSONResponse(
        status_code=200 if db_healthy else 503,
        content={
            "status": "healthy" if db_healthy else "unhealthy",
            "app_name": settings.APP_NAME,
            "environment": settings.APP_ENV,
            "version": VERSION,
            "database": "connected" if db_healthy else "disconnected",
            "redis": redis_status,
        }
    )


# Include API routers
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.exception_handler(UnsubscribeError)
async def unsubscribe_error_handler(request: Request, exc: UnsubscribeError) -> JSONResponse:
    """Render unsubscribe failures with their fixed public message."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc)},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Unsubscribe bodies that are not a JSON object count as a missing token.

    The default 422 body echoes the submitted input, which may hold a token.
    Other routes keep the default response.
    """
    if request.url.path != UNSUBSCRIBE_PATH:
        return await request_validation_exception_handler(request, exc)

    logger.info("unsubscribe_rejected", code=MissingToken.code)
    return JSONResponse(
        status_code=MissingToken.status_code,
        content={"error": MissingToken.message},
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled errors.
    """
    logger.error(
        "unhandled_exception",
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={"error": "An unexpected error occurred. Please try again later."},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
