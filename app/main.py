from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy import text
import logging

from app.core.config import settings
from app.core.database import create_tables, engine
from app.core.logger import setup_logging
from app.core.redis import redis_client
from app.core.minio import minio_client
from app.api.v1.router import api_router
from app.utils.exceptions import AuthenticationError, ParkShareException

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle"""
    # Startup
    setup_logging()
    logger.info("Starting %s %s (%s)", settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT)
    if settings.ENVIRONMENT == "development":
        await create_tables()
    await redis_client.connect()
    await minio_client.ensure_bucket_exists()

    yield

    # Shutdown
    logger.info("Shutting down")
    await redis_client.disconnect()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    openapi_url="/api/v1/openapi.json",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan
)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ParkShareException)
async def parkshare_exception_handler(request: Request, exc: ParkShareException):
    """Translate domain errors into JSON responses"""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=headers
    )


# Include API router
app.include_router(api_router, prefix="/api/v1")


# Root endpoint
@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/api/docs",
        "redoc": "/api/redoc",
        "health": "/health",
        "api": "/api/v1"
    }


# Health check endpoint
@app.get("/health")
async def health_check():
    database_status = "healthy"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Database health check failed: %s", e)
        database_status = "unhealthy"

    # Redis only backs the geocoding cache
    redis_status = "healthy"
    try:
        if not await redis_client.ping():
            redis_status = "unhealthy"
    except Exception as e:
        logger.warning("Redis health check failed: %s", e)
        redis_status = "unhealthy"

    minio_status = "healthy"
    try:
        await minio_client.ensure_bucket_exists()
    except Exception as e:
        logger.warning("MinIO health check failed: %s", e)
        minio_status = "unhealthy"

    statuses = {"database": database_status, "redis": redis_status, "minio": minio_status}
    return {
        "status": "healthy" if all(s == "healthy" for s in statuses.values()) else "degraded",
        "services": statuses
    }
