"""
Tourism Reservations API - Main Application Entry Point

Reservation core of the tourism-discovery platform:
- Event ticket and place visit bookings with overbooking-safe creation
- Explicit status workflow with confirmation and reminder emails
- Structured logging with request correlation
- Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tourism_api.core.config import get_settings
from tourism_api.core.exceptions import register_exception_handlers
from tourism_api.core.logging import setup_logging, get_logger
from tourism_api.core.metrics import metrics_endpoint
from tourism_api.api.router import api_router
from tourism_api.api.middleware import RequestLoggingMiddleware
from tourism_api.db.session import get_db, get_engine
from tourism_api.infrastructure.redis_client import RedisClient

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        lock_backend=settings.LOCK_BACKEND,
        email_backend=settings.EMAIL_BACKEND,
    )

    if settings.LOCK_BACKEND == "redis":
        if await RedisClient.ping():
            logger.info("redis_ready")
        else:
            logger.warning("redis_unavailable", message="Entity locks fall back to in-process locking")

    yield

    await RedisClient.close()
    await get_engine().dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Event and place reservations with capacity-safe booking and status notifications",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Custom middleware
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

# Routes
app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check for Docker and load balancers. Reports the database and lock backend."""
    database = "ok"
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        get_logger(__name__).error("health_database_unreachable", error=str(e))
        database = "unreachable"

    return {
        "status": "healthy" if database == "ok" else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": database,
        "lock_backend": settings.LOCK_BACKEND,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
