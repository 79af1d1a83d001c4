"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import router
from app.core.config import settings
from app.core.database import check_database_connection
from app.core.middleware import site_access_middleware
from app.services.scheduler import scheduler_service

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events.

    Checks the database connection and starts the usage scheduler on
    startup; stops the scheduler on shutdown.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control passes to the application.
    """
    logger.info("Starting WebCore Audit API...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    if settings.ADMIN_EMAIL and not settings.ADMIN_JWT_SECRET:
        logger.warning("ADMIN_JWT_SECRET is not set; admin login is disabled")

    if await check_database_connection():
        logger.info("Database connection successful")
    else:
        logger.warning("Database is unreachable; requests that need it will fail")

    try:
        await scheduler_service.start()
    except Exception as e:
        logger.warning(f"Scheduler service failed to start: {e}")

    yield

    logger.info("Shutting down WebCore Audit API...")
    try:
        await scheduler_service.shutdown()
    except Exception as e:
        logger.warning(f"Scheduler shutdown error: {e}")


def create_application() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance.
    """
    app = FastAPI(
        title="WebCore Audit",
        description="Website audit API: scraping, Core Web Vitals and AI analysis",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    cors_origins = list(dict.fromkeys(settings.CORS_ORIGINS + [settings.APP_URL]))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
        expose_headers=["*"],
    )
    app.middleware("http")(site_access_middleware)

    app.include_router(router, prefix="/api")

    @app.get("/")
    async def root() -> dict:
        """Basic API information and links."""
        return {
            "name": "WebCore Audit",
            "version": "0.1.0",
            "docs": "/docs",
            "health": "/api/health",
        }

    return app


app = create_application()
