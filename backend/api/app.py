"""
FastAPI application factory.

Creates and configures the FastAPI application instance.
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config import get_settings
from modules.auth.routes import router as auth_router
from modules.games.routes import router as games_router

from .dependencies import get_container
from .errors import register_exception_handlers
from .routes import health

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Starts the rate limiter sweeper on startup and cancels it on shutdown.
    """
    container = get_container()
    settings = container.settings
    if not settings.jwt_secret:
        logger.warning("JWT_SECRET is not set; token operations will fail")

    sweeper = asyncio.create_task(
        container.rate_limiter.run_sweeper(
            timedelta(seconds=settings.rate_limit_sweep_interval)
        )
    )
    logger.info(f"Starting {settings.app_name} on {settings.host}:{settings.port}")
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        logger.info(f"Shutting down {settings.app_name}")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="TrackWise authentication, session and game gating API",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    register_exception_handlers(app)

    # Register routes
    app.include_router(health.router, prefix="/api", tags=["health"])
    # Game routes first so /games/... is not shadowed by auth routes
    app.include_router(games_router, prefix="/api/auth/games/session", tags=["games"])
    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])

    return app


# Application instance for uvicorn
app = create_app()
