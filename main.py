"""
EcoSnap API - Main Application Entry Point.

This module initializes and configures the FastAPI application for EcoSnap, a
short-video sharing service for environmental content. It sets up logging,
storage, middleware, and routes.

Key Responsibilities:
- Configure and launch the FastAPI application.
- Set up middleware for correlation, error handling, and performance.
- Initialize the storage backend and seed the admin account and sample data.
- Mount API routers for health, authentication, videos, moderation and
  community features, plus the uploaded media files.
- Manage the application's lifecycle with startup and shutdown events.

Architecture:
Routers stay thin and delegate to services in `services/`, which run their
multi-step workflows inside storage transactions provided by `providers/`.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.admin_endpoints import router as admin_router
from api.auth_endpoints import router as auth_router
from api.community_endpoints import router as community_router
from api.dependencies import get_auth_service, get_community_service, get_storage
from api.health_router import health_router, monitoring_router
from api.media_endpoints import router as media_router
from api.video_endpoints import router as video_router
from core.logging_config import get_logger, setup_logging
from core.middleware import (
    CorrelationMiddleware,
    ErrorHandlingMiddleware,
    PerformanceMiddleware,
    register_exception_handlers,
)

DEFAULT_CORS_ORIGINS = "http://localhost:5173,http://localhost:3000"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    logger = get_logger("api.startup")

    storage = get_storage()
    await storage.initialize()
    logger.info(f"Storage initialized ({storage.backend_name})")

    admin_password = os.getenv("ADMIN_PASSWORD")
    if admin_password:
        admin = await get_auth_service().ensure_admin(
            os.getenv("ADMIN_USERNAME", "admin"), admin_password
        )
        logger.info(f"Admin account ready: {admin.username}")
    else:
        logger.info("ADMIN_PASSWORD not set, skipping admin account")

    if _env_flag("SEED_SAMPLE_DATA", "true"):
        challenge = await get_community_service().seed_sample_challenge()
        if challenge:
            logger.info(f"Seeded sample challenge: {challenge.title}")

    logger.info("Service startup completed")
    yield

    # Cleanup on shutdown
    logger.info("Shutting down EcoSnap API")
    await storage.close()
    logger.info("Cleanup completed")


app = FastAPI(
    title="EcoSnap API",
    description="Short environmental videos, moderation, points and challenges",
    version="1.0.0",
    lifespan=lifespan,
)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",")
        if origin.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Added last runs first: correlation wraps performance wraps error handling
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(PerformanceMiddleware)
app.add_middleware(CorrelationMiddleware)


# Health routers FIRST (no authentication required for monitoring)
app.include_router(health_router)
app.include_router(monitoring_router)

app.include_router(auth_router)

# Video routes before community routes so /api/users/saved-videos is not
# captured by /api/users/{user_id}
app.include_router(video_router)
app.include_router(admin_router)
app.include_router(community_router)

app.include_router(media_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("ENVIRONMENT", "development") == "development",
        log_level="info",
    )
