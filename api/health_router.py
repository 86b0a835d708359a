"""
Health and Monitoring Router.

Public, unauthenticated endpoints for liveness and readiness probes.

Endpoints Provided:
- `/healthcheck`: Lightweight check that the process is serving requests.
- `/monitoring/ping`: Simple connectivity test.
- `/monitoring/detailed`: Component status, currently the storage backend.
  Reports `degraded` instead of failing when a component is unhealthy.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from core.logging_config import get_logger
from providers.storage_provider import StorageProvider
from .dependencies import get_storage

logger = get_logger(__name__)

SERVICE_NAME = "EcoSnap API"
SERVICE_VERSION = "1.0.0"

health_router = APIRouter(tags=["Health & Monitoring"])
monitoring_router = APIRouter(prefix="/monitoring", tags=["Health & Monitoring"])


@health_router.get("/healthcheck")
async def health_check() -> Dict[str, Any]:
    """Basic health check endpoint (no authentication required)"""
    logger.debug("Health check requested")

    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": SERVICE_VERSION,
        "service": SERVICE_NAME,
    }


@monitoring_router.get("/ping")
async def ping() -> Dict[str, str]:
    """Simple ping endpoint for connectivity testing"""
    return {
        "message": "pong",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": SERVICE_VERSION,
    }


@monitoring_router.get("/detailed")
async def detailed_health_check(
    storage: StorageProvider = Depends(get_storage),
) -> Dict[str, Any]:
    """Detailed health check with component status"""
    logger.info("Detailed health check requested")

    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": SERVICE_VERSION,
        "service": SERVICE_NAME,
        "components": {},
    }

    try:
        storage_health = await storage.health_check()
        health_status["components"]["storage"] = storage_health
        if storage_health.get("status") != "healthy":
            health_status["status"] = "degraded"
    except Exception as e:
        logger.error(f"Storage health check failed: {e}")
        health_status["components"]["storage"] = {
            "status": "unhealthy",
            "error": str(e),
        }
        health_status["status"] = "degraded"

    return health_status
