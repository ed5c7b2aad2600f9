"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from hazard_hub.core.container import Services
from hazard_hub.routes.deps import get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check(request: Request):
    """
    Basic health check endpoint.
    Returns 200 if service is running, even when the datastore is not wired.
    """
    return {
        "status": "healthy",
        "service": request.app.title,
        "version": request.app.version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/db")
def database_health(services: Services = Depends(get_services)):
    """
    Database connectivity check.
    Lists top-level collections to prove the store answers.
    """
    try:
        collections_count = services.report_store.ping()
    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        raise HTTPException(status_code=503, detail="Database connection failed")

    return {
        "status": "healthy",
        "database": "mock" if services.settings.USE_MOCK_DB else "firestore",
        "connected": True,
        "collections_count": collections_count,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
