"""Health check endpoints."""

import logging
from datetime import datetime
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from testing_engine import __version__
from testing_engine.database.connection import get_db
from testing_engine.utils.config import settings

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check."""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "service": "testing-engine",
        "version": __version__
    }


@router.get("/health/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Readiness probe: the datastore must answer."""
    checks = {
        "api": True,
        "database": False,
        "credentials": bool(settings.SUPER_ADMIN_EMAIL and settings.SUPER_ADMIN_PASSWORD)
    }

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")

    return {
        "ready": checks["api"] and checks["database"],
        "checks": checks,
        "timestamp": datetime.utcnow().isoformat() + "Z"
    }


@router.get("/health/config")
async def config_check():
    """Show non-sensitive configuration."""
    return {
        "environment": settings.ENVIRONMENT,
        "e2e_base_url": settings.E2E_BASE_URL,
        "api_base_url": settings.API_BASE_URL,
        "accessibility_tags": settings.ACCESSIBILITY_TAGS,
        "navigation_timeout_ms": settings.NAVIGATION_TIMEOUT_MS,
        "sync_catalog_on_startup": settings.SYNC_CATALOG_ON_STARTUP
    }
