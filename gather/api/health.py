"""Health check endpoints for system monitoring."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import sessionmaker

from gather.core.cache import membership_cache
from gather.dependencies import get_session_factory

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "service": "gather-backend",
        "membership_cache_entries": len(membership_cache),
    }


@router.get("/health/database")
async def database_health(
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """Health check for database connection."""
    try:
        with session_factory() as session:
            session.execute(text("SELECT 1"))
        return {"status": "healthy", "database_connected": True}
    except Exception as e:
        return {"status": "unhealthy", "database_connected": False, "error": str(e)}


@router.get("/health/live")
async def liveness_check():
    """Liveness check for Kubernetes/container orchestration."""
    return {"status": "alive"}
