"""
Health Check Endpoints

- /health/live  - Basic liveness (app is running)
- /health/ready - Readiness check (database reachable, sync hub up)
"""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from datetime import datetime
from typing import Dict, Any

from app.core.config import settings
from app.core.database import ping


router = APIRouter(prefix="/health", tags=["Health Checks"])


async def check_database() -> Dict[str, Any]:
    """Check database connectivity"""
    return await ping()


@router.get("/live")
async def liveness_check():
    """Liveness probe - the process is running."""
    return {
        "status": "alive",
        "timestamp": datetime.utcnow().isoformat(),
        "app": settings.APP_NAME,
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """
    Readiness probe - database reachable and the sync hub is accepting events.

    Returns 503 when any check fails.
    """
    db_check = await check_database()

    hub = getattr(request.app.state, "sync_hub", None)
    hub_check = {
        "status": "healthy" if hub is not None else "unhealthy",
        "rooms": hub.rooms.room_count if hub else 0,
        "connections": hub.rooms.connection_count if hub else 0,
        "pending_tasks": hub.pending_count if hub else 0,
    }

    healthy = db_check["status"] == "healthy" and hub_check["status"] == "healthy"
    body = {
        "status": "ready" if healthy else "not_ready",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": {"database": db_check, "sync_hub": hub_check},
    }
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body,
    )
