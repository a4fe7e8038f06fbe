from fastapi import APIRouter
from app.api.v1.endpoints import health, sync_websocket

api_router = APIRouter()

# Liveness/readiness probes
api_router.include_router(health.router)

# Collaborative editing channel: WS /api/v1/sync/ws
api_router.include_router(sync_websocket.router, prefix="/sync", tags=["Sync"])
