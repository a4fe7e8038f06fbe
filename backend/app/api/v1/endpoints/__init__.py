# API endpoints
from . import health, sync_websocket

__all__ = ["health", "sync_websocket"]
