"""
Collaborative Editing WebSocket Endpoint

Connection URL: WS /api/v1/sync/ws

Message format (send):
{
    "type": "event-name",
    "data": { ... },
    "ackId": "optional correlation id, echoed on replies"
}

On connect the server sends `connected` with the assigned connectionId.
See app.services.sync_hub for the full event table.
"""

import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.core.logging_config import logger, set_connection_id
from app.services.sync_hub import SyncHub


router = APIRouter()


@router.websocket("/ws")
async def sync_websocket_endpoint(websocket: WebSocket):
    hub: SyncHub = websocket.app.state.sync_hub

    connection = await hub.rooms.connect(websocket)
    set_connection_id(connection.id)

    try:
        while True:
            try:
                message = await websocket.receive_json()
            except (json.JSONDecodeError, KeyError):
                await hub.rooms.send_to(
                    connection,
                    "error",
                    {"success": False, "error": {"code": "INVALID_JSON", "message": "Invalid JSON message"}}
                )
                continue

            await hub.dispatch(connection, message)

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: {connection.id}")
    except Exception as e:
        logger.error(f"WebSocket error: {e}", exc_info=True)
    finally:
        hub.rooms.detach(connection)
