"""
Room Registry

Tracks which WebSocket connections belong to which editing room and fans
events out to them:
- Rooms are created implicitly on first join and dropped once empty
- A connection may sit in any number of rooms
- Broadcasting to an empty or unknown room is a no-op

All state lives on the event loop thread; membership changes never await, so
no lock is needed.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from fastapi import WebSocket

from app.core.logging_config import logger


@dataclass(eq=False)
class Connection:
    """One attached client session"""
    websocket: WebSocket
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    rooms: Set[str] = field(default_factory=set)
    connected_at: datetime = field(default_factory=datetime.utcnow)
    last_activity: datetime = field(default_factory=datetime.utcnow)

    async def send(self, event: str, data: Any, ack_id: Optional[str] = None):
        message = {
            "type": event,
            "data": data,
            "timestamp": datetime.utcnow().isoformat()
        }
        if ack_id is not None:
            message["ackId"] = ack_id
        await self.websocket.send_json(message)
        self.last_activity = datetime.utcnow()


class RoomRegistry:
    """
    Room membership and broadcast.

    Usage:
        connection = await registry.connect(websocket)
        registry.join(connection, "r1")
        await registry.broadcast_to_others(connection, "r1", "code-sync", {...})
        registry.detach(connection)
    """

    def __init__(self):
        # connection_id -> Connection
        self._connections: Dict[str, Connection] = {}
        # room_id -> {connection_id: Connection}
        self._rooms: Dict[str, Dict[str, Connection]] = {}

    async def connect(self, websocket: WebSocket) -> Connection:
        """Accept the socket, register it and greet it with its connection id."""
        await websocket.accept()

        connection = Connection(websocket=websocket)
        self._connections[connection.id] = connection

        logger.info(f"User connected: {connection.id}")

        await self.send_to(connection, "connected", {"connectionId": connection.id})
        return connection

    def attach(self, connection: Connection) -> Connection:
        """Register an already-accepted connection."""
        self._connections[connection.id] = connection
        return connection

    def detach(self, connection: Connection):
        """
        Drop a connection from every room it belonged to.

        No per-room leave event is emitted.
        """
        for room_id in list(connection.rooms):
            self._remove_member(connection, room_id)
        self._connections.pop(connection.id, None)
        logger.info(f"User disconnected: {connection.id}")

    def join(self, connection: Connection, room_id: str) -> Dict[str, Any]:
        """Add connection to room_id. Joining twice is harmless."""
        self._rooms.setdefault(room_id, {})[connection.id] = connection
        connection.rooms.add(room_id)
        logger.log_room_event("join", room_id, connection.id)
        return {"success": True, "roomId": room_id}

    def leave(self, connection: Connection, room_id: str):
        """Remove connection from room_id; no error if it was not a member."""
        self._remove_member(connection, room_id)
        logger.log_room_event("leave", room_id, connection.id)

    def _remove_member(self, connection: Connection, room_id: str):
        connection.rooms.discard(room_id)
        members = self._rooms.get(room_id)
        if members is None:
            return
        members.pop(connection.id, None)
        # Empty rooms are not retained
        if not members:
            del self._rooms[room_id]

    def members(self, room_id: str) -> List[str]:
        """Connection ids currently in room_id."""
        return list(self._rooms.get(room_id, {}))

    def is_member(self, connection: Connection, room_id: str) -> bool:
        return connection.id in self._rooms.get(room_id, {})

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def send_to(
        self,
        connection: Connection,
        event: str,
        data: Any,
        ack_id: Optional[str] = None
    ) -> bool:
        """Send to a single connection. Dead connections are detached."""
        try:
            await connection.send(event, data, ack_id)
            return True
        except Exception as e:
            logger.error(f"Error sending {event} to {connection.id}: {e}")
            self.detach(connection)
            return False

    async def broadcast_to_all(self, room_id: str, event: str, data: Any) -> int:
        """Deliver to every member of room_id, originator included."""
        return await self._broadcast(room_id, event, data)

    async def broadcast_to_others(
        self,
        connection: Connection,
        room_id: str,
        event: str,
        data: Any
    ) -> int:
        """Deliver to every member of room_id except the originating connection."""
        return await self._broadcast(room_id, event, data, exclude=connection.id)

    async def _broadcast(
        self,
        room_id: str,
        event: str,
        data: Any,
        exclude: Optional[str] = None
    ) -> int:
        # Snapshot: membership may change while we await sends
        recipients = [
            conn for conn_id, conn in self._rooms.get(room_id, {}).items()
            if conn_id != exclude
        ]

        delivered = 0
        for conn in recipients:
            if await self.send_to(conn, event, data):
                delivered += 1
        return delivered
