"""
WebSocket connection manager for real-time notifications.

Connections are grouped into named rooms. Every connection joins its
user's room on connect; application rooms are joined on request and
carry messaging and typing events. Frames are JSON objects of the form
{"type": <event>, "data": <payload>}.
"""

from typing import Any, Dict, Set
from uuid import UUID
import asyncio
import json
import logging

from fastapi import WebSocket

logger = logging.getLogger(__name__)


def user_room(user_id: UUID | str) -> str:
    return f"user:{user_id}"


def application_room(application_id: UUID | str) -> str:
    return f"application:{application_id}"


class ConnectionManager:
    """Manages WebSocket connections per room."""

    def __init__(self):
        # room name -> set of active WebSocket connections
        self._rooms: Dict[str, Set[WebSocket]] = {}
        # websocket -> rooms it belongs to (for cleanup on disconnect)
        self._memberships: Dict[WebSocket, Set[str]] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, user_id: UUID) -> None:
        """Accept a connection and join it to its user's room."""
        await websocket.accept()
        await self.join(websocket, user_room(user_id))

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a connection from every room it joined."""
        async with self._lock:
            self._drop(websocket)

    async def join(self, websocket: WebSocket, room: str) -> None:
        async with self._lock:
            self._rooms.setdefault(room, set()).add(websocket)
            self._memberships.setdefault(websocket, set()).add(room)

    async def leave(self, websocket: WebSocket, room: str) -> None:
        async with self._lock:
            members = self._rooms.get(room)
            if members is not None:
                members.discard(websocket)
                if not members:
                    del self._rooms[room]
            rooms = self._memberships.get(websocket)
            if rooms is not None:
                rooms.discard(room)

    async def send_to_room(
        self,
        room: str,
        event: str,
        data: Any,
        exclude: WebSocket | None = None,
    ) -> int:
        """Send an event to every connection in a room. Returns the number reached."""
        return await self.send_to_rooms([room], event, data, exclude)

    async def send_to_rooms(
        self,
        rooms: list[str],
        event: str,
        data: Any,
        exclude: WebSocket | None = None,
    ) -> int:
        """Send once to every connection in any of `rooms`."""
        async with self._lock:
            connections = set()
            for room in rooms:
                connections.update(self._rooms.get(room, set()))
        connections.discard(exclude)

        if not connections:
            return 0

        message = json.dumps({"type": event, "data": data}, default=str)
        closed = []
        delivered = 0

        for ws in connections:
            try:
                await ws.send_text(message)
                delivered += 1
            except Exception:
                # Connection closed or errored
                closed.append(ws)

        if closed:
            logger.info("Pruning %d dead connection(s) from %s", len(closed), ", ".join(rooms))
            async with self._lock:
                for ws in closed:
                    self._drop(ws)

        return delivered

    async def send_to_user(self, user_id: UUID, event: str, data: Any) -> int:
        """Send an event to all connections of a specific user."""
        return await self.send_to_room(user_room(user_id), event, data)

    async def send_to_application(
        self,
        application_id: UUID,
        event: str,
        data: Any,
        exclude: WebSocket | None = None,
    ) -> int:
        return await self.send_to_room(application_room(application_id), event, data, exclude)

    def get_connected_count(self, user_id: UUID) -> int:
        """Get the number of active connections for a user."""
        return len(self._rooms.get(user_room(user_id), set()))

    def get_room_size(self, room: str) -> int:
        return len(self._rooms.get(room, set()))

    def get_rooms(self, websocket: WebSocket) -> set[str]:
        return set(self._memberships.get(websocket, set()))

    def get_total_connections(self) -> int:
        """Get total number of active connections."""
        return len(self._memberships)

    def _drop(self, websocket: WebSocket) -> None:
        for room in self._memberships.pop(websocket, set()):
            members = self._rooms.get(room)
            if members is None:
                continue
            members.discard(websocket)
            if not members:
                del self._rooms[room]


# Singleton instance
manager = ConnectionManager()
