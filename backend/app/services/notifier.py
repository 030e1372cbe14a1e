"""
Real-time notifications — best-effort push to WebSocket clients.

Rooms: ``user:<id>`` (joined on connect) and ``campaign:<id>`` (joined on
request). A failing or absent notifier never fails the operation that
triggered it.
"""

import logging
from collections import defaultdict
from typing import Any

from fastapi import WebSocket

from app.utils import utcnow

logger = logging.getLogger(__name__)


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


def campaign_room(campaign_id: str) -> str:
    return f"campaign:{campaign_id}"


class Notifier:
    """Null notifier: accepts every event and delivers nothing."""

    async def notify(self, room: str, event: str, payload: dict[str, Any]) -> None:
        return None


class ConnectionManager(Notifier):
    """In-process registry of open sockets grouped by room."""

    def __init__(self):
        self._rooms: dict[str, set[WebSocket]] = defaultdict(set)

    async def connect(self, websocket: WebSocket, user_id: str) -> None:
        await websocket.accept()
        self.join(websocket, user_room(user_id))
        await websocket.send_json({
            "event": "connected",
            "data": {
                "message": "Connected to AI Marketing Campaign Generator",
                "userId": user_id,
                "timestamp": utcnow().isoformat(),
            },
        })
        logger.info(f"WebSocket connected for user {user_id}")

    def join(self, websocket: WebSocket, room: str) -> None:
        self._rooms[room].add(websocket)

    def leave(self, websocket: WebSocket, room: str) -> None:
        sockets = self._rooms.get(room)
        if sockets is None:
            return
        sockets.discard(websocket)
        if not sockets:
            del self._rooms[room]

    def disconnect(self, websocket: WebSocket) -> None:
        for room in list(self._rooms):
            self.leave(websocket, room)

    def room_size(self, room: str) -> int:
        return len(self._rooms.get(room, ()))

    async def notify(self, room: str, event: str, payload: dict[str, Any]) -> None:
        message = {"event": event, "data": payload, "timestamp": utcnow().isoformat()}
        for websocket in list(self._rooms.get(room, ())):
            try:
                await websocket.send_json(message)
            except Exception as e:
                logger.warning(f"Dropping socket from {room} after send failure: {e}")
                self.disconnect(websocket)


async def safe_notify(notifier: Notifier, room: str, event: str, payload: dict[str, Any]) -> None:
    """Fire-and-forget wrapper used by the services."""
    if notifier is None:
        return
    try:
        await notifier.notify(room, event, payload)
    except Exception as e:
        logger.warning(f"Notification {event} to {room} failed: {e}")
