"""
Room-addressed push hub for the interview websocket.
A room is a session id; every socket that joined it receives the
session's outbound events as {"event", "data"} JSON text frames.
"""
import json
import asyncio
import logging
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)


def encode_event(event: str, data: Any = None) -> str:
    return json.dumps({"event": event, "data": data})


class ChannelHub:
    """Implements the notifier capability: notify(session_id, event, payload)."""

    def __init__(self):
        self._room_lock = asyncio.Lock()
        self.rooms: Dict[str, Set[WebSocket]] = {}
        self.send_locks: Dict[WebSocket, asyncio.Lock] = {}
        self.socket_rooms: Dict[WebSocket, str] = {}

    async def join(self, websocket: WebSocket, room_id: str) -> None:
        """Move a socket into a room, leaving any previous one."""
        await self.leave(websocket)
        async with self._room_lock:
            self.rooms.setdefault(room_id, set()).add(websocket)
            self.send_locks.setdefault(websocket, asyncio.Lock())
            self.socket_rooms[websocket] = room_id

    async def leave(self, websocket: WebSocket) -> Optional[str]:
        async with self._room_lock:
            room_id = self.socket_rooms.pop(websocket, None)
            if room_id is None:
                return None
            members = self.rooms.get(room_id)
            if members:
                members.discard(websocket)
                if not members:
                    self.rooms.pop(room_id, None)
            return room_id

    async def disconnect(self, websocket: WebSocket) -> Optional[str]:
        room_id = await self.leave(websocket)
        async with self._room_lock:
            self.send_locks.pop(websocket, None)
        return room_id

    def room_of(self, websocket: WebSocket) -> Optional[str]:
        return self.socket_rooms.get(websocket)

    def room_size(self, room_id: str) -> int:
        return len(self.rooms.get(room_id, ()))

    async def send(self, websocket: WebSocket, event: str, data: Any = None) -> None:
        """Send one event to a single socket, serialized with other sends to it."""
        async with self._room_lock:
            send_lock = self.send_locks.setdefault(websocket, asyncio.Lock())
        async with send_lock:
            await websocket.send_text(encode_event(event, data))

    async def notify(self, session_id: str, event: str, payload: Any = None) -> None:
        """Fire-and-forget broadcast to every socket in the session's room."""
        async with self._room_lock:
            targets = list(self.rooms.get(session_id, set()))

        if not targets:
            logger.info(f"No listeners for {event} in session {session_id}")
            return

        for conn in targets:
            if conn.client_state != WebSocketState.CONNECTED:
                continue
            try:
                await self.send(conn, event, payload)
            except Exception as e:
                logger.warning(f"Dropped {event} for a socket in session {session_id}: {e}")
