# ==============================================================================
# CONNECTION MANAGER - Realtime Rooms
# ==============================================================================
# Room registry for WebSocket subscribers. One instance per application,
# held on app.state. Emits are fire-and-forget: no ack, no replay.
# ==============================================================================

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Tracks which sockets are subscribed to which room (chat id).

    Example:
        >>> manager = ConnectionManager()
        >>> manager.join("chat-1", websocket)
        >>> await manager.emit("chat-1", "receiveMessage", {...})
    """

    def __init__(self, send_timeout: float = 5.0) -> None:
        self._rooms: Dict[str, Set[WebSocket]] = defaultdict(set)
        self._send_locks: Dict[WebSocket, asyncio.Lock] = {}
        self.send_timeout = send_timeout

    def join(self, room: str, websocket: WebSocket) -> None:
        self._rooms[room].add(websocket)
        logger.debug(f"Socket joined room {room} ({len(self._rooms[room])} members)")

    def leave(self, room: str, websocket: WebSocket) -> None:
        members = self._rooms.get(room)
        if not members:
            return
        members.discard(websocket)
        if not members:
            del self._rooms[room]

    def disconnect(self, websocket: WebSocket) -> None:
        """Remove a socket from every room it joined."""
        for room in list(self._rooms):
            self.leave(room, websocket)
        self._send_locks.pop(websocket, None)

    def room_size(self, room: str) -> int:
        return len(self._rooms.get(room, ()))

    async def send(self, websocket: WebSocket, frame: Dict[str, Any]) -> None:
        """
        Write one frame to one socket.

        Frames to the same socket are written one at a time; a send that
        takes longer than ``send_timeout`` raises ``asyncio.TimeoutError``.
        """
        lock = self._send_locks.setdefault(websocket, asyncio.Lock())
        async with lock:
            await asyncio.wait_for(websocket.send_json(frame), self.send_timeout)

    async def _deliver(self, room: str, websocket: WebSocket, frame: Dict[str, Any]) -> bool:
        try:
            await self.send(websocket, frame)
        except Exception as e:
            logger.info(f"Dropping dead socket from room {room}: {e!r}")
            self.disconnect(websocket)
            return False
        return True

    async def emit(
        self,
        room: str,
        event: str,
        data: Any,
        exclude: Optional[WebSocket] = None,
    ) -> int:
        """
        Send ``{"event": ..., "data": ...}`` to every socket in a room.

        Members are written to concurrently. Sockets that fail or time out
        are dropped from the registry.

        Returns:
            Number of sockets the frame was written to
        """
        members = [ws for ws in self._rooms.get(room, ()) if ws is not exclude]
        if not members:
            return 0

        frame = {"event": event, "data": jsonable_encoder(data)}
        results = await asyncio.gather(
            *(self._deliver(room, websocket, frame) for websocket in members)
        )
        return sum(results)
