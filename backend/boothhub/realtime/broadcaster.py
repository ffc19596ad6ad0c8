"""
Real-time booth status broadcaster.

Clients connect to /ws and join one room per exhibition event they are
watching. boothStatusChanged bus events are pushed to that event's room
only; nobody else hears about them. Membership lives in memory and is lost
on disconnect, so a reconnecting client must join again.

Client -> server:
    {"type": "join:event",   "eventId": 3}
    {"type": "leave:event",  "eventId": 3}
    {"type": "booth:select", "eventId": 3, "boothId": 12}

Server -> client:
    {"type": "joined" | "left", "eventId": 3}
    {"type": "boothStatusUpdate", "boothId", "eventId", "status", "timestamp"}
    {"type": "boothSelected", "boothId", "eventId", "timestamp"}
    {"type": "error", "message": "..."}
"""

import asyncio
from typing import Any, Optional

from fastapi import WebSocket

from boothhub.core.event_bus import EventBus, Topic
from boothhub.core.logging import get_logger
from boothhub.core.metrics import websocket_connections
from boothhub.core.utils import utcnow

logger = get_logger(__name__)


def _event_id(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class Broadcaster:
    def __init__(self, bus: Optional[EventBus] = None, send_timeout: float = 1.0):
        self.bus = bus
        self.send_timeout = send_timeout
        self.rooms: dict[int, set[WebSocket]] = {}
        self.memberships: dict[WebSocket, set[int]] = {}
        self._lock = asyncio.Lock()
        self._unsubscribe: list = []

    def attach(self, bus: EventBus) -> None:
        """Start relaying bus events to rooms."""
        self.bus = bus
        self._unsubscribe = [
            bus.subscribe(Topic.BOOTH_STATUS_CHANGED, self.on_booth_status_changed),
        ]

    def detach(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []

    # Connections

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self.memberships[websocket] = set()
        websocket_connections.inc()
        logger.info("ws_connected", connections=len(self.memberships))

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            rooms = self.memberships.pop(websocket, None)
            if rooms is None:
                return
            for event_id in rooms:
                self._discard(event_id, websocket)
        websocket_connections.dec()
        logger.info("ws_disconnected", connections=len(self.memberships))

    async def join(self, websocket: WebSocket, event_id: int) -> None:
        async with self._lock:
            self.rooms.setdefault(event_id, set()).add(websocket)
            self.memberships.setdefault(websocket, set()).add(event_id)
        logger.info("ws_joined", event_id=event_id, room_size=self.room_size(event_id))

    async def leave(self, websocket: WebSocket, event_id: int) -> None:
        async with self._lock:
            self._discard(event_id, websocket)
            self.memberships.get(websocket, set()).discard(event_id)
        logger.info("ws_left", event_id=event_id)

    def _discard(self, event_id: int, websocket: WebSocket) -> None:
        members = self.rooms.get(event_id)
        if members is None:
            return
        members.discard(websocket)
        if not members:
            del self.rooms[event_id]

    def room_size(self, event_id: int) -> int:
        return len(self.rooms.get(event_id, ()))

    def connection_count(self) -> int:
        return len(self.memberships)

    # Delivery

    async def broadcast(self, event_id: int, message: dict[str, Any]) -> int:
        """
        Send to every member of the room at once. A socket that errors or
        does not take the message within send_timeout is dropped, so one slow
        client cannot hold up the publisher. Returns how many sends succeeded.
        """
        async with self._lock:
            members = list(self.rooms.get(event_id, ()))
        if not members:
            return 0

        results = await asyncio.gather(*(self._send(websocket, event_id, message) for websocket in members))
        for websocket, sent in zip(members, results):
            if not sent:
                await self.disconnect(websocket)
        return sum(results)

    async def _send(self, websocket: WebSocket, event_id: int, message: dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(websocket.send_json(message), self.send_timeout)
        except asyncio.TimeoutError:
            logger.warning("ws_send_timeout", event_id=event_id, timeout=self.send_timeout)
            return False
        except Exception as e:
            logger.warning("ws_send_failed", event_id=event_id, error=str(e))
            return False
        return True

    async def on_booth_status_changed(self, payload: dict[str, Any]) -> None:
        event_id = _event_id(payload.get("eventId"))
        if event_id is None:
            return
        await self.broadcast(
            event_id,
            {
                "type": "boothStatusUpdate",
                "boothId": payload.get("boothId"),
                "eventId": event_id,
                "status": payload.get("status"),
                "timestamp": payload.get("timestamp") or utcnow().isoformat(),
            },
        )

    async def handle_message(self, websocket: WebSocket, message: Any) -> None:
        """Dispatch one client message and reply on the same socket."""
        if not isinstance(message, dict):
            await websocket.send_json({"type": "error", "message": "Message must be a JSON object"})
            return

        kind = message.get("type")
        event_id = _event_id(message.get("eventId"))
        if kind not in ("join:event", "leave:event", "booth:select"):
            await websocket.send_json({"type": "error", "message": f"Unknown message type: {kind}"})
            return
        if event_id is None:
            await websocket.send_json({"type": "error", "message": "eventId is required"})
            return

        if kind == "join:event":
            await self.join(websocket, event_id)
            await websocket.send_json({"type": "joined", "eventId": event_id})
        elif kind == "leave:event":
            await self.leave(websocket, event_id)
            await websocket.send_json({"type": "left", "eventId": event_id})
        else:
            booth_id = message.get("boothId")
            if self.bus is not None:
                self.bus.emit(
                    Topic.BOOTH_SELECTED,
                    {"boothId": booth_id, "eventId": event_id, "module": "realtime"},
                )
            await self.broadcast(
                event_id,
                {
                    "type": "boothSelected",
                    "boothId": booth_id,
                    "eventId": event_id,
                    "timestamp": utcnow().isoformat(),
                },
            )
