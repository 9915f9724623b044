"""Realtime fan-out of delivery event changes to WebSocket subscribers.

Delivery is best-effort: nothing is persisted, missed messages are not
replayed and subscribers never acknowledge. Each subscriber owns a bounded
queue drained by its own writer, so :meth:`RealtimeNotifier.emit` never waits
on a socket.
"""
from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any

import structlog
from aiohttp import web

from webhook_service.domain.models import DeliveryEvent

logger = structlog.get_logger(__name__)

EVENT_MESSAGE_TYPE = "webhook_event"


def room_name(project_key: str, hook_key: str | None = None) -> str:
    return f"{project_key}:{hook_key}" if hook_key else project_key


def received_notification(event: DeliveryEvent) -> dict[str, Any]:
    return {
        "eventId": str(event.id),
        "status": event.status.value,
        "receivedAt": event.received_at.isoformat(),
        "replayOf": str(event.replay_of) if event.replay_of else None,
    }


def routed_notification(event: DeliveryEvent) -> dict[str, Any]:
    return {
        "eventId": str(event.id),
        "status": event.status.value,
        "routeResult": event.route_result.model_dump(mode="json") if event.route_result else None,
    }


class Subscriber:
    """One connected WebSocket client."""

    def __init__(self, ws: web.WebSocketResponse, *, queue_size: int):
        self.ws = ws
        self.rooms: set[str] = set()
        self._queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue(maxsize=queue_size)

    def offer(self, message: dict[str, Any]) -> bool:
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning("Realtime subscriber queue full, dropping message", rooms=sorted(self.rooms))
            return False
        return True

    def close(self) -> None:
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            pass

    async def pump(self) -> None:
        """Write queued messages to the socket until closed."""
        while True:
            message = await self._queue.get()
            if message is None or self.ws.closed:
                return
            try:
                await self.ws.send_json(message)
            except (ConnectionResetError, RuntimeError) as exc:
                logger.info("Realtime subscriber went away", error=str(exc))
                return


class RealtimeNotifier:
    def __init__(self, *, queue_size: int = 100):
        self._queue_size = queue_size
        self._rooms: dict[str, set[Subscriber]] = defaultdict(set)
        self._subscribers: set[Subscriber] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def connect(self, ws: web.WebSocketResponse) -> Subscriber:
        subscriber = Subscriber(ws, queue_size=self._queue_size)
        self._subscribers.add(subscriber)
        return subscriber

    def disconnect(self, subscriber: Subscriber) -> None:
        for room in list(subscriber.rooms):
            self.leave(subscriber, room)
        self._subscribers.discard(subscriber)
        subscriber.close()

    def join(self, subscriber: Subscriber, room: str) -> None:
        self._rooms[room].add(subscriber)
        subscriber.rooms.add(room)

    def leave(self, subscriber: Subscriber, room: str) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(subscriber)
            if not members:
                del self._rooms[room]
        subscriber.rooms.discard(room)

    def emit(self, project_key: str, hook_key: str, payload: dict[str, Any]) -> None:
        """Broadcast to the hook room and then the project room. Never raises."""
        message = {"type": EVENT_MESSAGE_TYPE, "hookKey": hook_key, **payload}
        try:
            for room in (room_name(project_key, hook_key), room_name(project_key)):
                for subscriber in list(self._rooms.get(room, ())):
                    subscriber.offer(message)
        except Exception:
            logger.exception(
                "Realtime notification failed",
                project_key=project_key,
                hook_key=hook_key,
            )

    async def close(self, _app: web.Application | None = None) -> None:
        """Close every connected socket. Register with ``app.on_shutdown``."""
        for subscriber in list(self._subscribers):
            self.disconnect(subscriber)
            if not subscriber.ws.closed:
                await subscriber.ws.close(code=1001, message=b"Server shutdown")
