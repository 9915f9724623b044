"""WebSocket feed of delivery event changes."""
from __future__ import annotations

import asyncio
from typing import Any, Literal

import structlog
from aiohttp import WSMsgType, web
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from webhook_service.services.dependencies import get_notifier
from webhook_service.services.notifier import RealtimeNotifier, Subscriber, room_name

routes = web.RouteTableDef()

logger = structlog.get_logger(__name__)

HEARTBEAT_SECONDS = 30.0


class RealtimeCommand(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)

    action: Literal["subscribe", "unsubscribe"]
    project_key: str = Field(min_length=1)
    hook_key: str | None = Field(default=None, min_length=1)


def handle_command(
    notifier: RealtimeNotifier, subscriber: Subscriber, raw: str
) -> dict[str, Any]:
    try:
        command = RealtimeCommand.model_validate_json(raw)
    except ValidationError:
        return {"error": "Invalid command"}
    room = room_name(command.project_key, command.hook_key)
    if command.action == "subscribe":
        notifier.join(subscriber, room)
        return {"subscribed": room}
    notifier.leave(subscriber, room)
    return {"unsubscribed": room}


@routes.get("/ws/webhooks")
async def webhook_events_socket(request: web.Request):
    ws = web.WebSocketResponse(heartbeat=HEARTBEAT_SECONDS)
    await ws.prepare(request)

    notifier = get_notifier(request)
    subscriber = notifier.connect(ws)
    # Replies go through the subscriber queue so the pump stays the only writer.
    writer = asyncio.create_task(subscriber.pump(), name="realtime_pump")
    logger.info("Realtime subscriber connected", subscribers=notifier.subscriber_count)
    try:
        async for msg in ws:
            if msg.type == WSMsgType.TEXT:
                subscriber.offer(handle_command(notifier, subscriber, msg.data))
            elif msg.type == WSMsgType.ERROR:
                logger.warning("Realtime socket error", error=str(ws.exception()))
    finally:
        notifier.disconnect(subscriber)
        writer.cancel()
        await asyncio.gather(writer, return_exceptions=True)
        logger.info("Realtime subscriber disconnected", subscribers=notifier.subscriber_count)
    return ws
