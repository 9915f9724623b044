"""Public inbound webhook endpoint."""
from __future__ import annotations

from typing import Any

from aiohttp import web

from webhook_service.api.utils import json_error
from webhook_service.core.exceptions import AuthenticationError, NotFoundError
from webhook_service.core.payloads import contains_nul, loads_strict
from webhook_service.services.dependencies import get_receiver
from webhook_service.services.secrets import SECRET_HEADER

routes = web.RouteTableDef()

FORWARDED_FOR_HEADER = "X-Forwarded-For"


def request_origin(request: web.Request) -> str | None:
    forwarded = request.headers.get(FORWARDED_FOR_HEADER, "")
    client = forwarded.split(",")[0].strip()
    return client or request.remote


async def read_payload(request: web.Request) -> Any:
    """Any storable JSON value is accepted; an empty body becomes ``{}``."""
    raw = await request.read()
    if not raw.strip():
        return {}
    try:
        payload = loads_strict(raw)
    except ValueError as exc:
        raise json_error(web.HTTPBadRequest, "Invalid JSON payload") from exc
    if contains_nul(payload):
        raise json_error(web.HTTPBadRequest, "Payload must not contain NUL characters")
    return payload


def check_headers(request: web.Request) -> None:
    if any(contains_nul(value) for value in request.headers.values()):
        raise json_error(web.HTTPBadRequest, "Headers must not contain NUL characters")


@routes.post("/webhooks/{project_key}/{hook_key}")
async def receive_webhook(request: web.Request):
    check_headers(request)
    body = await read_payload(request)
    receiver = get_receiver(request)
    try:
        result = await receiver.receive(
            request.match_info["project_key"],
            request.match_info["hook_key"],
            headers=request.headers.items(),
            body=body,
            origin=request_origin(request),
            presented_secret=request.headers.get(SECRET_HEADER),
        )
    except NotFoundError as exc:
        raise json_error(web.HTTPNotFound, str(exc)) from exc
    except AuthenticationError as exc:
        raise json_error(web.HTTPForbidden, str(exc)) from exc
    return web.json_response({"success": result.success, "eventId": str(result.event_id)})
