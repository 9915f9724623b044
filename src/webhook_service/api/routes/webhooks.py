"""Webhook endpoint management endpoints."""
from __future__ import annotations

from typing import Any

from aiohttp import web
from pydantic import ValidationError

from webhook_service.api.utils import (
    paginated_response,
    pagination_params,
    parse_uuid,
    raise_validation_error,
    read_json,
)
from webhook_service.core.exceptions import ConflictError, NotFoundError
from webhook_service.domain.dto import WebhookCreateDTO, WebhookUpdateDTO
from webhook_service.domain.enums import WebhookEventStatus
from webhook_service.domain.models import WebhookEndpoint
from webhook_service.services.dependencies import (
    get_replay_coordinator,
    get_webhook_service,
    require_current_user,
)

routes = web.RouteTableDef()

BASE_PATH = "/api/v1/projects/{project_key}/webhooks"


def _webhook_payload(endpoint: WebhookEndpoint) -> dict[str, Any]:
    return endpoint.model_dump(mode="json", by_alias=True)


def _status_filter(request: web.Request) -> WebhookEventStatus | None:
    value = request.rel_url.query.get("status")
    if not value:
        return None
    try:
        return WebhookEventStatus(value.upper())
    except ValueError as exc:
        raise web.HTTPBadRequest(text=f"Invalid status: {value}") from exc


@routes.get(BASE_PATH)
async def list_webhooks(request: web.Request):
    await require_current_user(request)
    service = get_webhook_service(request)
    try:
        items = await service.list_webhooks(request.match_info["project_key"])
    except NotFoundError as exc:
        raise web.HTTPNotFound(text=str(exc)) from exc
    return web.json_response({"webhooks": [_webhook_payload(item) for item in items]})


@routes.post(BASE_PATH)
async def create_webhook(request: web.Request):
    user = await require_current_user(request)
    body = await read_json(request)
    try:
        dto = WebhookCreateDTO.model_validate(body)
    except ValidationError as exc:
        raise_validation_error(exc)
    service = get_webhook_service(request)
    try:
        created = await service.create_webhook(
            request.match_info["project_key"], dto, actor_user_id=user.user_id
        )
    except NotFoundError as exc:
        raise web.HTTPNotFound(text=str(exc)) from exc
    except ConflictError as exc:
        raise web.HTTPConflict(text=str(exc)) from exc
    return web.json_response(
        {"webhook": _webhook_payload(created.webhook), "secret": created.secret}, status=201
    )


@routes.get(BASE_PATH + "/{hook_key}")
async def get_webhook(request: web.Request):
    await require_current_user(request)
    service = get_webhook_service(request)
    try:
        endpoint = await service.get_webhook(
            request.match_info["project_key"], request.match_info["hook_key"]
        )
    except NotFoundError as exc:
        raise web.HTTPNotFound(text=str(exc)) from exc
    return web.json_response(_webhook_payload(endpoint))


@routes.patch(BASE_PATH + "/{hook_key}")
async def update_webhook(request: web.Request):
    user = await require_current_user(request)
    body = await read_json(request)
    try:
        dto = WebhookUpdateDTO.model_validate(body)
    except ValidationError as exc:
        raise_validation_error(exc)
    service = get_webhook_service(request)
    try:
        endpoint = await service.update_webhook(
            request.match_info["project_key"],
            request.match_info["hook_key"],
            dto,
            actor_user_id=user.user_id,
        )
    except NotFoundError as exc:
        raise web.HTTPNotFound(text=str(exc)) from exc
    except ValueError as exc:
        raise web.HTTPBadRequest(text=str(exc)) from exc
    return web.json_response(_webhook_payload(endpoint))


@routes.post(BASE_PATH + "/{hook_key}/rotate-secret")
async def rotate_secret(request: web.Request):
    user = await require_current_user(request)
    service = get_webhook_service(request)
    try:
        secret = await service.rotate_secret(
            request.match_info["project_key"],
            request.match_info["hook_key"],
            actor_user_id=user.user_id,
        )
    except NotFoundError as exc:
        raise web.HTTPNotFound(text=str(exc)) from exc
    return web.json_response({"secret": secret})


@routes.get(BASE_PATH + "/{hook_key}/events")
async def list_events(request: web.Request):
    await require_current_user(request)
    status = _status_filter(request)
    limit, offset = pagination_params(request)
    service = get_webhook_service(request)
    try:
        items, total = await service.list_events(
            request.match_info["project_key"],
            request.match_info["hook_key"],
            status=status,
            limit=limit,
            offset=offset,
        )
    except NotFoundError as exc:
        raise web.HTTPNotFound(text=str(exc)) from exc
    payload = paginated_response(
        [item.model_dump(mode="json") for item in items],
        limit=limit,
        offset=offset,
        key="events",
        total=total,
    )
    return web.json_response(payload)


@routes.get(BASE_PATH + "/{hook_key}/events/{event_id}")
async def get_event(request: web.Request):
    await require_current_user(request)
    event_id = parse_uuid(request.match_info["event_id"], "event_id")
    service = get_webhook_service(request)
    try:
        event = await service.get_event(
            request.match_info["project_key"], request.match_info["hook_key"], event_id
        )
    except NotFoundError as exc:
        raise web.HTTPNotFound(text=str(exc)) from exc
    return web.json_response(event.model_dump(mode="json"))


@routes.post(BASE_PATH + "/{hook_key}/events/{event_id}/replay")
async def replay_event(request: web.Request):
    user = await require_current_user(request)
    event_id = parse_uuid(request.match_info["event_id"], "event_id")
    coordinator = get_replay_coordinator(request)
    try:
        event = await coordinator.replay(
            request.match_info["project_key"],
            request.match_info["hook_key"],
            event_id,
            actor_user_id=user.user_id,
        )
    except NotFoundError as exc:
        raise web.HTTPNotFound(text=str(exc)) from exc
    return web.json_response(event.model_dump(mode="json"))
