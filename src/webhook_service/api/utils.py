"""Helper utilities for API handlers."""
from __future__ import annotations

import json
from typing import Any, NoReturn
from uuid import UUID

from aiohttp import web
from pydantic import ValidationError


async def read_json(request: web.Request) -> dict[str, Any]:
    """Parse a JSON object body, raising HTTPBadRequest on invalid input."""
    try:
        data = await request.json()
    except ValueError as exc:
        raise web.HTTPBadRequest(text="Invalid JSON payload") from exc
    if not isinstance(data, dict):
        raise web.HTTPBadRequest(text="JSON body must be an object")
    return data


def json_error(error_cls: type[web.HTTPException], message: str) -> web.HTTPException:
    """Build an HTTP error carrying a ``{"success": false, "error": ...}`` body."""
    return error_cls(
        text=json.dumps({"success": False, "error": message}),
        content_type="application/json",
    )


def raise_validation_error(exc: ValidationError) -> NoReturn:
    raise web.HTTPBadRequest(
        text=exc.json(include_url=False), content_type="application/json"
    ) from exc


def parse_uuid(value: str, label: str) -> UUID:
    try:
        return UUID(value)
    except (ValueError, TypeError) as exc:
        raise web.HTTPBadRequest(text=f"Invalid {label}") from exc


def pagination_params(
    request: web.Request,
    *,
    default_limit: int = 50,
    max_limit: int = 100,
) -> tuple[int, int]:
    query = request.rel_url.query
    try:
        limit = int(query.get("limit", str(default_limit)))
        offset = int(query.get("offset", "0"))
    except ValueError as exc:
        raise web.HTTPBadRequest(text="limit and offset must be integers") from exc
    if limit <= 0:
        limit = default_limit
    limit = min(limit, max_limit)
    if offset < 0:
        offset = 0
    return limit, offset


def paginated_response(
    items: list[Any],
    *,
    limit: int,
    offset: int,
    key: str,
    total: int,
) -> dict[str, Any]:
    page = offset // limit + 1 if limit else 1
    return {
        key: items,
        "total": total,
        "page": page,
        "page_size": limit,
    }
