from __future__ import annotations

import asyncio
from typing import Any
from uuid import UUID, uuid4

from webhook_service.domain.dto import WebhookCreateDTO
from webhook_service.domain.models import Project, WebhookEndpoint
from webhook_service.services.secrets import SECRET_HEADER, generate_secret, hash_secret

TEST_BCRYPT_ROUNDS = 4


def make_headers(user_id: UUID | None = None) -> dict[str, str]:
    return {"X-User-Id": str(user_id or uuid4())}


def secret_headers(secret: str) -> dict[str, str]:
    return {SECRET_HEADER: secret}


async def create_endpoint(
    repositories, project: Project, **fields: Any
) -> tuple[WebhookEndpoint, str]:
    """Insert an endpoint directly into the fake store; returns it with its secret."""
    secret = generate_secret()
    data = WebhookCreateDTO.model_validate({"hook_key": "orders", **fields})
    endpoint = await repositories.webhooks.create(
        project.id, data, secret_hash=hash_secret(secret, rounds=TEST_BCRYPT_ROUNDS)
    )
    return endpoint, secret


async def wait_for_status(repositories, event_id: UUID, *statuses, timeout: float = 5.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        event = repositories.events.events[event_id]
        if event.status in statuses:
            return event
        if loop.time() > deadline:
            raise AssertionError(f"event {event_id} stuck in {event.status.value}")
        await asyncio.sleep(0.01)
