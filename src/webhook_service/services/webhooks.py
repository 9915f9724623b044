"""Webhook endpoint management (configuration, secrets, event history)."""
from __future__ import annotations

import asyncio
from typing import List
from uuid import UUID

from webhook_service.domain.dto import WebhookCreateDTO, WebhookUpdateDTO, WebhookWithSecret
from webhook_service.domain.enums import AuditAction, WebhookEventStatus
from webhook_service.domain.models import DeliveryEvent, Project, WebhookEndpoint
from webhook_service.repositories.events import DeliveryEventRepository
from webhook_service.repositories.projects import ProjectRepository
from webhook_service.repositories.webhooks import WebhookRepository
from webhook_service.services.audit import AuditService
from webhook_service.services.secrets import generate_secret, hash_secret


async def _new_secret() -> tuple[str, str]:
    """Return ``(plaintext, bcrypt_hash)``; hashing runs off the event loop."""
    secret = generate_secret()
    loop = asyncio.get_running_loop()
    secret_hash = await loop.run_in_executor(None, hash_secret, secret)
    return secret, secret_hash


class WebhookService:
    def __init__(
        self,
        project_repository: ProjectRepository,
        webhook_repository: WebhookRepository,
        event_repository: DeliveryEventRepository,
        audit: AuditService,
    ):
        self._projects = project_repository
        self._webhooks = webhook_repository
        self._events = event_repository
        self._audit = audit

    async def _resolve(self, project_key: str, hook_key: str) -> tuple[Project, WebhookEndpoint]:
        project = await self._projects.get_by_key(project_key)
        return project, await self._webhooks.get_by_key(project.id, hook_key)

    async def list_webhooks(self, project_key: str) -> List[WebhookEndpoint]:
        project = await self._projects.get_by_key(project_key)
        return await self._webhooks.list_by_project(project.id)

    async def get_webhook(self, project_key: str, hook_key: str) -> WebhookEndpoint:
        _, endpoint = await self._resolve(project_key, hook_key)
        return endpoint

    async def create_webhook(
        self,
        project_key: str,
        data: WebhookCreateDTO,
        *,
        actor_user_id: UUID | None,
    ) -> WebhookWithSecret:
        """Create an endpoint; the plaintext secret is returned only here."""
        project = await self._projects.get_by_key(project_key)
        secret, secret_hash = await _new_secret()
        endpoint = await self._webhooks.create(project.id, data, secret_hash=secret_hash)
        await self._audit.log(
            actor_user_id=actor_user_id,
            action=AuditAction.WEBHOOK_CREATE,
            entity_type="webhook",
            entity_id=endpoint.id,
            details={"projectKey": project.project_key, "hookKey": endpoint.hook_key},
        )
        return WebhookWithSecret(webhook=endpoint, secret=secret)

    async def update_webhook(
        self,
        project_key: str,
        hook_key: str,
        data: WebhookUpdateDTO,
        *,
        actor_user_id: UUID | None,
    ) -> WebhookEndpoint:
        project, endpoint = await self._resolve(project_key, hook_key)
        updated = await self._webhooks.update(project.id, endpoint.id, data)
        await self._audit.log(
            actor_user_id=actor_user_id,
            action=AuditAction.WEBHOOK_UPDATE,
            entity_type="webhook",
            entity_id=updated.id,
            details={
                "projectKey": project.project_key,
                "hookKey": hook_key,
                "changes": data.model_dump(mode="json", exclude_unset=True),
            },
        )
        return updated

    async def rotate_secret(
        self,
        project_key: str,
        hook_key: str,
        *,
        actor_user_id: UUID | None,
    ) -> str:
        project, endpoint = await self._resolve(project_key, hook_key)
        secret, secret_hash = await _new_secret()
        await self._webhooks.set_secret_hash(project.id, endpoint.id, secret_hash)
        await self._audit.log(
            actor_user_id=actor_user_id,
            action=AuditAction.WEBHOOK_ROTATE_SECRET,
            entity_type="webhook",
            entity_id=endpoint.id,
            details={"projectKey": project.project_key, "hookKey": hook_key},
        )
        return secret

    async def list_events(
        self,
        project_key: str,
        hook_key: str,
        *,
        status: WebhookEventStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[List[DeliveryEvent], int]:
        _, endpoint = await self._resolve(project_key, hook_key)
        return await self._events.list_by_webhook(
            endpoint.id, status=status, limit=limit, offset=offset
        )

    async def get_event(self, project_key: str, hook_key: str, event_id: UUID) -> DeliveryEvent:
        _, endpoint = await self._resolve(project_key, hook_key)
        return await self._events.get_for_webhook(endpoint.id, event_id)
