"""Manual replay of recorded delivery events."""
from __future__ import annotations

from uuid import UUID

import structlog

from webhook_service.domain.enums import AuditAction
from webhook_service.domain.models import REPLAY_ORIGIN, DeliveryEvent
from webhook_service.repositories.events import DeliveryEventRepository
from webhook_service.repositories.projects import ProjectRepository
from webhook_service.repositories.webhooks import WebhookRepository
from webhook_service.services.audit import AuditService
from webhook_service.services.notifier import RealtimeNotifier, received_notification
from webhook_service.services.router import EventRouter

logger = structlog.get_logger(__name__)


class ReplayCoordinator:
    """Re-submits a recorded event as a new event and waits for its outcome."""

    def __init__(
        self,
        project_repository: ProjectRepository,
        webhook_repository: WebhookRepository,
        event_repository: DeliveryEventRepository,
        notifier: RealtimeNotifier,
        router: EventRouter,
        audit: AuditService,
    ):
        self._projects = project_repository
        self._webhooks = webhook_repository
        self._events = event_repository
        self._notifier = notifier
        self._router = router
        self._audit = audit

    async def replay(
        self,
        project_key: str,
        hook_key: str,
        event_id: UUID,
        *,
        actor_user_id: UUID | None,
    ) -> DeliveryEvent:
        project = await self._projects.get_by_key(project_key)
        endpoint = await self._webhooks.get_by_key(project.id, hook_key)
        original = await self._events.get_for_webhook(endpoint.id, event_id)

        replayed = await self._events.create(
            webhook_id=endpoint.id,
            request_headers=original.request_headers,
            request_body=original.request_body,
            request_origin=REPLAY_ORIGIN,
            replay_of=original.id,
        )
        self._notifier.emit(project.project_key, endpoint.hook_key, received_notification(replayed))

        resolved = await self._router.route(endpoint, replayed, project_key=project.project_key)

        await self._audit.log(
            actor_user_id=actor_user_id,
            action=AuditAction.WEBHOOK_EVENT_REPLAY,
            entity_type="webhook_event",
            entity_id=resolved.id,
            details={
                "projectKey": project.project_key,
                "hookKey": endpoint.hook_key,
                "originalEventId": str(original.id),
                "status": resolved.status.value,
            },
        )
        logger.info(
            "Webhook event replayed",
            event_id=str(resolved.id),
            replay_of=str(original.id),
            status=resolved.status.value,
        )
        return resolved
