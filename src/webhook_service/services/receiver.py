"""Public webhook receipt: authenticate, record, schedule routing."""
from __future__ import annotations

from typing import Any, Iterable

import structlog

from webhook_service.core.exceptions import AuthenticationError, NotFoundError
from webhook_service.domain.dto import ReceiptResult
from webhook_service.repositories.events import DeliveryEventRepository
from webhook_service.repositories.projects import ProjectRepository
from webhook_service.repositories.webhooks import WebhookRepository
from webhook_service.services.background import BackgroundTaskRunner
from webhook_service.services.notifier import RealtimeNotifier, received_notification
from webhook_service.services.router import EventRouter
from webhook_service.services.secrets import SECRET_HEADER, verify_secret_async

logger = structlog.get_logger(__name__)

STRIPPED_HEADERS = frozenset({SECRET_HEADER, "authorization"})

# Same outward error for a missing project and a missing hook, and for a
# disabled hook and a wrong secret.
NOT_FOUND_MESSAGE = "Webhook not found"
FORBIDDEN_MESSAGE = "Forbidden"


def snapshot_headers(raw_headers: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Flatten request headers for storage without the credential headers.

    Repeated headers are joined with ``", "`` regardless of case; the first
    spelling seen is kept.
    """
    snapshot: dict[str, str] = {}
    spelling: dict[str, str] = {}
    for name, value in raw_headers:
        lowered = name.lower()
        if lowered in STRIPPED_HEADERS:
            continue
        if lowered in spelling:
            key = spelling[lowered]
            snapshot[key] = f"{snapshot[key]}, {value}"
        else:
            spelling[lowered] = name
            snapshot[name] = value
    return snapshot


class WebhookReceiver:
    def __init__(
        self,
        project_repository: ProjectRepository,
        webhook_repository: WebhookRepository,
        event_repository: DeliveryEventRepository,
        notifier: RealtimeNotifier,
        router: EventRouter,
        runner: BackgroundTaskRunner,
    ):
        self._projects = project_repository
        self._webhooks = webhook_repository
        self._events = event_repository
        self._notifier = notifier
        self._router = router
        self._runner = runner

    async def receive(
        self,
        project_key: str,
        hook_key: str,
        *,
        headers: Iterable[tuple[str, str]],
        body: Any,
        origin: str | None,
        presented_secret: str | None,
    ) -> ReceiptResult:
        """Accept one inbound call; routing happens after this returns."""
        try:
            project = await self._projects.get_by_key(project_key)
            endpoint = await self._webhooks.get_by_key(project.id, hook_key)
        except NotFoundError as exc:
            raise NotFoundError(NOT_FOUND_MESSAGE) from exc

        if not endpoint.is_enabled:
            logger.info("Rejected webhook for disabled endpoint", project_key=project_key, hook_key=hook_key)
            raise AuthenticationError(FORBIDDEN_MESSAGE)
        if not await verify_secret_async(presented_secret or "", endpoint.secret_hash):
            logger.info("Rejected webhook with invalid secret", project_key=project_key, hook_key=hook_key)
            raise AuthenticationError(FORBIDDEN_MESSAGE)

        event = await self._events.create(
            webhook_id=endpoint.id,
            request_headers=snapshot_headers(headers),
            request_body=body,
            request_origin=origin,
        )
        self._notifier.emit(project.project_key, endpoint.hook_key, received_notification(event))

        self._runner.submit(
            self._router.route(endpoint, event, project_key=project.project_key),
            name="route_webhook_event",
            event_id=str(event.id),
            hook_key=endpoint.hook_key,
        )
        logger.info(
            "Webhook event received",
            event_id=str(event.id),
            project_key=project_key,
            hook_key=hook_key,
        )
        return ReceiptResult(success=True, event_id=event.id)
