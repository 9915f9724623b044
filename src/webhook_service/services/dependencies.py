"""Per-application wiring of repositories and services for aiohttp handlers."""
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

import asyncpg
from aiohttp import ClientSession, web

from webhook_service.repositories import (
    AuditLogRepository,
    DeliveryEventRepository,
    ProjectRepository,
    WebhookRepository,
)
from webhook_service.services.audit import AuditService
from webhook_service.services.background import BackgroundTaskRunner
from webhook_service.services.dispatcher import DEFAULT_MAX_RESPONSE_BYTES, OutboundDispatcher
from webhook_service.services.notifier import RealtimeNotifier
from webhook_service.services.receiver import WebhookReceiver
from webhook_service.services.replay import ReplayCoordinator
from webhook_service.services.router import EventRouter
from webhook_service.services.webhooks import WebhookService

USER_ID_HEADER = "X-User-Id"


@dataclass
class Repositories:
    projects: ProjectRepository
    webhooks: WebhookRepository
    events: DeliveryEventRepository
    audit: AuditLogRepository

    @classmethod
    def from_pool(cls, pool: asyncpg.Pool) -> "Repositories":
        return cls(
            projects=ProjectRepository(pool),
            webhooks=WebhookRepository(pool),
            events=DeliveryEventRepository(pool),
            audit=AuditLogRepository(pool),
        )


@dataclass
class Services:
    webhooks: WebhookService
    receiver: WebhookReceiver
    replay: ReplayCoordinator


REPOSITORIES_KEY = web.AppKey("repositories", Repositories)
SERVICES_KEY = web.AppKey("services", Services)
NOTIFIER_KEY = web.AppKey("notifier", RealtimeNotifier)
RUNNER_KEY = web.AppKey("background_runner", BackgroundTaskRunner)
HTTP_SESSION_KEY = web.AppKey("http_session", ClientSession)


def build_services(
    repositories: Repositories,
    *,
    notifier: RealtimeNotifier,
    runner: BackgroundTaskRunner,
    session: ClientSession,
    max_response_bytes: int = DEFAULT_MAX_RESPONSE_BYTES,
) -> Services:
    audit = AuditService(repositories.audit)
    dispatcher = OutboundDispatcher(session, max_response_bytes)
    router = EventRouter(repositories.events, dispatcher, notifier)
    return Services(
        webhooks=WebhookService(
            repositories.projects, repositories.webhooks, repositories.events, audit
        ),
        receiver=WebhookReceiver(
            repositories.projects,
            repositories.webhooks,
            repositories.events,
            notifier,
            router,
            runner,
        ),
        replay=ReplayCoordinator(
            repositories.projects,
            repositories.webhooks,
            repositories.events,
            notifier,
            router,
            audit,
        ),
    )


@dataclass
class UserContext:
    user_id: UUID


async def require_current_user(request: web.Request) -> UserContext:
    """Temporary auth hook: relies on debug headers provided by API gateway/tests."""
    user_header = request.headers.get(USER_ID_HEADER)
    if user_header is None:
        raise web.HTTPUnauthorized(reason=f"Header {USER_ID_HEADER} is required")
    try:
        return UserContext(user_id=UUID(user_header))
    except ValueError as exc:
        raise web.HTTPBadRequest(text=f"Invalid {USER_ID_HEADER}") from exc


def get_webhook_service(request: web.Request) -> WebhookService:
    return request.app[SERVICES_KEY].webhooks


def get_receiver(request: web.Request) -> WebhookReceiver:
    return request.app[SERVICES_KEY].receiver


def get_replay_coordinator(request: web.Request) -> ReplayCoordinator:
    return request.app[SERVICES_KEY].replay


def get_notifier(request: web.Request) -> RealtimeNotifier:
    return request.app[NOTIFIER_KEY]
