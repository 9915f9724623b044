"""Domain services exports."""

from webhook_service.services.audit import AuditService
from webhook_service.services.receiver import WebhookReceiver
from webhook_service.services.replay import ReplayCoordinator
from webhook_service.services.router import EventRouter
from webhook_service.services.webhooks import WebhookService

__all__ = [
    "AuditService",
    "EventRouter",
    "ReplayCoordinator",
    "WebhookReceiver",
    "WebhookService",
]
