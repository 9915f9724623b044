"""Repository package exports."""

from webhook_service.repositories.audit import AuditLogRepository
from webhook_service.repositories.events import DeliveryEventRepository
from webhook_service.repositories.projects import ProjectRepository
from webhook_service.repositories.webhooks import WebhookRepository

__all__ = [
    "AuditLogRepository",
    "DeliveryEventRepository",
    "ProjectRepository",
    "WebhookRepository",
]
