"""Domain enums."""
from __future__ import annotations

from enum import Enum


class WebhookEventStatus(str, Enum):
    """Delivery event lifecycle states."""

    RECEIVED = "RECEIVED"
    ROUTED = "ROUTED"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class RoutingType(str, Enum):
    """Outbound delivery strategies."""

    FORWARD_URL = "FORWARD_URL"
    TRIGGER_AUTOMATION_ENGINE = "TRIGGER_AUTOMATION_ENGINE"
    TRIGGER_INTERNAL = "TRIGGER_INTERNAL"


class AuditAction(str, Enum):
    WEBHOOK_CREATE = "WEBHOOK_CREATE"
    WEBHOOK_UPDATE = "WEBHOOK_UPDATE"
    WEBHOOK_ROTATE_SECRET = "WEBHOOK_ROTATE_SECRET"
    WEBHOOK_EVENT_REPLAY = "WEBHOOK_EVENT_REPLAY"
