"""Delivery event status transition validator."""
from __future__ import annotations

from webhook_service.core.exceptions import InvalidStatusTransitionError
from webhook_service.domain.enums import WebhookEventStatus

EVENT_TRANSITIONS: dict[WebhookEventStatus, set[WebhookEventStatus]] = {
    WebhookEventStatus.RECEIVED: {WebhookEventStatus.ROUTED},
    WebhookEventStatus.ROUTED: {WebhookEventStatus.SUCCESS, WebhookEventStatus.FAILED},
    WebhookEventStatus.SUCCESS: set(),
    WebhookEventStatus.FAILED: set(),
}


def validate_event_transition(current: WebhookEventStatus, new: WebhookEventStatus) -> None:
    allowed = EVENT_TRANSITIONS.get(current, set())
    if new not in allowed:
        raise InvalidStatusTransitionError(
            f"Invalid webhook event status transition: {current.value} → {new.value}"
        )
