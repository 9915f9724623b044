"""Delivery destinations, one variant per routing type."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union
from uuid import UUID

from webhook_service.core.exceptions import ConfigurationError
from webhook_service.domain.enums import RoutingType
from webhook_service.domain.models import WebhookEndpoint


@dataclass(frozen=True)
class ForwardUrl:
    url: str


@dataclass(frozen=True)
class AutomationEngine:
    url: str


@dataclass(frozen=True)
class InternalWorkflow:
    workflow_id: UUID | None = None


Destination = Union[ForwardUrl, AutomationEngine, InternalWorkflow]


def resolve_destination(endpoint: WebhookEndpoint) -> Destination:
    """Build the destination for ``endpoint``.

    Raises ConfigurationError when the field required by the routing type is
    empty; endpoints are not validated on write, so this surfaces per event.
    """
    routing_type = endpoint.routing_type
    if routing_type == RoutingType.FORWARD_URL:
        if not endpoint.target_url:
            raise ConfigurationError("target_url not configured")
        return ForwardUrl(endpoint.target_url)
    if routing_type == RoutingType.TRIGGER_AUTOMATION_ENGINE:
        if not endpoint.automation_webhook_url:
            raise ConfigurationError("automation_webhook_url not configured")
        return AutomationEngine(endpoint.automation_webhook_url)
    if routing_type == RoutingType.TRIGGER_INTERNAL:
        return InternalWorkflow(endpoint.workflow_id)
    raise ConfigurationError(f"Unknown routing type: {routing_type}")
