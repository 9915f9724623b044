"""Event router: drives one delivery event from RECEIVED to a terminal state."""
from __future__ import annotations

import time

import structlog

from webhook_service.domain.destinations import resolve_destination
from webhook_service.domain.enums import WebhookEventStatus
from webhook_service.domain.models import DeliveryEvent, RouteResult, WebhookEndpoint
from webhook_service.otel import get_tracer
from webhook_service.repositories.events import DeliveryEventRepository
from webhook_service.services.dispatcher import OutboundDispatcher, elapsed_ms
from webhook_service.services.notifier import RealtimeNotifier, routed_notification
from webhook_service.services.state_machine import validate_event_transition
from webhook_service.services.transform import apply_transform

logger = structlog.get_logger(__name__)
tracer = get_tracer(__name__)


class EventRouter:
    """Transforms, dispatches and records the outcome of a delivery event.

    Failures while transforming or dispatching become a FAILED event with the
    error in its RouteResult; they are never raised. Persistence errors are,
    and callers decide whether to contain them.
    """

    def __init__(
        self,
        event_repository: DeliveryEventRepository,
        dispatcher: OutboundDispatcher,
        notifier: RealtimeNotifier,
    ):
        self._events = event_repository
        self._dispatcher = dispatcher
        self._notifier = notifier

    async def route(
        self,
        endpoint: WebhookEndpoint,
        event: DeliveryEvent,
        *,
        project_key: str,
    ) -> DeliveryEvent:
        with tracer.start_as_current_span("webhook.route") as span:
            span.set_attribute("webhook.event_id", str(event.id))
            span.set_attribute("webhook.hook_key", endpoint.hook_key)
            span.set_attribute("webhook.routing_type", endpoint.routing_type.value)

            validate_event_transition(event.status, WebhookEventStatus.ROUTED)
            event = await self._events.transition(
                event.id,
                current=WebhookEventStatus.RECEIVED,
                new=WebhookEventStatus.ROUTED,
            )

            result = await self._attempt(endpoint, event)
            status = WebhookEventStatus.SUCCESS if result.success else WebhookEventStatus.FAILED
            validate_event_transition(event.status, status)
            event = await self._events.transition(
                event.id,
                current=WebhookEventStatus.ROUTED,
                new=status,
                route_result=result,
            )
            span.set_attribute("webhook.status", status.value)

        self._notifier.emit(project_key, endpoint.hook_key, routed_notification(event))
        logger.info(
            "Webhook event routed",
            event_id=str(event.id),
            project_key=project_key,
            hook_key=endpoint.hook_key,
            status=status.value,
            status_code=result.status_code,
            duration_ms=result.duration_ms,
            error=result.error,
        )
        return event

    async def _attempt(self, endpoint: WebhookEndpoint, event: DeliveryEvent) -> RouteResult:
        started = time.monotonic()
        try:
            headers, body = apply_transform(
                endpoint.transform_rules, event.request_headers, event.request_body
            )
            destination = resolve_destination(endpoint)
            result = await self._dispatcher.dispatch(destination, headers, body)
        except Exception as exc:
            logger.warning(
                "Webhook event routing failed",
                event_id=str(event.id),
                hook_key=endpoint.hook_key,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            result = RouteResult(success=False, error=str(exc) or type(exc).__name__)
        return result.model_copy(update={"duration_ms": elapsed_ms(started)})
