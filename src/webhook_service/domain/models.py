"""Pydantic models representing key domain entities."""
from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from webhook_service.domain.enums import RoutingType, WebhookEventStatus

REPLAY_ORIGIN = "replay"

TERMINAL_STATUSES = frozenset({WebhookEventStatus.SUCCESS, WebhookEventStatus.FAILED})


class Project(BaseModel):
    id: UUID
    project_key: str
    name: str | None = None


class BodyMapping(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str
    target: str


class TransformRuleSet(BaseModel):
    """Declarative header/body remapping applied before dispatch.

    Accepts both the snake_case field names and the camelCase names used by
    dashboard clients (``headerRewrites``, ``additionalHeaders``,
    ``bodyMappings``).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    header_rewrites: dict[str, str] = Field(default_factory=dict)
    additional_headers: dict[str, str] = Field(default_factory=dict)
    body_mappings: tuple[BodyMapping, ...] = ()


class WebhookEndpoint(BaseModel):
    id: UUID
    project_id: UUID
    hook_key: str
    description: str | None = None
    secret_hash: str = Field(exclude=True, repr=False)
    is_enabled: bool = True
    routing_type: RoutingType = RoutingType.FORWARD_URL
    target_url: str | None = None
    automation_webhook_url: str | None = None
    workflow_id: UUID | None = None
    transform_rules: TransformRuleSet | None = None
    created_at: datetime
    updated_at: datetime


class RouteResult(BaseModel):
    """Outcome of a single delivery attempt."""

    model_config = ConfigDict(frozen=True)

    success: bool
    status_code: int | None = None
    response_body: Any = None
    error: str | None = None
    duration_ms: int = 0
    response_truncated: bool = False


class DeliveryEvent(BaseModel):
    id: UUID
    webhook_id: UUID
    received_at: datetime
    request_headers: dict[str, str] = Field(default_factory=dict)
    request_body: Any = Field(default_factory=dict)
    request_origin: str | None = None
    status: WebhookEventStatus = WebhookEventStatus.RECEIVED
    route_result: RouteResult | None = None
    replay_of: UUID | None = None

    @model_validator(mode="after")
    def _result_matches_status(self) -> "DeliveryEvent":
        terminal = self.status in TERMINAL_STATUSES
        if terminal != (self.route_result is not None):
            raise ValueError(
                f"route_result must be set exactly when status is terminal (status={self.status.value})"
            )
        return self


class AuditLogEntry(BaseModel):
    id: UUID
    actor_user_id: UUID | None = None
    action: str
    entity_type: str
    entity_id: UUID | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
