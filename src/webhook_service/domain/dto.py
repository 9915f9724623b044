"""Pydantic DTOs for API, service and repository layers."""
from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from webhook_service.domain.enums import RoutingType
from webhook_service.domain.models import TransformRuleSet, WebhookEndpoint

HOOK_KEY_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class WebhookCreateDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    hook_key: str = Field(min_length=2, max_length=50, pattern=HOOK_KEY_PATTERN)
    description: str | None = Field(default=None, max_length=500)
    routing_type: RoutingType = RoutingType.FORWARD_URL
    target_url: str | None = None
    automation_webhook_url: str | None = None
    workflow_id: UUID | None = None
    transform_rules: TransformRuleSet | None = None
    is_enabled: bool = True


class WebhookUpdateDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: str | None = Field(default=None, max_length=500)
    routing_type: RoutingType | None = None
    target_url: str | None = None
    automation_webhook_url: str | None = None
    workflow_id: UUID | None = None
    transform_rules: TransformRuleSet | None = None
    is_enabled: bool | None = None

    @field_validator("routing_type", "is_enabled")
    @classmethod
    def _not_null(cls, value, info):
        # Only ever None when sent explicitly; these columns are NOT NULL.
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class WebhookWithSecret(BaseModel):
    """Creation response: the plaintext secret is shown exactly once."""

    webhook: WebhookEndpoint
    secret: str


class ReceiptResult(BaseModel):
    success: bool
    event_id: UUID

