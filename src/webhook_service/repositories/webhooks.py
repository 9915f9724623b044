"""Webhook endpoint repository backed by asyncpg."""
from __future__ import annotations

import json
from typing import Any, List
from uuid import UUID

import asyncpg  # type: ignore[import-untyped]
from asyncpg import Pool, Record  # type: ignore[import-untyped]

from webhook_service.core.exceptions import ConflictError, NotFoundError
from webhook_service.domain.dto import WebhookCreateDTO, WebhookUpdateDTO
from webhook_service.domain.models import WebhookEndpoint
from webhook_service.repositories.base import BaseRepository


class WebhookRepository(BaseRepository):
    """CRUD operations for webhook endpoints."""

    JSONB_COLUMNS = frozenset({"transform_rules"})

    def __init__(self, pool: Pool):
        super().__init__(pool)

    @classmethod
    def _to_model(cls, record: Record) -> WebhookEndpoint:
        return WebhookEndpoint.model_validate(cls._decode_jsonb(record))

    @staticmethod
    def _encode_rules(rules: Any) -> str | None:
        if rules is None:
            return None
        return json.dumps(rules)

    async def create(
        self,
        project_id: UUID,
        data: WebhookCreateDTO,
        *,
        secret_hash: str,
    ) -> WebhookEndpoint:
        rules = data.transform_rules.model_dump(mode="json") if data.transform_rules else None
        try:
            record = await self._fetchrow(
                """
                INSERT INTO webhooks (
                    project_id,
                    hook_key,
                    description,
                    secret_hash,
                    is_enabled,
                    routing_type,
                    target_url,
                    automation_webhook_url,
                    workflow_id,
                    transform_rules
                )
                VALUES ($1, $2, $3, $4, $5, $6::webhook_routing_type, $7, $8, $9, $10::jsonb)
                RETURNING *
                """,
                project_id,
                data.hook_key,
                data.description,
                secret_hash,
                data.is_enabled,
                data.routing_type.value,
                data.target_url,
                data.automation_webhook_url,
                data.workflow_id,
                self._encode_rules(rules),
            )
        except asyncpg.UniqueViolationError as exc:
            raise ConflictError(
                f"Webhook key '{data.hook_key}' already exists in this project"
            ) from exc
        assert record is not None
        return self._to_model(record)

    async def get_by_key(self, project_id: UUID, hook_key: str) -> WebhookEndpoint:
        record = await self._fetchrow(
            "SELECT * FROM webhooks WHERE project_id = $1 AND hook_key = $2",
            project_id,
            hook_key,
        )
        if record is None:
            raise NotFoundError(f"Webhook '{hook_key}' not found")
        return self._to_model(record)

    async def list_by_project(self, project_id: UUID) -> List[WebhookEndpoint]:
        records = await self._fetch(
            """
            SELECT *
            FROM webhooks
            WHERE project_id = $1
            ORDER BY created_at DESC
            """,
            project_id,
        )
        return [self._to_model(r) for r in records]

    async def update(
        self,
        project_id: UUID,
        webhook_id: UUID,
        updates: WebhookUpdateDTO,
    ) -> WebhookEndpoint:
        # exclude_unset keeps explicit nulls so a destination can be cleared
        payload = updates.model_dump(mode="json", exclude_unset=True)
        if not payload:
            raise ValueError("No fields provided for update")

        assignments = []
        values: list[Any] = []
        idx = 1
        for column, value in payload.items():
            column_expr = f"{column} = ${idx}"
            if column in self.JSONB_COLUMNS:
                column_expr += "::jsonb"
                value = self._encode_rules(value)
            elif column == "routing_type":
                column_expr += "::webhook_routing_type"
            elif column == "workflow_id" and value is not None:
                value = UUID(value)
            assignments.append(column_expr)
            values.append(value)
            idx += 1
        assignments.append("updated_at = now()")
        values.extend([project_id, webhook_id])

        query = f"""
            UPDATE webhooks
            SET {', '.join(assignments)}
            WHERE project_id = ${idx} AND id = ${idx + 1}
            RETURNING *
        """
        record = await self._fetchrow(query, *values)
        if record is None:
            raise NotFoundError("Webhook not found")
        return self._to_model(record)

    async def set_secret_hash(self, project_id: UUID, webhook_id: UUID, secret_hash: str) -> None:
        record = await self._fetchrow(
            """
            UPDATE webhooks
            SET secret_hash = $3, updated_at = now()
            WHERE project_id = $1 AND id = $2
            RETURNING id
            """,
            project_id,
            webhook_id,
            secret_hash,
        )
        if record is None:
            raise NotFoundError("Webhook not found")
