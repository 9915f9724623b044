"""Audit log sink."""
from __future__ import annotations

import json
from typing import Any
from uuid import UUID

from asyncpg import Pool, Record  # type: ignore[import-untyped]

from webhook_service.domain.models import AuditLogEntry
from webhook_service.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository):
    JSONB_COLUMNS = frozenset({"details"})

    def __init__(self, pool: Pool):
        super().__init__(pool)

    @classmethod
    def _to_model(cls, record: Record) -> AuditLogEntry:
        return AuditLogEntry.model_validate(cls._decode_jsonb(record))

    async def append(
        self,
        *,
        actor_user_id: UUID | None,
        action: str,
        entity_type: str,
        entity_id: UUID | None,
        details: dict[str, Any],
    ) -> AuditLogEntry:
        record = await self._fetchrow(
            """
            INSERT INTO audit_logs (actor_user_id, action, entity_type, entity_id, details)
            VALUES ($1, $2, $3, $4, $5::jsonb)
            RETURNING *
            """,
            actor_user_id,
            action,
            entity_type,
            entity_id,
            json.dumps(details),
        )
        assert record is not None
        return self._to_model(record)
