"""Audit trail for operator actions."""
from __future__ import annotations

from typing import Any
from uuid import UUID

import structlog

from webhook_service.domain.enums import AuditAction
from webhook_service.domain.models import AuditLogEntry
from webhook_service.repositories.audit import AuditLogRepository

logger = structlog.get_logger(__name__)


class AuditService:
    def __init__(self, repository: AuditLogRepository):
        self._repository = repository

    async def log(
        self,
        *,
        actor_user_id: UUID | None,
        action: AuditAction,
        entity_type: str,
        entity_id: UUID | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLogEntry:
        entry = await self._repository.append(
            actor_user_id=actor_user_id,
            action=action.value,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details or {},
        )
        logger.info(
            "Audit entry recorded",
            action=action.value,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id else None,
            actor_user_id=str(actor_user_id) if actor_user_id else None,
        )
        return entry
