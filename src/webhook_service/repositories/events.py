"""Delivery event store (one row per inbound occurrence)."""
from __future__ import annotations

import json
from typing import Any, List, Mapping, Tuple
from uuid import UUID

from asyncpg import Pool, Record  # type: ignore[import-untyped]

from webhook_service.core.exceptions import InvalidStatusTransitionError, NotFoundError
from webhook_service.domain.enums import WebhookEventStatus
from webhook_service.domain.models import DeliveryEvent, RouteResult
from webhook_service.repositories.base import BaseRepository


class DeliveryEventRepository(BaseRepository):
    """Append-only event rows; only the status and route result ever change."""

    JSONB_COLUMNS = frozenset({"request_headers", "request_body", "route_result"})

    def __init__(self, pool: Pool):
        super().__init__(pool)

    @classmethod
    def _to_model(cls, record: Record) -> DeliveryEvent:
        return DeliveryEvent.model_validate(cls._decode_jsonb(record))

    async def create(
        self,
        *,
        webhook_id: UUID,
        request_headers: Mapping[str, str],
        request_body: Any,
        request_origin: str | None,
        replay_of: UUID | None = None,
    ) -> DeliveryEvent:
        record = await self._fetchrow(
            """
            INSERT INTO webhook_events (
                webhook_id,
                request_headers,
                request_body,
                request_origin,
                status,
                replay_of
            )
            VALUES ($1, $2::jsonb, $3::jsonb, $4, 'RECEIVED', $5)
            RETURNING *
            """,
            webhook_id,
            json.dumps(dict(request_headers)),
            json.dumps(request_body),
            request_origin,
            replay_of,
        )
        assert record is not None
        return self._to_model(record)

    async def get_for_webhook(self, webhook_id: UUID, event_id: UUID) -> DeliveryEvent:
        record = await self._fetchrow(
            "SELECT * FROM webhook_events WHERE webhook_id = $1 AND id = $2",
            webhook_id,
            event_id,
        )
        if record is None:
            raise NotFoundError("Event not found")
        return self._to_model(record)

    async def list_by_webhook(
        self,
        webhook_id: UUID,
        *,
        status: WebhookEventStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[DeliveryEvent], int]:
        where = ["webhook_id = $1"]
        values: list[Any] = [webhook_id]
        idx = 2
        if status is not None:
            where.append(f"status = ${idx}::webhook_event_status")
            values.append(status.value)
            idx += 1
        where_sql = " AND ".join(where)
        query = f"""
            SELECT *,
                   COUNT(*) OVER() AS total_count
            FROM webhook_events
            WHERE {where_sql}
            ORDER BY received_at DESC
            LIMIT ${idx} OFFSET ${idx + 1}
        """
        values.extend([limit, offset])
        records = await self._fetch(query, *values)
        items: List[DeliveryEvent] = []
        total: int | None = None
        for rec in records:
            rec_dict = dict(rec)
            total_value = rec_dict.pop("total_count", None)
            if total_value is not None:
                total = int(total_value)
            items.append(DeliveryEvent.model_validate(self._decode_jsonb(rec_dict)))
        if total is None:
            total = await self._count_by_webhook(webhook_id, status=status)
        return items, total

    async def _count_by_webhook(
        self, webhook_id: UUID, *, status: WebhookEventStatus | None = None
    ) -> int:
        if status is None:
            record = await self._fetchrow(
                "SELECT COUNT(*) AS total FROM webhook_events WHERE webhook_id = $1",
                webhook_id,
            )
        else:
            record = await self._fetchrow(
                """
                SELECT COUNT(*) AS total
                FROM webhook_events
                WHERE webhook_id = $1 AND status = $2::webhook_event_status
                """,
                webhook_id,
                status.value,
            )
        return int(record["total"]) if record else 0

    async def transition(
        self,
        event_id: UUID,
        *,
        current: WebhookEventStatus,
        new: WebhookEventStatus,
        route_result: RouteResult | None = None,
    ) -> DeliveryEvent:
        """Move an event from ``current`` to ``new``.

        The UPDATE only matches while the row is still in ``current``, so two
        writers can never both advance the same event.
        """
        result_json = (
            json.dumps(route_result.model_dump(mode="json")) if route_result is not None else None
        )
        record = await self._fetchrow(
            """
            UPDATE webhook_events
            SET status = $3::webhook_event_status,
                route_result = $4::jsonb
            WHERE id = $1 AND status = $2::webhook_event_status
            RETURNING *
            """,
            event_id,
            current.value,
            new.value,
            result_json,
        )
        if record is None:
            raise InvalidStatusTransitionError(
                f"Event {event_id} is no longer {current.value}; refusing transition to {new.value}"
            )
        return self._to_model(record)
