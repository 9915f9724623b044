"""Read-only access to projects owned by the project service."""
from __future__ import annotations

from asyncpg import Pool, Record  # type: ignore[import-untyped]

from webhook_service.core.exceptions import NotFoundError
from webhook_service.domain.models import Project
from webhook_service.repositories.base import BaseRepository


class ProjectRepository(BaseRepository):
    def __init__(self, pool: Pool):
        super().__init__(pool)

    @staticmethod
    def _to_model(record: Record) -> Project:
        return Project.model_validate(dict(record))

    async def get_by_key(self, project_key: str) -> Project:
        record = await self._fetchrow(
            "SELECT id, project_key, name FROM projects WHERE project_key = $1",
            project_key,
        )
        if record is None:
            raise NotFoundError(f"Project with key '{project_key}' not found")
        return self._to_model(record)
