from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

import asyncpg
import pytest
from aiohttp import web

from webhook_service.db.migrations import DEFAULT_MIGRATION_PATHS, apply_migrations, load_migrations
from webhook_service.main import create_app
from webhook_service.settings import settings

from tests.fakes import make_repositories


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    monkeypatch.setattr(settings, "secret_bcrypt_rounds", 4)


@pytest.fixture
def repositories():
    return make_repositories()


@pytest.fixture
def project(repositories):
    return repositories.projects.add("acme", "Acme Corp")


@pytest.fixture
def app(repositories):
    return create_app(repositories=repositories)


@pytest.fixture
async def service_client(aiohttp_client, app):
    return await aiohttp_client(app)


@dataclass
class RecordingDestination:
    """Local HTTP endpoint standing in for a forward/automation target."""

    url: str = ""
    status: int = 200
    response: Any = field(default_factory=lambda: {"ok": True})
    requests: list[tuple[dict[str, str], Any]] = field(default_factory=list)


@pytest.fixture
async def destination(aiohttp_server):
    state = RecordingDestination()

    async def handler(request: web.Request) -> web.Response:
        state.requests.append((dict(request.headers), await request.json()))
        return web.json_response(state.response, status=state.status)

    app = web.Application()
    app.router.add_post("/hook", handler)
    server = await aiohttp_server(app)
    state.url = str(server.make_url("/hook"))
    return state


# Repository tests run against a real PostgreSQL (13+) when this points at a
# database the tests may create schemas in; otherwise they are skipped.
TEST_DATABASE_URL_ENV = "WEBHOOK_TEST_DATABASE_URL"


@pytest.fixture
async def pg_pool():
    """Pool bound to a throwaway schema with every migration applied."""
    database_url = os.environ.get(TEST_DATABASE_URL_ENV)
    if not database_url:
        pytest.skip(f"{TEST_DATABASE_URL_ENV} is not set")

    schema = f"webhook_test_{uuid4().hex}"
    admin = await asyncpg.connect(database_url)
    try:
        await admin.execute(f'CREATE SCHEMA "{schema}"')
        pool = await asyncpg.create_pool(
            database_url, min_size=1, max_size=4, server_settings={"search_path": schema}
        )
        try:
            async with pool.acquire() as conn:
                await apply_migrations(conn, load_migrations(DEFAULT_MIGRATION_PATHS[0]))
            yield pool
        finally:
            await pool.close()
    finally:
        await admin.execute(f'DROP SCHEMA IF EXISTS "{schema}" CASCADE')
        await admin.close()
