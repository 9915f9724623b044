"""Checksum-tracked SQL migrations applied on startup."""
from __future__ import annotations

import asyncio
import hashlib
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable

import asyncpg
import structlog
from aiohttp import web

logger = structlog.get_logger(__name__)

MAX_CONNECT_ATTEMPTS = 5
CONNECT_RETRY_DELAY_SECONDS = 2

DEFAULT_MIGRATION_PATHS = (
    Path(__file__).resolve().parents[3] / "migrations",  # repository checkout
    Path("/app/migrations"),  # container image
)


def _find_migrations_dir(possible_paths: list[Path]) -> Path | None:
    for path in possible_paths:
        if path.exists():
            return path
    return None


def load_migrations(migrations_dir: Path) -> dict[str, Path]:
    migrations: dict[str, Path] = {}
    for path in sorted(migrations_dir.glob("*.sql")):
        version = path.stem
        if version in migrations:
            raise ValueError(f"Duplicate migration version detected: {version}")
        migrations[version] = path
    return migrations


def checksum(sql: str) -> str:
    return hashlib.sha256(sql.encode("utf-8")).hexdigest()


async def _connect(database_url: Any) -> asyncpg.Connection | None:
    for attempt in range(1, MAX_CONNECT_ATTEMPTS + 1):
        try:
            return await asyncpg.connect(str(database_url))
        except (OSError, asyncpg.PostgresError) as exc:
            logger.warning(
                "Database connection failed",
                attempt=attempt,
                max_attempts=MAX_CONNECT_ATTEMPTS,
                error=str(exc),
            )
            if attempt < MAX_CONNECT_ATTEMPTS:
                await asyncio.sleep(CONNECT_RETRY_DELAY_SECONDS)
    return None


async def apply_migrations(conn: asyncpg.Connection, migrations: dict[str, Path]) -> int:
    """Apply every migration not yet recorded; return how many were applied."""
    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version text PRIMARY KEY,
            checksum text NOT NULL,
            applied_at timestamptz NOT NULL DEFAULT now()
        );
        """
    )
    rows = await conn.fetch("SELECT version, checksum FROM schema_migrations")
    applied = {row["version"]: row["checksum"] for row in rows}

    pending = []
    for version, path in migrations.items():
        sql = path.read_text(encoding="utf-8")
        digest = checksum(sql)
        if version in applied:
            if applied[version] != digest:
                raise RuntimeError(
                    f"Checksum mismatch for {version}: {applied[version]} (db) != {digest} (file)"
                )
            continue
        pending.append((version, path, sql, digest))

    for version, path, sql, digest in pending:
        logger.info("Applying migration", migration=path.name)
        async with conn.transaction():
            await conn.execute(sql)
            await conn.execute(
                "INSERT INTO schema_migrations (version, checksum) VALUES ($1, $2)",
                version,
                digest,
            )
    return len(pending)


def create_migration_runner(
    database_url: Any,
    possible_paths: Iterable[Path] = DEFAULT_MIGRATION_PATHS,
) -> Callable[[web.Application], Awaitable[None]]:
    """Create an aiohttp startup hook to apply SQL migrations."""
    possible_paths_list = list(possible_paths)

    async def apply_migrations_on_startup(_app: web.Application) -> None:
        migrations_dir = _find_migrations_dir(possible_paths_list)
        if migrations_dir is None:
            logger.warning("Migrations directory not found, skipping", tried=[str(p) for p in possible_paths_list])
            return

        migrations = load_migrations(migrations_dir)
        if not migrations:
            logger.warning("No migrations found, skipping", directory=str(migrations_dir))
            return

        conn = await _connect(database_url)
        if conn is None:
            raise RuntimeError("Failed to connect to database to apply migrations")
        try:
            count = await apply_migrations(conn, migrations)
        finally:
            await conn.close()
        logger.info("Migrations up to date", applied=count, total=len(migrations))

    return apply_migrations_on_startup
