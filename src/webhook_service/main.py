"""aiohttp application entrypoint."""
from __future__ import annotations

from aiohttp import web
from aiohttp_cors import ResourceOptions, setup as cors_setup

from webhook_service.api.router import setup_routes
from webhook_service.db.migrations import create_migration_runner
from webhook_service.db.pool import close_pool, get_pool, init_pool
from webhook_service.logging_config import configure_logging
from webhook_service.middleware.trace import REQUEST_ID_HEADER, TRACE_ID_HEADER, create_trace_middleware
from webhook_service.otel import setup_otel
from webhook_service.services.background import BackgroundTaskRunner
from webhook_service.services.dependencies import (
    HTTP_SESSION_KEY,
    NOTIFIER_KEY,
    REPOSITORIES_KEY,
    RUNNER_KEY,
    SERVICES_KEY,
    USER_ID_HEADER,
    Repositories,
    build_services,
)
from webhook_service.services.dispatcher import create_client_session
from webhook_service.services.notifier import RealtimeNotifier
from webhook_service.settings import settings

configure_logging()

_ALLOWED_HEADERS = (
    "Accept",
    "Content-Type",
    "Authorization",
    TRACE_ID_HEADER,
    REQUEST_ID_HEADER,
    USER_ID_HEADER,
)
_EXPOSED_HEADERS = (TRACE_ID_HEADER, REQUEST_ID_HEADER)


async def healthcheck(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "service": settings.app_name, "env": settings.env})


async def attach_repositories(app: web.Application) -> None:
    app[REPOSITORIES_KEY] = Repositories.from_pool(await get_pool())


async def start_services(app: web.Application) -> None:
    app[HTTP_SESSION_KEY] = create_client_session(settings.webhook_request_timeout_seconds)
    app[SERVICES_KEY] = build_services(
        app[REPOSITORIES_KEY],
        notifier=app[NOTIFIER_KEY],
        runner=app[RUNNER_KEY],
        session=app[HTTP_SESSION_KEY],
        max_response_bytes=settings.webhook_response_max_bytes,
    )


async def close_http_session(app: web.Application) -> None:
    session = app.get(HTTP_SESSION_KEY)
    if session is not None:
        await session.close()


def create_app(*, repositories: Repositories | None = None) -> web.Application:
    """Build the application.

    Without ``repositories`` the app owns a database pool and applies
    migrations on startup; passing them in skips both.
    """
    app = web.Application()
    app.middlewares.append(create_trace_middleware(settings.app_name))

    cors = cors_setup(
        app,
        defaults={
            origin: ResourceOptions(
                allow_credentials=True,
                expose_headers=_EXPOSED_HEADERS,
                allow_headers=_ALLOWED_HEADERS,
                allow_methods="*",
            )
            for origin in settings.cors_allowed_origins
        },
    )

    app[NOTIFIER_KEY] = RealtimeNotifier(queue_size=settings.realtime_queue_size)
    app[RUNNER_KEY] = BackgroundTaskRunner(
        drain_timeout_seconds=settings.background_drain_timeout_seconds
    )

    app.router.add_get("/health", healthcheck)
    setup_routes(app)

    if repositories is None:
        app.on_startup.append(init_pool)
        app.on_startup.append(create_migration_runner(settings.database_url))
        app.on_startup.append(attach_repositories)
    else:
        app[REPOSITORIES_KEY] = repositories
    app.on_startup.append(start_services)

    app.on_shutdown.append(app[NOTIFIER_KEY].close)
    # Routing tasks still need the HTTP session and the pool, so drain them first.
    app.on_cleanup.append(app[RUNNER_KEY].stop)
    app.on_cleanup.append(close_http_session)
    if repositories is None:
        app.on_cleanup.append(close_pool)

    setup_otel(app)

    for route in list(app.router.routes()):
        cors.add(route)

    return app


def main() -> None:
    web.run_app(create_app(), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
