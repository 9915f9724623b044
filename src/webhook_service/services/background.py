"""Fire-and-forget execution of work that must outlive the request.

Usage::

    runner = BackgroundTaskRunner(drain_timeout_seconds=10.0)

    # In a handler:
    runner.submit(router.route(endpoint, event, project_key=key), name="route_event")

    # In create_app():
    app.on_cleanup.append(runner.stop)
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Coroutine

import structlog
from aiohttp import web

logger = structlog.get_logger(__name__)


@dataclass
class BackgroundTaskRunner:
    """Runs coroutines as independent asyncio tasks with their own error boundary.

    Exceptions are logged and never reach the code that submitted the work.
    References to running tasks are kept so they are not garbage collected,
    and :meth:`stop` waits for them (up to ``drain_timeout_seconds``) before
    cancelling what is left.
    """

    drain_timeout_seconds: float = 10.0
    _tasks: set[asyncio.Task] = field(default_factory=set, init=False, repr=False)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, coro: Coroutine[Any, Any, Any], *, name: str, **context: Any) -> asyncio.Task:
        task = asyncio.create_task(self._guarded(coro, name, context), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guarded(
        self, coro: Coroutine[Any, Any, Any], name: str, context: dict[str, Any]
    ) -> None:
        try:
            await coro
        except asyncio.CancelledError:
            logger.warning("background_task cancelled", task=name, **context)
            raise
        except Exception:
            logger.exception("background_task failed", task=name, **context)

    async def drain(self) -> None:
        if not self._tasks:
            return
        pending = set(self._tasks)
        logger.info("Waiting for background tasks", pending=len(pending))
        _, still_running = await asyncio.wait(pending, timeout=self.drain_timeout_seconds)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning("Cancelled unfinished background tasks", cancelled=len(still_running))

    async def stop(self, _app: web.Application | None = None) -> None:
        """Drain outstanding work. Register with ``app.on_cleanup``."""
        await self.drain()
