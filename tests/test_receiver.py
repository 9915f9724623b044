import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from webhook_service.core.exceptions import AuthenticationError, NotFoundError
from webhook_service.domain.enums import WebhookEventStatus
from webhook_service.domain.models import RouteResult
from webhook_service.services.background import BackgroundTaskRunner
from webhook_service.services.receiver import WebhookReceiver, snapshot_headers
from webhook_service.services.router import EventRouter

from tests.utils import create_endpoint


@pytest.fixture
def runner():
    return BackgroundTaskRunner(drain_timeout_seconds=5.0)


@pytest.fixture
def dispatcher():
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(return_value=RouteResult(success=True, status_code=200))
    return dispatcher


@pytest.fixture
def notifier():
    return MagicMock()


@pytest.fixture
def receiver(repositories, dispatcher, notifier, runner):
    router = EventRouter(repositories.events, dispatcher, notifier)
    return WebhookReceiver(
        repositories.projects,
        repositories.webhooks,
        repositories.events,
        notifier,
        router,
        runner,
    )


async def receive(receiver, secret, *, project_key="acme", hook_key="orders", body=None, headers=None):
    return await receiver.receive(
        project_key,
        hook_key,
        headers=list((headers or {"Content-Type": "application/json"}).items()),
        body=body if body is not None else {"order": 1},
        origin="10.0.0.1",
        presented_secret=secret,
    )


def test_snapshot_headers_strips_credentials_and_joins_repeats():
    snapshot = snapshot_headers(
        [
            ("X-Webhook-Secret", "s"),
            ("Authorization", "Bearer t"),
            ("authorization", "Basic u"),
            ("X-Tag", "a"),
            ("X-Tag", "b"),
            ("Content-Type", "application/json"),
        ]
    )
    assert snapshot == {"X-Tag": "a, b", "Content-Type": "application/json"}


def test_snapshot_headers_joins_repeats_case_insensitively():
    snapshot = snapshot_headers([("X-Tag", "a"), ("x-tag", "b"), ("X-TAG", "c")])

    assert snapshot == {"X-Tag": "a, b, c"}


@pytest.mark.asyncio
async def test_receive_persists_event_before_returning(receiver, repositories, project, runner, notifier):
    _, secret = await create_endpoint(repositories, project, target_url="http://dest/hook")
    gate = asyncio.Event()
    original_route = receiver._router.route

    async def gated_route(*args, **kwargs):
        await gate.wait()
        return await original_route(*args, **kwargs)

    receiver._router.route = gated_route

    result = await receive(
        receiver, secret, headers={"X-Webhook-Secret": secret, "Authorization": "x", "X-A": "1"}
    )

    event = repositories.events.events[result.event_id]
    assert result.success is True
    assert event.status == WebhookEventStatus.RECEIVED
    assert event.request_headers == {"X-A": "1"}
    assert event.request_origin == "10.0.0.1"
    assert event.request_body == {"order": 1}
    assert notifier.emit.call_args.args[2]["status"] == "RECEIVED"

    gate.set()
    await runner.drain()
    assert repositories.events.events[result.event_id].status == WebhookEventStatus.SUCCESS


@pytest.mark.asyncio
async def test_unknown_project_and_hook_look_the_same(receiver, repositories, project):
    _, secret = await create_endpoint(repositories, project)

    with pytest.raises(NotFoundError) as missing_project:
        await receive(receiver, secret, project_key="nope")
    with pytest.raises(NotFoundError) as missing_hook:
        await receive(receiver, secret, hook_key="nope")

    assert str(missing_project.value) == str(missing_hook.value) == "Webhook not found"
    assert repositories.events.events == {}


@pytest.mark.asyncio
@pytest.mark.parametrize("presented", [None, "", "wrong"])
async def test_bad_secret_forbidden(receiver, repositories, project, presented):
    await create_endpoint(repositories, project)

    with pytest.raises(AuthenticationError, match="Forbidden"):
        await receive(receiver, presented)
    assert repositories.events.events == {}


@pytest.mark.asyncio
async def test_disabled_endpoint_forbidden_even_with_valid_secret(receiver, repositories, project):
    _, secret = await create_endpoint(repositories, project, is_enabled=False)

    with pytest.raises(AuthenticationError) as disabled:
        await receive(receiver, secret)
    with pytest.raises(AuthenticationError) as wrong:
        await receive(receiver, "wrong")

    assert str(disabled.value) == str(wrong.value)
    assert repositories.events.events == {}


@pytest.mark.asyncio
async def test_routing_failure_does_not_reach_caller(receiver, repositories, project, runner, dispatcher):
    _, secret = await create_endpoint(repositories, project, target_url="http://dest/hook")
    dispatcher.dispatch.side_effect = RuntimeError("down")

    result = await receive(receiver, secret)
    await runner.drain()

    event = repositories.events.events[result.event_id]
    assert event.status == WebhookEventStatus.FAILED
    assert event.route_result.error == "down"


@pytest.mark.asyncio
async def test_concurrent_receipts_route_independently(receiver, repositories, project, runner):
    _, secret = await create_endpoint(
        repositories, project, target_url="http://dest/hook"
    )

    results = await asyncio.gather(*(receive(receiver, secret, body={"n": n}) for n in range(20)))
    await runner.drain()

    ids = {r.event_id for r in results}
    assert len(ids) == 20
    events = [repositories.events.events[i] for i in ids]
    assert all(e.status == WebhookEventStatus.SUCCESS for e in events)
    assert sorted(e.request_body["n"] for e in events) == list(range(20))
