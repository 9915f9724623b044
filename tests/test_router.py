from unittest.mock import AsyncMock, MagicMock

import pytest

from webhook_service.core.exceptions import InvalidStatusTransitionError
from webhook_service.domain.destinations import ForwardUrl, InternalWorkflow
from webhook_service.domain.enums import RoutingType, WebhookEventStatus
from webhook_service.domain.models import RouteResult
from webhook_service.services.dispatcher import OutboundDispatcher, create_client_session
from webhook_service.services.router import EventRouter

from tests.utils import create_endpoint


@pytest.fixture
def notifier():
    return MagicMock()


async def make_event(repositories, endpoint, body=None, headers=None):
    return await repositories.events.create(
        webhook_id=endpoint.id,
        request_headers=headers or {"X-Source": "test"},
        request_body=body if body is not None else {"a": {"b": 42}},
        request_origin="127.0.0.1",
    )


@pytest.mark.asyncio
async def test_successful_route_walks_every_state(repositories, project, notifier):
    endpoint, _ = await create_endpoint(
        repositories,
        project,
        target_url="http://dest/hook",
        transform_rules={
            "headerRewrites": {"X-Source": "rewritten"},
            "bodyMappings": [{"source": "$.a.b", "target": "x"}],
        },
    )
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(return_value=RouteResult(success=True, status_code=200))
    event = await make_event(repositories, endpoint)

    routed = await EventRouter(repositories.events, dispatcher, notifier).route(
        endpoint, event, project_key=project.project_key
    )

    assert routed.status == WebhookEventStatus.SUCCESS
    assert routed.route_result.status_code == 200
    assert routed.route_result.duration_ms >= 0
    assert [t[1:] for t in repositories.events.transitions] == [
        (WebhookEventStatus.RECEIVED, WebhookEventStatus.ROUTED),
        (WebhookEventStatus.ROUTED, WebhookEventStatus.SUCCESS),
    ]
    dispatcher.dispatch.assert_awaited_once_with(
        ForwardUrl("http://dest/hook"), {"X-Source": "rewritten"}, {"x": 42}
    )
    notifier.emit.assert_called_once()
    project_key, hook_key, payload = notifier.emit.call_args.args
    assert (project_key, hook_key) == ("acme", "orders")
    assert payload["status"] == "SUCCESS"
    assert payload["routeResult"]["status_code"] == 200


@pytest.mark.asyncio
async def test_missing_destination_fails_event(repositories, project, notifier):
    endpoint, _ = await create_endpoint(repositories, project)
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock()
    event = await make_event(repositories, endpoint)

    routed = await EventRouter(repositories.events, dispatcher, notifier).route(
        endpoint, event, project_key="acme"
    )

    assert routed.status == WebhookEventStatus.FAILED
    assert routed.route_result.success is False
    assert routed.route_result.error == "target_url not configured"
    dispatcher.dispatch.assert_not_awaited()


@pytest.mark.asyncio
async def test_unexpected_dispatch_error_is_captured(repositories, project, notifier):
    endpoint, _ = await create_endpoint(
        repositories, project, routing_type=RoutingType.TRIGGER_INTERNAL
    )
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(side_effect=RuntimeError())
    event = await make_event(repositories, endpoint)

    routed = await EventRouter(repositories.events, dispatcher, notifier).route(
        endpoint, event, project_key="acme"
    )

    assert routed.status == WebhookEventStatus.FAILED
    assert routed.route_result.error == "RuntimeError"
    assert dispatcher.dispatch.await_args.args[0] == InternalWorkflow(None)


@pytest.mark.asyncio
async def test_unreachable_destination_ends_failed(repositories, project, notifier, aiohttp_unused_port):
    endpoint, _ = await create_endpoint(
        repositories, project, target_url=f"http://127.0.0.1:{aiohttp_unused_port()}/hook"
    )
    event = await make_event(repositories, endpoint)
    session = create_client_session(timeout_seconds=2.0)
    try:
        routed = await EventRouter(
            repositories.events, OutboundDispatcher(session), notifier
        ).route(endpoint, event, project_key="acme")
    finally:
        await session.close()

    assert routed.status == WebhookEventStatus.FAILED
    assert routed.route_result.success is False
    assert routed.route_result.status_code is None
    assert routed.route_result.error


@pytest.mark.asyncio
async def test_forward_to_live_destination(repositories, project, notifier, destination):
    endpoint, _ = await create_endpoint(
        repositories,
        project,
        target_url=destination.url,
        transform_rules={"additionalHeaders": {"X-Tenant": "acme"}},
    )
    event = await make_event(repositories, endpoint, body={"n": 1})
    session = create_client_session(timeout_seconds=2.0)
    try:
        routed = await EventRouter(
            repositories.events, OutboundDispatcher(session), notifier
        ).route(endpoint, event, project_key="acme")
    finally:
        await session.close()

    assert routed.status == WebhookEventStatus.SUCCESS
    assert routed.route_result.status_code == 200
    headers, body = destination.requests[0]
    assert body == {"n": 1}
    assert headers["X-Tenant"] == "acme"
    assert headers["X-Source"] == "test"


@pytest.mark.asyncio
async def test_terminal_event_cannot_be_routed_again(repositories, project, notifier):
    endpoint, _ = await create_endpoint(
        repositories, project, routing_type=RoutingType.TRIGGER_INTERNAL
    )
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(return_value=RouteResult(success=True, status_code=200))
    router = EventRouter(repositories.events, dispatcher, notifier)
    event = await make_event(repositories, endpoint)
    routed = await router.route(endpoint, event, project_key="acme")

    with pytest.raises(InvalidStatusTransitionError):
        await router.route(endpoint, routed, project_key="acme")
    assert repositories.events.events[event.id].status == WebhookEventStatus.SUCCESS
