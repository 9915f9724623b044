import asyncio

import pytest

from tests.utils import create_endpoint, secret_headers


async def receive_json(ws, timeout: float = 2.0):
    return await asyncio.wait_for(ws.receive_json(), timeout=timeout)


@pytest.mark.asyncio
async def test_subscribe_and_receive_event_updates(service_client, repositories, project):
    _, secret = await create_endpoint(repositories, project, routing_type="TRIGGER_INTERNAL")

    async with service_client.ws_connect("/ws/webhooks") as ws:
        await ws.send_json({"action": "subscribe", "projectKey": "acme", "hookKey": "orders"})
        assert await receive_json(ws) == {"subscribed": "acme:orders"}

        resp = await service_client.post(
            "/webhooks/acme/orders", json={"a": 1}, headers=secret_headers(secret)
        )
        event_id = (await resp.json())["eventId"]

        received = await receive_json(ws)
        assert received["type"] == "webhook_event"
        assert received["hookKey"] == "orders"
        assert received["eventId"] == event_id
        assert received["status"] == "RECEIVED"

        routed = await receive_json(ws)
        assert routed["eventId"] == event_id
        assert routed["status"] == "SUCCESS"
        assert routed["routeResult"]["response_body"] == {"message": "Internal workflow triggered"}


@pytest.mark.asyncio
async def test_project_channel_sees_every_hook(service_client, repositories, project):
    _, orders_secret = await create_endpoint(repositories, project, routing_type="TRIGGER_INTERNAL")
    _, invoices_secret = await create_endpoint(
        repositories, project, hook_key="invoices", routing_type="TRIGGER_INTERNAL"
    )

    async with service_client.ws_connect("/ws/webhooks") as ws:
        await ws.send_json({"action": "subscribe", "projectKey": "acme"})
        assert await receive_json(ws) == {"subscribed": "acme"}

        await service_client.post("/webhooks/acme/orders", json={}, headers=secret_headers(orders_secret))
        await service_client.post(
            "/webhooks/acme/invoices", json={}, headers=secret_headers(invoices_secret)
        )

        messages = [await receive_json(ws) for _ in range(4)]
        assert {m["hookKey"] for m in messages} == {"orders", "invoices"}


@pytest.mark.asyncio
async def test_unsubscribe_and_invalid_commands(service_client, repositories, project):
    async with service_client.ws_connect("/ws/webhooks") as ws:
        await ws.send_str("not json")
        assert await receive_json(ws) == {"error": "Invalid command"}

        await ws.send_json({"action": "dance", "projectKey": "acme"})
        assert await receive_json(ws) == {"error": "Invalid command"}

        await ws.send_json({"action": "subscribe", "projectKey": "acme", "hookKey": "orders"})
        assert await receive_json(ws) == {"subscribed": "acme:orders"}
        await ws.send_json({"action": "unsubscribe", "projectKey": "acme", "hookKey": "orders"})
        assert await receive_json(ws) == {"unsubscribed": "acme:orders"}
