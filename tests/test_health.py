import pytest


@pytest.mark.asyncio
async def test_healthcheck(service_client):
    response = await service_client.get("/health")
    assert response.status == 200
    payload = await response.json()
    assert payload["status"] == "ok"
    assert payload["service"] == "webhook-service"


@pytest.mark.asyncio
async def test_trace_headers_are_echoed(service_client):
    trace_id = "6f9619ff-8b86-d011-b42d-00cf4fc964ff"
    response = await service_client.get("/health", headers={"X-Trace-Id": trace_id})
    assert response.headers["X-Trace-Id"] == trace_id
    assert response.headers["X-Request-Id"]
