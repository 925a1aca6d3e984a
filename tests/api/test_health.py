# tests/api/test_health.py
import pytest


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/ping", "/healthz"])
async def test_liveness(client, path):
    r = await client.get(path)
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_root(client):
    assert (await client.get("/")).json()["name"] == "storefront-api"


@pytest.mark.asyncio
async def test_metrics_exposes_request_counters(client):
    await client.get("/ping")
    r = await client.get("/metrics")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/plain")
    assert 'http_requests_total{method="GET"' in r.text
