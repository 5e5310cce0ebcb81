"""Health endpoint tests."""

import re

import pytest

from wsrelay import __version__

ISO_UTC = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


@pytest.mark.asyncio
async def test_health_returns_ok(client):
    """Health endpoint should return status, service name and version."""
    resp = await client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["service"] == "wsrelay-test"
    assert data["version"] == __version__
    assert data["clients"] == 0
    assert ISO_UTC.match(data["timestamp"])


@pytest.mark.asyncio
async def test_health_counts_clients(client, registry, connected):
    resp = await client.get("/health")
    assert resp.json()["clients"] == 3

    await registry.unregister(connected[0])
    resp = await client.get("/health")
    assert resp.json()["clients"] == 2


@pytest.mark.asyncio
async def test_health_has_no_side_effects(client, connected):
    await client.get("/health")
    assert all(c.sent == [] for c in connected)
