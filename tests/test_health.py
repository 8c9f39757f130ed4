"""
Tests for health and metrics endpoints.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["cache"] == {"status": "disabled"}


@pytest.mark.asyncio
async def test_request_id_header(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
    assert response.headers["X-Response-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_metrics_exposes_booking_and_payment_counters(client: AsyncClient):
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "booking_transitions_total" in response.text
    assert "mpesa_callbacks_total" in response.text
    assert "mpesa_stk_push_latency_seconds" in response.text
