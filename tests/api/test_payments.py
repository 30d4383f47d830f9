"""Tests for payments API endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient


async def _completed_work(api_client: AsyncClient, fees: str) -> int:
    client = await api_client.post("/api/clients", json={"name": "Payer"})
    work = await api_client.post(
        "/api/works",
        json={"client_id": client.json()["id"], "purpose": "Audit", "fees": fees},
    )
    work_id = work.json()["id"]
    await api_client.patch(f"/api/works/{work_id}/status", json={"status": "completed"})
    return work_id


@pytest.mark.asyncio
async def test_add_payment_returns_summary(api_client: AsyncClient) -> None:
    work_id = await _completed_work(api_client, "1000.00")

    response = await api_client.post(
        "/api/payments",
        json={"work_id": work_id, "amount": 400, "payment_date": "2026-03-01T10:00:00"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["payment"]["amount"] == "400.00"
    assert body["payment"]["payment_date"] == "2026-03-01T10:00:00"
    assert body["summary"]["total_paid"] == "400.00"
    assert body["summary"]["remaining_amount"] == "600.00"
    assert body["can_finalize"] is False

    response = await api_client.post(
        "/api/payments", json={"work_id": work_id, "amount": "600.00"}
    )
    assert response.json()["can_finalize"] is True


@pytest.mark.asyncio
async def test_overpayment_is_rejected(api_client: AsyncClient) -> None:
    work_id = await _completed_work(api_client, "500.00")

    response = await api_client.post(
        "/api/payments", json={"work_id": work_id, "amount": "700.00"}
    )
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "overpayment_rejected"
    assert body["remaining_amount"] == "500.00"

    summary = await api_client.get(f"/api/payments/{work_id}")
    assert summary.json()["payments"] == []


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -5, "abc", "NaN", "0.001"])
async def test_invalid_amounts(api_client: AsyncClient, amount: object) -> None:
    work_id = await _completed_work(api_client, "500.00")

    response = await api_client.post(
        "/api/payments", json={"work_id": work_id, "amount": amount}
    )
    assert response.status_code in (400, 422)
    if response.status_code == 400:
        assert response.json()["code"] == "invalid_amount"


@pytest.mark.asyncio
async def test_payment_for_unknown_work(api_client: AsyncClient) -> None:
    response = await api_client.post("/api/payments", json={"work_id": 999, "amount": "5"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_get_payment_summary(api_client: AsyncClient) -> None:
    work_id = await _completed_work(api_client, "300.00")
    await api_client.post(
        "/api/payments",
        json={"work_id": work_id, "amount": "100", "payment_date": "2026-01-05T00:00:00"},
    )
    await api_client.post(
        "/api/payments",
        json={"work_id": work_id, "amount": "50", "payment_date": "2026-02-05T00:00:00"},
    )

    response = await api_client.get(f"/api/payments/{work_id}")
    assert response.status_code == 200
    body = response.json()
    assert body["total_fees"] == "300.00"
    assert body["total_paid"] == "150.00"
    assert body["remaining_amount"] == "150.00"
    assert [p["amount"] for p in body["payments"]] == ["50.00", "100.00"]


@pytest.mark.asyncio
async def test_summary_for_unknown_work(api_client: AsyncClient) -> None:
    response = await api_client.get("/api/payments/31337")
    assert response.status_code == 404
    assert response.json()["entity"] == "work"


@pytest.mark.asyncio
async def test_boolean_amount_is_rejected(api_client: AsyncClient) -> None:
    work_id = await _completed_work(api_client, "500.00")

    response = await api_client.post(
        "/api/payments", json={"work_id": work_id, "amount": True}
    )
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_amount"

    summary = await api_client.get(f"/api/payments/{work_id}")
    assert summary.json()["payments"] == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("submitted", "stored"),
    [
        ("2026-03-01T10:00:00Z", "2026-03-01T10:00:00"),
        ("2026-03-01T10:00:00+05:30", "2026-03-01T04:30:00"),
    ],
)
async def test_payment_date_with_offset_is_stored_as_utc(
    api_client: AsyncClient, submitted: str, stored: str
) -> None:
    work_id = await _completed_work(api_client, "500.00")

    response = await api_client.post(
        "/api/payments",
        json={"work_id": work_id, "amount": "100", "payment_date": submitted},
    )
    assert response.status_code == 201
    assert response.json()["payment"]["payment_date"] == stored
