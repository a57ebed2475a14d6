"""
Integration tests for the REST API endpoints.

Routes run against the in-memory SQLite database from ``conftest``; the
``get_db`` dependency is overridden and the lifecycle worker is patched
out so no Redis is needed.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


@pytest_asyncio.fixture
async def client(session_factory):
    """AsyncClient backed by SQLite."""
    with (
        patch(
            "src.workers.lifecycle.start_lifecycle_loop",
            new_callable=AsyncMock,
        ),
        patch(
            "src.workers.lifecycle.stop_lifecycle_loop",
            new_callable=AsyncMock,
        ),
    ):
        # DB session dependency
        async def _test_db():
            async with session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise

        from src.api.app import create_app
        from src.api.dependencies import get_db

        app = create_app()
        app.dependency_overrides[get_db] = _test_db

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac


@pytest_asyncio.fixture
async def vehicle_id(client: AsyncClient) -> str:
    resp = await client.post(
        "/api/v1/vehicles",
        json={
            "name": "Honda Activa 6G",
            "type": "scooter",
            "price_per_day": 200,
            "location": "HSR Layout",
            "owner_id": "owner-1",
        },
    )
    assert resp.status_code == 201
    return resp.json()["id"]


async def _book(client: AsyncClient, vehicle_id: str, **body):
    payload = {"vehicle_id": vehicle_id, "renter_id": "renter-1", **body}
    return await client.post("/api/v1/bookings", json=payload)


# ── Tests ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_create_and_get_vehicle(client: AsyncClient, vehicle_id: str):
    resp = await client.get(f"/api/v1/vehicles/{vehicle_id}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "available"
    assert data["is_available"] is True
    assert data["total_bookings"] == 0


@pytest.mark.asyncio
async def test_vehicle_not_found(client: AsyncClient):
    resp = await client.get("/api/v1/vehicles/veh_missing")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_create_booking_returns_201(client: AsyncClient, vehicle_id: str):
    resp = await _book(
        client, vehicle_id, start_date="2024-06-10", end_date="2024-06-12"
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "upcoming"
    assert data["total_amount"] == 600
    assert len(data["slot_ids"]) == 3

    vehicles = await client.get("/api/v1/vehicles")
    assert vehicle_id not in [v["id"] for v in vehicles.json()]


@pytest.mark.asyncio
async def test_create_booking_with_duration(client: AsyncClient, vehicle_id: str):
    resp = await _book(client, vehicle_id, start_date="2024-06-10", duration="6 hours")
    assert resp.status_code == 201
    assert resp.json()["end_date"] == "2024-06-10"
    assert resp.json()["total_amount"] == 50


@pytest.mark.asyncio
async def test_overlap_returns_409_with_conflict(client: AsyncClient, vehicle_id: str):
    await _book(client, vehicle_id, start_date="2024-06-10", end_date="2024-06-12")

    resp = await _book(
        client,
        vehicle_id,
        renter_id="renter-2",
        start_date="2024-06-11",
        end_date="2024-06-14",
    )

    assert resp.status_code == 409
    assert resp.json()["conflict"] == {
        "start_date": "2024-06-11",
        "end_date": "2024-06-12",
    }

    free = await client.get(
        f"/api/v1/vehicles/{vehicle_id}/availability",
        params={"start_date": "2024-06-13", "end_date": "2024-06-14"},
    )
    assert free.json()["ok"] is True


@pytest.mark.asyncio
async def test_booking_needs_end_date_or_duration(client: AsyncClient, vehicle_id: str):
    resp = await _book(client, vehicle_id, start_date="2024-06-10")
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_bad_duration_returns_422(client: AsyncClient, vehicle_id: str):
    resp = await _book(client, vehicle_id, start_date="2024-06-10", duration="3 fortnights")
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_booking_unknown_vehicle(client: AsyncClient):
    resp = await _book(client, "veh_missing", start_date="2024-06-10", end_date="2024-06-10")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_get_booking_not_found(client: AsyncClient):
    resp = await client.get("/api/v1/bookings/book_missing")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_cancel_twice_is_ok(client: AsyncClient, vehicle_id: str):
    booking = await _book(
        client, vehicle_id, start_date="2024-06-10", end_date="2024-06-12"
    )
    booking_id = booking.json()["id"]

    first = await client.patch(f"/api/v1/bookings/{booking_id}/cancel")
    second = await client.patch(f"/api/v1/bookings/{booking_id}/cancel")

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["status"] == "cancelled"

    availability = await client.get(
        f"/api/v1/vehicles/{vehicle_id}/availability",
        params={"start_date": "2024-06-10", "end_date": "2024-06-12"},
    )
    assert availability.json() == {"ok": True, "conflict": None}


@pytest.mark.asyncio
async def test_cancel_completed_booking_returns_409(
    client: AsyncClient, vehicle_id: str
):
    booking = await _book(
        client, vehicle_id, start_date="2024-06-10", end_date="2024-06-12"
    )
    booking_id = booking.json()["id"]

    activated = await client.patch(f"/api/v1/bookings/{booking_id}/activate")
    assert activated.json()["status"] == "active"
    completed = await client.patch(f"/api/v1/bookings/{booking_id}/complete")
    assert completed.json()["status"] == "completed"

    resp = await client.patch(f"/api/v1/bookings/{booking_id}/cancel")
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_refused_early_completion_returns_409(
    client: AsyncClient, vehicle_id: str
):
    booking = await _book(
        client, vehicle_id, start_date="2024-06-10", end_date="2024-06-12"
    )
    resp = await client.patch(
        f"/api/v1/bookings/{booking.json()['id']}/complete",
        params={"allow_early": "false"},
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_idempotency_key(client: AsyncClient, vehicle_id: str):
    body = {
        "start_date": "2024-06-10",
        "end_date": "2024-06-11",
        "idempotency_key": "retry-123",
    }
    resp1 = await _book(client, vehicle_id, **body)
    resp2 = await _book(client, vehicle_id, **body)

    assert resp1.status_code == 201
    assert resp2.status_code == 201
    assert resp1.json()["id"] == resp2.json()["id"]


@pytest.mark.asyncio
async def test_list_bookings(client: AsyncClient, vehicle_id: str):
    await _book(client, vehicle_id, start_date="2024-06-10", end_date="2024-06-10")
    await _book(
        client,
        vehicle_id,
        renter_id="renter-2",
        start_date="2024-06-11",
        end_date="2024-06-11",
    )

    by_renter = await client.get("/api/v1/bookings", params={"renter_id": "renter-2"})
    by_owner = await client.get("/api/v1/bookings", params={"owner_id": "owner-1"})
    combined = await client.get(
        "/api/v1/bookings", params={"renter_id": "renter-2", "owner_id": "owner-9"}
    )
    missing = await client.get("/api/v1/bookings")

    assert [b["renter_id"] for b in by_renter.json()] == ["renter-2"]
    assert len(by_owner.json()) == 2
    assert combined.json() == []
    assert missing.status_code == 422


@pytest.mark.asyncio
async def test_quote(client: AsyncClient, vehicle_id: str):
    resp = await client.get(
        f"/api/v1/vehicles/{vehicle_id}/quote",
        params={"start_date": "2024-06-10", "duration": "1 week"},
    )
    assert resp.status_code == 200
    assert resp.json() == {
        "start_date": "2024-06-10",
        "end_date": "2024-06-16",
        "days": 7,
        "total_amount": 1400,
    }


@pytest.mark.asyncio
async def test_owner_vehicles(client: AsyncClient, vehicle_id: str):
    resp = await client.get("/api/v1/vehicles/owner/owner-1")
    assert [v["id"] for v in resp.json()] == [vehicle_id]


@pytest.mark.asyncio
async def test_admin_booking_locks(client: AsyncClient, vehicle_id: str):
    booking = await _book(
        client, vehicle_id, start_date="2024-06-10", end_date="2024-06-11"
    )
    booking_id = booking.json()["id"]
    await client.patch(f"/api/v1/bookings/{booking_id}/cancel")

    resp = await client.get(f"/api/v1/admin/bookings/{booking_id}/locks")

    assert resp.status_code == 200
    locks = resp.json()
    assert [lock["iso_date"] for lock in locks] == ["2024-06-10", "2024-06-11"]
    assert all(lock["voided_at"] is not None for lock in locks)


@pytest.mark.asyncio
async def test_vehicle_maintenance(client: AsyncClient, vehicle_id: str):
    resp = await client.patch(
        f"/api/v1/vehicles/{vehicle_id}/status", json={"status": "maintenance"}
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "maintenance"

    blocked = await _book(
        client, vehicle_id, start_date="2024-06-10", end_date="2024-06-10"
    )
    assert blocked.status_code == 422

    resp = await client.patch(
        f"/api/v1/vehicles/{vehicle_id}/status", json={"status": "available"}
    )
    assert resp.json()["is_available"] is True


@pytest.mark.asyncio
async def test_over_long_booking_returns_422(client: AsyncClient, vehicle_id: str):
    by_duration = await _book(
        client, vehicle_id, start_date="2024-06-10", duration="999999999 days"
    )
    by_end_date = await _book(
        client, vehicle_id, start_date="2024-06-10", end_date="9999-12-31"
    )
    quote = await client.get(
        f"/api/v1/vehicles/{vehicle_id}/quote",
        params={"start_date": "2024-06-10", "duration": "999999999 days"},
    )

    assert by_duration.status_code == 422
    assert by_end_date.status_code == 422
    assert quote.status_code == 422


@pytest.mark.asyncio
async def test_update_vehicle(client: AsyncClient, vehicle_id: str):
    booking = await _book(
        client, vehicle_id, start_date="2024-06-10", end_date="2024-06-10"
    )

    resp = await client.patch(
        f"/api/v1/vehicles/{vehicle_id}",
        json={"price_per_day": 350, "location": "Indiranagar"},
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["price_per_day"] == 350
    assert data["location"] == "Indiranagar"
    assert data["name"] == "Honda Activa 6G"
    assert data["status"] == "booked"

    same = await client.get(f"/api/v1/bookings/{booking.json()['id']}")
    assert same.json()["total_amount"] == 200


@pytest.mark.asyncio
async def test_update_vehicle_rejects_bad_price(client: AsyncClient, vehicle_id: str):
    resp = await client.patch(f"/api/v1/vehicles/{vehicle_id}", json={"price_per_day": 0})
    assert resp.status_code == 422

    missing = await client.patch("/api/v1/vehicles/veh_missing", json={"name": "X"})
    assert missing.status_code == 404
