"""
Tests for exhibition-event endpoints and admin booth management.
"""

import pytest
from datetime import datetime, timezone, timedelta
from httpx import AsyncClient


def _event_payload(**overrides):
    start = datetime.now(timezone.utc) + timedelta(days=30)
    payload = {
        "name": "Design Week 2026",
        "description": "Annual design trade show",
        "startDate": start.isoformat(),
        "endDate": (start + timedelta(days=4)).isoformat(),
        "venue": "Convention Center",
        "status": "published",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_create_event(client: AsyncClient, admin_headers):
    """Admin can create an event."""
    response = await client.post("/api/v1/events", json=_event_payload(), headers=admin_headers)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["name"] == "Design Week 2026"
    assert data["status"] == "published"
    assert "startDate" in data


@pytest.mark.asyncio
async def test_create_event_unauthenticated(client: AsyncClient):
    """Unauthenticated request returns 401."""
    response = await client.post("/api/v1/events", json=_event_payload())
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_event_as_exhibitor(client: AsyncClient, auth_headers):
    """Exhibitors cannot create events."""
    response = await client.post("/api/v1/events", json=_event_payload(), headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_event_end_before_start(client: AsyncClient, admin_headers):
    """End date before start date returns 400."""
    start = datetime.now(timezone.utc) + timedelta(days=30)
    response = await client.post(
        "/api/v1/events",
        json=_event_payload(startDate=start.isoformat(), endDate=(start - timedelta(days=1)).isoformat()),
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_list_events(client: AsyncClient, test_event):
    """List events returns paginated results."""
    response = await client.get("/api/v1/events")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 1
    assert data["page"] == 1
    assert data["events"][0]["id"] == test_event.id
    assert data["cached"] is False


@pytest.mark.asyncio
async def test_get_event(client: AsyncClient, test_event):
    response = await client.get(f"/api/v1/events/{test_event.id}")
    assert response.status_code == 200
    assert response.json()["data"]["name"] == test_event.name


@pytest.mark.asyncio
async def test_get_nonexistent_event(client: AsyncClient):
    """Non-existent event returns 404 in the error envelope."""
    response = await client.get("/api/v1/events/99999")
    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_update_event(client: AsyncClient, admin_headers, test_event):
    response = await client.patch(
        f"/api/v1/events/{test_event.id}",
        json={"venue": "Hall B"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["venue"] == "Hall B"


@pytest.mark.asyncio
async def test_create_booth(client: AsyncClient, admin_headers, test_event):
    response = await client.post("/api/v1/booths", json={
        "eventId": test_event.id,
        "boothNumber": "Z99",
        "size": "large",
        "price": 750,
        "locationX": 3,
        "locationY": 5,
    }, headers=admin_headers)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["boothNumber"] == "Z99"
    assert data["status"] == "available"
    assert data["price"] == 750.0


@pytest.mark.asyncio
async def test_create_booth_duplicate_number(client: AsyncClient, admin_headers, booth):
    """Booth numbers are unique within an event."""
    response = await client.post("/api/v1/booths", json={
        "eventId": booth.event_id,
        "boothNumber": booth.booth_number,
        "price": 100,
    }, headers=admin_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_take_booth_off_sale(client: AsyncClient, admin_headers, booth):
    response = await client.put(
        f"/api/v1/booths/{booth.id}/status",
        json={"status": "unavailable"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "unavailable"

    available = await client.get(f"/api/v1/booths/available?eventId={booth.event_id}")
    assert available.json()["data"] == []


@pytest.mark.asyncio
async def test_booth_status_endpoint_rejects_reserved(client: AsyncClient, admin_headers, booth):
    """Only available/unavailable can be set by hand."""
    response = await client.put(
        f"/api/v1/booths/{booth.id}/status",
        json={"status": "booked"},
        headers=admin_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_admin_edits_and_deletes_booth(client: AsyncClient, admin_headers, booth):
    edited = await client.patch(
        f"/api/v1/booths/{booth.id}",
        json={"price": "650.00", "amenities": ["power", "wifi"]},
        headers=admin_headers,
    )
    assert edited.status_code == 200
    assert edited.json()["data"]["price"] == 650.0
    assert edited.json()["data"]["status"] == "available"

    listed = await client.get(f"/api/v1/booths?eventId={booth.event_id}", headers=admin_headers)
    assert [b["id"] for b in listed.json()["data"]] == [booth.id]

    deleted = await client.delete(f"/api/v1/booths/{booth.id}", headers=admin_headers)
    assert deleted.status_code == 200
    assert (await client.get(f"/api/v1/booths/{booth.id}")).status_code == 404


@pytest.mark.asyncio
async def test_booth_with_reservations_cannot_be_deleted(client: AsyncClient, admin_headers, auth_headers, booth):
    await client.post(
        "/api/v1/booths/reserve",
        json={"boothId": booth.id, "eventId": booth.event_id},
        headers=auth_headers,
    )
    response = await client.delete(f"/api/v1/booths/{booth.id}", headers=admin_headers)
    assert response.status_code == 409
