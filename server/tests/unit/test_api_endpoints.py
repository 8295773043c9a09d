"""Integration tests for API endpoints."""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest


def _booking_body(venue, start, end, **extra):
    return {
        "venue_id": str(venue.id),
        "start_time": start.isoformat(),
        "end_time": end.isoformat(),
        **extra
    }


@pytest.mark.asyncio
async def test_create_booking_endpoint(test_client, venue, customer, auth_headers, slot):
    """Test the booking creation endpoint."""
    response = await test_client.post(
        "/v1/bookings",
        json=_booking_body(venue, *slot(10, 12), notes="Birthday"),
        headers=auth_headers(customer)
    )

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["payment_status"] == "pending"
    assert data["customer_id"] == str(customer.id)
    assert Decimal(data["total_amount"]) == Decimal("100")
    assert data["notes"] == "Birthday"
    assert "id" in data


@pytest.mark.asyncio
async def test_create_booking_conflict(test_client, venue, customer, auth_headers, slot):
    await test_client.post("/v1/bookings", json=_booking_body(venue, *slot(10, 12)), headers=auth_headers(customer))

    response = await test_client.post(
        "/v1/bookings",
        json=_booking_body(venue, *slot(11, 13)),
        headers=auth_headers(customer)
    )

    assert response.status_code == 400
    assert response.headers["content-type"].startswith("application/problem+json")
    data = response.json()
    assert data["status"] == 400
    assert data["code"] == "SLOT_UNAVAILABLE"
    assert data["detail"] == "This time slot is not available. Please choose a different time."
    assert data["venue_id"] == str(venue.id)


@pytest.mark.asyncio
async def test_create_booking_unknown_venue(test_client, venue, customer, auth_headers, slot):
    body = _booking_body(venue, *slot(10, 12))
    body["venue_id"] = str(uuid4())

    response = await test_client.post("/v1/bookings", json=body, headers=auth_headers(customer))

    assert response.status_code == 404
    assert response.json()["detail"] == "Venue not found"


@pytest.mark.asyncio
async def test_create_booking_missing_auth(test_client, venue, slot):
    """Test booking creation without authentication."""
    response = await test_client.post("/v1/bookings", json=_booking_body(venue, *slot(10, 12)))

    assert response.status_code == 401
    data = response.json()
    assert data["status"] == 401
    assert data["detail"] == "No token provided"
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "header, detail",
    [
        ("Bearer", "Invalid token format"),
        ("Basic abc", "Invalid authentication scheme"),
        ("Bearer not-a-jwt", "Invalid token"),
    ],
)
async def test_malformed_auth(test_client, header, detail):
    response = await test_client.get("/v1/bookings/my-bookings", headers={"Authorization": header})

    assert response.status_code == 401
    assert response.json()["detail"] == detail


@pytest.mark.asyncio
async def test_token_with_wrong_secret(test_client, customer, token_factory):
    token = token_factory(customer.id, customer.tenant_id, secret="someone-else")

    response = await test_client.get("/v1/bookings/my-bookings", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "hours",
    [
        (12, 10),     # end before start
        (10, 10.5),   # shorter than an hour
        (0, 25),      # longer than a day
    ],
)
async def test_create_booking_invalid_interval(test_client, venue, customer, auth_headers, slot, hours):
    """Temporal policy violations are request validation errors."""
    response = await test_client.post(
        "/v1/bookings",
        json=_booking_body(venue, *slot(*hours)),
        headers=auth_headers(customer)
    )

    assert response.status_code == 422
    data = response.json()
    assert data["status"] == 422
    assert "violations" in data
    assert data["violations"][0]["message"]


@pytest.mark.asyncio
async def test_create_booking_in_the_past(test_client, venue, customer, auth_headers, slot_day):
    start = slot_day - timedelta(days=30)
    response = await test_client.post(
        "/v1/bookings",
        json=_booking_body(venue, start, start + timedelta(hours=2)),
        headers=auth_headers(customer)
    )

    assert response.status_code == 422
    assert "Start time must be in the future" in response.json()["violations"][0]["message"]


@pytest.mark.asyncio
async def test_check_availability_endpoint(test_client, venue, customer, auth_headers, slot):
    await test_client.post("/v1/bookings", json=_booking_body(venue, *slot(10, 12)), headers=auth_headers(customer))

    taken = await test_client.post(
        "/v1/bookings/check-availability",
        json=_booking_body(venue, *slot(11, 12)),
        headers=auth_headers(customer)
    )
    free = await test_client.post(
        "/v1/bookings/check-availability",
        json=_booking_body(venue, *slot(12, 13)),
        headers=auth_headers(customer)
    )

    assert taken.status_code == 200
    assert taken.json()["available"] is False
    assert free.json()["available"] is True


@pytest.mark.asyncio
async def test_my_bookings(test_client, venue, customer, other_customer, auth_headers, slot):
    await test_client.post("/v1/bookings", json=_booking_body(venue, *slot(8, 9)), headers=auth_headers(customer))
    await test_client.post("/v1/bookings", json=_booking_body(venue, *slot(10, 11)), headers=auth_headers(other_customer))

    response = await test_client.get("/v1/bookings/my-bookings", headers=auth_headers(customer))

    assert response.status_code == 200
    items = response.json()["items"]
    assert len(items) == 1
    assert items[0]["customer_email"] == "casey@example.com"
    assert items[0]["venue_name"] == "Harbour Loft"

    filtered = await test_client.get(
        "/v1/bookings/my-bookings", params={"status": "confirmed"}, headers=auth_headers(customer)
    )
    assert filtered.json()["items"] == []


@pytest.mark.asyncio
async def test_get_booking_access(test_client, venue, owner, customer, other_customer, auth_headers, slot):
    created = await test_client.post(
        "/v1/bookings", json=_booking_body(venue, *slot(10, 12)), headers=auth_headers(customer)
    )
    booking_id = created.json()["id"]

    own = await test_client.get(f"/v1/bookings/{booking_id}", headers=auth_headers(customer))
    assert own.status_code == 200
    assert own.json()["customer_first_name"] == "Casey"

    staff = await test_client.get(f"/v1/bookings/{booking_id}", headers=auth_headers(owner))
    assert staff.status_code == 200

    stranger = await test_client.get(f"/v1/bookings/{booking_id}", headers=auth_headers(other_customer))
    assert stranger.status_code == 403

    missing = await test_client.get(f"/v1/bookings/{uuid4()}", headers=auth_headers(owner))
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Booking not found"


@pytest.mark.asyncio
async def test_get_booking_other_tenant(test_client, venue, customer, other_tenant, auth_headers, token_factory, slot):
    created = await test_client.post(
        "/v1/bookings", json=_booking_body(venue, *slot(10, 12)), headers=auth_headers(customer)
    )
    token = token_factory(uuid4(), other_tenant.id, role="owner")

    response = await test_client.get(
        f"/v1/bookings/{created.json()['id']}", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_status_update_flow(test_client, venue, owner, customer, auth_headers, slot):
    created = await test_client.post(
        "/v1/bookings", json=_booking_body(venue, *slot(10, 12)), headers=auth_headers(customer)
    )
    booking_id = created.json()["id"]

    forbidden = await test_client.put(
        f"/v1/bookings/{booking_id}/status", json={"status": "confirmed"}, headers=auth_headers(customer)
    )
    assert forbidden.status_code == 403
    assert forbidden.json()["required_roles"] == ["owner", "manager"]

    confirmed = await test_client.put(
        f"/v1/bookings/{booking_id}/status", json={"status": "confirmed"}, headers=auth_headers(owner)
    )
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "confirmed"

    cancelled = await test_client.delete(f"/v1/bookings/{booking_id}", headers=auth_headers(customer))
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"

    reopened = await test_client.put(
        f"/v1/bookings/{booking_id}/status", json={"status": "confirmed"}, headers=auth_headers(owner)
    )
    assert reopened.status_code == 400
    assert reopened.json()["detail"] == "Cannot update a cancelled booking"

    invalid = await test_client.put(
        f"/v1/bookings/{booking_id}/status", json={"status": "archived"}, headers=auth_headers(owner)
    )
    assert invalid.status_code == 422


@pytest.mark.asyncio
async def test_cancel_someone_elses_booking(test_client, venue, customer, other_customer, auth_headers, slot):
    created = await test_client.post(
        "/v1/bookings", json=_booking_body(venue, *slot(10, 12)), headers=auth_headers(customer)
    )

    response = await test_client.delete(f"/v1/bookings/{created.json()['id']}", headers=auth_headers(other_customer))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_patch_booking(test_client, venue, customer, auth_headers, slot):
    created = await test_client.post(
        "/v1/bookings", json=_booking_body(venue, *slot(10, 12)), headers=auth_headers(customer)
    )
    booking_id = created.json()["id"]
    start, end = slot(13, 16)

    moved = await test_client.patch(
        f"/v1/bookings/{booking_id}",
        json={"start_time": start.isoformat(), "end_time": end.isoformat(), "notes": "Moved"},
        headers=auth_headers(customer)
    )
    assert moved.status_code == 200
    assert Decimal(moved.json()["total_amount"]) == Decimal("150")
    assert moved.json()["notes"] == "Moved"

    empty = await test_client.patch(f"/v1/bookings/{booking_id}", json={}, headers=auth_headers(customer))
    assert empty.status_code == 400
    assert empty.json()["detail"] == "No fields to update"


@pytest.mark.asyncio
async def test_list_bookings_paginated(test_client, venue, owner, customer, auth_headers, slot):
    for hour in range(25):
        response = await test_client.post(
            "/v1/bookings", json=_booking_body(venue, *slot(hour, hour + 1)), headers=auth_headers(customer)
        )
        assert response.status_code == 201

    response = await test_client.get(
        "/v1/bookings", params={"page": 2, "limit": 20}, headers=auth_headers(owner)
    )

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 25
    assert data["page"] == 2
    assert data["limit"] == 20
    assert data["total_pages"] == 2
    assert len(data["items"]) == 5

    capped = await test_client.get("/v1/bookings", params={"limit": 500}, headers=auth_headers(owner))
    assert capped.json()["limit"] == 100

    customers_only = await test_client.get("/v1/bookings", headers=auth_headers(customer))
    assert customers_only.status_code == 403


@pytest.mark.asyncio
async def test_venue_bookings_endpoint(test_client, venue, owner, customer, auth_headers, slot):
    await test_client.post("/v1/bookings", json=_booking_body(venue, *slot(10, 12)), headers=auth_headers(customer))

    response = await test_client.get(f"/v1/bookings/venue/{venue.id}", headers=auth_headers(owner))

    assert response.status_code == 200
    assert len(response.json()["items"]) == 1

    missing = await test_client.get(f"/v1/bookings/venue/{uuid4()}", headers=auth_headers(owner))
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_venue_crud(test_client, owner, customer, auth_headers, sample_venue_data):
    forbidden = await test_client.post("/v1/venues", json=sample_venue_data, headers=auth_headers(customer))
    assert forbidden.status_code == 403

    created = await test_client.post("/v1/venues", json=sample_venue_data, headers=auth_headers(owner))
    assert created.status_code == 201
    venue = created.json()
    assert venue["name"] == "Harbour Loft"
    assert venue["created_by"] == str(owner.id)

    fetched = await test_client.get(f"/v1/venues/{venue['id']}", headers=auth_headers(customer))
    assert fetched.status_code == 200

    listed = await test_client.get("/v1/venues", headers=auth_headers(customer))
    assert listed.json()["total"] == 1

    updated = await test_client.put(
        f"/v1/venues/{venue['id']}", json={"capacity": 90}, headers=auth_headers(owner)
    )
    assert updated.status_code == 200
    assert updated.json()["capacity"] == 90

    searched = await test_client.get(
        "/v1/venues/search", params={"city": "bristol", "capacity_min": 50}, headers=auth_headers(customer)
    )
    assert searched.status_code == 200
    assert [v["id"] for v in searched.json()["items"]] == [venue["id"]]

    deleted = await test_client.delete(f"/v1/venues/{venue['id']}", headers=auth_headers(owner))
    assert deleted.status_code == 204

    gone = await test_client.get(f"/v1/venues/{venue['id']}", headers=auth_headers(owner))
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_create_venue_invalid_data(test_client, owner, auth_headers, sample_venue_data):
    """Test venue creation with invalid data."""
    invalid_data = {**sample_venue_data, "name": "", "capacity": 0}

    response = await test_client.post("/v1/venues", json=invalid_data, headers=auth_headers(owner))

    assert response.status_code == 422
    data = response.json()
    assert data["status"] == 422
    assert {v["path"] for v in data["violations"]} == {"name", "capacity"}


@pytest.mark.asyncio
async def test_customer_manages_booking_at_another_tenants_venue(
    test_client, venue, owner, outside_customer, auth_headers, slot
):
    found = await test_client.get("/v1/venues/search", params={"city": "bristol"}, headers=auth_headers(outside_customer))
    assert found.json()["total"] == 1

    created = await test_client.post(
        "/v1/bookings", json=_booking_body(venue, *slot(10, 12)), headers=auth_headers(outside_customer)
    )
    assert created.status_code == 201
    booking_id = created.json()["id"]

    own = await test_client.get(f"/v1/bookings/{booking_id}", headers=auth_headers(outside_customer))
    assert own.status_code == 200
    assert own.json()["customer_first_name"] == "Sam"

    noted = await test_client.patch(
        f"/v1/bookings/{booking_id}", json={"notes": "Arriving early"}, headers=auth_headers(outside_customer)
    )
    assert noted.status_code == 200

    staff = await test_client.get(f"/v1/bookings/{booking_id}", headers=auth_headers(owner))
    assert staff.status_code == 200

    cancelled = await test_client.delete(f"/v1/bookings/{booking_id}", headers=auth_headers(outside_customer))
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"


@pytest.mark.asyncio
async def test_customer_of_another_tenant_cannot_see_strangers_bookings(
    test_client, venue, customer, outside_customer, auth_headers, slot
):
    created = await test_client.post(
        "/v1/bookings", json=_booking_body(venue, *slot(10, 12)), headers=auth_headers(customer)
    )

    response = await test_client.get(f"/v1/bookings/{created.json()['id']}", headers=auth_headers(outside_customer))

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_patch_booking_outside_booking_window(test_client, venue, customer, auth_headers, slot, slot_day):
    created = await test_client.post(
        "/v1/bookings", json=_booking_body(venue, *slot(10, 12)), headers=auth_headers(customer)
    )
    booking_id = created.json()["id"]

    stretched = await test_client.patch(
        f"/v1/bookings/{booking_id}",
        json={"end_time": slot(10, 40)[1].isoformat()},
        headers=auth_headers(customer)
    )
    assert stretched.status_code == 400
    assert stretched.json()["detail"] == "Booking duration must be between 1 and 24 hours"

    past_start = slot_day - timedelta(days=30)
    moved_back = await test_client.patch(
        f"/v1/bookings/{booking_id}",
        json={
            "start_time": past_start.isoformat(),
            "end_time": (past_start + timedelta(hours=2)).isoformat()
        },
        headers=auth_headers(customer)
    )
    assert moved_back.status_code == 400
    assert moved_back.json()["detail"] == "Start time must be in the future"

    unchanged = await test_client.get(f"/v1/bookings/{booking_id}", headers=auth_headers(customer))
    assert Decimal(unchanged.json()["total_amount"]) == Decimal("100")


@pytest.mark.asyncio
async def test_search_venues_by_amenities_endpoint(test_client, owner, customer, auth_headers, sample_venue_data):
    await test_client.post("/v1/venues", json=sample_venue_data, headers=auth_headers(owner))

    both = await test_client.get(
        "/v1/venues/search", params={"amenities": "wifi,projector"}, headers=auth_headers(customer)
    )
    assert both.status_code == 200
    assert both.json()["total"] == 1

    repeated = await test_client.get(
        "/v1/venues/search", params=[("amenities", "wifi"), ("amenities", "parking")], headers=auth_headers(customer)
    )
    assert repeated.json()["total"] == 0


@pytest.mark.asyncio
async def test_metrics_endpoint(test_client):
    """Test the Prometheus metrics endpoint."""
    response = await test_client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text
