"""
Integration tests for /bookings routes.
"""
from datetime import time
from uuid import uuid4

import pytest

from servicebook.lib.settings import settings


pytestmark = pytest.mark.integration


@pytest.fixture
def payload(professional, service):
    return {
        "professional_id": str(professional.id),
        "service_id": service.id,
        "date": "2025-06-30",
        "time": "10:00",
        "duration": 60,
    }


def test_monday_scenario_over_http(
    client, headers_for, customer, make_customer, professional, monday_window, statuses, payload
):
    created = client.post("/bookings", json=payload, headers=headers_for(customer))

    assert created.status_code == 201
    booking = created.json()
    assert booking["status_id"] == statuses["pending"].id
    assert booking["time"] == "10:00:00"
    assert booking["cancelled_at"] is None

    slots = client.get(
        f"/bookings/availability/{professional.id}", params={"date": "2025-06-30"}
    )
    assert slots.status_code == 200
    by_start = {s["start_time"]: s["available"] for s in slots.json()["slots"]}
    assert by_start["10:00"] is False
    assert by_start["09:00"] is True

    second = client.post("/bookings", json=payload, headers=headers_for(make_customer()))
    assert second.status_code == 409
    assert "not available" in second.json()["error"]


def test_availability_is_public_and_validates_date(client, professional, monday_window):
    ok = client.get(f"/bookings/availability/{professional.id}", params={"date": "2025-06-30"})
    bad = client.get(f"/bookings/availability/{professional.id}", params={"date": "June 30"})
    missing = client.get(f"/bookings/availability/{uuid4()}", params={"date": "2025-06-30"})

    assert ok.status_code == 200
    assert len(ok.json()["slots"]) == 8
    assert bad.status_code == 422
    assert missing.status_code == 404


def test_create_requires_customer(client, headers_for, professional, statuses, payload):
    assert client.post("/bookings", json=payload).status_code == 401
    assert client.post(
        "/bookings", json=payload, headers={"Authorization": "Bearer not-a-token"}
    ).status_code == 401
    assert client.post(
        "/bookings", json=payload, headers=headers_for(professional)
    ).status_code == 403


def test_create_rejects_bad_payload(client, headers_for, customer, statuses, payload):
    payload["duration"] = 0

    response = client.post("/bookings", json=payload, headers=headers_for(customer))

    assert response.status_code == 422
    assert response.json()["error"] == "Validation error"


def test_create_past_midnight_is_422(client, headers_for, customer, statuses, payload):
    payload["time"] = "23:30"

    response = client.post("/bookings", json=payload, headers=headers_for(customer))

    assert response.status_code == 422


def test_create_outside_required_window_is_409(
    client, headers_for, customer, monday_window, statuses, payload, monkeypatch
):
    monkeypatch.setattr(settings, "require_availability_window", True)
    payload["time"] = "18:00"

    response = client.post("/bookings", json=payload, headers=headers_for(customer))

    assert response.status_code == 409


def test_list_and_get_bookings(
    client, headers_for, customer, make_customer, professional, service, make_booking
):
    first = make_booking(customer, professional, service, start=time(9, 0))
    make_booking(customer, professional, service, start=time(11, 0), status="confirmed")

    listed = client.get("/bookings", params={"limit": 1}, headers=headers_for(customer))
    assert listed.status_code == 200
    assert listed.json()["total"] == 2
    assert listed.json()["has_more"] is True

    confirmed = client.get(
        "/bookings", params={"status": "confirmed"}, headers=headers_for(professional)
    )
    assert confirmed.json()["total"] == 1

    mine = client.get(f"/bookings/{first.id}", headers=headers_for(customer))
    theirs = client.get(f"/bookings/{first.id}", headers=headers_for(make_customer()))
    assert mine.status_code == 200
    assert mine.json()["id"] == str(first.id)
    assert theirs.status_code == 403


def test_professional_confirms_booking(
    client, headers_for, customer, professional, make_professional, service, statuses, make_booking
):
    booking = make_booking(customer, professional, service)
    body = {"status_id": statuses["confirmed"].id}

    denied = client.patch(
        f"/bookings/{booking.id}/status", json=body, headers=headers_for(make_professional())
    )
    as_customer = client.patch(
        f"/bookings/{booking.id}/status", json=body, headers=headers_for(customer)
    )
    allowed = client.patch(
        f"/bookings/{booking.id}/status", json=body, headers=headers_for(professional)
    )

    assert denied.status_code == 403
    assert as_customer.status_code == 403
    assert allowed.status_code == 200
    data = allowed.json()
    assert data["booking"]["status_id"] == statuses["confirmed"].id
    assert data["history"]["old_status"] == "pending"
    assert data["history"]["new_status"] == "confirmed"
    assert data["history"]["changed_by"] == str(professional.user_id)


def test_disallowed_transition_is_409(
    client, headers_for, customer, professional, service, statuses, make_booking
):
    booking = make_booking(customer, professional, service)

    response = client.patch(
        f"/bookings/{booking.id}/status",
        json={"status_id": statuses["completed"].id},
        headers=headers_for(professional),
    )

    assert response.status_code == 409


def test_cancel_booking(
    client, headers_for, customer, professional, service, statuses, make_booking, payload
):
    booking = make_booking(customer, professional, service)

    response = client.patch(
        f"/bookings/{booking.id}/cancel",
        json={"reason": "Travelling"},
        headers=headers_for(customer),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["booking"]["status_id"] == statuses["cancelled"].id
    assert data["booking"]["cancelled_at"] is not None
    assert data["booking"]["notes"] == "Cancellation reason: Travelling"
    assert data["history"]["new_status"] == "cancelled"

    again = client.patch(f"/bookings/{booking.id}/cancel", headers=headers_for(customer))
    assert again.status_code == 409

    rebooked = client.post("/bookings", json=payload, headers=headers_for(customer))
    assert rebooked.status_code == 201


def test_cancel_by_other_customer_forbidden(
    client, headers_for, customer, make_customer, professional, service, make_booking
):
    booking = make_booking(customer, professional, service)

    response = client.patch(f"/bookings/{booking.id}/cancel", headers=headers_for(make_customer()))

    assert response.status_code == 403


@pytest.mark.parametrize("value", ["2025-6-30", "2025-06-3", "30/06/2025"])
def test_availability_rejects_non_iso_date_with_422(client, professional, monday_window, value):
    response = client.get(f"/bookings/availability/{professional.id}", params={"date": value})

    assert response.status_code == 422
    assert response.json()["error"] == "Validation error"


def test_availability_echoes_parsed_date(client, professional, monday_window):
    response = client.get(
        f"/bookings/availability/{professional.id}", params={"date": "2025-06-30"}
    )

    assert response.status_code == 200
    assert response.json()["date"] == "2025-06-30"
    assert response.json()["professional_id"] == str(professional.id)


def test_start_time_with_seconds_is_422(
    client, headers_for, customer, make_customer, statuses, payload
):
    payload["time"] = "10:00:30"

    rejected = client.post("/bookings", json=payload, headers=headers_for(customer))

    assert rejected.status_code == 422
    assert "whole minutes" in rejected.json()["error"]

    payload["time"] = "11:00"
    assert client.post(
        "/bookings", json=payload, headers=headers_for(make_customer())
    ).status_code == 201
