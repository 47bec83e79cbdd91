"""
Integration tests for /booking-status routes.
"""
from datetime import time

import pytest


pytestmark = pytest.mark.integration


@pytest.fixture
def booking(customer, professional, service, make_booking):
    return make_booking(customer, professional, service)


def test_list_statuses_requires_authentication(client, headers_for, customer, statuses):
    assert client.get("/booking-status").status_code == 401

    response = client.get("/booking-status", headers=headers_for(customer))

    assert response.status_code == 200
    assert response.json()["total"] == 4


def test_catalogue_is_admin_only(client, headers_for, admin, customer, professional, statuses):
    body = {"name": "rescheduled", "description": "Moved"}

    assert client.post("/booking-status", json=body, headers=headers_for(customer)).status_code == 403
    assert client.post(
        "/booking-status", json=body, headers=headers_for(professional)
    ).status_code == 403

    created = client.post("/booking-status", json=body, headers=headers_for(admin))
    duplicate = client.post("/booking-status", json=body, headers=headers_for(admin))

    assert created.status_code == 201
    assert created.json()["name"] == "rescheduled"
    assert duplicate.status_code == 409


def test_get_update_delete_status(client, headers_for, admin, statuses):
    headers = headers_for(admin)
    completed_id = statuses["completed"].id

    fetched = client.get(f"/booking-status/{completed_id}", headers=headers)
    renamed = client.put(
        f"/booking-status/{completed_id}", json={"description": "Service delivered"}, headers=headers
    )
    deleted = client.delete(f"/booking-status/{completed_id}", headers=headers)
    missing = client.get(f"/booking-status/{completed_id}", headers=headers)

    assert fetched.json()["name"] == "completed"
    assert renamed.json()["description"] == "Service delivered"
    assert deleted.status_code == 204
    assert missing.status_code == 404


def test_delete_status_in_use_is_409(client, headers_for, admin, statuses, booking):
    response = client.delete(f"/booking-status/{statuses['pending'].id}", headers=headers_for(admin))

    assert response.status_code == 409
    assert response.json()["error"] == "Cannot delete booking status that is in use"


def test_transition_records_history(client, headers_for, admin, customer, statuses, booking):
    response = client.patch(
        f"/booking-status/bookings/{booking.id}",
        json={"status_id": statuses["confirmed"].id},
        headers=headers_for(admin),
    )

    assert response.status_code == 200
    assert response.json()["history"]["old_status"] == "pending"
    assert response.json()["history"]["changed_by"] == str(admin.id)

    history = client.get(
        "/booking-status/history",
        params={"booking_id": str(booking.id)},
        headers=headers_for(customer),
    )
    assert history.status_code == 200
    assert history.json()["total"] == 1
    assert history.json()["history"][0]["new_status"] == "confirmed"


def test_transition_by_professional_is_scoped(
    client, headers_for, customer, professional, make_professional, statuses, booking
):
    body = {"status_id": statuses["confirmed"].id}

    assert client.patch(
        f"/booking-status/bookings/{booking.id}", json=body, headers=headers_for(customer)
    ).status_code == 403
    assert client.patch(
        f"/booking-status/bookings/{booking.id}", json=body, headers=headers_for(make_professional())
    ).status_code == 403
    assert client.patch(
        f"/booking-status/bookings/{booking.id}", json=body, headers=headers_for(professional)
    ).status_code == 200


def test_transition_to_unknown_status_is_404(client, headers_for, admin, statuses, booking):
    response = client.patch(
        f"/booking-status/bookings/{booking.id}", json={"status_id": 99}, headers=headers_for(admin)
    )

    assert response.status_code == 404


def test_statistics(
    client, headers_for, admin, customer, professional, service, statuses, make_booking
):
    make_booking(customer, professional, service, start=time(9, 0))
    make_booking(customer, professional, service, start=time(11, 0), status="cancelled")

    assert client.get("/booking-status/statistics", headers=headers_for(customer)).status_code == 403

    response = client.get("/booking-status/statistics", headers=headers_for(admin))

    assert response.status_code == 200
    data = response.json()
    assert data["total_bookings"] == 2
    counts = {row["name"]: row["count"] for row in data["status_counts"]}
    assert counts["pending"] == 1
    assert counts["cancelled"] == 1
    assert data["recent_changes"] == []
