"""
Unit tests for BookingStatusService: catalogue, transitions and history.
"""
from datetime import time
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from servicebook.lib.metrics import get_metrics_collector
from servicebook.lib.result import ErrorCategory
from servicebook.lib.settings import settings
from servicebook.models import Booking, BookingStatus
from servicebook.repositories.booking_status import BookingStatusHistoryRepository
from servicebook.services.booking_status_service import (
    BookingStatusService,
    is_transition_allowed,
)


@pytest.fixture
def notifier():
    return MagicMock()


@pytest.fixture
def status_service(db, notifier):
    return BookingStatusService(db, notifier=notifier)


@pytest.fixture
def booking(customer, professional, service, make_booking):
    return make_booking(customer, professional, service)


# ===== Catalogue =====


@pytest.mark.unit
def test_create_and_get_status(status_service):
    created = status_service.create_status("rescheduled", "Moved to another day").unwrap()

    fetched = status_service.get_status(created.id).unwrap()
    assert fetched.name == "rescheduled"
    assert fetched.description == "Moved to another day"


@pytest.mark.unit
def test_duplicate_status_name_conflict(status_service, statuses):
    result = status_service.create_status("pending")

    assert result.error.category is ErrorCategory.CONFLICT


@pytest.mark.unit
@pytest.mark.parametrize("name", ["", "   ", "x" * 51, None])
def test_status_name_validation(status_service, name):
    assert status_service.create_status(name).error.category is ErrorCategory.VALIDATION


@pytest.mark.unit
def test_list_statuses_paginated(status_service, statuses):
    page = status_service.list_statuses(limit=2, offset=0).unwrap()

    assert page["total"] == 4
    assert [s.name for s in page["statuses"]] == ["cancelled", "completed"]


@pytest.mark.unit
def test_update_status(status_service, statuses):
    updated = status_service.update_status(
        statuses["confirmed"].id, description="Accepted by the professional"
    ).unwrap()
    clash = status_service.update_status(statuses["confirmed"].id, name="pending")
    missing = status_service.update_status(999, name="whatever")

    assert updated.name == "confirmed"
    assert updated.description == "Accepted by the professional"
    assert clash.error.category is ErrorCategory.CONFLICT
    assert missing.error.category is ErrorCategory.NOT_FOUND


@pytest.mark.unit
def test_delete_unreferenced_status(status_service, statuses):
    assert status_service.delete_status(statuses["completed"].id).ok
    assert status_service.get_status(statuses["completed"].id).error.category is (
        ErrorCategory.NOT_FOUND
    )


@pytest.mark.unit
def test_delete_referenced_status_conflict(status_service, statuses, booking):
    result = status_service.delete_status(statuses["pending"].id)

    assert result.error.category is ErrorCategory.CONFLICT
    assert status_service.get_status(statuses["pending"].id).ok


@pytest.mark.unit
def test_delete_missing_status_not_found(status_service):
    assert status_service.delete_status(42).error.category is ErrorCategory.NOT_FOUND


@pytest.mark.unit
def test_seed_default_statuses_is_idempotent(db, status_service):
    first = status_service.seed_default_statuses().unwrap()
    second = status_service.seed_default_statuses().unwrap()

    assert [s.name for s in first] == ["pending", "confirmed", "completed", "cancelled"]
    assert second == []


# ===== Transitions =====


@pytest.mark.unit
def test_pending_to_confirmed_records_history(status_service, statuses, booking, professional, notifier):
    result = status_service.update_booking_status(
        booking.id, statuses["confirmed"].id, acting_user_id=professional.user_id
    ).unwrap()

    assert result["booking"].status_id == statuses["confirmed"].id
    history = result["history"]
    assert history.booking_id == booking.id
    assert history.old_status == "pending"
    assert history.new_status == "confirmed"
    assert history.changed_by == professional.user_id
    assert history.changed_at is not None

    notifier.notify_booking_event.assert_called_once()
    assert notifier.notify_booking_event.call_args.args[0] == "booking_status_changed"
    assert get_metrics_collector().get_counter_value(
        "booking_status_transitions_total",
        {"old_status": "pending", "new_status": "confirmed"},
    ) == 1


@pytest.mark.unit
def test_each_transition_adds_exactly_one_history_row(db, status_service, statuses, booking):
    history = BookingStatusHistoryRepository(db)

    status_service.update_booking_status(booking.id, statuses["confirmed"].id).unwrap()
    assert history.list(booking_id=booking.id)[1] == 1

    result = status_service.update_booking_status(booking.id, statuses["completed"].id).unwrap()
    entries, total = history.list(booking_id=booking.id)

    assert total == 2
    assert result["history"].old_status == "confirmed"
    assert entries[0].new_status == "completed"
    assert result["history"].changed_by is None


@pytest.mark.unit
def test_missing_booking_or_status_not_found(status_service, statuses, booking):
    assert status_service.update_booking_status(uuid4(), statuses["confirmed"].id).error.category is (
        ErrorCategory.NOT_FOUND
    )
    assert status_service.update_booking_status(booking.id, 999).error.category is (
        ErrorCategory.NOT_FOUND
    )
    assert status_service.update_booking_status(
        booking.id, statuses["confirmed"].id, acting_user_id=uuid4()
    ).error.category is ErrorCategory.NOT_FOUND


@pytest.mark.unit
def test_disallowed_transition_conflict(db, status_service, statuses, booking):
    result = status_service.update_booking_status(booking.id, statuses["completed"].id)

    assert result.error.category is ErrorCategory.CONFLICT
    db.refresh(booking)
    assert booking.status_id == statuses["pending"].id
    assert BookingStatusHistoryRepository(db).list(booking_id=booking.id)[1] == 0


@pytest.mark.unit
def test_permissive_mode_allows_any_edge(status_service, statuses, booking, monkeypatch):
    monkeypatch.setattr(settings, "enforce_status_transitions", False)

    result = status_service.update_booking_status(booking.id, statuses["completed"].id)

    assert result.unwrap()["history"].old_status == "pending"


@pytest.mark.unit
def test_cancellation_sets_and_reactivation_clears_cancelled_at(
    status_service, statuses, booking, monkeypatch
):
    cancelled = status_service.update_booking_status(booking.id, statuses["cancelled"].id).unwrap()
    assert cancelled["booking"].cancelled_at is not None

    monkeypatch.setattr(settings, "enforce_status_transitions", False)
    restored = status_service.update_booking_status(booking.id, statuses["pending"].id).unwrap()

    assert restored["booking"].cancelled_at is None
    assert restored["history"].old_status == "cancelled"


@pytest.mark.unit
def test_reactivation_conflicts_when_slot_taken(
    status_service, statuses, booking, customer, professional, service, make_booking, monkeypatch
):
    status_service.update_booking_status(booking.id, statuses["cancelled"].id).unwrap()
    make_booking(customer, professional, service, start=time(10, 30), duration=30)
    monkeypatch.setattr(settings, "enforce_status_transitions", False)

    result = status_service.update_booking_status(booking.id, statuses["confirmed"].id)

    assert result.error.category is ErrorCategory.CONFLICT


@pytest.mark.unit
def test_custom_statuses_are_unrestricted(db, status_service, statuses, booking):
    on_hold = status_service.create_status("on_hold").unwrap()

    assert status_service.update_booking_status(booking.id, on_hold.id).ok
    assert status_service.update_booking_status(booking.id, statuses["confirmed"].id).ok


@pytest.mark.unit
def test_transition_graph():
    assert is_transition_allowed("pending", "confirmed")
    assert is_transition_allowed("pending", "cancelled")
    assert is_transition_allowed("confirmed", "completed")
    assert is_transition_allowed("confirmed", "canceled")
    assert not is_transition_allowed("pending", "completed")
    assert not is_transition_allowed("completed", "cancelled")
    assert not is_transition_allowed("cancelled", "confirmed")
    assert not is_transition_allowed("pending", "pending")
    assert is_transition_allowed("unknown", "confirmed")


@pytest.mark.unit
def test_persistence_failure_rolls_back(db, status_service, statuses, booking, monkeypatch):
    def failing_add(self, entry):
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(BookingStatusHistoryRepository, "add", failing_add)

    result = status_service.update_booking_status(booking.id, statuses["confirmed"].id)

    assert result.error.category is ErrorCategory.INTERNAL
    assert isinstance(result.error.cause, OperationalError)
    db.expire_all()
    assert db.get(Booking, booking.id).status_id == statuses["pending"].id


# ===== History and statistics =====


@pytest.mark.unit
def test_list_history_paginates_newest_first(status_service, statuses, booking):
    status_service.update_booking_status(booking.id, statuses["confirmed"].id).unwrap()
    status_service.update_booking_status(booking.id, statuses["completed"].id).unwrap()

    page = status_service.list_history(booking_id=booking.id, limit=1).unwrap()
    everything = status_service.list_history().unwrap()

    assert page["total"] == 2
    assert [h.new_status for h in page["history"]] == ["completed"]
    assert everything["total"] == 2
    assert status_service.list_history(booking_id=uuid4()).unwrap() == {"history": [], "total": 0}


@pytest.mark.unit
def test_statistics(status_service, statuses, customer, professional, service, make_booking):
    first = make_booking(customer, professional, service, start=time(9, 0))
    make_booking(customer, professional, service, start=time(10, 0))
    status_service.update_booking_status(first.id, statuses["confirmed"].id).unwrap()

    stats = status_service.get_statistics().unwrap()

    counts = {row["name"]: row["count"] for row in stats["status_counts"]}
    assert counts == {"pending": 1, "confirmed": 1, "completed": 0, "cancelled": 0}
    assert stats["total_bookings"] == 2
    assert len(stats["recent_changes"]) == 1


@pytest.mark.unit
def test_find_cancelled_status(db, status_service):
    assert status_service.find_cancelled_status() is None
    db.add(BookingStatus(name="canceled"))
    db.commit()
    assert status_service.find_cancelled_status().name == "canceled"
