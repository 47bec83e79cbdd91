"""
Unit tests for NotificationService.
"""
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select

from servicebook.lib.metrics import get_metrics_collector
from servicebook.lib.settings import settings
from servicebook.models import AuditLog, Notification, NotificationChannel
from servicebook.services.notification_service import (
    BOOKING_CREATED,
    InAppNotificationProvider,
    LogNotificationProvider,
    NotificationProvider,
    NotificationService,
)


@pytest.fixture
def booking(customer, professional, service, make_booking):
    return make_booking(customer, professional, service)


@pytest.mark.unit
def test_in_app_provider_channel():
    assert InAppNotificationProvider().channel is NotificationChannel.IN_APP


@pytest.mark.unit
def test_log_provider_sends(db):
    provider = LogNotificationProvider()

    assert provider.send(db, None, BOOKING_CREATED, "hello") is True


@pytest.mark.unit
def test_event_writes_audit_and_notifies_counterparty(db, booking, customer, professional):
    service = NotificationService(db)

    recorded = service.notify_booking_event(
        BOOKING_CREATED,
        booking,
        "New booking on 2025-06-30 at 10:00",
        actor_user_id=customer.user_id,
        metadata={"duration": 60},
    )

    assert recorded is True
    audit = db.execute(select(AuditLog)).scalars().all()
    assert len(audit) == 1
    assert audit[0].action == BOOKING_CREATED
    assert audit[0].entity_id == str(booking.id)
    assert audit[0].audit_metadata == {"duration": 60}

    notifications = db.execute(select(Notification)).scalars().all()
    assert [n.user_id for n in notifications] == [professional.user_id]
    assert notifications[0].channel is NotificationChannel.IN_APP
    assert notifications[0].is_read is False


@pytest.mark.unit
def test_system_event_notifies_both_parties(db, booking, customer, professional):
    NotificationService(db).notify_booking_event("booking_status_changed", booking, "Confirmed")

    recipients = {n.user_id for n in db.execute(select(Notification)).scalars().all()}
    assert recipients == {customer.user_id, professional.user_id}


@pytest.mark.unit
def test_disabled_sink_records_nothing(db, booking, monkeypatch):
    monkeypatch.setattr(settings, "notifications_enabled", False)

    assert NotificationService(db).notify_booking_event(BOOKING_CREATED, booking, "x") is False
    assert db.execute(select(AuditLog)).first() is None


@pytest.mark.unit
def test_provider_failure_is_swallowed(db, booking):
    failing = MagicMock(spec=NotificationProvider)
    failing.send.side_effect = RuntimeError("smtp down")

    recorded = NotificationService(db, providers=[failing]).notify_booking_event(
        BOOKING_CREATED, booking, "x"
    )

    assert recorded is False
    assert db.execute(select(AuditLog)).first() is None
    assert get_metrics_collector().get_counter_value(
        "notifications_failed_total", {"event": BOOKING_CREATED}
    ) == 1


@pytest.mark.unit
def test_declined_delivery_still_records(db, booking):
    declining = MagicMock(spec=NotificationProvider)
    declining.send.return_value = False
    declining.channel = NotificationChannel.PUSH

    assert NotificationService(db, providers=[declining]).notify_booking_event(
        BOOKING_CREATED, booking, "x"
    ) is True
    assert declining.send.call_count == 2
