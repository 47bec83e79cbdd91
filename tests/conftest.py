"""
Shared fixtures: in-memory SQLite database, data factories and an
authenticated FastAPI test client.
"""
import os

# Must be set before servicebook is imported: the engine is built at import
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-for-hs256")

from datetime import date, datetime, time, timezone
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from servicebook.api.app import app
from servicebook.api.dependencies import get_db
from servicebook.lib.db import Base, SessionLocal, engine
from servicebook.lib.jwt import create_access_token
from servicebook.lib.metrics import reset_metrics
from servicebook.models import (
    Availability,
    Booking,
    BookingStatus,
    CustomerProfile,
    ProfessionalProfile,
    Service,
    User,
    UserType,
)
from servicebook.services.booking_status_service import DEFAULT_STATUSES


# Monday
MONDAY = date(2025, 6, 30)


@pytest.fixture(autouse=True)
def clean_metrics():
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def db():
    """Fresh schema and session per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def statuses(db):
    """Default statuses with ids 1-4, keyed by name."""
    rows = {}
    for index, (name, description) in enumerate(DEFAULT_STATUSES, start=1):
        rows[name] = BookingStatus(id=index, name=name, description=description)
        db.add(rows[name])
    db.commit()
    return rows


@pytest.fixture
def make_user(db):
    def _make(user_type=UserType.CUSTOMER, is_active=True):
        user = User(email=f"{uuid4().hex[:10]}@example.com", type=user_type, is_active=is_active)
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture
def make_customer(db, make_user):
    def _make():
        user = make_user(UserType.CUSTOMER)
        profile = CustomerProfile(
            user_id=user.id,
            first_name="Ana",
            last_name="Silva",
            phone_number="+15550001111",
        )
        db.add(profile)
        db.commit()
        return profile
    return _make


@pytest.fixture
def make_professional(db, make_user):
    def _make(is_active=True):
        user = make_user(UserType.PROFESSIONAL)
        profile = ProfessionalProfile(
            user_id=user.id,
            name="Maria Costa",
            business_name="Costa Hair Studio",
            is_active=is_active,
        )
        db.add(profile)
        db.commit()
        return profile
    return _make


@pytest.fixture
def customer(make_customer):
    return make_customer()


@pytest.fixture
def professional(make_professional):
    return make_professional()


@pytest.fixture
def service(db):
    row = Service(name="Haircut", description="Cut and styling", duration_estimate=60)
    db.add(row)
    db.commit()
    return row


@pytest.fixture
def admin(make_user):
    return make_user(UserType.ADMIN)


@pytest.fixture
def make_window(db):
    def _make(professional, day=1, from_time=time(9, 0), to_time=time(17, 0)):
        window = Availability(
            professional_id=professional.id,
            day=day,
            from_time=from_time,
            to_time=to_time,
        )
        db.add(window)
        db.commit()
        return window
    return _make


@pytest.fixture
def monday_window(professional, make_window):
    """Monday 09:00-17:00."""
    return make_window(professional)


@pytest.fixture
def make_booking(db, statuses):
    """Insert a booking row directly, bypassing the service checks."""
    def _make(customer, professional, service, start=time(10, 0), duration=60,
              status="pending", on=MONDAY):
        booking = Booking(
            customer_id=customer.id,
            professional_id=professional.id,
            service_id=service.id,
            date=on,
            time=start,
            duration=duration,
            status_id=statuses[status].id,
            cancelled_at=datetime.now(timezone.utc) if status == "cancelled" else None,
        )
        db.add(booking)
        db.commit()
        return booking
    return _make


def auth_headers(user) -> dict:
    token = create_access_token(str(user.id), user.type.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(db):
    """Test client sharing the test session."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def headers_for(db):
    """Bearer headers for a user, or for the user behind a profile."""
    def _headers(account):
        if not isinstance(account, User):
            account = db.get(User, account.user_id)
        return auth_headers(account)
    return _headers
