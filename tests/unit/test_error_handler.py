"""
Tests for error handler middleware and custom exceptions.
"""
import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field

from servicebook.api.middleware.error_handler import (
    AppException,
    NotFoundException,
    UnauthorizedException,
    ForbiddenException,
    ConflictException,
    ValidationException,
    app_exception_handler,
    service_failure_handler,
    validation_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError

from servicebook.lib.result import ErrorCategory, ServiceFailure, ServiceResult


def build_app() -> FastAPI:
    app = FastAPI()
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(ServiceFailure, service_failure_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
    return app


@pytest.mark.unit
def test_app_exception_creation():
    """Test creating custom AppException."""
    exc = AppException(message="Test error", status_code=500, details={"key": "value"})

    assert exc.message == "Test error"
    assert exc.status_code == 500
    assert exc.details == {"key": "value"}


@pytest.mark.unit
def test_not_found_exception():
    exc = NotFoundException("Booking", "123")

    assert exc.message == "Booking with id '123' not found"
    assert exc.status_code == 404
    assert exc.details["resource"] == "Booking"
    assert exc.details["resource_id"] == "123"


@pytest.mark.unit
def test_not_found_exception_without_id():
    exc = NotFoundException("Professional profile")

    assert exc.message == "Professional profile not found"
    assert exc.status_code == 404


@pytest.mark.unit
def test_auth_exceptions():
    assert UnauthorizedException().status_code == 401
    exc = ForbiddenException("Only the booking customer can cancel this booking")
    assert exc.status_code == 403
    assert exc.message == "Only the booking customer can cancel this booking"


@pytest.mark.unit
def test_conflict_exception():
    exc = ConflictException("Time slot is not available", details={"availability_id": 4})

    assert exc.status_code == 409
    assert exc.details == {"availability_id": 4}


@pytest.mark.unit
def test_validation_exception():
    exc = ValidationException("Invalid availability window", errors={"day": "out of range"})

    assert exc.status_code == 422
    assert exc.details["errors"] == {"day": "out of range"}


@pytest.mark.unit
def test_app_exception_handler_in_route():
    app = build_app()

    @app.get("/test-error")
    async def test_error():
        raise ConflictException("Time slot is not available")

    client = TestClient(app)
    response = client.get("/test-error")

    assert response.status_code == 409
    data = response.json()
    assert data["error"] == "Time slot is not available"
    assert "correlation_id" in data
    assert "details" not in data


@pytest.mark.unit
def test_validation_error_handler():
    app = build_app()

    class SlotModel(BaseModel):
        day: int = Field(..., ge=0, le=6)

    @app.post("/test-validation")
    async def test_validation(data: SlotModel):
        return data

    client = TestClient(app)
    response = client.post("/test-validation", json={"day": 9})

    assert response.status_code == 422
    data = response.json()
    assert data["error"] == "Validation error"
    assert data["details"]["errors"][0]["loc"] == ["body", "day"]


@pytest.mark.unit
def test_http_exception_handler():
    app = build_app()
    client = TestClient(app)

    response = client.get("/no-such-route")

    assert response.status_code == 404
    data = response.json()
    assert data["error"] == "Not Found"
    assert "correlation_id" in data


@pytest.mark.unit
def test_unhandled_exception_handler():
    app = build_app()

    @app.get("/test-unhandled")
    async def test_unhandled():
        raise RuntimeError("database password is hunter2")

    client = TestClient(app, raise_server_exceptions=False)
    response = client.get("/test-unhandled")

    assert response.status_code == 500
    data = response.json()
    assert data["error"] == "Internal server error"
    assert "hunter2" not in response.text


@pytest.mark.unit
def test_exception_with_correlation_id():
    app = build_app()

    @app.get("/test-correlation")
    async def test_correlation(request: Request):
        request.state.correlation_id = "test-correlation-123"
        raise ForbiddenException("nope")

    client = TestClient(app)
    response = client.get("/test-correlation")

    assert response.status_code == 403
    assert response.json()["correlation_id"] == "test-correlation-123"


@pytest.mark.unit
def test_server_error_hides_cause():
    app = build_app()

    @app.get("/test-internal")
    async def test_internal():
        raise AppException("Failed to create booking") from ValueError("constraint detail")

    client = TestClient(app)
    response = client.get("/test-internal")

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to create booking"
    assert "constraint detail" not in response.text


@pytest.mark.unit
def test_failed_service_result_rendered_by_category():
    app = build_app()

    @app.get("/test-service-failure")
    async def test_service_failure():
        return ServiceResult.failure(
            ErrorCategory.CONFLICT, "Time slot is not available", details={"overlap": True}
        ).unwrap()

    client = TestClient(app)
    response = client.get("/test-service-failure")

    assert response.status_code == 409
    data = response.json()
    assert data["error"] == "Time slot is not available"
    assert data["details"] == {"overlap": True}


@pytest.mark.unit
def test_failed_internal_result_hides_cause():
    app = build_app()

    @app.get("/test-service-internal")
    async def test_service_internal():
        return ServiceResult.failure(
            ErrorCategory.INTERNAL, "Failed to create booking", cause=ValueError("row lock timeout")
        ).unwrap()

    client = TestClient(app)
    response = client.get("/test-service-internal")

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to create booking"
    assert "row lock timeout" not in response.text
