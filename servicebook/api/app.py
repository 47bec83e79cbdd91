"""
FastAPI application entry point with health check and metrics routes.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from servicebook.api.routes import availability, booking_status, bookings
from servicebook.api.middleware import (
    AppException,
    CorrelationIdMiddleware,
    app_exception_handler,
    service_failure_handler,
    validation_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)
from servicebook.lib.logging import get_logger
from servicebook.lib.metrics import get_metrics_collector
from servicebook.lib.result import ServiceFailure
from servicebook.lib.settings import settings

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup/shutdown events.
    """
    logger.info(f"{settings.app_name} starting up...")
    yield
    logger.info(f"{settings.app_name} shutting down...")


app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    description="Availability, booking and booking status APIs for service professionals",
    debug=settings.debug,
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)


# Register exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(ServiceFailure, service_failure_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


# Include routers
app.include_router(bookings.router)
app.include_router(availability.router)
app.include_router(booking_status.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/metrics", include_in_schema=False)
def metrics_endpoint():
    """
    Prometheus-compatible metrics endpoint.

    Metrics exposed:
    - bookings_created_total: Bookings created, by service
    - booking_conflicts_total: Rejected bookings and reactivations, by reason
    - booking_status_transitions_total: Status changes, by old and new status
    - notifications_failed_total: Notification sink failures, by event
    """
    return PlainTextResponse(
        content=get_metrics_collector().export_prometheus(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
