"""
API middleware module.
"""
from servicebook.api.middleware.correlation import CorrelationIdMiddleware
from servicebook.api.middleware.error_handler import (
    AppException,
    NotFoundException,
    UnauthorizedException,
    ForbiddenException,
    ConflictException,
    ValidationException,
    exception_for,
    app_exception_handler,
    service_failure_handler,
    validation_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)

__all__ = [
    "CorrelationIdMiddleware",
    "AppException",
    "NotFoundException",
    "UnauthorizedException",
    "ForbiddenException",
    "ConflictException",
    "ValidationException",
    "exception_for",
    "app_exception_handler",
    "service_failure_handler",
    "validation_exception_handler",
    "http_exception_handler",
    "unhandled_exception_handler",
]
