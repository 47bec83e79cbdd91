"""
Error handler middleware and custom exceptions.

Failed service results are mapped onto the exceptions below; the handlers
turn them into the common error body:

    {"error": <message>, "correlation_id": <id>, "details": {...}}
"""
import logging
from typing import Optional, Dict, Any
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from servicebook.lib.logging import get_correlation_id, get_logger
from servicebook.lib.result import ErrorCategory, ServiceError, ServiceFailure

logger = get_logger(__name__)


# Custom exception classes
class AppException(Exception):
    """Base application exception, rendered as 500 unless a subclass says otherwise."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundException(AppException):
    """Missing professional, customer, service, booking or status."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "resource_id": resource_id},
        )


class UnauthorizedException(AppException):
    """Missing or invalid bearer token."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class ForbiddenException(AppException):
    """Authenticated user may not act on the resource."""

    def __init__(self, message: str = "Forbidden"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
        )


class ConflictException(AppException):
    """Slot overlap, duplicate status name, status still in use."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details or {},
        )


class ValidationException(AppException):
    """Malformed input detected by a service."""

    def __init__(self, message: str, errors: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"errors": errors or {}},
        )


def exception_for(error: ServiceError) -> AppException:
    """Map a service error category onto the HTTP exception family."""
    if error.category is ErrorCategory.NOT_FOUND:
        exc = NotFoundException(error.resource or "Resource", error.resource_id)
        exc.message = error.message
    elif error.category is ErrorCategory.CONFLICT:
        exc = ConflictException(error.message, details=error.details)
    elif error.category is ErrorCategory.VALIDATION:
        exc = ValidationException(error.message, errors=error.details)
    elif error.category is ErrorCategory.FORBIDDEN:
        exc = ForbiddenException(error.message)
    else:
        exc = AppException(error.message)
    exc.__cause__ = error.cause
    return exc


def _correlation_id(request: Request) -> str:
    return (
        getattr(request.state, "correlation_id", None)
        or get_correlation_id()
        or "unknown"
    )


def _error_response(
    request: Request,
    status_code: int,
    message: Any,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    content = {
        "error": message,
        "correlation_id": _correlation_id(request),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


# Exception handlers
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handler for application exceptions.

    Client errors are logged as warnings. Server errors are logged with the
    chained cause (the original persistence error) but only the generic
    message is returned.
    """
    is_server_error = exc.status_code >= 500
    logger.log(
        logging.ERROR if is_server_error else logging.WARNING,
        f"Application error: {exc.message}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
        },
        exc_info=exc.__cause__ if is_server_error and exc.__cause__ else None,
    )
    return _error_response(request, exc.status_code, exc.message, exc.details)


async def service_failure_handler(request: Request, exc: ServiceFailure) -> JSONResponse:
    """Handler for failed service results raised by `unwrap()`."""
    return await app_exception_handler(request, exception_for(exc.error))


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """
    Handler for request body and query validation errors.
    """
    errors = [
        {
            "loc": list(error["loc"]),
            "msg": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning(
        "Validation error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "errors": errors,
        },
    )
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        {"errors": errors},
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """
    Handler for framework HTTP exceptions (404 route, 405, bearer auth 403).
    """
    logger.warning(
        f"HTTP exception: {exc.detail}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return _error_response(request, exc.status_code, exc.detail)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handler for unhandled exceptions.

    Logs full stack trace and returns generic error message.
    """
    logger.error(
        f"Unhandled exception: {exc}",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=True,
    )
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
    )
