"""
Service result type.

Booking services report failures as values: every public operation returns a
ServiceResult holding either the produced value or a ServiceError with an
explicit category. `unwrap()` returns the value or raises ServiceFailure; the
API layer renders ServiceFailure with the HTTP status of the category.
"""
import enum
import functools
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from servicebook.lib.logging import get_logger


logger = get_logger(__name__)


T = TypeVar("T")


class ErrorCategory(str, enum.Enum):
    """Failure categories returned by the booking services."""
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    FORBIDDEN = "forbidden"
    INTERNAL = "internal"


@dataclass(frozen=True)
class ServiceError:
    """A categorised failure; `cause` keeps the original exception for logging."""
    category: ErrorCategory
    message: str
    resource: Optional[str] = None
    resource_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    cause: Optional[BaseException] = None


class ServiceFailure(Exception):
    """Raised by `ServiceResult.unwrap()` for a failed result."""

    def __init__(self, error: ServiceError):
        self.error = error
        super().__init__(error.message)


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """Either a value or a ServiceError."""
    value: Optional[T] = None
    error: Optional[ServiceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "ServiceResult[T]":
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        category: ErrorCategory,
        message: str,
        **kwargs: Any,
    ) -> "ServiceResult[T]":
        return cls(error=ServiceError(category=category, message=message, **kwargs))

    @classmethod
    def not_found(cls, resource: str, resource_id: Any = None) -> "ServiceResult[T]":
        message = f"{resource} not found"
        rid = str(resource_id) if resource_id is not None else None
        if rid:
            message = f"{resource} with id '{rid}' not found"
        return cls.failure(
            ErrorCategory.NOT_FOUND, message, resource=resource, resource_id=rid
        )

    def unwrap(self) -> T:
        """Return the value or raise ServiceFailure carrying the error."""
        if self.error is not None:
            raise ServiceFailure(self.error) from self.error.cause
        return self.value


def persistence_guard(message: str) -> Callable:
    """
    Wrap a service method so that persistence failures become INTERNAL results.

    The session is rolled back and the original exception is kept as the
    error cause; it is logged here and never reaches the HTTP caller.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(self, *args: Any, **kwargs: Any) -> ServiceResult:
            try:
                return func(self, *args, **kwargs)
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"{message}: {e}", exc_info=True)
                return ServiceResult.failure(ErrorCategory.INTERNAL, message, cause=e)
        return wrapper
    return decorator
