"""
Correlation ID middleware.
"""
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from servicebook.lib.logging import get_logger, set_correlation_id

logger = get_logger(__name__)


CORRELATION_HEADER = "X-Correlation-ID"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with a correlation ID.

    Accepts X-Correlation-ID from the caller or generates one, exposes it on
    request.state and in the logging context, and echoes it in the response.
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        set_correlation_id(correlation_id)

        logger.info(
            "Incoming request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "client": request.client.host if request.client else None,
            },
        )

        try:
            response = await call_next(request)
            response.headers[CORRELATION_HEADER] = correlation_id
            logger.info("Response sent", extra={"status_code": response.status_code})
            return response
        finally:
            set_correlation_id(None)
