"""
Logging Middleware for Correlation ID and Request Tracking

Generates or accepts a correlation id for every request and binds it to the
structlog context, so every log line of a search carries it.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from structlog.contextvars import bind_contextvars, clear_contextvars

from ..utils.logging_context import get_logger_with_context

logger = get_logger_with_context(__name__, component="http")

CORRELATION_HEADER = "X-Correlation-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Injects correlation ids and request context into all logs.

    - Accepts the caller's X-Correlation-ID or generates one
    - Echoes it on the response
    - Logs request start, completion (with duration) and failure
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        clear_contextvars()

        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        client_ip = request.client.host if request.client else "unknown"

        bind_contextvars(
            correlation_id=correlation_id,
            request_method=request.method,
            request_path=request.url.path,
            client_ip=client_ip,
        )

        start_time = time.time()
        logger.info("request_started", method=request.method, path=request.url.path)

        try:
            response = await call_next(request)

            duration_ms = int((time.time() - start_time) * 1000)
            response.headers[CORRELATION_HEADER] = correlation_id
            logger.info("request_completed", status_code=response.status_code, duration_ms=duration_ms)

            return response

        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(
                "request_failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=duration_ms,
                exc_info=True,
            )
            raise

        finally:
            clear_contextvars()
