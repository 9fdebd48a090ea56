"""Middleware package for request processing and logging context injection."""

from .logging_middleware import CORRELATION_HEADER, LoggingMiddleware

__all__ = ["CORRELATION_HEADER", "LoggingMiddleware"]
