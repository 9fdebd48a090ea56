"""
Logging Context Management Utilities

Helpers for adding and removing structured log context.
Bound context appears in every log statement emitted within its scope,
including stdlib loggers routed through structlog's ProcessorFormatter.
"""

import time
from contextlib import contextmanager
from typing import Optional

import structlog
from structlog.contextvars import bind_contextvars, unbind_contextvars

SEARCH_CONTEXT_KEYS = ("search_id", "query_type", "course_id", "user_id")


def bind_search_context(
    search_id: str,
    query_type: Optional[str] = None,
    course_id: Optional[str] = None,
    user_id: Optional[str] = None,
    **kwargs
):
    """
    Bind search-related context to all logs.

    Args:
        search_id: Identifier of the search being executed
        query_type: Requested search type (keyword, semantic, rag, hybrid)
        course_id: Course scope from the request context
        user_id: Caller identifier from the request context
        **kwargs: Additional context key-value pairs

    Example:
        ```python
        bind_search_context(search_id="3f2a...", query_type="hybrid")
        logger.info("dispatching strategies")  # includes search_id, query_type
        ```
    """
    context = {"search_id": search_id}

    if query_type:
        context["query_type"] = query_type
    if course_id:
        context["course_id"] = course_id
    if user_id:
        context["user_id"] = user_id

    context.update(kwargs)
    bind_contextvars(**context)


def unbind_context(*keys: str):
    """
    Remove specific keys from logging context.

    Example:
        ```python
        unbind_context(*SEARCH_CONTEXT_KEYS)
        ```
    """
    unbind_contextvars(*keys)


@contextmanager
def log_context(**context_vars):
    """
    Temporary logging context, removed again on exit.

    Example:
        ```python
        with log_context(strategy="semantic"):
            results = await strategy.search(query)
        ```
    """
    bind_contextvars(**context_vars)

    try:
        yield
    finally:
        unbind_contextvars(*context_vars.keys())


@contextmanager
def log_performance(operation_name: str, logger=None):
    """
    Log start, completion and duration of an operation.

    Args:
        operation_name: Name of the operation being timed
        logger: Logger instance (defaults to structlog.get_logger())
    """
    if logger is None:
        logger = structlog.get_logger()

    start_time = time.time()
    logger.info(f"{operation_name}_started", operation=operation_name)

    try:
        yield
    finally:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"{operation_name}_completed",
            operation=operation_name,
            duration_ms=duration_ms
        )


def get_logger_with_context(name: str, **context) -> structlog.BoundLogger:
    """
    Get a structlog logger with pre-bound static context.

    Example:
        ```python
        logger = get_logger_with_context(__name__, component="http")
        ```
    """
    return structlog.get_logger(name).bind(**context)
