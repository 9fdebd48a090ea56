"""Logging context helpers used across the search service."""

from .logging_context import (
    SEARCH_CONTEXT_KEYS,
    bind_search_context,
    unbind_context,
    log_context,
    log_performance,
    get_logger_with_context,
)

__all__ = [
    "SEARCH_CONTEXT_KEYS",
    "bind_search_context",
    "unbind_context",
    "log_context",
    "log_performance",
    "get_logger_with_context",
]
