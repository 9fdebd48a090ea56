"""
Unit tests for logging context helpers
"""

import asyncio
from unittest.mock import MagicMock

import pytest
from structlog.contextvars import bind_contextvars, clear_contextvars, get_contextvars

from search_service.utils.logging_context import (
    SEARCH_CONTEXT_KEYS,
    bind_search_context,
    log_context,
    log_performance,
    unbind_context
)


@pytest.fixture(autouse=True)
def clean_context():
    clear_contextvars()
    yield
    clear_contextvars()


@pytest.mark.unit
class TestLoggingContext:

    def test_bind_search_context_skips_empty_values(self):
        bind_search_context("search-1", query_type="hybrid", course_id=None, user_id="u-9", page=2)

        assert get_contextvars() == {"search_id": "search-1", "query_type": "hybrid", "user_id": "u-9", "page": 2}

    def test_unbind_keeps_request_context(self):
        bind_contextvars(correlation_id="corr-1")
        bind_search_context("search-1", query_type="hybrid")

        unbind_context(*SEARCH_CONTEXT_KEYS)

        assert get_contextvars() == {"correlation_id": "corr-1"}

    def test_log_context_is_temporary(self):
        with log_context(strategy="semantic"):
            assert get_contextvars()["strategy"] == "semantic"

        assert "strategy" not in get_contextvars()

    @pytest.mark.asyncio
    async def test_log_context_is_task_local(self):
        seen = {}

        async def run(name):
            with log_context(strategy=name):
                await asyncio.sleep(0.01)
                seen[name] = get_contextvars()["strategy"]

        await asyncio.gather(run("semantic"), run("keyword"))

        assert seen == {"semantic": "semantic", "keyword": "keyword"}

    def test_log_performance_reports_duration(self):
        logger = MagicMock()

        with log_performance("index_refresh", logger):
            pass

        started, completed = logger.info.call_args_list
        assert started.args == ("index_refresh_started",)
        assert completed.args == ("index_refresh_completed",)
        assert completed.kwargs["duration_ms"] >= 0
