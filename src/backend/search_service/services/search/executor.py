"""
Strategy Executor

Runs the selected strategies concurrently and joins on all of them.
A strategy that raises or exceeds its timeout contributes an empty result
list; it never cancels or fails its siblings.
"""

import asyncio
import logging
import time
from typing import List, Optional

from pydantic import BaseModel, Field

from ...models.search import ProcessedQuery, SearchResult
from ...utils.logging_context import log_context
from .strategies.base import SearchStrategy

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


class StrategyExecution(BaseModel):
    """Outcome of one strategy run"""
    strategy_name: str
    results: List[SearchResult] = Field(default_factory=list)
    error: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.error is None


class StrategyExecutor:
    """
    Concurrent fan-out/join over search strategies.

    Each strategy gets its own timeout (strategy.timeout_seconds, else the
    executor default).
    """

    def __init__(self, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        self.timeout_seconds = timeout_seconds

    def _timeout_for(self, strategy: SearchStrategy) -> float:
        return strategy.timeout_seconds or self.timeout_seconds

    async def _run(self, strategy: SearchStrategy, query: ProcessedQuery) -> StrategyExecution:
        # gather() runs each coroutine in its own task, so the bound strategy stays per task
        with log_context(strategy=strategy.get_name()):
            return await self._run_strategy(strategy, query)

    async def _run_strategy(self, strategy: SearchStrategy, query: ProcessedQuery) -> StrategyExecution:
        start_time = time.time()
        name = strategy.get_name()

        try:
            results = await asyncio.wait_for(strategy.search(query), timeout=self._timeout_for(strategy))
            duration_ms = (time.time() - start_time) * 1000
            logger.info(f"Strategy {name} returned {len(results)} results in {duration_ms:.2f}ms")
            return StrategyExecution(strategy_name=name, results=list(results), duration_ms=duration_ms)

        except asyncio.TimeoutError:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Strategy {name} timed out after {self._timeout_for(strategy)}s "
                f"(search_id={query.search_id})"
            )
            return StrategyExecution(strategy_name=name, error="timeout", duration_ms=duration_ms)

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(f"Strategy {name} failed (search_id={query.search_id}): {e}", exc_info=e)
            return StrategyExecution(strategy_name=name, error=str(e) or type(e).__name__, duration_ms=duration_ms)

    async def execute(self, strategies: List[SearchStrategy], query: ProcessedQuery) -> List[StrategyExecution]:
        """
        Execute strategies concurrently.

        Args:
            strategies: Selected strategies
            query: Processed query

        Returns:
            One StrategyExecution per strategy, in the order given
        """
        executions = await asyncio.gather(*[self._run(s, query) for s in strategies])

        failed = [e.strategy_name for e in executions if not e.succeeded]
        if failed:
            logger.warning(f"Strategies failed: {failed} (search_id={query.search_id})")

        return list(executions)
