"""
Search Orchestrator

Runs the search pipeline for one request:
1. Process the query (validate, clean, tokenize, expand)
2. Return a cached response if one exists
3. Select strategies and execute them concurrently
4. Fuse, filter, sort and paginate the results
5. Add suggestions when few results came back
6. Assemble the response and cache it

QueryProcessingError and NoStrategyError reach the caller unchanged; any other
failure is reported as SearchError. Individual strategy failures are absorbed
by the executor and only show up in metadata.strategies_failed.
"""

import logging
import time
import uuid
from typing import Any, Dict, Optional

from langsmith import traceable

from ...models.search import SearchRequest, SearchResponse
from ...utils.logging_context import SEARCH_CONTEXT_KEYS, bind_search_context, unbind_context
from .cache import SearchResultCache
from .errors import NoStrategyError, QueryProcessingError, SearchError
from .executor import StrategyExecutor
from .fusion import ResultFusionEngine
from .post_processor import ResultPostProcessor
from .query_processor import QueryProcessor
from .registry import SearchStrategyRegistry
from .response_builder import ResponseAssembler
from .suggestions import SuggestionGenerator

logger = logging.getLogger(__name__)


class SearchOrchestrator:
    """
    Coordinates query processing, strategy execution and response assembly.

    All collaborators are long-lived and shared across requests; the
    orchestrator itself only keeps aggregate counters for get_stats().
    """

    def __init__(
        self,
        query_processor: QueryProcessor,
        registry: SearchStrategyRegistry,
        executor: StrategyExecutor,
        fusion_engine: ResultFusionEngine,
        post_processor: ResultPostProcessor,
        suggestion_generator: SuggestionGenerator,
        assembler: ResponseAssembler,
        cache: Optional[SearchResultCache] = None
    ):
        self.query_processor = query_processor
        self.registry = registry
        self.executor = executor
        self.fusion_engine = fusion_engine
        self.post_processor = post_processor
        self.suggestion_generator = suggestion_generator
        self.assembler = assembler
        self.cache = cache

        self._stats = {
            "searches": 0,
            "cache_hits": 0,
            "errors": 0,
            "strategy_failures": 0,
            "total_time_ms": 0.0,
        }

        logger.info(
            f"SearchOrchestrator initialized with {len(registry)} strategies "
            f"(cache: {cache.backend_type if cache else 'disabled'})"
        )

    @traceable(name="search_orchestrator", run_type="retriever")
    async def search(self, request: SearchRequest) -> SearchResponse:
        """
        Execute a search.

        Args:
            request: Caller input

        Returns:
            SearchResponse

        Raises:
            QueryProcessingError: Invalid query
            NoStrategyError: No strategy can handle the query type
            SearchError: Any other failure
        """
        start_time = time.time()
        search_id = str(uuid.uuid4())
        context = request.context

        bind_search_context(
            search_id,
            query_type=request.type.value,
            course_id=context.course_id if context else None,
            user_id=context.user_id if context else None
        )
        self._stats["searches"] += 1

        try:
            logger.info(f"Search started: '{request.query[:100]}' (type={request.type.value})")

            query = await self.query_processor.process(request, search_id=search_id)

            if self.cache is not None:
                cached = await self.cache.get(query)
                if cached is not None:
                    return self._from_cache(cached, search_id, start_time)

            strategies = self.registry.select(query)
            executions = await self.executor.execute(strategies, query)

            strategies_failed = [e.strategy_name for e in executions if not e.succeeded]
            self._stats["strategy_failures"] += len(strategies_failed)

            fused = self.fusion_engine.fuse([e.results for e in executions], query)
            page = self.post_processor.process(fused, query.options)
            suggestions = await self.suggestion_generator.generate(query, len(page.results))

            search_time_ms = (time.time() - start_time) * 1000
            response = self.assembler.assemble(
                query,
                page=page.results,
                all_results=page.filtered,
                strategies=[e.strategy_name for e in executions],
                strategies_failed=strategies_failed,
                suggestions=suggestions,
                search_time_ms=search_time_ms
            )

            if self.cache is not None:
                await self.cache.set(query, response)

            self._stats["total_time_ms"] += search_time_ms
            logger.info(
                f"Search completed: {response.total_results} results "
                f"({page.total_matches} matches) in {search_time_ms:.2f}ms"
            )
            return response

        except (QueryProcessingError, NoStrategyError) as e:
            self._stats["errors"] += 1
            logger.warning(f"Search rejected: {e.message}")
            raise

        except Exception as e:
            self._stats["errors"] += 1
            logger.error(f"Search failed: {e}", exc_info=True)
            raise SearchError(
                f"Search failed: {e}",
                details={"query": request.query, "search_id": search_id}
            ) from e

        finally:
            unbind_context(*SEARCH_CONTEXT_KEYS)

    def _from_cache(self, cached: SearchResponse, search_id: str, start_time: float) -> SearchResponse:
        search_time_ms = (time.time() - start_time) * 1000
        metadata = cached.metadata.model_copy(update={
            "search_id": search_id,
            "search_time": search_time_ms,
            "cache_hit": True,
        })

        self._stats["cache_hits"] += 1
        self._stats["total_time_ms"] += search_time_ms
        logger.info(f"Search served from cache in {search_time_ms:.2f}ms")

        return cached.model_copy(update={
            "search_id": search_id,
            "search_time": search_time_ms,
            "metadata": metadata,
        })

    def get_stats(self) -> Dict[str, Any]:
        """Aggregate counters since startup"""
        searches = self._stats["searches"]
        return {
            **self._stats,
            "average_time_ms": self._stats["total_time_ms"] / searches if searches else 0.0,
            "cache_backend": self.cache.backend_type if self.cache else None,
        }
