"""
Response Assembler

Builds the final SearchResponse: metadata, the generated answer (when a RAG
result carries one), facets and suggestions.
"""

import logging
from collections import Counter
from typing import Dict, List, Optional

from pydantic import ValidationError

from ...models.search import (
    ProcessedQuery,
    RAGResponse,
    SearchMetadata,
    SearchResponse,
    SearchResult,
    SearchType
)

logger = logging.getLogger(__name__)

FACET_FIELDS = ("type", "course_id", "tags")


class ResponseAssembler:
    """Assembles the response envelope for one search"""

    @staticmethod
    def extract_rag_response(results: List[SearchResult]) -> Optional[RAGResponse]:
        """First generated answer carried in result metadata, if any"""
        for result in results:
            payload = result.metadata.get("rag_response")
            if isinstance(payload, RAGResponse):
                return payload
            if isinstance(payload, dict):
                try:
                    return RAGResponse.model_validate(payload)
                except ValidationError as e:
                    logger.warning(f"Ignoring malformed RAG payload on result {result.id}: {e}")
        return None

    @staticmethod
    def build_facets(results: List[SearchResult]) -> Dict[str, Dict[str, int]]:
        """Counts by content type, course and tag"""
        counters = {field: Counter() for field in FACET_FIELDS}
        for result in results:
            counters["type"][result.type.value] += 1
            if result.course_id:
                counters["course_id"][result.course_id] += 1
            for tag in result.tags:
                counters["tags"][tag] += 1
        return {field: dict(counter.most_common()) for field, counter in counters.items()}

    def assemble(
        self,
        query: ProcessedQuery,
        page: List[SearchResult],
        all_results: List[SearchResult],
        strategies: List[str],
        strategies_failed: List[str],
        suggestions: List[str],
        search_time_ms: float
    ) -> SearchResponse:
        """
        Build the final response.

        Args:
            query: Processed query
            page: Results on the requested page
            all_results: Filtered, sorted results before pagination (facet source)
            strategies: Names of the strategies that ran
            strategies_failed: Names of the strategies that failed or timed out
            suggestions: Alternative phrasings (may be empty)
            search_time_ms: Elapsed pipeline time

        Returns:
            SearchResponse
        """
        rag_response = None
        if query.strategy == SearchType.RAG or query.options.include_rag:
            rag_response = self.extract_rag_response(all_results)

        facets = self.build_facets(all_results) if query.options.include_facets else None

        metadata = SearchMetadata(
            total_results=len(page),
            search_time=search_time_ms,
            search_id=query.search_id,
            strategies=strategies,
            strategies_failed=strategies_failed,
            cache_hit=False
        )

        return SearchResponse(
            results=page,
            total_results=len(page),
            search_time=search_time_ms,
            search_id=query.search_id,
            suggestions=suggestions,
            rag_response=rag_response,
            facets=facets,
            metadata=metadata
        )
