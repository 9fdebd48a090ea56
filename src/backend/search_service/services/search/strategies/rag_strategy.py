"""
RAG Search Strategy

Retrieval-augmented answer generation:
1. Embed the query and retrieve passages from the vector store (token budgeted)
2. Generate an answer grounded in those passages through the gateway
3. Return the answer as the first result, followed by its top sources

Failures never propagate: the strategy answers with a low-score explanatory
result instead, so a RAG request always has something to show.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from langsmith import traceable

from ....models.search import ContentType, ProcessedQuery, RAGResponse, RAGSource, SearchResult, SearchType
from ...llm.base import GenerationGateway
from ..errors import RAGError
from ..vector_store import VectorStore
from .base import SearchStrategy, build_content_url, build_highlights, truncate

logger = logging.getLogger(__name__)

RAG_RESPONSE_ID = "rag-response"
RAG_NO_RESULTS_ID = "rag-no-results"
RAG_ERROR_ID = "rag-error"
FALLBACK_SCORE = 0.1


class RAGSearchStrategy(SearchStrategy):
    """Generated-answer strategy, selected for rag queries or when include_rag is set"""

    name = "rag"
    default_priority = 10

    def __init__(
        self,
        config: Dict[str, Any],
        gateway: GenerationGateway,
        vector_store: VectorStore,
        rag_config: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize RAG strategy.

        Args:
            config: Strategy configuration from search_config.json
            gateway: Generation gateway (embeddings and answer generation)
            vector_store: Vector store backend
            rag_config: RAG settings (max_contexts, threshold, context_max_tokens, chars_per_token)
        """
        super().__init__(config)
        self.gateway = gateway
        self.vector_store = vector_store
        rag_config = rag_config or {}
        self.max_contexts = rag_config.get("max_contexts", 10)
        self.threshold = rag_config.get("threshold", 0.7)
        self.context_max_tokens = rag_config.get("context_max_tokens", 4000)
        self.chars_per_token = rag_config.get("chars_per_token", 4)
        self.max_sources = self.config.get("max_sources", 5)

        logger.info(f"RAGSearchStrategy initialized (priority: {self.priority})")

    def can_handle(self, query: ProcessedQuery) -> bool:
        return query.strategy == SearchType.RAG or query.options.include_rag

    @traceable(name="rag_search", run_type="chain")
    async def search(self, query: ProcessedQuery) -> List[SearchResult]:
        start_time = time.time()
        logger.info(f"RAG search: '{query.original_query[:100]}' (search_id={query.search_id})")

        try:
            vector = await self.gateway.embed_one(query.expanded_query)
            contexts = await self.vector_store.get_rag_contexts(
                vector,
                limit=self.max_contexts,
                threshold=self.threshold,
                filters=query.filters,
                max_tokens=self.context_max_tokens,
                chars_per_token=self.chars_per_token
            )

            if not contexts:
                logger.warning(f"No relevant contexts found for RAG query (search_id={query.search_id})")
                return [self._no_results_result()]

            rag_response = await self._generate_answer(query.original_query, contexts)

        except Exception as e:
            logger.error(f"RAG search failed (search_id={query.search_id}): {e}", exc_info=True)
            return [self._error_result()]

        results = [self._answer_result(rag_response, query)]
        results.extend(self._source_results(rag_response.sources))

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"RAG search completed: {len(contexts)} contexts, "
            f"confidence {rag_response.confidence:.2f}, {duration_ms:.2f}ms"
        )
        return results

    async def _generate_answer(self, question: str, contexts: List[RAGSource]) -> RAGResponse:
        try:
            return await self.gateway.generate_rag_answer(question, contexts)
        except Exception as e:
            raise RAGError(
                f"Failed to generate RAG response: {e}",
                details={"context_count": len(contexts)}
            ) from e

    def _answer_result(self, rag_response: RAGResponse, query: ProcessedQuery) -> SearchResult:
        answer = rag_response.answer
        first_sentence = answer.split(".")[0]
        if 10 < len(first_sentence) < 200:
            description = first_sentence + "."
        else:
            description = truncate(answer, 200)

        return SearchResult(
            id=RAG_RESPONSE_ID,
            source_id=RAG_RESPONSE_ID,
            type=ContentType.CONTENT,
            score=rag_response.confidence,
            relevance_score=rag_response.confidence,
            title="AI-Generated Answer",
            description=description,
            content=answer,
            highlights=build_highlights(answer, query.tokens) if query.options.include_highlights else [],
            tags=["rag", "ai-generated", "answer"],
            metadata={
                "rag_response": rag_response.model_dump(),
                "model": rag_response.model,
            },
            strategy=self.name
        )

    def _source_results(self, sources: List[RAGSource]) -> List[SearchResult]:
        results = []
        for source in sources[:self.max_sources]:
            content_type = ContentType.CONTENT
            results.append(SearchResult(
                id=f"rag-source-{source.chunk_id or source.content_id}",
                source_id=source.content_id,
                type=content_type,
                score=source.relevance_score,
                relevance_score=source.relevance_score,
                title=str(source.metadata.get("title") or "Unknown"),
                description=truncate(source.text, 200),
                content=source.text,
                url=build_content_url(source.content_id, content_type, source.metadata),
                course_id=source.metadata.get("course_id"),
                module_id=source.metadata.get("module_id"),
                tags=["source", "rag-context"],
                metadata={
                    "chunk_id": source.chunk_id,
                    "section": source.metadata.get("section"),
                    "page": source.metadata.get("page"),
                },
                strategy=self.name
            ))
        return results

    def _no_results_result(self) -> SearchResult:
        return SearchResult(
            id=RAG_NO_RESULTS_ID,
            source_id=RAG_NO_RESULTS_ID,
            type=ContentType.CONTENT,
            score=FALLBACK_SCORE,
            relevance_score=FALLBACK_SCORE,
            title="No Relevant Information Found",
            description="I couldn't find relevant information to answer your question.",
            content=(
                "I don't have enough relevant information in the course materials to provide "
                "a comprehensive answer to your question. You might want to try rephrasing "
                "your question or asking about a different topic."
            ),
            tags=["rag", "no-results"],
            metadata={"rag_response": True, "no_results": True},
            strategy=self.name
        )

    def _error_result(self) -> SearchResult:
        return SearchResult(
            id=RAG_ERROR_ID,
            source_id=RAG_ERROR_ID,
            type=ContentType.CONTENT,
            score=FALLBACK_SCORE,
            relevance_score=FALLBACK_SCORE,
            title="Search Error",
            description="An error occurred while processing your question.",
            content=(
                "I encountered an error while trying to answer your question. "
                "Please try again or rephrase your question."
            ),
            tags=["rag", "error"],
            metadata={"rag_response": True, "error": True},
            strategy=self.name
        )
