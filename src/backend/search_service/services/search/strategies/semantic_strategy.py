"""
Semantic Search Strategy

Embedding similarity search:
1. Embed the expanded query through the generation gateway
2. Similarity search over the vector store (threshold = min_score when set, else configured default)
3. Convert chunk hits into SearchResults with highlights, title, description and URL
"""

import logging
import re
import time
from typing import Any, Dict, List, Optional

from langsmith import traceable

from ....models.search import ProcessedQuery, SearchResult, SearchType
from ...llm.base import GenerationGateway
from ..errors import VectorSearchError
from ..vector_store import VectorHit, VectorStore
from .base import (
    SearchStrategy,
    build_content_url,
    build_highlights,
    extract_title,
    map_content_type,
    parse_datetime,
    truncate
)

logger = logging.getLogger(__name__)

_SENTENCE_END_RE = re.compile(r"[.!?]+")


def semantic_highlight(text: str, min_length: int = 30) -> Optional[str]:
    """First reasonably long sentence, used when no query token matched"""
    for sentence in _SENTENCE_END_RE.split(text):
        if len(sentence.strip()) > min_length:
            return sentence.strip() + "."
    return None


class SemanticSearchStrategy(SearchStrategy):
    """
    Vector similarity strategy.

    Handles semantic and hybrid queries, and RAG queries that did not ask
    for a generated answer (include_rag false).
    """

    name = "semantic"
    default_priority = 8

    def __init__(
        self,
        config: Dict[str, Any],
        gateway: GenerationGateway,
        vector_store: VectorStore,
        vector_config: Optional[Dict[str, Any]] = None,
        highlight_config: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize semantic strategy.

        Args:
            config: Strategy configuration from search_config.json
            gateway: Generation gateway used for query embeddings
            vector_store: Vector store backend
            vector_config: Vector settings (similarity_threshold)
            highlight_config: Highlight settings
        """
        super().__init__(config)
        self.gateway = gateway
        self.vector_store = vector_store
        self.similarity_threshold = (vector_config or {}).get("similarity_threshold", 0.7)
        self.highlight_config = highlight_config or {}

        logger.info(f"SemanticSearchStrategy initialized (priority: {self.priority})")

    def can_handle(self, query: ProcessedQuery) -> bool:
        if query.strategy in (SearchType.SEMANTIC, SearchType.HYBRID):
            return True
        return query.strategy == SearchType.RAG and not query.options.include_rag

    @traceable(name="semantic_search", run_type="retriever")
    async def search(self, query: ProcessedQuery) -> List[SearchResult]:
        start_time = time.time()
        options = query.options
        threshold = options.min_score if options.min_score is not None else self.similarity_threshold

        logger.info(f"Semantic search: '{query.expanded_query[:100]}' (search_id={query.search_id})")

        try:
            vector = await self.gateway.embed_one(query.expanded_query)
            hits = await self.vector_store.similarity_search(
                vector,
                limit=options.page * (options.limit or 20),
                threshold=threshold,
                filters=query.filters
            )
        except VectorSearchError:
            raise
        except Exception as e:
            logger.error(f"Semantic search failed: {e}")
            raise VectorSearchError(
                f"Semantic search failed: {e}",
                details={"query": query.original_query}
            ) from e

        results = []
        for hit in hits:
            try:
                results.append(self._to_result(hit, query))
            except Exception as e:
                logger.warning(f"Failed to convert vector hit {hit.id}: {e}")

        duration_ms = (time.time() - start_time) * 1000
        logger.info(f"Semantic search returned {len(results)} results in {duration_ms:.2f}ms")
        return results

    def _to_result(self, hit: VectorHit, query: ProcessedQuery) -> SearchResult:
        metadata = {**hit.metadata, "course_id": hit.course_id, "module_id": hit.module_id}
        content_type = map_content_type(hit.content_type or hit.metadata.get("content_type"))

        highlights: List[str] = []
        if query.options.include_highlights:
            highlights = build_highlights(
                hit.text,
                query.tokens,
                max_highlights=self.highlight_config.get("max_highlights", 3),
                pre_tag=self.highlight_config.get("pre_tag", "<em>"),
                post_tag=self.highlight_config.get("post_tag", "</em>")
            )
            if not highlights:
                fallback = semantic_highlight(hit.text)
                highlights = [fallback] if fallback else []

        return SearchResult(
            id=f"semantic-{hit.id}",
            source_id=hit.content_id,
            type=content_type,
            score=hit.similarity,
            relevance_score=hit.similarity,
            title=extract_title(hit.text, hit.metadata),
            description=truncate(hit.text, self.highlight_config.get("description_length", 200)),
            content=hit.text,
            highlights=highlights,
            url=build_content_url(hit.content_id, content_type, metadata),
            course_id=hit.course_id,
            module_id=hit.module_id,
            tags=list(hit.metadata.get("tags") or []),
            created_at=parse_datetime(hit.metadata.get("created_at")),
            metadata={
                "chunk_id": hit.chunk_id,
                "semantic_score": hit.similarity,
                "section": hit.metadata.get("section"),
                "page": hit.metadata.get("page"),
            },
            strategy=self.name
        )
