"""
Keyword Search Strategy

Full-text relevance search over the keyword index service.
Raw index scores are unbounded, so each hit is normalized against the best
score of the response (max_score -> 1.0).
"""

import logging
from typing import Any, Dict, List, Optional

from langsmith import traceable

from ....models.search import ProcessedQuery, SearchResult, SearchType
from ..errors import KeywordSearchError
from ..keyword_index import KeywordHit, KeywordIndex
from .base import (
    SearchStrategy,
    build_content_url,
    build_highlights,
    map_content_type,
    parse_datetime,
    truncate
)

logger = logging.getLogger(__name__)


class KeywordSearchStrategy(SearchStrategy):
    """Full-text search strategy, selected for keyword and hybrid queries"""

    name = "keyword"
    default_priority = 5

    def __init__(self, config: Dict[str, Any], keyword_index: KeywordIndex, highlight_config: Optional[Dict[str, Any]] = None):
        """
        Initialize keyword strategy.

        Args:
            config: Strategy configuration from search_config.json
            keyword_index: Index backend to query
            highlight_config: Highlight settings (max_highlights, tags, description_length)
        """
        super().__init__(config)
        self.keyword_index = keyword_index
        self.highlight_config = highlight_config or {}

        logger.info(f"KeywordSearchStrategy initialized (priority: {self.priority})")

    def can_handle(self, query: ProcessedQuery) -> bool:
        return query.strategy in (SearchType.KEYWORD, SearchType.HYBRID)

    @traceable(name="keyword_search", run_type="retriever")
    async def search(self, query: ProcessedQuery) -> List[SearchResult]:
        """
        Execute keyword search.

        Fetches enough hits to cover the requested page; pagination itself is
        applied after fusion.
        """
        options = query.options
        fetch_limit = options.page * (options.limit or 20)

        logger.info(f"Keyword search: '{query.expanded_query[:100]}' (limit={fetch_limit})")

        try:
            response = await self.keyword_index.search(
                query.expanded_query,
                query.tokens,
                filters=query.filters,
                limit=fetch_limit
            )
        except KeywordSearchError:
            raise
        except Exception as e:
            raise KeywordSearchError(f"Keyword search failed: {e}") from e

        max_score = response.max_score or max((h.score for h in response.hits), default=0.0)
        results = []
        for hit in response.hits:
            try:
                results.append(self._to_result(hit, max_score, query))
            except Exception as e:
                logger.warning(f"Skipping malformed keyword hit {hit.id}: {e}")

        logger.info(f"Keyword search returned {len(results)} results (total matches: {response.total})")
        return results

    def _to_result(self, hit: KeywordHit, max_score: float, query: ProcessedQuery) -> SearchResult:
        source = hit.source
        content_type = map_content_type(source.get("type") or source.get("content_type"))
        relevance = hit.score / max_score if max_score > 0 else 0.0

        content = source.get("content") or ""
        highlights: List[str] = []
        if query.options.include_highlights:
            highlights = hit.highlights or build_highlights(
                content or source.get("description", ""),
                query.tokens,
                max_highlights=self.highlight_config.get("max_highlights", 3),
                pre_tag=self.highlight_config.get("pre_tag", "<em>"),
                post_tag=self.highlight_config.get("post_tag", "</em>")
            )

        description = source.get("description") or truncate(
            content, self.highlight_config.get("description_length", 200)
        )

        return SearchResult(
            id=f"keyword-{hit.id}",
            source_id=str(source.get("id", hit.id)),
            type=content_type,
            score=relevance,
            relevance_score=relevance,
            title=source.get("title") or "Untitled",
            description=description or None,
            content=content or None,
            highlights=highlights,
            url=source.get("url") or build_content_url(str(source.get("id", hit.id)), content_type, source),
            course_id=source.get("course_id"),
            module_id=source.get("module_id"),
            tags=list(source.get("tags") or []),
            created_at=parse_datetime(source.get("created_at")),
            metadata={"raw_score": hit.score},
            strategy=self.name
        )
