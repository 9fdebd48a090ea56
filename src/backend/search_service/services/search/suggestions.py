"""
Suggestion Generator

Offers alternative phrasings when a search returns few results.
Suggestions are advisory: any gateway failure yields an empty list.
"""

import logging
from typing import Any, Dict, List, Optional

from ...models.search import ProcessedQuery
from ..llm.base import GenerationGateway

logger = logging.getLogger(__name__)

MIN_RESULTS_FOR_NO_SUGGESTIONS = 5
MAX_SUGGESTIONS = 3


class SuggestionGenerator:
    """Alternative query phrasings through the gateway's expand_query()"""

    def __init__(self, gateway: Optional[GenerationGateway], config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.gateway = gateway
        self.min_results = config.get("min_results", MIN_RESULTS_FOR_NO_SUGGESTIONS)
        self.max_suggestions = config.get("max_suggestions", MAX_SUGGESTIONS)
        self.enabled = config.get("enabled", True)

    def should_suggest(self, result_count: int) -> bool:
        return self.enabled and self.gateway is not None and result_count < self.min_results

    async def generate(self, query: ProcessedQuery, result_count: int) -> List[str]:
        """
        Generate suggestions for a low-result query.

        Args:
            query: Processed query (original text and context are used)
            result_count: Number of results on the returned page

        Returns:
            Up to max_suggestions phrasings, never including the original query
        """
        if not self.should_suggest(result_count):
            return []

        try:
            phrasings = await self.gateway.expand_query(query.original_query, query.context)
        except Exception as e:
            logger.warning(f"Failed to generate suggestions for search {query.search_id}: {e}")
            return []

        original = query.original_query.strip().lower()
        suggestions = []
        for phrasing in phrasings:
            phrasing = phrasing.strip()
            if phrasing and phrasing.lower() != original and phrasing not in suggestions:
                suggestions.append(phrasing)

        return suggestions[:self.max_suggestions]
