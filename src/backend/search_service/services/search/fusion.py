"""
Result Fusion Engine

Combines per-strategy result lists into one list:
- RAG queries pass through unchanged (already a complete answer + sources)
- Deduplicates by (source_id, type), keeping the higher raw score
- Hybrid queries boost items found by several strategies:
  score * (1 + (k - 1) * boost), capped at 1.0, for an item found by k strategies

Results are immutable; boosted items are new copies.
"""

import logging
from typing import Any, Dict, List, Optional, Set, Tuple

from ...models.search import ProcessedQuery, SearchResult, SearchType

logger = logging.getLogger(__name__)

HYBRID_BOOST_PER_STRATEGY = 0.1
MAX_FUSED_SCORE = 1.0

ResultKey = Tuple[str, str]


class ResultFusionEngine:
    """
    Deduplicates and boosts multi-strategy results.

    The output is order independent: the set of (key, score) pairs does not
    depend on which strategy finished first.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize fusion engine.

        Args:
            config: Fusion configuration from search_config.json
                Example:
                {
                    "hybrid_boost_per_strategy": 0.1,
                    "max_score": 1.0
                }
        """
        config = config or {}
        self.boost_per_strategy = config.get("hybrid_boost_per_strategy", HYBRID_BOOST_PER_STRATEGY)
        self.max_score = config.get("max_score", MAX_FUSED_SCORE)

        logger.info(f"ResultFusionEngine initialized (boost per strategy: {self.boost_per_strategy})")

    def fuse(self, strategy_results: List[List[SearchResult]], query: ProcessedQuery) -> List[SearchResult]:
        """
        Fuse results from multiple strategies.

        Args:
            strategy_results: One result list per executed strategy
            query: Processed query (its type decides pass-through and boosting)

        Returns:
            Fused results in first-appearance order
        """
        flattened = [r for results in strategy_results for r in results]
        if not flattened:
            return []

        if query.strategy == SearchType.RAG:
            return flattened

        unique = self.deduplicate(flattened)

        if query.strategy == SearchType.HYBRID and len(strategy_results) > 1:
            return self.apply_hybrid_boost(unique, strategy_results)

        return unique

    @staticmethod
    def deduplicate(results: List[SearchResult]) -> List[SearchResult]:
        """
        Keep one result per (source_id, type).

        The kept result is the one with the highest raw score (the first seen
        on ties); it occupies the position where the key first appeared.
        """
        best: Dict[ResultKey, SearchResult] = {}
        order: List[ResultKey] = []

        for result in results:
            key = result.key
            if key not in best:
                best[key] = result
                order.append(key)
            elif result.score > best[key].score:
                best[key] = result

        return [best[key] for key in order]

    def boosted_score(self, score: float, strategy_count: int) -> float:
        if strategy_count <= 1:
            return score
        return min(score * (1 + (strategy_count - 1) * self.boost_per_strategy), self.max_score)

    def apply_hybrid_boost(
        self,
        results: List[SearchResult],
        strategy_results: List[List[SearchResult]]
    ) -> List[SearchResult]:
        """Boost each result by the number of distinct strategies that found it"""
        found_by: Dict[ResultKey, Set[int]] = {}
        for index, strategy_result in enumerate(strategy_results):
            for result in strategy_result:
                found_by.setdefault(result.key, set()).add(index)

        fused = []
        boosted_count = 0
        for result in results:
            k = len(found_by.get(result.key, ()))
            if k > 1:
                score = self.boosted_score(result.score, k)
                fused.append(result.model_copy(update={"score": score, "relevance_score": score}))
                boosted_count += 1
            else:
                fused.append(result)

        logger.info(f"Hybrid boost applied to {boosted_count} of {len(results)} results")
        return fused
