"""
Search Strategy Registry

Manages registration, ordering and per-query selection of search strategies.
Configuration-driven enable/disable per strategy.
"""

import logging
from typing import Dict, List, Any, Optional

from ...models.search import ProcessedQuery, SearchType
from .errors import NoStrategyError
from .strategies.base import SearchStrategy

logger = logging.getLogger(__name__)

HYBRID_MAX_STRATEGIES = 2


class SearchStrategyRegistry:
    """
    Registry for search strategies.

    Manages:
    - Strategy registration, kept in descending priority order
      (equal priorities keep registration order)
    - Configuration-based enable/disable
    - Strategy selection for a processed query
    """

    def __init__(self):
        """Initialize empty registry"""
        self._strategies: Dict[str, SearchStrategy] = {}
        self._ordered: List[SearchStrategy] = []
        logger.info("SearchStrategyRegistry initialized")

    def register(self, strategy: SearchStrategy, name: Optional[str] = None) -> None:
        """
        Register a search strategy.

        Args:
            strategy: SearchStrategy instance
            name: Registry key (defaults to strategy.get_name())
        """
        name = name or strategy.get_name()
        if name in self._strategies:
            logger.warning(f"Overwriting existing strategy: {name}")
            previous = self._strategies[name]
            self._ordered = [s for s in self._ordered if s is not previous]

        self._strategies[name] = strategy
        self._ordered.append(strategy)
        # sorted() is stable, so ties keep registration order
        self._ordered = sorted(self._ordered, key=lambda s: -s.get_priority())

        logger.info(
            f"Registered strategy '{name}' "
            f"(enabled: {strategy.is_enabled()}, priority: {strategy.get_priority()})"
        )

    def get(self, name: str) -> Optional[SearchStrategy]:
        """
        Get strategy by name.

        Args:
            name: Strategy name

        Returns:
            SearchStrategy instance or None if not found
        """
        return self._strategies.get(name)

    def get_all(self) -> List[SearchStrategy]:
        """All registered strategies, highest priority first"""
        return list(self._ordered)

    def get_enabled(self) -> List[SearchStrategy]:
        """Enabled strategies, highest priority first"""
        return [s for s in self._ordered if s.is_enabled()]

    def select(self, query: ProcessedQuery) -> List[SearchStrategy]:
        """
        Select the strategies to run for a query.

        Walks enabled strategies in priority order and keeps each one whose
        can_handle() accepts the query. RAG queries stop at the first match;
        hybrid queries stop once two strategies are selected.

        Args:
            query: Processed query

        Returns:
            Selected strategies in priority order

        Raises:
            NoStrategyError: If no strategy can handle the query
        """
        selected: List[SearchStrategy] = []

        for strategy in self.get_enabled():
            if not strategy.can_handle(query):
                continue
            selected.append(strategy)

            if query.strategy == SearchType.RAG:
                break
            if query.strategy == SearchType.HYBRID and len(selected) >= HYBRID_MAX_STRATEGIES:
                break

        if not selected:
            raise NoStrategyError(
                f"No search strategy available for query type: {query.strategy.value}",
                details={"query_type": query.strategy.value, "search_id": query.search_id}
            )

        logger.info(f"Selected strategies: {[s.get_name() for s in selected]}")
        return selected

    def list_strategy_names(self) -> List[str]:
        """Registered strategy names, highest priority first"""
        names = {id(s): n for n, s in self._strategies.items()}
        return [names[id(s)] for s in self._ordered]

    def get_strategy_info(self) -> Dict[str, Dict[str, Any]]:
        """
        Get detailed information about all registered strategies.

        Returns:
            Dict of {strategy_name: {enabled, priority, timeout_seconds, class_name}}
        """
        return {
            name: {
                "enabled": strategy.is_enabled(),
                "priority": strategy.get_priority(),
                "timeout_seconds": strategy.timeout_seconds,
                "class_name": strategy.__class__.__name__
            }
            for name, strategy in self._strategies.items()
        }

    def __len__(self) -> int:
        return len(self._strategies)
