"""
Strategy Factory

Builds search strategies and their backends from search_config.json, so
adding or removing a strategy is a configuration change rather than a code
change in main.py.

Usage:
    from search_service.services.search.strategy_factory import StrategyFactory

    factory = StrategyFactory(config_service, gateway)
    registry = factory.create_registry()
"""

import logging
from importlib import import_module
from typing import Any, Dict, List, Optional

from ..config.configuration_service import ConfigurationService, get_config_service
from ..llm.base import GenerationGateway
from .cache import SearchResultCache
from .executor import StrategyExecutor
from .fusion import ResultFusionEngine
from .keyword_index import ElasticsearchKeywordIndex, InMemoryKeywordIndex, KeywordIndex
from .orchestrator import SearchOrchestrator
from .post_processor import ResultPostProcessor
from .query_processor import QueryProcessor
from .registry import SearchStrategyRegistry
from .response_builder import ResponseAssembler
from .strategies.base import SearchStrategy
from .suggestions import SuggestionGenerator
from .vector_store import HTTPVectorStore, InMemoryVectorStore, VectorStore

logger = logging.getLogger(__name__)

# Feature flag that must be on for a strategy to be enabled
STRATEGY_FEATURES = {
    "rag": "rag_search",
    "semantic": "semantic_search",
}


def create_vector_store(config_service: ConfigurationService) -> VectorStore:
    """Vector store backend selected by vector_store.backend ("http" or "memory")"""
    store_config = {**config_service.get_vector_config(), **config_service.get_vector_store_config()}
    backend = store_config.get("backend", "http").lower()

    if backend == "memory":
        logger.info("Using in-memory vector store")
        return InMemoryVectorStore(store_config)
    if backend != "http":
        logger.warning(f"Unknown vector store backend '{backend}', using HTTP vector store")
    logger.info(f"Using HTTP vector store at {store_config.get('url')}")
    return HTTPVectorStore(store_config)


def create_keyword_index(config_service: ConfigurationService) -> KeywordIndex:
    """
    Keyword index selected by elasticsearch.backend ("elasticsearch" or "memory").

    The Elasticsearch index is queried over the keyword strategy's weighted fields.
    """
    index_config = config_service.get_elasticsearch_config()
    backend = index_config.get("backend", "elasticsearch").lower()

    if backend == "memory":
        logger.info("Using in-memory keyword index")
        return InMemoryKeywordIndex()
    if backend != "elasticsearch":
        logger.warning(f"Unknown keyword index backend '{backend}', using Elasticsearch")

    fields = config_service.get_strategy_config("keyword").get("fields")
    if fields:
        index_config["fields"] = fields
    logger.info(f"Using Elasticsearch keyword index at {index_config.get('url')}")
    return ElasticsearchKeywordIndex(index_config)


class StrategyFactory:
    """
    Factory for creating search strategies from configuration.

    Supports:
    - Dynamic strategy class import from STRATEGY_CLASSES
    - Dependency injection (gateway, vector store, keyword index, config sections)
    - Graceful degradation: a strategy that fails to build is skipped
    """

    # strategy_name -> (module, ClassName)
    STRATEGY_CLASSES = {
        "rag": ("search_service.services.search.strategies.rag_strategy", "RAGSearchStrategy"),
        "semantic": ("search_service.services.search.strategies.semantic_strategy", "SemanticSearchStrategy"),
        "keyword": ("search_service.services.search.strategies.keyword_strategy", "KeywordSearchStrategy"),
    }

    def __init__(
        self,
        config_service: Optional[ConfigurationService] = None,
        gateway: Optional[GenerationGateway] = None,
        vector_store: Optional[VectorStore] = None,
        keyword_index: Optional[KeywordIndex] = None
    ):
        """
        Initialize strategy factory.

        Args:
            config_service: Configuration source (defaults to the global service)
            gateway: Generation gateway (needed by semantic and rag)
            vector_store: Vector backend (built from config if None)
            keyword_index: Keyword backend (built from config if None)
        """
        self.config_service = config_service or get_config_service()
        self.gateway = gateway
        self.vector_store = vector_store or create_vector_store(self.config_service)
        self.keyword_index = keyword_index or create_keyword_index(self.config_service)
        self.strategies_config = self.config_service.get_strategies_config()

        logger.info(f"StrategyFactory initialized with {len(self.strategies_config)} strategy configs")

    def _dependencies(self, strategy_name: str) -> Dict[str, Any]:
        highlights = self.config_service.get_highlights_config()
        if strategy_name == "keyword":
            return {"keyword_index": self.keyword_index, "highlight_config": highlights}
        if strategy_name == "semantic":
            return {
                "gateway": self.gateway,
                "vector_store": self.vector_store,
                "vector_config": self.config_service.get_vector_config(),
                "highlight_config": highlights,
            }
        if strategy_name == "rag":
            return {
                "gateway": self.gateway,
                "vector_store": self.vector_store,
                "rag_config": self.config_service.get_rag_config(),
            }
        return {}

    def create_all_strategies(self) -> List[SearchStrategy]:
        """
        Create every strategy configured in search_config.json.

        Returns:
            Initialized strategies (disabled ones included; the registry skips them)
        """
        strategies = []

        for strategy_name, strategy_config in self.strategies_config.items():
            try:
                strategy = self.create_strategy(strategy_name, strategy_config)
                if strategy:
                    strategies.append(strategy)
                    logger.info(f"Created {strategy_name} strategy")
            except Exception as e:
                logger.error(f"Failed to create {strategy_name} strategy: {e}", exc_info=True)

        logger.info(f"StrategyFactory created {len(strategies)} strategies: {[s.get_name() for s in strategies]}")
        return strategies

    def create_strategy(self, strategy_name: str, strategy_config: Dict[str, Any]) -> Optional[SearchStrategy]:
        """
        Create a single strategy instance.

        Args:
            strategy_name: Strategy name ("rag", "semantic", "keyword")
            strategy_config: Configuration dict from search_config.json

        Returns:
            SearchStrategy instance or None if the strategy is unknown or cannot be built
        """
        if strategy_name not in self.STRATEGY_CLASSES:
            logger.warning(f"Unknown strategy '{strategy_name}' - skipping")
            return None

        if strategy_name in ("rag", "semantic") and self.gateway is None:
            logger.warning(f"Strategy '{strategy_name}' needs a generation gateway - skipping")
            return None

        module_path, class_name = self.STRATEGY_CLASSES[strategy_name]
        try:
            module = import_module(module_path)
            strategy_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            logger.error(f"Failed to import {class_name} from {module_path}: {e}")
            return None

        config = dict(strategy_config)
        feature = STRATEGY_FEATURES.get(strategy_name)
        if feature and not self.config_service.is_feature_enabled(feature):
            config["enabled"] = False

        try:
            return strategy_class(config=config, **self._dependencies(strategy_name))
        except Exception as e:
            logger.error(f"Failed to instantiate {class_name}: {e}", exc_info=True)
            return None

    def create_registry(self) -> SearchStrategyRegistry:
        registry = SearchStrategyRegistry()
        for strategy in self.create_all_strategies():
            registry.register(strategy)
        return registry


def create_search_orchestrator(
    config_service: Optional[ConfigurationService] = None,
    gateway: Optional[GenerationGateway] = None,
    cache: Optional[SearchResultCache] = None,
    factory: Optional[StrategyFactory] = None
) -> SearchOrchestrator:
    """
    Wire the complete search pipeline from configuration.

    Args:
        config_service: Configuration source (defaults to the global service)
        gateway: Generation gateway (expansion, suggestions, semantic and rag)
        cache: Result cache (caching disabled if None)
        factory: Strategy factory (built from the other arguments if None)

    Returns:
        Ready SearchOrchestrator
    """
    config_service = config_service or get_config_service()
    factory = factory or StrategyFactory(config_service, gateway)
    features = config_service.get_features()

    suggestions_config = config_service.get_suggestions_config()
    suggestions_config.setdefault("enabled", features.get("query_suggestions", True))

    return SearchOrchestrator(
        query_processor=QueryProcessor(gateway, config_service),
        registry=factory.create_registry(),
        executor=StrategyExecutor(config_service.get_orchestration_config().get("timeout_seconds", 5.0)),
        fusion_engine=ResultFusionEngine(config_service.get_fusion_config()),
        post_processor=ResultPostProcessor(),
        suggestion_generator=SuggestionGenerator(gateway, suggestions_config),
        assembler=ResponseAssembler(),
        cache=cache
    )
