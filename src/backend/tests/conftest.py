"""
Pytest configuration and shared fixtures
Provides common test fixtures for all test modules
"""

import asyncio
import json
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import pytest
import pytest_asyncio

# Add backend directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from fakeredis import aioredis as fakeredis_aioredis

from search_service.models.search import ContentType, ProcessedQuery, SearchResult, SearchType
from search_service.services.config.configuration_service import ConfigurationService
from search_service.services.llm.base import Completion, GenerationGateway
from search_service.services.search.errors import GatewayError
from search_service.services.search.executor import StrategyExecutor
from search_service.services.search.fusion import ResultFusionEngine
from search_service.services.search.orchestrator import SearchOrchestrator
from search_service.services.search.post_processor import ResultPostProcessor
from search_service.services.search.query_processor import QueryProcessor
from search_service.services.search.registry import SearchStrategyRegistry
from search_service.services.search.response_builder import ResponseAssembler
from search_service.services.search.strategies.base import SearchStrategy
from search_service.services.search.suggestions import SuggestionGenerator


TEST_CONFIGS = {
    "search_config.json": {
        "version": "test",
        "limits": {"min_query_length": 2, "max_query_length": 1000, "default_limit": 20, "max_limit": 100},
        "features": {
            "query_expansion": True,
            "query_suggestions": True,
            "rag_search": True,
            "semantic_search": True,
            "hybrid_search": True,
            "faceted_search": True
        },
        "strategies": {
            "description": "Test strategies",
            "rag": {"enabled": True, "priority": 10, "timeout_seconds": 20, "max_sources": 5},
            "semantic": {"enabled": True, "priority": 8, "timeout_seconds": 5},
            "keyword": {"enabled": True, "priority": 5, "timeout_seconds": 5, "fields": ["title^3", "content"]}
        },
        "orchestration": {"timeout_seconds": 5},
        "fusion": {"hybrid_boost_per_strategy": 0.1, "max_score": 1.0},
        "suggestions": {"min_results": 5, "max_suggestions": 3},
        "highlights": {"max_highlights": 3, "pre_tag": "<em>", "post_tag": "</em>", "description_length": 200},
        "cache": {"enabled": True, "search_ttl_seconds": 300, "key_prefix": "search:"},
        "vector": {"similarity_threshold": 0.7, "max_results": 100},
        "rag": {"max_contexts": 10, "threshold": 0.7, "context_max_tokens": 4000, "chars_per_token": 4},
        "elasticsearch": {"url": "http://es.test", "index_prefix": "lms", "index": "content", "timeout_seconds": 5},
        "vector_store": {"backend": "memory", "url": "http://vectors.test", "timeout_seconds": 5}
    },
    "llm_config.json": {
        "version": "test",
        "gateway": {"provider": "http", "url": "http://gateway.test", "timeout_seconds": 30, "health_timeout_seconds": 5},
        "models": {
            "embedding": {"model": "text-embedding-ada-002"},
            "query_expansion": {"model": "gpt-3.5-turbo", "temperature": 0.5, "max_tokens": 200},
            "rag_answer": {"model": "gpt-4", "temperature": 0.3, "max_tokens": 1000},
            "follow_up_questions": {"model": "gpt-3.5-turbo", "temperature": 0.7, "max_tokens": 200}
        }
    },
    "llm_prompts.json": {
        "version": "test",
        "prompts": {
            "query_expansion_system": {"prompt": "You are a search assistant."},
            "query_expansion": {"template": "Alternatives for: {query}\n{context}"},
            "rag_system": {"prompt": "You are an educational assistant."},
            "rag_answer": {"template": "Context:\n{context}\n\nQuestion: {question}"},
            "follow_up_system": {"prompt": "You suggest follow-up questions."},
            "follow_up_questions": {"template": "Q: {question}\nA: {answer}\nFollow-ups:"}
        }
    }
}


@pytest.fixture(scope="session")
def test_config_dir():
    """
    Create temporary config directory with all test configurations
    Session-scoped fixture used across all tests
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        config_dir = Path(tmpdir)
        for filename, content in TEST_CONFIGS.items():
            (config_dir / filename).write_text(json.dumps(content, indent=2), encoding="utf-8")
        yield config_dir


@pytest.fixture
def config_service(test_config_dir):
    """
    Create ConfigurationService with test config directory
    Function-scoped fixture, new instance per test
    """
    service = ConfigurationService(str(test_config_dir))
    service.load_config.cache_clear()
    return service


class FakeGateway(GenerationGateway):
    """
    Scripted generation gateway.

    completions are returned in order (the last one repeats); vectors maps
    text to embedding, anything else gets default_vector.
    """

    def __init__(
        self,
        config_service: ConfigurationService,
        completions: Optional[List[str]] = None,
        vectors: Optional[Dict[str, List[float]]] = None,
        default_vector: Optional[List[float]] = None,
        fail_complete: bool = False,
        fail_embed: bool = False,
        healthy: bool = True
    ):
        super().__init__(config_service)
        self.completions = list(completions or [])
        self.vectors = vectors or {}
        self.default_vector = default_vector or [1.0, 0.0, 0.0]
        self.fail_complete = fail_complete
        self.fail_embed = fail_embed
        self.healthy = healthy
        self.prompts: List[str] = []
        self.embedded: List[str] = []

    async def embed(self, texts, model=None):
        if self.fail_embed:
            raise GatewayError("embedding backend down")
        self.embedded.extend(texts)
        return [self.vectors.get(t, self.default_vector) for t in texts]

    async def complete(self, prompt, system_prompt=None, model=None, temperature=None, max_tokens=None):
        self.prompts.append(prompt)
        if self.fail_complete:
            raise GatewayError("completion backend down")
        if not self.completions:
            return Completion(text="")
        text = self.completions.pop(0) if len(self.completions) > 1 else self.completions[0]
        return Completion(text=text)

    async def health_check(self):
        return self.healthy


class StaticStrategy(SearchStrategy):
    """Strategy returning fixed results for the query types it handles"""

    def __init__(
        self,
        name: str,
        priority: int = 5,
        results: Optional[List[SearchResult]] = None,
        handles: Iterable[SearchType] = tuple(SearchType),
        delay: float = 0.0,
        error: Optional[Exception] = None,
        enabled: bool = True,
        timeout_seconds: Optional[float] = None
    ):
        super().__init__({"enabled": enabled, "priority": priority, "timeout_seconds": timeout_seconds})
        self.name = name
        self.results = list(results or [])
        self.handles = set(handles)
        self.delay = delay
        self.error = error
        self.calls = 0

    def can_handle(self, query: ProcessedQuery) -> bool:
        return query.strategy in self.handles

    async def search(self, query: ProcessedQuery) -> List[SearchResult]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.results)


@pytest.fixture
def fake_gateway(config_service) -> Callable[..., FakeGateway]:
    """Factory for scripted gateways bound to the test configuration"""
    def _make(**kwargs) -> FakeGateway:
        return FakeGateway(config_service, **kwargs)
    return _make


@pytest.fixture
def static_strategy() -> Callable[..., StaticStrategy]:
    return StaticStrategy


@pytest.fixture
def make_result() -> Callable[..., SearchResult]:
    """Factory for SearchResults with sensible defaults"""
    def _make(source_id: str, score: float, type: Any = ContentType.CONTENT, strategy: str = "keyword", **kwargs) -> SearchResult:
        fields = {
            "id": f"{strategy}-{source_id}",
            "source_id": source_id,
            "type": type,
            "score": score,
            "relevance_score": score,
            "title": f"Title {source_id}",
            "strategy": strategy,
        }
        fields.update(kwargs)
        return SearchResult(**fields)
    return _make


@pytest.fixture
def make_query() -> Callable[..., ProcessedQuery]:
    """Factory for ProcessedQuery instances (options limit defaults to 20)"""
    def _make(strategy: SearchType = SearchType.KEYWORD, text: str = "photosynthesis", **kwargs) -> ProcessedQuery:
        options = kwargs.pop("options", None) or {}
        options.setdefault("limit", 20)
        fields = {
            "original_query": text,
            "cleaned_query": text.lower(),
            "expanded_query": text.lower(),
            "tokens": kwargs.pop("tokens", [t for t in text.lower().split() if len(t) > 1]),
            "strategy": strategy,
            "options": options,
        }
        fields.update(kwargs)
        return ProcessedQuery(**fields)
    return _make


@pytest.fixture
def build_orchestrator(config_service):
    """Factory wiring a SearchOrchestrator around the given strategies"""
    def _build(strategies: List[SearchStrategy], gateway: Optional[GenerationGateway] = None, cache=None, timeout: float = 5.0):
        registry = SearchStrategyRegistry()
        for strategy in strategies:
            registry.register(strategy)
        return SearchOrchestrator(
            query_processor=QueryProcessor(gateway, config_service),
            registry=registry,
            executor=StrategyExecutor(timeout),
            fusion_engine=ResultFusionEngine(config_service.get_fusion_config()),
            post_processor=ResultPostProcessor(),
            suggestion_generator=SuggestionGenerator(gateway, config_service.get_suggestions_config()),
            assembler=ResponseAssembler(),
            cache=cache
        )
    return _build


@pytest_asyncio.fixture
async def fake_redis_client():
    """Provide a fakeredis asyncio client for Redis-backed tests."""
    client = fakeredis_aioredis.FakeRedis(decode_responses=True)
    try:
        yield client
    finally:
        await client.flushall()
        await client.aclose()


# Pytest markers
def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow running tests")
    config.addinivalue_line("markers", "config: Configuration system tests")
    config.addinivalue_line("markers", "services: Service layer tests")
    config.addinivalue_line("markers", "api: HTTP API tests")


# Auto-use fixtures
@pytest.fixture(autouse=True)
def reset_singletons(monkeypatch):
    """
    Reset singleton instances and environment overrides before each test
    Ensures test isolation
    """
    import search_service.services.config.configuration_service as config_module

    for name in (
        "MIN_QUERY_LENGTH", "ENABLE_QUERY_EXPANSION", "CACHE_SEARCH_RESULTS", "SEARCH_CACHE_TTL",
        "LLM_PROVIDER", "LLM_GATEWAY_URL", "ELASTICSEARCH_URL", "KEYWORD_INDEX_BACKEND",
        "VECTOR_STORE_BACKEND", "VECTOR_STORE_URL", "ENABLE_REDIS_CACHING",
    ):
        monkeypatch.delenv(name, raising=False)

    config_module._config_service = None
    yield
    config_module._config_service = None
