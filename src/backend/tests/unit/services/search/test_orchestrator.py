"""
Unit tests for SearchOrchestrator
Tests the full pipeline with scripted strategies
"""

from unittest.mock import MagicMock

import pytest

from search_service.models.search import SearchRequest, SearchType
from search_service.services.search.cache import SearchResultCache
from search_service.services.search.errors import NoStrategyError, QueryProcessingError, SearchError


def request(query="photosynthesis", type=SearchType.KEYWORD, **kwargs):
    return SearchRequest(query=query, type=type, **kwargs)


@pytest.mark.unit
class TestSearchOrchestrator:

    @pytest.mark.asyncio
    async def test_keyword_search_end_to_end(self, build_orchestrator, static_strategy, make_result):
        keyword = static_strategy("keyword", results=[
            make_result("c2", 0.4), make_result("c1", 0.9), make_result("c3", 0.7)
        ])
        orchestrator = build_orchestrator([keyword])

        response = await orchestrator.search(request(options={"limit": 2}))

        assert [r.source_id for r in response.results] == ["c1", "c3"]
        assert response.total_results == 2
        assert response.metadata.strategies == ["keyword"]
        assert response.metadata.strategies_failed == []
        assert response.metadata.search_id == response.search_id
        assert response.metadata.cache_hit is False

    @pytest.mark.asyncio
    async def test_hybrid_boosts_results_found_by_both_strategies(self, build_orchestrator, static_strategy, make_result):
        semantic = static_strategy("semantic", priority=8, results=[make_result("c1", 0.6, strategy="semantic")])
        keyword = static_strategy("keyword", priority=5, results=[make_result("c1", 0.5), make_result("c2", 0.4)])
        orchestrator = build_orchestrator([keyword, semantic])

        response = await orchestrator.search(request(type=SearchType.HYBRID))

        assert [r.source_id for r in response.results] == ["c1", "c2"]
        assert response.results[0].score == pytest.approx(0.66)
        assert response.results[0].strategy == "semantic"
        assert response.metadata.strategies == ["semantic", "keyword"]

    @pytest.mark.asyncio
    async def test_failing_strategy_is_isolated(self, build_orchestrator, static_strategy, make_result):
        semantic = static_strategy("semantic", priority=8, error=RuntimeError("vector store down"))
        keyword = static_strategy("keyword", priority=5, results=[make_result("c1", 0.5)])
        orchestrator = build_orchestrator([semantic, keyword])

        response = await orchestrator.search(request(type=SearchType.HYBRID))

        assert [r.source_id for r in response.results] == ["c1"]
        assert response.metadata.strategies_failed == ["semantic"]
        assert orchestrator.get_stats()["strategy_failures"] == 1

    @pytest.mark.asyncio
    async def test_slow_strategy_times_out(self, build_orchestrator, static_strategy, make_result):
        slow = static_strategy("semantic", priority=8, delay=1.0, timeout_seconds=0.05)
        keyword = static_strategy("keyword", priority=5, results=[make_result("c1", 0.5)])
        orchestrator = build_orchestrator([slow, keyword])

        response = await orchestrator.search(request(type=SearchType.HYBRID))

        assert response.metadata.strategies_failed == ["semantic"]
        assert response.total_results == 1

    @pytest.mark.asyncio
    async def test_cache_hit_skips_strategies(self, build_orchestrator, static_strategy, make_result):
        keyword = static_strategy("keyword", results=[make_result("c1", 0.9)])
        orchestrator = build_orchestrator([keyword], cache=SearchResultCache())

        first = await orchestrator.search(request())
        second = await orchestrator.search(request(query="  Photosynthesis "))

        assert keyword.calls == 1
        assert second.metadata.cache_hit is True
        assert second.search_id != first.search_id
        assert second.metadata.search_id == second.search_id
        assert [r.source_id for r in second.results] == ["c1"]
        assert orchestrator.get_stats()["cache_hits"] == 1
        assert orchestrator.get_stats()["cache_backend"] == "memory"

    @pytest.mark.asyncio
    async def test_short_query_is_rejected(self, build_orchestrator, static_strategy):
        keyword = static_strategy("keyword")
        orchestrator = build_orchestrator([keyword])

        with pytest.raises(QueryProcessingError):
            await orchestrator.search(request(query="a"))

        assert keyword.calls == 0
        assert orchestrator.get_stats()["errors"] == 1

    @pytest.mark.asyncio
    async def test_no_strategy_for_type(self, build_orchestrator, static_strategy):
        orchestrator = build_orchestrator([static_strategy("keyword", handles=[SearchType.KEYWORD])])

        with pytest.raises(NoStrategyError) as exc_info:
            await orchestrator.search(request(type=SearchType.SEMANTIC))

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_unexpected_failure_becomes_search_error(self, build_orchestrator, static_strategy, make_result):
        orchestrator = build_orchestrator([static_strategy("keyword", results=[make_result("c1", 0.9)])])
        orchestrator.fusion_engine.fuse = MagicMock(side_effect=RuntimeError("fusion exploded"))

        with pytest.raises(SearchError) as exc_info:
            await orchestrator.search(request())

        assert exc_info.value.details["query"] == "photosynthesis"
        assert "search_id" in exc_info.value.details

    @pytest.mark.asyncio
    async def test_few_results_add_suggestions(self, build_orchestrator, static_strategy, make_result, fake_gateway):
        gateway = fake_gateway(completions=[
            "photosynthesis process\nplant energy conversion",
            "light reactions\ncalvin cycle"
        ])
        keyword = static_strategy("keyword", results=[make_result("c1", 0.9)])
        orchestrator = build_orchestrator([keyword], gateway=gateway)

        response = await orchestrator.search(request())

        assert response.suggestions == ["light reactions", "calvin cycle"]

    @pytest.mark.asyncio
    async def test_rag_answer_is_exposed(self, build_orchestrator, static_strategy, make_result):
        rag_payload = {"answer": "Chloroplasts capture light.", "confidence": 0.9}
        rag = static_strategy("rag", priority=10, handles=[SearchType.RAG], results=[
            make_result("rag-response", 0.9, strategy="rag", metadata={"rag_response": rag_payload}),
            make_result("c1", 0.7, strategy="rag"),
        ])
        semantic = static_strategy("semantic", priority=8, handles=[SearchType.RAG])
        orchestrator = build_orchestrator([rag, semantic])

        response = await orchestrator.search(request(query="what do chloroplasts do", type=SearchType.RAG))

        assert response.rag_response.answer == "Chloroplasts capture light."
        assert response.metadata.strategies == ["rag"]
        assert semantic.calls == 0
