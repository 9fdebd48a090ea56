"""
Unit tests for QueryProcessor
Tests validation, cleaning, tokenization, expansion and option resolution
"""

import pytest

from search_service.models.search import SearchOptions, SearchRequest, SearchType
from search_service.services.search.errors import QueryProcessingError
from search_service.services.search.query_processor import QueryProcessor


@pytest.mark.unit
class TestQueryValidation:

    @pytest.mark.asyncio
    async def test_single_character_query_is_rejected(self, config_service):
        processor = QueryProcessor(config_service=config_service)

        with pytest.raises(QueryProcessingError) as exc_info:
            await processor.process(SearchRequest(query="a", type=SearchType.KEYWORD))

        assert exc_info.value.code == "QUERY_PROCESSING_ERROR"
        assert exc_info.value.status_code == 400
        assert "Minimum length is 2" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_overlong_query_is_rejected(self, config_service):
        processor = QueryProcessor(config_service=config_service)

        with pytest.raises(QueryProcessingError, match="Maximum length is 1000"):
            await processor.process(SearchRequest(query="x" * 1001, type=SearchType.KEYWORD))

    @pytest.mark.asyncio
    async def test_boundary_lengths_are_accepted(self, config_service):
        processor = QueryProcessor(config_service=config_service)

        short = await processor.process(SearchRequest(query="ab", type=SearchType.KEYWORD))
        long = await processor.process(SearchRequest(query="x" * 1000, type=SearchType.KEYWORD))

        assert short.cleaned_query == "ab"
        assert len(long.cleaned_query) == 1000

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["???", "++", "   "])
    async def test_query_without_searchable_characters_is_rejected(self, config_service, fake_gateway, query):
        gateway = fake_gateway(completions=["1. anything\n2. else"])
        processor = QueryProcessor(gateway, config_service)

        with pytest.raises(QueryProcessingError, match="no searchable characters") as exc_info:
            await processor.process(SearchRequest(query=query, type=SearchType.HYBRID))

        assert exc_info.value.status_code == 400
        assert exc_info.value.details == {"query": query}
        assert gateway.prompts == []

    def test_min_length_env_override(self, config_service, monkeypatch):
        monkeypatch.setenv("MIN_QUERY_LENGTH", "5")
        processor = QueryProcessor(config_service=config_service)

        with pytest.raises(QueryProcessingError, match="Minimum length is 5"):
            processor.validate("cell")


@pytest.mark.unit
class TestCleaningAndTokens:

    def test_clean_query_normalizes(self):
        assert QueryProcessor.clean_query("  What is   Photosynthesis?! ") == "what is photosynthesis"

    def test_clean_query_keeps_hyphens_and_quotes(self):
        assert QueryProcessor.clean_query("Self-Assessment \"Quiz\" <b>") == "self-assessment \"quiz\" b"

    def test_tokenize_drops_stop_words_and_stems(self, config_service):
        processor = QueryProcessor(config_service=config_service)

        tokens = processor.tokenize("what is the process of photosynthesis in plants")

        assert "what" not in tokens
        assert "the" not in tokens
        assert "photosynthesi" in tokens
        assert "plant" in tokens
        assert all(len(t) > 1 for t in tokens)


@pytest.mark.unit
class TestExpansionAndOptions:

    @pytest.mark.asyncio
    async def test_expansion_joins_alternatives(self, config_service, fake_gateway):
        gateway = fake_gateway(completions=["1. light reactions\n2. calvin cycle"])
        processor = QueryProcessor(gateway, config_service)

        query = await processor.process(SearchRequest(query="photosynthesis", type=SearchType.SEMANTIC))

        assert query.cleaned_query == "photosynthesis"
        assert query.expanded_query == "light reactions calvin cycle"

    @pytest.mark.asyncio
    async def test_expansion_failure_falls_back_to_cleaned_query(self, config_service, fake_gateway):
        processor = QueryProcessor(fake_gateway(fail_complete=True), config_service)

        query = await processor.process(SearchRequest(query="Photosynthesis", type=SearchType.HYBRID))

        assert query.expanded_query == "photosynthesis"

    @pytest.mark.asyncio
    async def test_rag_queries_are_not_expanded(self, config_service, fake_gateway):
        gateway = fake_gateway(completions=["one alternative\nanother alternative"])
        processor = QueryProcessor(gateway, config_service)

        query = await processor.process(SearchRequest(query="why do leaves change color", type=SearchType.RAG))

        assert query.expanded_query == query.cleaned_query
        assert gateway.prompts == []

    @pytest.mark.asyncio
    async def test_expansion_disabled_by_env(self, config_service, fake_gateway, monkeypatch):
        monkeypatch.setenv("ENABLE_QUERY_EXPANSION", "false")
        gateway = fake_gateway(completions=["one alternative\nanother alternative"])
        processor = QueryProcessor(gateway, config_service)

        query = await processor.process(SearchRequest(query="osmosis", type=SearchType.KEYWORD))

        assert query.expanded_query == "osmosis"
        assert gateway.prompts == []

    @pytest.mark.asyncio
    async def test_limit_defaults_and_is_capped(self, config_service):
        processor = QueryProcessor(config_service=config_service)

        default = await processor.process(SearchRequest(query="osmosis", type=SearchType.KEYWORD))
        capped = await processor.process(SearchRequest(
            query="osmosis", type=SearchType.KEYWORD, options=SearchOptions(limit=500)
        ))

        assert default.options.limit == 20
        assert capped.options.limit == 100

    @pytest.mark.asyncio
    async def test_carries_search_id_and_filters(self, config_service):
        processor = QueryProcessor(config_service=config_service)

        query = await processor.process(
            SearchRequest(query="osmosis", type=SearchType.KEYWORD, filters={"course_id": "bio-101"}),
            search_id="search-123"
        )

        assert query.search_id == "search-123"
        assert query.filters == {"course_id": "bio-101"}
        assert query.strategy == SearchType.KEYWORD
