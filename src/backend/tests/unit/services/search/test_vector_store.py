"""
Unit tests for vector store backends
Tests in-memory similarity search, RAG context budgeting and the HTTP client
"""

import httpx
import pytest

from search_service.services.search.errors import VectorSearchError
from search_service.services.search.vector_store import (
    EmbeddedChunk,
    HTTPVectorStore,
    InMemoryVectorStore,
    estimate_tokens
)


def chunk(chunk_id, embedding, text="Plants convert light into chemical energy.", **kwargs):
    return EmbeddedChunk(
        id=chunk_id,
        content_id=kwargs.pop("content_id", f"content-{chunk_id}"),
        chunk_id=chunk_id,
        text=text,
        embedding=embedding,
        **kwargs
    )


@pytest.fixture
def store():
    return InMemoryVectorStore({"similarity_threshold": 0.5, "max_results": 100}, [
        chunk("a", [1.0, 0.0], course_id="bio-101"),
        chunk("b", [0.8, 0.6], course_id="bio-101"),
        chunk("c", [0.0, 1.0], course_id="chem-201"),
        chunk("d", [0.9, 0.1], course_id="chem-201", metadata={"tags": ["lab"]}),
    ])


@pytest.mark.unit
class TestInMemoryVectorStore:

    @pytest.mark.asyncio
    async def test_returns_hits_above_threshold_by_similarity(self, store):
        hits = await store.similarity_search([1.0, 0.0], limit=10)

        assert [h.id for h in hits] == ["a", "d", "b"]
        assert hits[0].similarity == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_filters_and_limit(self, store):
        hits = await store.similarity_search([1.0, 0.0], limit=1, filters={"course_id": "bio-101"})
        assert [h.id for h in hits] == ["a"]

        tagged = await store.similarity_search([1.0, 0.0], limit=10, filters={"tags": "lab"})
        assert [h.id for h in tagged] == ["d"]

    @pytest.mark.asyncio
    async def test_dimension_mismatch_is_a_vector_search_error(self, store):
        with pytest.raises(VectorSearchError):
            await store.similarity_search([1.0, 0.0, 0.0], limit=10)

    @pytest.mark.asyncio
    async def test_rag_contexts_respect_token_budget(self):
        long_text = "x" * 400  # 100 tokens at 4 chars per token
        store = InMemoryVectorStore({"similarity_threshold": 0.0}, [
            chunk(str(i), [1.0, 0.1 * i], text=long_text) for i in range(6)
        ])

        contexts = await store.get_rag_contexts([1.0, 0.0], limit=5, threshold=0.0, max_tokens=250)

        assert len(contexts) == 2
        assert contexts[0].content_id == "content-0"
        assert contexts[0].relevance_score >= contexts[1].relevance_score

    @pytest.mark.asyncio
    async def test_first_context_is_kept_even_over_budget(self):
        store = InMemoryVectorStore({"similarity_threshold": 0.0}, [chunk("big", [1.0, 0.0], text="y" * 1000)])

        contexts = await store.get_rag_contexts([1.0, 0.0], limit=5, max_tokens=10)

        assert len(contexts) == 1
        assert contexts[0].metadata["title"] == "Unknown"

    def test_estimate_tokens_rounds_up(self):
        assert estimate_tokens("abcde") == 2


@pytest.mark.unit
class TestHTTPVectorStore:

    @pytest.mark.asyncio
    async def test_posts_search_and_sorts_hits(self, mock_http_client, read_json_body):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["path"] = request.url.path
            captured["body"] = read_json_body(request)
            return httpx.Response(200, json={"results": [
                {"id": "h2", "content_id": "c2", "text": "second", "similarity": 0.75},
                {"id": "h1", "content_id": "c1", "text": "first", "similarity": 0.9},
            ]})

        store = HTTPVectorStore({"url": "http://vectors.test", "max_results": 50}, mock_http_client(handler))
        hits = await store.similarity_search([0.1, 0.2], limit=200, threshold=0.7, filters={"course_id": "bio-101"})

        assert captured["path"] == "/api/v1/vectors/search"
        assert captured["body"]["limit"] == 50
        assert captured["body"]["filters"] == {"course_id": "bio-101"}
        assert [h.id for h in hits] == ["h1", "h2"]

    @pytest.mark.asyncio
    async def test_http_error_becomes_vector_search_error(self, mock_http_client):
        store = HTTPVectorStore({"url": "http://vectors.test"}, mock_http_client(lambda r: httpx.Response(503)))

        with pytest.raises(VectorSearchError):
            await store.similarity_search([0.1], limit=5)
