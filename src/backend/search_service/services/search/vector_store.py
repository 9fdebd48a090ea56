"""
Vector Store Backends

Dense similarity search over embedded content chunks.

- VectorStore: interface used by the semantic and RAG strategies
- InMemoryVectorStore: cosine similarity over chunks held in process
- HTTPVectorStore: remote vector service over HTTP (httpx)

get_rag_contexts() is shared: it over-fetches from similarity_search() and
keeps passages until the estimated token budget is spent.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from ...models.search import RAGSource
from .errors import VectorSearchError
from .similarity import cosine_similarity

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4


class VectorHit(BaseModel):
    """One chunk returned by a similarity search"""
    id: str
    content_id: str
    chunk_id: Optional[str] = None
    text: str
    similarity: float
    content_type: Optional[str] = None
    course_id: Optional[str] = None
    module_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class EmbeddedChunk(BaseModel):
    """A stored chunk with its embedding"""
    id: str
    content_id: str
    chunk_id: Optional[str] = None
    text: str
    embedding: List[float]
    content_type: Optional[str] = None
    course_id: Optional[str] = None
    module_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


def estimate_tokens(text: str, chars_per_token: int = CHARS_PER_TOKEN) -> int:
    return math.ceil(len(text) / chars_per_token)


class VectorStore(ABC):
    """Interface for dense similarity search backends"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.default_threshold = self.config.get("similarity_threshold", 0.7)
        self.max_results = self.config.get("max_results", 100)

    @abstractmethod
    async def similarity_search(
        self,
        vector: List[float],
        limit: int,
        threshold: Optional[float] = None,
        filters: Optional[Dict[str, Any]] = None
    ) -> List[VectorHit]:
        """
        Find chunks whose similarity to the vector exceeds the threshold.

        Args:
            vector: Query embedding
            limit: Maximum hits (capped at max_results)
            threshold: Minimum similarity (defaults to the configured threshold)
            filters: Equality filters (course_id, module_id, content_type; list = any of)

        Returns:
            Hits sorted by descending similarity

        Raises:
            VectorSearchError: If the backend fails
        """
        pass

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        return None

    async def get_rag_contexts(
        self,
        vector: List[float],
        limit: int = 10,
        threshold: Optional[float] = None,
        filters: Optional[Dict[str, Any]] = None,
        max_tokens: int = 4000,
        chars_per_token: int = CHARS_PER_TOKEN
    ) -> List[RAGSource]:
        """
        Retrieve passages to ground a generated answer.

        Over-fetches 2x limit, then keeps hits in similarity order until either
        limit passages are kept or the next one would exceed max_tokens. The
        first passage is always kept.
        """
        hits = await self.similarity_search(vector, limit * 2, threshold, filters)

        contexts: List[RAGSource] = []
        total_tokens = 0
        for hit in hits:
            tokens = estimate_tokens(hit.text, chars_per_token)
            if contexts and total_tokens + tokens > max_tokens:
                break

            contexts.append(RAGSource(
                content_id=hit.content_id,
                chunk_id=hit.chunk_id,
                text=hit.text,
                relevance_score=hit.similarity,
                metadata={
                    **hit.metadata,
                    "title": hit.metadata.get("title", "Unknown"),
                    "course_id": hit.course_id,
                    "module_id": hit.module_id,
                    "content_type": hit.content_type,
                }
            ))
            total_tokens += tokens

            if len(contexts) >= limit:
                break

        logger.info(f"Retrieved {len(contexts)} RAG contexts (~{total_tokens} tokens)")
        return contexts


def _matches_filters(chunk: EmbeddedChunk, filters: Dict[str, Any]) -> bool:
    for key, expected in filters.items():
        if expected is None:
            continue
        actual = getattr(chunk, key, None) if key in EmbeddedChunk.model_fields else chunk.metadata.get(key)
        if isinstance(expected, (list, tuple, set)):
            if isinstance(actual, list):
                if not set(actual) & set(expected):
                    return False
            elif actual not in expected:
                return False
        elif isinstance(actual, list):
            if expected not in actual:
                return False
        elif actual != expected:
            return False
    return True


class InMemoryVectorStore(VectorStore):
    """
    In-process vector store.

    Used in development and tests, and as the fallback when no remote vector
    service is configured.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, chunks: Optional[List[EmbeddedChunk]] = None):
        super().__init__(config)
        self._chunks: List[EmbeddedChunk] = list(chunks or [])

    def add(self, chunks: List[EmbeddedChunk]) -> None:
        self._chunks.extend(chunks)
        logger.info(f"InMemoryVectorStore now holds {len(self._chunks)} chunks")

    def __len__(self) -> int:
        return len(self._chunks)

    async def similarity_search(
        self,
        vector: List[float],
        limit: int,
        threshold: Optional[float] = None,
        filters: Optional[Dict[str, Any]] = None
    ) -> List[VectorHit]:
        threshold = self.default_threshold if threshold is None else threshold
        filters = filters or {}

        try:
            scored = []
            for chunk in self._chunks:
                if not _matches_filters(chunk, filters):
                    continue
                similarity = cosine_similarity(vector, chunk.embedding)
                if similarity > threshold:
                    scored.append((similarity, chunk))
        except Exception as e:
            raise VectorSearchError(
                f"Vector similarity search failed: {e}",
                details={"vector_dimensions": len(vector), "threshold": threshold}
            ) from e

        scored.sort(key=lambda pair: (-pair[0], pair[1].id))
        return [
            VectorHit(
                id=chunk.id,
                content_id=chunk.content_id,
                chunk_id=chunk.chunk_id,
                text=chunk.text,
                similarity=similarity,
                content_type=chunk.content_type,
                course_id=chunk.course_id,
                module_id=chunk.module_id,
                metadata=chunk.metadata
            )
            for similarity, chunk in scored[:min(limit, self.max_results)]
        ]


class HTTPVectorStore(VectorStore):
    """Remote vector service: POST {url}/api/v1/vectors/search"""

    def __init__(self, config: Optional[Dict[str, Any]] = None, http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(config)
        self.base_url = self.config.get("url", "http://localhost:3020").rstrip("/")
        self.timeout = self.config.get("timeout_seconds", 5)
        self._http = http_client

    def _get_client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    async def similarity_search(
        self,
        vector: List[float],
        limit: int,
        threshold: Optional[float] = None,
        filters: Optional[Dict[str, Any]] = None
    ) -> List[VectorHit]:
        threshold = self.default_threshold if threshold is None else threshold
        payload = {
            "vector": vector,
            "limit": min(limit, self.max_results),
            "threshold": threshold,
            "filters": filters or {},
        }

        try:
            resp = await self._get_client().post(f"{self.base_url}/api/v1/vectors/search", json=payload)
            resp.raise_for_status()
            rows = resp.json().get("results", [])
            hits = [VectorHit.model_validate(row) for row in rows]
        except Exception as e:
            logger.error(f"Vector similarity search failed: {e}")
            raise VectorSearchError(
                f"Vector similarity search failed: {e}",
                details={"vector_dimensions": len(vector), "threshold": threshold}
            ) from e

        hits.sort(key=lambda h: (-h.similarity, h.id))
        return hits

    async def health_check(self) -> bool:
        try:
            resp = await self._get_client().get(f"{self.base_url}/health")
            return resp.status_code == 200
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
