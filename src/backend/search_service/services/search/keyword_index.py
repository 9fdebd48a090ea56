"""
Keyword Index Backends

Full-text search against the platform's index service.

- KeywordIndex: interface used by KeywordSearchStrategy
- ElasticsearchKeywordIndex: Elasticsearch _search API over httpx
- InMemoryKeywordIndex: weighted token matching over documents held in process
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from .errors import KeywordSearchError

logger = logging.getLogger(__name__)

DEFAULT_FIELDS = ["title^3", "description^2", "content", "tags^2"]

_WORD_RE = re.compile(r"\w+")


class KeywordHit(BaseModel):
    """One document returned by the index"""
    id: str
    score: float
    source: Dict[str, Any] = Field(default_factory=dict)
    highlights: List[str] = Field(default_factory=list)


class KeywordSearchResponse(BaseModel):
    hits: List[KeywordHit] = Field(default_factory=list)
    total: int = 0
    max_score: Optional[float] = None


class KeywordIndex(ABC):
    """Interface for full-text index backends"""

    @abstractmethod
    async def search(
        self,
        text: str,
        tokens: List[str],
        filters: Optional[Dict[str, Any]] = None,
        limit: int = 20
    ) -> KeywordSearchResponse:
        """
        Run a full-text query.

        Args:
            text: Query text (expanded query)
            tokens: Stemmed query tokens
            filters: Field filters (scalar = term, list = terms, {"gte"/"lte"} = range)
            limit: Maximum hits

        Raises:
            KeywordSearchError: If the backend fails
        """
        pass

    async def health_check(self) -> bool:
        return True

    async def close(self) -> None:
        return None


def build_filter_clauses(filters: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Translate request filters into Elasticsearch bool filter clauses"""
    clauses = []
    for field, value in filters.items():
        if value is None:
            continue
        if isinstance(value, dict):
            bounds = {k: v for k, v in value.items() if k in ("gt", "gte", "lt", "lte") and v is not None}
            if bounds:
                clauses.append({"range": {field: bounds}})
        elif isinstance(value, (list, tuple, set)):
            if value:
                clauses.append({"terms": {field: list(value)}})
        else:
            clauses.append({"term": {field: value}})
    return clauses


class ElasticsearchKeywordIndex(KeywordIndex):
    """Keyword search over Elasticsearch"""

    def __init__(self, config: Optional[Dict[str, Any]] = None, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config or {}
        self.base_url = self.config.get("url", "http://localhost:9200").rstrip("/")
        prefix = self.config.get("index_prefix", "lms")
        self.index = f"{prefix}-{self.config.get('index', 'content')}"
        self.fields = self.config.get("fields", DEFAULT_FIELDS)
        self.timeout = self.config.get("timeout_seconds", 5)
        self._http = http_client

    def _get_client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    def build_query(self, text: str, filters: Dict[str, Any], limit: int) -> Dict[str, Any]:
        return {
            "size": limit,
            "query": {
                "bool": {
                    "must": [{
                        "multi_match": {
                            "query": text,
                            "fields": self.fields,
                            "type": "best_fields",
                            "fuzziness": "AUTO"
                        }
                    }],
                    "filter": build_filter_clauses(filters)
                }
            },
            "highlight": {
                "fields": {
                    "description": {"fragment_size": 200, "number_of_fragments": 2},
                    "content": {"fragment_size": 200, "number_of_fragments": 3}
                },
                "pre_tags": ["<em>"],
                "post_tags": ["</em>"]
            }
        }

    async def search(
        self,
        text: str,
        tokens: List[str],
        filters: Optional[Dict[str, Any]] = None,
        limit: int = 20
    ) -> KeywordSearchResponse:
        body = self.build_query(text, filters or {}, limit)

        try:
            resp = await self._get_client().post(f"{self.base_url}/{self.index}/_search", json=body)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Elasticsearch query failed: {e}")
            raise KeywordSearchError(f"Keyword search failed: {e}", details={"index": self.index}) from e

        hits_block = data.get("hits", {})
        hits = []
        for hit in hits_block.get("hits", []):
            fragments = []
            for field_fragments in (hit.get("highlight") or {}).values():
                fragments.extend(field_fragments)
            hits.append(KeywordHit(
                id=str(hit["_id"]),
                score=hit.get("_score") or 0.0,
                source=hit.get("_source", {}),
                highlights=fragments
            ))

        total = hits_block.get("total", {})
        return KeywordSearchResponse(
            hits=hits,
            total=total.get("value", len(hits)) if isinstance(total, dict) else int(total),
            max_score=hits_block.get("max_score")
        )

    async def health_check(self) -> bool:
        try:
            resp = await self._get_client().get(f"{self.base_url}/_cluster/health")
            return resp.status_code == 200
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None


class InMemoryKeywordIndex(KeywordIndex):
    """
    Token-matching index over in-process documents.

    A document scores the sum of field weights for every query token that
    prefixes one of the field's words (tokens are stems).
    """

    FIELD_WEIGHTS = {"title": 3.0, "description": 2.0, "content": 1.0, "tags": 2.0}

    def __init__(self, documents: Optional[List[Dict[str, Any]]] = None):
        self._documents: List[Dict[str, Any]] = list(documents or [])

    def add(self, documents: List[Dict[str, Any]]) -> None:
        self._documents.extend(documents)

    @staticmethod
    def _field_words(value: Any) -> List[str]:
        if isinstance(value, list):
            value = " ".join(str(v) for v in value)
        return _WORD_RE.findall(str(value or "").lower())

    @staticmethod
    def _matches(doc: Dict[str, Any], filters: Dict[str, Any]) -> bool:
        for field, expected in filters.items():
            actual = doc.get(field)
            if isinstance(expected, (list, tuple, set)):
                values = actual if isinstance(actual, list) else [actual]
                if not set(values) & set(expected):
                    return False
            elif isinstance(actual, list):
                if expected not in actual:
                    return False
            elif actual != expected:
                return False
        return True

    async def search(
        self,
        text: str,
        tokens: List[str],
        filters: Optional[Dict[str, Any]] = None,
        limit: int = 20
    ) -> KeywordSearchResponse:
        filters = {k: v for k, v in (filters or {}).items() if v is not None and not isinstance(v, dict)}
        hits = []
        for doc in self._documents:
            if not self._matches(doc, filters):
                continue
            score = 0.0
            for field, weight in self.FIELD_WEIGHTS.items():
                words = self._field_words(doc.get(field))
                score += weight * sum(1 for t in tokens if any(w.startswith(t) for w in words))
            if score > 0:
                hits.append(KeywordHit(id=str(doc["id"]), score=score, source=doc))

        hits.sort(key=lambda h: (-h.score, h.id))
        return KeywordSearchResponse(
            hits=hits[:limit],
            total=len(hits),
            max_score=hits[0].score if hits else None
        )
