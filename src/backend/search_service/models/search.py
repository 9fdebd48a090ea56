"""
Search Models

Request, result and response models shared by the search pipeline.

Wire format is camelCase (sourceId, relevanceScore, searchId, ...) through
pydantic aliases; Python attributes stay snake_case. Models that must not
change after creation (ProcessedQuery, SearchResult, SearchMetadata) are frozen,
so score updates go through model_copy(update=...).
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


class SearchType(str, Enum):
    """Search types accepted by the orchestrator"""
    KEYWORD = "keyword"
    SEMANTIC = "semantic"
    RAG = "rag"
    HYBRID = "hybrid"


class ContentType(str, Enum):
    """Kinds of content a result can point at"""
    COURSE = "course"
    MODULE = "module"
    CONTENT = "content"
    FILE = "file"
    DISCUSSION = "discussion"
    ASSIGNMENT = "assignment"
    QUIZ = "quiz"
    ANNOUNCEMENT = "announcement"


class SortBy(str, Enum):
    RELEVANCE = "relevance"
    DATE = "date"
    TITLE = "title"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, populated by either name"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchOptions(CamelModel):
    """
    Paging, sorting and enrichment options.

    limit is left as None by callers that want the configured default;
    the query processor resolves it before the query is dispatched.
    """
    page: int = Field(default=1, ge=1)
    limit: Optional[int] = Field(default=None, ge=1)
    include_highlights: bool = True
    include_facets: bool = False
    include_rag: bool = Field(default=False, alias="includeRAG")
    sort_by: SortBy = SortBy.RELEVANCE
    sort_order: SortOrder = SortOrder.DESC
    min_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @property
    def offset(self) -> int:
        return (self.page - 1) * (self.limit or 0)


class SearchContext(CamelModel):
    """Caller context used to scope query expansion and suggestions"""
    course_id: Optional[str] = None
    previous_queries: List[str] = Field(default_factory=list)
    user_id: Optional[str] = None


class SearchRequest(CamelModel):
    """
    Caller input for a search.

    Query length is validated by the QueryProcessor, not here, so that
    out-of-range queries surface as QUERY_PROCESSING_ERROR instead of a
    schema violation.
    """
    query: str
    type: SearchType
    filters: Dict[str, Any] = Field(default_factory=dict)
    options: SearchOptions = Field(default_factory=SearchOptions)
    context: Optional[SearchContext] = None


class ProcessedQuery(CamelModel):
    """Normalized query, created once per request and never mutated"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    original_query: str
    cleaned_query: str
    expanded_query: str
    tokens: List[str] = Field(default_factory=list)
    strategy: SearchType
    filters: Dict[str, Any] = Field(default_factory=dict)
    options: SearchOptions = Field(default_factory=SearchOptions)
    context: SearchContext = Field(default_factory=SearchContext)
    search_id: str = Field(default_factory=lambda: str(uuid.uuid4()))


class SearchResult(CamelModel):
    """
    One retrieved item.

    Uniqueness key is (source_id, type). score is the raw (or fused) score,
    relevance_score its normalized counterpart; both are clamped to [0, 1].
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    source_id: str
    type: ContentType = ContentType.CONTENT
    score: float
    relevance_score: float
    title: str = ""
    description: Optional[str] = None
    content: Optional[str] = None
    highlights: List[str] = Field(default_factory=list)
    url: Optional[str] = None
    course_id: Optional[str] = None
    module_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    strategy: Optional[str] = None

    @field_validator("score", "relevance_score")
    @classmethod
    def clamp_score(cls, value: float) -> float:
        return _clamp_unit(value)

    @field_validator("type", mode="before")
    @classmethod
    def map_content_type(cls, value: Any) -> Any:
        if isinstance(value, ContentType):
            return value
        try:
            return ContentType(str(value).lower())
        except ValueError:
            return ContentType.CONTENT

    @property
    def key(self) -> Tuple[str, str]:
        return (self.source_id, self.type.value)


class RAGSource(CamelModel):
    """A retrieved passage that grounded a generated answer"""
    content_id: str
    chunk_id: Optional[str] = None
    text: str
    relevance_score: float = 0.0
    metadata: Dict[str, Any] = Field(default_factory=dict)


class RAGResponse(CamelModel):
    """Generated answer with confidence, reasoning and follow-up questions"""
    answer: str
    confidence: float = 0.8
    reasoning: Optional[str] = None
    follow_up_questions: List[str] = Field(default_factory=list)
    sources: List[RAGSource] = Field(default_factory=list)
    model: Optional[str] = None

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, value: float) -> float:
        return _clamp_unit(value)


class SearchMetadata(CamelModel):
    """Execution provenance, built last"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    total_results: int
    search_time: float
    search_id: str
    strategies: List[str] = Field(default_factory=list)
    strategies_failed: List[str] = Field(default_factory=list)
    cache_hit: bool = False


class SearchResponse(CamelModel):
    """Final search payload"""
    results: List[SearchResult] = Field(default_factory=list)
    total_results: int
    search_time: float
    search_id: str
    suggestions: List[str] = Field(default_factory=list)
    rag_response: Optional[RAGResponse] = None
    facets: Optional[Dict[str, Dict[str, int]]] = None
    metadata: SearchMetadata
