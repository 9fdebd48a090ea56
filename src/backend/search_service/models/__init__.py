"""Models package - search requests, results and responses"""

from .search import (
    SearchType,
    ContentType,
    SortBy,
    SortOrder,
    SearchOptions,
    SearchContext,
    SearchRequest,
    ProcessedQuery,
    SearchResult,
    RAGSource,
    RAGResponse,
    SearchMetadata,
    SearchResponse
)

__all__ = [
    "SearchType",
    "ContentType",
    "SortBy",
    "SortOrder",
    "SearchOptions",
    "SearchContext",
    "SearchRequest",
    "ProcessedQuery",
    "SearchResult",
    "RAGSource",
    "RAGResponse",
    "SearchMetadata",
    "SearchResponse"
]
