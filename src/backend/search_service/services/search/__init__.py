"""
Search Package

Multi-strategy content search:
- RAGSearchStrategy: generated answer grounded in retrieved passages
- SemanticSearchStrategy: embedding similarity over the vector store
- KeywordSearchStrategy: full-text relevance search

Strategies run concurrently under the SearchOrchestrator; their results are
deduplicated, boosted (hybrid), filtered, sorted and paginated.

Only leaf modules are re-exported here because the generation gateway
package imports search.similarity.
"""

from .errors import (
    EmbeddingDimensionError,
    GatewayError,
    KeywordSearchError,
    NoStrategyError,
    QueryProcessingError,
    RAGError,
    SearchError,
    SearchServiceError,
    VectorSearchError,
)
from .similarity import cosine_similarity

__all__ = [
    "EmbeddingDimensionError",
    "GatewayError",
    "KeywordSearchError",
    "NoStrategyError",
    "QueryProcessingError",
    "RAGError",
    "SearchError",
    "SearchServiceError",
    "VectorSearchError",
    "cosine_similarity",
]
