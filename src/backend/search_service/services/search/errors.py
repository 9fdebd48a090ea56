"""
Search Errors

Every error raised by the search pipeline carries a stable machine-readable
code and the HTTP status the API layer maps it to.
"""

from typing import Any, Dict, Optional


class SearchServiceError(Exception):
    """Base class for search service errors"""

    code = "SEARCH_SERVICE_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Error envelope body returned to API callers"""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details
            }
        }


class QueryProcessingError(SearchServiceError):
    """Query too short/long or otherwise malformed"""
    code = "QUERY_PROCESSING_ERROR"
    status_code = 400


class NoStrategyError(SearchServiceError):
    """No registered strategy can handle the processed query"""
    code = "NO_STRATEGY_ERROR"
    status_code = 400


class SearchError(SearchServiceError):
    """Unexpected failure during orchestration, fusion or assembly"""
    code = "SEARCH_ERROR"
    status_code = 500


class GatewayError(SearchServiceError):
    """Generation/embedding gateway call failed"""
    code = "GATEWAY_ERROR"
    status_code = 502


class VectorSearchError(SearchServiceError):
    code = "VECTOR_SEARCH_ERROR"
    status_code = 500


class KeywordSearchError(SearchServiceError):
    code = "KEYWORD_SEARCH_ERROR"
    status_code = 500


class RAGError(SearchServiceError):
    code = "RAG_ERROR"
    status_code = 500


class EmbeddingDimensionError(SearchServiceError, ValueError):
    """Vectors of different lengths were compared"""
    code = "EMBEDDING_DIMENSION_ERROR"
    status_code = 400

    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Embedding dimension mismatch: {expected} != {actual}",
            details={"expected": expected, "actual": actual}
        )
