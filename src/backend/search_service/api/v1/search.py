"""
Search API Endpoints
POST /api/v1/search            - Multi-strategy content search
POST /api/v1/search/rag        - Generated answer for a question (type forced to rag)
GET  /api/v1/search/strategies - Registered strategies and orchestrator stats
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import Field

from ...models.search import (
    CamelModel,
    SearchContext,
    SearchOptions,
    SearchRequest,
    SearchResponse,
    SearchType
)
from ...services.search.errors import SearchServiceError
from ...services.search.orchestrator import SearchOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/search", tags=["search"])


# Dependency injection placeholder (overridden in main.py)
def get_orchestrator_dep() -> SearchOrchestrator:
    """Dependency injection placeholder for the search orchestrator - overridden in main.py"""
    raise RuntimeError("Search orchestrator dependency not initialized")


class RAGSearchRequest(CamelModel):
    """Request body for the RAG endpoint (type is implied)"""
    query: str
    filters: Dict[str, Any] = Field(default_factory=dict)
    options: SearchOptions = Field(default_factory=SearchOptions)
    context: Optional[SearchContext] = None


class StrategiesResponse(CamelModel):
    strategies: Dict[str, Dict[str, Any]]
    order: list
    stats: Dict[str, Any]


def _error_response(error: SearchServiceError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def _run_search(orchestrator: SearchOrchestrator, request: SearchRequest):
    try:
        return await orchestrator.search(request)
    except SearchServiceError as e:
        if e.status_code >= 500:
            logger.error(f"Search request failed: {e.code} {e.message}")
        else:
            logger.info(f"Search request rejected: {e.code} {e.message}")
        return _error_response(e)


@router.post("", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_orchestrator_dep)
):
    """
    Search educational content.

    Example:
        POST /api/v1/search
        {
            "query": "photosynthesis light reactions",
            "type": "hybrid",
            "options": {"limit": 10, "includeHighlights": true}
        }

    Errors use the envelope {"error": {"code", "message", "details"}}:
    400 QUERY_PROCESSING_ERROR / NO_STRATEGY_ERROR, 500 SEARCH_ERROR.
    """
    return await _run_search(orchestrator, request)


@router.post("/rag", response_model=SearchResponse)
async def rag_search(
    request: RAGSearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_orchestrator_dep)
):
    """Answer a question from course material (forces type=rag)"""
    search_request = SearchRequest(
        query=request.query,
        type=SearchType.RAG,
        filters=request.filters,
        options=request.options,
        context=request.context
    )
    return await _run_search(orchestrator, search_request)


@router.get("/strategies", response_model=StrategiesResponse)
async def list_strategies(orchestrator: SearchOrchestrator = Depends(get_orchestrator_dep)):
    """Registered strategies (enabled, priority, timeout) and orchestrator counters"""
    return StrategiesResponse(
        strategies=orchestrator.registry.get_strategy_info(),
        order=orchestrator.registry.list_strategy_names(),
        stats=orchestrator.get_stats()
    )
