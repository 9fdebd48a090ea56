"""
Post-Processor

Minimum-score filter, sort and pagination over fused results.
"""

import logging
from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, Field

from ...models.search import SearchOptions, SearchResult, SortBy, SortOrder

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ResultPage(BaseModel):
    """One page of post-processed results"""
    results: List[SearchResult] = Field(default_factory=list)
    filtered: List[SearchResult] = Field(default_factory=list)
    total_matches: int = 0


def _timestamp(result: SearchResult) -> float:
    if result.created_at is None:
        return float("-inf")
    created = result.created_at
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (created - _EPOCH).total_seconds()


class ResultPostProcessor:
    """
    Filters, sorts and paginates results.

    Each sort field has a natural direction (relevance and date descending,
    title A-Z) used for sort_order "desc"; "asc" inverts it. Equal sort keys
    are ordered by (source_id, type) so repeated searches page identically.
    """

    def process(self, results: List[SearchResult], options: SearchOptions) -> ResultPage:
        """
        Post-process fused results.

        Args:
            results: Fused results
            options: Resolved search options (limit must be set)

        Returns:
            ResultPage with the requested page and the total match count
        """
        filtered = self.filter_min_score(results, options.min_score)
        ordered = self.sort(filtered, options.sort_by, options.sort_order)
        page = self.paginate(ordered, options)

        return ResultPage(results=page, filtered=ordered, total_matches=len(ordered))

    @staticmethod
    def filter_min_score(results: List[SearchResult], min_score) -> List[SearchResult]:
        if min_score is None:
            return list(results)
        return [r for r in results if r.score >= min_score]

    @staticmethod
    def sort(results: List[SearchResult], sort_by: SortBy, sort_order: SortOrder) -> List[SearchResult]:
        ordered = sorted(results, key=lambda r: (r.source_id, r.type.value))
        invert = sort_order == SortOrder.ASC

        if sort_by == SortBy.DATE:
            ordered.sort(key=_timestamp, reverse=not invert)
        elif sort_by == SortBy.TITLE:
            ordered.sort(key=lambda r: r.title.casefold(), reverse=invert)
        else:
            ordered.sort(key=lambda r: r.score, reverse=not invert)

        return ordered

    @staticmethod
    def paginate(results: List[SearchResult], options: SearchOptions) -> List[SearchResult]:
        return results[options.offset:options.offset + options.limit]
