"""
Unit tests for ResultPostProcessor
Tests minimum-score filtering, sorting and pagination
"""

from datetime import datetime, timezone

import pytest

from search_service.models.search import SearchOptions, SortBy, SortOrder
from search_service.services.search.post_processor import ResultPostProcessor


@pytest.fixture
def processor():
    return ResultPostProcessor()


@pytest.mark.unit
class TestPagination:

    def test_page_never_exceeds_limit(self, processor, make_result):
        results = [make_result(f"c{i}", i / 30) for i in range(25)]

        for page in (1, 2, 3, 4):
            result_page = processor.process(results, SearchOptions(page=page, limit=10))
            assert len(result_page.results) <= 10

    def test_second_page_continues_first(self, processor, make_result):
        results = [make_result(f"c{i:02d}", 1 - i / 30) for i in range(25)]

        first = processor.process(results, SearchOptions(page=1, limit=10))
        second = processor.process(results, SearchOptions(page=2, limit=10))
        third = processor.process(results, SearchOptions(page=3, limit=10))

        assert [r.source_id for r in first.results] == [f"c{i:02d}" for i in range(10)]
        assert [r.source_id for r in second.results] == [f"c{i:02d}" for i in range(10, 20)]
        assert len(third.results) == 5
        assert third.total_matches == 25

    def test_page_past_end_is_empty(self, processor, make_result):
        page = processor.process([make_result("c1", 0.5)], SearchOptions(page=5, limit=10))
        assert page.results == []

    def test_paginate_slices_at_options_offset(self, make_result):
        results = [make_result(f"c{i}", 0.5) for i in range(7)]
        options = SearchOptions(page=3, limit=3)

        page = ResultPostProcessor.paginate(results, options)

        assert options.offset == 6
        assert [r.source_id for r in page] == ["c6"]


@pytest.mark.unit
class TestFilteringAndSorting:

    def test_min_score_is_inclusive(self, processor, make_result):
        results = [make_result("c1", 0.5), make_result("c2", 0.49), make_result("c3", 0.9)]

        page = processor.process(results, SearchOptions(limit=10, min_score=0.5))

        assert [r.source_id for r in page.results] == ["c3", "c1"]

    def test_relevance_desc_with_stable_tiebreak(self, processor, make_result):
        results = [make_result("b", 0.5), make_result("a", 0.5), make_result("c", 0.9)]

        page = processor.process(results, SearchOptions(limit=10))

        assert [r.source_id for r in page.results] == ["c", "a", "b"]

    def test_relevance_asc(self, processor, make_result):
        results = [make_result("c1", 0.9), make_result("c2", 0.1)]

        ordered = processor.sort(results, SortBy.RELEVANCE, SortOrder.ASC)

        assert [r.source_id for r in ordered] == ["c2", "c1"]

    def test_date_desc_puts_undated_last(self, processor, make_result):
        results = [
            make_result("old", 0.5, created_at=datetime(2023, 1, 1, tzinfo=timezone.utc)),
            make_result("undated", 0.5),
            make_result("new", 0.5, created_at=datetime(2024, 6, 1)),
        ]

        ordered = processor.sort(results, SortBy.DATE, SortOrder.DESC)

        assert [r.source_id for r in ordered] == ["new", "old", "undated"]

    def test_title_desc_is_alphabetical(self, processor, make_result):
        results = [make_result("c1", 0.5, title="zoology"), make_result("c2", 0.5, title="Anatomy")]

        ordered = processor.sort(results, SortBy.TITLE, SortOrder.DESC)

        assert [r.title for r in ordered] == ["Anatomy", "zoology"]
        assert [r.title for r in processor.sort(results, SortBy.TITLE, SortOrder.ASC)] == ["zoology", "Anatomy"]
