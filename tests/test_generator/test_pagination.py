"""Tests for zapspec.generator.pagination."""

from __future__ import annotations

from typing import Any

from zapspec.generator.pagination import DEFAULT_PAGE_SIZE, collect_pages, plan_pagination
from zapspec.generator.response import plan_trigger_extraction
from zapspec.models import (
    ArrayExtraction,
    EndpointDescriptor,
    ExtractionKind,
    HTTPMethod,
    PaginationPlan,
    ParsedDocument,
)


def _paged_plan(page_size: int = 2) -> PaginationPlan:
    return PaginationPlan(
        page_size=page_size,
        extraction=ArrayExtraction(kind=ExtractionKind.PROPERTY, property="items"),
    )


class _FakeServer:
    """Serves a fixed sequence of pages and records the paging parameters."""

    def __init__(self, pages: list[dict[str, Any]]) -> None:
        self._pages = iter(pages)
        self.calls: list[dict[str, Any]] = []

    def __call__(self, params: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(dict(params))
        return next(self._pages)


# ---------------------------------------------------------------------------
# plan_pagination
# ---------------------------------------------------------------------------


class TestPlanPagination:
    """Test when a trigger is paginated."""

    def test_list_endpoint_with_has_more_is_paginated(self, budget_document: ParsedDocument) -> None:
        endpoint = budget_document.find_endpoint("/transactions", HTTPMethod.GET)
        extraction = plan_trigger_extraction(endpoint)

        plan = plan_pagination(endpoint, extraction)

        assert plan.limit_param == "limit"
        assert plan.offset_param == "offset"
        assert plan.has_more_property == "has_more"
        assert plan.page_size == DEFAULT_PAGE_SIZE
        assert plan.extraction.property == "transactions"

    def test_fixed_limit_becomes_page_size(self, budget_document: ParsedDocument) -> None:
        endpoint = budget_document.find_endpoint("/categories", HTTPMethod.GET)

        plan = plan_pagination(endpoint, plan_trigger_extraction(endpoint), fixed_query={"limit": "25"})

        assert plan.page_size == 25

    def test_hidden_triggers_are_never_paginated(self, budget_document: ParsedDocument) -> None:
        endpoint = budget_document.find_endpoint("/transactions", HTTPMethod.GET)

        assert plan_pagination(endpoint, plan_trigger_extraction(endpoint), hidden=True) is None

    def test_endpoint_without_limit_and_offset(self, budget_document: ParsedDocument) -> None:
        endpoint = budget_document.find_endpoint("/tags", HTTPMethod.GET)

        assert plan_pagination(endpoint, plan_trigger_extraction(endpoint)) is None

    def test_endpoint_without_has_more_or_array_property(self) -> None:
        endpoint = EndpointDescriptor.model_validate(
            {
                "path": "/things",
                "method": "get",
                "parameters": [
                    {"name": "limit", "location": "query"},
                    {"name": "offset", "location": "query"},
                ],
                "responses": {"200": {"status_code": "200", "schema": {"type": "array"}}},
            }
        )

        assert plan_pagination(endpoint, ArrayExtraction(kind=ExtractionKind.DIRECT)) is None


# ---------------------------------------------------------------------------
# collect_pages
# ---------------------------------------------------------------------------


class TestCollectPages:
    """Test the offset/limit loop."""

    def test_follows_has_more_until_short_page(self) -> None:
        server = _FakeServer(
            [
                {"items": [1, 2], "has_more": True},
                {"items": [3, 4], "has_more": True},
                {"items": [5], "has_more": True},
            ]
        )

        items = collect_pages(_paged_plan(), server, limit=2)

        assert items == [1, 2, 3, 4, 5]
        assert [c["offset"] for c in server.calls] == [0, 2, 4]
        assert all(c["limit"] == 2 for c in server.calls)

    def test_stops_on_last_page_without_more(self) -> None:
        server = _FakeServer(
            [
                {"items": [1, 2], "has_more": True},
                {"items": [3, 4], "has_more": True},
                {"items": [5], "has_more": False},
            ]
        )

        items = collect_pages(_paged_plan(), server, limit=2)

        assert items == [1, 2, 3, 4, 5]
        assert [c["offset"] for c in server.calls] == [0, 2, 4]
        assert len(server.calls) == 3

    def test_stops_when_has_more_is_false(self) -> None:
        server = _FakeServer([{"items": [1, 2], "has_more": False}])

        assert collect_pages(_paged_plan(), server) == [1, 2]
        assert len(server.calls) == 1

    def test_has_more_must_be_exactly_true(self) -> None:
        server = _FakeServer([{"items": [1, 2], "has_more": "yes"}])

        assert collect_pages(_paged_plan(), server) == [1, 2]
        assert len(server.calls) == 1

    def test_plan_page_size_is_the_default_limit(self) -> None:
        server = _FakeServer([{"items": [], "has_more": True}])

        collect_pages(_paged_plan(page_size=50), server)

        assert server.calls == [{"limit": 50, "offset": 0}]
