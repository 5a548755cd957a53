"""Tests for zapspec.parser.extractor."""

from __future__ import annotations

from typing import Any

from zapspec.models import HTTPMethod, ParameterLocation, ParsedDocument
from zapspec.parser.extractor import (
    _merge_parameters,
    extract_base_url,
    extract_document,
    extract_endpoints,
)


# ---------------------------------------------------------------------------
# extract_document
# ---------------------------------------------------------------------------


class TestExtractDocument:
    """Test document-level metadata extraction."""

    def test_metadata(self, budget_document: ParsedDocument) -> None:
        assert budget_document.title == "Budget API"
        assert budget_document.version == "1.4.0"
        assert budget_document.openapi_version == "3.0.3"
        assert budget_document.base_url == "https://api.budget.example.com/v1"

    def test_schemas_are_resolved(self, budget_document: ParsedDocument) -> None:
        assert "Transaction" in budget_document.schemas
        assert budget_document.schemas["Transaction"]["required"] == ["date", "amount"]

    def test_defaults_without_info_or_servers(self) -> None:
        document = extract_document({"openapi": "3.1.0", "paths": {}})

        assert document.title == "Untitled API"
        assert document.version == ""
        assert document.base_url == ""
        assert document.endpoints == []

    def test_base_url_uses_first_server(self) -> None:
        raw = {"servers": [{"url": "https://a.example.com"}, {"url": "https://b.example.com"}]}

        assert extract_base_url(raw) == "https://a.example.com"


# ---------------------------------------------------------------------------
# extract_endpoints
# ---------------------------------------------------------------------------


class TestExtractEndpoints:
    """Test endpoint extraction from the Budget API fixture."""

    def test_endpoints_in_document_order(self, budget_document: ParsedDocument) -> None:
        pairs = [(e.method.value, e.path) for e in budget_document.endpoints]

        assert pairs == [
            ("get", "/me"),
            ("get", "/categories"),
            ("post", "/categories"),
            ("get", "/categories/{id}"),
            ("delete", "/categories/{id}"),
            ("get", "/tags"),
            ("get", "/transactions"),
            ("post", "/transactions"),
            ("get", "/nodes/{id}"),
            ("post", "/payments"),
        ]

    def test_path_level_parameters_apply_to_every_method(
        self, budget_document: ParsedDocument
    ) -> None:
        for method in (HTTPMethod.GET, HTTPMethod.DELETE):
            endpoint = budget_document.find_endpoint("/categories/{id}", method)
            assert [p.name for p in endpoint.path_parameters] == ["id"]

    def test_path_parameters_are_always_required(self, budget_document: ParsedDocument) -> None:
        endpoint = budget_document.find_endpoint("/categories/{id}", HTTPMethod.GET)

        assert endpoint.parameters[0].required is True
        assert endpoint.parameters[0].description == "Category ID"

    def test_parameter_refs_are_followed(self, budget_document: ParsedDocument) -> None:
        endpoint = budget_document.find_endpoint("/nodes/{id}", HTTPMethod.GET)

        assert endpoint.parameters[0].name == "id"
        assert endpoint.parameters[0].location == ParameterLocation.PATH
        assert endpoint.parameters[0].schema_ == {"type": "integer"}

    def test_header_parameters_are_dropped(self, budget_document: ParsedDocument) -> None:
        endpoint = budget_document.find_endpoint("/transactions", HTTPMethod.GET)

        assert "X-Request-Id" not in [p.name for p in endpoint.parameters]
        assert len(endpoint.query_parameters) == 6

    def test_request_body_schema_is_resolved(self, budget_document: ParsedDocument) -> None:
        endpoint = budget_document.find_endpoint("/transactions", HTTPMethod.POST)

        assert endpoint.request_body.required is True
        items = endpoint.body_schema["properties"]["transactions"]["items"]
        assert items["properties"]["currency"]["default"] == "usd"

    def test_no_content_response_is_kept(self, budget_document: ParsedDocument) -> None:
        endpoint = budget_document.find_endpoint("/categories/{id}", HTTPMethod.DELETE)

        assert list(endpoint.responses) == ["204"]
        assert endpoint.responses["204"].schema_ is None

    def test_single_example_is_wrapped(self, budget_document: ParsedDocument) -> None:
        endpoint = budget_document.find_endpoint("/me", HTTPMethod.GET)

        example = endpoint.responses["200"].examples["default"]
        assert example["value"]["user_id"] == 18

    def test_description_falls_back_to_summary(self, budget_document: ParsedDocument) -> None:
        endpoint = budget_document.find_endpoint("/me", HTTPMethod.GET)

        assert endpoint.description == "Get current user"

    def test_non_json_request_body_is_ignored(self) -> None:
        raw: dict[str, Any] = {
            "paths": {
                "/upload": {
                    "post": {
                        "requestBody": {"content": {"multipart/form-data": {"schema": {"type": "object"}}}},
                        "responses": {},
                    }
                }
            }
        }

        endpoints = extract_endpoints(raw)

        assert endpoints[0].request_body is None

    def test_unsupported_methods_are_skipped(self) -> None:
        raw = {"paths": {"/x": {"head": {}, "options": {}, "get": {"responses": {}}}}}

        assert [e.method for e in extract_endpoints(raw)] == [HTTPMethod.GET]


# ---------------------------------------------------------------------------
# _merge_parameters
# ---------------------------------------------------------------------------


class TestMergeParameters:
    """Test path-level and operation-level parameter merging."""

    def test_operation_level_overrides_path_level(self) -> None:
        merged = _merge_parameters(
            [{"name": "id", "in": "path", "description": "path level"}],
            [{"name": "id", "in": "path", "description": "operation level"}],
        )

        assert merged == [{"name": "id", "in": "path", "description": "operation level"}]

    def test_same_name_in_different_location_is_kept(self) -> None:
        merged = _merge_parameters(
            [{"name": "id", "in": "path"}],
            [{"name": "id", "in": "query"}],
        )

        assert len(merged) == 2

    def test_broken_references_are_skipped(self) -> None:
        assert _merge_parameters([None], [None, {"name": "q", "in": "query"}]) == [
            {"name": "q", "in": "query"}
        ]
