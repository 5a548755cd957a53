"""Tests for zapspec.generator.request_plan."""

from __future__ import annotations

import pytest

from zapspec.generator.request_plan import (
    build_body,
    build_request,
    date_part,
    merge_helper_values,
    plan_request,
    to_number,
    value_kind,
)
from zapspec.models import (
    BodyPlan,
    FlattenPlan,
    HelperMergePlan,
    HTTPMethod,
    ParsedDocument,
    PropertyPlan,
    QueryParamPlan,
    QueryPlan,
    RequestPlan,
    ValueKind,
)

BASE_URL = "https://api.budget.example.com/v1"


# ---------------------------------------------------------------------------
# Plan construction
# ---------------------------------------------------------------------------


class TestPlanRequest:
    """Test plans built from fixture endpoints."""

    def test_get_with_query_parameters(self, budget_document: ParsedDocument) -> None:
        endpoint = budget_document.find_endpoint("/transactions", HTTPMethod.GET)

        plan = plan_request(endpoint, BASE_URL, fixed_query={"status": "cleared"})

        assert plan.url_template == f"{BASE_URL}/transactions"
        assert plan.body is None
        assert plan.query.fixed == {"status": "cleared"}
        kinds = {p.name: p.kind for p in plan.query.params}
        assert "status" not in kinds
        assert kinds["start_date"] == ValueKind.DATE
        assert kinds["limit"] == ValueKind.NUMBER

    def test_post_with_body(self, budget_document: ParsedDocument) -> None:
        endpoint = budget_document.find_endpoint("/transactions", HTTPMethod.POST)

        plan = plan_request(endpoint, BASE_URL, auth_field_key="api_token")

        assert plan.auth_field_key == "api_token"
        assert [(p.name, p.kind) for p in plan.body.properties] == [
            ("transactions", ValueKind.ARRAY),
            ("apply_rules", ValueKind.BOOLEAN),
            ("skip_duplicates", ValueKind.BOOLEAN),
            ("source", ValueKind.STRING),
        ]

    def test_path_parameters(self, budget_document: ParsedDocument) -> None:
        endpoint = budget_document.find_endpoint("/categories/{id}", HTTPMethod.DELETE)

        plan = plan_request(endpoint, BASE_URL)

        assert plan.path_params == ["id"]
        assert plan.method == HTTPMethod.DELETE

    def test_value_kind(self) -> None:
        assert value_kind({"type": "string", "format": "date"}) == ValueKind.DATE
        assert value_kind({"type": "string", "format": "date-time"}) == ValueKind.STRING
        assert value_kind({"type": "object"}) == ValueKind.OBJECT
        assert value_kind(None) == ValueKind.STRING


# ---------------------------------------------------------------------------
# build_request
# ---------------------------------------------------------------------------


def _plan(**overrides) -> RequestPlan:
    defaults = dict(
        method=HTTPMethod.GET,
        url_template=f"{BASE_URL}/categories/{{id}}/items",
        path_params=["id"],
        query=QueryPlan(
            params=[
                QueryParamPlan(name="since", kind=ValueKind.DATE),
                QueryParamPlan(name="limit", kind=ValueKind.NUMBER),
                QueryParamPlan(name="archived", kind=ValueKind.BOOLEAN),
                QueryParamPlan(name="q"),
            ],
            fixed={"status": "cleared"},
        ),
    )
    defaults.update(overrides)
    return RequestPlan(**defaults)


class TestBuildRequest:
    """Test interpretation of a plan against user inputs."""

    def test_url_and_query(self) -> None:
        request = build_request(
            _plan(),
            {"id": 7, "since": "2025-01-31T10:00:00Z", "limit": "25", "archived": "TRUE"},
        )

        assert request.method == "GET"
        assert request.url == f"{BASE_URL}/categories/7/items"
        assert request.params == {
            "status": "cleared",
            "since": "2025-01-31",
            "limit": 25,
            "archived": True,
        }
        assert request.json_body is None

    def test_none_and_empty_are_omitted_but_zero_and_false_are_sent(self) -> None:
        request = build_request(_plan(), {"id": 1, "q": "", "since": None, "limit": 0, "archived": False})

        assert request.params == {"status": "cleared", "limit": 0, "archived": False}

    def test_bearer_token_from_auth_field(self) -> None:
        request = build_request(_plan(auth_field_key="api_token"), {"id": 1}, {"api_token": "abc"})

        assert request.headers["Authorization"] == "Bearer abc"
        assert request.headers["Accept"] == "application/json"

    def test_missing_token_sends_no_authorization(self) -> None:
        assert "Authorization" not in build_request(_plan(), {"id": 1}).headers

    def test_body_sets_content_type(self) -> None:
        plan = _plan(method=HTTPMethod.POST, body=BodyPlan(properties=[PropertyPlan(name="name")]))

        request = build_request(plan, {"id": 1, "name": "Rent"})

        assert request.json_body == {"name": "Rent"}
        assert request.headers["Content-Type"] == "application/json"


# ---------------------------------------------------------------------------
# build_body
# ---------------------------------------------------------------------------


class TestBuildBody:
    """Test JSON body assembly, including flattening and helper merges."""

    def test_coercions(self) -> None:
        plan = BodyPlan(
            properties=[
                PropertyPlan(name="tag_ids", kind=ValueKind.ARRAY),
                PropertyPlan(name="names", kind=ValueKind.ARRAY),
                PropertyPlan(name="meta", kind=ValueKind.OBJECT),
                PropertyPlan(name="raw", kind=ValueKind.OBJECT),
                PropertyPlan(name="category_id", kind=ValueKind.NUMBER, dynamic=True),
            ]
        )

        body = build_body(
            plan,
            {
                "tag_ids": "1, 2,,3",
                "names": '["a", "b"]',
                "meta": '{"k": 1}',
                "raw": "not json",
                "category_id": "0",
            },
        )

        assert body == {
            "tag_ids": [1, 2, 3],
            "names": ["a", "b"],
            "meta": {"k": 1},
            "raw": "not json",
        }

    def test_non_string_defaults_fill_missing_inputs(self) -> None:
        plan = BodyPlan(
            properties=[PropertyPlan(name="apply_rules", kind=ValueKind.BOOLEAN)],
            defaults={"apply_rules": True},
        )

        assert build_body(plan, {}) == {"apply_rules": True}
        assert build_body(plan, {"apply_rules": "false"}) == {"apply_rules": False}

    def test_flatten_round_trip(self) -> None:
        plan = BodyPlan(
            flatten=FlattenPlan(
                array_field="items",
                item_properties=[PropertyPlan(name="a"), PropertyPlan(name="b", kind=ValueKind.NUMBER)],
            )
        )

        assert build_body(plan, {"a": "x", "b": 1}) == {"items": [{"a": "x", "b": 1}]}

    def test_flatten_reads_group_values_nested_or_flattened(self) -> None:
        plan = BodyPlan(
            flatten=FlattenPlan(
                array_field="transactions",
                group_key="new_transaction",
                item_properties=[PropertyPlan(name="payee"), PropertyPlan(name="amount", kind=ValueKind.NUMBER)],
            )
        )

        nested = build_body(plan, {"new_transaction": {"payee": "Bakery", "amount": "12.5"}})
        flattened = build_body(plan, {"new_transaction__payee": "Bakery", "new_transaction__amount": 12.5})

        assert nested == flattened == {"transactions": [{"payee": "Bakery", "amount": 12.5}]}

    def test_helper_merge_into_item_array(self) -> None:
        plan = BodyPlan(
            flatten=FlattenPlan(
                array_field="transactions",
                group_key="txn",
                item_properties=[PropertyPlan(name="tag_ids", kind=ValueKind.ARRAY)],
            ),
            helper_merges=[
                HelperMergePlan(
                    target="tag_ids",
                    helper_keys=["add_tag", "add_tag_2"],
                    target_is_array=True,
                    in_item=True,
                    nested=True,
                )
            ],
        )

        body = build_body(plan, {"txn": {"tag_ids": [5, 7], "add_tag": "3", "add_tag_2": "5"}})

        assert body == {"transactions": [{"tag_ids": [5, 7, 3]}]}

    def test_helper_merge_into_scalar_takes_first_value(self) -> None:
        plan = BodyPlan(
            helper_merges=[HelperMergePlan(target="category_id", helper_keys=["pick_a", "pick_b"])],
        )

        assert build_body(plan, {"pick_a": "", "pick_b": "9"}) == {"category_id": 9}

    def test_helper_merge_without_values_leaves_body_alone(self) -> None:
        plan = BodyPlan(
            helper_merges=[
                HelperMergePlan(target="tag_ids", helper_keys=["add_tag"], target_is_array=True)
            ],
        )

        assert build_body(plan, {"add_tag": None}) == {}


# ---------------------------------------------------------------------------
# merge_helper_values
# ---------------------------------------------------------------------------


class TestMergeHelperValues:
    """Test the id-union used for helper fields."""

    def test_union_keeps_existing_order(self) -> None:
        assert merge_helper_values([5, 7], [3, 5, 5, 0, None]) == [5, 7, 3]

    def test_merge_is_idempotent(self) -> None:
        once = merge_helper_values([5, 7], [3, 5, 5, 0, None])

        assert merge_helper_values(once, [3, 5, 5, 0, None]) == once

    def test_strings_are_coerced_and_junk_dropped(self) -> None:
        assert merge_helper_values(["2"], ["abc", "", "-1", "4"]) == [2, 4]


# ---------------------------------------------------------------------------
# Scalar helpers
# ---------------------------------------------------------------------------


class TestScalars:
    """Test number parsing and date truncation."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("12", 12),
            ("12.5", 12.5),
            (" 3 ", 3),
            (4, 4),
            ("", None),
            ("nan", None),
            ("abc", None),
            (True, None),
            (None, None),
        ],
    )
    def test_to_number(self, value, expected) -> None:
        assert to_number(value) == expected

    def test_date_part(self) -> None:
        assert date_part("2025-01-31T10:00:00Z") == "2025-01-31"
        assert date_part("2025-01-31 10:00") == "2025-01-31"
        assert date_part("2025-01-31") == "2025-01-31"
