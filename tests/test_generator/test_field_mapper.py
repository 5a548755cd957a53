"""Tests for zapspec.generator.field_mapper."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from zapspec.generator.field_mapper import (
    DATE_FORMAT_HINT,
    default_text,
    find_field,
    format_label,
    get_noun,
    iter_fields,
    parameters_to_fields,
    path_to_key,
    pluralize,
    properties_to_fields,
    schema_to_field,
    schema_type,
    slugify,
    title_case,
)
from zapspec.models import APIParameter, FieldDescriptor, FieldType, ParameterLocation


# ---------------------------------------------------------------------------
# schema_type
# ---------------------------------------------------------------------------


class TestSchemaType:
    """Test type detection on resolved schemas."""

    def test_plain_type(self) -> None:
        assert schema_type({"type": "integer"}) == "integer"

    def test_openapi_31_type_array_skips_null(self) -> None:
        assert schema_type({"type": ["null", "string"]}) == "string"

    def test_properties_imply_object(self) -> None:
        assert schema_type({"properties": {"a": {}}}) == "object"

    def test_missing_schema(self) -> None:
        assert schema_type(None) is None


# ---------------------------------------------------------------------------
# schema_to_field
# ---------------------------------------------------------------------------


class TestSchemaToField:
    """Test the mapping of schema shapes to input field types."""

    def test_date_gets_placeholder_and_hint(self) -> None:
        field = schema_to_field({"type": "string", "format": "date", "description": "Due"}, "due_on")

        assert field.type == FieldType.STRING
        assert field.placeholder == DATE_FORMAT_HINT
        assert field.help_text == f"Due (Format: {DATE_FORMAT_HINT})"

    def test_date_without_description(self) -> None:
        field = schema_to_field({"type": "string", "format": "date"}, "due_on")

        assert field.help_text == f"Format: {DATE_FORMAT_HINT}"

    def test_date_time_becomes_datetime(self) -> None:
        assert schema_to_field({"type": "string", "format": "date-time"}, "at").type == FieldType.DATETIME

    def test_string_enum_becomes_choices(self) -> None:
        field = schema_to_field({"type": "string", "enum": ["cleared", "uncleared"]}, "status")

        assert field.type == FieldType.STRING
        assert field.choices == ["cleared", "uncleared"]

    def test_integer_and_number_become_number(self) -> None:
        assert schema_to_field({"type": "integer"}, "n").type == FieldType.NUMBER
        assert schema_to_field({"type": "number"}, "n").type == FieldType.NUMBER

    def test_numeric_enum_choices_are_strings(self) -> None:
        assert schema_to_field({"type": "integer", "enum": [1, 2]}, "n").choices == ["1", "2"]

    def test_boolean(self) -> None:
        assert schema_to_field({"type": "boolean"}, "flag").type == FieldType.BOOLEAN

    def test_array_and_object_are_json_strings(self) -> None:
        array_field = schema_to_field({"type": "array", "description": "Tag ids"}, "tag_ids")
        object_field = schema_to_field({"type": "object"}, "meta")

        assert array_field.type == FieldType.STRING
        assert array_field.help_text == "Tag ids (JSON array format)"
        assert object_field.help_text == "(JSON object format)"

    def test_missing_schema_is_untyped_string(self) -> None:
        field = schema_to_field(None, "anything", required=True)

        assert field.type == FieldType.STRING
        assert field.required is True
        assert field.label == "Anything"

    def test_string_default_is_copied(self) -> None:
        assert schema_to_field({"type": "string", "default": "usd"}, "currency").default == "usd"

    def test_defaults_on_string_fields_are_text(self) -> None:
        assert schema_to_field({"type": "string", "default": 5}, "code").default == "5"
        assert schema_to_field({"type": "array", "default": [1, 2]}, "ids").default == "[1, 2]"
        assert schema_to_field({"type": "object", "default": {"a": True}}, "meta").default == '{"a": true}'

    @pytest.mark.parametrize(
        "value, expected",
        [(5, "5"), (2.5, "2.5"), (False, "false"), ("eur", "eur"), (["a"], '["a"]')],
    )
    def test_default_text(self, value, expected: str) -> None:
        assert default_text(value) == expected

    def test_non_string_default_is_dropped(self) -> None:
        assert schema_to_field({"type": "integer", "default": 5}, "limit").default is None
        assert schema_to_field({"type": "boolean", "default": True}, "flag").default is None

    def test_explicit_description_wins(self) -> None:
        field = schema_to_field({"type": "string", "description": "schema"}, "x", description="param")

        assert field.help_text == "param"


# ---------------------------------------------------------------------------
# FieldDescriptor shape rules
# ---------------------------------------------------------------------------


class TestFieldDescriptorShape:
    """Test that a field is either scalar or group, and defaults stay on strings."""

    def test_group_with_type_is_rejected(self) -> None:
        child = FieldDescriptor(key="a", label="A", type=FieldType.STRING)

        with pytest.raises(ValidationError, match="must not declare a type"):
            FieldDescriptor(key="g", label="G", type=FieldType.STRING, children=[child])

    def test_field_without_type_or_children_is_rejected(self) -> None:
        with pytest.raises(ValidationError, match="needs a type or children"):
            FieldDescriptor(key="g", label="G")

    def test_default_on_number_is_rejected(self) -> None:
        with pytest.raises(ValidationError, match="only carry a default"):
            FieldDescriptor(key="n", label="N", type=FieldType.NUMBER, default="1")

    def test_default_assignment_on_boolean_is_rejected(self) -> None:
        field = FieldDescriptor(key="b", label="B", type=FieldType.BOOLEAN)

        with pytest.raises(ValidationError, match="only carry a default"):
            field.default = "true"

    def test_default_must_be_text(self) -> None:
        with pytest.raises(ValidationError):
            FieldDescriptor(key="s", label="S", type=FieldType.STRING, default=5)


# ---------------------------------------------------------------------------
# Parameter and property mapping
# ---------------------------------------------------------------------------


class TestParametersAndProperties:
    """Test batch mapping of parameters and body properties."""

    def test_parameter_description_wins_over_schema(self) -> None:
        param = APIParameter(
            name="id",
            location=ParameterLocation.PATH,
            required=True,
            description="Category ID",
            schema={"type": "integer", "description": "ignored"},
        )

        [field] = parameters_to_fields([param])

        assert field.help_text == "Category ID"
        assert field.required is True
        assert field.type == FieldType.NUMBER

    def test_parameters_can_be_excluded(self) -> None:
        params = [
            APIParameter(name="status", location=ParameterLocation.QUERY),
            APIParameter(name="limit", location=ParameterLocation.QUERY),
        ]

        assert [f.key for f in parameters_to_fields(params, exclude={"status": "cleared"})] == ["limit"]

    def test_properties_use_required_list(self) -> None:
        schema = {
            "type": "object",
            "required": ["name"],
            "properties": {"name": {"type": "string"}, "note": {"type": "string"}},
        }

        fields = properties_to_fields(schema)

        assert [(f.key, f.required) for f in fields] == [("name", True), ("note", False)]

    def test_find_field_descends_into_groups(self) -> None:
        child = FieldDescriptor(key="amount", label="Amount", type=FieldType.NUMBER)
        group = FieldDescriptor(key="item", label="Item", children=[child])

        assert find_field([group], "amount") is child
        assert [f.key for f in iter_fields([group])] == ["item", "amount"]
        assert find_field([group], "missing") is None


# ---------------------------------------------------------------------------
# Naming helpers
# ---------------------------------------------------------------------------


class TestNaming:
    """Test labels, nouns and keys derived from names."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("payee_name", "Payee Name"),
            ("categoryId", "Category Id"),
            ("id", "Id"),
        ],
    )
    def test_format_label(self, name: str, expected: str) -> None:
        assert format_label(name) == expected

    def test_title_case_keeps_minor_words_and_acronyms(self) -> None:
        assert title_case("get the user by id") == "Get the User by ID"

    def test_title_case_first_word_is_capitalised(self) -> None:
        assert title_case("the api url.") == "The API URL."

    def test_title_case_empty(self) -> None:
        assert title_case("") == ""
        assert title_case(None) is None

    @pytest.mark.parametrize(
        "operation_id, path, expected",
        [
            ("getAllCategories", "/categories", "Category"),
            ("getCategoryById", "/categories/{id}", "Category"),
            ("insertTransactions", "/transactions", "InsertTransaction"),
            ("getMe", "/me", "User"),
            (None, "/budgets/{id}/transactions", "Transaction"),
            (None, "/me", "User"),
            (None, "/", "Item"),
        ],
    )
    def test_get_noun(self, operation_id, path: str, expected: str) -> None:
        assert get_noun(operation_id, path) == expected

    def test_pluralize(self) -> None:
        assert pluralize("category") == "categories"
        assert pluralize("day") == "days"
        assert pluralize("Tag") == "Tags"
        assert pluralize("box") == "boxes"

    def test_slugify(self) -> None:
        assert slugify("  New  Transaction ") == "new_transaction"

    def test_path_to_key(self) -> None:
        assert path_to_key("/budgets/{id}/transactions") == "budgets_{id}_transactions"
