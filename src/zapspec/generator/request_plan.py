"""Build request plans and turn them into concrete requests.

A :class:`~zapspec.models.RequestPlan` is a pure description of how a set of
user inputs becomes an HTTP request: which inputs fill the URL template,
which become query parameters, and how the JSON body is assembled.  The
transform pipeline edits plans; renderers serialise them; and
:func:`build_request` interprets them, which makes every request-shaping rule
testable without generating or executing any code.

**Coercion rules** applied by :func:`build_request` to every input value:

* ``None`` and ``""`` mean "not provided" and are left out.
* Dates keep only their ``YYYY-MM-DD`` part (``2025-01-31T10:00:00Z``
  becomes ``2025-01-31``).
* Numbers are parsed from strings; dropdown-backed numbers additionally treat
  ``0`` as "not chosen".
* Booleans given as strings are ``True`` only for ``"true"`` (any case).
* Arrays given as strings are parsed as JSON when they look like JSON,
  otherwise split on commas (numeric items become numbers).
* Objects given as strings are parsed as JSON when possible.
"""

from __future__ import annotations

import json
import math
from collections.abc import Iterable
from typing import Any, Optional

from zapspec.generator.field_mapper import schema_properties, schema_type
from zapspec.models import (
    BodyPlan,
    EndpointDescriptor,
    HelperMergePlan,
    PreparedRequest,
    PropertyPlan,
    QueryParamPlan,
    QueryPlan,
    RequestPlan,
    ValueKind,
)

_OMIT = object()


# ---------------------------------------------------------------------------
# Plan construction
# ---------------------------------------------------------------------------


def value_kind(schema: Any) -> ValueKind:
    """Classify *schema* by how its input values are coerced."""
    kind = schema_type(schema)
    if kind == "string" and schema.get("format") == "date":
        return ValueKind.DATE
    if kind in ("integer", "number"):
        return ValueKind.NUMBER
    if kind == "boolean":
        return ValueKind.BOOLEAN
    if kind == "array":
        return ValueKind.ARRAY
    if kind == "object":
        return ValueKind.OBJECT
    return ValueKind.STRING


def property_plans(
    schema: Optional[dict[str, Any]],
    names: Optional[Iterable[str]] = None,
) -> list[PropertyPlan]:
    """Return a :class:`~zapspec.models.PropertyPlan` per property of *schema*.

    Args:
        schema: An object schema.
        names: Restrict (and order) the result to these property names.
    """
    properties = schema_properties(schema)
    selected = list(properties) if names is None else [n for n in names if n in properties]
    return [PropertyPlan(name=name, kind=value_kind(properties[name])) for name in selected]


def plan_request(
    endpoint: EndpointDescriptor,
    base_url: str,
    auth_field_key: str = "access_token",
    fixed_query: Optional[dict[str, Any]] = None,
) -> RequestPlan:
    """Build the unfiltered request plan of *endpoint*.

    Every query parameter becomes a user parameter unless it is listed in
    *fixed_query*, whose values are always sent.  The body plan covers every
    top-level property of the JSON request body.

    Args:
        endpoint: The endpoint to call.
        base_url: Prefix of every request URL.
        auth_field_key: Authentication field holding the bearer token.
        fixed_query: Query values set by configuration.
    """
    fixed = dict(fixed_query or {})
    query = QueryPlan(
        params=[
            QueryParamPlan(name=p.name, kind=value_kind(p.schema_))
            for p in endpoint.query_parameters
            if p.name not in fixed
        ],
        fixed=fixed,
    )

    body: Optional[BodyPlan] = None
    if endpoint.request_body is not None:
        body = BodyPlan(properties=property_plans(endpoint.body_schema))

    return RequestPlan(
        method=endpoint.method,
        url_template=f"{base_url}{endpoint.path}",
        path_params=[p.name for p in endpoint.path_parameters],
        query=query,
        body=body,
        auth_field_key=auth_field_key,
    )


# ---------------------------------------------------------------------------
# Interpretation
# ---------------------------------------------------------------------------


def build_request(
    plan: RequestPlan,
    input_data: dict[str, Any],
    auth_data: Optional[dict[str, Any]] = None,
) -> PreparedRequest:
    """Interpret *plan* against one set of user inputs.

    Args:
        plan: The request plan of an operation.
        input_data: Values entered by the user, keyed by field key.  Group
            fields may arrive nested (``{"transaction": {"amount": 5}}``)
            or flattened (``{"transaction__amount": 5}``).
        auth_data: Authentication values; the plan's ``auth_field_key``
            supplies the bearer token.

    Returns:
        The concrete request.

    Example::

        request = build_request(plan, {"budget_id": 7, "since": "2025-01-31T08:00:00Z"})
        request.url      # "https://api.example.com/budgets/7/transactions"
        request.params   # {"since": "2025-01-31"}
    """
    url = plan.url_template
    for name in plan.path_params:
        value = input_data.get(name)
        url = url.replace("{" + name + "}", "" if value is None else str(value))

    params: dict[str, Any] = dict(plan.query.fixed)
    for query_param in plan.query.params:
        value = _coerce(query_param.kind, input_data.get(query_param.name))
        if value is not _OMIT:
            params[query_param.name] = value

    headers: dict[str, str] = {"Accept": "application/json"}
    token = (auth_data or {}).get(plan.auth_field_key)
    if token:
        headers["Authorization"] = f"Bearer {token}"

    json_body: Optional[dict[str, Any]] = None
    if plan.body is not None:
        json_body = build_body(plan.body, input_data)
        headers["Content-Type"] = "application/json"

    return PreparedRequest(
        method=plan.method.value.upper(),
        url=url,
        params=params,
        json_body=json_body,
        headers=headers,
    )


def build_body(body_plan: BodyPlan, input_data: dict[str, Any]) -> dict[str, Any]:
    """Assemble the JSON request body described by *body_plan*."""
    body: dict[str, Any] = {}

    for prop in body_plan.properties:
        value = _coerce(prop.kind, input_data.get(prop.name), dynamic=prop.dynamic)
        if value is not _OMIT:
            body[prop.name] = value
        elif prop.name in body_plan.defaults:
            body[prop.name] = body_plan.defaults[prop.name]

    flatten = body_plan.flatten
    if flatten is not None:
        item: dict[str, Any] = {}
        for prop in flatten.item_properties:
            raw = _lookup(input_data, prop.name, flatten.group_key)
            value = _coerce(prop.kind, raw, dynamic=prop.dynamic)
            if value is not _OMIT:
                item[prop.name] = value
        for merge in body_plan.helper_merges:
            if merge.in_item:
                _apply_merge(merge, item, input_data, flatten.group_key)
        body[flatten.array_field] = [item]

    for merge in body_plan.helper_merges:
        if not merge.in_item:
            _apply_merge(merge, body, input_data, None)

    return body


def merge_helper_values(existing: Iterable[Any], helper_values: Iterable[Any]) -> list[Any]:
    """Union helper values into an existing list of ids.

    Values are coerced to numbers; anything that is not a positive number
    (``0``, ``None``, ``""``, non-numeric text) is dropped, duplicates are
    removed and existing entries keep their place in front.  Merging the same
    helper values twice gives the same result as merging them once.

    Example::

        >>> merge_helper_values([5, 7], [3, 5, 5, 0, None])
        [5, 7, 3]
    """
    merged: list[Any] = []
    for value in [*existing, *helper_values]:
        number = to_number(value)
        if number is None or number <= 0 or number in merged:
            continue
        merged.append(number)
    return merged


def to_number(value: Any) -> Optional[int | float]:
    """Parse *value* as a number, returning ``None`` when it is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if isinstance(value, float) and math.isnan(value) else value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return None if math.isnan(number) else number
    return None


def date_part(value: Any) -> str:
    """Return the ``YYYY-MM-DD`` part of a date or date-time value."""
    return str(value).split("T")[0].split(" ")[0]


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def _coerce(kind: ValueKind, value: Any, dynamic: bool = False) -> Any:
    if _is_blank(value):
        return _OMIT

    if kind == ValueKind.DATE:
        return date_part(value)

    if kind == ValueKind.NUMBER:
        number = to_number(value)
        if dynamic and not number:
            return _OMIT
        return value if number is None else number

    if kind == ValueKind.BOOLEAN:
        if isinstance(value, str):
            return value.strip().lower() == "true"
        return bool(value)

    if kind == ValueKind.ARRAY:
        return _as_list(value)

    if kind == ValueKind.OBJECT and isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return value

    return value


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("["):
            try:
                parsed = json.loads(text)
            except ValueError:
                parsed = None
            if isinstance(parsed, list):
                return parsed
        items: list[Any] = []
        for token in text.split(","):
            token = token.strip()
            if not token:
                continue
            number = to_number(token)
            items.append(token if number is None else number)
        return items
    return [value]


def _lookup(input_data: dict[str, Any], key: str, group_key: Optional[str]) -> Any:
    """Read *key* from the group field, its flattened form, then the top level."""
    if group_key:
        group = input_data.get(group_key)
        if isinstance(group, dict) and key in group:
            return group[key]
        flat_key = f"{group_key}__{key}"
        if flat_key in input_data:
            return input_data[flat_key]
    return input_data.get(key)


def _apply_merge(
    merge: HelperMergePlan,
    target: dict[str, Any],
    input_data: dict[str, Any],
    group_key: Optional[str],
) -> None:
    helper_group = group_key if merge.nested else None
    values = [_lookup(input_data, key, helper_group) for key in merge.helper_keys]

    if merge.target_is_array:
        existing = target.get(merge.target)
        if existing is None:
            existing = _lookup(input_data, merge.target, group_key if merge.in_item else None)
        merged = merge_helper_values(_as_list(existing), values)
        if merged:
            target[merge.target] = merged
        return

    for value in values:
        if not _is_blank(value):
            number = to_number(value)
            target[merge.target] = value if number is None else number
            return
