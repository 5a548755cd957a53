"""Shape responses: response plans, array extraction and sample payloads.

Every operation descriptor carries three response-side artefacts, all built
here from the endpoint's success response (``200``, then ``201``):

* a plan describing how the raw payload becomes the operation's result
  (:class:`~zapspec.models.ResponsePlan` for actions,
  :class:`~zapspec.models.ArrayExtraction` for triggers);
* a sample payload shown to users while they map fields.  Samples are never
  empty, never contain credential-like keys, and trigger samples always
  carry an ``id``;
* for triggers, the property that holds the item list, which the pagination
  planner reuses.

:func:`shape_action_response` and :func:`extract_items` interpret the plans
against a payload; renderers serialise the same plans.
"""

from __future__ import annotations

import copy
import logging
import re
from typing import Any, Optional

from zapspec.generator.field_mapper import pluralize, schema_properties, schema_type
from zapspec.models import (
    ArrayExtraction,
    EndpointDescriptor,
    ExtractionKind,
    FilterPlan,
    LabelPlan,
    ResponseInfo,
    ResponseKind,
    ResponsePlan,
    SimplifyConfig,
)

logger = logging.getLogger(__name__)

NO_CONTENT_STATUS = "204"

NO_CONTENT_SAMPLE: dict[str, Any] = {"success": True, "status": 204}

EMPTY_SAMPLE: dict[str, Any] = {"id": 0}

_SUCCESS_STATUSES = ("200", "201")

_COMMON_ARRAY_NAMES = ("transactions", "items", "data", "results", "records", "list")

_ID_ALIASES = ("_id", "ID", "Id", "transaction_id", "item_id", "record_id")

_SENSITIVE_KEYS = frozenset({"password", "passwd", "pwd", "secret", "token", "apikey"})

_KEY_SEPARATORS_RE = re.compile(r"[_\-\s]")


# ---------------------------------------------------------------------------
# Response lookup
# ---------------------------------------------------------------------------


def success_response(endpoint: EndpointDescriptor) -> Optional[ResponseInfo]:
    """Return the ``200`` response, else ``201``, else ``None``."""
    for status in _SUCCESS_STATUSES:
        if status in endpoint.responses:
            return endpoint.responses[status]
    return None


def is_no_content(endpoint: EndpointDescriptor) -> bool:
    """Whether the endpoint only succeeds with ``204 No Content``."""
    return NO_CONTENT_STATUS in endpoint.responses and success_response(endpoint) is None


def success_schema(endpoint: EndpointDescriptor) -> Optional[dict[str, Any]]:
    response = success_response(endpoint)
    return response.schema_ if response is not None else None


def get_array_property(schema: Optional[dict[str, Any]]) -> Optional[str]:
    """Return the property of an object schema that holds the item list.

    The first array-typed property wins; otherwise a property with a
    conventional list name (``items``, ``data``, ``results`` ...) is used.
    A schema that is itself an array has no array property.
    """
    if schema is None or schema_type(schema) == "array":
        return None
    properties = schema_properties(schema)
    for name, prop in properties.items():
        if schema_type(prop) == "array":
            return name
    for name in _COMMON_ARRAY_NAMES:
        if name in properties:
            return name
    return None


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------


def plan_action_response(
    endpoint: EndpointDescriptor,
    noun: str,
    simplify: Optional[SimplifyConfig] = None,
) -> ResponsePlan:
    """Decide how an action's raw payload becomes its result.

    * ``204`` only: the fixed success sentinel.
    * Direct array: wrapped under the pluralised noun.
    * Object with an array property and ``responseExtraction.extractSingle``:
      the first array item.
    * Any other object: passed through.
    * No schema: best effort, wrapping lists under ``data``.
    """
    if is_no_content(endpoint):
        return ResponsePlan(kind=ResponseKind.NO_CONTENT)

    schema = success_schema(endpoint)
    if schema is None:
        logger.debug("No success schema for %s %s; shaping response best effort", endpoint.method.value, endpoint.path)
        return ResponsePlan(kind=ResponseKind.BEST_EFFORT, key="data")

    if schema_type(schema) == "array":
        return ResponsePlan(kind=ResponseKind.WRAP_ARRAY, key=pluralize(noun).lower())

    array_property = get_array_property(schema)
    extraction = simplify.response_extraction if simplify is not None else None
    if array_property and extraction is not None and extraction.extract_single:
        return ResponsePlan(
            kind=ResponseKind.EXTRACT_SINGLE,
            array_property=extraction.array_property or array_property,
        )

    return ResponsePlan(kind=ResponseKind.PASSTHROUGH)


def plan_trigger_extraction(
    endpoint: EndpointDescriptor,
    array_property: Optional[str] = None,
) -> ArrayExtraction:
    """Decide how a trigger finds its item list in a payload.

    Args:
        endpoint: The polled GET endpoint.
        array_property: Property name configured for the trigger; wins over
            detection.
    """
    schema = success_schema(endpoint)
    if array_property:
        return ArrayExtraction(kind=ExtractionKind.PROPERTY, property=array_property)
    if schema is None:
        return ArrayExtraction(kind=ExtractionKind.BEST_EFFORT)

    detected = get_array_property(schema)
    if detected:
        return ArrayExtraction(kind=ExtractionKind.PROPERTY, property=detected)
    if schema_type(schema) == "array":
        return ArrayExtraction(kind=ExtractionKind.DIRECT)
    return ArrayExtraction(kind=ExtractionKind.WRAP_SINGLE)


# ---------------------------------------------------------------------------
# Interpreters
# ---------------------------------------------------------------------------


def shape_action_response(plan: ResponsePlan, status: int, payload: Any) -> Any:
    """Apply an action's response plan to a raw payload.

    Example::

        >>> shape_action_response(ResponsePlan(kind=ResponseKind.NO_CONTENT), 204, None)
        {'success': True, 'status': 204}
    """
    if plan.kind == ResponseKind.NO_CONTENT or status == 204:
        return dict(NO_CONTENT_SAMPLE)

    if plan.kind in (ResponseKind.WRAP_ARRAY, ResponseKind.BEST_EFFORT):
        return {plan.key: payload} if isinstance(payload, list) else payload

    if plan.kind == ResponseKind.EXTRACT_SINGLE and isinstance(payload, dict):
        items = payload.get(plan.array_property)
        if isinstance(items, list) and items:
            return items[0]

    return payload


def extract_items(extraction: ArrayExtraction, payload: Any) -> list[Any]:
    """Return the list of items a trigger payload holds.

    A configured property may hold the list directly or nest it one level
    under an object of the same name (``{"items": {"items": [...]}}``).
    """
    if extraction.kind == ExtractionKind.PROPERTY:
        if isinstance(payload, list):
            return payload
        value = payload.get(extraction.property) if isinstance(payload, dict) else None
        if isinstance(value, dict):
            value = value.get(extraction.property)
        return value if isinstance(value, list) else []

    if extraction.kind == ExtractionKind.DIRECT:
        return payload if isinstance(payload, list) else []

    if extraction.kind == ExtractionKind.WRAP_SINGLE:
        if isinstance(payload, list):
            return payload
        return [payload] if payload else []

    if isinstance(payload, list):
        return payload
    return [payload] if payload else []


# ---------------------------------------------------------------------------
# Samples
# ---------------------------------------------------------------------------


def extract_sample(response: Optional[ResponseInfo]) -> Any:
    """Return a representative payload for *response*.

    Preference order: the first declared example, the schema's
    ``example``, then a value synthesised from the schema's structure.
    """
    if response is None:
        return None

    if response.examples:
        first = next(iter(response.examples.values()))
        if isinstance(first, dict) and "value" in first:
            return copy.deepcopy(first["value"])
        if first is not None:
            return copy.deepcopy(first)

    return synthesize_sample(response.schema_)


def synthesize_sample(schema: Optional[dict[str, Any]]) -> Any:
    """Build a placeholder value that matches *schema*'s structure."""
    if not schema:
        return None
    if "example" in schema:
        return copy.deepcopy(schema["example"])

    kind = schema_type(schema)
    if kind == "string":
        fmt = schema.get("format")
        if fmt == "date":
            return "2025-01-01"
        if fmt == "date-time":
            return "2025-01-01T00:00:00Z"
        if schema.get("enum"):
            return schema["enum"][0]
        return "example"
    if kind in ("integer", "number"):
        return 0
    if kind == "boolean":
        return False
    if kind == "array":
        return []
    if kind == "object":
        return {name: synthesize_sample(prop) for name, prop in schema_properties(schema).items()}
    return None


def action_sample(raw: Any) -> dict[str, Any]:
    """Normalise an action sample: an object without sensitive keys, never empty."""
    if isinstance(raw, list):
        sample = raw[0] if raw and isinstance(raw[0], dict) else {}
    elif isinstance(raw, dict):
        sample = raw
    elif raw is None:
        sample = {}
    else:
        sample = {"value": raw}

    sample = strip_sensitive(sample)
    return sample or dict(EMPTY_SAMPLE)


def trigger_sample(raw: Any) -> dict[str, Any]:
    """Normalise a trigger sample to one item that carries an ``id``.

    A list yields its first item; an object holding a non-empty list yields
    the first item of that list.  When no ``id`` is present it is copied from
    a common alias (``_id``, ``item_id`` ...) or set to ``0``.
    """
    if isinstance(raw, list):
        sample = raw[0] if raw and isinstance(raw[0], dict) else {}
    elif isinstance(raw, dict):
        sample = raw
        for value in raw.values():
            if isinstance(value, list) and value:
                sample = value[0] if isinstance(value[0], dict) else {"value": value[0]}
                break
    elif raw is None:
        sample = {}
    else:
        sample = {"value": raw}

    sample = strip_sensitive(sample) or dict(EMPTY_SAMPLE)
    if "id" not in sample:
        alias = next((name for name in _ID_ALIASES if name in sample), None)
        sample["id"] = sample[alias] if alias else 0
    return sample


def strip_sensitive(sample: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *sample* without credential-like top-level keys.

    Matching ignores case and ``_`` / ``-`` separators, so ``apiKey``,
    ``api_key`` and ``API-KEY`` are all removed.
    """
    return {key: value for key, value in sample.items() if not _is_sensitive(key)}


def _is_sensitive(key: str) -> bool:
    return _KEY_SEPARATORS_RE.sub("", key).lower() in _SENSITIVE_KEYS


# ---------------------------------------------------------------------------
# Trigger item post-processing
# ---------------------------------------------------------------------------

_TEMPLATE_VAR_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_.]*)\}")


def render_label(template: str, item: dict[str, Any]) -> str:
    """Substitute ``${dotted.path}`` placeholders with values from *item*.

    Missing or falsy values render as an empty string and the result is
    stripped.

    Example::

        >>> render_label("${payee} - ${criteria.amount}", {"payee": "Rent", "criteria": {"amount": 9}})
        'Rent - 9'
    """

    def _value(match: re.Match) -> str:
        value: Any = item
        for part in match.group(1).split("."):
            value = value.get(part) if isinstance(value, dict) else None
        return "" if value in (None, "", False) else str(value)

    return _TEMPLATE_VAR_RE.sub(_value, template).strip()


def label_items(plan: LabelPlan, items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Return copies of *items* with a ``name`` used as the dropdown label.

    The template wins, then the fallback (``${id}`` when none is
    configured), then the item's ``description``, then ``Item <id>``.
    """
    fallback = plan.fallback or "${id}"
    labelled = []
    for item in items:
        name = (
            render_label(plan.template, item)
            or render_label(fallback, item)
            or item.get("description")
            or f"Item {item.get('id')}"
        )
        labelled.append({**item, "name": name})
    return labelled


def filter_items(plan: FilterPlan, items: list[Any]) -> list[Any]:
    """Keep the items whose properties equal every value in ``plan.equals``.

    ``plan.expression`` is opaque to the compiler and is left to renderers.
    """
    if not plan.equals:
        return list(items)
    return [
        item
        for item in items
        if isinstance(item, dict)
        and all(key in item and item[key] == value for key, value in plan.equals.items())
    ]


def sort_by_id_desc(items: list[Any]) -> list[Any]:
    """Order items newest first by numeric ``id``; a missing ``id`` counts as 0."""

    def _key(item: Any) -> float:
        number = item.get("id") if isinstance(item, dict) else None
        return number if isinstance(number, (int, float)) and not isinstance(number, bool) else 0

    return sorted(items, key=_key, reverse=True)
