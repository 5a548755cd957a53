"""Extract endpoints, base URL and version from an OpenAPI document.

This module walks the ``paths`` object of a raw OpenAPI document and builds
a :class:`~zapspec.models.ParsedDocument` holding one
:class:`~zapspec.models.EndpointDescriptor` per path + method combination.
Every schema is passed through a single
:class:`~zapspec.parser.resolver.SchemaResolver` so that references are
expanded exactly once per document.

The public entry points are :func:`extract_document` and
:func:`extract_endpoints`.  Internally they delegate to private helpers that
each handle one section of an operation:

* ``_extract_parameters`` -- path and query parameters (header and cookie
  parameters are dropped).
* ``_extract_request_body`` -- the ``application/json`` request body only.
* ``_extract_responses`` -- every declared status code, each resolved
  independently.

Parameter merging follows the OpenAPI specification: path-level parameters
provide defaults, and operation-level parameters override them when they share
the same ``name`` and ``in`` values.

Endpoints are emitted in document order (path order, then method order as
written), because operation and trigger keys are de-duplicated first come,
first served.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from zapspec.models import (
    APIParameter,
    EndpointDescriptor,
    HTTPMethod,
    ParameterLocation,
    ParsedDocument,
    RequestBodyInfo,
    ResponseInfo,
)
from zapspec.parser.resolver import SchemaResolver

logger = logging.getLogger(__name__)

_HTTP_METHODS = frozenset(m.value for m in HTTPMethod)

_JSON_CONTENT_TYPE = "application/json"


def extract_document(raw: dict[str, Any], openapi_version: str = "") -> ParsedDocument:
    """Extract a :class:`~zapspec.models.ParsedDocument` from a raw OpenAPI dict.

    Args:
        raw: The raw OpenAPI document as returned by
            :func:`~zapspec.parser.loader.load_spec`.
        openapi_version: The validated ``openapi`` version string, as
            returned by :func:`~zapspec.parser.loader.validate_openapi_version`.

    Returns:
        A populated :class:`~zapspec.models.ParsedDocument`.  ``version``
        comes from ``info.version`` and ``base_url`` from the first entry
        of ``servers`` (empty when none is declared).

    Example::

        raw = load_spec("budget.yaml")
        document = extract_document(raw, validate_openapi_version(raw))
        for endpoint in document.endpoints:
            print(endpoint.method.value.upper(), endpoint.path)
    """
    resolver = SchemaResolver(raw)
    info = raw.get("info") or {}
    return ParsedDocument(
        title=info.get("title") or "Untitled API",
        version=str(info.get("version") or ""),
        openapi_version=openapi_version,
        base_url=extract_base_url(raw),
        endpoints=extract_endpoints(raw, resolver),
        schemas=resolver.component_schemas(),
    )


def extract_base_url(raw: dict[str, Any]) -> str:
    """Return the first server URL, or ``""`` when no server is declared."""
    servers = raw.get("servers") or []
    if servers and isinstance(servers[0], dict):
        return str(servers[0].get("url") or "")
    return ""


def extract_endpoints(
    raw: dict[str, Any],
    resolver: Optional[SchemaResolver] = None,
) -> list[EndpointDescriptor]:
    """Build one :class:`~zapspec.models.EndpointDescriptor` per path + method.

    Only ``get``, ``post``, ``put``, ``patch`` and ``delete`` operations are
    extracted.

    Args:
        raw: The raw OpenAPI document.
        resolver: Resolver to reuse; a new one is created for *raw* when
            omitted.

    Returns:
        Endpoints in document order.
    """
    if resolver is None:
        resolver = SchemaResolver(raw)

    endpoints: list[EndpointDescriptor] = []
    for path, path_item in (raw.get("paths") or {}).items():
        path_item = resolver.deref(path_item)
        if not isinstance(path_item, dict):
            continue

        path_params = path_item.get("parameters") or []

        for method_str, operation in path_item.items():
            if method_str not in _HTTP_METHODS or not isinstance(operation, dict):
                continue

            merged_params = _merge_parameters(
                [resolver.deref(p) for p in path_params],
                [resolver.deref(p) for p in operation.get("parameters") or []],
            )
            summary = operation.get("summary") or ""

            endpoints.append(
                EndpointDescriptor(
                    path=path,
                    method=HTTPMethod(method_str),
                    operation_id=operation.get("operationId"),
                    summary=summary,
                    description=operation.get("description") or summary,
                    tags=operation.get("tags") or [],
                    parameters=_extract_parameters(merged_params, resolver),
                    request_body=_extract_request_body(
                        operation.get("requestBody"), resolver
                    ),
                    responses=_extract_responses(
                        operation.get("responses") or {}, resolver
                    ),
                )
            )

    logger.debug("Extracted %d endpoints", len(endpoints))
    return endpoints


def _merge_parameters(
    path_params: list[Any],
    op_params: list[Any],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters override path-level parameters with the same
    name and location (``in`` field), per the OpenAPI spec.  Entries that
    are not dicts (broken references) are skipped.
    """
    op_params = [p for p in op_params if isinstance(p, dict)]
    overridden = {(p.get("name", ""), p.get("in", "")) for p in op_params}

    merged = [
        p
        for p in path_params
        if isinstance(p, dict) and (p.get("name", ""), p.get("in", "")) not in overridden
    ]
    merged.extend(op_params)
    return merged


def _extract_parameters(
    params_list: list[dict[str, Any]],
    resolver: SchemaResolver,
) -> list[APIParameter]:
    """Convert raw parameter dicts into :class:`~zapspec.models.APIParameter` models.

    Path parameters are always required regardless of the ``required``
    field in the source.  A single ``example`` is normalised into the
    ``examples`` map under the key ``default``.
    """
    parameters: list[APIParameter] = []

    for param in params_list:
        try:
            location = ParameterLocation(param.get("in", "query"))
        except ValueError:
            # header and cookie parameters never become input fields
            continue

        examples = dict(param.get("examples") or {})
        if not examples and "example" in param:
            examples = {"default": param["example"]}

        required = bool(param.get("required", False))
        if location == ParameterLocation.PATH:
            required = True

        parameters.append(
            APIParameter(
                name=param.get("name", ""),
                location=location,
                required=required,
                description=param.get("description"),
                schema=resolver.resolve(param.get("schema")),
                examples=examples,
            )
        )

    return parameters


def _json_media(content: Any) -> Optional[dict[str, Any]]:
    if not isinstance(content, dict):
        return None
    media = content.get(_JSON_CONTENT_TYPE)
    return media if isinstance(media, dict) else None


def _extract_request_body(
    body: Any,
    resolver: SchemaResolver,
) -> Optional[RequestBodyInfo]:
    """Extract the ``application/json`` request body, or ``None``."""
    body = resolver.deref(body)
    if not isinstance(body, dict):
        return None

    media = _json_media(body.get("content"))
    if media is None:
        return None

    return RequestBodyInfo(
        required=bool(body.get("required", False)),
        description=body.get("description"),
        schema=resolver.resolve(media.get("schema")),
        examples=_media_examples(media, resolver),
    )


def _extract_responses(
    responses: dict[str, Any],
    resolver: SchemaResolver,
) -> dict[str, ResponseInfo]:
    """Extract every declared response, keyed by status code string.

    A response without ``application/json`` content is kept with a ``None``
    schema and no examples so that no-content responses (``204``) remain
    visible to the response shaper.
    """
    result: dict[str, ResponseInfo] = {}

    for status_code, response in responses.items():
        response = resolver.deref(response)
        if not isinstance(response, dict):
            continue

        media = _json_media(response.get("content"))
        result[str(status_code)] = ResponseInfo(
            status_code=str(status_code),
            description=response.get("description"),
            schema=resolver.resolve(media.get("schema")) if media else None,
            examples=_media_examples(media, resolver) if media else {},
        )

    return result


def _media_examples(media: dict[str, Any], resolver: SchemaResolver) -> dict[str, Any]:
    examples = {
        name: resolver.deref(example)
        for name, example in (media.get("examples") or {}).items()
    }
    if not examples and "example" in media:
        examples = {"default": {"value": media["example"]}}
    return examples
