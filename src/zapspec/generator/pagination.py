"""Plan and drive offset/limit pagination for polling triggers.

A trigger is paginated when all of the following hold:

* it is not hidden (dropdown triggers always make a single request);
* the endpoint accepts both a ``limit`` and an ``offset`` query parameter;
* the success response declares a ``has_more`` property, or an array
  property was configured or detected.

:func:`collect_pages` is the loop contract renderers reproduce: request
pages with ``offset`` advancing by ``limit`` and stop as soon as a page
reports ``has_more`` other than ``True`` or comes back short.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Optional

from zapspec.generator.field_mapper import schema_properties
from zapspec.generator.request_plan import to_number
from zapspec.generator.response import extract_items, success_schema
from zapspec.models import ArrayExtraction, EndpointDescriptor, ExtractionKind, PaginationPlan

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100

LIMIT_PARAM = "limit"
OFFSET_PARAM = "offset"
HAS_MORE_PROPERTY = "has_more"


def plan_pagination(
    endpoint: EndpointDescriptor,
    extraction: ArrayExtraction,
    hidden: bool = False,
    fixed_query: Optional[dict[str, Any]] = None,
) -> Optional[PaginationPlan]:
    """Return a :class:`~zapspec.models.PaginationPlan`, or ``None`` when not paginated.

    Args:
        endpoint: The polled GET endpoint.
        extraction: How the trigger locates items in a page.
        hidden: Hidden triggers are never paginated.
        fixed_query: Configured query values; a fixed ``limit`` becomes the
            page size.
    """
    if hidden:
        return None

    query_names = {p.name for p in endpoint.query_parameters}
    if LIMIT_PARAM not in query_names or OFFSET_PARAM not in query_names:
        return None

    has_more = HAS_MORE_PROPERTY in schema_properties(success_schema(endpoint))
    has_array_property = extraction.kind == ExtractionKind.PROPERTY
    if not (has_more or has_array_property):
        return None

    page_size = to_number((fixed_query or {}).get(LIMIT_PARAM))
    plan = PaginationPlan(
        limit_param=LIMIT_PARAM,
        offset_param=OFFSET_PARAM,
        has_more_property=HAS_MORE_PROPERTY,
        page_size=int(page_size) if page_size and page_size > 0 else DEFAULT_PAGE_SIZE,
        extraction=extraction,
    )
    logger.debug("Paginating %s %s with page size %d", endpoint.method.value, endpoint.path, plan.page_size)
    return plan


def collect_pages(
    plan: PaginationPlan,
    fetch_page: Callable[[dict[str, Any]], Any],
    limit: Optional[int] = None,
) -> list[Any]:
    """Fetch every page and return all items in order.

    Args:
        plan: The trigger's pagination plan.
        fetch_page: Called with the paging query parameters
            (``{"limit": ..., "offset": ...}``); returns the decoded payload.
        limit: Page size requested by the user; defaults to the plan's.

    Returns:
        Items from all pages, concatenated.

    Example::

        pages = iter([
            {"items": [1, 2], "has_more": True},
            {"items": [3], "has_more": False},
        ])
        collect_pages(plan, lambda params: next(pages), limit=2)   # [1, 2, 3]
    """
    page_size = limit or plan.page_size
    offset = 0
    results: list[Any] = []

    while True:
        payload = fetch_page({plan.limit_param: page_size, plan.offset_param: offset})
        page = extract_items(plan.extraction, payload)
        results.extend(page)

        has_more = isinstance(payload, dict) and payload.get(plan.has_more_property) is True
        if not has_more or len(page) != page_size:
            return results
        offset += page_size
