"""Load OpenAPI documents from a URL, local file, or stdin.

This module handles all I/O for fetching raw OpenAPI documents and converting
them into Python dictionaries.  It supports both JSON and YAML formats with
automatic format detection, and validates that the document declares a
supported OpenAPI version (3.0.x or 3.1.x).

The two public functions are:

* :func:`load_spec` -- Load and parse a document from any supported source,
  optionally through a :class:`~zapspec.cache.SchemaCache`.
* :func:`validate_openapi_version` -- Check and return the ``openapi`` version
  string, rejecting Swagger 2.x and unsupported versions.

After loading, the raw dict should be passed to
:func:`~zapspec.parser.extractor.extract_document`.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from pathlib import Path
from typing import Any, Optional

import httpx
import yaml

from zapspec.cache import SchemaCache
from zapspec.exceptions import ConnectionError_, SpecParseError

logger = logging.getLogger(__name__)


def load_spec(
    source: str,
    cache: Optional[SchemaCache] = None,
    refresh: bool = False,
) -> dict[str, Any]:
    """Load an OpenAPI document from URL, file path, or stdin ('-').

    Supports JSON and YAML formats.
    Auto-detects format from content/extension.

    Args:
        source: A URL (http/https), file path, or '-' for stdin.
        cache: Optional schema cache consulted for URL sources.
        refresh: Ignore any cached copy and fetch the URL again.

    Returns:
        The parsed document as a dictionary.

    Raises:
        SpecParseError: If the source cannot be loaded or parsed.
        ConnectionError_: If a URL cannot be reached.
    """
    if source == "-":
        return _load_from_stdin()
    elif source.startswith(("http://", "https://")):
        return _load_from_url(source, cache=cache, refresh=refresh)
    else:
        return _load_from_file(source)


def _load_from_stdin() -> dict[str, Any]:
    """Read a document from stdin.

    Raises:
        SpecParseError: If stdin is empty or content cannot be parsed.
    """
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise SpecParseError(f"Failed to read from stdin: {exc}") from exc

    if not content.strip():
        raise SpecParseError("No input received from stdin")

    return _parse_content(content)


def _load_from_url(
    url: str,
    cache: Optional[SchemaCache] = None,
    refresh: bool = False,
) -> dict[str, Any]:
    """Fetch a document from *url*, going through *cache* when given.

    A cache hit is parsed directly unless *refresh* is set.  A successful
    fetch always overwrites the cached copy.

    Args:
        url: The HTTP(S) URL to fetch.
        cache: Optional schema cache.
        refresh: Skip the cache lookup.

    Returns:
        The parsed document dictionary.

    Raises:
        SpecParseError: If the server answers with an error status or the
            content cannot be parsed.
        ConnectionError_: On network-level failures.
    """
    if cache is not None and not refresh:
        cached = cache.get(url)
        if cached is not None:
            logger.debug("Using cached schema for %s", url)
            return _parse_content(cached)

    logger.info("Fetching schema from %s", url)
    try:
        response = httpx.get(url, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SpecParseError(
            f"HTTP {exc.response.status_code} fetching schema from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise ConnectionError_(f"Failed to fetch schema from {url}: {exc}") from exc

    content = response.text
    result = _parse_content(content, hint=_format_hint(response.headers.get("content-type", "")))
    if cache is not None:
        cache.set(url, content)
    return result


def _load_from_file(path: str) -> dict[str, Any]:
    """Load a document from a local file.

    The extension picks the parser; unknown extensions are sniffed.

    Raises:
        SpecParseError: If the file cannot be read or content cannot be parsed.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise SpecParseError(f"Schema file not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecParseError(f"Failed to read schema file {path}: {exc}") from exc

    if not content.strip():
        raise SpecParseError(f"Schema file is empty: {path}")

    return _parse_content(content, hint=_format_hint(file_path.suffix))


def _format_hint(marker: str) -> str:
    """Map a file suffix or a Content-Type header to ``"json"``, ``"yaml"`` or ``""``."""
    marker = marker.lower()
    if "json" in marker:
        return "json"
    if "yaml" in marker or "yml" in marker:
        return "yaml"
    return ""


def _as_document(result: Any) -> dict[str, Any]:
    if not isinstance(result, dict):
        kind = "empty document" if result is None else type(result).__name__
        raise SpecParseError(f"Schema must be a JSON/YAML object (got {kind})")
    return result


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse *content* as JSON or YAML.

    A ``"json"`` hint parses JSON only and a ``"yaml"`` hint YAML only.
    Without a hint JSON is tried first, then YAML.

    Raises:
        SpecParseError: If no allowed format accepts the content, or the
            top level is not a mapping.
    """
    errors: list[str] = []

    if hint != "yaml":
        try:
            return _as_document(json.loads(content))
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise SpecParseError(f"Invalid JSON: {exc}") from exc
            errors.append(f"JSON error: {exc}")

    try:
        return _as_document(yaml.safe_load(content))
    except yaml.YAMLError as exc:
        errors.append(f"YAML error: {exc}")

    raise SpecParseError("\n  ".join(["Failed to parse schema as JSON or YAML", *errors]))


_SUPPORTED_VERSION_RE = re.compile(r"^3\.[01](\.\d+)?$")


def validate_openapi_version(spec: dict[str, Any]) -> str:
    """Return the document's ``openapi`` version if zapspec can compile it.

    Example::

        >>> validate_openapi_version({"openapi": "3.1.0"})
        '3.1.0'

    Raises:
        SpecParseError: For Swagger 2.x documents, a missing ``openapi``
            field, or any version other than 3.0.x and 3.1.x.
    """
    if "swagger" in spec:
        raise SpecParseError(
            f"Swagger {spec['swagger']} is not supported; convert the document "
            "to OpenAPI 3.x first (https://converter.swagger.io)"
        )

    if "openapi" not in spec:
        raise SpecParseError("Missing 'openapi' field. Is this an OpenAPI 3.x document?")

    version = str(spec["openapi"]).strip()
    if not _SUPPORTED_VERSION_RE.match(version):
        raise SpecParseError(
            f"Unsupported OpenAPI version: {version} (expected 3.0.x or 3.1.x)"
        )
    return version
