"""OpenAPI parser -- load documents, resolve schemas, and extract endpoints.

This sub-package is responsible for the first half of the zapspec pipeline:
turning a raw OpenAPI 3.x document (JSON or YAML, local file or remote URL) into
a :class:`~zapspec.models.ParsedDocument` that the generator can consume.

Typical usage::

    from zapspec.parser import extract_document, load_spec, validate_openapi_version

    raw = load_spec("https://petstore3.swagger.io/api/v3/openapi.json")
    document = extract_document(raw, validate_openapi_version(raw))

Sub-modules:

* :mod:`~zapspec.parser.loader` -- I/O layer (URL, file, stdin) plus format
  detection and OpenAPI version validation.
* :mod:`~zapspec.parser.resolver` -- ``$ref`` and composition resolution with
  circular-reference detection.
* :mod:`~zapspec.parser.extractor` -- Walks the document and produces
  :class:`~zapspec.models.EndpointDescriptor` objects.
"""

from zapspec.parser.extractor import extract_document, extract_endpoints
from zapspec.parser.loader import load_spec, validate_openapi_version
from zapspec.parser.resolver import SchemaResolver

__all__ = [
    "SchemaResolver",
    "extract_document",
    "extract_endpoints",
    "load_spec",
    "validate_openapi_version",
]
