"""Resolve ``$ref`` pointers and schema composition in OpenAPI documents.

OpenAPI documents commonly use ``$ref`` pointers (e.g.,
``{"$ref": "#/components/schemas/Pet"}``) and composition keywords
(``allOf``, ``oneOf``, ``anyOf``).  :class:`SchemaResolver` turns any schema
found in the document into a plain JSON-Schema dictionary that contains
neither, so that the generator can inspect ``type``, ``properties`` and
``items`` directly.

Resolution rules:

* ``$ref`` follows an internal JSON pointer (``#/a/b``, with RFC 6901
  ``~0`` / ``~1`` unescaping).  A pointer that leads nowhere, or an external
  reference, resolves to ``None`` and a warning is logged; callers treat a
  ``None`` schema as an untyped string.
* ``allOf`` merges the ``properties`` of every member (later members win on
  key conflicts) and unions their ``required`` lists.  The result is always
  an ``object``.  Conflicting property types are not detected.
* ``oneOf`` and ``anyOf`` resolve to their first resolvable member.
* Resolution recurses into ``properties``, ``items`` and schema-valued
  ``additionalProperties``.

Circular references are detected with a stack of the refs currently being
expanded.  Re-entering a ref on that stack yields a placeholder object
(:func:`circular_placeholder`) instead of recursing.  Completed ref
expansions are memoised per resolver instance, so every later occurrence of
the same ref shares one canonical result.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

CIRCULAR_REF_KEY = "x-circular-ref"

_NESTED_SCHEMA_KEYS = ("items", "additionalProperties", "not")


def circular_placeholder(ref: str) -> dict[str, Any]:
    """Return the stand-in used where *ref* would recurse into itself."""
    return {"type": "object", CIRCULAR_REF_KEY: ref}


class SchemaResolver:
    """Resolve schemas against one OpenAPI document.

    The resolver never mutates the document it was given; every resolved
    schema is a new dictionary.

    Args:
        document: The raw OpenAPI document, as returned by
            :func:`~zapspec.parser.loader.load_spec`.

    Example::

        resolver = SchemaResolver(raw)
        pet = resolver.resolve({"$ref": "#/components/schemas/Pet"})
        pet["properties"]["name"]   # {"type": "string"}
    """

    def __init__(self, document: dict[str, Any]) -> None:
        self._document = document
        self._resolved: dict[str, Optional[dict[str, Any]]] = {}
        self._stack: list[str] = []

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def resolve(self, schema: Any) -> Optional[dict[str, Any]]:
        """Return a ``$ref``-free, composition-free copy of *schema*.

        Args:
            schema: A schema object from anywhere in the document.

        Returns:
            The resolved schema, or ``None`` when *schema* is not a dict or
            its reference cannot be followed.
        """
        if not isinstance(schema, dict):
            return None

        if "$ref" in schema:
            return self._resolve_ref(schema["$ref"])

        if "allOf" in schema:
            return self._merge_all_of(schema)

        for keyword in ("oneOf", "anyOf"):
            if keyword in schema:
                return self._first_member(schema, keyword)

        result: dict[str, Any] = {}
        for key, value in schema.items():
            if key == "properties" and isinstance(value, dict):
                result[key] = self._resolve_properties(value)
            elif key in _NESTED_SCHEMA_KEYS and isinstance(value, dict):
                result[key] = self.resolve(value)
            else:
                result[key] = copy.deepcopy(value)
        return result

    def deref(self, obj: Any) -> Any:
        """Follow ``$ref`` chains on a non-schema object.

        Parameters, request bodies and responses may themselves be
        references into ``components``.  Their embedded schemas are left
        untouched; pass them to :meth:`resolve` separately.

        Returns:
            The referenced object, *obj* itself when it is not a reference,
            or ``None`` when the chain is broken or circular.
        """
        seen: set[str] = set()
        while isinstance(obj, dict) and "$ref" in obj:
            ref = obj["$ref"]
            if ref in seen:
                logger.warning("Circular $ref chain at %s", ref)
                return None
            seen.add(ref)
            obj = self.lookup(ref)
        return obj

    def lookup(self, ref: str) -> Any:
        """Return the raw value a JSON pointer names, or ``None``.

        Only internal references (``#/...``) are followed.  External
        references and dangling pointers are logged and return ``None``.
        """
        if not isinstance(ref, str) or not ref.startswith("#/"):
            logger.warning("Unsupported $ref %r: only internal references are followed", ref)
            return None

        current: Any = self._document
        for segment in ref[2:].split("/"):
            # RFC 6901 escaping
            segment = segment.replace("~1", "/").replace("~0", "~")
            if isinstance(current, dict) and segment in current:
                current = current[segment]
            elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
                current = current[int(segment)]
            else:
                logger.warning("Cannot resolve $ref %r: '%s' not found", ref, segment)
                return None
        return current

    def component_schemas(self) -> dict[str, Any]:
        """Resolve every entry of ``components.schemas``.

        Returns:
            A mapping of schema name to resolved schema.  Names whose schema
            cannot be resolved are omitted.
        """
        raw = self._document.get("components", {}).get("schemas", {})
        schemas: dict[str, Any] = {}
        for name in raw:
            resolved = self._resolve_ref(f"#/components/schemas/{_escape(name)}")
            if resolved is not None:
                schemas[name] = resolved
        return schemas

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _resolve_ref(self, ref: str) -> Optional[dict[str, Any]]:
        if ref in self._stack:
            return circular_placeholder(ref)
        if ref in self._resolved:
            return copy.deepcopy(self._resolved[ref])

        target = self.lookup(ref)
        if target is None:
            return None

        self._stack.append(ref)
        try:
            resolved = self.resolve(target)
        finally:
            self._stack.pop()

        self._resolved[ref] = resolved
        return copy.deepcopy(resolved)

    def _resolve_properties(self, properties: dict[str, Any]) -> dict[str, Any]:
        resolved: dict[str, Any] = {}
        for name, prop in properties.items():
            resolved[name] = self.resolve(prop)
        return resolved

    def _merge_all_of(self, schema: dict[str, Any]) -> dict[str, Any]:
        merged: dict[str, Any] = {"type": "object", "properties": {}, "required": []}
        for member in schema["allOf"]:
            resolved = self.resolve(member)
            if not resolved:
                continue
            merged["properties"].update(resolved.get("properties") or {})
            for name in resolved.get("required") or []:
                if name not in merged["required"]:
                    merged["required"].append(name)

        # Sibling keywords on the composing schema still apply.
        for key in ("description", "example", "title"):
            if key in schema:
                merged[key] = copy.deepcopy(schema[key])
        if "properties" in schema:
            merged["properties"].update(self._resolve_properties(schema["properties"]))
        for name in schema.get("required") or []:
            if name not in merged["required"]:
                merged["required"].append(name)
        return merged

    def _first_member(self, schema: dict[str, Any], keyword: str) -> Optional[dict[str, Any]]:
        members = schema.get(keyword) or []
        for member in members:
            resolved = self.resolve(member)
            if resolved is not None:
                if len(members) > 1:
                    logger.debug(
                        "%s with %d members resolved to its first member", keyword, len(members)
                    )
                if "description" in schema and "description" not in resolved:
                    resolved["description"] = schema["description"]
                return resolved
        return None


def _escape(name: str) -> str:
    return name.replace("~", "~0").replace("/", "~1")
