"""Map resolved OpenAPI schemas to input field descriptors.

This module bridges the gap between JSON Schema and the flat, typed input
forms of the target platform.  It converts parameters and body properties
into :class:`~zapspec.models.FieldDescriptor` models and provides the naming
helpers (labels, nouns, title case) used throughout the generator.

**Mapping rules** (applied by :func:`schema_to_field`, first match wins):

* ``string`` + ``format: date`` becomes a ``string`` field with a
  ``YYYY-MM-DD`` placeholder and a format hint in its help text.
* ``string`` + ``format: date-time`` becomes a ``datetime`` field.
* ``enum`` on a string becomes a ``string`` field with ``choices``.
* ``integer`` / ``number`` become ``number`` fields (with ``choices`` when
  an ``enum`` is declared); ``boolean`` becomes ``boolean``.
* ``array`` and ``object`` are entered as JSON text in a ``string`` field.
* Anything else, including a missing schema, becomes an untyped ``string``.

A schema ``default`` is copied only when the resulting field is a string
field; the platform rejects defaults on other types and the value is never
coerced to fit.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Iterator
from typing import Any, Optional

from zapspec.models import APIParameter, FieldDescriptor, FieldType


DATE_FORMAT_HINT = "YYYY-MM-DD"


# ---------------------------------------------------------------------------
# Schema inspection
# ---------------------------------------------------------------------------


def schema_type(schema: Any) -> Optional[str]:
    """Return the ``type`` of *schema*, or ``None`` when it has none.

    Handles OpenAPI 3.1 type arrays (e.g. ``["string", "null"]``) by
    returning the first non-null entry.
    """
    if not isinstance(schema, dict):
        return None
    type_value = schema.get("type")
    if isinstance(type_value, list):
        non_null = [t for t in type_value if t != "null"]
        return non_null[0] if non_null else None
    if type_value is None and isinstance(schema.get("properties"), dict):
        return "object"
    return type_value


def schema_properties(schema: Any) -> dict[str, Any]:
    """Return the ``properties`` map of *schema* (empty when absent)."""
    if not isinstance(schema, dict):
        return {}
    properties = schema.get("properties")
    return properties if isinstance(properties, dict) else {}


# ---------------------------------------------------------------------------
# Field mapping
# ---------------------------------------------------------------------------


def schema_to_field(
    schema: Optional[dict[str, Any]],
    key: str,
    required: bool = False,
    description: Optional[str] = None,
) -> FieldDescriptor:
    """Convert one schema into a scalar :class:`~zapspec.models.FieldDescriptor`.

    Args:
        schema: The resolved schema, or ``None`` when it could not be
            resolved.
        key: The field key (property or parameter name).
        required: Whether the user must supply a value.
        description: Help text to use instead of ``schema["description"]``.

    Returns:
        A scalar field (``type`` is always set, ``children`` is empty).

    Example::

        >>> schema_to_field({"type": "string", "format": "date"}, "due_on").placeholder
        'YYYY-MM-DD'
        >>> schema_to_field({"type": "integer", "default": 5}, "limit").default is None
        True
    """
    label = format_label(key)
    if not schema:
        return FieldDescriptor(
            key=key,
            label=label,
            type=FieldType.STRING,
            help_text=description or "",
            required=required,
        )

    help_text = description or schema.get("description") or ""
    field_type = FieldType.STRING
    choices: Optional[list[str]] = None
    placeholder: Optional[str] = None
    kind = schema_type(schema)
    enum_values = schema.get("enum")

    if kind == "string":
        fmt = schema.get("format")
        if fmt == "date":
            if help_text and DATE_FORMAT_HINT not in help_text:
                help_text = f"{help_text} (Format: {DATE_FORMAT_HINT})"
            elif not help_text:
                help_text = f"Format: {DATE_FORMAT_HINT}"
            placeholder = DATE_FORMAT_HINT
        elif fmt == "date-time":
            field_type = FieldType.DATETIME
        elif enum_values:
            choices = [str(v) for v in enum_values]
    elif kind in ("integer", "number"):
        field_type = FieldType.NUMBER
        if enum_values:
            choices = [str(v) for v in enum_values]
    elif kind == "boolean":
        field_type = FieldType.BOOLEAN
    elif kind == "array":
        help_text = f"{help_text} (JSON array format)".strip()
    elif kind == "object":
        help_text = f"{help_text} (JSON object format)".strip()

    default = None
    if field_type == FieldType.STRING and schema.get("default") is not None:
        default = default_text(schema["default"])

    return FieldDescriptor(
        key=key,
        label=label,
        type=field_type,
        help_text=help_text,
        required=required,
        choices=choices,
        default=default,
        placeholder=placeholder,
    )


def default_text(value: Any) -> str:
    """Render a configured or schema default as the text a string field holds.

    Example::

        >>> default_text(5), default_text(True), default_text("eur")
        ('5', 'true', 'eur')
    """
    return value if isinstance(value, str) else json.dumps(value)


def parameters_to_fields(
    parameters: Iterable[APIParameter],
    exclude: Iterable[str] = (),
) -> list[FieldDescriptor]:
    """Map path and query parameters to fields, skipping names in *exclude*.

    The parameter's own description wins over its schema's description.
    """
    excluded = set(exclude)
    fields: list[FieldDescriptor] = []
    for param in parameters:
        if param.name in excluded:
            continue
        schema = param.schema_ or {}
        description = param.description or schema.get("description")
        fields.append(schema_to_field(schema, param.name, param.required, description))
    return fields


def properties_to_fields(
    schema: Optional[dict[str, Any]],
    exclude: Iterable[str] = (),
) -> list[FieldDescriptor]:
    """Map the properties of an object schema to fields.

    Required-ness comes from the schema's ``required`` list.  Properties
    named in *exclude* are skipped.
    """
    excluded = set(exclude)
    required = set((schema or {}).get("required") or [])
    return [
        schema_to_field(prop, name, name in required)
        for name, prop in schema_properties(schema).items()
        if name not in excluded
    ]


def iter_fields(fields: Iterable[FieldDescriptor]) -> Iterator[FieldDescriptor]:
    """Yield every field in *fields*, descending into children."""
    for field in fields:
        yield field
        yield from iter_fields(field.children)


def find_field(fields: Iterable[FieldDescriptor], key: str) -> Optional[FieldDescriptor]:
    """Return the first field (top level or nested) named *key*."""
    for field in iter_fields(fields):
        if field.key == key:
            return field
    return None


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------

_MINOR_WORDS = frozenset(
    {
        "a", "an", "and", "as", "at", "but", "by", "for", "in",
        "nor", "of", "on", "or", "the", "to", "via", "per", "vs", "vs.",
    }
)

_ACRONYMS: dict[str, str] = {
    "id": "ID",
    "url": "URL",
    "urls": "URLs",
    "api": "API",
    "http": "HTTP",
    "https": "HTTPS",
    "json": "JSON",
    "xml": "XML",
    "csv": "CSV",
    "pdf": "PDF",
    "html": "HTML",
    "css": "CSS",
    "js": "JS",
    "ui": "UI",
    "ux": "UX",
    "ip": "IP",
    "dns": "DNS",
    "ssl": "SSL",
    "tls": "TLS",
    "oauth": "OAuth",
    "oauth2": "OAuth2",
    "jwt": "JWT",
    "rest": "REST",
    "soap": "SOAP",
    "gdp": "GDP",
    "gdpr": "GDPR",
    "crm": "CRM",
    "erp": "ERP",
    "sdk": "SDK",
    "sso": "SSO",
}

_TRAILING_PUNCT_RE = re.compile(r"[.,!?;:]+$")
_NOUN_PREFIX_RE = re.compile(r"^(get|create|update|delete|list|find)", re.IGNORECASE)


def format_label(name: str) -> str:
    """Turn a field key into a human label.

    Underscores and camelCase boundaries become word breaks; each word is
    capitalised.

    Example::

        >>> format_label("payee_name")
        'Payee Name'
        >>> format_label("categoryId")
        'Category Id'
    """
    spaced = re.sub(r"([A-Z])", r" \1", name.replace("_", " "))
    return " ".join(word[:1].upper() + word[1:].lower() for word in spaced.split())


def title_case(text: Optional[str]) -> Optional[str]:
    """Title-case a display label.

    Minor words (articles, short conjunctions and prepositions) stay lower
    case except in first position, known acronyms are upper-cased (``id``
    becomes ``ID``, ``oauth`` becomes ``OAuth``) and trailing punctuation is
    preserved.

    Example::

        >>> title_case("get the user by id")
        'Get the User by ID'
    """
    if not text:
        return text

    words = []
    for index, word in enumerate(text.split()):
        match = _TRAILING_PUNCT_RE.search(word)
        punct = match.group(0) if match else ""
        clean = word[: len(word) - len(punct)]
        if not clean:
            words.append(word)
            continue

        lower = clean.lower()
        if lower in _ACRONYMS:
            words.append(_ACRONYMS[lower] + punct)
        elif index > 0 and lower in _MINOR_WORDS:
            words.append(lower + punct)
        else:
            words.append(clean[0].upper() + clean[1:].lower() + punct)
    return " ".join(words)


def _singularize(word: str) -> str:
    if word.endswith("ies"):
        return word[:-3] + "y"
    if word.endswith("s") and len(word) > 1:
        return word[:-1]
    return word


def get_noun(operation_id: Optional[str], path: str) -> str:
    """Derive the singular resource noun of an operation.

    The operation id wins: verb prefixes (``get``, ``create``, ``list`` ...)
    and ``All`` / ``ById`` suffixes are stripped and the rest singularised.
    Without an operation id the last literal path segment is used.

    Example::

        >>> get_noun("getAllCategories", "/categories")
        'Category'
        >>> get_noun(None, "/budgets/{id}/transactions")
        'Transaction'
        >>> get_noun("getMe", "/me")
        'User'
    """
    if operation_id:
        cleaned = _NOUN_PREFIX_RE.sub("", operation_id)
        cleaned = re.sub(r"All$", "", cleaned)
        cleaned = re.sub(r"ById$", "", cleaned)
        if cleaned.lower() == "me":
            return "User"
        cleaned = _singularize(cleaned)
        if cleaned.startswith("All") and len(cleaned) > 3:
            cleaned = cleaned[3:]
        if cleaned:
            return cleaned[0].upper() + cleaned[1:]

    segments = [s for s in path.split("/") if s and not s.startswith("{")]
    if segments:
        last = segments[-1]
        if last == "me":
            return "User"
        last = _singularize(last)
        return last[0].upper() + last[1:]

    return "Item"


def pluralize(noun: str) -> str:
    """Return a simple English plural of *noun*.

    Example::

        >>> pluralize("category")
        'categories'
        >>> pluralize("Tag")
        'Tags'
    """
    if not noun:
        return noun
    lower = noun.lower()
    if lower.endswith("y") and len(noun) > 1 and lower[-2] not in "aeiou":
        return noun[:-1] + "ies"
    if lower.endswith(("s", "x", "z", "ch", "sh")):
        return noun + "es"
    return noun + "s"


def slugify(name: str) -> str:
    """Lower-case *name* and replace whitespace runs with underscores."""
    return re.sub(r"\s+", "_", name.strip().lower())


def path_to_key(path: str) -> str:
    """Build an operation key from a path when no operation id exists.

    Example::

        >>> path_to_key("/budgets/{id}/transactions")
        'budgets_{id}_transactions'
    """
    return path.replace("/", "_").lstrip("_")
