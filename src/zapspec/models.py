"""Canonical Pydantic models shared across all zapspec modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Configuration models** -- deserialised from the JSON configuration files
handed to the compiler (camelCase keys are accepted through aliases):
    :class:`DynamicFieldConfig`, :class:`FlattenArrayConfig`,
    :class:`ResponseExtractionConfig`, :class:`SimplifyConfig`,
    :class:`HelperFieldConfig`, :class:`ActionConfig`, :class:`LabelConfig`,
    :class:`TriggerConfig`, :class:`AuthConfig`, :class:`GeneratorConfig`
    and :class:`Settings`.

**Parser output models** -- produced by the OpenAPI parser and consumed by
the generator:
    :class:`HTTPMethod`, :class:`ParameterLocation`, :class:`APIParameter`,
    :class:`RequestBodyInfo`, :class:`ResponseInfo`,
    :class:`EndpointDescriptor` and :class:`ParsedDocument`.

**Descriptor models** -- the compiler's output, handed to a renderer:
    :class:`FieldDescriptor`, :class:`DynamicBinding`, the request plan
    family (:class:`RequestPlan`, :class:`QueryPlan`, :class:`BodyPlan`,
    :class:`FlattenPlan`, :class:`HelperMergePlan`), the response family
    (:class:`ResponsePlan`, :class:`ArrayExtraction`,
    :class:`PaginationPlan`, :class:`LabelPlan`, :class:`FilterPlan`) and
    the :data:`OperationDescriptor` union of :class:`ActionDescriptor` and
    :class:`TriggerDescriptor`.

Schemas themselves are kept as plain JSON-Schema dictionaries; after
:class:`~zapspec.parser.resolver.SchemaResolver` has run they never contain
a ``$ref``.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


# --- Configuration ---


class DynamicFieldConfig(BaseModel):
    """Binds an input field to a dropdown populated by another trigger.

    Example::

        DynamicFieldConfig(sourceTrigger="categories", valueField="id")
    """

    model_config = ConfigDict(populate_by_name=True)

    source_trigger: str = Field(alias="sourceTrigger")
    value_field: str = Field(default="id", alias="valueField")


class FlattenArrayConfig(BaseModel):
    """Collapse a request body of the form ``{arrayField: [item]}`` into one item's fields."""

    model_config = ConfigDict(populate_by_name=True)

    array_field: str = Field(alias="arrayField")
    item_schema: str = Field(
        alias="itemSchema", description="Name under components.schemas"
    )
    public_name: Optional[str] = Field(
        default=None,
        alias="publicName",
        description="When set, item fields are grouped under one parent field",
    )


class ResponseExtractionConfig(BaseModel):
    """Controls how an action unwraps an object response that holds an array."""

    model_config = ConfigDict(populate_by_name=True)

    extract_single: bool = Field(default=False, alias="extractSingle")
    array_property: Optional[str] = Field(default=None, alias="arrayProperty")


class SimplifyConfig(BaseModel):
    """Simplified presentation of an action's request and response."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = False
    name: Optional[str] = Field(
        default=None, description="Display label override"
    )
    flatten_array: Optional[FlattenArrayConfig] = Field(
        default=None, alias="flattenArray"
    )
    additional_properties: list[str] = Field(
        default_factory=list, alias="additionalProperties"
    )
    response_extraction: Optional[ResponseExtractionConfig] = Field(
        default=None, alias="responseExtraction"
    )


class HelperFieldConfig(BaseModel):
    """A synthetic input whose values are merged into a real body property.

    Example::

        HelperFieldConfig(
            label="Add Tag",
            mapTo="tag_ids",
            dynamicFields={"sourceTrigger": "tags"},
        )
    """

    model_config = ConfigDict(populate_by_name=True)

    map_to: str = Field(alias="mapTo")
    label: Optional[str] = None
    type: str = "string"
    help_text: Optional[str] = Field(default=None, alias="helpText")
    dynamic_fields: Optional[DynamicFieldConfig] = Field(
        default=None, alias="dynamicFields"
    )


class ActionConfig(BaseModel):
    """Per-operation transform configuration, keyed by operation id.

    Each block maps to one stage of the
    :class:`~zapspec.generator.transforms.TransformPipeline`.
    """

    model_config = ConfigDict(populate_by_name=True)

    omit: bool = False
    hide_query_params: list[str] = Field(
        default_factory=list, alias="hideQueryParams"
    )
    hide_request_body_properties: list[str] = Field(
        default_factory=list, alias="hideRequestBodyProperties"
    )
    field_defaults: dict[str, Any] = Field(
        default_factory=dict, alias="fieldDefaults"
    )
    simplify: Optional[SimplifyConfig] = None
    dynamic_fields: dict[str, DynamicFieldConfig] = Field(
        default_factory=dict, alias="dynamicFields"
    )
    helper_fields: dict[str, HelperFieldConfig] = Field(
        default_factory=dict, alias="helperFields"
    )

    @property
    def simplified(self) -> bool:
        """Whether a ``simplify`` block is present and enabled."""
        return self.simplify is not None and self.simplify.enabled


class LabelConfig(BaseModel):
    """Dropdown label template for hidden triggers (``${field.path}`` placeholders)."""

    template: Optional[str] = None
    fallback: Optional[str] = None


class TriggerConfig(BaseModel):
    """A polling trigger over a GET list endpoint, keyed by trigger key."""

    model_config = ConfigDict(populate_by_name=True)

    endpoint: str = Field(description="Path of the GET endpoint to poll")
    name: Optional[str] = None
    title: Optional[str] = Field(
        default=None, description='Must start with "Triggers when "'
    )
    description: Optional[str] = None
    array_property: Optional[str] = Field(default=None, alias="arrayProperty")
    query_params: dict[str, Any] = Field(
        default_factory=dict,
        alias="queryParams",
        description="Fixed query values; removed from the trigger's inputs",
    )
    filters: dict[str, Any] = Field(default_factory=dict)
    filter_code: Optional[str] = Field(default=None, alias="filterCode")
    hidden: bool = False
    label: Optional[LabelConfig] = None


class AuthConfig(BaseModel):
    """Single bearer-token authentication shared by every operation."""

    model_config = ConfigDict(populate_by_name=True)

    test_endpoint: str = Field(default="/me", alias="testEndpoint")
    auth_type: str = Field(default="custom", alias="authType")
    field_key: str = Field(default="access_token", alias="fieldKey")
    field_label: str = Field(default="API Key", alias="fieldLabel")
    field_type: str = Field(default="password", alias="fieldType")
    help_text: str = Field(default="Enter your API key", alias="helpText")
    help_link: Optional[str] = Field(default=None, alias="helpLink")
    connection_label: dict[str, Any] = Field(
        default_factory=lambda: {"type": "string", "value": "API Account"},
        alias="connectionLabel",
    )


class GeneratorConfig(BaseModel):
    """The three configuration maps handed to the compiler together."""

    actions: dict[str, ActionConfig] = Field(default_factory=dict)
    triggers: dict[str, TriggerConfig] = Field(default_factory=dict)
    authentication: AuthConfig = Field(default_factory=AuthConfig)

    def action(self, key: str) -> ActionConfig:
        """Return the configuration for *key*, or an empty one."""
        return self.actions.get(key) or ActionConfig()


class Settings(BaseModel):
    """Effective run settings after CLI / environment / default precedence."""

    schema_url: str
    output_dir: str
    config_dir: str
    endpoint: Optional[str] = None
    version: Optional[str] = None
    update_cache: bool = False
    clean: bool = False


# --- Parser output ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods compiled into operations."""

    GET = "get"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"


class ParameterLocation(str, enum.Enum):
    """Parameter locations that become input fields.

    Header and cookie parameters are dropped during extraction.
    """

    PATH = "path"
    QUERY = "query"


class APIParameter(BaseModel):
    """A single path or query parameter with its resolved schema."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    location: ParameterLocation
    required: bool = False
    description: Optional[str] = None
    schema_: Optional[dict[str, Any]] = Field(default=None, alias="schema")
    examples: dict[str, Any] = Field(default_factory=dict)


class RequestBodyInfo(BaseModel):
    """The ``application/json`` request body of an operation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    required: bool = False
    description: Optional[str] = None
    schema_: Optional[dict[str, Any]] = Field(default=None, alias="schema")
    examples: dict[str, Any] = Field(default_factory=dict)


class ResponseInfo(BaseModel):
    """One declared response; ``schema_`` is ``None`` without JSON content."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status_code: str
    description: Optional[str] = None
    schema_: Optional[dict[str, Any]] = Field(default=None, alias="schema")
    examples: dict[str, Any] = Field(default_factory=dict)


class EndpointDescriptor(BaseModel):
    """One path + method combination of the source document.

    Immutable once extracted; every later stage reads it but never writes.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    method: HTTPMethod
    operation_id: Optional[str] = None
    summary: str = ""
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    parameters: list[APIParameter] = Field(default_factory=list)
    request_body: Optional[RequestBodyInfo] = None
    responses: dict[str, ResponseInfo] = Field(default_factory=dict)

    @property
    def path_parameters(self) -> list[APIParameter]:
        return [p for p in self.parameters if p.location == ParameterLocation.PATH]

    @property
    def query_parameters(self) -> list[APIParameter]:
        return [p for p in self.parameters if p.location == ParameterLocation.QUERY]

    @property
    def body_schema(self) -> Optional[dict[str, Any]]:
        """The resolved request body schema, or ``None``."""
        if self.request_body is None:
            return None
        return self.request_body.schema_


class ParsedDocument(BaseModel):
    """Everything the generator needs from an OpenAPI document."""

    title: str = "Untitled API"
    version: str = ""
    openapi_version: str = ""
    base_url: str = ""
    endpoints: list[EndpointDescriptor] = Field(default_factory=list)
    schemas: dict[str, Any] = Field(
        default_factory=dict,
        description="Resolved components.schemas, keyed by schema name",
    )

    def find_endpoint(self, path: str, method: HTTPMethod) -> Optional[EndpointDescriptor]:
        """Return the first endpoint matching *path* and *method*."""
        for endpoint in self.endpoints:
            if endpoint.path == path and endpoint.method == method:
                return endpoint
        return None


# --- Fields ---


class FieldType(str, enum.Enum):
    """Primitive input field types understood by the target platform."""

    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    PASSWORD = "password"
    FILE = "file"
    COPY = "copy"


class DynamicBinding(BaseModel):
    """Reference from an input field to the trigger that feeds its dropdown."""

    trigger_key: str
    value_property: str = "id"

    @property
    def reference(self) -> str:
        """The platform's ``"<trigger>.<property>"`` notation."""
        return f"{self.trigger_key}.{self.value_property}"


class FieldDescriptor(BaseModel):
    """An input field presented to the end user.

    A field is either a scalar (``type`` set) or a group (non-empty
    ``children``), never both and never neither. ``default`` is only
    allowed on string fields. Both rules are checked on construction and on
    every attribute assignment, so a transform cannot leave a field in an
    invalid shape.

    Example::

        FieldDescriptor(key="amount", label="Amount", type=FieldType.NUMBER)
        FieldDescriptor(
            key="transaction",
            label="Transaction",
            required=True,
            children=[FieldDescriptor(key="payee", label="Payee", type=FieldType.STRING)],
        )
    """

    model_config = ConfigDict(validate_assignment=True)

    key: str
    label: str
    type: Optional[FieldType] = None
    children: list[FieldDescriptor] = Field(default_factory=list)
    help_text: Optional[str] = None
    required: bool = False
    choices: Optional[list[str]] = None
    default: Optional[str] = None
    placeholder: Optional[str] = None
    dynamic: Optional[DynamicBinding] = None

    @model_validator(mode="after")
    def _check_shape(self) -> FieldDescriptor:
        if self.children and self.type is not None:
            raise ValueError(
                f"Field '{self.key}' has children and must not declare a type"
            )
        if not self.children and self.type is None:
            raise ValueError(f"Field '{self.key}' needs a type or children")
        if self.default is not None and self.type != FieldType.STRING:
            raise ValueError(
                f"Field '{self.key}' may only carry a default when it is a string field"
            )
        return self


# --- Request plan ---


class ValueKind(str, enum.Enum):
    """How an input value is coerced before it is placed in a request."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"


class PropertyPlan(BaseModel):
    """One body property and how to coerce its input value."""

    name: str
    kind: ValueKind = ValueKind.STRING
    dynamic: bool = Field(
        default=False,
        description="Dropdown-backed number: 0, empty and null mean 'not chosen'",
    )


class FlattenPlan(BaseModel):
    """Wrap the flattened item fields back into ``{array_field: [item]}``."""

    array_field: str
    group_key: Optional[str] = None
    item_properties: list[PropertyPlan] = Field(default_factory=list)


class HelperMergePlan(BaseModel):
    """Merge one or more helper inputs into a body property."""

    target: str
    helper_keys: list[str]
    target_is_array: bool = False
    in_item: bool = Field(
        default=False, description="Target lives on the flattened array item"
    )
    nested: bool = Field(
        default=False, description="Helper values are read from under the group field"
    )


class BodyPlan(BaseModel):
    """How input values become the JSON request body."""

    properties: list[PropertyPlan] = Field(default_factory=list)
    flatten: Optional[FlattenPlan] = None
    helper_merges: list[HelperMergePlan] = Field(default_factory=list)
    defaults: dict[str, Any] = Field(
        default_factory=dict,
        description="Non-string defaults applied when the input omits the key",
    )

    def property_names(self) -> list[str]:
        return [p.name for p in self.properties]


class QueryParamPlan(BaseModel):
    name: str
    kind: ValueKind = ValueKind.STRING


class QueryPlan(BaseModel):
    """User-supplied query parameters plus fixed values."""

    params: list[QueryParamPlan] = Field(default_factory=list)
    fixed: dict[str, Any] = Field(default_factory=dict)


class RequestPlan(BaseModel):
    """Pure description of how input values become an HTTP request.

    Interpreted by :func:`~zapspec.generator.request_plan.build_request`.
    """

    method: HTTPMethod
    url_template: str
    path_params: list[str] = Field(default_factory=list)
    query: QueryPlan = Field(default_factory=QueryPlan)
    body: Optional[BodyPlan] = None
    auth_field_key: str = "access_token"


class PreparedRequest(BaseModel):
    """The concrete request produced from a plan and one set of inputs."""

    method: str
    url: str
    params: dict[str, Any] = Field(default_factory=dict)
    json_body: Optional[Any] = None
    headers: dict[str, str] = Field(default_factory=dict)


# --- Response shaping ---


class ResponseKind(str, enum.Enum):
    NO_CONTENT = "no_content"
    PASSTHROUGH = "passthrough"
    WRAP_ARRAY = "wrap_array"
    EXTRACT_SINGLE = "extract_single"
    BEST_EFFORT = "best_effort"


class ResponsePlan(BaseModel):
    """How an action's raw response payload becomes its returned object."""

    kind: ResponseKind
    key: Optional[str] = Field(
        default=None, description="Wrapping key for WRAP_ARRAY / BEST_EFFORT"
    )
    array_property: Optional[str] = None


class ExtractionKind(str, enum.Enum):
    PROPERTY = "property"
    DIRECT = "direct"
    WRAP_SINGLE = "wrap_single"
    BEST_EFFORT = "best_effort"


class ArrayExtraction(BaseModel):
    """How a trigger turns a response payload into a list of items."""

    kind: ExtractionKind
    property: Optional[str] = None


class PaginationPlan(BaseModel):
    """Offset/limit pagination driven by a ``has_more`` flag."""

    limit_param: str = "limit"
    offset_param: str = "offset"
    has_more_property: str = "has_more"
    page_size: int = 100
    extraction: ArrayExtraction


class LabelPlan(BaseModel):
    """Dropdown label for items of a hidden trigger."""

    template: str
    fallback: Optional[str] = None


class FilterPlan(BaseModel):
    """Client-side filter applied to trigger items."""

    equals: dict[str, Any] = Field(default_factory=dict)
    expression: Optional[str] = Field(
        default=None, description="Opaque expression passed through to the renderer"
    )


# --- Operations ---


class _OperationBase(BaseModel):
    key: str
    noun: str
    display_label: str
    description: str
    operation_id: Optional[str] = None
    path: str
    input_fields: list[FieldDescriptor] = Field(default_factory=list)
    sample: dict[str, Any]
    request: RequestPlan


class ActionDescriptor(_OperationBase):
    """A create/update/delete style operation."""

    kind: Literal["action"] = "action"
    response: ResponsePlan


class TriggerDescriptor(_OperationBase):
    """A polling operation that yields a list of items."""

    kind: Literal["trigger"] = "trigger"
    hidden: bool = False
    extraction: ArrayExtraction
    pagination: Optional[PaginationPlan] = None
    label: Optional[LabelPlan] = None
    filter: Optional[FilterPlan] = None
    sort_by_id_desc: bool = False


OperationDescriptor = Annotated[
    Union[ActionDescriptor, TriggerDescriptor], Field(discriminator="kind")
]
