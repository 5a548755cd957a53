"""Assemble action and trigger descriptors from a parsed document.

:func:`compile_operations` is the compiler's entry point.  It makes two
passes over the document with a fresh :class:`CompilationContext`:

1. every *hidden* trigger (a dropdown source) is built and registered, so
   dynamic fields can bind to it regardless of document order;
2. endpoints are walked in document order.  Each one becomes an action
   and each GET endpoint also yields the triggers configured for its path,
   in configuration order.  An endpoint whose action is marked ``omit`` is
   skipped entirely, so it yields no visible triggers either.
   Hidden triggers that pass 2 never reached are appended at the end.

Nothing here performs I/O.  The returned list of descriptors is handed to a
:class:`~zapspec.renderer.Renderer`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from zapspec.exceptions import GenerationError, InvalidUsageError
from zapspec.generator.field_mapper import (
    get_noun,
    parameters_to_fields,
    path_to_key,
    properties_to_fields,
    title_case,
)
from zapspec.generator.pagination import plan_pagination
from zapspec.generator.request_plan import plan_request
from zapspec.generator.response import (
    NO_CONTENT_SAMPLE,
    action_sample,
    extract_sample,
    is_no_content,
    plan_action_response,
    plan_trigger_extraction,
    success_response,
    trigger_sample,
)
from zapspec.generator.transforms import TransformContext, TransformPipeline
from zapspec.models import (
    ActionDescriptor,
    EndpointDescriptor,
    FieldDescriptor,
    FieldType,
    FilterPlan,
    GeneratorConfig,
    HTTPMethod,
    LabelPlan,
    OperationDescriptor,
    ParsedDocument,
    TriggerConfig,
    TriggerDescriptor,
)

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 1000

TRIGGER_TITLE_PREFIX = "Triggers when "

HIDDEN_TRIGGER_DESCRIPTION = "Hidden trigger for dynamic dropdowns."


@dataclass
class CompilationContext:
    """State of one compilation run.

    Attributes:
        document: The parsed source document.
        config: The generator configuration.
        hidden_triggers: Registry of hidden triggers by key, filled in pass 1.
        emitted: Keys of operations already emitted in this run.
    """

    document: ParsedDocument
    config: GeneratorConfig
    hidden_triggers: dict[str, TriggerDescriptor] = field(default_factory=dict)
    emitted: set[tuple[str, str]] = field(default_factory=set)

    def claim(self, kind: str, key: str) -> bool:
        """Record *key* as emitted; ``False`` if it already was."""
        if (kind, key) in self.emitted:
            return False
        self.emitted.add((kind, key))
        return True


def compile_operations(
    document: ParsedDocument,
    config: GeneratorConfig,
    only_path: Optional[str] = None,
) -> list[OperationDescriptor]:
    """Compile *document* into an ordered list of operation descriptors.

    Args:
        document: The parsed OpenAPI document.
        config: Action, trigger and authentication configuration.
        only_path: Restrict actions and visible triggers to endpoints with
            this path.  Hidden triggers are always emitted.

    Returns:
        Actions and triggers in document order, hidden triggers not tied to
        a compiled endpoint last.

    Raises:
        GenerationError: A configuration entry names something the document
            does not contain, or a trigger title is missing or malformed.
        InvalidUsageError: *only_path* matches no endpoint.
    """
    context = CompilationContext(document=document, config=config)
    _register_hidden_triggers(context)

    endpoints = document.endpoints
    if only_path is not None:
        endpoints = [e for e in endpoints if e.path == only_path]
        if not endpoints:
            raise InvalidUsageError(f"Endpoint {only_path} not found in the schema")

    operations: list[OperationDescriptor] = []

    for endpoint in endpoints:
        action_key = endpoint.operation_id or path_to_key(endpoint.path)
        action_config = config.action(action_key)
        if action_config.omit:
            logger.info("Skipping omitted action: %s", action_key)
            continue
        if context.claim("action", action_key):
            operations.append(build_action(context, endpoint, action_key))
        else:
            logger.debug("Duplicate action key %s skipped", action_key)

        if endpoint.method != HTTPMethod.GET:
            continue

        for trigger_key, trigger_config in config.triggers.items():
            if trigger_config.endpoint != endpoint.path:
                continue
            if not context.claim("trigger", trigger_key):
                continue
            if trigger_config.hidden:
                operations.append(context.hidden_triggers[trigger_key])
            else:
                operations.append(build_trigger(context, endpoint, trigger_key, trigger_config))

    for trigger_key, trigger in context.hidden_triggers.items():
        if context.claim("trigger", trigger_key):
            operations.append(trigger)

    get_paths = {e.path for e in document.endpoints if e.method == HTTPMethod.GET}
    for trigger_key, trigger_config in config.triggers.items():
        if trigger_config.endpoint not in get_paths:
            logger.warning(
                'Trigger "%s" targets %s, which is not a GET endpoint of the schema; skipped',
                trigger_key,
                trigger_config.endpoint,
            )

    logger.debug("Compiled %d operations", len(operations))
    return operations


def _register_hidden_triggers(context: CompilationContext) -> None:
    for trigger_key, trigger_config in context.config.triggers.items():
        if not trigger_config.hidden:
            continue
        endpoint = context.document.find_endpoint(trigger_config.endpoint, HTTPMethod.GET)
        if endpoint is None:
            continue
        context.hidden_triggers[trigger_key] = build_trigger(
            context, endpoint, trigger_key, trigger_config
        )


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


def build_action(
    context: CompilationContext,
    endpoint: EndpointDescriptor,
    key: str,
) -> ActionDescriptor:
    """Build the action descriptor of *endpoint*.

    Path and query parameters come first, followed by the request body's
    properties (body properties that share a parameter's name are dropped).
    The action's configuration is then applied through the
    :class:`~zapspec.generator.transforms.TransformPipeline`.
    """
    config = context.config.action(key)
    noun = get_noun(endpoint.operation_id, endpoint.path)

    raw_label = endpoint.summary or endpoint.operation_id or endpoint.path
    if config.simplified and config.simplify.name:
        raw_label = config.simplify.name

    fields = parameters_to_fields(endpoint.parameters)
    parameter_keys = {f.key for f in fields}
    fields.extend(properties_to_fields(endpoint.body_schema, exclude=parameter_keys))

    request = plan_request(
        endpoint,
        context.document.base_url,
        auth_field_key=context.config.authentication.field_key,
    )
    response = plan_action_response(endpoint, noun, config.simplify)

    no_content = is_no_content(endpoint)
    raw_sample = None if no_content else extract_sample(success_response(endpoint))

    transform_context = TransformContext(
        key=key,
        endpoint=endpoint,
        config=config,
        schemas=context.document.schemas,
        triggers=context.hidden_triggers,
    )
    fields, request, raw_sample = TransformPipeline.from_context(transform_context).run(
        fields, request, raw_sample
    )

    return ActionDescriptor(
        key=key,
        noun=noun,
        display_label=title_case(raw_label),
        description=_truncate(endpoint.description or endpoint.summary or raw_label),
        operation_id=endpoint.operation_id,
        path=endpoint.path,
        input_fields=fields,
        sample=dict(NO_CONTENT_SAMPLE) if no_content else action_sample(raw_sample),
        request=request,
        response=response,
    )


# ---------------------------------------------------------------------------
# Triggers
# ---------------------------------------------------------------------------


def build_trigger(
    context: CompilationContext,
    endpoint: EndpointDescriptor,
    key: str,
    config: TriggerConfig,
) -> TriggerDescriptor:
    """Build the trigger descriptor for *config* polling *endpoint*.

    Raises:
        GenerationError: A visible trigger has no title, or its title does
            not start with ``"Triggers when "``.
    """
    if config.hidden:
        description = HIDDEN_TRIGGER_DESCRIPTION
    else:
        description = _trigger_description(key, config)

    noun = get_noun(endpoint.operation_id, endpoint.path)
    raw_label = config.name or endpoint.summary or endpoint.operation_id or endpoint.path

    fixed_query = dict(config.query_params)
    fields = parameters_to_fields(endpoint.parameters, exclude=fixed_query)
    if config.hidden and not fields:
        fields = [_placeholder_field()]

    request = plan_request(
        endpoint,
        context.document.base_url,
        auth_field_key=context.config.authentication.field_key,
        fixed_query=fixed_query,
    )
    extraction = plan_trigger_extraction(endpoint, config.array_property)
    pagination = plan_pagination(endpoint, extraction, hidden=config.hidden, fixed_query=fixed_query)

    label = None
    if config.hidden and config.label is not None and config.label.template:
        label = LabelPlan(template=config.label.template, fallback=config.label.fallback)

    filter_plan = None
    if config.filters or config.filter_code:
        filter_plan = FilterPlan(equals=dict(config.filters), expression=config.filter_code)

    return TriggerDescriptor(
        key=key,
        noun=noun,
        display_label=title_case(raw_label),
        description=description,
        operation_id=endpoint.operation_id,
        path=endpoint.path,
        input_fields=fields,
        sample=trigger_sample(extract_sample(success_response(endpoint))),
        request=request,
        hidden=config.hidden,
        extraction=extraction,
        pagination=pagination,
        label=label,
        filter=filter_plan,
        sort_by_id_desc=not config.hidden,
    )


def _trigger_description(key: str, config: TriggerConfig) -> str:
    if not config.title:
        raise GenerationError(
            f'Trigger "{key}" is missing the required "title" field',
            operation_id=key,
            config_key="title",
        )
    if not config.title.startswith(TRIGGER_TITLE_PREFIX):
        raise GenerationError(
            f'Trigger "{key}" has an invalid title "{config.title}": '
            f'it must start with "{TRIGGER_TITLE_PREFIX}"',
            operation_id=key,
            config_key="title",
        )
    description = config.title.strip()
    if not description.endswith("."):
        description += "."
    return _truncate(description)


def _placeholder_field() -> FieldDescriptor:
    return FieldDescriptor(
        key="id_placeholder",
        label="ID Placeholder",
        type=FieldType.STRING,
        help_text="This is a placeholder field to satisfy Zapier validation (D009).",
        required=False,
        default="placeholder",
    )


def _truncate(text: str) -> str:
    if len(text) > MAX_DESCRIPTION_LENGTH:
        return text[: MAX_DESCRIPTION_LENGTH - 3] + "..."
    return text
