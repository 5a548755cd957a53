"""Configurable transforms applied to an action's fields, request plan and sample.

Each block of an :class:`~zapspec.models.ActionConfig` maps to one
:class:`Transform`.  :class:`TransformPipeline` applies them in a fixed
order, each stage receiving the previous stage's output:

1. :class:`VisibilityFilter` -- ``hideQueryParams`` /
   ``hideRequestBodyProperties``.
2. :class:`FlattenArray` -- ``simplify.flattenArray`` and
   ``simplify.additionalProperties``.
3. :class:`HelperFields` -- ``helperFields``.
4. :class:`DynamicFields` -- ``dynamicFields``.
5. :class:`FieldDefaults` -- ``fieldDefaults``.

The order matters: defaults are validated against the final field set, so a
default may target a field created by flattening, and dynamic bindings can
reach helper fields nested under a flattened group.

Every stage works on copies made by the pipeline, never on the extractor's
output, and every stage either succeeds or raises
:class:`~zapspec.exceptions.GenerationError`.

Example::

    context = TransformContext(key="createTransactions", endpoint=endpoint, config=config)
    fields, request, sample = TransformPipeline.from_context(context).run(
        fields, request, sample
    )
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from zapspec.exceptions import GenerationError
from zapspec.generator.field_mapper import (
    default_text,
    find_field,
    iter_fields,
    properties_to_fields,
    schema_properties,
    schema_to_field,
    schema_type,
    slugify,
)
from zapspec.generator.request_plan import property_plans
from zapspec.models import (
    ActionConfig,
    BodyPlan,
    DynamicBinding,
    EndpointDescriptor,
    FieldDescriptor,
    FieldType,
    FlattenPlan,
    HelperFieldConfig,
    HelperMergePlan,
    RequestPlan,
    TriggerDescriptor,
)

logger = logging.getLogger(__name__)

Stage = tuple[list[FieldDescriptor], RequestPlan, Any]


@dataclass
class TransformContext:
    """Read-only facts every transform of one action may consult.

    Attributes:
        key: The action key, used in error messages.
        endpoint: The endpoint being compiled.
        config: The action's configuration.
        schemas: Resolved ``components.schemas`` of the document.
        triggers: The hidden-trigger registry for dynamic-field wiring.
    """

    key: str
    endpoint: EndpointDescriptor
    config: ActionConfig
    schemas: Mapping[str, Any] = field(default_factory=dict)
    triggers: Mapping[str, TriggerDescriptor] = field(default_factory=dict)

    @property
    def parameter_names(self) -> set[str]:
        return {p.name for p in self.endpoint.parameters}

    @property
    def query_names(self) -> set[str]:
        return {p.name for p in self.endpoint.query_parameters}

    def item_schema(self) -> Optional[dict[str, Any]]:
        """The flattened item schema, when flattening is configured."""
        simplify = self.config.simplify
        if not self.config.simplified or simplify.flatten_array is None:
            return None
        return self.schemas.get(simplify.flatten_array.item_schema)

    def bind(self, field_key: str, source_trigger: str, value_field: str) -> Optional[DynamicBinding]:
        """Return a binding to *source_trigger*, or ``None`` if it is not registered."""
        if source_trigger not in self.triggers:
            logger.warning(
                'Action "%s": field "%s" uses trigger "%s" for its dropdown, '
                "but no hidden trigger with that key exists; leaving it unbound",
                self.key,
                field_key,
                source_trigger,
            )
            return None
        return DynamicBinding(trigger_key=source_trigger, value_property=value_field)


class Transform(ABC):
    """One configuration-driven rewrite of an action.

    Args:
        context: Facts about the action being compiled.
    """

    def __init__(self, context: TransformContext) -> None:
        self.context = context

    @property
    @abstractmethod
    def name(self) -> str:
        """The configuration key this transform implements."""
        ...

    @abstractmethod
    def apply(
        self,
        fields: list[FieldDescriptor],
        request: RequestPlan,
        sample: Any,
    ) -> Stage:
        """Return the rewritten ``(fields, request, sample)``."""
        ...

    def _fail(self, message: str, config_key: Optional[str] = None) -> GenerationError:
        return GenerationError(
            f'Action "{self.context.key}": {message}',
            operation_id=self.context.key,
            config_key=config_key or self.name,
        )


class TransformPipeline:
    """An ordered list of transforms applied one after another."""

    def __init__(self, transforms: list[Transform]) -> None:
        self.transforms = transforms

    @classmethod
    def from_context(cls, context: TransformContext) -> TransformPipeline:
        """Build the pipeline for the blocks present in ``context.config``."""
        config = context.config
        transforms: list[Transform] = [VisibilityFilter(context)]
        if config.simplified and config.simplify.flatten_array is not None:
            transforms.append(FlattenArray(context))
        if config.helper_fields:
            transforms.append(HelperFields(context))
        if config.dynamic_fields:
            transforms.append(DynamicFields(context))
        if config.field_defaults:
            transforms.append(FieldDefaults(context))
        return cls(transforms)

    def run(self, fields: list[FieldDescriptor], request: RequestPlan, sample: Any) -> Stage:
        """Apply every transform to copies of the inputs."""
        stage: Stage = (
            [f.model_copy(deep=True) for f in fields],
            request.model_copy(deep=True),
            copy.deepcopy(sample),
        )
        for transform in self.transforms:
            logger.debug('Action "%s": applying %s', transform.context.key, transform.name)
            stage = transform.apply(*stage)
        return stage


# ---------------------------------------------------------------------------
# 1. Visibility
# ---------------------------------------------------------------------------


class VisibilityFilter(Transform):
    """Drop hidden query parameters and body properties everywhere they appear."""

    name = "hideRequestBodyProperties"

    def apply(self, fields, request, sample):
        config = self.context.config
        hidden_query = set(config.hide_query_params) & self.context.query_names
        hidden_body = set(config.hide_request_body_properties) - self.context.parameter_names

        if not hidden_query and not hidden_body:
            return fields, request, sample

        fields = _drop_fields(fields, hidden_query | hidden_body)
        request.query.params = [p for p in request.query.params if p.name not in hidden_query]
        if request.body is not None:
            request.body.properties = [
                p for p in request.body.properties if p.name not in hidden_body
            ]
        return fields, request, _drop_sample_keys(sample, hidden_body)


def _drop_fields(fields: list[FieldDescriptor], hidden: set[str]) -> list[FieldDescriptor]:
    kept: list[FieldDescriptor] = []
    for f in fields:
        if f.key in hidden:
            continue
        if f.children:
            children = _drop_fields(f.children, hidden)
            if not children:
                continue
            f.children = children
        kept.append(f)
    return kept


def _drop_sample_keys(sample: Any, hidden: set[str]) -> Any:
    if isinstance(sample, dict):
        return {k: v for k, v in sample.items() if k not in hidden}
    if isinstance(sample, list):
        return [_drop_sample_keys(item, hidden) for item in sample]
    return sample


# ---------------------------------------------------------------------------
# 2. Array flattening
# ---------------------------------------------------------------------------


class FlattenArray(Transform):
    """Present one item of a ``{arrayField: [item]}`` body as the action's inputs.

    The body-derived fields are replaced by the item schema's fields, either
    spliced in at the top level or grouped under one required parent field
    when ``publicName`` is set.  ``additionalProperties`` are copied from the
    original body schema as top-level siblings.
    """

    name = "simplify.flattenArray"

    def apply(self, fields, request, sample):
        context = self.context
        config = context.config
        flatten = config.simplify.flatten_array
        hidden = set(config.hide_request_body_properties)

        item_schema = context.item_schema()
        if item_schema is None:
            raise self._fail(
                f'itemSchema "{flatten.item_schema}" does not exist in components.schemas',
                config_key="simplify.flattenArray.itemSchema",
            )

        body_schema = context.endpoint.body_schema
        additional = self._additional_properties(body_schema, hidden)

        item_fields = properties_to_fields(item_schema, exclude=hidden)
        item_names = [f.key for f in item_fields]
        group_key = slugify(flatten.public_name) if flatten.public_name else None

        # body-derived fields are replaced wholesale
        body_names = set(request.body.property_names()) if request.body else set()
        new_fields = [
            f for f in fields if f.key in context.parameter_names or f.key not in body_names
        ]
        present = {f.key for f in new_fields}

        if group_key and item_fields:
            new_fields.append(
                FieldDescriptor(
                    key=group_key,
                    label=flatten.public_name,
                    required=True,
                    children=item_fields,
                )
            )
        else:
            group_key = None
            new_fields.extend(f for f in item_fields if f.key not in present)
        present.update(f.key for f in new_fields)

        required = set((body_schema or {}).get("required") or [])
        body_properties = schema_properties(body_schema)
        for name in additional:
            if name not in present:
                new_fields.append(schema_to_field(body_properties[name], name, name in required))
                present.add(name)

        previous = request.body or BodyPlan()
        request.body = BodyPlan(
            properties=property_plans(body_schema, names=additional),
            flatten=FlattenPlan(
                array_field=flatten.array_field,
                group_key=group_key,
                item_properties=property_plans(item_schema, names=item_names),
            ),
            helper_merges=previous.helper_merges,
            defaults=previous.defaults,
        )

        if group_key:
            sample = self._restructure_sample(sample, group_key, set(item_names), additional)
        return new_fields, request, sample

    def _additional_properties(
        self,
        body_schema: Optional[dict[str, Any]],
        hidden: set[str],
    ) -> list[str]:
        names = self.context.config.simplify.additional_properties
        if not names:
            return []

        properties = schema_properties(body_schema)
        if not properties:
            raise self._fail(
                "simplify.additionalProperties is set but the request body schema has no properties",
                config_key="simplify.additionalProperties",
            )
        missing = [n for n in names if n not in properties]
        if missing:
            raise self._fail(
                "The following properties in simplify.additionalProperties do not exist "
                f"in the request body schema: {', '.join(missing)}",
                config_key="simplify.additionalProperties",
            )
        return [n for n in names if n not in hidden]

    def _restructure_sample(
        self,
        sample: Any,
        group_key: str,
        allowed: set[str],
        additional: list[str],
    ) -> Any:
        array_field = self.context.config.simplify.flatten_array.array_field
        if not isinstance(sample, dict):
            return sample
        items = sample.get(array_field)
        if not isinstance(items, list) or not items or not isinstance(items[0], dict):
            return sample

        first = items[0]
        restructured: dict[str, Any] = {
            group_key: {k: v for k, v in first.items() if k in allowed} if allowed else dict(first)
        }
        defaults = self.context.config.field_defaults
        for name in additional:
            if name in sample:
                restructured[name] = sample[name]
            elif name in defaults:
                restructured[name] = defaults[name]
        return restructured


# ---------------------------------------------------------------------------
# 3. Helper fields
# ---------------------------------------------------------------------------


class HelperFields(Transform):
    """Add optional helper inputs whose values are merged into a body property.

    A helper is nested under the flattened group when its target belongs to
    the item schema; otherwise it is a top-level field.  Several helpers may
    share one target.  Array targets receive a de-duplicated union, scalar
    targets the first non-empty helper value.
    """

    name = "helperFields"

    def apply(self, fields, request, sample):
        context = self.context
        flatten = request.body.flatten if request.body else None
        item_schema = context.item_schema() if flatten is not None else None
        item_properties = schema_properties(item_schema)
        body_properties = schema_properties(context.endpoint.body_schema)
        group = find_field(fields, flatten.group_key) if flatten and flatten.group_key else None

        merges: dict[str, HelperMergePlan] = {}
        for key, helper in context.config.helper_fields.items():
            in_item = flatten is not None and helper.map_to in item_properties
            nested = in_item and group is not None
            siblings = group.children if nested else fields
            if any(f.key == key for f in siblings):
                logger.warning(
                    'Action "%s": helper field "%s" skipped, an input with that key already exists',
                    context.key,
                    key,
                )
                continue

            helper_field = self._helper_field(key, helper)
            if nested:
                group.children = [*group.children, helper_field]
            else:
                fields.append(helper_field)

            if helper.map_to in merges:
                merges[helper.map_to].helper_keys.append(key)
                continue
            target_schema = item_properties.get(helper.map_to) if in_item else body_properties.get(helper.map_to)
            if target_schema is None:
                logger.warning(
                    'Action "%s": helper field "%s" maps to "%s", which is not a request body property',
                    context.key,
                    key,
                    helper.map_to,
                )
            merges[helper.map_to] = HelperMergePlan(
                target=helper.map_to,
                helper_keys=[key],
                target_is_array=schema_type(target_schema) == "array",
                in_item=in_item,
                nested=nested,
            )

        if request.body is None:
            request.body = BodyPlan()
        request.body.helper_merges = [*request.body.helper_merges, *merges.values()]
        return fields, request, sample

    def _helper_field(self, key: str, helper: HelperFieldConfig) -> FieldDescriptor:
        try:
            field_type = FieldType(helper.type)
        except ValueError:
            raise self._fail(
                f'helper field "{key}" has unsupported type "{helper.type}"',
                config_key=f"helperFields.{key}.type",
            ) from None

        binding = None
        if helper.dynamic_fields is not None:
            binding = self.context.bind(
                key, helper.dynamic_fields.source_trigger, helper.dynamic_fields.value_field
            )

        return FieldDescriptor(
            key=key,
            label=helper.label or key,
            type=field_type,
            help_text=helper.help_text,
            required=False,
            dynamic=binding,
        )


# ---------------------------------------------------------------------------
# 4. Dynamic fields
# ---------------------------------------------------------------------------


class DynamicFields(Transform):
    """Bind fields to dropdowns fed by registered hidden triggers."""

    name = "dynamicFields"

    def apply(self, fields, request, sample):
        context = self.context
        dynamic = context.config.dynamic_fields

        for f in iter_fields(fields):
            config = dynamic.get(f.key)
            if config is None or f.children:
                continue
            binding = context.bind(f.key, config.source_trigger, config.value_field)
            if binding is not None:
                f.dynamic = binding

        unmatched = set(dynamic) - {f.key for f in iter_fields(fields)}
        for key in sorted(unmatched):
            logger.warning('Action "%s": dynamicFields entry "%s" matches no input field', context.key, key)

        if request.body is not None:
            plans = list(request.body.properties)
            if request.body.flatten is not None:
                plans.extend(request.body.flatten.item_properties)
            for plan in plans:
                if plan.name in dynamic:
                    plan.dynamic = True
        return fields, request, sample


# ---------------------------------------------------------------------------
# 5. Field defaults
# ---------------------------------------------------------------------------


class FieldDefaults(Transform):
    """Apply configured defaults, refusing keys that match no field.

    String fields carry the default themselves.  Other fields cannot, so a
    default for a top-level body property is applied by the request plan
    when the user leaves the input empty.
    """

    name = "fieldDefaults"

    def apply(self, fields, request, sample):
        defaults = self.context.config.field_defaults
        missing = [key for key in defaults if find_field(fields, key) is None]
        if missing:
            raise self._fail(
                "The following properties in fieldDefaults do not exist in the input "
                f"fields: {', '.join(missing)}"
            )

        body_names = set(request.body.property_names()) if request.body else set()
        for key, value in defaults.items():
            target = find_field(fields, key)
            if target.type == FieldType.STRING:
                target.default = None if value is None else default_text(value)
            elif key in body_names and value is not None:
                request.body.defaults[key] = value
            else:
                logger.debug(
                    'Action "%s": default for non-string field "%s" ignored', self.context.key, key
                )
        return fields, request, sample
