"""Descriptor compiler -- turn a parsed document into actions and triggers.

This sub-package is the second half of the zapspec pipeline: it takes a
:class:`~zapspec.models.ParsedDocument` (produced by the parser) and a
:class:`~zapspec.models.GeneratorConfig` and compiles the ordered list of
operation descriptors a renderer turns into integration source files.

Typical usage::

    from zapspec.generator import compile_operations

    operations = compile_operations(document, config)
    for op in operations:
        print(op.kind, op.key, op.display_label)

Sub-modules:

* :mod:`~zapspec.generator.field_mapper` -- JSON Schema to input fields, plus
  label and noun helpers.
* :mod:`~zapspec.generator.request_plan` -- Request plans and the
  :func:`build_request` interpreter.
* :mod:`~zapspec.generator.transforms` -- The configuration-driven transform
  pipeline.
* :mod:`~zapspec.generator.response` -- Response plans, item extraction and
  sample payloads.
* :mod:`~zapspec.generator.pagination` -- Offset/limit pagination planning.
* :mod:`~zapspec.generator.assembler` -- Two-pass assembly of the final
  descriptors.
"""

from zapspec.generator.assembler import CompilationContext, compile_operations
from zapspec.generator.pagination import collect_pages, plan_pagination
from zapspec.generator.request_plan import build_request, merge_helper_values
from zapspec.generator.transforms import TransformPipeline

__all__ = [
    "CompilationContext",
    "TransformPipeline",
    "build_request",
    "collect_pages",
    "compile_operations",
    "merge_helper_values",
    "plan_pagination",
]
