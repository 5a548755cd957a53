"""Write compiled operation descriptors to an output directory.

The compiler stops at descriptors; a :class:`Renderer` turns them into
files.  :class:`ManifestRenderer` is the built-in one and writes:

* ``actions/<key>.json`` and ``triggers/<key>.json`` -- one descriptor each,
  exactly as :meth:`pydantic.BaseModel.model_dump` serialises it;
* ``authentication.json`` -- the bearer-token configuration;
* ``index.json`` -- version, base URL and the ordered action and trigger keys;
* ``README.md`` -- a Jinja2-rendered overview of the integration.

Other renderers (for example one emitting JavaScript modules) only need to
implement :meth:`Renderer.render`.
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Any, Protocol

from jinja2 import Environment, FileSystemLoader, select_autoescape

from zapspec.models import (
    ActionDescriptor,
    AuthConfig,
    OperationDescriptor,
    ParsedDocument,
    TriggerDescriptor,
)

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
"""Path to the Jinja2 template directory (``zapspec/templates/``)."""


class Renderer(Protocol):
    """Anything that can turn descriptors into files."""

    def render(
        self,
        document: ParsedDocument,
        operations: list[OperationDescriptor],
        auth: AuthConfig,
        version: str,
        schema_url: str = "",
    ) -> list[Path]:
        """Write the integration and return the paths written."""
        ...


class ManifestRenderer:
    """Render descriptors as JSON manifests plus a Markdown overview.

    Args:
        output_dir: Directory the integration is written to.  Created
            (including parents) if it does not exist.

    Example::

        renderer = ManifestRenderer("./generated")
        renderer.clean()
        written = renderer.render(document, operations, config.authentication, "1.2.0")
    """

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)

    def clean(self) -> bool:
        """Remove the output directory; ``False`` when there was nothing to remove."""
        if not self.output_dir.exists():
            return False
        logger.info("Cleaning output directory %s", self.output_dir)
        shutil.rmtree(self.output_dir)
        return True

    def render(
        self,
        document: ParsedDocument,
        operations: list[OperationDescriptor],
        auth: AuthConfig,
        version: str,
        schema_url: str = "",
    ) -> list[Path]:
        actions = [op for op in operations if isinstance(op, ActionDescriptor)]
        triggers = [op for op in operations if isinstance(op, TriggerDescriptor)]

        actions_dir = self.output_dir / "actions"
        triggers_dir = self.output_dir / "triggers"
        actions_dir.mkdir(parents=True, exist_ok=True)
        triggers_dir.mkdir(parents=True, exist_ok=True)

        written: list[Path] = []
        for action in actions:
            written.append(_write_json(actions_dir / f"{action.key}.json", action.model_dump(mode="json")))
        for trigger in triggers:
            written.append(_write_json(triggers_dir / f"{trigger.key}.json", trigger.model_dump(mode="json")))

        written.append(
            _write_json(
                self.output_dir / "authentication.json",
                {
                    **auth.model_dump(mode="json", by_alias=True),
                    "testUrl": f"{document.base_url}{auth.test_endpoint}",
                },
            )
        )
        written.append(
            _write_json(
                self.output_dir / "index.json",
                {
                    "title": document.title,
                    "version": version,
                    "baseUrl": document.base_url,
                    "actions": [op.key for op in actions],
                    "triggers": [op.key for op in triggers],
                },
            )
        )

        readme = self.output_dir / "README.md"
        context = {
            "title": document.title,
            "version": version,
            "schema_url": schema_url,
            "base_url": document.base_url,
            "auth": auth,
            "actions": actions,
            "triggers": triggers,
        }
        readme.write_text(_create_jinja_env().get_template("readme.md.j2").render(**context), encoding="utf-8")
        written.append(readme)

        logger.debug("Wrote %d files to %s", len(written), self.output_dir)
        return written


def _create_jinja_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(disabled_extensions=("md.j2",)),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def _write_json(path: Path, data: Any) -> Path:
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path
