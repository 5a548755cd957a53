"""Configuration loading with comment-tolerant JSON, XDG paths and precedence resolution.

This module handles everything zapspec reads before compiling:

* **Generator configuration** -- three JSON files in the configuration
  directory, each optional:

  * ``actions-config.json`` -- ``{"actions": {operationId: ActionConfig}}``
  * ``triggers-config.json`` -- ``{"triggers": {triggerKey: TriggerConfig}}``
  * ``authentication-config.json`` -- a flat :class:`~zapspec.models.AuthConfig`

  ``//`` line comments and ``/* */`` block comments are allowed outside
  strings.  See :func:`load_generator_config`.
* **Run settings** -- :func:`resolve_settings` merges CLI flags, environment
  variables and defaults into a :class:`~zapspec.models.Settings`.
* **Cache directory** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.zapspec/cache/`` on macOS and Windows.  See :func:`get_cache_dir`.
"""

from __future__ import annotations

import json
import logging
import os
import platform
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from zapspec.exceptions import ConfigError
from zapspec.models import AuthConfig, GeneratorConfig, Settings, TriggerConfig

logger = logging.getLogger(__name__)

_APP_NAME = "zapspec"

ACTIONS_CONFIG_FILENAME = "actions-config.json"
TRIGGERS_CONFIG_FILENAME = "triggers-config.json"
AUTH_CONFIG_FILENAME = "authentication-config.json"

DEFAULT_SCHEMA_URL = "https://petstore3.swagger.io/api/v3/openapi.json"
DEFAULT_OUTPUT_DIR = "generated"

ENV_SCHEMA_URL = "ZAPSPEC_SCHEMA_URL"
ENV_OUTPUT_DIR = "ZAPSPEC_OUTPUT_DIR"
ENV_CONFIG_DIR = "ZAPSPEC_CONFIG_DIR"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Used to store fetched schema documents. Cached data can be safely
    deleted at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/zapspec/`` (default ``~/.cache/zapspec/``).
    On macOS/Windows: ``~/.zapspec/cache/``.

    Returns:
        Absolute path to the cache directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CACHE_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".cache"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- JSON with comments ---


def strip_json_comments(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments that sit outside JSON strings.

    Example::

        >>> strip_json_comments('{"url": "http://x" // home\\n}')
        '{"url": "http://x" \\n}'
    """
    result: list[str] = []
    in_string = False
    escaped = False
    i = 0
    length = len(text)

    while i < length:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < length else ""

        if in_string:
            result.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            i += 1
            continue

        if ch == '"':
            in_string = True
            result.append(ch)
            i += 1
        elif ch == "/" and nxt == "*":
            end = text.find("*/", i + 2)
            i = length if end == -1 else end + 2
        elif ch == "/" and nxt == "/":
            end = text.find("\n", i + 2)
            i = length if end == -1 else end
        else:
            result.append(ch)
            i += 1

    return "".join(result)


def _read_config_file(path: Path) -> Optional[dict[str, Any]]:
    """Parse one comment-tolerant JSON config file, or ``None`` if absent."""
    if not path.is_file():
        logger.debug("No config file at %s; using defaults", path)
        return None
    try:
        data = json.loads(strip_json_comments(path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config at {path}: expected a JSON object")
    return data


# --- Generator configuration ---


def load_generator_config(config_dir: str | Path) -> GeneratorConfig:
    """Load the actions, triggers and authentication configuration.

    Args:
        config_dir: Directory holding the three configuration files.

    Returns:
        The combined :class:`~zapspec.models.GeneratorConfig`.  Missing files
        contribute their defaults.

    Raises:
        ConfigError: A file is not valid JSON, a trigger lacks its
            ``endpoint``, or a value fails validation.
    """
    directory = Path(config_dir)
    actions = _read_config_file(directory / ACTIONS_CONFIG_FILENAME) or {}
    triggers = _read_config_file(directory / TRIGGERS_CONFIG_FILENAME) or {}
    auth = _read_config_file(directory / AUTH_CONFIG_FILENAME)

    for key, trigger in (triggers.get("triggers") or {}).items():
        if not isinstance(trigger, dict) or not trigger.get("endpoint"):
            raise ConfigError(f'Trigger "{key}" is missing required "endpoint" property')

    try:
        config = GeneratorConfig(
            actions=actions.get("actions") or {},
            triggers={
                key: TriggerConfig.model_validate(value)
                for key, value in (triggers.get("triggers") or {}).items()
            },
            authentication=AuthConfig.model_validate(auth) if auth else AuthConfig(),
        )
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {directory}: {exc}") from exc

    logger.debug(
        "Loaded config: %d action(s), %d trigger(s), test endpoint %s",
        len(config.actions),
        len(config.triggers),
        config.authentication.test_endpoint,
    )
    return config


# --- Precedence resolution ---


def resolve_settings(
    schema_url: Optional[str] = None,
    output_dir: Optional[str] = None,
    config_dir: Optional[str] = None,
    endpoint: Optional[str] = None,
    version: Optional[str] = None,
    update_cache: bool = False,
    clean: bool = False,
) -> Settings:
    """Resolve run settings with full precedence chain.

    Precedence (high to low):
        1. CLI flags
        2. Environment variables (``ZAPSPEC_SCHEMA_URL``,
           ``ZAPSPEC_OUTPUT_DIR``, ``ZAPSPEC_CONFIG_DIR``)
        3. Defaults (the Petstore sample document, ``./generated``, the
           current directory)
    """
    return Settings(
        schema_url=schema_url or os.environ.get(ENV_SCHEMA_URL) or DEFAULT_SCHEMA_URL,
        output_dir=output_dir
        or os.environ.get(ENV_OUTPUT_DIR)
        or str(Path.cwd() / DEFAULT_OUTPUT_DIR),
        config_dir=config_dir or os.environ.get(ENV_CONFIG_DIR) or str(Path.cwd()),
        endpoint=endpoint,
        version=version,
        update_cache=update_cache,
        clean=clean,
    )
