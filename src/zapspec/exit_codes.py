"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~zapspec.exceptions.ZapspecError` subclass.
Build scripts can inspect the exit code to tell a broken configuration apart
from an unreachable schema URL without parsing stderr.

Example::

    $ zapspec generate --schema-url ./openapi.json
    $ echo $?
    4   # EXIT_GENERATION_ERROR -- a config key named a field that does not exist
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_CONFIG_ERROR = 3
"""A configuration file is missing required keys or cannot be parsed."""

EXIT_GENERATION_ERROR = 4
"""Configuration and schema disagree; compilation was aborted before any output."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_SPEC_PARSE_ERROR = 7
"""The OpenAPI document could not be parsed or validated."""
