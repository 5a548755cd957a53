"""Exception hierarchy for zapspec.

All exceptions inherit from :class:`ZapspecError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`zapspec.exit_codes`.
The top-level error handler in :func:`zapspec.app.main` catches
``ZapspecError`` and exits with the appropriate code.

Recoverable problems (an unresolvable ``$ref``, a dynamic field pointing at
an unknown trigger) are never raised; they are logged as warnings by the
module that finds them and compilation continues.

Subclass hierarchy::

    ZapspecError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- ConfigError         (exit 3)
    |   +-- GenerationError (exit 4)
    +-- ConnectionError_    (exit 6)
    +-- SpecParseError      (exit 7)
"""

from __future__ import annotations

from typing import Optional

from zapspec.exit_codes import (
    EXIT_CONFIG_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERATION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SPEC_PARSE_ERROR,
)


class ZapspecError(Exception):
    """Base exception for all zapspec errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`zapspec.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(ZapspecError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(ZapspecError):
    """Raised for configuration problems (invalid JSON, missing required keys, bad values)."""

    exit_code = EXIT_CONFIG_ERROR


class GenerationError(ConfigError):
    """Raised when configuration names something the schema does not contain.

    Compilation stops before a descriptor is produced for the offending
    operation, so a run never emits output that silently disagrees with its
    configuration.

    Args:
        message: Human-readable error description.
        operation_id: Action key or trigger key being compiled.
        config_key: The configuration entry at fault (e.g. ``fieldDefaults``).
    """

    exit_code = EXIT_GENERATION_ERROR

    def __init__(
        self,
        message: str,
        operation_id: Optional[str] = None,
        config_key: Optional[str] = None,
    ):
        super().__init__(message)
        self.operation_id = operation_id
        self.config_key = config_key


class ConnectionError_(ZapspecError):
    """Raised on network-level failures while fetching a schema document.

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class SpecParseError(ZapspecError):
    """Raised when the OpenAPI document cannot be parsed or fails validation."""

    exit_code = EXIT_SPEC_PARSE_ERROR
