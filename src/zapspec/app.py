"""Typer application and CLI entry point for zapspec.

Two commands are registered on the root application:

* ``generate`` -- load a schema, compile it against the configuration
  directory and write the integration with a
  :class:`~zapspec.renderer.ManifestRenderer`.
* ``endpoints`` -- list the endpoints a schema exposes, which is how users
  find the operation ids and paths to configure.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.  It maps every :class:`~zapspec.exceptions.ZapspecError`
to the process exit code the error carries.

See Also:
    :mod:`zapspec.config`: Settings precedence and configuration files.
    :mod:`zapspec.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from zapspec import __version__
from zapspec.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="zapspec",
    help="Compile OpenAPI 3.0/3.1 documents into Zapier integrations.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"zapspec {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    """Route library log records to stderr through Rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_time=False, show_path=False)],
        force=True,
    )


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output for listings."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~zapspec.output.OutputManager` and
    configures logging from the CLI flags.
    """
    from zapspec.output import OutputManager, set_output

    set_output(
        OutputManager(json_output=json_output, no_color=no_color, quiet=quiet, verbose=verbose)
    )
    _configure_logging(verbose)


@app.command("generate")
def generate_command(
    schema_url: Optional[str] = typer.Option(
        None, "--schema-url", "-s", help="OpenAPI document URL, file path, or '-' for stdin."
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", "-o", help="Directory the integration is written to."
    ),
    config_dir: Optional[str] = typer.Option(
        None, "--config-dir", "-c", help="Directory holding the *-config.json files."
    ),
    endpoint: Optional[str] = typer.Option(
        None, "--endpoint", "-e", help="Only compile endpoints with this path."
    ),
    version: Optional[str] = typer.Option(
        None, "--version", help="Integration version (defaults to info.version)."
    ),
    update_cache: bool = typer.Option(
        False, "--update-cache", help="Fetch the schema again instead of using the cache."
    ),
    clean: bool = typer.Option(
        False, "--clean", help="Remove the output directory before generating."
    ),
) -> None:
    """Generate an integration from an OpenAPI document.

    Example::

        zapspec generate --schema-url https://api.example.com/openapi.json
        zapspec generate -s openapi.yaml -o ./generated --clean
    """
    from zapspec.cache import SchemaCache
    from zapspec.config import get_cache_dir, load_generator_config, resolve_settings
    from zapspec.exceptions import InvalidUsageError
    from zapspec.generator import compile_operations
    from zapspec.output import debug, info, success
    from zapspec.parser import extract_document, load_spec, validate_openapi_version
    from zapspec.renderer import ManifestRenderer

    settings = resolve_settings(
        schema_url=schema_url,
        output_dir=output_dir,
        config_dir=config_dir,
        endpoint=endpoint,
        version=version,
        update_cache=update_cache,
        clean=clean,
    )
    info(f"Schema: {settings.schema_url}")
    info(f"Output directory: {settings.output_dir}")

    config = load_generator_config(settings.config_dir)
    debug(
        f"Loaded {len(config.actions)} action config(s) and "
        f"{len(config.triggers)} trigger config(s) from {settings.config_dir}"
    )

    with SchemaCache(get_cache_dir()) as cache:
        raw = load_spec(settings.schema_url, cache=cache, refresh=settings.update_cache)
    document = extract_document(raw, validate_openapi_version(raw))

    integration_version = settings.version or document.version
    if not integration_version:
        raise InvalidUsageError(
            "Could not extract a version from the schema and no --version override was given"
        )
    info(f"{document.title} {integration_version}: {len(document.endpoints)} endpoint(s)")

    renderer = ManifestRenderer(settings.output_dir)
    if settings.clean and renderer.clean():
        info(f"Cleaned {settings.output_dir}")

    operations = compile_operations(document, config, only_path=settings.endpoint)
    written = renderer.render(
        document,
        operations,
        config.authentication,
        integration_version,
        schema_url=settings.schema_url,
    )

    actions = sum(1 for op in operations if op.kind == "action")
    success(
        f"Generated {actions} action(s) and {len(operations) - actions} trigger(s) "
        f"({len(written)} files) in {settings.output_dir}"
    )


@app.command("endpoints")
def endpoints_command(
    schema_url: Optional[str] = typer.Option(
        None, "--schema-url", "-s", help="OpenAPI document URL, file path, or '-' for stdin."
    ),
    update_cache: bool = typer.Option(
        False, "--update-cache", help="Fetch the schema again instead of using the cache."
    ),
) -> None:
    """List the endpoints of an OpenAPI document.

    Example::

        zapspec endpoints --schema-url openapi.yaml
        zapspec --json endpoints -s openapi.yaml
    """
    from zapspec.cache import SchemaCache
    from zapspec.config import get_cache_dir, resolve_settings
    from zapspec.output import print_table
    from zapspec.parser import extract_document, load_spec, validate_openapi_version

    settings = resolve_settings(schema_url=schema_url)
    with SchemaCache(get_cache_dir()) as cache:
        raw = load_spec(settings.schema_url, cache=cache, refresh=update_cache)
    document = extract_document(raw, validate_openapi_version(raw))

    rows = [
        [e.method.value.upper(), e.path, e.operation_id or "-", e.summary or "-"]
        for e in document.endpoints
    ]
    print_table(
        ["Method", "Path", "Operation ID", "Summary"],
        rows,
        title=f"{document.title} -- Endpoints ({len(rows)})",
    )


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``zapspec`` console script.

    Unhandled :class:`~zapspec.exceptions.ZapspecError` instances cause a
    clean exit with the error's ``exit_code``; any other exception is
    reported as a generic failure.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from zapspec.exceptions import ZapspecError
        from zapspec.output import error

        if isinstance(exc, ZapspecError):
            error(str(exc))
            sys.exit(exc.exit_code)
        logging.getLogger(__name__).debug("Unhandled error", exc_info=True)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
