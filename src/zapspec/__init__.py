"""zapspec -- Compile OpenAPI 3.0/3.1 documents into Zapier integration descriptors.

This package reads an OpenAPI document plus three JSON configuration files
(actions, triggers, authentication) and produces an ordered list of operation
descriptors: *actions* that call one endpoint and *triggers* that poll a list
endpoint.  A renderer then turns the descriptors into integration source
files.

Typical workflow::

    zapspec endpoints --schema-url ./openapi.json   # see what will be compiled
    zapspec generate --schema-url ./openapi.json --config-dir ./config

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: Configuration file loading and settings precedence.
    renderer: Descriptor renderers (JSON manifests).
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.3.0"
