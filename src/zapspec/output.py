"""User-facing output with strict stdout/stderr discipline.

* **stdout** -- data only: the endpoint table, JSON listings.
* **stderr** -- progress, warnings and errors.  Never mixed into data.
* **Colour control** -- Rich markup unless ``NO_COLOR`` is set,
  ``TERM=dumb``, or ``--no-color`` is passed.

Library modules never print; they log through :mod:`logging`.  Only the CLI
in :mod:`zapspec.app` calls the helpers below, which delegate to a global
:class:`OutputManager` installed by :func:`set_output`.
"""

from __future__ import annotations

import json
import os
import sys
from typing import Any, Optional

from rich.console import Console
from rich.table import Table


class OutputManager:
    """Routes CLI output to a data console and a diagnostics console.

    Args:
        json_output: Print tables as JSON arrays instead of Rich tables.
        no_color: Disable colour and markup.
        quiet: Suppress informational and success messages.
        verbose: Show debug messages.
    """

    def __init__(
        self,
        json_output: bool = False,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._json = json_output
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._stdout = Console(file=sys.stdout, no_color=self._no_color, highlight=False)
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True, highlight=False)

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def print_json(self, data: Any) -> None:
        """Print *data* as indented JSON to stdout."""
        print(json.dumps(data, indent=2, ensure_ascii=False), file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print rows as a Rich table, or as JSON records in JSON mode.

        Args:
            headers: Column header strings.
            rows: List of rows, where each row is a list of cell strings.
            title: Optional table title (Rich mode only).
        """
        if self._json:
            self.print_json([dict(zip(headers, row)) for row in rows])
            return

        table = Table(title=title, show_header=True, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def _emit(self, message: str, prefix: str = "", style: Optional[str] = None) -> None:
        if self._no_color:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
        elif style:
            self._stderr.print(f"[{style}]{prefix}[/{style}]{message}" if prefix else f"[{style}]{message}[/{style}]")
        else:
            self._stderr.print(f"{prefix}{message}")

    def info(self, message: str) -> None:
        """Informational message. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._emit(message)

    def success(self, message: str) -> None:
        """Green success message. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._emit(message, style="green")

    def warning(self, message: str) -> None:
        """Yellow warning. Never suppressed."""
        self._emit(message, prefix="Warning: ", style="yellow")

    def error(self, message: str) -> None:
        """Bold red error. Never suppressed."""
        self._emit(message, prefix="Error: ", style="bold red")

    def debug(self, message: str) -> None:
        """Dimmed debug message, shown only with ``--verbose``."""
        if self._verbose:
            self._emit(f"[debug] {message}" if self._no_color else message, style=None if self._no_color else "dim")


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the global manager; used by the test suite between tests."""
    global _output
    _output = None


def print_json(data: Any) -> None:
    get_output().print_json(data)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
