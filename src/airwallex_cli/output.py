"""Terminal output for the ``airwallex`` CLI.

Two streams, two purposes:

* **stdout** carries results only (account listings, JSON), so that
  ``airwallex --json auth list | jq`` keeps working.
* **stderr** carries everything meant for the person at the keyboard:
  progress, the setup URL, warnings, errors, and next-step hints.

Rich styling is used when stdout is a terminal; ``NO_COLOR``,
``TERM=dumb`` and ``--no-color`` fall back to plain ``print``.

The root callback builds one :class:`OutputManager` per invocation and
installs it with :func:`set_output`; commands use the module-level
shortcuts (:func:`info`, :func:`error`, ...).
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How stdout data is rendered. ``AUTO`` picks ``RICH`` on a colour TTY, else ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Routes data to stdout and diagnostics to stderr.

    Args:
        format: Requested stdout format.
        no_color: Force plain, unstyled output.
        quiet: Hide info, success and suggestion lines (warnings and errors
            are always shown).
        verbose: Show debug lines.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._format = _resolve_format(format, self._no_color)

        rich_stdout = self._format == OutputFormat.RICH
        self._stdout = Console(file=sys.stdout, no_color=self._no_color, force_terminal=rich_stdout)
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_json(self) -> bool:
        return self._format == OutputFormat.JSON

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # --- stdout ---

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_json(self, data: Any) -> None:
        """Write *data* as indented JSON; syntax-highlighted in rich mode."""
        text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        if self._format == OutputFormat.RICH:
            self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))
            return
        self.print_data(text)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows under *headers*.

        JSON mode emits a list of header-keyed objects, plain mode emits
        tab-separated lines (the title is dropped), and rich mode draws a
        :class:`~rich.table.Table`.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(
                json.dumps([dict(zip(headers, row)) for row in rows], indent=2, ensure_ascii=False)
            )
        elif self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
        else:
            self._stdout.print(_rich_table(headers, rows, title))

    # --- stderr ---

    def _emit(self, message: str, prefix: str = "", style: Optional[str] = None) -> None:
        if self._no_color:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
            return
        if style is None:
            self._stderr.print(escape(prefix + message))
        elif prefix:
            self._stderr.print(f"[{style}]{escape(prefix)}[/{style}]{escape(message)}")
        else:
            self._stderr.print(f"[{style}]{escape(message)}[/{style}]")

    def info(self, message: str) -> None:
        if not self._quiet:
            self._emit(message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._emit(message, style="green")

    def warning(self, message: str) -> None:
        """Shown even with ``--quiet``."""
        self._emit(message, prefix="Warning: ", style="yellow")

    def error(self, message: str) -> None:
        """Shown even with ``--quiet``."""
        self._emit(message, prefix="Error: ", style="bold red")

    def suggest(self, message: str) -> None:
        if not self._quiet:
            self._emit(f"→ {message}", style="dim")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._emit(f"[debug] {message}", style="dim")


def _resolve_format(requested: OutputFormat, no_color: bool) -> OutputFormat:
    if requested != OutputFormat.AUTO:
        return requested
    return OutputFormat.RICH if _is_tty() and not no_color else OutputFormat.PLAIN


def _rich_table(headers: list[str], rows: list[list[str]], title: Optional[str]) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    for header in headers:
        table.add_column(header)
    for row in rows:
        table.add_row(*row)
    return table


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set to anything or ``TERM`` is ``dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


# --- process-wide instance ---

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the installed manager; tests call this so stale streams are not reused."""
    global _output
    _output = None


def print_json(data: Any) -> None:
    get_output().print_json(data)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)
