"""Terminal output for the ``swrfetch`` command line.

Keeps strict stdout/stderr discipline:

* **stdout** -- the response body only, so ``swrfetch fetch URL | jq``
  works.
* **stderr** -- status line, cache status, warnings and errors.
* **TTY detection** -- Rich formatting when stdout is an interactive
  terminal, plain text when piped.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb`` and
  ``--no-color``.

:class:`OutputManager` holds the preferences and Rich consoles; it is
created once in :func:`~swrfetch.app.main_callback` and installed with
:func:`set_output`.  Module-level helpers delegate to the installed
instance.
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
    """Supported output formats; ``AUTO`` resolves from TTY detection."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


_STATUS_STYLES = {"HIT": "green", "STALE": "yellow", "MISS": "dim"}


class OutputManager:
    """Routes data to stdout and diagnostics to stderr.

    Args:
        format: Desired output format. ``AUTO`` resolves based on TTY
            detection.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress informational messages on stderr.
        verbose: Show debug messages on stderr.
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

        if format == OutputFormat.AUTO:
            self._format = (
                OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
            )
        else:
            self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(
            file=sys.stderr,
            no_color=self._no_color,
            stderr=True,
        )

    @property
    def format(self) -> OutputFormat:
        """The resolved output format."""
        return self._format

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    @property
    def stderr_console(self) -> Console:
        """Console used for diagnostics; shared with the log handler."""
        return self._stderr

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any, content_type: str = "application/json") -> None:
        """Render a response body to stdout in the active format.

        Args:
            data: Parsed JSON (dict/list), text, or ``bytes`` for binary
                bodies.
            content_type: MIME type hint for syntax highlighting.
        """
        if isinstance(data, bytes):
            self.print_data(f"<{len(data)} bytes of {content_type or 'binary data'}>")
        elif self._format == OutputFormat.JSON:
            self._print_json(data)
        elif self._format == OutputFormat.PLAIN or "json" not in content_type:
            self.print_data(data if isinstance(data, str) else json.dumps(data, default=str))
        else:
            self._print_rich(data)

    def print_data(self, text: str) -> None:
        """Print raw text to stdout."""
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print tabular data to stdout in the active format."""
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
        elif self._format == OutputFormat.PLAIN:
            self.print_data("\t".join(headers))
            for row in rows:
                self.print_data("\t".join(row))
        else:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for h in headers:
                table.add_column(h)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Informational line. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._emit(message)

    def success(self, message: str) -> None:
        """Green confirmation line. Suppressed by ``--quiet``."""
        if not self._quiet:
            self._emit(message, style="green")

    def warning(self, message: str) -> None:
        """Always shown, even with ``--quiet``."""
        self._emit(message, label="Warning:", style="yellow")

    def error(self, message: str) -> None:
        """Always shown."""
        self._emit(message, label="Error:", style="bold red")

    def debug(self, message: str) -> None:
        """Only shown with ``--verbose``."""
        if self._verbose:
            self._emit(f"[debug] {message}", style="dim")

    def cache_status(self, summary: str, status: str) -> None:
        """Print the ``cache: ...`` line, coloured by *status*.

        Args:
            summary: Text from :func:`~swrfetch.client.response.cache_summary`.
            status: ``HIT``, ``STALE`` or ``MISS``.
        """
        if not self._quiet:
            self._emit(summary, style=_STATUS_STYLES.get(status.upper(), ""))

    def _emit(self, message: str, label: str = "", style: str = "") -> None:
        if self._no_color:
            text = f"{label} {message}" if label else message
            print(text, file=sys.stderr, flush=True)
            return
        body = escape(message)
        if label:
            self._stderr.print(f"[{style}]{label}[/{style}] {body}")
        elif style:
            self._stderr.print(f"[{style}]{body}[/{style}]")
        else:
            self._stderr.print(body)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _print_json(self, data: Any) -> None:
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except (json.JSONDecodeError, TypeError):
                self.print_data(data)
                return
        self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))

    def _print_rich(self, data: Any) -> None:
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except (json.JSONDecodeError, TypeError):
                self._stdout.print(data)
                return
        json_str = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        self._stdout.print(Syntax(json_str, "json", theme="monokai", word_wrap=True))


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager`."""
    global _output
    _output = output


def reset_output() -> None:
    """Drop the global :class:`OutputManager`; used between tests."""
    global _output
    _output = None


def info(message: str) -> None:
    get_output().info(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def debug(message: str) -> None:
    get_output().debug(message)
