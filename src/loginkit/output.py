"""Terminal output for loginkit.

stdout carries only what a script would capture: the bare access token, a
session or claims record, provider metadata, the saved-client listing.
Progress, results, hints, warnings, and errors all go to stderr, so
``$(loginkit token)`` is always just the token.

Records and listings render three ways:

* ``RICH`` -- a table, chosen automatically on an interactive terminal.
* ``PLAIN`` -- ``key<TAB>value`` lines (or tab-separated rows), chosen when
  stdout is piped, ``--no-color`` is given, ``NO_COLOR`` is set, or
  ``TERM=dumb``.
* ``JSON`` -- with ``--json``; keys are the snake_case field names.

Commands call the module-level helpers, which delegate to the
:class:`OutputManager` installed by :func:`~loginkit.app.main_callback`.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from rich.console import Console
from rich.table import Table


class OutputFormat(str, Enum):
    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


def _label(key: str) -> str:
    return key.replace("_", " ").capitalize()


def _text(value: Any) -> str:
    """Flatten a claim or metadata value to one line."""
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, (list, tuple)):
        return " ".join(_text(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


class OutputManager:
    """Routes data to stdout and diagnostics to stderr.

    Args:
        format: ``AUTO`` picks ``RICH`` on a colour-capable TTY, otherwise
            ``PLAIN``.
        no_color: Disable colour and Rich markup.
        quiet: Drop info, success, suggestion, and progress messages.
            Warnings and errors are always shown.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        if format == OutputFormat.AUTO:
            rich_ok = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format
        self._stdout = Console(file=sys.stdout, no_color=self._no_color, force_terminal=True)
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # -- stdout -------------------------------------------------------------

    def print_value(self, value: str) -> None:
        """Write a single bare value (an access token, a client ID)."""
        sys.stdout.write(value + "\n")
        sys.stdout.flush()

    def show_record(self, fields: Mapping[str, Any], title: str) -> None:
        """Render one record: a session, userinfo claims, metadata, config."""
        if self._format == OutputFormat.JSON:
            self._json(dict(fields))
        elif self._format == OutputFormat.PLAIN:
            for key, value in fields.items():
                self.print_value(f"{key}\t{_text(value)}")
        else:
            table = Table(title=title, show_header=False, title_justify="left")
            table.add_column(style="bold cyan", no_wrap=True)
            table.add_column(overflow="fold")
            for key, value in fields.items():
                table.add_row(_label(key), _text(value))
            self._stdout.print(table)

    def show_table(self, rows: Sequence[Mapping[str, Any]], title: str) -> None:
        """Render a listing whose rows share the first row's keys."""
        if self._format == OutputFormat.JSON:
            self._json([dict(row) for row in rows])
            return
        if not rows:
            return
        keys = list(rows[0])
        if self._format == OutputFormat.PLAIN:
            for values in [keys] + [[_text(row.get(k)) for k in keys] for row in rows]:
                self.print_value("\t".join(values))
            return
        table = Table(title=title, header_style="bold cyan", title_justify="left")
        for key in keys:
            table.add_column(_label(key))
        for row in rows:
            table.add_row(*(_text(row.get(k)) for k in keys))
        self._stdout.print(table)

    def _json(self, data: Any) -> None:
        self.print_value(json.dumps(data, indent=2, ensure_ascii=False, default=str))

    # -- stderr -------------------------------------------------------------

    def info(self, message: str) -> None:
        if not self._quiet:
            self._emit(message, message)

    def success(self, message: str) -> None:
        if not self._quiet:
            self._emit(message, f"[green]✓ {message}[/green]")

    def suggest(self, message: str) -> None:
        if not self._quiet:
            self._emit(f"→ {message}", f"[dim]→ {message}[/dim]")

    def progress(self, message: str) -> None:
        """Transient status, shown only on an interactive terminal."""
        if not self._quiet and _is_tty():
            self._emit(message, f"[dim]{message}[/dim]")

    def warning(self, message: str) -> None:
        self._emit(f"Warning: {message}", f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        self._emit(f"Error: {message}", f"[bold red]Error:[/bold red] {message}")

    def _emit(self, plain: str, markup: str) -> None:
        if self._no_color:
            sys.stderr.write(plain + "\n")
            sys.stderr.flush()
        else:
            self._stderr.print(markup, highlight=False)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` set to anything, or ``TERM=dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the global manager so the next call builds a fresh one."""
    global _output
    _output = None


def print_value(value: str) -> None:
    get_output().print_value(value)


def show_record(fields: Mapping[str, Any], title: str) -> None:
    get_output().show_record(fields, title)


def show_table(rows: Sequence[Mapping[str, Any]], title: str) -> None:
    get_output().show_table(rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def progress(message: str) -> None:
    get_output().progress(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)
