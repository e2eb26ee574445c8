"""CLI output for the ``warden`` command.

Data (decoded claims, settings summaries, JSON error bodies) goes to
stdout so it can be piped; status lines, warnings and errors go to stderr.
Rich rendering is used on a colour terminal, tab-separated text otherwise,
and ``--json`` forces JSON. ``NO_COLOR`` and ``TERM=dumb`` turn colour off.

:class:`OutputManager` is installed once by :func:`~warden.app.main_callback`
with :func:`set_output`; commands reach it through :func:`get_output`.
"""

from __future__ import annotations

import json
import os
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.table import Table

TIMESTAMP_CLAIMS = frozenset({"iat", "nbf", "exp", "issued_at", "expires_at"})
"""Claims holding Unix timestamps; Rich output shows them as UTC datetimes."""


class OutputFormat(str, Enum):
    """``AUTO`` picks ``RICH`` on a colour TTY and ``PLAIN`` otherwise."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Writes command results to stdout and diagnostics to stderr.

    Args:
        format: Desired output format; ``AUTO`` is resolved on creation.
        no_color: Disable colour and Rich markup.
    """

    def __init__(self, format: OutputFormat = OutputFormat.AUTO, no_color: bool = False) -> None:
        self._no_color = no_color or _should_disable_color()
        if format == OutputFormat.AUTO:
            rich_ok = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format
        self._console = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format == OutputFormat.RICH,
        )
        self._diagnostics = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # --- Data (stdout) ---

    def print_claims(self, claims: dict[str, Any]) -> None:
        """Print the claims of a verified token."""
        if self._format == OutputFormat.RICH:
            table = Table(show_header=True, header_style="bold cyan")
            table.add_column("claim")
            table.add_column("value")
            for name, value in claims.items():
                table.add_row(name, _display_claim(name, value))
            self._console.print(table)
        else:
            self._print_mapping(claims)

    def print_settings(self, rows: list[tuple[str, str]], title: Optional[str] = None) -> None:
        """Print a two-column settings summary.

        JSON output is a single object keyed by setting name.
        """
        if self._format == OutputFormat.RICH:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            table.add_column("setting")
            table.add_column("value")
            for name, value in rows:
                table.add_row(name, value)
            self._console.print(table)
        else:
            self._print_mapping(dict(rows))

    def _print_mapping(self, data: dict[str, Any]) -> None:
        if self._format == OutputFormat.JSON:
            lines = [json.dumps(data, indent=2, ensure_ascii=False, default=str)]
        else:
            lines = [f"{key}\t{value}" for key, value in data.items()]
        for line in lines:
            print(line, file=sys.stdout, flush=True)

    # --- Diagnostics (stderr) ---

    def success(self, message: str) -> None:
        self._diagnose(message, "", "green")

    def warning(self, message: str) -> None:
        self._diagnose(message, "Warning: ", "yellow")

    def error(self, message: str) -> None:
        """Print an error to stderr; never suppressed."""
        self._diagnose(message, "Error: ", "bold red")

    def _diagnose(self, message: str, prefix: str, style: str) -> None:
        if self._no_color:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
        elif prefix:
            self._diagnostics.print(f"[{style}]{prefix.strip()}[/{style}] {message}")
        else:
            self._diagnostics.print(f"[{style}]{message}[/{style}]")


def _display_claim(name: str, value: Any) -> str:
    if name in TIMESTAMP_CLAIMS and isinstance(value, int):
        stamp = datetime.fromtimestamp(value, tz=timezone.utc)
        return f"{value} ({stamp:%Y-%m-%d %H:%M:%S} UTC)"
    if value is None:
        return "-"
    return str(value)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


# --- Global instance ---

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (the test suite calls this between tests)."""
    global _output
    _output = None


def error(message: str) -> None:
    """Print *message* as an error through the installed manager."""
    get_output().error(message)
