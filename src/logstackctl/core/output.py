"""Output formatting utilities using Rich."""

import json
from enum import Enum
from typing import Any

import yaml
from rich.console import Console
from rich.table import Table

error_console = Console(stderr=True)


class OutputFormat(str, Enum):
    """Supported output formats."""

    TABLE = "table"
    JSON = "json"
    YAML = "yaml"
    RAW = "raw"


class OutputFormatter:
    """Handles output formatting for CLI commands."""

    def __init__(
        self,
        format: OutputFormat = OutputFormat.TABLE,
        color: bool = True,
        quiet: bool = False,
    ):
        self.format = format
        self.color = color
        self.quiet = quiet
        self._console = Console(force_terminal=color, no_color=not color)

    @property
    def console(self) -> Console:
        return self._console

    def print(self, message: str, style: str | None = None) -> None:
        """Print a message to stdout."""
        if self.quiet:
            return
        self._console.print(message, style=style)

    def print_error(self, message: str) -> None:
        """Print an error message to stderr."""
        error_console.print(f"[red]Error:[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        if self.quiet:
            return
        self._console.print(f"[yellow]Warning:[/yellow] {message}")

    def print_success(self, message: str) -> None:
        """Print a success message."""
        if self.quiet:
            return
        self._console.print(f"[green]✓[/green] {message}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        if self.quiet:
            return
        self._console.print(f"[blue]ℹ[/blue] {message}")

    def print_header(self, message: str) -> None:
        """Print a section header."""
        if self.quiet:
            return
        self._console.print(f"\n[bold blue]=== {message} ===[/bold blue]")

    def print_data(
        self,
        data: list[dict[str, Any]] | dict[str, Any],
        headers: list[str] | None = None,
        title: str | None = None,
    ) -> None:
        """Print data in the configured format."""
        if self.format == OutputFormat.JSON:
            self._print_json(data)
        elif self.format == OutputFormat.YAML:
            self._print_yaml(data)
        elif self.format == OutputFormat.RAW:
            self._print_raw(data)
        else:
            self._print_table(data, headers, title)

    def print_table(self, table: Table) -> None:
        """Print a prebuilt Rich table."""
        if self.quiet:
            return
        self._console.print(table)

    def _print_json(self, data: Any) -> None:
        """Print data as JSON."""
        print(json.dumps(data, indent=2, default=str))

    def _print_yaml(self, data: Any) -> None:
        """Print data as YAML."""
        print(yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False))

    def _print_raw(self, data: Any) -> None:
        """Print raw data."""
        if isinstance(data, list):
            for item in data:
                print(item)
        elif isinstance(data, dict):
            for key, value in data.items():
                print(f"{key}: {value}")
        else:
            print(data)

    def _print_table(
        self,
        data: list[dict[str, Any]] | dict[str, Any],
        headers: list[str] | None = None,
        title: str | None = None,
    ) -> None:
        """Print data as a formatted table."""
        if isinstance(data, dict):
            # Single record - display as key-value pairs
            table = Table(title=title, show_header=True, header_style="bold cyan")
            table.add_column("Field", style="dim")
            table.add_column("Value")
            for key, value in data.items():
                table.add_row(str(key), str(value))
            self._console.print(table)
        elif isinstance(data, list) and len(data) > 0:
            if headers is None:
                headers = list(data[0].keys())

            table = Table(title=title, show_header=True, header_style="bold cyan")
            for header in headers:
                table.add_column(header)

            for row in data:
                table.add_row(*[str(row.get(h, "")) for h in headers])

            self._console.print(table)
        else:
            self._console.print("[dim]No data to display[/dim]")

    def confirm(self, message: str, default: bool = False) -> bool:
        """Ask for confirmation."""
        if self.quiet:
            return default

        suffix = r" \[Y/n]" if default else r" \[y/N]"
        self._console.print(f"{message}{suffix}", end=" ")

        try:
            response = input().strip().lower()
            if not response:
                return default
            return response in ("y", "yes")
        except (EOFError, KeyboardInterrupt):
            return False


def format_duration(seconds: float) -> str:
    """Format seconds to human-readable duration."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = seconds / 60
        return f"{minutes:.1f}m"
    else:
        hours = seconds / 3600
        return f"{hours:.1f}h"
