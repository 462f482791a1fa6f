"""Output formatting for fwbuild CLI.

Human-readable lines go to the rich console. In ``--json`` mode a command
prints a single JSON document instead, and warnings and dry-run actions
raised along the way are carried in it under ``warnings`` and
``dry_run_actions``.
"""

import json
from dataclasses import dataclass, field
from typing import Any

from rich.console import Console
from rich.markup import escape


@dataclass
class OutputContext:
    """Context for output formatting."""

    console: Console
    json_mode: bool = False
    dry_run: bool = False
    warnings: list[str] = field(default_factory=list)
    planned: list[str] = field(default_factory=list)

    def print(self, message: str, style: str | None = None) -> None:
        """Print message respecting output mode."""
        if not self.json_mode:
            self.console.print(message, style=style)

    def print_json(self, data: dict[str, Any]) -> None:
        """Print JSON data."""
        if self.json_mode:
            print(json.dumps(data, indent=2, default=str))

    def _payload(self, data: dict[str, Any]) -> dict[str, Any]:
        payload = dict(data)
        if self.warnings:
            payload["warnings"] = list(self.warnings)
        if self.planned:
            payload["dry_run_actions"] = list(self.planned)
        return payload

    def result(self, data: dict[str, Any], message: str = "") -> None:
        """Print result in appropriate format."""
        if self.json_mode:
            self.print_json(self._payload(data))
        elif message:
            self.console.print(message)

    def error(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Print error in appropriate format."""
        if self.json_mode:
            self.print_json(self._payload({"error": message, **(data or {})}))
        else:
            self.console.print(f"[red]Error: {escape(message)}[/red]")

    def warning(self, message: str) -> None:
        """Record a warning; never changes the exit code.

        Printed immediately in text mode, carried in the JSON document otherwise.
        """
        self.warnings.append(message)
        if not self.json_mode:
            self.console.print(f"[yellow]Warning: {escape(message)}[/yellow]")

    def would(self, action: str) -> None:
        """Report an action a dry run skips, as ``[DRY RUN] Would <action>``."""
        self.planned.append(action)
        if not self.json_mode:
            self.console.print(f"[cyan][DRY RUN][/cyan] Would {escape(action)}")

    def fields(self, values: dict[str, Any], indent: str = "") -> None:
        """Print ``key: value`` lines, skipping empty values."""
        if self.json_mode:
            return
        for key, value in values.items():
            if value in (None, ""):
                continue
            self.console.print(f"{indent}{key}: {value}", markup=False, highlight=False)

    def success(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Print success message in appropriate format."""
        if self.json_mode:
            self.print_json(self._payload({"success": message, **(data or {})}))
        else:
            self.console.print(f"[green]{escape(message)}[/green]")


_ctx: OutputContext | None = None


def get_output_context() -> OutputContext:
    """Context installed by the CLI callback, or a plain stderr one before that."""
    if _ctx is None:
        return OutputContext(Console(stderr=True))
    return _ctx


def set_output_context(ctx: OutputContext | None) -> None:
    global _ctx
    _ctx = ctx
