"""History and suggest command implementations."""

from pathlib import Path

import typer

from ..config import ConfigError, ProjectConfig, load_config
from ..core import HistoryLedger, suggest_next_version
from ..output import get_output_context


def _load(project_dir: Path | None) -> tuple[Path, ProjectConfig]:
    ctx = get_output_context()
    root = (project_dir or Path.cwd()).resolve()
    try:
        return root, load_config(root)
    except ConfigError as e:
        ctx.error(str(e))
        raise typer.Exit(1) from None


def history(
    limit: int = typer.Option(10, "--limit", "-n", min=1, help="Number of records to show"),
    project_dir: Path | None = typer.Option(
        None, "--project-dir", "-C", help="Project directory (default: current)"
    ),
) -> None:
    """Show the most recent build records."""
    ctx = get_output_context()
    root, config = _load(project_dir)
    records = HistoryLedger(config.history_path(root)).records()[-limit:]

    if ctx.json_mode:
        ctx.print_json({"records": [r.model_dump(mode="json") for r in records]})
        return

    if not records:
        ctx.console.print("[yellow]No builds recorded[/yellow]")
        return

    ctx.console.print("[bold]Builds:[/bold]")
    for record in records:
        ctx.console.print(f"  {record.to_line()}", markup=False, highlight=False)


def suggest(
    project_dir: Path | None = typer.Option(
        None, "--project-dir", "-C", help="Project directory (default: current)"
    ),
) -> None:
    """Print the suggested next version based on the last recorded build."""
    ctx = get_output_context()
    root, config = _load(project_dir)
    last = HistoryLedger(config.history_path(root)).last()
    suggestion = suggest_next_version(last.base if last else "")

    if ctx.json_mode:
        ctx.print_json({"last": last.tag if last else None, "suggested": suggestion})
    else:
        typer.echo(suggestion)
