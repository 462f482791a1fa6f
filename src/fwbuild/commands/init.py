"""Init command implementation."""

import shlex
import subprocess
from pathlib import Path

import typer

from ..config import ConfigError, config_path, load_config, write_config
from ..constants import INIT_TOOL_CHECK_TIMEOUT
from ..output import get_output_context


def init(
    project_dir: Path | None = typer.Option(
        None, "--project-dir", "-C", help="Project directory (default: current)"
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config"),
) -> None:
    """Write the default config and check the toolchain."""
    ctx = get_output_context()
    root = (project_dir or Path.cwd()).resolve()
    path = config_path(root)

    if ctx.dry_run:
        if path.exists() and not force:
            ctx.print(f"Config already exists: {path}")
        else:
            ctx.would(f"write config: {path}")
        ctx.result({"config": str(path)})
        return

    if path.exists() and not force:
        ctx.console.print(f"[yellow]Config already exists:[/yellow] {path}")
        try:
            config = load_config(root)
        except ConfigError as e:
            ctx.error(str(e))
            raise typer.Exit(1) from None
    else:
        write_config(root)
        config = load_config(root)
        ctx.console.print(f"[green]Created config:[/green] {path}")

    # Validate toolchain
    tools = {
        "git": ["git", "--version"],
        config.BUILD_TOOL: [*shlex.split(config.BUILD_TOOL), "--version"],
    }

    all_ok = True
    for name, cmd in tools.items():
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, timeout=INIT_TOOL_CHECK_TIMEOUT
            )
            if result.returncode == 0:
                ctx.console.print(f"[green]✓[/green] {name}")
            else:
                ctx.console.print(f"[red]✗[/red] {name}: {result.stderr.strip()[:50]}")
                all_ok = False
        except FileNotFoundError:
            ctx.console.print(f"[red]✗[/red] {name}: not found in PATH")
            all_ok = False
        except subprocess.TimeoutExpired:
            ctx.console.print(f"[yellow]?[/yellow] {name}: timed out")

    if not all_ok:
        ctx.console.print("\n[yellow]Warning: Some tools are missing or not configured[/yellow]")
        raise typer.Exit(2)

    ctx.console.print("\n[bold green]fwbuild initialized successfully![/bold green]")
