"""fwbuild CLI: Versioned firmware build orchestration."""

import typer

from fwbuild import __version__

from .commands import build, compose, history, init, inspect, suggest
from .logging import configure_logging
from .output import OutputContext, set_output_context


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"fwbuild {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="fwbuild",
    help="Versioned firmware builds on per-major git branches",
    no_args_is_help=True,
)

tag_app = typer.Typer(help="Version tag helpers")
app.add_typer(tag_app, name="tag")


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v, -vv)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in JSON format for automation",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Preview effects without applying changes",
    ),
) -> None:
    """fwbuild - versioned firmware builds."""
    console = configure_logging(
        verbosity=verbose,
        quiet=quiet,
        no_color=no_color,
    )
    set_output_context(OutputContext(console=console, json_mode=json_output, dry_run=dry_run))


app.command()(init)
app.command()(build)
app.command()(history)
app.command()(suggest)
tag_app.command("compose")(compose)
tag_app.command("inspect")(inspect)


if __name__ == "__main__":
    app()
