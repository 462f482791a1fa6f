"""Tag compose and inspect command implementations."""

import typer

from ..core import (
    InputValidationError,
    branch_for_reference,
    branch_for_tag,
    compose_tag,
    extract_parent,
    validate_facets,
)
from ..models import BracketStyle, RawFacets, TagParseError, VersionTag
from ..output import get_output_context


def compose(
    track: str = typer.Option(..., "--track", "-t", help="Track (A/B/R)"),
    version: str = typer.Option(..., "--version", help="Version, major or major.minor"),
    environment: str = typer.Option(..., "--env", "-e", help="Environment (F/W/B/T/M)"),
    stability: str = typer.Option(..., "--stability", "-s", help="Stability (s/t/e/p/d/x)"),
    change_type: str = typer.Option(..., "--change", "-c", help="Change type (+ * % ! ~ = ?)"),
    parent: str = typer.Option("", "--parent", "-p", help="Parent build tag"),
    ascii_brackets: bool = typer.Option(False, "--ascii", help="Wrap the parent in << >>"),
) -> None:
    """Compose a version tag and show its branch, without touching git."""
    ctx = get_output_context()
    raw = RawFacets(
        track=track,
        version=version,
        environment=environment,
        stability=stability,
        change_type=change_type,
        parent=parent,
    )
    try:
        facets = validate_facets(raw)
    except InputValidationError as e:
        ctx.error(str(e), {"failures": e.failures})
        raise typer.Exit(1) from None

    style = BracketStyle.ASCII if ascii_brackets else BracketStyle.UNICODE
    tag = compose_tag(facets, style)
    data = {
        "tag": str(tag),
        "name": tag.name,
        "branch": branch_for_tag(tag),
        "parent_branch": branch_for_reference(facets.parent) if facets.parent else None,
    }
    if ctx.json_mode:
        ctx.print_json(data)
        return
    typer.echo(str(tag))
    ctx.fields({"Branch": data["branch"], "Parent branch": data["parent_branch"]})


def inspect(tag: str = typer.Argument(..., help="Version tag string")) -> None:
    """Parse a version tag and show its fields."""
    ctx = get_output_context()
    try:
        parsed = VersionTag.parse(tag)
    except TagParseError as e:
        ctx.error(str(e))
        raise typer.Exit(1) from None

    facets = parsed.facets
    data = {
        "track": facets.track.value,
        "version": str(facets.version),
        "environment": facets.environment.value,
        "stability": facets.stability.value,
        "change_type": facets.change_type.value,
        "parent": extract_parent(tag),
        "bracket_style": parsed.bracket_style.value if facets.parent else None,
        "branch": branch_for_tag(parsed),
    }
    if ctx.json_mode:
        ctx.print_json(data)
        return
    ctx.fields(data)
