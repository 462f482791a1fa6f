"""Build command implementation."""

from pathlib import Path

import typer

from ..config import (
    BuildOptions,
    ConfigError,
    ProjectConfig,
    config_path,
    load_config,
    load_or_create_config,
)
from ..core import (
    BuildOrchestrator,
    BuildResult,
    ErrorKind,
    HistoryLedger,
    Prompter,
    suggest_next_version,
)
from ..models import BracketStyle, RawFacets
from ..output import OutputContext, get_output_context
from ..services import (
    AutoPrompter,
    DryRunRepository,
    GitRepository,
    InteractivePrompter,
    PromptAborted,
    SubprocessBuildTool,
)

DEFAULT_STABILITY = "t"
DEFAULT_CHANGE_TYPE = "?"


def collect_facets(
    config: ProjectConfig,
    ledger: HistoryLedger,
    options: BuildOptions,
    prompter: Prompter,
    track: str | None = None,
    version: str | None = None,
    environment: str | None = None,
    stability: str | None = None,
    change_type: str | None = None,
    parent: str | None = None,
    no_parent: bool = False,
) -> RawFacets:
    """Fill in every facet from flags, then prompts or automatic defaults.

    Flags always win. In full-auto mode nothing is asked: config defaults,
    the suggested version, stability ``t`` and change type ``?`` are used.
    """
    ask = not options.full_auto
    last_version = ledger.last_version()
    suggestion = suggest_next_version(last_version)

    def resolve(value: str | None, question: str, default: str) -> str:
        if value is not None:
            return value.strip()
        if not ask:
            return default
        return prompter.ask(question, default=default)

    if version is None and (options.auto_suggest or options.full_auto):
        version = suggestion

    if no_parent:
        parent = ""
    elif parent is None and options.auto_fill_parent:
        parent = last_version

    return RawFacets(
        track=resolve(track, "Track (A/B/R)", config.DEFAULT_TRACK.value),
        version=resolve(version, "Version", suggestion),
        environment=resolve(environment, "Environment (F/W/B/T/M)", config.DEFAULT_ENV.value),
        stability=resolve(stability, "Stability (s/t/e/p/d/x)", DEFAULT_STABILITY),
        change_type=resolve(
            change_type,
            "Change type (+/*/%/!/~/=/?)",
            DEFAULT_CHANGE_TYPE if options.full_auto else "",
        ),
        parent=resolve(parent, "Parent (empty for none)", ""),
    )


def _report(ctx: OutputContext, result: BuildResult) -> None:
    context = result.context
    for warning in context.warnings:
        ctx.warning(warning)

    data = {
        "state": result.state.value,
        "tag": str(context.tag) if context.tag else None,
        "branch": context.target_branch or None,
        "commit": context.record.commit if context.record else context.commit_ref,
        "merged": context.merged,
        "promoted": context.promoted,
        "pushed": context.pushed,
        "rolled_back": result.rolled_back,
    }

    if result.error is not None:
        suffix = " (rolled back)" if result.rolled_back else ""
        ctx.error(
            f"{result.error.kind.value}: {result.error}{suffix}",
            {**data, "kind": result.error.kind.value},
        )
        return

    ctx.success(f"Build complete: {context.tag}", data)
    if context.record is not None:
        ctx.fields({"Branch": context.target_branch, "Commit": context.record.commit}, "  ")


def build(
    track: str | None = typer.Option(None, "--track", "-t", help="Track (A/B/R)"),
    version: str | None = typer.Option(None, "--version", help="Version, major or major.minor"),
    environment: str | None = typer.Option(
        None, "--env", "-e", help="Environment (F/W/B/T/M)"
    ),
    stability: str | None = typer.Option(
        None, "--stability", "-s", help="Stability (s/t/e/p/d/x)"
    ),
    change_type: str | None = typer.Option(
        None, "--change", "-c", help="Change type (+ * % ! ~ = ?)"
    ),
    parent: str | None = typer.Option(None, "--parent", "-p", help="Parent build tag"),
    no_parent: bool = typer.Option(False, "--no-parent", help="Build without a parent"),
    port: str | None = typer.Option(None, "--port", help="Serial port for flashing"),
    full_auto: bool = typer.Option(
        False, "--full-auto", help="Never prompt; use defaults and suggestions"
    ),
    auto_suggest: bool = typer.Option(
        False, "--auto-suggest", help="Use the suggested next version"
    ),
    auto_parent: bool = typer.Option(
        False, "--auto-parent", help="Use the last recorded build as parent"
    ),
    message: str | None = typer.Option(None, "--message", "-m", help="Commit message"),
    skip_commit: bool = typer.Option(False, "--skip-commit", help="Do not commit before build"),
    skip_flash: bool = typer.Option(False, "--skip-flash", help="Build only"),
    skip_monitor: bool = typer.Option(False, "--skip-monitor", help="Build and flash only"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Print intended actions without changing anything"
    ),
    no_confirm: bool = typer.Option(
        False, "--no-confirm", "--unsafe", help="Take default answers without asking"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Answer yes to every confirmation"),
    no_rollback: bool = typer.Option(
        False, "--no-rollback", help="Do not roll back when the build aborts"
    ),
    push: bool = typer.Option(False, "--push", help="Offer to push branch and tag to origin"),
    ascii_brackets: bool = typer.Option(
        False, "--ascii", help="Wrap the parent in << >> instead of ⟪ ⟫"
    ),
    project_dir: Path | None = typer.Option(
        None, "--project-dir", "-C", help="Project directory (default: current)"
    ),
) -> None:
    """Compose a version tag, prepare the major branch, build, tag and record."""
    ctx = get_output_context()
    root = (project_dir or Path.cwd()).resolve()
    dry_run = dry_run or ctx.dry_run

    try:
        if dry_run:
            config = load_config(root)
            if not config_path(root).exists():
                ctx.would(f"create config: {config_path(root)}")
        else:
            config, created = load_or_create_config(root)
            if created:
                ctx.print(f"[green]Created default config:[/green] {config_path(root)}")
    except ConfigError as e:
        ctx.error(str(e))
        raise typer.Exit(1) from None

    options = BuildOptions(
        bracket_style=BracketStyle.ASCII if ascii_brackets else config.BRACKET_STYLE,
        dry_run=dry_run,
        assume_yes=yes,
        no_confirm=no_confirm,
        full_auto=full_auto,
        auto_suggest=auto_suggest,
        auto_fill_parent=auto_parent,
        skip_commit=skip_commit,
        skip_flash=skip_flash,
        skip_monitor=skip_monitor,
        no_rollback=no_rollback,
        push=push,
        commit_message=message,
        port=port or config.DEFAULT_PORT,
        integration_branch=config.INTEGRATION_BRANCH,
    )

    ledger = HistoryLedger(config.history_path(root))
    facet_prompter = InteractivePrompter()
    gate_prompter: Prompter = (
        facet_prompter if options.interactive else AutoPrompter(assume_yes=options.assume_yes)
    )

    try:
        raw = collect_facets(
            config,
            ledger,
            options,
            facet_prompter,
            track=track,
            version=version,
            environment=environment,
            stability=stability,
            change_type=change_type,
            parent=parent,
            no_parent=no_parent,
        )
    except PromptAborted:
        ctx.error(f"{ErrorKind.USER_ABORT.value}: Aborted at prompt")
        raise typer.Exit(1) from None

    git = (
        DryRunRepository(root, config.INTEGRATION_BRANCH, announce=ctx.would)
        if options.dry_run
        else GitRepository(root)
    )
    orchestrator = BuildOrchestrator(
        raw=raw,
        options=options,
        git=git,
        prompter=gate_prompter,
        build_tool=SubprocessBuildTool(config.BUILD_TOOL, cwd=root),
        ledger=ledger,
        marker_path=config.marker_path(root),
        progress=None if ctx.json_mode else ctx.console.status,
        announce=ctx.would,
    )
    result = orchestrator.run()
    _report(ctx, result)
    if not result.ok:
        raise typer.Exit(result.exit_code)
