"""Build orchestrator state machine.

A build attempt moves through a fixed sequence of states. Each state has
one handler that performs the work leading to the next state and returns
a ``Transition``: advance, fatal error, or a declined gate. Once the
snapshot is armed, any halt rolls the repository back and returns to the
starting branch before the attempt ends in ``ABORTED``.
"""

import contextlib
import logging
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ..config import BuildOptions
from ..constants import DEFAULT_REMOTE, DRY_RUN, NO_COMMIT, NO_HASH
from ..models import (
    BuildFacets,
    HistoryRecord,
    RawFacets,
    Snapshot,
    Stability,
    VersionTag,
)
from ..services.git import GitError
from ..services.prompts import PromptAborted
from .branching import branch_for_reference, branch_for_tag, parse_tag_reference
from .errors import (
    BuildError,
    ExternalToolError,
    MergeConflictError,
    RepositoryStateError,
    UserAbortError,
)
from .history import HistoryLedger
from .ports import BuildMode, BuildTool, GitPort, Prompter
from .snapshot import SnapshotManager
from .validation import validate_facets
from .versioning import compose_tag

logger = logging.getLogger(__name__)

ProgressFactory = Callable[[str], AbstractContextManager]


class BuildState(str, Enum):
    """States of a build attempt, in order."""

    INIT = "init"
    VALIDATED = "validated"
    TAG_COMPOSED = "tag-composed"
    REPO_BOOTSTRAPPED = "repo-bootstrapped"
    SNAPSHOTTED = "snapshotted"
    PARENT_RESOLVED = "parent-resolved"
    CROSS_TRACK_CHECKED = "cross-track-checked"
    BRANCH_READY = "branch-ready"
    MERGED = "merged"
    COMMITTED = "committed"
    BUILD_INVOKED = "build-invoked"
    TAGGED = "tagged"
    PROMOTED = "promoted"
    PUSHED = "pushed"
    DONE = "done"
    ABORTED = "aborted"

    @property
    def terminal(self) -> bool:
        return self in (BuildState.DONE, BuildState.ABORTED)


class Outcome(str, Enum):
    ADVANCE = "advance"
    FATAL = "fatal"
    DECLINED = "declined"


@dataclass(frozen=True)
class Transition:
    """Result of running one state handler."""

    outcome: Outcome
    state: BuildState | None = None
    error: BuildError | None = None

    def __post_init__(self) -> None:
        if (self.outcome is Outcome.ADVANCE) != (self.state is not None):
            raise ValueError("Only an advance carries a next state")
        if (self.outcome is Outcome.ADVANCE) != (self.error is None):
            raise ValueError("Fatal and declined transitions carry an error")

    @classmethod
    def advance(cls, state: BuildState) -> "Transition":
        return cls(Outcome.ADVANCE, state=state)

    @classmethod
    def fatal(cls, error: BuildError) -> "Transition":
        return cls(Outcome.FATAL, error=error)

    @classmethod
    def declined(cls, error: UserAbortError) -> "Transition":
        return cls(Outcome.DECLINED, error=error)


@dataclass
class BuildContext:
    """Facts established while the attempt progresses."""

    raw: RawFacets
    facets: BuildFacets | None = None
    tag: VersionTag | None = None
    target_branch: str = ""
    parent_branch: str | None = None
    parent_track: str | None = None
    origin: Snapshot | None = None
    commit_ref: str = NO_COMMIT
    merged: bool = False
    promoted: bool = False
    pushed: bool = False
    record: HistoryRecord | None = None
    warnings: list[str] = field(default_factory=list)


@dataclass
class BuildResult:
    """Final outcome of a build attempt."""

    state: BuildState
    context: BuildContext
    error: BuildError | None = None
    rolled_back: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def exit_code(self) -> int:
        return 0 if self.error is None else self.error.exit_code


class BuildOrchestrator:
    """Drives one build attempt from raw facets to a history record."""

    _HANDLERS: dict[BuildState, str] = {
        BuildState.INIT: "_validate",
        BuildState.VALIDATED: "_compose_tag",
        BuildState.TAG_COMPOSED: "_bootstrap_repository",
        BuildState.REPO_BOOTSTRAPPED: "_take_snapshot",
        BuildState.SNAPSHOTTED: "_resolve_parent",
        BuildState.PARENT_RESOLVED: "_check_cross_track",
        BuildState.CROSS_TRACK_CHECKED: "_prepare_branch",
        BuildState.BRANCH_READY: "_merge_parent",
        BuildState.MERGED: "_commit",
        BuildState.COMMITTED: "_invoke_build",
        BuildState.BUILD_INVOKED: "_tag",
        BuildState.TAGGED: "_promote",
        BuildState.PROMOTED: "_push",
        BuildState.PUSHED: "_finish",
    }

    def __init__(
        self,
        raw: RawFacets,
        options: BuildOptions,
        git: GitPort,
        prompter: Prompter,
        build_tool: BuildTool,
        ledger: HistoryLedger,
        marker_path: Path | None = None,
        progress: ProgressFactory | None = None,
        announce: Callable[[str], None] | None = None,
    ):
        self.options = options
        self.git = git
        self.prompter = prompter
        self.build_tool = build_tool
        self.ledger = ledger
        self.marker_path = marker_path
        self.progress = progress
        self.announce = announce
        self.snapshots = SnapshotManager(git)
        self.context = BuildContext(raw=raw)
        self.state = BuildState.INIT
        self.visited: list[BuildState] = [BuildState.INIT]

    # ------------------------------------------------------------------
    # Driving
    # ------------------------------------------------------------------

    def step(self) -> Transition:
        """Run the handler for the current state and apply an advance."""
        if self.state.terminal:
            raise RuntimeError(f"Build attempt already {self.state.value}")

        handler = getattr(self, self._HANDLERS[self.state])
        try:
            transition = handler()
        except BuildError as e:
            transition = Transition.fatal(e)
        except GitError as e:
            transition = Transition.fatal(RepositoryStateError(str(e)))
        except PromptAborted:
            transition = Transition.declined(UserAbortError("Aborted at prompt"))

        if transition.state is not None:
            logger.debug(f"State {self.state.value} -> {transition.state.value}")
            self.state = transition.state
            self.visited.append(transition.state)
        return transition

    def run(self) -> BuildResult:
        """Step until the attempt is done or has to abort."""
        while not self.state.terminal:
            transition = self.step()
            if transition.error is not None:
                return self.abort(transition.error)
        return BuildResult(state=self.state, context=self.context)

    def abort(self, error: BuildError) -> BuildResult:
        """Roll back when armed and allowed, then end in ``ABORTED``.

        After a rollback the attempt returns to the branch it started from.
        """
        logger.debug(f"Aborting from {self.state.value}: {error}")
        rolled_back = False
        restored = self.snapshots.current
        if restored is not None and self.options.no_rollback:
            logger.warning("Rollback suppressed; repository left as-is")
        elif restored is not None:
            with self.ledger.preserved():
                rolled_back = self.snapshots.rollback()
                origin = self.context.origin
                if rolled_back and origin is not None and origin.ref != restored.ref:
                    self._return_to(origin)
        self.state = BuildState.ABORTED
        self.visited.append(BuildState.ABORTED)
        return BuildResult(
            state=self.state,
            context=self.context,
            error=error,
            rolled_back=rolled_back,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def integration_branch(self) -> str:
        return self.options.integration_branch

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.context.warnings.append(message)

    def _would(self, action: str) -> None:
        if self.announce is not None:
            self.announce(action)
        else:
            logger.info(f"[DRY RUN] Would {action}")

    def _return_to(self, origin: Snapshot) -> None:
        logger.info(f"Returning to {origin.branch}")
        try:
            self.git.checkout(origin.ref)
        except GitError as e:
            self._warn(f"Could not return to {origin.branch}: {e}")

    def _require_facets(self) -> BuildFacets:
        if self.context.facets is None:
            raise RuntimeError("Facets have not been validated yet")
        return self.context.facets

    def _require_tag(self) -> VersionTag:
        if self.context.tag is None:
            raise RuntimeError("Tag has not been composed yet")
        return self.context.tag

    # ------------------------------------------------------------------
    # State handlers
    # ------------------------------------------------------------------

    def _validate(self) -> Transition:
        self.context.facets = validate_facets(self.context.raw)
        return Transition.advance(BuildState.VALIDATED)

    def _compose_tag(self) -> Transition:
        tag = compose_tag(self._require_facets(), self.options.bracket_style)
        self.context.tag = tag
        self.context.target_branch = branch_for_tag(tag)
        logger.info(f"Version tag: {tag}")
        logger.debug(f"Major branch: {self.context.target_branch}")
        return Transition.advance(BuildState.TAG_COMPOSED)

    def _bootstrap_repository(self) -> Transition:
        if not self.git.is_repository():
            logger.info("No git repository found, initializing")
            self.git.init_repository(self.integration_branch)
        elif not self.git.has_commits():
            logger.info("Repository has no commits, creating initial commit")
            self.git.commit_empty("Initial commit")

        if not self.git.branch_exists(self.integration_branch):
            logger.info(f"Creating integration branch {self.integration_branch}")
            self.git.create_branch(self.integration_branch, "HEAD", checkout=False)
        return Transition.advance(BuildState.REPO_BOOTSTRAPPED)

    def _take_snapshot(self) -> Transition:
        self.context.origin = self.snapshots.snapshot()
        return Transition.advance(BuildState.SNAPSHOTTED)

    def _resolve_parent(self) -> Transition:
        parent = self._require_facets().parent
        if not parent:
            return Transition.advance(BuildState.PARENT_RESOLVED)

        parent_branch = branch_for_reference(parent)
        self.context.parent_branch = parent_branch
        self.context.parent_track = parse_tag_reference(parent)[0]

        if not self.git.branch_exists(parent_branch):
            logger.warning(f"Parent branch {parent_branch} not found locally")
            question = f"Create parent branch {parent_branch} from {self.integration_branch}?"
            if self.prompter.confirm(question, default=False):
                self.git.create_branch(parent_branch, self.integration_branch, checkout=False)
                logger.info(f"Created parent branch {parent_branch}")
            else:
                self._warn(
                    f"Proceeding without local parent branch {parent_branch}; "
                    "it must exist remotely"
                )
        return Transition.advance(BuildState.PARENT_RESOLVED)

    def _check_cross_track(self) -> Transition:
        track = self._require_facets().track.value
        parent_track = self.context.parent_track
        if parent_track is None or parent_track == track:
            return Transition.advance(BuildState.CROSS_TRACK_CHECKED)

        question = f"Cross-track build: {track} based on {parent_track}. Continue?"
        if not self.prompter.confirm(question, default=False):
            return Transition.declined(
                UserAbortError(f"Cross-track build declined ({track} from {parent_track})")
            )
        logger.info(f"Continuing cross-track build {parent_track} -> {track}")
        return Transition.advance(BuildState.CROSS_TRACK_CHECKED)

    def _prepare_branch(self) -> Transition:
        target = self.context.target_branch
        if self.git.branch_exists(target):
            logger.info(f"Checking out {target}")
            self.git.checkout(target)
        else:
            logger.info(f"Creating branch {target} from {self.integration_branch}")
            self.git.create_branch(target, self.integration_branch)
        # Later steps only move the target branch, so roll back to its tip
        self.snapshots.snapshot()
        return Transition.advance(BuildState.BRANCH_READY)

    def _merge_parent(self) -> Transition:
        parent_branch = self.context.parent_branch
        target = self.context.target_branch
        if not parent_branch or not self.git.branch_exists(parent_branch):
            return Transition.advance(BuildState.MERGED)

        ahead = self.git.commits_ahead(target, parent_branch)
        if ahead <= 0:
            return Transition.advance(BuildState.MERGED)

        question = (
            f"Parent branch {parent_branch} is {ahead} commit(s) ahead of {target}. "
            "Merge before build?"
        )
        if not self.prompter.confirm(question, default=True):
            logger.info("Merge declined, building without parent changes")
            return Transition.advance(BuildState.MERGED)

        logger.info(f"Merging {parent_branch} into {target}")
        if not self.git.merge(parent_branch):
            return Transition.fatal(
                MergeConflictError(f"Merge conflict merging {parent_branch} into {target}")
            )
        self.context.merged = True
        return Transition.advance(BuildState.MERGED)

    def _commit(self) -> Transition:
        tag = self._require_tag()
        # Written after any merge so it lands in the build commit
        if self.marker_path is not None:
            self.marker_path.write_text(f"{tag}\n", encoding="utf-8")

        if self.options.skip_commit:
            logger.info("Skipping commit")
            self.context.commit_ref = NO_COMMIT
            return Transition.advance(BuildState.COMMITTED)

        if not self.prompter.confirm("Commit working tree before build?", default=True):
            self.context.commit_ref = NO_COMMIT
            return Transition.advance(BuildState.COMMITTED)

        message = self.options.commit_message
        if not message:
            message = self.prompter.ask("Commit message (empty = auto)", default="")
        message = message or f"Build {tag}"

        self.git.stage_all()
        if self.git.has_staged_changes():
            self.git.commit(message)
            logger.info(f"Committed: {message}")
        else:
            self._warn("Nothing to commit, building current HEAD")

        try:
            self.context.commit_ref = self.git.head_sha(short=True)
        except GitError:
            self.context.commit_ref = NO_HASH
        return Transition.advance(BuildState.COMMITTED)

    def _invoke_build(self) -> Transition:
        tag = self._require_tag()
        mode = BuildMode.select(self.options.skip_flash, self.options.skip_monitor)
        command = self.build_tool.describe(self.options.port, mode)

        if self.options.dry_run:
            self._would(f"run {command}")
            return Transition.advance(BuildState.BUILD_INVOKED)

        # The monitor takes over the terminal, so no spinner for it
        if self.progress is not None and mode is not BuildMode.MONITOR:
            indicator = self.progress(f"Building {tag}...")
        else:
            indicator = contextlib.nullcontext()

        with indicator:
            returncode = self.build_tool.run(self.options.port, mode)

        if returncode != 0:
            return Transition.fatal(
                ExternalToolError(f"Build failed with exit code {returncode}", returncode)
            )
        logger.info(f"Build succeeded for {tag}")
        return Transition.advance(BuildState.BUILD_INVOKED)

    def _tag(self) -> Transition:
        tag = self._require_tag()
        try:
            self.git.create_tag(tag.name, f"Build {tag}")
            logger.info(f"Tagged {tag.name}")
        except GitError as e:
            self._warn(f"Could not create tag {tag.name}: {e}")
        # A failure after this point keeps the tagged build commit
        self.snapshots.snapshot()
        return Transition.advance(BuildState.TAGGED)

    def _promote(self) -> Transition:
        tag = self._require_tag()
        facets = self._require_facets()
        if facets.stability is not Stability.STABLE:
            return Transition.advance(BuildState.PROMOTED)

        target = self.context.target_branch
        question = f"Build marked stable. Merge {target} into {self.integration_branch}?"
        if not self.prompter.confirm(question, default=False):
            logger.info(f"Promotion to {self.integration_branch} declined")
            return Transition.advance(BuildState.PROMOTED)

        self.git.checkout(self.integration_branch)
        self.snapshots.snapshot()
        if not self.git.merge(target):
            return Transition.fatal(
                MergeConflictError(
                    f"Merge conflict promoting {target} into {self.integration_branch}"
                )
            )
        try:
            self.git.create_tag(tag.name, f"Release {tag.name}", force=True)
        except GitError as e:
            self._warn(f"Could not tag {self.integration_branch} with {tag.name}: {e}")
        self.context.promoted = True
        logger.info(f"Promoted {target} -> {self.integration_branch} and tagged {tag.name}")
        return Transition.advance(BuildState.PROMOTED)

    def _push(self) -> Transition:
        tag = self._require_tag()
        if not self.options.push:
            return Transition.advance(BuildState.PUSHED)

        target = self.context.target_branch
        question = f"Push {target} and tag {tag.name} to {DEFAULT_REMOTE}?"
        if not self.prompter.confirm(question, default=True):
            return Transition.advance(BuildState.PUSHED)

        refs = [target]
        if self.context.promoted:
            refs.append(self.integration_branch)
        try:
            for ref in refs:
                self.git.push(DEFAULT_REMOTE, ref, set_upstream=True)
            self.git.push(DEFAULT_REMOTE, tag.name)
            self.context.pushed = True
        except GitError as e:
            self._warn(f"Push to {DEFAULT_REMOTE} failed: {e}")
        return Transition.advance(BuildState.PUSHED)

    def _finish(self) -> Transition:
        tag = self._require_tag()
        commit = DRY_RUN if self.options.dry_run else self.context.commit_ref
        record = HistoryRecord(tag=str(tag), commit=commit)
        self.ledger.append(record)
        self.context.record = record
        logger.info("Build flow complete")
        return Transition.advance(BuildState.DONE)
