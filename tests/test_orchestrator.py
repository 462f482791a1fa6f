"""Tests for the build orchestrator state machine."""

import contextlib
from collections.abc import Callable
from pathlib import Path

import pytest

from fakes import FakeBuildTool, FakeGit, FakePrompter, make_raw
from fwbuild.core import (
    BuildOrchestrator,
    BuildState,
    ErrorKind,
    ExternalToolError,
    HistoryLedger,
    Outcome,
    Transition,
)
from fwbuild.services import BuildMode, GitError

MakeOrchestrator = Callable[..., BuildOrchestrator]


@pytest.mark.unit
class TestHappyPath:
    """A plain build with no parent."""

    def test_scenario_without_parent(
        self,
        make_orchestrator: MakeOrchestrator,
        fake_git: FakeGit,
        fake_tool: FakeBuildTool,
        ledger: HistoryLedger,
    ) -> None:
        result = make_orchestrator().run()

        assert result.ok
        assert result.exit_code == 0
        assert result.state is BuildState.DONE
        assert str(result.context.tag) == "A10.3[F|t|+]"
        assert result.context.target_branch == "A10"
        assert result.context.parent_branch is None

        assert fake_git.current == "A10"
        assert fake_git.called("create_branch") == [("create_branch", "A10", "main", True)]
        assert fake_git.called("commit") == [("commit", "Build A10.3[F|t|+]")]
        assert fake_git.tags["vA10.3"] == fake_git.branches["A10"]
        assert fake_tool.runs == [("/dev/ttyTEST", BuildMode.MONITOR)]

        records = ledger.records()
        assert len(records) == 1
        assert records[0].tag == "A10.3[F|t|+]"
        assert records[0].commit == fake_git.branches["A10"][:7]

    def test_visits_every_state_in_order(self, make_orchestrator: MakeOrchestrator) -> None:
        orchestrator = make_orchestrator()
        orchestrator.run()
        assert orchestrator.visited == [s for s in BuildState if s is not BuildState.ABORTED]

    def test_checks_out_existing_major_branch(self, make_orchestrator: MakeOrchestrator) -> None:
        git = FakeGit(branches=["main", "A10"])
        result = make_orchestrator(git=git).run()
        assert result.ok
        assert git.called("create_branch") == []
        assert ("checkout", "A10") in git.calls

    def test_writes_marker_file(self, make_orchestrator: MakeOrchestrator, tmp_path: Path) -> None:
        marker = tmp_path / "build_version.txt"
        marker.write_text("old\n")
        make_orchestrator(marker_path=marker).run()
        assert marker.read_text() == "A10.3[F|t|+]\n"

    def test_step_after_done_raises(self, make_orchestrator: MakeOrchestrator) -> None:
        orchestrator = make_orchestrator()
        orchestrator.run()
        with pytest.raises(RuntimeError):
            orchestrator.step()


@pytest.mark.unit
class TestValidation:
    """Facet failures halt before git is touched."""

    def test_invalid_facets_abort_without_git(
        self, make_orchestrator: MakeOrchestrator, fake_git: FakeGit, ledger: HistoryLedger
    ) -> None:
        orchestrator = make_orchestrator(raw=make_raw(track="Z", stability="S"))
        result = orchestrator.run()

        assert result.state is BuildState.ABORTED
        assert result.exit_code == 1
        assert result.error is not None
        assert result.error.kind is ErrorKind.INPUT_VALIDATION
        assert not result.rolled_back
        assert fake_git.calls == []
        assert ledger.records() == []
        assert orchestrator.visited == [BuildState.INIT, BuildState.ABORTED]

    def test_step_returns_fatal_transition(self, make_orchestrator: MakeOrchestrator) -> None:
        orchestrator = make_orchestrator(raw=make_raw(version="ten"))
        transition = orchestrator.step()
        assert transition.outcome is Outcome.FATAL
        assert orchestrator.state is BuildState.INIT

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"outcome": Outcome.FATAL},
            {"outcome": Outcome.DECLINED, "state": BuildState.DONE},
            {"outcome": Outcome.ADVANCE},
            {
                "outcome": Outcome.ADVANCE,
                "state": BuildState.DONE,
                "error": ExternalToolError("exit 2", 2),
            },
        ],
    )
    def test_inconsistent_transition_rejected(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            Transition(**kwargs)


@pytest.mark.unit
class TestBootstrap:
    """Repository bootstrap."""

    def test_initializes_missing_repository(self, make_orchestrator: MakeOrchestrator) -> None:
        git = FakeGit(repository=False)
        result = make_orchestrator(git=git).run()
        assert result.ok
        assert git.calls[0] == ("init_repository", "main")

    def test_creates_initial_commit(self, make_orchestrator: MakeOrchestrator) -> None:
        git = FakeGit(commits=False)
        result = make_orchestrator(git=git).run()
        assert result.ok
        assert git.calls[0] == ("commit_empty", "Initial commit")

    def test_creates_missing_integration_branch(
        self, make_orchestrator: MakeOrchestrator
    ) -> None:
        git = FakeGit(branches=["master"])
        git.current = "master"
        result = make_orchestrator(git=git).run()
        assert result.ok
        assert git.called("create_branch")[0] == ("create_branch", "main", "HEAD", False)


@pytest.mark.unit
class TestParent:
    """Parent branch resolution and cross-track checks."""

    def test_missing_parent_branch_declined_is_warning(
        self, make_orchestrator: MakeOrchestrator, fake_git: FakeGit
    ) -> None:
        result = make_orchestrator(raw=make_raw(parent="A9.1")).run()
        assert result.ok
        assert result.context.parent_branch == "A9"
        assert "A9" not in fake_git.branches
        assert any("A9" in w for w in result.context.warnings)

    def test_missing_parent_branch_created(self, make_orchestrator: MakeOrchestrator) -> None:
        git = FakeGit()
        prompter = FakePrompter({"Create parent branch": True})
        result = make_orchestrator(raw=make_raw(parent="A9.1"), git=git, prompter=prompter).run()
        assert result.ok
        assert ("create_branch", "A9", "main", False) in git.calls

    def test_cross_track_declined_rolls_back(
        self, make_orchestrator: MakeOrchestrator, ledger: HistoryLedger
    ) -> None:
        git = FakeGit(branches=["main", "A9"])
        snapshot_commit = git.branches["main"]
        orchestrator = make_orchestrator(raw=make_raw(track="B", parent="A9.1"), git=git)
        result = orchestrator.run()

        assert result.state is BuildState.ABORTED
        assert result.exit_code == 1
        assert result.error is not None
        assert result.error.kind is ErrorKind.USER_ABORT
        assert result.rolled_back
        assert git.called("reset_hard") == [("reset_hard", snapshot_commit)]
        assert git.current == "main"
        assert "B10" not in git.branches
        assert ledger.records() == []
        assert BuildState.CROSS_TRACK_CHECKED not in orchestrator.visited

    def test_cross_track_step_is_declined(self, make_orchestrator: MakeOrchestrator) -> None:
        git = FakeGit(branches=["main", "A9"])
        orchestrator = make_orchestrator(raw=make_raw(track="R", parent="A9.1"), git=git)
        while orchestrator.state is not BuildState.PARENT_RESOLVED:
            orchestrator.step()
        assert orchestrator.step().outcome is Outcome.DECLINED

    def test_cross_track_confirmed(self, make_orchestrator: MakeOrchestrator) -> None:
        git = FakeGit(branches=["main", "A9"])
        prompter = FakePrompter({"Cross-track": True})
        result = make_orchestrator(
            raw=make_raw(track="B", parent="A9.1"), git=git, prompter=prompter
        ).run()
        assert result.ok
        assert str(result.context.tag) == "B10.3[F|t|+]::⟪A9.1⟫"
        assert result.context.target_branch == "B10"

    def test_same_track_parent_asks_nothing_about_tracks(
        self, make_orchestrator: MakeOrchestrator, fake_prompter: FakePrompter
    ) -> None:
        git = FakeGit(branches=["main", "A9"])
        make_orchestrator(raw=make_raw(parent="A9.1"), git=git).run()
        assert not any("Cross-track" in q for q in fake_prompter.questions)


@pytest.mark.unit
class TestMerge:
    """Merging the parent branch into the target."""

    def _git(self) -> FakeGit:
        git = FakeGit(branches=["main", "A9", "A10"])
        git.ahead[("A10", "A9")] = 3
        return git

    def test_merges_when_parent_is_ahead(self, make_orchestrator: MakeOrchestrator) -> None:
        git = self._git()
        result = make_orchestrator(raw=make_raw(parent="A9.4"), git=git).run()
        assert result.ok
        assert result.context.merged
        assert git.called("merge") == [("merge", "A9")]

    def test_no_merge_when_not_ahead(self, make_orchestrator: MakeOrchestrator) -> None:
        git = FakeGit(branches=["main", "A9", "A10"])
        result = make_orchestrator(raw=make_raw(parent="A9.4"), git=git).run()
        assert result.ok
        assert git.called("merge") == []

    def test_merge_declined(self, make_orchestrator: MakeOrchestrator) -> None:
        git = self._git()
        prompter = FakePrompter({"Merge before build": False})
        result = make_orchestrator(raw=make_raw(parent="A9.4"), git=git, prompter=prompter).run()
        assert result.ok
        assert not result.context.merged
        assert git.called("merge") == []

    def test_conflict_rolls_back(
        self, make_orchestrator: MakeOrchestrator, fake_tool: FakeBuildTool
    ) -> None:
        git = self._git()
        git.conflicts.add("A9")
        snapshot_commit = git.branches["main"]
        result = make_orchestrator(raw=make_raw(parent="A9.4"), git=git).run()

        assert result.error is not None
        assert result.error.kind is ErrorKind.MERGE_CONFLICT
        assert result.rolled_back
        assert git.calls[-3:] == [
            ("checkout", "A10"),
            ("reset_hard", snapshot_commit),
            ("checkout", "main"),
        ]
        assert fake_tool.runs == []


@pytest.mark.unit
class TestCommit:
    """Committing the working tree before the build."""

    def test_skip_commit_uses_sentinel(
        self, make_orchestrator: MakeOrchestrator, fake_git: FakeGit, ledger: HistoryLedger
    ) -> None:
        result = make_orchestrator(skip_commit=True).run()
        assert result.ok
        assert fake_git.called("commit") == []
        assert ledger.last().commit == "no-commit"

    def test_declined_commit_uses_sentinel(
        self, make_orchestrator: MakeOrchestrator, ledger: HistoryLedger
    ) -> None:
        prompter = FakePrompter({"Commit working tree": False})
        assert make_orchestrator(prompter=prompter).run().ok
        assert ledger.last().commit == "no-commit"

    def test_message_override(
        self, make_orchestrator: MakeOrchestrator, fake_git: FakeGit
    ) -> None:
        make_orchestrator(commit_message="Fix UART framing").run()
        assert fake_git.called("commit") == [("commit", "Fix UART framing")]

    def test_nothing_to_commit_is_warning(
        self, make_orchestrator: MakeOrchestrator, ledger: HistoryLedger
    ) -> None:
        git = FakeGit(dirty=False)
        result = make_orchestrator(git=git).run()
        assert result.ok
        assert any("Nothing to commit" in w for w in result.context.warnings)
        assert ledger.last().commit == git.branches["main"][:7]

    def test_prompt_abort_rolls_back(self, make_orchestrator: MakeOrchestrator) -> None:
        git = FakeGit()
        prompter = FakePrompter(abort_on="Commit working tree")
        result = make_orchestrator(git=git, prompter=prompter).run()
        assert result.error is not None
        assert result.error.kind is ErrorKind.USER_ABORT
        assert result.rolled_back
        assert git.current == "main"


@pytest.mark.unit
class TestBuildInvocation:
    """Running the external build tool."""

    def test_failure_rolls_back(
        self, make_orchestrator: MakeOrchestrator, fake_git: FakeGit, ledger: HistoryLedger
    ) -> None:
        snapshot_commit = fake_git.branches["main"]
        result = make_orchestrator(build_tool=FakeBuildTool(returncode=2)).run()

        assert isinstance(result.error, ExternalToolError)
        assert result.error.returncode == 2
        assert result.exit_code == 1
        assert result.rolled_back
        assert ("reset_hard", snapshot_commit) in fake_git.calls
        assert fake_git.current == "main"
        assert fake_git.branches["A10"] == snapshot_commit
        assert fake_git.tags == {}
        assert ledger.records() == []

    def test_failure_keeps_existing_major_branch(
        self, make_orchestrator: MakeOrchestrator
    ) -> None:
        git = FakeGit(branches=["main", "A10"])
        git.checkout("A10")
        git.commit("Build A10.2[F|t|+]")
        a10_tip = git.branches["A10"]
        git.checkout("main")
        git.staged = True
        main_tip = git.branches["main"]

        result = make_orchestrator(git=git, build_tool=FakeBuildTool(returncode=1)).run()

        assert result.rolled_back
        assert git.branches["A10"] == a10_tip
        assert git.branches["main"] == main_tip
        assert git.current == "main"
        assert git.called("reset_hard") == [("reset_hard", a10_tip)]

    def test_no_rollback_leaves_repository(
        self, make_orchestrator: MakeOrchestrator, fake_git: FakeGit
    ) -> None:
        result = make_orchestrator(build_tool=FakeBuildTool(returncode=1), no_rollback=True).run()
        assert not result.ok
        assert not result.rolled_back
        assert fake_git.called("reset_hard") == []
        assert fake_git.current == "A10"

    @pytest.mark.parametrize(
        ("options", "mode"),
        [
            ({"skip_flash": True}, BuildMode.BUILD),
            ({"skip_monitor": True}, BuildMode.FLASH),
            ({}, BuildMode.MONITOR),
        ],
    )
    def test_mode_selection(
        self,
        make_orchestrator: MakeOrchestrator,
        fake_tool: FakeBuildTool,
        options: dict,
        mode: BuildMode,
    ) -> None:
        make_orchestrator(**options).run()
        assert fake_tool.runs[0][1] is mode

    def test_dry_run_skips_tool(
        self, make_orchestrator: MakeOrchestrator, fake_tool: FakeBuildTool, ledger: HistoryLedger
    ) -> None:
        result = make_orchestrator(dry_run=True).run()
        assert result.ok
        assert fake_tool.runs == []
        assert ledger.last().commit == "dry-run"

    def test_progress_shown_without_monitor(self, make_orchestrator: MakeOrchestrator) -> None:
        messages: list[str] = []

        def progress(message: str) -> contextlib.AbstractContextManager:
            messages.append(message)
            return contextlib.nullcontext()

        make_orchestrator(progress=progress, skip_monitor=True).run()
        assert messages == ["Building A10.3[F|t|+]..."]

    def test_no_progress_with_monitor(self, make_orchestrator: MakeOrchestrator) -> None:
        messages: list[str] = []

        def progress(message: str) -> contextlib.AbstractContextManager:
            messages.append(message)
            return contextlib.nullcontext()

        make_orchestrator(progress=progress).run()
        assert messages == []


@pytest.mark.unit
class TestTagging:
    """Annotated tags and stable promotion."""

    def test_existing_tag_is_warning(self, make_orchestrator: MakeOrchestrator) -> None:
        git = FakeGit()
        git.tags["vA10.3"] = "f" * 40
        result = make_orchestrator(git=git).run()
        assert result.ok
        assert any("vA10.3" in w for w in result.context.warnings)
        assert git.tags["vA10.3"] == "f" * 40

    def test_stable_build_promoted(self, make_orchestrator: MakeOrchestrator) -> None:
        git = FakeGit()
        prompter = FakePrompter({"marked stable": True})
        result = make_orchestrator(raw=make_raw(stability="s"), git=git, prompter=prompter).run()

        assert result.ok
        assert result.context.promoted
        assert git.current == "main"
        assert git.called("merge") == [("merge", "A10")]
        assert git.called("create_tag") == [
            ("create_tag", "vA10.3", "Build A10.3[F|s|+]", False),
            ("create_tag", "vA10.3", "Release vA10.3", True),
        ]
        assert git.tags["vA10.3"] == git.branches["main"]

    def test_stable_promotion_declined_by_default(
        self, make_orchestrator: MakeOrchestrator, fake_git: FakeGit
    ) -> None:
        result = make_orchestrator(raw=make_raw(stability="s")).run()
        assert result.ok
        assert not result.context.promoted
        assert fake_git.current == "A10"

    def test_non_stable_never_asks(
        self, make_orchestrator: MakeOrchestrator, fake_prompter: FakePrompter
    ) -> None:
        make_orchestrator().run()
        assert not any("marked stable" in q for q in fake_prompter.questions)

    def test_promotion_conflict_restores_integration_branch(
        self, make_orchestrator: MakeOrchestrator
    ) -> None:
        git = FakeGit()
        git.conflicts.add("A10")
        main_commit = git.branches["main"]
        prompter = FakePrompter({"marked stable": True})
        result = make_orchestrator(raw=make_raw(stability="s"), git=git, prompter=prompter).run()

        assert result.error is not None
        assert result.error.kind is ErrorKind.MERGE_CONFLICT
        assert result.rolled_back
        assert git.current == "main"
        assert git.branches["main"] == main_commit
        assert git.tags["vA10.3"] == git.branches["A10"]

    def test_integration_checkout_failure_keeps_tagged_build(
        self, make_orchestrator: MakeOrchestrator
    ) -> None:
        class LockedMainGit(FakeGit):
            def checkout(self, ref: str) -> None:
                if ref == "main" and self.tags:
                    self.calls.append(("checkout", ref))
                    raise GitError("main is checked out elsewhere")
                super().checkout(ref)

        git = LockedMainGit()
        prompter = FakePrompter({"marked stable": True})
        result = make_orchestrator(raw=make_raw(stability="s"), git=git, prompter=prompter).run()

        assert result.error is not None
        assert result.error.kind is ErrorKind.REPOSITORY_STATE
        assert result.rolled_back
        assert git.current == "A10"
        assert git.branches["A10"] == git.tags["vA10.3"]
        assert any("Could not return to main" in w for w in result.context.warnings)


@pytest.mark.unit
class TestPush:
    """Opt-in push to the remote."""

    def test_not_pushed_by_default(
        self, make_orchestrator: MakeOrchestrator, fake_git: FakeGit
    ) -> None:
        make_orchestrator().run()
        assert fake_git.pushed == []

    def test_push_branch_and_tag(
        self, make_orchestrator: MakeOrchestrator, fake_git: FakeGit
    ) -> None:
        result = make_orchestrator(push=True).run()
        assert result.context.pushed
        assert fake_git.pushed == [("origin", "A10"), ("origin", "vA10.3")]

    def test_push_after_promotion_includes_integration_branch(
        self, make_orchestrator: MakeOrchestrator, fake_git: FakeGit
    ) -> None:
        prompter = FakePrompter({"marked stable": True})
        make_orchestrator(raw=make_raw(stability="s"), prompter=prompter, push=True).run()
        assert fake_git.pushed == [("origin", "A10"), ("origin", "main"), ("origin", "vA10.3")]

    def test_push_failure_is_warning(
        self, make_orchestrator: MakeOrchestrator, fake_git: FakeGit
    ) -> None:
        fake_git.fail_push = True
        result = make_orchestrator(push=True).run()
        assert result.ok
        assert not result.context.pushed
        assert any("Push" in w for w in result.context.warnings)
