"""Shared test fixtures for fwbuild tests."""

import os
import subprocess
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from fakes import FakeBuildTool, FakeGit, FakePrompter, make_raw
from fwbuild.config import BuildOptions
from fwbuild.core import BuildOrchestrator, HistoryLedger
from fwbuild.models import RawFacets


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def git_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give git an author and committer for repositories created by fwbuild."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@test.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@test.com")


@pytest.fixture
def temp_git_repo(tmp_path: Path, git_identity: None) -> Generator[Path, None, None]:
    """Create a temporary git repository on branch ``main``.

    Initializes a git repo with user config and an initial commit.
    Changes cwd to the repo directory for the duration of the test.
    """
    for cmd in (
        ["git", "init"],
        ["git", "config", "user.email", "test@test.com"],
        ["git", "config", "user.name", "Test User"],
    ):
        subprocess.run(cmd, cwd=tmp_path, check=True, capture_output=True)

    # Create initial commit
    (tmp_path / "README.md").write_text("# Test\n")
    for cmd in (
        ["git", "add", "."],
        ["git", "commit", "-m", "Initial commit"],
        ["git", "branch", "-M", "main"],
    ):
        subprocess.run(cmd, cwd=tmp_path, check=True, capture_output=True)

    original_cwd = os.getcwd()
    os.chdir(tmp_path)
    try:
        yield tmp_path
    finally:
        os.chdir(original_cwd)


@pytest.fixture
def fake_git() -> FakeGit:
    return FakeGit()


@pytest.fixture
def fake_prompter() -> FakePrompter:
    return FakePrompter()


@pytest.fixture
def fake_tool() -> FakeBuildTool:
    return FakeBuildTool()


@pytest.fixture
def ledger(tmp_path: Path) -> HistoryLedger:
    return HistoryLedger(tmp_path / "build_history.txt")


@pytest.fixture
def make_orchestrator(
    fake_git: FakeGit,
    fake_prompter: FakePrompter,
    fake_tool: FakeBuildTool,
    ledger: HistoryLedger,
) -> Callable[..., BuildOrchestrator]:
    """Factory building an orchestrator over the fakes.

    Keyword arguments other than ``raw``, ``git``, ``prompter``, ``build_tool``,
    ``marker_path`` and ``progress`` become ``BuildOptions`` fields.
    """

    def _make(
        raw: RawFacets | None = None,
        git: FakeGit | None = None,
        prompter: FakePrompter | None = None,
        build_tool: FakeBuildTool | None = None,
        marker_path: Path | None = None,
        progress: Any = None,
        **options: Any,
    ) -> BuildOrchestrator:
        options.setdefault("port", "/dev/ttyTEST")
        return BuildOrchestrator(
            raw=raw or make_raw(),
            options=BuildOptions(**options),
            git=git or fake_git,
            prompter=prompter or fake_prompter,
            build_tool=build_tool or fake_tool,
            ledger=ledger,
            marker_path=marker_path,
            progress=progress,
        )

    return _make
