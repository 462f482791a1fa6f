"""Ports used by the build orchestrator.

The orchestrator talks to git, the user and the external build tool only
through these interfaces, so each state transition can be exercised
against in-memory fakes.
"""

from typing import Protocol

from ..services.build_tool import BuildMode


class GitPort(Protocol):
    """Repository operations needed by a build attempt."""

    def is_repository(self) -> bool:
        """True if the project directory is inside a git work tree."""

    def init_repository(self, initial_branch: str) -> None:
        """Create a repository with an initial commit on ``initial_branch``."""

    def has_commits(self) -> bool: ...

    def commit_empty(self, message: str) -> None: ...

    def current_branch(self) -> str: ...

    def head_sha(self, short: bool = False) -> str: ...

    def branch_exists(self, name: str) -> bool: ...

    def create_branch(self, name: str, start_point: str, checkout: bool = True) -> None: ...

    def checkout(self, ref: str) -> None: ...

    def commits_ahead(self, base: str, other: str) -> int:
        """Number of commits reachable from ``other`` but not from ``base``."""

    def merge(self, branch: str) -> bool:
        """Merge ``branch`` into the current branch.

        Fast-forward is preferred; a merge commit is created otherwise.
        Returns False (with the merge aborted) on conflict.
        """

    def stage_all(self) -> None: ...

    def has_staged_changes(self) -> bool: ...

    def commit(self, message: str) -> None: ...

    def create_tag(self, name: str, message: str, force: bool = False) -> None: ...

    def reset_hard(self, commit: str) -> None: ...

    def push(self, remote: str, ref: str, set_upstream: bool = False) -> None: ...


class Prompter(Protocol):
    """Blocking questions put to the user."""

    def confirm(self, question: str, default: bool = False) -> bool: ...

    def ask(self, question: str, default: str = "") -> str: ...


class BuildTool(Protocol):
    """External build/flash/monitor toolchain."""

    def describe(self, port: str, mode: BuildMode) -> str:
        """Human-readable command line for logs and dry runs."""

    def run(self, port: str, mode: BuildMode) -> int:
        """Invoke the tool and block until it exits. Returns its exit code."""
