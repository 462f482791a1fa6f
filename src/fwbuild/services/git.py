"""Git operations for fwbuild.

Module-level helpers wrap the git CLI via subprocess. ``GitRepository``
binds them to a project directory behind the ``GitPort`` interface, and
``DryRunRepository`` reports mutations instead of performing them.
"""

import logging
import subprocess
from collections.abc import Callable
from pathlib import Path

from ..constants import GIT_TIMEOUT

logger = logging.getLogger(__name__)
trace = logging.getLogger(f"{__name__}.commands")

PUSH_TIMEOUT = 120


class GitError(Exception):
    """Git command failed."""

    pass


def run_git(
    *args: str,
    cwd: Path | None = None,
    check: bool = True,
    timeout: int = GIT_TIMEOUT,
) -> str:
    """Run git command and return stdout.

    Args:
        *args: Git command arguments
        cwd: Working directory
        check: Raise GitError on non-zero exit
        timeout: Seconds before the command is abandoned

    Returns:
        Stripped stdout

    Raises:
        GitError: If the command fails (when check=True) or times out
    """
    trace.debug(f"git {' '.join(args)}")
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise GitError(f"git {args[0]} timed out after {timeout} seconds") from e
    except FileNotFoundError:
        raise GitError("git not found in PATH") from None

    if check and result.returncode != 0:
        raise GitError(f"git {' '.join(args)} failed: {result.stderr.strip()}")
    return result.stdout.strip()


def _succeeds(*args: str, cwd: Path | None = None) -> bool:
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError):
        return False
    return result.returncode == 0


def is_repository(cwd: Path | None = None) -> bool:
    return _succeeds("rev-parse", "--is-inside-work-tree", cwd=cwd)


def get_current_branch(cwd: Path | None = None) -> str:
    """Current branch name, or ``HEAD`` when detached."""
    return run_git("rev-parse", "--abbrev-ref", "HEAD", cwd=cwd)


def get_head_sha(cwd: Path | None = None, short: bool = False) -> str:
    if short:
        return run_git("rev-parse", "--short", "HEAD", cwd=cwd)
    return run_git("rev-parse", "HEAD", cwd=cwd)


def has_commits(cwd: Path | None = None) -> bool:
    return _succeeds("rev-parse", "--verify", "--quiet", "HEAD", cwd=cwd)


def branch_exists(name: str, cwd: Path | None = None) -> bool:
    """True if a local branch with this name exists."""
    return _succeeds("show-ref", "--verify", "--quiet", f"refs/heads/{name}", cwd=cwd)


def get_status_porcelain(cwd: Path | None = None) -> str:
    return run_git("status", "--porcelain", cwd=cwd)


def stage_all(cwd: Path | None = None) -> None:
    run_git("add", "-A", cwd=cwd)


def has_staged_changes(cwd: Path | None = None) -> bool:
    return not _succeeds("diff", "--cached", "--quiet", cwd=cwd)


def commit_message(message: str, cwd: Path | None = None, allow_empty: bool = False) -> str:
    """Create a commit and return its SHA."""
    args = ["commit", "-m", message]
    if allow_empty:
        args.append("--allow-empty")
    run_git(*args, cwd=cwd)
    return get_head_sha(cwd)


def commits_ahead(base: str, other: str, cwd: Path | None = None) -> int:
    """Count commits in ``other`` that are not in ``base``."""
    out = run_git("rev-list", "--count", f"{base}..{other}", cwd=cwd)
    return int(out or 0)


def merge_branch(branch: str, cwd: Path | None = None) -> bool:
    """Merge into the current branch, fast-forward first.

    Returns:
        True on success, False on conflict (the merge is aborted)
    """
    if _succeeds("merge", "--ff-only", branch, cwd=cwd):
        logger.debug(f"Fast-forwarded to {branch}")
        return True
    try:
        run_git("merge", "--no-edit", branch, cwd=cwd)
    except GitError as e:
        logger.debug(f"Merge of {branch} failed: {e}")
        run_git("merge", "--abort", cwd=cwd, check=False)
        return False
    return True


class GitRepository:
    """Git operations bound to one project directory."""

    def __init__(self, path: Path):
        self.path = path

    def is_repository(self) -> bool:
        return is_repository(self.path)

    def init_repository(self, initial_branch: str) -> None:
        run_git("init", cwd=self.path)
        stage_all(self.path)
        commit_message("Initial commit", cwd=self.path, allow_empty=True)
        run_git("branch", "-M", initial_branch, cwd=self.path)

    def has_commits(self) -> bool:
        return has_commits(self.path)

    def commit_empty(self, message: str) -> None:
        commit_message(message, cwd=self.path, allow_empty=True)

    def current_branch(self) -> str:
        return get_current_branch(self.path)

    def head_sha(self, short: bool = False) -> str:
        return get_head_sha(self.path, short=short)

    def branch_exists(self, name: str) -> bool:
        return branch_exists(name, self.path)

    def create_branch(self, name: str, start_point: str, checkout: bool = True) -> None:
        if checkout:
            run_git("checkout", "-b", name, start_point, cwd=self.path)
        else:
            run_git("branch", name, start_point, cwd=self.path)

    def checkout(self, ref: str) -> None:
        run_git("checkout", ref, cwd=self.path)

    def commits_ahead(self, base: str, other: str) -> int:
        return commits_ahead(base, other, self.path)

    def merge(self, branch: str) -> bool:
        return merge_branch(branch, self.path)

    def stage_all(self) -> None:
        stage_all(self.path)

    def has_staged_changes(self) -> bool:
        return has_staged_changes(self.path)

    def commit(self, message: str) -> None:
        commit_message(message, cwd=self.path)

    def create_tag(self, name: str, message: str, force: bool = False) -> None:
        args = ["tag", "-a", name, "-m", message]
        if force:
            args.insert(1, "-f")
        run_git(*args, cwd=self.path)

    def reset_hard(self, commit: str) -> None:
        run_git("reset", "--hard", commit, cwd=self.path)

    def push(self, remote: str, ref: str, set_upstream: bool = False) -> None:
        args = ["push", remote, ref]
        if set_upstream:
            args.insert(1, "--set-upstream")
        run_git(*args, cwd=self.path, timeout=PUSH_TIMEOUT)


class DryRunRepository(GitRepository):
    """Reads from the real repository; prints mutations instead of running them.

    When the repository does not exist yet, reads return the values a freshly
    bootstrapped repository would have. Skipped mutations go to ``announce``
    when given, otherwise to the log.
    """

    def __init__(
        self,
        path: Path,
        integration_branch: str = "main",
        announce: Callable[[str], None] | None = None,
    ):
        super().__init__(path)
        self._present = is_repository(path)
        self._integration_branch = integration_branch
        self._announce = announce

    def _would(self, action: str) -> None:
        if self._announce is not None:
            self._announce(action)
        else:
            logger.info(f"[DRY RUN] Would {action}")

    def init_repository(self, initial_branch: str) -> None:
        self._would(f"initialize a repository on branch {initial_branch}")

    def has_commits(self) -> bool:
        return has_commits(self.path) if self._present else True

    def commit_empty(self, message: str) -> None:
        self._would(f"create empty commit: {message}")

    def current_branch(self) -> str:
        return super().current_branch() if self._present else self._integration_branch

    def head_sha(self, short: bool = False) -> str:
        if self._present and self.has_commits():
            return super().head_sha(short=short)
        return "0000000" if short else "0" * 40

    def branch_exists(self, name: str) -> bool:
        if not self._present:
            return name == self._integration_branch
        return super().branch_exists(name)

    def create_branch(self, name: str, start_point: str, checkout: bool = True) -> None:
        verb = "create and check out" if checkout else "create"
        self._would(f"{verb} branch {name} from {start_point}")

    def checkout(self, ref: str) -> None:
        self._would(f"check out {ref}")

    def commits_ahead(self, base: str, other: str) -> int:
        if not (self._present and super().branch_exists(base) and super().branch_exists(other)):
            return 0
        return super().commits_ahead(base, other)

    def merge(self, branch: str) -> bool:
        self._would(f"merge {branch} (fast-forward if possible)")
        return True

    def stage_all(self) -> None:
        self._would("stage all changes")

    def has_staged_changes(self) -> bool:
        return bool(get_status_porcelain(self.path)) if self._present else True

    def commit(self, message: str) -> None:
        self._would(f"commit: {message}")

    def create_tag(self, name: str, message: str, force: bool = False) -> None:
        self._would(f"{'move' if force else 'create'} annotated tag {name} ({message})")

    def reset_hard(self, commit: str) -> None:
        self._would(f"reset --hard {commit[:8]}")

    def push(self, remote: str, ref: str, set_upstream: bool = False) -> None:
        self._would(f"push {ref} to {remote}")
