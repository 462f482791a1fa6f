"""External service integrations for fwbuild.

This package provides interfaces to external tools and the user:
- git: Git operations
- build_tool: External build/flash/monitor toolchain
- prompts: Interactive and automatic prompters
"""

from .build_tool import BuildMode, SubprocessBuildTool
from .git import (
    DryRunRepository,
    GitError,
    GitRepository,
    branch_exists,
    commit_message,
    commits_ahead,
    get_current_branch,
    get_head_sha,
    get_status_porcelain,
    has_commits,
    has_staged_changes,
    is_repository,
    merge_branch,
    run_git,
    stage_all,
)
from .prompts import AutoPrompter, InteractivePrompter, PromptAborted

__all__ = [
    "AutoPrompter",
    "BuildMode",
    "DryRunRepository",
    "GitError",
    "GitRepository",
    "InteractivePrompter",
    "PromptAborted",
    "SubprocessBuildTool",
    "branch_exists",
    "commit_message",
    "commits_ahead",
    "get_current_branch",
    "get_head_sha",
    "get_status_porcelain",
    "has_commits",
    "has_staged_changes",
    "is_repository",
    "merge_branch",
    "run_git",
    "stage_all",
]
