"""Build attempt error kinds.

Every fatal condition halts the build with exit code 1. Errors raised once
the snapshot is armed trigger a rollback first.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Categories of build halts."""

    INPUT_VALIDATION = "input-validation"
    REPOSITORY_STATE = "repository-state"
    MERGE_CONFLICT = "merge-conflict"
    EXTERNAL_TOOL_FAILURE = "external-tool-failure"
    USER_ABORT = "user-abort"


class BuildError(Exception):
    """Base exception for a halted build attempt."""

    kind: ErrorKind = ErrorKind.REPOSITORY_STATE
    exit_code: int = 1


class InputValidationError(BuildError):
    """A facet failed its grammar."""

    kind = ErrorKind.INPUT_VALIDATION

    def __init__(self, message: str, failures: dict[str, str] | None = None):
        super().__init__(message)
        self.failures = failures or {}


class RepositoryStateError(BuildError):
    """Repository or branch is missing or git refused an operation."""

    kind = ErrorKind.REPOSITORY_STATE


class MergeConflictError(BuildError):
    """A merge could not complete cleanly."""

    kind = ErrorKind.MERGE_CONFLICT


class ExternalToolError(BuildError):
    """The build tool exited non-zero."""

    kind = ErrorKind.EXTERNAL_TOOL_FAILURE

    def __init__(self, message: str, returncode: int):
        super().__init__(message)
        self.returncode = returncode


class UserAbortError(BuildError):
    """The user declined a gate that cannot be skipped."""

    kind = ErrorKind.USER_ABORT
