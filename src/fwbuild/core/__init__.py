"""Core business logic for fwbuild.

This package holds the build logic, talking to the outside world only
through the ports in ``ports``:
- validation: Facet grammars
- versioning: Version suggestion, tag composition, parent extraction
- branching: Major-branch resolution
- snapshot: Snapshot and rollback manager
- history: Append-only build history ledger
- orchestrator: Build attempt state machine
- errors: Error kinds that halt a build attempt
"""

from .branching import (
    TagReferenceError,
    branch_for,
    branch_for_reference,
    branch_for_tag,
    parse_tag_reference,
)
from .errors import (
    BuildError,
    ErrorKind,
    ExternalToolError,
    InputValidationError,
    MergeConflictError,
    RepositoryStateError,
    UserAbortError,
)
from .history import HistoryLedger
from .orchestrator import (
    BuildContext,
    BuildOrchestrator,
    BuildResult,
    BuildState,
    Outcome,
    Transition,
)
from .ports import BuildTool, GitPort, Prompter
from .snapshot import SnapshotManager
from .validation import (
    is_valid_change_type,
    is_valid_environment,
    is_valid_parent,
    is_valid_stability,
    is_valid_track,
    is_valid_version,
    validate_facets,
)
from .versioning import INITIAL_VERSION, compose_tag, extract_parent, suggest_next_version

__all__ = [
    "INITIAL_VERSION",
    "BuildContext",
    "BuildError",
    "BuildOrchestrator",
    "BuildResult",
    "BuildState",
    "BuildTool",
    "ErrorKind",
    "ExternalToolError",
    "GitPort",
    "HistoryLedger",
    "InputValidationError",
    "MergeConflictError",
    "Outcome",
    "Prompter",
    "RepositoryStateError",
    "SnapshotManager",
    "TagReferenceError",
    "Transition",
    "UserAbortError",
    "branch_for",
    "branch_for_reference",
    "branch_for_tag",
    "compose_tag",
    "extract_parent",
    "is_valid_change_type",
    "is_valid_environment",
    "is_valid_parent",
    "is_valid_stability",
    "is_valid_track",
    "is_valid_version",
    "parse_tag_reference",
    "suggest_next_version",
    "validate_facets",
]
