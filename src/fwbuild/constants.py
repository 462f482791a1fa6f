"""Constants for fwbuild CLI."""

# Subprocess timeouts (seconds)
GIT_TIMEOUT = 30
INIT_TOOL_CHECK_TIMEOUT = 10

# Project files
CONFIG_FILE = ".fwbuild.toml"
DEFAULT_HISTORY_FILE = "build_history.txt"
DEFAULT_MARKER_FILE = "build_version.txt"

# Commit sentinels recorded in the history ledger
NO_COMMIT = "no-commit"
DRY_RUN = "dry-run"
NO_HASH = "no-hash"

DEFAULT_INTEGRATION_BRANCH = "main"
DEFAULT_BUILD_TOOL = "idf.py"
DEFAULT_REMOTE = "origin"
