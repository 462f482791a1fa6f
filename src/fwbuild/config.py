"""Configuration management for fwbuild.

Two layers:
- ``ProjectConfig``: flat key = value defaults persisted in ``.fwbuild.toml``.
- ``BuildOptions``: immutable per-invocation flags assembled by the CLI.

Both are passed explicitly to the components that need them.
"""

import sys
import tomllib
from pathlib import Path
from typing import Literal

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .constants import (
    CONFIG_FILE,
    DEFAULT_BUILD_TOOL,
    DEFAULT_HISTORY_FILE,
    DEFAULT_INTEGRATION_BRANCH,
    DEFAULT_MARKER_FILE,
)
from .models import BracketStyle, Environment, Track


class ConfigError(Exception):
    """Configuration file could not be read or is invalid."""


def default_serial_port(platform: str = sys.platform) -> str:
    """Return the usual serial device for a dev board on this platform."""
    if platform.startswith("win"):
        return "COM3"
    if platform == "darwin":
        return "/dev/cu.usbmodem1101"
    return "/dev/ttyACM0"


class ProjectConfig(BaseModel):
    """Flat project defaults stored in ``.fwbuild.toml``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    DEFAULT_ENV: Environment = Environment.FIRMWARE
    DEFAULT_PORT: str = Field(default_factory=default_serial_port)
    DEFAULT_TRACK: Track = Track.ACTIVE
    SERIES_STRATEGY: Literal["major"] = "major"
    INTEGRATION_BRANCH: str = DEFAULT_INTEGRATION_BRANCH
    HISTORY_FILE: str = DEFAULT_HISTORY_FILE
    BUILD_MARKER_FILE: str = DEFAULT_MARKER_FILE
    BUILD_TOOL: str = DEFAULT_BUILD_TOOL
    BRACKET_STYLE: BracketStyle = BracketStyle.UNICODE

    def history_path(self, project_dir: Path) -> Path:
        return project_dir / self.HISTORY_FILE

    def marker_path(self, project_dir: Path) -> Path:
        return project_dir / self.BUILD_MARKER_FILE


class BuildOptions(BaseModel):
    """Per-invocation behaviour flags.

    Attributes:
        bracket_style: Delimiters used when wrapping a parent reference.
        dry_run: Print intended mutations instead of performing them.
        assume_yes: Answer every confirmation gate with yes.
        no_confirm: Take each gate's default answer without prompting.
        full_auto: Do not prompt for facets; use defaults and suggestions.
        auto_suggest: Use the suggested next version without prompting.
        auto_fill_parent: Use the last recorded build as parent.
        skip_commit: Do not commit the working tree before building.
        skip_flash: Build only.
        skip_monitor: Build and flash, without the serial monitor.
        no_rollback: Leave the repository as-is when a build attempt aborts.
        push: Offer to push the branch and tag after a successful build.
        commit_message: Commit message override.
        port: Serial port handed to the build tool.
        integration_branch: Branch that major branches are created from.
    """

    model_config = ConfigDict(frozen=True)

    bracket_style: BracketStyle = BracketStyle.UNICODE
    dry_run: bool = False
    assume_yes: bool = False
    no_confirm: bool = False
    full_auto: bool = False
    auto_suggest: bool = False
    auto_fill_parent: bool = False
    skip_commit: bool = False
    skip_flash: bool = False
    skip_monitor: bool = False
    no_rollback: bool = False
    push: bool = False
    commit_message: str | None = None
    port: str = Field(default_factory=default_serial_port)
    integration_branch: str = DEFAULT_INTEGRATION_BRANCH

    @property
    def interactive(self) -> bool:
        """True when confirmation gates should block on user input."""
        return not (self.assume_yes or self.no_confirm or self.full_auto)


def config_path(project_dir: Path) -> Path:
    return project_dir / CONFIG_FILE


def load_config(project_dir: Path) -> ProjectConfig:
    """Load config from .fwbuild.toml.

    Args:
        project_dir: Project root directory

    Returns:
        Loaded configuration, or defaults if the file doesn't exist

    Raises:
        ConfigError: If the file is not valid TOML or holds invalid values
    """
    path = config_path(project_dir)
    if not path.exists():
        return ProjectConfig()
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
        return ProjectConfig.model_validate(data)
    except (tomllib.TOMLDecodeError, ValidationError) as e:
        raise ConfigError(f"Invalid config {path}: {e}") from e


def write_config(project_dir: Path, config: ProjectConfig | None = None) -> Path:
    """Write config as a flat key = value TOML table.

    Args:
        project_dir: Project root directory
        config: Values to write, defaults when omitted

    Returns:
        Path to the written config file
    """
    path = config_path(project_dir)
    data = (config or ProjectConfig()).model_dump(mode="json")
    with open(path, "wb") as f:
        tomli_w.dump(data, f)
    return path


def load_or_create_config(project_dir: Path) -> tuple[ProjectConfig, bool]:
    """Load the project config, seeding the file from defaults when absent.

    Returns:
        Tuple of (config, created) where created is True if the file was written
    """
    if config_path(project_dir).exists():
        return load_config(project_dir), False
    config = ProjectConfig()
    write_config(project_dir, config)
    return config, True
