"""External build toolchain runner.

The toolchain (ESP-IDF's ``idf.py`` by default) is opaque: it receives a
serial port and the requested steps, and reports only an exit code.
"""

import logging
import shlex
import subprocess
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

COMMAND_NOT_FOUND = 127


class BuildMode(str, Enum):
    """Steps requested from the external build tool."""

    BUILD = "build"
    FLASH = "flash"
    MONITOR = "monitor"

    @property
    def actions(self) -> list[str]:
        """Tool sub-commands, cumulative: monitor implies flash implies build."""
        order = list(BuildMode)
        return [m.value for m in order[: order.index(self) + 1]]

    @classmethod
    def select(cls, skip_flash: bool = False, skip_monitor: bool = False) -> "BuildMode":
        if skip_flash:
            return cls.BUILD
        if skip_monitor:
            return cls.FLASH
        return cls.MONITOR


class SubprocessBuildTool:
    """Runs ``<tool> -p <port> build [flash [monitor]]`` in the project directory."""

    def __init__(self, executable: str, cwd: Path | None = None):
        self.executable = executable
        self.cwd = cwd

    def command(self, port: str, mode: BuildMode) -> list[str]:
        return [*shlex.split(self.executable), "-p", port, *mode.actions]

    def describe(self, port: str, mode: BuildMode) -> str:
        return shlex.join(self.command(port, mode))

    def run(self, port: str, mode: BuildMode) -> int:
        """Run the tool with inherited stdio; no timeout is imposed."""
        cmd = self.command(port, mode)
        logger.info(f"Running: {shlex.join(cmd)}")
        try:
            result = subprocess.run(cmd, cwd=self.cwd)
        except FileNotFoundError:
            logger.error(f"Build tool not found: {cmd[0]}")
            return COMMAND_NOT_FOUND
        return result.returncode
