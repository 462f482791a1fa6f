"""Logging configuration for fwbuild CLI.

Verbosity tiers:

- ``-q``: warnings and errors only
- default: build progress (tag composed, branch created, merges, rollback)
- ``-v``: adds orchestrator state transitions and other debug detail
- ``-vv``: adds every git invocation, with time and source columns
"""

import logging
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler

# Child logger of fwbuild.services.git that records each git command line
GIT_TRACE_LOGGER = "fwbuild.services.git.commands"


def level_for(verbosity: int, quiet: bool) -> int:
    """Root log level for the given flags; quiet wins over -v."""
    if quiet:
        return logging.WARNING
    if verbosity >= 1:
        return logging.DEBUG
    return logging.INFO


def configure_logging(
    verbosity: int = 0,
    quiet: bool = False,
    no_color: bool = False,
    stream: TextIO | None = None,
) -> Console:
    """Install a single RichHandler on the root logger.

    The returned console writes to ``stream`` (stderr when omitted) and is
    shared with the output context, so log lines and command output interleave
    in order.
    """
    level = level_for(verbosity, quiet)
    console = Console(
        file=stream,
        stderr=stream is None,
        force_terminal=False if no_color else None,
        no_color=no_color,
    )
    tracing = verbosity >= 2 and not quiet

    handler = RichHandler(
        console=console,
        show_time=tracing,
        show_path=tracing,
        markup=False,
    )
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler], force=True)

    # NOTSET defers to the root level, so tracing follows -q as well
    trace = logging.getLogger(GIT_TRACE_LOGGER)
    trace.setLevel(logging.NOTSET if tracing else logging.INFO)
    return console
