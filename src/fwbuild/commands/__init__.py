"""CLI command implementations for fwbuild.

This package contains the implementation of each CLI command,
separated from the CLI framework setup in cli.py.
"""

from .build import build
from .history import history, suggest
from .init import init
from .tags import compose, inspect

__all__ = [
    "build",
    "compose",
    "history",
    "init",
    "inspect",
    "suggest",
]
