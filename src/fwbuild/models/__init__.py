"""Pydantic data models for fwbuild.

This package defines the data structures used throughout fwbuild for:
- Build facets, raw and validated (RawFacets, BuildFacets)
- The canonical version tag (VersionTag)
- History ledger entries (HistoryRecord)
- Rollback points (Snapshot)

Example:
    >>> from fwbuild.models import VersionTag
    >>> str(VersionTag.parse("A10.3[F|t|+]").facets.version)
    '10.3'
"""

from .facets import (
    BracketStyle,
    BuildFacets,
    ChangeType,
    Environment,
    RawFacets,
    Stability,
    Track,
    Version,
)
from .history import HistoryRecord
from .snapshot import Snapshot
from .version_tag import TagParseError, VersionTag, unwrap_parent

__all__ = [
    "BracketStyle",
    "BuildFacets",
    "ChangeType",
    "Environment",
    "HistoryRecord",
    "RawFacets",
    "Snapshot",
    "Stability",
    "TagParseError",
    "Track",
    "Version",
    "VersionTag",
    "unwrap_parent",
]
