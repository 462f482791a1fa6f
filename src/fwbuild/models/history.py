"""History ledger record model.

One line per build attempt in the ledger file::

    2026-01-04 12:00:05 A10.3[F|t|+] commit=1a2b3c4
"""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
_SHORT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"

_LINE_PATTERN = re.compile(
    r"^(?P<timestamp>\d{4}-\d{2}-\d{2} \d{2}:\d{2}(?::\d{2})?) (?P<tag>\S+) commit=(?P<commit>\S+)$"
)


class HistoryRecord(BaseModel):
    """A single append-only ledger entry.

    Attributes:
        timestamp: When the build attempt completed.
        tag: Composed tag string.
        commit: Commit hash, or a sentinel (no-commit, dry-run, no-hash).
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now().replace(microsecond=0))
    tag: str = Field(description="Composed version tag string")
    commit: str = Field(description="Commit hash or sentinel")

    def to_line(self) -> str:
        return f"{self.timestamp.strftime(TIMESTAMP_FORMAT)} {self.tag} commit={self.commit}"

    @classmethod
    def from_line(cls, line: str) -> "HistoryRecord | None":
        """Parse a ledger line, returning None when it does not match."""
        match = _LINE_PATTERN.match(line.strip())
        if not match:
            return None
        raw = match["timestamp"]
        fmt = TIMESTAMP_FORMAT if raw.count(":") == 2 else _SHORT_TIMESTAMP_FORMAT
        return cls(
            timestamp=datetime.strptime(raw, fmt),
            tag=match["tag"],
            commit=match["commit"],
        )

    @property
    def base(self) -> str:
        """Track and version portion of the tag, e.g. ``A10.3``."""
        return self.tag.split("[", 1)[0]
