"""Append-only build history ledger."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..models import HistoryRecord

logger = logging.getLogger(__name__)


class HistoryLedger:
    """Text ledger with one ``HistoryRecord`` per line.

    Records are only ever appended; nothing here rewrites or removes lines.
    """

    def __init__(self, path: Path):
        self.path = path

    def append(self, record: HistoryRecord) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(record.to_line() + "\n")
        logger.debug(f"History: {record.to_line()}")

    def records(self) -> list[HistoryRecord]:
        """Read all parseable records, oldest first.

        Malformed lines are skipped.
        """
        if not self.path.exists():
            return []
        records = []
        for lineno, line in enumerate(self.path.read_text(encoding="utf-8").splitlines(), 1):
            if not line.strip():
                continue
            record = HistoryRecord.from_line(line)
            if record is None:
                logger.debug(f"{self.path.name}:{lineno}: skipping malformed line")
                continue
            records.append(record)
        return records

    def last(self) -> HistoryRecord | None:
        """Most recent record, or None for an empty ledger."""
        records = self.records()
        return records[-1] if records else None

    def last_version(self) -> str:
        """Track and version of the most recent record (``""`` if none)."""
        record = self.last()
        return record.base if record else ""

    @contextmanager
    def preserved(self) -> Iterator[None]:
        """Put the ledger back if git rewrites or removes it inside the block."""
        saved = self.path.read_bytes() if self.path.exists() else None
        try:
            yield
        finally:
            if saved is not None and (
                not self.path.exists() or self.path.read_bytes() != saved
            ):
                logger.debug(f"Restoring {self.path.name} after rollback")
                self.path.write_bytes(saved)
