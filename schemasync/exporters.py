# File: schemasync/exporters.py
"""
SchemaSync - Generated File Writer
====================================

Responsible for:
    1. Writing generated files atomically (write-to-temp then rename).
    2. Skipping writes whose content is byte-identical to what is on disk,
       so an unchanged schema touches no file.
    3. Recording every file handled in a run with size, line count and
       checksum.

Write failures are never swallowed: an ``OSError`` becomes
:class:`~schemasync.errors.WriteError` and propagates to the orchestrator,
which decides about rollback.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List

from schemasync.errors import WriteError
from schemasync.utils import atomic_write, count_lines, sha256_hex

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync.exporters")


class WriteOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single file handled by the writer."""

    path: Path
    outcome: WriteOutcome
    size_bytes: int
    line_count: int
    sha256: str


@dataclass(slots=True)
class GeneratedFileWriter:
    """
    Write-if-changed file sink shared by every generator in a run.

    Usage::

        writer = GeneratedFileWriter()
        writer.write(Path("database/entities/tb-board.entity.py"), source)
        print(writer.counts())

    Thread-safety: NOT thread-safe.  File writes happen one at a time.
    """

    records: List[FileRecord] = field(default_factory=list)

    def write(self, path: Path, content: str) -> FileRecord:
        """
        Write *content* to *path* unless the file already holds exactly it.

        Raises:
            WriteError: the file could not be read for comparison or written.
        """
        encoded: bytes = content.encode("utf-8")
        existed: bool = path.exists()
        try:
            if existed and path.is_file() and path.read_bytes() == encoded:
                outcome: WriteOutcome = WriteOutcome.UNCHANGED
            else:
                atomic_write(path, content)
                outcome = WriteOutcome.UPDATED if existed else WriteOutcome.CREATED
        except OSError as exc:
            raise WriteError(path, f"{type(exc).__name__}: {exc}") from exc

        record: FileRecord = FileRecord(
            path=path,
            outcome=outcome,
            size_bytes=len(encoded),
            line_count=count_lines(content),
            sha256=sha256_hex(content),
        )
        self.records.append(record)
        if outcome == WriteOutcome.UNCHANGED:
            logger.debug("Unchanged: %s", path)
        else:
            logger.info("%s %s (%d lines).", outcome.value.capitalize(), path, record.line_count)
        return record

    def counts(self) -> Dict[str, int]:
        """``{"created": n, "updated": n, "unchanged": n}``."""
        tally: Counter = Counter(r.outcome.value for r in self.records)
        return {outcome.value: tally.get(outcome.value, 0) for outcome in WriteOutcome}

    @property
    def changed_paths(self) -> List[Path]:
        return [r.path for r in self.records if r.outcome != WriteOutcome.UNCHANGED]

    @property
    def total_bytes(self) -> int:
        return sum(r.size_bytes for r in self.records)

    @property
    def total_lines(self) -> int:
        return sum(r.line_count for r in self.records)


__all__: List[str] = [
    "WriteOutcome",
    "FileRecord",
    "GeneratedFileWriter",
]

logger.debug("schemasync.exporters loaded.")
