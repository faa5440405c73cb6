# File: schemasync/errors.py
"""
SchemaSync - Error Taxonomy
=============================
Every failure raised inside the sync pipeline derives from
``SchemaSyncError``.  Generators and the introspector raise; only the
``SyncOrchestrator`` catches, decides fatal-vs-recoverable and triggers
rollback.

    SchemaSyncError
    ├── DatabaseConnectionError   fatal, before any file is touched
    ├── IntrospectionError        fatal for the whole run
    ├── SnapshotFileError         fatal, bad --snapshot-file input
    ├── SchemaValidationError     fatal, snapshot cannot be generated from
    ├── MergeParseError           non-fatal, "no manual content found"
    ├── WriteError                fatal for the run
    ├── CodeValidationError       non-fatal, logged as a warning
    └── RollbackError             secondary failure during recovery
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync.errors")


class SchemaSyncError(Exception):
    """Base class for all pipeline errors."""


class DatabaseConnectionError(SchemaSyncError):
    """The database could not be reached or the driver is unavailable."""


class IntrospectionError(SchemaSyncError):
    """A catalog query failed or returned an unusable shape."""


class SnapshotFileError(SchemaSyncError):
    """A snapshot file could not be read, parsed or validated."""


class SchemaValidationError(SchemaSyncError):
    """The snapshot cannot be generated from, e.g. two tables share a file name."""

    def __init__(self, problems: List[str]) -> None:
        self.problems: List[str] = list(problems)
        super().__init__(
            f"Snapshot rejected with {len(self.problems)} error(s): "
            + "; ".join(self.problems)
        )


class MergeParseError(SchemaSyncError):
    """An existing generated file could not be parsed for manual content."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path: Path = path
        self.reason: str = reason
        super().__init__(f"Cannot parse {path}: {reason}")


class WriteError(SchemaSyncError):
    """A generated file could not be written to disk."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path: Path = path
        self.reason: str = reason
        super().__init__(f"Failed to write {path}: {reason}")


class CodeValidationError(SchemaSyncError):
    """The generated tree did not compile cleanly."""

    def __init__(self, failures: List[str]) -> None:
        self.failures: List[str] = list(failures)
        super().__init__(
            f"{len(self.failures)} generated file(s) failed to compile"
        )


class RollbackError(SchemaSyncError):
    """Restoring the pre-run backup failed."""

    def __init__(self, reason: str, cause: Optional[BaseException] = None) -> None:
        self.cause: Optional[BaseException] = cause
        super().__init__(reason)


__all__: List[str] = [
    "SchemaSyncError",
    "DatabaseConnectionError",
    "IntrospectionError",
    "SnapshotFileError",
    "SchemaValidationError",
    "MergeParseError",
    "WriteError",
    "CodeValidationError",
    "RollbackError",
]

logger.debug("schemasync.errors loaded.")
