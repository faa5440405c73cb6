# File: schemasync/backup.py
"""
SchemaSync - Output Backup & Rollback
=======================================
Copies the output directories aside before a run writes anything and
puts them back when the run fails.

Directories that did not exist when the backup was taken are removed on
restore, so files created by the failed run disappear with them.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from schemasync.errors import RollbackError

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync.backup")


class OutputBackup:
    """
    One-shot backup of a fixed set of directories.

    Usage::

        backup = OutputBackup([entities_dir, repositories_dir])
        backup.create()
        try:
            ...
        except Exception:
            backup.restore()
            raise
        finally:
            backup.discard()
    """

    def __init__(self, directories: Sequence[Path]) -> None:
        self._directories: List[Path] = list(directories)
        self._root: Optional[Path] = None
        #: target → copy inside the temp root, or None when the target was absent
        self._copies: Dict[Path, Optional[Path]] = {}

    @property
    def is_active(self) -> bool:
        return self._root is not None

    def create(self) -> None:
        if self._root is not None:
            raise RollbackError("Backup already created for this run.")
        try:
            root: Path = Path(tempfile.mkdtemp(prefix="schemasync-backup-"))
            for position, directory in enumerate(self._directories):
                if directory.is_dir():
                    copy: Path = root / f"{position}-{directory.name}"
                    shutil.copytree(directory, copy)
                    self._copies[directory] = copy
                else:
                    self._copies[directory] = None
        except OSError as exc:
            raise RollbackError(f"Could not back up output directories: {exc}", exc) from exc
        self._root = root
        logger.info(
            "Backed up %d director%s to %s.",
            sum(1 for c in self._copies.values() if c is not None),
            "y" if len(self._copies) == 1 else "ies",
            root,
        )

    def restore(self) -> None:
        """Put every directory back exactly as it was at :meth:`create`."""
        if self._root is None:
            raise RollbackError("No backup to restore from.")
        try:
            for directory, copy in self._copies.items():
                if directory.exists():
                    shutil.rmtree(directory)
                if copy is not None:
                    shutil.copytree(copy, directory)
                    logger.info("Restored %s.", directory)
                else:
                    logger.info("Removed %s (did not exist before the run).", directory)
        except OSError as exc:
            raise RollbackError(f"Rollback failed: {exc}", exc) from exc

    def discard(self) -> None:
        if self._root is None:
            return
        shutil.rmtree(self._root, ignore_errors=True)
        logger.debug("Discarded backup %s.", self._root)
        self._root = None
        self._copies.clear()


__all__: List[str] = ["OutputBackup"]

logger.debug("schemasync.backup loaded.")
