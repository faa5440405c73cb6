# File: schemasync/drift.py
"""
SchemaSync - Drift Detection
==============================
Compares the tables implied by generated entity files on disk with the
tables in the new snapshot.

A table that was generated before but is gone now is never deleted: its
entity file (and its generated repository file) get a deprecation marker
prepended, once, and drop out of the ``ALL_*`` aggregate lists.  Only
files carrying the generated header are considered.  A deprecated entity
loses its generated relations; hand-written ones stay.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from schemasync.errors import MergeParseError
from schemasync.exporters import GeneratedFileWriter
from schemasync.indexes import declared_table_name
from schemasync.merge import strip_generated_relations
from schemasync.models import SchemaSnapshot
from schemasync.templates import (
    RELATIONS_SECTION,
    has_generated_header,
    is_deprecated,
    with_deprecation_marker,
)
from schemasync.utils import (
    ENTITY_FILE_SUFFIX,
    file_stem_to_table_name,
    read_text,
    repository_file_stem,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync.drift")


@dataclass(slots=True)
class DriftReport:
    """Outcome of one drift pass."""

    #: table name → generated entity file, as found on disk
    known_tables: Dict[str, Path] = field(default_factory=dict)
    deleted_tables: List[str] = field(default_factory=list)
    newly_marked: List[Path] = field(default_factory=list)


class DriftDetector:
    """
    Detect tables deleted since the last run and mark their files.

    ``today`` is injectable so the marker date is reproducible in tests.
    """

    def __init__(
        self,
        entities_dir: Path,
        repositories_dir: Path,
        *,
        today: Optional[date] = None,
    ) -> None:
        self._entities_dir: Path = entities_dir
        self._repositories_dir: Path = repositories_dir
        self._today: Optional[date] = today

    def generated_tables(self) -> Dict[str, Path]:
        """Table name → entity file for every generated entity on disk."""
        found: Dict[str, Path] = {}
        if not self._entities_dir.is_dir():
            return found
        for path in sorted(self._entities_dir.glob(f"*{ENTITY_FILE_SUFFIX}.py")):
            source: str = read_text(path)
            if not has_generated_header(source):
                continue
            table: str = declared_table_name(source) or file_stem_to_table_name(
                path.name[: -len(".py")]
            )
            found.setdefault(table, path)
        return found

    def detect(self, snapshot: SchemaSnapshot) -> DriftReport:
        """Read-only: which generated tables are missing from *snapshot*."""
        report: DriftReport = DriftReport(known_tables=self.generated_tables())
        current = set(snapshot.table_names)
        report.deleted_tables = [t for t in report.known_tables if t not in current]
        if report.deleted_tables:
            logger.warning(
                "Tables no longer in the database: %s", ", ".join(report.deleted_tables)
            )
        return report

    def apply(self, snapshot: SchemaSnapshot, writer: GeneratedFileWriter) -> DriftReport:
        """:meth:`detect`, then mark the files of every deleted table."""
        report: DriftReport = self.detect(snapshot)
        today: date = self._today or date.today()
        for table in report.deleted_tables:
            targets: List[Tuple[Path, str]] = [(report.known_tables[table], "ALL_ENTITIES")]
            repository: Path = self._repositories_dir / f"{repository_file_stem(table)}.py"
            if repository.is_file():
                targets.append((repository, "ALL_REPOSITORIES"))
            for path, list_name in targets:
                source: str = read_text(path)
                if not has_generated_header(source):
                    logger.info("Leaving hand-written %s unmarked.", path)
                    continue
                if is_deprecated(source):
                    continue
                if list_name == "ALL_ENTITIES":
                    source = self._without_generated_relations(path, source)
                writer.write(path, with_deprecation_marker(source, today, list_name))
                report.newly_marked.append(path)
                logger.warning("Marked %s as deprecated.", path)
        return report

    @staticmethod
    def _without_generated_relations(path: Path, source: str) -> str:
        """
        Drop the generated relations of a deprecated entity.

        The surviving side is regenerated without the matching
        ``back_populates`` attribute.
        """
        try:
            stripped, removed = strip_generated_relations(
                source, section_comment=RELATIONS_SECTION, path=path
            )
        except MergeParseError as exc:
            logger.warning("%s; relations left in place.", exc)
            return source
        if removed:
            logger.info(
                "Removed generated relation(s) from deprecated %s: %s",
                path.name,
                ", ".join(removed),
            )
        return stripped


__all__: List[str] = ["DriftReport", "DriftDetector"]

logger.debug("schemasync.drift loaded.")
