# File: schemasync/entities.py
"""
SchemaSync - Entity Code Generator
====================================
Writes one SQLAlchemy declarative module per table to
``<outputBaseDir>/entities/<kebab-table>.entity.py`` plus the shared
``entities/base.py``.

Per table::

    1. Derive relations from the snapshot's foreign keys (once per run).
    2. Unless overwriting, recover hand-written relations and imports
       from the existing file (:mod:`schemasync.merge`).
    3. Render the module (:class:`~schemasync.templates.TemplateGenerator`).
    4. Hand it to the writer, which skips byte-identical content.

Tables are processed one at a time in snapshot order.  A write failure
propagates; nothing is rolled back here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set

from schemasync.exporters import GeneratedFileWriter
from schemasync.merge import PreservedContent, extract_manual_content
from schemasync.models import NamingConvention, SchemaSnapshot, SyncOptions, TableDescriptor
from schemasync.relations import RelationSpec, build_relation_map
from schemasync.templates import TemplateGenerator
from schemasync.utils import entity_class_name, entity_file_stem

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync.entities")

BASE_MODULE: str = "base.py"


@dataclass
class EntityGenerationResult:
    written: List[Path] = field(default_factory=list)
    #: table name → names of the hand-written relations carried over
    preserved: Dict[str, List[str]] = field(default_factory=dict)


class EntityCodeGenerator:
    """
    Generate and merge entity modules.

    Usage::

        generator = EntityCodeGenerator(options, writer)
        result = generator.generate(snapshot)
    """

    def __init__(
        self,
        options: SyncOptions,
        writer: GeneratedFileWriter,
        templates: Optional[TemplateGenerator] = None,
    ) -> None:
        self._options: SyncOptions = options
        self._writer: GeneratedFileWriter = writer
        self._templates: TemplateGenerator = templates or TemplateGenerator(options)
        self._convention: str = NamingConvention(options.naming_convention).value
        self._directory: Path = options.entities_dir

    def path_for(self, table_name: str) -> Path:
        return self._directory / f"{entity_file_stem(table_name)}.py"

    def planned_paths(self, snapshot: SchemaSnapshot) -> List[Path]:
        paths: List[Path] = [self._directory / BASE_MODULE]
        paths.extend(self.path_for(t.name) for t in snapshot.tables)
        return paths

    def relation_map(self, snapshot: SchemaSnapshot) -> Dict[str, List[RelationSpec]]:
        if not self._options.generate_relations:
            return {}
        return build_relation_map(snapshot, self._convention)

    # -----------------------------------------------------------------
    # Generation
    # -----------------------------------------------------------------

    def generate(self, snapshot: SchemaSnapshot) -> EntityGenerationResult:
        result: EntityGenerationResult = EntityGenerationResult()
        base_path: Path = self._directory / BASE_MODULE
        self._writer.write(base_path, self._templates.generate_base_module())
        result.written.append(base_path)

        relations: Dict[str, List[RelationSpec]] = self.relation_map(snapshot)
        for table in snapshot.tables:
            path: Path = self.generate_table(table, snapshot, relations.get(table.name, []), result)
            result.written.append(path)

        logger.info(
            "Generated %d entit%s (%d with preserved relations).",
            len(snapshot.tables),
            "y" if len(snapshot.tables) == 1 else "ies",
            len(result.preserved),
        )
        return result

    def generate_table(
        self,
        table: TableDescriptor,
        snapshot: SchemaSnapshot,
        relations: List[RelationSpec],
        result: Optional[EntityGenerationResult] = None,
    ) -> Path:
        """Render and write the module for one table; return its path."""
        path: Path = self.path_for(table.name)
        preserved: Optional[PreservedContent] = None
        if not self._options.overwrite:
            fresh_names: Set[str] = set(self._templates.column_attributes(table))
            fresh_names.update(r.attribute for r in relations)
            preserved = extract_manual_content(
                path,
                class_name=entity_class_name(table.name),
                fresh_names=fresh_names,
                snapshot=snapshot,
                convention=self._convention,
            )
            if preserved.relations and result is not None:
                result.preserved[table.name] = [r.name for r in preserved.relations]

        content: str = self._templates.generate_entity(table, relations, preserved)
        self._writer.write(path, content)
        return path


__all__: List[str] = ["BASE_MODULE", "EntityGenerationResult", "EntityCodeGenerator"]

logger.debug("schemasync.entities loaded.")
