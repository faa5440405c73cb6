# File: schemasync/repositories.py
"""
SchemaSync - Repository Code Generator
========================================
Writes one session-backed repository class per table to
``<outputBaseDir>/repositories/<kebab-table>.repository.py``.

Hand-written repositories are never overwritten.  Before generating, a
:class:`RepositoryRegistry` maps every existing repository module to the
table it serves, trying in order:

    1. the ``__tablename__`` of an entity class the module imports,
    2. the module's file name, bare and with the table prefix,
    3. a table-name literal inside the module.

A table already served by any other module is skipped.  The module at
the generated path itself is only rewritten while it carries the
generated header.
"""

from __future__ import annotations

import ast
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from schemasync.exporters import GeneratedFileWriter
from schemasync.indexes import class_names, declared_table_name
from schemasync.models import SchemaSnapshot, SyncOptions
from schemasync.templates import TemplateGenerator, has_generated_header
from schemasync.utils import (
    ENTITY_FILE_SUFFIX,
    ENTITY_SUFFIX,
    entity_class_name,
    read_text,
    repository_file_stem,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync.repositories")

_IGNORED_MODULES: Set[str] = {"index.py", "__init__.py"}
_STEM_SUFFIX_RE: re.Pattern[str] = re.compile(r"[._-]?repository$", re.IGNORECASE)
_TABLE_LITERAL_RE: re.Pattern[str] = re.compile(
    r"""(?:__tablename__\s*(?::\s*[^=]+)?=|\bTable\(|\btable_name\s*=)\s*['"]([^'"]+)['"]"""
)


def imported_entity_classes(source: str) -> List[str]:
    """Names ending in ``Entity`` imported by *source*, in import order."""
    try:
        tree: ast.Module = ast.parse(source)
    except SyntaxError:
        return re.findall(r"\b([A-Z][A-Za-z0-9_]*%s)\b" % ENTITY_SUFFIX, source)
    found: List[str] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.ImportFrom):
            for alias in node.names:
                if alias.name.endswith(ENTITY_SUFFIX) and alias.name not in found:
                    found.append(alias.name)
    return found


def stem_candidates(file_name: str, table_prefix: str) -> List[str]:
    """
    Table names a repository file name could stand for.

    ``board.repository.py`` → ``["board", "tb_board"]``.
    """
    stem: str = file_name[: -len(".py")] if file_name.endswith(".py") else file_name
    bare: str = _STEM_SUFFIX_RE.sub("", stem).replace("-", "_").replace(".", "_")
    if not bare:
        return []
    candidates: List[str] = [bare]
    if table_prefix:
        if bare.startswith(table_prefix):
            candidates.append(bare[len(table_prefix):])
        else:
            candidates.append(f"{table_prefix}{bare}")
    return candidates


class RepositoryRegistry:
    """
    ``table name → repository modules`` for the repositories on disk.

    Built once per run with :meth:`scan`; generation consults it instead of
    re-reading every module per table.
    """

    def __init__(self) -> None:
        self._owners: Dict[str, List[Path]] = {}

    @classmethod
    def scan(
        cls,
        repositories_dir: Path,
        entities_dir: Path,
        snapshot: SchemaSnapshot,
        table_prefix: str = "tb_",
    ) -> "RepositoryRegistry":
        registry: RepositoryRegistry = cls()
        if not repositories_dir.is_dir():
            return registry

        known: Set[str] = set(snapshot.table_names)
        entity_tables: Dict[str, str] = _entity_tables(entities_dir, snapshot)
        for path in sorted(repositories_dir.glob("*.py")):
            if path.name in _IGNORED_MODULES:
                continue
            table: Optional[str] = registry._resolve(
                path, read_text(path), known, entity_tables, table_prefix
            )
            if table is None:
                logger.debug("Could not tell which table %s serves.", path.name)
                continue
            registry.register(table, path)
        logger.info(
            "Repository registry: %d module(s) mapped to %d table(s).",
            sum(len(p) for p in registry._owners.values()),
            len(registry._owners),
        )
        return registry

    @staticmethod
    def _resolve(
        path: Path,
        source: str,
        known: Set[str],
        entity_tables: Dict[str, str],
        table_prefix: str,
    ) -> Optional[str]:
        for class_name in imported_entity_classes(source):
            if class_name in entity_tables:
                return entity_tables[class_name]
        for candidate in stem_candidates(path.name, table_prefix):
            if candidate in known:
                return candidate
        match = _TABLE_LITERAL_RE.search(source)
        if match:
            return match.group(1)
        return None

    def register(self, table: str, path: Path) -> None:
        owners: List[Path] = self._owners.setdefault(table, [])
        if path not in owners:
            owners.append(path)

    def owners(self, table: str) -> List[Path]:
        return list(self._owners.get(table, []))

    def as_dict(self) -> Dict[str, List[Path]]:
        return {table: list(paths) for table, paths in self._owners.items()}

    def __len__(self) -> int:
        return len(self._owners)


def _entity_tables(entities_dir: Path, snapshot: SchemaSnapshot) -> Dict[str, str]:
    """Entity class → table, from the snapshot and from entity modules on disk."""
    mapping: Dict[str, str] = {entity_class_name(t.name): t.name for t in snapshot.tables}
    if entities_dir.is_dir():
        for path in sorted(entities_dir.glob(f"*{ENTITY_FILE_SUFFIX}.py")):
            source: str = read_text(path)
            table: Optional[str] = declared_table_name(source)
            if table is None:
                continue
            for name in class_names(source, ENTITY_SUFFIX):
                mapping.setdefault(name, table)
    return mapping


@dataclass
class RepositoryGenerationResult:
    written: List[Path] = field(default_factory=list)
    #: table → module that already serves it
    skipped: Dict[str, Path] = field(default_factory=dict)


class RepositoryCodeGenerator:
    """
    Generate repository modules, skipping tables served by hand-written ones.

    Usage::

        generator = RepositoryCodeGenerator(options, writer)
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
        self._directory: Path = options.repositories_dir

    def path_for(self, table_name: str) -> Path:
        return self._directory / f"{repository_file_stem(table_name)}.py"

    def build_registry(self, snapshot: SchemaSnapshot) -> RepositoryRegistry:
        return RepositoryRegistry.scan(
            self._directory,
            self._options.entities_dir,
            snapshot,
            self._options.table_prefix,
        )

    def existing_owner(
        self, table_name: str, registry: RepositoryRegistry
    ) -> Optional[Path]:
        """
        The module that keeps *table_name* from being generated, if any.

        That is any other module serving the table, or a hand-written module
        sitting at the generated path.
        """
        target: Path = self.path_for(table_name)
        for owner in registry.owners(table_name):
            if owner != target:
                return owner
        if target.is_file() and not has_generated_header(read_text(target)):
            return target
        return None

    def planned_paths(
        self, snapshot: SchemaSnapshot, registry: Optional[RepositoryRegistry] = None
    ) -> List[Path]:
        registry = registry or self.build_registry(snapshot)
        return [
            self.path_for(t.name)
            for t in snapshot.tables
            if self.existing_owner(t.name, registry) is None
        ]

    def generate(
        self, snapshot: SchemaSnapshot, tables: Optional[Iterable[str]] = None
    ) -> RepositoryGenerationResult:
        """Generate for every table in *snapshot*, or only those named in *tables*."""
        selected: Optional[Set[str]] = set(tables) if tables is not None else None
        registry: RepositoryRegistry = self.build_registry(snapshot)
        result: RepositoryGenerationResult = RepositoryGenerationResult()
        for table in snapshot.tables:
            if selected is not None and table.name not in selected:
                continue
            owner: Optional[Path] = self.existing_owner(table.name, registry)
            if owner is not None:
                logger.warning(
                    "Table '%s' is already served by %s; repository not generated.",
                    table.name,
                    owner.name,
                )
                result.skipped[table.name] = owner
                continue
            path: Path = self.path_for(table.name)
            self._writer.write(path, self._templates.generate_repository(table))
            registry.register(table.name, path)
            result.written.append(path)

        logger.info(
            "Generated %d repositor%s, skipped %d.",
            len(result.written),
            "y" if len(result.written) == 1 else "ies",
            len(result.skipped),
        )
        return result


__all__: List[str] = [
    "imported_entity_classes",
    "stem_candidates",
    "RepositoryRegistry",
    "RepositoryGenerationResult",
    "RepositoryCodeGenerator",
]

logger.debug("schemasync.repositories loaded.")
