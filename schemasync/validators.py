# File: schemasync/validators.py
"""
SchemaSync - Snapshot & Output Validators
===========================================
Two validation passes bracket generation:

* :func:`validate_snapshot` runs before anything is written.  Errors (two
  tables that would share a generated file or class) abort the run;
  warnings are logged and collected into the report.
* :func:`compile_generated_tree` runs after generation and byte-compiles
  every generated ``.py`` file.  A failure raises
  :class:`~schemasync.errors.CodeValidationError`, which the orchestrator
  logs without failing the run.
  :func:`check_entity_mappers` then imports the generated entity index in
  an isolated package and configures its mapper registry; problems are
  returned as warnings.

All snapshot checks are single-pass over tables and columns.
"""

from __future__ import annotations

import importlib
import importlib.machinery
import importlib.util
import logging
import sys
import uuid
from collections import defaultdict
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from schemasync.errors import CodeValidationError
from schemasync.models import SchemaSnapshot
from schemasync.type_mapping import is_known_type
from schemasync.utils import entity_class_name, entity_file_stem, read_text

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationIssue:
    """Lightweight issue descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()


class ValidationResult:
    """Accumulates ``ValidationIssue`` instances produced by the checks."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationIssue] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self, code: str, message: str, context: Optional[Dict[str, Any]] = None
    ) -> None:
        self._items.append(ValidationIssue("error", code, message, context))

    def add_warning(
        self, code: str, message: str, context: Optional[Dict[str, Any]] = None
    ) -> None:
        self._items.append(ValidationIssue("warning", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_warning]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    def summary(self) -> str:
        return (
            f"Validation: {len(self.errors)} error(s), "
            f"{len(self.warnings)} warning(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)


# ---------------------------------------------------------------------------
# Individual snapshot checks
# ---------------------------------------------------------------------------


def validate_file_names(snapshot: SchemaSnapshot) -> ValidationResult:
    """
    Two tables must never map to the same entity file or class.

    ``tb_board`` and ``tb-board`` both become ``tb-board.entity.py``;
    generating both would silently overwrite one with the other.
    """
    result: ValidationResult = ValidationResult()
    by_stem: Dict[str, List[str]] = defaultdict(list)
    by_class: Dict[str, List[str]] = defaultdict(list)
    for table in snapshot.tables:
        by_stem[entity_file_stem(table.name)].append(table.name)
        by_class[entity_class_name(table.name)].append(table.name)

    for stem, tables in by_stem.items():
        if len(tables) > 1:
            result.add_error(
                "FILE_NAME_COLLISION",
                f"Tables {', '.join(tables)} all map to '{stem}.py'.",
                {"tables": tables},
            )
    for class_name, tables in by_class.items():
        if len(tables) > 1 and len({entity_file_stem(t) for t in tables}) > 1:
            result.add_error(
                "CLASS_NAME_COLLISION",
                f"Tables {', '.join(tables)} all map to class {class_name}.",
                {"tables": tables},
            )
    return result


def validate_primary_keys(snapshot: SchemaSnapshot) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    for table in snapshot.tables:
        pks = table.primary_key_columns
        ctx: Dict[str, Any] = {"table": table.name}
        if not pks:
            result.add_warning(
                "MISSING_PRIMARY_KEY",
                f"Table '{table.name}' has no primary key; its repository "
                f"gets no identity operations.",
                ctx,
            )
        elif len(pks) > 1:
            result.add_warning(
                "COMPOSITE_PRIMARY_KEY",
                f"Table '{table.name}' has a composite primary key "
                f"({', '.join(c.name for c in pks)}); identity operations use "
                f"'{pks[0].name}'.",
                ctx,
            )
    return result


def validate_foreign_keys(snapshot: SchemaSnapshot) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    known = set(snapshot.table_names)
    for table in snapshot.tables:
        for fk in table.foreign_keys:
            if fk.referenced_table not in known:
                result.add_warning(
                    "FK_TARGET_OUTSIDE_SNAPSHOT",
                    f"Foreign key '{fk.constraint_name}' on '{table.name}.{fk.column}' "
                    f"references '{fk.referenced_table}', which is not in the "
                    f"snapshot; no relation is generated for it.",
                    {"table": table.name, "column": fk.column},
                )
    return result


def validate_column_types(snapshot: SchemaSnapshot) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    for table in snapshot.tables:
        for column in table.columns:
            ctx: Dict[str, Any] = {"table": table.name, "column": column.name}
            if column.native_type == "enum" and not column.enum_values:
                result.add_warning(
                    "ENUM_WITHOUT_VALUES",
                    f"Enum column '{table.name}.{column.name}' has no values; "
                    f"it is generated as a plain string.",
                    ctx,
                )
            elif not is_known_type(column.native_type):
                result.add_warning(
                    "UNKNOWN_NATIVE_TYPE",
                    f"Column '{table.name}.{column.name}' has unrecognised type "
                    f"'{column.native_type}'; it is generated as Any.",
                    ctx,
                )
    return result


# ---------------------------------------------------------------------------
# Composite entry point
# ---------------------------------------------------------------------------


def validate_snapshot(snapshot: SchemaSnapshot) -> ValidationResult:
    """Run every snapshot check.  Returns a merged ``ValidationResult``."""
    result: ValidationResult = ValidationResult()
    checks: List[Callable[[SchemaSnapshot], ValidationResult]] = [
        validate_file_names,
        validate_primary_keys,
        validate_foreign_keys,
        validate_column_types,
    ]
    for check in checks:
        logger.debug("Running validator: %s", check.__name__)
        result.merge(check(snapshot))

    for issue in result.errors:
        logger.error("  ✗ %s", issue.message)
    for issue in result.warnings:
        logger.warning("  ⚠ %s", issue.message)
    logger.info("Snapshot validation complete: %s", result.summary())
    return result


# ---------------------------------------------------------------------------
# Generated code check
# ---------------------------------------------------------------------------


def compile_generated_tree(paths: Iterable[Path]) -> int:
    """
    Byte-compile every ``.py`` file in *paths* (files or directories).

    Returns the number of files checked.

    Raises:
        CodeValidationError: one or more files failed to compile.
    """
    failures: List[str] = []
    checked: int = 0
    for root in paths:
        if root.is_dir():
            files: List[Path] = sorted(root.rglob("*.py"))
        elif root.suffix == ".py" and root.is_file():
            files = [root]
        else:
            continue
        for file in files:
            checked += 1
            try:
                compile(read_text(file), str(file), "exec", dont_inherit=True)
            except (SyntaxError, ValueError) as exc:
                failures.append(f"{file}: {exc}")
    if failures:
        raise CodeValidationError(failures)
    logger.info("Compiled %d generated file(s) cleanly.", checked)
    return checked


def check_entity_mappers(entities_dir: Path) -> ValidationResult:
    """
    Import ``entities/index.py`` under a throwaway package name and
    configure the SQLAlchemy registry of its ``Base``.

    Every problem becomes a warning: ``ENTITY_IMPORT_FAILED`` when the
    index or one of the entity modules cannot be imported,
    ``MAPPER_CONFIGURATION_FAILED`` when relations do not resolve (e.g. a
    ``back_populates`` naming an attribute the other side lacks).  The
    throwaway modules are dropped from ``sys.modules`` afterwards.
    """
    result: ValidationResult = ValidationResult()
    index_file: Path = entities_dir / "index.py"
    if not index_file.is_file():
        return result

    package_name: str = f"_schemasync_check_{uuid.uuid4().hex[:12]}"
    spec = importlib.machinery.ModuleSpec(package_name, None, is_package=True)
    spec.submodule_search_locations = [str(entities_dir)]
    sys.modules[package_name] = importlib.util.module_from_spec(spec)
    try:
        try:
            index = importlib.import_module(f"{package_name}.index")
        except Exception as exc:
            result.add_warning(
                "ENTITY_IMPORT_FAILED",
                f"Cannot import {index_file}: {type(exc).__name__}: {exc}",
                {"path": str(index_file)},
            )
            return result

        registry = getattr(getattr(index, "Base", None), "registry", None)
        if registry is None:
            result.add_warning(
                "ENTITY_IMPORT_FAILED",
                f"{index_file} does not export a declarative Base.",
                {"path": str(index_file)},
            )
            return result
        try:
            registry.configure()
        except SQLAlchemyError as exc:
            result.add_warning(
                "MAPPER_CONFIGURATION_FAILED",
                f"Entity mappers do not configure: {type(exc).__name__}: {exc}",
                {"path": str(index_file)},
            )
    finally:
        prefix: str = f"{package_name}."
        for name in [m for m in sys.modules if m == package_name or m.startswith(prefix)]:
            del sys.modules[name]

    for issue in result.warnings:
        logger.warning("  ⚠ %s", issue.message)
    if not result.warnings:
        logger.info("Entity mappers in %s configured cleanly.", entities_dir)
    return result


__all__: List[str] = [
    "ValidationIssue",
    "ValidationResult",
    "validate_file_names",
    "validate_primary_keys",
    "validate_foreign_keys",
    "validate_column_types",
    "validate_snapshot",
    "compile_generated_tree",
    "check_entity_mappers",
]

logger.debug("schemasync.validators loaded — %d public symbols.", len(__all__))
