# File: schemasync/merge.py
"""
SchemaSync - Structural Merge of Hand-Written Content
=======================================================
Reads an existing entity module with :mod:`ast` and recovers what a
developer added by hand, so regeneration can carry it over.

Recovered:
    * relation attributes (``x = relationship(...)`` or
      ``x: Mapped[...] = relationship(...)``) that the generator did not
      write (no ``info={"generated": True}``), whose name the fresh render
      does not produce, and whose backing column (read from
      ``foreign_keys=``) has no counterpart in the current schema;
    * names imported from generator-owned modules that those relations use;
    * every other import statement, verbatim.

Anything unparseable raises :class:`~schemasync.errors.MergeParseError`;
:func:`extract_manual_content` logs it and returns empty content.
"""

from __future__ import annotations

import ast
import logging
import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from schemasync.errors import MergeParseError
from schemasync.models import SchemaSnapshot
from schemasync.utils import attribute_name, entity_class_name, read_text

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync.merge")

#: Modules whose imports the generator rebuilds itself.
OWNED_MODULES: FrozenSet[str] = frozenset(
    {
        "sqlalchemy",
        "sqlalchemy.orm",
        "sqlalchemy.types",
        "typing",
        "datetime",
        "decimal",
        ".base",
    }
)


@dataclass(frozen=True)
class PreservedRelation:
    """A hand-written relation and its source lines, dedented to column 0."""

    name: str
    source_lines: Tuple[str, ...]


@dataclass
class PreservedContent:
    relations: List[PreservedRelation] = field(default_factory=list)
    owned_imports: Dict[str, Set[str]] = field(default_factory=dict)
    verbatim_imports: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.relations or self.owned_imports or self.verbatim_imports)


# ---------------------------------------------------------------------------
# AST helpers
# ---------------------------------------------------------------------------


def _is_relationship_call(node: Optional[ast.expr]) -> bool:
    if not isinstance(node, ast.Call):
        return False
    func = node.func
    if isinstance(func, ast.Name):
        return func.id == "relationship"
    if isinstance(func, ast.Attribute):
        return func.attr == "relationship"
    return False


def _keyword(call: ast.Call, name: str) -> Optional[ast.expr]:
    for kw in call.keywords:
        if kw.arg == name:
            return kw.value
    return None


def _is_marked_generated(call: ast.Call) -> bool:
    info = _keyword(call, "info")
    if not isinstance(info, ast.Dict):
        return False
    for key, value in zip(info.keys, info.values):
        if (
            isinstance(key, ast.Constant)
            and key.value == "generated"
            and isinstance(value, ast.Constant)
            and value.value is True
        ):
            return True
    return False


def _target_name(node: ast.stmt) -> Optional[str]:
    if isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name):
        return node.target.id
    if (
        isinstance(node, ast.Assign)
        and len(node.targets) == 1
        and isinstance(node.targets[0], ast.Name)
    ):
        return node.targets[0].id
    return None


def _backing_reference(call: ast.Call) -> Optional[Tuple[Optional[str], str]]:
    """
    ``(owner class or None, attribute)`` named by ``foreign_keys=``.

    Accepts ``[col]``, ``col``, ``[Cls.col]``, ``Cls.col`` and the string
    forms ``"Cls.col"`` / ``"[Cls.col]"``.  Only the first element counts.
    """
    value = _keyword(call, "foreign_keys")
    if value is None:
        return None
    if isinstance(value, (ast.List, ast.Tuple)):
        if not value.elts:
            return None
        value = value.elts[0]
    if isinstance(value, ast.Name):
        return None, value.id
    if isinstance(value, ast.Attribute) and isinstance(value.value, ast.Name):
        return value.value.id, value.attr
    if isinstance(value, ast.Constant) and isinstance(value.value, str):
        text: str = value.value.strip().strip("[]").split(",")[0].strip()
        if not text:
            return None
        owner, _, attr = text.rpartition(".")
        return (owner or None), attr
    return None


def _used_names(nodes: Iterable[ast.AST]) -> Set[str]:
    names: Set[str] = set()
    for node in nodes:
        for child in ast.walk(node):
            if isinstance(child, ast.Name):
                names.add(child.id)
            # string annotations and lazy class references
            elif isinstance(child, ast.Constant) and isinstance(child.value, str):
                try:
                    parsed = ast.parse(child.value, mode="eval")
                except SyntaxError:
                    continue
                names.update(n.id for n in ast.walk(parsed) if isinstance(n, ast.Name))
    return names


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


class _ColumnIndex:
    """Current column attributes per entity class, from the snapshot."""

    def __init__(self, snapshot: SchemaSnapshot, convention: str) -> None:
        self._by_class: Dict[str, Set[str]] = {}
        for table in snapshot.tables:
            names: Set[str] = set()
            for column in table.columns:
                names.add(column.name)
                names.add(attribute_name(column.name, convention))
            self._by_class[entity_class_name(table.name)] = names

    def has_counterpart(self, owner: Optional[str], own_class: str, attr: str) -> bool:
        return attr in self._by_class.get(owner or own_class, set())


def _leading_comments(lines: List[str], first_index: int) -> int:
    """Index of the first contiguous comment line directly above *first_index*."""
    start: int = first_index
    while start > 0:
        stripped: str = lines[start - 1].strip()
        if stripped.startswith("#") and not stripped.startswith("# ---"):
            start -= 1
            continue
        break
    return start


def parse_manual_content(
    source: str,
    *,
    class_name: str,
    fresh_names: Set[str],
    snapshot: SchemaSnapshot,
    convention: str = "snake_case",
    path: Path = Path("<string>"),
) -> PreservedContent:
    """
    Recover hand-written relations and imports from entity *source*.

    Raises:
        MergeParseError: *source* does not parse or lacks *class_name*.
    """
    try:
        module: ast.Module = ast.parse(source, filename=str(path))
    except SyntaxError as exc:
        raise MergeParseError(path, f"syntax error at line {exc.lineno}: {exc.msg}") from exc

    class_node: Optional[ast.ClassDef] = next(
        (
            n
            for n in module.body
            if isinstance(n, ast.ClassDef) and n.name == class_name
        ),
        None,
    )
    if class_node is None:
        raise MergeParseError(path, f"class {class_name} not found")

    lines: List[str] = source.splitlines()
    columns: _ColumnIndex = _ColumnIndex(snapshot, convention)
    content: PreservedContent = PreservedContent()
    kept_nodes: List[ast.stmt] = []
    seen: Set[str] = set()

    for node in class_node.body:
        name: Optional[str] = _target_name(node)
        value: Optional[ast.expr] = getattr(node, "value", None)
        if name is None or not isinstance(value, ast.Call) or not _is_relationship_call(value):
            continue
        if _is_marked_generated(value) or name in fresh_names or name in seen:
            continue
        backing = _backing_reference(value)
        if backing is not None and columns.has_counterpart(backing[0], class_name, backing[1]):
            logger.debug(
                "Dropping relation %s.%s: column '%s' exists in the schema.",
                class_name,
                name,
                backing[1],
            )
            continue

        start: int = _leading_comments(lines, node.lineno - 1)
        end: int = node.end_lineno or node.lineno
        block: str = textwrap.dedent("\n".join(lines[start:end]))
        content.relations.append(PreservedRelation(name, tuple(block.splitlines())))
        kept_nodes.append(node)
        seen.add(name)

    used: Set[str] = _used_names(kept_nodes)
    seen_imports: Set[str] = set()
    for node in module.body:
        if isinstance(node, ast.ImportFrom):
            module_name: str = "." * node.level + (node.module or "")
            if module_name == "__future__":
                continue
            if module_name in OWNED_MODULES:
                for alias in node.names:
                    bound: str = alias.asname or alias.name
                    if bound in used:
                        spelled: str = (
                            f"{alias.name} as {alias.asname}" if alias.asname else alias.name
                        )
                        content.owned_imports.setdefault(module_name, set()).add(spelled)
                continue
        elif not isinstance(node, ast.Import):
            continue
        text: str = ast.get_source_segment(source, node) or ""
        if text and text not in seen_imports:
            seen_imports.add(text)
            content.verbatim_imports.append(text)

    return content


def extract_manual_content(
    path: Path,
    *,
    class_name: str,
    fresh_names: Set[str],
    snapshot: SchemaSnapshot,
    convention: str = "snake_case",
) -> PreservedContent:
    """
    :func:`parse_manual_content` for a file on disk.

    A missing file yields empty content; any parse failure is logged as a
    warning and also yields empty content.
    """
    if not path.is_file():
        return PreservedContent()
    try:
        try:
            source: str = read_text(path)
        except OSError as exc:
            raise MergeParseError(path, str(exc)) from exc
        content = parse_manual_content(
            source,
            class_name=class_name,
            fresh_names=fresh_names,
            snapshot=snapshot,
            convention=convention,
            path=path,
        )
    except MergeParseError as exc:
        logger.warning("%s; no manual content will be preserved.", exc)
        return PreservedContent()

    if content.relations:
        logger.info(
            "Preserving %d hand-written relation(s) in %s: %s",
            len(content.relations),
            path.name,
            ", ".join(r.name for r in content.relations),
        )
    return content


def strip_generated_relations(
    source: str,
    *,
    section_comment: Optional[str] = None,
    path: Path = Path("<string>"),
) -> Tuple[str, List[str]]:
    """
    Remove every relation attribute the generator wrote from *source*.

    Returns the new source and the removed attribute names.  Hand-written
    relations are kept.  When *section_comment* is given and no relation
    is left under it, that comment line and the blank line above it go too.

    Raises:
        MergeParseError: *source* does not parse.
    """
    try:
        module: ast.Module = ast.parse(source, filename=str(path))
    except SyntaxError as exc:
        raise MergeParseError(path, f"syntax error at line {exc.lineno}: {exc.msg}") from exc

    lines: List[str] = source.splitlines(keepends=True)
    dropped: Set[int] = set()
    removed: List[str] = []
    for class_node in (n for n in module.body if isinstance(n, ast.ClassDef)):
        for node in class_node.body:
            name: Optional[str] = _target_name(node)
            value: Optional[ast.expr] = getattr(node, "value", None)
            if name is None or not isinstance(value, ast.Call):
                continue
            if not (_is_relationship_call(value) and _is_marked_generated(value)):
                continue
            dropped.update(range(node.lineno - 1, node.end_lineno or node.lineno))
            removed.append(name)

    if not removed:
        return source, removed

    if section_comment is not None:
        for index, line in enumerate(lines):
            if line.strip() != section_comment:
                continue
            following: int = index + 1
            while following < len(lines) and following in dropped:
                following += 1
            if following < len(lines) and lines[following].strip():
                continue
            dropped.add(index)
            if index > 0 and not lines[index - 1].strip():
                dropped.add(index - 1)

    kept: str = "".join(line for i, line in enumerate(lines) if i not in dropped)
    return kept, removed


__all__: List[str] = [
    "OWNED_MODULES",
    "PreservedRelation",
    "PreservedContent",
    "parse_manual_content",
    "extract_manual_content",
    "strip_generated_relations",
]

logger.debug("schemasync.merge loaded.")
