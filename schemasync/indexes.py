# File: schemasync/indexes.py
"""
SchemaSync - Aggregate Index Modules
======================================
Builds ``entities/index.py`` and ``repositories/index.py`` from what is
actually on disk, hand-written files included.

Every class found is exported by name.  The aggregate ``ALL_ENTITIES`` /
``ALL_REPOSITORIES`` lists leave out files carrying a deprecation marker,
so deprecated classes stay importable individually.
"""

from __future__ import annotations

import ast
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set

from schemasync.templates import GENERATED_HEADER, is_deprecated
from schemasync.utils import (
    ENTITY_FILE_SUFFIX,
    ENTITY_SUFFIX,
    REPOSITORY_FILE_SUFFIX,
    REPOSITORY_SUFFIX,
    quote_literal,
    read_text,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync.indexes")

_CLASS_RE: re.Pattern[str] = re.compile(r"^class\s+([A-Za-z_][A-Za-z0-9_]*)", re.MULTILINE)
_TABLENAME_RE: re.Pattern[str] = re.compile(
    r"""^\s*__tablename__\s*(?::\s*[^=]+)?=\s*['"]([^'"]+)['"]""", re.MULTILINE
)


@dataclass(frozen=True)
class IndexEntry:
    """One exported class: file stem (``tb-board.entity``), class, deprecation."""

    stem: str
    class_name: str
    deprecated: bool = False


def class_names(source: str, suffix: str) -> List[str]:
    """
    Top-level classes in *source* whose name ends with *suffix*.

    Falls back to a line scan when the module does not parse.
    """
    try:
        tree: ast.Module = ast.parse(source)
        names: List[str] = [n.name for n in tree.body if isinstance(n, ast.ClassDef)]
    except SyntaxError:
        names = _CLASS_RE.findall(source)
    return [n for n in names if n.endswith(suffix)]


def declared_table_name(source: str) -> Optional[str]:
    """The ``__tablename__`` literal in *source*, if any."""
    match = _TABLENAME_RE.search(source)
    return match.group(1) if match else None


def scan_directory(directory: Path, file_suffix: str, class_suffix: str) -> List[IndexEntry]:
    """Entries for every ``*<file_suffix>.py`` file in *directory*, sorted by stem."""
    if not directory.is_dir():
        return []
    entries: List[IndexEntry] = []
    exported: Set[str] = set()
    for path in sorted(directory.glob(f"*{file_suffix}.py")):
        source: str = read_text(path)
        stem: str = path.name[: -len(".py")]
        deprecated: bool = is_deprecated(source)
        found: List[str] = class_names(source, class_suffix)
        if not found:
            logger.warning("No *%s class found in %s; not exported.", class_suffix, path.name)
        for name in found:
            if name in exported:
                logger.warning(
                    "Class %s in %s is already exported by another file; skipped.",
                    name,
                    path.name,
                )
                continue
            exported.add(name)
            entries.append(IndexEntry(stem, name, deprecated))
    return entries


def _render_index(
    entries: List[IndexEntry],
    *,
    title: str,
    list_name: str,
    loader_import: str,
    extra_exports: List[str],
) -> str:
    lines: List[str] = [
        GENERATED_HEADER,
        '"""',
        f"{title} exports.",
        "",
        "Every module in this directory is exported by class name.",
        f"``{list_name}`` leaves out modules marked deprecated.",
        '"""',
        "",
        "from __future__ import annotations",
        "",
        "from typing import List",
        "",
        loader_import,
        "",
    ]
    for entry in entries:
        lines.append(
            f"{entry.class_name} = load_sibling(__name__, "
            f"{quote_literal(entry.stem)}, {quote_literal(entry.class_name)})"
        )
    if entries:
        lines.append("")

    active: List[IndexEntry] = [e for e in entries if not e.deprecated]
    if active:
        lines.append(f"{list_name}: List[type] = [")
        lines.extend(f"    {e.class_name}," for e in active)
        lines.append("]")
    else:
        lines.append(f"{list_name}: List[type] = []")

    exports: List[str] = sorted([list_name, *extra_exports, *(e.class_name for e in entries)])
    lines.append("")
    lines.append("__all__ = [")
    lines.extend(f"    {quote_literal(name)}," for name in exports)
    lines.append("]")
    lines.append("")
    return "\n".join(lines)


def render_entity_index(entries: List[IndexEntry]) -> str:
    return _render_index(
        entries,
        title="Entity",
        list_name="ALL_ENTITIES",
        loader_import="from .base import Base, load_sibling",
        extra_exports=["Base"],
    )


def render_repository_index(entries: List[IndexEntry]) -> str:
    return _render_index(
        entries,
        title="Repository",
        list_name="ALL_REPOSITORIES",
        loader_import="from ..entities.base import load_sibling",
        extra_exports=[],
    )


def build_entity_index(entities_dir: Path) -> str:
    entries: List[IndexEntry] = scan_directory(entities_dir, ENTITY_FILE_SUFFIX, ENTITY_SUFFIX)
    logger.info(
        "Entity index: %d exported, %d deprecated.",
        len(entries),
        sum(1 for e in entries if e.deprecated),
    )
    return render_entity_index(entries)


def build_repository_index(repositories_dir: Path) -> str:
    entries: List[IndexEntry] = scan_directory(
        repositories_dir, REPOSITORY_FILE_SUFFIX, REPOSITORY_SUFFIX
    )
    logger.info(
        "Repository index: %d exported, %d deprecated.",
        len(entries),
        sum(1 for e in entries if e.deprecated),
    )
    return render_repository_index(entries)


__all__: List[str] = [
    "IndexEntry",
    "class_names",
    "declared_table_name",
    "scan_directory",
    "render_entity_index",
    "render_repository_index",
    "build_entity_index",
    "build_repository_index",
]

logger.debug("schemasync.indexes loaded.")
