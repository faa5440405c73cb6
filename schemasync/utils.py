# File: schemasync/utils.py
"""
SchemaSync - Naming Conventions & Helpers
===========================================
Pure naming-convention functions shared by every generator, plus the
small file-I/O, formatting and timing helpers used across the pipeline.

Naming scheme (stable across runs)::

    table "tb_board"
      → entity class      TbBoardEntity           (to_pascal_case + "Entity")
      → entity file       tb-board.entity.py      (to_kebab_case + ".entity")
      → repository class  TbBoardRepository
      → repository file   tb-board.repository.py

All string conversions are wrapped in ``functools.lru_cache``; the same
table and column names are converted many times per run.
"""

from __future__ import annotations

import functools
import hashlib
import keyword
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Set

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns
# ---------------------------------------------------------------------------

_CAMEL_TO_SNAKE_RE1: re.Pattern[str] = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_TO_SNAKE_RE2: re.Pattern[str] = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_MULTI_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"_{2,}")
_LEADING_TRAILING_UNDERSCORE_RE: re.Pattern[str] = re.compile(r"^_+|_+$")
_WORD_SEPARATOR_RE: re.Pattern[str] = re.compile(r"[_\-\s]+")
_LOWER_CAMEL_RE: re.Pattern[str] = re.compile(r"^[a-z][a-zA-Z0-9]*$")
_KEBAB_BOUNDARY_RE: re.Pattern[str] = re.compile(r"([a-z])([A-Z])")

ENTITY_SUFFIX: str = "Entity"
REPOSITORY_SUFFIX: str = "Repository"
ENTITY_FILE_SUFFIX: str = ".entity"
REPOSITORY_FILE_SUFFIX: str = ".repository"

# Attribute names the declarative base reserves for itself
_DECLARATIVE_RESERVED: FrozenSet[str] = frozenset({"metadata", "registry"})


# ---------------------------------------------------------------------------
# Case conversion
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_pascal_case(name: str) -> str:
    """
    Convert a separator-delimited name to PascalCase.

    Each word keeps its first character upper-cased and the rest lower-cased,
    so camel humps inside a word are flattened.

    Examples:
        >>> to_pascal_case("tb_board")
        'TbBoard'
        >>> to_pascal_case("USER_profile")
        'UserProfile'
        >>> to_pascal_case("tb_test1")
        'TbTest1'
    """
    if not name:
        return ""
    words: List[str] = [w for w in _WORD_SEPARATOR_RE.split(name) if w]
    return "".join(w[0].upper() + w[1:].lower() for w in words)


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """
    Convert a name to lowerCamelCase.

    A name that is already lower-camel (no separators, starts lower-case)
    is returned unchanged instead of being re-derived through
    :func:`to_pascal_case`, which would flatten its humps.

    Examples:
        >>> to_camel_case("tb_board")
        'tbBoard'
        >>> to_camel_case("createdAt")
        'createdAt'
    """
    if not name:
        return ""
    if "_" not in name and "-" not in name and _LOWER_CAMEL_RE.match(name):
        return name
    pascal: str = to_pascal_case(name)
    return pascal[:1].lower() + pascal[1:]


@functools.lru_cache(maxsize=None)
def to_kebab_case(name: str) -> str:
    """
    Convert a name to kebab-case.

    Only a lower→upper boundary starts a new word; digits stay attached.

    Examples:
        >>> to_kebab_case("TbBoardEntity")
        'tb-board-entity'
        >>> to_kebab_case("tb_test1")
        'tb-test1'
    """
    if not name:
        return ""
    return _KEBAB_BOUNDARY_RE.sub(r"\1-\2", name).lower().replace("_", "-")


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert any string to snake_case.

    Examples:
        >>> to_snake_case("boardId")
        'board_id'
        >>> to_snake_case("getHTTPResponse")
        'get_http_response'
    """
    if not name:
        return ""
    s: str = _CAMEL_TO_SNAKE_RE1.sub(r"\1_\2", name)
    s = _CAMEL_TO_SNAKE_RE2.sub(r"\1_\2", s)
    s = _NON_ALPHANUM_RE.sub("_", s)
    s = _MULTI_UNDERSCORE_RE.sub("_", s)
    s = _LEADING_TRAILING_UNDERSCORE_RE.sub("", s)
    return s.lower()


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """Naive English pluralisation, good enough for collection attributes."""
    if not name:
        return ""
    lower: str = name.lower()
    irregulars: Dict[str, str] = {
        "person": "people",
        "child": "children",
        "datum": "data",
        "index": "indices",
        "status": "statuses",
        "address": "addresses",
    }
    for singular, plural in irregulars.items():
        if lower == singular or lower.endswith("_" + singular):
            return name[: len(name) - len(singular)] + plural
    if lower.endswith("s") and not lower.endswith("ss"):
        return name
    if lower.endswith(("sh", "ch", "x", "z", "ss")):
        return name + "es"
    if lower.endswith("y") and len(name) > 1 and lower[-2] not in "aeiou":
        return name[:-1] + "ies"
    return name + "s"


@functools.lru_cache(maxsize=None)
def python_identifier(name: str) -> str:
    """
    Make *name* usable as a Python attribute without renaming it otherwise.

    Keywords get a trailing underscore, a leading digit gets a leading one.
    """
    result: str = _NON_ALPHANUM_RE.sub("_", name) or "_unnamed"
    if result[0].isdigit():
        result = f"_{result}"
    if keyword.iskeyword(result):
        result = f"{result}_"
    return result


@functools.lru_cache(maxsize=None)
def attribute_name(column_name: str, convention: str = "snake_case") -> str:
    """
    Attribute name for a DB column under the given naming convention.

    ``"snake_case"`` keeps snake names (``boardId`` → ``board_id``);
    ``"camelCase"`` goes through :func:`to_camel_case`.
    """
    if convention == "camelCase":
        result: str = python_identifier(to_camel_case(column_name))
    else:
        result = python_identifier(to_snake_case(column_name) or column_name)
    if result in _DECLARATIVE_RESERVED:
        result = f"{result}_"
    return result


# ---------------------------------------------------------------------------
# Table ↔ class ↔ file naming
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def entity_class_name(table_name: str) -> str:
    """``tb_board`` → ``TbBoardEntity``."""
    return to_pascal_case(table_name) + ENTITY_SUFFIX


@functools.lru_cache(maxsize=None)
def repository_class_name(table_name: str) -> str:
    """``tb_board`` → ``TbBoardRepository``."""
    return to_pascal_case(table_name) + REPOSITORY_SUFFIX


@functools.lru_cache(maxsize=None)
def entity_file_stem(table_name: str) -> str:
    """``tb_board`` → ``tb-board.entity``."""
    return to_kebab_case(table_name) + ENTITY_FILE_SUFFIX


@functools.lru_cache(maxsize=None)
def repository_file_stem(table_name: str) -> str:
    """``tb_board`` → ``tb-board.repository``."""
    return to_kebab_case(table_name) + REPOSITORY_FILE_SUFFIX


def file_stem_to_table_name(stem: str) -> str:
    """
    Infer a table name from a generated file stem.

    ``tb-board.entity`` → ``tb_board``; ``board.repository`` → ``board``.
    """
    base: str = stem
    for suffix in (ENTITY_FILE_SUFFIX, REPOSITORY_FILE_SUFFIX):
        if base.endswith(suffix):
            base = base[: -len(suffix)]
            break
    return base.replace("-", "_")


# ---------------------------------------------------------------------------
# Code formatting helpers
# ---------------------------------------------------------------------------


def quote_literal(value: str) -> str:
    """Render *value* as a double-quoted Python string literal."""
    escaped: str = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def one_line(text: Optional[str]) -> str:
    """Collapse whitespace runs (including newlines) into single spaces."""
    if not text:
        return ""
    return " ".join(text.split())


def build_import_block(imports: Dict[str, Set[str]]) -> str:
    """
    Build a sorted, de-duplicated import block from ``module → names``.

    Absolute modules come first, relative ones (``.base``) after a blank
    line, both alphabetically.

    Example:
        >>> build_import_block({"typing": {"List", "Optional"}, "datetime": {"datetime"}})
        'from datetime import datetime\\nfrom typing import List, Optional'
    """
    absolute: List[str] = []
    relative: List[str] = []
    for module in sorted(imports.keys()):
        names: List[str] = sorted(imports[module])
        if names:
            line: str = f"from {module} import {', '.join(names)}"
        else:
            line = f"import {module}"
        (relative if module.startswith(".") else absolute).append(line)
    if absolute and relative:
        return "\n".join(absolute + [""] + relative)
    return "\n".join(absolute or relative)


def merge_import_dicts(*dicts: Dict[str, Set[str]]) -> Dict[str, Set[str]]:
    """Merge several ``module → names`` mappings into a new one."""
    result: Dict[str, Set[str]] = {}
    for d in dicts:
        for module, names in d.items():
            result.setdefault(module, set()).update(names)
    return result


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create *path* (and parents) if it does not exist."""
    path.mkdir(parents=True, exist_ok=True)


def atomic_write(path: Path, content: str) -> int:
    """
    Write *content* to *path* through a temp file and ``os.replace``.

    A crash mid-write leaves either the old file or the new one, never a
    truncated mix.  Returns the number of bytes written.
    """
    ensure_directory(path.parent)
    encoded: bytes = content.encode("utf-8")

    fd: int
    tmp_path: str
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(encoded)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise

    logger.debug("Wrote %d bytes to %s", len(encoded), path)
    return len(encoded)


def read_text(path: Path) -> str:
    """Read a UTF-8 file; undecodable bytes are replaced rather than raised."""
    return path.read_text(encoding="utf-8", errors="replace")


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return the SHA-256 hex digest of a string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Context-manager timer for pipeline steps.

    Usage:
        with Timer("introspection") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


__all__: List[str] = [
    "ENTITY_SUFFIX",
    "REPOSITORY_SUFFIX",
    "ENTITY_FILE_SUFFIX",
    "REPOSITORY_FILE_SUFFIX",
    "to_pascal_case",
    "to_camel_case",
    "to_kebab_case",
    "to_snake_case",
    "to_plural",
    "python_identifier",
    "attribute_name",
    "entity_class_name",
    "repository_class_name",
    "entity_file_stem",
    "repository_file_stem",
    "file_stem_to_table_name",
    "quote_literal",
    "one_line",
    "build_import_block",
    "merge_import_dicts",
    "ensure_directory",
    "atomic_write",
    "read_text",
    "sha256_hex",
    "count_lines",
    "Timer",
]

logger.debug("schemasync.utils loaded.")
