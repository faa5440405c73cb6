# File: schemasync/type_mapping.py
"""
SchemaSync - Native Type Mapping
==================================
The one fixed table translating catalog column types into the Python
annotation and SQLAlchemy type used by generated code.  Both the entity
and the repository templates go through :func:`map_column`; the
repository finders also pick their columns with :func:`is_text_like` and
:func:`is_date_like`.  The soft-delete column is chosen in
:mod:`schemasync.templates`, not here.

    integer family        → int        Integer / SmallInteger / BigInteger
    decimal / numeric     → Decimal    Numeric(p, s)
    float / double / real → float      Float / Double
    char / text family    → str        String(n) / CHAR(n) / Text
    enum                  → Literal[…] Enum(…)
    date                  → date       Date
    datetime / timestamp  → datetime   DateTime
    time                  → time       Time
    binary / blob family  → bytes      LargeBinary
    boolean / bool / bit  → bool       Boolean
    json                  → Any        JSON
    anything else         → Any        NullType  (+ warning)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from schemasync.models import ColumnDescriptor, ParameterDescriptor
from schemasync.utils import merge_import_dicts, quote_literal

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync.type_mapping")


class TypeCategory(str, Enum):
    NUMERIC = "numeric"
    TEXT = "text"
    ENUM = "enum"
    TEMPORAL = "temporal"
    BINARY = "binary"
    BOOLEAN = "boolean"
    JSON = "json"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Native type groups
# ---------------------------------------------------------------------------

_INTEGER_TYPES: Dict[str, str] = {
    "tinyint": "SmallInteger",
    "smallint": "SmallInteger",
    "mediumint": "Integer",
    "int": "Integer",
    "integer": "Integer",
    "bigint": "BigInteger",
    "year": "Integer",
}
_DECIMAL_TYPES: FrozenSet[str] = frozenset({"decimal", "numeric"})
_FLOAT_TYPES: Dict[str, str] = {"float": "Float", "double": "Double", "real": "Double"}
_BOOLEAN_TYPES: FrozenSet[str] = frozenset({"boolean", "bool", "bit"})
_LONG_TEXT_TYPES: FrozenSet[str] = frozenset(
    {"text", "tinytext", "mediumtext", "longtext"}
)
_TEMPORAL_TYPES: Dict[str, Tuple[str, str]] = {
    "date": ("date", "Date"),
    "datetime": ("datetime", "DateTime"),
    "timestamp": ("datetime", "DateTime"),
    "time": ("time", "Time"),
}
_BINARY_TYPES: FrozenSet[str] = frozenset(
    {"binary", "varbinary", "blob", "tinyblob", "mediumblob", "longblob"}
)

#: Columns eligible for the generated substring search.
TEXT_LIKE_TYPES: FrozenSet[str] = frozenset(
    {"varchar", "char"} | set(_LONG_TEXT_TYPES)
)
#: Columns eligible for the generated range search.
DATE_LIKE_TYPES: FrozenSet[str] = frozenset({"date", "datetime", "timestamp"})

_ENUM_TYPE_RE: re.Pattern[str] = re.compile(
    r"^\s*enum\s*\((?P<body>.*)\)\s*$", re.IGNORECASE | re.DOTALL
)


# ---------------------------------------------------------------------------
# Mapped type
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MappedType:
    """Python annotation + SQLAlchemy type expression for one column."""

    python_type: str
    sqlalchemy_type: str
    category: TypeCategory
    python_imports: Dict[str, Set[str]] = field(default_factory=dict, hash=False, compare=False)
    sqlalchemy_imports: Dict[str, Set[str]] = field(
        default_factory=dict, hash=False, compare=False
    )

    @property
    def imports(self) -> Dict[str, Set[str]]:
        return merge_import_dicts(self.python_imports, self.sqlalchemy_imports)

    @property
    def is_known(self) -> bool:
        return self.category != TypeCategory.UNKNOWN


def parse_enum_values(column_type: str) -> Optional[Tuple[str, ...]]:
    """
    Extract the literal values of an ``enum('a','b',...)`` type string.

    Quoted values are tokenised, so commas inside a value and doubled or
    backslash-escaped quotes survive.  Returns ``None`` when *column_type*
    is not an enum.

    Examples:
        >>> parse_enum_values("enum('draft','published')")
        ('draft', 'published')
        >>> parse_enum_values("enum('a,b','it''s')")
        ('a,b', "it's")
    """
    match = _ENUM_TYPE_RE.match(column_type or "")
    if match is None:
        return None
    body: str = match.group("body")

    values: List[str] = []
    current: List[str] = []
    in_quote: bool = False
    seen_value: bool = False
    i: int = 0
    while i < len(body):
        ch: str = body[i]
        if in_quote:
            if ch == "\\" and i + 1 < len(body):
                current.append(body[i + 1])
                i += 2
                continue
            if ch == "'":
                if i + 1 < len(body) and body[i + 1] == "'":
                    current.append("'")
                    i += 2
                    continue
                in_quote = False
            else:
                current.append(ch)
        elif ch == "'":
            in_quote = True
            seen_value = True
        elif ch == ",":
            values.append("".join(current))
            current = []
        elif not ch.isspace():
            current.append(ch)
        i += 1
    if current or values or seen_value:
        values.append("".join(current))
    return tuple(values)


def _enum_type_name(table_name: str, column_name: str) -> str:
    return f"{table_name}_{column_name}".lower()


def _mapped(
    python_type: str,
    sqlalchemy_type: str,
    category: TypeCategory,
    sqlalchemy_names: Set[str],
    python_imports: Optional[Dict[str, Set[str]]] = None,
    sqlalchemy_module: str = "sqlalchemy",
) -> MappedType:
    return MappedType(
        python_type=python_type,
        sqlalchemy_type=sqlalchemy_type,
        category=category,
        python_imports=python_imports or {},
        sqlalchemy_imports={sqlalchemy_module: set(sqlalchemy_names)},
    )


def map_column(column: ColumnDescriptor, table_name: str = "") -> MappedType:
    """
    Map a catalog column to its generated Python and SQLAlchemy types.

    Unrecognised native types map to ``Any``/``NullType`` and log a warning.
    """
    native: str = column.native_type

    if native in _INTEGER_TYPES:
        sa_name: str = _INTEGER_TYPES[native]
        return _mapped("int", sa_name, TypeCategory.NUMERIC, {sa_name})

    if native in _DECIMAL_TYPES:
        if column.numeric_precision is not None:
            expr: str = f"Numeric({column.numeric_precision}, {column.numeric_scale or 0})"
        else:
            expr = "Numeric"
        return _mapped(
            "Decimal", expr, TypeCategory.NUMERIC, {"Numeric"}, {"decimal": {"Decimal"}}
        )

    if native in _FLOAT_TYPES:
        sa_name = _FLOAT_TYPES[native]
        return _mapped("float", sa_name, TypeCategory.NUMERIC, {sa_name})

    if native in _BOOLEAN_TYPES:
        return _mapped("bool", "Boolean", TypeCategory.BOOLEAN, {"Boolean"})

    if native in ("varchar", "char", "set"):
        sa_name = "CHAR" if native == "char" else "String"
        expr = f"{sa_name}({column.max_length})" if column.max_length else sa_name
        return _mapped("str", expr, TypeCategory.TEXT, {sa_name})

    if native in _LONG_TEXT_TYPES:
        return _mapped("str", "Text", TypeCategory.TEXT, {"Text"})

    if native == "enum":
        values: Tuple[str, ...] = column.enum_values or ()
        if not values:
            logger.warning(
                "Enum column %s.%s has no values; mapping to str.",
                table_name,
                column.name,
            )
            return _mapped("str", "String", TypeCategory.TEXT, {"String"})
        literals: str = ", ".join(quote_literal(v) for v in values)
        type_name: str = quote_literal(_enum_type_name(table_name, column.name))
        return _mapped(
            f"Literal[{literals}]",
            f"Enum({literals}, name={type_name})",
            TypeCategory.ENUM,
            {"Enum"},
            {"typing": {"Literal"}},
        )

    if native in _TEMPORAL_TYPES:
        py_name, sa_name = _TEMPORAL_TYPES[native]
        return _mapped(
            py_name, sa_name, TypeCategory.TEMPORAL, {sa_name}, {"datetime": {py_name}}
        )

    if native in _BINARY_TYPES:
        return _mapped("bytes", "LargeBinary", TypeCategory.BINARY, {"LargeBinary"})

    if native == "json":
        return _mapped("Any", "JSON", TypeCategory.JSON, {"JSON"}, {"typing": {"Any"}})

    logger.warning(
        "Unrecognised native type '%s' for %s.%s; mapping to Any.",
        native,
        table_name,
        column.name,
    )
    return _mapped(
        "Any",
        "NullType",
        TypeCategory.UNKNOWN,
        {"NullType"},
        {"typing": {"Any"}},
        sqlalchemy_module="sqlalchemy.types",
    )


def map_parameter(parameter: ParameterDescriptor, routine_name: str = "") -> MappedType:
    """:func:`map_column` for a stored-routine parameter."""
    column: ColumnDescriptor = ColumnDescriptor(
        name=parameter.name,
        native_type=parameter.native_type,
        max_length=parameter.max_length,
    )
    return map_column(column, routine_name)


def is_known_type(native_type: str) -> bool:
    """True when *native_type* has a mapping (no ``NullType`` fallback)."""
    native: str = native_type.strip().lower()
    return (
        native in _INTEGER_TYPES
        or native in _DECIMAL_TYPES
        or native in _FLOAT_TYPES
        or native in _BOOLEAN_TYPES
        or native in ("varchar", "char", "set", "enum", "json")
        or native in _LONG_TEXT_TYPES
        or native in _TEMPORAL_TYPES
        or native in _BINARY_TYPES
    )


def is_text_like(column: ColumnDescriptor) -> bool:
    return column.native_type in TEXT_LIKE_TYPES


def is_date_like(column: ColumnDescriptor) -> bool:
    return column.native_type in DATE_LIKE_TYPES


__all__: List[str] = [
    "TypeCategory",
    "MappedType",
    "TEXT_LIKE_TYPES",
    "DATE_LIKE_TYPES",
    "parse_enum_values",
    "map_column",
    "map_parameter",
    "is_known_type",
    "is_text_like",
    "is_date_like",
]

logger.debug("schemasync.type_mapping loaded.")
