# File: schemasync/templates.py
"""
SchemaSync - Code Template Engine
===================================
Turns ``TableDescriptor`` objects into Python source for:
    1. SQLAlchemy 2.0 declarative entities (``Mapped[]`` / ``mapped_column()``)
    2. Session-backed repository classes
    3. The shared ``entities/base.py`` module

**Determinism contract:**
    - All string assembly uses ``List[str]`` + ``"\\n".join()``.
    - Columns follow catalog ordinal order, imports are sorted, relations
      follow the order produced by :mod:`schemasync.relations`.
    - Nothing time-dependent is rendered, so an unchanged schema renders
      byte-identical files.

**Quality contract:**
    - Generated lines stay within 99 characters where a call can be wrapped.
    - Every generated file starts with :data:`GENERATED_HEADER`.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Dict, List, Optional, Sequence, Set, Tuple

from schemasync.merge import PreservedContent
from schemasync.models import (
    ColumnDescriptor,
    NamingConvention,
    SyncOptions,
    TableDescriptor,
)
from schemasync.relations import RelationSpec
from schemasync.type_mapping import MappedType, is_date_like, is_text_like, map_column
from schemasync.utils import (
    attribute_name,
    build_import_block,
    entity_class_name,
    merge_import_dicts,
    one_line,
    python_identifier,
    quote_literal,
    repository_class_name,
    to_snake_case,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

GENERATED_HEADER: str = "# Auto-generated by schemasync"
DEPRECATION_PREFIX: str = "# @deprecated"

RELATIONS_SECTION: str = "# --- Relations ---"
PRESERVED_SECTION: str = "# --- Preserved (hand-written) ---"

_INDENT: str = "    "
_DOUBLE_INDENT: str = _INDENT * 2
_MAX_LINE: int = 99
_HEADER_SCAN_LINES: int = 20

_NUMERIC_DEFAULT_RE: re.Pattern[str] = re.compile(r"^-?\d+(\.\d+)?$")
_BIT_DEFAULT_RE: re.Pattern[str] = re.compile(r"^b'[01]+'$")
_FUNCTION_DEFAULT_RE: re.Pattern[str] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*\s*\(.*\)$")
_PASSIVE_FK_RULES: Tuple[str, ...] = ("RESTRICT", "NO ACTION")


# ---------------------------------------------------------------------------
# Header & deprecation marker helpers
# ---------------------------------------------------------------------------


def has_generated_header(content: str) -> bool:
    """True when the generated-file header appears near the top of *content*."""
    for line in content.splitlines()[:_HEADER_SCAN_LINES]:
        if line.strip() == GENERATED_HEADER:
            return True
    return False


def is_deprecated(content: str) -> bool:
    """True when *content* already carries a deprecation marker."""
    return any(line.startswith(DEPRECATION_PREFIX) for line in content.splitlines())


def deprecation_marker(detected_on: date, list_name: str = "ALL_ENTITIES") -> str:
    return "\n".join(
        [
            f"{DEPRECATION_PREFIX} This table has been deleted from the database.",
            f"# Kept for backward compatibility; excluded from {list_name}.",
            f"# Deletion detected on: {detected_on.isoformat()}",
            "",
        ]
    )


def with_deprecation_marker(
    content: str, detected_on: date, list_name: str = "ALL_ENTITIES"
) -> str:
    """Prepend the marker once; content already marked is returned unchanged."""
    if is_deprecated(content):
        return content
    return deprecation_marker(detected_on, list_name) + content


# ---------------------------------------------------------------------------
# Helper: call formatting
# ---------------------------------------------------------------------------


def _format_call(
    head: str, func: str, args: Sequence[str], indent: str = _INDENT
) -> List[str]:
    """
    Render ``<head><func>(<args>)`` on one line, or one argument per line
    when that would exceed the line limit.
    """
    single: str = f"{indent}{head}{func}({', '.join(args)})"
    if len(single) <= _MAX_LINE or not args:
        return [single]
    lines: List[str] = [f"{indent}{head}{func}("]
    lines.extend(f"{indent}{_INDENT}{arg}," for arg in args)
    lines.append(f"{indent})")
    return lines


def docstring_text(text: str) -> str:
    """Make free text safe inside a triple-quoted docstring."""
    safe: str = text.replace("\\", "\\\\").replace('"""', "'''")
    if safe.endswith('"'):
        safe += " "
    return safe


def _server_default(column: ColumnDescriptor) -> Optional[str]:
    """
    ``server_default=`` expression for a catalog default, or ``None``.

    ``CURRENT_TIMESTAMP`` and expression defaults go through ``text()``;
    literal strings are emitted quoted with catalog quoting removed.
    """
    raw: Optional[str] = column.default_value
    if raw is None:
        return None
    value: str = raw.strip()
    if value.upper() == "NULL":
        return None
    upper: str = value.upper()
    if (
        upper.startswith("CURRENT_TIMESTAMP")
        or upper in ("NOW()", "CURRENT_DATE", "CURRENT_TIME")
        or "DEFAULT_GENERATED" in column.extra.upper()
        or _FUNCTION_DEFAULT_RE.match(value)
        or _NUMERIC_DEFAULT_RE.match(value)
        or _BIT_DEFAULT_RE.match(value)
        or upper in ("TRUE", "FALSE")
    ):
        return f"text({quote_literal(value)})"
    if len(value) >= 2 and value[0] == value[-1] == "'":
        value = value[1:-1].replace("''", "'")
    return quote_literal(value)


# ---------------------------------------------------------------------------
# TemplateGenerator class
# ---------------------------------------------------------------------------


class TemplateGenerator:
    """
    Stateless code-generation engine.

    Each ``generate_*`` method returns a complete file content string ending
    in a newline.  No filesystem access happens here.
    """

    def __init__(self, options: SyncOptions) -> None:
        self._options: SyncOptions = options
        self._convention: str = NamingConvention(options.naming_convention).value
        self._comments: bool = options.generate_comments
        logger.debug(
            "TemplateGenerator initialised (naming=%s, comments=%s).",
            self._convention,
            self._comments,
        )

    def attr(self, column_name: str) -> str:
        return attribute_name(column_name, self._convention)

    def column_attributes(self, table: TableDescriptor) -> List[str]:
        return [self.attr(c.name) for c in table.columns]

    # ===================================================================
    # 1. Shared base module
    # ===================================================================

    def generate_base_module(self) -> str:
        """``entities/base.py``: declarative base and the sibling loader."""
        lines: List[str] = [
            GENERATED_HEADER,
            '"""',
            "Declarative base and module loader shared by the generated entities.",
            "",
            "Generated modules use kebab-case file names (``tb-board.entity.py``),",
            "which the import statement cannot name; the index modules load them",
            "through :func:`load_sibling` instead.",
            '"""',
            "",
            "from __future__ import annotations",
            "",
            "import importlib.util",
            "import re",
            "import sys",
            "from pathlib import Path",
            "from typing import Any",
            "",
            "from sqlalchemy.orm import DeclarativeBase",
            "",
            "",
            "class Base(DeclarativeBase):",
            f'{_INDENT}"""Declarative base for every generated entity."""',
            "",
            "",
            "def load_sibling(index_module: str, stem: str, attribute: str) -> Any:",
            f'{_INDENT}"""Import ``<stem>.py`` next to *index_module* and return *attribute*."""',
            f'{_INDENT}package: str = index_module.rpartition(".")[0]',
            f'{_INDENT}alias: str = re.sub(r"[^A-Za-z0-9_]", "_", stem)',
            f'{_INDENT}module_name: str = f"{{package}}.{{alias}}" if package else alias',
            f"{_INDENT}module = sys.modules.get(module_name)",
            f"{_INDENT}if module is None:",
            f'{_DOUBLE_INDENT}origin = Path(sys.modules[index_module].__file__).with_name(f"{{stem}}.py")',
            f"{_DOUBLE_INDENT}spec = importlib.util.spec_from_file_location(module_name, origin)",
            f"{_DOUBLE_INDENT}if spec is None or spec.loader is None:",
            f'{_DOUBLE_INDENT}{_INDENT}raise ImportError(f"Cannot load {{origin}}")',
            f"{_DOUBLE_INDENT}module = importlib.util.module_from_spec(spec)",
            f"{_DOUBLE_INDENT}sys.modules[module_name] = module",
            f"{_DOUBLE_INDENT}try:",
            f"{_DOUBLE_INDENT}{_INDENT}spec.loader.exec_module(module)",
            f"{_DOUBLE_INDENT}except BaseException:",
            f"{_DOUBLE_INDENT}{_INDENT}sys.modules.pop(module_name, None)",
            f"{_DOUBLE_INDENT}{_INDENT}raise",
            f"{_INDENT}return getattr(module, attribute)",
            "",
        ]
        return "\n".join(lines)

    # ===================================================================
    # 2. Entities
    # ===================================================================

    def generate_entity(
        self,
        table: TableDescriptor,
        relations: Sequence[RelationSpec] = (),
        preserved: Optional[PreservedContent] = None,
    ) -> str:
        """
        Render the entity module for *table*.

        *relations* come from :func:`schemasync.relations.build_relation_map`;
        *preserved* carries hand-written relations and imports recovered from
        the previous version of the file.
        """
        class_name: str = entity_class_name(table.name)
        imports: Dict[str, Set[str]] = {
            "sqlalchemy.orm": {"Mapped", "mapped_column"},
            ".base": {"Base"},
        }

        column_lines: List[str] = []
        for column in table.columns:
            column_lines.extend(self._column_lines(table, column, imports))

        table_args: List[str] = self._table_args(table, imports)

        relation_lines: List[str] = []
        for relation in relations:
            relation_lines.extend(self._relation_lines(relation, imports))

        if preserved is not None:
            imports = merge_import_dicts(imports, preserved.owned_imports)
            if preserved.relations:
                imports["sqlalchemy.orm"].add("relationship")

        # --- File header ---
        lines: List[str] = [GENERATED_HEADER, '"""', f"Entity for table ``{table.name}``."]
        if self._comments and table.comment:
            lines.append("")
            lines.append(docstring_text(one_line(table.comment)))
        lines.extend(['"""', "", "from __future__ import annotations", ""])
        lines.append(build_import_block(imports))
        if preserved is not None and preserved.verbatim_imports:
            lines.append("")
            lines.extend(preserved.verbatim_imports)
        lines.extend(["", ""])

        # --- Class definition ---
        lines.append(f"class {class_name}(Base):")
        docstring: str = (
            one_line(table.comment)
            if self._comments and table.comment
            else f"Row of table ``{table.name}``."
        )
        lines.append(f'{_INDENT}"""{docstring_text(docstring)}"""')
        lines.append("")
        lines.append(f"{_INDENT}__tablename__ = {quote_literal(table.name)}")
        if table_args:
            if len(table_args) == 1 and table_args[0].startswith("{"):
                lines.append(f"{_INDENT}__table_args__ = ({table_args[0]},)")
            else:
                lines.append(f"{_INDENT}__table_args__ = (")
                lines.extend(f"{_DOUBLE_INDENT}{arg}," for arg in table_args)
                lines.append(f"{_INDENT})")
        lines.append("")
        lines.extend(column_lines)

        if relation_lines:
            lines.append("")
            lines.append(f"{_INDENT}{RELATIONS_SECTION}")
            lines.extend(relation_lines)

        if preserved is not None and preserved.relations:
            lines.append("")
            lines.append(f"{_INDENT}{PRESERVED_SECTION}")
            for relation in preserved.relations:
                lines.extend(
                    f"{_INDENT}{line}" if line.strip() else "" for line in relation.source_lines
                )

        pk: Optional[ColumnDescriptor] = table.primary_key
        if pk is not None:
            pk_attr: str = self.attr(pk.name)
            lines.append("")
            lines.append(f"{_INDENT}def __repr__(self) -> str:")
            lines.append(
                f'{_DOUBLE_INDENT}return f"<{class_name} {pk_attr}={{self.{pk_attr}!r}}>"'
            )

        lines.append("")
        content: str = "\n".join(lines)
        logger.debug(
            "Rendered entity for '%s': %d lines.", table.name, content.count("\n")
        )
        return content

    def _column_lines(
        self,
        table: TableDescriptor,
        column: ColumnDescriptor,
        imports: Dict[str, Set[str]],
    ) -> List[str]:
        mapped: MappedType = map_column(column, table.name)
        for module, names in mapped.imports.items():
            imports.setdefault(module, set()).update(names)

        attr: str = self.attr(column.name)
        nullable: bool = column.nullable and not column.is_primary_key
        if nullable:
            imports.setdefault("typing", set()).add("Optional")
            annotation: str = f"Mapped[Optional[{mapped.python_type}]]"
        else:
            annotation = f"Mapped[{mapped.python_type}]"

        args: List[str] = []
        if attr != column.name:
            args.append(quote_literal(column.name))
        args.append(mapped.sqlalchemy_type)

        for fk in table.foreign_keys:
            if fk.column != column.name:
                continue
            imports.setdefault("sqlalchemy", set()).add("ForeignKey")
            fk_args: List[str] = [quote_literal(f"{fk.referenced_table}.{fk.referenced_column}")]
            if fk.on_delete_rule.upper() not in _PASSIVE_FK_RULES:
                fk_args.append(f"ondelete={quote_literal(fk.on_delete_rule.upper())}")
            if fk.on_update_rule.upper() not in _PASSIVE_FK_RULES:
                fk_args.append(f"onupdate={quote_literal(fk.on_update_rule.upper())}")
            args.append(f"ForeignKey({', '.join(fk_args)})")
            break

        if column.is_primary_key:
            args.append("primary_key=True")
            args.append(f"autoincrement={column.is_auto_increment}")

        default: Optional[str] = _server_default(column)
        if default is not None:
            if default.startswith("text("):
                imports.setdefault("sqlalchemy", set()).add("text")
            args.append(f"server_default={default}")

        if column.updates_on_write:
            imports.setdefault("sqlalchemy", set()).add("func")
            args.append("onupdate=func.now()")

        if self._comments and column.comment:
            args.append(f"comment={quote_literal(one_line(column.comment))}")

        return _format_call(f"{attr}: {annotation} = ", "mapped_column", args)

    def _table_args(
        self, table: TableDescriptor, imports: Dict[str, Set[str]]
    ) -> List[str]:
        parts: List[str] = []
        for name, unique, columns in table.grouped_indexes():
            imports.setdefault("sqlalchemy", set()).add("Index")
            index_args: List[str] = [quote_literal(name)]
            index_args.extend(quote_literal(c) for c in columns)
            if unique:
                index_args.append("unique=True")
            parts.append(f"Index({', '.join(index_args)})")
        if self._comments and table.comment:
            parts.append("{" + f'"comment": {quote_literal(one_line(table.comment))}' + "}")
        return parts

    def _relation_lines(
        self, relation: RelationSpec, imports: Dict[str, Set[str]]
    ) -> List[str]:
        imports.setdefault("sqlalchemy.orm", set()).add("relationship")
        target: str = quote_literal(relation.target_class)
        if relation.is_collection:
            imports.setdefault("typing", set()).add("List")
            annotation: str = f"Mapped[List[{target}]]"
        elif relation.nullable:
            imports.setdefault("typing", set()).add("Optional")
            annotation = f"Mapped[Optional[{target}]]"
        else:
            annotation = f"Mapped[{target}]"

        args: List[str] = [target, f"back_populates={quote_literal(relation.back_populates)}"]
        if relation.foreign_key_owner is not None:
            args.append(
                "foreign_keys="
                + quote_literal(f"{relation.foreign_key_owner}.{relation.foreign_key_attribute}")
            )
        else:
            args.append(f"foreign_keys=[{relation.foreign_key_attribute}]")
        if relation.remote_side is not None:
            args.append(f"remote_side=[{relation.remote_side}]")
        args.append('info={"generated": True}')
        return _format_call(f"{relation.attribute}: {annotation} = ", "relationship", args)

    # ===================================================================
    # 3. Repositories
    # ===================================================================

    def generate_repository(self, table: TableDescriptor) -> str:
        """
        Render the repository module for *table*.

        Identity operations use the first primary-key column and are omitted
        for tables without one.
        """
        entity: str = entity_class_name(table.name)
        repo: str = repository_class_name(table.name)
        pk: Optional[ColumnDescriptor] = table.primary_key
        imports: Dict[str, Set[str]] = {
            "sqlalchemy.orm": {"Session"},
            "..entities.index": {entity},
            "typing": {"List"},
        }

        body: List[str] = []
        if self._options.generate_basic_methods:
            body.extend(self._basic_methods(table, entity, pk, imports))
        if self._options.generate_custom_methods:
            body.extend(self._custom_methods(table, entity, pk, imports))

        lines: List[str] = [
            GENERATED_HEADER,
            '"""',
            f"Repository for table ``{table.name}``.",
            '"""',
            "",
            "from __future__ import annotations",
            "",
            build_import_block(imports),
            "",
            "",
            f"class {repo}:",
            f'{_INDENT}"""Data access for ``{table.name}`` rows."""',
            "",
            f"{_INDENT}def __init__(self, session: Session) -> None:",
            f"{_DOUBLE_INDENT}self.session = session",
        ]
        lines.extend(body)
        lines.append("")
        content: str = "\n".join(lines)
        logger.debug(
            "Rendered repository for '%s': %d lines.", table.name, content.count("\n")
        )
        return content

    def _identity(
        self,
        table: TableDescriptor,
        pk: ColumnDescriptor,
        imports: Dict[str, Set[str]],
    ) -> Tuple[str, str]:
        """``(pk attribute, pk python type)`` with the type's imports registered."""
        mapped: MappedType = map_column(pk, table.name)
        for module, names in mapped.python_imports.items():
            imports.setdefault(module, set()).update(names)
        return self.attr(pk.name), mapped.python_type

    def _basic_methods(
        self,
        table: TableDescriptor,
        entity: str,
        pk: Optional[ColumnDescriptor],
        imports: Dict[str, Set[str]],
    ) -> List[str]:
        imports.setdefault("typing", set()).update({"Any", "Dict"})
        imports.setdefault("sqlalchemy", set()).update({"func", "select"})
        i, ii, iii = _INDENT, _DOUBLE_INDENT, _DOUBLE_INDENT + _INDENT

        lines: List[str] = [
            "",
            f"{i}def create(self, data: Dict[str, Any]) -> {entity}:",
            f"{ii}entity = {entity}(**data)",
            f"{ii}self.session.add(entity)",
            f"{ii}self.session.flush()",
            f"{ii}return entity",
            "",
            f"{i}def find_all(self) -> List[{entity}]:",
            f"{ii}return list(self.session.scalars(select({entity})))",
            "",
            f"{i}def find_with_pagination(self, page: int = 1, limit: int = 10) -> Dict[str, Any]:",
            f"{ii}page = max(page, 1)",
        ]
        order: str = ""
        if pk is not None:
            order = f".order_by({entity}.{self.attr(pk.name)})"
        lines.extend(
            [
                f"{ii}stmt = select({entity}){order}.offset((page - 1) * limit).limit(limit)",
                f"{ii}return {{",
                f'{iii}"data": list(self.session.scalars(stmt)),',
                f'{iii}"total": self.count(),',
                f'{iii}"page": page,',
                f'{iii}"limit": limit,',
                f"{ii}}}",
                "",
                f"{i}def count(self) -> int:",
                f"{ii}return self.session.scalar(select(func.count()).select_from({entity})) or 0",
            ]
        )

        if pk is None:
            logger.warning(
                "Table '%s' has no primary key; identity methods are not generated.",
                table.name,
            )
            return lines

        imports.setdefault("typing", set()).add("Optional")
        imports.setdefault("sqlalchemy", set()).add("delete")
        pk_attr, pk_type = self._identity(table, pk, imports)
        key: str = f"{entity}.{pk_attr}"
        lines.extend(
            [
                "",
                f"{i}def find_by_id(self, entity_id: {pk_type}) -> Optional[{entity}]:",
                f"{ii}return self.session.get({entity}, entity_id)",
                "",
                f"{i}def update(",
                f"{ii}self, entity_id: {pk_type}, data: Dict[str, Any]",
                f"{i}) -> Optional[{entity}]:",
                f"{ii}entity = self.find_by_id(entity_id)",
                f"{ii}if entity is None:",
                f"{iii}return None",
                f"{ii}for key, value in data.items():",
                f"{iii}setattr(entity, key, value)",
                f"{ii}self.session.flush()",
                f"{ii}return entity",
                "",
                f"{i}def delete(self, entity_id: {pk_type}) -> bool:",
                f"{ii}result = self.session.execute(delete({entity}).where({key} == entity_id))",
                f"{ii}return bool(result.rowcount)",
                "",
                f"{i}def exists(self, entity_id: {pk_type}) -> bool:",
                f"{ii}stmt = select({key}).where({key} == entity_id)",
                f"{ii}return self.session.scalar(stmt) is not None",
            ]
        )
        return lines

    def _custom_methods(
        self,
        table: TableDescriptor,
        entity: str,
        pk: Optional[ColumnDescriptor],
        imports: Dict[str, Set[str]],
    ) -> List[str]:
        i, ii = _INDENT, _DOUBLE_INDENT
        lines: List[str] = []
        used: Set[str] = {
            "create", "find_all", "find_with_pagination", "count",
            "find_by_id", "update", "delete", "exists",
        }

        def finder(name: str, params: str, where: str) -> None:
            used.add(name)
            imports.setdefault("sqlalchemy", set()).add("select")
            signature: str = f"self, {params}" if params else "self"
            lines.extend(
                [
                    "",
                    f"{i}def {name}({signature}) -> List[{entity}]:",
                    f"{ii}stmt = select({entity}).where({where})",
                    f"{ii}return list(self.session.scalars(stmt))",
                ]
            )

        # Substring search on the first text-like column
        text_column: Optional[ColumnDescriptor] = next(
            (c for c in table.columns if is_text_like(c)), None
        )
        if text_column is not None:
            attr: str = self.attr(text_column.name)
            finder(
                f"search_by_{to_snake_case(attr)}",
                "term: str",
                f'{entity}.{attr}.like(f"%{{term}}%")',
            )

        # Range search on the creation timestamp, else the first date-like column
        date_columns: List[ColumnDescriptor] = [c for c in table.columns if is_date_like(c)]
        date_column: Optional[ColumnDescriptor] = next(
            (c for c in date_columns if "created" in c.name.lower()),
            date_columns[0] if date_columns else None,
        )
        if date_column is not None:
            mapped: MappedType = map_column(date_column, table.name)
            for module, names in mapped.python_imports.items():
                imports.setdefault(module, set()).update(names)
            finder(
                "find_by_date_range",
                f"start: {mapped.python_type}, end: {mapped.python_type}",
                f"{entity}.{self.attr(date_column.name)}.between(start, end)",
            )

        # One finder per foreign key
        for fk in table.foreign_keys:
            column: Optional[ColumnDescriptor] = table.column(fk.column)
            if column is None:
                continue
            attr = self.attr(fk.column)
            name: str = f"find_by_{to_snake_case(fk.referenced_table)}_id"
            if name in used:
                name = f"find_by_{to_snake_case(fk.column)}"
            if name in used:
                logger.debug(
                    "Skipping duplicate finder %s on '%s'.", name, table.name
                )
                continue
            fk_type: MappedType = map_column(column, table.name)
            for module, names in fk_type.python_imports.items():
                imports.setdefault(module, set()).update(names)
            param: str = python_identifier(to_snake_case(fk.column))
            finder(name, f"{param}: {fk_type.python_type}", f"{entity}.{attr} == {param}")

        # Soft delete on a deleted-at style timestamp
        deleted: Optional[ColumnDescriptor] = next(
            (c for c in date_columns if "deleted" in c.name.lower()), None
        )
        if deleted is not None:
            deleted_attr: str = self.attr(deleted.name)
            if pk is not None:
                imports.setdefault("sqlalchemy", set()).update({"func", "update"})
                pk_attr, pk_type = self._identity(table, pk, imports)
                lines.extend(
                    [
                        "",
                        f"{i}def soft_delete(self, entity_id: {pk_type}) -> bool:",
                        f"{ii}stmt = (",
                        f"{ii}{i}update({entity})",
                        f"{ii}{i}.where({entity}.{pk_attr} == entity_id)",
                        f"{ii}{i}.values({{{entity}.{deleted_attr}: func.now()}})",
                        f"{ii})",
                        f"{ii}return bool(self.session.execute(stmt).rowcount)",
                    ]
                )
            finder("find_active", "", f"{entity}.{deleted_attr}.is_(None)")

        return lines


__all__: List[str] = [
    "GENERATED_HEADER",
    "DEPRECATION_PREFIX",
    "RELATIONS_SECTION",
    "PRESERVED_SECTION",
    "has_generated_header",
    "is_deprecated",
    "deprecation_marker",
    "with_deprecation_marker",
    "docstring_text",
    "TemplateGenerator",
]

logger.debug("schemasync.templates loaded.")
