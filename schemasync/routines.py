# File: schemasync/routines.py
"""
SchemaSync - Stored Routine Extraction
========================================
Serialises every stored procedure and function to its own ``.sql`` file
and writes Markdown documentation next to them.

Output layout (under ``<outputBaseDir>/procedures/``)::

    procedures/<name>.sql     one per stored procedure (lower-cased name)
    functions/<name>.sql      one per stored function
    repositories/             call wrappers, only with generate_procedure_repositories
        <domain>_procedures.py
        index.py
    docs/index.md             overview with counts
    docs/procedures.md        per-procedure reference
    docs/functions.md         per-function reference
    README.md                 layout and usage

Each ``.sql`` file holds a comment header, ``DROP ... IF EXISTS``, and the
``CREATE`` statement between ``DELIMITER ;;`` / ``DELIMITER ;``.  Only
catalog data is rendered (no run time), so unchanged routines produce
byte-identical files and the writer leaves them alone.

In the flat layout (``separate_routines_by_type=False``) a procedure and a
function may share a name; both files then carry the kind,
``<name>.procedure.sql`` and ``<name>.function.sql``.

Procedure repositories group stored procedures by the domain read from
their name (``sp_board_get_list`` → ``board``) and expose one method per
procedure that runs ``CALL`` through a SQLAlchemy ``Session``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Tuple

from schemasync.exporters import GeneratedFileWriter
from schemasync.models import (
    ParameterMode,
    RoutineDescriptor,
    SchemaSnapshot,
    SyncOptions,
)
from schemasync.templates import GENERATED_HEADER, docstring_text
from schemasync.type_mapping import MappedType, map_parameter
from schemasync.utils import (
    build_import_block,
    one_line,
    python_identifier,
    quote_literal,
    to_pascal_case,
    to_snake_case,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync.routines")

_RULE: str = "-- " + "=" * 64
_INDENT: str = "    "
_DEFAULT_RETURN_TYPE: str = "VARCHAR(255)"
_MAX_LINE: int = 99

_ROUTINE_PREFIX_RE: re.Pattern[str] = re.compile(r"^(?:sp|proc)(?:_|$)")
_VERB_PREFIX_RE: re.Pattern[str] = re.compile(r"^(?:get|set|update|delete|create)(?:_|$)")
_SELECT_RE: re.Pattern[str] = re.compile(r"\bselect\b", re.IGNORECASE)

PROCEDURE_INDEX_MODULE: str = "index.py"


def routine_file_name(routine: RoutineDescriptor, *, with_kind: bool = False) -> str:
    """``sp_GetBoard`` → ``sp_getboard.sql``, or ``sp_getboard.procedure.sql`` *with_kind*."""
    stem: str = routine.name.lower()
    if with_kind:
        stem = f"{stem}.{_kind(routine).lower()}"
    return f"{stem}.sql"


def _kind(routine: RoutineDescriptor) -> str:
    return "FUNCTION" if routine.is_function else "PROCEDURE"


def _return_type(routine: RoutineDescriptor) -> str:
    return (routine.return_type or _DEFAULT_RETURN_TYPE).upper()


def _timestamp(value: Optional[datetime]) -> str:
    return value.isoformat(sep=" ") if value is not None else "unknown"


# ---------------------------------------------------------------------------
# SQL rendering
# ---------------------------------------------------------------------------


def render_header(
    routine: RoutineDescriptor, snapshot: SchemaSnapshot, *, comments: bool = True
) -> List[str]:
    """Comment block at the top of a routine file."""
    if not comments:
        return [f"-- {_kind(routine)}: {routine.name}"]

    meta = snapshot.database_meta
    lines: List[str] = [
        _RULE,
        f"-- {_kind(routine)}: {routine.name}",
        _RULE,
        "--",
        f"-- Description: {routine.comment or 'No description available'}",
        "--",
        "-- Parameters:",
    ]
    if routine.parameters:
        for param in routine.parameters:
            mode: str = "" if routine.is_function else f"{param.mode} "
            lines.append(f"--   {mode}{param.name} {param.type_signature}")
    else:
        lines.append("--   (no parameters)")
    lines.append("--")
    if routine.is_function:
        lines.append(f"-- Returns: {_return_type(routine)}")
    if routine.definer:
        lines.append(f"-- Definer: {routine.definer}")
    lines.append(f"-- Created: {_timestamp(routine.created)}")
    lines.append(f"-- Modified: {_timestamp(routine.modified)}")
    if meta.database:
        lines.append(f"-- Database: {meta.database}")
    lines.append("--")
    lines.append("-- Generated by: schemasync")
    lines.append(_RULE)
    return lines


def _parameter_list(routine: RoutineDescriptor) -> str:
    if not routine.parameters:
        return ""
    rendered: List[str] = []
    for param in routine.parameters:
        mode: str = "" if routine.is_function else f"{param.mode} "
        rendered.append(f"{mode}`{param.name}` {param.type_signature}")
    return "\n" + _INDENT + f",\n{_INDENT}".join(rendered) + "\n"


def _body(routine: RoutineDescriptor) -> List[str]:
    """Catalog body, wrapped in ``BEGIN``/``END`` unless it already is."""
    body: str = routine.body.strip("\n").rstrip()
    if body.lstrip().upper().startswith("BEGIN"):
        return body.splitlines()
    lines: List[str] = ["BEGIN"]
    lines.extend(f"{_INDENT}{line}" if line.strip() else "" for line in body.splitlines())
    lines.append("END")
    return lines


def render_routine(
    routine: RoutineDescriptor, snapshot: SchemaSnapshot, *, comments: bool = True
) -> str:
    """Complete ``.sql`` file content for one routine."""
    kind: str = _kind(routine)
    lines: List[str] = render_header(routine, snapshot, comments=comments)
    lines.extend(
        [
            "",
            f"DROP {kind} IF EXISTS `{routine.name}`;",
            "",
            "DELIMITER ;;",
            "",
            f"CREATE {kind} `{routine.name}`({_parameter_list(routine)})",
        ]
    )
    if routine.is_function:
        lines.append(f"RETURNS {_return_type(routine)}")
        lines.append("READS SQL DATA")
        lines.append("DETERMINISTIC")
    lines.extend(_body(routine))
    lines.extend(["", ";;", "", "DELIMITER ;", ""])
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Documentation rendering
# ---------------------------------------------------------------------------


def _call_example(routine: RoutineDescriptor) -> str:
    args: str = ", ".join(f"/* {p.name} */" for p in routine.parameters)
    if routine.is_function:
        return f"SELECT `{routine.name}`({args});"
    return f"CALL `{routine.name}`({args});"


def _routine_section(position: int, routine: RoutineDescriptor, file_path: str) -> List[str]:
    lines: List[str] = [
        f"### {position}. {routine.name}",
        "",
        f"**Description:** {routine.comment or 'No description available'}",
        "",
    ]
    if routine.is_function:
        lines.extend([f"**Return Type:** {_return_type(routine)}", ""])
    lines.append("**Parameters:**")
    lines.append("")
    if routine.parameters:
        if routine.is_function:
            lines.extend(["| Parameter | Type |", "|-----------|------|"])
            lines.extend(f"| `{p.name}` | {p.type_signature} |" for p in routine.parameters)
        else:
            lines.extend(["| Parameter | Mode | Type |", "|-----------|------|------|"])
            lines.extend(
                f"| `{p.name}` | {p.mode} | {p.type_signature} |" for p in routine.parameters
            )
    else:
        lines.append("No parameters")
    lines.extend(
        [
            "",
            "**Usage:**",
            "```sql",
            _call_example(routine),
            "```",
            "",
            f"**File:** `{file_path}`",
            "",
            "---",
            "",
        ]
    )
    return lines


def _doc_banner(title: str, snapshot: SchemaSnapshot) -> List[str]:
    meta = snapshot.database_meta
    return [
        f"# {title}",
        "",
        "> Auto-generated by schemasync  ",
        f"> Environment: {meta.environment}  ",
        f"> Database: {meta.database or 'unknown'}",
        "",
    ]


# ---------------------------------------------------------------------------
# Procedure repositories
# ---------------------------------------------------------------------------


def procedure_domain(name: str) -> str:
    """
    Domain a stored procedure is grouped under.

    ``sp_board_get_list`` → ``board``, ``sp_GetBoardComments`` → ``board``,
    ``get_product_stats`` → ``product``.  A name with nothing left after the
    prefixes falls into ``common``.
    """
    stem: str = _ROUTINE_PREFIX_RE.sub("", to_snake_case(name), count=1)
    stem = _VERB_PREFIX_RE.sub("", stem, count=1)
    first: str = stem.split("_")[0]
    return python_identifier(first) if first else "common"


def procedure_method_name(name: str) -> str:
    """``sp_GetBoardComments`` → ``get_board_comments``."""
    stem: str = _ROUTINE_PREFIX_RE.sub("", to_snake_case(name), count=1)
    return python_identifier(stem) if stem else "call"


def procedure_repository_class_name(domain: str) -> str:
    """``board`` → ``BoardProcedureRepository``."""
    name: str = to_pascal_case(domain) + "ProcedureRepository"
    return name if name[0].isalpha() else f"Sp{name}"


def procedure_module_stem(domain: str) -> str:
    """``board`` → ``board_procedures``."""
    return f"{domain}_procedures"


def group_procedures_by_domain(
    procedures: Sequence[RoutineDescriptor],
) -> Dict[str, List[RoutineDescriptor]]:
    """Domain → procedures, both in first-seen order."""
    groups: Dict[str, List[RoutineDescriptor]] = {}
    for routine in procedures:
        groups.setdefault(procedure_domain(routine.name), []).append(routine)
    return groups


def _returns_result_set(routine: RoutineDescriptor) -> bool:
    return bool(_SELECT_RE.search(routine.body))


def _signature(method: str, params: List[str], returns: str) -> List[str]:
    single: str = f"{_INDENT}def {method}({', '.join(['self'] + params)}) -> {returns}:"
    if len(single) <= _MAX_LINE:
        return [single]
    lines: List[str] = [f"{_INDENT}def {method}(", f"{_INDENT * 2}self,"]
    lines.extend(f"{_INDENT * 2}{param}," for param in params)
    lines.append(f"{_INDENT}) -> {returns}:")
    return lines


def _procedure_method(
    routine: RoutineDescriptor,
    method: str,
    imports: Dict[str, Set[str]],
    *,
    comments: bool = True,
) -> List[str]:
    """One repository method running ``CALL`` for *routine*."""
    i2: str = _INDENT * 2
    i3: str = _INDENT * 3
    params: List[str] = []
    binds: List[str] = []
    call_args: List[str] = []
    inouts: List[str] = []
    outs: List[Tuple[str, MappedType]] = []

    for param in routine.parameters:
        ident: str = python_identifier(to_snake_case(param.name) or param.name)
        if ident == "self":
            ident = "self_"
        mode: ParameterMode = ParameterMode(param.mode)
        mapped: MappedType = map_parameter(param, routine.name)
        if mode != ParameterMode.OUT:
            for module, names in mapped.python_imports.items():
                imports.setdefault(module, set()).update(names)
            params.append(f"{ident}: {mapped.python_type}")
        if mode == ParameterMode.IN:
            binds.append(f"{quote_literal(ident)}: {ident}")
            call_args.append(f":{ident}")
            continue
        call_args.append(f"@{ident}")
        outs.append((ident, mapped))
        if mode == ParameterMode.INOUT:
            inouts.append(ident)

    if len(outs) == 1:
        for module, names in outs[0][1].python_imports.items():
            imports.setdefault(module, set()).update(names)
        imports.setdefault("typing", set()).add("Optional")
        returns: str = f"Optional[{outs[0][1].python_type}]"
    elif outs:
        imports.setdefault("typing", set()).update({"Any", "Dict"})
        returns = "Dict[str, Any]"
    elif _returns_result_set(routine):
        imports.setdefault("typing", set()).update({"Any", "Dict", "List"})
        returns = "List[Dict[str, Any]]"
    else:
        returns = "None"

    summary: str = f"Call ``{routine.name}``."
    if comments and routine.comment:
        summary = f"Call ``{routine.name}``: {one_line(routine.comment)}"
    lines: List[str] = _signature(method, params, returns)
    lines.append(f'{i2}"""{docstring_text(summary)}"""')

    for ident in inouts:
        lines.append(
            f"{i2}self.session.execute(text({quote_literal(f'SET @{ident} = :{ident}')}), "
            f"{{{quote_literal(ident)}: {ident}}})"
        )

    call: str = quote_literal(f"CALL `{routine.name}`({', '.join(call_args)})")
    target: str = "result = " if returns.startswith("List") else ""
    if binds:
        lines.extend(
            [
                f"{i2}{target}self.session.execute(",
                f"{i3}text({call}),",
                f"{i3}{{{', '.join(binds)}}},",
                f"{i2})",
            ]
        )
    else:
        lines.append(f"{i2}{target}self.session.execute(text({call}))")

    if outs:
        selected: str = ", ".join(f"@{ident} AS {ident}" for ident, _ in outs)
        lines.append(
            f"{i2}row = self.session.execute(text({quote_literal(f'SELECT {selected}')}))"
            ".mappings().one()"
        )
        if len(outs) == 1:
            lines.append(f"{i2}return row[{quote_literal(outs[0][0])}]")
        else:
            lines.append(f"{i2}return dict(row)")
    elif target:
        lines.append(f"{i2}return [dict(row) for row in result.mappings()]")
    return lines


def render_procedure_repository(
    domain: str, procedures: Sequence[RoutineDescriptor], *, comments: bool = True
) -> str:
    """Module with one ``<Domain>ProcedureRepository`` class for *procedures*."""
    class_name: str = procedure_repository_class_name(domain)
    imports: Dict[str, Set[str]] = {"sqlalchemy": {"text"}, "sqlalchemy.orm": {"Session"}}
    body: List[str] = []
    used: Set[str] = {"session"}
    for routine in procedures:
        base: str = procedure_method_name(routine.name)
        method: str = base
        counter: int = 2
        while method in used:
            method = f"{base}_{counter}"
            counter += 1
        used.add(method)
        body.append("")
        body.extend(_procedure_method(routine, method, imports, comments=comments))

    lines: List[str] = [
        GENERATED_HEADER,
        '"""',
        f"Stored procedure calls for the ``{domain}`` domain.",
        '"""',
        "",
        "from __future__ import annotations",
        "",
        build_import_block(imports),
        "",
        "",
        f"class {class_name}:",
        f'{_INDENT}"""Runs the ``{domain}`` stored procedures on a Session."""',
        "",
        f"{_INDENT}def __init__(self, session: Session) -> None:",
        f"{_INDENT * 2}self.session = session",
    ]
    lines.extend(body)
    lines.append("")
    return "\n".join(lines)


def render_procedure_index(domains: Sequence[str]) -> str:
    """``index.py`` exporting every domain repository and ``StoredProcedureService``."""
    classes: List[str] = [procedure_repository_class_name(d) for d in domains]
    lines: List[str] = [
        GENERATED_HEADER,
        '"""',
        "Stored procedure repositories, one per domain, and a service holding",
        "all of them on one Session.",
        '"""',
        "",
        "from __future__ import annotations",
        "",
        "from typing import List",
        "",
        "from sqlalchemy.orm import Session",
        "",
    ]
    lines.extend(
        f"from .{procedure_module_stem(d)} import {c}" for d, c in zip(domains, classes)
    )
    lines.append("")
    if classes:
        lines.append("ALL_PROCEDURE_REPOSITORIES: List[type] = [")
        lines.extend(f"{_INDENT}{c}," for c in classes)
        lines.append("]")
    else:
        lines.append("ALL_PROCEDURE_REPOSITORIES: List[type] = []")
    lines.extend(
        [
            "",
            "",
            "class StoredProcedureService:",
            f'{_INDENT}"""Every procedure repository, keyed by domain."""',
            "",
            f"{_INDENT}def __init__(self, session: Session) -> None:",
        ]
    )
    lines.extend(f"{_INDENT * 2}self.{d} = {c}(session)" for d, c in zip(domains, classes))
    if not classes:
        lines.append(f"{_INDENT * 2}self.session = session")
    lines.extend(["", "", "__all__ = ["])
    lines.extend(f"{_INDENT}{quote_literal(name)}," for name in classes)
    lines.extend(
        [
            f'{_INDENT}"ALL_PROCEDURE_REPOSITORIES",',
            f'{_INDENT}"StoredProcedureService",',
            "]",
            "",
        ]
    )
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


@dataclass
class RoutineExtractionResult:
    routine_files: List[Path] = field(default_factory=list)
    repository_files: List[Path] = field(default_factory=list)
    doc_files: List[Path] = field(default_factory=list)


class RoutineExtractor:
    """
    Write one ``.sql`` file per routine, optional procedure repositories,
    and documentation.

    Usage::

        extractor = RoutineExtractor(options, writer)
        result = extractor.extract(snapshot)
    """

    def __init__(self, options: SyncOptions, writer: GeneratedFileWriter) -> None:
        self._options: SyncOptions = options
        self._writer: GeneratedFileWriter = writer
        self._root: Path = options.routines_dir

    # -----------------------------------------------------------------
    # Paths
    # -----------------------------------------------------------------

    def directory_for(self, routine: RoutineDescriptor) -> Path:
        if not self._options.separate_routines_by_type:
            return self._root
        return self._root / ("functions" if routine.is_function else "procedures")

    def shared_names(self, snapshot: SchemaSnapshot) -> Set[str]:
        """Lower-cased names used by both a procedure and a function in the flat layout."""
        if self._options.separate_routines_by_type:
            return set()
        procedures: Set[str] = {r.name.lower() for r in snapshot.procedures}
        return {r.name.lower() for r in snapshot.functions} & procedures

    def routine_paths(self, snapshot: SchemaSnapshot) -> Dict[Tuple[str, str], Path]:
        """``(kind, name)`` → ``.sql`` path for every routine, in snapshot order."""
        shared: Set[str] = self.shared_names(snapshot)
        return {
            (_kind(r), r.name): self.directory_for(r)
            / routine_file_name(r, with_kind=r.name.lower() in shared)
            for r in snapshot.routines
        }

    def repository_paths(self, snapshot: SchemaSnapshot) -> List[Path]:
        """Procedure repository modules, then their index; empty when disabled."""
        if not self._options.generate_procedure_repositories or not snapshot.procedures:
            return []
        directory: Path = self._options.procedure_repositories_dir
        paths: List[Path] = [
            directory / f"{procedure_module_stem(domain)}.py"
            for domain in group_procedures_by_domain(snapshot.procedures)
        ]
        paths.append(directory / PROCEDURE_INDEX_MODULE)
        return paths

    def planned_paths(self, snapshot: SchemaSnapshot) -> List[Path]:
        """Every file :meth:`extract` would write, in write order."""
        paths: List[Path] = list(self.routine_paths(snapshot).values())
        paths.extend(self.repository_paths(snapshot))
        if self._options.generate_documentation:
            paths.extend(self._doc_paths())
        return paths

    def _doc_paths(self) -> List[Path]:
        docs: Path = self._root / "docs"
        return [
            docs / "procedures.md",
            docs / "functions.md",
            docs / "index.md",
            self._root / "README.md",
        ]

    def _relative_paths(self, snapshot: SchemaSnapshot) -> Dict[Tuple[str, str], str]:
        """``(kind, name)`` → routine file path relative to the routines root."""
        return {
            key: path.relative_to(self._root).as_posix()
            for key, path in self.routine_paths(snapshot).items()
        }

    # -----------------------------------------------------------------
    # Extraction
    # -----------------------------------------------------------------

    def extract(self, snapshot: SchemaSnapshot) -> RoutineExtractionResult:
        result: RoutineExtractionResult = RoutineExtractionResult()
        shared: Set[str] = self.shared_names(snapshot)
        if shared:
            logger.warning(
                "Procedure and function share a name in the flat layout: %s; "
                "their files are suffixed with the kind.",
                ", ".join(sorted(shared)),
            )
        paths: Dict[Tuple[str, str], Path] = self.routine_paths(snapshot)
        for routine in snapshot.routines:
            content: str = render_routine(
                routine, snapshot, comments=self._options.generate_comments
            )
            path: Path = paths[(_kind(routine), routine.name)]
            self._writer.write(path, content)
            result.routine_files.append(path)

        result.repository_files.extend(self._write_repositories(snapshot))

        if self._options.generate_documentation:
            procedures_md, functions_md, index_md, readme = self._doc_paths()
            self._writer.write(
                procedures_md, self.render_listing("Stored Procedures", snapshot.procedures, snapshot)
            )
            self._writer.write(
                functions_md, self.render_listing("Functions", snapshot.functions, snapshot)
            )
            self._writer.write(index_md, self.render_index(snapshot))
            self._writer.write(readme, self.render_readme(snapshot))
            result.doc_files.extend([procedures_md, functions_md, index_md, readme])

        logger.info(
            "Extracted %d procedure(s) and %d function(s) to %s.",
            len(snapshot.procedures),
            len(snapshot.functions),
            self._root,
        )
        return result

    def _write_repositories(self, snapshot: SchemaSnapshot) -> List[Path]:
        paths: List[Path] = self.repository_paths(snapshot)
        if not paths:
            return []
        groups: Dict[str, List[RoutineDescriptor]] = group_procedures_by_domain(
            snapshot.procedures
        )
        for path, (domain, procedures) in zip(paths, groups.items()):
            self._writer.write(
                path,
                render_procedure_repository(
                    domain, procedures, comments=self._options.generate_comments
                ),
            )
        self._writer.write(paths[-1], render_procedure_index(list(groups)))
        logger.info(
            "Wrote %d procedure repository module(s) to %s.",
            len(groups),
            self._options.procedure_repositories_dir,
        )
        return paths

    # -----------------------------------------------------------------
    # Documentation pages
    # -----------------------------------------------------------------

    def render_listing(
        self, title: str, routines: Sequence[RoutineDescriptor], snapshot: SchemaSnapshot
    ) -> str:
        noun: str = "Functions" if title == "Functions" else "Procedures"
        lines: List[str] = _doc_banner(title, snapshot)
        lines.extend(["## Overview", "", f"Total {noun}: **{len(routines)}**", ""])
        if routines:
            relative: Dict[Tuple[str, str], str] = self._relative_paths(snapshot)
            lines.extend([f"## {noun} List", ""])
            for position, routine in enumerate(routines, start=1):
                file_path: str = relative[(_kind(routine), routine.name)]
                lines.extend(_routine_section(position, routine, f"../{file_path}"))
        return "\n".join(lines).rstrip("\n") + "\n"

    def render_index(self, snapshot: SchemaSnapshot) -> str:
        lines: List[str] = _doc_banner("Database Procedures & Functions", snapshot)
        lines.extend(
            [
                "## Overview",
                "",
                "| Type | Count | Reference |",
                "|------|-------|-----------|",
                f"| Stored Procedures | {len(snapshot.procedures)} | "
                "[procedures.md](./procedures.md) |",
                f"| Functions | {len(snapshot.functions)} | [functions.md](./functions.md) |",
                "",
                "## Files",
                "",
            ]
        )
        if snapshot.routines:
            relative: Dict[Tuple[str, str], str] = self._relative_paths(snapshot)
            for routine in snapshot.routines:
                file_path: str = relative[(_kind(routine), routine.name)]
                lines.append(
                    f"- `{routine.name}` ({_kind(routine).lower()}): [{file_path}](../{file_path})"
                )
        else:
            lines.append("No stored routines.")
        lines.append("")
        return "\n".join(lines)

    def render_readme(self, snapshot: SchemaSnapshot) -> str:
        layout: List[str] = []
        if self._options.separate_routines_by_type:
            layout.extend(
                [
                    "procedures/      # one .sql file per stored procedure",
                    "functions/       # one .sql file per stored function",
                ]
            )
        else:
            layout.append("*.sql            # one file per stored routine")
        if self.repository_paths(snapshot):
            layout.extend(
                [
                    "repositories/    # stored procedure call wrappers, one module per domain",
                    "    index.py     # StoredProcedureService",
                ]
            )
        layout.extend(
            [
                "docs/",
                "    index.md     # overview",
                "    procedures.md",
                "    functions.md",
                "README.md        # this file",
            ]
        )
        example: Optional[RoutineDescriptor] = next(iter(snapshot.routines), None)
        lines: List[str] = _doc_banner("Stored Routines", snapshot)
        lines.extend(
            [
                f"{len(snapshot.procedures)} procedure(s) and "
                f"{len(snapshot.functions)} function(s) extracted from the database.",
                "",
                "## Layout",
                "",
                "```",
                *layout,
                "```",
                "",
                "## Applying a routine",
                "",
                "Each file drops and recreates its routine, so it can be replayed:",
                "",
                "```sh",
                "mysql -u <user> -p <database> < "
                + (
                    self._relative_paths(snapshot)[(_kind(example), example.name)]
                    if example
                    else "procedures/<name>.sql"
                ),
                "```",
                "",
                "- [Index](docs/index.md)",
                "- [Stored Procedures](docs/procedures.md)",
                "- [Functions](docs/functions.md)",
                "",
            ]
        )
        return "\n".join(lines)


__all__: List[str] = [
    "PROCEDURE_INDEX_MODULE",
    "routine_file_name",
    "render_header",
    "render_routine",
    "procedure_domain",
    "procedure_method_name",
    "procedure_repository_class_name",
    "procedure_module_stem",
    "group_procedures_by_domain",
    "render_procedure_repository",
    "render_procedure_index",
    "RoutineExtractionResult",
    "RoutineExtractor",
]

logger.debug("schemasync.routines loaded.")
