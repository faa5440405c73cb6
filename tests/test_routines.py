"""
tests/test_routines.py
Tests for stored-routine extraction and documentation.
"""

from __future__ import annotations

import pathlib

from schemasync.exporters import GeneratedFileWriter
from schemasync.models import SchemaSnapshot, SyncOptions
from schemasync.routines import (
    RoutineExtractor,
    procedure_domain,
    procedure_method_name,
    procedure_repository_class_name,
    render_header,
    render_procedure_index,
    render_procedure_repository,
    render_routine,
    routine_file_name,
)


def _procedure(snapshot: SchemaSnapshot):
    return snapshot.procedures[0]


def _function(snapshot: SchemaSnapshot):
    return snapshot.functions[0]


# ===========================================================================
# SQL rendering
# ===========================================================================


class TestRenderRoutine:

    def test_file_name_is_lower_cased(self, example_snapshot: SchemaSnapshot) -> None:
        assert routine_file_name(_procedure(example_snapshot)) == "sp_getboardcomments.sql"

    def test_procedure_statements(self, example_snapshot: SchemaSnapshot) -> None:
        sql = render_routine(_procedure(example_snapshot), example_snapshot)
        assert "DROP PROCEDURE IF EXISTS `sp_GetBoardComments`;" in sql
        assert (
            "CREATE PROCEDURE `sp_GetBoardComments`(\n"
            "    IN `p_board_id` INT,\n"
            "    IN `p_limit` INT\n"
            ")\n"
            "BEGIN\n"
            "    SELECT * FROM tb_comment\n"
        ) in sql
        assert sql.index("DELIMITER ;;") < sql.index("CREATE PROCEDURE")
        assert sql.endswith("END\n\n;;\n\nDELIMITER ;\n")

    def test_procedure_header(self, example_snapshot: SchemaSnapshot) -> None:
        header = render_header(_procedure(example_snapshot), example_snapshot)
        assert header[1] == "-- PROCEDURE: sp_GetBoardComments"
        assert "-- Description: Comments of one board, newest first" in header
        assert "--   IN p_board_id INT" in header
        assert "-- Definer: app@%" in header
        assert "-- Created: 2024-03-01 09:30:00" in header
        assert "-- Modified: 2024-03-02 11:00:00" in header
        assert "-- Database: community" in header
        assert "-- Generated by: schemasync" in header

    def test_function_keeps_existing_begin(self, example_snapshot: SchemaSnapshot) -> None:
        sql = render_routine(_function(example_snapshot), example_snapshot)
        assert sql.count("BEGIN") == 1
        assert (
            "CREATE FUNCTION `fn_CountComments`(\n"
            "    `p_board_id` INT\n"
            ")\n"
            "RETURNS INT\n"
            "READS SQL DATA\n"
            "DETERMINISTIC\n"
            "BEGIN\n"
        ) in sql
        assert "-- Returns: INT" in sql
        assert "--   p_board_id INT" in sql

    def test_no_comments_mode(self, example_snapshot: SchemaSnapshot) -> None:
        sql = render_routine(_procedure(example_snapshot), example_snapshot, comments=False)
        assert sql.splitlines()[0] == "-- PROCEDURE: sp_GetBoardComments"
        assert "Description" not in sql
        assert "Definer" not in sql

    def test_routine_without_parameters(self) -> None:
        snapshot = SchemaSnapshot.model_validate(
            {
                "procedures": [
                    {"name": "sp_Ping", "kind": "PROCEDURE", "body": "SELECT 1"}
                ]
            }
        )
        sql = render_routine(snapshot.procedures[0], snapshot)
        assert "CREATE PROCEDURE `sp_Ping`()" in sql
        assert "--   (no parameters)" in sql
        assert "-- Created: unknown" in sql


# ===========================================================================
# Extraction
# ===========================================================================


class TestRoutineExtractor:

    def test_separated_layout(
        self, options: SyncOptions, writer: GeneratedFileWriter, example_snapshot: SchemaSnapshot
    ) -> None:
        result = RoutineExtractor(options, writer).extract(example_snapshot)
        root = options.routines_dir
        assert result.routine_files == [
            root / "procedures" / "sp_getboardcomments.sql",
            root / "functions" / "fn_countcomments.sql",
        ]
        assert result.doc_files == [
            root / "docs" / "procedures.md",
            root / "docs" / "functions.md",
            root / "docs" / "index.md",
            root / "README.md",
        ]
        assert all(p.is_file() for p in result.routine_files + result.doc_files)

    def test_planned_paths_match_written(
        self, options: SyncOptions, example_snapshot: SchemaSnapshot
    ) -> None:
        extractor = RoutineExtractor(options, GeneratedFileWriter())
        planned = extractor.planned_paths(example_snapshot)
        result = extractor.extract(example_snapshot)
        assert planned == result.routine_files + result.repository_files + result.doc_files
        assert result.repository_files == []

    def test_flat_layout(
        self, output_dir: pathlib.Path, writer: GeneratedFileWriter, example_snapshot: SchemaSnapshot
    ) -> None:
        options = SyncOptions(
            environment="test", output_base_dir=output_dir, separate_routines_by_type=False
        )
        result = RoutineExtractor(options, writer).extract(example_snapshot)
        assert [p.parent for p in result.routine_files] == [options.routines_dir] * 2
        readme = (options.routines_dir / "README.md").read_text(encoding="utf-8")
        assert "*.sql" in readme

    def test_second_run_is_unchanged(
        self, options: SyncOptions, example_snapshot: SchemaSnapshot
    ) -> None:
        RoutineExtractor(options, GeneratedFileWriter()).extract(example_snapshot)
        second = GeneratedFileWriter()
        RoutineExtractor(options, second).extract(example_snapshot)
        assert second.counts() == {"created": 0, "updated": 0, "unchanged": 6}

    def test_documentation_can_be_disabled(
        self, output_dir: pathlib.Path, writer: GeneratedFileWriter, example_snapshot: SchemaSnapshot
    ) -> None:
        options = SyncOptions(
            environment="test", output_base_dir=output_dir, generate_documentation=False
        )
        result = RoutineExtractor(options, writer).extract(example_snapshot)
        assert result.doc_files == []
        assert not (options.routines_dir / "docs").exists()

    def test_procedure_docs(
        self, options: SyncOptions, writer: GeneratedFileWriter, example_snapshot: SchemaSnapshot
    ) -> None:
        RoutineExtractor(options, writer).extract(example_snapshot)
        doc = (options.routines_dir / "docs" / "procedures.md").read_text(encoding="utf-8")
        assert doc.startswith("# Stored Procedures\n")
        assert "Total Procedures: **1**" in doc
        assert "### 1. sp_GetBoardComments" in doc
        assert "| `p_board_id` | IN | INT |" in doc
        assert "CALL `sp_GetBoardComments`(/* p_board_id */, /* p_limit */);" in doc
        assert "**File:** `../procedures/sp_getboardcomments.sql`" in doc

    def test_function_docs(
        self, options: SyncOptions, writer: GeneratedFileWriter, example_snapshot: SchemaSnapshot
    ) -> None:
        RoutineExtractor(options, writer).extract(example_snapshot)
        doc = (options.routines_dir / "docs" / "functions.md").read_text(encoding="utf-8")
        assert "**Return Type:** INT" in doc
        assert "| `p_board_id` | INT |" in doc
        assert "SELECT `fn_CountComments`(/* p_board_id */);" in doc

    def test_index_counts(
        self, options: SyncOptions, writer: GeneratedFileWriter, example_snapshot: SchemaSnapshot
    ) -> None:
        RoutineExtractor(options, writer).extract(example_snapshot)
        index = (options.routines_dir / "docs" / "index.md").read_text(encoding="utf-8")
        assert "| Stored Procedures | 1 | [procedures.md](./procedures.md) |" in index
        assert "| Functions | 1 | [functions.md](./functions.md) |" in index
        assert "> Environment: dev  " in index

    def test_flat_layout_suffixes_shared_names(
        self, output_dir: pathlib.Path, writer: GeneratedFileWriter
    ) -> None:
        snapshot = _shared_name_snapshot()
        options = SyncOptions(
            environment="test", output_base_dir=output_dir, separate_routines_by_type=False
        )
        extractor = RoutineExtractor(options, writer)
        result = extractor.extract(snapshot)
        root = options.routines_dir
        assert result.routine_files == [
            root / "count_rows.procedure.sql",
            root / "count_rows.function.sql",
        ]
        assert extractor.shared_names(snapshot) == {"count_rows"}
        assert "CREATE PROCEDURE" in result.routine_files[0].read_text(encoding="utf-8")
        assert "CREATE FUNCTION" in result.routine_files[1].read_text(encoding="utf-8")
        index = (root / "docs" / "index.md").read_text(encoding="utf-8")
        assert "[count_rows.function.sql](../count_rows.function.sql)" in index

    def test_separated_layout_keeps_shared_names(
        self, options: SyncOptions, writer: GeneratedFileWriter
    ) -> None:
        result = RoutineExtractor(options, writer).extract(_shared_name_snapshot())
        assert [p.name for p in result.routine_files] == ["count_rows.sql", "count_rows.sql"]
        assert result.routine_files[0] != result.routine_files[1]

    def test_procedure_repositories_are_off_by_default(
        self, options: SyncOptions, writer: GeneratedFileWriter, example_snapshot: SchemaSnapshot
    ) -> None:
        assert options.generate_procedure_repositories is False
        RoutineExtractor(options, writer).extract(example_snapshot)
        assert not options.procedure_repositories_dir.exists()

    def test_procedure_repositories(
        self, output_dir: pathlib.Path, example_snapshot: SchemaSnapshot
    ) -> None:
        options = SyncOptions(
            environment="test", output_base_dir=output_dir, generate_procedure_repositories=True
        )
        extractor = RoutineExtractor(options, GeneratedFileWriter())
        planned = extractor.planned_paths(example_snapshot)
        result = extractor.extract(example_snapshot)
        directory = options.routines_dir / "repositories"
        assert result.repository_files == [
            directory / "board_procedures.py",
            directory / "index.py",
        ]
        assert planned == result.routine_files + result.repository_files + result.doc_files
        for path in result.repository_files:
            compile(path.read_text(encoding="utf-8"), str(path), "exec")
        index = (directory / "index.py").read_text(encoding="utf-8")
        assert "from .board_procedures import BoardProcedureRepository" in index
        assert "        self.board = BoardProcedureRepository(session)" in index
        readme = (options.routines_dir / "README.md").read_text(encoding="utf-8")
        assert "repositories/" in readme


def _shared_name_snapshot() -> SchemaSnapshot:
    return SchemaSnapshot.model_validate(
        {
            "procedures": [{"name": "count_rows", "kind": "PROCEDURE", "body": "SELECT 1"}],
            "functions": [
                {
                    "name": "COUNT_ROWS",
                    "kind": "FUNCTION",
                    "return_type": "int",
                    "body": "RETURN 1",
                }
            ],
        }
    )


# ===========================================================================
# Procedure repositories
# ===========================================================================


class TestProcedureNaming:

    def test_domain(self) -> None:
        assert procedure_domain("sp_board_get_list") == "board"
        assert procedure_domain("sp_GetBoardComments") == "board"
        assert procedure_domain("proc_user_create") == "user"
        assert procedure_domain("get_product_stats") == "product"
        assert procedure_domain("sp_get") == "common"

    def test_method_name(self) -> None:
        assert procedure_method_name("sp_GetBoardComments") == "get_board_comments"
        assert procedure_method_name("proc_user_create") == "user_create"
        assert procedure_method_name("sp_class") == "class_"

    def test_class_name(self) -> None:
        assert procedure_repository_class_name("board") == "BoardProcedureRepository"


class TestRenderProcedureRepository:

    def test_result_set_procedure(self, example_snapshot: SchemaSnapshot) -> None:
        source = render_procedure_repository("board", example_snapshot.procedures)
        compile(source, "board_procedures.py", "exec")
        assert "class BoardProcedureRepository:" in source
        assert "    def __init__(self, session: Session) -> None:" in source
        assert (
            "    def get_board_comments(self, p_board_id: int, p_limit: int)"
            " -> List[Dict[str, Any]]:"
        ) in source
        assert '"""Call ``sp_GetBoardComments``: Comments of one board, newest first"""' in source
        assert (
            "        result = self.session.execute(\n"
            '            text("CALL `sp_GetBoardComments`(:p_board_id, :p_limit)"),\n'
            '            {"p_board_id": p_board_id, "p_limit": p_limit},\n'
            "        )\n"
            "        return [dict(row) for row in result.mappings()]\n"
        ) in source
        assert "from typing import Any, Dict, List" in source
        assert "from sqlalchemy import text" in source

    def test_out_parameters(self) -> None:
        snapshot = SchemaSnapshot.model_validate(
            {
                "procedures": [
                    {
                        "name": "sp_order_total",
                        "kind": "PROCEDURE",
                        "parameters": [
                            {"name": "p_order_id", "mode": "IN", "native_type": "int"},
                            {"name": "p_total", "mode": "OUT", "native_type": "int"},
                        ],
                        "body": "SET p_total = 1;",
                    },
                    {
                        "name": "sp_order_bump",
                        "kind": "PROCEDURE",
                        "parameters": [
                            {"name": "p_counter", "mode": "INOUT", "native_type": "int"},
                            {"name": "p_note", "mode": "OUT", "native_type": "int"},
                        ],
                        "body": "SET p_counter = p_counter + 1;",
                    },
                ]
            }
        )
        source = render_procedure_repository("order", snapshot.procedures, comments=False)
        compile(source, "order_procedures.py", "exec")
        assert "    def order_total(self, p_order_id: int) -> Optional[int]:" in source
        assert 'text("CALL `sp_order_total`(:p_order_id, @p_total)"),' in source
        assert (
            '        row = self.session.execute(text("SELECT @p_total AS p_total"))'
            ".mappings().one()\n"
            '        return row["p_total"]\n'
        ) in source
        assert "    def order_bump(self, p_counter: int) -> Dict[str, Any]:" in source
        assert (
            '        self.session.execute(text("SET @p_counter = :p_counter"), '
            '{"p_counter": p_counter})\n'
        ) in source
        assert '        self.session.execute(text("CALL `sp_order_bump`(@p_counter, @p_note)"))\n' in source
        assert "        return dict(row)\n" in source

    def test_duplicate_method_names(self) -> None:
        snapshot = SchemaSnapshot.model_validate(
            {
                "procedures": [
                    {"name": "sp_board_list", "kind": "PROCEDURE", "body": "DELETE FROM t"},
                    {"name": "SP_BOARD_LIST", "kind": "PROCEDURE", "body": "DELETE FROM t"},
                ]
            }
        )
        source = render_procedure_repository("board", snapshot.procedures)
        compile(source, "board_procedures.py", "exec")
        assert "    def board_list(self) -> None:" in source
        assert "    def board_list_2(self) -> None:" in source
        assert "typing" not in source

    def test_index(self) -> None:
        source = render_procedure_index(["board", "user"])
        compile(source, "index.py", "exec")
        assert "from .user_procedures import UserProcedureRepository" in source
        assert (
            "ALL_PROCEDURE_REPOSITORIES: List[type] = [\n"
            "    BoardProcedureRepository,\n"
            "    UserProcedureRepository,\n"
            "]\n"
        ) in source
        assert "        self.user = UserProcedureRepository(session)" in source
