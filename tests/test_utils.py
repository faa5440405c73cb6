"""
tests/test_utils.py
Unit tests for schemasync.utils (naming and file helpers).

Tests cover:
- Case conversion, including the lower-camel idempotence rule
- Table → class → file naming and back to the table
- Attribute naming under both conventions
- Import block assembly
- Atomic writes, line counting and the Timer
"""

from __future__ import annotations

import pathlib

import pytest

from schemasync.utils import (
    Timer,
    atomic_write,
    attribute_name,
    build_import_block,
    count_lines,
    entity_class_name,
    entity_file_stem,
    file_stem_to_table_name,
    merge_import_dicts,
    python_identifier,
    quote_literal,
    read_text,
    repository_class_name,
    repository_file_stem,
    to_camel_case,
    to_kebab_case,
    to_pascal_case,
    to_plural,
    to_snake_case,
)


# ===========================================================================
# Case conversion
# ===========================================================================


class TestCaseConversion:
    """Pure naming functions."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("tb_board", "TbBoard"),
            ("USER_profile", "UserProfile"),
            ("tb_test1", "TbTest1"),
            ("order-items", "OrderItems"),
            ("", ""),
        ],
    )
    def test_pascal_case(self, name: str, expected: str) -> None:
        assert to_pascal_case(name) == expected

    def test_camel_case_from_snake(self) -> None:
        assert to_camel_case("tb_board") == "tbBoard"

    def test_camel_case_keeps_lower_camel_input(self) -> None:
        assert to_camel_case("createdAt") == "createdAt"
        assert to_camel_case("boardCommentId") == "boardCommentId"

    def test_camel_case_is_idempotent(self) -> None:
        once = to_camel_case("tb_board_comment")
        assert to_camel_case(once) == once

    def test_kebab_case(self) -> None:
        assert to_kebab_case("TbBoardEntity") == "tb-board-entity"
        assert to_kebab_case("tb_board") == "tb-board"
        assert to_kebab_case("tb_test1") == "tb-test1"

    def test_snake_case(self) -> None:
        assert to_snake_case("boardId") == "board_id"
        assert to_snake_case("getHTTPResponse") == "get_http_response"
        assert to_snake_case("board_id") == "board_id"

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("comment", "comments"),
            ("category", "categories"),
            ("box", "boxes"),
            ("tb_status", "tb_statuses"),
            ("comments", "comments"),
            ("day", "days"),
        ],
    )
    def test_plural(self, name: str, expected: str) -> None:
        assert to_plural(name) == expected


# ===========================================================================
# Table / class / file naming
# ===========================================================================


class TestNamingScheme:
    """``tb_board`` → ``TbBoardEntity`` → ``tb-board.entity``."""

    def test_entity_names(self) -> None:
        assert entity_class_name("tb_board") == "TbBoardEntity"
        assert entity_file_stem("tb_board") == "tb-board.entity"

    def test_repository_names(self) -> None:
        assert repository_class_name("tb_board") == "TbBoardRepository"
        assert repository_file_stem("tb_board") == "tb-board.repository"

    def test_file_stem_maps_back_to_table(self) -> None:
        assert file_stem_to_table_name("tb-board.entity") == "tb_board"
        assert file_stem_to_table_name("board.repository") == "board"

    def test_naming_is_stable_across_calls(self) -> None:
        first = [entity_file_stem("tb_comment"), entity_class_name("tb_comment")]
        second = [entity_file_stem("tb_comment"), entity_class_name("tb_comment")]
        assert first == second


class TestAttributeNames:

    def test_snake_convention(self) -> None:
        assert attribute_name("boardId") == "board_id"
        assert attribute_name("board_id") == "board_id"

    def test_camel_convention(self) -> None:
        assert attribute_name("board_id", "camelCase") == "boardId"
        assert attribute_name("createdAt", "camelCase") == "createdAt"

    def test_keywords_and_reserved_names(self) -> None:
        assert attribute_name("class") == "class_"
        assert attribute_name("metadata") == "metadata_"

    def test_python_identifier(self) -> None:
        assert python_identifier("1st_place") == "_1st_place"
        assert python_identifier("unit price") == "unit_price"
        assert python_identifier("from") == "from_"


# ===========================================================================
# Code formatting helpers
# ===========================================================================


class TestImportBlock:

    def test_sorted_and_grouped(self) -> None:
        block = build_import_block(
            {
                "typing": {"Optional", "List"},
                ".base": {"Base"},
                "datetime": {"datetime"},
            }
        )
        assert block == (
            "from datetime import datetime\n"
            "from typing import List, Optional\n"
            "\n"
            "from .base import Base"
        )

    def test_merge_import_dicts(self) -> None:
        merged = merge_import_dicts({"typing": {"List"}}, {"typing": {"Optional"}, "x": {"y"}})
        assert merged == {"typing": {"List", "Optional"}, "x": {"y"}}

    def test_quote_literal_escapes(self) -> None:
        assert quote_literal('say "hi"\n') == '"say \\"hi\\"\\n"'


# ===========================================================================
# File helpers
# ===========================================================================


class TestFileHelpers:

    def test_atomic_write_creates_parents(self, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "a" / "b" / "file.py"
        written = atomic_write(target, "x = 1\n")
        assert written == len("x = 1\n")
        assert read_text(target) == "x = 1\n"

    def test_atomic_write_leaves_no_temp_files(self, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "file.py"
        atomic_write(target, "a\n")
        atomic_write(target, "b\n")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["file.py"]

    @pytest.mark.parametrize(
        "content, expected",
        [("", 0), ("a", 1), ("a\n", 1), ("a\nb", 2), ("a\nb\n", 2)],
    )
    def test_count_lines(self, content: str, expected: int) -> None:
        assert count_lines(content) == expected

    def test_timer_measures(self) -> None:
        with Timer("noop") as t:
            sum(range(1000))
        assert t.elapsed >= 0.0
        assert "noop" in repr(t)
