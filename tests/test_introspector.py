"""
tests/test_introspector.py
Tests for schemasync.introspector against an in-memory fake engine.

The fake engine answers each catalog statement from canned rows, so the
tests exercise row conversion, ordering, fan-out and error mapping
without a MySQL server.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import pytest
from sqlalchemy.exc import OperationalError

from schemasync.errors import DatabaseConnectionError, IntrospectionError
from schemasync.introspector import (
    COLUMNS_SQL,
    FOREIGN_KEYS_SQL,
    INDEXES_SQL,
    PARAMETERS_SQL,
    ROUTINES_SQL,
    TABLES_SQL,
    VERSION_SQL,
    SchemaIntrospector,
    column_from_row,
    index_from_row,
    parameter_from_row,
)
from schemasync.models import DatabaseConfig, ParameterMode, RoutineKind


# ---------------------------------------------------------------------------
# Fake engine
# ---------------------------------------------------------------------------


class _FakeResult:
    def __init__(self, rows: List[Dict[str, Any]]) -> None:
        self._rows = rows

    def mappings(self) -> "_FakeResult":
        return self

    def all(self) -> List[Dict[str, Any]]:
        return list(self._rows)


class _FakeConnection:
    def __init__(self, engine: "_FakeEngine") -> None:
        self._engine = engine
        self.closed = False

    def execute(self, statement: Any, params: Optional[Mapping[str, Any]] = None) -> _FakeResult:
        params = dict(params or {})
        self._engine.executed.append((statement, params))
        if statement is self._engine.failing_statement:
            raise OperationalError("SELECT ...", params, Exception("lost connection"))
        handler = self._engine.handlers[id(statement)]
        return _FakeResult(handler(params))

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "_FakeConnection":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class _FakeEngine:
    def __init__(
        self,
        handlers: List[Tuple[Any, Callable[[Dict[str, Any]], List[Dict[str, Any]]]]],
        *,
        refuse_connections: bool = False,
        failing_statement: Any = None,
    ) -> None:
        self.handlers = {id(stmt): fn for stmt, fn in handlers}
        self.refuse_connections = refuse_connections
        self.failing_statement = failing_statement
        self.executed: List[Any] = []
        self.connections: List[_FakeConnection] = []
        self.disposed = False

    def connect(self) -> _FakeConnection:
        if self.refuse_connections:
            raise OperationalError("connect", {}, Exception("Access denied"))
        conn = _FakeConnection(self)
        self.connections.append(conn)
        return conn

    def dispose(self) -> None:
        self.disposed = True


_COLUMNS: Dict[str, List[Dict[str, Any]]] = {
    "tb_board": [
        {
            "column_name": "board_id",
            "data_type": "INT",
            "column_type": "int unsigned",
            "is_nullable": "NO",
            "column_default": None,
            "column_key": "PRI",
            "extra": "auto_increment",
            "character_maximum_length": None,
            "numeric_precision": 10,
            "numeric_scale": 0,
            "column_comment": "",
        },
        {
            "column_name": "status",
            "data_type": "enum",
            "column_type": "enum('draft','published')",
            "is_nullable": "NO",
            "column_default": "draft",
            "column_key": "",
            "extra": "",
            "character_maximum_length": 9,
            "numeric_precision": None,
            "numeric_scale": None,
            "column_comment": b"Publication state",
        },
    ],
    "tb_comment": [
        {
            "column_name": "comment_id",
            "data_type": "int",
            "is_nullable": "NO",
            "column_key": "PRI",
            "extra": "auto_increment",
        },
        {
            "column_name": "board_id",
            "data_type": "int",
            "is_nullable": "NO",
            "column_key": "MUL",
            "extra": "",
        },
    ],
}

_INDEXES: Dict[str, List[Dict[str, Any]]] = {
    "tb_board": [
        {"index_name": "PRIMARY", "column_name": "board_id", "non_unique": 0, "seq_in_index": 1},
    ],
    "tb_comment": [
        {"index_name": "PRIMARY", "column_name": "comment_id", "non_unique": 0, "seq_in_index": 1},
        {"index_name": "fk_comment_board", "column_name": "board_id", "non_unique": 1, "seq_in_index": 1},
    ],
}

_FOREIGN_KEYS: Dict[str, List[Dict[str, Any]]] = {
    "tb_board": [],
    "tb_comment": [
        {
            "constraint_name": "fk_comment_board",
            "column_name": "board_id",
            "referenced_table_name": "tb_board",
            "referenced_column_name": "board_id",
            "update_rule": "CASCADE",
            "delete_rule": "CASCADE",
        }
    ],
}

_ROUTINES: Dict[str, List[Dict[str, Any]]] = {
    "PROCEDURE": [
        {
            "routine_name": "sp_GetBoard",
            "routine_type": "PROCEDURE",
            "definer": "app@%",
            "created": datetime(2024, 3, 1, 9, 30),
            "last_altered": "2024-03-02 11:00:00",
            "sql_mode": "STRICT_TRANS_TABLES",
            "routine_comment": "",
            "routine_definition": "SELECT * FROM tb_board WHERE board_id = p_id",
            "dtd_identifier": None,
        }
    ],
    "FUNCTION": [
        {
            "routine_name": "fn_Total",
            "routine_type": "FUNCTION",
            "definer": "app@%",
            "created": None,
            "last_altered": None,
            "routine_definition": "BEGIN RETURN 1; END",
            "dtd_identifier": "int",
        }
    ],
}

_PARAMETERS: Dict[str, List[Dict[str, Any]]] = {
    "sp_GetBoard": [
        {"parameter_name": "p_id", "parameter_mode": "IN", "data_type": "int"},
        {"parameter_name": "p_total", "parameter_mode": "OUT", "data_type": "int"},
    ],
    "fn_Total": [
        {"parameter_name": "p_board", "parameter_mode": None, "data_type": "int"},
    ],
}


def _handlers() -> List[Tuple[Any, Callable[[Dict[str, Any]], List[Dict[str, Any]]]]]:
    return [
        (VERSION_SQL, lambda p: [{"version": "8.0.36"}]),
        (TABLES_SQL, lambda p: [
            {"table_name": "tb_board", "table_comment": "Boards", "engine": "InnoDB",
             "table_collation": "utf8mb4_unicode_ci"},
            {"table_name": "tb_comment", "table_comment": "", "engine": "InnoDB",
             "table_collation": None},
        ]),
        (COLUMNS_SQL, lambda p: _COLUMNS[p["table"]]),
        (INDEXES_SQL, lambda p: _INDEXES[p["table"]]),
        (FOREIGN_KEYS_SQL, lambda p: _FOREIGN_KEYS[p["table"]]),
        (ROUTINES_SQL, lambda p: _ROUTINES[p["kind"]]),
        (PARAMETERS_SQL, lambda p: _PARAMETERS[p["routine"]]),
    ]


@pytest.fixture()
def config() -> DatabaseConfig:
    return DatabaseConfig(database="community")


# ===========================================================================
# Row helpers
# ===========================================================================


class TestRowConversion:

    def test_column_from_row(self) -> None:
        col = column_from_row(_COLUMNS["tb_board"][1])
        assert col.native_type == "enum"
        assert col.enum_values == ("draft", "published")
        assert col.nullable is False
        assert col.default_value == "draft"
        assert col.comment == "Publication state"

    def test_primary_key_and_auto_increment(self) -> None:
        col = column_from_row(_COLUMNS["tb_board"][0])
        assert col.is_primary_key
        assert col.is_auto_increment
        assert col.native_type == "int"

    def test_index_uniqueness(self) -> None:
        assert index_from_row(_INDEXES["tb_comment"][0]).is_primary
        assert not index_from_row(_INDEXES["tb_comment"][1]).is_unique

    def test_parameter_mode_defaults_to_in(self) -> None:
        assert parameter_from_row(_PARAMETERS["fn_Total"][0]).mode == ParameterMode.IN.value


# ===========================================================================
# SchemaIntrospector
# ===========================================================================


class TestSchemaIntrospector:

    def test_analyze_builds_snapshot(self, config: DatabaseConfig) -> None:
        engine = _FakeEngine(_handlers())
        snapshot = SchemaIntrospector(config, environment="qa", engine=engine).analyze()

        assert snapshot.table_names == ["tb_board", "tb_comment"]
        assert snapshot.database_meta.version == "8.0.36"
        assert snapshot.database_meta.database == "community"
        assert snapshot.database_meta.environment == "qa"
        assert snapshot.database_meta.table_count == 2

        comment = snapshot.table("tb_comment")
        assert comment is not None
        assert [c.name for c in comment.columns] == ["comment_id", "board_id"]
        assert comment.foreign_keys[0].referenced_table == "tb_board"
        assert comment.foreign_keys[0].on_delete_rule == "CASCADE"
        assert snapshot.table("tb_board").engine == "InnoDB"

    def test_routines_are_split_by_kind(self, config: DatabaseConfig) -> None:
        engine = _FakeEngine(_handlers())
        snapshot = SchemaIntrospector(config, engine=engine).analyze()

        assert [r.name for r in snapshot.procedures] == ["sp_GetBoard"]
        assert [r.name for r in snapshot.functions] == ["fn_Total"]

        proc = snapshot.procedures[0]
        assert RoutineKind(proc.kind) == RoutineKind.PROCEDURE
        assert proc.return_type is None
        assert proc.modified == datetime(2024, 3, 2, 11, 0)
        assert [p.name for p in proc.parameters] == ["p_id", "p_total"]
        assert ParameterMode(proc.parameters[1].mode) == ParameterMode.OUT

        func = snapshot.functions[0]
        assert func.return_type == "int"
        assert func.created is None

    def test_schema_parameter_is_bound(self, config: DatabaseConfig) -> None:
        engine = _FakeEngine(_handlers())
        SchemaIntrospector(config, engine=engine).analyze()
        tables_calls = [p for stmt, p in engine.executed if stmt is TABLES_SQL]
        assert tables_calls == [{"schema": "community"}]

    def test_injected_engine_is_not_disposed(self, config: DatabaseConfig) -> None:
        engine = _FakeEngine(_handlers())
        SchemaIntrospector(config, engine=engine).analyze()
        assert not engine.disposed
        assert all(conn.closed for conn in engine.connections)

    def test_parallel_reads_keep_catalog_order(self, config: DatabaseConfig) -> None:
        engine = _FakeEngine(_handlers())
        snapshot = SchemaIntrospector(config, engine=engine, workers=4).analyze()
        assert snapshot.table_names == ["tb_board", "tb_comment"]
        assert len(engine.connections) > 1

    def test_foreign_keys_keep_declaration_order(self, config: DatabaseConfig) -> None:
        order_by = FOREIGN_KEYS_SQL.text.split("ORDER BY", 1)[1]
        assert order_by.split() == ["kcu.ORDINAL_POSITION"]

        rows = [
            {
                "constraint_name": "zz_comment_board",
                "column_name": "board_id",
                "referenced_table_name": "tb_board",
                "referenced_column_name": "board_id",
                "update_rule": "CASCADE",
                "delete_rule": "CASCADE",
            },
            {
                "constraint_name": "aa_comment_origin",
                "column_name": "comment_id",
                "referenced_table_name": "tb_comment",
                "referenced_column_name": "comment_id",
                "update_rule": "RESTRICT",
                "delete_rule": "RESTRICT",
            },
        ]
        handlers = [
            (stmt, (lambda p: rows if p["table"] == "tb_comment" else []))
            if stmt is FOREIGN_KEYS_SQL
            else (stmt, fn)
            for stmt, fn in _handlers()
        ]
        snapshot = SchemaIntrospector(config, engine=_FakeEngine(handlers)).analyze()
        assert [fk.constraint_name for fk in snapshot.table("tb_comment").foreign_keys] == [
            "zz_comment_board",
            "aa_comment_origin",
        ]

    def test_connection_failure(self, config: DatabaseConfig) -> None:
        engine = _FakeEngine(_handlers(), refuse_connections=True)
        with pytest.raises(DatabaseConnectionError, match="Cannot connect"):
            SchemaIntrospector(config, engine=engine).analyze()

    def test_query_failure(self, config: DatabaseConfig) -> None:
        engine = _FakeEngine(_handlers(), failing_statement=COLUMNS_SQL)
        with pytest.raises(IntrospectionError, match="Catalog query failed"):
            SchemaIntrospector(config, engine=engine).analyze()
        assert all(conn.closed for conn in engine.connections)
