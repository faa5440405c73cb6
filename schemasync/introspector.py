# File: schemasync/introspector.py
"""
SchemaSync - Schema Introspector
==================================
Reads the database catalog (``INFORMATION_SCHEMA``) into an immutable
``SchemaSnapshot``.  The introspector is strictly read-only: it issues
``SELECT`` statements through a SQLAlchemy ``Engine`` and never relies on
an ORM model of the target database.

Workflow::

    1. Open one connection for the run (failure → DatabaseConnectionError).
    2. SELECT VERSION(), list base tables.
    3. Per table: columns, indexes, foreign keys.
    4. Per routine kind: routines, then parameters per routine.
    5. Assemble DatabaseMeta + SchemaSnapshot, release the connection.

Per-table and per-routine reads are independent.  With ``workers > 1``
they fan out over a ``ThreadPoolExecutor``, each worker checking its own
connection out of the engine pool; results are reassembled in catalog
order either way.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, TypeVar

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import ArgumentError, DBAPIError, NoSuchModuleError, SQLAlchemyError
from sqlalchemy.sql.elements import TextClause

from schemasync.errors import DatabaseConnectionError, IntrospectionError
from schemasync.models import (
    ColumnDescriptor,
    DatabaseConfig,
    DatabaseMeta,
    ForeignKeyDescriptor,
    IndexDescriptor,
    ParameterDescriptor,
    ParameterMode,
    RoutineDescriptor,
    RoutineKind,
    SchemaSnapshot,
    TableDescriptor,
)
from schemasync.type_mapping import parse_enum_values
from schemasync.utils import Timer

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync.introspector")

_T = TypeVar("_T")

# ---------------------------------------------------------------------------
# Catalog queries
# ---------------------------------------------------------------------------

VERSION_SQL: TextClause = text("SELECT VERSION() AS version")

TABLES_SQL: TextClause = text(
    """
    SELECT TABLE_NAME AS table_name,
           TABLE_COMMENT AS table_comment,
           ENGINE AS engine,
           TABLE_COLLATION AS table_collation
    FROM INFORMATION_SCHEMA.TABLES
    WHERE TABLE_SCHEMA = :schema
      AND TABLE_TYPE = 'BASE TABLE'
    ORDER BY TABLE_NAME
    """
)

COLUMNS_SQL: TextClause = text(
    """
    SELECT COLUMN_NAME AS column_name,
           DATA_TYPE AS data_type,
           COLUMN_TYPE AS column_type,
           IS_NULLABLE AS is_nullable,
           COLUMN_DEFAULT AS column_default,
           COLUMN_KEY AS column_key,
           EXTRA AS extra,
           CHARACTER_MAXIMUM_LENGTH AS character_maximum_length,
           NUMERIC_PRECISION AS numeric_precision,
           NUMERIC_SCALE AS numeric_scale,
           COLUMN_COMMENT AS column_comment
    FROM INFORMATION_SCHEMA.COLUMNS
    WHERE TABLE_SCHEMA = :schema
      AND TABLE_NAME = :table
    ORDER BY ORDINAL_POSITION
    """
)

INDEXES_SQL: TextClause = text(
    """
    SELECT INDEX_NAME AS index_name,
           COLUMN_NAME AS column_name,
           NON_UNIQUE AS non_unique,
           SEQ_IN_INDEX AS seq_in_index
    FROM INFORMATION_SCHEMA.STATISTICS
    WHERE TABLE_SCHEMA = :schema
      AND TABLE_NAME = :table
    ORDER BY INDEX_NAME, SEQ_IN_INDEX
    """
)

FOREIGN_KEYS_SQL: TextClause = text(
    """
    SELECT kcu.CONSTRAINT_NAME AS constraint_name,
           kcu.COLUMN_NAME AS column_name,
           kcu.REFERENCED_TABLE_NAME AS referenced_table_name,
           kcu.REFERENCED_COLUMN_NAME AS referenced_column_name,
           rc.UPDATE_RULE AS update_rule,
           rc.DELETE_RULE AS delete_rule
    FROM INFORMATION_SCHEMA.KEY_COLUMN_USAGE kcu
    JOIN INFORMATION_SCHEMA.REFERENTIAL_CONSTRAINTS rc
      ON kcu.CONSTRAINT_NAME = rc.CONSTRAINT_NAME
     AND kcu.TABLE_SCHEMA = rc.CONSTRAINT_SCHEMA
    WHERE kcu.TABLE_SCHEMA = :schema
      AND kcu.TABLE_NAME = :table
      AND kcu.REFERENCED_TABLE_NAME IS NOT NULL
    ORDER BY kcu.ORDINAL_POSITION
    """
)

ROUTINES_SQL: TextClause = text(
    """
    SELECT ROUTINE_NAME AS routine_name,
           ROUTINE_TYPE AS routine_type,
           DEFINER AS definer,
           CREATED AS created,
           LAST_ALTERED AS last_altered,
           SQL_MODE AS sql_mode,
           ROUTINE_COMMENT AS routine_comment,
           ROUTINE_DEFINITION AS routine_definition,
           DTD_IDENTIFIER AS dtd_identifier
    FROM INFORMATION_SCHEMA.ROUTINES
    WHERE ROUTINE_SCHEMA = :schema
      AND ROUTINE_TYPE = :kind
    ORDER BY ROUTINE_NAME
    """
)

PARAMETERS_SQL: TextClause = text(
    """
    SELECT PARAMETER_NAME AS parameter_name,
           PARAMETER_MODE AS parameter_mode,
           DATA_TYPE AS data_type,
           CHARACTER_MAXIMUM_LENGTH AS character_maximum_length
    FROM INFORMATION_SCHEMA.PARAMETERS
    WHERE SPECIFIC_SCHEMA = :schema
      AND SPECIFIC_NAME = :routine
      AND PARAMETER_NAME IS NOT NULL
    ORDER BY ORDINAL_POSITION
    """
)


# ---------------------------------------------------------------------------
# Row conversion helpers
# ---------------------------------------------------------------------------


def _as_text(value: Any) -> str:
    """Catalog columns may come back as bytes depending on driver/server."""
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _as_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(_as_text(value))


def column_from_row(row: Mapping[str, Any]) -> ColumnDescriptor:
    native_type: str = _as_text(row["data_type"]).lower()
    column_type: str = _as_text(row.get("column_type"))
    extra: str = _as_text(row.get("extra"))
    default: Any = row.get("column_default")
    return ColumnDescriptor(
        name=_as_text(row["column_name"]),
        native_type=native_type,
        column_type=column_type,
        nullable=_as_text(row.get("is_nullable")).upper() == "YES",
        default_value=None if default is None else _as_text(default),
        is_primary_key=_as_text(row.get("column_key")) == "PRI",
        is_auto_increment="auto_increment" in extra.lower(),
        max_length=_as_int(row.get("character_maximum_length")),
        numeric_precision=_as_int(row.get("numeric_precision")),
        numeric_scale=_as_int(row.get("numeric_scale")),
        comment=_as_text(row.get("column_comment")),
        extra=extra,
        enum_values=parse_enum_values(column_type) if native_type == "enum" else None,
    )


def index_from_row(row: Mapping[str, Any]) -> IndexDescriptor:
    name: str = _as_text(row["index_name"])
    return IndexDescriptor(
        name=name,
        column=_as_text(row["column_name"]),
        is_unique=int(row.get("non_unique") or 0) == 0,
        is_primary=name == "PRIMARY",
        seq=_as_int(row.get("seq_in_index")) or 1,
    )


def foreign_key_from_row(row: Mapping[str, Any]) -> ForeignKeyDescriptor:
    return ForeignKeyDescriptor(
        constraint_name=_as_text(row["constraint_name"]),
        column=_as_text(row["column_name"]),
        referenced_table=_as_text(row["referenced_table_name"]),
        referenced_column=_as_text(row["referenced_column_name"]),
        on_update_rule=_as_text(row.get("update_rule")) or "RESTRICT",
        on_delete_rule=_as_text(row.get("delete_rule")) or "RESTRICT",
    )


def parameter_from_row(row: Mapping[str, Any]) -> ParameterDescriptor:
    mode: str = _as_text(row.get("parameter_mode")).upper() or ParameterMode.IN.value
    return ParameterDescriptor(
        name=_as_text(row["parameter_name"]),
        mode=ParameterMode(mode),
        native_type=_as_text(row["data_type"]).lower(),
        max_length=_as_int(row.get("character_maximum_length")),
    )


def routine_from_row(
    row: Mapping[str, Any],
    kind: RoutineKind,
    parameters: Sequence[ParameterDescriptor],
) -> RoutineDescriptor:
    return_type: Optional[str] = None
    if kind == RoutineKind.FUNCTION:
        return_type = _as_text(row.get("dtd_identifier")) or None
    return RoutineDescriptor(
        name=_as_text(row["routine_name"]),
        kind=kind,
        definer=_as_text(row.get("definer")),
        created=_as_datetime(row.get("created")),
        modified=_as_datetime(row.get("last_altered")),
        sql_mode=_as_text(row.get("sql_mode")),
        comment=_as_text(row.get("routine_comment")),
        body=_as_text(row.get("routine_definition")),
        parameters=tuple(parameters),
        return_type=return_type,
    )


# ---------------------------------------------------------------------------
# SchemaIntrospector
# ---------------------------------------------------------------------------


class SchemaIntrospector:
    """
    Builds a ``SchemaSnapshot`` from a live database.

    Usage::

        introspector = SchemaIntrospector(DatabaseConfig.from_env(), environment="dev")
        snapshot = introspector.analyze()

    An existing ``Engine`` can be injected; it is then left undisposed.
    """

    def __init__(
        self,
        config: DatabaseConfig,
        *,
        environment: str = "dev",
        engine: Optional[Engine] = None,
        workers: int = 1,
    ) -> None:
        self._config: DatabaseConfig = config
        self._environment: str = environment
        self._engine: Optional[Engine] = engine
        self._workers: int = max(1, workers)

    @property
    def schema_name(self) -> str:
        return self._config.database

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def analyze(self) -> SchemaSnapshot:
        """
        Read the full catalog once.

        Raises:
            DatabaseConnectionError: the database cannot be reached.
            IntrospectionError: a catalog query failed.
        """
        owns_engine: bool = self._engine is None
        engine: Engine = self._engine or self._create_engine()
        try:
            connection: Connection = self._connect(engine)
            try:
                with Timer("introspection") as t:
                    snapshot: SchemaSnapshot = self._read_snapshot(engine, connection)
            finally:
                connection.close()
        finally:
            if owns_engine:
                engine.dispose()

        logger.info(
            "Introspected %s: %d table(s), %d procedure(s), %d function(s) in %.3fs.",
            self._config.describe(),
            len(snapshot.tables),
            len(snapshot.procedures),
            len(snapshot.functions),
            t.elapsed,
        )
        return snapshot

    # -----------------------------------------------------------------
    # Connection handling
    # -----------------------------------------------------------------

    def _create_engine(self) -> Engine:
        try:
            return create_engine(self._config.url(), pool_pre_ping=True)
        except (NoSuchModuleError, ArgumentError, ImportError) as exc:
            raise DatabaseConnectionError(
                f"Cannot create engine for driver '{self._config.driver}': {exc}"
            ) from exc

    def _connect(self, engine: Engine) -> Connection:
        try:
            return engine.connect()
        except (DBAPIError, SQLAlchemyError, OSError) as exc:
            raise DatabaseConnectionError(
                f"Cannot connect to {self._config.describe()}: {exc}"
            ) from exc

    def _fetch(
        self, connection: Connection, statement: TextClause, **params: Any
    ) -> List[Mapping[str, Any]]:
        try:
            result = connection.execute(statement, params)
            return list(result.mappings().all())
        except SQLAlchemyError as exc:
            raise IntrospectionError(f"Catalog query failed ({params}): {exc}") from exc

    def _fan_out(
        self,
        engine: Engine,
        connection: Connection,
        rows: Sequence[Mapping[str, Any]],
        worker: Callable[[Connection, Mapping[str, Any]], _T],
    ) -> List[_T]:
        """Apply *worker* to every row, preserving row order."""
        if self._workers <= 1 or len(rows) <= 1:
            return [worker(connection, row) for row in rows]

        def _task(row: Mapping[str, Any]) -> _T:
            with self._connect(engine) as own_connection:
                return worker(own_connection, row)

        with ThreadPoolExecutor(
            max_workers=self._workers, thread_name_prefix="schemasync-introspect"
        ) as pool:
            return list(pool.map(_task, rows))

    # -----------------------------------------------------------------
    # Snapshot assembly
    # -----------------------------------------------------------------

    def _read_snapshot(self, engine: Engine, connection: Connection) -> SchemaSnapshot:
        version_rows = self._fetch(connection, VERSION_SQL)
        version: str = _as_text(version_rows[0]["version"]) if version_rows else ""

        table_rows = self._fetch(connection, TABLES_SQL, schema=self.schema_name)
        logger.debug("Found %d base table(s) in '%s'.", len(table_rows), self.schema_name)
        tables: List[TableDescriptor] = self._fan_out(
            engine, connection, table_rows, self._describe_table
        )

        procedures: List[RoutineDescriptor] = self._read_routines(
            engine, connection, RoutineKind.PROCEDURE
        )
        functions: List[RoutineDescriptor] = self._read_routines(
            engine, connection, RoutineKind.FUNCTION
        )

        meta: DatabaseMeta = DatabaseMeta(
            version=version,
            database=self.schema_name,
            environment=self._environment,
            table_count=len(tables),
            procedure_count=len(procedures),
            function_count=len(functions),
            analyzed_at=datetime.now(),
        )
        try:
            return SchemaSnapshot(
                database_meta=meta,
                tables=tuple(tables),
                procedures=tuple(procedures),
                functions=tuple(functions),
            )
        except ValueError as exc:
            raise IntrospectionError(f"Catalog produced an inconsistent snapshot: {exc}") from exc

    def _describe_table(
        self, connection: Connection, row: Mapping[str, Any]
    ) -> TableDescriptor:
        name: str = _as_text(row["table_name"])
        params: Dict[str, str] = {"schema": self.schema_name, "table": name}
        columns = [column_from_row(r) for r in self._fetch(connection, COLUMNS_SQL, **params)]
        indexes = [index_from_row(r) for r in self._fetch(connection, INDEXES_SQL, **params)]
        foreign_keys = [
            foreign_key_from_row(r) for r in self._fetch(connection, FOREIGN_KEYS_SQL, **params)
        ]
        logger.debug(
            "Table %s: %d column(s), %d index row(s), %d foreign key(s).",
            name,
            len(columns),
            len(indexes),
            len(foreign_keys),
        )
        try:
            return TableDescriptor(
                name=name,
                comment=_as_text(row.get("table_comment")),
                engine=_as_text(row.get("engine")) or None,
                collation=_as_text(row.get("table_collation")) or None,
                columns=tuple(columns),
                indexes=tuple(indexes),
                foreign_keys=tuple(foreign_keys),
            )
        except ValueError as exc:
            raise IntrospectionError(f"Table '{name}' is inconsistent: {exc}") from exc

    def _read_routines(
        self, engine: Engine, connection: Connection, kind: RoutineKind
    ) -> List[RoutineDescriptor]:
        rows = self._fetch(connection, ROUTINES_SQL, schema=self.schema_name, kind=kind.value)

        def _describe(conn: Connection, row: Mapping[str, Any]) -> RoutineDescriptor:
            parameters = [
                parameter_from_row(r)
                for r in self._fetch(
                    conn,
                    PARAMETERS_SQL,
                    schema=self.schema_name,
                    routine=_as_text(row["routine_name"]),
                )
            ]
            return routine_from_row(row, kind, parameters)

        routines: List[RoutineDescriptor] = self._fan_out(engine, connection, rows, _describe)
        logger.debug("Found %d %s routine(s).", len(routines), kind.value.lower())
        return routines


__all__: List[str] = [
    "VERSION_SQL",
    "TABLES_SQL",
    "COLUMNS_SQL",
    "INDEXES_SQL",
    "FOREIGN_KEYS_SQL",
    "ROUTINES_SQL",
    "PARAMETERS_SQL",
    "column_from_row",
    "index_from_row",
    "foreign_key_from_row",
    "parameter_from_row",
    "routine_from_row",
    "SchemaIntrospector",
]

logger.debug("schemasync.introspector loaded.")
