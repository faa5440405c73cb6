# File: schemasync/models.py
"""
SchemaSync - Core Data Models
===============================
Pydantic V2 models for the schema snapshot produced by the introspector
and the configuration values consumed by the orchestrator.

The snapshot models are frozen: a ``SchemaSnapshot`` is built once per
run and handed read-only to every generator.  Sequences are tuples for
the same reason.  Derived helpers are plain properties so that a snapshot
dumped to JSON can be loaded back without extra keys.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    computed_field,
    field_validator,
    model_validator,
)
from sqlalchemy.engine import URL

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync.models")

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RoutineKind(str, Enum):
    """Stored routine flavours."""

    PROCEDURE = "PROCEDURE"
    FUNCTION = "FUNCTION"


class ParameterMode(str, Enum):
    """Routine parameter direction."""

    IN = "IN"
    OUT = "OUT"
    INOUT = "INOUT"


class NamingConvention(str, Enum):
    """Naming style for generated entity attributes."""

    SNAKE_CASE = "snake_case"
    CAMEL_CASE = "camelCase"


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SNAPSHOT_CONFIG: ConfigDict = ConfigDict(
    frozen=True,
    populate_by_name=True,
    use_enum_values=True,
    extra="forbid",
)

_OPTIONS_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Snapshot primitives
# ---------------------------------------------------------------------------


class ColumnDescriptor(BaseModel):
    """One column, in catalog ordinal order."""

    model_config = _SNAPSHOT_CONFIG

    name: str = Field(..., min_length=1, description="Column name.")
    native_type: str = Field(
        ..., min_length=1, description="Catalog data type, e.g. 'varchar'."
    )
    column_type: str = Field(
        default="", description="Full catalog type, e.g. \"enum('a','b')\"."
    )
    nullable: bool = Field(default=True)
    default_value: Optional[str] = Field(default=None)
    is_primary_key: bool = Field(default=False)
    is_auto_increment: bool = Field(default=False)
    max_length: Optional[int] = Field(default=None, ge=0)
    numeric_precision: Optional[int] = Field(default=None, ge=0)
    numeric_scale: Optional[int] = Field(default=None, ge=0)
    comment: str = Field(default="")
    extra: str = Field(default="", description="Catalog EXTRA flags.")
    enum_values: Optional[Tuple[str, ...]] = Field(default=None)

    @field_validator("native_type")
    @classmethod
    def _lower_native_type(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def updates_on_write(self) -> bool:
        """True for ``ON UPDATE CURRENT_TIMESTAMP`` style columns."""
        return "on update" in self.extra.lower()


class IndexDescriptor(BaseModel):
    """One (index, column) pair; multi-column indexes appear once per column."""

    model_config = _SNAPSHOT_CONFIG

    name: str = Field(..., min_length=1)
    column: str = Field(..., min_length=1)
    is_unique: bool = Field(default=False)
    is_primary: bool = Field(default=False)
    seq: int = Field(default=1, ge=1, description="Position inside the index.")


class ForeignKeyDescriptor(BaseModel):
    """A single-column foreign key."""

    model_config = _SNAPSHOT_CONFIG

    constraint_name: str = Field(..., min_length=1)
    column: str = Field(..., min_length=1)
    referenced_table: str = Field(..., min_length=1)
    referenced_column: str = Field(..., min_length=1)
    on_update_rule: str = Field(default="RESTRICT")
    on_delete_rule: str = Field(default="RESTRICT")


class TableDescriptor(BaseModel):
    """Structured snapshot of one table."""

    model_config = _SNAPSHOT_CONFIG

    name: str = Field(..., min_length=1)
    comment: str = Field(default="")
    engine: Optional[str] = Field(default=None)
    collation: Optional[str] = Field(default=None)
    columns: Tuple[ColumnDescriptor, ...] = Field(default_factory=tuple)
    indexes: Tuple[IndexDescriptor, ...] = Field(default_factory=tuple)
    foreign_keys: Tuple[ForeignKeyDescriptor, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def _check_references(self) -> "TableDescriptor":
        names: List[str] = [c.name for c in self.columns]
        if len(names) != len(set(names)):
            raise ValueError(f"Table '{self.name}' has duplicate column names.")
        known = set(names)
        for fk in self.foreign_keys:
            if fk.column not in known:
                raise ValueError(
                    f"Foreign key '{fk.constraint_name}' on '{self.name}' "
                    f"references unknown column '{fk.column}'."
                )
        return self

    @property
    def primary_key_columns(self) -> List[ColumnDescriptor]:
        return [c for c in self.columns if c.is_primary_key]

    @property
    def primary_key(self) -> Optional[ColumnDescriptor]:
        """First primary-key column; drives identity operations."""
        pks = self.primary_key_columns
        return pks[0] if pks else None

    def column(self, name: str) -> Optional[ColumnDescriptor]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def grouped_indexes(self) -> List[Tuple[str, bool, List[str]]]:
        """
        Non-primary indexes as ``(name, unique, columns)`` in declared order.

        Columns inside an index are ordered by their position in it.
        """
        order: List[str] = []
        members: Dict[str, List[IndexDescriptor]] = {}
        for idx in self.indexes:
            if idx.is_primary:
                continue
            if idx.name not in members:
                order.append(idx.name)
                members[idx.name] = []
            members[idx.name].append(idx)
        result: List[Tuple[str, bool, List[str]]] = []
        for name in order:
            parts = sorted(members[name], key=lambda i: i.seq)
            result.append((name, parts[0].is_unique, [p.column for p in parts]))
        return result


class ParameterDescriptor(BaseModel):
    """A stored-routine parameter."""

    model_config = _SNAPSHOT_CONFIG

    name: str = Field(..., min_length=1)
    mode: ParameterMode = Field(default=ParameterMode.IN)
    native_type: str = Field(..., min_length=1)
    max_length: Optional[int] = Field(default=None, ge=0)

    @property
    def type_signature(self) -> str:
        """``VARCHAR(255)`` / ``INT`` as written in a routine signature."""
        base: str = self.native_type.upper()
        if self.max_length:
            return f"{base}({self.max_length})"
        return base


class RoutineDescriptor(BaseModel):
    """A stored procedure or function."""

    model_config = _SNAPSHOT_CONFIG

    name: str = Field(..., min_length=1)
    kind: RoutineKind = Field(...)
    definer: str = Field(default="")
    created: Optional[datetime] = Field(default=None)
    modified: Optional[datetime] = Field(default=None)
    sql_mode: str = Field(default="")
    comment: str = Field(default="")
    body: str = Field(default="")
    parameters: Tuple[ParameterDescriptor, ...] = Field(default_factory=tuple)
    return_type: Optional[str] = Field(
        default=None, description="Functions only."
    )

    @property
    def is_function(self) -> bool:
        return self.kind == RoutineKind.FUNCTION


class DatabaseMeta(BaseModel):
    """Where and when a snapshot was taken."""

    model_config = _SNAPSHOT_CONFIG

    version: str = Field(default="")
    database: str = Field(default="")
    environment: str = Field(default="dev")
    table_count: int = Field(default=0, ge=0)
    procedure_count: int = Field(default=0, ge=0)
    function_count: int = Field(default=0, ge=0)
    analyzed_at: Optional[datetime] = Field(default=None)


class SchemaSnapshot(BaseModel):
    """
    Immutable result of one introspection pass.

    Consumed read-only by every generator in a run and discarded after.
    """

    model_config = _SNAPSHOT_CONFIG

    database_meta: DatabaseMeta = Field(default_factory=DatabaseMeta)
    tables: Tuple[TableDescriptor, ...] = Field(default_factory=tuple)
    procedures: Tuple[RoutineDescriptor, ...] = Field(default_factory=tuple)
    functions: Tuple[RoutineDescriptor, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def _unique_table_names(self) -> "SchemaSnapshot":
        names: List[str] = [t.name for t in self.tables]
        if len(names) != len(set(names)):
            dupes = sorted({n for n in names if names.count(n) > 1})
            raise ValueError(f"Duplicate table names in snapshot: {dupes}")
        return self

    @property
    def table_names(self) -> List[str]:
        return [t.name for t in self.tables]

    def table(self, name: str) -> Optional[TableDescriptor]:
        for tbl in self.tables:
            if tbl.name == name:
                return tbl
        return None

    def referencing_foreign_keys(
        self, table_name: str
    ) -> List[Tuple[TableDescriptor, ForeignKeyDescriptor]]:
        """Foreign keys of *other* tables pointing at *table_name*, in snapshot order."""
        result: List[Tuple[TableDescriptor, ForeignKeyDescriptor]] = []
        for tbl in self.tables:
            if tbl.name == table_name:
                continue
            for fk in tbl.foreign_keys:
                if fk.referenced_table == table_name:
                    result.append((tbl, fk))
        return result

    @property
    def routines(self) -> List[RoutineDescriptor]:
        return list(self.procedures) + list(self.functions)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class DatabaseConfig(BaseModel):
    """Connection parameters for the catalog reader."""

    model_config = _OPTIONS_CONFIG

    host: str = Field(default="localhost")
    port: int = Field(default=3306, ge=1, le=65535)
    user: str = Field(default="root")
    password: SecretStr = Field(default=SecretStr(""))
    database: str = Field(default="test", min_length=1)
    driver: str = Field(
        default="mysql+pymysql", description="SQLAlchemy dialect+driver."
    )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DatabaseConfig":
        """Build from ``DB_HOST``/``DB_PORT``/``DB_USER``/``DB_PASSWORD``/``DB_NAME``."""
        env: Mapping[str, str] = os.environ if environ is None else environ
        return cls(
            host=env.get("DB_HOST", "localhost"),
            port=int(env.get("DB_PORT", "3306")),
            user=env.get("DB_USER", "root"),
            password=SecretStr(env.get("DB_PASSWORD", "")),
            database=env.get("DB_NAME", "test"),
            driver=env.get("DB_DRIVER", "mysql+pymysql"),
        )

    def url(self) -> URL:
        return URL.create(
            self.driver,
            username=self.user,
            password=self.password.get_secret_value() or None,
            host=self.host,
            port=self.port,
            database=self.database,
        )

    def describe(self) -> str:
        """Connection target without credentials, for logs."""
        return f"{self.user}@{self.host}:{self.port}/{self.database}"


class SyncOptions(BaseModel):
    """
    Everything one sync run needs besides the database.

    Built once by the CLI (or a caller) and passed to the orchestrator.
    """

    model_config = _OPTIONS_CONFIG

    environment: str = Field(default="dev", min_length=1)
    output_base_dir: Path = Field(default=Path("database"))

    # -- Pipeline switches --------------------------------------------------
    backup: bool = Field(default=True, description="Snapshot outputs for rollback.")
    overwrite: bool = Field(default=False, description="Skip merging with existing files.")
    skip_entities: bool = Field(default=False)
    skip_repositories: bool = Field(default=False)
    skip_procedures: bool = Field(default=False)
    generate_comments: bool = Field(default=True)
    generate_relations: bool = Field(default=True)
    dry_run: bool = Field(default=False)
    validate_output: bool = Field(default=True)

    # -- Code style ---------------------------------------------------------
    naming_convention: NamingConvention = Field(default=NamingConvention.SNAKE_CASE)
    table_prefix: str = Field(
        default="tb_", description="Prefix tried when matching repository file names."
    )
    generate_basic_methods: bool = Field(default=True)
    generate_custom_methods: bool = Field(default=True)

    # -- Routines -----------------------------------------------------------
    separate_routines_by_type: bool = Field(default=True)
    generate_documentation: bool = Field(default=True)
    generate_procedure_repositories: bool = Field(
        default=False, description="Write call wrappers for stored procedures, grouped by domain."
    )

    # -- Introspection ------------------------------------------------------
    introspection_workers: int = Field(default=1, ge=1, le=32)
    snapshot_file: Optional[Path] = Field(
        default=None, description="Load the snapshot from JSON/YAML instead of the DB."
    )
    save_snapshot: Optional[Path] = Field(
        default=None, description="Write the introspected snapshot as JSON."
    )

    @computed_field  # type: ignore[misc]
    @property
    def entities_dir(self) -> Path:
        return self.output_base_dir / "entities"

    @computed_field  # type: ignore[misc]
    @property
    def repositories_dir(self) -> Path:
        return self.output_base_dir / "repositories"

    @computed_field  # type: ignore[misc]
    @property
    def routines_dir(self) -> Path:
        return self.output_base_dir / "procedures"

    @computed_field  # type: ignore[misc]
    @property
    def procedure_repositories_dir(self) -> Path:
        return self.routines_dir / "repositories"


__all__: List[str] = [
    "RoutineKind",
    "ParameterMode",
    "NamingConvention",
    "ColumnDescriptor",
    "IndexDescriptor",
    "ForeignKeyDescriptor",
    "TableDescriptor",
    "ParameterDescriptor",
    "RoutineDescriptor",
    "DatabaseMeta",
    "SchemaSnapshot",
    "DatabaseConfig",
    "SyncOptions",
]

logger.debug("schemasync.models loaded.")
