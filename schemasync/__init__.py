# File: schemasync/__init__.py
"""
SchemaSync — Database-Driven Data-Access Code Generator
=========================================================

Introspects a relational database and (re)generates SQLAlchemy 2.0
entities, session-backed repositories and stored-routine files.
Re-running is safe: unchanged output is not rewritten, hand-written
relations and repositories survive, and files of dropped tables are
marked deprecated instead of deleted.

Architecture overview::

    ┌──────────────┐     ┌──────────────────┐     ┌────────────────────┐
    │  CLI / Entry │────▶│ SyncOrchestrator │────▶│ SchemaIntrospector │
    │   (cli.py)   │     │ (orchestrator.py)│     │  (introspector.py) │
    └──────────────┘     └────────┬─────────┘     └────────────────────┘
                                  │
         ┌───────────┬────────────┼─────────────┬──────────────┐
         ▼           ▼            ▼             ▼              ▼
    ┌─────────┐ ┌──────────┐ ┌──────────────┐ ┌──────────┐ ┌────────────┐
    │  drift  │ │ entities │ │ repositories │ │ routines │ │ validators │
    └─────────┘ └────┬─────┘ └──────┬───────┘ └──────────┘ └────────────┘
                     ▼              ▼
               ┌───────────────────────────┐
               │ templates / merge / index │
               └───────────────────────────┘

Usage::

    # As a library
    from schemasync import SyncOptions, SyncOrchestrator, DatabaseConfig
    report = SyncOrchestrator(SyncOptions(), config=DatabaseConfig.from_env()).run()
    print(report.summary())

    # From the command line
    schemasync dev ./database -v

Public API:
    - SyncOrchestrator        — Pipeline driver
    - SchemaIntrospector      — Catalog reader
    - EntityCodeGenerator     — Entity modules with merge
    - RepositoryCodeGenerator — Repository modules with duplicate avoidance
    - RoutineExtractor        — Stored routine files and docs
    - SyncOptions / DatabaseConfig — Configuration models
"""

from __future__ import annotations

__version__: str = "1.0.0"
__license__: str = "MIT"

from schemasync.errors import (
    CodeValidationError,
    DatabaseConnectionError,
    IntrospectionError,
    MergeParseError,
    RollbackError,
    SchemaSyncError,
    SchemaValidationError,
    SnapshotFileError,
    WriteError,
)
from schemasync.models import (
    ColumnDescriptor,
    DatabaseConfig,
    DatabaseMeta,
    ForeignKeyDescriptor,
    IndexDescriptor,
    NamingConvention,
    ParameterDescriptor,
    ParameterMode,
    RoutineDescriptor,
    RoutineKind,
    SchemaSnapshot,
    SyncOptions,
    TableDescriptor,
)
from schemasync.utils import (
    Timer,
    entity_class_name,
    entity_file_stem,
    to_camel_case,
    to_kebab_case,
    to_pascal_case,
)
from schemasync.introspector import SchemaIntrospector
from schemasync.snapshots import SnapshotFileSource, load_snapshot_file, save_snapshot
from schemasync.templates import TemplateGenerator
from schemasync.entities import EntityCodeGenerator
from schemasync.repositories import RepositoryCodeGenerator, RepositoryRegistry
from schemasync.routines import RoutineExtractor
from schemasync.orchestrator import SyncOrchestrator, SyncReport, SyncState

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__license__",
    # Orchestrator
    "SyncOrchestrator",
    "SyncReport",
    "SyncState",
    # Components
    "SchemaIntrospector",
    "SnapshotFileSource",
    "TemplateGenerator",
    "EntityCodeGenerator",
    "RepositoryCodeGenerator",
    "RepositoryRegistry",
    "RoutineExtractor",
    "load_snapshot_file",
    "save_snapshot",
    # Models
    "ColumnDescriptor",
    "DatabaseConfig",
    "DatabaseMeta",
    "ForeignKeyDescriptor",
    "IndexDescriptor",
    "NamingConvention",
    "ParameterDescriptor",
    "ParameterMode",
    "RoutineDescriptor",
    "RoutineKind",
    "SchemaSnapshot",
    "SyncOptions",
    "TableDescriptor",
    # Errors
    "SchemaSyncError",
    "DatabaseConnectionError",
    "IntrospectionError",
    "SnapshotFileError",
    "SchemaValidationError",
    "MergeParseError",
    "WriteError",
    "CodeValidationError",
    "RollbackError",
    # Naming
    "Timer",
    "to_pascal_case",
    "to_camel_case",
    "to_kebab_case",
    "entity_class_name",
    "entity_file_stem",
]
