# File: schemasync/orchestrator.py
"""
SchemaSync - Sync Pipeline (Orchestrator)
===========================================

Connects every phase of a run::

    Introspect → [Dry-run report | Detect drift] → Entities → Repositories
               → Index modules → Routines → Validate → Done

with a transition from any step to ``ROLLING_BACK → FAILED`` when a
fatal error escapes.

The ``SyncOrchestrator`` is the only component that catches pipeline
errors:

    - Fatal errors (connection, introspection, write, rejected snapshot)
      are recorded in the report, the output directories are restored from
      the pre-run backup when one exists, and the run ends ``FAILED``.
    - A rollback failure is recorded as a secondary error; the original
      error stays first in ``SyncReport.errors``.
    - A compile failure of the generated tree, or entity mappers that do
      not configure, are warnings only.

File writes happen one table at a time, in snapshot order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, TypeVar

from schemasync.backup import OutputBackup
from schemasync.drift import DriftDetector, DriftReport
from schemasync.entities import EntityCodeGenerator, EntityGenerationResult
from schemasync.errors import (
    CodeValidationError,
    RollbackError,
    SchemaSyncError,
    SchemaValidationError,
)
from schemasync.exporters import GeneratedFileWriter
from schemasync.indexes import build_entity_index, build_repository_index
from schemasync.introspector import SchemaIntrospector
from schemasync.models import DatabaseConfig, RoutineKind, SchemaSnapshot, SyncOptions
from schemasync.repositories import RepositoryCodeGenerator, RepositoryGenerationResult
from schemasync.routines import RoutineExtractor
from schemasync.snapshots import SnapshotFileSource, save_snapshot
from schemasync.templates import TemplateGenerator
from schemasync.utils import Timer
from schemasync.validators import (
    ValidationResult,
    check_entity_mappers,
    compile_generated_tree,
    validate_snapshot,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync.orchestrator")

_T = TypeVar("_T")

INDEX_MODULE: str = "index.py"


class SnapshotSource(Protocol):
    def analyze(self) -> SchemaSnapshot: ...


class SyncState(str, Enum):
    IDLE = "idle"
    INTROSPECTING = "introspecting"
    DRY_RUN_REPORT = "dry_run_report"
    DETECTING_DRIFT = "detecting_drift"
    GENERATING_ENTITIES = "generating_entities"
    GENERATING_REPOSITORIES = "generating_repositories"
    UPDATING_INDICES = "updating_indices"
    EXTRACTING_ROUTINES = "extracting_routines"
    VALIDATING = "validating"
    DONE = "done"
    ROLLING_BACK = "rolling_back"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Sync report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class StepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class SyncReport:
    """
    Everything ``SyncOrchestrator.run()`` did, or would do in a dry run.
    """

    success: bool = False
    environment: str = ""
    output_directory: str = ""
    dry_run: bool = False
    state: SyncState = SyncState.IDLE
    state_history: List[SyncState] = field(default_factory=list)

    # Schema
    table_count: int = 0
    procedure_count: int = 0
    function_count: int = 0

    # Files
    files_created: int = 0
    files_updated: int = 0
    files_unchanged: int = 0
    total_lines: int = 0
    total_bytes: int = 0
    total_elapsed_seconds: float = 0.0

    # Sub-reports
    step_metrics: List[StepMetric] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    deprecated_tables: List[str] = field(default_factory=list)
    preserved_relations: Dict[str, List[str]] = field(default_factory=dict)
    skipped_repositories: Dict[str, str] = field(default_factory=dict)
    rolled_back: bool = False

    # Dry run
    planned_tables: List[str] = field(default_factory=list)
    planned_routines: List[str] = field(default_factory=list)
    planned_files: List[str] = field(default_factory=list)

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        title: str = "Dry-Run Plan" if self.dry_run else "Sync Report"
        lines.append(f"{'='*60}")
        lines.append(f"  SchemaSync — {title}")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}")
        lines.append(f"  Environment:      {self.environment}")
        lines.append(f"  Output:           {self.output_directory}")
        lines.append(f"  Final state:      {self.state.value}")
        lines.append(f"  Tables:           {self.table_count}")
        lines.append(f"  Procedures:       {self.procedure_count}")
        lines.append(f"  Functions:        {self.function_count}")
        if not self.dry_run:
            lines.append(
                f"  Files:            {self.files_created} created, "
                f"{self.files_updated} updated, {self.files_unchanged} unchanged"
            )
            lines.append(f"  Total lines:      {self.total_lines:,}")
            lines.append(f"  Total bytes:      {self.total_bytes:,}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        if self.dry_run and (self.planned_tables or self.planned_routines):
            lines.append(f"{'─'*60}")
            lines.append("  Tables:")
            lines.extend(f"    • {entry}" for entry in self.planned_tables)
            if self.planned_routines:
                lines.append("  Routines:")
                lines.extend(f"    • {entry}" for entry in self.planned_routines)
        if self.dry_run and self.planned_files:
            lines.append(f"{'─'*60}")
            lines.append(f"  Files that would be written ({len(self.planned_files)}):")
            lines.extend(f"    → {path}" for path in self.planned_files)

        if self.deprecated_tables:
            lines.append(f"{'─'*60}")
            lines.append(f"  Deprecated Tables ({len(self.deprecated_tables)}):")
            for table in self.deprecated_tables:
                lines.append(f"    ⊘ {table}")

        if self.preserved_relations:
            lines.append(f"{'─'*60}")
            lines.append("  Preserved Hand-Written Relations:")
            for table, names in self.preserved_relations.items():
                lines.append(f"    ↺ {table}: {', '.join(names)}")

        if self.skipped_repositories:
            lines.append(f"{'─'*60}")
            lines.append(f"  Skipped Repositories ({len(self.skipped_repositories)}):")
            for table, owner in self.skipped_repositories.items():
                lines.append(f"    ⊘ {table} (served by {owner})")

        if self.warnings:
            lines.append(f"{'─'*60}")
            lines.append(f"  Warnings ({len(self.warnings)}):")
            for warn in self.warnings:
                lines.append(f"    ⚠ {warn}")

        if self.errors:
            lines.append(f"{'─'*60}")
            lines.append(f"  Errors ({len(self.errors)}):")
            for err in self.errors:
                lines.append(f"    ✗ {err}")
            if self.rolled_back:
                lines.append("    ↺ output directories restored from backup")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# SyncOrchestrator
# ---------------------------------------------------------------------------


class SyncOrchestrator:
    """
    Drives one sync run.

    Usage::

        options = SyncOptions(environment="dev", output_base_dir=Path("database"))
        orchestrator = SyncOrchestrator(options, config=DatabaseConfig.from_env())
        report = orchestrator.run()
        print(report.summary())

    *source* replaces the snapshot source entirely (anything with an
    ``analyze()`` method).  Without it, ``options.snapshot_file`` selects
    a :class:`SnapshotFileSource`, otherwise a live
    :class:`SchemaIntrospector` over *config*.
    """

    def __init__(
        self,
        options: SyncOptions,
        source: Optional[SnapshotSource] = None,
        *,
        config: Optional[DatabaseConfig] = None,
        today: Optional[date] = None,
    ) -> None:
        self._options: SyncOptions = options
        self._source: SnapshotSource = source or self._default_source(options, config)
        self._today: Optional[date] = today
        self._state: SyncState = SyncState.IDLE
        self._report: SyncReport = SyncReport()

        logger.debug(
            "SyncOrchestrator initialised: env=%s, output=%s, dry_run=%s, backup=%s.",
            options.environment,
            options.output_base_dir,
            options.dry_run,
            options.backup,
        )

    @staticmethod
    def _default_source(
        options: SyncOptions, config: Optional[DatabaseConfig]
    ) -> SnapshotSource:
        if options.snapshot_file is not None:
            return SnapshotFileSource(options.snapshot_file, options.environment)
        return SchemaIntrospector(
            config or DatabaseConfig.from_env(),
            environment=options.environment,
            workers=options.introspection_workers,
        )

    @property
    def state(self) -> SyncState:
        return self._state

    def _transition(self, state: SyncState) -> None:
        logger.debug("State: %s → %s", self._state.value, state.value)
        self._state = state
        self._report.state = state
        self._report.state_history.append(state)

    def _step(
        self,
        state: SyncState,
        name: str,
        action: Callable[[], _T],
        describe: Callable[[_T], str] = lambda _: "",
    ) -> _T:
        """Run *action* in *state*, timing it into a ``StepMetric``."""
        self._transition(state)
        failure: Optional[Exception] = None
        with Timer(name) as t:
            try:
                value: _T = action()
            except Exception as exc:
                failure = exc
        if failure is not None:
            self._report.step_metrics.append(
                StepMetric(name, False, t.elapsed, type(failure).__name__)
            )
            raise failure
        self._report.step_metrics.append(StepMetric(name, True, t.elapsed, describe(value)))
        return value

    # -----------------------------------------------------------------
    # Public: run
    # -----------------------------------------------------------------

    def run(self) -> SyncReport:
        options: SyncOptions = self._options
        report: SyncReport = SyncReport(
            environment=options.environment,
            output_directory=str(options.output_base_dir),
            dry_run=options.dry_run,
        )
        self._report = report
        self._state = SyncState.IDLE
        report.state_history.append(SyncState.IDLE)

        backup: Optional[OutputBackup] = None
        with Timer("sync") as total:
            try:
                snapshot: SchemaSnapshot = self._step(
                    SyncState.INTROSPECTING,
                    "Introspect schema",
                    self._introspect,
                    lambda s: f"{len(s.tables)} tables, {len(s.routines)} routines",
                )
                report.table_count = len(snapshot.tables)
                report.procedure_count = len(snapshot.procedures)
                report.function_count = len(snapshot.functions)
                self._check_snapshot(snapshot)

                if options.dry_run:
                    self._step(SyncState.DRY_RUN_REPORT, "Plan output", lambda: self._plan(snapshot))
                    logger.info("Dry run: %d file(s) planned, nothing written.", len(report.planned_files))
                else:
                    if options.backup:
                        backup = OutputBackup(
                            [options.entities_dir, options.repositories_dir, options.routines_dir]
                        )
                        backup.create()
                    self._generate(snapshot)
                self._transition(SyncState.DONE)
                report.success = True
            except SchemaSyncError as exc:
                logger.error("Sync failed: %s", exc)
                self._fail(exc, backup)
            except Exception as exc:
                logger.exception("Unexpected error during sync.")
                self._fail(exc, backup)
            finally:
                if backup is not None:
                    backup.discard()

        report.total_elapsed_seconds = total.elapsed
        logger.info(
            "Sync %s in %.3fs.", "finished" if report.success else "failed", total.elapsed
        )
        return report

    # -----------------------------------------------------------------
    # Steps
    # -----------------------------------------------------------------

    def _introspect(self) -> SchemaSnapshot:
        snapshot: SchemaSnapshot = self._source.analyze()
        if self._options.save_snapshot is not None:
            if self._options.dry_run:
                logger.warning(
                    "Dry run: snapshot not saved to %s.", self._options.save_snapshot
                )
            else:
                save_snapshot(snapshot, self._options.save_snapshot)
        return snapshot

    def _check_snapshot(self, snapshot: SchemaSnapshot) -> None:
        result: ValidationResult = validate_snapshot(snapshot)
        self._report.warnings.extend(issue.message for issue in result.warnings)
        if result.has_errors:
            raise SchemaValidationError([issue.message for issue in result.errors])

    def _plan(self, snapshot: SchemaSnapshot) -> int:
        options: SyncOptions = self._options
        report: SyncReport = self._report
        report.planned_tables = [
            f"{t.name} ({len(t.columns)} columns)" for t in snapshot.tables
        ]
        report.planned_routines = [
            f"{RoutineKind(r.kind).value.lower()} {r.name} "
            f"({len(r.parameters)} parameters)"
            for r in snapshot.routines
        ]

        planned: List[Path] = []
        templates: TemplateGenerator = TemplateGenerator(options)
        writer: GeneratedFileWriter = GeneratedFileWriter()
        if not options.skip_entities:
            entities = EntityCodeGenerator(options, writer, templates)
            planned.extend(entities.planned_paths(snapshot))
            planned.append(options.entities_dir / INDEX_MODULE)
        if not options.skip_repositories:
            repositories = RepositoryCodeGenerator(options, writer, templates)
            planned.extend(repositories.planned_paths(snapshot))
            planned.append(options.repositories_dir / INDEX_MODULE)
        if not options.skip_procedures:
            planned.extend(RoutineExtractor(options, writer).planned_paths(snapshot))
        report.planned_files = [str(p) for p in planned]
        return len(planned)

    def _generate(self, snapshot: SchemaSnapshot) -> None:
        options: SyncOptions = self._options
        report: SyncReport = self._report
        writer: GeneratedFileWriter = GeneratedFileWriter()
        templates: TemplateGenerator = TemplateGenerator(options)

        detector: DriftDetector = DriftDetector(
            options.entities_dir, options.repositories_dir, today=self._today
        )
        drift: DriftReport = self._step(
            SyncState.DETECTING_DRIFT,
            "Detect drift",
            lambda: detector.apply(snapshot, writer),
            lambda d: f"{len(d.deleted_tables)} deleted, {len(d.newly_marked)} newly marked",
        )
        report.deprecated_tables = list(drift.deleted_tables)

        if not options.skip_entities:
            entities: EntityGenerationResult = self._step(
                SyncState.GENERATING_ENTITIES,
                "Generate entities",
                lambda: EntityCodeGenerator(options, writer, templates).generate(snapshot),
                lambda r: f"{len(r.written)} files",
            )
            report.preserved_relations = dict(entities.preserved)

        if not options.skip_repositories:
            repositories: RepositoryGenerationResult = self._step(
                SyncState.GENERATING_REPOSITORIES,
                "Generate repositories",
                lambda: RepositoryCodeGenerator(options, writer, templates).generate(snapshot),
                lambda r: f"{len(r.written)} files, {len(r.skipped)} skipped",
            )
            report.skipped_repositories = {
                table: path.name for table, path in repositories.skipped.items()
            }

        self._step(
            SyncState.UPDATING_INDICES,
            "Update index modules",
            lambda: self._write_indexes(writer),
            lambda n: f"{n} index module(s)",
        )

        if not options.skip_procedures:
            self._step(
                SyncState.EXTRACTING_ROUTINES,
                "Extract routines",
                lambda: RoutineExtractor(options, writer).extract(snapshot),
                lambda r: (
                    f"{len(r.routine_files)} routines, {len(r.repository_files)} procedure "
                    f"modules, {len(r.doc_files)} docs"
                ),
            )

        if options.validate_output:
            self._step(
                SyncState.VALIDATING,
                "Validate generated code",
                self._validate_output,
                lambda n: f"{n} file(s) checked",
            )

        counts: Dict[str, int] = writer.counts()
        report.files_created = counts["created"]
        report.files_updated = counts["updated"]
        report.files_unchanged = counts["unchanged"]
        report.total_lines = writer.total_lines
        report.total_bytes = writer.total_bytes

    def _write_indexes(self, writer: GeneratedFileWriter) -> int:
        written: int = 0
        entities_dir: Path = self._options.entities_dir
        repositories_dir: Path = self._options.repositories_dir
        if entities_dir.is_dir():
            writer.write(entities_dir / INDEX_MODULE, build_entity_index(entities_dir))
            written += 1
        if repositories_dir.is_dir():
            writer.write(
                repositories_dir / INDEX_MODULE, build_repository_index(repositories_dir)
            )
            written += 1
        return written

    def _validate_output(self) -> int:
        checked: int = 0
        try:
            checked = compile_generated_tree(
                [
                    self._options.entities_dir,
                    self._options.repositories_dir,
                    self._options.procedure_repositories_dir,
                ]
            )
        except CodeValidationError as exc:
            logger.warning("%s:", exc)
            for failure in exc.failures:
                logger.warning("  %s", failure)
            self._report.warnings.append(str(exc))
            self._report.warnings.extend(exc.failures)
        mappers: ValidationResult = check_entity_mappers(self._options.entities_dir)
        self._report.warnings.extend(issue.message for issue in mappers.warnings)
        return checked

    # -----------------------------------------------------------------
    # Failure handling
    # -----------------------------------------------------------------

    def _fail(self, exc: BaseException, backup: Optional[OutputBackup]) -> None:
        report: SyncReport = self._report
        report.errors.append(f"{type(exc).__name__}: {exc}")
        if backup is not None and backup.is_active:
            self._transition(SyncState.ROLLING_BACK)
            try:
                backup.restore()
                report.rolled_back = True
                logger.warning("Output directories restored from backup.")
            except RollbackError as rollback_exc:
                logger.error("Rollback failed: %s", rollback_exc)
                report.errors.append(f"RollbackError: {rollback_exc}")
        self._transition(SyncState.FAILED)
        report.success = False


__all__: List[str] = [
    "INDEX_MODULE",
    "SnapshotSource",
    "SyncState",
    "StepMetric",
    "SyncReport",
    "SyncOrchestrator",
]

logger.debug("schemasync.orchestrator loaded.")
