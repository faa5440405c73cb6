"""
tests/test_drift.py
Tests for deleted-table detection, index modules, output backup,
snapshot files and the write-if-changed writer.
"""

from __future__ import annotations

import json
import pathlib
from typing import Any, Dict

import pytest

from schemasync.backup import OutputBackup
from schemasync.drift import DriftDetector
from schemasync.errors import RollbackError, SnapshotFileError
from schemasync.exporters import GeneratedFileWriter, WriteOutcome
from schemasync.indexes import (
    build_entity_index,
    build_repository_index,
    class_names,
    declared_table_name,
    scan_directory,
)
from schemasync.models import SchemaSnapshot, SyncOptions
from schemasync.snapshots import (
    SnapshotFileSource,
    load_snapshot_file,
    save_snapshot,
    snapshot_summary,
)
from schemasync.templates import (
    DEPRECATION_PREFIX,
    GENERATED_HEADER,
    PRESERVED_SECTION,
    RELATIONS_SECTION,
)


def _entity(table_name: str, class_name: str, *, generated: bool = True) -> str:
    header = f"{GENERATED_HEADER}\n" if generated else ""
    return (
        f"{header}from .base import Base\n\n\n"
        f"class {class_name}(Base):\n"
        f'    __tablename__ = "{table_name}"\n'
    )


def _write(path: pathlib.Path, content: str) -> pathlib.Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


# ===========================================================================
# DriftDetector
# ===========================================================================


class TestDriftDetector:

    @pytest.fixture()
    def detector(self, options: SyncOptions, today) -> DriftDetector:
        return DriftDetector(options.entities_dir, options.repositories_dir, today=today)

    def test_no_output_yet(self, detector: DriftDetector, example_snapshot: SchemaSnapshot) -> None:
        report = detector.detect(example_snapshot)
        assert report.known_tables == {}
        assert report.deleted_tables == []

    def test_detects_deleted_generated_table(
        self, options: SyncOptions, detector: DriftDetector, example_snapshot: SchemaSnapshot
    ) -> None:
        _write(options.entities_dir / "tb-board.entity.py", _entity("tb_board", "TbBoardEntity"))
        _write(options.entities_dir / "tb-tag.entity.py", _entity("tb_tag", "TbTagEntity"))
        report = detector.detect(example_snapshot)
        assert set(report.known_tables) == {"tb_board", "tb_tag"}
        assert report.deleted_tables == ["tb_tag"]

    def test_hand_written_entity_is_not_tracked(
        self, options: SyncOptions, detector: DriftDetector, example_snapshot: SchemaSnapshot
    ) -> None:
        _write(
            options.entities_dir / "audit.entity.py",
            _entity("tb_audit", "AuditEntity", generated=False),
        )
        assert detector.detect(example_snapshot).deleted_tables == []

    def test_apply_marks_entity_and_repository(
        self,
        options: SyncOptions,
        detector: DriftDetector,
        writer: GeneratedFileWriter,
        example_snapshot: SchemaSnapshot,
    ) -> None:
        entity = _write(
            options.entities_dir / "tb-tag.entity.py", _entity("tb_tag", "TbTagEntity")
        )
        repository = _write(
            options.repositories_dir / "tb-tag.repository.py",
            f"{GENERATED_HEADER}\nclass TbTagRepository:\n    pass\n",
        )
        report = detector.apply(example_snapshot, writer)

        assert report.newly_marked == [entity, repository]
        entity_source = entity.read_text(encoding="utf-8")
        assert entity_source.startswith(f"{DEPRECATION_PREFIX} This table has been deleted")
        assert "# Deletion detected on: 2026-10-18" in entity_source
        assert entity_source.endswith(_entity("tb_tag", "TbTagEntity"))
        assert "excluded from ALL_REPOSITORIES" in repository.read_text(encoding="utf-8")

    def test_apply_drops_generated_relations(
        self,
        options: SyncOptions,
        detector: DriftDetector,
        writer: GeneratedFileWriter,
        example_snapshot: SchemaSnapshot,
    ) -> None:
        source = (
            f"{GENERATED_HEADER}\n"
            "from sqlalchemy.orm import Mapped, mapped_column, relationship\n\n"
            "from .base import Base\n\n\n"
            "class TbTagEntity(Base):\n"
            '    __tablename__ = "tb_tag"\n\n'
            "    tag_id: Mapped[int] = mapped_column(primary_key=True)\n\n"
            f"    {RELATIONS_SECTION}\n"
            '    board: Mapped["TbBoardEntity"] = relationship(\n'
            '        "TbBoardEntity",\n'
            '        back_populates="tb_tags",\n'
            '        info={"generated": True},\n'
            "    )\n\n"
            f"    {PRESERVED_SECTION}\n"
            '    owner: Mapped["UserEntity"] = relationship("UserEntity")\n'
        )
        entity = _write(options.entities_dir / "tb-tag.entity.py", source)
        report = detector.apply(example_snapshot, writer)

        assert report.newly_marked == [entity]
        marked = entity.read_text(encoding="utf-8")
        assert marked.startswith(DEPRECATION_PREFIX)
        assert "tb_tags" not in marked
        assert RELATIONS_SECTION not in marked
        assert (
            "mapped_column(primary_key=True)\n\n"
            f"    {PRESERVED_SECTION}\n"
            '    owner: Mapped["UserEntity"] = relationship("UserEntity")\n'
        ) in marked

    def test_apply_marks_unparseable_entity_as_is(
        self,
        options: SyncOptions,
        detector: DriftDetector,
        writer: GeneratedFileWriter,
        example_snapshot: SchemaSnapshot,
        caplog,
    ) -> None:
        source = _entity("tb_tag", "TbTagEntity") + "    def (:\n"
        entity = _write(options.entities_dir / "tb-tag.entity.py", source)
        report = detector.apply(example_snapshot, writer)
        assert report.newly_marked == [entity]
        assert entity.read_text(encoding="utf-8").endswith(source)
        assert "relations left in place" in caplog.text

    def test_apply_is_idempotent(
        self, options: SyncOptions, detector: DriftDetector, example_snapshot: SchemaSnapshot
    ) -> None:
        _write(options.entities_dir / "tb-tag.entity.py", _entity("tb_tag", "TbTagEntity"))
        detector.apply(example_snapshot, GeneratedFileWriter())
        second = GeneratedFileWriter()
        report = detector.apply(example_snapshot, second)
        assert report.deleted_tables == ["tb_tag"]
        assert report.newly_marked == []
        assert second.records == []

    def test_hand_written_repository_is_left_alone(
        self,
        options: SyncOptions,
        detector: DriftDetector,
        writer: GeneratedFileWriter,
        example_snapshot: SchemaSnapshot,
    ) -> None:
        _write(options.entities_dir / "tb-tag.entity.py", _entity("tb_tag", "TbTagEntity"))
        content = "class TbTagRepository:\n    pass\n"
        repository = _write(options.repositories_dir / "tb-tag.repository.py", content)
        report = detector.apply(example_snapshot, writer)
        assert len(report.newly_marked) == 1
        assert repository.read_text(encoding="utf-8") == content


# ===========================================================================
# Index modules
# ===========================================================================


class TestIndexes:

    def test_class_names(self) -> None:
        source = "class TbBoardEntity(Base):\n    pass\n\nclass Helper:\n    pass\n"
        assert class_names(source, "Entity") == ["TbBoardEntity"]

    def test_class_names_on_broken_source(self) -> None:
        assert class_names("class TbBoardEntity(Base):\n    def (:\n", "Entity") == [
            "TbBoardEntity"
        ]

    def test_declared_table_name(self) -> None:
        assert declared_table_name(_entity("tb_board", "TbBoardEntity")) == "tb_board"
        assert declared_table_name("x = 1\n") is None

    def test_scan_skips_files_without_classes(self, tmp_path: pathlib.Path, caplog) -> None:
        _write(tmp_path / "a.entity.py", _entity("tb_a", "TbAEntity"))
        _write(tmp_path / "b.entity.py", "x = 1\n")
        _write(tmp_path / "base.py", "class Base:\n    pass\n")
        entries = scan_directory(tmp_path, ".entity", "Entity")
        assert [(e.stem, e.class_name) for e in entries] == [("a.entity", "TbAEntity")]
        assert "No *Entity class found in b.entity.py" in caplog.text

    def test_duplicate_class_is_exported_once(self, tmp_path: pathlib.Path) -> None:
        _write(tmp_path / "a.entity.py", _entity("tb_a", "SharedEntity"))
        _write(tmp_path / "b.entity.py", _entity("tb_b", "SharedEntity"))
        assert [e.stem for e in scan_directory(tmp_path, ".entity", "Entity")] == ["a.entity"]

    def test_entity_index(self, tmp_path: pathlib.Path) -> None:
        _write(tmp_path / "tb-board.entity.py", _entity("tb_board", "TbBoardEntity"))
        _write(
            tmp_path / "tb-tag.entity.py",
            f"{DEPRECATION_PREFIX} gone\n" + _entity("tb_tag", "TbTagEntity"),
        )
        index = build_entity_index(tmp_path)
        assert index.startswith(GENERATED_HEADER)
        assert 'TbTagEntity = load_sibling(__name__, "tb-tag.entity", "TbTagEntity")' in index
        assert "ALL_ENTITIES: List[type] = [\n    TbBoardEntity,\n]" in index
        assert '    "TbTagEntity",' in index
        compile(index, "index.py", "exec")

    def test_empty_repository_index(self, tmp_path: pathlib.Path) -> None:
        index = build_repository_index(tmp_path)
        assert "ALL_REPOSITORIES: List[type] = []" in index
        assert "from ..entities.base import load_sibling" in index
        compile(index, "index.py", "exec")


# ===========================================================================
# OutputBackup
# ===========================================================================


class TestOutputBackup:

    def test_restore_puts_files_back(self, tmp_path: pathlib.Path) -> None:
        existing = _write(tmp_path / "entities" / "a.py", "original\n")
        backup = OutputBackup([tmp_path / "entities", tmp_path / "repositories"])
        backup.create()
        try:
            existing.write_text("changed\n", encoding="utf-8")
            _write(tmp_path / "entities" / "new.py", "new\n")
            _write(tmp_path / "repositories" / "r.py", "new\n")
            backup.restore()
        finally:
            backup.discard()

        assert existing.read_text(encoding="utf-8") == "original\n"
        assert not (tmp_path / "entities" / "new.py").exists()
        assert not (tmp_path / "repositories").exists()
        assert not backup.is_active

    def test_restore_without_create(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(RollbackError, match="No backup"):
            OutputBackup([tmp_path]).restore()

    def test_create_twice(self, tmp_path: pathlib.Path) -> None:
        backup = OutputBackup([tmp_path / "x"])
        backup.create()
        try:
            with pytest.raises(RollbackError, match="already created"):
                backup.create()
        finally:
            backup.discard()


# ===========================================================================
# Snapshot files
# ===========================================================================


class TestSnapshotFiles:

    def test_yaml_round_trip_through_json(
        self, tmp_path: pathlib.Path, snapshot_path: pathlib.Path
    ) -> None:
        loaded = load_snapshot_file(snapshot_path)
        paths = save_snapshot(loaded, tmp_path / "out" / "schema.json")
        assert [p.name for p in paths] == ["schema.json", "schema-summary.json"]
        reloaded = load_snapshot_file(paths[0])
        assert reloaded.table_names == loaded.table_names
        assert [c.name for c in reloaded.table("tb_board").columns] == [
            c.name for c in loaded.table("tb_board").columns
        ]

    def test_environment_override(self, snapshot_path: pathlib.Path) -> None:
        snapshot = SnapshotFileSource(snapshot_path, "prod").analyze()
        assert snapshot.database_meta.environment == "prod"
        assert load_snapshot_file(snapshot_path).database_meta.environment == "dev"

    def test_summary(self, example_snapshot: SchemaSnapshot) -> None:
        summary: Dict[str, Any] = snapshot_summary(example_snapshot)
        assert [t["name"] for t in summary["tables"]] == ["tb_board", "tb_comment"]
        assert summary["procedures"] == [{"name": "sp_GetBoardComments", "parameters": 2}]
        json.dumps(summary)

    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(SnapshotFileError, match="Snapshot file not found"):
            load_snapshot_file(tmp_path / "absent.json")

    def test_unparseable_file(self, tmp_path: pathlib.Path) -> None:
        path = _write(tmp_path / "broken.json", "{not json")
        with pytest.raises(SnapshotFileError, match="Cannot parse"):
            load_snapshot_file(path)

    def test_non_mapping_file(self, tmp_path: pathlib.Path) -> None:
        path = _write(tmp_path / "list.yaml", "- a\n- b\n")
        with pytest.raises(SnapshotFileError, match="Expected a mapping"):
            load_snapshot_file(path)

    def test_invalid_snapshot(self, tmp_path: pathlib.Path) -> None:
        path = _write(
            tmp_path / "dupes.json",
            json.dumps({"tables": [{"name": "a", "columns": []}, {"name": "a", "columns": []}]}),
        )
        with pytest.raises(SnapshotFileError, match="Invalid snapshot"):
            load_snapshot_file(path)


# ===========================================================================
# GeneratedFileWriter
# ===========================================================================


class TestGeneratedFileWriter:

    def test_outcomes(self, tmp_path: pathlib.Path, writer: GeneratedFileWriter) -> None:
        path = tmp_path / "nested" / "a.py"
        assert writer.write(path, "x = 1\n").outcome == WriteOutcome.CREATED
        assert writer.write(path, "x = 1\n").outcome == WriteOutcome.UNCHANGED
        assert writer.write(path, "x = 2\n").outcome == WriteOutcome.UPDATED
        assert writer.counts() == {"created": 1, "updated": 1, "unchanged": 1}
        assert writer.changed_paths == [path, path]
        assert writer.total_lines == 3

    def test_unchanged_file_keeps_mtime(
        self, tmp_path: pathlib.Path, writer: GeneratedFileWriter
    ) -> None:
        path = tmp_path / "a.py"
        writer.write(path, "x = 1\n")
        before = path.stat().st_mtime_ns
        writer.write(path, "x = 1\n")
        assert path.stat().st_mtime_ns == before
