# File: schemasync/snapshots.py
"""
SchemaSync - Snapshot Files
=============================
Persist and reload ``SchemaSnapshot`` objects.

* ``save_snapshot`` writes the full snapshot as JSON next to a compact
  ``<stem>-summary.json`` (table/routine names and counts).
* ``load_snapshot_file`` reads JSON or YAML back into a validated
  snapshot; ``SnapshotFileSource`` wraps it behind the same ``analyze()``
  contract as ``SchemaIntrospector`` so the orchestrator can generate
  offline.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from schemasync.errors import SnapshotFileError
from schemasync.models import SchemaSnapshot
from schemasync.utils import atomic_write

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync.snapshots")


def _load_raw(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        raise SnapshotFileError(f"Snapshot file not found: {path}")

    text: str = path.read_text(encoding="utf-8")
    suffix: str = path.suffix.lower()
    try:
        if suffix == ".json":
            data: Any = json.loads(text)
        else:
            # .yaml, .yml and unknown extensions
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise SnapshotFileError(f"Cannot parse snapshot file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise SnapshotFileError(
            f"Expected a mapping at the top of {path}, got {type(data).__name__}."
        )
    return data


def load_snapshot_file(path: Path, environment: Optional[str] = None) -> SchemaSnapshot:
    """
    Load a snapshot from JSON or YAML.

    When *environment* is given it replaces the recorded environment so
    generated headers reflect the current run.
    """
    raw: Dict[str, Any] = _load_raw(path)
    if environment is not None:
        meta: Dict[str, Any] = dict(raw.get("database_meta") or {})
        meta["environment"] = environment
        raw["database_meta"] = meta
    try:
        snapshot: SchemaSnapshot = SchemaSnapshot.model_validate(raw)
    except ValidationError as exc:
        raise SnapshotFileError(f"Invalid snapshot in {path}: {exc}") from exc

    logger.info(
        "Loaded snapshot %s: %d table(s), %d routine(s).",
        path,
        len(snapshot.tables),
        len(snapshot.routines),
    )
    return snapshot


def snapshot_summary(snapshot: SchemaSnapshot) -> Dict[str, Any]:
    """Compact, human-oriented overview of a snapshot."""
    meta = snapshot.database_meta
    return {
        "database": meta.database,
        "version": meta.version,
        "environment": meta.environment,
        "analyzed_at": meta.analyzed_at.isoformat() if meta.analyzed_at else None,
        "tables": [
            {
                "name": t.name,
                "columns": len(t.columns),
                "indexes": len({i.name for i in t.indexes}),
                "foreign_keys": len(t.foreign_keys),
            }
            for t in snapshot.tables
        ],
        "procedures": [
            {"name": r.name, "parameters": len(r.parameters)} for r in snapshot.procedures
        ],
        "functions": [
            {"name": r.name, "parameters": len(r.parameters)} for r in snapshot.functions
        ],
    }


def save_snapshot(snapshot: SchemaSnapshot, path: Path) -> List[Path]:
    """Write ``path`` (full JSON) and ``<stem>-summary.json``; return both paths."""
    summary_path: Path = path.with_name(f"{path.stem}-summary.json")
    atomic_write(path, snapshot.model_dump_json(indent=2) + "\n")
    atomic_write(
        summary_path,
        json.dumps(snapshot_summary(snapshot), indent=2, ensure_ascii=False) + "\n",
    )
    logger.info("Saved snapshot to %s (summary: %s).", path, summary_path.name)
    return [path, summary_path]


class SnapshotFileSource:
    """``analyze()`` backed by a snapshot file instead of a live database."""

    def __init__(self, path: Path, environment: Optional[str] = None) -> None:
        self._path: Path = path
        self._environment: Optional[str] = environment

    def analyze(self) -> SchemaSnapshot:
        return load_snapshot_file(self._path, self._environment)


__all__: List[str] = [
    "load_snapshot_file",
    "snapshot_summary",
    "save_snapshot",
    "SnapshotFileSource",
]

logger.debug("schemasync.snapshots loaded.")
