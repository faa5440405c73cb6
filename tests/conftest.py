"""
tests/conftest.py
Shared fixtures for the schemasync test suite.

Real file I/O is performed inside temporary directories managed by
pytest's tmp_path fixture.  The database side is replaced by snapshot
objects or, for the introspector, by a fake engine.
"""

from __future__ import annotations

import copy
import logging
import pathlib
from datetime import date
from typing import Any, Dict, Iterator, List, Optional

import pytest
import yaml

from schemasync.exporters import GeneratedFileWriter
from schemasync.models import SchemaSnapshot, SyncOptions


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
SNAPSHOT_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "snapshot_example.yaml"

FIXED_TODAY: date = date(2026, 10, 18)


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_schemasync_logger() -> Iterator[None]:
    """The CLI reconfigures the package logger; undo that after every test."""
    yield
    root = logging.getLogger("schemasync")
    root.handlers.clear()
    root.setLevel(logging.NOTSET)
    root.propagate = True
    logging.disable(logging.NOTSET)


# ---------------------------------------------------------------------------
# Raw snapshot fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_snapshot_dict() -> Dict[str, Any]:
    """Load the reference snapshot_example.yaml once per session."""
    assert SNAPSHOT_EXAMPLE_PATH.exists(), (
        f"Reference snapshot not found at {SNAPSHOT_EXAMPLE_PATH}. "
        "Make sure snapshot_example.yaml is in the project root."
    )
    with open(SNAPSHOT_EXAMPLE_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def snapshot_dict(raw_snapshot_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_snapshot_dict)


@pytest.fixture()
def example_snapshot(snapshot_dict: Dict[str, Any]) -> SchemaSnapshot:
    """``tb_board`` + ``tb_comment`` with one procedure and one function."""
    return SchemaSnapshot.model_validate(snapshot_dict)


@pytest.fixture()
def snapshot_path(snapshot_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "snapshot.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.safe_dump(snapshot_dict, fh, default_flow_style=False, allow_unicode=True)
    return path


# ---------------------------------------------------------------------------
# Small snapshot builders
# ---------------------------------------------------------------------------


def column(
    name: str,
    native_type: str = "int",
    *,
    pk: bool = False,
    nullable: bool = True,
    **extra: Any,
) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "name": name,
        "native_type": native_type,
        "nullable": False if pk else nullable,
        "is_primary_key": pk,
        "is_auto_increment": pk and native_type == "int",
    }
    data.update(extra)
    return data


def table(
    name: str,
    columns: List[Dict[str, Any]],
    foreign_keys: Optional[List[Dict[str, Any]]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "name": name,
        "columns": columns,
        "foreign_keys": foreign_keys or [],
    }
    data.update(extra)
    return data


def foreign_key(
    column_name: str, referenced_table: str, referenced_column: str
) -> Dict[str, Any]:
    return {
        "constraint_name": f"fk_{column_name}_{referenced_table}",
        "column": column_name,
        "referenced_table": referenced_table,
        "referenced_column": referenced_column,
    }


def make_snapshot(*tables: Dict[str, Any], **extra: Any) -> SchemaSnapshot:
    data: Dict[str, Any] = {"tables": list(tables)}
    data.update(extra)
    return SchemaSnapshot.model_validate(data)


@pytest.fixture()
def orders_snapshot() -> SchemaSnapshot:
    """A single ``orders`` table."""
    return make_snapshot(
        table(
            "orders",
            [
                column("order_id", pk=True),
                column("total", "decimal", numeric_precision=10, numeric_scale=2),
                column("created_at", "datetime", nullable=False),
            ],
        )
    )


@pytest.fixture()
def orders_snapshot_with_note() -> SchemaSnapshot:
    """``orders`` after an unrelated schema change: a new ``note`` column."""
    return make_snapshot(
        table(
            "orders",
            [
                column("order_id", pk=True),
                column("total", "decimal", numeric_precision=10, numeric_scale=2),
                column("created_at", "datetime", nullable=False),
                column("note", "varchar", max_length=255),
            ],
        )
    )


# ---------------------------------------------------------------------------
# Options / writer
# ---------------------------------------------------------------------------


@pytest.fixture()
def output_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    return tmp_path / "database"


@pytest.fixture()
def options(output_dir: pathlib.Path) -> SyncOptions:
    return SyncOptions(environment="test", output_base_dir=output_dir)


@pytest.fixture()
def writer() -> GeneratedFileWriter:
    return GeneratedFileWriter()


@pytest.fixture()
def today() -> date:
    return FIXED_TODAY
