# File: schemasync/relations.py
"""
SchemaSync - Relation Inference
=================================
Derives ORM relation attributes from foreign keys, for the whole snapshot
at once so both sides of every pair agree on names.

Rules:
    * FK ``board_id → tb_board``        many-to-one ``board`` on the owner,
                                         one-to-many ``tb_comments`` on tb_board.
    * FK ``parent_id → tb_comment``     (self reference) ``parent`` +
                                         ``children`` on tb_comment only.
    * Several FKs from one table to the same target get ``<plural>_by_<base>``
      reverse names.
    * Names never collide with column attributes; ``_rel`` is appended.
    * FKs to tables outside the snapshot produce no relation.

Per table, relations come in foreign-key declaration order, followed by
reverse relations in snapshot order.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from schemasync.models import ForeignKeyDescriptor, SchemaSnapshot, TableDescriptor
from schemasync.utils import attribute_name, entity_class_name, to_pascal_case, to_plural

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemasync.relations")


class RelationKind(str, Enum):
    MANY_TO_ONE = "many_to_one"
    ONE_TO_MANY = "one_to_many"


@dataclass(frozen=True)
class RelationSpec:
    """One relation attribute on one entity."""

    attribute: str
    kind: RelationKind
    target_class: str
    back_populates: str
    #: Attribute holding the FK column.
    foreign_key_attribute: str
    #: Class owning that attribute when it is not the entity itself.
    foreign_key_owner: Optional[str] = None
    #: Referenced attribute, set on the single-valued side of a self reference.
    remote_side: Optional[str] = None
    nullable: bool = True

    @property
    def is_collection(self) -> bool:
        return self.kind == RelationKind.ONE_TO_MANY


def relation_base(column_name: str, convention: str = "snake_case") -> Optional[str]:
    """
    ``board_id`` → ``board``; ``boardId`` → ``board``.

    Returns ``None`` when the column does not follow the ``*_id`` shape.
    """
    attr: str = attribute_name(column_name, convention)
    if attr.endswith("_id") and len(attr) > 3:
        return attr[:-3]
    if attr.endswith("Id") and len(attr) > 2:
        return attr[:-2]
    return None


def _join(base: str, suffix: str, convention: str) -> str:
    if convention == "camelCase":
        return base + to_pascal_case(suffix)
    return f"{base}_{suffix}"


def build_relation_map(
    snapshot: SchemaSnapshot, convention: str = "snake_case"
) -> Dict[str, List[RelationSpec]]:
    """Relation attributes for every table in *snapshot*, keyed by table name."""
    known: Set[str] = set(snapshot.table_names)
    column_attrs: Dict[str, Dict[str, str]] = {
        t.name: {c.name: attribute_name(c.name, convention) for c in t.columns}
        for t in snapshot.tables
    }
    taken: Dict[str, Set[str]] = {
        name: set(attrs.values()) for name, attrs in column_attrs.items()
    }

    def claim(table: str, name: str) -> str:
        candidate: str = name
        while candidate in taken[table]:
            candidate = _join(candidate, "rel", convention)
        taken[table].add(candidate)
        return candidate

    def usable(table: TableDescriptor, fk: ForeignKeyDescriptor) -> bool:
        if fk.referenced_table in known:
            return True
        logger.debug(
            "Skipping relation for %s.%s: '%s' is not in the snapshot.",
            table.name,
            fk.column,
            fk.referenced_table,
        )
        return False

    # -- Pass 1: names ------------------------------------------------------
    Key = Tuple[str, str]
    forward_names: Dict[Key, str] = {}
    self_names: Dict[Key, Tuple[str, str]] = {}
    reverse_names: Dict[Key, str] = {}

    for table in snapshot.tables:
        self_refs: int = 0
        for fk in table.foreign_keys:
            if not usable(table, fk):
                continue
            key: Key = (table.name, fk.constraint_name)
            base: str = relation_base(fk.column, convention) or attribute_name(
                fk.referenced_table, convention
            )
            if fk.referenced_table == table.name:
                parent, children = "parent", "children"
                if self_refs:
                    parent, children = _join(parent, base, convention), _join(
                        children, base, convention
                    )
                self_refs += 1
                self_names[key] = (claim(table.name, parent), claim(table.name, children))
            else:
                forward_names[key] = claim(table.name, base)

    for table in snapshot.tables:
        targets: Counter = Counter(
            fk.referenced_table
            for fk in table.foreign_keys
            if fk.referenced_table in known and fk.referenced_table != table.name
        )
        for fk in table.foreign_keys:
            key = (table.name, fk.constraint_name)
            if key not in forward_names:
                continue
            plural: str = attribute_name(to_plural(table.name), convention)
            if targets[fk.referenced_table] > 1:
                plural = _join(
                    plural, relation_base(fk.column, convention) or fk.column, convention
                )
            reverse_names[key] = claim(fk.referenced_table, plural)

    # -- Pass 2: specs ------------------------------------------------------
    result: Dict[str, List[RelationSpec]] = {t.name: [] for t in snapshot.tables}

    for table in snapshot.tables:
        owner_class: str = entity_class_name(table.name)
        for fk in table.foreign_keys:
            key = (table.name, fk.constraint_name)
            fk_attr: str = column_attrs[table.name][fk.column]
            column = table.column(fk.column)
            nullable: bool = bool(column and column.nullable)
            if key in self_names:
                parent, children = self_names[key]
                remote: str = column_attrs[table.name].get(
                    fk.referenced_column, fk.referenced_column
                )
                result[table.name].append(
                    RelationSpec(
                        attribute=parent,
                        kind=RelationKind.MANY_TO_ONE,
                        target_class=owner_class,
                        back_populates=children,
                        foreign_key_attribute=fk_attr,
                        remote_side=remote,
                        nullable=nullable,
                    )
                )
                result[table.name].append(
                    RelationSpec(
                        attribute=children,
                        kind=RelationKind.ONE_TO_MANY,
                        target_class=owner_class,
                        back_populates=parent,
                        foreign_key_attribute=fk_attr,
                    )
                )
            elif key in forward_names:
                result[table.name].append(
                    RelationSpec(
                        attribute=forward_names[key],
                        kind=RelationKind.MANY_TO_ONE,
                        target_class=entity_class_name(fk.referenced_table),
                        back_populates=reverse_names[key],
                        foreign_key_attribute=fk_attr,
                        nullable=nullable,
                    )
                )

    for table in snapshot.tables:
        owner_class = entity_class_name(table.name)
        for fk in table.foreign_keys:
            key = (table.name, fk.constraint_name)
            if key not in reverse_names:
                continue
            result[fk.referenced_table].append(
                RelationSpec(
                    attribute=reverse_names[key],
                    kind=RelationKind.ONE_TO_MANY,
                    target_class=owner_class,
                    back_populates=forward_names[key],
                    foreign_key_attribute=column_attrs[table.name][fk.column],
                    foreign_key_owner=owner_class,
                )
            )

    return result


__all__: List[str] = [
    "RelationKind",
    "RelationSpec",
    "relation_base",
    "build_relation_map",
]

logger.debug("schemasync.relations loaded.")
