"""
In-memory mirror of table state.

These helpers are what a driver uses to keep its own copy of the rows it has
written. They never mutate their input; each call returns a new snapshot.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence

from cachecheck.domain.operations import Delete, Insert, WriteOperation
from cachecheck.domain.schema import Row, Snapshot, TableSchema, rows_of
from cachecheck.errors import MirrorIntegrityError, SnapshotInconsistencyError


def empty_snapshot(tables: Sequence[TableSchema]) -> Dict[str, List[Dict[str, Any]]]:
    return {t.name: [] for t in tables}


def _tables_by_name(tables: Sequence[TableSchema]) -> Dict[str, TableSchema]:
    return {t.name: t for t in tables}


def _apply_insert(
    table: TableSchema, existing: Sequence[Row], op: Insert
) -> List[Dict[str, Any]]:
    new_rows = [{col: row.get(col) for col in table.column_names} for row in op.as_rows()]
    if table.primary_key:
        seen = {tuple(r[k] for k in table.primary_key) for r in existing}
        for row in new_rows:
            key = tuple(row[k] for k in table.primary_key)
            if key in seen:
                raise MirrorIntegrityError(
                    f"Duplicate primary key {key!r} for table '{table.name}'"
                )
            seen.add(key)
    return [dict(r) for r in existing] + new_rows


def _apply_delete(
    by_name: Mapping[str, TableSchema], snapshot: Dict[str, List[Dict[str, Any]]], op: Delete
) -> None:
    removed = [r for r in snapshot[op.table] if op.predicate.matches(r)]
    snapshot[op.table] = [r for r in snapshot[op.table] if not op.predicate.matches(r)]
    if removed:
        _cascade(by_name, snapshot, op.table, removed)


def _cascade(
    by_name: Mapping[str, TableSchema],
    snapshot: Dict[str, List[Dict[str, Any]]],
    table: str,
    removed: List[Dict[str, Any]],
) -> None:
    for child in by_name.values():
        for column, fk in child.foreign_keys.items():
            if fk.table != table or not fk.on_delete_cascade:
                continue
            gone = {r[fk.column] for r in removed}
            still_present = {r[fk.column] for r in snapshot[table]}
            orphaned_values = gone - still_present
            orphans = [r for r in snapshot[child.name] if r.get(column) in orphaned_values]
            if not orphans:
                continue
            snapshot[child.name] = [
                r for r in snapshot[child.name] if r.get(column) not in orphaned_values
            ]
            _cascade(by_name, snapshot, child.name, orphans)


def apply_write(
    tables: Sequence[TableSchema], snapshot: Snapshot, op: WriteOperation
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Return a new snapshot with `op` applied.

    Inserts are atomic: a primary-key collision anywhere in the statement raises
    MirrorIntegrityError and nothing is applied. Deletes remove every matching
    row and cascade along foreign keys declared `on_delete_cascade`.
    """
    by_name = _tables_by_name(tables)
    if op.table not in by_name:
        raise KeyError(f"Unknown table '{op.table}'")
    result = {name: [dict(r) for r in rows_of(snapshot, name)] for name in by_name}
    if isinstance(op, Insert):
        result[op.table] = _apply_insert(by_name[op.table], result[op.table], op)
    else:
        _apply_delete(by_name, result, op)
    return result


def dangling_references(tables: Sequence[TableSchema], snapshot: Snapshot) -> List[str]:
    """Describe every foreign-key value in `snapshot` with no referenced row."""
    problems: List[str] = []
    for table in tables:
        for column, fk in table.foreign_keys.items():
            known = {r.get(fk.column) for r in rows_of(snapshot, fk.table)}
            for row in rows_of(snapshot, table.name):
                value = row.get(column)
                if value is not None and value not in known:
                    problems.append(
                        f"{table.name}.{column}={value!r} has no {fk.table}.{fk.column}"
                    )
    return problems


def check_references(tables: Sequence[TableSchema], snapshot: Snapshot) -> None:
    """Raise SnapshotInconsistencyError if `snapshot` holds dangling references."""
    problems = dangling_references(tables, snapshot)
    if problems:
        raise SnapshotInconsistencyError("; ".join(problems))


__all__ = [
    "empty_snapshot",
    "apply_write",
    "dangling_references",
    "check_references",
]
