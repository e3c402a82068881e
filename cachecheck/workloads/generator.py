"""
Schema-driven random write generation.

Generation is split into two steps so the precondition of every operation can
be checked apart from the random choice:

1. `candidates(snapshot)` lists every operation whose precondition holds: an
   insert into T once every table T references is non-empty, a delete from T
   once T holds a row.
2. `generate(snapshot)` chooses one candidate uniformly and builds it.

Values are never checked for collisions; rejecting a duplicate key is the
system under test's job, and the domain size controls how often it happens.
"""

from __future__ import annotations

import random
import threading
from typing import Any, List, Literal, NamedTuple, Optional, Sequence, Tuple

from cachecheck.config import get_settings
from cachecheck.domain.operations import And, Delete, Eq, In, Insert, Or, Predicate, WriteOperation
from cachecheck.domain.schema import Column, ColumnType, Row, Snapshot, TableSchema, rows_of
from cachecheck.errors import GeneratorExhaustedError
from cachecheck.utils.logging import get_logger
from cachecheck.workloads.abstract import Workload

log = get_logger(__name__)

_thread_state = threading.local()


def _thread_rng() -> random.Random:
    rng = getattr(_thread_state, "rng", None)
    if rng is None:
        rng = random.Random()
        _thread_state.rng = rng
    return rng


class Candidate(NamedTuple):
    kind: Literal["insert", "delete"]
    table: str


class WriteGenerator:
    """
    Builds random inserts and deletes for a workload from a snapshot.

    Holds configuration only; every call reads the snapshot it is given and
    keeps nothing from it. Without an explicit `rng` each thread draws from its
    own `random.Random`, so concurrent callers never share random state.
    """

    def __init__(
        self,
        workload: Workload,
        rng: Optional[random.Random] = None,
        id_domain_size: Optional[int] = None,
        max_insert_rows: Optional[int] = None,
    ) -> None:
        settings = get_settings()
        self.workload = workload
        self.id_domain_size = id_domain_size or settings.id_domain_size
        self.max_insert_rows = max_insert_rows or settings.max_insert_rows
        self._rng = rng

    @property
    def rng(self) -> random.Random:
        return self._rng if self._rng is not None else _thread_rng()

    def candidates(self, snapshot: Snapshot) -> List[Candidate]:
        """Every operation whose precondition holds for `snapshot`."""
        result: List[Candidate] = []
        for table in self.workload.tables:
            referenced = {fk.table for fk in table.foreign_keys.values()}
            if all(rows_of(snapshot, name) for name in referenced):
                result.append(Candidate("insert", table.name))
        for table in self.workload.tables:
            if rows_of(snapshot, table.name):
                result.append(Candidate("delete", table.name))
        return result

    def generate(self, snapshot: Snapshot) -> WriteOperation:
        options = self.candidates(snapshot)
        if not options:
            raise GeneratorExhaustedError(
                f"No write available for workload '{self.workload.name}'; "
                "the schema needs at least one table without foreign keys"
            )
        choice = self.rng.choice(options)
        table = self.workload.table(choice.table)
        if choice.kind == "insert":
            op: WriteOperation = self._insert(table, snapshot)
        else:
            op = self._delete(table, snapshot)
        log.debug("generated write", extra={"kind": op.kind, "table": op.table})
        return op

    def _insert(self, table: TableSchema, snapshot: Snapshot) -> Insert:
        limit = self.workload.policy(table.name).max_insert_rows or self.max_insert_rows
        count = self.rng.randint(1, limit)
        known = {
            col.name: _distinct(
                r.get(col.references.column) for r in rows_of(snapshot, col.references.table)
            )
            for col in table.columns
            if col.references is not None
        }
        rows = tuple(
            tuple(self._value(col, known.get(col.name)) for col in table.columns)
            for _ in range(count)
        )
        return Insert(table=table.name, columns=table.column_names, rows=rows)

    def _value(self, column: Column, known: Optional[List[Any]]) -> Any:
        if known is not None:
            return self.rng.choice(known)
        if column.type is ColumnType.TEXT:
            prefix = column.text_prefix or column.name
            return f"{prefix}-{self.rng.randint(0, self.id_domain_size)}"
        low, high = column.value_range or (1, self.id_domain_size)
        return self.rng.randint(low, high)

    def _delete(self, table: TableSchema, snapshot: Snapshot) -> Delete:
        rows = rows_of(snapshot, table.name)
        limit = min(self.workload.policy(table.name).max_delete_rows, len(rows))
        chosen = self.rng.sample(list(rows), self.rng.randint(1, limit))
        return Delete(table=table.name, predicate=key_predicate(table.key_columns, chosen))


def _distinct(values: Any) -> List[Any]:
    return list(dict.fromkeys(v for v in values if v is not None))


def key_predicate(key_columns: Sequence[str], rows: Sequence[Row]) -> Predicate:
    """
    Predicate matching exactly the key values of `rows`.

    A single row becomes equality (a conjunction for composite keys); several
    rows become set membership on a single-column key, or a disjunction of
    per-row conjunctions on a composite key.
    """
    if not rows:
        raise ValueError("key_predicate needs at least one row")
    keys: List[Tuple[Any, ...]] = list(
        dict.fromkeys(tuple(row[c] for c in key_columns) for row in rows)
    )

    def row_match(key: Tuple[Any, ...]) -> Predicate:
        parts = [Eq(column=c, value=v) for c, v in zip(key_columns, key)]
        return parts[0] if len(parts) == 1 else And(parts=tuple(parts))

    if len(keys) == 1:
        return row_match(keys[0])
    if len(key_columns) == 1:
        return In(column=key_columns[0], values=tuple(k[0] for k in keys))
    return Or(parts=tuple(row_match(k) for k in keys))


__all__ = ["Candidate", "WriteGenerator", "key_predicate"]
