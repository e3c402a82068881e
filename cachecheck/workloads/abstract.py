"""
Workload contracts.

A workload bundles a schema, a write policy per table and a registry of named
queries. Each query pairs the SQL sent to the system under test with a pure
oracle computing the rows that SQL must return for a given snapshot. The two
describe the same query twice, so every workload ships tests that evaluate the
SQL against the same snapshot the oracle sees.
"""

from __future__ import annotations

import random
from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from cachecheck.domain.mirror import check_references
from cachecheck.domain.operations import WriteOperation
from cachecheck.domain.schema import Snapshot, TableSchema
from cachecheck.errors import QueryNotFoundError

if TYPE_CHECKING:
    from cachecheck.workloads.generator import WriteGenerator

ResultRow = Dict[str, Any]
Oracle = Callable[[Snapshot, Tuple[Any, ...]], List[ResultRow]]


@dataclass(frozen=True)
class WritePolicy:
    """
    How the generator may write to one table.

    Attributes
    ----------
    max_insert_rows : int | None
        Upper bound on rows per insert. None uses the configured default.
    max_delete_rows : int
        Upper bound on rows selected per delete.
    """

    max_insert_rows: Optional[int] = None
    max_delete_rows: int = 5

    def __post_init__(self) -> None:
        if self.max_insert_rows is not None and self.max_insert_rows < 1:
            raise ValueError("max_insert_rows must be at least 1")
        if self.max_delete_rows < 1:
            raise ValueError("max_delete_rows must be at least 1")


@dataclass(frozen=True)
class QueryDefinition:
    """
    A named read query and the oracle for its expected output.
    """

    query_id: str
    sql: str
    columns: Tuple[str, ...]
    oracle: Oracle
    ordered: bool = True
    default_params: Tuple[Any, ...] = ()
    description: str = ""

    @property
    def param_count(self) -> int:
        return self.sql.count("%s")

    def expected(
        self, snapshot: Snapshot, params: Optional[Sequence[Any]] = None
    ) -> List[ResultRow]:
        bound = tuple(self.default_params if params is None else params)
        if len(bound) != self.param_count:
            raise ValueError(
                f"Query '{self.query_id}' takes {self.param_count} parameters, got {len(bound)}"
            )
        return self.oracle(snapshot, bound)

    def matches(self, expected: Sequence[ResultRow], actual: Sequence[ResultRow]) -> bool:
        """Compare result sets; unordered queries compare as multisets."""
        if self.ordered:
            return [dict(r) for r in expected] == [dict(r) for r in actual]
        return _as_multiset(self.columns, expected) == _as_multiset(self.columns, actual)


def _as_multiset(columns: Sequence[str], rows: Sequence[ResultRow]) -> Counter:
    return Counter(tuple(row.get(c) for c in columns) for row in rows)


@dataclass(frozen=True)
class Workload:
    """
    Schema, write policies and queries for one consistency workload.

    Definitions are validated on construction: every foreign key must resolve
    to a declared table and column, and every query id must be unique.
    """

    name: str
    description: str
    tables: Tuple[TableSchema, ...]
    queries: Mapping[str, QueryDefinition]
    policies: Mapping[str, WritePolicy] = field(default_factory=dict)

    def __post_init__(self) -> None:
        names = [t.name for t in self.tables]
        if len(set(names)) != len(names):
            raise ValueError(f"Workload '{self.name}' declares a table twice")
        by_name = {t.name: t for t in self.tables}
        for table in self.tables:
            for column, fk in table.foreign_keys.items():
                target = by_name.get(fk.table)
                if target is None or fk.column not in target.column_names:
                    raise ValueError(
                        f"{table.name}.{column} references unknown {fk.table}.{fk.column}"
                    )
        for query_id, query in self.queries.items():
            if query_id != query.query_id:
                raise ValueError(f"Query registered as '{query_id}' is named '{query.query_id}'")
            if not callable(query.oracle):
                raise ValueError(f"Query '{query_id}' oracle is not callable")
            if len(query.default_params) != query.param_count:
                raise ValueError(f"Query '{query_id}' default parameters do not match its SQL")
        unknown = set(self.policies) - set(by_name)
        if unknown:
            raise ValueError(f"Write policies for undeclared tables: {sorted(unknown)}")
        object.__setattr__(self, "queries", MappingProxyType(dict(self.queries)))
        object.__setattr__(self, "policies", MappingProxyType(dict(self.policies)))

    def table(self, name: str) -> TableSchema:
        for table in self.tables:
            if table.name == name:
                return table
        raise KeyError(f"Workload '{self.name}' has no table '{name}'")

    def policy(self, table: str) -> WritePolicy:
        return self.policies.get(table, WritePolicy())

    def query(self, query_id: str) -> QueryDefinition:
        try:
            return self.queries[query_id]
        except KeyError:
            raise QueryNotFoundError(self.name, query_id, sorted(self.queries)) from None

    def generator(
        self,
        rng: Optional[random.Random] = None,
        id_domain_size: Optional[int] = None,
        max_insert_rows: Optional[int] = None,
    ) -> "WriteGenerator":
        from cachecheck.workloads.generator import WriteGenerator

        return WriteGenerator(
            self, rng=rng, id_domain_size=id_domain_size, max_insert_rows=max_insert_rows
        )

    def generate(self, snapshot: Snapshot, rng: Optional[random.Random] = None) -> WriteOperation:
        """Pick one valid write for `snapshot`."""
        return self.generator(rng=rng).generate(snapshot)

    def expected(
        self, query_id: str, snapshot: Snapshot, params: Optional[Sequence[Any]] = None
    ) -> List[ResultRow]:
        """
        Expected rows of `query_id` for `snapshot`.

        Raises SnapshotInconsistencyError when the snapshot holds dangling
        foreign-key values.
        """
        query = self.query(query_id)
        check_references(self.tables, snapshot)
        return query.expected(snapshot, params)


__all__ = ["ResultRow", "Oracle", "WritePolicy", "QueryDefinition", "Workload"]
