"""
Write operations produced by workload generators.

Operations are plain data: the driver can apply them to its in-memory mirror
(`Predicate.matches`, `Insert.as_rows`) and to the system under test
(`to_sql`) without further interpretation. All models are frozen and
round-trip through JSON via the `kind` discriminator.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Tuple, Union

from psycopg import sql
from pydantic import BaseModel, Field, TypeAdapter, model_validator

from cachecheck.domain.schema import Row

SqlWithParams = Tuple[sql.Composable, List[Any]]


class Eq(BaseModel):
    kind: Literal["eq"] = "eq"
    column: str
    value: Any

    model_config = {"frozen": True}

    def matches(self, row: Row) -> bool:
        return row.get(self.column) == self.value

    def to_sql(self) -> SqlWithParams:
        return sql.SQL("{} = {}").format(sql.Identifier(self.column), sql.Placeholder()), [
            self.value
        ]


class In(BaseModel):
    kind: Literal["in"] = "in"
    column: str
    values: Tuple[Any, ...] = Field(..., min_length=1)

    model_config = {"frozen": True}

    def matches(self, row: Row) -> bool:
        return row.get(self.column) in self.values

    def to_sql(self) -> SqlWithParams:
        placeholders = sql.SQL(", ").join(sql.Placeholder() for _ in self.values)
        return sql.SQL("{} IN ({})").format(sql.Identifier(self.column), placeholders), list(
            self.values
        )


class And(BaseModel):
    kind: Literal["and"] = "and"
    parts: Tuple["Predicate", ...] = Field(..., min_length=1)

    model_config = {"frozen": True}

    def matches(self, row: Row) -> bool:
        return all(p.matches(row) for p in self.parts)

    def to_sql(self) -> SqlWithParams:
        return _join_parts(self.parts, " AND ")


class Or(BaseModel):
    kind: Literal["or"] = "or"
    parts: Tuple["Predicate", ...] = Field(..., min_length=1)

    model_config = {"frozen": True}

    def matches(self, row: Row) -> bool:
        return any(p.matches(row) for p in self.parts)

    def to_sql(self) -> SqlWithParams:
        return _join_parts(self.parts, " OR ")


Predicate = Annotated[Union[Eq, In, And, Or], Field(discriminator="kind")]

And.model_rebuild()
Or.model_rebuild()


def _join_parts(parts: Tuple[Predicate, ...], separator: str) -> SqlWithParams:
    rendered = [p.to_sql() for p in parts]
    params: List[Any] = []
    for _, p in rendered:
        params.extend(p)
    if len(rendered) == 1:
        return rendered[0][0], params
    body = sql.SQL(separator).join(r for r, _ in rendered)
    return sql.SQL("({})").format(body), params


class Insert(BaseModel):
    """
    Insert one or more rows into a table.
    """

    kind: Literal["insert"] = "insert"
    table: str
    columns: Tuple[str, ...] = Field(..., min_length=1)
    rows: Tuple[Tuple[Any, ...], ...] = Field(..., min_length=1)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_widths(self) -> "Insert":
        for values in self.rows:
            if len(values) != len(self.columns):
                raise ValueError(
                    f"Row {values!r} has {len(values)} values for {len(self.columns)} columns"
                )
        return self

    def as_rows(self) -> List[Dict[str, Any]]:
        return [dict(zip(self.columns, values)) for values in self.rows]

    def to_sql(self) -> SqlWithParams:
        row_sql = sql.SQL("({})").format(sql.SQL(", ").join(sql.Placeholder() for _ in self.columns))
        statement = sql.SQL("INSERT INTO {} ({}) VALUES {}").format(
            sql.Identifier(self.table),
            sql.SQL(", ").join(sql.Identifier(c) for c in self.columns),
            sql.SQL(", ").join(row_sql for _ in self.rows),
        )
        params = [value for values in self.rows for value in values]
        return statement, params


class Delete(BaseModel):
    """
    Delete every row of a table matching a predicate.
    """

    kind: Literal["delete"] = "delete"
    table: str
    predicate: Predicate

    model_config = {"frozen": True}

    def to_sql(self) -> SqlWithParams:
        where, params = self.predicate.to_sql()
        return sql.SQL("DELETE FROM {} WHERE {}").format(sql.Identifier(self.table), where), params


WriteOperation = Annotated[Union[Insert, Delete], Field(discriminator="kind")]

write_operation_adapter: TypeAdapter[WriteOperation] = TypeAdapter(WriteOperation)


__all__ = [
    "Eq",
    "In",
    "And",
    "Or",
    "Predicate",
    "Insert",
    "Delete",
    "WriteOperation",
    "write_operation_adapter",
]
