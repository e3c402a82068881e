"""
Schema models for workload tables.

Tables are declared once per workload and never mutated. A table renders its
own `CREATE TABLE` statement so the DDL sent to the system under test and the
schema the generator reasons about come from the same definition.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from psycopg import sql
from pydantic import BaseModel, Field, model_validator

Row = Mapping[str, Any]
Snapshot = Mapping[str, Sequence[Row]]


class ColumnType(str, Enum):
    INTEGER = "integer"
    TEXT = "text"


class ForeignKey(BaseModel):
    """
    Reference from a column to a column of another table.
    """

    table: str = Field(..., description="Referenced table name.")
    column: str = Field(..., description="Referenced column name.")
    on_delete_cascade: bool = Field(False, description="Delete referencing rows with the target.")

    model_config = {"frozen": True}


class Column(BaseModel):
    name: str
    type: ColumnType
    references: Optional[ForeignKey] = None
    text_prefix: Optional[str] = Field(
        None, description="Prefix for generated text values (defaults to the column name)."
    )
    value_range: Optional[Tuple[int, int]] = Field(
        None, description="Inclusive bounds for generated integers (defaults to the id domain)."
    )

    model_config = {"frozen": True}


class TableSchema(BaseModel):
    """
    Immutable definition of a single table.
    """

    name: str
    columns: Tuple[Column, ...]
    primary_key: Tuple[str, ...] = ()

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_columns(self) -> "TableSchema":
        names = [c.name for c in self.columns]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate column in table '{self.name}'")
        missing = [k for k in self.primary_key if k not in names]
        if missing:
            raise ValueError(f"Primary key columns {missing} not declared on '{self.name}'")
        return self

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    @property
    def key_columns(self) -> Tuple[str, ...]:
        """Columns identifying a row: the primary key, or every column without one."""
        return self.primary_key or self.column_names

    @property
    def foreign_keys(self) -> Dict[str, ForeignKey]:
        return {c.name: c.references for c in self.columns if c.references is not None}

    def column(self, name: str) -> Column:
        for col in self.columns:
            if col.name == name:
                return col
        raise KeyError(f"Table '{self.name}' has no column '{name}'")

    def create_table(self) -> sql.Composed:
        """Render the `CREATE TABLE` statement for this table."""
        parts = []
        for col in self.columns:
            definition = sql.SQL("{} {}").format(sql.Identifier(col.name), sql.SQL(col.type.value))
            if col.references is not None:
                definition = sql.SQL("{} REFERENCES {} ({}){}").format(
                    definition,
                    sql.Identifier(col.references.table),
                    sql.Identifier(col.references.column),
                    sql.SQL(" ON DELETE CASCADE" if col.references.on_delete_cascade else ""),
                )
            parts.append(definition)
        if self.primary_key:
            parts.append(
                sql.SQL("PRIMARY KEY ({})").format(
                    sql.SQL(", ").join(sql.Identifier(k) for k in self.primary_key)
                )
            )
        return sql.SQL("CREATE TABLE {} ({})").format(
            sql.Identifier(self.name), sql.SQL(", ").join(parts)
        )

    def drop_table(self) -> sql.Composed:
        return sql.SQL("DROP TABLE IF EXISTS {} CASCADE").format(sql.Identifier(self.name))


def rows_of(snapshot: Snapshot, table: str) -> Sequence[Row]:
    """Rows of `table` in `snapshot`; a table absent from the snapshot is empty."""
    return snapshot.get(table) or ()


__all__ = [
    "ColumnType",
    "ForeignKey",
    "Column",
    "TableSchema",
    "Row",
    "Snapshot",
    "rows_of",
]
