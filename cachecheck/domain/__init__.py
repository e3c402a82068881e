"""
Domain package for cachecheck.

Exports table schemas, write operations and the in-memory mirror helpers.
Keep this package free of I/O; everything here is a pure function of its
arguments.
"""

from cachecheck.domain.mirror import apply_write, check_references, empty_snapshot
from cachecheck.domain.operations import (
    And,
    Delete,
    Eq,
    In,
    Insert,
    Or,
    Predicate,
    WriteOperation,
    write_operation_adapter,
)
from cachecheck.domain.schema import Column, ColumnType, ForeignKey, Row, Snapshot, TableSchema

__all__ = [
    # Schema
    "Column",
    "ColumnType",
    "ForeignKey",
    "Row",
    "Snapshot",
    "TableSchema",
    # Operations
    "And",
    "Delete",
    "Eq",
    "In",
    "Insert",
    "Or",
    "Predicate",
    "WriteOperation",
    "write_operation_adapter",
    # Mirror
    "apply_write",
    "check_references",
    "empty_snapshot",
]
