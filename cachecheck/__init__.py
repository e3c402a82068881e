"""
cachecheck - consistency testing for a query cache in front of a SQL database.

The package pairs two pure components with the tooling that drives them:

- Write generation: random, referentially valid inserts and deletes for a
  workload's schema, computed from a snapshot of current rows
- Result oracles: the exact rows a workload query must return for a snapshot,
  computed without touching the system under test

Around them sit a reference driver that mirrors writes and compares cached
reads against the oracle, and a runner for line-oriented logic-test scripts.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from cachecheck.config import Settings, get_settings
from cachecheck.domain import (
    Delete,
    Insert,
    Snapshot,
    TableSchema,
    WriteOperation,
    apply_write,
    check_references,
)
from cachecheck.errors import (
    CacheCheckError,
    GeneratorExhaustedError,
    QueryNotFoundError,
    SnapshotInconsistencyError,
    WorkloadNotFoundError,
)
from cachecheck.utils.logging import configure_logging, get_logger
from cachecheck.workloads import (
    QueryDefinition,
    Workload,
    WriteGenerator,
    available_workloads,
    get_workload,
    resolve_query,
)

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "Delete",
    "Insert",
    "Snapshot",
    "TableSchema",
    "WriteOperation",
    "apply_write",
    "check_references",
    # Errors
    "CacheCheckError",
    "GeneratorExhaustedError",
    "QueryNotFoundError",
    "SnapshotInconsistencyError",
    "WorkloadNotFoundError",
    # Workloads
    "QueryDefinition",
    "Workload",
    "WriteGenerator",
    "available_workloads",
    "get_workload",
    "resolve_query",
    # Logging
    "configure_logging",
    "get_logger",
]
