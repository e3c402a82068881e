"""
Exception hierarchy for cachecheck.

Lookup failures are recoverable by the caller and subclass LookupError.
Snapshot inconsistencies indicate a driver or generator bug and subclass
AssertionError so they are never mistaken for a recoverable condition.
"""

from __future__ import annotations


class CacheCheckError(Exception):
    """Base class for all cachecheck errors."""


class WorkloadNotFoundError(CacheCheckError, LookupError):
    def __init__(self, name: str, available: list[str]) -> None:
        self.name = name
        self.available = available
        super().__init__(f"Unknown workload '{name}'. Available: {', '.join(available)}")


class QueryNotFoundError(CacheCheckError, LookupError):
    def __init__(self, workload: str, query_id: str, available: list[str]) -> None:
        self.workload = workload
        self.query_id = query_id
        super().__init__(
            f"Workload '{workload}' has no query '{query_id}'. Available: {', '.join(available)}"
        )


class GeneratorExhaustedError(CacheCheckError):
    """Raised when no write operation is available for a snapshot."""


class SnapshotInconsistencyError(CacheCheckError, AssertionError):
    """A snapshot references rows that do not exist."""


class MirrorIntegrityError(CacheCheckError):
    """A write would violate a primary key in the mirror."""


class LogicTestParseError(CacheCheckError):
    def __init__(self, message: str, path: str | None = None, line: int | None = None) -> None:
        self.path = path
        self.line = line
        location = f"{path or '<string>'}:{line}" if line is not None else (path or "<string>")
        super().__init__(f"{location}: {message}")


__all__ = [
    "CacheCheckError",
    "WorkloadNotFoundError",
    "QueryNotFoundError",
    "GeneratorExhaustedError",
    "SnapshotInconsistencyError",
    "MirrorIntegrityError",
    "LogicTestParseError",
]
