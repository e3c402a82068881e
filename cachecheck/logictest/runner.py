"""
Runner for parsed logic-test scripts.

Statements execute once, on the direct path: in a real deployment the cache
forwards writes upstream, so running them on both paths would apply them
twice. `create cache from` records go to the cache path only. Queries run on
the direct path and, when a cache path is configured, again on the cache path;
both outputs must match the script's expected block.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional, Protocol, Sequence, Tuple

from psycopg import Connection

from cachecheck.logictest.parser import CreateCache, LogicTestScript, Query, SortMode, Statement
from cachecheck.utils.logging import get_logger

log = get_logger(__name__)

ResultTuples = List[Tuple[Any, ...]]


class Executor(Protocol):
    """One path to the database under test."""

    name: str

    def execute(self, sql: str, params: Sequence[Any] = ()) -> Optional[ResultTuples]:
        """Run `sql` with `?` placeholders; return rows for queries, None otherwise."""
        ...

    def create_cache(self, query: str) -> None:
        ...


def to_pyformat(sql: str) -> str:
    """Rewrite `?` placeholders outside string literals as psycopg `%s`."""
    out: List[str] = []
    quoted = False
    for ch in sql:
        if ch == "'":
            quoted = not quoted
            out.append(ch)
        elif ch == "%":
            out.append("%%")
        elif ch == "?" and not quoted:
            out.append("%s")
        else:
            out.append(ch)
    return "".join(out)


class PsycopgExecutor:
    """Executor over an autocommit psycopg connection."""

    def __init__(self, conn: Connection, name: str) -> None:
        self.conn = conn
        self.name = name

    def execute(self, sql: str, params: Sequence[Any] = ()) -> Optional[ResultTuples]:
        with self.conn.cursor() as cur:
            if params:
                cur.execute(to_pyformat(sql), tuple(params))
            else:
                cur.execute(sql)
            if cur.description is None:
                return None
            return [tuple(row) for row in cur.fetchall()]

    def create_cache(self, query: str) -> None:
        self.conn.execute(f"CREATE CACHE FROM {query}")


def render_value(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (float, Decimal)):
        return f"{value:.3f}"
    if value == "":
        return "(empty)"
    return str(value)


def sort_values(rows: Sequence[Sequence[Any]], mode: SortMode) -> List[str]:
    """Render `rows` to text and flatten them in the order `mode` prescribes."""
    rendered = [[render_value(v) for v in row] for row in rows]
    if mode is SortMode.ROWSORT:
        rendered.sort()
    flat = [v for row in rendered for v in row]
    if mode is SortMode.VALUESORT:
        flat.sort()
    return flat


def _expected_values(record: Query) -> List[str]:
    """Expected block in the record's sort mode; rowsort applies to it too."""
    width = record.width
    rows = [list(record.expected[i : i + width]) for i in range(0, len(record.expected), width)]
    if record.sort_mode is SortMode.ROWSORT:
        rows.sort()
    flat = [v for row in rows for v in row]
    if record.sort_mode is SortMode.VALUESORT:
        flat.sort()
    return flat


@dataclass
class LogicTestFailure:
    line: int
    path: str
    message: str
    expected: List[str] = field(default_factory=list)
    actual: List[str] = field(default_factory=list)


@dataclass
class LogicTestReport:
    script: Optional[str]
    records_run: int = 0
    failures: List[LogicTestFailure] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.failures


class LogicTestRunner:
    """
    Executes a script against a direct path and an optional cache path.
    """

    def __init__(self, direct: Executor, cache: Optional[Executor] = None) -> None:
        self.direct = direct
        self.cache = cache

    def run(self, script: LogicTestScript) -> LogicTestReport:
        report = LogicTestReport(script=script.path)
        for record in script.records:
            report.records_run += 1
            if isinstance(record, Statement):
                self._run_statement(record, report)
            elif isinstance(record, CreateCache):
                self._run_create_cache(record, report)
            else:
                self._run_query(record, self.direct, report)
                if self.cache is not None:
                    self._run_query(record, self.cache, report)
        log.info(
            "logic test finished",
            extra={
                "script": script.path,
                "records": report.records_run,
                "failures": len(report.failures),
            },
        )
        return report

    def _run_statement(self, record: Statement, report: LogicTestReport) -> None:
        try:
            self.direct.execute(record.sql)
        except Exception as exc:  # noqa: BLE001 - driver errors vary by backend
            if not record.expect_error:
                report.failures.append(
                    LogicTestFailure(record.line, self.direct.name, f"statement failed: {exc}")
                )
            return
        if record.expect_error:
            report.failures.append(
                LogicTestFailure(record.line, self.direct.name, "statement succeeded, expected error")
            )

    def _run_create_cache(self, record: CreateCache, report: LogicTestReport) -> None:
        if self.cache is None:
            log.debug("no cache path; skipping create cache", extra={"line": record.line})
            return
        try:
            self.cache.create_cache(record.query)
        except Exception as exc:  # noqa: BLE001 - driver errors vary by backend
            report.failures.append(
                LogicTestFailure(record.line, self.cache.name, f"create cache failed: {exc}")
            )

    def _run_query(self, record: Query, executor: Executor, report: LogicTestReport) -> None:
        expected = _expected_values(record)
        try:
            rows = executor.execute(record.sql, record.params) or []
        except Exception as exc:  # noqa: BLE001 - driver errors vary by backend
            report.failures.append(
                LogicTestFailure(record.line, executor.name, f"query failed: {exc}", expected)
            )
            return
        bad_width = [row for row in rows if len(row) != record.width]
        if bad_width:
            report.failures.append(
                LogicTestFailure(
                    record.line,
                    executor.name,
                    f"expected {record.width} columns, got {len(bad_width[0])}",
                    expected,
                )
            )
            return
        actual = sort_values(rows, record.sort_mode)
        if actual != expected:
            log.warning(
                "query result mismatch",
                extra={"line": record.line, "path": executor.name, "script": report.script},
            )
            report.failures.append(
                LogicTestFailure(record.line, executor.name, "result mismatch", expected, actual)
            )


__all__ = [
    "Executor",
    "PsycopgExecutor",
    "LogicTestFailure",
    "LogicTestReport",
    "LogicTestRunner",
    "render_value",
    "sort_values",
    "to_pyformat",
]
