"""
Reference driver: runs a workload against an upstream database and a cache.

The driver owns the only accumulated state, an in-memory mirror of every row it
has successfully written. Each iteration it:

1. asks the workload for one write against the current mirror,
2. executes the write upstream, applying it to the mirror only if it commits,
3. reads every query through the cache endpoint and compares the rows with the
   oracle's answer for the mirror.

Cache reads are retried for a bounded window because the cache may lag behind
upstream; a query still disagreeing after the last attempt is a failed check.

Usage (example from CLI):
    from cachecheck.driver import run_workload

    summary = run_workload("votes", iterations=50)

Outputs are saved to `results/` by default:
- `results/latest.json` (last run)
- `results/run-<timestamp>.json` (timestamped archive)
"""

from __future__ import annotations

import json
import random
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, TypedDict

import psycopg
from psycopg import Connection, sql
from tenacity import Retrying, retry_if_result, stop_after_attempt, wait_fixed

from cachecheck.config import get_settings
from cachecheck.domain.mirror import apply_write, empty_snapshot
from cachecheck.domain.operations import WriteOperation
from cachecheck.domain.schema import Snapshot
from cachecheck.infrastructure.db_factory import PoolManager
from cachecheck.utils.logging import get_logger
from cachecheck.workloads.abstract import QueryDefinition, ResultRow, Workload
from cachecheck.workloads.registry import get_workload

log = get_logger(__name__)


class CheckResult(TypedDict):
    """Outcome of comparing one cached read with the oracle."""

    iteration: int
    query_id: str
    ok: bool
    attempts: int
    expected: List[ResultRow]
    actual: List[ResultRow]


class RunSummary(TypedDict):
    workload: str
    iterations: int
    writes_applied: int
    writes_rejected: int
    checks: int
    failures: int
    failed_checks: List[CheckResult]


def setup_schema(conn: Connection, workload: Workload) -> None:
    """Drop and recreate the workload's tables, referenced tables first."""
    for table in reversed(workload.tables):
        conn.execute(table.drop_table())
    for table in workload.tables:
        conn.execute(table.create_table())
    log.info("schema created", extra={"workload": workload.name, "tables": len(workload.tables)})


def create_caches(conn: Connection, workload: Workload) -> None:
    """Issue `CREATE CACHE FROM <query>` for every query of the workload."""
    for query in workload.queries.values():
        # Placeholders stay unbound; the cache keys on them.
        text = query.sql.replace("%s", "?")
        conn.execute(sql.SQL("CREATE CACHE FROM {}").format(sql.SQL(text)))
        log.info("cache created", extra={"query_id": query.query_id})


def execute_write(conn: Connection, op: WriteOperation) -> bool:
    """
    Execute `op` upstream in its own transaction.

    Returns False when the database rejects the write with an integrity error
    (e.g. a generated primary key collided); any other error propagates.
    """
    statement, params = op.to_sql()
    try:
        with conn.transaction():
            conn.execute(statement, params)
    except psycopg.errors.IntegrityError as exc:
        log.warning(
            "write rejected",
            extra={"kind": op.kind, "table": op.table, "error": str(exc).strip()},
        )
        return False
    return True


def fetch_rows(
    conn: Connection, query: QueryDefinition, params: Sequence[Any]
) -> List[ResultRow]:
    with conn.cursor() as cur:
        cur.execute(query.sql, tuple(params))
        names = [d.name for d in cur.description or ()]
        return [dict(zip(names, row)) for row in cur.fetchall()]


def check_query(
    conn: Connection,
    query: QueryDefinition,
    snapshot: Snapshot,
    workload: Workload,
    iteration: int,
    attempts: int,
    wait_seconds: float,
) -> CheckResult:
    """Read `query` through `conn` until it matches the oracle or attempts run out."""
    params = query.default_params
    expected = workload.expected(query.query_id, snapshot, params)

    def read() -> Tuple[bool, List[ResultRow]]:
        actual = fetch_rows(conn, query, params)
        return query.matches(expected, actual), actual

    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(wait_seconds),
        retry=retry_if_result(lambda outcome: not outcome[0]),
        retry_error_callback=lambda state: state.outcome.result(),
    )
    ok, actual = retrying(read)
    used = retrying.statistics.get("attempt_number", 1)
    if not ok:
        log.error(
            "cached read diverged from oracle",
            extra={"query_id": query.query_id, "iteration": iteration, "attempts": used},
        )
    return CheckResult(
        iteration=iteration,
        query_id=query.query_id,
        ok=ok,
        attempts=used,
        expected=expected,
        actual=actual,
    )


def _persist_results(payload: dict, results_dir: Path) -> None:
    results_dir.mkdir(parents=True, exist_ok=True)
    latest_path = results_dir / "latest.json"
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    archive_path = results_dir / f"run-{timestamp}.json"

    for path in (latest_path, archive_path):
        with path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, sort_keys=True, default=str)

    log.info("Results persisted", extra={"latest": str(latest_path), "archive": str(archive_path)})


def run_workload(
    workload_name: str,
    iterations: Optional[int] = None,
    rng: Optional[random.Random] = None,
    results_dir: Path | str | None = None,
    persist: bool = True,
    upstream_dsn: Optional[str] = None,
    cache_dsn: Optional[str] = None,
) -> RunSummary:
    """
    Drive `workload_name` for `iterations` writes and check every query after each.

    Parameters
    ----------
    workload_name : str
        Registered workload to run.
    iterations : int | None
        Number of writes. Defaults to settings.iterations.
    rng : random.Random | None
        Random source for the generator; pass a seeded one for reproducible runs.
    results_dir : Path | str | None
        Directory for JSON artifacts. Defaults to settings.results_dir.
    persist : bool
        Whether to write results to disk.
    upstream_dsn, cache_dsn : str | None
        Override the configured endpoints.

    Raises
    ------
    WorkloadNotFoundError
        If `workload_name` is not registered.
    GeneratorExhaustedError
        If the workload has no valid write for the current mirror.
    """
    settings = get_settings()
    workload = get_workload(workload_name)
    total = settings.iterations if iterations is None else iterations
    generator = workload.generator(rng=rng)
    manager = PoolManager()

    mirror: Snapshot = empty_snapshot(workload.tables)
    checks: List[CheckResult] = []
    applied = rejected = 0

    with manager.connection("upstream", upstream_dsn) as upstream, manager.connection(
        "cache", cache_dsn
    ) as cache:
        setup_schema(upstream, workload)
        if settings.create_caches:
            create_caches(cache, workload)

        for iteration in range(1, total + 1):
            op = generator.generate(mirror)
            try:
                committed = execute_write(upstream, op)
            except psycopg.Error:
                log.exception(
                    f"[ITERATION {iteration}/{total}] write failed",
                    extra={"kind": op.kind, "table": op.table},
                )
                raise
            if committed:
                mirror = apply_write(workload.tables, mirror, op)
                applied += 1
            else:
                rejected += 1

            for query in workload.queries.values():
                checks.append(
                    check_query(
                        cache,
                        query,
                        mirror,
                        workload,
                        iteration,
                        settings.read_retry_attempts,
                        settings.read_retry_wait_seconds,
                    )
                )
            log.debug(
                f"[ITERATION {iteration}/{total}] complete",
                extra={"kind": op.kind, "table": op.table, "committed": committed},
            )

    failed = [c for c in checks if not c["ok"]]
    summary = RunSummary(
        workload=workload.name,
        iterations=total,
        writes_applied=applied,
        writes_rejected=rejected,
        checks=len(checks),
        failures=len(failed),
        failed_checks=failed,
    )

    if persist:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **summary,
        }
        _persist_results(payload, Path(results_dir or settings.results_dir))

    log.info(
        f"[RUN COMPLETE] {workload.name}",
        extra={"checks": len(checks), "failures": len(failed), "writes_applied": applied},
    )
    return summary


__all__ = [
    "CheckResult",
    "RunSummary",
    "setup_schema",
    "create_caches",
    "execute_write",
    "fetch_rows",
    "check_query",
    "run_workload",
]
