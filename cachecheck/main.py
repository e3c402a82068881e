from __future__ import annotations

import json
import random
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

import typer

from cachecheck.config import get_settings
from cachecheck.domain.mirror import apply_write, empty_snapshot
from cachecheck.errors import CacheCheckError, MirrorIntegrityError
from cachecheck.utils.logging import configure_logging

app = typer.Typer(help="Cache consistency workloads, oracles and logic tests.")


def _setup_logging() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)


def _fail(exc: Exception, code: int = 2) -> NoReturn:
    typer.echo(str(exc), err=True)
    raise typer.Exit(code=code)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"upstream={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"cache={settings.cache_host or settings.db_host}:{settings.cache_port or settings.db_port} | "
        f"id_domain={settings.id_domain_size} max_insert_rows={settings.max_insert_rows} "
        f"iterations={settings.iterations}"
    )


@app.command()
def workloads() -> None:
    """
    List registered workloads and their queries.
    """
    from cachecheck.workloads.registry import WORKLOADS

    for name in sorted(WORKLOADS):
        workload = WORKLOADS[name]
        typer.echo(f"{name}: {workload.description}")
        for query_id in sorted(workload.queries):
            typer.echo(f"  - {query_id}")


@app.command()
def generate(
    workload: str = typer.Argument(..., help="Workload name."),
    count: int = typer.Option(10, "--count", "-n", help="Number of writes to generate."),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for reproducible output."),
) -> None:
    """
    Generate writes against an in-memory mirror and print them as JSON lines.
    """
    from cachecheck.workloads.registry import get_workload

    _setup_logging()
    try:
        selected = get_workload(workload)
    except CacheCheckError as exc:
        _fail(exc)
    generator = selected.generator(rng=random.Random(seed))
    mirror = empty_snapshot(selected.tables)
    for _ in range(count):
        op = generator.generate(mirror)
        typer.echo(op.model_dump_json())
        try:
            mirror = apply_write(selected.tables, mirror, op)
        except MirrorIntegrityError as exc:
            typer.echo(f"# rejected: {exc}", err=True)


@app.command()
def expected(
    workload: str = typer.Argument(..., help="Workload name."),
    query_id: str = typer.Argument(..., help="Query id within the workload."),
    snapshot: Path = typer.Option(
        ..., "--snapshot", "-s", exists=True, dir_okay=False, help="JSON file: table -> rows."
    ),
    param: Optional[List[str]] = typer.Option(
        None, "--param", "-p", help="Query parameter (repeatable); defaults to the query's own."
    ),
) -> None:
    """
    Print the oracle's expected rows for a query over a JSON snapshot.
    """
    from cachecheck.logictest.parser import parse_value
    from cachecheck.workloads.registry import get_workload

    params = [parse_value(p) for p in param] if param else None
    try:
        rows = json.loads(snapshot.read_text(encoding="utf-8"))
        result = get_workload(workload).expected(query_id, rows, params)
    except (CacheCheckError, json.JSONDecodeError, ValueError) as exc:
        _fail(exc)
    typer.echo(json.dumps(result, indent=2))


@app.command()
def run(
    workload: str = typer.Argument(..., help="Workload name."),
    iterations: Optional[int] = typer.Option(
        None, "--iterations", "-i", help="Override number of writes (default from settings)."
    ),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed the write generator."),
) -> None:
    """
    Run a workload against the upstream database and check reads through the cache.
    """
    from cachecheck.driver import run_workload
    from cachecheck.reporter import print_run_summary

    _setup_logging()
    rng = random.Random(seed) if seed is not None else None
    try:
        summary = run_workload(workload, iterations=iterations, rng=rng)
    except CacheCheckError as exc:
        _fail(exc)
    print_run_summary(summary)
    if summary["failures"]:
        raise typer.Exit(code=1)


@app.command()
def logictest(
    paths: List[Path] = typer.Argument(..., exists=True, help="`.test` scripts to run."),
    cache: bool = typer.Option(True, "--cache/--no-cache", help="Also run queries via the cache."),
) -> None:
    """
    Run logic-test scripts against the upstream database and the cache endpoint.
    """
    from cachecheck.infrastructure.db_factory import get_sync_connection
    from cachecheck.logictest.parser import parse_file
    from cachecheck.logictest.runner import LogicTestRunner, PsycopgExecutor
    from cachecheck.reporter import print_logictest_reports

    _setup_logging()
    try:
        scripts = [parse_file(p) for p in paths]
    except CacheCheckError as exc:
        _fail(exc)

    reports = []
    with get_sync_connection("upstream") as direct_conn:
        direct = PsycopgExecutor(direct_conn, "direct")
        if cache:
            with get_sync_connection("cache") as cache_conn:
                runner = LogicTestRunner(direct, PsycopgExecutor(cache_conn, "cache"))
                reports = [runner.run(s) for s in scripts]
        else:
            runner = LogicTestRunner(direct)
            reports = [runner.run(s) for s in scripts]

    print_logictest_reports(reports)
    if any(not r.passed for r in reports):
        raise typer.Exit(code=1)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
