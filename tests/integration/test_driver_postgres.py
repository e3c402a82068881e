"""
Integration tests for the reference driver and logic-test runner.

These tests run against a real PostgreSQL instance used as both the upstream
and the "cache" endpoint, so every cached read must match the oracle on the
first attempt.

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os
import random

import psycopg
import pytest

from cachecheck.driver import run_workload
from cachecheck.logictest.parser import parse_file
from cachecheck.logictest.runner import LogicTestRunner, PsycopgExecutor
from cachecheck.workloads.registry import available_workloads, get_workload

DEFAULT_ITERATIONS = 40
DEFAULT_SEED = 123

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and reachable Postgres",
)


@pytest.fixture
def clean_tables(pg_dsn: str):
    def drop() -> None:
        with psycopg.connect(pg_dsn, autocommit=True) as conn:
            for name in available_workloads():
                for table in reversed(get_workload(name).tables):
                    conn.execute(table.drop_table())

    drop()
    yield
    drop()


@pytest.mark.parametrize("workload", available_workloads())
def test_direct_reads_always_match_oracle(workload: str, pg_dsn: str, clean_tables, tmp_path):
    summary = run_workload(
        workload,
        iterations=DEFAULT_ITERATIONS,
        rng=random.Random(DEFAULT_SEED),
        results_dir=tmp_path,
        upstream_dsn=pg_dsn,
        cache_dsn=pg_dsn,
    )

    assert summary["iterations"] == DEFAULT_ITERATIONS
    assert summary["writes_applied"] + summary["writes_rejected"] == DEFAULT_ITERATIONS
    assert summary["failures"] == 0, summary["failed_checks"][:1]
    assert summary["checks"] == DEFAULT_ITERATIONS * len(get_workload(workload).queries)
    assert (tmp_path / "latest.json").exists()


def test_small_id_domain_rejections_keep_mirror_in_sync(pg_dsn: str, clean_tables, monkeypatch):
    monkeypatch.setenv("ID_DOMAIN_SIZE", "4")
    from cachecheck.config import get_settings

    get_settings.cache_clear()
    try:
        summary = run_workload(
            "votes",
            iterations=DEFAULT_ITERATIONS,
            rng=random.Random(DEFAULT_SEED),
            persist=False,
            upstream_dsn=pg_dsn,
            cache_dsn=pg_dsn,
        )
    finally:
        get_settings.cache_clear()

    assert summary["writes_rejected"] > 0
    assert summary["failures"] == 0


def test_logictest_fixture_on_postgres(pg_dsn: str, clean_tables, logictest_fixture):
    with psycopg.connect(pg_dsn, autocommit=True) as conn:
        report = LogicTestRunner(PsycopgExecutor(conn, "direct")).run(parse_file(logictest_fixture))

    assert report.passed, report.failures
