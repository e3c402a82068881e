"""
Pytest configuration for cachecheck.

Provides fixtures for:
- Seeded random sources and sample snapshots
- In-memory SQLite databases used to evaluate workload SQL and logic tests
- Settings and Postgres connectivity for integration tests
"""

from __future__ import annotations

import os
import random
import sqlite3
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Sequence, Tuple

import psycopg
import pytest

from cachecheck.config import Settings
from cachecheck.domain.schema import Snapshot
from cachecheck.workloads.abstract import QueryDefinition, ResultRow, Workload

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class SqliteExecutor:
    """Logic-test executor over a sqlite3 connection; records cache creation."""

    def __init__(self, conn: sqlite3.Connection, name: str) -> None:
        self.conn = conn
        self.name = name
        self.caches: List[str] = []

    def execute(self, sql: str, params: Sequence[Any] = ()) -> Optional[List[Tuple[Any, ...]]]:
        cur = self.conn.execute(sql, tuple(params))
        if cur.description is None:
            self.conn.commit()
            return None
        return [tuple(row) for row in cur.fetchall()]

    def create_cache(self, query: str) -> None:
        self.caches.append(query)


def load_sqlite(workload: Workload, snapshot: Snapshot) -> sqlite3.Connection:
    """Create the workload's tables in a fresh in-memory SQLite database and load `snapshot`."""
    conn = sqlite3.connect(":memory:")
    for table in workload.tables:
        conn.execute(f"CREATE TABLE {table.name} ({', '.join(table.column_names)})")
        rows = snapshot.get(table.name) or []
        if rows:
            placeholders = ", ".join("?" for _ in table.column_names)
            conn.executemany(
                f"INSERT INTO {table.name} VALUES ({placeholders})",
                [tuple(row[c] for c in table.column_names) for row in rows],
            )
    conn.commit()
    return conn


def run_sqlite(
    conn: sqlite3.Connection, query: QueryDefinition, params: Sequence[Any] = ()
) -> List[ResultRow]:
    cur = conn.execute(query.sql.replace("%s", "?"), tuple(params))
    names = [d[0] for d in cur.description]
    return [dict(zip(names, row)) for row in cur.fetchall()]


@pytest.fixture
def sqlite_loader():
    return load_sqlite


@pytest.fixture
def sqlite_runner():
    return run_sqlite


@pytest.fixture
def sqlite_executor():
    return SqliteExecutor


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def votes_snapshot() -> Dict[str, List[Dict[str, Any]]]:
    return {
        "stories": [{"id": 1, "title": "a"}, {"id": 2, "title": "b"}],
        "votes": [{"story_id": 1, "user_id": 1}, {"story_id": 1, "user_id": 2}],
    }


@pytest.fixture
def sqlite_conn() -> Generator[sqlite3.Connection, None, None]:
    conn = sqlite3.connect(":memory:")
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def logictest_fixture() -> Path:
    return FIXTURES_DIR / "logictests" / "articles_recommendations.test"


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "cachecheck"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    return test_settings.upstream_dsn()


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            conn.execute("SELECT 1;").fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture
def pg_dsn(test_dsn: str, db_connection_available: bool) -> str:
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")
    return test_dsn
