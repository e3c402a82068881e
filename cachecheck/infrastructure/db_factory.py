"""
Database connection factory for cachecheck.

A run talks to two endpoints: the upstream database, which receives writes and
serves direct reads, and the cache endpoint, which serves cached reads. Both
are managed as psycopg connection pools keyed by endpoint name. The PoolManager
singleton closes them on exit.

Connection attempts retry transient failures using tenacity.
"""

from __future__ import annotations

import atexit
import threading
from contextlib import contextmanager
from typing import Dict, Generator, Literal, Optional

import psycopg
from psycopg import Connection
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from cachecheck.config import get_settings
from cachecheck.utils.logging import get_logger

Endpoint = Literal["upstream", "cache"]

log = get_logger(__name__)


def build_dsn(endpoint: Endpoint = "upstream") -> str:
    """Compose a DSN string for `endpoint` from settings."""
    settings = get_settings()
    return settings.cache_dsn() if endpoint == "cache" else settings.upstream_dsn()


class PoolManager:
    """
    Thread-safe singleton holding one connection pool per endpoint.
    """

    _instance: Optional["PoolManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "PoolManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._pools: Dict[str, ConnectionPool] = {}
                atexit.register(cls._instance.close_all)
            return cls._instance

    def get_pool(
        self,
        endpoint: Endpoint = "upstream",
        dsn_override: Optional[str] = None,
        min_size: int = 1,
        max_size: int = 4,
    ) -> ConnectionPool:
        """
        Get or create the pool for `endpoint`.

        Parameters
        ----------
        endpoint : "upstream" | "cache"
            Which endpoint the pool connects to.
        dsn_override : str | None
            Connect here instead of the configured DSN. Pools are keyed by DSN
            as well as endpoint so overrides never leak between callers.
        """
        dsn = dsn_override or build_dsn(endpoint)
        key = f"{endpoint}:{dsn}"
        with self._lock:
            pool = self._pools.get(key)
            if pool is None:
                log.debug("opening pool", extra={"endpoint": endpoint})
                pool = ConnectionPool(
                    conninfo=dsn,
                    min_size=min_size,
                    max_size=max_size,
                    kwargs={"autocommit": True},
                    open=True,
                )
                self._pools[key] = pool
            return pool

    @contextmanager
    def connection(
        self, endpoint: Endpoint = "upstream", dsn_override: Optional[str] = None
    ) -> Generator[Connection, None, None]:
        """
        Context manager for obtaining an autocommit connection from a pool.

        Example
        -------
            manager = PoolManager()
            with manager.connection("cache") as conn:
                conn.execute("SELECT 1")
        """
        with self.get_pool(endpoint, dsn_override).connection() as conn:
            yield conn

    def close_all(self) -> None:
        """
        Close all managed pools. Called automatically on exit via atexit.
        """
        with self._lock:
            pools, self._pools = self._pools, {}
        for key, pool in pools.items():
            try:
                pool.close()
            except psycopg.Error:
                log.warning("failed to close pool", extra={"pool": key.split(":", 1)[0]})


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(
    endpoint: Endpoint = "upstream", dsn_override: Optional[str] = None
) -> Connection:
    """
    Open a dedicated autocommit connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection
    errors. Use this for one-off operations such as a logic-test script.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(dsn_override or build_dsn(endpoint), autocommit=True)


__all__ = [
    "Endpoint",
    "PoolManager",
    "build_dsn",
    "get_sync_connection",
]
