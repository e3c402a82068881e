"""
Infrastructure package for cachecheck.

Centralizes connectivity to the upstream database and the cache endpoint.
Keep this layer focused on I/O and resource management, decoupled from
workload and oracle logic.
"""

from cachecheck.infrastructure.db_factory import (
    PoolManager,
    build_dsn,
    get_sync_connection,
)

__all__ = [
    "PoolManager",
    "build_dsn",
    "get_sync_connection",
]
