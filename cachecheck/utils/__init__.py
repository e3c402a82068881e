"""
Utilities package for cachecheck.

Shared cross-cutting helpers. Keep this package free of workload logic.
"""

from cachecheck.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
