"""
Registry of the workloads a driver can select by name.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import List, Mapping

from cachecheck.errors import WorkloadNotFoundError
from cachecheck.workloads.abstract import QueryDefinition, Workload
from cachecheck.workloads.recommendations import RECOMMENDATIONS_WORKLOAD
from cachecheck.workloads.votes import VOTES_WORKLOAD

WORKLOADS: Mapping[str, Workload] = MappingProxyType(
    {w.name: w for w in (VOTES_WORKLOAD, RECOMMENDATIONS_WORKLOAD)}
)


def available_workloads() -> List[str]:
    """List available workload names."""
    return sorted(WORKLOADS)


def get_workload(name: str) -> Workload:
    if name not in WORKLOADS:
        raise WorkloadNotFoundError(name, available_workloads())
    return WORKLOADS[name]


def resolve_query(workload_name: str, query_id: str) -> QueryDefinition:
    """Resolve `workload_name`/`query_id` to exactly one query definition."""
    return get_workload(workload_name).query(query_id)


__all__ = ["WORKLOADS", "available_workloads", "get_workload", "resolve_query"]
