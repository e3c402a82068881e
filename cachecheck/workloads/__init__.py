"""
Workloads package for cachecheck.

Re-exports the workload contracts, the write generator and the registry so
drivers can import from `cachecheck.workloads` directly.
"""

from cachecheck.workloads.abstract import QueryDefinition, ResultRow, Workload, WritePolicy
from cachecheck.workloads.generator import Candidate, WriteGenerator, key_predicate
from cachecheck.workloads.recommendations import RECOMMENDATIONS_WORKLOAD
from cachecheck.workloads.registry import (
    WORKLOADS,
    available_workloads,
    get_workload,
    resolve_query,
)
from cachecheck.workloads.votes import VOTES_WORKLOAD

__all__ = [
    # Contracts
    "QueryDefinition",
    "ResultRow",
    "Workload",
    "WritePolicy",
    # Generation
    "Candidate",
    "WriteGenerator",
    "key_predicate",
    # Registry
    "WORKLOADS",
    "available_workloads",
    "get_workload",
    "resolve_query",
    # Concrete workloads
    "RECOMMENDATIONS_WORKLOAD",
    "VOTES_WORKLOAD",
]
