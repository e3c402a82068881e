"""
Logic-test scripts: parse `.test` files and run them on direct and cached paths.
"""

from cachecheck.logictest.parser import (
    CreateCache,
    LogicTestScript,
    Query,
    SortMode,
    Statement,
    parse_file,
    parse_script,
)
from cachecheck.logictest.runner import (
    Executor,
    LogicTestFailure,
    LogicTestReport,
    LogicTestRunner,
    PsycopgExecutor,
)

__all__ = [
    "CreateCache",
    "LogicTestScript",
    "Query",
    "SortMode",
    "Statement",
    "parse_file",
    "parse_script",
    "Executor",
    "LogicTestFailure",
    "LogicTestReport",
    "LogicTestRunner",
    "PsycopgExecutor",
]
