"""
Parser for line-oriented logic-test scripts.

A script is a sequence of records separated by blank lines. `#` starts a
comment line. Supported records:

    statement ok
    <sql, one or more lines>

    statement error
    <sql>

    create cache from <query, may continue on following lines>

    query <types> [nosort|rowsort|valuesort]
    <sql>
    ? = <value>
    ----
    <one expected value per line>

Parameter values are integers when they look like integers, NULL for SQL null,
and text otherwise (surrounding single quotes are stripped).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

from cachecheck.errors import LogicTestParseError

_PARAM_RE = re.compile(r"^\?\s*=\s*(.*)$")
_TYPES_RE = re.compile(r"^[ITRB]+$")
_CREATE_CACHE = "create cache from"


class SortMode(str, Enum):
    NOSORT = "nosort"
    ROWSORT = "rowsort"
    VALUESORT = "valuesort"


@dataclass(frozen=True)
class Statement:
    sql: str
    line: int
    expect_error: bool = False


@dataclass(frozen=True)
class CreateCache:
    query: str
    line: int


@dataclass(frozen=True)
class Query:
    sql: str
    line: int
    types: str
    sort_mode: SortMode
    params: Tuple[Any, ...]
    expected: Tuple[str, ...]

    @property
    def width(self) -> int:
        return len(self.types)


Record = Union[Statement, CreateCache, Query]


@dataclass(frozen=True)
class LogicTestScript:
    path: Optional[str]
    records: Tuple[Record, ...]


def parse_value(text: str) -> Any:
    text = text.strip()
    if text.upper() == "NULL":
        return None
    if re.fullmatch(r"-?\d+", text):
        return int(text)
    if len(text) >= 2 and text[0] == text[-1] == "'":
        return text[1:-1]
    return text


def _blocks(lines: List[str]) -> List[Tuple[int, List[str]]]:
    """Group non-comment lines into blank-line separated blocks with their first line number."""
    blocks: List[Tuple[int, List[str]]] = []
    current: List[str] = []
    start = 0
    for number, raw in enumerate(lines, 1):
        line = raw.rstrip("\n").rstrip()
        if line.lstrip().startswith("#"):
            continue
        if not line.strip():
            if current:
                blocks.append((start, current))
                current = []
            continue
        if not current:
            start = number
        current.append(line)
    if current:
        blocks.append((start, current))
    return blocks


def _parse_query(header: str, body: List[str], line: int, path: Optional[str]) -> Query:
    parts = header.split()
    if len(parts) < 2 or not _TYPES_RE.match(parts[1]):
        raise LogicTestParseError(f"malformed query header '{header}'", path, line)
    try:
        sort_mode = SortMode(parts[2]) if len(parts) > 2 else SortMode.NOSORT
    except ValueError:
        raise LogicTestParseError(f"unknown sort mode '{parts[2]}'", path, line) from None
    if "----" not in body:
        raise LogicTestParseError("query record has no '----' separator", path, line)
    split = body.index("----")
    sql_lines: List[str] = []
    params: List[Any] = []
    for text in body[:split]:
        match = _PARAM_RE.match(text.strip())
        if match:
            params.append(parse_value(match.group(1)))
        elif params:
            raise LogicTestParseError("SQL text after parameter bindings", path, line)
        else:
            sql_lines.append(text)
    if not sql_lines:
        raise LogicTestParseError("query record has no SQL", path, line)
    expected = tuple(v.strip() for v in body[split + 1 :])
    width = len(parts[1])
    if len(expected) % width:
        raise LogicTestParseError(
            f"{len(expected)} expected values do not fill rows of {width} columns", path, line
        )
    return Query(
        sql="\n".join(sql_lines),
        line=line,
        types=parts[1],
        sort_mode=sort_mode,
        params=tuple(params),
        expected=expected,
    )


def parse_script(text: str, path: Optional[str] = None) -> LogicTestScript:
    records: List[Record] = []
    for line, block in _blocks(text.splitlines()):
        header = block[0].strip()
        lowered = header.lower()
        if lowered in ("statement ok", "statement error"):
            if len(block) < 2:
                raise LogicTestParseError("statement record has no SQL", path, line)
            records.append(
                Statement(
                    sql="\n".join(block[1:]),
                    line=line,
                    expect_error=lowered == "statement error",
                )
            )
        elif lowered.startswith(_CREATE_CACHE):
            query = "\n".join([header[len(_CREATE_CACHE) :].strip(), *block[1:]]).strip()
            if not query:
                raise LogicTestParseError("create cache record has no query", path, line)
            records.append(CreateCache(query=query, line=line))
        elif lowered.startswith("query"):
            records.append(_parse_query(header, block[1:], line, path))
        else:
            raise LogicTestParseError(f"unknown directive '{header}'", path, line)
    return LogicTestScript(path=path, records=tuple(records))


def parse_file(path: Path | str) -> LogicTestScript:
    path = Path(path)
    return parse_script(path.read_text(encoding="utf-8"), str(path))


__all__ = [
    "SortMode",
    "Statement",
    "CreateCache",
    "Query",
    "Record",
    "LogicTestScript",
    "parse_value",
    "parse_script",
    "parse_file",
]
