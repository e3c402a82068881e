from __future__ import annotations

import json
import logging

from cachecheck.utils.logging import ConsoleFormatter, _json_formatter, configure_logging

EXPECTED_ROWS = 3
EXPECTED_ATTEMPTS = 2


def _record(msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_json_formatter_promotes_standard_extra_fields() -> None:
    record = _record()
    record.rows = EXPECTED_ROWS
    record.table = "votes"

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "hello"
    assert payload["rows"] == EXPECTED_ROWS
    assert payload["table"] == "votes"


def test_json_formatter_supports_legacy_nested_extra_field() -> None:
    record = _record()
    record.extra = {"attempts": EXPECTED_ATTEMPTS}

    payload = json.loads(_json_formatter(record))

    assert payload["attempts"] == EXPECTED_ATTEMPTS
    assert "extra" not in payload


def test_console_formatter_appends_sorted_fields() -> None:
    record = _record("write applied")
    record.table = "stories"
    record.kind = "insert"

    line = ConsoleFormatter("%(levelname)s %(message)s").format(record)

    assert line == "INFO write applied | kind=insert table=stories"


def test_configure_logging_without_force_keeps_existing_handlers() -> None:
    root = logging.getLogger()
    sentinel = logging.NullHandler()
    saved = root.handlers[:]
    root.handlers = [sentinel]
    try:
        configure_logging(level="DEBUG", force=False)
        assert root.handlers == [sentinel]
    finally:
        root.handlers = saved
