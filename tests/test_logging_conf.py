from __future__ import annotations

import json
import logging

import pytest

from filedrop.logging_conf import JsonFormatter, TextFormatter, _make_stream_handler


def _record(level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord("filedrop.service.ledger", level, __file__, 1, "%s -> #%d", ("10.0.0.1", 2), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_merges_extras():
    line = JsonFormatter().format(_record(event="client_hit", count=2))
    payload = json.loads(line)
    assert payload["message"] == "10.0.0.1 -> #2"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "filedrop.service.ledger"
    assert payload["event"] == "client_hit"
    assert payload["count"] == 2
    assert "ts" in payload


def test_text_formatter():
    assert TextFormatter().format(_record()).endswith("] 10.0.0.1 -> #2")
    assert "WARNING filedrop.service.ledger: 10.0.0.1 -> #2" in TextFormatter().format(_record(logging.WARNING))


def test_unknown_format_is_rejected():
    with pytest.raises(ValueError):
        _make_stream_handler(logging.INFO, "xml")
