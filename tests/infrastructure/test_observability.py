"""Structured Logging — JSON formatter output and idempotent setup."""

import json
import logging

from marketsync.infrastructure.observability import JSONFormatter, setup_logging


def test_json_formatter_includes_sync_extras():
    record = logging.LogRecord("marketsync.sync", logging.INFO, __file__, 1, "window done", None, None)
    record.stream = "transfer"
    record.from_block = 10
    record.to_block = 20
    payload = json.loads(JSONFormatter().format(record))
    assert payload["message"] == "window done"
    assert payload["level"] == "INFO"
    assert payload["stream"] == "transfer"
    assert (payload["from_block"], payload["to_block"]) == (10, 20)
    assert "token_id" not in payload


def test_setup_logging_does_not_stack_handlers():
    setup_logging("INFO", "json")
    setup_logging("DEBUG", "text")
    names = [h.get_name() for h in logging.root.handlers]
    assert names.count("marketsync") == 1
    assert logging.root.level == logging.DEBUG
