from __future__ import annotations

import json
import logging

from dealflow.core.logging import LogContext, log_extra
from dealflow.core import logging_config
from dealflow.core.logging_config import JsonFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("dealflow.test", logging.INFO, __file__, 1, "deal.moved", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_merges_structured_context():
    extra = log_extra("deal.moved", LogContext(owner_id=1, deal_id=5, stage_id=2), token=3)

    payload = json.loads(JsonFormatter().format(_record(**extra)))

    assert payload["event"] == "deal.moved"
    assert payload["owner_id"] == 1
    assert payload["deal_id"] == 5
    assert payload["stage_id"] == 2
    assert payload["token"] == 3
    assert "operation" not in payload


def test_json_formatter_without_context():
    payload = json.loads(JsonFormatter().format(_record()))

    assert payload["message"] == "deal.moved"
    assert payload["level"] == "INFO"
    assert "event" not in payload


def test_context_cannot_overwrite_formatter_fields():
    extra = {"event": "deal.moved", "context": {"level": "CRITICAL", "message": "spoofed", "deal_id": 5}}

    payload = json.loads(JsonFormatter().format(_record(**extra)))

    assert payload["level"] == "INFO"
    assert payload["message"] == "deal.moved"
    assert payload["deal_id"] == 5


def test_configure_logging_installs_handlers_once(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    monkeypatch.setattr(root, "level", root.level)

    logging_config.configure_logging()
    logging_config.configure_logging()

    names = [handler.get_name() for handler in root.handlers]
    assert names == ["dealflow"]
    assert isinstance(root.handlers[0].formatter, JsonFormatter)
