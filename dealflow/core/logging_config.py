"""Process-wide JSON logging for the API and maintenance scripts."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from dealflow.core.config import get_config

# Keys the formatter owns; structured context cannot overwrite them.
RESERVED_KEYS = frozenset({"level", "logger", "message", "exception"})

# Chatty in production: SQL echo and migration progress.
PRODUCTION_QUIET_LOGGERS = ("sqlalchemy.engine", "alembic.runtime.migration")


class JsonFormatter(logging.Formatter):
    """One JSON object per record with `log_extra` context flattened in."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if isinstance(context, dict):
            payload.update(
                (key, value) for key, value in context.items() if value is not None and key not in RESERVED_KEYS
            )
        event = getattr(record, "event", None)
        if event:
            payload["event"] = event
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def _dealflow_handler(stream_or_path: Any, formatter: logging.Formatter) -> logging.Handler:
    if isinstance(stream_or_path, str):
        handler: logging.Handler = logging.FileHandler(stream_or_path)
    else:
        handler = logging.StreamHandler(stream_or_path)
    handler.setFormatter(formatter)
    handler.set_name("dealflow")
    return handler


def configure_logging() -> None:
    """Install JSON handlers on the root logger once per process."""
    config = get_config()
    root = logging.getLogger()
    if any(handler.get_name() == "dealflow" for handler in root.handlers):
        return

    root.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
    formatter = JsonFormatter()
    root.addHandler(_dealflow_handler(sys.stdout, formatter))
    if config.LOG_FILE:
        root.addHandler(_dealflow_handler(config.LOG_FILE, formatter))

    if config.is_production:
        for name in PRODUCTION_QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
