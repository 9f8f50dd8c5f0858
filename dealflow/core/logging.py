"""Structured logging helpers for pipeline operations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class LogContext:
    """Normalized context fields expected in structured logs."""

    owner_id: int | None = None
    deal_id: int | None = None
    stage_id: int | None = None
    operation: str | None = None


def build_log_event(event: str, context: LogContext, **fields: Any) -> dict[str, Any]:
    """Build a normalized structured log payload."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "owner_id": context.owner_id,
        "deal_id": context.deal_id,
        "stage_id": context.stage_id,
        "operation": context.operation,
    }
    payload.update(fields)
    return payload


def log_extra(event: str, context: LogContext, **fields: Any) -> dict[str, Any]:
    """Return the `extra=` mapping understood by JsonFormatter."""
    return {"event": event, "context": build_log_event(event, context, **fields)}
