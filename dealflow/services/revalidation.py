"""View-invalidation hints fired after pipeline mutations."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

logger = logging.getLogger(__name__)

DEALS_PATH = "/deals"
SETTINGS_PATH = "/settings"
DASHBOARD_PATH = "/dashboard"


def deal_path(deal_id: int) -> str:
    return f"{DEALS_PATH}/{deal_id}"


class ViewInvalidator(Protocol):
    def revalidate(self, paths: Iterable[str]) -> None: ...


class LoggingInvalidator:
    """Default invalidator: records the hint in the log stream only."""

    def revalidate(self, paths: Iterable[str]) -> None:
        logger.debug(
            "views.revalidated",
            extra={"event": "views.revalidated", "context": {"paths": list(paths)}},
        )


_default_invalidator: ViewInvalidator = LoggingInvalidator()


def get_invalidator() -> ViewInvalidator:
    return _default_invalidator


def set_invalidator(invalidator: ViewInvalidator) -> None:
    global _default_invalidator
    _default_invalidator = invalidator


def notify_changed(invalidator: ViewInvalidator | None, *paths: str) -> None:
    """Fire-and-forget: an invalidation failure never fails the mutation."""
    target = invalidator or get_invalidator()
    try:
        target.revalidate(paths)
    except Exception:
        logger.warning(
            "views.revalidate_failed",
            exc_info=True,
            extra={"event": "views.revalidate_failed", "context": {"paths": list(paths)}},
        )
