"""Canonical enum values for the pipeline schema."""

from __future__ import annotations

import enum


class DealStatus(str, enum.Enum):
    OPEN = "OPEN"
    WON = "WON"
    LOST = "LOST"
    ABANDONED = "ABANDONED"

    @property
    def is_closed(self) -> bool:
        return self is not DealStatus.OPEN
