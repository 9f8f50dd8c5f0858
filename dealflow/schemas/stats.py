"""Pipeline statistics schemas."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel


class StageTotals(BaseModel):
    stage_id: int
    stage: str
    color: str
    count: int
    value: Decimal


class PipelineSummary(BaseModel):
    pipeline_total: Decimal
    pipeline_count: int
    won_count: int
    lost_count: int
