"""Pydantic schema package for pipeline contracts."""

from dealflow.schemas.common import ErrorEnvelope
from dealflow.schemas.deals import (
    DealCreateRequest,
    DealLostRequest,
    DealMoveRequest,
    DealResponse,
    DealUpdateRequest,
    PipelineBoardResponse,
)
from dealflow.schemas.stages import StageCreateRequest, StageReorderRequest, StageResponse, StageUpdateRequest
from dealflow.schemas.stats import PipelineSummary, StageTotals

__all__ = [
    "DealCreateRequest",
    "DealLostRequest",
    "DealMoveRequest",
    "DealResponse",
    "DealUpdateRequest",
    "ErrorEnvelope",
    "PipelineBoardResponse",
    "PipelineSummary",
    "StageCreateRequest",
    "StageReorderRequest",
    "StageResponse",
    "StageTotals",
    "StageUpdateRequest",
]
