"""Deal request/response schemas for the pipeline contracts."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dealflow.models.enums import DealStatus
from dealflow.schemas.stages import StageResponse


def _coerce_date(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        # Accept ISO datetimes coming from browser date pickers.
        if "T" in value:
            return value.split("T", 1)[0]
    return value


class DealCreateRequest(BaseModel):
    title: str = Field(max_length=255)
    value: Decimal | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    status: DealStatus | None = None
    probability: int | None = Field(default=None, ge=0, le=100)
    expected_close_date: date | None = None
    description: str | None = Field(default=None, max_length=10000)
    stage_id: int | None = None
    contact_id: int | None = None
    company_id: int | None = None

    @field_validator("expected_close_date", mode="before")
    @classmethod
    def parse_close_date(cls, value):
        return _coerce_date(value)


class DealUpdateRequest(BaseModel):
    """Partial update; only fields explicitly sent are applied."""

    title: str | None = Field(default=None, max_length=255)
    value: Decimal | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    status: DealStatus | None = None
    probability: int | None = Field(default=None, ge=0, le=100)
    expected_close_date: date | None = None
    description: str | None = Field(default=None, max_length=10000)
    stage_id: int | None = None
    contact_id: int | None = None
    company_id: int | None = None

    @field_validator("expected_close_date", mode="before")
    @classmethod
    def parse_close_date(cls, value):
        return _coerce_date(value)


class DealMoveRequest(BaseModel):
    stage_id: int


class DealLostRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class DealResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    value: Decimal | None = None
    currency: str
    status: DealStatus
    probability: int
    expected_close_date: date | None = None
    description: str | None = None
    closed_at: datetime | None = None
    lost_reason: str | None = None
    stage_id: int | None = None
    owner_id: int
    contact_id: int | None = None
    company_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PipelineBoardResponse(BaseModel):
    stages: list[StageResponse]
    deals: list[DealResponse]
    deals_by_stage: dict[int, list[int]]
    unstaged: list[int]
