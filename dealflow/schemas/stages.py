"""Pipeline stage request/response schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class StageCreateRequest(BaseModel):
    name: str = Field(max_length=100)
    color: str = Field(max_length=32)


class StageUpdateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=100)
    color: str | None = Field(default=None, max_length=32)
    is_active: bool | None = None


class StageReorderRequest(BaseModel):
    ordered_ids: list[int]


class StageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    color: str
    order: int
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deals_count: int | None = None
