"""Pipeline stage endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Header, Query, Response, status

from dealflow.actions import stages as stage_actions
from dealflow.api.v1._authz import identity_from_header, unwrap
from dealflow.schemas.stages import StageCreateRequest, StageReorderRequest, StageResponse, StageUpdateRequest

router = APIRouter(prefix="/stages", tags=["stages"])


@router.get("", response_model=list[StageResponse])
def list_stages(
    active_only: bool = Query(default=True),
    with_counts: bool = Query(default=False),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> list[StageResponse]:
    identity = identity_from_header(authorization)
    if with_counts:
        return unwrap(stage_actions.list_stages_for_settings(identity))
    return unwrap(stage_actions.list_stages(identity, active_only=active_only))


@router.post("", response_model=StageResponse, status_code=status.HTTP_201_CREATED)
def create_stage(
    payload: StageCreateRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> StageResponse:
    return unwrap(stage_actions.create_stage(identity_from_header(authorization), payload))


@router.post("/defaults")
def ensure_default_stages(authorization: str | None = Header(default=None, alias="Authorization")) -> dict:
    seeded = unwrap(stage_actions.ensure_default_stages(identity_from_header(authorization)))
    return {"seeded": seeded}


@router.put("/order", response_model=list[StageResponse])
def reorder_stages(
    payload: StageReorderRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> list[StageResponse]:
    return unwrap(stage_actions.reorder_stages(identity_from_header(authorization), payload))


@router.patch("/{stage_id}", response_model=StageResponse)
def update_stage(
    stage_id: int,
    payload: StageUpdateRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> StageResponse:
    return unwrap(stage_actions.update_stage(identity_from_header(authorization), stage_id, payload))


@router.delete("/{stage_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_stage(stage_id: int, authorization: str | None = Header(default=None, alias="Authorization")) -> Response:
    unwrap(stage_actions.delete_stage(identity_from_header(authorization), stage_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
