"""Deal and kanban endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Header, Query, Response, status

from dealflow.actions import deals as deal_actions
from dealflow.api.v1._authz import identity_from_header, unwrap
from dealflow.models import DealStatus
from dealflow.schemas.deals import (
    DealCreateRequest,
    DealLostRequest,
    DealMoveRequest,
    DealResponse,
    DealUpdateRequest,
    PipelineBoardResponse,
)

router = APIRouter(prefix="/deals", tags=["deals"])


@router.get("", response_model=list[DealResponse])
def list_deals(
    search: str | None = Query(default=None, max_length=200),
    deal_status: DealStatus | None = Query(default=None, alias="status"),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> list[DealResponse]:
    return unwrap(deal_actions.list_deals(identity_from_header(authorization), search=search, status=deal_status))


@router.get("/board", response_model=PipelineBoardResponse)
def get_board(
    include_closed: bool = Query(default=False),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> PipelineBoardResponse:
    return unwrap(deal_actions.get_deals_with_stages(identity_from_header(authorization), include_closed=include_closed))


@router.post("", response_model=DealResponse, status_code=status.HTTP_201_CREATED)
def create_deal(
    payload: DealCreateRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> DealResponse:
    return unwrap(deal_actions.create_deal(identity_from_header(authorization), payload))


@router.get("/{deal_id}", response_model=DealResponse)
def get_deal(deal_id: int, authorization: str | None = Header(default=None, alias="Authorization")) -> DealResponse:
    return unwrap(deal_actions.get_deal(identity_from_header(authorization), deal_id))


@router.patch("/{deal_id}", response_model=DealResponse)
def update_deal(
    deal_id: int,
    payload: DealUpdateRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> DealResponse:
    return unwrap(deal_actions.update_deal(identity_from_header(authorization), deal_id, payload))


@router.post("/{deal_id}/move", response_model=DealResponse)
def move_deal(
    deal_id: int,
    payload: DealMoveRequest,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> DealResponse:
    return unwrap(deal_actions.move_deal_to_stage(identity_from_header(authorization), deal_id, payload.stage_id))


@router.post("/{deal_id}/won", response_model=DealResponse)
def mark_won(deal_id: int, authorization: str | None = Header(default=None, alias="Authorization")) -> DealResponse:
    return unwrap(deal_actions.mark_deal_as_won(identity_from_header(authorization), deal_id))


@router.post("/{deal_id}/lost", response_model=DealResponse)
def mark_lost(
    deal_id: int,
    payload: DealLostRequest | None = None,
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> DealResponse:
    reason = payload.reason if payload else None
    return unwrap(deal_actions.mark_deal_as_lost(identity_from_header(authorization), deal_id, reason=reason))


@router.delete("/{deal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_deal(deal_id: int, authorization: str | None = Header(default=None, alias="Authorization")) -> Response:
    unwrap(deal_actions.delete_deal(identity_from_header(authorization), deal_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
