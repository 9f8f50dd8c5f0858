"""Caller-facing deal operations (the server actions behind the kanban board)."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from dealflow.actions.base import run_action
from dealflow.auth.identity import IdentityProvider
from dealflow.core.exceptions import ValidationError
from dealflow.core.outcome import Outcome
from dealflow.models import DealStatus
from dealflow.schemas.deals import DealCreateRequest, DealResponse, DealUpdateRequest, PipelineBoardResponse
from dealflow.schemas.stages import StageResponse
from dealflow.services.deal_service import DealService, PipelineBoard
from dealflow.services.revalidation import DASHBOARD_PATH, DEALS_PATH, ViewInvalidator, deal_path


def _deal_paths(deal: DealResponse) -> tuple[str, ...]:
    return (DEALS_PATH, deal_path(deal.id), DASHBOARD_PATH)


def _board_response(board: PipelineBoard) -> PipelineBoardResponse:
    return PipelineBoardResponse(
        stages=[StageResponse.model_validate(stage) for stage in board.stages],
        deals=[DealResponse.model_validate(deal) for deal in board.deals],
        deals_by_stage={stage_id: [deal.id for deal in deals] for stage_id, deals in board.deals_by_stage.items()},
        unstaged=[deal.id for deal in board.unstaged],
    )


def create_deal(
    identity: IdentityProvider,
    data: DealCreateRequest | Mapping[str, Any],
    invalidator: ViewInvalidator | None = None,
) -> Outcome[DealResponse]:
    def body(session, owner_id):
        payload = DealCreateRequest.model_validate(data)
        return DealResponse.model_validate(DealService(db=session).create_deal(owner_id, payload))

    return run_action("deal.create", identity, body, invalidate=_deal_paths, invalidator=invalidator)


def get_deal(identity: IdentityProvider, deal_id: int) -> Outcome[DealResponse]:
    def body(session, owner_id):
        return DealResponse.model_validate(DealService(db=session).get_deal(owner_id, deal_id))

    return run_action("deal.get", identity, body)


def list_deals(
    identity: IdentityProvider,
    search: str | None = None,
    status: DealStatus | str | None = None,
) -> Outcome[list[DealResponse]]:
    def body(session, owner_id):
        try:
            resolved = DealStatus(status) if status else None
        except ValueError as exc:
            raise ValidationError(f"Unknown deal status: {status}.") from exc
        deals = DealService(db=session).list_deals(owner_id, search=search, status=resolved)
        return [DealResponse.model_validate(deal) for deal in deals]

    return run_action("deal.list", identity, body)


def get_deals_with_stages(identity: IdentityProvider, include_closed: bool = False) -> Outcome[PipelineBoardResponse]:
    def body(session, owner_id):
        return _board_response(DealService(db=session).list_deals_grouped_by_stage(owner_id, include_closed))

    return run_action("deal.board", identity, body)


def update_deal(
    identity: IdentityProvider,
    deal_id: int,
    data: DealUpdateRequest | Mapping[str, Any],
    invalidator: ViewInvalidator | None = None,
) -> Outcome[DealResponse]:
    def body(session, owner_id):
        payload = DealUpdateRequest.model_validate(data)
        return DealResponse.model_validate(DealService(db=session).update_deal(owner_id, deal_id, payload))

    return run_action("deal.update", identity, body, invalidate=_deal_paths, invalidator=invalidator)


def move_deal_to_stage(
    identity: IdentityProvider,
    deal_id: int,
    stage_id: int,
    invalidator: ViewInvalidator | None = None,
) -> Outcome[DealResponse]:
    def body(session, owner_id):
        return DealResponse.model_validate(DealService(db=session).move_deal_to_stage(owner_id, deal_id, stage_id))

    return run_action("deal.move", identity, body, invalidate=(DEALS_PATH, DASHBOARD_PATH), invalidator=invalidator)


def mark_deal_as_won(
    identity: IdentityProvider,
    deal_id: int,
    invalidator: ViewInvalidator | None = None,
) -> Outcome[DealResponse]:
    def body(session, owner_id):
        return DealResponse.model_validate(DealService(db=session).mark_won(owner_id, deal_id))

    return run_action("deal.won", identity, body, invalidate=_deal_paths, invalidator=invalidator)


def mark_deal_as_lost(
    identity: IdentityProvider,
    deal_id: int,
    reason: str | None = None,
    invalidator: ViewInvalidator | None = None,
) -> Outcome[DealResponse]:
    def body(session, owner_id):
        return DealResponse.model_validate(DealService(db=session).mark_lost(owner_id, deal_id, reason=reason))

    return run_action("deal.lost", identity, body, invalidate=_deal_paths, invalidator=invalidator)


def delete_deal(
    identity: IdentityProvider,
    deal_id: int,
    invalidator: ViewInvalidator | None = None,
) -> Outcome[None]:
    def body(session, owner_id):
        DealService(db=session).delete_deal(owner_id, deal_id)

    return run_action(
        "deal.delete",
        identity,
        body,
        invalidate=(DEALS_PATH, deal_path(deal_id), DASHBOARD_PATH),
        invalidator=invalidator,
    )
