"""Caller-facing pipeline stage operations."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from dealflow.actions.base import run_action
from dealflow.auth.identity import IdentityProvider
from dealflow.core.outcome import Outcome
from dealflow.schemas.stages import StageCreateRequest, StageReorderRequest, StageResponse, StageUpdateRequest
from dealflow.services.revalidation import DEALS_PATH, SETTINGS_PATH, ViewInvalidator
from dealflow.services.stage_service import StageService

STAGE_PATHS = (SETTINGS_PATH, DEALS_PATH)


def list_stages(identity: IdentityProvider, active_only: bool = True) -> Outcome[list[StageResponse]]:
    def body(session, _owner_id):
        stages = StageService(db=session).list_stages(active_only=active_only)
        return [StageResponse.model_validate(stage) for stage in stages]

    return run_action("stage.list", identity, body)


def list_stages_for_settings(identity: IdentityProvider) -> Outcome[list[StageResponse]]:
    def body(session, _owner_id):
        return [
            StageResponse.model_validate(stage).model_copy(update={"deals_count": count})
            for stage, count in StageService(db=session).list_stages_with_counts()
        ]

    return run_action("stage.list_settings", identity, body)


def create_stage(
    identity: IdentityProvider,
    data: StageCreateRequest | Mapping[str, Any],
    invalidator: ViewInvalidator | None = None,
) -> Outcome[StageResponse]:
    def body(session, _owner_id):
        payload = StageCreateRequest.model_validate(data)
        stage = StageService(db=session).create_stage(payload.name, payload.color)
        return StageResponse.model_validate(stage)

    return run_action("stage.create", identity, body, invalidate=STAGE_PATHS, invalidator=invalidator)


def update_stage(
    identity: IdentityProvider,
    stage_id: int,
    data: StageUpdateRequest | Mapping[str, Any],
    invalidator: ViewInvalidator | None = None,
) -> Outcome[StageResponse]:
    def body(session, _owner_id):
        payload = StageUpdateRequest.model_validate(data)
        stage = StageService(db=session).update_stage(
            stage_id, name=payload.name, color=payload.color, is_active=payload.is_active
        )
        return StageResponse.model_validate(stage)

    return run_action("stage.update", identity, body, invalidate=STAGE_PATHS, invalidator=invalidator)


def delete_stage(
    identity: IdentityProvider,
    stage_id: int,
    invalidator: ViewInvalidator | None = None,
) -> Outcome[None]:
    def body(session, _owner_id):
        StageService(db=session).delete_stage(stage_id)

    return run_action("stage.delete", identity, body, invalidate=STAGE_PATHS, invalidator=invalidator)


def reorder_stages(
    identity: IdentityProvider,
    ordered_ids: Sequence[int] | StageReorderRequest,
    invalidator: ViewInvalidator | None = None,
) -> Outcome[list[StageResponse]]:
    def body(session, _owner_id):
        if isinstance(ordered_ids, StageReorderRequest):
            payload = ordered_ids
        else:
            payload = StageReorderRequest.model_validate({"ordered_ids": list(ordered_ids)})
        stages = StageService(db=session).reorder_stages(payload.ordered_ids)
        return [StageResponse.model_validate(stage) for stage in stages]

    return run_action("stage.reorder", identity, body, invalidate=STAGE_PATHS, invalidator=invalidator)


def ensure_default_stages(identity: IdentityProvider, invalidator: ViewInvalidator | None = None) -> Outcome[bool]:
    def body(session, _owner_id):
        return StageService(db=session).ensure_default_stages()

    return run_action(
        "stage.ensure_defaults",
        identity,
        body,
        invalidate=lambda seeded: (DEALS_PATH,) if seeded else (),
        invalidator=invalidator,
    )
