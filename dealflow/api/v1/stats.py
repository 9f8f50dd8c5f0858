"""Pipeline statistics endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Header

from dealflow.actions import stats as stats_actions
from dealflow.api.v1._authz import identity_from_header, unwrap

router = APIRouter(prefix="/pipeline", tags=["pipeline"])


@router.get("/stats")
def pipeline_stats(authorization: str | None = Header(default=None, alias="Authorization")) -> dict:
    identity = identity_from_header(authorization)
    summary = unwrap(stats_actions.get_pipeline_summary(identity))
    by_stage = unwrap(stats_actions.get_deals_by_stage(identity))
    return {
        "summary": summary.model_dump(mode="json"),
        "by_stage": [item.model_dump(mode="json") for item in by_stage],
    }
