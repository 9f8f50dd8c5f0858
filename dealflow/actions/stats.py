"""Read-only pipeline statistics actions."""

from __future__ import annotations

from dealflow.actions.base import run_action
from dealflow.auth.identity import IdentityProvider
from dealflow.core.outcome import Outcome
from dealflow.schemas.stats import PipelineSummary, StageTotals
from dealflow.services.pipeline_stats_service import PipelineStatsService


def get_deals_by_stage(identity: IdentityProvider) -> Outcome[list[StageTotals]]:
    def body(session, owner_id):
        return PipelineStatsService(db=session).deals_by_stage(owner_id)

    return run_action("stats.deals_by_stage", identity, body)


def get_pipeline_summary(identity: IdentityProvider) -> Outcome[PipelineSummary]:
    def body(session, owner_id):
        return PipelineStatsService(db=session).pipeline_summary(owner_id)

    return run_action("stats.summary", identity, body)
