"""Aggregate pipeline statistics for the kanban header and dashboard."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select

from dealflow.models import Deal, DealStatus, PipelineStage
from dealflow.schemas.stats import PipelineSummary, StageTotals
from dealflow.services.base_service import BaseService


class PipelineStatsService(BaseService):
    """Read-only aggregation over an owner's deals."""

    def deals_by_stage(self, owner_id: int) -> list[StageTotals]:
        totals = {
            stage_id: (count, value)
            for stage_id, count, value in self.db.execute(
                select(Deal.stage_id, func.count(Deal.id), func.coalesce(func.sum(Deal.value), 0))
                .where(Deal.owner_id == owner_id, Deal.status == DealStatus.OPEN)
                .group_by(Deal.stage_id)
            ).all()
        }
        stages = self.db.scalars(
            select(PipelineStage)
            .where(PipelineStage.is_active.is_(True))
            .order_by(PipelineStage.order.asc(), PipelineStage.created_at.asc(), PipelineStage.id.asc())
        )
        items = []
        for stage in stages:
            count, value = totals.get(stage.id, (0, 0))
            items.append(
                StageTotals(
                    stage_id=stage.id,
                    stage=stage.name,
                    color=stage.color,
                    count=int(count),
                    value=Decimal(str(value or 0)),
                )
            )
        return items

    def pipeline_summary(self, owner_id: int) -> PipelineSummary:
        rows = self.db.execute(
            select(Deal.status, func.count(Deal.id), func.coalesce(func.sum(Deal.value), 0))
            .where(Deal.owner_id == owner_id)
            .group_by(Deal.status)
        ).all()
        by_status = {DealStatus(status): (int(count), Decimal(str(value or 0))) for status, count, value in rows}
        open_count, open_value = by_status.get(DealStatus.OPEN, (0, Decimal("0")))
        return PipelineSummary(
            pipeline_total=open_value,
            pipeline_count=open_count,
            won_count=by_status.get(DealStatus.WON, (0, Decimal("0")))[0],
            lost_count=by_status.get(DealStatus.LOST, (0, Decimal("0")))[0],
        )
