"""Pipeline stage ordering service."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from dealflow.core.exceptions import ConflictError, NotFoundError, PersistenceError, ValidationError
from dealflow.core.logging import LogContext, log_extra
from dealflow.models import Deal, PipelineStage
from dealflow.services.base_service import BaseService

logger = logging.getLogger(__name__)

DEFAULT_STAGES: tuple[tuple[str, str], ...] = (
    ("Lead", "#6B7280"),
    ("Qualification", "#3B82F6"),
    ("Proposal", "#F59E0B"),
    ("Negotiation", "#8B5CF6"),
    ("Closing", "#10B981"),
)


def _clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Stage name is required.")
    return cleaned


def _clean_color(color: str | None) -> str:
    cleaned = (color or "").strip()
    if not cleaned:
        raise ValidationError("Stage color is required.")
    return cleaned


class StageService(BaseService):
    """Service maintaining the canonical, gapless ordering of pipeline stages."""

    def _ordered(self):
        return select(PipelineStage).order_by(
            PipelineStage.order.asc(),
            PipelineStage.created_at.asc(),
            PipelineStage.id.asc(),
        )

    def list_stages(self, active_only: bool = False) -> list[PipelineStage]:
        stmt = self._ordered()
        if active_only:
            stmt = stmt.where(PipelineStage.is_active.is_(True))
        return list(self.db.scalars(stmt))

    def list_stages_with_counts(self) -> list[tuple[PipelineStage, int]]:
        """Every stage in pipeline order with the number of deals referencing it."""
        counts = dict(
            self.db.execute(
                select(Deal.stage_id, func.count(Deal.id))
                .where(Deal.stage_id.is_not(None))
                .group_by(Deal.stage_id)
            ).all()
        )
        return [(stage, int(counts.get(stage.id, 0))) for stage in self.list_stages()]

    def get_stage(self, stage_id: int) -> PipelineStage:
        stage = self.db.get(PipelineStage, stage_id)
        if stage is None:
            raise NotFoundError("Stage not found.")
        return stage

    def first_active_stage(self) -> PipelineStage | None:
        stmt = self._ordered().where(PipelineStage.is_active.is_(True)).limit(1)
        return self.db.scalars(stmt).first()

    def count_stages(self) -> int:
        return int(self.db.scalar(select(func.count(PipelineStage.id))) or 0)

    def deals_count(self, stage_id: int) -> int:
        return int(self.db.scalar(select(func.count(Deal.id)).where(Deal.stage_id == stage_id)) or 0)

    def _next_order(self) -> int:
        current = self.db.scalar(select(func.max(PipelineStage.order)))
        return (current or 0) + 1

    def create_stage(self, name: str, color: str) -> PipelineStage:
        stage = PipelineStage(
            name=_clean_name(name),
            color=_clean_color(color),
            order=self._next_order(),
            is_active=True,
        )
        self.db.add(stage)
        self.commit()
        self.db.refresh(stage)
        logger.info("stage.created", extra=log_extra("stage.created", LogContext(stage_id=stage.id), order=stage.order))
        return stage

    def update_stage(
        self,
        stage_id: int,
        name: str | None = None,
        color: str | None = None,
        is_active: bool | None = None,
    ) -> PipelineStage:
        stage = self.get_stage(stage_id)
        if name is not None:
            stage.name = _clean_name(name)
        if color is not None:
            stage.color = _clean_color(color)
        if is_active is not None:
            stage.is_active = is_active
        self.commit()
        self.db.refresh(stage)
        return stage

    def delete_stage(self, stage_id: int) -> None:
        stage = self.get_stage(stage_id)
        blocking = self.deals_count(stage_id)
        if blocking > 0:
            logger.info(
                "stage.delete_blocked",
                extra=log_extra("stage.delete_blocked", LogContext(stage_id=stage_id), deals_count=blocking),
            )
            raise ConflictError(
                f"Cannot delete stage: {blocking} deal(s) still assigned. Move them first.",
                count=blocking,
            )
        self.db.delete(stage)
        self.commit()

    def reorder_stages(self, ordered_ids: Sequence[int]) -> list[PipelineStage]:
        """Rewrite every stage's order to its 1-based position in one transaction."""
        ids = [int(stage_id) for stage_id in ordered_ids]
        if len(set(ids)) != len(ids):
            raise ValidationError("Stage order contains duplicate ids.")

        stages = {stage.id: stage for stage in self.db.scalars(select(PipelineStage))}
        missing = sorted(set(stages) - set(ids))
        unknown = sorted(set(ids) - set(stages))
        if missing or unknown:
            raise ValidationError(
                f"Stage order must list every stage exactly once (missing={missing}, unknown={unknown})."
            )

        try:
            for position, stage_id in enumerate(ids, start=1):
                stages[stage_id].order = position
            self.db.flush()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError("Stage reorder failed.") from exc
        self.commit()
        logger.info("stage.reordered", extra=log_extra("stage.reordered", LogContext(), stage_ids=ids))
        return self.list_stages()

    def ensure_default_stages(self) -> bool:
        """Seed the default pipeline when no stage exists. Returns True if seeded."""
        if self.count_stages() > 0:
            return False
        for position, (name, color) in enumerate(DEFAULT_STAGES, start=1):
            self.db.add(PipelineStage(name=name, color=color, order=position, is_active=True))
        self.commit()
        logger.info("stage.defaults_seeded", extra=log_extra("stage.defaults_seeded", LogContext(), count=len(DEFAULT_STAGES)))
        return True
