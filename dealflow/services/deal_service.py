"""Deal service owning stage membership and status transitions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import or_, select
from sqlalchemy.orm import selectinload

from dealflow.core.config import get_config
from dealflow.core.exceptions import NotFoundError, ValidationError
from dealflow.core.logging import LogContext, log_extra
from dealflow.models import Company, Contact, Deal, DealStatus, PipelineStage
from dealflow.models.base import utcnow
from dealflow.orchestration.state_machine import StateMachine
from dealflow.schemas.deals import DealCreateRequest, DealUpdateRequest
from dealflow.services.base_service import BaseService
from dealflow.services.stage_service import StageService

logger = logging.getLogger(__name__)

# Closed statuses are terminal: there is no modeled path back to OPEN.
DEAL_TRANSITIONS = StateMachine(
    {
        DealStatus.OPEN.value: {DealStatus.WON.value, DealStatus.LOST.value, DealStatus.ABANDONED.value},
    }
)


@dataclass
class PipelineBoard:
    """Active stages plus the owner's deals grouped by stage."""

    stages: list[PipelineStage]
    deals: list[Deal]
    deals_by_stage: dict[int, list[Deal]] = field(default_factory=dict)
    unstaged: list[Deal] = field(default_factory=list)


def _clean_title(title: str | None) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("Deal title is required.")
    return cleaned


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class DealService(BaseService):
    """Service for deal CRUD, stage moves and status transitions."""

    def __init__(self, db=None, stages: StageService | None = None) -> None:
        super().__init__(db)
        self.stages = stages or StageService(db=self.db)

    def _owned(self, owner_id: int):
        return select(Deal).where(Deal.owner_id == owner_id)

    def get_deal(self, owner_id: int, deal_id: int) -> Deal:
        deal = self.db.scalars(self._owned(owner_id).where(Deal.id == deal_id)).first()
        if deal is None:
            # Missing and not-yours are indistinguishable to the caller.
            raise NotFoundError("Deal not found.")
        return deal

    def _resolve_stage_id(self, stage_id: int | None) -> int | None:
        if stage_id is None:
            return None
        return self.stages.get_stage(stage_id).id

    def _link_contact(self, owner_id: int, contact_id: int | None) -> int | None:
        if contact_id is None:
            return None
        contact = self.db.scalars(
            select(Contact).where(Contact.id == contact_id, Contact.owner_id == owner_id)
        ).first()
        if contact is None:
            logger.debug("deal.link_skipped", extra={"event": "deal.link_skipped", "context": {"contact_id": contact_id}})
            return None
        return contact.id

    def _link_company(self, owner_id: int, company_id: int | None) -> int | None:
        if company_id is None:
            return None
        company = self.db.scalars(
            select(Company).where(Company.id == company_id, Company.owner_id == owner_id)
        ).first()
        if company is None:
            logger.debug("deal.link_skipped", extra={"event": "deal.link_skipped", "context": {"company_id": company_id}})
            return None
        return company.id

    def _apply_status(self, deal: Deal, target: DealStatus, reason: str | None = None) -> None:
        current = DealStatus(deal.status)
        if target == current:
            if current is DealStatus.OPEN:
                return
            raise ValidationError(f"Deal is already {current.value.lower()}.")
        DEAL_TRANSITIONS.assert_transition(current.value, target.value)

        deal.status = target
        deal.closed_at = utcnow()
        if target is DealStatus.WON:
            deal.probability = 100
        elif target is DealStatus.LOST:
            deal.probability = 0
            deal.lost_reason = _clean_text(reason)

    def create_deal(self, owner_id: int, data: DealCreateRequest) -> Deal:
        config = get_config()
        title = _clean_title(data.title)

        if data.stage_id is not None:
            stage_id = self._resolve_stage_id(data.stage_id)
        else:
            first_stage = self.stages.first_active_stage()
            stage_id = first_stage.id if first_stage else None

        deal = Deal(
            owner_id=owner_id,
            title=title,
            value=data.value,
            currency=(data.currency or config.DEFAULT_CURRENCY).upper(),
            status=DealStatus.OPEN,
            probability=data.probability if data.probability is not None else config.DEFAULT_PROBABILITY,
            expected_close_date=data.expected_close_date,
            description=_clean_text(data.description),
            stage_id=stage_id,
            contact_id=self._link_contact(owner_id, data.contact_id),
            company_id=self._link_company(owner_id, data.company_id),
        )
        if data.status is not None and data.status.is_closed:
            self._apply_status(deal, data.status)

        self.db.add(deal)
        self.commit()
        self.db.refresh(deal)
        logger.info(
            "deal.created",
            extra=log_extra("deal.created", LogContext(owner_id=owner_id, deal_id=deal.id, stage_id=deal.stage_id)),
        )
        return deal

    def list_deals(self, owner_id: int, search: str | None = None, status: DealStatus | None = None) -> list[Deal]:
        stmt = self._owned(owner_id).options(selectinload(Deal.contact), selectinload(Deal.company))
        if status is not None:
            stmt = stmt.where(Deal.status == status)
        term = (search or "").strip()
        if term:
            pattern = f"%{term}%"
            stmt = (
                stmt.outerjoin(Contact, Deal.contact_id == Contact.id)
                .outerjoin(Company, Deal.company_id == Company.id)
                .where(
                    or_(
                        Deal.title.ilike(pattern),
                        Deal.description.ilike(pattern),
                        Contact.first_name.ilike(pattern),
                        Contact.last_name.ilike(pattern),
                        Company.name.ilike(pattern),
                    )
                )
            )
        stmt = stmt.order_by(Deal.created_at.desc(), Deal.id.desc())
        return list(self.db.scalars(stmt))

    def list_deals_grouped_by_stage(self, owner_id: int, include_closed: bool = False) -> PipelineBoard:
        stages = self.stages.list_stages(active_only=True)
        deals = self.list_deals(owner_id, status=None if include_closed else DealStatus.OPEN)

        board = PipelineBoard(stages=stages, deals=deals)
        board.deals_by_stage = {stage.id: [] for stage in stages}
        for deal in deals:
            bucket = board.deals_by_stage.get(deal.stage_id) if deal.stage_id is not None else None
            if bucket is None:
                board.unstaged.append(deal)
            else:
                bucket.append(deal)
        return board

    def move_deal_to_stage(self, owner_id: int, deal_id: int, stage_id: int) -> Deal:
        deal = self.get_deal(owner_id, deal_id)
        if DealStatus(deal.status).is_closed:
            raise ValidationError("Only open deals can be moved.")
        deal.stage_id = self._resolve_stage_id(stage_id)
        self.commit()
        self.db.refresh(deal)
        logger.info(
            "deal.moved",
            extra=log_extra("deal.moved", LogContext(owner_id=owner_id, deal_id=deal_id, stage_id=deal.stage_id)),
        )
        return deal

    def mark_won(self, owner_id: int, deal_id: int) -> Deal:
        deal = self.get_deal(owner_id, deal_id)
        self._apply_status(deal, DealStatus.WON)
        self.commit()
        self.db.refresh(deal)
        logger.info("deal.won", extra=log_extra("deal.won", LogContext(owner_id=owner_id, deal_id=deal_id)))
        return deal

    def mark_lost(self, owner_id: int, deal_id: int, reason: str | None = None) -> Deal:
        deal = self.get_deal(owner_id, deal_id)
        self._apply_status(deal, DealStatus.LOST, reason=reason)
        self.commit()
        self.db.refresh(deal)
        logger.info("deal.lost", extra=log_extra("deal.lost", LogContext(owner_id=owner_id, deal_id=deal_id)))
        return deal

    def update_deal(self, owner_id: int, deal_id: int, data: DealUpdateRequest) -> Deal:
        deal = self.get_deal(owner_id, deal_id)
        changes = data.model_dump(exclude_unset=True)

        if "title" in changes:
            deal.title = _clean_title(changes["title"])
        if "value" in changes:
            deal.value = changes["value"]
        if "currency" in changes:
            deal.currency = (changes["currency"] or get_config().DEFAULT_CURRENCY).upper()
        if "probability" in changes and changes["probability"] is not None:
            deal.probability = changes["probability"]
        if "expected_close_date" in changes:
            deal.expected_close_date = changes["expected_close_date"]
        if "description" in changes:
            deal.description = _clean_text(changes["description"])
        if "stage_id" in changes:
            deal.stage_id = self._resolve_stage_id(changes["stage_id"])
        if "contact_id" in changes:
            deal.contact_id = self._link_contact(owner_id, changes["contact_id"])
        if "company_id" in changes:
            deal.company_id = self._link_company(owner_id, changes["company_id"])
        # Status last so WON/LOST probability overrides any edited value.
        if changes.get("status") is not None and DealStatus(changes["status"]) is not DealStatus(deal.status):
            self._apply_status(deal, DealStatus(changes["status"]))

        self.commit()
        self.db.refresh(deal)
        return deal

    def delete_deal(self, owner_id: int, deal_id: int) -> None:
        deal = self.get_deal(owner_id, deal_id)
        self.db.delete(deal)
        self.commit()
        logger.info("deal.deleted", extra=log_extra("deal.deleted", LogContext(owner_id=owner_id, deal_id=deal_id)))
